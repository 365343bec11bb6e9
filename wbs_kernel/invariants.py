"""
Kernel Invariants Contract.

These invariants are structural law for the budget tree. No configuration
value may switch them off.

This module exists solely to declare these invariants explicitly. The
enforcement is distributed across the aggregation engine, the structural
editor and the measurement rollover.
"""

from enum import Enum, unique


@unique
class KernelInvariant(str, Enum):
    """Non-configurable invariants enforced by the engines.

    Each value names one structural guarantee. Configuration may influence
    defaults such as the markup rate, never whether these rules apply.
    """

    ROLLUP = "rollup"
    """Every category total equals the sum of its direct children's totals.
    Enforced by AggregationEngine.process."""

    PRICE_TRUNCATION = "price_truncation"
    """Quantity x price products are truncated to cents; sibling sums are
    rounded half-up. Enforced by wbs_kernel.domain.numeric."""

    PROGRESS_CONSERVATION = "progress_conservation"
    """Closing a period moves current progress into previous progress
    without loss. Enforced by MeasurementRollover.close."""

    ROLLOVER_REVERSIBILITY = "rollover_reversibility"
    """Reopening the latest snapshot restores the project exactly as it was
    before the close. Enforced by MeasurementRollover.reopen."""

    DENSE_SIBLING_ORDER = "dense_sibling_order"
    """Sibling order values are 0..n-1 after every structural edit.
    Enforced by normalize_sibling_order in the structural editor."""

    ACYCLIC_TREE = "acyclic_tree"
    """No node may become its own ancestor. Enforced by reparent and by the
    tree builder's cycle breaking."""


# All invariants as a frozenset for programmatic checks.
ALL_KERNEL_INVARIANTS: frozenset[KernelInvariant] = frozenset(KernelInvariant)

# The kernel package may not import from these packages.
# This is enforced by tests/architecture/test_kernel_boundary.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "wbs_engines",
    "wbs_config",
)
