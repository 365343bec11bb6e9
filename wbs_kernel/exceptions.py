"""
Typed Exception Hierarchy for the WBS Kernel.

Every error has a typed class, a machine-readable ``code`` class attribute,
and structured attributes. Callers catch by type and read attributes; they
never parse message strings.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    WbsKernelError (base)
    |
    +-- StructureError
    |   +-- CyclicReparentError
    |   +-- NodeNotFoundError
    |   +-- NodeKindError
    |   +-- DuplicateNodeError
    |
    +-- MeasurementError
        +-- StaleAggregationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                 | When Raised
----------------|----------------------|------------------------------------------
Structure       | CYCLIC_REPARENT      | Move would put a group inside its subtree
                | NODE_NOT_FOUND       | Edit references an unknown node id
                | NODE_KIND_MISMATCH   | Item-only edit applied to a category
                | DUPLICATE_NODE       | Insert reuses an id already present
----------------|----------------------|------------------------------------------
Measurement     | STALE_AGGREGATION    | Period close on a non-aggregated tree

===============================================================================
HANDLING PATTERNS
===============================================================================

    try:
        nodes = reparent(nodes, source_id, target_id, Position.INSIDE)
    except CyclicReparentError as e:
        notify_user(str(e))            # the one user-facing structural error
        log.warning("move rejected", extra={"code": e.code})

Conditions that are NOT errors (handled locally, never raised):
    - reopen with an empty history (reported as "nothing to undo")
    - percentage of a zero contract (defined as 0)
    - nodes whose parent cannot be resolved (promoted to roots)
"""


class WbsKernelError(Exception):
    """
    Base exception for all WBS kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "WBS_KERNEL_ERROR"


# Structure-related exceptions


class StructureError(WbsKernelError):
    """Base exception for tree-structure errors."""

    code: str = "STRUCTURE_ERROR"


class CyclicReparentError(StructureError):
    """A move would make a node its own ancestor."""

    code: str = "CYCLIC_REPARENT"

    def __init__(self, source_id: str, target_id: str, position: str):
        self.source_id = source_id
        self.target_id = target_id
        self.position = position
        super().__init__("cannot move a group into itself or its own subtree")


class NodeNotFoundError(StructureError):
    """Node with given ID was not found in the collection."""

    code: str = "NODE_NOT_FOUND"

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Node not found: {node_id}")


class NodeKindError(StructureError):
    """Operation is not valid for this kind of node."""

    code: str = "NODE_KIND_MISMATCH"

    def __init__(self, node_id: str, expected: str, actual: str):
        self.node_id = node_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Node {node_id} is a {actual}, operation requires a {expected}"
        )


class DuplicateNodeError(StructureError):
    """A node with the given ID is already in the collection."""

    code: str = "DUPLICATE_NODE"

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Node already exists: {node_id}")


# Measurement-related exceptions


class MeasurementError(WbsKernelError):
    """Base exception for measurement period errors."""

    code: str = "MEASUREMENT_ERROR"


class StaleAggregationError(MeasurementError):
    """
    Period close was attempted on a collection whose derived fields do not
    match a fresh aggregation pass.
    """

    code: str = "STALE_AGGREGATION"

    def __init__(self, project_id: str, mismatched_ids: list[str]):
        self.project_id = project_id
        self.mismatched_ids = mismatched_ids
        super().__init__(
            f"Project {project_id} is not aggregated: "
            f"{len(mismatched_ids)} node(s) have stale derived fields"
        )
