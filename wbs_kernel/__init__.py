"""
WBS Kernel - Hierarchical Budget & Measurement Core

A deterministic, pure-domain budgeting core with:
- Tagged-union work breakdown nodes (categories and priced items)
- Decimal-only money arithmetic with explicit round/truncate policy
- Immutable measurement snapshots for period close
- Typed exceptions and structured JSON logging
"""

__version__ = "0.1.0"
