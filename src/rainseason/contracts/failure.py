"""Centralized failure policy for contract violations.

Contracts fail fast, loud, and once. All violations raise the same
exception type, allowing caller to handle pipeline bugs uniformly.
"""

from enum import Enum


class FailurePolicy(str, Enum):
    """Failure policy for contract violations.

    FAIL_FAST (default): Raise immediately on contract violation
    SKIP_TILE: Mark the tile failed in the stage cache, continue with the next tile
    """
    FAIL_FAST = "fail_fast"
    SKIP_TILE = "skip_tile"


class ContractViolation(RuntimeError):
    """Raised when a pipeline contract is violated.

    This indicates that a stage did not produce the invariants it promised,
    or that its input broke an assumption the detector relies on (gaps in
    the daily series, partial years, negative rainfall).

    Key distinction:
    - ValueError / ValidationError: User/config error (handled by Pydantic)
    - ContractViolation: Stage boundary broken
    - Missing values: Expected science outcome (dry pixels, unresolved seasons)
    """
    pass
