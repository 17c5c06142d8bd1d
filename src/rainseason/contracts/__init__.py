"""Pipeline contracts: fail-fast enforcement of stage invariants.

This package enforces semantic guarantees between pipeline stages.
Contracts fail immediately and loudly when pipeline stages don't produce
their promised invariants.

Key principle:
- Pydantic validates config correctness
- Contracts validate pipeline correctness
- Algorithms handle science edge cases (dry pixels, unresolved seasons)
"""

from rainseason.contracts.failure import ContractViolation, FailurePolicy
from rainseason.contracts.base import require
from rainseason.contracts.series import assert_daily_series
from rainseason.contracts.classification import assert_classified
from rainseason.contracts.seasons import assert_season_dates
from rainseason.contracts.mask import assert_study_mask
from rainseason.contracts.tabular import assert_tabular_output

__all__ = [
    "ContractViolation",
    "FailurePolicy",
    "require",
    "assert_daily_series",
    "assert_classified",
    "assert_season_dates",
    "assert_study_mask",
    "assert_tabular_output",
]
