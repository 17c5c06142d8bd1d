"""Tabular export contract."""

import pandas as pd
from rainseason.contracts.base import require


def assert_tabular_output(df: pd.DataFrame, required_columns: list[str]) -> None:
    """Enforce tabular export contract.

    Called immediately before writing df_multi_annual / df_annual. Every
    row must carry every required covariate.

    Parameters
    ----------
    df : pd.DataFrame
        Table about to be written.
    required_columns : list of str
        Columns that must exist and be complete.

    Raises
    ------
    ContractViolation
        If any invariant is violated
    """
    require(
        isinstance(df, pd.DataFrame),
        f"Tabular contract violated: expected DataFrame, got {type(df).__name__}"
    )

    missing = [c for c in required_columns if c not in df.columns]
    require(not missing, f"Tabular contract violated: missing columns {missing}")

    if len(df) == 0:
        return

    incomplete = [c for c in required_columns if df[c].isna().any()]
    require(
        not incomplete,
        f"Tabular contract violated: missing values in {incomplete}"
    )
