"""
Cleaner

Turns every flagged cell into a missing value. No imputation, no row drops:
the analysis afterwards works on the available data per test.
"""

from typing import Iterable, List

import numpy as np
import pandas as pd

from ..errors import CleaningError
from .anomaly_detector import Issue
from .loader import Column, DATA_COLUMNS


def _validate_issues(df: pd.DataFrame, issues: List[Issue]) -> None:
    known_ids = set(df[Column.ID.value].tolist())

    for issue in issues:
        if issue.column not in DATA_COLUMNS:
            raise CleaningError(
                f"Issue for record {issue.record_id} names column '{issue.column}', "
                f"which cannot be cleaned (expected one of {DATA_COLUMNS})"
            )
        if issue.record_id not in known_ids:
            raise CleaningError(
                f"Issue '{issue.label}' references unknown record id {issue.record_id}"
            )


def clean_dataset(df: pd.DataFrame, issues: Iterable[Issue]) -> pd.DataFrame:
    """
    Return a copy of `df` with each issue cell set to missing.

    Pure and idempotent: the input is never touched, and running it again on
    its own output with the same issues changes nothing.

    Args:
        df: raw Dataset
        issues: detector output

    Returns:
        CleanedDataset (same shape, same index, same dtypes)
    """
    issues = list(issues)
    _validate_issues(df, issues)

    cleaned = df.copy()
    # id -> row label, the frame index is not assumed to be 0..N-1
    row_of = pd.Series(cleaned.index, index=cleaned[Column.ID.value])

    for issue in issues:
        cleaned.at[row_of[issue.record_id], issue.column] = np.nan

    return cleaned


def cleaning_log(df: pd.DataFrame, issues: Iterable[Issue]) -> pd.DataFrame:
    """Which cells were blanked, and what they held before."""
    rows = []
    lookup = df.set_index(Column.ID.value)
    for issue in sorted(issues, key=lambda i: (i.record_id, DATA_COLUMNS.index(i.column))):
        rows.append({
            "id": issue.record_id,
            "column": issue.column,
            "issue": issue.label,
            "original value": lookup.at[issue.record_id, issue.column],
        })
    return pd.DataFrame(rows, columns=["id", "column", "issue", "original value"])
