"""
Missingness Reporter

Builds the (record x column) status matrix used for the missing-data tile
plot, and gives an advisory verdict on the missingness mechanism. Nothing
here feeds back into cleaning or analysis.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Optional

import numpy as np
import pandas as pd

from .anomaly_detector import Issue
from .loader import Column, DATA_COLUMNS


class CellStatus(Enum):
    NOT_MISSING = "not missing"
    MISSING = "missing"
    INVALID = "invalid"  # flagged by the detector, overrides a present value


class MissingMechanism(Enum):
    MCAR = "missing completely at random"
    MNAR = "missing not at random"


@dataclass
class MissingnessAssessment:
    counts: pd.DataFrame          # rows = columns of the dataset, cols = statuses
    total_cells: int
    missing_cells: int
    invalid_cells: int
    proportion: float             # (missing + invalid) / total
    threshold: float
    mechanism: MissingMechanism

    @property
    def summary(self) -> Dict[str, object]:
        return {
            "total_cells": self.total_cells,
            "missing_cells": self.missing_cells,
            "invalid_cells": self.invalid_cells,
            "proportion": round(self.proportion, 4),
            "threshold": self.threshold,
            "mechanism": self.mechanism.name,
        }


def build_status_matrix(df: pd.DataFrame, issues: Iterable[Issue]) -> pd.DataFrame:
    """
    Tri-state status for every (record, column) pair except the id itself.

    Args:
        df: raw Dataset (before cleaning)
        issues: detector output

    Returns:
        DataFrame indexed by id, one column per data column, CellStatus values
    """
    data = df.set_index(Column.ID.value)[DATA_COLUMNS]

    status = np.where(data.isna().to_numpy(), CellStatus.MISSING, CellStatus.NOT_MISSING)
    matrix = pd.DataFrame(status, index=data.index, columns=DATA_COLUMNS, dtype=object)

    for issue in issues:
        if issue.column in matrix.columns and issue.record_id in matrix.index:
            matrix.at[issue.record_id, issue.column] = CellStatus.INVALID

    return matrix


def status_matrix_long(matrix: pd.DataFrame) -> pd.DataFrame:
    """Tidy (id, column, status) frame, one row per tile."""
    long = matrix.reset_index().melt(id_vars=Column.ID.value, var_name="column", value_name="status")
    long["status"] = long["status"].map(lambda s: s.value)
    return long


def assess_missingness(matrix: pd.DataFrame, threshold: Optional[float] = None) -> MissingnessAssessment:
    """
    Count statuses and call the missingness pattern.

    Conservative manual heuristic: if missing + invalid cells stay below
    `threshold` of all cells, treat the data as MCAR and analyse the
    available data without imputation.
    """
    if threshold is None:
        threshold = 0.05

    counts = pd.DataFrame(
        {status.value: (matrix == status).sum() for status in CellStatus}
    )
    counts.index.name = "column"

    total = int(matrix.size)
    missing = int(counts[CellStatus.MISSING.value].sum())
    invalid = int(counts[CellStatus.INVALID.value].sum())
    proportion = (missing + invalid) / total if total else 0.0

    mechanism = MissingMechanism.MCAR if proportion < threshold else MissingMechanism.MNAR

    return MissingnessAssessment(
        counts=counts,
        total_cells=total,
        missing_cells=missing,
        invalid_cells=invalid,
        proportion=proportion,
        threshold=threshold,
        mechanism=mechanism,
    )
