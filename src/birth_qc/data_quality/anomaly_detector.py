"""
Anomaly Detector

Flags individual (record, column) cells of the raw birth-weight dataset as
invalid. Each rule is column-local and runs over every record, so a record
with a broken identifier is still checked for weight, gestation and gender.

Checks performed:
1. Range rule (birthweight, length_of_gestation): percentile band + plausibility
2. Format rule (new_id): integer token
3. Domain rule (gender): fixed category set
4. Uniqueness diagnostic (new_id): reported, never flagged
5. Multivariate screen (IsolationForest): reported, never flagged
"""

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from .loader import Column, NUMERIC_COLUMNS


#---------0---------------------------
#LABELS
class IssueLabel:
    """Human-readable issue labels, one per rule outcome."""
    BIRTHWEIGHT_TOO_SMALL = "birth weight too small"
    BIRTHWEIGHT_TOO_LARGE = "birth weight too large"
    GESTATION_TOO_SHORT = "gestation too short"
    GESTATION_TOO_LONG = "gestation too long"
    WRONG_ID = "wrong id"
    WRONG_GENDER = "wrong gender"


# (below label, above label) for each range-checked column
RANGE_LABELS: Dict[str, Tuple[str, str]] = {
    Column.BIRTHWEIGHT.value: (IssueLabel.BIRTHWEIGHT_TOO_SMALL, IssueLabel.BIRTHWEIGHT_TOO_LARGE),
    Column.GESTATION.value: (IssueLabel.GESTATION_TOO_SHORT, IssueLabel.GESTATION_TOO_LONG),
}

INTEGER_TOKEN = re.compile(r"^\d+$")
#---------0---------------------------


#DATACLASSES

@dataclass(frozen=True)
class Issue:
    """One invalid cell. At most one per (record_id, column)."""
    record_id: int
    column: str
    label: str
    value: Any = None  # raw value as loaded, for the cleaning log


@dataclass
class RangeCandidate:
    """A value outside the percentile band, before the plausibility verdict."""
    record_id: int
    column: str
    value: float
    direction: str   # "below" / "above"
    plausible: bool  # True = kept, False = promoted to an Issue


@dataclass
class PlausibleRange:
    """Default plausibility predicate: a closed [low, high] interval."""
    low: float
    high: float

    def __call__(self, value: float) -> bool:
        return self.low <= value <= self.high


@dataclass
class DetectionReport:
    issues: List[Issue]
    candidates: List[RangeCandidate] = field(default_factory=list)
    percentile_bounds: Dict[str, Tuple[float, float]] = field(default_factory=dict)
    identifier_summary: Dict[str, Any] = field(default_factory=dict)
    multivariate_candidates: List[int] = field(default_factory=list)
    ml_methods_used: List[str] = field(default_factory=list)

    def by_label(self) -> Dict[str, List[int]]:
        """{label: sorted record ids}"""
        grouped: Dict[str, List[int]] = {}
        for issue in self.issues:
            grouped.setdefault(issue.label, []).append(issue.record_id)
        return {label: sorted(ids) for label, ids in grouped.items()}

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [(i.record_id, i.column, i.label, i.value) for i in self.issues],
            columns=["id", "column", "issue", "value"],
        )


#---------0---------------------------
# standalone helpers, the judgment call should be testable on its own

def percentile_bounds(values: pd.Series, lower: float = 5, upper: float = 95) -> Tuple[float, float]:
    """Lower/upper percentile of the non-null values (linear interpolation)."""
    data = pd.to_numeric(values, errors="coerce").dropna().to_numpy(dtype=float)
    if len(data) == 0:
        return (np.nan, np.nan)
    low, high = np.percentile(data, [lower, upper])
    return float(low), float(high)


def identifier_diagnostics(values: pd.Series) -> Dict[str, Any]:
    """
    Count valid / distinct identifier tokens.

    A duplicated token would mean the same subject was recorded twice. This
    only reports; the detector does not emit issues for duplicates.
    """
    tokens = values.dropna().map(lambda v: str(v).strip())
    valid = tokens[tokens.map(lambda v: bool(INTEGER_TOKEN.match(v)))]
    as_int = valid.map(int)  # python ints, registry numbers can exceed int64
    dup_mask = as_int.duplicated(keep=False)

    return {
        "total": int(len(values)),
        "missing": int(values.isna().sum()),
        "valid": int(len(valid)),
        "invalid": int(len(tokens) - len(valid)),
        "distinct": int(as_int.nunique()),
        "duplicated_tokens": sorted(set(as_int[dup_mask].tolist())),
        "all_unique": bool(not dup_mask.any()),
    }


#---------0---------------------------

class AnomalyDetector:
    """
    Rule-based detector for invalid cells.

    Usage:
        detector = AnomalyDetector()
        report = detector.detect(df)
        report.issues  # -> [Issue(record_id=23, column="birthweight", ...), ...]

    The plausibility predicates are pluggable:
        AnomalyDetector({"plausibility": {"birthweight": lambda v: 300 <= v <= 7000}})
    """

    def __init__(self, config: Optional[Dict] = None):
        self.config = {
            "lower_percentile": 5,
            "upper_percentile": 95,
            # cutoffs for a human newborn, not derived from the data
            "plausibility": {
                Column.BIRTHWEIGHT.value: PlausibleRange(400, 6500),  # grams
                Column.GESTATION.value: PlausibleRange(20, 44),       # weeks
            },
            "gender_domain": ["Male", "Female"],
            "multivariate_screen": True,
            "multivariate_min_rows": 50,
            "anomaly_contamination": 0.05,
        }

        if config:
            # merge predicate overrides instead of dropping the other column's default
            plausibility = dict(self.config["plausibility"])
            plausibility.update(config.get("plausibility", {}))
            self.config.update(config)
            self.config["plausibility"] = plausibility

        self.issues: List[Issue] = []
        self.candidates: List[RangeCandidate] = []
        self.ml_methods_used: List[str] = []

    def detect(self, data: pd.DataFrame) -> DetectionReport:
        """
        Run every rule over the raw dataset.

        Args:
            data: Dataset from load_dataset (needs the `id` column)

        Returns:
            DetectionReport with issues and diagnostics
        """
        # Reset state for new run
        self.issues = []
        self.candidates = []
        self.ml_methods_used = []

        bounds = {}
        for col in NUMERIC_COLUMNS:
            bounds[col] = self._check_range(data, col)   # 1. Range rule
        self._check_identifier_format(data)               # 2. Format rule
        self._check_gender_domain(data)                   # 3. Domain rule

        id_summary = identifier_diagnostics(data[Column.NEW_ID.value])  # 4.
        screened = self._screen_multivariate(data)                         # 5.

        return DetectionReport(
            issues=list(self.issues),
            candidates=list(self.candidates),
            percentile_bounds=bounds,
            identifier_summary=id_summary,
            multivariate_candidates=screened,
            ml_methods_used=list(self.ml_methods_used),
        )

    # ============================================================
    # RULES
    # ============================================================

    def _check_range(self, df: pd.DataFrame, col: str) -> Tuple[float, float]:
        """Percentile band gives candidates, the predicate decides."""
        low, high = percentile_bounds(
            df[col], self.config["lower_percentile"], self.config["upper_percentile"]
        )
        if np.isnan(low):
            return (low, high)

        is_plausible: Callable[[float], bool] = self.config["plausibility"][col]
        below_label, above_label = RANGE_LABELS[col]

        for record_id, value in zip(df[Column.ID.value], df[col]):
            if pd.isna(value):
                continue

            if value < low:
                direction, label = "below", below_label
            elif value > high:
                direction, label = "above", above_label
            else:
                continue

            plausible = bool(is_plausible(float(value)))
            self.candidates.append(RangeCandidate(
                record_id=int(record_id),
                column=col,
                value=float(value),
                direction=direction,
                plausible=plausible,
            ))

            if not plausible:
                self.issues.append(Issue(int(record_id), col, label, float(value)))

        return (low, high)

    def _check_identifier_format(self, df: pd.DataFrame) -> None:
        """new_id must be an integer token; missing is not an error here."""
        col = Column.NEW_ID.value
        for record_id, value in zip(df[Column.ID.value], df[col]):
            if pd.isna(value):
                continue
            if not INTEGER_TOKEN.match(str(value).strip()):
                self.issues.append(Issue(int(record_id), col, IssueLabel.WRONG_ID, value))

    def _check_gender_domain(self, df: pd.DataFrame) -> None:
        col = Column.GENDER.value
        domain = set(self.config["gender_domain"])
        for record_id, value in zip(df[Column.ID.value], df[col]):
            if pd.isna(value):
                continue
            if value not in domain:  # e.g. "Fema1e"
                self.issues.append(Issue(int(record_id), col, IssueLabel.WRONG_GENDER, value))

    # IsolationForest only: with two numeric columns LOF adds little
    def _screen_multivariate(self, df: pd.DataFrame) -> List[int]:
        """Advisory IsolationForest screen over the numeric columns."""
        if not self.config["multivariate_screen"]:
            return []

        numeric_data = df[NUMERIC_COLUMNS].copy()
        numeric_data = numeric_data.loc[:, numeric_data.notna().any()]
        if numeric_data.shape[1] < 2 or len(numeric_data) < self.config["multivariate_min_rows"]:
            return []

        from sklearn.ensemble import IsolationForest

        numeric_data = numeric_data.fillna(numeric_data.median())

        iso_forest = IsolationForest(
            contamination=self.config["anomaly_contamination"],
            random_state=42,  # reproducible report
        )
        predictions = iso_forest.fit_predict(numeric_data)  # 1 normal, -1 anomaly
        self.ml_methods_used.append("Isolation Forest")

        flagged = df[Column.ID.value].to_numpy()[predictions == -1]
        return sorted(int(i) for i in flagged)


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================

def detect_issues(data: pd.DataFrame, config: Optional[Dict] = None) -> List[Issue]:
    """Convenience function returning only the issues."""
    return AnomalyDetector(config=config).detect(data).issues
