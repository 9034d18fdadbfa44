"""
StatisticalAnalyzer - the fixed battery of tests run on the cleaned data.

Every test uses available data only: rows are dropped when a column the test
needs is missing, never globally. Tests themselves are scipy calls; this
module picks the samples, checks preconditions and phrases the result.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import numpy as np
import pandas as pd
from scipy import stats

from ..errors import InsufficientGroupsError, StatisticalTestError, StratificationError


class Decision(Enum):
    REJECT = "reject"
    FAIL_TO_REJECT = "fail to reject"


@dataclass
class TestResult:
    """Outcome of one hypothesis test."""
    __test__ = False  # keep pytest from collecting this as a test class

    test: str                 # "Shapiro-Wilk", "Pearson correlation", ...
    column: str               # tested column ("x ~ y" for correlation)
    statistic: float
    p_value: float
    n: int                    # observations actually used
    null_hypothesis: str      # plain sentence, goes straight into the report
    alpha: float = 0.05
    group_sizes: Dict[str, int] = field(default_factory=dict)
    estimate: Optional[float] = None                 # e.g. Pearson r
    conf_int: Optional[Tuple[float, float]] = None   # e.g. CI of r
    degrees_of_freedom: Optional[float] = None
    stratum: Optional[str] = None                    # "gender=Male" when stratified

    @property
    def decision(self) -> Decision:
        return Decision.REJECT if self.p_value < self.alpha else Decision.FAIL_TO_REJECT

    @property
    def reject(self) -> bool:
        return self.decision is Decision.REJECT

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary for JSON serialization."""
        return {
            "test": self.test,
            "column": self.column,
            "stratum": self.stratum,
            "statistic": round(float(self.statistic), 4),
            "p_value": round(float(self.p_value), 4),
            "n": self.n,
            "group_sizes": self.group_sizes,
            "estimate": None if self.estimate is None else round(float(self.estimate), 4),
            "conf_int": None if self.conf_int is None else [round(float(v), 4) for v in self.conf_int],
            "degrees_of_freedom": self.degrees_of_freedom,
            "alpha": self.alpha,
            "null_hypothesis": self.null_hypothesis,
            "decision": self.decision.value,
        }


ResultOrStrata = Union[TestResult, Dict[str, TestResult]]


class StatisticalAnalyzer:
    """
    Normality, correlation and two-group location tests.

    Usage:
        analyzer = StatisticalAnalyzer()
        analyzer.normality(cleaned, "birthweight")
        analyzer.normality(cleaned, "birthweight", stratify_by="gender")  # {level: TestResult}
        analyzer.t_test(cleaned, "birthweight", group="gender")
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = {
            "alpha": 0.05,              # two-sided
            "min_normality_n": 3,       # Shapiro-Wilk lower limit
            "min_correlation_n": 4,     # Fisher CI needs n > 3
            "min_group_n": 2,           # per group, pooled t-test
        }

        if config:
            self.config.update(config)

    @property
    def alpha(self) -> float:
        return self.config["alpha"]

    # ============================================================
    # DESCRIPTIVES
    # ============================================================

    def describe(self, df: pd.DataFrame, columns: List[str], by: Optional[str] = None) -> pd.DataFrame:
        """n, missing, mean, sd, median, min, max per column (per group level)."""
        rows = []
        if by is None:
            frames = [(None, df)]
        else:
            frames = [(str(level), df[df[by] == level]) for level in self._levels(df, by)]

        for level, frame in frames:
            for col in columns:
                values = frame[col].dropna().astype(float)
                row = {"variable": col}
                if by is not None:
                    row[by] = level
                row.update({
                    "n": int(len(values)),
                    "missing": int(frame[col].isna().sum()),
                    "mean": values.mean() if len(values) else np.nan,
                    "sd": values.std(ddof=1) if len(values) > 1 else np.nan,
                    "median": values.median() if len(values) else np.nan,
                    "min": values.min() if len(values) else np.nan,
                    "max": values.max() if len(values) else np.nan,
                })
                rows.append(row)

        return pd.DataFrame(rows)

    # ============================================================
    # TESTS
    # ============================================================

    def normality(self, df: pd.DataFrame, column: str, stratify_by: Optional[str] = None) -> ResultOrStrata:
        """Shapiro-Wilk; p >= alpha means normality is not rejected."""
        if stratify_by is not None:
            return self._stratified(df, stratify_by, lambda part: self.normality(part, column))

        values = df[column].dropna().astype(float).to_numpy()
        name = "Shapiro-Wilk"

        if len(values) < self.config["min_normality_n"]:
            raise StatisticalTestError(
                name, column, f"needs at least {self.config['min_normality_n']} values, got {len(values)}"
            )
        if np.ptp(values) == 0:
            raise StatisticalTestError(name, column, "all values are identical")

        result = stats.shapiro(values)

        return TestResult(
            test=name,
            column=column,
            statistic=float(result.statistic),
            p_value=float(result.pvalue),
            n=int(len(values)),
            null_hypothesis=f"'{column}' is normally distributed",
            alpha=self.alpha,
        )

    def correlation(self, df: pd.DataFrame, x: str, y: str, stratify_by: Optional[str] = None) -> ResultOrStrata:
        """
        Pearson correlation with a (1 - alpha) confidence interval.

        Linearity is checked on the scatter plot, not here.
        """
        if stratify_by is not None:
            return self._stratified(df, stratify_by, lambda part: self.correlation(part, x, y))

        pairs = df[[x, y]].dropna().astype(float)
        name = "Pearson correlation"
        label = f"{x} ~ {y}"

        if len(pairs) < self.config["min_correlation_n"]:
            raise StatisticalTestError(
                name, label, f"needs at least {self.config['min_correlation_n']} complete pairs, got {len(pairs)}"
            )
        for col in (x, y):
            if pairs[col].nunique() < 2:
                raise StatisticalTestError(name, col, "constant input, correlation is undefined")

        result = stats.pearsonr(pairs[x].to_numpy(), pairs[y].to_numpy())
        ci = result.confidence_interval(confidence_level=1 - self.alpha)

        return TestResult(
            test=name,
            column=label,
            statistic=float(result.statistic),
            p_value=float(result.pvalue),
            n=int(len(pairs)),
            null_hypothesis=f"there is no linear correlation between '{x}' and '{y}'",
            alpha=self.alpha,
            estimate=float(result.statistic),
            conf_int=(float(ci.low), float(ci.high)),
            degrees_of_freedom=float(len(pairs) - 2),
        )

    def t_test(self, df: pd.DataFrame, column: str, group: str, stratify_by: Optional[str] = None) -> ResultOrStrata:
        """Two-sample Student t-test, equal variances assumed."""
        if stratify_by is not None:
            self._check_strata_differ(group, stratify_by)
            return self._stratified(df, stratify_by, lambda part: self.t_test(part, column, group))

        name = "Two-sample t-test"
        (level_a, a), (level_b, b) = self._two_groups(df, column, group)

        for level, values in ((level_a, a), (level_b, b)):
            if len(values) < self.config["min_group_n"]:
                raise StatisticalTestError(
                    name, column, f"needs at least {self.config['min_group_n']} values, got {len(values)}",
                    group=level,
                )
        if np.var(a, ddof=1) == 0 and np.var(b, ddof=1) == 0:
            raise StatisticalTestError(name, column, "zero variance in both groups", group=f"{level_a}/{level_b}")

        result = stats.ttest_ind(a, b, equal_var=True)

        return TestResult(
            test=name,
            column=column,
            statistic=float(result.statistic),
            p_value=float(result.pvalue),
            n=int(len(a) + len(b)),
            null_hypothesis=(
                f"mean '{column}' is the same for {group} = {level_a} and {group} = {level_b}"
            ),
            alpha=self.alpha,
            group_sizes={level_a: int(len(a)), level_b: int(len(b))},
            estimate=float(np.mean(a) - np.mean(b)),
            degrees_of_freedom=float(len(a) + len(b) - 2),
        )

    def rank_sum(self, df: pd.DataFrame, column: str, group: str, stratify_by: Optional[str] = None) -> ResultOrStrata:
        """Wilcoxon rank-sum (Mann-Whitney U), two-sided, no normality assumption."""
        if stratify_by is not None:
            self._check_strata_differ(group, stratify_by)
            return self._stratified(df, stratify_by, lambda part: self.rank_sum(part, column, group))

        name = "Wilcoxon rank-sum test"
        (level_a, a), (level_b, b) = self._two_groups(df, column, group)

        if np.ptp(np.concatenate([a, b])) == 0:
            raise StatisticalTestError(name, column, "all values are identical", group=f"{level_a}/{level_b}")

        result = stats.mannwhitneyu(a, b, alternative="two-sided")

        return TestResult(
            test=name,
            column=column,
            statistic=float(result.statistic),  # W = U of the first group
            p_value=float(result.pvalue),
            n=int(len(a) + len(b)),
            null_hypothesis=(
                f"'{column}' has the same location for {group} = {level_a} and {group} = {level_b}"
            ),
            alpha=self.alpha,
            group_sizes={level_a: int(len(a)), level_b: int(len(b))},
            estimate=float(np.median(a) - np.median(b)),
        )

    # ============================================================
    # HELPERS
    # ============================================================

    @staticmethod
    def _levels(df: pd.DataFrame, column: str) -> List[Any]:
        present = df[column].dropna()
        return sorted(pd.unique(present.astype(object)), key=str)

    def _two_groups(self, df: pd.DataFrame, column: str, group: str) -> List[Tuple[str, np.ndarray]]:
        """Exactly two non-empty groups after dropping nulls in `column` and `group`."""
        data = df[[column, group]].dropna()
        levels = self._levels(data, group)

        if len(levels) != 2:
            raise InsufficientGroupsError(group, levels)

        return [
            (str(level), data.loc[data[group] == level, column].astype(float).to_numpy())
            for level in levels
        ]

    def _stratified(
        self,
        df: pd.DataFrame,
        stratify_by: str,
        run: Callable[[pd.DataFrame], TestResult],
    ) -> Dict[str, TestResult]:
        """Run the same test independently inside each level of `stratify_by`."""
        results = {}
        for level in self._levels(df, stratify_by):
            result = run(df[df[stratify_by] == level])
            result.stratum = f"{stratify_by}={level}"
            results[str(level)] = result
        return results

    @staticmethod
    def _check_strata_differ(group: str, stratify_by: str) -> None:
        if group == stratify_by:
            raise StratificationError(f"Cannot stratify a test on '{group}' by the grouping column itself")


def results_frame(results: List[TestResult]) -> pd.DataFrame:
    """One row per result, in the order given, ready for a report table."""
    rows = []
    for r in results:
        rows.append({
            "variable": r.column,
            "stratum": r.stratum or "all",
            "n": r.n,
            "statistic": r.statistic,
            "p-value": r.p_value,
            "estimate": r.estimate,
            "CI": r.conf_int,
            "H0": r.null_hypothesis,
            "decision": r.decision.value,
        })
    return pd.DataFrame(rows, columns=["variable", "stratum", "n", "statistic", "p-value",
                                       "estimate", "CI", "H0", "decision"])


def flatten_results(result: ResultOrStrata) -> List[TestResult]:
    """TestResult or {level: TestResult} -> list."""
    if isinstance(result, TestResult):
        return [result]
    return list(result.values())
