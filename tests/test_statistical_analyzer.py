"""
Tests for the statistical analyzer
"""

import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from birth_qc.analysis.statistical_analyzer import (
    Decision,
    StatisticalAnalyzer,
    TestResult,
    flatten_results,
    results_frame,
)
from birth_qc.data_quality.anomaly_detector import AnomalyDetector
from birth_qc.data_quality.cleaner import clean_dataset
from birth_qc.data_quality.loader import Column, load_dataset
from birth_qc.errors import BirthQCError, InsufficientGroupsError, StatisticalTestError, StratificationError

DATA = Path(__file__).parent.parent / "data" / "birthweight.csv"

BW = Column.BIRTHWEIGHT.value
GEST = Column.GESTATION.value
GENDER = Column.GENDER.value


def _cleaned():
    df = load_dataset(DATA)
    issues = AnomalyDetector({"multivariate_screen": False}).detect(df).issues
    return clean_dataset(df, issues)


def _two_sites():
    rng = np.random.default_rng(0)
    n = 40
    return pd.DataFrame({
        "value": rng.normal(10, 2, n),
        "other": rng.normal(5, 1, n),
        "group": ["a", "b"] * (n // 2),
        "site": ["north"] * (n // 2) + ["south"] * (n // 2),
    })


# ============================================================
# REFERENCE DATA
# ============================================================

def test_reference_t_test():
    """Birth weight does not differ by gender on the cleaned data."""
    result = StatisticalAnalyzer().t_test(_cleaned(), BW, group=GENDER)

    assert result.decision is Decision.FAIL_TO_REJECT
    assert result.group_sizes == {"Female": 64, "Male": 64}
    assert result.n == 128
    assert result.degrees_of_freedom == 126


def test_reference_rank_sum():
    result = StatisticalAnalyzer().rank_sum(_cleaned(), GEST, group=GENDER)

    assert result.decision is Decision.FAIL_TO_REJECT
    assert result.group_sizes == {"Female": 64, "Male": 66}
    assert result.n == 130


def test_reference_correlation():
    result = StatisticalAnalyzer().correlation(_cleaned(), GEST, BW)

    assert result.column == f"{GEST} ~ {BW}"
    assert result.estimate > 0.5
    assert result.decision is Decision.REJECT
    low, high = result.conf_int
    assert low < result.estimate < high
    # pairs with either value missing are dropped
    assert result.n == 129


def test_reference_normality_stratified():
    results = StatisticalAnalyzer().normality(_cleaned(), BW, stratify_by=GENDER)

    assert set(results) == {"Female", "Male"}
    assert results["Male"].stratum == f"{GENDER}=Male"
    assert results["Female"].n == 64
    for r in results.values():
        assert 0 < r.statistic <= 1
        assert 0 <= r.p_value <= 1


def test_describe_uses_available_data():
    desc = StatisticalAnalyzer().describe(_cleaned(), [BW, GEST]).set_index("variable")

    assert desc.loc[BW, "n"] == 131
    assert desc.loc[BW, "missing"] == 4
    assert desc.loc[GEST, "n"] == 133


def test_describe_by_group():
    desc = StatisticalAnalyzer().describe(_cleaned(), [BW], by=GENDER)

    assert desc[GENDER].tolist() == ["Female", "Male"]
    assert desc["n"].tolist() == [64, 64]


# ============================================================
# PRECONDITIONS
# ============================================================

def test_one_group_raises():
    df = pd.DataFrame({"value": [1.0, 2.0, 3.0], "group": ["a", "a", None]})
    with pytest.raises(InsufficientGroupsError) as excinfo:
        StatisticalAnalyzer().t_test(df, "value", group="group")
    assert excinfo.value.levels == ["a"]


def test_three_groups_raise():
    df = pd.DataFrame({"value": [1.0, 2.0, 3.0, 4.0], "group": ["a", "b", "c", "a"]})
    with pytest.raises(InsufficientGroupsError):
        StatisticalAnalyzer().rank_sum(df, "value", group="group")


def test_group_loses_all_values_after_dropping_nulls():
    df = pd.DataFrame({"value": [1.0, 2.0, None, None], "group": ["a", "a", "b", "b"]})
    with pytest.raises(InsufficientGroupsError):
        StatisticalAnalyzer().t_test(df, "value", group="group")


def test_tiny_group_raises():
    df = pd.DataFrame({"value": [1.0, 2.0, 3.0], "group": ["a", "a", "b"]})
    with pytest.raises(StatisticalTestError) as excinfo:
        StatisticalAnalyzer().t_test(df, "value", group="group")
    assert excinfo.value.group == "b"


def test_zero_variance_raises():
    df = pd.DataFrame({"value": [5.0, 5.0, 7.0, 7.0], "group": ["a", "a", "b", "b"]})
    with pytest.raises(StatisticalTestError, match="zero variance"):
        StatisticalAnalyzer().t_test(df, "value", group="group")


def test_constant_rank_sum_raises():
    df = pd.DataFrame({"value": [5.0] * 4, "group": ["a", "a", "b", "b"]})
    with pytest.raises(StatisticalTestError):
        StatisticalAnalyzer().rank_sum(df, "value", group="group")


def test_normality_needs_three_values():
    df = pd.DataFrame({"value": [1.0, 2.0, None]})
    with pytest.raises(StatisticalTestError, match="at least 3"):
        StatisticalAnalyzer().normality(df, "value")


def test_normality_constant_raises():
    df = pd.DataFrame({"value": [4.0] * 10})
    with pytest.raises(StatisticalTestError):
        StatisticalAnalyzer().normality(df, "value")


def test_correlation_constant_raises():
    df = pd.DataFrame({"x": [1.0] * 6, "y": [1.0, 2.0, 3.0, 4.0, 5.0, 6.0]})
    with pytest.raises(StatisticalTestError, match="constant"):
        StatisticalAnalyzer().correlation(df, "x", "y")


def test_stratify_by_grouping_column_raises():
    with pytest.raises(StratificationError) as excinfo:
        StatisticalAnalyzer().t_test(_two_sites(), "value", group="group", stratify_by="group")
    assert isinstance(excinfo.value, BirthQCError)

    with pytest.raises(StratificationError):
        StatisticalAnalyzer().rank_sum(_two_sites(), "value", group="site", stratify_by="site")


# ============================================================
# STRATIFICATION / RESULTS
# ============================================================

def test_stratified_t_test():
    results = StatisticalAnalyzer().t_test(_two_sites(), "value", group="group", stratify_by="site")

    assert set(results) == {"north", "south"}
    assert results["north"].n == 20
    assert results["south"].stratum == "site=south"


def test_stratified_correlation():
    results = StatisticalAnalyzer().correlation(_two_sites(), "value", "other", stratify_by="site")
    assert [r.n for r in flatten_results(results)] == [20, 20]


def test_alpha_from_config():
    df = _two_sites()
    narrow = StatisticalAnalyzer({"alpha": 0.2}).correlation(df, "value", "other")
    wide = StatisticalAnalyzer({"alpha": 0.01}).correlation(df, "value", "other")

    assert narrow.alpha == 0.2
    assert (narrow.conf_int[1] - narrow.conf_int[0]) < (wide.conf_int[1] - wide.conf_int[0])


def test_decision_boundary():
    """p exactly at alpha is not a rejection."""
    at = TestResult("t", "x", 1.0, 0.05, 10, "H0", alpha=0.05)
    below = TestResult("t", "x", 1.0, 0.049, 10, "H0", alpha=0.05)

    assert at.decision is Decision.FAIL_TO_REJECT
    assert below.decision is Decision.REJECT
    assert below.to_dict()["decision"] == "reject"


def test_results_frame():
    cleaned = _cleaned()
    analyzer = StatisticalAnalyzer()
    results = [analyzer.t_test(cleaned, BW, group=GENDER)]
    results += flatten_results(analyzer.normality(cleaned, GEST, stratify_by=GENDER))

    frame = results_frame(results)
    assert frame["stratum"].tolist() == ["all", f"{GENDER}=Female", f"{GENDER}=Male"]
    assert set(frame["decision"]) <= {"reject", "fail to reject"}


if __name__ == "__main__":
    print("Running tests...")
    test_reference_t_test()
    print(" test_reference_t_test passed")

    test_reference_rank_sum()
    print(" test_reference_rank_sum passed")

    test_reference_correlation()
    print(" test_reference_correlation passed")

    print("\nAll tests passed!")
