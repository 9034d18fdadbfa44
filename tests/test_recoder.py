"""
Tests for the recoder / frequency tables
"""

import sys
import warnings
from pathlib import Path

import pandas as pd
import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from birth_qc.analysis.recoder import (
    empty_groups,
    frequency_table,
    recode_by_threshold,
    stratified_frequency_table,
)
from birth_qc.data_quality.anomaly_detector import AnomalyDetector
from birth_qc.data_quality.cleaner import clean_dataset
from birth_qc.data_quality.loader import Column, load_dataset
from birth_qc.errors import EmptyGroupError, EmptyGroupWarning

DATA = Path(__file__).parent.parent / "data" / "birthweight.csv"

GEST = Column.GESTATION.value
GENDER = Column.GENDER.value


def _recoded_reference():
    df = load_dataset(DATA)
    issues = AnomalyDetector({"multivariate_screen": False}).detect(df).issues
    return recode_by_threshold(clean_dataset(df, issues), GEST, 37)


def test_threshold_is_strict():
    """36.9 is pre-term, 37 is to term."""
    df = pd.DataFrame({GEST: [36.9, 37.0, 41.0, None]})
    out = recode_by_threshold(df, GEST, 37)

    assert out["term"].tolist()[:3] == ["pre-term", "to term", "to term"]
    assert pd.isna(out["term"].iloc[3])
    assert list(out["term"].cat.categories) == ["pre-term", "to term"]


def test_recode_does_not_mutate():
    df = pd.DataFrame({GEST: [30.0, 40.0]})
    recode_by_threshold(df, GEST, 37)
    assert list(df.columns) == [GEST]


def test_custom_labels():
    df = pd.DataFrame({"weight": [2000.0, 3000.0]})
    out = recode_by_threshold(df, "weight", 2500, below_label="low", above_label="normal", new_column="lbw")
    assert out["lbw"].tolist() == ["low", "normal"]


def test_unknown_column_raises():
    with pytest.raises(KeyError):
        recode_by_threshold(pd.DataFrame({"a": [1]}), GEST, 37)


def test_frequency_table_keeps_zero_category():
    df = recode_by_threshold(pd.DataFrame({GEST: [38.0, 40.0]}), GEST, 37)
    table = frequency_table(df, "term")

    assert table["term"].tolist() == ["pre-term", "to term"]
    assert table["count"].tolist() == [0, 2]
    assert table["proportion"].tolist() == [0.0, 1.0]


def test_reference_term_table():
    """Null gestations are left out of both buckets."""
    table = frequency_table(_recoded_reference(), "term")
    assert table["count"].sum() == 133


def test_reference_strata_sum_to_aggregate():
    table = stratified_frequency_table(_recoded_reference(), "term", GENDER)

    assert set(table[GENDER]) == {"Female", "Male", "both"}
    for level, block in table.groupby("term", observed=True):
        strata = block[block[GENDER] != "both"]["count"].sum()
        both = block[block[GENDER] == "both"]["count"].iloc[0]
        assert strata == both

    assert table[table[GENDER] == "both"]["count"].sum() == 130
    assert abs(table[table[GENDER] != "both"]["proportion"].sum() - 1.0) < 1e-12


def test_empty_combination_warns_and_keeps_zero_row():
    df = recode_by_threshold(
        pd.DataFrame({GEST: [30.0, 31.0, 40.0], GENDER: ["Male", "Male", "Female"]}), GEST, 37
    )
    with pytest.warns(EmptyGroupWarning):
        table = stratified_frequency_table(df, "term", GENDER)

    empty = empty_groups(table)
    assert len(empty) == 2
    assert set(zip(empty["term"], empty[GENDER])) == {("pre-term", "Female"), ("to term", "Male")}


def test_empty_combination_strict_raises():
    df = recode_by_threshold(
        pd.DataFrame({GEST: [30.0, 40.0, 41.0], GENDER: ["Male", "Male", "Female"]}), GEST, 37
    )
    with pytest.raises(EmptyGroupError) as excinfo:
        stratified_frequency_table(df, "term", GENDER, strict=True)
    assert excinfo.value.combinations == [("pre-term", "Female")]


def test_no_warning_when_all_combinations_present():
    df = recode_by_threshold(
        pd.DataFrame({GEST: [30.0, 31.0, 40.0, 41.0], GENDER: ["Male", "Female"] * 2}), GEST, 37
    )
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        table = stratified_frequency_table(df, "term", GENDER)
    assert empty_groups(table).empty


def test_all_null_strata_warns():
    """No stratum at all is an empty split, not a silent table of zeros."""
    df = pd.DataFrame({"term": ["a", "b"], "group": [None, None]})
    with pytest.warns(EmptyGroupWarning):
        table = stratified_frequency_table(df, "term", "group")

    assert table["group"].tolist() == ["both", "both"]
    assert table["count"].tolist() == [0, 0]


def test_all_null_strata_strict_raises():
    df = pd.DataFrame({"term": ["a", "b"], "group": [None, None]})
    with pytest.raises(EmptyGroupError) as excinfo:
        stratified_frequency_table(df, "term", "group", strict=True)
    assert excinfo.value.combinations == [("a", None), ("b", None)]


def test_aggregate_label_collision_raises():
    df = pd.DataFrame({"term": ["a", "b"], "group": ["both", "x"]})
    with pytest.raises(ValueError, match="collides"):
        stratified_frequency_table(df, "term", "group")


if __name__ == "__main__":
    print("Running tests...")
    test_threshold_is_strict()
    print(" test_threshold_is_strict passed")

    test_reference_strata_sum_to_aggregate()
    print(" test_reference_strata_sum_to_aggregate passed")

    test_empty_combination_strict_raises()
    print(" test_empty_combination_strict_raises passed")

    print("\nAll tests passed!")
