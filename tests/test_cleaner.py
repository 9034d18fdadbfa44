"""
Tests for the cleaner
"""

import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from birth_qc.data_quality.anomaly_detector import AnomalyDetector, Issue, IssueLabel
from birth_qc.data_quality.cleaner import clean_dataset, cleaning_log
from birth_qc.data_quality.loader import Column, load_dataset
from birth_qc.errors import CleaningError

DATA = Path(__file__).parent.parent / "data" / "birthweight.csv"


def _reference():
    df = load_dataset(DATA)
    issues = AnomalyDetector({"multivariate_screen": False}).detect(df).issues
    return df, issues


def test_flagged_cells_become_missing():
    df, issues = _reference()
    cleaned = clean_dataset(df, issues)
    lookup = cleaned.set_index(Column.ID.value)

    for issue in issues:
        assert pd.isna(lookup.at[issue.record_id, issue.column])


def test_other_cells_untouched():
    df, issues = _reference()
    cleaned = clean_dataset(df, issues)

    flagged = {(i.record_id, i.column) for i in issues}
    for col in df.columns:
        for record_id, before, after in zip(df[Column.ID.value], df[col], cleaned[col]):
            if (record_id, col) in flagged:
                continue
            if pd.isna(before):
                assert pd.isna(after)
            else:
                assert before == after


def test_shape_and_rows_kept():
    df, issues = _reference()
    cleaned = clean_dataset(df, issues)

    assert cleaned.shape == df.shape
    assert cleaned[Column.ID.value].tolist() == df[Column.ID.value].tolist()


def test_input_not_mutated():
    df, issues = _reference()
    before = df.copy()
    clean_dataset(df, issues)

    pd.testing.assert_frame_equal(df, before)


def test_idempotent():
    df, issues = _reference()
    once = clean_dataset(df, issues)
    twice = clean_dataset(once, issues)

    pd.testing.assert_frame_equal(once, twice)


def test_no_issues_is_a_copy():
    df, _ = _reference()
    cleaned = clean_dataset(df, [])

    pd.testing.assert_frame_equal(cleaned, df)
    assert cleaned is not df


def test_unknown_record_raises():
    df, _ = _reference()
    with pytest.raises(CleaningError, match="999"):
        clean_dataset(df, [Issue(999, Column.BIRTHWEIGHT.value, IssueLabel.BIRTHWEIGHT_TOO_LARGE)])


def test_unknown_column_raises():
    df, _ = _reference()
    with pytest.raises(CleaningError):
        clean_dataset(df, [Issue(1, "apgar", "wrong apgar")])


def test_id_column_cannot_be_cleaned():
    df, _ = _reference()
    with pytest.raises(CleaningError):
        clean_dataset(df, [Issue(1, Column.ID.value, IssueLabel.WRONG_ID)])


def test_cleaning_log():
    df, issues = _reference()
    log = cleaning_log(df, issues)

    assert list(log.columns) == ["id", "column", "issue", "original value"]
    assert log["id"].tolist() == sorted(log["id"].tolist())
    row = log[log["id"] == 69].iloc[0]
    assert row["issue"] == IssueLabel.BIRTHWEIGHT_TOO_LARGE
    assert np.isclose(row["original value"], 45200)


if __name__ == "__main__":
    print("Running tests...")
    test_flagged_cells_become_missing()
    print(" test_flagged_cells_become_missing passed")

    test_idempotent()
    print(" test_idempotent passed")

    test_input_not_mutated()
    print(" test_input_not_mutated passed")

    print("\nAll tests passed!")
