"""
Recoder / Summarizer

Derives a two-level category from a numeric threshold (e.g. pre-term vs to
term from gestation length) and tabulates it, overall and by a second
category.
"""

import warnings
from typing import List, Optional

import numpy as np
import pandas as pd

from ..errors import EmptyGroupError, EmptyGroupWarning


def recode_by_threshold(
    df: pd.DataFrame,
    column: str,
    threshold: float,
    below_label: str = "pre-term",
    above_label: str = "to term",
    new_column: str = "term",
) -> pd.DataFrame:
    """
    Add `new_column`: `below_label` where value < threshold, else `above_label`.

    Missing values stay missing, they are not put in either bucket.

    Returns:
        copy of df with the new ordered categorical column
    """
    if column not in df.columns:
        raise KeyError(f"Column '{column}' not found. Available columns: {df.columns.tolist()}")

    out = df.copy()
    values = pd.to_numeric(out[column], errors="coerce")

    labels = np.where(values < threshold, below_label, above_label).astype(object)
    labels[values.isna().to_numpy()] = None

    out[new_column] = pd.Categorical(labels, categories=[below_label, above_label], ordered=True)
    return out


def _categories(series: pd.Series) -> List:
    # keep declared categories so a zero-count level still gets a row
    if isinstance(series.dtype, pd.CategoricalDtype):
        return list(series.cat.categories)
    return sorted(series.dropna().unique().tolist(), key=str)


def frequency_table(df: pd.DataFrame, column: str) -> pd.DataFrame:
    """Count and proportion per category (nulls excluded, zero categories kept)."""
    values = df[column].dropna()
    categories = _categories(df[column])

    counts = values.astype(object).value_counts().reindex(categories, fill_value=0)
    total = int(counts.sum())

    table = pd.DataFrame({
        column: categories,
        "count": counts.astype(int).to_numpy(),
    })
    table["proportion"] = table["count"] / total if total else 0.0
    return table


def stratified_frequency_table(
    df: pd.DataFrame,
    column: str,
    by: str,
    aggregate_label: str = "both",
    strict: bool = False,
) -> pd.DataFrame:
    """
    Counts per (column level x by level), plus one aggregate row per column level.

    The table is rectangular: a combination with no members gets a 0 row and
    an EmptyGroupWarning (EmptyGroupError with strict=True). Only records with
    both values present are counted, so the strata always sum to the
    aggregate row.

    Returns:
        long DataFrame [column, by, count, proportion]; proportion is of all
        counted records
    """
    data = df[[column, by]].dropna()
    levels = _categories(df[column])
    strata = _categories(df[by])

    if aggregate_label in [str(s) for s in strata]:
        raise ValueError(f"Aggregate label '{aggregate_label}' collides with a level of '{by}'")

    if levels and strata:
        counts = (
            data.astype(object)
            .groupby([column, by])
            .size()
            .reindex(pd.MultiIndex.from_product([levels, strata], names=[column, by]), fill_value=0)
        )
        empty = [combo for combo, n in counts.items() if n == 0]
    else:
        # one side is all null: nothing can be split, every level is empty
        counts = pd.Series(dtype=int)
        empty = [(level, stratum) for level in (levels or [None]) for stratum in (strata or [None])]

    if empty:
        if strict:
            raise EmptyGroupError(empty)
        warnings.warn(
            f"{len(empty)} empty combination(s) of '{column}' x '{by}' kept as zero counts: {empty}",
            EmptyGroupWarning,
        )

    rows = []
    for level in levels:
        for stratum in strata:
            rows.append({column: level, by: stratum, "count": int(counts[(level, stratum)])})
        rows.append({column: level, by: aggregate_label,
                     "count": int(sum(counts[(level, s)] for s in strata))})

    table = pd.DataFrame(rows, columns=[column, by, "count"])
    total = int(counts.sum())
    table["proportion"] = table["count"] / total if total else 0.0
    return table


def empty_groups(table: pd.DataFrame) -> pd.DataFrame:
    """Rows of a frequency table with a zero count."""
    return table[table["count"] == 0]
