"""
Data Loader

Reads the birth-weight CSV into a DataFrame with a fixed schema:
normalized column names, numeric measurement columns, and a positional
record id that every later stage uses to address cells.
"""

import re
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Union

import pandas as pd

from ..errors import LoadError


#---------0---------------------------
#SCHEMA
class Column(str, Enum):
    """Canonical column names after header normalization."""
    ID = "id"                               # positional, assigned here
    NEW_ID = "new_id"                       # identifier token from the file
    BIRTHWEIGHT = "birthweight"             # grams
    GESTATION = "length_of_gestation"       # weeks
    GENDER = "gender"                       # "Male" / "Female"


# columns the file itself has to provide
RAW_COLUMNS: List[str] = [
    Column.NEW_ID.value,
    Column.BIRTHWEIGHT.value,
    Column.GESTATION.value,
    Column.GENDER.value,
]

NUMERIC_COLUMNS: List[str] = [Column.BIRTHWEIGHT.value, Column.GESTATION.value]

# everything but the id we add ourselves
DATA_COLUMNS: List[str] = list(RAW_COLUMNS)

SCHEMA_ORDER: List[str] = [Column.ID.value] + RAW_COLUMNS
#---------0---------------------------


DEFAULT_LOADER_CONFIG: Dict = {
    "missing_indicators": ['?', '', ' ', 'NA', 'N/A', 'null', 'NULL', 'None'],
    "delimiter": ",",
    "encoding": "utf-8",
}


def normalize_column_name(name: str) -> str:
    """'Length of Gestation ' -> 'length_of_gestation'."""
    name = str(name).strip().lower()
    name = re.sub(r"[^0-9a-z]+", "_", name)
    return name.strip("_")


def _check_columns(columns: List[str]) -> None:
    missing = [c for c in RAW_COLUMNS if c not in columns]
    unexpected = [c for c in columns if c not in RAW_COLUMNS]
    duplicated = sorted({c for c in columns if columns.count(c) > 1})

    if missing or unexpected or duplicated:
        problems = []
        if missing:
            problems.append(f"missing {missing}")
        if unexpected:
            problems.append(f"unexpected {unexpected}")
        if duplicated:
            problems.append(f"duplicated after normalization {duplicated}")
        raise LoadError(
            f"Column mismatch ({'; '.join(problems)}); expected {RAW_COLUMNS}"
        )


def prepare_dataset(raw: pd.DataFrame) -> pd.DataFrame:
    """
    Apply the schema to an already-parsed table.

    Args:
        raw: table with the four raw columns (any header spelling)

    Returns:
        DataFrame in schema order with a fresh 1..N `id` column
    """
    df = raw.copy()
    df.columns = [normalize_column_name(c) for c in df.columns]
    _check_columns(list(df.columns))

    # measurement columns must be numeric; anything else is a broken file
    for col in NUMERIC_COLUMNS:
        converted = pd.to_numeric(df[col], errors="coerce")
        bad_mask = converted.isna() & df[col].notna()
        if bad_mask.any():
            row = int(bad_mask.to_numpy().nonzero()[0][0]) + 1
            raise LoadError(
                f"Column '{col}' has non-numeric value {df[col][bad_mask].iloc[0]!r} "
                f"at data row {row}"
            )
        df[col] = converted.astype(float)

    # identifier and gender stay raw strings, the detector judges them
    for col in (Column.NEW_ID.value, Column.GENDER.value):
        df[col] = df[col].map(lambda v: None if pd.isna(v) else str(v).strip()).astype(object)

    df = df.reset_index(drop=True)
    df.insert(0, Column.ID.value, range(1, len(df) + 1))

    return df[SCHEMA_ORDER]


def load_dataset(path: Union[str, Path], config: Optional[Dict] = None) -> pd.DataFrame:
    """
    Read a delimited file into the canonical Dataset.

    Raises:
        LoadError: file missing, unreadable, empty, or columns do not match
    """
    cfg = dict(DEFAULT_LOADER_CONFIG)
    if config:
        cfg.update(config)

    path = Path(path)
    if not path.is_file():
        raise LoadError(f"Input file not found: {path}")

    try:
        with open(path, "r", encoding=cfg["encoding"], newline="") as handle:
            raw = pd.read_csv(
                handle,
                sep=cfg["delimiter"],
                dtype=str,  # keep tokens as written, numeric conversion happens in prepare_dataset
                na_values=cfg["missing_indicators"],
                keep_default_na=True,
                skipinitialspace=True,
            )
    except (OSError, UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise LoadError(f"Could not read {path}: {e}") from e

    if len(raw) == 0:
        raise LoadError(f"Input file has a header but no rows: {path}")

    return prepare_dataset(raw)
