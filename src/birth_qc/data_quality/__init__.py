"""
Data Quality Package

Loading, rule-based anomaly detection, missingness reporting and cleaning
of the raw birth-weight dataset.
"""

from .loader import (
    Column,
    RAW_COLUMNS,
    DATA_COLUMNS,
    NUMERIC_COLUMNS,
    load_dataset,
    prepare_dataset,
    normalize_column_name
)

from .anomaly_detector import (
    AnomalyDetector,
    DetectionReport,
    Issue,
    IssueLabel,
    PlausibleRange,
    RangeCandidate,
    detect_issues,
    identifier_diagnostics,
    percentile_bounds
)

from .missingness import (
    CellStatus,
    MissingMechanism,
    MissingnessAssessment,
    assess_missingness,
    build_status_matrix,
    status_matrix_long
)

from .cleaner import (
    clean_dataset,
    cleaning_log
)

__all__ = [
    'Column',
    'RAW_COLUMNS',
    'DATA_COLUMNS',
    'NUMERIC_COLUMNS',
    'load_dataset',
    'prepare_dataset',
    'normalize_column_name',
    'AnomalyDetector',
    'DetectionReport',
    'Issue',
    'IssueLabel',
    'PlausibleRange',
    'RangeCandidate',
    'detect_issues',
    'identifier_diagnostics',
    'percentile_bounds',
    'CellStatus',
    'MissingMechanism',
    'MissingnessAssessment',
    'assess_missingness',
    'build_status_matrix',
    'status_matrix_long',
    'clean_dataset',
    'cleaning_log'
]
