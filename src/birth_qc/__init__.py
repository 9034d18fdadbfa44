"""
birth_qc - data quality control and exploratory statistics for a
birth-weight / gestation-length dataset.
"""

from .errors import (
    BirthQCError,
    LoadError,
    CleaningError,
    InsufficientGroupsError,
    EmptyGroupError,
    EmptyGroupWarning,
    StatisticalTestError,
    StratificationError,
    PipelineError
)

from .data_quality import (
    Column,
    load_dataset,
    AnomalyDetector,
    Issue,
    IssueLabel,
    detect_issues,
    build_status_matrix,
    assess_missingness,
    clean_dataset
)

from .analysis import (
    StatisticalAnalyzer,
    TestResult,
    recode_by_threshold,
    frequency_table,
    stratified_frequency_table
)

__version__ = "0.1.0"

__all__ = [
    'BirthQCError',
    'LoadError',
    'CleaningError',
    'InsufficientGroupsError',
    'EmptyGroupError',
    'EmptyGroupWarning',
    'StatisticalTestError',
    'StratificationError',
    'PipelineError',
    'Column',
    'load_dataset',
    'AnomalyDetector',
    'Issue',
    'IssueLabel',
    'detect_issues',
    'build_status_matrix',
    'assess_missingness',
    'clean_dataset',
    'StatisticalAnalyzer',
    'TestResult',
    'recode_by_threshold',
    'frequency_table',
    'stratified_frequency_table'
]
