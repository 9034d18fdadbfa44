"""
Analysis Package

Hypothesis tests on the cleaned data and the threshold recode with its
frequency tables.
"""

from .statistical_analyzer import (
    StatisticalAnalyzer,
    TestResult,
    Decision,
    results_frame,
    flatten_results
)

from .recoder import (
    recode_by_threshold,
    frequency_table,
    stratified_frequency_table,
    empty_groups
)

__all__ = [
    'StatisticalAnalyzer',
    'TestResult',
    'Decision',
    'results_frame',
    'flatten_results',
    'recode_by_threshold',
    'frequency_table',
    'stratified_frequency_table',
    'empty_groups'
]
