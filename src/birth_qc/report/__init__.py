"""
Report Package

Numbered tables/figures and their Markdown/JSON export.
"""

import matplotlib

matplotlib.use("Agg")  # files only, no display

from .builder import ReportBuilder, format_number, markdown_table
from .figures import plot_missingness_matrix, plot_qq, plot_scatter_trend, plot_treemap

__all__ = [
    'ReportBuilder',
    'format_number',
    'markdown_table',
    'plot_missingness_matrix',
    'plot_qq',
    'plot_scatter_trend',
    'plot_treemap'
]
