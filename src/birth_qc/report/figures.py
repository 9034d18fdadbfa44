"""
Figure builders for the QC report.

Each function takes plain tables and returns a matplotlib Figure; saving and
numbering is the ReportBuilder's job.
"""

from typing import List, Optional

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from matplotlib.colors import ListedColormap
from matplotlib.patches import Patch, Rectangle
from scipy.stats import probplot
from statsmodels.nonparametric.smoothers_lowess import lowess

from ..data_quality.missingness import CellStatus


STATUS_COLORS = {
    CellStatus.NOT_MISSING: "#d9d9d9",
    CellStatus.MISSING: "#4c72b0",
    CellStatus.INVALID: "#c44e52",
}


def plot_missingness_matrix(matrix: pd.DataFrame) -> plt.Figure:
    """Tile grid: one row per record, one column per variable, colored by status."""
    order = list(CellStatus)
    codes = matrix.apply(lambda col: col.map(order.index)).astype(int)

    fig, ax = plt.subplots(figsize=(6, 9))
    sns.heatmap(
        codes,
        ax=ax,
        cmap=ListedColormap([STATUS_COLORS[s] for s in order]),
        vmin=-0.5,
        vmax=len(order) - 0.5,
        cbar=False,
        yticklabels=max(1, len(codes) // 15),
    )
    ax.set_xlabel("variable")
    ax.set_ylabel("id")
    ax.legend(
        handles=[Patch(color=STATUS_COLORS[s], label=s.value) for s in order],
        loc="upper center",
        bbox_to_anchor=(0.5, -0.08),
        ncol=len(order),
        frameon=False,
    )
    fig.tight_layout()
    return fig


def plot_qq(df: pd.DataFrame, column: str, facet_by: Optional[str] = None) -> plt.Figure:
    """Normal Q-Q plot of `column`, one panel per level of `facet_by`."""
    if facet_by is None:
        panels = [(column, df[column])]
    else:
        levels = sorted(df[facet_by].dropna().astype(object).unique(), key=str)
        panels = [(f"{facet_by} = {level}", df.loc[df[facet_by] == level, column]) for level in levels]

    fig, axes = plt.subplots(1, len(panels), figsize=(4.5 * len(panels), 4), squeeze=False)
    for ax, (title, values) in zip(axes[0], panels):
        probplot(values.dropna().astype(float), dist="norm", plot=ax)
        ax.set_title(title)
        ax.set_xlabel("theoretical quantiles")
        ax.set_ylabel(f"sample quantiles ({column})")

    fig.tight_layout()
    return fig


def plot_scatter_trend(
    df: pd.DataFrame,
    x: str,
    y: str,
    hue: Optional[str] = None,
    frac: float = 2 / 3,
) -> plt.Figure:
    """Scatter of y against x with a LOWESS trend over all complete pairs."""
    pairs = df[[x, y] + ([hue] if hue else [])].dropna(subset=[x, y])

    fig, ax = plt.subplots(figsize=(6, 4.5))
    sns.scatterplot(data=pairs, x=x, y=y, hue=hue, ax=ax, s=20)

    smoothed = lowess(pairs[y].astype(float), pairs[x].astype(float), frac=frac)
    ax.plot(smoothed[:, 0], smoothed[:, 1], color="black", linewidth=1.5, label="LOWESS")
    ax.legend(frameon=False)

    fig.tight_layout()
    return fig


def plot_treemap(
    table: pd.DataFrame,
    column: str,
    by: str,
    aggregate_label: str = "both",
) -> plt.Figure:
    """
    Hierarchical area chart (slice-and-dice treemap).

    Level 1 splits the width by `column`, level 2 splits each slice's height
    by `by`. Areas are proportional to counts.
    """
    data = table[table[by] != aggregate_label]
    total = data["count"].sum()

    levels: List = list(dict.fromkeys(data[column]))
    strata: List = list(dict.fromkeys(data[by]))
    palette = dict(zip(strata, sns.color_palette("Set2", len(strata))))

    fig, ax = plt.subplots(figsize=(7, 5))
    x0 = 0.0
    for level in levels:
        block = data[data[column] == level]
        level_count = block["count"].sum()
        width = level_count / total if total else 0.0

        y0 = 0.0
        for _, row in block.iterrows():
            height = row["count"] / level_count if level_count else 0.0
            if height > 0:
                ax.add_patch(Rectangle((x0, y0), width, height,
                                       facecolor=palette[row[by]], edgecolor="white", linewidth=2))
                ax.text(x0 + width / 2, y0 + height / 2,
                        f"{row[by]}\n{row['count']} ({row['count'] / total:.0%})",
                        ha="center", va="center", fontsize=9)
            y0 += height

        # outer frame + level label
        ax.add_patch(Rectangle((x0, 0), width, 1, fill=False, edgecolor="black", linewidth=2))
        ax.text(x0 + width / 2, 1.02, f"{level} ({level_count})", ha="center", va="bottom", fontweight="bold")
        x0 += width

    ax.set_xlim(0, 1)
    ax.set_ylim(0, 1.08)
    ax.axis("off")
    fig.tight_layout()
    return fig
