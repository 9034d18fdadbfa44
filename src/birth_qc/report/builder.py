"""
Report builder for the QC report.

Collects numbered tables and figures and writes them out as Markdown (plus a
JSON dump of the raw results). Numbering lives on the builder instance.
"""

import json
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd


def format_number(value: Any, precision: int = 3) -> str:
    """Significant-digit formatting for table cells; 3215.44 -> '3220'."""
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, (tuple, list)):
        return "[" + ", ".join(format_number(v, precision) for v in value) + "]"
    if value is None:
        return "NA"
    if isinstance(value, (bool, np.bool_)):
        return str(bool(value))
    if isinstance(value, (int, np.integer)):
        return str(int(value))
    if isinstance(value, (float, np.floating)):
        if np.isnan(value):
            return "NA"
        rounded = float(f"{value:.{precision}g}")
        if rounded.is_integer() and abs(rounded) >= 1:
            return str(int(rounded))
        return f"{rounded:g}"
    if pd.isna(value):
        return "NA"
    return str(value)


def markdown_table(frame: pd.DataFrame, precision: int = 3) -> List[str]:
    """DataFrame -> markdown table lines."""
    header = [str(c) for c in frame.columns]
    lines = [
        "| " + " | ".join(header) + " |",
        "|" + "|".join("---" for _ in header) + "|",
    ]
    for row in frame.itertuples(index=False):
        cells = [format_number(v, precision).replace("|", "\\|") for v in row]
        lines.append("| " + " | ".join(cells) + " |")
    return lines


class ReportBuilder:
    """
    Accumulates the report body.

    Usage:
        report = ReportBuilder("reports")
        report.add_table(summary_df, "Summary statistics")      # Table 1
        report.add_figure(fig, "Missing data", "missingness")    # Figure 1
        report.write_markdown()
    """

    def __init__(self, output_dir: Union[str, Path], title: str = "Birth Weight Data QC Report", precision: int = 3):
        self.output_dir = Path(output_dir)
        self.figure_dir = self.output_dir / "figures"
        self.figure_dir.mkdir(parents=True, exist_ok=True)

        self.title = title
        self.precision = precision

        # explicit counters, one per artifact kind
        self.figure_number = 0
        self.table_number = 0

        self.lines: List[str] = []
        self.figures: List[Path] = []

    def add_heading(self, text: str, level: int = 2) -> None:
        self.lines.append(f"{'#' * level} {text}")
        self.lines.append("")

    def add_text(self, text: str) -> None:
        self.lines.append(text)
        self.lines.append("")

    def add_bullets(self, items: List[str]) -> None:
        for item in items:
            self.lines.append(f"- {item}")
        self.lines.append("")

    def add_table(self, frame: pd.DataFrame, caption: str) -> int:
        """Append a numbered table; returns its number."""
        self.table_number += 1
        self.lines.append(f"**Table {self.table_number}:** {caption}")
        self.lines.append("")
        self.lines.extend(markdown_table(frame, self.precision))
        self.lines.append("")
        return self.table_number

    def add_figure(self, fig: plt.Figure, caption: str, name: str) -> Path:
        """Save and close a figure, reference it with the next number."""
        self.figure_number += 1
        path = self.figure_dir / f"figure_{self.figure_number:02d}_{name}.png"
        fig.savefig(path, dpi=120, bbox_inches="tight")
        plt.close(fig)

        self.figures.append(path)
        rel = path.relative_to(self.output_dir).as_posix()
        self.lines.append(f"![Figure {self.figure_number}]({rel})")
        self.lines.append("")
        self.lines.append(f"*Figure {self.figure_number}: {caption}*")
        self.lines.append("")
        return path

    def render(self) -> str:
        header = [
            f"# {self.title}",
            "",
            f"**Generated:** {datetime.now().isoformat(timespec='seconds')}",
            "",
        ]
        return "\n".join(header + self.lines)

    def write_markdown(self, filename: str = "report.md") -> Path:
        path = self.output_dir / filename
        with open(path, "w", encoding="utf-8") as f:
            f.write(self.render())
        return path

    def export_json(self, payload: Dict[str, Any], filename: str = "results.json") -> Path:
        """Dump raw results (numpy scalars and enums made JSON-safe)."""
        path = self.output_dir / filename
        with open(path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, default=_json_default)
        return path


def _json_default(value: Any) -> Optional[Any]:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, np.integer):
        return int(value)
    if isinstance(value, np.floating):
        return None if np.isnan(value) else float(value)
    if isinstance(value, np.bool_):
        return bool(value)
    if isinstance(value, (Path, datetime)):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
