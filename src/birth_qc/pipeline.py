"""
Birth weight QC report, end to end.

    Loader -> Anomaly Detector -> Missingness Reporter -> Cleaner
           -> Statistical Analyzer -> Recoder -> report files

Run:
    python -m birth_qc.pipeline path/to/data.csv [output_dir]
"""

import sys
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd

from .analysis.recoder import frequency_table, recode_by_threshold, stratified_frequency_table
from .analysis.statistical_analyzer import (
    StatisticalAnalyzer,
    TestResult,
    flatten_results,
    results_frame,
)
from .data_quality.anomaly_detector import AnomalyDetector, DetectionReport
from .data_quality.cleaner import clean_dataset, cleaning_log
from .data_quality.loader import Column, load_dataset
from .data_quality.missingness import MissingnessAssessment, assess_missingness, build_status_matrix
from .errors import PipelineError
from .report.builder import ReportBuilder
from .report.figures import plot_missingness_matrix, plot_qq, plot_scatter_trend, plot_treemap


BIRTHWEIGHT = Column.BIRTHWEIGHT.value
GESTATION = Column.GESTATION.value
GENDER = Column.GENDER.value


DEFAULT_RECODE = {
    "column": GESTATION,
    "threshold": 37,            # weeks, WHO pre-term cutoff
    "below_label": "pre-term",
    "above_label": "to term",
    "new_column": "term",
    "by": GENDER,
    "aggregate_label": "both",
    "strict": False,
}


#---------0---------------------------
#DATACLASSES

@dataclass
class AnalysisResults:
    descriptives: pd.DataFrame
    descriptives_by_group: pd.DataFrame
    normality: List[TestResult]
    correlation: TestResult
    t_test: TestResult
    rank_sum: TestResult

    def all_results(self) -> List[TestResult]:
        return self.normality + [self.correlation, self.t_test, self.rank_sum]


@dataclass
class PipelineResult:
    dataset: pd.DataFrame
    detection: DetectionReport
    status_matrix: pd.DataFrame
    missingness: MissingnessAssessment
    cleaned: pd.DataFrame
    analysis: AnalysisResults
    recoded: pd.DataFrame
    term_table: pd.DataFrame
    term_by_group: pd.DataFrame
    report_path: Optional[Path] = None
    figures: List[Path] = field(default_factory=list)


#---------0---------------------------

@contextmanager
def _stage(name: str):
    """Re-raise the first failure with the stage it happened in."""
    try:
        yield
    except PipelineError:
        raise
    except Exception as e:
        raise PipelineError(name, e) from e


def run_analysis(cleaned: pd.DataFrame, analyzer: StatisticalAnalyzer) -> AnalysisResults:
    """The fixed battery: normality, correlation, t-test, rank-sum."""
    numeric = [BIRTHWEIGHT, GESTATION]

    normality: List[TestResult] = []
    for col in numeric:
        normality.append(analyzer.normality(cleaned, col))
        normality.extend(flatten_results(analyzer.normality(cleaned, col, stratify_by=GENDER)))

    return AnalysisResults(
        descriptives=analyzer.describe(cleaned, numeric),
        descriptives_by_group=analyzer.describe(cleaned, numeric, by=GENDER),
        normality=normality,
        correlation=analyzer.correlation(cleaned, GESTATION, BIRTHWEIGHT),
        t_test=analyzer.t_test(cleaned, BIRTHWEIGHT, group=GENDER),
        rank_sum=analyzer.rank_sum(cleaned, GESTATION, group=GENDER),
    )


def run_report(
    path: Union[str, Path],
    output_dir: Union[str, Path] = "reports",
    config: Optional[Dict[str, Any]] = None,
    render: bool = True,
) -> PipelineResult:
    """
    Run every stage once, in order.

    Args:
        path: input CSV
        output_dir: where report.md, results.json and figures/ go
        config: optional {"loader": {...}, "detector": {...}, "missingness": {...},
                "analyzer": {...}, "recoder": {...}} overrides
        render: False skips writing files (tables/results are still computed)

    Raises:
        PipelineError: naming the stage that failed
    """
    config = config or {}
    recode_cfg = dict(DEFAULT_RECODE)
    recode_cfg.update(config.get("recoder", {}))

    with _stage("load"):
        dataset = load_dataset(path, config.get("loader"))

    with _stage("detect"):
        detection = AnomalyDetector(config.get("detector")).detect(dataset)

    # visual checkpoint only, nothing below reads it
    with _stage("missingness"):
        matrix = build_status_matrix(dataset, detection.issues)
        assessment = assess_missingness(matrix, config.get("missingness", {}).get("threshold"))

    with _stage("clean"):
        cleaned = clean_dataset(dataset, detection.issues)

    with _stage("analysis"):
        analysis = run_analysis(cleaned, StatisticalAnalyzer(config.get("analyzer")))

    with _stage("recode"):
        recoded = recode_by_threshold(
            cleaned,
            recode_cfg["column"],
            recode_cfg["threshold"],
            below_label=recode_cfg["below_label"],
            above_label=recode_cfg["above_label"],
            new_column=recode_cfg["new_column"],
        )
        term_table = frequency_table(recoded, recode_cfg["new_column"])
        term_by_group = stratified_frequency_table(
            recoded,
            recode_cfg["new_column"],
            recode_cfg["by"],
            aggregate_label=recode_cfg["aggregate_label"],
            strict=recode_cfg["strict"],
        )

    result = PipelineResult(
        dataset=dataset,
        detection=detection,
        status_matrix=matrix,
        missingness=assessment,
        cleaned=cleaned,
        analysis=analysis,
        recoded=recoded,
        term_table=term_table,
        term_by_group=term_by_group,
    )

    if render:
        with _stage("render"):
            render_report(result, output_dir, recode_cfg)

    return result


# ============================================================
# RENDERING
# ============================================================

def render_report(result: PipelineResult, output_dir: Union[str, Path], recode_cfg: Optional[Dict] = None) -> Path:
    """Write report.md, results.json and the figures for a finished run."""
    recode_cfg = recode_cfg or DEFAULT_RECODE
    term = recode_cfg["new_column"]
    report = ReportBuilder(output_dir)
    detection = result.detection

    report.add_heading("Data")
    report.add_text(
        f"{len(result.dataset)} records, columns {list(result.dataset.columns)}. "
        f"`id` is positional and was added at load time."
    )

    # --- anomaly detection ---
    report.add_heading("Anomaly detection")
    bounds = pd.DataFrame(
        [(col, low, high) for col, (low, high) in detection.percentile_bounds.items()],
        columns=["variable", "5th percentile", "95th percentile"],
    )
    report.add_table(bounds, "Percentile band used to pick range-rule candidates")

    candidates = pd.DataFrame(
        [(c.record_id, c.column, c.value, c.direction, c.plausible) for c in detection.candidates],
        columns=["id", "variable", "value", "side", "plausible"],
    )
    report.add_table(candidates, "Values outside the percentile band and the plausibility verdict")
    report.add_table(cleaning_log(result.dataset, detection.issues), "Flagged cells (set to missing)")

    ids = detection.identifier_summary
    report.add_bullets([
        f"identifier tokens: {ids['valid']} valid, {ids['invalid']} malformed, {ids['missing']} missing",
        f"distinct valid identifiers: {ids['distinct']} (duplicates: {ids['duplicated_tokens'] or 'none'})",
        f"multivariate screen ({', '.join(detection.ml_methods_used) or 'skipped'}): "
        f"{detection.multivariate_candidates or 'no candidates'} (advisory, not flagged)",
    ])

    # --- missingness ---
    report.add_heading("Missing data")
    report.add_figure(plot_missingness_matrix(result.status_matrix),
                      "Missing and invalid cells per record", "missingness")
    report.add_table(result.missingness.counts.reset_index(), "Cell status per variable")
    m = result.missingness
    report.add_text(
        f"{m.missing_cells + m.invalid_cells} of {m.total_cells} cells "
        f"({m.proportion:.1%}) are missing or invalid; with a threshold of {m.threshold:.0%} "
        f"the data are treated as {m.mechanism.value} and analysed without imputation."
    )

    # --- cleaned data ---
    a = result.analysis
    report.add_heading("Cleaned data")
    report.add_table(a.descriptives, "Summary statistics (available data)")
    report.add_table(a.descriptives_by_group, f"Summary statistics by {GENDER}")

    report.add_heading("Normality")
    for col in (BIRTHWEIGHT, GESTATION):
        report.add_figure(plot_qq(result.cleaned, col), f"Normal Q-Q plot of {col}", f"qq_{col}")
        report.add_figure(plot_qq(result.cleaned, col, facet_by=GENDER),
                          f"Normal Q-Q plot of {col} by {GENDER}", f"qq_{col}_by_{GENDER}")
    report.add_table(results_frame(a.normality), "Shapiro-Wilk tests")

    report.add_heading("Correlation")
    report.add_figure(plot_scatter_trend(result.cleaned, GESTATION, BIRTHWEIGHT),
                      f"{BIRTHWEIGHT} against {GESTATION} with LOWESS trend", "scatter")
    report.add_table(results_frame([a.correlation]), "Pearson correlation")

    report.add_heading(f"Comparison by {GENDER}")
    report.add_table(results_frame([a.t_test]), f"Two-sample t-test of {BIRTHWEIGHT}")
    report.add_table(results_frame([a.rank_sum]), f"Wilcoxon rank-sum test of {GESTATION}")

    report.add_heading("Pre-term births")
    report.add_table(result.term_table, f"{term} ({recode_cfg['column']} < {recode_cfg['threshold']})")
    report.add_table(result.term_by_group, f"{term} by {recode_cfg['by']}")
    report.add_figure(plot_treemap(result.term_by_group, term, recode_cfg["by"], recode_cfg["aggregate_label"]),
                      f"Proportions of {term} and {recode_cfg['by']}", "treemap")

    report.export_json({
        "records": len(result.dataset),
        "issues": detection.by_label(),
        "identifier_summary": ids,
        "multivariate_candidates": detection.multivariate_candidates,
        "missingness": m.summary,
        "tests": [r.to_dict() for r in a.all_results()],
        "term_by_group": result.term_by_group.to_dict(orient="records"),
    })

    result.report_path = report.write_markdown()
    result.figures = list(report.figures)
    return result.report_path


# ============================================================
# CONSOLE
# ============================================================

def format_summary_text(result: PipelineResult) -> str:
    """Format run summary as human-readable text."""

    lines = []
    lines.append("=" * 60)
    lines.append("BIRTH WEIGHT QC REPORT")
    lines.append("=" * 60)

    lines.append(f"\nRecords: {len(result.dataset)}")

    lines.append("\n--- Flagged cells ---")
    for label, ids in result.detection.by_label().items():
        lines.append(f"  {label}: ids {ids}")

    m = result.missingness
    lines.append("\n--- Missingness ---")
    lines.append(f"  {m.missing_cells} missing + {m.invalid_cells} invalid of {m.total_cells} cells "
                 f"({m.proportion:.1%}) -> {m.mechanism.name}")

    lines.append("\n--- Tests ---")
    for r in result.analysis.all_results():
        where = f" [{r.stratum}]" if r.stratum else ""
        lines.append(f"  {r.test} {r.column}{where}: p = {r.p_value:.3g} -> {r.decision.value} H0")

    lines.append("\n--- Term ---")
    for row in result.term_by_group.itertuples(index=False):
        lines.append(f"  {row[0]:<10} {row[1]:<8} {row[2]:>4}")

    if result.report_path:
        lines.append(f"\nReport: {result.report_path}")

    lines.append("\n" + "=" * 60)
    return "\n".join(lines)


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print("usage: birth-qc path/to/data.csv [output_dir]")
        return 2

    path = argv[0]
    output_dir = argv[1] if len(argv) > 1 else "reports"

    print(f"Running QC report on: {path}")
    try:
        result = run_report(path, output_dir)
    except PipelineError as e:
        print(f"❌ {e}")
        return 1

    print(format_summary_text(result))
    return 0


if __name__ == "__main__":
    sys.exit(main())
