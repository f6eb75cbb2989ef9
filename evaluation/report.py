#!/usr/bin/env python3
"""
Reporting for model comparison runs.

- Completion status per model (COMPLETE / IN PROGRESS / NO DATA)
- Summary table (pandas DataFrame, one row per model)
- Text metrics report
- Confusion matrix summary on the console
- Per-label confusion matrices as a single matplotlib figure
"""

from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt

from evaluation.aggregator import ModelAggregateMetrics
from evaluation.confusion import to_confusion_matrices
from evaluation.metrics import calculate_per_label_metrics
from evaluation.ranking import ModelRanking


REQUIRED_PREDICTIONS = 200

STATUS_COMPLETE = "COMPLETE"
STATUS_IN_PROGRESS = "IN PROGRESS"
STATUS_NO_DATA = "NO DATA"


def completion_status(metrics: ModelAggregateMetrics, required: int = REQUIRED_PREDICTIONS) -> str:
    if metrics.prediction_count == 0:
        return STATUS_NO_DATA
    if metrics.prediction_count == required:
        return STATUS_COMPLETE
    return STATUS_IN_PROGRESS


def summarize_models(
    models: Sequence[ModelAggregateMetrics],
    rankings: Optional[Dict[str, ModelRanking]] = None,
    required: int = REQUIRED_PREDICTIONS,
) -> pd.DataFrame:
    """
    Build a comparison table with one row per model.

    Parameters
    ----------
    models : Sequence[ModelAggregateMetrics]
        Aggregated metrics, in display order.
    rankings : dict, optional
        Output of evaluation.ranking.rank(); adds average rank and badges.
    required : int
        Prediction count at which a model counts as complete.

    Returns
    -------
    pd.DataFrame
        Indexed by model_key. Ratios are unrounded; rounding is a display concern.
    """
    rankings = rankings or {}
    rows = []
    for m in models:
        ranking = rankings.get(m.model_key)
        rows.append({
            "model_key":            m.model_key,
            "model":                m.display_name,
            "status":               completion_status(m, required),
            "predictions":          m.prediction_count,
            "skipped":              m.skipped_records,
            "accuracy":             m.accuracy,
            "precision":            m.quality.precision,
            "recall":               m.quality.recall,
            "f1_micro":             m.quality.f1_micro,
            "f1_macro":             m.quality.f1_macro,
            "hamming_loss":         m.quality.hamming_loss,
            "fnr":                  m.quality.fnr,
            "hallucination_rate":   m.safety.hallucination_rate,
            "over_prediction_rate": m.safety.over_prediction_rate,
            "abstention_accuracy":  m.safety.abstention_accuracy,
            "latency_ms":           m.efficiency.latency_ms,
            "ttft_ms":              m.efficiency.ttft_ms,
            "otps":                 m.efficiency.otps,
            "total_pss_kb":         m.efficiency.total_pss_kb,
            "average_rank":         ranking.average_rank if ranking else float("nan"),
            "badges":               ", ".join(b.title for b in ranking.badges) if ranking else "",
        })
    return pd.DataFrame(rows).set_index("model_key") if rows else pd.DataFrame()


def print_confusion_summary(metrics: ModelAggregateMetrics, labels: Sequence[str]) -> None:
    """Print per-label TN/FP/FN/TP counts for one model."""
    print(f"\nConfusion Matrix Summary — {metrics.display_name}:")
    print("-" * 80)
    for label in labels:
        counts = metrics.per_label.get(label)
        if counts is None:
            continue
        print(f"{label:20} TN={counts.tn:6} FP={counts.fp:6} FN={counts.fn:6} TP={counts.tp:6}")
    print("-" * 80)


def save_metrics_to_file(
    models: Sequence[ModelAggregateMetrics],
    rankings: Dict[str, ModelRanking],
    labels: List[str],
    filepath: Path,
    required: int = REQUIRED_PREDICTIONS,
) -> None:
    """
    Save comparison metrics to a readable text file.

    Parameters
    ----------
    models : Sequence[ModelAggregateMetrics]
        Aggregated metrics per model.
    rankings : dict
        Output of evaluation.ranking.rank().
    labels : List[str]
        Ordered label universe.
    filepath : Path
        Path to save the report.
    required : int
        Prediction count at which a model counts as complete.
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    with open(filepath, "w", encoding="utf-8") as f:
        f.write("=" * 60 + "\n")
        f.write("ALLERGEN PREDICTION EVALUATION\n")
        f.write(f"Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")
        f.write("=" * 60 + "\n\n")

        for m in models:
            f.write("=" * 60 + "\n")
            f.write(f"MODEL: {m.display_name} ({m.model_key})\n")
            f.write(
                f"Status: {completion_status(m, required)}  "
                f"Predictions: {m.prediction_count}/{required}"
            )
            if m.skipped_records:
                f.write(f"  Skipped: {m.skipped_records}")
            f.write("\n" + "=" * 60 + "\n\n")

            if not m.has_data:
                f.write("  No predictions.\n\n")
                continue

            q, s, e = m.quality, m.safety, m.efficiency
            f.write("QUALITY METRICS\n")
            f.write(f"Accuracy (exact): {m.accuracy:.1f}%\n")
            f.write(f"Precision:        {q.precision:.3f}\n")
            f.write(f"Recall:           {q.recall:.3f}\n")
            f.write(f"F1 Micro:         {q.f1_micro:.3f}\n")
            f.write(f"F1 Macro:         {q.f1_macro:.3f}\n")
            f.write(f"Hamming Loss:     {q.hamming_loss:.4f}\n")
            f.write(f"FNR:              {q.fnr:.3f}\n\n")

            f.write("SAFETY METRICS\n")
            f.write(f"Hallucination Rate:   {s.hallucination_rate:.1f}%\n")
            f.write(f"Over-prediction Rate: {s.over_prediction_rate:.1f}%\n")
            abstention = (
                f"{s.abstention_accuracy:.1f}%" if not np.isnan(s.abstention_accuracy) else "N/A"
            )
            f.write(
                f"Abstention Accuracy:  {abstention} "
                f"({s.correct_abstentions}/{s.abstention_cases} no-allergen samples)\n\n"
            )

            f.write("EFFICIENCY (averages)\n")
            f.write(f"Latency:        {e.latency_ms:,.0f} ms\n")
            f.write(f"TTFT:           {e.ttft_ms:,.0f} ms\n")
            f.write(f"Input tok/s:    {e.itps:,.1f}\n")
            f.write(f"Output tok/s:   {e.otps:,.1f}\n")
            f.write(f"OET:            {e.oet_ms:,.0f} ms\n")
            f.write(f"Java heap:      {e.java_heap_kb:,.0f} KB\n")
            f.write(f"Native heap:    {e.native_heap_kb:,.0f} KB\n")
            f.write(f"Total PSS:      {e.total_pss_kb:,.0f} KB\n\n")

            f.write("PER-LABEL METRICS\n")
            f.write(
                f"{'Label':<20} {'Precision':<10} {'Recall':<10} {'F1':<10} {'Support':<10}\n"
            )
            f.write("-" * 60 + "\n")
            per_label = calculate_per_label_metrics(m.per_label)
            for label in labels:
                if label not in per_label:
                    continue
                pl = per_label[label]
                f.write(
                    f"{label:<20} {pl['precision']:<10.3f} {pl['recall']:<10.3f} "
                    f"{pl['f1']:<10.3f} {pl['support']:<10}\n"
                )
            f.write("\n")

        f.write("=" * 60 + "\n")
        f.write("RANKINGS\n")
        f.write("=" * 60 + "\n")
        if not rankings:
            f.write("  No model has enough predictions to rank.\n")
        for ranking in rankings.values():
            f.write(f"\n{ranking.display_name} (average rank {ranking.average_rank:.2f})\n")
            for r in ranking.ranks.values():
                f.write(f"  {r.label:<22} #{r.rank}/{r.total}  value={r.value:,.3f}\n")
            if ranking.strengths:
                f.write(f"  Strengths:  {', '.join(r.label for r in ranking.strengths)}\n")
            if ranking.weaknesses:
                f.write(f"  Weaknesses: {', '.join(r.label for r in ranking.weaknesses)}\n")
            if ranking.badges:
                f.write(f"  Badges:     {', '.join(b.title for b in ranking.badges)}\n")

    print(f"Metrics saved to: {filepath}")


def plot_confusion_matrices(
    metrics: ModelAggregateMetrics,
    labels: List[str],
    output_path: Path,
    ncols: int = 3,
) -> Path:
    """
    Plot and save per-label confusion matrices for one model as a single figure.

    Each subplot shows a heatmap with raw counts (TN/FP/FN/TP) and per-label
    Precision / Recall / F1 in the axis caption.

    Parameters
    ----------
    metrics : ModelAggregateMetrics
        Aggregated metrics of the model.
    labels : List[str]
        Ordered list of label names.
    output_path : Path
        Directory where the PNG will be saved.
    ncols : int
        Number of columns in the subplot grid. Default: 3.

    Returns
    -------
    Path
        Path of the saved PNG.
    """
    output_path = Path(output_path)
    output_path.mkdir(parents=True, exist_ok=True)

    cms = to_confusion_matrices(metrics.per_label)
    per_label = calculate_per_label_metrics(metrics.per_label)
    labels = [label for label in labels if label in cms]

    n = len(labels)
    ncols = max(1, min(ncols, n))
    nrows = max(1, (n + ncols - 1) // ncols)

    fig, axes = plt.subplots(
        nrows, ncols,
        figsize=(5.0 * ncols, 4.4 * nrows),
        squeeze=False,
    )
    axes_flat = axes.flatten()

    cell_tags = {(0, 0): "TN", (0, 1): "FP", (1, 0): "FN", (1, 1): "TP"}

    for ax, label in zip(axes_flat, labels):
        cm = cms[label]
        im = ax.imshow(cm, interpolation="nearest", cmap="Greens", aspect="auto")
        fig.colorbar(im, ax=ax, fraction=0.046, pad=0.04)

        ax.set_xticks([0, 1])
        ax.set_yticks([0, 1])
        ax.set_xticklabels(["Pred NEG", "Pred POS"], fontsize=10)
        ax.set_yticklabels(["Actual NEG", "Actual POS"], fontsize=10)

        thresh = cm.max() / 2.0
        for row in range(2):
            for col in range(2):
                color = "white" if cm[row, col] > thresh else "black"
                ax.text(
                    col, row,
                    f"{cell_tags[(row, col)]}\n{cm[row, col]}",
                    ha="center", va="center",
                    fontsize=12, fontweight="bold", color=color,
                )

        pl = per_label[label]
        ax.set_title(label, fontsize=12, fontweight="bold", pad=6)
        ax.set_xlabel(
            f"Prec={pl['precision']:.3f}  Rec={pl['recall']:.3f}  F1={pl['f1']:.3f}",
            fontsize=9, labelpad=8,
        )

    for ax in axes_flat[n:]:
        ax.set_visible(False)

    fig.suptitle(
        f"Confusion Matrices — {metrics.display_name}",
        fontsize=14, fontweight="bold", y=1.01,
    )
    plt.tight_layout()

    save_path = output_path / f"confusion_matrices_{metrics.model_key}.png"
    fig.savefig(save_path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    print(f"Confusion matrix plot saved to: {save_path}")
    return save_path
