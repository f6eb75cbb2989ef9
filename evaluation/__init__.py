"""
Evaluation module for allergen prediction models.

Provides confusion counting, quality and safety metrics, per-model
aggregation, cross-model ranking and reporting.
"""

from .confusion import (
    ConfusionCounts,
    confusion,
    per_label_confusion,
    sum_confusion,
    sum_per_label,
    per_label_counts_from_arrays,
    to_confusion_matrices,
)
from .metrics import (
    QualityMetrics,
    calculate_f1_scores,
    calculate_f1_scores_from_arrays,
    calculate_per_label_metrics,
    calculate_quality_metrics,
)
from .safety import (
    SafetyChecker,
    SafetyMetrics,
    calculate_safety_metrics,
    has_over_prediction,
)
from .aggregator import (
    EfficiencyMetrics,
    MetricsAccumulator,
    ModelAggregateMetrics,
    aggregate,
    empty_metrics,
)
from .ranking import (
    Badge,
    ModelRanking,
    RankedMetric,
    rank,
)
from .report import (
    completion_status,
    summarize_models,
    save_metrics_to_file,
    print_confusion_summary,
    plot_confusion_matrices,
)

__all__ = [
    "ConfusionCounts",
    "confusion",
    "per_label_confusion",
    "sum_confusion",
    "sum_per_label",
    "per_label_counts_from_arrays",
    "to_confusion_matrices",
    "QualityMetrics",
    "calculate_f1_scores",
    "calculate_f1_scores_from_arrays",
    "calculate_per_label_metrics",
    "calculate_quality_metrics",
    "SafetyChecker",
    "SafetyMetrics",
    "calculate_safety_metrics",
    "has_over_prediction",
    "EfficiencyMetrics",
    "MetricsAccumulator",
    "ModelAggregateMetrics",
    "aggregate",
    "empty_metrics",
    "Badge",
    "ModelRanking",
    "RankedMetric",
    "rank",
    "completion_status",
    "summarize_models",
    "save_metrics_to_file",
    "print_confusion_summary",
    "plot_confusion_matrices",
]
