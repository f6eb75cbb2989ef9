#!/usr/bin/env python3
"""
Quality metric calculations for multi-label allergen prediction.

This module derives all quality metrics from confusion counts:
- Precision, recall and false negative rate (pooled over labels and samples)
- F1 scores (micro from pooled counts, macro as the mean of per-label F1)
- Hamming loss and exact match ratio
- Per-label metrics (precision, recall, F1, support)

Every ratio with a zero denominator is defined as 0.0 and every ratio is
clamped to [0, 1]; no formula raises.
"""

from dataclasses import dataclass
from typing import Dict, Mapping

import numpy as np
from sklearn.metrics import f1_score

from evaluation.confusion import ConfusionCounts


@dataclass(frozen=True)
class QualityMetrics:
    precision: float = 0.0
    recall: float = 0.0
    f1_micro: float = 0.0
    f1_macro: float = 0.0
    hamming_loss: float = 0.0
    fnr: float = 0.0
    exact_match_ratio: float = 0.0


def safe_ratio(numerator: float, denominator: float) -> float:
    """numerator / denominator clamped to [0, 1]; 0.0 when denominator is 0."""
    if denominator <= 0:
        return 0.0
    return float(min(1.0, max(0.0, numerator / denominator)))


def calculate_precision(counts: ConfusionCounts) -> float:
    return safe_ratio(counts.tp, counts.tp + counts.fp)


def calculate_recall(counts: ConfusionCounts) -> float:
    return safe_ratio(counts.tp, counts.tp + counts.fn)


def calculate_f1(counts: ConfusionCounts) -> float:
    """F1 = 2tp / (2tp + fp + fn); 0.0 when nothing was predicted or expected."""
    return safe_ratio(2 * counts.tp, 2 * counts.tp + counts.fp + counts.fn)


def calculate_fnr(counts: ConfusionCounts) -> float:
    """False negative rate fn / (tp + fn), i.e. 1 - recall when defined."""
    return safe_ratio(counts.fn, counts.tp + counts.fn)


def calculate_hamming_loss(counts: ConfusionCounts, n_samples: int, n_labels: int) -> float:
    """Fraction of wrong label cells: (fp + fn) / (n_samples * n_labels)."""
    return safe_ratio(counts.fp + counts.fn, n_samples * n_labels)


def calculate_per_label_metrics(
    per_label: Mapping[str, ConfusionCounts]
) -> Dict[str, Dict[str, float]]:
    """
    Calculate precision, recall, and F1 score for each label.

    Parameters
    ----------
    per_label : Mapping[str, ConfusionCounts]
        Aggregated confusion counts per label.

    Returns
    -------
    dict
        Dictionary mapping label names to dictionaries with 'precision',
        'recall', 'f1' and 'support' (number of samples whose ground truth
        carries the label).
    """
    return {
        label: {
            "precision": calculate_precision(counts),
            "recall":    calculate_recall(counts),
            "f1":        calculate_f1(counts),
            "support":   counts.tp + counts.fn,
        }
        for label, counts in per_label.items()
    }


def calculate_f1_scores(
    total: ConfusionCounts, per_label: Mapping[str, ConfusionCounts]
) -> Dict[str, float]:
    """
    Calculate micro and macro F1 scores from confusion counts.

    Parameters
    ----------
    total : ConfusionCounts
        Counts pooled over all labels and samples.
    per_label : Mapping[str, ConfusionCounts]
        Counts per label; every label weighs equally in the macro average.

    Returns
    -------
    dict
        Dictionary with keys 'micro' and 'macro'.
    """
    per_label_f1 = [calculate_f1(counts) for counts in per_label.values()]
    macro = float(np.mean(per_label_f1)) if per_label_f1 else 0.0
    return {
        "micro": calculate_f1(total),
        "macro": min(1.0, max(0.0, macro)),
    }


def calculate_f1_scores_from_arrays(y_true: np.ndarray, y_pred: np.ndarray) -> Dict[str, float]:
    """
    Calculate micro and macro F1 scores from binary indicator matrices.

    Uses sklearn with zero_division=0, which matches the count-based rule
    above; kept as an independent cross-check.

    Parameters
    ----------
    y_true : np.ndarray
        True binary labels of shape (n_samples, n_labels).
    y_pred : np.ndarray
        Predicted binary labels of shape (n_samples, n_labels).

    Returns
    -------
    dict
        Dictionary with keys 'micro' and 'macro'.
    """
    if y_true.shape[0] == 0:
        return {"micro": 0.0, "macro": 0.0}
    return {
        "micro": float(f1_score(y_true, y_pred, average="micro", zero_division=0)),
        "macro": float(f1_score(y_true, y_pred, average="macro", zero_division=0)),
    }


def calculate_quality_metrics(
    total: ConfusionCounts,
    per_label: Mapping[str, ConfusionCounts],
    n_samples: int,
    n_labels: int,
    exact_matches: int,
) -> QualityMetrics:
    """
    Derive all quality metrics for one model run.

    Parameters
    ----------
    total : ConfusionCounts
        Counts summed over all samples.
    per_label : Mapping[str, ConfusionCounts]
        Counts per label summed over all samples.
    n_samples : int
        Number of evaluated samples N.
    n_labels : int
        Size of the label universe |L|.
    exact_matches : int
        Samples whose predicted set equals the ground-truth set.

    Returns
    -------
    QualityMetrics
        All-zero QualityMetrics when n_samples is 0.
    """
    if n_samples <= 0:
        return QualityMetrics()

    f1_scores = calculate_f1_scores(total, per_label)
    return QualityMetrics(
        precision=calculate_precision(total),
        recall=calculate_recall(total),
        f1_micro=f1_scores["micro"],
        f1_macro=f1_scores["macro"],
        hamming_loss=calculate_hamming_loss(total, n_samples, n_labels),
        fnr=calculate_fnr(total),
        exact_match_ratio=safe_ratio(exact_matches, n_samples),
    )
