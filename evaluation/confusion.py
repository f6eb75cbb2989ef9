#!/usr/bin/env python3
"""
Confusion counts for multi-label allergen predictions.

Counts are taken per label across a fixed label universe, so every sample
contributes exactly |L| cells (tp + fp + fn + tn == |L|). Aggregation is a
pointwise sum and therefore independent of sample order.
"""

from dataclasses import dataclass
from typing import AbstractSet, Dict, Iterable, List, Mapping

import numpy as np
from sklearn.metrics import multilabel_confusion_matrix


@dataclass(frozen=True)
class ConfusionCounts:
    """TP/FP/FN/TN cell counts for one label, one sample or a whole run."""

    tp: int = 0
    fp: int = 0
    fn: int = 0
    tn: int = 0

    def __add__(self, other: "ConfusionCounts") -> "ConfusionCounts":
        if not isinstance(other, ConfusionCounts):
            return NotImplemented
        return ConfusionCounts(
            tp=self.tp + other.tp,
            fp=self.fp + other.fp,
            fn=self.fn + other.fn,
            tn=self.tn + other.tn,
        )

    @property
    def total(self) -> int:
        return self.tp + self.fp + self.fn + self.tn

    def to_matrix(self) -> np.ndarray:
        """2x2 array in sklearn layout: [[TN, FP], [FN, TP]]."""
        return np.array([[self.tn, self.fp], [self.fn, self.tp]], dtype=int)


PerLabelCounts = Dict[str, ConfusionCounts]


def confusion(
    predicted: AbstractSet[str],
    truth: AbstractSet[str],
    universe: AbstractSet[str],
) -> ConfusionCounts:
    """
    Confusion counts for one sample over the whole label universe.

    Parameters
    ----------
    predicted : set of str
        Predicted labels.
    truth : set of str
        Ground-truth labels.
    universe : set of str
        Label universe. Labels outside it are ignored on both sides.

    Returns
    -------
    ConfusionCounts
        tp = |P & T|, fp = |P - T|, fn = |T - P|, tn = |U| - tp - fp - fn.
    """
    universe = frozenset(universe)
    predicted = frozenset(predicted) & universe
    truth = frozenset(truth) & universe

    tp = len(predicted & truth)
    fp = len(predicted - truth)
    fn = len(truth - predicted)
    return ConfusionCounts(tp=tp, fp=fp, fn=fn, tn=len(universe) - tp - fp - fn)


def per_label_confusion(
    predicted: AbstractSet[str],
    truth: AbstractSet[str],
    universe: Iterable[str],
) -> PerLabelCounts:
    """
    One-cell ConfusionCounts per label for a single sample.

    Parameters
    ----------
    predicted, truth : set of str
        Predicted and ground-truth labels.
    universe : Iterable[str]
        Ordered label universe; defines the key order of the result.

    Returns
    -------
    dict
        Mapping label -> ConfusionCounts with exactly one of tp/fp/fn/tn set to 1.
    """
    counts = {}
    for label in universe:
        in_pred = label in predicted
        in_truth = label in truth
        counts[label] = ConfusionCounts(
            tp=int(in_pred and in_truth),
            fp=int(in_pred and not in_truth),
            fn=int(in_truth and not in_pred),
            tn=int(not in_pred and not in_truth),
        )
    return counts


def sum_confusion(counts: Iterable[ConfusionCounts]) -> ConfusionCounts:
    """Pointwise sum of confusion counts."""
    total = ConfusionCounts()
    for c in counts:
        total = total + c
    return total


def sum_per_label(
    per_label_counts: Iterable[Mapping[str, ConfusionCounts]],
    universe: Iterable[str],
) -> PerLabelCounts:
    """
    Pointwise sum of per-label maps.

    Every label of the universe appears in the result, even if no input map
    carries it.
    """
    labels = list(universe)
    totals = {label: ConfusionCounts() for label in labels}
    for counts in per_label_counts:
        for label in labels:
            if label in counts:
                totals[label] = totals[label] + counts[label]
    return totals


def per_label_counts_from_arrays(
    y_true: np.ndarray, y_pred: np.ndarray, labels: List[str]
) -> PerLabelCounts:
    """
    Per-label confusion counts from binary indicator matrices.

    Parameters
    ----------
    y_true : np.ndarray
        True binary labels of shape (n_samples, n_labels).
    y_pred : np.ndarray
        Predicted binary labels of shape (n_samples, n_labels).
    labels : List[str]
        List of label names corresponding to columns in y_true/y_pred.

    Returns
    -------
    dict
        Mapping label -> ConfusionCounts.
    """
    if y_true.shape != y_pred.shape:
        raise ValueError(
            f"y_true shape {y_true.shape} doesn't match y_pred shape {y_pred.shape}"
        )
    if y_true.ndim != 2 or y_true.shape[1] != len(labels):
        raise ValueError(
            f"Number of labels ({len(labels)}) doesn't match "
            f"y_true columns ({y_true.shape[1] if y_true.ndim == 2 else 'n/a'})"
        )

    if y_true.shape[0] == 0:
        return {label: ConfusionCounts() for label in labels}

    mcm = multilabel_confusion_matrix(y_true, y_pred)
    counts = {}
    for i, label in enumerate(labels):
        (tn, fp), (fn, tp) = mcm[i]
        counts[label] = ConfusionCounts(tp=int(tp), fp=int(fp), fn=int(fn), tn=int(tn))
    return counts


def to_confusion_matrices(per_label: Mapping[str, ConfusionCounts]) -> Dict[str, np.ndarray]:
    """
    Render per-label counts as confusion matrices.

    Returns
    -------
    dict
        Mapping label -> array of shape (2, 2).
        Format: [[TN, FP], [FN, TP]]
    """
    return {label: counts.to_matrix() for label, counts in per_label.items()}
