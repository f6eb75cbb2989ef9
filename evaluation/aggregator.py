#!/usr/bin/env python3
"""
Per-model aggregation of allergen predictions.

One pass over a model's sample records accumulates confusion counts,
exact matches, safety counters and efficiency sums, then finalizes them into
a ModelAggregateMetrics. Every accumulated quantity is an exact sum (efficiency sums are kept as
Fractions), so the result does not depend on record order and partial
accumulators can be merged.
"""

from dataclasses import dataclass, field
from fractions import Fraction
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Union

from data.data_loader import (
    EFFICIENCY_FIELDS,
    MalformedRecordError,
    SampleRecord,
    parse_record,
)
from data.preprocessor import LabelNormalizer
from evaluation.confusion import (
    ConfusionCounts,
    PerLabelCounts,
    confusion,
    per_label_confusion,
)
from evaluation.metrics import QualityMetrics, calculate_quality_metrics
from evaluation.safety import (
    VACUOUS_ABSTENTION_ACCURACY,
    SafetyChecker,
    SafetyMetrics,
    calculate_safety_metrics,
    has_over_prediction,
    is_abstention_case,
    is_correct_abstention,
)


EFFICIENCY_KEYS = tuple(EFFICIENCY_FIELDS.values())


@dataclass(frozen=True)
class EfficiencyMetrics:
    """Averages of the inference measurements reported with each prediction."""

    latency_ms: float = 0.0
    ttft_ms: float = 0.0
    itps: float = 0.0
    otps: float = 0.0
    oet_ms: float = 0.0
    java_heap_kb: float = 0.0
    native_heap_kb: float = 0.0
    total_pss_kb: float = 0.0


@dataclass(frozen=True)
class ModelAggregateMetrics:
    model_key: str
    display_name: str
    prediction_count: int = 0
    skipped_records: int = 0
    confusion: ConfusionCounts = field(default_factory=ConfusionCounts)
    per_label: Mapping[str, ConfusionCounts] = field(default_factory=dict, hash=False)
    quality: QualityMetrics = field(default_factory=QualityMetrics)
    safety: SafetyMetrics = field(default_factory=SafetyMetrics)
    efficiency: EfficiencyMetrics = field(default_factory=EfficiencyMetrics)

    def __post_init__(self):
        object.__setattr__(self, "per_label", MappingProxyType(dict(self.per_label)))

    @property
    def accuracy(self) -> float:
        """Exact-match accuracy in percent."""
        return self.quality.exact_match_ratio * 100

    @property
    def has_data(self) -> bool:
        return self.prediction_count > 0


class MetricsAccumulator:
    """
    Streaming accumulator for one model's sample records.

    Feed records with add() as they become available; merge() combines two
    accumulators over disjoint record sets. Discard an accumulator whose feed
    was cancelled rather than finalizing it.
    """

    def __init__(
        self,
        normalizer: Optional[LabelNormalizer] = None,
        safety_checker: Optional[SafetyChecker] = None,
    ) -> None:
        self.normalizer = normalizer or LabelNormalizer()
        self.safety_checker = safety_checker or SafetyChecker()
        self.labels = self.normalizer.labels

        self.count = 0
        self.skipped = 0
        self.confusion = ConfusionCounts()
        self.per_label: PerLabelCounts = {label: ConfusionCounts() for label in self.labels}
        self.exact_matches = 0
        self.hallucinations = 0
        self.over_predictions = 0
        self.abstention_cases = 0
        self.correct_abstentions = 0
        self.efficiency_sums: Dict[str, Fraction] = {key: Fraction(0) for key in EFFICIENCY_KEYS}

    def add(self, record: Union[Mapping[str, Any], SampleRecord]) -> bool:
        """
        Accumulate one record.

        Returns
        -------
        bool
            True if the record was counted, False if it was malformed and skipped.
        """
        try:
            sample = parse_record(record, self.normalizer)
        except MalformedRecordError:
            self.skipped += 1
            return False

        predicted, truth = sample.predicted, sample.ground_truth

        self.count += 1
        self.confusion = self.confusion + confusion(predicted, truth, self.normalizer.universe)
        for label, counts in per_label_confusion(predicted, truth, self.labels).items():
            self.per_label[label] = self.per_label[label] + counts

        if sample.is_match:
            self.exact_matches += 1
        if self.safety_checker.has_hallucination(predicted, sample.ingredients_text):
            self.hallucinations += 1
        if has_over_prediction(predicted, truth):
            self.over_predictions += 1
        if is_abstention_case(truth):
            self.abstention_cases += 1
            if is_correct_abstention(predicted, truth):
                self.correct_abstentions += 1

        for key in EFFICIENCY_KEYS:
            self.efficiency_sums[key] += Fraction(sample.efficiency.get(key, 0.0))
        return True

    def add_all(self, records: Iterable[Union[Mapping[str, Any], SampleRecord]]) -> "MetricsAccumulator":
        for record in records:
            self.add(record)
        return self

    def merge(self, other: "MetricsAccumulator") -> "MetricsAccumulator":
        """Return a new accumulator holding the sum of self and other."""
        if tuple(other.labels) != tuple(self.labels):
            raise ValueError(
                f"Cannot merge accumulators over different label universes: "
                f"{list(self.labels)} vs {list(other.labels)}"
            )
        merged = MetricsAccumulator(self.normalizer, self.safety_checker)
        merged.count = self.count + other.count
        merged.skipped = self.skipped + other.skipped
        merged.confusion = self.confusion + other.confusion
        merged.per_label = {
            label: self.per_label[label] + other.per_label[label] for label in self.labels
        }
        merged.exact_matches = self.exact_matches + other.exact_matches
        merged.hallucinations = self.hallucinations + other.hallucinations
        merged.over_predictions = self.over_predictions + other.over_predictions
        merged.abstention_cases = self.abstention_cases + other.abstention_cases
        merged.correct_abstentions = self.correct_abstentions + other.correct_abstentions
        merged.efficiency_sums = {
            key: self.efficiency_sums[key] + other.efficiency_sums[key] for key in EFFICIENCY_KEYS
        }
        return merged

    def finalize(
        self,
        model_key: str,
        display_name: str,
        vacuous_abstention_accuracy: float = VACUOUS_ABSTENTION_ACCURACY,
    ) -> ModelAggregateMetrics:
        if self.skipped:
            print(
                f"Warning: Skipped {self.skipped} malformed record(s) for model {model_key}"
            )

        if self.count == 0:
            print(f"No predictions found for model {model_key}")
            return empty_metrics(model_key, display_name, self.labels, self.skipped)

        quality = calculate_quality_metrics(
            total=self.confusion,
            per_label=self.per_label,
            n_samples=self.count,
            n_labels=len(self.labels),
            exact_matches=self.exact_matches,
        )
        safety = calculate_safety_metrics(
            n_samples=self.count,
            hallucination_count=self.hallucinations,
            over_prediction_count=self.over_predictions,
            abstention_cases=self.abstention_cases,
            correct_abstentions=self.correct_abstentions,
            vacuous_abstention_accuracy=vacuous_abstention_accuracy,
        )
        efficiency = EfficiencyMetrics(
            **{key: float(self.efficiency_sums[key] / self.count) for key in EFFICIENCY_KEYS}
        )

        return ModelAggregateMetrics(
            model_key=model_key,
            display_name=display_name,
            prediction_count=self.count,
            skipped_records=self.skipped,
            confusion=self.confusion,
            per_label=dict(self.per_label),
            quality=quality,
            safety=safety,
            efficiency=efficiency,
        )


def empty_metrics(
    model_key: str,
    display_name: str,
    labels: Sequence[str] = (),
    skipped_records: int = 0,
) -> ModelAggregateMetrics:
    """Zero-valued metrics for a model with no usable predictions."""
    return ModelAggregateMetrics(
        model_key=model_key,
        display_name=display_name,
        prediction_count=0,
        skipped_records=skipped_records,
        per_label={label: ConfusionCounts() for label in labels},
    )


def aggregate(
    samples: Iterable[Union[Mapping[str, Any], SampleRecord]],
    model_key: str,
    display_name: str,
    normalizer: Optional[LabelNormalizer] = None,
    safety_checker: Optional[SafetyChecker] = None,
    vacuous_abstention_accuracy: float = VACUOUS_ABSTENTION_ACCURACY,
) -> ModelAggregateMetrics:
    """
    Aggregate one model's sample records into a ModelAggregateMetrics.

    Parameters
    ----------
    samples : Iterable
        Raw external records (dicts) or SampleRecords. Iterated exactly once.
    model_key : str
        Stable identifier of the model (e.g. "qwen_2_5_1_5b").
    display_name : str
        Human-readable model name.
    normalizer : LabelNormalizer, optional
        Defines the label universe and variant mapping.
    safety_checker : SafetyChecker, optional
        Defines the keyword lexicon.
    vacuous_abstention_accuracy : float
        Abstention accuracy reported when no sample has empty ground truth.

    Returns
    -------
    ModelAggregateMetrics
        Zero-valued when no record could be counted; malformed records are
        reported in skipped_records.
    """
    accumulator = MetricsAccumulator(normalizer, safety_checker)
    accumulator.add_all(samples)
    return accumulator.finalize(model_key, display_name, vacuous_abstention_accuracy)
