#!/usr/bin/env python3
"""
Cross-model ranking of aggregate metrics.

rank() is a pure function over a snapshot list of ModelAggregateMetrics:
recompute it whenever the set of compared models changes.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Sequence, Tuple

from evaluation.aggregator import ModelAggregateMetrics


@dataclass(frozen=True)
class MetricSpec:
    name: str
    label: str
    higher_is_better: bool
    getter: Callable[[ModelAggregateMetrics], float]


RANKED_METRICS: Tuple[MetricSpec, ...] = (
    MetricSpec("accuracy", "Accuracy", True, lambda m: m.accuracy),
    MetricSpec("precision", "Precision", True, lambda m: m.quality.precision),
    MetricSpec("recall", "Recall", True, lambda m: m.quality.recall),
    MetricSpec("latency", "Latency", False, lambda m: m.efficiency.latency_ms),
    MetricSpec("ttft", "Time to First Token", False, lambda m: m.efficiency.ttft_ms),
    MetricSpec("outputThroughput", "Output Throughput", True, lambda m: m.efficiency.otps),
    MetricSpec("memory", "Memory (PSS)", False, lambda m: m.efficiency.total_pss_kb),
    MetricSpec("hallucinationRate", "Hallucination Rate", False, lambda m: m.safety.hallucination_rate),
    MetricSpec("fnr", "False Negative Rate", False, lambda m: m.quality.fnr),
    MetricSpec("overPredictionRate", "Over-prediction Rate", False, lambda m: m.safety.over_prediction_rate),
)

# Metric -> badge title, awarded for rank 1 or 2
BADGE_METRICS: Dict[str, str] = {
    "accuracy": "Most Accurate",
    "latency": "Fastest",
    "memory": "Most Memory Efficient",
    "hallucinationRate": "Least Hallucination",
    "fnr": "Fewest Missed Allergens",
}

MAX_BADGE_RANK = 2
HIGHLIGHT_COUNT = 3


@dataclass(frozen=True)
class RankedMetric:
    metric: str
    label: str
    value: float
    rank: int
    total: int
    higher_is_better: bool


@dataclass(frozen=True)
class Badge:
    metric: str
    rank: int
    title: str


@dataclass(frozen=True)
class ModelRanking:
    model_key: str
    display_name: str
    ranks: Mapping[str, RankedMetric] = field(hash=False)
    strengths: Tuple[RankedMetric, ...] = ()
    weaknesses: Tuple[RankedMetric, ...] = ()
    badges: Tuple[Badge, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "ranks", MappingProxyType(dict(self.ranks)))

    @property
    def average_rank(self) -> float:
        if not self.ranks:
            return 0.0
        return sum(r.rank for r in self.ranks.values()) / len(self.ranks)


def _rank_metric(
    models: Sequence[ModelAggregateMetrics], spec: MetricSpec
) -> Dict[str, RankedMetric]:
    # sorted() is stable, so equal values keep input order in both directions
    ordered = sorted(models, key=spec.getter, reverse=spec.higher_is_better)
    total = len(ordered)
    return {
        m.model_key: RankedMetric(
            metric=spec.name,
            label=spec.label,
            value=float(spec.getter(m)),
            rank=position,
            total=total,
            higher_is_better=spec.higher_is_better,
        )
        for position, m in enumerate(ordered, start=1)
    }


def rank(
    models: Sequence[ModelAggregateMetrics],
    min_predictions: int = 1,
    metrics: Sequence[MetricSpec] = RANKED_METRICS,
    badge_metrics: Dict[str, str] = BADGE_METRICS,
) -> Dict[str, ModelRanking]:
    """
    Rank models on every ranked metric.

    Parameters
    ----------
    models : Sequence[ModelAggregateMetrics]
        Snapshot of the models to compare.
    min_predictions : int
        Models with fewer predictions are left out of the ranking entirely.
    metrics : Sequence[MetricSpec]
        Metrics to rank on, with their polarity.
    badge_metrics : dict
        Metric name -> badge title for rank 1 or 2.

    Returns
    -------
    dict
        Mapping model_key -> ModelRanking for each eligible model, in input order.
        Strengths are the 3 best-ranked metrics; weaknesses the 3 worst-ranked
        metrics the model did not win.
    """
    eligible = [m for m in models if m.prediction_count >= max(min_predictions, 1)]
    keys = [m.model_key for m in eligible]
    if len(set(keys)) != len(keys):
        raise ValueError(f"Duplicate model keys in ranking input: {keys}")

    per_metric = [_rank_metric(eligible, spec) for spec in metrics]

    rankings: Dict[str, ModelRanking] = {}
    for m in eligible:
        ranks = {ranked[m.model_key].metric: ranked[m.model_key] for ranked in per_metric}
        ordered: List[RankedMetric] = list(ranks.values())

        strengths = sorted(ordered, key=lambda r: r.rank)[:HIGHLIGHT_COUNT]
        weaknesses = [
            r for r in sorted(ordered, key=lambda r: r.rank, reverse=True)
            if r.rank > 1 and r not in strengths
        ][:HIGHLIGHT_COUNT]
        badges = tuple(
            Badge(metric=name, rank=ranks[name].rank, title=title)
            for name, title in badge_metrics.items()
            if name in ranks and ranks[name].rank <= MAX_BADGE_RANK
        )

        rankings[m.model_key] = ModelRanking(
            model_key=m.model_key,
            display_name=m.display_name,
            ranks=ranks,
            strengths=tuple(strengths),
            weaknesses=tuple(weaknesses),
            badges=badges,
        )
    return rankings
