#!/usr/bin/env python3
"""
Safety metrics for allergen predictions.

- Hallucination: a predicted label with no keyword evidence in the ingredients
- Over-prediction: a predicted label absent from ground truth
- Abstention: predicting nothing when ground truth is empty

Rates are reported as percentages in [0, 100].
"""

from dataclasses import dataclass
from typing import AbstractSet, Dict, FrozenSet, Mapping, Optional, Sequence, Tuple

from data.vocabulary import ALLERGEN_KEYWORDS


# Abstention accuracy reported when a run has no empty-truth samples
VACUOUS_ABSTENTION_ACCURACY = 100.0


@dataclass(frozen=True)
class SafetyMetrics:
    hallucination_rate: float = 0.0
    over_prediction_rate: float = 0.0
    abstention_accuracy: float = 0.0
    hallucination_count: int = 0
    over_prediction_count: int = 0
    abstention_cases: int = 0
    correct_abstentions: int = 0


def _percentage(count: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return float(min(100.0, max(0.0, count / total * 100)))


class SafetyChecker:
    """Keyword-lexicon checks of predictions against ingredient text."""

    def __init__(self, keywords: Optional[Mapping[str, Sequence[str]]] = None) -> None:
        """
        Parameters
        ----------
        keywords : Mapping[str, Sequence[str]], optional
            Label -> ingredient substrings. Defaults to ALLERGEN_KEYWORDS.
        """
        source = ALLERGEN_KEYWORDS if keywords is None else keywords
        self.keywords: Dict[str, Tuple[str, ...]] = {
            label: tuple(k.lower() for k in words if k)
            for label, words in source.items()
        }

    @classmethod
    def from_config(cls, config: Dict) -> "SafetyChecker":
        return cls(keywords=config.get("data", {}).get("keyword_lexicon"))

    def is_supported_by_ingredients(self, label: str, ingredients_text: Optional[str]) -> bool:
        """True iff any keyword for label is a substring of the lowercased ingredients."""
        if not ingredients_text:
            return False
        text = ingredients_text.lower()
        return any(keyword in text for keyword in self.keywords.get(label, ()))

    def unsupported_labels(
        self, predicted: AbstractSet[str], ingredients_text: Optional[str]
    ) -> FrozenSet[str]:
        return frozenset(
            label for label in predicted
            if not self.is_supported_by_ingredients(label, ingredients_text)
        )

    def has_hallucination(
        self, predicted: AbstractSet[str], ingredients_text: Optional[str]
    ) -> bool:
        return any(
            not self.is_supported_by_ingredients(label, ingredients_text)
            for label in predicted
        )


def has_over_prediction(predicted: AbstractSet[str], truth: AbstractSet[str]) -> bool:
    """True iff at least one predicted label is a false positive."""
    return bool(set(predicted) - set(truth))


def is_abstention_case(truth: AbstractSet[str]) -> bool:
    return not truth


def is_correct_abstention(predicted: AbstractSet[str], truth: AbstractSet[str]) -> bool:
    return not truth and not predicted


def calculate_safety_metrics(
    n_samples: int,
    hallucination_count: int,
    over_prediction_count: int,
    abstention_cases: int,
    correct_abstentions: int,
    vacuous_abstention_accuracy: float = VACUOUS_ABSTENTION_ACCURACY,
) -> SafetyMetrics:
    """
    Turn safety counters into percentage rates.

    Parameters
    ----------
    n_samples : int
        Number of evaluated samples N.
    hallucination_count, over_prediction_count : int
        Samples with at least one hallucinated / over-predicted label.
    abstention_cases : int
        Samples whose ground truth is empty.
    correct_abstentions : int
        Abstention cases where the prediction was empty too.
    vacuous_abstention_accuracy : float
        Reported abstention accuracy when abstention_cases is 0. Defaults to
        100.0; pass float("nan") to report it as undefined instead.

    Returns
    -------
    SafetyMetrics
        All-zero SafetyMetrics when n_samples is 0.
    """
    if n_samples <= 0:
        return SafetyMetrics()

    if abstention_cases > 0:
        abstention_accuracy = _percentage(correct_abstentions, abstention_cases)
    else:
        abstention_accuracy = float(vacuous_abstention_accuracy)

    return SafetyMetrics(
        hallucination_rate=_percentage(hallucination_count, n_samples),
        over_prediction_rate=_percentage(over_prediction_count, n_samples),
        abstention_accuracy=abstention_accuracy,
        hallucination_count=hallucination_count,
        over_prediction_count=over_prediction_count,
        abstention_cases=abstention_cases,
        correct_abstentions=correct_abstentions,
    )
