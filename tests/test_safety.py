"""
Test suite for safety metrics
Run: python test_safety.py  (or pytest)
"""

import math
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))  # project root

from data.vocabulary import ALLERGEN_KEYWORDS, ALLERGEN_LABELS
from evaluation.safety import (
    SafetyChecker,
    SafetyMetrics,
    calculate_safety_metrics,
    has_over_prediction,
    is_abstention_case,
    is_correct_abstention,
)


MOCK_CONFIG = {
    "data": {
        "labels": ["gluten"],
        "keyword_lexicon": {"gluten": ["Wheat", "barley"]},
    },
}


def test_lexicon_covers_every_label():
    for label in ALLERGEN_LABELS:
        assert 4 <= len(ALLERGEN_KEYWORDS[label]) <= 14, label


def test_supported_by_keyword_substring():
    checker = SafetyChecker()
    assert checker.is_supported_by_ingredients("milk", "Sugar, BUTTERMILK powder")
    assert checker.is_supported_by_ingredients("wheat", "wheat flour")
    assert not checker.is_supported_by_ingredients("milk", "sugar, oil")


def test_unknown_label_or_empty_text_is_unsupported():
    checker = SafetyChecker()
    assert not checker.is_supported_by_ingredients("mustard", "mustard seeds")
    assert not checker.is_supported_by_ingredients("milk", "")
    assert not checker.is_supported_by_ingredients("milk", None)


def test_hallucination_on_sugar_and_oil():
    checker = SafetyChecker()
    assert checker.has_hallucination({"milk"}, "sugar, oil")
    assert checker.unsupported_labels({"milk"}, "sugar, oil") == frozenset({"milk"})


def test_no_hallucination_when_every_label_supported():
    checker = SafetyChecker()
    assert not checker.has_hallucination({"wheat", "milk"}, "wheat flour, cream cheese")
    assert not checker.has_hallucination(set(), "sugar, oil")


def test_over_prediction():
    assert has_over_prediction({"wheat", "milk"}, {"wheat"})
    assert not has_over_prediction({"wheat"}, {"wheat", "milk"})
    assert not has_over_prediction(set(), set())


def test_abstention_cases():
    assert is_abstention_case(set())
    assert not is_abstention_case({"egg"})
    assert is_correct_abstention(set(), set())
    assert not is_correct_abstention({"egg"}, set())
    assert not is_correct_abstention(set(), {"egg"})


def test_abstention_accuracy_45_of_50():
    metrics = calculate_safety_metrics(
        n_samples=200,
        hallucination_count=0,
        over_prediction_count=0,
        abstention_cases=50,
        correct_abstentions=45,
    )
    assert math.isclose(metrics.abstention_accuracy, 90.0)


def test_no_abstention_cases_is_vacuously_correct():
    metrics = calculate_safety_metrics(10, 0, 0, 0, 0)
    assert metrics.abstention_accuracy == 100.0
    undefined = calculate_safety_metrics(10, 0, 0, 0, 0, vacuous_abstention_accuracy=float("nan"))
    assert math.isnan(undefined.abstention_accuracy)


def test_rates_are_percentages():
    metrics = calculate_safety_metrics(8, 2, 4, 3, 1)
    assert metrics.hallucination_rate == 25.0
    assert metrics.over_prediction_rate == 50.0
    assert math.isclose(metrics.abstention_accuracy, 100 / 3)
    for rate in (metrics.hallucination_rate, metrics.over_prediction_rate, metrics.abstention_accuracy):
        assert 0.0 <= rate <= 100.0


def test_empty_run_is_zero_valued():
    assert calculate_safety_metrics(0, 0, 0, 0, 0) == SafetyMetrics()


def test_checker_from_config_lowercases_keywords():
    checker = SafetyChecker.from_config(MOCK_CONFIG)
    assert checker.is_supported_by_ingredients("gluten", "WHEAT starch")
    assert not checker.is_supported_by_ingredients("gluten", "rice")


if __name__ == "__main__":
    for name, fn in list(globals().items()):
        if name.startswith("test_") and callable(fn):
            fn()
            print(f"  ✓ {name}")
    print("All tests completed!")
