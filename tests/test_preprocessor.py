"""
Test suite for allergen label normalization and encoding
Run: python test_preprocessor.py  (or pytest)
"""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))  # project root

import numpy as np

from data.preprocessor import (
    LabelNormalizer,
    canonical_token,
    encode_labels,
    format_labels,
    get_label_statistics,
    normalize_allergens,
)
from data.vocabulary import ALLERGEN_LABELS


MOCK_CONFIG = {
    "data": {
        "labels": ["gluten", "lactose"],
        "allergen_mapping": {"wheat": "gluten", "milk": "lactose", "dairy": "lactose"},
    },
}


# Normalize

def test_canonical_labels_pass_through():
    assert normalize_allergens("milk, egg, tree nut") == frozenset({"milk", "egg", "tree nut"})


def test_case_whitespace_and_duplicates_collapse():
    assert normalize_allergens("  MILK ,milk,  Milk  ") == frozenset({"milk"})


def test_plural_and_punctuation_variants():
    assert normalize_allergens("Eggs, tree-nuts, Peanuts.") == frozenset({"egg", "tree nut", "peanut"})
    assert normalize_allergens("tree_nut, soy-lecithin") == frozenset({"tree nut", "soy"})


def test_source_dataset_names_map_to_labels():
    assert normalize_allergens("Crustaceans, Gluten, Soya") == frozenset({"shellfish", "wheat", "soy"})


def test_none_and_empty_tokens_dropped():
    assert normalize_allergens("none") == frozenset()
    assert normalize_allergens("None, , milk,") == frozenset({"milk"})
    assert normalize_allergens("") == frozenset()


def test_unknown_tokens_dropped_silently():
    assert normalize_allergens("milk, unicorn dust, celery") == frozenset({"milk"})


def test_non_string_input_is_empty_set():
    assert normalize_allergens(None) == frozenset()
    assert normalize_allergens(42) == frozenset()


def test_output_is_subset_of_universe():
    text = "milk, eggs, gluten, mustard, lupin, sulphites, shrimp, almonds"
    assert normalize_allergens(text) <= frozenset(ALLERGEN_LABELS)


def test_normalize_is_idempotent():
    for text in ["egg, milk", "Eggs, tree-nuts", "none", "sesame, fish, shellfish"]:
        once = normalize_allergens(text)
        assert normalize_allergens(format_labels(once)) == once
        assert normalize_allergens(", ".join(once)) == once


def test_canonical_token():
    assert canonical_token("  Tree-Nuts. ") == "tree nuts"
    assert canonical_token("soy_lecithin") == "soy lecithin"
    assert canonical_token(None) == ""


# Alternate label sets

def test_normalizer_from_config_uses_alternate_universe():
    normalizer = LabelNormalizer.from_config(MOCK_CONFIG)
    assert normalizer.labels == ("gluten", "lactose")
    assert normalizer.normalize("Wheat, dairy, egg") == frozenset({"gluten", "lactose"})


def test_default_mapping_filtered_to_universe():
    normalizer = LabelNormalizer(labels=["milk"])
    assert normalizer.normalize("cheese, eggs") == frozenset({"milk"})
    assert set(normalizer.mapping.values()) == {"milk"}


# Extract (raw generated text)

def test_extract_splits_generated_text():
    normalizer = LabelNormalizer()
    raw = "ĠMilk and Ġeggs; contains soy lecithin (emulsifier)."
    assert normalizer.extract(raw) == frozenset({"milk", "egg", "soy"})


def test_extract_does_not_match_inside_words():
    normalizer = LabelNormalizer()
    assert normalizer.extract("peanuts") == frozenset({"peanut"})
    assert normalizer.extract("codeine") == frozenset()


def test_extract_handles_empty_output():
    assert LabelNormalizer().extract("") == frozenset()
    assert LabelNormalizer().extract(None) == frozenset()


# Format

def test_format_labels():
    assert format_labels({"wheat", "egg"}) == "egg, wheat"
    assert format_labels(set()) == "none"
    assert format_labels({"glitter"}) == "none"


# Encoding

def test_encode_labels():
    matrix = encode_labels([{"milk"}, set(), {"egg", "sesame"}], ALLERGEN_LABELS)
    assert matrix.shape == (3, len(ALLERGEN_LABELS))
    assert matrix.dtype == np.int32
    assert matrix[0].tolist() == [1, 0, 0, 0, 0, 0, 0, 0, 0]
    assert matrix[1].sum() == 0
    assert matrix[2, ALLERGEN_LABELS.index("sesame")] == 1


def test_get_label_statistics():
    stats = get_label_statistics([{"milk"}, {"milk", "egg"}, set(), set()], ["milk", "egg"])
    rows = stats.set_index("label")
    assert rows.loc["milk", "count"] == 2
    assert rows.loc["milk", "percentage"] == 50.0
    assert rows.loc["egg", "count"] == 1
    assert rows.loc["(none)", "count"] == 2


if __name__ == "__main__":
    for name, fn in list(globals().items()):
        if name.startswith("test_") and callable(fn):
            fn()
            print(f"  ✓ {name}")
    print("All tests completed!")
