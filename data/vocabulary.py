"""
Default allergen vocabulary: label universe, variant mapping and keyword lexicon.

These tables are the static configuration shared by the label normalizer and
the safety checks. They are module-level constants only as defaults; every
component takes its own copy at construction time, so alternate label sets can
be supplied through the run config (see configs/base_config.json).
"""

from types import MappingProxyType
from typing import Dict, Mapping, Tuple


# Ordered label universe
ALLERGEN_LABELS: Tuple[str, ...] = (
    "milk",
    "egg",
    "peanut",
    "tree nut",
    "wheat",
    "soy",
    "fish",
    "shellfish",
    "sesame",
)

# Raw allergen term -> canonical label.
# Keys are written in canonical token form (lowercase, single spaces).
_ALLERGEN_MAPPING: Dict[str, str] = {
    # Canonical names and their plurals
    "milk": "milk",
    "egg": "egg",
    "eggs": "egg",
    "peanut": "peanut",
    "peanuts": "peanut",
    "tree nut": "tree nut",
    "tree nuts": "tree nut",
    "treenut": "tree nut",
    "treenuts": "tree nut",
    "wheat": "wheat",
    "soy": "soy",
    "fish": "fish",
    "shellfish": "shellfish",
    "sesame": "sesame",

    # Dataset source names
    "crustaceans": "shellfish",
    "crustacean": "shellfish",
    "molluscs": "shellfish",
    "mollusc": "shellfish",
    "mollusk": "shellfish",
    "mollusks": "shellfish",
    "prawn": "shellfish",
    "prawns": "shellfish",
    "shrimp": "shellfish",
    "crab": "shellfish",
    "lobster": "shellfish",
    "oyster": "shellfish",
    "oysters": "shellfish",

    "gluten": "wheat",
    "flour": "wheat",
    "barley": "wheat",
    "rye": "wheat",
    "oat": "wheat",
    "oats": "wheat",

    "nuts": "tree nut",
    "nut": "tree nut",
    "almond": "tree nut",
    "almonds": "tree nut",
    "hazelnut": "tree nut",
    "hazelnuts": "tree nut",
    "cashew": "tree nut",
    "cashews": "tree nut",
    "walnut": "tree nut",
    "walnuts": "tree nut",
    "pecan": "tree nut",
    "pecans": "tree nut",
    "pistachio": "tree nut",
    "pistachios": "tree nut",
    "macadamia": "tree nut",
    "brazil nut": "tree nut",

    "soybeans": "soy",
    "soybean": "soy",
    "soya": "soy",
    "lecithin": "soy",
    "soy lecithin": "soy",
    "soya lecithin": "soy",

    "tuna": "fish",
    "salmon": "fish",
    "sardine": "fish",
    "sardines": "fish",
    "anchovy": "fish",
    "anchovies": "fish",
    "pollock": "fish",
    "cod": "fish",
    "trout": "fish",

    "sesame seeds": "sesame",
    "tahini": "sesame",

    "dairy": "milk",
    "cream": "milk",
    "butter": "milk",
    "cheese": "milk",
    "whey": "milk",
    "lactose": "milk",
    "casein": "milk",
}

# Label -> ingredient substrings that evidence the allergen.
# Matching is plain substring containment on lowercased ingredient text, so
# "cod" also fires inside unrelated words. Changes belong in a new, versioned
# lexicon rather than edits here, to keep rates comparable across runs.
_ALLERGEN_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "milk": (
        "milk", "cream", "butter", "cheese", "whey", "casein", "lactose",
        "dairy", "yogurt", "ghee", "curd", "buttermilk",
    ),
    "egg": (
        "egg", "albumin", "ovalbumin", "mayonnaise", "meringue", "yolk",
        "lysozyme",
    ),
    "peanut": ("peanut", "groundnut", "arachis", "monkey nut"),
    "tree nut": (
        "tree nut", "almond", "hazelnut", "cashew", "walnut", "pecan",
        "pistachio", "macadamia", "brazil nut", "pine nut", "chestnut",
        "praline", "marzipan", "nougat",
    ),
    "wheat": (
        "wheat", "flour", "gluten", "semolina", "durum", "spelt", "barley",
        "rye", "bran", "couscous", "malt", "seitan",
    ),
    "soy": ("soy", "soya", "tofu", "edamame", "miso", "tempeh", "lecithin"),
    "fish": (
        "fish", "anchovy", "cod", "salmon", "tuna", "sardine", "pollock",
        "trout", "mackerel", "haddock", "tilapia",
    ),
    "shellfish": (
        "shellfish", "shrimp", "prawn", "crab", "lobster", "crayfish",
        "oyster", "mussel", "clam", "scallop", "squid", "crustacean",
        "mollusc",
    ),
    "sesame": ("sesame", "tahini", "benne", "gingelly"),
}

KEYWORD_LEXICON_VERSION = "v1"

ALLERGEN_MAPPING: Mapping[str, str] = MappingProxyType(_ALLERGEN_MAPPING)
ALLERGEN_KEYWORDS: Mapping[str, Tuple[str, ...]] = MappingProxyType(_ALLERGEN_KEYWORDS)
