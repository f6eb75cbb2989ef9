"""
Data module for allergen prediction evaluation.

This module provides the label vocabulary, allergen string normalization and
prediction record loading used by the evaluation core.

Modules:
    - vocabulary: Label universe, variant mapping and keyword lexicon
    - preprocessor: Normalize allergen strings and encode label sets
    - data_loader: Parse prediction records and load them from files

Example usage:
    from data import load_prediction_records, parse_record, LabelNormalizer

    normalizer = LabelNormalizer()
    raw_records = load_prediction_records("outputs/qwen_2_5_1_5b.csv")
    samples = [parse_record(r, normalizer) for r in raw_records]
"""

from data.vocabulary import (
    ALLERGEN_LABELS,
    ALLERGEN_MAPPING,
    ALLERGEN_KEYWORDS,
    KEYWORD_LEXICON_VERSION,
)

from data.preprocessor import (
    LabelNormalizer,
    canonical_token,
    normalize_allergens,
    format_labels,
    encode_labels,
    get_label_statistics,
)

from data.data_loader import (
    SampleRecord,
    MalformedRecordError,
    parse_record,
    load_prediction_records,
)

__all__ = [
    # Vocabulary
    'ALLERGEN_LABELS',
    'ALLERGEN_MAPPING',
    'ALLERGEN_KEYWORDS',
    'KEYWORD_LEXICON_VERSION',

    # Preprocessor
    'LabelNormalizer',
    'canonical_token',
    'normalize_allergens',
    'format_labels',
    'encode_labels',
    'get_label_statistics',

    # Data Loader
    'SampleRecord',
    'MalformedRecordError',
    'parse_record',
    'load_prediction_records',
]

__version__ = '0.1.0'
