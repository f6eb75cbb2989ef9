#!/usr/bin/env python3
"""
Allergen label normalization and encoding.

This module turns free-form allergen strings into canonical label sets drawn
from a closed label universe, and encodes label sets as binary matrices for
use with numpy / sklearn.

The normalization pipeline includes:
    - Comma splitting and lowercase conversion
    - Whitespace trimming, hyphen/underscore folding
    - Dropping of empty tokens and the literal "none"
    - Mapping of plural and source-dataset variants to canonical labels
    - Silent removal of any token outside the label universe

Usage:
    from data.preprocessor import normalize_allergens, encode_labels

    # Normalize a single allergen string
    labels = normalize_allergens("Eggs, tree-nuts, none")

    # Encode label sets as a binary matrix
    label_matrix = encode_labels([labels], ALLERGEN_LABELS)
"""

import re
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from data.vocabulary import ALLERGEN_LABELS, ALLERGEN_MAPPING


NONE_TOKEN = "none"

# Characters stripped from both ends of a token
_EDGE_PUNCTUATION = " \t\r\n.;:!?()[]{}\"'`*"

# Delimiters used by generated text: , newline ; & : . ( ) and the word "and"
_RAW_OUTPUT_SPLIT = re.compile(r",|\n|;|&|:|\.|\(|\)|\band\b")

# Minimum length for a mapping key to be searched inside a longer token
_MIN_EMBEDDED_KEY_LENGTH = 3


def canonical_token(token: Union[str, None]) -> str:
    """
    Reduce a raw allergen token to its canonical lookup form.

    Args:
        token: Raw token, e.g. " Tree-Nuts." or None.

    Returns:
        Lowercase token with hyphens/underscores folded to spaces, runs of
        whitespace collapsed and edge punctuation stripped.

    Examples:
        >>> canonical_token("  Tree-Nuts. ")
        'tree nuts'
        >>> canonical_token("soy_lecithin")
        'soy lecithin'
    """
    if not token or not isinstance(token, str):
        return ""
    token = token.lower().replace("-", " ").replace("_", " ")
    token = re.sub(r"\s+", " ", token)
    return token.strip(_EDGE_PUNCTUATION).strip()


class LabelNormalizer:
    """
    Total parser from allergen strings to subsets of a closed label universe.

    Unknown tokens are dropped instead of raising, so malformed or
    hallucinated model output can never enter the scored label set.
    """

    def __init__(
        self,
        labels: Sequence[str] = ALLERGEN_LABELS,
        mapping: Optional[Mapping[str, str]] = None,
    ) -> None:
        """
        Parameters
        ----------
        labels : Sequence[str]
            Ordered label universe.
        mapping : Mapping[str, str], optional
            Variant -> canonical label table. Defaults to ALLERGEN_MAPPING.
            Entries pointing outside the universe are ignored.
        """
        self.labels = tuple(labels)
        self.universe: FrozenSet[str] = frozenset(self.labels)

        table: Dict[str, str] = {}
        source = ALLERGEN_MAPPING if mapping is None else mapping
        for variant, label in source.items():
            key = canonical_token(variant)
            if key and label in self.universe:
                table[key] = label
        for label in self.labels:
            table.setdefault(canonical_token(label), label)
        self.mapping: Mapping[str, str] = MappingProxyType(table)

        self._embedded_patterns = [
            (re.compile(r"\b" + re.escape(key) + r"\b"), label)
            for key, label in table.items()
            if len(key) >= _MIN_EMBEDDED_KEY_LENGTH
        ]

    @classmethod
    def from_config(cls, config: Dict) -> "LabelNormalizer":
        """Build from the 'data' section of a run config (labels, allergen_mapping)."""
        data_cfg = config.get("data", {})
        return cls(
            labels=data_cfg.get("labels", ALLERGEN_LABELS),
            mapping=data_cfg.get("allergen_mapping"),
        )

    def normalize(self, text: Union[str, None]) -> FrozenSet[str]:
        """
        Parse a comma-separated allergen string into a canonical label set.

        Args:
            text: Allergen string such as "Milk, eggs, none". None and
                  non-string values yield the empty set.

        Returns:
            Frozen set of labels, always a subset of the universe.

        Examples:
            >>> LabelNormalizer().normalize("Eggs, tree-nuts, glitter")
            frozenset({'egg', 'tree nut'})
            >>> LabelNormalizer().normalize("none")
            frozenset()
        """
        if not text or not isinstance(text, str):
            return frozenset()

        found = set()
        for raw in text.split(","):
            token = canonical_token(raw)
            if not token or token == NONE_TOKEN:
                continue
            label = self.mapping.get(token)
            if label is not None:
                found.add(label)
        return frozenset(found)

    def extract(self, raw_output: Union[str, None]) -> FrozenSet[str]:
        """
        Lenient label extraction from raw generated text.

        Splits on the delimiters small generators tend to emit and, besides
        direct lookups, maps any known variant that appears as a whole word
        inside a longer token ("contains soy lecithin" -> soy).

        Args:
            raw_output: Raw decoded model output.

        Returns:
            Frozen set of labels, always a subset of the universe.
        """
        if not raw_output or not isinstance(raw_output, str):
            return frozenset()

        cleaned = (
            raw_output.replace("Ġ", "")
            .replace("_", " ")
            .replace("-", " ")
            .lower()
        )

        found = set()
        for raw in _RAW_OUTPUT_SPLIT.split(cleaned):
            token = canonical_token(raw)
            if not token:
                continue
            label = self.mapping.get(token)
            if label is not None:
                found.add(label)
            for pattern, embedded_label in self._embedded_patterns:
                if pattern.search(token):
                    found.add(embedded_label)
        return frozenset(found)

    def format(self, labels: Iterable[str]) -> str:
        """Render a label set as its stored string form (sorted, or 'none')."""
        kept = sorted(label for label in set(labels) if label in self.universe)
        return ", ".join(kept) if kept else NONE_TOKEN


_DEFAULT_NORMALIZER = LabelNormalizer()


def normalize_allergens(text: Union[str, None]) -> FrozenSet[str]:
    """Normalize an allergen string against the default nine-label universe."""
    return _DEFAULT_NORMALIZER.normalize(text)


def format_labels(labels: Iterable[str]) -> str:
    """Format a label set against the default universe, e.g. 'egg, milk' or 'none'."""
    return _DEFAULT_NORMALIZER.format(labels)


def encode_labels(
    label_sets: Sequence[Iterable[str]],
    labels: Sequence[str] = ALLERGEN_LABELS,
) -> np.ndarray:
    """
    Encode label sets as a binary indicator matrix.

    Args:
        label_sets: One iterable of labels per sample.
        labels: Ordered label universe; defines the column order.

    Returns:
        Binary matrix of shape (n_samples, n_labels). Labels outside the
        universe are ignored.

    Example:
        >>> encode_labels([{"milk"}, set()], ["milk", "egg"])
        array([[1, 0],
               [0, 0]], dtype=int32)
    """
    index = {label: i for i, label in enumerate(labels)}
    matrix = np.zeros((len(label_sets), len(labels)), dtype=np.int32)
    for row, sample_labels in enumerate(label_sets):
        for label in sample_labels:
            col = index.get(label)
            if col is not None:
                matrix[row, col] = 1
    return matrix


def get_label_statistics(
    label_sets: Sequence[Iterable[str]],
    labels: Sequence[str] = ALLERGEN_LABELS,
) -> pd.DataFrame:
    """
    Calculate support statistics for each label.

    Args:
        label_sets: One iterable of labels per sample (e.g. ground truth).
        labels: Ordered label universe.

    Returns:
        DataFrame with one row per label plus a final "(none)" row counting
        samples with an empty label set:
            - label: Label name
            - count: Number of samples carrying the label
            - percentage: Share of samples, in percent
    """
    matrix = encode_labels(label_sets, labels)
    total = matrix.shape[0]

    stats: List[Dict] = []
    for i, label in enumerate(labels):
        count = int(matrix[:, i].sum())
        stats.append({
            "label": label,
            "count": count,
            "percentage": round(count / total * 100, 2) if total else 0.0,
        })

    empty = int((matrix.sum(axis=1) == 0).sum()) if total else 0
    stats.append({
        "label": "(none)",
        "count": empty,
        "percentage": round(empty / total * 100, 2) if total else 0.0,
    })
    return pd.DataFrame(stats)
