#!/usr/bin/env python3
"""
Prediction record parsing and loading for allergen model evaluation.

This module handles:
    - The SampleRecord schema consumed by the evaluation core
    - Parsing external prediction records (dicts) into SampleRecords
    - Loading raw records from CSV / JSON / JSON Lines files with pandas

Usage:
    from data.data_loader import load_prediction_records, parse_record

    # Load raw records for one model
    raw_records = load_prediction_records("outputs/qwen_2_5_1_5b.csv")

    # Parse one record into canonical label sets
    sample = parse_record(raw_records[0])
"""

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Union

import pandas as pd

from data.preprocessor import LabelNormalizer


# External field name -> accepted aliases (first match wins)
REQUIRED_FIELDS: Dict[str, tuple] = {
    "dataId": ("dataId", "data_id", "id"),
    "ingredientsText": ("ingredientsText", "ingredients_text", "ingredients"),
    "groundTruthAllergens": (
        "groundTruthAllergens", "ground_truth_allergens", "mappedAllergens",
    ),
    "predictedAllergens": ("predictedAllergens", "predicted_allergens"),
}

# Pass-through efficiency fields (external name -> SampleRecord key)
EFFICIENCY_FIELDS: Dict[str, str] = {
    "latencyMs": "latency_ms",
    "ttftMs": "ttft_ms",
    "itps": "itps",
    "otps": "otps",
    "oetMs": "oet_ms",
    "javaHeapKb": "java_heap_kb",
    "nativeHeapKb": "native_heap_kb",
    "totalPssKb": "total_pss_kb",
}

SUPPORTED_SUFFIXES = (".csv", ".json", ".jsonl")


class MalformedRecordError(ValueError):
    """A prediction record is missing a required field or has the wrong type."""


@dataclass(frozen=True)
class SampleRecord:
    """One evaluation unit: ingredient text plus truth and predicted label sets."""

    data_id: int
    ingredients_text: str
    ground_truth: FrozenSet[str]
    predicted: FrozenSet[str]
    efficiency: Mapping[str, float] = field(default_factory=dict)

    @property
    def is_match(self) -> bool:
        return self.predicted == self.ground_truth


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, float) and math.isnan(value)


def _lookup(raw: Mapping[str, Any], name: str) -> Any:
    for alias in REQUIRED_FIELDS[name]:
        if alias in raw and not _is_missing(raw[alias]):
            return raw[alias]
    raise MalformedRecordError(
        f"Record is missing required field '{name}' "
        f"(accepted names: {list(REQUIRED_FIELDS[name])})"
    )


def _as_text(value: Any, name: str) -> str:
    if not isinstance(value, str):
        raise MalformedRecordError(
            f"Field '{name}' must be a string, got {type(value).__name__}"
        )
    return value


def _as_number(value: Any, name: str) -> float:
    if _is_missing(value):
        return 0.0
    if isinstance(value, bool):
        raise MalformedRecordError(f"Field '{name}' must be numeric, got bool")
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError) as e:
        raise MalformedRecordError(f"Field '{name}' must be numeric: {value!r}") from e
    if not math.isfinite(number):
        raise MalformedRecordError(f"Field '{name}' must be finite: {value!r}")
    return number


def parse_record(
    raw: Union[Mapping[str, Any], SampleRecord],
    normalizer: Optional[LabelNormalizer] = None,
) -> SampleRecord:
    """
    Convert an external prediction record into a SampleRecord.

    Args:
        raw: Mapping with dataId, ingredientsText, groundTruthAllergens and
             predictedAllergens (plus optional efficiency fields), or an
             already-parsed SampleRecord, which is returned with its label
             sets clipped to the normalizer's universe.
        normalizer: LabelNormalizer to use. Defaults to the nine-label one.

    Returns:
        Parsed SampleRecord. Missing efficiency fields are recorded as 0.0.

    Raises:
        MalformedRecordError: If a required field is missing or mistyped, or
            an efficiency value is not a finite number.

    Example:
        >>> sample = parse_record({
        ...     "dataId": 7,
        ...     "ingredientsText": "wheat flour, butter",
        ...     "groundTruthAllergens": "wheat, milk",
        ...     "predictedAllergens": "wheat",
        ... })
        >>> sorted(sample.ground_truth)
        ['milk', 'wheat']
    """
    normalizer = normalizer or LabelNormalizer()

    if isinstance(raw, SampleRecord):
        for name in ("ground_truth", "predicted"):
            if not isinstance(getattr(raw, name), (set, frozenset)):
                raise MalformedRecordError(f"SampleRecord.{name} must be a set of labels")
        if not isinstance(raw.efficiency, Mapping):
            raise MalformedRecordError("SampleRecord.efficiency must be a mapping")
        return SampleRecord(
            data_id=raw.data_id,
            ingredients_text=raw.ingredients_text,
            ground_truth=raw.ground_truth & normalizer.universe,
            predicted=raw.predicted & normalizer.universe,
            efficiency={
                key: _as_number(raw.efficiency.get(key), key)
                for key in EFFICIENCY_FIELDS.values()
            },
        )

    if not isinstance(raw, Mapping):
        raise MalformedRecordError(
            f"Record must be a mapping, got {type(raw).__name__}"
        )

    data_id = _lookup(raw, "dataId")
    if isinstance(data_id, bool):
        raise MalformedRecordError("Field 'dataId' must be an integer, got bool")
    try:
        data_id = int(data_id)
    except (TypeError, ValueError, OverflowError) as e:
        raise MalformedRecordError(f"Field 'dataId' must be an integer: {data_id!r}") from e

    ingredients = _as_text(_lookup(raw, "ingredientsText"), "ingredientsText")
    truth_text = _as_text(_lookup(raw, "groundTruthAllergens"), "groundTruthAllergens")
    predicted_text = _as_text(_lookup(raw, "predictedAllergens"), "predictedAllergens")

    efficiency = {
        key: _as_number(raw.get(name), name)
        for name, key in EFFICIENCY_FIELDS.items()
    }

    return SampleRecord(
        data_id=data_id,
        ingredients_text=ingredients,
        ground_truth=normalizer.normalize(truth_text),
        predicted=normalizer.normalize(predicted_text),
        efficiency=efficiency,
    )


def load_prediction_records(
    path: Union[str, Path],
    verbose: bool = True,
) -> List[Dict[str, Any]]:
    """
    Load raw prediction records from a CSV, JSON or JSON Lines file.

    Allergen columns are read as strings so that "none" and empty cells
    survive; empty cells come back as "" rather than NaN. Other missing
    values come back as None.

    Args:
        path: Path to a .csv, .json (array of objects) or .jsonl file.
        verbose: If True, prints the number of loaded records.

    Returns:
        List of record dicts, one per row.

    Raises:
        FileNotFoundError: If path doesn't exist.
        ValueError: If the file extension is not supported.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Prediction records file not found: {path}")

    suffix = path.suffix.lower()
    string_columns = {
        alias: str
        for name in ("groundTruthAllergens", "predictedAllergens", "ingredientsText")
        for alias in REQUIRED_FIELDS[name]
    }

    if suffix == ".csv":
        header = pd.read_csv(path, nrows=0).columns
        dtypes = {col: str for col in header if col in string_columns}
        df = pd.read_csv(path, dtype=dtypes, keep_default_na=False, na_values=[""])
        for col in dtypes:
            df[col] = df[col].fillna("")
    elif suffix == ".json":
        df = pd.read_json(path, orient="records", dtype=False)
    elif suffix == ".jsonl":
        df = pd.read_json(path, orient="records", lines=True, dtype=False)
    else:
        raise ValueError(
            f"Unsupported records file type '{suffix}' for {path}.\n"
            f"Supported: {list(SUPPORTED_SUFFIXES)}"
        )

    df = df.astype(object).where(pd.notna(df), None)
    records = df.to_dict(orient="records")

    if verbose:
        print(f"Loaded {len(records):,} prediction records from: {path}")
    return records
