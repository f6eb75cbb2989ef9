"""
Test suite for prediction record parsing and loading
Run: python test_data_loader.py  (or pytest)
"""

import json
import os
import sys
import tempfile
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))  # project root

from data.data_loader import (
    MalformedRecordError,
    SampleRecord,
    load_prediction_records,
    parse_record,
)
from evaluation.aggregator import aggregate


PROJECT_ROOT = Path(__file__).parent.parent
SAMPLE_DIR = PROJECT_ROOT / "sample_data"

RAW_RECORD = {
    "dataId": 7,
    "ingredientsText": "wheat flour, butter",
    "groundTruthAllergens": "Wheat, milk",
    "predictedAllergens": "wheat, none",
    "latencyMs": 1500,
    "ttftMs": None,
}


def _expect_malformed(raw):
    try:
        parse_record(raw)
    except MalformedRecordError:
        return
    raise AssertionError(f"expected MalformedRecordError for {raw!r}")


# Parsing

def test_parse_record():
    sample = parse_record(RAW_RECORD)
    assert isinstance(sample, SampleRecord)
    assert sample.data_id == 7
    assert sample.ground_truth == frozenset({"wheat", "milk"})
    assert sample.predicted == frozenset({"wheat"})
    assert not sample.is_match
    assert sample.efficiency["latency_ms"] == 1500.0
    assert sample.efficiency["ttft_ms"] == 0.0


def test_parse_record_accepts_store_aliases():
    sample = parse_record({
        "dataId": "3",
        "ingredients": "eggs",
        "mappedAllergens": "egg",
        "predictedAllergens": "eggs",
    })
    assert sample.data_id == 3
    assert sample.is_match


def test_malformed_records():
    _expect_malformed({"ingredientsText": "x", "groundTruthAllergens": "", "predictedAllergens": ""})
    _expect_malformed({**RAW_RECORD, "predictedAllergens": None})
    _expect_malformed({**RAW_RECORD, "dataId": "seven"})
    _expect_malformed({**RAW_RECORD, "dataId": True})
    _expect_malformed({**RAW_RECORD, "groundTruthAllergens": ["milk"]})
    _expect_malformed({**RAW_RECORD, "latencyMs": "fast"})
    _expect_malformed(["not", "a", "mapping"])


def test_non_finite_numbers_are_malformed():
    _expect_malformed({**RAW_RECORD, "dataId": float("inf")})
    _expect_malformed({**RAW_RECORD, "latencyMs": float("inf")})
    _expect_malformed({**RAW_RECORD, "otps": "1e999"})


def test_sample_record_efficiency_is_validated():
    sample = SampleRecord(
        data_id=1,
        ingredients_text="eggs",
        ground_truth=frozenset({"egg"}),
        predicted=frozenset({"egg"}),
        efficiency={"latency_ms": 12, "ttft_ms": None},
    )
    parsed = parse_record(sample)
    assert parsed.efficiency["latency_ms"] == 12.0
    assert parsed.efficiency["ttft_ms"] == 0.0
    assert parsed.efficiency["total_pss_kb"] == 0.0

    _expect_malformed(SampleRecord(1, "eggs", frozenset(), frozenset(), {"latency_ms": "fast"}))
    _expect_malformed(SampleRecord(1, "eggs", None, frozenset()))


def test_malformed_record_error_is_value_error():
    assert issubclass(MalformedRecordError, ValueError)


# Loading

def test_load_sample_csv_keeps_empty_and_none_allergens():
    records = load_prediction_records(SAMPLE_DIR / "qwen_2_5_1_5b.csv", verbose=False)
    assert len(records) == 6
    by_id = {r["dataId"]: r for r in records}
    assert by_id[3]["groundTruthAllergens"] == ""
    assert by_id[3]["predictedAllergens"] == "none"
    assert parse_record(by_id[1]).is_match


def test_load_sample_jsonl_with_malformed_row():
    records = load_prediction_records(SAMPLE_DIR / "llama_3_2_1b.jsonl", verbose=False)
    assert len(records) == 7
    m = aggregate(records, "llama_3_2_1b", "Llama 3.2 1B")
    assert m.prediction_count == 6
    assert m.skipped_records == 1


def test_load_json_array():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = os.path.join(tmpdir, "records.json")
        with open(path, "w") as f:
            json.dump([RAW_RECORD, {**RAW_RECORD, "dataId": 8}], f)
        records = load_prediction_records(path, verbose=False)
    assert [r["dataId"] for r in records] == [7, 8]
    assert records[0]["ttftMs"] is None


def test_load_missing_file():
    try:
        load_prediction_records("/nonexistent/records.csv")
    except FileNotFoundError:
        pass
    else:
        raise AssertionError("expected FileNotFoundError")


def test_load_unsupported_suffix():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "records.xlsx"
        path.write_bytes(b"")
        try:
            load_prediction_records(path)
        except ValueError:
            pass
        else:
            raise AssertionError("expected ValueError for .xlsx")


if __name__ == "__main__":
    for name, fn in list(globals().items()):
        if name.startswith("test_") and callable(fn):
            fn()
            print(f"  ✓ {name}")
    print("All tests completed!")
