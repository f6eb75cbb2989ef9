#!/usr/bin/env python3
"""
End-to-end pipeline: load prediction records → aggregate per model → rank → report.

Usage:
    python run_pipeline.py [--config CONFIG] [--model KEY=PATH ...]
                           [--min-predictions N] [--no-plots]

    # Default: uses configs/base_config.json and the models listed there
    python run_pipeline.py

    # Custom config (merged with base):
    python run_pipeline.py --config configs/my_run.json

    # Override or add a model's records file:
    python run_pipeline.py --model qwen_2_5_1_5b=outputs/qwen.csv

    # Skip the confusion matrix figures:
    python run_pipeline.py --no-plots
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

# Add project root for imports
PROJECT_ROOT = Path(__file__).resolve().parent
sys.path.insert(0, str(PROJECT_ROOT))

from data import LabelNormalizer, load_prediction_records
from evaluation import (
    SafetyChecker,
    aggregate,
    empty_metrics,
    plot_confusion_matrices,
    print_confusion_summary,
    rank,
    save_metrics_to_file,
    summarize_models,
)
from evaluation.report import REQUIRED_PREDICTIONS
from evaluation.safety import VACUOUS_ABSTENTION_ACCURACY
from models import EvaluatedModel, create_model_registry


def load_config(base_path: Path, config_path: Optional[Path] = None) -> dict:
    """Load base config and merge an optional run config over it (per section)."""
    with open(base_path / "configs" / "base_config.json") as f:
        config = json.load(f)

    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        with open(config_path) as f:
            override = json.load(f)
        for section, value in override.items():
            if isinstance(value, dict) and isinstance(config.get(section), dict):
                config[section] = {**config[section], **value}
            else:
                config[section] = value
    return config


def _resolve_outputs_dir(base_path: Path, config: dict) -> Path:
    """Resolve and create outputs directory from config."""
    raw = config.get("paths", {}).get("outputs_dir", "./outputs")
    path = Path(raw) if Path(raw).is_absolute() else base_path / raw.lstrip("./")
    path.mkdir(parents=True, exist_ok=True)
    return path


def _apply_model_overrides(
    registry: List[EvaluatedModel], overrides: List[str]
) -> List[EvaluatedModel]:
    """Apply KEY=PATH overrides; unknown keys are appended as new models."""
    by_key: Dict[str, EvaluatedModel] = {m.key: m for m in registry}
    for item in overrides:
        if "=" not in item:
            raise ValueError(f"--model expects KEY=PATH, got '{item}'")
        key, path = item.split("=", 1)
        current = by_key.get(key)
        display_name = current.display_name if current else key
        by_key[key] = EvaluatedModel(key, display_name, Path(path))
    return list(by_key.values())


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Evaluate and compare allergen prediction models"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to run config JSON (merged with base_config)",
    )
    parser.add_argument(
        "--model",
        action="append",
        default=[],
        metavar="KEY=PATH",
        help="Records file for a model; repeatable",
    )
    parser.add_argument(
        "--min-predictions",
        type=int,
        default=None,
        help="Minimum predictions for a model to be ranked",
    )
    parser.add_argument(
        "--no-plots",
        action="store_true",
        help="Skip confusion matrix figures",
    )
    args = parser.parse_args()

    base_path = Path(__file__).resolve().parent
    try:
        config = load_config(base_path, Path(args.config) if args.config else None)
        registry = _apply_model_overrides(
            create_model_registry(config, base_path), args.model
        )
    except (FileNotFoundError, KeyError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    eval_config = config.get("evaluation", {})
    required = eval_config.get("required_predictions", REQUIRED_PREDICTIONS)
    min_predictions = (
        args.min_predictions
        if args.min_predictions is not None
        else eval_config.get("min_predictions", 1)
    )
    vacuous = eval_config.get("vacuous_abstention_accuracy", VACUOUS_ABSTENTION_ACCURACY)
    vacuous = float("nan") if vacuous is None else float(vacuous)
    outputs_dir = _resolve_outputs_dir(base_path, config)

    normalizer = LabelNormalizer.from_config(config)
    safety_checker = SafetyChecker.from_config(config)
    labels = list(normalizer.labels)

    if not registry:
        print("Error: No models configured. Add 'models' to the config or pass --model.")
        return 1

    # Aggregate
    print("\n" + "=" * 60)
    print("Step 1: Aggregate predictions")
    print("=" * 60)
    all_metrics = []
    for model in registry:
        print(f"\n{model.display_name} ({model.key})")
        if model.records is None:
            print(f"  No records file configured for {model.key}")
            all_metrics.append(empty_metrics(model.key, model.display_name, labels))
            continue
        try:
            records = load_prediction_records(model.records)
        except (FileNotFoundError, ValueError) as e:
            print(f"Warning: Could not load records for {model.key}: {e}")
            all_metrics.append(empty_metrics(model.key, model.display_name, labels))
            continue
        metrics = aggregate(
            records,
            model_key=model.key,
            display_name=model.display_name,
            normalizer=normalizer,
            safety_checker=safety_checker,
            vacuous_abstention_accuracy=vacuous,
        )
        print(
            f"  Aggregate metrics: count={metrics.prediction_count}, "
            f"accuracy={metrics.accuracy:.1f}%"
        )
        all_metrics.append(metrics)

    if not any(m.has_data for m in all_metrics):
        print("\nNo predictions found for any model.")
        return 1

    # Rank
    print("\n" + "=" * 60)
    print("Step 2: Rank models")
    print("=" * 60)
    rankings = rank(all_metrics, min_predictions=min_predictions)
    excluded = [m.key for m in registry if m.key not in rankings]
    print(f"Ranked {len(rankings)} model(s) (min predictions: {min_predictions})")
    if excluded:
        print(f"  Not ranked: {', '.join(excluded)}")

    # Report
    print("\n" + "=" * 60)
    print("Step 3: Reports")
    print("=" * 60)
    summary = summarize_models(all_metrics, rankings, required)
    report_file = outputs_dir / "comparison_report.txt"
    save_metrics_to_file(all_metrics, rankings, labels, report_file, required)

    for metrics in all_metrics:
        if not metrics.has_data:
            continue
        print_confusion_summary(metrics, labels)
        if args.no_plots:
            continue
        try:
            plot_confusion_matrices(metrics, labels, outputs_dir)
        except Exception as e:
            print(f"Warning: Could not save confusion matrix plot for {metrics.model_key}: {e}")

    # Summary
    print("\n" + "=" * 60)
    print("Pipeline complete!")
    print("=" * 60)
    columns = [
        "model", "status", "predictions", "accuracy", "f1_micro", "f1_macro",
        "hallucination_rate", "abstention_accuracy", "average_rank", "badges",
    ]
    with pd.option_context("display.width", 160, "display.max_columns", None):
        print(summary[columns].round(3).to_string())
    print()
    print(f"  Report: {report_file.resolve()}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
