from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence


@dataclass(frozen=True)
class EvaluatedModel:
    """A model under comparison: stable key, display name, predictions source."""

    key: str
    display_name: str
    records: Optional[Path] = None


def create_model_registry(config: Dict, base_path: Optional[Path] = None) -> List[EvaluatedModel]:
    """
    Build the list of evaluated models from config["models"].

    Parameters
    ----------
    config : dict
        Merged run config. Each entry of "models" needs "key"; "display_name"
        defaults to the key and "records" is an optional path.
    base_path : Path, optional
        Relative records paths are resolved against it.
    """
    entries = config.get("models", [])
    registry = []
    seen = set()
    for entry in entries:
        if "key" not in entry:
            raise KeyError(f"Model entry is missing 'key': {entry}")
        key = entry["key"]
        if key in seen:
            raise ValueError(f"Duplicate model key in config: {key}")
        seen.add(key)

        records = entry.get("records")
        if records is not None:
            records = Path(records)
            if base_path is not None and not records.is_absolute():
                records = base_path / records
        registry.append(EvaluatedModel(key, entry.get("display_name", key), records))
    return registry


def get_model(registry: Sequence[EvaluatedModel], key: str) -> EvaluatedModel:
    for model in registry:
        if model.key == key:
            return model
    raise ValueError(f"Unknown model key: {key}")
