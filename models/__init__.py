from .registry import EvaluatedModel, create_model_registry, get_model

__all__ = ["EvaluatedModel", "create_model_registry", "get_model"]
