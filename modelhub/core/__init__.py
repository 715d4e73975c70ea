"""Core business logic for model registration and inference."""

from .errors import (
    ModelHubError,
    LoadError,
    NotFoundError,
    InferenceError,
    MissingInputError,
)
from .model_store import LoadedModel, ModelKind, ModelStore
from .inference_engine import InferenceEngine

__all__ = [
    "ModelHubError",
    "LoadError",
    "NotFoundError",
    "InferenceError",
    "MissingInputError",
    "LoadedModel",
    "ModelKind",
    "ModelStore",
    "InferenceEngine",
]
