"""Pydantic models for API requests and responses."""

from .requests import InferRequest
from .responses import (
    ModelMeta,
    ModelResponse,
    ModelListResponse,
    InferResponse,
    HistogramBin,
    WeightStat,
    LayerInfo,
    LayerListResponse,
)

__all__ = [
    "InferRequest",
    "ModelMeta",
    "ModelResponse",
    "ModelListResponse",
    "InferResponse",
    "HistogramBin",
    "WeightStat",
    "LayerInfo",
    "LayerListResponse",
]
