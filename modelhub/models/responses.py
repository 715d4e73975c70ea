"""Response models for the API."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    """Accepts field names on construction, serializes the camelCase aliases."""

    model_config = ConfigDict(populate_by_name=True)


class ModelMeta(_CamelModel):
    """Descriptive record for a registered model."""

    id: str
    name: str
    source_file_name: Optional[str] = Field(default=None, alias="sourceFileName")
    type: str
    inputs: List[str]
    outputs: List[str]
    num_layers: int = Field(alias="numLayers")
    num_parameters: int = Field(alias="numParameters")
    source: str
    created_at: datetime = Field(alias="createdAt")


class ModelResponse(BaseModel):
    """Returned after a model is uploaded or the sample is created."""

    id: str
    meta: ModelMeta


class ModelListResponse(BaseModel):
    """All registered models."""

    models: List[ModelMeta]


class InferResponse(BaseModel):
    """Flattened output of a single forward pass."""

    output: List[float]


class HistogramBin(BaseModel):
    """One equal-width histogram bin."""

    min: float
    max: float
    count: int


class WeightStat(_CamelModel):
    """Statistics for one parameter group (weight, bias, ...) of a layer."""

    group: str
    min: float
    max: float
    mean: float
    std_dev: float = Field(alias="stdDev")
    num_values: int = Field(alias="numValues")
    histogram: List[HistogramBin]


class LayerInfo(_CamelModel):
    """A parameterized layer of a model."""

    name: str
    layer_type: str = Field(alias="layerType")
    num_parameters: int = Field(alias="numParameters")
    input_shape: Optional[int] = Field(default=None, alias="inputShape")
    output_shape: Optional[int] = Field(default=None, alias="outputShape")
    inbound: List[str] = []
    outbound: List[str] = []
    weights: List[WeightStat]


class LayerListResponse(BaseModel):
    """Layers of one model."""

    id: str
    layers: List[LayerInfo]
