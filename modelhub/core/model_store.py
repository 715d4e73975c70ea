"""Model loading and in-memory registry."""

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import PurePath
from typing import Dict, List, Optional, Tuple

from torch import nn

from ..config import config
from ..models.responses import ModelMeta
from ..utils import memory
from ..utils.logging import get_logger
from . import formats
from .errors import LoadError, NotFoundError
from .inspection import count_layers, count_parameters

logger = get_logger(__name__)


class ModelKind(str, Enum):
    """How a model is represented by the framework."""

    GRAPH = "GRAPH"
    SEQUENTIAL = "SEQUENTIAL"


@dataclass(frozen=True)
class LoadedModel:
    """A registered model and the framework module it exclusively owns."""

    id: str
    kind: ModelKind
    module: nn.Module = field(repr=False, compare=False)
    input_names: Tuple[str, ...]
    output_names: Tuple[str, ...]
    name: str
    source_file_name: Optional[str] = None
    source: str = "upload"
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ModelStore:
    """
    Thread-safe registry of loaded models.

    Every model gets a fresh uuid4 identifier when it is registered and stays
    in memory until it is explicitly removed. Nothing is persisted.
    """

    def __init__(self, device: Optional[str] = None, allow_pickled: Optional[bool] = None):
        """
        Initialize the model store.

        Args:
            device: Device loaded models are mapped onto. Defaults to ``config.DEVICE``.
            allow_pickled: Whether to fall back to unpickling a Sequential network
                when an upload is not a TorchScript archive. Defaults to
                ``config.ALLOW_PICKLED_MODELS``.
        """
        self.device = device or config.DEVICE
        self.allow_pickled = (
            config.ALLOW_PICKLED_MODELS if allow_pickled is None else allow_pickled
        )
        self._models: Dict[str, LoadedModel] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._models)

    def __contains__(self, model_id: str) -> bool:
        return model_id in self._models

    def _register(
        self,
        kind: ModelKind,
        module: nn.Module,
        input_names: Tuple[str, ...],
        output_names: Tuple[str, ...],
        source: str,
        name: Optional[str] = None,
        source_file_name: Optional[str] = None,
    ) -> LoadedModel:
        with self._lock:
            model_id = str(uuid.uuid4())
            while model_id in self._models:
                model_id = str(uuid.uuid4())

            loaded = LoadedModel(
                id=model_id,
                kind=kind,
                module=module,
                input_names=tuple(input_names),
                output_names=tuple(output_names),
                name=name or f"model-{model_id[:8]}",
                source_file_name=source_file_name,
                source=source,
            )
            self._models[model_id] = loaded

        size = memory.format_memory_size(memory.get_model_actual_memory(module))
        logger.info(
            f"Registered {kind.value} model {model_id} "
            f"(source={source}, inputs={list(input_names)}, size={size})"
        )
        return loaded

    def load(self, model_bytes: bytes, filename: Optional[str] = None) -> LoadedModel:
        """
        Deserialize an uploaded model and register it.

        The bytes are read as a TorchScript graph first; when that fails and
        pickled models are allowed, they are read as a ``torch.nn.Sequential``.

        Args:
            model_bytes: Raw serialized model
            filename: Client-side file name. Its stem becomes the model name.

        Returns:
            The registered model

        Raises:
            LoadError: If no supported format could read the bytes
        """
        if not model_bytes:
            raise LoadError("Model archive is empty")

        source_file_name = PurePath(filename).name if filename else None
        naming = dict(
            name=PurePath(source_file_name).stem if source_file_name else None,
            source_file_name=source_file_name,
        )

        try:
            module, input_names, output_names = formats.load_graph(model_bytes, self.device)
        except Exception as graph_error:
            if not self.allow_pickled:
                logger.error(f"Rejected upload, not a TorchScript archive: {graph_error}")
                raise LoadError(
                    f"Could not load model as a TorchScript graph: {graph_error}"
                ) from graph_error
            logger.info(
                f"TorchScript load failed ({graph_error}). Falling back to torch.load."
            )
        else:
            return self._register(
                ModelKind.GRAPH, module, input_names, output_names, "upload", **naming
            )

        try:
            module = formats.load_sequential(model_bytes, self.device)
        except Exception as sequential_error:
            logger.error(f"Failed to load model: {sequential_error}")
            raise LoadError(
                "Could not load model as a TorchScript graph or a sequential "
                f"network: {sequential_error}"
            ) from sequential_error

        return self._register(
            ModelKind.SEQUENTIAL,
            module,
            formats.SEQUENTIAL_INPUT_NAMES,
            formats.SEQUENTIAL_OUTPUT_NAMES,
            "upload",
            **naming,
        )

    def create_sample(self) -> LoadedModel:
        """Build and register the untrained 4-3-3 softmax network."""
        module = formats.build_sample_network(self.device)
        return self._register(
            ModelKind.SEQUENTIAL,
            module,
            formats.SEQUENTIAL_INPUT_NAMES,
            formats.SEQUENTIAL_OUTPUT_NAMES,
            "sample",
            name="sample",
        )

    def get(self, model_id: str) -> Optional[LoadedModel]:
        """Look up a model, returning None when it is not registered."""
        return self._models.get(model_id)

    def require(self, model_id: str) -> LoadedModel:
        """
        Look up a model.

        Raises:
            NotFoundError: If no model is registered under ``model_id``
        """
        loaded = self._models.get(model_id)
        if loaded is None:
            raise NotFoundError(model_id)
        return loaded

    def list(self) -> List[LoadedModel]:
        """Registered models in registration order."""
        with self._lock:
            return list(self._models.values())

    def remove(self, model_id: str) -> None:
        """Drop a model. Unknown ids are ignored."""
        with self._lock:
            loaded = self._models.pop(model_id, None)

        if loaded is None:
            logger.debug(f"Remove requested for unknown model {model_id}")
            return

        logger.info(f"Unloading model: {model_id}")
        del loaded
        memory.clear_gpu_cache(self.device)

    def meta(self, model: LoadedModel) -> ModelMeta:
        """Describe a registered model."""
        return ModelMeta(
            id=model.id,
            name=model.name,
            source_file_name=model.source_file_name,
            type=model.kind.value,
            inputs=list(model.input_names),
            outputs=list(model.output_names),
            num_layers=count_layers(model.module),
            num_parameters=count_parameters(model.module),
            source=model.source,
            created_at=model.created_at,
        )

    def export(self, model: LoadedModel) -> bytes:
        """Serialize a registered model back into the format it was loaded from."""
        if model.kind is ModelKind.GRAPH:
            return formats.save_graph(model.module, model.output_names)
        if model.kind is ModelKind.SEQUENTIAL:
            return formats.save_sequential(model.module)
        raise ValueError(f"Unsupported model kind: {model.kind}")
