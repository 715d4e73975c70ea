"""Inference engine for running forward passes on registered models."""

import asyncio
from typing import Dict, List, Mapping, Optional, Sequence

import torch

from ..config import config
from ..utils.logging import get_logger
from .errors import InferenceError, MissingInputError
from .model_store import LoadedModel, ModelKind, ModelStore

logger = get_logger(__name__)

InputMap = Mapping[str, Sequence[float]]


class InferenceEngine:
    """
    Shapes named input vectors into tensors and runs single-sample forward passes.

    Every call uses a batch size of 1: each input vector becomes a ``(1, n)``
    tensor in the floating dtype of the model parameters (float32 for models
    without floating parameters) and the output is flattened back to a list.
    """

    def __init__(self, model_store: ModelStore, strict_inputs: Optional[bool] = None):
        """
        Initialize the inference engine.

        Args:
            model_store: Store the engine resolves model ids against
            strict_inputs: Raise MissingInputError instead of substituting an
                empty vector for absent inputs. Defaults to ``config.STRICT_INPUTS``.
        """
        self.model_store = model_store
        self.strict_inputs = config.STRICT_INPUTS if strict_inputs is None else strict_inputs
        max_concurrent = config.get_max_concurrent()
        self.semaphore = asyncio.Semaphore(max_concurrent)

    @staticmethod
    def _input_dtype(model: LoadedModel) -> torch.dtype:
        for param in model.module.parameters():
            if param.is_floating_point():
                return param.dtype
        return torch.float32

    def _to_tensor(self, values: Sequence[float], dtype: torch.dtype) -> torch.Tensor:
        tensor = torch.as_tensor(values, dtype=dtype, device=self.model_store.device)
        return tensor.reshape(1, tensor.numel())

    def _check_inputs(self, model: LoadedModel, inputs: InputMap) -> None:
        missing = [name for name in model.input_names if name not in inputs]
        if not missing:
            return
        if self.strict_inputs:
            raise MissingInputError(model.id, missing)
        logger.warning(
            f"Model {model.id}: inputs {missing} not provided, substituting empty vectors"
        )

    def _checked_output(self, model: LoadedModel, output) -> torch.Tensor:
        if isinstance(output, (tuple, list)) and len(output) == 1:
            output = output[0]
        if not isinstance(output, torch.Tensor):
            raise InferenceError(
                f"Model {model.id} must produce a single tensor, got {type(output).__name__}"
            )
        if output.is_floating_point() and not torch.isfinite(output).all():
            raise InferenceError(
                f"Model {model.id} produced non-finite output; inputs are out of range "
                f"for {output.dtype}"
            )
        return output

    def infer(self, model: LoadedModel, inputs: InputMap) -> List[float]:
        """
        Run one forward pass.

        Graph models receive one tensor per declared input, in declaration
        order. Sequential models receive the vector stored under ``"input"``.
        Absent inputs become empty vectors unless strict mode is on.

        Args:
            model: Registered model
            inputs: Input name to numeric vector

        Returns:
            Flattened model output

        Raises:
            MissingInputError: If strict mode is on and an input is absent
            InferenceError: If the framework rejects the forward pass or the
                output is not finite
        """
        self._check_inputs(model, inputs)
        dtype = self._input_dtype(model)

        try:
            with torch.inference_mode():
                if model.kind is ModelKind.GRAPH:
                    tensors = [
                        self._to_tensor(inputs.get(name, []), dtype) for name in model.input_names
                    ]
                    output = model.module(*tensors)
                elif model.kind is ModelKind.SEQUENTIAL:
                    output = model.module(self._to_tensor(inputs.get("input", []), dtype))
                else:
                    raise ValueError(f"Unsupported model kind: {model.kind}")
        except Exception as e:
            logger.error(f"Inference failed for model {model.id}: {e}")
            raise InferenceError(f"Inference failed for model {model.id}: {e}") from e

        output = self._checked_output(model, output)
        return output.detach().reshape(-1).cpu().tolist()

    async def infer_by_id(self, model_id: str, inputs: Dict[str, List[float]]) -> List[float]:
        """
        Resolve a model id and run inference off the event loop.

        Raises:
            NotFoundError: If the id is not registered
            InferenceError: If the forward pass fails
        """
        model = self.model_store.require(model_id)
        async with self.semaphore:
            return await asyncio.to_thread(self.infer, model, inputs)
