"""Inference endpoint."""

from fastapi import APIRouter

from ..core.inference_engine import InferenceEngine
from ..models.requests import InferRequest
from ..models.responses import InferResponse


def create_inference_router(inference_engine: InferenceEngine) -> APIRouter:
    """
    Create inference router with inference engine dependency.

    Args:
        inference_engine: Inference engine instance

    Returns:
        APIRouter with the inference endpoint
    """
    router = APIRouter(prefix="/api/models")

    @router.post("/{model_id}/infer", response_model=InferResponse)
    async def infer(model_id: str, request: InferRequest):
        """
        Run a single forward pass.

        Graph models read one vector per declared input name; sequential
        models read the vector under ``"input"``.
        """
        output = await inference_engine.infer_by_id(model_id, request.inputs)
        return InferResponse(output=output)

    return router
