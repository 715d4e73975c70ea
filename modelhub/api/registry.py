"""Model management endpoints: upload, sample, metadata, layers, export, delete."""

import asyncio

from fastapi import APIRouter, File, HTTPException, Response, UploadFile, status

from ..config import config
from ..core.inspection import describe_layers
from ..core.model_store import ModelStore
from ..models.responses import (
    LayerListResponse,
    ModelListResponse,
    ModelMeta,
    ModelResponse,
)
from ..utils.logging import get_logger

logger = get_logger(__name__)


def create_registry_router(model_store: ModelStore) -> APIRouter:
    """
    Create model management router with model store dependency.

    Args:
        model_store: Model store instance

    Returns:
        APIRouter with model management endpoints
    """
    router = APIRouter(prefix="/api/models")

    @router.post("", response_model=ModelResponse)
    async def upload_model(file: UploadFile = File(...)):
        """
        Upload a serialized model.

        Accepts a TorchScript archive or, when pickled models are allowed, a
        ``torch.save``-d ``nn.Sequential``.
        """
        limit = config.max_upload_bytes()
        too_large = HTTPException(
            status_code=413,
            detail=f"Model file exceeds {config.MAX_UPLOAD_MB}MB limit",
        )
        # the multipart parser records the spooled size, so oversize files are never read
        if file.size is not None and file.size > limit:
            raise too_large

        contents = await file.read()
        if len(contents) > limit:
            raise too_large
        if not contents:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Model file is empty"
            )

        logger.info(f"Loading uploaded model {file.filename} ({len(contents)} bytes)")
        loaded = await asyncio.to_thread(model_store.load, contents, file.filename)
        return ModelResponse(id=loaded.id, meta=model_store.meta(loaded))

    @router.post("/sample", response_model=ModelResponse)
    async def create_sample():
        """Create the untrained 4-3-3 softmax network for smoke tests."""
        loaded = model_store.create_sample()
        return ModelResponse(id=loaded.id, meta=model_store.meta(loaded))

    @router.get("", response_model=ModelListResponse)
    async def list_models():
        """List registered models."""
        return ModelListResponse(models=[model_store.meta(m) for m in model_store.list()])

    @router.get("/{model_id}/meta", response_model=ModelMeta)
    async def get_meta(model_id: str):
        """Metadata for one model."""
        return model_store.meta(model_store.require(model_id))

    @router.get("/{model_id}/layers", response_model=LayerListResponse)
    async def get_layers(model_id: str):
        """Parameterized layers with weight statistics and histograms."""
        loaded = model_store.require(model_id)
        layers = await asyncio.to_thread(describe_layers, loaded.module, config.HISTOGRAM_BINS)
        return LayerListResponse(id=loaded.id, layers=layers)

    @router.get("/{model_id}/export")
    async def export_model(model_id: str):
        """Download the model in the format it was loaded from."""
        loaded = model_store.require(model_id)
        payload = await asyncio.to_thread(model_store.export, loaded)
        return Response(
            content=payload,
            media_type="application/octet-stream",
            headers={"Content-Disposition": f'attachment; filename="{loaded.id}.pt"'},
        )

    @router.delete("/{model_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_model(model_id: str):
        """Remove a model. Removing an unknown id is a no-op."""
        model_store.remove(model_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return router
