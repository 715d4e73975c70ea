"""Health check and info endpoints."""

import torch
from fastapi import APIRouter

from .. import __version__
from ..config import config
from ..core.model_store import ModelStore
from ..utils import memory


def create_health_router(model_store: ModelStore) -> APIRouter:
    """
    Create health check router with model store dependency.

    Args:
        model_store: Model store instance

    Returns:
        APIRouter with health endpoints
    """
    router = APIRouter()

    @router.get("/")
    async def root():
        """Root endpoint with service information."""
        return {
            "service": "Model Hub Service",
            "version": __version__,
            "status": "running",
            "device": model_store.device,
            "loaded_models": [m.id for m in model_store.list()],
        }

    @router.get("/health")
    async def health():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "device": model_store.device,
            "gpu_available": torch.cuda.is_available(),
            "loaded_models_count": len(model_store),
            "available_memory_gb": round(memory.get_available_system_memory(), 2),
            "max_concurrent_requests": config.get_max_concurrent(),
        }

    return router
