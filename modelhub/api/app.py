"""FastAPI application factory and setup."""

from contextlib import asynccontextmanager
from typing import Optional

import torch
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import config
from ..core.errors import InferenceError, LoadError, NotFoundError
from ..core.inference_engine import InferenceEngine
from ..core.model_store import ModelStore
from ..utils.logging import setup_logging, get_logger
from .health import create_health_router
from .inference import create_inference_router
from .registry import create_registry_router

# Setup logging
setup_logging()
logger = get_logger(__name__)


def _register_error_handlers(app: FastAPI) -> None:
    """Translate domain errors into HTTP responses."""

    @app.exception_handler(LoadError)
    async def load_error_handler(request: Request, exc: LoadError):
        logger.warning(f"{request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})

    @app.exception_handler(InferenceError)
    async def inference_error_handler(request: Request, exc: InferenceError):
        logger.warning(f"{request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=422, content={"detail": str(exc)}
        )


def create_app(model_store: Optional[ModelStore] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        model_store: Store to serve. A new empty store is created when omitted.

    Returns:
        Configured FastAPI application
    """
    # Initialize core components
    model_store = model_store if model_store is not None else ModelStore()
    inference_engine = InferenceEngine(model_store)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown events."""
        logger.info("Starting model hub service...")
        logger.info(f"Local dev mode: {config.IS_LOCAL}")
        logger.info(f"Device: {model_store.device}")
        logger.info(f"CUDA available: {torch.cuda.is_available()}")
        logger.info(f"Pickled sequential models allowed: {model_store.allow_pickled}")
        logger.info(f"Strict inputs: {inference_engine.strict_inputs}")
        logger.info(f"Max concurrent requests: {config.get_max_concurrent()}")
        yield
        logger.info(f"Shutting down model hub service ({len(model_store)} models in memory)...")

    # Create FastAPI app
    app = FastAPI(
        title="Model Hub Service",
        description="Upload, inspect and run inference on PyTorch models",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.model_store = model_store
    app.state.inference_engine = inference_engine

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _register_error_handlers(app)

    # Register routers
    app.include_router(create_health_router(model_store), tags=["Health"])
    app.include_router(create_registry_router(model_store), tags=["Models"])
    app.include_router(create_inference_router(inference_engine), tags=["Inference"])

    return app
