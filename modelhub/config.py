"""
Configuration management for the model hub service.

Loads configuration from environment variables with sensible defaults.
"""

import os
import torch
from dotenv import load_dotenv

# Load environment variables from .env file for local development
load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class Config:
    """Application configuration loaded from environment variables."""

    # Server Configuration
    HOST = os.getenv("HOST", "0.0.0.0")
    PORT = int(os.getenv("PORT", "8080"))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    MAX_CONCURRENT_REQUESTS = int(os.getenv("MAX_CONCURRENT_REQUESTS", "50"))
    REQUEST_TIMEOUT = int(os.getenv("REQUEST_TIMEOUT", "300"))
    CORS_ORIGINS = [
        origin.strip()
        for origin in os.getenv("CORS_ORIGINS", "*").split(",")
        if origin.strip()
    ]

    # Upload Configuration
    MAX_UPLOAD_MB = float(os.getenv("MAX_UPLOAD_MB", "512"))

    # Pickled nn.Sequential archives execute code on load; disable for untrusted uploads
    ALLOW_PICKLED_MODELS = _env_flag("ALLOW_PICKLED_MODELS", "true")

    # Inference Configuration
    # When false, a declared input missing from the request becomes an empty vector
    STRICT_INPUTS = _env_flag("STRICT_INPUTS", "false")

    # Inspection Configuration
    HISTOGRAM_BINS = int(os.getenv("HISTOGRAM_BINS", "20"))

    # Local development mode flag
    IS_LOCAL = _env_flag("LOCAL_DEV", "false")

    # Device Configuration
    if os.getenv("DEVICE"):
        DEVICE = os.getenv("DEVICE")
    elif torch.backends.mps.is_available() and torch.backends.mps.is_built():
        DEVICE = "mps"
    elif torch.cuda.is_available():
        DEVICE = "cuda"
    else:
        DEVICE = "cpu"

    @staticmethod
    def get_max_concurrent() -> int:
        """Get max concurrent inference calls based on environment."""
        if Config.IS_LOCAL:
            return 1  # Only 1 concurrent request for local testing
        return Config.MAX_CONCURRENT_REQUESTS

    @staticmethod
    def max_upload_bytes() -> int:
        """Upload size limit in bytes."""
        return int(Config.MAX_UPLOAD_MB * 1024 * 1024)


# Global config instance
config = Config()
