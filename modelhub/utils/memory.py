"""
Memory monitoring utilities for loaded models.

This module provides utilities for:
- Monitoring system RAM
- Calculating the parameter and buffer footprint of a loaded module
- Releasing accelerator caches after a model is dropped
"""

import psutil
import torch

from .logging import get_logger

logger = get_logger(__name__)


def get_available_system_memory() -> float:
    """
    Get available system RAM in GB.

    Returns:
        Available RAM in GB
    """
    try:
        vm = psutil.virtual_memory()
        available_gb = vm.available / (1024**3)
        total_gb = vm.total / (1024**3)

        logger.debug(f"System RAM: {available_gb:.2f}GB free of {total_gb:.2f}GB total")
        return available_gb

    except Exception as e:
        logger.warning(f"Error getting system memory: {e}")
        return 0.0


def get_model_actual_memory(model: torch.nn.Module) -> int:
    """Bytes held by the parameters and buffers of a loaded module."""
    param_size = sum(p.nelement() * p.element_size() for p in model.parameters())
    buffer_size = sum(b.nelement() * b.element_size() for b in model.buffers())
    return param_size + buffer_size


def clear_gpu_cache(device: str) -> None:
    """Release cached accelerator memory for the device models were mapped onto."""
    device_type = torch.device(device).type
    try:
        if device_type == "cuda" and torch.cuda.is_available():
            torch.cuda.empty_cache()
            logger.debug("Cleared CUDA cache")
        elif device_type == "mps" and torch.backends.mps.is_available():
            torch.mps.empty_cache()
            logger.debug("Cleared MPS cache")
    except RuntimeError as e:
        logger.warning(f"Error clearing GPU cache: {e}")


def format_memory_size(size_bytes: int) -> str:
    """
    Format a byte count for log lines.

    Registered models range from a few hundred bytes (the sample network) to
    gigabytes, so the unit is picked per value: "108B", "1.50KB", "2.00GB".
    """
    if size_bytes < 1024:
        return f"{size_bytes}B"
    size = float(size_bytes)
    for unit in ("KB", "MB", "GB"):
        size /= 1024
        if size < 1024 or unit == "GB":
            break
    return f"{size:.2f}{unit}"
