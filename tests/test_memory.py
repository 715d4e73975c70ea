# tests/test_memory.py
"""
Tests for model footprint accounting.
"""
import pytest

from modelhub.utils import memory


def test_sample_footprint(sample_model):
    # 27 float32 parameters, no buffers
    assert memory.get_model_actual_memory(sample_model.module) == 27 * 4


@pytest.mark.parametrize(
    "size, expected",
    [
        (108, "108B"),
        (1536, "1.50KB"),
        (5 * 1024**2, "5.00MB"),
        (3 * 1024**3, "3.00GB"),
        (4096 * 1024**3, "4096.00GB"),
    ],
)
def test_format_memory_size(size, expected):
    assert memory.format_memory_size(size) == expected


def test_clear_cache_on_cpu_is_noop():
    memory.clear_gpu_cache("cpu")
