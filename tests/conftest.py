# tests/conftest.py
"""
Pytest configuration and shared fixtures for model hub tests.
"""
from typing import Tuple

import pytest
import torch
from fastapi.testclient import TestClient
from torch import nn

from modelhub.api.app import create_app
from modelhub.core import formats
from modelhub.core.inference_engine import InferenceEngine
from modelhub.core.model_store import ModelStore


# ---------------------------------------------------------------------------
# Tiny models
# ---------------------------------------------------------------------------


class TwoBranchNet(nn.Module):
    """Graph model with named inputs ``a`` (2 values) and ``b`` (3 values)."""

    def __init__(self):
        super().__init__()
        self.branch_a = nn.Linear(2, 2)
        self.branch_b = nn.Linear(3, 2)
        self.head = nn.Linear(4, 1)

    def forward(self, a: torch.Tensor, b: torch.Tensor) -> torch.Tensor:
        merged = torch.cat([torch.relu(self.branch_a(a)), torch.relu(self.branch_b(b))], dim=1)
        return self.head(merged)


class PairNet(nn.Module):
    """Graph model returning two tensors."""

    def forward(self, x: torch.Tensor) -> Tuple[torch.Tensor, torch.Tensor]:
        return x, x * 2


# ---------------------------------------------------------------------------
# Fixtures: serialized models
# ---------------------------------------------------------------------------


@pytest.fixture
def graph_bytes() -> bytes:
    """TorchScript archive with inputs (a, b) and output y."""
    torch.manual_seed(0)
    return formats.save_graph(TwoBranchNet(), output_names=["y"])


@pytest.fixture
def pair_graph_bytes() -> bytes:
    """TorchScript archive whose forward returns two tensors."""
    return formats.save_graph(PairNet(), output_names=["x", "double_x"])


@pytest.fixture
def sequential_bytes() -> bytes:
    """Pickled nn.Sequential mapping 4 values to 2."""
    torch.manual_seed(0)
    net = nn.Sequential(nn.Linear(4, 2), nn.Tanh())
    return formats.save_sequential(net)


# ---------------------------------------------------------------------------
# Fixtures: store, engine, HTTP client
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> ModelStore:
    """Empty CPU store with the pickle fallback enabled."""
    return ModelStore(device="cpu", allow_pickled=True)


@pytest.fixture
def engine(store: ModelStore) -> InferenceEngine:
    """Lenient inference engine over the test store."""
    return InferenceEngine(store, strict_inputs=False)


@pytest.fixture
def sample_model(store: ModelStore):
    """The registered smoke-test network."""
    return store.create_sample()


@pytest.fixture
def client(store: ModelStore):
    """HTTP client bound to an app serving the test store."""
    with TestClient(create_app(model_store=store)) as test_client:
        yield test_client
