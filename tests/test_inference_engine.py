# tests/test_inference_engine.py
"""
Tests for tensor shaping and forward passes.
"""
import asyncio
import math

import pytest
import torch
from torch import nn

from modelhub.core import formats
from modelhub.core.errors import InferenceError, MissingInputError, NotFoundError
from modelhub.core.inference_engine import InferenceEngine


class TestSequentialInference:
    """Models fed through the fixed ``input`` key."""

    @pytest.mark.parametrize(
        "vector",
        [
            [0.0, 0.0, 0.0, 0.0],
            [1.0, 2.0, 3.0, 4.0],
            [-5.0, 0.25, 10.0, -0.5],
            [1e3, -1e3, 42.0, 7.0],
        ],
    )
    def test_sample_output_is_softmax(self, engine, sample_model, vector):
        output = engine.infer(sample_model, {"input": vector})

        assert len(output) == 3
        assert all(0.0 <= v <= 1.0 for v in output)
        assert math.isclose(sum(output), 1.0, rel_tol=1e-5)

    def test_uploaded_sequential(self, store, engine, sequential_bytes):
        model = store.load(sequential_bytes)
        output = engine.infer(model, {"input": [0.1, 0.2, 0.3, 0.4]})

        assert len(output) == 2
        assert all(-1.0 <= v <= 1.0 for v in output)

    def test_extra_inputs_are_ignored(self, engine, sample_model):
        output = engine.infer(sample_model, {"input": [1.0, 1.0, 1.0, 1.0], "other": [9.0]})

        assert len(output) == 3

    def test_wrong_length_is_inference_error(self, engine, sample_model):
        with pytest.raises(InferenceError, match=sample_model.id):
            engine.infer(sample_model, {"input": [1.0, 2.0]})

    def test_missing_input_is_framework_error(self, store, engine, sample_model):
        with pytest.raises(InferenceError) as excinfo:
            engine.infer(sample_model, {"wrong_key": [1.0, 2.0, 3.0, 4.0]})

        # the failure comes from the forward pass, not from bookkeeping
        assert not isinstance(excinfo.value, MissingInputError)
        assert excinfo.value.__cause__ is not None
        assert store.get(sample_model.id) is sample_model

    def test_inference_does_not_mutate_model(self, engine, sample_model):
        vector = {"input": [0.3, 0.1, -0.4, 2.0]}

        first = engine.infer(sample_model, vector)
        second = engine.infer(sample_model, vector)

        assert first == second

    def test_overflowing_inputs_are_rejected(self, engine, sample_model):
        with pytest.raises(InferenceError, match="non-finite"):
            engine.infer(sample_model, {"input": [1e300, -1e300, 1e300, -1e300]})

    def test_double_precision_model_keeps_its_dtype(self, store, engine):
        torch.manual_seed(0)
        net = nn.Sequential(nn.Linear(2, 1)).double()
        model = store.load(formats.save_sequential(net))

        output = engine.infer(model, {"input": [1e200, -1e200]})

        assert len(output) == 1
        assert math.isfinite(output[0])


class TestGraphInference:
    """Models fed one tensor per declared input name."""

    def test_named_inputs(self, store, engine, graph_bytes):
        model = store.load(graph_bytes)
        output = engine.infer(model, {"b": [1.0, 2.0, 3.0], "a": [0.5, -0.5]})

        assert len(output) == 1

    def test_missing_named_input_is_inference_error(self, store, engine, graph_bytes):
        model = store.load(graph_bytes)

        with pytest.raises(InferenceError):
            engine.infer(model, {"a": [0.5, -0.5]})
        assert store.get(model.id) is model

    def test_multiple_outputs_rejected(self, store, engine, pair_graph_bytes):
        model = store.load(pair_graph_bytes)

        with pytest.raises(InferenceError, match="single tensor"):
            engine.infer(model, {"x": [1.0, 2.0]})


class TestStrictInputs:
    """Strict mode reports absent inputs before any tensor is built."""

    def test_missing_inputs_listed(self, store, graph_bytes):
        strict_engine = InferenceEngine(store, strict_inputs=True)
        model = store.load(graph_bytes)

        with pytest.raises(MissingInputError) as excinfo:
            strict_engine.infer(model, {"a": [0.5, -0.5]})

        assert excinfo.value.missing == ["b"]
        assert excinfo.value.model_id == model.id

    def test_complete_inputs_pass(self, store, sample_model):
        strict_engine = InferenceEngine(store, strict_inputs=True)

        output = strict_engine.infer(sample_model, {"input": [1.0, 2.0, 3.0, 4.0]})

        assert len(output) == 3


class TestInferById:
    """Async entry point used by the HTTP layer."""

    def test_resolves_id(self, engine, sample_model):
        output = asyncio.run(engine.infer_by_id(sample_model.id, {"input": [1.0, 0.0, 0.0, 1.0]}))

        assert len(output) == 3

    def test_unknown_id(self, engine):
        with pytest.raises(NotFoundError):
            asyncio.run(engine.infer_by_id("missing", {"input": [1.0]}))
