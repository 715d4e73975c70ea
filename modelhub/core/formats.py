"""
Serialization formats for the two supported model kinds.

Graph-structured models are TorchScript archives: self-describing, loadable
without the defining Python classes, with named ``forward`` arguments that
become the model's declared inputs. Output names are carried in an
``output_names`` extra file inside the archive.

Sequential models are pickled ``torch.nn.Sequential`` networks. Unpickling
runs arbitrary code, so this path can be disabled through
``ALLOW_PICKLED_MODELS``.
"""

from __future__ import annotations

import io
import json
from collections import OrderedDict
from typing import Sequence, Tuple, Union

import torch
from torch import nn

from ..utils.logging import get_logger

logger = get_logger(__name__)

OUTPUT_NAMES_FILE = "output_names"
DEFAULT_OUTPUT_NAMES = ("output",)
SEQUENTIAL_INPUT_NAMES = ("input",)
SEQUENTIAL_OUTPUT_NAMES = ("output",)

Device = Union[str, torch.device]


def _freeze(module: nn.Module) -> nn.Module:
    """Switch to eval mode and disable grads."""
    module.eval()
    for p in module.parameters():
        p.requires_grad_(False)
    return module


def graph_input_names(module: torch.jit.ScriptModule) -> Tuple[str, ...]:
    """Names of the scripted ``forward`` arguments, ``self`` excluded."""
    arguments = module.forward.schema.arguments
    return tuple(arg.name for arg in arguments[1:])


def _decode_output_names(raw: Union[str, bytes]) -> Tuple[str, ...]:
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    if not raw:
        return DEFAULT_OUTPUT_NAMES

    try:
        names = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning(f"Ignoring malformed {OUTPUT_NAMES_FILE} entry: {raw!r}")
        return DEFAULT_OUTPUT_NAMES

    if not isinstance(names, list) or not names or not all(isinstance(n, str) for n in names):
        logger.warning(f"Ignoring malformed {OUTPUT_NAMES_FILE} entry: {raw!r}")
        return DEFAULT_OUTPUT_NAMES
    return tuple(names)


def load_graph(
    data: bytes, device: Device = "cpu"
) -> Tuple[torch.jit.ScriptModule, Tuple[str, ...], Tuple[str, ...]]:
    """
    Deserialize a TorchScript archive.

    Args:
        data: Raw archive bytes
        device: Device to map the module's tensors onto

    Returns:
        Tuple of (module, input_names, output_names)

    Raises:
        RuntimeError: If the bytes are not a TorchScript archive
    """
    extra_files = {OUTPUT_NAMES_FILE: ""}
    module = torch.jit.load(io.BytesIO(data), map_location=device, _extra_files=extra_files)
    _freeze(module)

    input_names = graph_input_names(module)
    output_names = _decode_output_names(extra_files[OUTPUT_NAMES_FILE])
    logger.debug(f"TorchScript graph inputs={input_names} outputs={output_names}")
    return module, input_names, output_names


def load_sequential(data: bytes, device: Device = "cpu") -> nn.Sequential:
    """
    Deserialize a pickled ``torch.nn.Sequential``.

    Raises:
        TypeError: If the archive holds anything other than a Sequential network
    """
    loaded_obj = torch.load(io.BytesIO(data), map_location=device, weights_only=False)
    logger.debug(f"Loaded object type: {type(loaded_obj).__name__}")

    if not isinstance(loaded_obj, nn.Sequential):
        raise TypeError(
            f"expected a torch.nn.Sequential, got {type(loaded_obj).__name__}"
        )
    return _freeze(loaded_obj)


def build_sample_network(device: Device = "cpu") -> nn.Sequential:
    """
    Build the untrained smoke-test network.

    4 inputs -> 3 hidden units (ReLU) -> 3 outputs (softmax). Weights keep
    their random initialization.
    """
    net = nn.Sequential(
        OrderedDict(
            [
                ("dense", nn.Linear(4, 3)),
                ("relu", nn.ReLU()),
                ("output", nn.Linear(3, 3)),
                ("softmax", nn.Softmax(dim=1)),
            ]
        )
    )
    return _freeze(net.to(device))


def save_graph(module: nn.Module, output_names: Sequence[str] = DEFAULT_OUTPUT_NAMES) -> bytes:
    """Serialize a module as a TorchScript archive, scripting it first if needed."""
    if not isinstance(module, torch.jit.ScriptModule):
        module = torch.jit.script(module)

    buffer = io.BytesIO()
    torch.jit.save(
        module,
        buffer,
        _extra_files={OUTPUT_NAMES_FILE: json.dumps(list(output_names))},
    )
    return buffer.getvalue()


def save_sequential(module: nn.Sequential) -> bytes:
    """Serialize a Sequential network with ``torch.save``."""
    buffer = io.BytesIO()
    torch.save(module, buffer)
    return buffer.getvalue()
