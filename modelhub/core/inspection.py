"""Layer and weight statistics for loaded models."""

from typing import Dict, Iterator, List, Optional, Set, Tuple

import torch
from torch import nn

from ..models.responses import HistogramBin, LayerInfo, WeightStat

_SHAPE_ATTRS = (
    ("in_features", "out_features"),
    ("in_channels", "out_channels"),
)


def iter_layers(module: nn.Module) -> Iterator[Tuple[str, nn.Module]]:
    """
    Yield ``(name, submodule)`` for every submodule that owns parameters.

    Activation and container modules own none and are skipped, so a
    ``Linear -> ReLU -> Linear`` chain has two layers.
    """
    for name, submodule in module.named_modules():
        if next(iter(submodule.parameters(recurse=False)), None) is not None:
            yield name, submodule


def count_layers(module: nn.Module) -> int:
    return sum(1 for _ in iter_layers(module))


def count_parameters(module: nn.Module) -> int:
    return sum(p.numel() for p in module.parameters())


def layer_type(module: nn.Module) -> str:
    # TorchScript modules keep their eager class name in ``original_name``
    return getattr(module, "original_name", type(module).__name__)


def weight_stat(group: str, values: torch.Tensor, bins: int) -> WeightStat:
    """Summary statistics and an equal-width histogram of one parameter tensor."""
    flat = values.detach().reshape(-1).to(device="cpu", dtype=torch.float32)
    if flat.numel() == 0:
        return WeightStat(
            group=group, min=0.0, max=0.0, mean=0.0, std_dev=0.0, num_values=0, histogram=[]
        )

    low = flat.min().item()
    high = flat.max().item()
    if low == high:
        # histc needs a non-empty range
        edges_low, edges_high = low - 0.5, high + 0.5
    else:
        edges_low, edges_high = low, high

    counts = torch.histc(flat, bins=bins, min=edges_low, max=edges_high)
    edges = torch.linspace(edges_low, edges_high, bins + 1)
    histogram = [
        HistogramBin(min=edges[i].item(), max=edges[i + 1].item(), count=int(counts[i].item()))
        for i in range(bins)
    ]

    return WeightStat(
        group=group,
        min=low,
        max=high,
        mean=flat.mean().item(),
        std_dev=flat.std(correction=0).item(),
        num_values=flat.numel(),
        histogram=histogram,
    )


def layer_shapes(module: nn.Module) -> Tuple[Optional[int], Optional[int]]:
    """Input and output feature sizes of a layer, when it declares them."""
    for in_attr, out_attr in _SHAPE_ATTRS:
        in_size = getattr(module, in_attr, None)
        out_size = getattr(module, out_attr, None)
        if isinstance(in_size, int) and isinstance(out_size, int):
            return in_size, out_size

    # weight layout is (out, in, ...) for linear and convolution layers
    weight = dict(module.named_parameters(recurse=False)).get("weight")
    if weight is not None and weight.dim() >= 2:
        return int(weight.shape[1]), int(weight.shape[0])
    return None, None


def _chain_edges(names: List[str]) -> Set[Tuple[str, str]]:
    return set(zip(names, names[1:]))


class _GraphWalk:
    """
    Data flow between layer calls in a TorchScript ``forward`` graph.

    Submodules are resolved through ``prim::GetAttr`` chains rooted at
    ``self``. A ``prim::CallMethod`` on a layer consumes the layers that fed
    its arguments; calls on containers are followed into their own graphs.
    Every other node passes the union of its inputs' sources through.
    """

    def __init__(self, layer_names: Set[str]):
        self.layer_names = layer_names
        self.edges: Set[Tuple[str, str]] = set()

    def run(self, module, prefix: str, arg_sources: List[Set[str]]) -> Set[str]:
        graph = module.graph
        graph_inputs = list(graph.inputs())
        sources: Dict[str, Set[str]] = {}
        modules: Dict[str, Tuple[str, nn.Module]] = {
            graph_inputs[0].debugName(): (prefix, module)
        }
        for value, value_sources in zip(graph_inputs[1:], arg_sources):
            sources[value.debugName()] = value_sources

        self._walk(graph.nodes(), sources, modules)
        return self._union(graph.outputs(), sources)

    @staticmethod
    def _union(values, sources: Dict[str, Set[str]]) -> Set[str]:
        result: Set[str] = set()
        for value in values:
            result |= sources.get(value.debugName(), set())
        return result

    def _walk(self, nodes, sources, modules) -> None:
        for node in nodes:
            kind = node.kind()
            node_inputs = list(node.inputs())

            if kind == "prim::GetAttr":
                owner = modules.get(node_inputs[0].debugName())
                if owner is not None:
                    attr = node.s("name")
                    child = getattr(owner[1], attr, None)
                    if isinstance(child, nn.Module):
                        qualified = f"{owner[0]}.{attr}" if owner[0] else attr
                        modules[node.output().debugName()] = (qualified, child)
                        continue

            if kind == "prim::CallMethod" and node.s("name") == "forward":
                target = modules.get(node_inputs[0].debugName())
                if target is not None:
                    qualified, child = target
                    args = [sources.get(v.debugName(), set()) for v in node_inputs[1:]]
                    if qualified in self.layer_names:
                        for source in set().union(*args):
                            self.edges.add((source, qualified))
                        produced = {qualified}
                    else:
                        produced = self.run(child, qualified, args)
                    for value in node.outputs():
                        sources[value.debugName()] = produced
                    continue

            produced = self._union(node_inputs, sources)
            for block in node.blocks():
                self._walk(block.nodes(), sources, modules)
                produced |= self._union(block.outputs(), sources)
            for value in node.outputs():
                sources[value.debugName()] = produced


def layer_edges(module: nn.Module, names: List[str]) -> Set[Tuple[str, str]]:
    """
    ``(producer, consumer)`` pairs between the named layers of a model.

    TorchScript modules are walked along their ``forward`` graph. Eager
    modules are sequential, so each layer feeds the next one.
    """
    if isinstance(module, torch.jit.ScriptModule):
        walk = _GraphWalk(set(names))
        walk.run(module, "", [set() for _ in list(module.graph.inputs())[1:]])
        return walk.edges
    return _chain_edges(names)


def describe_layers(module: nn.Module, bins: int = 20) -> List[LayerInfo]:
    """
    Describe every parameterized layer of a model.

    Args:
        module: Eager or TorchScript module
        bins: Number of histogram bins per parameter group

    Returns:
        One LayerInfo per layer, in module registration order, with the
        layers feeding it (``inbound``) and fed by it (``outbound``)
    """
    found = list(iter_layers(module))
    names = [name for name, _ in found]
    order = {name: index for index, name in enumerate(names)}
    edges = layer_edges(module, names)

    layers = []
    for name, submodule in found:
        weights = [
            weight_stat(group, param, bins)
            for group, param in submodule.named_parameters(recurse=False)
        ]
        input_shape, output_shape = layer_shapes(submodule)
        inbound = sorted((src for src, dst in edges if dst == name), key=order.get)
        outbound = sorted((dst for src, dst in edges if src == name), key=order.get)
        layers.append(
            LayerInfo(
                name=name or layer_type(submodule),
                layer_type=layer_type(submodule),
                num_parameters=sum(w.num_values for w in weights),
                input_shape=input_shape,
                output_shape=output_shape,
                inbound=inbound,
                outbound=outbound,
                weights=weights,
            )
        )
    return layers
