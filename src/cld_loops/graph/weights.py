"""Pairwise edge weights: W = alpha*I + (1 - alpha)*C."""
from __future__ import annotations

import math
from typing import Any, Callable, Dict

import networkx as nx

PairwiseWeight = Callable[[str, str], float]


def _finite_or_zero(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def pairwise_weight(impact: Any, control: Any, alpha: Any) -> float:
    """Blend impact and control; missing values count as 0."""
    a = _finite_or_zero(alpha)
    return a * _finite_or_zero(impact) + (1 - a) * _finite_or_zero(control)


def make_pairwise_weight(G: nx.DiGraph, alpha: float = 0.5) -> PairwiseWeight:
    """Return ``weight(a, b)`` over the graph's edges. Absent edges weigh 0."""

    def weight(a: str, b: str) -> float:
        if not G.has_edge(a, b):
            return 0.0
        data = G.edges[a, b]
        return pairwise_weight(data.get("impact"), data.get("control"), alpha)

    return weight


def weight_matrix(G: nx.DiGraph, alpha: float = 0.5) -> Dict[str, Dict[str, float]]:
    """Direct dependency matrix of pairwise weights, diagonal excluded."""
    weight = make_pairwise_weight(G, alpha)
    nodes = sorted(G.nodes)
    return {
        src: {dst: weight(src, dst) for dst in nodes if dst != src}
        for src in nodes
    }
