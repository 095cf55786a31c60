"""
Factor Classification

Active/passive influence of each factor, derived from the impact and
control scores on its outgoing (active) and incoming (passive) edges,
and its quadrant on the passive (x) / active (y) plane.
"""
from __future__ import annotations

import math
from typing import Any, Dict, Iterable, List, Optional

from ..graph.builder import coerce_edges, coerce_nodes
from ..graph.weights import pairwise_weight
from ..types import FactorMetrics
from .scoring import round3

QUADRANTS = {
    (True, False): "steering",
    (True, True): "ambivalent",
    (False, False): "autonomous",
    (False, True): "measuring",
}


def factor_letter(index: int) -> str:
    """0 -> A, 25 -> Z, 26 -> AA."""
    n = index + 1
    letter = ""
    while n > 0:
        rem = (n - 1) % 26
        letter = chr(65 + rem) + letter
        n = (n - 1) // 26
    return letter


def _min_max_percent(value: float, low: float, high: float) -> Optional[float]:
    if not math.isfinite(value):
        return None
    if high > low:
        return round3((value - low) / (high - low) * 100)
    return 100.0


def _midpoint(values: List[float]) -> float:
    low, high = min(values), max(values)
    if low == high:
        low, high = low - 1, high + 1
    return (low + high) / 2


def classify_factors(nodes: Iterable[Any], edges: Iterable[Any], alpha: float = 0.5) -> List[FactorMetrics]:
    """Compute AIV/PIV/ACV/PCV, weighted values and quadrant for every node.

    Unlike loop search, every edge between known nodes counts here,
    parallel edges included. Missing scores count as 0.
    """
    node_models = coerce_nodes(nodes)
    sums: Dict[str, Dict[str, float]] = {
        n.id: {"aiv": 0.0, "piv": 0.0, "acv": 0.0, "pcv": 0.0} for n in node_models
    }
    for edge in coerce_edges(edges):
        impact = abs(edge.impact or 0.0)
        control = abs(edge.control or 0.0)
        if edge.source in sums:
            sums[edge.source]["aiv"] += impact
            sums[edge.source]["acv"] += control
        if edge.target in sums:
            sums[edge.target]["piv"] += impact
            sums[edge.target]["pcv"] += control

    factors: List[FactorMetrics] = []
    for idx, node in enumerate(node_models):
        m = sums[node.id]
        factors.append(
            FactorMetrics(
                id=node.id,
                letter=factor_letter(idx),
                label=node.display(),
                aiv=m["aiv"],
                piv=m["piv"],
                acv=m["acv"],
                pcv=m["pcv"],
                raw_weighted_active_value=pairwise_weight(m["aiv"], m["acv"], alpha),
                raw_weighted_passive_value=pairwise_weight(m["piv"], m["pcv"], alpha),
            )
        )

    if not factors:
        return factors

    active = [f.raw_weighted_active_value for f in factors]
    passive = [f.raw_weighted_passive_value for f in factors]
    mid_active = _midpoint(active)
    mid_passive = _midpoint(passive)
    for f in factors:
        f.normalized_weighted_active_value = _min_max_percent(
            f.raw_weighted_active_value, min(active), max(active)
        )
        f.normalized_weighted_passive_value = _min_max_percent(
            f.raw_weighted_passive_value, min(passive), max(passive)
        )
        high_active = f.raw_weighted_active_value > mid_active
        high_passive = f.raw_weighted_passive_value > mid_passive
        f.quadrant = QUADRANTS[(high_active, high_passive)]
    return factors
