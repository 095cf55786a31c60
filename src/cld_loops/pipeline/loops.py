from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..graph.builder import build_graph, node_labels
from ..graph.loops import (
    canonical_key,
    classify_polarity,
    cycle_edges,
    dedupe_cycles,
    describe_cycle,
    enumerate_cycles,
    to_stella_string,
)
from ..graph.weights import make_pairwise_weight
from ..types import Loop, LoopAnalysis, LoopEdge, Polarity, ScoringCoefficients
from .scoring import factor_frequency, round3, score_loops

logger = logging.getLogger(__name__)

SORT_KEYS = [
    "normalized_weighted_loop_value",
    "weighted_loop_value",
    "normalized_composite_value",
    "adjusted_composite_value",
    "raw_composite_value",
    "steering_factor_count",
    "normalized_steering_factor_count",
    "conditional_independence_value",
    "normalized_overlap",
    "total_overlap",
    "length",
]


def _pairwise_details(cycle: List[str], weight: Callable[[str, str], float], labels: Dict[str, str]) -> str:
    details = []
    for a, b in cycle_edges(cycle):
        w = round3(weight(a, b))
        if w is not None:
            details.append(f"{labels.get(a, a)}→{labels.get(b, b)}: {w:g}")
    return ", ".join(details)


def compute_loops(
    nodes: Iterable[Any],
    edges: Iterable[Any],
    *,
    alpha: float = 0.5,
    steering_factors: Iterable[str] = (),
    coefficients: Optional[ScoringCoefficients] = None,
    use_adjusted_independence: bool = False,
    max_len: int = 8,
    top_k: int = 1000,
    min_length: int = 2,
    weight: Optional[Callable[[str, str], float]] = None,
    should_cancel: Optional[Callable[[], bool]] = None,
) -> LoopAnalysis:
    """Find, classify and rank the feedback loops of a causal loop diagram.

    ``weight`` overrides the default ``alpha*impact + (1-alpha)*control``
    pairwise weight. The returned analysis is built fresh on every call.
    """
    analysis = LoopAnalysis(max_length=max_len, top_k=top_k)

    G = build_graph(nodes, edges)
    if G.number_of_edges() == 0:
        if G.number_of_nodes():
            analysis.notes.append("Diagram has no usable influences; loop detection skipped.")
        else:
            analysis.notes.append("Diagram contains no factors; loop detection skipped.")
        return analysis

    labels = node_labels(G)
    if weight is None:
        weight = make_pairwise_weight(G, alpha)

    logger.debug(
        f"Searching loops over {G.number_of_nodes()} factors and {G.number_of_edges()} influences"
    )
    found = enumerate_cycles(
        G, max_len, top_k, min_length=min_length, should_cancel=should_cancel
    )
    analysis.truncated = found.truncated
    analysis.cancelled = found.cancelled
    if found.truncated:
        analysis.notes.append(f"Truncated loop detection after {top_k} loops.")
    if found.cancelled:
        analysis.notes.append("Loop detection cancelled; results are partial.")

    cycles = dedupe_cycles(found.cycles)
    cycles.sort(key=lambda c: (len(c), describe_cycle(c, labels)))

    steering = list(dict.fromkeys(s for s in steering_factors or () if s is not None))
    frequency = factor_frequency(cycles)
    scores = score_loops(
        cycles,
        weight,
        steering_factors=steering,
        coefficients=coefficients,
        use_adjusted_independence=use_adjusted_independence,
        frequency=frequency,
    )

    for idx, (cycle, score) in enumerate(zip(cycles, scores), start=1):
        polarity = classify_polarity(cycle, G)
        loop_edges = []
        for a, b in cycle_edges(cycle):
            data = G.edges[a, b]
            loop_edges.append(
                LoopEdge(
                    source=a,
                    target=b,
                    sign=data.get("sign"),
                    impact=data.get("impact"),
                    control=data.get("control"),
                    weight=round3(weight(a, b)),
                )
            )
        analysis.loops.append(
            Loop(
                id=f"L{idx:02d}",
                nodes=list(cycle),
                labels=[labels[n] for n in cycle],
                edges=loop_edges,
                length=len(cycle),
                canonical_key=canonical_key(cycle),
                polarity=polarity.polarity,
                negative_edges=polarity.negative_edges,
                description=describe_cycle(cycle, labels),
                stella=to_stella_string(cycle, G, labels),
                pairwise_details=_pairwise_details(cycle, weight, labels),
                **vars(score),
            )
        )

    analysis.factor_frequency = frequency
    logger.info(f"Identified {len(analysis.loops)} loops")
    return analysis


def sort_loops(loops: Iterable[Loop], key: str = "normalized_weighted_loop_value", descending: bool = True) -> List[Loop]:
    """Sort loops by a field; loops where the field is None always go last."""
    loops = list(loops)
    present = [lp for lp in loops if getattr(lp, key) is not None]
    missing = [lp for lp in loops if getattr(lp, key) is None]
    present.sort(key=lambda lp: getattr(lp, key), reverse=descending)
    return present + missing


def polarity_first(
    loops: Iterable[Loop], first: str = Polarity.REINFORCING.value, keep_order: bool = False
) -> List[Loop]:
    """Put one polarity first, the other second and uncoded loops last.

    Within a polarity loops go by length then label, or keep their incoming
    order when ``keep_order`` is set.
    """
    first = Polarity(first)
    if first == Polarity.UNCODED:
        raise ValueError("first must be reinforcing or balancing")
    second = Polarity.BALANCING if first == Polarity.REINFORCING else Polarity.REINFORCING
    rank = {first: 0, second: 1, Polarity.UNCODED: 2}
    if keep_order:
        return sorted(loops, key=lambda lp: rank[lp.polarity])
    return sorted(loops, key=lambda lp: (rank[lp.polarity], lp.length, lp.description))


def filter_loops(loops: Iterable[Loop], text: str) -> List[Loop]:
    """Keep loops with a node whose label or id contains ``text``."""
    term = (text or "").strip().lower()
    if not term:
        return list(loops)
    return [
        lp
        for lp in loops
        if any(term in name.lower() for name in list(lp.labels) + list(lp.nodes))
    ]


def loops_by_polarity(analysis: LoopAnalysis) -> Dict[str, List[Loop]]:
    buckets: Dict[str, List[Loop]] = {p.value: [] for p in Polarity}
    for lp in analysis.loops:
        buckets[lp.polarity.value].append(lp)
    return buckets
