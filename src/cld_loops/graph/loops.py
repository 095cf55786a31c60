from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence

import networkx as nx

from ..types import Polarity

logger = logging.getLogger(__name__)

Cycle = List[str]

_PLAIN_LABEL = re.compile(r"^[A-Za-z0-9_\-/]*$")


@dataclass
class CycleEnumeration:
    cycles: List[Cycle] = field(default_factory=list)
    truncated: bool = False
    cancelled: bool = False


@dataclass
class PolarityResult:
    polarity: Polarity
    negative_edges: int


def enumerate_cycles(
    G: nx.DiGraph,
    max_len: int = 8,
    top_k: int = 1000,
    *,
    min_length: int = 2,
    should_cancel: Optional[Callable[[], bool]] = None,
) -> CycleEnumeration:
    """Enumerate simple directed cycles with a least-vertex-rooted DFS.

    Vertices are ordered by id. A search rooted at ``s`` only walks to
    vertices ordered at or after ``s``, so each cycle is reported from its
    smallest vertex. Paths longer than ``max_len`` are pruned and the search
    stops at the first cycle found beyond ``top_k``, which sets ``truncated``.
    ``should_cancel`` is polled on every step; when it returns True the
    search stops and the cycles found so far come back flagged ``cancelled``.
    """
    min_length = max(2, min_length)
    result = CycleEnumeration()
    if top_k <= 0 or max_len < min_length:
        return result

    order = sorted(G.nodes)
    index = {v: i for i, v in enumerate(order)}

    for root in order:
        root_idx = index[root]
        path: Cycle = [root]
        on_path = {root}
        stack = [iter(G.successors(root))]

        while stack:
            if should_cancel is not None and should_cancel():
                result.cancelled = True
                logger.info(f"Cycle search cancelled after {len(result.cycles)} cycles")
                return result

            w = next(stack[-1], None)
            if w is None:
                stack.pop()
                on_path.discard(path.pop())
                continue
            if index[w] < root_idx:
                continue
            if w == root:
                if len(path) >= min_length:
                    if len(result.cycles) >= top_k:
                        result.truncated = True
                        logger.warning(f"Cycle search stopped at the top-K cap ({top_k})")
                        return result
                    result.cycles.append(list(path))
                continue
            if w in on_path:
                continue
            if len(path) + 1 > max_len:
                continue
            path.append(w)
            on_path.add(w)
            stack.append(iter(G.successors(w)))

    return result


def canonical_key(cycle: Sequence[str], sep: str = ">") -> str:
    """Smallest joined rotation of the cycle. Direction is preserved."""
    if not cycle:
        return ""
    items = list(cycle)
    return min(sep.join(items[i:] + items[:i]) for i in range(len(items)))


def dedupe_cycles(cycles: Iterable[Sequence[str]]) -> List[Cycle]:
    seen = set()
    unique: List[Cycle] = []
    for cycle in cycles:
        key = canonical_key(cycle)
        if key in seen:
            continue
        seen.add(key)
        unique.append(list(cycle))
    return unique


def cycle_edges(cycle: Sequence[str]) -> List[tuple]:
    """Consecutive (a, b) pairs including the wrap-around pair."""
    n = len(cycle)
    return [(cycle[i], cycle[(i + 1) % n]) for i in range(n)]


def classify_polarity(cycle: Sequence[str], G: nx.DiGraph) -> PolarityResult:
    """Parity of negative signs; any unknown sign makes the loop uncoded."""
    negative = 0
    unknown = False
    for a, b in cycle_edges(cycle):
        sign = G.edges[a, b].get("sign") if G.has_edge(a, b) else None
        if sign == "-":
            negative += 1
        elif sign != "+":
            unknown = True

    if unknown:
        return PolarityResult(Polarity.UNCODED, negative)
    if negative % 2 == 0:
        return PolarityResult(Polarity.REINFORCING, negative)
    return PolarityResult(Polarity.BALANCING, negative)


def describe_cycle(cycle: Sequence[str], labels: Optional[Dict[str, str]] = None) -> str:
    """Render ``A → B → C → A``."""
    if not cycle:
        return ""
    labels = labels or {}
    names = [labels.get(n, n) for n in cycle]
    return " → ".join(names + [names[0]])


def _stella_label(name: str) -> str:
    return name if _PLAIN_LABEL.match(name) else f'"{name}"'


def to_stella_string(
    cycle: Sequence[str], G: nx.DiGraph, labels: Optional[Dict[str, str]] = None
) -> str:
    """Render the loop as ``A ->(+) B ->(-) C ->(+) A``; unsigned links use ``->``."""
    if not cycle:
        return ""
    labels = labels or {}
    parts = []
    for a, b in cycle_edges(cycle):
        sign = G.edges[a, b].get("sign") if G.has_edge(a, b) else None
        arrow = f"->({sign})" if sign else "->"
        parts.append(f"{_stella_label(labels.get(a, a))} {arrow}")
    return " ".join(parts) + f" {_stella_label(labels.get(cycle[0], cycle[0]))}"
