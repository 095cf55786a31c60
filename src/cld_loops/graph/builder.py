from __future__ import annotations

import logging
import math
from typing import Any, Dict, Iterable, List, Mapping, Optional

import networkx as nx
from pydantic import ValidationError

from ..types import Edge, Node

logger = logging.getLogger(__name__)

_POSITIVE_SIGNS = {"+", "plus", "positive", "pos"}
_NEGATIVE_SIGNS = {"-", "minus", "negative", "neg"}


def normalize_sign(value: Any) -> Optional[str]:
    """Map the sign spellings used by diagram editors onto '+', '-' or None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if value == 1:
            return "+"
        if value == -1:
            return "-"
        return None
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _POSITIVE_SIGNS:
            return "+"
        if text in _NEGATIVE_SIGNS:
            return "-"
    return None


def _to_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _flatten(record: Any) -> Dict[str, Any]:
    """Merge a diagram record's nested ``data`` dict into its top level.

    A top-level value wins unless it is None.
    """
    if isinstance(record, (Node, Edge)):
        return record.model_dump()
    if not isinstance(record, Mapping):
        return {}
    flat = {k: v for k, v in record.items() if k != "data"}
    data = record.get("data")
    if isinstance(data, Mapping):
        for key, value in data.items():
            if flat.get(key) is None:
                flat[key] = value
    return flat


def coerce_nodes(records: Iterable[Any]) -> List[Node]:
    """Turn raw node records into ``Node`` models, skipping malformed ones."""
    nodes: List[Node] = []
    seen = set()
    for record in records or []:
        flat = _flatten(record)
        node_id = flat.get("id")
        if node_id is None or isinstance(node_id, bool):
            logger.debug(f"Skipping node without id: {record!r}")
            continue
        node_id = str(node_id).strip()
        if node_id in seen:
            continue
        label = flat.get("label")
        try:
            node = Node(id=node_id, label=str(label) if label is not None else node_id)
        except ValidationError:
            logger.debug(f"Skipping invalid node: {record!r}")
            continue
        seen.add(node.id)
        nodes.append(node)
    return nodes


def coerce_edges(records: Iterable[Any]) -> List[Edge]:
    """Turn raw edge records into ``Edge`` models, skipping malformed ones.

    Accepts both flat records and diagram records whose attributes live
    under ``data``. ``polarity``/``relationship`` are read when ``sign`` is
    absent.
    """
    edges: List[Edge] = []
    for record in records or []:
        flat = _flatten(record)
        source = flat.get("source", flat.get("from"))
        target = flat.get("target", flat.get("to"))
        if source is None or target is None:
            logger.debug(f"Skipping edge without endpoints: {record!r}")
            continue
        raw_sign = flat.get("sign")
        if raw_sign is None:
            raw_sign = flat.get("polarity", flat.get("relationship"))
        edge_id = flat.get("id")
        try:
            edge = Edge(
                source=str(source).strip(),
                target=str(target).strip(),
                id=str(edge_id) if edge_id is not None else None,
                sign=normalize_sign(raw_sign),
                impact=_to_number(flat.get("impact")),
                control=_to_number(flat.get("control")),
            )
        except ValidationError:
            logger.debug(f"Skipping invalid edge: {record!r}")
            continue
        edges.append(edge)
    return edges


def build_graph(nodes: Iterable[Any], edges: Iterable[Any]) -> nx.DiGraph:
    """Build the signed digraph used for loop search.

    Dangling edges and self-loops are dropped. When several edges share an
    ordered (source, target) pair, the one with the largest ``|impact|`` wins.
    """
    node_models = coerce_nodes(nodes)
    edge_models = coerce_edges(edges)

    G = nx.DiGraph()
    for node in node_models:
        G.add_node(node.id, label=node.display())

    best: Dict[tuple, Edge] = {}
    dropped = 0
    for edge in edge_models:
        if edge.source not in G or edge.target not in G:
            dropped += 1
            continue
        if edge.source == edge.target:
            dropped += 1
            continue
        key = (edge.source, edge.target)
        current = best.get(key)
        if current is None or abs(current.impact or 0) < abs(edge.impact or 0):
            best[key] = edge

    for (source, target), edge in best.items():
        G.add_edge(
            source,
            target,
            id=edge.id,
            sign=edge.sign,
            impact=edge.impact,
            control=edge.control,
        )

    if dropped:
        logger.debug(f"Dropped {dropped} dangling or self-referencing edges")
    return G


def node_labels(G: nx.DiGraph) -> Dict[str, str]:
    return {n: G.nodes[n].get("label") or n for n in G.nodes}
