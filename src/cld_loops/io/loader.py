from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

import yaml

from ..validation.schema import validate_json_schema


@dataclass
class GraphInput:
    """Raw diagram snapshot as read from disk."""

    nodes: List[Dict[str, Any]] = field(default_factory=list)
    edges: List[Dict[str, Any]] = field(default_factory=list)
    steering_factors: List[str] = field(default_factory=list)


def load_graph(path: Path) -> GraphInput:
    """Load a diagram snapshot from a JSON or YAML file.

    The document must hold `nodes` and `edges` arrays and may hold a
    `steering_factors` array of node ids. Raises ``FileNotFoundError`` when
    the file is missing and ``ValueError`` when it cannot be parsed or does
    not match the graph schema.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Graph file not found: {path}")

    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in {".yml", ".yaml"}:
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in graph file: {path}: {e}")
    else:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in graph file: {path}: {e}")

    if not isinstance(data, dict):
        raise ValueError(f"Graph file must contain an object with nodes and edges: {path}")
    validate_json_schema(data)

    return GraphInput(
        nodes=list(data.get("nodes", [])),
        edges=list(data.get("edges", [])),
        steering_factors=[str(s) for s in data.get("steering_factors", [])],
    )
