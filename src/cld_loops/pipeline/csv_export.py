"""Generate CSV exports from loop and factor analyses."""
from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable

import networkx as nx

from ..graph.weights import weight_matrix
from ..types import FactorMetrics, LoopAnalysis
from .scoring import round3

LOOP_FIELDS = [
    "loop_id",
    "loop",
    "stella",
    "polarity",
    "loop_length",
    "raw_composite_value",
    "adjusted_composite_value",
    "normalized_composite_value",
    "steering_factor_count",
    "normalized_steering_factor_count",
    "total_overlap",
    "normalized_overlap",
    "adjusted_independent_value",
    "normalized_adjusted_independent_value",
    "conditional_independence_value",
    "weighted_loop_value",
    "normalized_weighted_loop_value",
    "pairwise_details",
]

FACTOR_FIELDS = [
    "letter",
    "id",
    "label",
    "aiv",
    "piv",
    "acv",
    "pcv",
    "raw_weighted_active_value",
    "raw_weighted_passive_value",
    "normalized_weighted_active_value",
    "normalized_weighted_passive_value",
    "quadrant",
]


def _cell(value):
    """Render a not-applicable (None) metric as an empty cell."""
    return "" if value is None else value


def generate_loops_csv(analysis: LoopAnalysis, output_path: Path) -> int:
    """Write one row per loop.

    Returns:
        Number of rows written
    """
    rows = []
    for loop in analysis.loops:
        rows.append(
            {
                "loop_id": loop.id,
                "loop": loop.description,
                "stella": loop.stella,
                "polarity": loop.polarity.value,
                "loop_length": loop.length,
                "raw_composite_value": _cell(loop.raw_composite_value),
                "adjusted_composite_value": _cell(loop.adjusted_composite_value),
                "normalized_composite_value": _cell(loop.normalized_composite_value),
                "steering_factor_count": loop.steering_factor_count,
                "normalized_steering_factor_count": _cell(loop.normalized_steering_factor_count),
                "total_overlap": loop.total_overlap,
                "normalized_overlap": _cell(loop.normalized_overlap),
                "adjusted_independent_value": _cell(loop.adjusted_independent_value),
                "normalized_adjusted_independent_value": _cell(loop.normalized_adjusted_independent_value),
                "conditional_independence_value": _cell(loop.conditional_independence_value),
                "weighted_loop_value": _cell(loop.weighted_loop_value),
                "normalized_weighted_loop_value": _cell(loop.normalized_weighted_loop_value),
                "pairwise_details": loop.pairwise_details,
            }
        )

    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=LOOP_FIELDS)
        writer.writeheader()
        writer.writerows(rows)

    return len(rows)


def generate_factors_csv(factors: Iterable[FactorMetrics], output_path: Path) -> int:
    """Write the factor classification table.

    Returns:
        Number of rows written
    """
    rows = [
        {name: _cell(value) for name, value in factor.model_dump(include=set(FACTOR_FIELDS)).items()}
        for factor in factors
    ]

    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=FACTOR_FIELDS)
        writer.writeheader()
        writer.writerows(rows)

    return len(rows)


def generate_matrix_csv(G: nx.DiGraph, output_path: Path, alpha: float = 0.5) -> int:
    """Write the direct dependency matrix: one row per source factor.

    Returns:
        Number of rows written
    """
    matrix = weight_matrix(G, alpha)
    nodes = list(matrix)

    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=["factor"] + nodes)
        writer.writeheader()
        for source in nodes:
            # the diagonal is left blank
            writer.writerow({"factor": source, **{t: round3(w) for t, w in matrix[source].items()}})

    return len(nodes)
