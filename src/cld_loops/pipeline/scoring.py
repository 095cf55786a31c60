"""
Loop Scoring

Ranks feedback loops by the Normalised Weighted Loop Value (nWLV):

1. raw composite value: product of pairwise weights around the loop
2. aLCV: |raw| ** (1 / length)
3. nLCV: aLCV / max(aLCV)
4. SFC / nSFC: steering factors on the loop, absolute and over the set size
5-8. factor overlap, normalised, length-adjusted and normalised again
9. CIV: one of the two overlap measures, chosen by a toggle
10. weighted loop value: (nLCV*Cc + nSFC*Cs + CIV*Ci) * 100
11. nWLV: weighted value / max(weighted value) * 100

All maxima are taken over the loop set being scored, so scores are only
comparable within one pass. Degenerate maxima produce None, never NaN.
"""
from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from ..graph.loops import cycle_edges
from ..types import ScoringCoefficients


@dataclass
class LoopScore:
    raw_composite_value: Optional[float] = None
    adjusted_composite_value: Optional[float] = None
    normalized_composite_value: Optional[float] = None
    steering_factor_count: int = 0
    normalized_steering_factor_count: Optional[float] = None
    total_overlap: int = 0
    normalized_overlap: Optional[float] = None
    adjusted_independent_value: Optional[float] = None
    normalized_adjusted_independent_value: Optional[float] = None
    conditional_independence_value: Optional[float] = None
    weighted_loop_value: Optional[float] = None
    normalized_weighted_loop_value: Optional[float] = None


def round3(value: Optional[float]) -> Optional[float]:
    """Round half-up to 3 decimals; non-finite values become None."""
    if value is None or not math.isfinite(value):
        return None
    return math.floor(value * 1000 + 0.5) / 1000


def _ratio(value: Optional[float], maximum: Optional[float]) -> Optional[float]:
    if value is None or maximum is None:
        return None
    if not math.isfinite(maximum) or maximum <= 0:
        return None
    return round3(value / maximum)


def _max_of(values: Iterable[Optional[float]]) -> Optional[float]:
    finite = [v for v in values if v is not None and math.isfinite(v)]
    return max(finite) if finite else None


def factor_frequency(cycles: Iterable[Sequence[str]]) -> Dict[str, int]:
    """Number of loops each node takes part in."""
    counts: Counter = Counter()
    for cycle in cycles:
        counts.update(set(cycle))
    return dict(counts)


def composite_value(cycle: Sequence[str], weight: Callable[[str, str], float]) -> float:
    """Product of pairwise weights over the loop's edges.

    A non-finite weight counts as 1.
    """
    product = 1.0
    for a, b in cycle_edges(cycle):
        w = weight(a, b)
        if w is None or not math.isfinite(w):
            continue
        product *= w
    return product


def score_loops(
    cycles: Sequence[Sequence[str]],
    weight: Callable[[str, str], float],
    *,
    steering_factors: Iterable[str] = (),
    coefficients: Optional[ScoringCoefficients] = None,
    use_adjusted_independence: bool = False,
    frequency: Optional[Dict[str, int]] = None,
) -> List[LoopScore]:
    """Score every cycle; the result is aligned with ``cycles``."""
    coefficients = coefficients or ScoringCoefficients()
    steering = set(steering_factors or ())
    if frequency is None:
        frequency = factor_frequency(cycles)

    scores: List[LoopScore] = []
    for cycle in cycles:
        score = LoopScore()
        raw = round3(composite_value(cycle, weight))
        score.raw_composite_value = raw
        if raw is not None and cycle:
            score.adjusted_composite_value = round3(abs(raw) ** (1 / len(cycle)))

        score.steering_factor_count = sum(1 for n in cycle if n in steering)
        if steering:
            score.normalized_steering_factor_count = round3(
                score.steering_factor_count / len(steering)
            )

        score.total_overlap = sum(frequency.get(n, 0) for n in cycle)
        scores.append(score)

    max_alcv = _max_of(s.adjusted_composite_value for s in scores)
    max_overlap = _max_of(s.total_overlap for s in scores)
    for score in scores:
        score.normalized_composite_value = _ratio(score.adjusted_composite_value, max_alcv)
        score.normalized_overlap = _ratio(score.total_overlap, max_overlap)

    for cycle, score in zip(cycles, scores):
        if score.normalized_overlap is not None:
            score.adjusted_independent_value = round3(len(cycle) * score.normalized_overlap)

    max_aiv = _max_of(s.adjusted_independent_value for s in scores)
    for score in scores:
        score.normalized_adjusted_independent_value = _ratio(
            score.adjusted_independent_value, max_aiv
        )
        # CIV grows with overlap.
        if use_adjusted_independence:
            score.conditional_independence_value = score.normalized_adjusted_independent_value
        else:
            score.conditional_independence_value = score.normalized_overlap

        terms = (
            (score.normalized_composite_value, coefficients.composite),
            (score.normalized_steering_factor_count, coefficients.steer),
            (score.conditional_independence_value, coefficients.independence),
        )
        score.weighted_loop_value = round3(
            sum((value or 0.0) * coef for value, coef in terms) * 100
        )

    max_wlv = _max_of(s.weighted_loop_value for s in scores)
    for score in scores:
        if score.weighted_loop_value is None or max_wlv is None or max_wlv <= 0:
            score.normalized_weighted_loop_value = None
        else:
            score.normalized_weighted_loop_value = round3(score.weighted_loop_value / max_wlv * 100)

    return scores
