"""cld_loops package root.

Feedback loop identification and scoring for causal loop diagrams: a
bounded simple-cycle search over a signed, weighted digraph, loop polarity
classification and the Normalised Weighted Loop Value ranking.
"""

from .pipeline.loops import compute_loops
from .types import Loop, LoopAnalysis, Polarity, ScoringCoefficients

__all__ = ["compute_loops", "Loop", "LoopAnalysis", "Polarity", "ScoringCoefficients"]
