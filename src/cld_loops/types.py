from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class Polarity(str, Enum):
    """Feedback polarity of a closed loop."""

    REINFORCING = "reinforcing"
    BALANCING = "balancing"
    UNCODED = "uncoded"


class Node(BaseModel):
    """A factor in the causal loop diagram."""

    id: str = Field(..., min_length=1, description="Stable node identifier")
    label: str = Field(default="", description="Display name, may repeat across nodes")

    def display(self) -> str:
        return self.label or self.id


class Edge(BaseModel):
    """A directed, optionally signed influence between two factors."""

    source: str = Field(..., min_length=1, description="Source node id")
    target: str = Field(..., min_length=1, description="Target node id")
    id: Optional[str] = Field(default=None, description="Edge identifier from the diagram")
    sign: Optional[str] = Field(default=None, description="'+', '-' or None when unknown")
    impact: Optional[float] = Field(default=None, description="Impact score, e.g. 1..3")
    control: Optional[float] = Field(default=None, description="Control score, e.g. 0..3")


class ScoringCoefficients(BaseModel):
    """Weights of the three terms in the weighted loop value."""

    composite: float = Field(default=1.0, description="Weight of the normalised composite value")
    steer: float = Field(default=1.0, description="Weight of the normalised steering factor count")
    independence: float = Field(default=1.0, description="Weight of the conditional independence value")


class LoopEdge(BaseModel):
    source: str
    target: str
    sign: Optional[str] = None
    impact: Optional[float] = None
    control: Optional[float] = None
    weight: Optional[float] = None


class Loop(BaseModel):
    """A scored simple feedback loop."""

    id: str = Field(..., description="Sequential loop id, e.g. L01")
    nodes: List[str] = Field(..., description="Node ids in loop order, start not repeated")
    labels: List[str] = Field(default_factory=list, description="Display labels in loop order")
    edges: List[LoopEdge] = Field(default_factory=list)
    length: int = Field(..., ge=2)
    canonical_key: str = Field(..., description="Rotation-invariant key")
    polarity: Polarity
    negative_edges: int = 0
    description: str = ""
    stella: str = ""
    pairwise_details: str = ""

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


class LoopAnalysis(BaseModel):
    """Result of one loop identification and scoring pass."""

    loops: List[Loop] = Field(default_factory=list)
    truncated: bool = Field(default=False, description="True when the top-K cap was reached")
    cancelled: bool = Field(default=False, description="True when the search was aborted")
    max_length: int = 8
    top_k: int = 1000
    factor_frequency: Dict[str, int] = Field(default_factory=dict)
    notes: List[str] = Field(default_factory=list)


class FactorMetrics(BaseModel):
    """Active/passive influence sums for one factor."""

    id: str
    letter: str = Field(..., description="Spreadsheet-style letter: A..Z, AA..")
    label: str
    aiv: float = Field(0.0, description="Active impact value (sum over outgoing edges)")
    piv: float = Field(0.0, description="Passive impact value (sum over incoming edges)")
    acv: float = Field(0.0, description="Active control value")
    pcv: float = Field(0.0, description="Passive control value")
    raw_weighted_active_value: float = 0.0
    raw_weighted_passive_value: float = 0.0
    normalized_weighted_active_value: Optional[float] = None
    normalized_weighted_passive_value: Optional[float] = None
    quadrant: str = ""
