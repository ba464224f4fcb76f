"""Domain types shared by the pipeline, the service layer, and the API.

- TeamResponse       — one submitted response as the pipeline sees it
- ConflictAnalysis   — validated LLM conflict-analysis output
- ConsensusDraft     — validated LLM consensus output
- AlignmentStatus    — the four mutually exclusive alignment states
- ConflictResult     — detector verdict (+ analysis when escalated)
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Literal, Sequence

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class TeamResponse:
    """A submitted response with its author's display name and optional embedding."""

    id: str
    user_id: str
    display_name: str
    content: str
    embedding: Sequence[float] | None = None


class ConflictAnalysis(BaseModel):
    """Shape the conflict-analysis model output must match after parsing."""

    model_config = ConfigDict(extra="ignore")

    has_conflict: bool
    conflict_severity: Literal["low", "medium", "high"]
    differences: list[str]
    areas_of_agreement: list[str]
    suggested_merge: str = Field(min_length=1)
    reasoning: str


class ConsensusDraft(BaseModel):
    """Shape the consensus model output must match after parsing."""

    model_config = ConfigDict(extra="ignore")

    merged_content: str = Field(min_length=1)
    reasoning: str
    # Model-reported hint for the UI; never checked against embedding similarity
    confidence: float = Field(ge=0.0, le=1.0)


class AlignmentStatus(str, enum.Enum):
    insufficient_data = "insufficient_data"
    aligned = "aligned"
    conflict = "conflict"
    provider_error = "provider_error"


class ConflictResult(BaseModel):
    """Conflict detector output.

    ``similarity_score`` is the minimum pairwise similarity (None when there
    is not enough data).  ``analysis`` is present only for CONFLICT.
    """

    status: AlignmentStatus
    threshold: float
    usable_responses: int
    response_ids: list[str] = Field(default_factory=list)
    similarity_score: float | None = None
    mean_similarity: float | None = None
    analysis: ConflictAnalysis | None = None
