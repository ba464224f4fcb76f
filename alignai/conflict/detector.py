"""Semantic conflict detection over one section's submitted responses.

Two steps, the second only when the first finds disagreement:

  1. Embeddings: compute every pairwise cosine similarity among responses
     that have an embedding.  The minimum ("weakest link") is the section's
     alignment score: a team is only as aligned as its most divergent pair.
  2. LLM: if the minimum is below the threshold, ask the model for a
     structured analysis (severity, differences, agreement, suggested merge).

Outcomes:
  INSUFFICIENT_DATA — fewer than 2 responses with embeddings; no LLM call
  ALIGNED           — min similarity >= threshold; no LLM call
  CONFLICT          — min similarity < threshold; exactly one LLM call

The model's severity and has_conflict are reported as given.  They are not
reconciled with the similarity score; both signals reach the caller.

Errors: LLMProviderError (transport), AnalysisParseError (bad model output)
and DimensionMismatchError (incompatible stored vectors) propagate.
"""

from __future__ import annotations

import datetime
import logging
import uuid
from typing import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from alignai.db.models import Conflict, ConflictResolutionStatus, SectionCategory
from alignai.db.queries import get_conflict, get_section, load_team_responses
from alignai.errors import NotFoundError
from alignai.pipeline.completion import CompletionProvider
from alignai.pipeline.parsing import parse_model_output
from alignai.pipeline.similarity import pairwise_similarities
from alignai.prompts.catalog import SYSTEM_PROMPTS
from alignai.prompts.templates import build_conflict_analysis_prompt
from alignai.schemas import AlignmentStatus, ConflictAnalysis, ConflictResult, TeamResponse

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.75
_ANALYSIS_TEMPERATURE = 0.3


async def analyze_responses(
    category: SectionCategory | str,
    responses: Sequence[TeamResponse],
    completion: CompletionProvider,
    threshold: float = DEFAULT_THRESHOLD,
) -> ConflictResult:
    """Classify a section's responses as insufficient, aligned, or conflicting.

    Args:
        category:   Section category (used in the analysis prompt).
        responses:  Submitted responses; those without an embedding are ignored.
        completion: Provider for the conflict-analysis call.
        threshold:  Minimum pairwise similarity considered aligned.

    Returns:
        ConflictResult.  ``analysis`` is set only when status is CONFLICT.
    """
    usable = [r for r in responses if r.embedding is not None]
    response_ids = [r.id for r in usable]

    if len(usable) < 2:
        logger.debug("Conflict detector: %d usable response(s): insufficient data", len(usable))
        return ConflictResult(
            status=AlignmentStatus.insufficient_data,
            threshold=threshold,
            usable_responses=len(usable),
            response_ids=response_ids,
        )

    scores = pairwise_similarities([r.embedding for r in usable])
    min_similarity = min(scores)
    mean_similarity = sum(scores) / len(scores)

    if min_similarity >= threshold:
        logger.debug(
            "Conflict detector: aligned (min=%.3f, threshold=%.2f, n=%d)",
            min_similarity,
            threshold,
            len(usable),
        )
        return ConflictResult(
            status=AlignmentStatus.aligned,
            threshold=threshold,
            usable_responses=len(usable),
            response_ids=response_ids,
            similarity_score=min_similarity,
            mean_similarity=mean_similarity,
        )

    prompt = build_conflict_analysis_prompt(category, [(r.display_name, r.content) for r in usable])
    raw = await completion.complete(
        SYSTEM_PROMPTS["conflict_analyzer"],
        prompt,
        temperature=_ANALYSIS_TEMPERATURE,
    )
    analysis = parse_model_output(raw, ConflictAnalysis)

    logger.info(
        "Conflict detector: conflict (min=%.3f, threshold=%.2f, severity=%s, model_has_conflict=%s)",
        min_similarity,
        threshold,
        analysis.conflict_severity,
        analysis.has_conflict,
    )
    return ConflictResult(
        status=AlignmentStatus.conflict,
        threshold=threshold,
        usable_responses=len(usable),
        response_ids=response_ids,
        similarity_score=min_similarity,
        mean_similarity=mean_similarity,
        analysis=analysis,
    )


async def detect_conflict(
    session: AsyncSession,
    section_id: uuid.UUID,
    completion: CompletionProvider,
    threshold: float | None = None,
) -> ConflictResult:
    """Run conflict detection for a stored section and record the outcome.

    A CONFLICT verdict overwrites the section's conflict record and reopens
    it (last write wins).  An ALIGNED verdict marks an open record resolved.
    INSUFFICIENT_DATA leaves the record untouched.

    Raises:
        NotFoundError: If the section does not exist.
    """
    if threshold is None:
        from alignai.config import settings  # lazy import: avoid circular deps

        threshold = settings.conflict_similarity_threshold

    section = await get_section(session, section_id)
    if section is None:
        raise NotFoundError(f"Section '{section_id}' not found.")

    responses = await load_team_responses(session, section_id)
    result = await analyze_responses(section.category, responses, completion, threshold)

    now = datetime.datetime.now(datetime.timezone.utc)
    record = await get_conflict(session, section_id)

    if result.status is AlignmentStatus.conflict:
        analysis = result.analysis.model_dump()
        if record is None:
            record = Conflict(section_id=section_id, created_at=now)
            session.add(record)
        record.response_ids = result.response_ids
        record.similarity_score = result.similarity_score
        record.severity = result.analysis.conflict_severity
        record.analysis = analysis
        record.resolution_status = ConflictResolutionStatus.open
        record.updated_at = now
        await session.commit()
    elif (
        result.status is AlignmentStatus.aligned
        and record is not None
        and record.resolution_status is ConflictResolutionStatus.open
    ):
        record.resolution_status = ConflictResolutionStatus.resolved
        record.updated_at = now
        await session.commit()
        logger.info("Conflict detector: section %s realigned: conflict resolved", section_id)

    return result


async def dismiss_conflict(session: AsyncSession, section_id: uuid.UUID) -> Conflict | None:
    """Mark the section's conflict record dismissed.  Returns None if there is none."""
    record = await get_conflict(session, section_id)
    if record is None:
        return None
    record.resolution_status = ConflictResolutionStatus.dismissed
    record.updated_at = datetime.datetime.now(datetime.timezone.utc)
    await session.commit()
    return record
