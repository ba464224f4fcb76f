"""LLM consensus synthesis for one section.

Merges teammates' responses into a single statement with a model-reported
confidence.  One completion call per synthesis; no retries here.  The stored
Consensus starts in PENDING; approval is a separate transition
(see alignai.consensus.approval).

Errors:
  InsufficientDataError — fewer than 2 submitted responses
  LLMProviderError      — completion transport failure
  AnalysisParseError    — model output missing/invalid JSON
"""

from __future__ import annotations

import datetime
import logging
import uuid
from typing import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from alignai.db.models import Consensus, ConsensusStatus, SectionCategory
from alignai.db.queries import get_consensus, get_section, load_team_responses
from alignai.errors import InsufficientDataError, NotFoundError
from alignai.pipeline.completion import CompletionProvider
from alignai.pipeline.parsing import parse_model_output
from alignai.prompts.catalog import SYSTEM_PROMPTS
from alignai.prompts.templates import build_consensus_prompt
from alignai.schemas import ConflictAnalysis, ConsensusDraft, TeamResponse

logger = logging.getLogger(__name__)

_CONSENSUS_TEMPERATURE = 0.5


async def draft_consensus(
    category: SectionCategory | str,
    responses: Sequence[TeamResponse],
    completion: CompletionProvider,
    conflict: ConflictAnalysis | None = None,
) -> ConsensusDraft:
    """Ask the model to reconcile *responses* into one statement.

    Args:
        category:   Section category (used in the prompt).
        responses:  At least two submitted responses.  Embeddings are not needed.
        completion: Provider for the synthesis call.
        conflict:   Optional prior analysis; its differences are listed in the prompt.
    """
    if len(responses) < 2:
        raise InsufficientDataError(len(responses))

    prompt = build_consensus_prompt(
        category,
        [(r.display_name, r.content) for r in responses],
        known_differences=conflict.differences if conflict is not None else (),
    )
    raw = await completion.complete(
        SYSTEM_PROMPTS["consensus_builder"],
        prompt,
        temperature=_CONSENSUS_TEMPERATURE,
    )
    return parse_model_output(raw, ConsensusDraft)


async def synthesize_consensus(
    session: AsyncSession,
    section_id: uuid.UUID,
    completion: CompletionProvider,
    conflict: ConflictAnalysis | None = None,
) -> Consensus:
    """Synthesize and store a PENDING consensus for a section.

    Any earlier consensus for the section is overwritten and its approvals
    cleared (last write wins).

    Raises:
        NotFoundError: If the section does not exist.
    """
    section = await get_section(session, section_id)
    if section is None:
        raise NotFoundError(f"Section '{section_id}' not found.")

    responses = await load_team_responses(session, section_id)
    draft = await draft_consensus(section.category, responses, completion, conflict)

    now = datetime.datetime.now(datetime.timezone.utc)
    record = await get_consensus(session, section_id)
    if record is None:
        record = Consensus(section_id=section_id, created_at=now)
        session.add(record)
    record.merged_content = draft.merged_content
    record.reasoning = draft.reasoning
    record.confidence = draft.confidence
    record.status = ConsensusStatus.pending
    record.approved_by = []
    record.updated_at = now
    await session.commit()

    logger.info(
        "Consensus synthesized for section %s from %d responses (confidence=%.2f)",
        section_id,
        len(responses),
        draft.confidence,
    )
    return record
