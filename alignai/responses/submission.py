"""Response submission: find-or-create by (section, user) with embedding.

Rules:
- One row per (section_id, user_id).  A resubmission updates content,
  embedding, draft flag and updated_at in place.
- Submitted (non-draft) responses are embedded once per submission.  Drafts
  are never embedded and store a NULL embedding.
- Embedding failure never blocks the save: the row is stored with a NULL
  embedding and the result reports embedding_skipped=True.
- Two near-simultaneous first submissions can both miss the existing-row
  check.  The loser's INSERT violates uq_responses_section_user; it rolls
  back and retries as an UPDATE of the winner's row.
"""

from __future__ import annotations

import datetime
import logging
import uuid
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from alignai.db import queries
from alignai.db.models import Response
from alignai.errors import EmbeddingProviderError
from alignai.pipeline.embedder import EmbeddingProvider

logger = logging.getLogger(__name__)


@dataclass
class SubmissionResult:
    response: Response
    created: bool
    embedding_skipped: bool


def _apply(row: Response, content: str, embedding: list[float] | None, is_draft: bool) -> None:
    row.content = content
    row.embedding = embedding
    row.is_draft = is_draft
    row.updated_at = datetime.datetime.now(datetime.timezone.utc)


async def submit_response(
    session: AsyncSession,
    embedder: EmbeddingProvider,
    section_id: uuid.UUID,
    user_id: str,
    content: str,
    is_draft: bool = False,
) -> SubmissionResult:
    """Save a member's response to a section.

    Args:
        session:    Request-scoped session; committed here.
        embedder:   Provider used for submitted (non-draft) responses.
        section_id: Target section.
        user_id:    Authoring user.
        content:    Response text; stripped before storage.
        is_draft:   Drafts skip embedding and are excluded from analysis.

    Raises:
        ValueError: If content is blank.
    """
    content = content.strip()
    if not content:
        raise ValueError("Response content must not be empty")

    embedding: list[float] | None = None
    embedding_skipped = False
    if not is_draft:
        try:
            embedding = await embedder.embed(content)
        except EmbeddingProviderError as exc:
            embedding_skipped = True
            logger.warning(
                "Submission: embedding skipped for section=%s user=%s: %s",
                section_id,
                user_id,
                exc,
            )

    existing = await queries.find_response(session, section_id, user_id)
    if existing is not None:
        _apply(existing, content, embedding, is_draft)
        await session.commit()
        return SubmissionResult(existing, created=False, embedding_skipped=embedding_skipped)

    row = Response(section_id=section_id, user_id=user_id)
    _apply(row, content, embedding, is_draft)
    session.add(row)
    try:
        await session.commit()
        return SubmissionResult(row, created=True, embedding_skipped=embedding_skipped)
    except IntegrityError:
        await session.rollback()
        logger.info(
            "Submission: concurrent insert for section=%s user=%s: retrying as update",
            section_id,
            user_id,
        )

    existing = await queries.find_response(session, section_id, user_id)
    if existing is None:
        # The violation was not the (section, user) key, e.g. a missing section
        raise LookupError(f"Could not store response for section '{section_id}'")
    _apply(existing, content, embedding, is_draft)
    await session.commit()
    return SubmissionResult(existing, created=False, embedding_skipped=embedding_skipped)
