"""Consensus approval state transitions.

  PENDING  --approve (count < required)--> PENDING   (approver recorded)
  PENDING  --approve (count >= required)--> APPROVED
  APPROVED --approve--> APPROVED                     (approver recorded)
  PENDING  --reject--> REJECTED

Approving a REJECTED consensus or rejecting an APPROVED one raises
ConsensusStateError.  A new synthesis is the way back to PENDING.
"""

from __future__ import annotations

import datetime
import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from alignai.db.models import Consensus, ConsensusStatus
from alignai.db.queries import get_consensus
from alignai.errors import ConsensusStateError, NotFoundError

logger = logging.getLogger(__name__)


async def _load(session: AsyncSession, section_id: uuid.UUID) -> Consensus:
    record = await get_consensus(session, section_id)
    if record is None:
        raise NotFoundError(f"No consensus for section '{section_id}'.")
    return record


async def approve_consensus(
    session: AsyncSession,
    section_id: uuid.UUID,
    user_id: str,
    required_approvals: int | None = None,
) -> Consensus:
    """Record *user_id*'s approval; flips to APPROVED once enough members approve."""
    if required_approvals is None:
        from alignai.config import settings  # lazy import: avoid circular deps

        required_approvals = settings.consensus_required_approvals

    record = await _load(session, section_id)
    if record.status is ConsensusStatus.rejected:
        raise ConsensusStateError("Cannot approve a rejected consensus; synthesize a new one.")

    approvers = list(record.approved_by or [])
    if user_id not in approvers:
        approvers.append(user_id)
    record.approved_by = approvers

    needed = max(required_approvals, 1)
    if len(approvers) >= needed:
        record.status = ConsensusStatus.approved
    record.updated_at = datetime.datetime.now(datetime.timezone.utc)
    await session.commit()

    logger.info(
        "Consensus for section %s approved by %s (%d/%d, status=%s)",
        section_id,
        user_id,
        len(approvers),
        needed,
        record.status.value,
    )
    return record


async def reject_consensus(session: AsyncSession, section_id: uuid.UUID, user_id: str) -> Consensus:
    """Reject a PENDING consensus."""
    record = await _load(session, section_id)
    if record.status is ConsensusStatus.approved:
        raise ConsensusStateError("Cannot reject an approved consensus.")

    record.status = ConsensusStatus.rejected
    record.updated_at = datetime.datetime.now(datetime.timezone.utc)
    await session.commit()

    logger.info("Consensus for section %s rejected by %s", section_id, user_id)
    return record
