"""Consensus synthesis and the approval state machine."""

import logging

import pytest
import sqlalchemy as sa

from alignai.consensus.approval import approve_consensus, reject_consensus
from alignai.consensus.synthesizer import draft_consensus, synthesize_consensus
from alignai.db.models import Consensus, ConsensusStatus, Response, SectionCategory
from alignai.errors import (
    AnalysisParseError,
    ConsensusStateError,
    InsufficientDataError,
    LLMProviderError,
    NotFoundError,
)
from alignai.schemas import ConflictAnalysis, TeamResponse
from tests.fakes import MEMBER, OWNER, VIEWER, consensus_reply


def _pair():
    return [
        TeamResponse("r1", "u1", "Ada", "Freelancers who invoice monthly"),
        TeamResponse("r2", "u2", "Grace", "Small agencies with many clients"),
    ]


class TestDraftConsensus:
    async def test_needs_two_responses(self, completion):
        with pytest.raises(InsufficientDataError) as exc_info:
            await draft_consensus("target_users", _pair()[:1], completion)
        assert exc_info.value.usable == 1
        assert completion.calls == []

    async def test_embeddings_not_required(self, completion):
        completion.replies = [consensus_reply()]
        draft = await draft_consensus("target_users", _pair(), completion)
        assert draft.merged_content.startswith("Freelancers")
        assert draft.confidence == 0.8
        call = completion.calls[0]
        assert call.options["temperature"] == 0.5
        assert 'Ada:\n"Freelancers who invoice monthly"' in call.user_prompt

    async def test_known_differences_reach_the_prompt(self, completion):
        completion.replies = [consensus_reply()]
        analysis = ConflictAnalysis(
            has_conflict=True,
            conflict_severity="medium",
            differences=["Solo freelancers vs agencies"],
            areas_of_agreement=[],
            suggested_merge="Start with freelancers",
            reasoning="",
        )
        await draft_consensus("target_users", _pair(), completion, conflict=analysis)
        assert "- Solo freelancers vs agencies" in completion.calls[0].user_prompt

    async def test_errors_propagate(self, completion):
        completion.replies = ["not json"]
        with pytest.raises(AnalysisParseError):
            await draft_consensus("target_users", _pair(), completion)
        completion.error = LLMProviderError("down")
        with pytest.raises(LLMProviderError):
            await draft_consensus("target_users", _pair(), completion)


@pytest.fixture
async def answered_section(session, workspace):
    section_id = workspace.sections[SectionCategory.target_users]
    session.add(Response(section_id=section_id, user_id=OWNER, content="Freelancers"))
    session.add(Response(section_id=section_id, user_id=MEMBER, content="Agencies"))
    await session.commit()
    return section_id


class TestSynthesizeConsensus:
    async def test_stored_as_pending(self, session, answered_section, completion):
        completion.replies = [consensus_reply()]
        record = await synthesize_consensus(session, answered_section, completion)
        assert record.status is ConsensusStatus.pending
        assert record.approved_by == []
        assert record.confidence == 0.8

    async def test_resynthesis_replaces_and_clears_approvals(self, session, answered_section, completion):
        completion.replies = [consensus_reply(), consensus_reply(merged_content="Agencies first.", confidence=0.6)]
        await synthesize_consensus(session, answered_section, completion)
        await approve_consensus(session, answered_section, OWNER)

        record = await synthesize_consensus(session, answered_section, completion)
        assert record.merged_content == "Agencies first."
        assert record.status is ConsensusStatus.pending
        assert record.approved_by == []
        count = (await session.execute(sa.select(sa.func.count(Consensus.id)))).scalar_one()
        assert count == 1

    async def test_insufficient_responses(self, session, workspace, completion):
        section_id = workspace.sections[SectionCategory.features]
        session.add(Response(section_id=section_id, user_id=OWNER, content="Recurring invoices"))
        await session.commit()
        with pytest.raises(InsufficientDataError):
            await synthesize_consensus(session, section_id, completion)
        assert await session.scalar(sa.select(sa.func.count(Consensus.id))) == 0


class TestApproval:
    async def _pending(self, session, section_id, completion):
        completion.replies = [consensus_reply()]
        return await synthesize_consensus(session, section_id, completion)

    async def test_single_approval_approves_by_default(self, session, answered_section, completion):
        await self._pending(session, answered_section, completion)
        record = await approve_consensus(session, answered_section, OWNER)
        assert record.status is ConsensusStatus.approved
        assert record.approved_by == [OWNER]

    async def test_zero_required_approvals_treated_as_one(self, session, answered_section, completion, caplog):
        await self._pending(session, answered_section, completion)
        with caplog.at_level(logging.INFO, logger="alignai.consensus.approval"):
            record = await approve_consensus(session, answered_section, OWNER, required_approvals=0)
        assert record.status is ConsensusStatus.approved
        assert "(1/1, status=approved)" in caplog.text

    async def test_quorum(self, session, answered_section, completion):
        await self._pending(session, answered_section, completion)
        record = await approve_consensus(session, answered_section, OWNER, required_approvals=2)
        assert record.status is ConsensusStatus.pending
        # Approving twice does not count twice
        record = await approve_consensus(session, answered_section, OWNER, required_approvals=2)
        assert record.status is ConsensusStatus.pending
        assert record.approved_by == [OWNER]
        record = await approve_consensus(session, answered_section, MEMBER, required_approvals=2)
        assert record.status is ConsensusStatus.approved
        assert record.approved_by == [OWNER, MEMBER]

    async def test_approved_stays_approved(self, session, answered_section, completion):
        await self._pending(session, answered_section, completion)
        await approve_consensus(session, answered_section, OWNER)
        record = await approve_consensus(session, answered_section, VIEWER)
        assert record.status is ConsensusStatus.approved
        with pytest.raises(ConsensusStateError):
            await reject_consensus(session, answered_section, MEMBER)

    async def test_rejected_cannot_be_approved(self, session, answered_section, completion):
        await self._pending(session, answered_section, completion)
        record = await reject_consensus(session, answered_section, MEMBER)
        assert record.status is ConsensusStatus.rejected
        with pytest.raises(ConsensusStateError):
            await approve_consensus(session, answered_section, OWNER)

    async def test_missing_consensus(self, session, workspace):
        section_id = workspace.sections[SectionCategory.vision]
        with pytest.raises(NotFoundError):
            await approve_consensus(session, section_id, OWNER)
        with pytest.raises(NotFoundError):
            await reject_consensus(session, section_id, OWNER)
