"""Conflict detector: classification, LLM escalation and stored conflict records."""

import datetime
import uuid

import pytest
import sqlalchemy as sa

from alignai.conflict.detector import analyze_responses, detect_conflict, dismiss_conflict
from alignai.db.models import Conflict, ConflictResolutionStatus, Response, SectionCategory
from alignai.errors import AnalysisParseError, LLMProviderError, NotFoundError
from alignai.schemas import AlignmentStatus, TeamResponse
from tests.fakes import MEMBER, OWNER, VIEWER, conflict_reply, gram_vectors

ALIGNED = gram_vectors(0.92, 0.88, 0.91)
# 0.92 / 0.40 / 0.70 is a valid Gram matrix; min pairwise similarity is 0.40
DIVERGENT = gram_vectors(0.92, 0.40, 0.70)


def _responses(vectors):
    names = ["Ada", "Grace", "Linus"]
    return [
        TeamResponse(id=f"r{i}", user_id=f"u{i}", display_name=names[i], content=f"answer {i}", embedding=v)
        for i, v in enumerate(vectors)
    ]


class TestAnalyzeResponses:
    async def test_no_responses_is_insufficient(self, completion):
        result = await analyze_responses("vision", [], completion)
        assert result.status is AlignmentStatus.insufficient_data
        assert result.usable_responses == 0
        assert completion.calls == []

    async def test_one_embedded_response_is_insufficient(self, completion):
        responses = _responses(ALIGNED)
        # Only the first response has an embedding
        responses = [responses[0]] + [
            TeamResponse(r.id, r.user_id, r.display_name, r.content, None) for r in responses[1:]
        ]
        result = await analyze_responses("vision", responses, completion)
        assert result.status is AlignmentStatus.insufficient_data
        assert result.usable_responses == 1
        assert result.similarity_score is None
        assert completion.calls == []

    async def test_aligned_team_makes_no_llm_call(self, completion):
        result = await analyze_responses("vision", _responses(ALIGNED), completion, threshold=0.75)
        assert result.status is AlignmentStatus.aligned
        assert result.similarity_score == pytest.approx(0.88)
        assert result.mean_similarity == pytest.approx((0.92 + 0.88 + 0.91) / 3)
        assert result.analysis is None
        assert completion.calls == []

    async def test_divergent_team_makes_exactly_one_llm_call(self, completion):
        completion.replies = [conflict_reply(conflict_severity="medium")]
        result = await analyze_responses("vision", _responses(DIVERGENT), completion, threshold=0.75)

        assert result.status is AlignmentStatus.conflict
        assert result.similarity_score == pytest.approx(0.40)
        assert len(completion.calls) == 1
        assert completion.calls[0].options["temperature"] == 0.3
        assert 'Response 3 (Linus):\n"answer 2"' in completion.calls[0].user_prompt

        analysis = result.analysis
        assert analysis.conflict_severity in {"low", "medium", "high"}
        assert analysis.suggested_merge
        assert analysis.differences and analysis.areas_of_agreement
        assert analysis.reasoning

    async def test_threshold_boundary_is_aligned(self, completion):
        first = await analyze_responses("vision", _responses(ALIGNED), completion)
        # min similarity exactly equal to the threshold still counts as aligned
        result = await analyze_responses(
            "vision", _responses(ALIGNED), completion, threshold=first.similarity_score
        )
        assert result.status is AlignmentStatus.aligned
        assert completion.calls == []

    async def test_model_verdict_is_reported_not_reconciled(self, completion):
        completion.replies = [conflict_reply(has_conflict=False, conflict_severity="low")]
        result = await analyze_responses("vision", _responses(DIVERGENT), completion)
        assert result.status is AlignmentStatus.conflict
        assert result.analysis.has_conflict is False

    async def test_provider_error_propagates(self, completion):
        completion.error = LLMProviderError("unreachable")
        with pytest.raises(LLMProviderError):
            await analyze_responses("vision", _responses(DIVERGENT), completion)

    async def test_bad_model_output_raises_with_raw_text(self, completion):
        completion.replies = ["The team mostly agrees."]
        with pytest.raises(AnalysisParseError) as exc_info:
            await analyze_responses("vision", _responses(DIVERGENT), completion)
        assert exc_info.value.raw_text == "The team mostly agrees."


class TestDetectConflict:
    async def _submit(self, session, section_id, vectors):
        base = datetime.datetime(2026, 1, 5, 9, 0, tzinfo=datetime.timezone.utc)
        for minute, (user_id, vector) in enumerate(zip((OWNER, MEMBER, VIEWER), vectors)):
            session.add(Response(
                section_id=section_id,
                user_id=user_id,
                content=f"{user_id} says",
                embedding=vector,
                created_at=base + datetime.timedelta(minutes=minute),
            ))
        await session.commit()

    async def test_unknown_section(self, session, completion):
        with pytest.raises(NotFoundError):
            await detect_conflict(session, uuid.uuid4(), completion)

    async def test_conflict_is_recorded_then_resolved(self, session, workspace, completion):
        section_id = workspace.sections[SectionCategory.vision]
        await self._submit(session, section_id, DIVERGENT)

        completion.replies = [conflict_reply()]
        result = await detect_conflict(session, section_id, completion)
        assert result.status is AlignmentStatus.conflict
        # Profile names reach the prompt in submission order
        assert "Response 1 (Ada)" in completion.calls[0].user_prompt

        record = (await session.execute(sa.select(Conflict))).scalar_one()
        assert record.resolution_status is ConflictResolutionStatus.open
        assert record.severity == "high"
        assert record.similarity_score == pytest.approx(0.40)
        assert len(record.response_ids) == 3

        # The team rewrites their answers until they agree
        rows = (await session.execute(sa.select(Response).order_by(Response.created_at))).scalars().all()
        for row, vector in zip(rows, ALIGNED):
            row.embedding = vector
        await session.commit()

        result = await detect_conflict(session, section_id, completion)
        assert result.status is AlignmentStatus.aligned
        await session.refresh(record)
        assert record.resolution_status is ConflictResolutionStatus.resolved
        assert len(completion.calls) == 1

    async def test_threshold_override(self, session, workspace, completion):
        section_id = workspace.sections[SectionCategory.vision]
        await self._submit(session, section_id, ALIGNED)
        completion.replies = [conflict_reply()]
        result = await detect_conflict(session, section_id, completion, threshold=0.9)
        assert result.status is AlignmentStatus.conflict
        assert result.threshold == 0.9

    async def test_drafts_are_not_analyzed(self, session, workspace, completion):
        section_id = workspace.sections[SectionCategory.vision]
        session.add(Response(section_id=section_id, user_id=OWNER, content="done", embedding=ALIGNED[0]))
        session.add(Response(section_id=section_id, user_id=MEMBER, content="wip", is_draft=True))
        await session.commit()
        result = await detect_conflict(session, section_id, completion)
        assert result.status is AlignmentStatus.insufficient_data
        assert result.usable_responses == 1

    async def test_dismiss(self, session, workspace, completion):
        section_id = workspace.sections[SectionCategory.vision]
        assert await dismiss_conflict(session, section_id) is None

        await self._submit(session, section_id, DIVERGENT)
        completion.replies = [conflict_reply()]
        await detect_conflict(session, section_id, completion)
        record = await dismiss_conflict(session, section_id)
        assert record.resolution_status is ConflictResolutionStatus.dismissed
