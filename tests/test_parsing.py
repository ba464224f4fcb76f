"""Extraction and validation of JSON in model output."""

import pytest

from alignai.errors import AnalysisParseError
from alignai.pipeline.parsing import (
    extract_json_array,
    extract_json_object,
    parse_model_output,
    parse_string_list,
)
from alignai.schemas import ConflictAnalysis, ConsensusDraft
from tests.fakes import conflict_reply, consensus_reply


def test_extracts_object_from_fenced_prose():
    parsed = parse_model_output(conflict_reply(), ConflictAnalysis)
    assert parsed.has_conflict is True
    assert parsed.conflict_severity == "high"
    assert parsed.suggested_merge == "Freelancers first, agencies next."


def test_braces_inside_strings_do_not_end_the_object():
    raw = 'noise {"merged_content": "use {curly} braces \\" and }", "reasoning": "r", "confidence": 0.5} tail }'
    assert extract_json_object(raw) == (
        '{"merged_content": "use {curly} braces \\" and }", "reasoning": "r", "confidence": 0.5}'
    )
    draft = parse_model_output(raw, ConsensusDraft)
    assert draft.merged_content == 'use {curly} braces " and }'


def test_unbalanced_first_brace_falls_through_to_next_object():
    assert extract_json_object('{ broken { "a": 1 }') == '{ "a": 1 }'


def test_no_object_raises_with_raw_text():
    with pytest.raises(AnalysisParseError) as exc_info:
        parse_model_output("I could not decide.", ConsensusDraft)
    assert exc_info.value.raw_text == "I could not decide."


def test_invalid_json_raises():
    with pytest.raises(AnalysisParseError):
        parse_model_output("{'single': 'quotes'}", ConsensusDraft)


def test_schema_mismatch_raises():
    with pytest.raises(AnalysisParseError):
        parse_model_output(conflict_reply(conflict_severity="critical"), ConflictAnalysis)
    with pytest.raises(AnalysisParseError):
        parse_model_output(consensus_reply(confidence=1.5), ConsensusDraft)
    with pytest.raises(AnalysisParseError):
        parse_model_output(consensus_reply(merged_content=""), ConsensusDraft)


def test_extra_keys_are_ignored():
    draft = parse_model_output(consensus_reply(notes="extra"), ConsensusDraft)
    assert draft.confidence == 0.8


def test_string_list():
    assert extract_json_array('Sure: ["a", "b"] done') == '["a", "b"]'
    assert parse_string_list('Sure: [" First question? ", "", "Second?"]') == ["First question?", "Second?"]
    assert parse_string_list("no array here") is None
    assert parse_string_list("[1, 2]") is None
    assert parse_string_list("[not json]") is None
