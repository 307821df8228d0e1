"""Tests for JSON recovery from raw LLM output."""

import pytest

from services.response_recoverer import (
    PARSE_FAILURE_MESSAGE,
    RecoveredJson,
    RecoveryFailure,
    RecoveryStage,
    recover_json,
    sanitize_json_text,
)


def _recovered(raw: str) -> RecoveredJson:
    result = recover_json(raw)
    assert isinstance(result, RecoveredJson), result
    return result


class TestRecoveryCascade:
    def test_direct(self):
        result = _recovered('{"clarity": 1}')
        assert result.stage is RecoveryStage.DIRECT
        assert result.data == {"clarity": 1}

    def test_json_code_block(self):
        raw = 'Here is my evaluation:\n```json\n{"clarity": 1, "edge_cases": 2}\n```\nThanks!'
        result = _recovered(raw)
        assert result.stage is RecoveryStage.CODE_BLOCK
        assert result.data == {"clarity": 1, "edge_cases": 2}

    def test_bare_code_block(self):
        result = _recovered('```\n{"clarity": 0}\n```')
        assert result.stage is RecoveryStage.CODE_BLOCK

    def test_object_embedded_in_prose(self):
        raw = 'Sure! {"concept_accuracy": 3, "clarity": 1} Hope this helps.'
        result = _recovered(raw)
        assert result.stage is RecoveryStage.OBJECT_SPAN
        assert result.data["concept_accuracy"] == 3

    def test_trailing_comma_sanitized(self):
        result = _recovered('{"clarity": 1, "edge_cases": 2,}')
        assert result.stage is RecoveryStage.SANITIZED
        assert result.data == {"clarity": 1, "edge_cases": 2}

    def test_single_quotes_sanitized(self):
        result = _recovered("{'clarity': 1, 'overall_feedback': 'ok'}")
        assert result.stage is RecoveryStage.SANITIZED
        assert result.data == {"clarity": 1, "overall_feedback": "ok"}

    def test_earliest_stage_wins(self):
        # Valid as a whole, so the code-block stage is never consulted
        assert _recovered('{"a": "```{\\"b\\": 1}```"}').stage is RecoveryStage.DIRECT


class TestRecoveryFailure:
    @pytest.mark.parametrize(
        "raw",
        [
            "",
            "I cannot evaluate this answer.",
            "[1, 2, 3]",
            '"just a string"',
            "42",
            "{not json at all}",
        ],
    )
    def test_non_objects_fail(self, raw):
        result = recover_json(raw)
        assert isinstance(result, RecoveryFailure)
        assert result.error == PARSE_FAILURE_MESSAGE

    def test_array_in_code_block_fails(self):
        assert isinstance(recover_json("```json\n[1, 2]\n```"), RecoveryFailure)


def test_sanitize_json_text():
    assert sanitize_json_text("{'a': 1,}\x00") == '{"a": 1}'


def test_three_encodings_resolve_to_equal_object():
    bare = (
        '{"concept_accuracy":3,"example_usage":2,"edge_cases":1,"clarity":1,'
        '"final_score":7,"overall_feedback":"ok","improvement_tips":"ok"}'
    )
    fenced = f"Here is the evaluation you asked for.\n```json\n{bare}\n```\nLet me know!"
    sloppy = bare.replace('"', "'")[:-1] + ",}"

    results = [_recovered(raw).data for raw in (bare, fenced, sloppy)]
    assert results[0] == results[1] == results[2]
    assert results[0]["final_score"] == 7
