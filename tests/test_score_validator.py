"""Tests for score validation and repair."""

import json

import pytest

from models.evaluation import RESPONSE_FIELD
from services.score_validator import (
    DEFAULT_FEEDBACK_TEXT,
    quick_validate,
    validate_and_repair_score,
    validate_evaluation_data,
    validate_evaluation_response,
    validate_text_field,
)
from tests.fakes import evaluation_json


def _data(**overrides):
    data = json.loads(evaluation_json())
    data.update(overrides)
    return data


# ── Single score repair ───────────────────────────────────────


class TestValidateAndRepairScore:
    def _repair(self, value, max_score=4):
        errors, warnings = [], []
        score = validate_and_repair_score(value, "concept_accuracy", max_score, errors, warnings)
        return score, errors, warnings

    def test_valid_integer_untouched(self):
        assert self._repair(3) == (3, [], [])

    def test_integral_float_accepted_silently(self):
        assert self._repair(3.0) == (3, [], [])

    def test_numeric_string_coerced(self):
        score, errors, warnings = self._repair("2")
        assert score == 2
        assert not errors

    @pytest.mark.parametrize("value, expected", [(2.5, 3), (3.49, 3), (0.5, 1), (1.7, 2)])
    def test_rounds_half_up(self, value, expected):
        score, errors, warnings = self._repair(value)
        assert score == expected
        assert not errors
        assert warnings[0].message == "Score was not an integer"

    def test_clamps_above_max(self):
        score, errors, warnings = self._repair(7)
        assert score == 4
        assert not errors
        assert warnings[0].action == "Clamped 7 to 4"

    def test_clamps_negative(self):
        score, _, warnings = self._repair(-2)
        assert score == 0
        assert warnings[0].message == "Score below minimum"

    def test_round_then_clamp(self):
        score, _, warnings = self._repair(4.6)
        assert score == 4
        assert len(warnings) == 2

    def test_missing_is_error(self):
        score, errors, warnings = self._repair(None)
        assert score == 0
        assert errors[0].message == "Missing required field"
        assert not warnings

    @pytest.mark.parametrize("value, expected", [(float("inf"), 4), (float("-inf"), 0), ("1e999", 4)])
    def test_infinity_clamped(self, value, expected):
        score, errors, warnings = self._repair(value)
        assert score == expected
        assert not errors
        assert warnings[0].action.startswith("Clamped")

    @pytest.mark.parametrize("value", ["high", "", True, [3], {"score": 3}, float("nan")])
    def test_non_numeric_is_error(self, value):
        score, errors, _ = self._repair(value)
        assert score == 0
        assert errors[0].message == "Invalid number"


# ── Text fields ───────────────────────────────────────────────


class TestValidateTextField:
    def test_valid_text_stripped(self):
        warnings = []
        assert validate_text_field("  Good.  ", "overall_feedback", 100, warnings) == "Good."
        assert warnings == []

    def test_missing_gets_default(self):
        warnings = []
        assert validate_text_field(None, "overall_feedback", 100, warnings) == DEFAULT_FEEDBACK_TEXT
        assert warnings[0].action == "Set default value"

    def test_empty_gets_default(self):
        warnings = []
        assert validate_text_field("   ", "improvement_tips", 100, warnings) == DEFAULT_FEEDBACK_TEXT
        assert len(warnings) == 1

    def test_truncates_with_ellipsis(self):
        warnings = []
        text = validate_text_field("a" * 50, "overall_feedback", 20, warnings)
        assert len(text) == 20
        assert text.endswith("...")
        assert warnings[0].message == "String exceeds maximum length"

    def test_list_joined(self):
        warnings = []
        text = validate_text_field(["Use examples.", "Cover edge cases."], "improvement_tips", 100, warnings)
        assert text == "Use examples. Cover edge cases."
        assert warnings


# ── Whole response ────────────────────────────────────────────


class TestValidateEvaluationData:
    def test_valid_response(self, rubric):
        outcome = validate_evaluation_data(_data(), rubric)
        assert outcome.is_valid
        assert not outcome.was_repaired
        assert outcome.data.final_score == 7
        assert outcome.data.llm_score == {
            "concept_accuracy": 3,
            "example_usage": 2,
            "edge_cases": 1,
            "clarity": 1,
        }

    def test_final_score_always_recomputed(self, rubric):
        outcome = validate_evaluation_data(_data(final_score=10), rubric)
        assert outcome.is_valid
        assert outcome.was_repaired
        assert outcome.data.final_score == 7
        assert any(w.field == "final_score" for w in outcome.warnings)

    def test_non_numeric_final_score_is_only_a_warning(self, rubric):
        outcome = validate_evaluation_data(_data(final_score="seven"), rubric)
        assert outcome.is_valid
        assert outcome.data.final_score == 7

    def test_out_of_range_scores_repaired(self, rubric):
        outcome = validate_evaluation_data(
            _data(concept_accuracy=9, example_usage=2.5, edge_cases=-1, clarity=1), rubric
        )
        assert outcome.is_valid
        assert outcome.was_repaired
        result = outcome.data
        assert (result.concept_accuracy, result.example_usage, result.edge_cases) == (4, 3, 0)
        assert result.final_score == 8

    def test_missing_criterion_is_error(self, rubric):
        data = _data()
        del data["edge_cases"]
        outcome = validate_evaluation_data(data, rubric)
        assert not outcome.is_valid
        assert [e.field for e in outcome.errors] == ["edge_cases"]
        assert not outcome.parse_failed

    def test_text_repairs_never_invalidate(self, rubric):
        outcome = validate_evaluation_data(
            _data(overall_feedback="", improvement_tips="x" * 2000), rubric
        )
        assert outcome.is_valid
        assert outcome.data.overall_feedback == DEFAULT_FEEDBACK_TEXT
        assert len(outcome.data.improvement_tips) == 1000

    def test_custom_length_limits(self, rubric):
        outcome = validate_evaluation_data(
            _data(overall_feedback="y" * 300), rubric, max_feedback_length=100
        )
        assert len(outcome.data.overall_feedback) == 100

    def test_score_bounds_follow_rubric(self, rubric):
        outcome = validate_evaluation_data(_data(clarity=3), rubric)
        assert outcome.data.clarity == 1


class TestValidateEvaluationResponse:
    def test_overflowing_number_clamped(self, rubric):
        raw = evaluation_json().replace('"concept_accuracy": 3', '"concept_accuracy": 1e999')
        outcome = validate_evaluation_response(raw, rubric)
        assert outcome.is_valid
        assert outcome.was_repaired
        assert outcome.data.concept_accuracy == 4
        assert outcome.data.final_score == 8

    def test_fenced_json(self, rubric):
        outcome = validate_evaluation_response(f"```json\n{evaluation_json()}\n```", rubric)
        assert outcome.is_valid
        assert outcome.data.final_score == 7

    def test_unparseable(self, rubric):
        outcome = validate_evaluation_response("no json here", rubric)
        assert not outcome.is_valid
        assert outcome.parse_failed
        assert outcome.errors[0].field == RESPONSE_FIELD
        assert outcome.data is None


class TestQuickValidate:
    def test_complete_object(self):
        assert quick_validate(evaluation_json())

    def test_missing_key(self):
        data = _data()
        del data["improvement_tips"]
        assert not quick_validate(json.dumps(data))

    def test_garbage(self):
        assert not quick_validate("nope")
