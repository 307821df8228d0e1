"""Tests for rubric and question models."""

import pytest
from pydantic import ValidationError

from models.question import Difficulty, Question, QuestionCategory
from models.rubric import CRITERIA, TOTAL_RUBRIC_SCORE, Rubric, RubricCriterion


def _criterion(max_score: int) -> RubricCriterion:
    return RubricCriterion(max_score=max_score, weight_description="test")


class TestRubric:
    def test_default_is_4_3_2_1(self, rubric):
        assert rubric.max_scores() == {
            "concept_accuracy": 4,
            "example_usage": 3,
            "edge_cases": 2,
            "clarity": 1,
        }
        assert rubric.total_max_score == TOTAL_RUBRIC_SCORE

    def test_max_scores_in_canonical_order(self, rubric):
        assert tuple(rubric.max_scores()) == CRITERIA

    def test_custom_split_summing_to_ten(self):
        rubric = Rubric(
            concept_accuracy=_criterion(5),
            example_usage=_criterion(2),
            edge_cases=_criterion(2),
            clarity=_criterion(1),
        )
        assert rubric.total_max_score == 10

    def test_rejects_total_other_than_ten(self):
        with pytest.raises(ValidationError, match="sum to 10"):
            Rubric(
                concept_accuracy=_criterion(4),
                example_usage=_criterion(3),
                edge_cases=_criterion(2),
                clarity=_criterion(2),
            )

    def test_rejects_negative_max_score(self):
        with pytest.raises(ValidationError):
            _criterion(-1)

    def test_criterion_lookup(self, rubric):
        assert rubric.criterion("edge_cases").max_score == 2

    def test_criterion_unknown_name(self, rubric):
        with pytest.raises(KeyError):
            rubric.criterion("creativity")

    def test_frozen(self, rubric):
        with pytest.raises(ValidationError):
            rubric.clarity = _criterion(2)


class TestQuestion:
    def _question(self, rubric, **kwargs) -> Question:
        data = {
            "id": "q-1",
            "title": "Closures",
            "question_text": "What is a closure?",
            "category": "frontend",
            "topic": "JavaScript",
            "difficulty": "medium",
            "ideal_answer": "A function plus its lexical scope.",
            "rubric": rubric,
        }
        data.update(kwargs)
        return Question(**data)

    def test_enum_coercion(self, rubric):
        q = self._question(rubric)
        assert q.category is QuestionCategory.FRONTEND
        assert q.difficulty is Difficulty.MEDIUM

    def test_time_limit_from_difficulty(self, rubric):
        assert self._question(rubric).time_limit_minutes == 10
        assert self._question(rubric, difficulty="hard").time_limit_minutes == 15

    def test_time_limit_explicit(self, rubric):
        assert self._question(rubric, estimated_time_minutes=7).time_limit_minutes == 7

    def test_unknown_category_rejected(self, rubric):
        with pytest.raises(ValidationError):
            self._question(rubric, category="cooking")
