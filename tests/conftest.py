"""Shared pytest fixtures for evaluator tests.

Provides:
- ``rubric``: the canonical 4/3/2/1 rubric
- ``evaluation_input``: a closure question with a short candidate answer
- ``scripted_provider``: fake LLM backend returning one valid evaluation
- ``evaluator``: AnswerEvaluator wired to the scripted provider
- ``memory_store``: fresh InMemorySessionStore per test
- ``question_bank``: the bundled question files
"""

from __future__ import annotations

import pytest

from agents.evaluator import AnswerEvaluator
from models.evaluation import EvaluationInput
from models.rubric import Rubric
from services.question_bank import QuestionBank
from services.session_store import InMemorySessionStore
from tests.fakes import ScriptedProvider, evaluation_json, make_evaluator


@pytest.fixture
def rubric() -> Rubric:
    return Rubric.default()


@pytest.fixture
def evaluation_input(rubric: Rubric) -> EvaluationInput:
    return EvaluationInput(
        question_text="What is a closure in JavaScript?",
        ideal_answer="A closure is a function that retains access to its lexical scope.",
        rubric=rubric,
        user_answer="A closure lets an inner function use variables of the outer function.",
    )


@pytest.fixture
def scripted_provider() -> ScriptedProvider:
    return ScriptedProvider(evaluation_json())


@pytest.fixture
def evaluator(scripted_provider: ScriptedProvider) -> AnswerEvaluator:
    return make_evaluator(scripted_provider)


@pytest.fixture
def memory_store() -> InMemorySessionStore:
    """Fresh session store — isolated per test."""
    return InMemorySessionStore()


@pytest.fixture
def question_bank() -> QuestionBank:
    return QuestionBank()
