"""Tests for answer submission and session aggregation."""

from __future__ import annotations

import asyncio

import pytest

from errors.exceptions import (
    DuplicateAnswerError,
    QuestionNotFoundError,
    SessionClosedError,
    SessionNotFoundError,
)
from models.request import EvaluateRequest
from services.submission_service import AnswerSubmissionService
from tests.fakes import ScriptedProvider, evaluation_json, make_evaluator


def _service(provider, memory_store, question_bank) -> AnswerSubmissionService:
    return AnswerSubmissionService(make_evaluator(provider), memory_store, question_bank)


def _request(session_id: str, question_id: str = "js-closure") -> EvaluateRequest:
    return EvaluateRequest(
        session_id=session_id,
        question_id=question_id,
        user_answer="A closure keeps access to outer variables.",
    )


async def test_successful_submission_persists_and_aggregates(memory_store, question_bank):
    service = _service(ScriptedProvider(evaluation_json()), memory_store, question_bank)
    session = await memory_store.create_session()

    response = await service.submit(_request(session.id))

    assert response.success
    assert response.score == 7
    assert response.feedback == "Solid explanation of closures."
    assert response.tips == "Mention the var-in-loop pitfall."

    record = await memory_store.get_answer(session.id, "js-closure")
    assert record.final_score == 7
    assert record.llm_score.concept_accuracy == 3
    assert record.user_answer == "A closure keeps access to outer variables."

    updated = await memory_store.get_session(session.id)
    assert updated.total_score == 7
    assert updated.completed_questions == 1


async def test_prompt_uses_question_bank_content(memory_store, question_bank):
    provider = ScriptedProvider(evaluation_json())
    service = _service(provider, memory_store, question_bank)
    session = await memory_store.create_session()

    await service.submit(_request(session.id))

    question = await question_bank.get_question("js-closure")
    prompt = provider.calls[0]["user"]
    assert question.question_text in prompt
    assert question.ideal_answer in prompt


async def test_failed_evaluation_not_persisted(memory_store, question_bank):
    service = _service(ScriptedProvider("garbage"), memory_store, question_bank)
    session = await memory_store.create_session()

    response = await service.submit(_request(session.id))

    assert not response.success
    assert response.score == 0
    assert response.feedback.startswith("Evaluation could not be completed:")
    assert await memory_store.get_answer(session.id, "js-closure") is None
    assert (await memory_store.get_session(session.id)).total_score == 0


async def test_resubmission_allowed_after_failure(memory_store, question_bank):
    provider = ScriptedProvider("garbage", "garbage", "garbage", evaluation_json())
    service = _service(provider, memory_store, question_bank)
    session = await memory_store.create_session()

    first = await service.submit(_request(session.id))
    second = await service.submit(_request(session.id))

    assert not first.success
    assert second.success
    assert (await memory_store.get_session(session.id)).total_score == 7


async def test_unknown_session(memory_store, question_bank):
    provider = ScriptedProvider(evaluation_json())
    service = _service(provider, memory_store, question_bank)

    with pytest.raises(SessionNotFoundError):
        await service.submit(_request("sess-missing"))
    assert provider.calls == []


async def test_unknown_question(memory_store, question_bank):
    provider = ScriptedProvider(evaluation_json())
    service = _service(provider, memory_store, question_bank)
    session = await memory_store.create_session()

    with pytest.raises(QuestionNotFoundError):
        await service.submit(_request(session.id, "no-such-question"))
    assert provider.calls == []


async def test_duplicate_submission_rejected_before_evaluation(memory_store, question_bank):
    provider = ScriptedProvider(evaluation_json())
    service = _service(provider, memory_store, question_bank)
    session = await memory_store.create_session()

    await service.submit(_request(session.id))
    with pytest.raises(DuplicateAnswerError):
        await service.submit(_request(session.id))

    assert len(provider.calls) == 1
    assert (await memory_store.get_session(session.id)).total_score == 7


async def test_racing_duplicates_counted_once(memory_store, question_bank):
    service = _service(ScriptedProvider(evaluation_json()), memory_store, question_bank)
    session = await memory_store.create_session()

    results = await asyncio.gather(
        service.submit(_request(session.id)),
        service.submit(_request(session.id)),
        return_exceptions=True,
    )

    assert sum(isinstance(r, DuplicateAnswerError) for r in results) == 1
    updated = await memory_store.get_session(session.id)
    assert updated.total_score == 7
    assert updated.completed_questions == 1


async def test_scores_accumulate_across_questions(memory_store, question_bank):
    provider = ScriptedProvider(
        evaluation_json(),
        evaluation_json(concept_accuracy=4, example_usage=3, edge_cases=2, clarity=1),
    )
    service = _service(provider, memory_store, question_bank)
    session = await memory_store.create_session()

    await service.submit(_request(session.id, "js-closure"))
    await service.submit(_request(session.id, "js-event-loop"))

    updated = await memory_store.get_session(session.id)
    assert updated.total_score == 17
    assert updated.completed_questions == 2


async def test_closed_session_rejected(memory_store, question_bank):
    provider = ScriptedProvider(evaluation_json())
    service = _service(provider, memory_store, question_bank)
    session = await memory_store.create_session()
    await memory_store.complete_session(session.id)

    with pytest.raises(SessionClosedError):
        await service.submit(_request(session.id))
    assert provider.calls == []


async def test_record_carries_category_and_time_taken(memory_store, question_bank):
    service = _service(ScriptedProvider(evaluation_json()), memory_store, question_bank)
    session = await memory_store.create_session()
    request = _request(session.id).model_copy(update={"time_taken_seconds": 95})

    await service.submit(request)

    record = await memory_store.get_answer(session.id, "js-closure")
    question = await question_bank.get_question("js-closure")
    assert record.category is question.category
    assert record.time_taken_seconds == 95
    assert not record.is_flagged
