"""Question bank endpoints.

The ideal answer and rubric are withheld from listings so candidates only
see the question itself.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from models.errors import ErrorCode, format_error
from models.question import Difficulty, Question, QuestionCategory
from services.question_bank import QuestionBank, get_question_bank

router = APIRouter(prefix="/api/questions", tags=["questions"])


def _summary(question: Question) -> dict:
    return {
        "id": question.id,
        "title": question.title,
        "questionText": question.question_text,
        "category": question.category.value,
        "topic": question.topic,
        "difficulty": question.difficulty.value,
        "tags": list(question.tags),
        "timeLimitMinutes": question.time_limit_minutes,
        "maxScore": question.rubric.total_max_score,
    }


@router.get("")
async def list_questions(
    category: QuestionCategory | None = None,
    difficulty: Difficulty | None = None,
    topic: str = "",
    bank: QuestionBank = Depends(get_question_bank),
):
    questions = bank.list_questions(category=category, difficulty=difficulty, topic=topic)
    return {"questions": [_summary(q) for q in questions]}


@router.get("/{question_id}")
async def get_question(question_id: str, bank: QuestionBank = Depends(get_question_bank)):
    question = await bank.get_question(question_id)
    if question is None:
        raise HTTPException(
            status_code=404,
            detail=format_error(ErrorCode.QUESTION_NOT_FOUND, f"question '{question_id}' not found"),
        )
    return _summary(question)
