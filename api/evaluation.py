"""Answer evaluation endpoint.

``POST /api/evaluate`` scores one answer and adds it to the session total.
LLM failures never produce an error status: the response carries a zero
score, explanatory feedback and ``success: false``.  Only missing
sessions/questions (404), repeat submissions and closed sessions (409) are
HTTP errors.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from errors.exceptions import (
    DuplicateAnswerError,
    QuestionNotFoundError,
    SessionClosedError,
    SessionNotFoundError,
)
from models.errors import ErrorCode, format_error
from models.request import EvaluateRequest, EvaluateResponse
from services.submission_service import AnswerSubmissionService, get_submission_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["evaluation"])


@router.post("/evaluate", response_model=EvaluateResponse)
async def evaluate_answer(
    req: EvaluateRequest,
    service: AnswerSubmissionService = Depends(get_submission_service),
):
    """Evaluate a candidate's answer against the question's rubric."""
    try:
        return await service.submit(req)
    except SessionNotFoundError as e:
        raise HTTPException(
            status_code=404, detail=format_error(ErrorCode.SESSION_NOT_FOUND, str(e))
        )
    except QuestionNotFoundError as e:
        raise HTTPException(
            status_code=404, detail=format_error(ErrorCode.QUESTION_NOT_FOUND, str(e))
        )
    except DuplicateAnswerError as e:
        logger.info("Rejected duplicate submission: %s", e)
        raise HTTPException(
            status_code=409, detail=format_error(ErrorCode.DUPLICATE_ANSWER, str(e))
        )
    except SessionClosedError as e:
        raise HTTPException(
            status_code=409, detail=format_error(ErrorCode.SESSION_CLOSED, str(e))
        )
