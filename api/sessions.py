"""Interview session endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from errors.exceptions import AnswerNotFoundError, SessionClosedError, SessionNotFoundError
from models.errors import ErrorCode, format_error
from models.request import CompleteSessionRequest, CreateSessionRequest, FlagAnswerRequest
from models.session import (
    AnswerHistory,
    AnswerRecord,
    InterviewSession,
    SessionStats,
    SessionStatus,
)
from services.session_store import DEFAULT_HISTORY_LIMIT, SessionStore, get_session_store

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


def _session_not_found(session_id: str) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail=format_error(ErrorCode.SESSION_NOT_FOUND, f"session '{session_id}' not found"),
    )


async def _require_session(store: SessionStore, session_id: str) -> InterviewSession:
    session = await store.get_session(session_id)
    if session is None:
        raise _session_not_found(session_id)
    return session


@router.post("", response_model=InterviewSession, status_code=201)
async def create_session(
    req: CreateSessionRequest,
    store: SessionStore = Depends(get_session_store),
):
    """Start a new interview session with a zero total score."""
    return await store.create_session(title=req.title)


@router.get("/{session_id}", response_model=InterviewSession)
async def get_session(session_id: str, store: SessionStore = Depends(get_session_store)):
    return await _require_session(store, session_id)


@router.post("/{session_id}/complete", response_model=InterviewSession)
async def complete_session(
    session_id: str,
    req: CompleteSessionRequest | None = None,
    store: SessionStore = Depends(get_session_store),
):
    """Finish (or abandon) a session.  Closed sessions accept no more answers."""
    status = req.status if req is not None else SessionStatus.COMPLETED
    try:
        return await store.complete_session(session_id, status)
    except SessionNotFoundError:
        raise _session_not_found(session_id)
    except SessionClosedError as e:
        raise HTTPException(
            status_code=409, detail=format_error(ErrorCode.SESSION_CLOSED, str(e))
        )


@router.get("/{session_id}/answers", response_model=AnswerHistory)
async def list_answers(
    session_id: str,
    question_id: str | None = None,
    limit: int = Query(DEFAULT_HISTORY_LIMIT, ge=1, le=100),
    offset: int = Query(0, ge=0),
    store: SessionStore = Depends(get_session_store),
):
    """Recorded answers of a session, newest first, with the total match count."""
    await _require_session(store, session_id)
    return await store.get_answer_history(
        session_id, question_id=question_id, limit=limit, offset=offset
    )


@router.patch("/{session_id}/answers/{question_id}", response_model=AnswerRecord)
async def flag_answer(
    session_id: str,
    question_id: str,
    req: FlagAnswerRequest,
    store: SessionStore = Depends(get_session_store),
):
    """Flag (or unflag) a recorded answer for review."""
    try:
        return await store.flag_answer(session_id, question_id, req.is_flagged)
    except AnswerNotFoundError as e:
        raise HTTPException(
            status_code=404, detail=format_error(ErrorCode.ANSWER_NOT_FOUND, str(e))
        )


@router.get("/{session_id}/stats", response_model=SessionStats)
async def get_stats(session_id: str, store: SessionStore = Depends(get_session_store)):
    """Answer count, average score, per-category averages and the recent trend."""
    await _require_session(store, session_id)
    return await store.get_stats(session_id)
