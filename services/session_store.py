"""Interview session store — sessions, answer records and score totals.

Two guarantees every backend must provide:

- At most one :class:`AnswerRecord` per ``(session_id, question_id)``;
  a second insert raises :class:`DuplicateAnswerError`.
- ``increment_total_score`` is an atomic read-modify-write, so concurrent
  submissions for the same session never lose an update.

A session leaves ``in_progress`` at most once; a second
``complete_session`` raises :class:`SessionClosedError`.
"""

from __future__ import annotations

import logging
import math
import time
import uuid
from abc import ABC, abstractmethod

from errors.exceptions import (
    AnswerNotFoundError,
    DuplicateAnswerError,
    SessionClosedError,
    SessionNotFoundError,
)
from models.session import (
    AnswerHistory,
    AnswerRecord,
    InterviewSession,
    SessionStats,
    SessionStatus,
)

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 20
RECENT_TREND_SIZE = 10

# ── Abstract Interface ───────────────────────────────────────


class SessionStore(ABC):
    """Abstract session store — implement for different backends."""

    @abstractmethod
    async def create_session(self, title: str = "Mock interview") -> InterviewSession:
        """Create and persist a new empty session."""
        ...

    @abstractmethod
    async def get_session(self, session_id: str) -> InterviewSession | None:
        """Retrieve a session by ID.  Returns None if not found."""
        ...

    @abstractmethod
    async def complete_session(
        self,
        session_id: str,
        status: SessionStatus = SessionStatus.COMPLETED,
    ) -> InterviewSession:
        """Move an ``in_progress`` session to *status* and stamp ``completed_at``.

        Raises :class:`SessionNotFoundError` or :class:`SessionClosedError`.
        """
        ...

    @abstractmethod
    async def insert_answer(self, record: AnswerRecord) -> None:
        """Persist an answer.  Raises :class:`DuplicateAnswerError` on a repeat pair."""
        ...

    @abstractmethod
    async def get_answer(self, session_id: str, question_id: str) -> AnswerRecord | None:
        ...

    @abstractmethod
    async def list_answers(self, session_id: str) -> list[AnswerRecord]:
        """All answers of a session, oldest first."""
        ...

    @abstractmethod
    async def flag_answer(
        self, session_id: str, question_id: str, flagged: bool = True
    ) -> AnswerRecord:
        """Set ``is_flagged`` on a stored answer.  Raises :class:`AnswerNotFoundError`."""
        ...

    @abstractmethod
    async def increment_total_score(self, session_id: str, delta: int) -> int:
        """Atomically add *delta* to the session total and count one more
        completed question.  Returns the new total.

        Raises :class:`SessionNotFoundError` for an unknown session.
        """
        ...

    async def get_answer_history(
        self,
        session_id: str,
        *,
        question_id: str | None = None,
        limit: int = DEFAULT_HISTORY_LIMIT,
        offset: int = 0,
    ) -> AnswerHistory:
        """Page through a session's answers, newest first."""
        answers = await self.list_answers(session_id)
        answers.reverse()
        if question_id is not None:
            answers = [a for a in answers if a.question_id == question_id]
        return AnswerHistory(answers=answers[offset:offset + limit], count=len(answers))

    async def get_stats(self, session_id: str) -> SessionStats:
        return summarize_answers(await self.list_answers(session_id))

    async def close(self) -> None:
        """Release backend resources.  Default: nothing to do."""

    async def ping(self) -> bool:
        return True


# ── In-Memory Implementation ────────────────────────────────


class InMemorySessionStore(SessionStore):
    """Dict-backed store for single-worker deployments and tests.

    Every mutation completes without an ``await`` between read and write,
    so it is atomic with respect to other coroutines on the event loop.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, InterviewSession] = {}
        self._answers: dict[tuple[str, str], AnswerRecord] = {}

    async def create_session(self, title: str = "Mock interview") -> InterviewSession:
        session = InterviewSession(id=generate_session_id(), title=title)
        self._sessions[session.id] = session
        return session.model_copy()

    async def get_session(self, session_id: str) -> InterviewSession | None:
        session = self._sessions.get(session_id)
        return session.model_copy() if session else None

    async def complete_session(
        self,
        session_id: str,
        status: SessionStatus = SessionStatus.COMPLETED,
    ) -> InterviewSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        if session.status is not SessionStatus.IN_PROGRESS:
            raise SessionClosedError(session_id, session.status.value)
        session.status = status
        session.completed_at = time.time()
        return session.model_copy()

    async def insert_answer(self, record: AnswerRecord) -> None:
        key = (record.session_id, record.question_id)
        if key in self._answers:
            raise DuplicateAnswerError(record.session_id, record.question_id)
        self._answers[key] = record

    async def get_answer(self, session_id: str, question_id: str) -> AnswerRecord | None:
        return self._answers.get((session_id, question_id))

    async def list_answers(self, session_id: str) -> list[AnswerRecord]:
        answers = [a for (sid, _), a in self._answers.items() if sid == session_id]
        return sorted(answers, key=lambda a: a.created_at)

    async def flag_answer(
        self, session_id: str, question_id: str, flagged: bool = True
    ) -> AnswerRecord:
        key = (session_id, question_id)
        record = self._answers.get(key)
        if record is None:
            raise AnswerNotFoundError(session_id, question_id)
        record = record.model_copy(update={"is_flagged": flagged})
        self._answers[key] = record
        return record

    async def increment_total_score(self, session_id: str, delta: int) -> int:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        session.total_score += delta
        session.completed_questions += 1
        return session.total_score


# ── Redis Implementation ─────────────────────────────────────


class RedisSessionStore(SessionStore):
    """Redis-backed store for multi-worker deployments.

    Layout::

        session:{id}          hash  id, title, total_score, completed_questions, ...
        session:{id}:answers  hash  question_id → AnswerRecord JSON

    Uniqueness comes from ``HSETNX``; the total uses ``HINCRBY`` inside a
    MULTI/EXEC pipeline.  ``completed_at`` is only written by ``HSETNX``,
    so exactly one ``complete_session`` call wins.
    """

    _KEY_PREFIX = "session:"

    def __init__(self, redis_url: str = "", client=None):
        if client is None:
            import redis.asyncio as aioredis

            client = aioredis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=10,
                socket_timeout=10,
            )
        self._redis = client

    def _key(self, session_id: str) -> str:
        return f"{self._KEY_PREFIX}{session_id}"

    def _answers_key(self, session_id: str) -> str:
        return f"{self._KEY_PREFIX}{session_id}:answers"

    async def create_session(self, title: str = "Mock interview") -> InterviewSession:
        session = InterviewSession(id=generate_session_id(), title=title)
        await self._redis.hset(
            self._key(session.id),
            mapping={
                k: str(v)
                for k, v in session.model_dump(mode="json").items()
                if v is not None
            },
        )
        return session

    async def get_session(self, session_id: str) -> InterviewSession | None:
        data = await self._redis.hgetall(self._key(session_id))
        if not data:
            return None
        return InterviewSession.model_validate(data)

    async def complete_session(
        self,
        session_id: str,
        status: SessionStatus = SessionStatus.COMPLETED,
    ) -> InterviewSession:
        key = self._key(session_id)
        if not await self._redis.exists(key):
            raise SessionNotFoundError(session_id)
        if not await self._redis.hsetnx(key, "completed_at", str(time.time())):
            current = await self.get_session(session_id)
            raise SessionClosedError(session_id, current.status.value)
        await self._redis.hset(key, "status", status.value)
        return await self.get_session(session_id)

    async def insert_answer(self, record: AnswerRecord) -> None:
        created = await self._redis.hsetnx(
            self._answers_key(record.session_id),
            record.question_id,
            record.model_dump_json(),
        )
        if not created:
            raise DuplicateAnswerError(record.session_id, record.question_id)

    async def get_answer(self, session_id: str, question_id: str) -> AnswerRecord | None:
        data = await self._redis.hget(self._answers_key(session_id), question_id)
        if data is None:
            return None
        return AnswerRecord.model_validate_json(data)

    async def list_answers(self, session_id: str) -> list[AnswerRecord]:
        raw = await self._redis.hvals(self._answers_key(session_id))
        answers = [AnswerRecord.model_validate_json(item) for item in raw]
        return sorted(answers, key=lambda a: a.created_at)

    async def flag_answer(
        self, session_id: str, question_id: str, flagged: bool = True
    ) -> AnswerRecord:
        # Last writer wins; the flag is the only field ever rewritten.
        record = await self.get_answer(session_id, question_id)
        if record is None:
            raise AnswerNotFoundError(session_id, question_id)
        record = record.model_copy(update={"is_flagged": flagged})
        await self._redis.hset(
            self._answers_key(session_id), question_id, record.model_dump_json()
        )
        return record

    async def increment_total_score(self, session_id: str, delta: int) -> int:
        key = self._key(session_id)
        # Sessions are never deleted, so the existence check cannot go stale.
        if not await self._redis.exists(key):
            raise SessionNotFoundError(session_id)
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.hincrby(key, "total_score", delta)
            pipe.hincrby(key, "completed_questions", 1)
            total, _ = await pipe.execute()
        return int(total)

    async def close(self) -> None:
        """Close the Redis connection pool."""
        await self._redis.aclose()

    async def ping(self) -> bool:
        """Check Redis connectivity."""
        try:
            return await self._redis.ping()
        except Exception:
            logger.warning("Redis ping failed", exc_info=True)
            return False


# ── Statistics ───────────────────────────────────────────────


def _round_one_decimal(value: float) -> float:
    return math.floor(value * 10 + 0.5) / 10


def summarize_answers(answers: list[AnswerRecord]) -> SessionStats:
    """Aggregate scores of *answers* (oldest first).

    ``category_scores`` only covers answers with a known category;
    ``recent_trend`` holds the last ten final scores, oldest first.
    """
    if not answers:
        return SessionStats()

    scores = [a.final_score for a in answers]
    by_category: dict[str, list[int]] = {}
    for answer in answers:
        if answer.category is not None:
            by_category.setdefault(answer.category.value, []).append(answer.final_score)

    return SessionStats(
        total_answers=len(answers),
        average_score=_round_one_decimal(sum(scores) / len(scores)),
        category_scores={
            category: _round_one_decimal(sum(values) / len(values))
            for category, values in by_category.items()
        },
        recent_trend=scores[-RECENT_TREND_SIZE:],
    )


# ── Module-level Singleton ───────────────────────────────────

_store: SessionStore | None = None


def get_session_store() -> SessionStore:
    """Get the singleton session store instance."""
    global _store
    if _store is None:
        from config.settings import get_settings

        settings = get_settings()
        if settings.session_store_type == "redis" and settings.redis_url:
            _store = RedisSessionStore(redis_url=settings.redis_url)
            logger.info("Initialized RedisSessionStore")
        else:
            _store = InMemorySessionStore()
            logger.info("Initialized InMemorySessionStore")
    return _store


def generate_session_id() -> str:
    """Generate a new server-side session ID."""
    return f"sess-{uuid.uuid4().hex[:12]}"
