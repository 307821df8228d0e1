"""Question bank — interview questions with their ideal answers and rubrics.

Questions are stored as JSON files in ``data/questions/`` (one question per
file, filename = question ID).  Files are read once and cached; a file that
fails to parse or whose rubric does not add up is logged and skipped.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from models.question import Difficulty, Question, QuestionCategory

logger = logging.getLogger(__name__)

QUESTION_DIR = Path(__file__).parent.parent / "data" / "questions"


class QuestionBank:
    """Read-only lookup over a directory of question files."""

    def __init__(self, directory: Path | str | None = None) -> None:
        self.directory = Path(directory) if directory else QUESTION_DIR
        self._questions: dict[str, Question] | None = None

    def _load(self) -> dict[str, Question]:
        if self._questions is not None:
            return self._questions

        questions: dict[str, Question] = {}
        if not self.directory.exists():
            logger.warning("Question directory does not exist: %s", self.directory)
        else:
            for file_path in sorted(self.directory.glob("*.json")):
                try:
                    with open(file_path, "r", encoding="utf-8") as f:
                        data = json.load(f)
                    question = Question.model_validate(data)
                except (json.JSONDecodeError, ValidationError) as e:
                    logger.warning("Failed to read question file %s: %s", file_path, e)
                    continue
                questions[question.id] = question
            logger.info("Loaded %d question(s) from %s", len(questions), self.directory)

        self._questions = questions
        return questions

    async def get_question(self, question_id: str) -> Question | None:
        """Look up an active question by ID.  Returns None if not found."""
        question = self._load().get(question_id)
        if question is None or not question.is_active:
            return None
        return question

    def list_questions(
        self,
        category: QuestionCategory | None = None,
        difficulty: Difficulty | None = None,
        topic: str = "",
    ) -> list[Question]:
        """List active questions, optionally filtered."""
        results = []
        for question in self._load().values():
            if not question.is_active:
                continue
            if category and question.category != category:
                continue
            if difficulty and question.difficulty != difficulty:
                continue
            if topic and question.topic.lower() != topic.lower():
                continue
            results.append(question)
        return results

    def reload(self) -> None:
        """Drop the cache so the next lookup re-reads the directory."""
        self._questions = None


# ── Module-level Singleton ───────────────────────────────────

_bank: QuestionBank | None = None


def get_question_bank() -> QuestionBank:
    """Get the singleton question bank instance."""
    global _bank
    if _bank is None:
        from config.settings import get_settings

        _bank = QuestionBank(get_settings().question_bank_dir or None)
    return _bank
