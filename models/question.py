"""Question bank models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from models.rubric import Rubric


class QuestionCategory(str, Enum):
    """Supported question categories."""
    FRONTEND = "frontend"
    BACKEND = "backend"
    SYSTEM_DESIGN = "system_design"
    DATA_STRUCTURES = "data_structures"
    ALGORITHMS = "algorithms"
    DATABASES = "databases"
    DEVOPS = "devops"
    BEHAVIORAL = "behavioral"


class Difficulty(str, Enum):
    """Question difficulty levels."""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


# Suggested answering time per difficulty (minutes)
TIME_LIMITS: dict[Difficulty, int] = {
    Difficulty.EASY: 5,
    Difficulty.MEDIUM: 10,
    Difficulty.HARD: 15,
}


class Question(BaseModel):
    """An interview question with its reference answer and rubric."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    question_text: str
    category: QuestionCategory
    topic: str
    difficulty: Difficulty
    ideal_answer: str
    rubric: Rubric
    tags: tuple[str, ...] = ()
    estimated_time_minutes: int | None = Field(default=None, gt=0)
    is_active: bool = True

    @property
    def time_limit_minutes(self) -> int:
        return self.estimated_time_minutes or TIME_LIMITS[self.difficulty]
