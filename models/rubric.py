"""Rubric models — the four weighted criteria every answer is scored on.

A rubric is authored together with its question and never changes
afterwards, so all models here are frozen.  The four ``max_score`` values
must add up to :data:`TOTAL_RUBRIC_SCORE`; anything else is rejected at
construction time.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

CRITERIA: tuple[str, ...] = (
    "concept_accuracy",
    "example_usage",
    "edge_cases",
    "clarity",
)

TOTAL_RUBRIC_SCORE = 10

# Canonical 4/3/2/1 split
RUBRIC_WEIGHTS: dict[str, int] = {
    "concept_accuracy": 4,
    "example_usage": 3,
    "edge_cases": 2,
    "clarity": 1,
}

_DEFAULT_DESCRIPTIONS: dict[str, str] = {
    "concept_accuracy": "Correctness and depth of the core concept",
    "example_usage": "Concrete, relevant examples that illustrate the concept",
    "edge_cases": "Awareness of edge cases, trade-offs and failure modes",
    "clarity": "Structure and clarity of the explanation",
}


class ScoringLevel(BaseModel):
    """One anchor point of a criterion's scoring guide."""

    model_config = ConfigDict(frozen=True)

    score: int = Field(ge=0)
    description: str


class RubricCriterion(BaseModel):
    """A single scoring criterion."""

    model_config = ConfigDict(frozen=True)

    max_score: int = Field(ge=0)
    weight_description: str
    scoring_guide: tuple[ScoringLevel, ...] = ()


class Rubric(BaseModel):
    """Complete four-criterion rubric for one question."""

    model_config = ConfigDict(frozen=True)

    concept_accuracy: RubricCriterion
    example_usage: RubricCriterion
    edge_cases: RubricCriterion
    clarity: RubricCriterion

    @model_validator(mode="after")
    def _check_total(self) -> Rubric:
        total = self.total_max_score
        if total != TOTAL_RUBRIC_SCORE:
            raise ValueError(
                f"Rubric max scores must sum to {TOTAL_RUBRIC_SCORE}, got {total}"
            )
        return self

    @property
    def total_max_score(self) -> int:
        return sum(self.criterion(name).max_score for name in CRITERIA)

    def criterion(self, name: str) -> RubricCriterion:
        """Look up a criterion by name; raises ``KeyError`` for unknown names."""
        if name not in CRITERIA:
            raise KeyError(name)
        return getattr(self, name)

    def max_scores(self) -> dict[str, int]:
        """Return ``{criterion: max_score}`` in canonical order."""
        return {name: self.criterion(name).max_score for name in CRITERIA}

    @classmethod
    def default(cls) -> Rubric:
        """The canonical 4/3/2/1 rubric."""
        return cls(**{
            name: RubricCriterion(
                max_score=RUBRIC_WEIGHTS[name],
                weight_description=_DEFAULT_DESCRIPTIONS[name],
            )
            for name in CRITERIA
        })
