"""Answer evaluation prompts.

Provides two user-prompt variants:
- **Full**: rubric bounds, field-by-field JSON schema and a self-verification
  checklist.  Used on the first attempt and for same-prompt retries.
- **Fallback**: bounds plus an inline example object only.  Used when the
  model keeps returning malformed or incomplete JSON.

Both builders are pure functions of the :class:`EvaluationInput`.
"""

from __future__ import annotations

from enum import Enum

from models.evaluation import EvaluationInput
from models.rubric import CRITERIA, Rubric

# Ideal answers can be long; the fallback prompt only needs the gist.
FALLBACK_IDEAL_ANSWER_CHARS = 500


class PromptVariant(str, Enum):
    FULL = "full"
    FALLBACK = "fallback"


EVALUATION_SYSTEM_PROMPT = """\
You are an expert technical interviewer and answer evaluator. Your task is to \
evaluate interview answers against a rubric with STRICT scoring rules.

CRITICAL RULES:
1. You MUST return ONLY valid JSON - no markdown, no explanations outside JSON
2. You MUST NOT exceed the max_score for any criterion
3. You MUST be objective and consistent
4. You MUST base scores ONLY on what the candidate wrote, not assumptions
5. final_score MUST equal the sum of all individual scores
6. Scores MUST be integers (whole numbers only)

SCORING PHILOSOPHY:
- Score based on demonstrated knowledge, not assumed knowledge
- Partial credit is encouraged when concepts are partially correct
- Missing information should reduce scores proportionally
- Incorrect information should significantly reduce scores
- Do not infer or assume the candidate knows more than what they wrote"""


def _rubric_lines(rubric: Rubric) -> str:
    lines = []
    for i, name in enumerate(CRITERIA, 1):
        criterion = rubric.criterion(name)
        lines.append(f"{i}. {name} (0-{criterion.max_score}): {criterion.weight_description}")
        for level in criterion.scoring_guide:
            lines.append(f"   - {level.score}: {level.description}")
    return "\n".join(lines)


def build_evaluation_prompt(evaluation_input: EvaluationInput) -> str:
    """Build the full user prompt."""
    rubric = evaluation_input.rubric
    bounds = rubric.max_scores()

    schema = "\n".join(
        f'  "{name}": <integer 0-{bounds[name]}>,' for name in CRITERIA
    )
    checklist = "\n".join(
        f"- [ ] {name} is between 0 and {bounds[name]}" for name in CRITERIA
    )

    return f"""\
Evaluate the following interview answer.

## QUESTION
{evaluation_input.question_text}

## IDEAL ANSWER (Reference - Do not share with candidate)
{evaluation_input.ideal_answer}

## EVALUATION RUBRIC (STRICT SCORING LIMITS)
{_rubric_lines(rubric)}

TOTAL MAX SCORE: {rubric.total_max_score}

## CANDIDATE'S ANSWER
{evaluation_input.user_answer}

## REQUIRED OUTPUT FORMAT
Return ONLY this JSON structure (no other text):
{{
{schema}
  "final_score": <integer, must equal sum of above>,
  "overall_feedback": "<2-3 sentences summarizing performance>",
  "improvement_tips": "<2-3 specific actionable improvements>"
}}

VALIDATION CHECKLIST (self-verify before responding):
{checklist}
- [ ] final_score equals {' + '.join(CRITERIA)}
- [ ] All scores are integers
- [ ] Output is valid JSON only"""


def build_fallback_prompt(evaluation_input: EvaluationInput) -> str:
    """Build the simplified retry prompt."""
    rubric = evaluation_input.rubric
    ideal = evaluation_input.ideal_answer
    if len(ideal) > FALLBACK_IDEAL_ANSWER_CHARS:
        ideal = ideal[:FALLBACK_IDEAL_ANSWER_CHARS] + "..."

    scoring = "\n".join(
        f"- {name}: max {rubric.criterion(name).max_score}" for name in CRITERIA
    )
    example = (
        "{"
        + ",".join(f'"{name}":0' for name in CRITERIA)
        + ',"final_score":0,"overall_feedback":"","improvement_tips":""}'
    )

    return f"""\
Rate this interview answer on a scale of 0-{rubric.total_max_score}.

Question: {evaluation_input.question_text}

Ideal Answer Summary: {ideal}

Candidate Answer: {evaluation_input.user_answer}

Scoring:
{scoring}

Return JSON only:
{example}"""


def build_prompt(evaluation_input: EvaluationInput, variant: PromptVariant) -> str:
    """Dispatch to the builder for *variant*."""
    if variant is PromptVariant.FALLBACK:
        return build_fallback_prompt(evaluation_input)
    return build_evaluation_prompt(evaluation_input)
