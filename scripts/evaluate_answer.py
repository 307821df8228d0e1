"""Evaluate a single answer from the command line.

Runs the full evaluation loop against a real provider (credentials from
.env) without the HTTP service or a session store.

Usage:
    python scripts/evaluate_answer.py js-closure "A closure is ..."
    python scripts/evaluate_answer.py js-closure --answer-file answer.txt --provider anthropic \\
        --model claude-3-haiku-20240307
    python scripts/evaluate_answer.py js-closure "..." --estimate-only
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from dotenv import load_dotenv  # noqa: E402

from agents.evaluator import AnswerEvaluator  # noqa: E402
from config.llm_config import LLMConfig  # noqa: E402
from config.settings import get_settings  # noqa: E402
from models.evaluation import EvaluationInput  # noqa: E402
from services.cost import estimate_prompt_cost  # noqa: E402
from services.llm_service import get_provider_registry  # noqa: E402
from services.middleware import configure_logging  # noqa: E402
from services.question_bank import QuestionBank  # noqa: E402

logger = logging.getLogger(__name__)


async def main(args: argparse.Namespace) -> int:
    question = await QuestionBank(args.questions_dir).get_question(args.question_id)
    if question is None:
        print(f"Question not found: {args.question_id}", file=sys.stderr)
        return 2

    answer = Path(args.answer_file).read_text(encoding="utf-8") if args.answer_file else args.answer
    if not answer:
        print("No answer given (positional argument or --answer-file)", file=sys.stderr)
        return 2

    evaluation_input = EvaluationInput(
        question_text=question.question_text,
        ideal_answer=question.ideal_answer,
        rubric=question.rubric,
        user_answer=answer,
    )

    if args.estimate_only:
        model = args.model or "gpt-4o-mini"
        print(json.dumps(estimate_prompt_cost(evaluation_input, model), indent=2))
        return 0

    evaluator = AnswerEvaluator(LLMConfig(provider=args.provider, model=args.model))
    if args.premium:
        config = evaluator.get_config()
        evaluator.set_model(config.provider, get_settings().premium_model)
    registry = get_provider_registry()
    await registry.start()
    try:
        response = await evaluator.evaluate(evaluation_input)
    finally:
        await registry.close()

    print(response.model_dump_json(indent=2))
    return 0 if response.success else 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Evaluate one interview answer")
    parser.add_argument("question_id", help="Question ID from the question bank")
    parser.add_argument("answer", nargs="?", default="", help="Candidate answer text")
    parser.add_argument("--answer-file", help="Read the answer from a file instead")
    parser.add_argument("--provider", help="LLM provider (openai, anthropic, litellm)")
    parser.add_argument("--model", help="Model ID for the provider")
    parser.add_argument(
        "--premium", action="store_true", help="Use the configured premium model"
    )
    parser.add_argument("--questions-dir", help="Alternate question directory")
    parser.add_argument(
        "--estimate-only", action="store_true", help="Print token/cost estimate, no API call"
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    load_dotenv()
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)
    sys.exit(asyncio.run(main(args)))
