"""AnswerEvaluator — score one interview answer with an LLM, never failing loudly.

Each call runs a bounded state machine::

    Attempt(variant) → Validate → ACCEPT | RETRY(variant) | USE_DEFAULT

- Attempt:  build the prompt variant, call the provider under the
            per-attempt deadline, recover JSON from the text.
- Validate: repair scores against the rubric (see services.score_validator).
- Decide:   services.recovery_strategy picks the next transition.

At most ``max_retries + 1`` attempts are made.  Provider errors, timeouts,
malformed output and field errors are absorbed; the caller always gets an
:class:`EvaluationResponse` whose ``data`` is a well-formed result (all
zeros after exhaustion).  Task cancellation is not absorbed.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone

from config.llm_config import LLMConfig
from config.prompts.evaluation import EVALUATION_SYSTEM_PROMPT, PromptVariant, build_prompt
from config.settings import get_settings
from errors.exceptions import ProviderError
from models.errors import ErrorCode, format_error
from models.evaluation import (
    EvaluationErrorInfo,
    EvaluationInput,
    EvaluationMetadata,
    EvaluationResponse,
    TokenUsage,
)
from services.concurrency import ConcurrencyLimiter
from services.cost import estimate_usage_cost
from services.llm_service import (
    LLMProvider,
    ProviderRegistry,
    call_with_timeout,
    get_provider_registry,
)
from services.recovery_strategy import (
    AttemptOutcome,
    RecoveryStrategy,
    default_evaluation_result,
    determine_recovery_strategy,
    next_prompt_variant,
)
from services.response_recoverer import RecoveryFailure, RecoveryStage, recover_json
from services.score_validator import parse_failure_outcome, validate_evaluation_data

logger = logging.getLogger(__name__)

MAX_REASON_CHARS = 200


@dataclass(frozen=True)
class AttemptRecord:
    variant: PromptVariant
    outcome: AttemptOutcome
    latency_ms: int


@dataclass
class AttemptLog:
    """Accumulator for a single ``evaluate`` call.

    Created per call and passed down explicitly; nothing here is shared
    between concurrent evaluations.
    """

    attempts: list[AttemptRecord] = field(default_factory=list)
    token_usage: TokenUsage | None = None

    def record(self, variant: PromptVariant, outcome: AttemptOutcome, latency_ms: int) -> None:
        self.attempts.append(AttemptRecord(variant, outcome, latency_ms))
        if outcome.usage is not None:
            self.token_usage = (
                outcome.usage if self.token_usage is None else self.token_usage + outcome.usage
            )

    @property
    def retry_count(self) -> int:
        return max(len(self.attempts) - 1, 0)

    @property
    def last_outcome(self) -> AttemptOutcome | None:
        return self.attempts[-1].outcome if self.attempts else None


class AnswerEvaluator:
    """Drives the attempt/validate/decide loop for one answer at a time.

    A single instance is safe to share between concurrent ``evaluate``
    calls: per-call state lives in an :class:`AttemptLog`.
    """

    def __init__(
        self,
        config: LLMConfig | None = None,
        *,
        registry: ProviderRegistry | None = None,
        max_retries: int | None = None,
        timeout_seconds: float | None = None,
        max_feedback_length: int | None = None,
        max_tips_length: int | None = None,
        limiter: ConcurrencyLimiter | None = None,
    ) -> None:
        settings = get_settings()
        self._config = settings.get_default_llm_config()
        if config is not None:
            self._config = self._config.merge(config)

        self._registry = registry or get_provider_registry()
        self.max_retries = settings.max_retries if max_retries is None else max_retries
        self.timeout_seconds = (
            settings.request_timeout_seconds if timeout_seconds is None else timeout_seconds
        )
        self.max_feedback_length = max_feedback_length or settings.max_feedback_length
        self.max_tips_length = max_tips_length or settings.max_tips_length
        self._limiter = limiter or ConcurrencyLimiter(settings.max_concurrent_llm_calls)

    # -- configuration -------------------------------------------------------

    def set_model(self, provider: str, model: str) -> None:
        """Switch provider/model for subsequent evaluations."""
        self._config = self._config.merge(LLMConfig(provider=provider, model=model))

    def get_config(self) -> LLMConfig:
        """Return a copy of the current generation config."""
        return self._config.model_copy()

    # -- public API ----------------------------------------------------------

    async def evaluate(
        self,
        evaluation_input: EvaluationInput,
        overrides: LLMConfig | None = None,
    ) -> EvaluationResponse:
        """Evaluate one answer.

        Raises :class:`UnknownProviderError` if the configured provider is not
        registered; every LLM-side failure is returned, not raised.
        """
        started = time.perf_counter()
        config = self._config.merge(overrides) if overrides is not None else self._config
        provider = self._registry.get(config.provider or "")

        log = AttemptLog()
        variant = PromptVariant.FULL

        for retry_count in range(self.max_retries + 1):
            attempt_started = time.perf_counter()
            outcome = await self._attempt(provider, evaluation_input, config, variant)
            latency_ms = _elapsed_ms(attempt_started)
            log.record(variant, outcome, latency_ms)

            strategy = determine_recovery_strategy(outcome.kind, retry_count, self.max_retries)
            logger.log(
                logging.INFO if strategy is RecoveryStrategy.ACCEPT else logging.WARNING,
                "Evaluation attempt %d/%d (%s prompt, %dms): %s → %s",
                retry_count + 1,
                self.max_retries + 1,
                variant.value,
                latency_ms,
                outcome.kind.value,
                strategy.value,
            )

            if strategy is RecoveryStrategy.ACCEPT:
                return EvaluationResponse(
                    success=True,
                    data=outcome.result,
                    metadata=self._metadata(config, log, started),
                )
            if strategy is RecoveryStrategy.USE_DEFAULT:
                break
            variant = next_prompt_variant(strategy, variant)

        return self._fallback(config, log, started)

    # -- state machine steps -------------------------------------------------

    async def _attempt(
        self,
        provider: LLMProvider,
        evaluation_input: EvaluationInput,
        config: LLMConfig,
        variant: PromptVariant,
    ) -> AttemptOutcome:
        """One provider call, reduced to a tagged outcome."""
        user_prompt = build_prompt(evaluation_input, variant)
        try:
            response = await call_with_timeout(
                provider,
                EVALUATION_SYSTEM_PROMPT,
                user_prompt,
                config,
                self.timeout_seconds,
                limiter=self._limiter,
            )
        except ProviderError as exc:
            logger.warning("Provider call failed: %s", exc)
            return AttemptOutcome.from_provider_error(exc)
        except Exception as exc:
            # Third-party providers may raise anything; CancelledError is not an Exception
            logger.warning("Provider %s raised unexpectedly", provider.name, exc_info=True)
            return AttemptOutcome.from_provider_error(
                ProviderError(provider.name, f"Unexpected failure: {exc!r}")
            )

        return self.validate_response(response.content, evaluation_input, response.usage)

    def validate_response(
        self,
        raw: str,
        evaluation_input: EvaluationInput,
        usage: TokenUsage | None = None,
    ) -> AttemptOutcome:
        """Recover and validate raw provider text (the post-call half of an attempt)."""
        recovered = recover_json(raw)
        if isinstance(recovered, RecoveryFailure):
            return AttemptOutcome.from_validation(
                parse_failure_outcome(raw, recovered.error), usage=usage
            )

        if recovered.stage is not RecoveryStage.DIRECT:
            logger.info("Recovered JSON via %s stage", recovered.stage.value)
        validation = validate_evaluation_data(
            recovered.data,
            evaluation_input.rubric,
            self.max_feedback_length,
            self.max_tips_length,
        )
        return AttemptOutcome.from_validation(validation, usage=usage)

    # -- response assembly ---------------------------------------------------

    def _metadata(self, config: LLMConfig, log: AttemptLog, started: float) -> EvaluationMetadata:
        return EvaluationMetadata(
            model_used=config.provider or "",
            model_version=config.model or "",
            timestamp=datetime.now(timezone.utc),
            processing_time_ms=_elapsed_ms(started),
            token_usage=log.token_usage,
            retry_count=log.retry_count,
            estimated_cost_usd=estimate_usage_cost(log.token_usage, config.model or ""),
        )

    def _fallback(self, config: LLMConfig, log: AttemptLog, started: float) -> EvaluationResponse:
        last = log.last_outcome
        reason = (last.message if last else "") or "Evaluation failed"
        code = (last.error_code if last else None) or ErrorCode.INTERNAL_ERROR

        logger.warning(
            "Evaluation exhausted after %d attempt(s), using default result: %s",
            len(log.attempts),
            reason,
        )
        return EvaluationResponse(
            success=False,
            data=default_evaluation_result(reason[:MAX_REASON_CHARS]),
            metadata=self._metadata(config, log, started),
            error=EvaluationErrorInfo(
                code=ErrorCode.EVALUATION_FAILED,
                message=f"Failed to evaluate answer after {len(log.attempts)} attempt(s)",
                details=format_error(code, reason),
            ),
        )


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


# ── Module-level Singleton ───────────────────────────────────

_evaluator: AnswerEvaluator | None = None


def get_answer_evaluator() -> AnswerEvaluator:
    """Get the shared evaluator (one per worker process)."""
    global _evaluator
    if _evaluator is None:
        _evaluator = AnswerEvaluator()
    return _evaluator
