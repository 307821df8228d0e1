"""Recover a JSON object from free-form LLM output.

Models wrap JSON in prose or markdown fences despite being told not to, so
parsing runs a cascade of increasingly aggressive strategies and stops at
the first one that yields a JSON *object*:

1. ``direct``     — parse the whole text.
2. ``code_block`` — parse the first fenced code block (optionally ``json``).
3. ``object_span`` — parse the span from the first ``{`` to the last ``}``.
4. ``sanitized``  — strip control characters, drop trailing commas, turn
   single quotes into double quotes, then retry the object span once.

The result is a tagged value: :class:`RecoveredJson` on success,
:class:`RecoveryFailure` otherwise.  Callers branch on type, never on
exceptions.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

_CODE_BLOCK_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_OBJECT_SPAN_RE = re.compile(r"\{[\s\S]*\}")
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f]")
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")

PARSE_FAILURE_MESSAGE = "Failed to parse response as JSON after all recovery attempts"


class RecoveryStage(str, Enum):
    DIRECT = "direct"
    CODE_BLOCK = "code_block"
    OBJECT_SPAN = "object_span"
    SANITIZED = "sanitized"


@dataclass(frozen=True)
class RecoveredJson:
    data: dict[str, Any]
    stage: RecoveryStage


@dataclass(frozen=True)
class RecoveryFailure:
    error: str = PARSE_FAILURE_MESSAGE


RecoveryResult = RecoveredJson | RecoveryFailure


def _loads_object(text: str) -> dict[str, Any] | None:
    """Parse *text* and return it only if it is a JSON object."""
    try:
        parsed = json.loads(text)
    except (json.JSONDecodeError, RecursionError):
        return None
    return parsed if isinstance(parsed, dict) else None


def sanitize_json_text(text: str) -> str:
    """Apply the common LLM JSON fixes used by the last recovery stage."""
    sanitized = _CONTROL_CHARS_RE.sub("", text)
    sanitized = _TRAILING_COMMA_RE.sub(r"\1", sanitized)
    sanitized = sanitized.replace("'", '"')
    return sanitized.strip()


def _object_span(text: str) -> dict[str, Any] | None:
    match = _OBJECT_SPAN_RE.search(text)
    if not match:
        return None
    return _loads_object(match.group(0))


def recover_json(raw: str) -> RecoveryResult:
    """Run the recovery cascade over *raw* provider text."""
    data = _loads_object(raw)
    if data is not None:
        return RecoveredJson(data, RecoveryStage.DIRECT)

    block = _CODE_BLOCK_RE.search(raw)
    if block:
        data = _loads_object(block.group(1).strip())
        if data is not None:
            return RecoveredJson(data, RecoveryStage.CODE_BLOCK)

    data = _object_span(raw)
    if data is not None:
        return RecoveredJson(data, RecoveryStage.OBJECT_SPAN)

    data = _object_span(sanitize_json_text(raw))
    if data is not None:
        return RecoveredJson(data, RecoveryStage.SANITIZED)

    logger.warning("JSON recovery failed, raw output: %s", raw[:200])
    return RecoveryFailure()
