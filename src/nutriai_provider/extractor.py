from __future__ import annotations

import json
from typing import Any

import structlog

from .errors import ResponseParseError

log = structlog.get_logger()

JSONValue = dict[str, Any] | list[Any]


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


def _span(text: str, opener: str, closer: str) -> tuple[int, int] | None:
    start = text.find(opener)
    if start < 0:
        return None
    end = text.rfind(closer)
    if end <= start:
        return None
    return start, end + 1


def candidate_spans(text: str) -> list[tuple[int, int]]:
    """Return the greedy object/array spans of `text`, preferred one first.

    Objects win over arrays unless the array span strictly encloses the object
    span, which is what an array of objects looks like. Only the first span is
    ever parsed.
    """
    obj = _span(text, "{", "}")
    arr = _span(text, "[", "]")
    if obj is None:
        return [arr] if arr is not None else []
    if arr is None:
        return [obj]
    if arr[0] < obj[0] and arr[1] > obj[1]:
        return [arr, obj]
    return [obj, arr]


def extract_json(text: str) -> JSONValue:
    """Parse the JSON object or array embedded in free-form model output.

    Greedy first-opener to last-closer matching: braces in prose around the
    payload widen the span and make parsing fail.
    """
    spans = candidate_spans(text or "")
    if not spans:
        raise ResponseParseError("Failed to parse JSON from the AI response (no JSON object or array found).")

    start, end = spans[0]
    try:
        return json.loads(text[start:end], parse_constant=_reject_constant)
    except ValueError as exc:
        log.debug("json_extract_failed", text_chars=len(text), span=(start, end))
        raise ResponseParseError("Failed to parse JSON from the AI response.") from exc
