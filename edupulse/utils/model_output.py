"""
Helpers for reading JSON out of language-model replies.

Replies are untrusted text: sometimes bare JSON, sometimes JSON inside a
markdown code fence, sometimes JSON surrounded by prose. Nothing here
raises on bad input; callers get ``None`` and decide on a fallback.
"""
import json
import re
from typing import Any, Optional

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)


def _try_load(candidate: str) -> Optional[Any]:
    candidate = candidate.strip()
    if not candidate:
        return None
    try:
        return json.loads(candidate)
    except (json.JSONDecodeError, ValueError):
        return None


def _outer_span(text: str, opener: str, closer: str) -> Optional[str]:
    start = text.find(opener)
    end = text.rfind(closer)
    if start == -1 or end <= start:
        return None
    return text[start:end + 1]


def parse_model_json(text: Optional[str], expect: Optional[type] = None) -> Optional[Any]:
    """
    Best-effort extraction of a JSON value from a model reply.

    Tries the whole text, then each fenced code block, then the outermost
    ``[...]`` / ``{...}`` span. When ``expect`` is given (``list`` or
    ``dict``) only a value of that type is accepted.
    """
    if not isinstance(text, str):
        return None

    candidates = [text]
    candidates.extend(match.group(1) for match in _FENCE_RE.finditer(text))

    if expect is list:
        spans = [_outer_span(text, "[", "]")]
    elif expect is dict:
        spans = [_outer_span(text, "{", "}")]
    else:
        spans = [_outer_span(text, "{", "}"), _outer_span(text, "[", "]")]
    candidates.extend(span for span in spans if span)

    for candidate in candidates:
        value = _try_load(candidate)
        if value is None:
            continue
        if expect is None or isinstance(value, expect):
            return value
    return None
