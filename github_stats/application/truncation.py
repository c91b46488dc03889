"""Fit tool payloads into a character budget for text transports."""
import json
from dataclasses import dataclass
from typing import Any, Optional


# Roughly 4 characters per token, with a safety margin (~22.5K tokens)
DEFAULT_MAX_RESPONSE_CHARS = 90000

TRUNCATION_REASON = (
    "Response exceeded token limit - use smaller limit parameter or pagination"
)


@dataclass(frozen=True)
class TruncationResult:
    data: Any
    was_truncated: bool


def serialize(data: Any) -> str:
    """Pretty-print a payload as JSON."""
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def truncate_response(
    data: Any, array_field: str, max_chars: Optional[int] = None
) -> TruncationResult:
    """Shrink ``data[array_field]`` until the serialized payload fits.

    The array is cut to 80% of its size repeatedly, with a
    ``truncation_info`` block describing what was dropped. If even a
    one-item array does not fit, an error payload naming the available
    count is returned instead. Payloads already within budget, or without
    that array field, come back unchanged.
    """
    budget = max_chars or DEFAULT_MAX_RESPONSE_CHARS
    if len(serialize(data)) <= budget:
        return TruncationResult(data=data, was_truncated=False)

    if not isinstance(data, dict) or not isinstance(data.get(array_field), list):
        return TruncationResult(data=data, was_truncated=False)

    original = data[array_field]
    target = int(len(original) * 0.8)

    while target > 0:
        truncated = {
            **data,
            array_field: original[:target],
            "truncation_info": {
                "total_available": len(original),
                "showing": target,
                "truncated": True,
                "reason": TRUNCATION_REASON,
            },
        }
        if len(serialize(truncated)) <= budget:
            return TruncationResult(data=truncated, was_truncated=True)
        target = int(target * 0.8)

    return TruncationResult(
        data={
            "error": "Response too large even with truncation",
            "total_available": len(original),
            "suggestion": "Use a smaller limit parameter or request specific items",
        },
        was_truncated=True,
    )
