"""Tests for fitting payloads into a character budget."""
from github_stats.application.truncation import (
    DEFAULT_MAX_RESPONSE_CHARS,
    TRUNCATION_REASON,
    serialize,
    truncate_response,
)


def payload(count, width=50):
    return {
        "total": count,
        "items": [{"id": i, "text": "x" * width} for i in range(count)],
    }


def test_small_payload_unchanged():
    """Test data within budget is returned as-is."""
    data = payload(3)

    result = truncate_response(data, "items", 10_000)

    assert result.was_truncated is False
    assert result.data is data


def test_truncation_is_idempotent_under_budget():
    """Test truncating a fitting result again changes nothing."""
    first = truncate_response(payload(500), "items", 5_000)
    second = truncate_response(first.data, "items", 5_000)

    assert first.was_truncated is True
    assert second.was_truncated is False
    assert second.data == first.data


def test_truncated_payload_fits_and_describes_cut():
    """Test the array shrinks until the payload fits."""
    data = payload(500)

    result = truncate_response(data, "items", 5_000)

    assert result.was_truncated is True
    assert len(serialize(result.data)) <= 5_000
    info = result.data["truncation_info"]
    assert info["total_available"] == 500
    assert info["showing"] == len(result.data["items"])
    assert info["truncated"] is True
    assert info["reason"] == TRUNCATION_REASON
    assert result.data["items"] == data["items"][:info["showing"]]
    assert result.data["total"] == 500


def test_shrinks_by_eighty_percent_steps():
    """Test the kept count follows repeated 80% cuts."""
    result = truncate_response(payload(100), "items", 5_000)

    allowed = []
    target = 80
    while target > 0:
        allowed.append(target)
        target = int(target * 0.8)
    assert result.data["truncation_info"]["showing"] in allowed


def test_nothing_fits_returns_error_payload():
    """Test an impossible budget yields the error payload."""
    result = truncate_response(payload(10, width=1_000), "items", 200)

    assert result.was_truncated is True
    assert result.data == {
        "error": "Response too large even with truncation",
        "total_available": 10,
        "suggestion": "Use a smaller limit parameter or request specific items",
    }


def test_missing_array_field_is_unchanged():
    """Test oversized data without the array field passes through."""
    data = {"blob": "x" * 1_000}

    result = truncate_response(data, "items", 100)

    assert result.was_truncated is False
    assert result.data is data


def test_default_budget():
    """Test no budget means the default character budget."""
    data = payload(10)

    assert truncate_response(data, "items").was_truncated is False
    assert DEFAULT_MAX_RESPONSE_CHARS == 90000


def test_serialize_is_indented_unicode_json():
    """Test serialization keeps non-ASCII text and indents."""
    assert serialize({"name": "Zoë"}) == '{\n  "name": "Zoë"\n}'
