"""Tests for shared ULID conversion and ordering semantics."""

from __future__ import annotations

import pytest

from packages.shiftbook_shared.ids import (
    ULID_STR_LENGTH,
    generate_ulid_bytes,
    generate_ulid_str,
    normalize_ulid_str,
    ulid_bytes_to_str,
    ulid_str_to_bytes,
)


def test_ulid_string_bytes_conversion_is_lossless() -> None:
    """ULID string/bytes conversion must be lossless."""
    ulid_value = generate_ulid_str()

    assert len(ulid_value) == ULID_STR_LENGTH
    assert ulid_bytes_to_str(ulid_str_to_bytes(ulid_value)) == ulid_value


def test_ulid_lexicographic_order_matches_big_endian_binary() -> None:
    """Sorting canonical strings must match sorting binary big-endian ULIDs."""
    values = [generate_ulid_bytes(timestamp_ms=1_700_000_000_000) for _ in range(300)]

    assert sorted(values) == sorted(values, key=ulid_bytes_to_str)


def test_ulid_timestamp_prefix_orders_across_milliseconds() -> None:
    earlier = generate_ulid_str(timestamp_ms=1_700_000_000_000)
    later = generate_ulid_str(timestamp_ms=1_700_000_000_001)

    assert earlier < later


def test_normalize_ulid_str_uppercases_and_rejects_malformed_values() -> None:
    value = generate_ulid_str()

    assert normalize_ulid_str(value.lower()) == value
    with pytest.raises(ValueError):
        normalize_ulid_str("not-a-ulid")
    with pytest.raises(ValueError):
        normalize_ulid_str("U" * ULID_STR_LENGTH)
    with pytest.raises(ValueError):
        ulid_bytes_to_str(b"short")
