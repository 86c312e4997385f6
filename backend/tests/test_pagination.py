"""
PetProject Backend - Cursor Tests
===================================

What we test:
    ✅ Cursors are opaque, URL-safe and decode to the position they encode
    ✅ Malformed cursors and page sizes are rejected
"""

import base64
from datetime import datetime, timezone

import pytest

from petproject.exceptions import InvalidArgumentError
from petproject.services.pagination import (
    MAX_PAGE_SIZE,
    check_page_size,
    decode_cursor,
    encode_cursor,
)


class TestCursor:

    def test_cursor_decodes_to_position(self):
        created_at = datetime(2024, 5, 1, 12, 30, 0, 123456, tzinfo=timezone.utc)
        cursor = encode_cursor(created_at, "p1")

        assert "=" not in cursor
        assert decode_cursor(cursor) == (created_at, "p1")

    @pytest.mark.parametrize(
        "cursor",
        [
            "!!!",
            base64.urlsafe_b64encode(b"not json").decode(),
            base64.urlsafe_b64encode(b'{"t": "yesterday", "id": "p1"}').decode(),
            base64.urlsafe_b64encode(b'{"t": "2024-05-01T00:00:00+00:00"}').decode(),
            base64.urlsafe_b64encode(b'{"t": "2024-05-01T00:00:00+00:00", "id": ""}').decode(),
            base64.urlsafe_b64encode(b"[1, 2]").decode(),
        ],
    )
    def test_malformed_cursor(self, cursor):
        with pytest.raises(InvalidArgumentError):
            decode_cursor(cursor)


class TestPageSize:

    @pytest.mark.parametrize("size", [1, 20, MAX_PAGE_SIZE])
    def test_valid(self, size):
        assert check_page_size(size) == size

    @pytest.mark.parametrize("size", [0, -1, MAX_PAGE_SIZE + 1])
    def test_invalid(self, size):
        with pytest.raises(InvalidArgumentError):
            check_page_size(size)
