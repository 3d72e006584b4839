"""Tests for the low-level signing primitives."""

import hashlib
from datetime import datetime, timedelta, timezone

from sbgateway.common.hmac import (
    build_authorization,
    build_string_to_sign,
    canonical_json,
    canonicalize,
    content_digest,
    format_date,
    sign,
    verify,
)


class TestCanonicalization:
    """Test key-order independent canonical JSON."""

    def test_sorts_top_level_keys(self):
        assert list(canonicalize({"z": 1, "a": 2, "m": 3})) == ["a", "m", "z"]

    def test_sorts_nested_maps(self):
        result = canonicalize({"b": {"y": 1, "x": 2}, "a": 0})
        assert list(result) == ["a", "b"]
        assert list(result["b"]) == ["x", "y"]

    def test_preserves_list_order(self):
        result = canonicalize({"items": [3, 1, {"b": 1, "a": 2}]})
        assert result["items"][:2] == [3, 1]
        assert list(result["items"][2]) == ["a", "b"]

    def test_compact_json(self):
        assert canonical_json({"b": 1, "a": [1, 2]}) == b'{"a":[1,2],"b":1}'

    def test_slashes_and_unicode_unescaped(self):
        encoded = canonical_json({"url": "https://a.b/c", "name": "Café 東京"})
        assert b"https://a.b/c" in encoded
        assert "Café 東京".encode("utf-8") in encoded
        assert b"\\u" not in encoded


class TestContentDigest:
    """Test content digest computation."""

    def test_empty_body_is_empty_string(self):
        assert content_digest({}) == ""
        assert content_digest(None) == ""

    def test_empty_body_is_not_hash_of_empty_document(self):
        assert content_digest({}) != hashlib.sha256(b"{}").hexdigest()
        assert content_digest({}) != hashlib.sha256(b"").hexdigest()

    def test_digest_matches_sha256_of_canonical_json(self):
        expected = hashlib.sha256(b'{"a":2,"m":3,"z":1}').hexdigest()
        assert content_digest({"z": 1, "a": 2, "m": 3}) == expected

    def test_digest_is_64_lowercase_hex(self):
        digest = content_digest({"amount": 100})
        assert len(digest) == 64
        assert digest == digest.lower()
        int(digest, 16)


class TestDateFormat:
    """Test signing date formatting."""

    def test_millisecond_precision_with_z(self):
        ts = datetime(2022, 8, 15, 14, 59, 47, 585000, tzinfo=timezone.utc)
        assert format_date(ts) == "2022-08-15T14:59:47.585Z"

    def test_zero_padded_milliseconds(self):
        ts = datetime(2022, 1, 2, 3, 4, 5, 7000, tzinfo=timezone.utc)
        assert format_date(ts) == "2022-01-02T03:04:05.007Z"

    def test_truncates_microseconds(self):
        ts = datetime(2022, 8, 15, 14, 59, 47, 585999, tzinfo=timezone.utc)
        assert format_date(ts) == "2022-08-15T14:59:47.585Z"

    def test_converts_offsets_to_utc(self):
        plus_eight = timezone(timedelta(hours=8))
        ts = datetime(2022, 8, 15, 22, 59, 47, 585000, tzinfo=plus_eight)
        assert format_date(ts) == "2022-08-15T14:59:47.585Z"

    def test_naive_datetime_is_utc(self):
        ts = datetime(2022, 8, 15, 14, 59, 47, 585000)
        assert format_date(ts) == "2022-08-15T14:59:47.585Z"


class TestStringToSign:
    """Test the five-line signing string."""

    def test_layout(self):
        result = build_string_to_sign(
            "post", "application/json", "2022-08-15T14:59:47.585Z", "/v1/x", "abc"
        )
        assert result == "POST\napplication/json\n2022-08-15T14:59:47.585Z\n/v1/x\nabc"

    def test_empty_digest_keeps_fifth_line(self):
        result = build_string_to_sign("GET", "application/json", "d", "/p", "")
        assert result.split("\n") == ["GET", "application/json", "d", "/p", ""]
        assert result.endswith("\n")
        assert not result.endswith("\n\n")


class TestSignAndVerify:
    """Test HMAC signing helpers."""

    def test_sign_is_hex_hmac(self):
        signature = sign("secret", "message")
        assert len(signature) == 64
        assert signature == sign("secret", "message")
        assert signature != sign("other", "message")

    def test_authorization_format(self):
        assert build_authorization("key", "abc") == "SB1-HMAC-SHA256 key:abc"

    def test_verify(self):
        assert verify("SB1-HMAC-SHA256 key:abc", "SB1-HMAC-SHA256 key:abc") is True
        assert verify("SB1-HMAC-SHA256 key:abc", "SB1-HMAC-SHA256 key:abd") is False
        assert verify("SB1-HMAC-SHA256 key:abc", "") is False
