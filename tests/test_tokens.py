"""Tests for the signed token service."""

import json
from datetime import timedelta

import pytest

from notevault.tokens import TokenService
from notevault.utils import b64url_decode, b64url_encode


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def tokens(clock):
    return TokenService("s3cret", ttl=timedelta(days=7), clock=clock)


def test_issue_then_verify_returns_identity(tokens):
    assert tokens.verify(tokens.issue("usr_123")) == "usr_123"


def test_payload_carries_expiry(tokens, clock):
    _, payload, _ = tokens.issue("usr_123").split(".")
    claims = json.loads(b64url_decode(payload))
    assert claims["sub"] == "usr_123"
    assert claims["exp"] == int(clock.now) + 7 * 24 * 3600


def test_expired_token_is_invalid(tokens, clock):
    token = tokens.issue("usr_123")
    clock.now += 7 * 24 * 3600 - 1
    assert tokens.verify(token) == "usr_123"
    clock.now += 1
    assert tokens.verify(token) is None


def test_other_secret_rejects(tokens, clock):
    other = TokenService("another-secret", clock=clock)
    assert other.verify(tokens.issue("usr_123")) is None


def test_tampered_payload_rejected(tokens, clock):
    header, _, signature = tokens.issue("usr_123").split(".")
    forged = b64url_encode(json.dumps({"sub": "usr_999", "exp": clock.now + 1000}).encode())
    assert tokens.verify(f"{header}.{forged}.{signature}") is None


def test_unsigned_token_rejected(tokens, clock):
    header = b64url_encode(json.dumps({"alg": "none", "typ": "JWT"}).encode())
    payload = b64url_encode(json.dumps({"sub": "usr_123", "exp": clock.now + 1000}).encode())
    assert tokens.verify(f"{header}.{payload}.") is None


@pytest.mark.parametrize("garbage", [
    "",
    "not-a-token",
    "a.b",
    "a.b.c.d",
    "....",
    "é.é.é",
    None,
    12345,
])
def test_malformed_tokens_never_raise(tokens, garbage):
    assert tokens.verify(garbage) is None


def test_empty_secret_refused():
    with pytest.raises(ValueError):
        TokenService("")
