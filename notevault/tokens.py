"""
Signed, time-limited identity tokens.

Tokens use the compact JWT layout (``header.payload.signature``, base64url
without padding) signed with HMAC-SHA256. Nothing is stored server side:
a token stays valid until it expires or the secret is rotated.
"""

import hashlib
import hmac
import json
import time
from datetime import timedelta
from typing import Callable, Optional

from .utils import b64url_decode, b64url_encode

_HEADER = {"alg": "HS256", "typ": "JWT"}


class TokenService:
    def __init__(self, secret: str, ttl: timedelta = timedelta(days=7),
                 clock: Callable[[], float] = time.time):
        if not secret:
            raise ValueError("Token secret must not be empty")
        self._secret = secret.encode("utf-8")
        self.ttl = ttl
        self._clock = clock

    def _sign(self, signing_input: bytes) -> str:
        return b64url_encode(hmac.new(self._secret, signing_input, hashlib.sha256).digest())

    @staticmethod
    def _encode_segment(data: dict) -> str:
        return b64url_encode(json.dumps(data, separators=(",", ":"), sort_keys=True).encode("utf-8"))

    def issue(self, identity_id: str) -> str:
        """Return a token for ``identity_id`` that expires after the configured TTL."""
        now = int(self._clock())
        payload = {"sub": identity_id, "iat": now, "exp": now + int(self.ttl.total_seconds())}
        signing_input = f"{self._encode_segment(_HEADER)}.{self._encode_segment(payload)}"
        return f"{signing_input}.{self._sign(signing_input.encode('ascii'))}"

    def verify(self, token: str) -> Optional[str]:
        """
        Return the identity id embedded in ``token``, or None.

        Malformed, tampered, wrongly signed and expired tokens all give None;
        callers cannot and should not tell them apart.
        """
        try:
            header_raw, payload_raw, signature = token.split(".")
            signing_input = f"{header_raw}.{payload_raw}".encode("ascii")
            if not hmac.compare_digest(self._sign(signing_input), signature):
                return None
            header = json.loads(b64url_decode(header_raw))
            payload = json.loads(b64url_decode(payload_raw))
        except (AttributeError, ValueError, TypeError):
            return None

        if not isinstance(header, dict) or header.get("alg") != _HEADER["alg"]:
            return None
        if not isinstance(payload, dict):
            return None
        subject = payload.get("sub")
        expires = payload.get("exp")
        if not isinstance(subject, str) or not subject:
            return None
        if not isinstance(expires, (int, float)) or isinstance(expires, bool):
            return None
        if expires <= self._clock():
            return None
        return subject
