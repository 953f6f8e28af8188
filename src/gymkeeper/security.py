"""Password hashing and bearer tokens.

Passwords use bcrypt. Bearer tokens are ``<payload>.<signature>`` where
the payload is base64url JSON ``{"sub", "role", "exp"}`` and the signature
is an HMAC-SHA256 of the payload under the service secret.
"""

import base64
import hashlib
import hmac
import json
import time

import bcrypt

from .errors import Unauthenticated


BCRYPT_MAX_BYTES = 72


def _to_bcrypt_secret(password: str) -> bytes:
    """Encode a password, keeping the 72 bytes bcrypt actually reads."""
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int = 12) -> str:
    """Returns a bcrypt hash as a UTF-8 string."""
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(_to_bcrypt_secret(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    return bcrypt.checkpw(_to_bcrypt_secret(password), password_hash.encode("utf-8"))


def _b64(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode().rstrip("=")


def _ub64(text: str) -> bytes:
    pad = "=" * ((4 - len(text) % 4) % 4)
    return base64.urlsafe_b64decode((text + pad).encode())


class TokenSigner:
    """Issues and verifies signed bearer tokens."""

    def __init__(self, secret: str, ttl_seconds: int):
        self._secret = secret.encode("utf-8")
        self.ttl_seconds = ttl_seconds

    def _sign(self, payload: str) -> str:
        return _b64(hmac.new(self._secret, payload.encode(), hashlib.sha256).digest())

    def issue(self, subject: int, role: str, now: float | None = None) -> str:
        issued_at = int(now if now is not None else time.time())
        payload = _b64(
            json.dumps(
                {"sub": subject, "role": role, "exp": issued_at + self.ttl_seconds}
            ).encode()
        )
        return f"{payload}.{self._sign(payload)}"

    def verify(self, token: str, now: float | None = None) -> dict:
        """Return the token claims.

        Raises:
            Unauthenticated: malformed, tampered or expired token
        """
        try:
            payload, signature = token.split(".")
        except ValueError:
            raise Unauthenticated("Invalid token. Please log in again.") from None

        if not hmac.compare_digest(self._sign(payload), signature):
            raise Unauthenticated("Invalid token. Please log in again.")

        try:
            claims = json.loads(_ub64(payload).decode())
            expires = int(claims["exp"])
        except (ValueError, KeyError, TypeError):
            raise Unauthenticated("Invalid token. Please log in again.") from None

        if expires < (now if now is not None else time.time()):
            raise Unauthenticated("Your token has expired. Please log in again.")
        return claims
