"""PKCE verifier/challenge and anti-forgery state for one authorization attempt."""
import hashlib
import secrets
from base64 import urlsafe_b64encode
from dataclasses import dataclass

VERIFIER_BYTES = 32


def _b64url(raw: bytes) -> str:
    return urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def generate_code_verifier() -> str:
    """32 random bytes, base64url without padding (43 characters)."""
    return _b64url(secrets.token_bytes(VERIFIER_BYTES))


def derive_code_challenge(verifier: str) -> str:
    """S256 challenge: base64url(SHA-256(verifier)) without padding."""
    return _b64url(hashlib.sha256(verifier.encode("ascii")).digest())


def generate_state() -> str:
    return secrets.token_urlsafe(16)


@dataclass(frozen=True)
class AuthSession:
    verifier: str
    state: str

    @classmethod
    def create(cls) -> "AuthSession":
        return cls(verifier=generate_code_verifier(), state=generate_state())

    @property
    def code_challenge(self) -> str:
        return derive_code_challenge(self.verifier)
