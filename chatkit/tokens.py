"""Signing and verification of Ed25519 session tokens carrying a user."""

from __future__ import annotations

import time
from typing import Union

import jwt
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from chatkit.core import User

JWT_DURATION = 60 * 60 * 24 * 7
JWT_ISS = "chat_server"
JWT_AUD = "chat_web"
_LEEWAY = 15 * 60
_ALGORITHM = "EdDSA"

PemData = Union[str, bytes]


class TokenError(Exception):
    """A key could not be loaded or a token could not be issued or verified."""


def _as_bytes(pem: PemData) -> bytes:
    return pem.encode("utf-8") if isinstance(pem, str) else bytes(pem)


class EncodingKey:
    """Private key that issues tokens."""

    def __init__(self, key: Ed25519PrivateKey) -> None:
        self._key = key

    @classmethod
    def load(cls, pem: PemData) -> "EncodingKey":
        try:
            key = serialization.load_pem_private_key(_as_bytes(pem), password=None)
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            raise TokenError(f"invalid private key: {exc}") from exc
        if not isinstance(key, Ed25519PrivateKey):
            raise TokenError("private key is not an Ed25519 key")
        return cls(key)

    def sign(self, user: User) -> str:
        """Issue a token for ``user``, valid for a week."""
        now = int(time.time())
        claims = {
            **user.to_dict(),
            "iat": now,
            "nbf": now,
            "exp": now + JWT_DURATION,
            "iss": JWT_ISS,
            "aud": JWT_AUD,
        }
        try:
            return jwt.encode(claims, self._key, algorithm=_ALGORITHM)
        except jwt.PyJWTError as exc:
            raise TokenError(str(exc)) from exc


class DecodingKey:
    """Public key that verifies tokens."""

    def __init__(self, key: Ed25519PublicKey) -> None:
        self._key = key

    @classmethod
    def load(cls, pem: PemData) -> "DecodingKey":
        try:
            key = serialization.load_pem_public_key(_as_bytes(pem))
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            raise TokenError(f"invalid public key: {exc}") from exc
        if not isinstance(key, Ed25519PublicKey):
            raise TokenError("public key is not an Ed25519 key")
        return cls(key)

    def verify(self, token: str) -> User:
        """Check signature, issuer, audience and times; return the user inside."""
        try:
            claims = jwt.decode(
                token,
                self._key,
                algorithms=[_ALGORITHM],
                audience=JWT_AUD,
                issuer=JWT_ISS,
                leeway=_LEEWAY,
            )
        except jwt.PyJWTError as exc:
            raise TokenError(str(exc)) from exc
        try:
            return User.from_dict(claims)
        except ValueError as exc:
            raise TokenError(f"invalid token claims: {exc}") from exc