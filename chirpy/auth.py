"""Password hashing and JSON Web Token helpers."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt

DEFAULT_COST = 10
ISSUER = "chirpy"
_ALGORITHM = "HS256"
_MAX_PASSWORD_BYTES = 72


class AuthError(Exception):
    """Raised when a password or token fails verification."""


def hash_password(password: str) -> str:
    """Return a bcrypt hash of ``password`` at the default cost."""
    raw = password.encode("utf-8")
    if len(raw) > _MAX_PASSWORD_BYTES:
        raise AuthError("password length exceeds 72 bytes")
    return bcrypt.hashpw(raw, bcrypt.gensalt(rounds=DEFAULT_COST)).decode("ascii")


def check_password_hash(hashed: str, password: str) -> None:
    """Raise :class:`AuthError` unless ``password`` matches ``hashed``."""
    try:
        matches = bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError as exc:
        raise AuthError(f"invalid password hash: {exc}") from exc
    if not matches:
        raise AuthError("password does not match hash")


def make_jwt(user_id: uuid.UUID, token_secret: str, expires_in: timedelta) -> str:
    """Create an HS256-signed token whose subject is ``user_id``."""
    issued = datetime.now(timezone.utc)
    claims = {
        "iss": ISSUER,
        "sub": str(user_id),
        "iat": issued,
        "exp": issued + expires_in,
    }
    return jwt.encode(claims, token_secret.encode("utf-8"), algorithm=_ALGORITHM)


def validate_jwt(token_string: str, token_secret: str) -> uuid.UUID:
    """Verify ``token_string`` and return the user id held in its subject."""
    try:
        claims = jwt.decode(
            token_string,
            token_secret.encode("utf-8"),
            algorithms=[_ALGORITHM],
        )
    except jwt.PyJWTError as exc:
        raise AuthError(f"invalid token: {exc}") from exc
    subject = claims.get("sub", "")
    try:
        return uuid.UUID(str(subject))
    except ValueError as exc:
        raise AuthError(f"invalid subject in token: {subject!r}") from exc