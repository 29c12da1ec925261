"""JWT issuance and verification for headless API clients."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from pydantic import BaseModel
from pydantic import ValidationError as PayloadError

from .config import settings

ALGORITHM = "HS256"
AUDIENCE = "school-inventory-clients"
ISSUER = "school-inventory"


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class TokenPayload(BaseModel):
    sub: str
    exp: datetime
    iat: datetime
    typ: str
    aud: str
    iss: str


def _encode(subject: str, lifetime: timedelta, token_type: str) -> str:
    now = datetime.now(tz=timezone.utc)
    claims: dict[str, Any] = {
        "sub": subject,
        "iat": int(now.timestamp()),
        "exp": int((now + lifetime).timestamp()),
        "typ": token_type,
        "aud": AUDIENCE,
        "iss": ISSUER,
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=ALGORITHM)


def issue_token_pair(subject: str) -> TokenPair:
    """Mint an access/refresh pair for ``subject`` (the actor id)."""

    access_lifetime = timedelta(minutes=settings.JWT_ACCESS_TTL_MIN)
    refresh_lifetime = timedelta(days=settings.JWT_REFRESH_TTL_DAYS)
    return TokenPair(
        access_token=_encode(subject, access_lifetime, "access"),
        refresh_token=_encode(subject, refresh_lifetime, "refresh"),
        expires_in=int(access_lifetime.total_seconds()),
    )


def decode_token(token: str, *, verify_type: str | None = None) -> TokenPayload:
    try:
        decoded = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[ALGORITHM],
            audience=AUDIENCE,
            issuer=ISSUER,
        )
    except JWTError as exc:
        raise ValueError("Invalid token") from exc
    try:
        payload = TokenPayload.model_validate(decoded)
    except PayloadError as exc:
        raise ValueError("Invalid token payload") from exc
    if verify_type and payload.typ != verify_type:
        raise ValueError("Invalid token type")
    return payload
