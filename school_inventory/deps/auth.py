from __future__ import annotations

import hmac
from dataclasses import dataclass

from fastapi import Header, HTTPException, Request, status
from fastapi.security.utils import get_authorization_scheme_param

from ..core.config import settings
from ..core.security import decode_token
from ..middlewares import actor_ctx_var

ANONYMOUS_ACTOR = "anonymous"
API_KEY_ACTOR = "api-key"


@dataclass(frozen=True)
class AuthContext:
    """Who is calling. ``actor_id`` is written to created_by/changed_by columns."""

    actor_id: str
    scheme: str


def _unauthorized(detail: str = "Unauthorized") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _resolve(request: Request, actor_id: str, scheme: str, override: str | None = None) -> AuthContext:
    # Shared API keys serve several staff members; X-Actor-Id names the person.
    # A JWT subject is never overridden.
    actor = (override or "").strip() or actor_id
    actor_ctx_var.set(actor)
    request.state.actor = actor
    return AuthContext(actor_id=actor, scheme=scheme)


async def require_actor(
    request: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
    x_actor_id: str | None = Header(default=None, alias="X-Actor-Id"),
) -> AuthContext:
    api_key = settings.API_KEY
    provided_key = (x_api_key or "").strip()
    if api_key and provided_key and hmac.compare_digest(api_key, provided_key):
        return _resolve(request, API_KEY_ACTOR, "api_key", x_actor_id)

    if authorization:
        scheme, credentials = get_authorization_scheme_param(authorization)
        if scheme.lower() == "bearer" and credentials:
            try:
                payload = decode_token(credentials, verify_type="access")
            except ValueError as exc:
                raise _unauthorized(str(exc)) from exc
            request.state.token_payload = payload
            return _resolve(request, payload.sub, "jwt")

    if not api_key:
        return _resolve(request, ANONYMOUS_ACTOR, "open", x_actor_id)
    if provided_key:
        raise _unauthorized("Invalid API key")
    raise _unauthorized("Authorization required")
