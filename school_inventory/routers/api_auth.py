"""Token endpoints for headless clients such as kiosks and staff scripts.

A client proves once that it holds the shared API key and receives a JWT pair
whose subject is the staff member its writes are attributed to.
"""

from __future__ import annotations

import hmac
import logging

from fastapi import APIRouter, Header, HTTPException, status

from ..core.config import settings
from ..core.security import TokenPair, decode_token, issue_token_pair
from ..schemas.auth import RefreshRequest, TokenRequest, TokenResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


def _session_for(actor_id: str, pair: TokenPair, event: str) -> TokenResponse:
    logger.info(event, extra={"extra_data": {"actor": actor_id, "expires_in": pair.expires_in}})
    return TokenResponse(actor_id=actor_id, **pair.model_dump())


@router.post("/token", response_model=TokenResponse, summary="Open a token session for a staff member")
async def open_session(
    payload: TokenRequest,
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
):
    shared_key = (settings.API_KEY or "").strip()
    if not shared_key:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail="API key authentication is disabled")
    candidate = (payload.api_key or x_api_key or "").strip()
    if not candidate or not hmac.compare_digest(candidate, shared_key):
        logger.warning("auth.token_rejected", extra={"extra_data": {"actor": payload.actor_id}})
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")
    actor_id = payload.actor_id.strip() or "api-client"
    return _session_for(actor_id, issue_token_pair(subject=actor_id), "auth.token_issued")


@router.post("/refresh", response_model=TokenResponse, summary="Renew a session from its refresh token")
async def renew_session(payload: RefreshRequest):
    try:
        claims = decode_token(payload.refresh_token, verify_type="refresh")
    except ValueError as exc:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    return _session_for(claims.sub, issue_token_pair(subject=claims.sub), "auth.token_refreshed")
