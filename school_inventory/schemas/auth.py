from __future__ import annotations

from pydantic import BaseModel, Field


class TokenRequest(BaseModel):
    api_key: str = Field(..., alias="apiKey", min_length=1)
    # Identity recorded as ``created_by``/``changed_by`` for this client.
    actor_id: str = Field(default="api-client", alias="actorId", min_length=1)

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {"example": {"apiKey": "super-secret-key", "actorId": "librarian-01"}},
    }


class TokenResponse(BaseModel):
    actor_id: str
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class RefreshRequest(BaseModel):
    refresh_token: str
