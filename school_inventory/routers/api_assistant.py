from __future__ import annotations

from fastapi import APIRouter, Depends

from ..core.errors import ErrorEnvelope
from ..deps.auth import require_actor
from ..schemas.report import AssistantRequest, AssistantResponse
from ..services.assistant import AssistantUnavailable, ask_assistant

router = APIRouter(prefix="/api/v1/assistant", tags=["assistant"], dependencies=[Depends(require_actor)])


@router.post("", response_model=AssistantResponse)
async def api_ask(payload: AssistantRequest):
    try:
        answer = await ask_assistant(payload.query)
    except AssistantUnavailable as exc:
        return ErrorEnvelope(status_code=503, code="assistant_unavailable", message=str(exc))
    return AssistantResponse(response=answer)
