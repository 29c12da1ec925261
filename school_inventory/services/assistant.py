"""Relay free-text questions to the configured assistant webhook."""

from __future__ import annotations

import logging

import httpx

from ..core.config import settings

logger = logging.getLogger(__name__)


class AssistantUnavailable(RuntimeError):
    """Raised when the webhook is not configured or did not answer."""


async def ask_assistant(
    query: str,
    *,
    webhook_url: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str:
    url = (webhook_url if webhook_url is not None else settings.ASSISTANT_WEBHOOK_URL).strip()
    if not url:
        raise AssistantUnavailable("The assistant webhook is not configured")

    try:
        async with httpx.AsyncClient(timeout=settings.ASSISTANT_TIMEOUT_SECONDS, transport=transport) as client:
            response = await client.post(url, json={"inputMessage": query})
        response.raise_for_status()
        payload = response.json()
    except httpx.HTTPStatusError as exc:
        logger.warning("assistant.bad_status", extra={"extra_data": {"status": exc.response.status_code}})
        raise AssistantUnavailable(f"Assistant webhook answered {exc.response.status_code}") from exc
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("assistant.request_failed", extra={"extra_data": {"error": str(exc)}})
        raise AssistantUnavailable("Assistant webhook request failed") from exc

    if not isinstance(payload, dict):
        return ""
    answer = payload.get("response")
    return "" if answer is None else str(answer)
