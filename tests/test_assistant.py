import asyncio
import json
import os
import sys
from pathlib import Path

import httpx
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DB_URL", "sqlite://")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

from school_inventory.services.assistant import AssistantUnavailable, ask_assistant

WEBHOOK = "https://hooks.example.test/assistant"


def _transport(handler):
    return httpx.MockTransport(handler)


def test_ask_assistant_relays_query_and_returns_response():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"response": "There are 4 projectors available."})

    answer = asyncio.run(ask_assistant("How many projectors?", webhook_url=WEBHOOK, transport=_transport(handler)))

    assert answer == "There are 4 projectors available."
    assert seen == {"url": WEBHOOK, "body": {"inputMessage": "How many projectors?"}}


def test_ask_assistant_missing_response_field():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "ok"})

    answer = asyncio.run(ask_assistant("hi", webhook_url=WEBHOOK, transport=_transport(handler)))

    assert answer == ""


def test_ask_assistant_not_configured():
    with pytest.raises(AssistantUnavailable):
        asyncio.run(ask_assistant("hi", webhook_url=""))


def test_ask_assistant_server_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="bad gateway")

    with pytest.raises(AssistantUnavailable):
        asyncio.run(ask_assistant("hi", webhook_url=WEBHOOK, transport=_transport(handler)))


def test_ask_assistant_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(AssistantUnavailable):
        asyncio.run(ask_assistant("hi", webhook_url=WEBHOOK, transport=_transport(handler)))


def test_ask_assistant_non_json_body():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>oops</html>")

    with pytest.raises(AssistantUnavailable):
        asyncio.run(ask_assistant("hi", webhook_url=WEBHOOK, transport=_transport(handler)))
