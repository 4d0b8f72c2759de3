from __future__ import annotations

import base64
import hashlib
import hmac
import json

import httpx

from pitak.line import LINE_PUSH_ENDPOINT, LINE_REPLY_ENDPOINT, LineNotifier, verify_signature


def _notifier(handler, token="token"):
    return LineNotifier(token, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


async def test_send_pushes_text_message():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={})

    assert await _notifier(handler).send("U1", "hello") is True
    assert seen["url"] == LINE_PUSH_ENDPOINT
    assert seen["auth"] == "Bearer token"
    assert seen["body"] == {"to": "U1", "messages": [{"type": "text", "text": "hello"}]}


async def test_reply_uses_reply_token():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={})

    assert await _notifier(handler).reply("rt-1", "hi") is True
    assert seen["url"] == LINE_REPLY_ENDPOINT
    assert seen["body"]["replyToken"] == "rt-1"


async def test_send_failures_return_false():
    assert await _notifier(lambda r: httpx.Response(400, json={"message": "bad"})).send("U1", "x") is False

    def boom(request):
        raise httpx.ReadTimeout("slow", request=request)

    assert await _notifier(boom).send("U1", "x") is False


async def test_send_without_token_or_recipient_is_skipped():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={})

    assert await _notifier(handler, token="").send("U1", "x") is False
    assert await _notifier(handler).send("", "x") is False
    assert calls == []


def test_verify_signature():
    body = b'{"events":[]}'
    sig = base64.b64encode(hmac.new(b"secret", body, hashlib.sha256).digest()).decode()

    assert verify_signature("secret", body, sig)
    assert not verify_signature("secret", body, "nope")
    assert not verify_signature("", body, sig)
