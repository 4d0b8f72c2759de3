# line.py
# LINE Messaging API: push/reply text plus webhook signature check.
# Delivery is best effort; nothing here raises to the caller.

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
from typing import Any, Dict, List, Optional

import httpx

from .errors import NotificationFailure

log = logging.getLogger(__name__)

LINE_REPLY_ENDPOINT = "https://api.line.me/v2/bot/message/reply"
LINE_PUSH_ENDPOINT = "https://api.line.me/v2/bot/message/push"


def _hmac_sha256(secret: str, body: bytes) -> str:
    mac = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(mac).decode("utf-8")


def verify_signature(secret: str, body: bytes, signature: str) -> bool:
    if not secret or not signature:
        return False
    expected = _hmac_sha256(secret, body)
    return hmac.compare_digest(expected, signature)


def text_message(text: str) -> Dict[str, Any]:
    return {"type": "text", "text": text}


class LineNotifier:
    def __init__(
        self,
        channel_access_token: str,
        timeout: float = 15,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.channel_access_token = channel_access_token
        self.timeout = timeout
        self._client = client

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.channel_access_token}",
            "Content-Type": "application/json",
        }

    async def _post(self, url: str, payload: Dict[str, Any]) -> None:
        if not self.channel_access_token:
            raise NotificationFailure("LINE channel access token not configured")
        try:
            if self._client is not None:
                r = await self._client.post(url, headers=self._headers(), json=payload)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    r = await client.post(url, headers=self._headers(), json=payload)
        except httpx.HTTPError as e:
            raise NotificationFailure(repr(e)) from e
        if r.status_code >= 400:
            raise NotificationFailure(f"{r.status_code} {r.text[:500]}")

    async def push(self, to: str, messages: List[Dict[str, Any]]) -> bool:
        if not to:
            return False
        try:
            await self._post(LINE_PUSH_ENDPOINT, {"to": to, "messages": messages})
        except NotificationFailure as e:
            log.warning("[LINE] push to %s failed: %s", to, e)
            return False
        return True

    async def reply(self, reply_token: str, text: str) -> bool:
        if not reply_token:
            return False
        try:
            await self._post(LINE_REPLY_ENDPOINT, {"replyToken": reply_token, "messages": [text_message(text)]})
        except NotificationFailure as e:
            log.warning("[LINE] reply failed: %s", e)
            return False
        return True

    async def send(self, to: str, text: str) -> bool:
        return await self.push(to, [text_message(text)])
