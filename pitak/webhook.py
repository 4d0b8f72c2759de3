# webhook.py
# Inbound LINE events. The bot only greets new followers and points people
# asking about an order to send their order number.

from __future__ import annotations

import hashlib
import json
import logging
import threading
import time
from typing import Any, Dict, List, Optional

from .line import LineNotifier

log = logging.getLogger(__name__)

WELCOME_TEXT = "🙏 ยินดีต้อนรับสู่ เหรียญพิทักษ์แผ่นดิน\n\nสั่งจองได้ที่เว็บไซต์ของเรา"
STATUS_HELP_TEXT = "📋 ตรวจสอบสถานะ Order\n\nกรุณาแจ้งหมายเลข Order ของท่าน"
STATUS_KEYWORDS = ("สถานะ", "order")


class EventDeduper:
    """LINE may redeliver a webhook; remember event keys for `ttl` seconds."""

    def __init__(self, ttl: float = 60 * 10):
        self.ttl = ttl
        self._lock = threading.Lock()
        self._seen: Dict[str, float] = {}  # key -> expires_at

    def seen(self, key: str, now: Optional[float] = None) -> bool:
        now = time.time() if now is None else now
        with self._lock:
            expired = [k for k, exp in self._seen.items() if exp <= now]
            for k in expired:
                self._seen.pop(k, None)

            if key in self._seen:
                return True
            self._seen[key] = now + self.ttl
            return False


def event_key(ev: Dict[str, Any]) -> str:
    ev_id = ev.get("webhookEventId") or ""
    if ev_id:
        return ev_id
    return hashlib.sha1(json.dumps(ev, ensure_ascii=False, sort_keys=True).encode("utf-8")).hexdigest()


def reply_text_for(ev: Dict[str, Any]) -> Optional[str]:
    etype = ev.get("type")
    if etype == "follow":
        return WELCOME_TEXT
    if etype == "message":
        msg = ev.get("message", {}) or {}
        if msg.get("type") != "text":
            return None
        text = (msg.get("text") or "").lower()
        if any(k in text for k in STATUS_KEYWORDS):
            return STATUS_HELP_TEXT
    return None


async def handle_events(events: List[Dict[str, Any]], notifier: LineNotifier, deduper: EventDeduper) -> int:
    """Returns the number of events answered."""
    answered = 0
    for ev in events:
        try:
            if deduper.seen(event_key(ev)):
                continue

            src = ev.get("source", {}) or {}
            user_id = src.get("userId", "")
            log.info("[Webhook] event %s from %s", ev.get("type"), user_id)

            text = reply_text_for(ev)
            if text is None:
                continue

            reply_token = ev.get("replyToken", "")
            if reply_token:
                ok = await notifier.reply(reply_token, text)
            else:
                ok = await notifier.send(user_id, text)
            if ok:
                answered += 1
        except Exception:
            log.exception("[Webhook] event handling error")
    return answered
