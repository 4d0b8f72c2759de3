from __future__ import annotations

from pitak.webhook import (
    STATUS_HELP_TEXT,
    WELCOME_TEXT,
    EventDeduper,
    event_key,
    handle_events,
    reply_text_for,
)

from .fakes import RecordingNotifier


def _text_event(text, **kw):
    ev = {
        "type": "message",
        "replyToken": "rt",
        "source": {"userId": "U1"},
        "message": {"type": "text", "text": text},
    }
    ev.update(kw)
    return ev


def test_reply_text_for_events():
    assert reply_text_for({"type": "follow"}) == WELCOME_TEXT
    assert reply_text_for(_text_event("ขอเช็คสถานะหน่อย")) == STATUS_HELP_TEXT
    assert reply_text_for(_text_event("My ORDER please")) == STATUS_HELP_TEXT
    assert reply_text_for(_text_event("สวัสดี")) is None
    assert reply_text_for({"type": "message", "message": {"type": "image"}}) is None
    assert reply_text_for({"type": "unfollow"}) is None


def test_deduper_expires_keys():
    d = EventDeduper(ttl=10)
    assert d.seen("k", now=100) is False
    assert d.seen("k", now=105) is True
    assert d.seen("k", now=111) is False


def test_event_key_prefers_webhook_event_id():
    assert event_key({"webhookEventId": "W1", "type": "follow"}) == "W1"
    assert event_key({"type": "follow"}) == event_key({"type": "follow"})


async def test_handle_events_replies_once_per_redelivered_event():
    notifier = RecordingNotifier()
    events = [_text_event("order?", webhookEventId="E1"), _text_event("order?", webhookEventId="E1")]

    answered = await handle_events(events, notifier, EventDeduper())

    assert answered == 1
    assert notifier.replies == [("rt", STATUS_HELP_TEXT)]


async def test_handle_events_pushes_without_reply_token():
    notifier = RecordingNotifier()
    await handle_events([{"type": "follow", "source": {"userId": "U9"}}], notifier, EventDeduper())
    assert notifier.sent == [("U9", WELCOME_TEXT)]


async def test_handle_events_survives_bad_event():
    notifier = RecordingNotifier()
    events = [{"type": "message", "message": "not-a-dict"}, {"type": "follow", "replyToken": "rt2"}]

    answered = await handle_events(events, notifier, EventDeduper())

    assert answered == 1
    assert notifier.replies == [("rt2", WELCOME_TEXT)]
