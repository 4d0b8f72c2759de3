# events.py
# Post-commit order events and the LINE notifications they trigger.
# Events are published only after the store write succeeded; a failed
# notification is logged and dropped, it never undoes the write.

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Protocol, Union

from .models import STATUS_TEXT, Order, to_number

log = logging.getLogger(__name__)


class Notifier(Protocol):
    async def send(self, to: str, text: str) -> bool: ...


@dataclass(frozen=True)
class OrderCreated:
    order: Order


@dataclass(frozen=True)
class SlipReceived:
    order: Order


@dataclass(frozen=True)
class OrderStatusChanged:
    order: Order
    previous_status: str


OrderEvent = Union[OrderCreated, SlipReceived, OrderStatusChanged]


def _fmt_baht(n: Decimal) -> str:
    return f"{to_number(n):,} บาท"


def created_customer_text(order: Order) -> str:
    return (
        f"🙏 สั่งจองสำเร็จ!\n\n"
        f"📋 {order.order_id}\n"
        f"🎖️ {order.amulet_name} x{order.quantity}\n"
        f"💰 {_fmt_baht(order.total)}\n\n"
        f"⏰ กรุณาชำระภายใน 24 ชม."
    )


def created_admin_text(order: Order) -> str:
    return (
        f"🆕 Order ใหม่\n{order.order_id}\n{order.customer_name}\n"
        f"📞 {order.phone}\n💰 {_fmt_baht(order.total)}"
    )


def slip_admin_text(order: Order) -> str:
    return f"📸 สลิปใหม่!\n{order.order_id}\n{order.customer_name}"


def status_customer_text(order: Order) -> str:
    label = STATUS_TEXT.get(order.status, order.status)
    return f"📦 อัปเดตสถานะ\n{order.order_id}\n→ {label}"


class NotificationDispatcher:
    def __init__(self, notifier: Optional[Notifier], admin_recipient: Optional[str] = None):
        self.notifier = notifier
        self.admin_recipient = admin_recipient

    async def publish(self, event: OrderEvent) -> None:
        try:
            if isinstance(event, OrderCreated):
                await self._on_created(event)
            elif isinstance(event, SlipReceived):
                await self._on_slip(event)
            elif isinstance(event, OrderStatusChanged):
                await self._on_status(event)
            else:
                log.debug("[Notify] no handler for %r", event)
        except Exception:
            log.exception("[Notify] handler failed for %s", type(event).__name__)

    async def _send(self, to: Optional[str], text: str) -> bool:
        if not to or self.notifier is None:
            return False
        try:
            ok = await self.notifier.send(to, text)
        except Exception:
            log.exception("[Notify] notifier raised for %s", to)
            return False
        if not ok:
            log.warning("[Notify] message to %s not delivered", to)
        return ok

    async def _on_created(self, event: OrderCreated) -> None:
        order = event.order
        await self._send(order.notify_recipient, created_customer_text(order))
        await self._send(self.admin_recipient, created_admin_text(order))

    async def _on_slip(self, event: SlipReceived) -> None:
        await self._send(self.admin_recipient, slip_admin_text(event.order))

    async def _on_status(self, event: OrderStatusChanged) -> None:
        await self._send(event.order.notify_recipient, status_customer_text(event.order))
