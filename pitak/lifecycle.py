# lifecycle.py
# Order lifecycle: creation (validated, one order per Order ID), slip
# attachment, status changes, and the notifications that follow them.
#
# Status graph is fully connected: any of the five statuses may replace any
# other, including moving back out of completed/cancelled.

from __future__ import annotations

import asyncio
import logging
import re
from contextlib import asynccontextmanager
from decimal import Decimal, InvalidOperation, Overflow
from typing import Any, AsyncIterator, Dict, List, Optional, Union

from .errors import (
    DuplicateOrderError,
    FileRequiredError,
    InvalidStatusError,
    NotFoundError,
    StoreUnavailableError,
    ValidationError,
)
from .events import NotificationDispatcher, OrderCreated, OrderStatusChanged, SlipReceived
from .models import (
    ORDER_STATUSES,
    PENDING,
    PROP_ORDER_ID,
    PROP_SLIP_URL,
    PROP_STATUS,
    Order,
    build_properties,
    order_from_page,
    to_decimal,
)
from .slips import LocalSlipStorage, SlipUpload
from .store import Page, RecordStore

log = logging.getLogger(__name__)

PHONE_RE = re.compile(r"^0\d{8,9}$")

# Notion numbers are doubles; keep amounts well inside exact integer range.
MAX_AMOUNT = Decimal("1e12")


# =============================================================================
# Validation
# =============================================================================

def _text(payload: Dict[str, Any], key: str) -> str:
    v = payload.get(key)
    return "" if v is None else str(v).strip()


def normalize_phone(raw: str) -> str:
    return re.sub(r"[\s-]", "", raw or "")


def _positive_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        d = to_decimal(value)
    except (InvalidOperation, ValueError):
        return None
    if not d.is_finite() or d <= 0 or d != d.to_integral_value():
        return None
    return int(d)


def _positive_decimal(value: Any) -> Optional[Decimal]:
    if isinstance(value, bool):
        return None
    try:
        d = to_decimal(value)
    except (InvalidOperation, ValueError):
        return None
    if not d.is_finite() or d <= 0:
        return None
    return d


def validate_new_order(payload: Any) -> Order:
    """
    Check a creation payload and build the pending Order from it.
    Every violated field is collected before raising.
    """
    if not isinstance(payload, dict):
        raise ValidationError({"body": "รูปแบบข้อมูลไม่ถูกต้อง"})

    errors: Dict[str, str] = {}

    order_id = _text(payload, "orderId")
    if not order_id:
        errors["orderId"] = "กรุณาระบุ Order ID"

    customer_name = _text(payload, "customerName")
    if len(customer_name) < 2:
        errors["customerName"] = "ชื่อลูกค้าต้องมีอย่างน้อย 2 ตัวอักษร"

    phone = normalize_phone(_text(payload, "phone"))
    if not PHONE_RE.match(phone):
        errors["phone"] = "เบอร์โทรศัพท์ไม่ถูกต้อง (ขึ้นต้นด้วย 0, 9-10 หลัก)"

    amulet_name = _text(payload, "amuletName")
    if not amulet_name:
        errors["amuletName"] = "กรุณาระบุชื่อเหรียญ"

    quantity = _positive_int(payload.get("quantity"))
    if quantity is None:
        errors["quantity"] = "จำนวนต้องเป็นจำนวนเต็มมากกว่า 0"
    elif quantity > MAX_AMOUNT:
        errors["quantity"] = "จำนวนมากเกินไป"

    price = _positive_decimal(payload.get("price"))
    if price is None:
        errors["price"] = "ราคาต้องมากกว่า 0"
    elif price > MAX_AMOUNT:
        errors["price"] = "ราคาสูงเกินไป"

    total = None
    if "quantity" not in errors and "price" not in errors:
        try:
            total = price * quantity
        except Overflow:
            total = None
        if total is None or total > MAX_AMOUNT:
            errors["total"] = "ยอดรวมสูงเกินไป"

    if errors:
        raise ValidationError(errors)

    recipient = _text(payload, "lineUserId") or _text(payload, "notifyRecipient")
    return Order(
        order_id=order_id,
        customer_name=customer_name,
        phone=phone,
        amulet_name=amulet_name,
        quantity=quantity,
        price=price,
        total=total,
        status=PENDING,
        notify_recipient=recipient or None,
    )


# =============================================================================
# Per-key serialization
# =============================================================================

class KeyedLocks:
    """asyncio locks keyed by string, dropped once nobody holds or waits."""

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                self._locks.pop(key, None)

    def __len__(self) -> int:
        return len(self._locks)


# =============================================================================
# Manager
# =============================================================================

class OrderLifecycleManager:
    def __init__(
        self,
        store: Optional[RecordStore],
        events: Optional[NotificationDispatcher] = None,
        slip_storage: Optional[LocalSlipStorage] = None,
    ):
        self.store = store
        self.events = events or NotificationDispatcher(None)
        self.slip_storage = slip_storage or LocalSlipStorage("uploads")
        self._create_locks = KeyedLocks()

    def _require_store(self) -> RecordStore:
        if self.store is None:
            raise StoreUnavailableError()
        return self.store

    async def _find_page(self, order_id: str) -> Page:
        page = await self._require_store().find(PROP_ORDER_ID, order_id)
        if page is None:
            raise NotFoundError()
        return page

    async def create(self, payload: Dict[str, Any]) -> Order:
        order = validate_new_order(payload)
        store = self._require_store()

        async with self._create_locks.hold(order.order_id):
            if await store.find(PROP_ORDER_ID, order.order_id) is not None:
                raise DuplicateOrderError()
            page = await store.create(order.to_properties())

        created = order_from_page(page)
        log.info("[Order] created %s total=%s", created.order_id, created.total)
        await self.events.publish(OrderCreated(created))
        return created

    async def get_by_order_id(self, order_id: str) -> Order:
        return order_from_page(await self._find_page(order_id))

    async def attach_slip(self, order_id: str, slip: Union[SlipUpload, str, None]) -> Order:
        """`slip` is an upload to store, or the URL of an already stored file."""
        page = await self._find_page(order_id)
        if not slip or (isinstance(slip, SlipUpload) and not slip.filename):
            raise FileRequiredError()

        stored = isinstance(slip, SlipUpload)
        slip_url = await self.slip_storage.save(order_id, slip) if stored else slip

        try:
            updated = await self._require_store().update(page["id"], build_properties({PROP_SLIP_URL: slip_url}))
        except Exception:
            if stored:
                self.slip_storage.remove(slip_url)
            raise
        order = order_from_page(updated)
        log.info("[Order] slip attached %s", order_id)
        await self.events.publish(SlipReceived(order))
        return order

    async def list_all(self, status: Optional[str] = None) -> List[Order]:
        if status is not None and status not in ORDER_STATUSES:
            raise InvalidStatusError()
        where = {PROP_STATUS: status} if status else None
        pages = await self._require_store().list(where=where, newest_first=True)
        return [order_from_page(p) for p in pages]

    async def update_status(self, order_id: str, new_status: Any) -> Order:
        if new_status not in ORDER_STATUSES:
            raise InvalidStatusError()
        page = await self._find_page(order_id)
        previous = order_from_page(page).status

        updated = await self._require_store().update(page["id"], build_properties({PROP_STATUS: new_status}))
        order = order_from_page(updated)
        log.info("[Order] status %s: %s -> %s", order_id, previous, new_status)
        await self.events.publish(OrderStatusChanged(order, previous_status=previous))
        return order
