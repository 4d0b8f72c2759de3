# models.py
# Order entity and its mapping onto Notion's typed page properties.

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Optional, Union

# =============================================================================
# Status
# =============================================================================

PENDING = "pending"
PAID = "paid"
SHIPPED = "shipped"
COMPLETED = "completed"
CANCELLED = "cancelled"

ORDER_STATUSES = (PENDING, PAID, SHIPPED, COMPLETED, CANCELLED)

STATUS_TEXT = {
    PENDING: "รอชำระเงิน",
    PAID: "ชำระเงินแล้ว ✅",
    SHIPPED: "จัดส่งแล้ว 🚚",
    COMPLETED: "เสร็จสิ้น ✨",
    CANCELLED: "ยกเลิก ❌",
}

# =============================================================================
# Notion property names / types
# =============================================================================

PROP_ORDER_ID = "Order ID"
PROP_CUSTOMER = "Customer"
PROP_PHONE = "Phone"
PROP_AMULET = "Amulet"
PROP_QUANTITY = "Quantity"
PROP_PRICE = "Price"
PROP_TOTAL = "Total"
PROP_STATUS = "Status"
PROP_SLIP_URL = "SlipUrl"
PROP_LINE_USER_ID = "LineUserId"

PROPERTY_TYPES: Dict[str, str] = {
    PROP_ORDER_ID: "title",
    PROP_CUSTOMER: "rich_text",
    PROP_PHONE: "rich_text",
    PROP_AMULET: "rich_text",
    PROP_QUANTITY: "number",
    PROP_PRICE: "number",
    PROP_TOTAL: "number",
    PROP_STATUS: "select",
    PROP_SLIP_URL: "url",
    PROP_LINE_USER_ID: "rich_text",
}

Number = Union[int, float]


def to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value is None or isinstance(value, bool):
        raise InvalidOperation(f"not a number: {value!r}")
    return Decimal(str(value).strip())


def to_number(value: Optional[Decimal]) -> Optional[Number]:
    """Decimal -> JSON number (int when integral)."""
    if value is None:
        return None
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def typed_value(prop_type: str, value: Any) -> Dict[str, Any]:
    if prop_type in ("title", "rich_text"):
        return {prop_type: [{"type": "text", "text": {"content": str(value)}}]}
    if prop_type == "number":
        return {"number": to_number(to_decimal(value)) if value is not None else None}
    if prop_type == "select":
        return {"select": {"name": str(value)}}
    if prop_type == "url":
        return {"url": value}
    if prop_type == "phone_number":
        return {"phone_number": value}
    raise ValueError(f"unsupported property type: {prop_type}")


def plain_value(prop: Optional[Dict[str, Any]]) -> Any:
    """Extract the scalar held by a typed Notion property (None if empty)."""
    if not prop:
        return None
    ptype = prop.get("type") or next((k for k in ("title", "rich_text", "number", "select", "url", "phone_number") if k in prop), None)
    if ptype in ("title", "rich_text"):
        parts = prop.get(ptype) or []
        text = "".join(
            p.get("plain_text") or (p.get("text") or {}).get("content", "")
            for p in parts
        )
        return text or None
    if ptype == "select":
        sel = prop.get("select") or {}
        return sel.get("name")
    if ptype in ("number", "url", "phone_number"):
        return prop.get(ptype)
    return None


def build_properties(values: Dict[str, Any]) -> Dict[str, Any]:
    return {name: typed_value(PROPERTY_TYPES[name], v) for name, v in values.items()}


# =============================================================================
# Order
# =============================================================================

@dataclass
class Order:
    order_id: str
    customer_name: str
    phone: str
    amulet_name: str
    quantity: int
    price: Decimal
    total: Decimal
    status: str = PENDING
    slip_url: Optional[str] = None
    notify_recipient: Optional[str] = None
    record_id: Optional[str] = None
    created_at: Optional[str] = None

    def to_properties(self) -> Dict[str, Any]:
        values: Dict[str, Any] = {
            PROP_ORDER_ID: self.order_id,
            PROP_CUSTOMER: self.customer_name,
            PROP_PHONE: self.phone,
            PROP_AMULET: self.amulet_name,
            PROP_QUANTITY: self.quantity,
            PROP_PRICE: self.price,
            PROP_TOTAL: self.total,
            PROP_STATUS: self.status,
        }
        if self.slip_url:
            values[PROP_SLIP_URL] = self.slip_url
        if self.notify_recipient:
            values[PROP_LINE_USER_ID] = self.notify_recipient
        return build_properties(values)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.record_id,
            "orderId": self.order_id,
            "customerName": self.customer_name,
            "phone": self.phone,
            "amuletName": self.amulet_name,
            "quantity": self.quantity,
            "price": to_number(self.price),
            "total": to_number(self.total),
            "status": self.status,
            "slipUrl": self.slip_url,
            "lineUserId": self.notify_recipient,
            "createdAt": self.created_at,
        }


def order_from_page(page: Dict[str, Any]) -> Order:
    props = page.get("properties") or {}

    def num(name: str) -> Decimal:
        v = plain_value(props.get(name))
        return to_decimal(v) if v is not None else Decimal(0)

    return Order(
        order_id=plain_value(props.get(PROP_ORDER_ID)) or "",
        customer_name=plain_value(props.get(PROP_CUSTOMER)) or "",
        phone=plain_value(props.get(PROP_PHONE)) or "",
        amulet_name=plain_value(props.get(PROP_AMULET)) or "",
        quantity=int(num(PROP_QUANTITY)),
        price=num(PROP_PRICE),
        total=num(PROP_TOTAL),
        status=plain_value(props.get(PROP_STATUS)) or PENDING,
        slip_url=plain_value(props.get(PROP_SLIP_URL)),
        notify_recipient=plain_value(props.get(PROP_LINE_USER_ID)),
        record_id=page.get("id"),
        created_at=page.get("created_time"),
    )


# =============================================================================
# Admin summary
# =============================================================================

def summarize(orders: Iterable[Order]) -> Dict[str, Any]:
    orders = list(orders)
    summary: Dict[str, Any] = {"total": len(orders)}
    for s in ORDER_STATUSES:
        summary[s] = sum(1 for o in orders if o.status == s)
    amount = sum((o.total for o in orders if o.status != CANCELLED), Decimal(0))
    summary["totalAmount"] = to_number(amount)
    return summary
