from __future__ import annotations

from decimal import Decimal

from pitak.models import Order, order_from_page, plain_value, summarize


def _order(order_id, status, total):
    return Order(order_id, "Somchai", "0812345678", "Bronze", 1, Decimal(total), Decimal(total), status=status)


def test_properties_use_notion_typed_shapes():
    order = _order("A100", "paid", "1000")
    order.notify_recipient = "U-customer"
    props = order.to_properties()

    assert props["Order ID"] == {"title": [{"type": "text", "text": {"content": "A100"}}]}
    assert props["Customer"]["rich_text"][0]["text"]["content"] == "Somchai"
    assert props["Total"] == {"number": 1000}
    assert props["Status"] == {"select": {"name": "paid"}}
    assert props["LineUserId"]["rich_text"][0]["text"]["content"] == "U-customer"
    assert "SlipUrl" not in props


def test_order_from_notion_page_response():
    page = {
        "id": "abc-123",
        "created_time": "2026-02-01T10:00:00.000Z",
        "properties": {
            "Order ID": {"id": "title", "type": "title", "title": [{"type": "text", "plain_text": "A100"}]},
            "Customer": {"type": "rich_text", "rich_text": [{"plain_text": "Som"}, {"plain_text": "chai"}]},
            "Phone": {"type": "rich_text", "rich_text": [{"plain_text": "0812345678"}]},
            "Amulet": {"type": "rich_text", "rich_text": []},
            "Quantity": {"type": "number", "number": 2},
            "Price": {"type": "number", "number": 499.5},
            "Total": {"type": "number", "number": 999},
            "Status": {"type": "select", "select": {"name": "shipped"}},
            "SlipUrl": {"type": "url", "url": "https://x/slip.png"},
            "LineUserId": {"type": "rich_text", "rich_text": []},
        },
    }
    order = order_from_page(page)

    assert order.record_id == "abc-123"
    assert order.customer_name == "Somchai"
    assert order.amulet_name == ""
    assert order.price == Decimal("499.5")
    assert order.total == Decimal("999")
    assert order.status == "shipped"
    assert order.slip_url == "https://x/slip.png"
    assert order.notify_recipient is None
    assert order.to_dict()["price"] == 499.5


def test_order_from_page_defaults_missing_status_to_pending():
    order = order_from_page({"id": "p", "properties": {"Status": {"type": "select", "select": None}}})
    assert order.status == "pending"
    assert order.quantity == 0


def test_plain_value_handles_empty():
    assert plain_value(None) is None
    assert plain_value({"type": "url", "url": None}) is None


def test_summary_counts_every_status_and_skips_cancelled_amount():
    orders = [
        _order("A1", "pending", "100"),
        _order("A2", "paid", "250"),
        _order("A3", "cancelled", "999"),
        _order("A4", "completed", "50.5"),
    ]
    summary = summarize(orders)

    assert summary == {
        "total": 4,
        "pending": 1,
        "paid": 1,
        "shipped": 0,
        "completed": 1,
        "cancelled": 1,
        "totalAmount": 400.5,
    }


def test_summary_of_nothing():
    assert summarize([])["totalAmount"] == 0
