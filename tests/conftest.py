from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from pitak.config import Settings
from pitak.events import NotificationDispatcher
from pitak.lifecycle import OrderLifecycleManager
from pitak.main import create_app
from pitak.slips import LocalSlipStorage

from .fakes import InMemoryRecordStore, RecordingNotifier

ADMIN_ID = "U-admin"
ADMIN_KEY = "test-admin-key"
CHANNEL_SECRET = "test-channel-secret"


def order_payload(**overrides):
    payload = {
        "orderId": "A100",
        "customerName": "Somchai",
        "phone": "0812345678",
        "amuletName": "Bronze",
        "quantity": 2,
        "price": 500,
        "lineUserId": "U-customer",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def slip_storage(tmp_path) -> LocalSlipStorage:
    return LocalSlipStorage(str(tmp_path / "uploads"), "https://pitak.example", max_bytes=1024)


@pytest.fixture
def manager(store, notifier, slip_storage) -> OrderLifecycleManager:
    return OrderLifecycleManager(
        store,
        events=NotificationDispatcher(notifier, ADMIN_ID),
        slip_storage=slip_storage,
    )


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        line_channel_access_token="token",
        line_channel_secret=CHANNEL_SECRET,
        admin_line_user_id=ADMIN_ID,
        admin_key=ADMIN_KEY,
        public_base_url="https://pitak.example",
        upload_dir=str(tmp_path / "uploads"),
        max_slip_bytes=1024,
    )


@pytest.fixture
def client(settings, store, notifier, slip_storage):
    app = create_app(settings, store=store, notifier=notifier, slip_storage=slip_storage)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_headers():
    return {"x-admin-key": ADMIN_KEY}
