# main.py
# PITAK-API (FastAPI) - เหรียญพิทักษ์แผ่นดิน order management
# - Notion database holds the orders (one page per order)
# - LINE push messages to customer and admin on order events
# - Payment slip upload, admin listing / status update, PDF receipt
# - LINE webhook with signature check and redelivery de-dup

from __future__ import annotations

import datetime as dt
import hmac
import json
import logging
import os
import re
from typing import Any, Dict, Optional
from urllib.parse import quote

from fastapi import Depends, FastAPI, File, Header, Request, UploadFile
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import Settings, configure_logging
from .errors import OrderError, UnauthorizedError, ValidationError
from .events import NotificationDispatcher
from .lifecycle import OrderLifecycleManager
from .line import LineNotifier, verify_signature
from .models import summarize
from .pdf import render_order_pdf
from .slips import LocalSlipStorage
from .store import NotionRecordStore, RecordStore
from .webhook import EventDeduper, handle_events

log = logging.getLogger(__name__)

PDF_KINDS = ("order", "receipt")


# =============================================================================
# Response envelope
# =============================================================================

def success(data: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse({"success": True, "data": data, "error": None}, status_code=status_code)


def failure(error: Dict[str, Any], status_code: int = 400) -> JSONResponse:
    return JSONResponse({"success": False, "data": None, "error": error}, status_code=status_code)


_UNSAFE_FILENAME = re.compile(r'[^\x20-\x7E]|["\\]')


def attachment_header(filename: str) -> str:
    """Content-Disposition for any order id: ASCII fallback plus RFC 5987 UTF-8 name."""
    fallback = _UNSAFE_FILENAME.sub("", filename).strip() or "order.pdf"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


async def _json_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        raise ValidationError({"body": "รูปแบบ JSON ไม่ถูกต้อง"})


# =============================================================================
# App factory
# =============================================================================

def create_app(
    settings: Optional[Settings] = None,
    store: Optional[RecordStore] = None,
    notifier: Optional[LineNotifier] = None,
    slip_storage: Optional[LocalSlipStorage] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    if store is None and settings.notion_enabled:
        store = NotionRecordStore(
            settings.notion_token,
            settings.notion_database_id,
            notion_version=settings.notion_version,
            timeout=settings.http_timeout,
        )
    if store is None:
        log.warning("[Notion] token/database not set; order routes will answer DB_ERROR")

    if notifier is None:
        notifier = LineNotifier(settings.line_channel_access_token, timeout=settings.http_timeout)
    if slip_storage is None:
        slip_storage = LocalSlipStorage(settings.upload_dir, settings.public_base_url, settings.max_slip_bytes)

    manager = OrderLifecycleManager(
        store,
        events=NotificationDispatcher(notifier, settings.admin_recipient),
        slip_storage=slip_storage,
    )
    deduper = EventDeduper()

    app = FastAPI(title="PITAK-API", version=__version__)
    app.state.settings = settings
    app.state.manager = manager

    app.mount("/uploads", StaticFiles(directory=str(slip_storage.directory), check_dir=False), name="uploads")

    # -------------------------------------------------------------------------
    # Errors
    # -------------------------------------------------------------------------

    @app.exception_handler(OrderError)
    async def order_error_handler(request: Request, exc: OrderError):
        if exc.status_code >= 500:
            log.error("[Order] %s %s: %s", request.method, request.url.path, exc.message)
        return failure(exc.to_dict(), exc.status_code)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        code = "NOT_FOUND" if exc.status_code == 404 else "HTTP_ERROR"
        message = f"Route {request.url.path} not found" if exc.status_code == 404 else str(exc.detail)
        return failure({"code": code, "message": message}, exc.status_code)

    @app.exception_handler(Exception)
    async def server_error_handler(request: Request, exc: Exception):
        log.exception("[Server] unhandled error on %s %s", request.method, request.url.path)
        return failure({"code": "SERVER_ERROR", "message": str(exc)}, 500)

    # -------------------------------------------------------------------------
    # Admin auth
    # -------------------------------------------------------------------------

    def require_admin(x_admin_key: str = Header(default="")) -> None:
        if not settings.admin_key or not x_admin_key:
            raise UnauthorizedError()
        if not hmac.compare_digest(x_admin_key.encode("utf-8"), settings.admin_key.encode("utf-8")):
            raise UnauthorizedError()

    # -------------------------------------------------------------------------
    # Routes
    # -------------------------------------------------------------------------

    @app.get("/api/health")
    async def health():
        return success({
            "status": "ok",
            "version": __version__,
            "notion": manager.store is not None,
            "line": settings.line_enabled,
            "time": dt.datetime.now(dt.timezone.utc).isoformat(),
        })

    @app.post("/api/orders")
    async def create_order(request: Request):
        payload = await _json_body(request)
        order = await manager.create(payload)
        return success(order.to_dict(), 201)

    @app.get("/api/orders/{order_id}")
    async def get_order(order_id: str):
        order = await manager.get_by_order_id(order_id)
        return success(order.to_dict())

    @app.post("/api/orders/{order_id}/slip")
    async def upload_slip(order_id: str, slip: Optional[UploadFile] = File(default=None)):
        upload = None
        if slip is not None and slip.filename:
            upload = await slip_storage.read(slip)
        order = await manager.attach_slip(order_id, upload)
        return success({"orderId": order.order_id, "slipUrl": order.slip_url})

    @app.get("/api/orders", dependencies=[Depends(require_admin)])
    async def list_orders(status: Optional[str] = None):
        orders = await manager.list_all(status=status or None)
        return success({"summary": summarize(orders), "orders": [o.to_dict() for o in orders]})

    @app.patch("/api/orders/{order_id}/status", dependencies=[Depends(require_admin)])
    async def update_status(order_id: str, request: Request):
        body = await _json_body(request)
        new_status = body.get("status") if isinstance(body, dict) else None
        order = await manager.update_status(order_id, new_status)
        return success({"orderId": order.order_id, "status": order.status})

    @app.get("/api/orders/{order_id}/pdf", dependencies=[Depends(require_admin)])
    async def order_pdf(order_id: str, type: str = "order"):
        if type not in PDF_KINDS:
            raise ValidationError({"type": "type ต้องเป็น order หรือ receipt"})
        order = await manager.get_by_order_id(order_id)
        content = render_order_pdf(order, type)
        log.info("[PDF] %s-%s.pdf (%d bytes)", order.order_id, type, len(content))
        return Response(
            content=content,
            media_type="application/pdf",
            headers={"Content-Disposition": attachment_header(f"{order.order_id}-{type}.pdf")},
        )

    @app.post("/webhook")
    async def webhook(request: Request, x_line_signature: str = Header(default="")):
        body = await request.body()

        if not verify_signature(settings.line_channel_secret, body, x_line_signature):
            return PlainTextResponse("invalid signature", status_code=400)

        try:
            payload = json.loads(body.decode("utf-8"))
        except ValueError:
            return PlainTextResponse("bad request", status_code=400)
        if not isinstance(payload, dict):
            return PlainTextResponse("bad request", status_code=400)

        events = payload.get("events", []) or []
        await handle_events(events, notifier, deduper)
        return JSONResponse({"ok": True})

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("pitak.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "3000")))
