# slips.py
# Proof-of-payment files. Stored on local disk and served back under
# /uploads by the app.

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import InvalidFileError

log = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".pdf"}


@dataclass
class SlipUpload:
    filename: str
    content: bytes
    content_type: str = ""

    @property
    def extension(self) -> str:
        return Path(self.filename or "").suffix.lower()


class LocalSlipStorage:
    def __init__(self, directory: str, public_base_url: str = "", max_bytes: int = 5 * 1024 * 1024):
        self.directory = Path(directory)
        self.public_base_url = (public_base_url or "").rstrip("/")
        self.max_bytes = max_bytes

    def check(self, slip: SlipUpload) -> None:
        if slip.extension not in ALLOWED_EXTENSIONS:
            raise InvalidFileError()
        if not slip.content:
            raise InvalidFileError("ไฟล์สลิปว่างเปล่า")
        if len(slip.content) > self.max_bytes:
            raise InvalidFileError(f"ไฟล์ใหญ่เกิน {self.max_bytes // (1024 * 1024)} MB")

    def url_for(self, filename: str) -> str:
        return f"{self.public_base_url}/uploads/{filename}"

    async def read(self, upload) -> SlipUpload:
        """
        Read an incoming multipart file (anything with async `read(size)`),
        stopping one byte past `max_bytes` so oversize files are never held
        in full.
        """
        content = await upload.read(self.max_bytes + 1)
        return SlipUpload(
            filename=upload.filename or "",
            content=content,
            content_type=getattr(upload, "content_type", None) or "",
        )

    def remove(self, url: str) -> None:
        """Delete a file previously returned by `save` (no-op if gone)."""
        path = self.directory / url.rsplit("/", 1)[-1]
        try:
            path.unlink()
        except FileNotFoundError:
            return
        log.info("[Slip] removed %s", path.name)

    async def save(self, order_id: str, slip: SlipUpload, now_ms: Optional[int] = None) -> str:
        self.check(slip)
        ms = now_ms if now_ms is not None else int(time.time() * 1000)
        safe_id = "".join(c if c.isalnum() or c in "-_" else "_" for c in order_id)
        filename = f"{safe_id}-{ms}{slip.extension}"
        os.makedirs(self.directory, exist_ok=True)
        (self.directory / filename).write_bytes(slip.content)
        log.info("[Slip] stored %s (%d bytes)", filename, len(slip.content))
        return self.url_for(filename)
