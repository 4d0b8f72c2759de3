# config.py
# Environment driven settings. Read once at startup; every value is stripped
# so stray whitespace in a dashboard-pasted env var never breaks a token.

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from typing import Optional


def _env(key: str, default: str = "") -> str:
    return (os.getenv(key, default) or "").strip()


def _safe_int_env(key: str, default: int) -> int:
    """
    Accepts values like:
      "15", " 15 ", "(15)", "15s", "TIMEOUT=15"
    Returns the first integer found, otherwise default.
    """
    raw = os.getenv(key, "")
    if raw is None:
        return default
    m = re.search(r"-?\d+", str(raw).strip())
    if not m:
        return default
    return int(m.group(0))


@dataclass(frozen=True)
class Settings:
    notion_token: str = ""
    notion_database_id: str = ""
    notion_version: str = "2022-06-28"

    line_channel_access_token: str = ""
    line_channel_secret: str = ""
    admin_line_user_id: str = ""

    admin_key: str = ""

    public_base_url: str = ""
    upload_dir: str = "uploads"
    max_slip_bytes: int = 5 * 1024 * 1024

    http_timeout: int = 15
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            notion_token=_env("NOTION_TOKEN"),
            notion_database_id=_env("NOTION_DATABASE_ID"),
            notion_version=_env("NOTION_VERSION", "2022-06-28"),
            line_channel_access_token=_env("LINE_CHANNEL_ACCESS_TOKEN"),
            line_channel_secret=_env("LINE_CHANNEL_SECRET"),
            admin_line_user_id=_env("ADMIN_LINE_USER_ID"),
            admin_key=_env("ADMIN_KEY"),
            public_base_url=_env("PUBLIC_BASE_URL").rstrip("/"),
            upload_dir=_env("UPLOAD_DIR", "uploads"),
            max_slip_bytes=_safe_int_env("MAX_SLIP_BYTES", 5 * 1024 * 1024),
            http_timeout=_safe_int_env("HTTP_TIMEOUT", 15),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
        )

    @property
    def notion_enabled(self) -> bool:
        return bool(self.notion_token and self.notion_database_id)

    @property
    def line_enabled(self) -> bool:
        return bool(self.line_channel_access_token)

    @property
    def admin_recipient(self) -> Optional[str]:
        return self.admin_line_user_id or None


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, (level or "INFO").upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
