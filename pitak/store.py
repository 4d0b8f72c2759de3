# store.py
# Record store access. Orders live as pages in one Notion database; the
# lifecycle manager only sees the small contract below, so tests can swap in
# an in-memory fake.

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol

import httpx

from .errors import StoreUnavailableError
from .models import PROPERTY_TYPES

log = logging.getLogger(__name__)

NOTION_API_BASE = "https://api.notion.com/v1"
NOTION_PAGE_SIZE = 100

Page = Dict[str, Any]


class RecordStore(Protocol):
    async def find(self, prop: str, value: str) -> Optional[Page]: ...

    async def create(self, fields: Dict[str, Any]) -> Page: ...

    async def update(self, record_id: str, fields: Dict[str, Any]) -> Page: ...

    async def list(self, where: Optional[Dict[str, str]] = None, newest_first: bool = True) -> List[Page]: ...


def property_filter(prop: str, value: str) -> Dict[str, Any]:
    ptype = PROPERTY_TYPES.get(prop, "rich_text")
    return {"property": prop, ptype: {"equals": value}}


class NotionRecordStore:
    """
    Thin async client over the Notion REST API.

    Pass `client` to reuse a connection pool (or a MockTransport in tests);
    otherwise each call opens its own short-lived AsyncClient.
    """

    def __init__(
        self,
        token: str,
        database_id: str,
        notion_version: str = "2022-06-28",
        timeout: float = 15,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.database_id = database_id
        self.timeout = timeout
        self._client = client
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Notion-Version": notion_version,
            "Content-Type": "application/json",
        }

    async def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{NOTION_API_BASE}{path}"
        try:
            if self._client is not None:
                r = await self._client.request(method, url, headers=self._headers, json=payload)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    r = await client.request(method, url, headers=self._headers, json=payload)
        except httpx.HTTPError as e:
            log.error("[Notion] %s %s failed: %r", method, path, e)
            raise StoreUnavailableError(f"Notion request failed: {e.__class__.__name__}") from e

        if r.status_code >= 400:
            log.error("[Notion] %s %s -> %s %s", method, path, r.status_code, r.text[:500])
            raise StoreUnavailableError(f"Notion error {r.status_code}")
        return r.json()

    async def _query(self, body: Dict[str, Any]) -> List[Page]:
        results: List[Page] = []
        cursor: Optional[str] = None
        while True:
            payload = dict(body, page_size=NOTION_PAGE_SIZE)
            if cursor:
                payload["start_cursor"] = cursor
            resp = await self._request("POST", f"/databases/{self.database_id}/query", payload)
            results.extend(resp.get("results", []))
            cursor = resp.get("next_cursor")
            if not resp.get("has_more") or not cursor:
                return results

    async def find(self, prop: str, value: str) -> Optional[Page]:
        resp = await self._request(
            "POST",
            f"/databases/{self.database_id}/query",
            {"filter": property_filter(prop, value), "page_size": 1},
        )
        results = resp.get("results", [])
        return results[0] if results else None

    async def create(self, fields: Dict[str, Any]) -> Page:
        return await self._request(
            "POST",
            "/pages",
            {"parent": {"database_id": self.database_id}, "properties": fields},
        )

    async def update(self, record_id: str, fields: Dict[str, Any]) -> Page:
        return await self._request("PATCH", f"/pages/{record_id}", {"properties": fields})

    async def list(self, where: Optional[Dict[str, str]] = None, newest_first: bool = True) -> List[Page]:
        body: Dict[str, Any] = {
            "sorts": [{"timestamp": "created_time", "direction": "descending" if newest_first else "ascending"}],
        }
        if where:
            clauses = [property_filter(k, v) for k, v in where.items()]
            body["filter"] = clauses[0] if len(clauses) == 1 else {"and": clauses}
        return await self._query(body)
