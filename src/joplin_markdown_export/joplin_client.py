"""Async client for the Joplin Data API (Web Clipper)."""

from __future__ import annotations

from typing import Any

import httpx

from .errors import JoplinApiError

MAX_PAGE_SIZE = 100


class JoplinClient:
    """Thin read-only wrapper around Joplin's REST API."""

    def __init__(
        self,
        *,
        base_url: str,
        token: str,
        timeout_seconds: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._token = token
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout_seconds),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> JoplinClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def _get(self, path: str, params: dict[str, Any] | None) -> httpx.Response:
        url_path = path if path.startswith("/") else f"/{path}"
        q = dict(params or {})
        q.setdefault("token", self._token)

        resp = await self._client.request("GET", url_path, params=q)
        if resp.status_code >= 400:
            raise JoplinApiError(
                status_code=resp.status_code,
                method="GET",
                url=str(resp.request.url),
                response_text=(resp.text or "").strip(),
            )
        return resp

    async def request_json(
        self,
        path: str,
        *,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        resp = await self._get(path, params)

        # Joplin always returns JSON for API routes.
        data = resp.json()
        if not isinstance(data, dict):
            raise JoplinApiError(
                status_code=resp.status_code,
                method="GET",
                url=str(resp.request.url),
                response_text=f"Unexpected JSON type: {type(data).__name__}",
            )
        return data

    async def get_paged(
        self,
        path: str,
        *,
        page: int = 1,
        limit: int = 20,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        q = dict(params or {})
        q.update({"page": page, "limit": limit})
        return await self.request_json(path, params=q)

    async def get_all(
        self,
        path: str,
        *,
        params: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch every item of a paginated listing, one page after another."""
        items: list[dict[str, Any]] = []
        page = 1
        while True:
            raw = await self.get_paged(path, page=page, limit=MAX_PAGE_SIZE, params=params)
            items.extend(raw.get("items") or [])
            if not raw.get("has_more"):
                return items
            page += 1

    async def request_bytes(
        self,
        path: str,
        *,
        params: dict[str, Any] | None = None,
    ) -> tuple[bytes, dict[str, str]]:
        resp = await self._get(path, params)
        return resp.content, dict(resp.headers)
