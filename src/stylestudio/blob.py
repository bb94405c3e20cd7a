"""
Thin async client for the Vercel Blob REST API.

Only the calls the service needs: put, list, read, delete.
"""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass
from typing import Any

import httpx

from stylestudio.errors import PersistenceError

API_VERSION = "7"


def unique_pathname(prefix: str, extension: str) -> str:
    # <epoch-ms>-<random suffix>, e.g. generations/1718000000000-k3j9xq.png
    suffix = secrets.token_hex(3)
    return f"{prefix.rstrip('/')}/{int(time.time() * 1000)}-{suffix}.{extension.lstrip('.')}"


@dataclass(frozen=True)
class BlobInfo:
    url: str
    pathname: str
    size: int | None = None
    uploaded_at: str | None = None


class BlobClient:
    def __init__(self, token: str, api_url: str = "https://blob.vercel-storage.com", timeout: float = 60.0) -> None:
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    def _headers(self, **extra: str) -> dict[str, str]:
        return {"authorization": f"Bearer {self.token}", "x-api-version": API_VERSION, **extra}

    async def put(
        self,
        pathname: str,
        content: bytes,
        content_type: str,
        overwrite: bool = False,
    ) -> BlobInfo:
        headers = self._headers(**{"x-content-type": content_type, "x-add-random-suffix": "0"})
        if overwrite:
            headers["x-allow-overwrite"] = "1"
        data = await self._request("PUT", f"{self.api_url}/{pathname.lstrip('/')}", headers=headers, content=content)
        url = data.get("url") if isinstance(data, dict) else None
        if not url:
            raise PersistenceError(f"blob put for {pathname} returned no url")
        return BlobInfo(url=url, pathname=data.get("pathname", pathname))

    async def list(self, prefix: str) -> list[BlobInfo]:
        out: list[BlobInfo] = []
        cursor: str | None = None
        while True:
            params: dict[str, Any] = {"prefix": prefix, "limit": 1000}
            if cursor:
                params["cursor"] = cursor
            data = await self._request("GET", self.api_url, headers=self._headers(), params=params)
            for b in data.get("blobs", []) or []:
                out.append(
                    BlobInfo(
                        url=b["url"],
                        pathname=b.get("pathname", ""),
                        size=b.get("size"),
                        uploaded_at=b.get("uploadedAt"),
                    )
                )
            cursor = data.get("cursor")
            if not data.get("hasMore") or not cursor:
                return out

    async def read(self, url: str) -> bytes:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                resp = await client.get(url, headers={"cache-control": "no-cache"})
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise PersistenceError(f"blob read failed for {url}: {exc}") from exc
        return resp.content

    async def delete(self, urls: list[str]) -> None:
        if not urls:
            return
        await self._request("POST", f"{self.api_url}/delete", headers=self._headers(), json={"urls": urls})

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise PersistenceError(f"blob {method} failed: {exc}") from exc
        if not resp.is_success:
            raise PersistenceError(f"blob {method} returned {resp.status_code}: {resp.text[:200]}")
        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as exc:
            raise PersistenceError(f"blob {method} returned a non-JSON body") from exc
