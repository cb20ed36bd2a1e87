from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Mapping, TypeVar

import httpx

from ucsync.core.auth import Credentials
from ucsync.core.errors import UCSyncError
from ucsync.core.uc import CatalogInfo, SchemaInfo, TableInfo

logger = logging.getLogger(__name__)

CATALOGS_PATH = "/api/2.1/unity-catalog/catalogs"
SCHEMAS_PATH = "/api/2.1/unity-catalog/schemas"
TABLES_PATH = "/api/2.1/unity-catalog/tables"

_DEFAULT_MAX_RETRIES = 3
_DEFAULT_BACKOFF_SECONDS = 0.5
_DEFAULT_TIMEOUT_SECONDS = 60.0

T = TypeVar("T")


class UnityCatalogError(UCSyncError):
    """Base class for failures talking to the Unity Catalog API."""


class TransientError(UnityCatalogError):
    """Network error, rate limit or 5xx response; worth retrying."""


class RequestError(UnityCatalogError):
    """Non-retryable 4xx response."""

    def __init__(self, message: str, status: int) -> None:
        super().__init__(message)
        self.status = status


class ResponseError(UnityCatalogError):
    """The service answered, but not with something we can parse."""


class UnityCatalogClient:
    """Async adapter around the Unity Catalog list endpoints (REST 2.1).

    One client instance owns one `httpx.AsyncClient` and is shared by every
    fetch job of a crawl. Use it as an async context manager, or pass a
    ready-made client (tests do this) and manage its lifetime yourself.
    """

    def __init__(
        self,
        credentials: Credentials,
        http: httpx.AsyncClient | None = None,
        *,
        max_retries: int = _DEFAULT_MAX_RETRIES,
        backoff_seconds: float = _DEFAULT_BACKOFF_SECONDS,
        timeout_seconds: float = _DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self.credentials = credentials
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self.timeout_seconds = timeout_seconds
        self._http = http
        self._owns_http = False

    async def __aenter__(self) -> UnityCatalogClient:
        if self._http is None:
            self._http = httpx.AsyncClient(
                headers=dict(self.credentials.headers),
                timeout=self.timeout_seconds,
            )
            self._owns_http = True
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        if self._owns_http and self._http is not None:
            await self._http.aclose()
            self._http = None
            self._owns_http = False

    async def _get_once(self, url: str, params: Mapping[str, str]) -> dict[str, Any]:
        """Issue a single GET and classify the outcome."""
        if self._http is None:
            raise RuntimeError("UnityCatalogClient used outside of its context manager.")
        try:
            resp = await self._http.get(url, params=dict(params))
        except httpx.TransportError as exc:
            raise TransientError(f"GET {url} failed: {exc!r}") from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise ResponseError(f"GET {url} failed: {exc!r}") from exc

        if resp.status_code == 429 or resp.status_code >= 500:
            raise TransientError(f"GET {url} -> {resp.status_code}: {resp.text[:200]}")
        if resp.status_code >= 400:
            raise RequestError(
                f"GET {url} -> {resp.status_code}: {resp.text[:200]}",
                status=resp.status_code,
            )
        try:
            payload = resp.json()
        except ValueError as exc:
            raise ResponseError(f"GET {url} returned invalid JSON: {exc}") from exc

        if not isinstance(payload, dict):
            raise ResponseError(f"GET {url} returned {type(payload).__name__}, expected object")
        return payload

    async def _get(self, path: str, params: Mapping[str, str]) -> dict[str, Any]:
        """GET with exponential backoff on transient failures."""
        url = f"{self.credentials.host}{path}"
        attempt = 0
        while True:
            try:
                return await self._get_once(url, params)
            except TransientError as exc:
                if attempt >= self.max_retries:
                    raise
                delay = self.backoff_seconds * (2**attempt)
                attempt += 1
                logger.debug(
                    "Retrying %s (attempt %d/%d) in %.2fs: %s",
                    path,
                    attempt,
                    self.max_retries,
                    delay,
                    exc,
                )
                await asyncio.sleep(delay)

    async def fetch_page(
        self,
        path: str,
        params: Mapping[str, str],
        page_token: str | None = None,
    ) -> tuple[dict[str, Any], str | None]:
        """
        Fetch one page of a list endpoint.

        Returns:
            The raw page payload and the continuation token, or None when the
            service reports no further pages.
        """
        query = dict(params)
        if page_token:
            query["page_token"] = page_token
        payload = await self._get(path, query)
        next_token = payload.get("next_page_token")
        return payload, (str(next_token) if next_token else None)

    async def _paginate(
        self, path: str, params: Mapping[str, str], key: str
    ) -> list[Mapping[str, Any]]:
        """Follow `next_page_token` until exhausted and collect `payload[key]`."""
        records: list[Mapping[str, Any]] = []
        token: str | None = None
        pages = 0
        while True:
            payload, token = await self.fetch_page(path, params, token)
            pages += 1
            page = payload.get(key) or []
            if not isinstance(page, list):
                raise ResponseError(f"'{key}' in {path} response is not a list")
            records.extend(page)
            if token is None:
                break
        logger.debug("%s %s: %d record(s) over %d page(s)", path, dict(params), len(records), pages)
        return records

    @staticmethod
    def _parse(
        records: list[Mapping[str, Any]], parse: Callable[[Mapping[str, Any]], T]
    ) -> list[T]:
        try:
            return [parse(r) for r in records]
        except (ValueError, TypeError, AttributeError) as exc:
            raise ResponseError(f"Malformed record: {exc}") from exc

    async def list_catalogs(self) -> list[CatalogInfo]:
        """List all catalogs visible to the current principal."""
        records = await self._paginate(CATALOGS_PATH, {}, "catalogs")
        return self._parse(records, CatalogInfo.from_dict)

    async def list_schemas(self, catalog: str) -> list[SchemaInfo]:
        """List schemas in a given catalog."""
        records = await self._paginate(SCHEMAS_PATH, {"catalog_name": catalog}, "schemas")
        return self._parse(records, SchemaInfo.from_dict)

    async def list_tables(self, catalog: str, schema: str) -> list[TableInfo]:
        """List tables in a given catalog.schema."""
        records = await self._paginate(
            TABLES_PATH, {"catalog_name": catalog, "schema_name": schema}, "tables"
        )
        return self._parse(records, TableInfo.from_dict)
