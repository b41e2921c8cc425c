"""
Steam store catalog client.

Discovery scrapes the store search page; every result row carries the app id
in a ``data-ds-appid="<digits>"`` attribute. Rows for bundles list several ids
separated by commas and are skipped by the pattern. Details come from the
JSON ``api/appdetails`` endpoint.
"""

import re

import httpx

from src.catalog.base import BaseCatalogClient, CatalogError
from src.config import Settings
from src.utils.logging import get_logger

logger = get_logger(__name__)

_APP_ID_PATTERN = re.compile(r'data-ds-appid="(\d+)"', re.IGNORECASE)


def parse_app_ids(html: str) -> list[int]:
    """Extract app ids from a search results page, in page order, without repeats."""
    seen: set[int] = set()
    ids: list[int] = []
    for match in _APP_ID_PATTERN.finditer(html or ""):
        app_id = int(match.group(1))
        if app_id <= 0 or app_id in seen:
            continue
        seen.add(app_id)
        ids.append(app_id)
    return ids


def build_http_client(settings: Settings) -> httpx.AsyncClient:
    """Create the shared store HTTP client. Owned by the caller, built once."""
    return httpx.AsyncClient(
        base_url=settings.store_base_url,
        timeout=settings.http_timeout_seconds,
        headers={"Accept-Language": "en-US,en;q=0.8"},
        follow_redirects=True,
    )


class SteamStoreClient(BaseCatalogClient):
    """Queries the Steam store search page and app details API."""

    def __init__(self, client: httpx.AsyncClient, settings: Settings):
        self._client = client
        self._sort_by = settings.search_sort_by
        self._filter = (settings.search_filter_param, settings.search_filter_value)
        self._country_code = settings.store_country_code
        self._language = settings.store_language

    async def discover(self) -> list[int]:
        params = {"sort_by": self._sort_by}
        filter_param, filter_value = self._filter
        if filter_param:
            params[filter_param] = filter_value

        try:
            response = await self._client.get("search", params=params)
        except httpx.HTTPError as exc:
            logger.warning("catalog_discover_failed", error=str(exc))
            return []

        if response.status_code != 200:
            logger.warning("catalog_discover_error", status_code=response.status_code)
            return []

        ids = parse_app_ids(response.text)
        logger.info("catalog_discovered", count=len(ids))
        return ids

    async def fetch_meta(self, app_id: int) -> dict:
        params = {"appids": app_id}
        if self._country_code:
            params["cc"] = self._country_code
        if self._language:
            params["l"] = self._language

        try:
            response = await self._client.get("api/appdetails", params=params)
        except httpx.HTTPError as exc:
            raise CatalogError(f"appdetails request failed: {exc}") from exc

        if response.status_code != 200:
            raise CatalogError(f"appdetails returned HTTP {response.status_code}")

        try:
            body = response.json()
        except ValueError as exc:
            raise CatalogError(f"appdetails body is not JSON: {exc}") from exc

        if not isinstance(body, dict):
            raise CatalogError("appdetails body is not an object")
        return body
