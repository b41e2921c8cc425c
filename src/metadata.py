"""
Metadata fetcher: app id → ItemMeta.

The details endpoint answers ``{"<id>": {"success": bool, "data": {...}}}``.
Missing or mistyped fields are dropped rather than rejected; only an answer
without data for the requested id yields None.
"""

from typing import Any

from src.catalog.base import (
    BaseCatalogClient,
    CatalogError,
    CategoryTag,
    ItemMeta,
    PriceOverview,
    ReleaseDate,
)
from src.utils.logging import get_logger

logger = get_logger(__name__)


def _str_or_none(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _int_or_none(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _descriptions(entries: Any) -> tuple[str, ...]:
    return tuple(
        d for d in (_str_or_none(e.get("description")) for e in _as_list(entries) if isinstance(e, dict))
        if d
    )


def _names(values: Any) -> tuple[str, ...]:
    return tuple(n for n in (_str_or_none(v) for v in _as_list(values)) if n)


def _categories(entries: Any) -> tuple[CategoryTag, ...]:
    tags = []
    for entry in _as_list(entries):
        if not isinstance(entry, dict):
            continue
        cat_id = _int_or_none(entry.get("id"))
        if cat_id is None:
            continue
        tags.append(CategoryTag(id=cat_id, description=_str_or_none(entry.get("description")) or ""))
    return tuple(tags)


def _release_date(raw: Any) -> ReleaseDate:
    if not isinstance(raw, dict):
        return ReleaseDate()
    return ReleaseDate(
        date=_str_or_none(raw.get("date")),
        coming_soon=bool(raw.get("coming_soon", False)),
    )


def _price(raw: Any) -> PriceOverview | None:
    if not isinstance(raw, dict):
        return None
    return PriceOverview(
        currency=_str_or_none(raw.get("currency")),
        final=_int_or_none(raw.get("final")),
        discount_percent=_int_or_none(raw.get("discount_percent")) or 0,
    )


def _screenshots(entries: Any) -> tuple[str, ...]:
    urls = []
    for entry in _as_list(entries):
        if isinstance(entry, dict):
            url = _str_or_none(entry.get("path_full"))
            if url:
                urls.append(url)
    return tuple(urls)


def _trailers(entries: Any) -> tuple[str, ...]:
    urls = []
    for entry in _as_list(entries):
        if not isinstance(entry, dict):
            continue
        mp4 = entry.get("mp4")
        if not isinstance(mp4, dict):
            continue
        url = _str_or_none(mp4.get("480")) or _str_or_none(mp4.get("max"))
        if url:
            urls.append(url)
    return tuple(urls)


def parse_item_meta(app_id: int, body: Any) -> ItemMeta | None:
    """Normalise an appdetails body. Returns None unless it holds data for app_id."""
    if not isinstance(body, dict):
        return None
    entry = body.get(str(app_id))
    if not isinstance(entry, dict) or entry.get("success") is False:
        return None
    data = entry.get("data")
    if not isinstance(data, dict):
        return None

    return ItemMeta(
        app_id=app_id,
        name=_str_or_none(data.get("name")),
        type=_str_or_none(data.get("type")),
        release_date=_release_date(data.get("release_date")),
        is_free=bool(data.get("is_free", False)),
        price=_price(data.get("price_overview")),
        genres=_descriptions(data.get("genres")),
        categories=_categories(data.get("categories")),
        developers=_names(data.get("developers")),
        publishers=_names(data.get("publishers")),
        short_description=_str_or_none(data.get("short_description")),
        header_image=_str_or_none(data.get("header_image")),
        screenshots=_screenshots(data.get("screenshots")),
        trailers=_trailers(data.get("movies")),
    )


class MetadataFetcher:
    """Enriches app ids through the catalog client. Absence is a normal outcome."""

    def __init__(self, catalog: BaseCatalogClient):
        self._catalog = catalog

    async def fetch(self, app_id: int) -> ItemMeta | None:
        try:
            body = await self._catalog.fetch_meta(app_id)
        except CatalogError as exc:
            logger.warning("metadata_fetch_failed", app_id=app_id, error=str(exc))
            return None

        meta = parse_item_meta(app_id, body)
        if meta is None:
            logger.warning("metadata_missing", app_id=app_id)
        return meta
