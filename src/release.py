"""
Filter & order stage.

Keeps only released items and sorts them oldest release first, so a backlog is
announced in the order it reached the store. Same-day releases are ordered by
name, descending.
"""

from datetime import datetime, timezone

from dateutil import parser as date_parser

from src.catalog.base import ItemMeta
from src.utils.logging import get_logger

logger = get_logger(__name__)

# Fills the parts a store date leaves out ("Oct 2024" → 1 Oct 2024)
_DEFAULT_DATE = datetime(2000, 1, 1)


def parse_release_date(value: str | None) -> datetime | None:
    """Parse a store release date ("14 Oct, 2024", "Oct 14, 2024", ...) as UTC. None if unparseable."""
    if not value:
        return None
    try:
        parsed = date_parser.parse(value, default=_DEFAULT_DATE)
    except (ValueError, OverflowError, TypeError):
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def is_released(meta: ItemMeta, now: datetime | None = None) -> bool:
    if meta.release_date.coming_soon:
        return False
    released_at = parse_release_date(meta.release_date.date)
    if released_at is None:
        return False
    return released_at <= (now or datetime.now(timezone.utc))


def filter_and_order(metas: list[ItemMeta], now: datetime | None = None) -> list[ItemMeta]:
    """Drop unreleased items, then order by release date ascending, name descending."""
    now = now or datetime.now(timezone.utc)
    released = []
    for meta in metas:
        if is_released(meta, now):
            released.append(meta)
        else:
            logger.info(
                "item_filtered_unreleased",
                app_id=meta.app_id,
                name=meta.name,
                release_date=meta.release_date.date,
                coming_soon=meta.release_date.coming_soon,
            )

    # Successive stable sorts, least significant key first
    ordered = sorted(released, key=lambda m: m.app_id)
    ordered.sort(key=lambda m: m.name or "", reverse=True)
    ordered.sort(key=lambda m: parse_release_date(m.release_date.date))
    return ordered
