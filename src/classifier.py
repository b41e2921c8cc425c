from enum import Enum

from src.catalog.base import ItemMeta

# --------------------------------------------------------------------------- #
# Store category ids
# --------------------------------------------------------------------------- #

COOP_CATEGORY_IDS = frozenset({
    9,   # Co-op
    38,  # Online Co-op
})

MULTIPLAYER_CATEGORY_IDS = frozenset({
    1,   # Multi-player
    36,  # Online PvP
    49,  # PvP
})


class Category(str, Enum):
    DEMO = "demo"
    COOP = "coop"
    MULTIPLAYER = "multiplayer"
    SOLO = "solo"


def classify(meta: ItemMeta) -> Category:
    """
    Map an item to exactly one category.

    First match wins: Demo (type tag), then Coop, then Multiplayer
    (category ids), otherwise Solo.
    """
    if (meta.type or "").lower() == "demo":
        return Category.DEMO

    ids = meta.category_ids
    if ids & COOP_CATEGORY_IDS:
        return Category.COOP
    if ids & MULTIPLAYER_CATEGORY_IDS:
        return Category.MULTIPLAYER
    return Category.SOLO
