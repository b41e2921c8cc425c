from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ReleaseDate:
    date: str | None = None
    coming_soon: bool = False


@dataclass(frozen=True)
class PriceOverview:
    currency: str | None = None
    final: int | None = None          # cents
    discount_percent: int = 0


@dataclass(frozen=True)
class CategoryTag:
    """A store category label with its numeric id (used for classification)."""
    id: int
    description: str


@dataclass(frozen=True)
class ItemMeta:
    """Normalised description of a single store app. Only app_id is required."""
    app_id: int
    name: str | None = None
    type: str | None = None           # "game" | "demo" | "dlc" | ...
    release_date: ReleaseDate = field(default_factory=ReleaseDate)
    is_free: bool = False
    price: PriceOverview | None = None
    genres: tuple[str, ...] = ()
    categories: tuple[CategoryTag, ...] = ()
    developers: tuple[str, ...] = ()
    publishers: tuple[str, ...] = ()
    short_description: str | None = None
    header_image: str | None = None
    screenshots: tuple[str, ...] = ()
    trailers: tuple[str, ...] = ()

    @property
    def category_ids(self) -> set[int]:
        return {c.id for c in self.categories}


class CatalogError(Exception):
    """Raised when the catalog cannot be reached or returns an unusable response."""


class BaseCatalogClient(ABC):
    """Capability boundary to the external catalog feed."""

    @abstractmethod
    async def discover(self) -> list[int]:
        """Return candidate app ids from the listing. Returns empty list on any error."""
        ...

    @abstractmethod
    async def fetch_meta(self, app_id: int) -> dict:
        """Return the decoded details body for one app. Raises CatalogError."""
        ...
