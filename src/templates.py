"""Announcement rendering. Absent fields render as "N/A"."""

from src.catalog.base import ItemMeta
from src.release import parse_release_date

NOT_AVAILABLE = "N/A"

_STORE_APP_URL = "https://store.steampowered.com/app/{app_id}"

_CURRENCY_SYMBOLS: dict[str, str] = {
    "EUR": "€",
    "USD": "$",
    "GBP": "£",
    "KRW": "₩",
}

_WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

# ANSI colour codes for Discord's ```ansi blocks
_CYAN = "\u001b[1;36m"
_YELLOW = "\u001b[1;33m"
_RESET = "\u001b[0m"


def store_url(meta: ItemMeta) -> str:
    return _STORE_APP_URL.format(app_id=meta.app_id)


def _join(values) -> str:
    return ", ".join(values) if values else NOT_AVAILABLE


def _money(symbol: str, cents: int) -> str:
    return f"{symbol}{cents / 100:.2f}"


def format_release_date(meta: ItemMeta) -> str:
    """"2024-10-14 (a Monday)", or the raw text / N/A when it cannot be parsed."""
    released_at = parse_release_date(meta.release_date.date)
    if released_at is None:
        return meta.release_date.date or NOT_AVAILABLE
    return f"{released_at.strftime('%Y-%m-%d')} (a {_WEEKDAYS[released_at.weekday()]})"


def format_price(meta: ItemMeta) -> str:
    if meta.is_free:
        return "Free"
    price = meta.price
    if price is None or price.final is None or price.final < 0:
        return "No price"

    currency = price.currency or ""
    symbol = _CURRENCY_SYMBOLS.get(currency, currency)
    text = _money(symbol, price.final)
    if price.discount_percent > 0:
        discounted = price.final * (100 - price.discount_percent) // 100
        text += f" (-{price.discount_percent}% → {_money(symbol, discounted)})"
    return text


def render_announcement(meta: ItemMeta) -> str:
    """Main message body: linked title plus an ansi block of details."""
    name = meta.name or NOT_AVAILABLE
    fields = [
        ("Description", meta.short_description or NOT_AVAILABLE),
        ("Release Date", format_release_date(meta)),
        ("Price", format_price(meta)),
        ("Genres", _join(meta.genres)),
        ("Categories", _join([c.description for c in meta.categories if c.description])),
        ("Developers", _join(meta.developers)),
        ("Publishers", _join(meta.publishers)),
    ]
    lines = [f"# 👉 [{name}](<{store_url(meta)}>) 👈", "```ansi"]
    for i, (label, value) in enumerate(fields):
        colour = _CYAN if i % 2 == 0 else _YELLOW
        lines.append(f"{colour}{label}{_RESET}: {value}")
    lines.append("```")
    return "\n\n".join(lines)


def render_media_links(meta: ItemMeta) -> str:
    """Inline links to the banner, first screenshot and first trailer, or "" if none exist."""
    links = []
    if meta.header_image:
        links.append(f"[banner]({meta.header_image})")
    if meta.screenshots:
        links.append(f"[screenshot]({meta.screenshots[0]})")
    if meta.trailers:
        links.append(f"[trailer]({meta.trailers[0]})")
    if not links:
        return ""
    return "👇 " + ", ".join(links)


def render_trailer_links(meta: ItemMeta) -> str:
    return "\n".join(f"🎬 [trailer {i}]({url})" for i, url in enumerate(meta.trailers, start=1))
