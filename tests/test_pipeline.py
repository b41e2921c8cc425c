"""
End-to-end pipeline tests with the catalog and dispatcher faked.
"""

from unittest.mock import AsyncMock

import httpx
import pytest

from src.catalog.base import BaseCatalogClient, CatalogError
from src.config import Settings
from src.dispatcher import Dispatcher
from src.ledger import InMemoryLedger
from src.notifier import DiscordWebhookTransport
from src.pipeline import AnnouncementPipeline


def _details(app_id: int, name: str, date: str = "1 Jan, 2024", coming_soon: bool = False) -> dict:
    return {
        str(app_id): {
            "success": True,
            "data": {
                "type": "game",
                "name": name,
                "release_date": {"coming_soon": coming_soon, "date": date},
            },
        }
    }


class _FakeCatalog(BaseCatalogClient):
    def __init__(self, ids: list[int], details: dict[int, dict]):
        self._ids = ids
        self._details = details
        self.fetched: list[int] = []

    async def discover(self) -> list[int]:
        return list(self._ids)

    async def fetch_meta(self, app_id: int) -> dict:
        self.fetched.append(app_id)
        if app_id not in self._details:
            raise CatalogError("delisted")
        return self._details[app_id]


class _FakeDispatcher:
    def __init__(self, failing: set[int] | None = None):
        self.failing = failing or set()
        self.attempted: list[str] = []

    async def post_item(self, meta) -> bool:
        self.attempted.append(meta.name)
        return meta.app_id not in self.failing


def _pipeline(catalog, ledger, dispatcher, sleep=None) -> AnnouncementPipeline:
    return AnnouncementPipeline(
        catalog=catalog,
        ledger=ledger,
        dispatcher=dispatcher,
        item_delay_seconds=3,
        sleep=sleep or AsyncMock(),
    )


@pytest.mark.asyncio
async def test_second_pass_announces_nothing():
    """Running the same discovery twice only announces on the first pass."""
    catalog = _FakeCatalog([1, 2], {1: _details(1, "One"), 2: _details(2, "Two")})
    ledger = InMemoryLedger()
    dispatcher = _FakeDispatcher()
    pipeline = _pipeline(catalog, ledger, dispatcher)

    first = await pipeline.run_pass()
    second = await pipeline.run_pass()

    assert first["announced"] == 2
    assert first["recorded"] == 2
    assert second["new"] == 0
    assert second["announced"] == 0
    assert dispatcher.attempted == ["Two", "One"]
    assert catalog.fetched == [1, 2]


@pytest.mark.asyncio
async def test_send_failure_does_not_stop_batch():
    """A failed item is not recorded; the next item is still sent and recorded."""
    catalog = _FakeCatalog(
        [1, 2],
        {1: _details(1, "A", date="1 Jan, 2024"), 2: _details(2, "B", date="2 Jan, 2024")},
    )
    ledger = InMemoryLedger()
    dispatcher = _FakeDispatcher(failing={1})

    summary = await _pipeline(catalog, ledger, dispatcher).run_pass()

    assert dispatcher.attempted == ["A", "B"]
    assert summary["failed"] == 1
    assert summary["recorded"] == 1
    assert await ledger.has(1) is False
    assert await ledger.has(2) is True


@pytest.mark.asyncio
async def test_failed_item_is_retried_next_pass():
    catalog = _FakeCatalog([1], {1: _details(1, "A")})
    ledger = InMemoryLedger()
    dispatcher = _FakeDispatcher(failing={1})
    pipeline = _pipeline(catalog, ledger, dispatcher)

    await pipeline.run_pass()
    dispatcher.failing.clear()
    summary = await pipeline.run_pass()

    assert dispatcher.attempted == ["A", "A"]
    assert summary["recorded"] == 1


@pytest.mark.asyncio
async def test_dispatcher_exception_is_isolated():
    catalog = _FakeCatalog(
        [1, 2],
        {1: _details(1, "A", date="1 Jan, 2024"), 2: _details(2, "B", date="2 Jan, 2024")},
    )
    ledger = InMemoryLedger()
    dispatcher = AsyncMock()
    dispatcher.post_item = AsyncMock(side_effect=[RuntimeError("boom"), True])

    summary = await _pipeline(catalog, ledger, dispatcher).run_pass()

    assert summary["failed"] == 1
    assert await ledger.has(2) is True


@pytest.mark.asyncio
async def test_unreleased_and_missing_items_are_skipped():
    catalog = _FakeCatalog(
        [1, 2, 3, 4],
        {
            1: _details(1, "Soon", coming_soon=True),
            2: _details(2, "Undated", date="Coming soon"),
            3: _details(3, "Out"),
            # 4 is delisted
        },
    )
    ledger = InMemoryLedger()
    dispatcher = _FakeDispatcher()

    summary = await _pipeline(catalog, ledger, dispatcher).run_pass()

    assert dispatcher.attempted == ["Out"]
    assert summary == {
        "discovered": 4,
        "new": 4,
        "enriched": 3,
        "released": 1,
        "announced": 1,
        "recorded": 1,
        "failed": 0,
    }
    assert await ledger.has(1) is False


@pytest.mark.asyncio
async def test_already_announced_ids_are_not_fetched():
    catalog = _FakeCatalog([1, 2], {1: _details(1, "A"), 2: _details(2, "B")})
    ledger = InMemoryLedger()
    await ledger.record(1, "2024-01-01T00:00:00+00:00")

    await _pipeline(catalog, ledger, _FakeDispatcher()).run_pass()

    assert catalog.fetched == [2]


@pytest.mark.asyncio
async def test_delay_after_every_send_attempt():
    catalog = _FakeCatalog([1, 2], {1: _details(1, "A"), 2: _details(2, "B")})
    sleep = AsyncMock()

    await _pipeline(catalog, InMemoryLedger(), _FakeDispatcher(failing={1}), sleep=sleep).run_pass()

    assert sleep.await_count == 2
    sleep.assert_awaited_with(3)


@pytest.mark.asyncio
async def test_ledger_write_failure_keeps_announcement():
    catalog = _FakeCatalog([1], {1: _details(1, "A")})
    ledger = AsyncMock()
    ledger.has = AsyncMock(return_value=False)
    ledger.record = AsyncMock(return_value=False)

    summary = await _pipeline(catalog, ledger, _FakeDispatcher()).run_pass()

    assert summary["announced"] == 1
    assert summary["recorded"] == 0


@pytest.mark.asyncio
async def test_discover_exception_returns_empty_summary():
    catalog = AsyncMock()
    catalog.discover = AsyncMock(side_effect=RuntimeError("network down"))
    dispatcher = _FakeDispatcher()

    summary = await _pipeline(catalog, InMemoryLedger(), dispatcher).run_pass()

    assert summary["discovered"] == 0
    assert dispatcher.attempted == []


def _thread_mode_dispatcher(handler) -> Dispatcher:
    settings = Settings(media_mode="thread", webhook_url_solo="https://discord.test/api/webhooks/1/t")
    transport = DiscordWebhookTransport(httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    return Dispatcher(transport, settings_provider=lambda: settings)


def _with_screenshots(app_id: int, name: str, urls: list[str]) -> dict:
    details = _details(app_id, name)
    details[str(app_id)]["data"]["screenshots"] = [{"id": i, "path_full": url} for i, url in enumerate(urls)]
    return details


@pytest.mark.asyncio
async def test_bad_screenshot_url_still_records_announced_item():
    """Once the main message is out, a broken follow-up never blocks the ledger write."""
    posts = []

    def handler(request: httpx.Request) -> httpx.Response:
        posts.append(request)
        return httpx.Response(200, json={"id": "500", "channel_id": "777"})

    catalog = _FakeCatalog([7], {7: _with_screenshots(7, "Broken Media", ["http://[bad/ss.jpg"])})
    ledger = InMemoryLedger()

    summary = await _pipeline(catalog, ledger, _thread_mode_dispatcher(handler)).run_pass()

    assert len(posts) == 1
    assert summary["announced"] == 1
    assert summary["recorded"] == 1
    assert summary["failed"] == 0
    assert await ledger.has(7) is True


@pytest.mark.asyncio
async def test_screenshot_follow_up_goes_to_new_thread():
    posts = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "cdn.test":
            if request.url.path == "/ss_1.jpg":
                return httpx.Response(404)
            return httpx.Response(200, content=b"img", headers={"content-type": "image/jpeg"})
        posts.append(request)
        return httpx.Response(200, json={"id": str(500 + len(posts)), "channel_id": "777"})

    urls = ["http://[bad/ss.jpg"] + [f"https://cdn.test/ss_{i}.jpg" for i in range(3)]
    catalog = _FakeCatalog([7], {7: _with_screenshots(7, "Mixed Media", urls)})
    ledger = InMemoryLedger()

    summary = await _pipeline(catalog, ledger, _thread_mode_dispatcher(handler)).run_pass()

    assert len(posts) == 2
    follow_up = posts[1]
    assert follow_up.url.params["thread_id"] == "777"
    assert follow_up.content.count(b'name="files[') == 2
    assert summary["recorded"] == 1
