"""
Render → route → send for a single item.

The destination webhook is resolved from a freshly loaded Settings on every
item so webhook changes apply without a restart.
"""

from typing import Callable

from src.catalog.base import ItemMeta
from src.classifier import Category, classify
from src.config import Settings, load_settings
from src.notifier import (
    MAX_ATTACHMENTS,
    Attachment,
    DeliveryError,
    DiscordWebhookTransport,
    WebhookMessage,
)
from src.templates import render_announcement, render_media_links, render_trailer_links
from src.utils.logging import get_logger

logger = get_logger(__name__)


def resolve_webhook(category: Category, settings: Settings) -> str:
    """Return the webhook for a category. Demos fall back to the solo webhook."""
    webhooks = {
        Category.DEMO: settings.webhook_url_demo or settings.webhook_url_solo,
        Category.COOP: settings.webhook_url_coop,
        Category.MULTIPLAYER: settings.webhook_url_multi,
        Category.SOLO: settings.webhook_url_solo,
    }
    return webhooks[category]


class Dispatcher:
    def __init__(
        self,
        transport: DiscordWebhookTransport,
        settings_provider: Callable[[], Settings] = load_settings,
    ):
        self._transport = transport
        self._settings_provider = settings_provider

    async def post_item(self, meta: ItemMeta) -> bool:
        """
        Announce one item. Returns True iff the main message was delivered.

        Thread follow-ups (screenshots, trailers) are best effort: any failure
        is logged and does not change the result.
        """
        settings = self._settings_provider()
        category = classify(meta)
        webhook_url = resolve_webhook(category, settings)
        thread_mode = settings.thread_mode

        content = render_announcement(meta)
        if not thread_mode:
            links = render_media_links(meta)
            if links:
                content += "\n\n" + links

        message = WebhookMessage(
            content=content,
            thread_name=(meta.name or str(meta.app_id)) if thread_mode else None,
        )

        try:
            sent_id = await self._transport.send(webhook_url, message)
        except DeliveryError as exc:
            logger.error(
                "announcement_send_failed",
                app_id=meta.app_id,
                name=meta.name,
                category=category.value,
                error=str(exc),
            )
            return False

        logger.info(
            "announcement_sent",
            app_id=meta.app_id,
            name=meta.name,
            category=category.value,
            sent_id=sent_id,
        )

        if thread_mode and sent_id:
            await self._post_media(meta, webhook_url, thread_id=sent_id)
        return True

    async def _post_media(self, meta: ItemMeta, webhook_url: str, thread_id: str) -> None:
        if meta.screenshots:
            screenshots = WebhookMessage(
                content="📸 Screenshots",
                thread_id=thread_id,
                attachments=[Attachment(url=url) for url in meta.screenshots[:MAX_ATTACHMENTS]],
            )
            await self._send_follow_up(meta, webhook_url, screenshots, kind="screenshots")

        if meta.trailers:
            trailers = WebhookMessage(content=render_trailer_links(meta), thread_id=thread_id)
            await self._send_follow_up(meta, webhook_url, trailers, kind="trailers")

    async def _send_follow_up(
        self, meta: ItemMeta, webhook_url: str, message: WebhookMessage, kind: str
    ) -> None:
        # The main message is already out; nothing here may change the result
        try:
            await self._transport.send(webhook_url, message)
        except Exception as exc:
            logger.warning(
                "announcement_follow_up_failed",
                app_id=meta.app_id,
                name=meta.name,
                kind=kind,
                error=str(exc),
            )
