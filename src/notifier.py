"""
Discord webhook transport.

Every send uses ``?wait=true`` so Discord answers with the created message.
A message that opens a forum thread answers with the thread as its
``channel_id``; follow-ups are addressed to that thread.
"""

import json
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from urllib.parse import urlparse

import httpx

from src.utils.logging import get_logger

logger = get_logger(__name__)

MAX_CONTENT_LEN = 2000
MAX_THREAD_NAME_LEN = 100
MAX_ATTACHMENTS = 10


class DeliveryError(Exception):
    """Raised when a webhook message could not be delivered."""


@dataclass
class Attachment:
    url: str
    filename: str | None = None

    def resolved_filename(self, index: int) -> str:
        if self.filename:
            return self.filename
        name = PurePosixPath(urlparse(self.url).path).name
        return name or f"attachment_{index}"


@dataclass
class WebhookMessage:
    content: str
    thread_name: str | None = None
    thread_id: str | None = None
    attachments: list[Attachment] = field(default_factory=list)


def _truncate(text: str, max_len: int) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 1].rstrip() + "…"


class DiscordWebhookTransport:
    """Sends WebhookMessages through an owned httpx client."""

    def __init__(self, client: httpx.AsyncClient):
        self._client = client

    def _payload(self, message: WebhookMessage) -> dict:
        payload = {"content": _truncate(message.content, MAX_CONTENT_LEN)}
        if message.thread_name:
            payload["thread_name"] = _truncate(message.thread_name, MAX_THREAD_NAME_LEN)
        return payload

    async def _download(self, attachments: list[Attachment]) -> list[tuple[str, bytes, str]]:
        """Fetch attachment bodies. A failed download is skipped, not fatal."""
        files = []
        for index, attachment in enumerate(attachments[:MAX_ATTACHMENTS]):
            try:
                response = await self._client.get(attachment.url)
                filename = attachment.resolved_filename(index)
            except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
                logger.warning("attachment_download_failed", url=attachment.url, error=str(exc))
                continue
            if response.status_code != 200:
                logger.warning(
                    "attachment_download_failed",
                    url=attachment.url,
                    status_code=response.status_code,
                )
                continue
            content_type = response.headers.get("content-type", "application/octet-stream")
            files.append((filename, response.content, content_type))
        return files

    async def send(self, webhook_url: str, message: WebhookMessage) -> str | None:
        """
        Deliver a message and return its identity.

        When the message opens a thread (``thread_name``) the identity is the
        thread's ``channel_id``; otherwise it is the message ``id``.
        Raises DeliveryError on any transport or HTTP failure, and when none
        of a message's attachments could be downloaded.
        """
        if not webhook_url:
            raise DeliveryError("no webhook url configured")

        params = {"wait": "true"}
        if message.thread_id:
            params["thread_id"] = message.thread_id
        payload = self._payload(message)

        try:
            if message.attachments:
                files = await self._download(message.attachments)
                if not files:
                    raise DeliveryError("none of the attachments could be downloaded")
                multipart = {
                    f"files[{i}]": (name, data, content_type)
                    for i, (name, data, content_type) in enumerate(files)
                }
                response = await self._client.post(
                    webhook_url,
                    params=params,
                    data={"payload_json": json.dumps(payload)},
                    files=multipart,
                )
            else:
                response = await self._client.post(webhook_url, params=params, json=payload)
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
            raise DeliveryError(f"webhook request failed: {exc}") from exc

        if response.status_code not in (200, 204):
            raise DeliveryError(
                f"webhook returned HTTP {response.status_code}: {response.text[:200]}"
            )

        if response.status_code == 204 or not response.content:
            return None
        try:
            body = response.json()
        except ValueError:
            return None
        if not isinstance(body, dict):
            return None

        identity = body.get("id")
        if message.thread_name and body.get("channel_id") is not None:
            identity = body["channel_id"]
        logger.debug("webhook_message_sent", identity=identity, thread_id=message.thread_id)
        return str(identity) if identity is not None else None
