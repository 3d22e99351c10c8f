"""WhatsApp sender on top of the Vonage Messages API v1.

Vonage docs: https://developer.vonage.com/en/api/messages
Requests are authenticated with HTTP Basic (API key / secret), which is what
the Messages sandbox accepts.  Every send is a single attempt; failures are
normalised into :class:`DeliverySendError` and the caller decides what to do.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Sequence

import httpx

from auto_replier.config import (
    VONAGE_API_HOST,
    VONAGE_API_KEY,
    VONAGE_API_SECRET,
    VONAGE_REQUEST_TIMEOUT,
    VONAGE_WHATSAPP_NUMBER,
)
from auto_replier.services.metrics import metrics

logger = logging.getLogger(__name__)

CHANNEL = "whatsapp"
MESSAGES_PATH = "/v1/messages"


class DeliverySendError(Exception):
    """Raised when the messaging provider rejects or fails a send."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


@dataclass(frozen=True)
class DeliveryReceipt:
    """Provider acknowledgment of an accepted message."""

    message_uuid: str | None
    raw: dict[str, Any] = field(default_factory=dict)


def normalize_sender(number: str) -> str:
    """Strip a leading ``+`` from the configured sender number."""
    return number[1:] if number.startswith("+") else number


def build_template_components(
    body_parameters: Sequence[dict[str, str]] | None,
    media_url: str | None = None,
) -> list[dict[str, Any]]:
    """Build the WhatsApp template ``components`` list.

    The image header comes first when *media_url* is given; body parameters
    fill the template's ``{{1}}``, ``{{2}}``… slots in the order supplied.
    """
    components: list[dict[str, Any]] = []
    if media_url:
        components.append({
            "type": "header",
            "parameters": [{"type": "image", "image": {"link": media_url}}],
        })
    if body_parameters:
        components.append({
            "type": "body",
            "parameters": [{"type": "text", "text": p["value"]} for p in body_parameters],
        })
    return components


class WhatsAppSender:
    """Sends WhatsApp messages from one fixed sender number."""

    def __init__(
        self,
        sender_number: str | None = None,
        api_key: str | None = None,
        api_secret: str | None = None,
        *,
        api_host: str | None = None,
        timeout: float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        number = sender_number or VONAGE_WHATSAPP_NUMBER
        if not number:
            raise ValueError("A WhatsApp sender number is required.")
        self._sender = normalize_sender(number)
        self._client = http_client or httpx.AsyncClient(
            base_url=api_host or VONAGE_API_HOST,
            auth=(api_key or VONAGE_API_KEY, api_secret or VONAGE_API_SECRET),
            headers={"Accept": "application/json"},
            timeout=timeout or VONAGE_REQUEST_TIMEOUT,
        )
        logger.info("WhatsApp sender initialised for %s via %s", self._sender, self._client.base_url)

    @property
    def sender(self) -> str:
        return self._sender

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _send(self, operation: str, payload: dict[str, Any]) -> DeliveryReceipt:
        t0 = time.perf_counter()
        try:
            response = await self._client.post(MESSAGES_PATH, json=payload)
        except httpx.HTTPError as exc:
            elapsed = (time.perf_counter() - t0) * 1000
            metrics.record_failure("vonage", operation, type(exc).__name__, elapsed)
            logger.error("Vonage %s transport error: %s", operation, exc)
            raise DeliverySendError(f"Failed to send WhatsApp message: {exc}") from exc

        elapsed = (time.perf_counter() - t0) * 1000
        if response.status_code >= 400:
            metrics.record_failure("vonage", operation, str(response.status_code), elapsed)
            logger.error(
                "Vonage %s rejected (%d): %s", operation, response.status_code, response.text,
            )
            raise DeliverySendError(
                f"Failed to send WhatsApp message: {_provider_detail(response)}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            logger.warning("Vonage %s returned a non-object body: %r", operation, data)
            data = {}
        metrics.record_success("vonage", operation, latency_ms=elapsed)
        receipt = DeliveryReceipt(message_uuid=data.get("message_uuid"), raw=data)
        logger.info("WhatsApp %s accepted. UUID: %s", operation, receipt.message_uuid)
        return receipt

    async def send_text(self, recipient_id: str, text: str) -> DeliveryReceipt:
        """Send a plain-text WhatsApp message to *recipient_id*."""
        return await self._send("send_text", {
            "message_type": "text",
            "text": text,
            "to": recipient_id,
            "from": self._sender,
            "channel": CHANNEL,
        })

    async def send_template(
        self,
        recipient_id: str,
        template_name: str,
        language_code: str,
        body_parameters: Sequence[dict[str, str]] | None = None,
        media_url: str | None = None,
    ) -> DeliveryReceipt:
        """Send a pre-approved WhatsApp template, optionally with an image header.

        Example::

            await sender.send_template(
                "447700900000",
                "athens_cruise_intro",
                "en",
                [{"value": "Maria"}, {"value": "Standard Cruise"}, {"value": "€119.00"}],
                media_url="https://www.athensdaycruise.gr/banner.jpg",
            )
        """
        return await self._send("send_template", {
            "message_type": "custom",
            "to": recipient_id,
            "from": self._sender,
            "channel": CHANNEL,
            "custom": {
                "type": "template",
                "template": {
                    "name": template_name,
                    "language": {"policy": "deterministic", "code": language_code},
                    "components": build_template_components(body_parameters, media_url),
                },
            },
        })


def _provider_detail(response: httpx.Response) -> str:
    """Pull the most useful error text out of a Vonage error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        return body.get("detail") or body.get("title") or str(body)
    return str(body)
