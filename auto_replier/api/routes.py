"""FastAPI route definitions: the Vonage inbound webhook and health."""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

from auto_replier.api.schemas import HealthResponse, InboundMessage, MessageKind
from auto_replier.services.reply_generator import ClientNotReadyError, ReplyGenerator
from auto_replier.services.vonage_client import DeliverySendError, WhatsAppSender

logger = logging.getLogger(__name__)

router = APIRouter()

ACK_BODY = "Message processed successfully."
INVALID_JSON_BODY = "Invalid JSON payload."


def _get_generator(request: Request) -> ReplyGenerator:
    """Return the reply generator built in the server lifespan."""
    generator = getattr(request.app.state, "reply_generator", None)
    if generator is None:
        raise ClientNotReadyError("Reply generator has not been started.")
    return generator


def _get_sender(request: Request) -> WhatsAppSender:
    sender = getattr(request.app.state, "whatsapp_sender", None)
    if sender is None:
        raise DeliverySendError("WhatsApp sender has not been started.")
    return sender


async def _reply_to(message: InboundMessage, request: Request, request_id: str) -> None:
    """Generate a reply for *message* and send it back to the sender."""
    generator = _get_generator(request)
    sender = _get_sender(request)

    reply = await generator.generate_reply(message.text)
    await sender.send_text(message.sender_id, reply)
    logger.info("[%s] Sent reply to %s: %r", request_id, message.sender_id, reply)


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """Health check endpoint."""
    generator = getattr(request.app.state, "reply_generator", None)
    return HealthResponse(generator_ready=bool(generator and generator.ready))


@router.post("/vonage/inbound", response_class=PlainTextResponse)
async def vonage_inbound(request: Request):
    """Handle inbound WhatsApp messages and status updates from Vonage.

    The body is parsed by hand so that a malformed payload gets a 400 with
    a plain message instead of FastAPI's 422.  Once the JSON parses, the
    response is always 200: the acknowledgment tells Vonage the callback
    was received, not that a reply went out.
    """
    request_id = getattr(request.state, "request_id", "?")
    raw = await request.body()
    try:
        payload = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.error("[%s] Failed to parse webhook body as JSON", request_id)
        return PlainTextResponse(INVALID_JSON_BODY, status_code=400)

    message = InboundMessage.from_payload(payload)
    logger.info(
        "[%s] Webhook received: kind=%s from=%s", request_id, message.kind.value, message.sender_id,
    )

    if message.kind is MessageKind.TEXT:
        logger.info("[%s] TEXT message from %s: %r", request_id, message.sender_id, message.text)
        try:
            await _reply_to(message, request, request_id)
        except Exception:
            logger.exception("[%s] Failed to process message from %s", request_id, message.sender_id)
    elif message.kind is MessageKind.NON_TEXT:
        logger.info(
            "[%s] NON-TEXT message (type: %s) from %s; no reply sent",
            request_id, message.message_type, message.sender_id,
        )
    elif message.kind is MessageKind.STATUS:
        logger.info(
            "[%s] STATUS update: %s for message %s", request_id, message.status, message.message_id,
        )
    else:
        logger.info("[%s] Unrecognized payload structure; ignoring", request_id)

    return PlainTextResponse(ACK_BODY, status_code=200)
