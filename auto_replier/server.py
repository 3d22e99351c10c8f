"""FastAPI server for the WhatsApp Auto-Replier.

Run with:
    uvicorn auto_replier.server:app --host 0.0.0.0 --port 3000
or:
    python -m auto_replier.server
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response

from auto_replier.api.routes import router
from auto_replier.config import LOG_LEVEL, SERVER_HOST, SERVER_PORT, VONAGE_API_HOST
from auto_replier.services.reply_generator import ReplyGenerator
from auto_replier.services.vonage_client import WhatsAppSender

# ── Logging ──────────────────────────────────────────────────────────
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI):
    """Build both services once and share them through app state.

    A generator that cannot start aborts the lifespan, so the server never
    accepts webhooks it cannot answer.
    """
    generator = ReplyGenerator()
    await generator.start()
    sender = WhatsAppSender()

    application.state.reply_generator = generator
    application.state.whatsapp_sender = sender
    logger.info("Auto-replier ready (messages API: %s)", VONAGE_API_HOST)
    try:
        yield
    finally:
        await sender.aclose()
        application.state.reply_generator = None
        application.state.whatsapp_sender = None


app = FastAPI(
    title="WhatsApp Auto-Replier",
    description=(
        "Relays inbound WhatsApp messages from Vonage to Gemini "
        "and sends the generated reply back to the customer."
    ),
    version="1.0.0",
    lifespan=lifespan,
)


@app.middleware("http")
async def add_request_id(request: Request, call_next) -> Response:
    """Attach a request ID for log correlation and echo it in ``X-Request-ID``."""
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    request.state.request_id = request_id
    logger.info("[%s] %s %s", request_id, request.method, request.url.path)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


app.include_router(router)


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "service": "WhatsApp Auto-Replier",
        "version": "1.0.0",
        "webhook": "/vonage/inbound",
        "health": "/health",
    }


if __name__ == "__main__":
    logger.info("Starting auto-replier on %s:%d", SERVER_HOST, SERVER_PORT)
    uvicorn.run("auto_replier.server:app", host=SERVER_HOST, port=SERVER_PORT)
