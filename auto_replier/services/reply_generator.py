"""Gemini-backed reply generator.

One inbound WhatsApp text becomes one ``generate_content`` call:

  contents = [user: <message text>]
  config   = system instruction (knowledge base embedded)
             + Google Search tool
             + temperature 0.6

The knowledge base and the system instruction are built once, in the
constructor, and are read-only afterwards.  The Gemini client itself is
created in :meth:`ReplyGenerator.start`, which the server awaits during its
lifespan; a generator that was never started refuses to generate.

Backend failures never reach the end user: they are logged and replaced by
:data:`FALLBACK_REPLY`.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Mapping

from google import genai
from google.genai import types

from auto_replier.config import GEMINI_API_KEY, KNOWLEDGE_BASE_PATH, MODEL_NAME
from auto_replier.knowledge import load_knowledge_base
from auto_replier.prompts import build_system_instruction
from auto_replier.services.metrics import metrics

logger = logging.getLogger(__name__)

TEMPERATURE = 0.6

FALLBACK_REPLY = (
    "Apologies! I'm running into a system error right now. "
    "Could you please rephrase your request or try again in a moment?"
)


class ClientNotReadyError(RuntimeError):
    """Raised when a reply is requested before the Gemini client is initialised."""


class ReplyGenerator:
    """Wraps a single Gemini model behind ``generate_reply``."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        *,
        knowledge_base: Mapping[str, Any] | None = None,
        knowledge_base_path: str | Path | None = None,
    ) -> None:
        self._api_key = api_key or GEMINI_API_KEY
        if not self._api_key:
            raise ValueError("A Gemini API key is required to build the reply generator.")
        self._model = model or MODEL_NAME

        if knowledge_base is None:
            knowledge_base = load_knowledge_base(knowledge_base_path or KNOWLEDGE_BASE_PATH)
        self._knowledge_base = knowledge_base
        self._system_instruction = build_system_instruction(knowledge_base)

        self._client: genai.Client | None = None

    @property
    def model(self) -> str:
        return self._model

    @property
    def system_instruction(self) -> str:
        return self._system_instruction

    @property
    def ready(self) -> bool:
        """True once :meth:`start` has created the Gemini client."""
        return self._client is not None

    async def start(self) -> None:
        """Create the Gemini client.  Errors propagate: startup must fail loudly."""
        try:
            self._client = genai.Client(api_key=self._api_key)
        except Exception:
            logger.exception("Gemini client initialisation failed")
            raise
        logger.info(
            "Reply generator ready. Model: %s. Knowledge base sections: %d.",
            self._model, len(self._knowledge_base),
        )

    def _build_config(self) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            tools=[types.Tool(google_search=types.GoogleSearch())],
            system_instruction=self._system_instruction,
            temperature=TEMPERATURE,
        )

    async def generate_reply(self, user_text: str) -> str:
        """Return the model's reply to *user_text*, or :data:`FALLBACK_REPLY`.

        Raises:
            ClientNotReadyError: if :meth:`start` has not completed.
        """
        if self._client is None:
            raise ClientNotReadyError("Reply generator is not ready: Gemini client not initialised.")

        logger.info("Generating reply for: %r", user_text)
        contents = [types.Content(role="user", parts=[types.Part(text=user_text)])]

        t0 = time.perf_counter()
        try:
            response = await self._client.aio.models.generate_content(
                model=self._model,
                contents=contents,
                config=self._build_config(),
            )
            reply = (response.text or "").strip()
            if not reply:
                raise ValueError("Gemini returned an empty response")
        except Exception as exc:
            elapsed = (time.perf_counter() - t0) * 1000
            metrics.record_failure(
                "gemini", "generate_content",
                error_type=type(exc).__name__, latency_ms=elapsed,
            )
            logger.exception("Gemini generate_content failed; sending fallback reply")
            return FALLBACK_REPLY

        elapsed = (time.perf_counter() - t0) * 1000
        metrics.record_success("gemini", "generate_content", latency_ms=elapsed)
        logger.info("Reply generated in %.0fms (%d chars)", elapsed, len(reply))
        return reply
