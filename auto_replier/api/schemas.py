"""Pydantic schemas for the webhook and health endpoints."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class MessageKind(str, Enum):
    TEXT = "text"
    NON_TEXT = "non_text"
    STATUS = "status"
    UNRECOGNIZED = "unrecognized"


def _as_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return value if isinstance(value, str) else str(value)


class InboundMessage(BaseModel):
    """Normalized inbound Vonage callback (one per webhook call)."""

    model_config = ConfigDict(frozen=True)

    sender_id: str | None = None
    kind: MessageKind
    message_type: str | None = None
    text: str | None = None
    status: str | None = None
    message_id: str | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> InboundMessage:
        """Classify a decoded webhook body.

        Only ``message_type == "text"`` with a non-empty ``text`` is actionable.
        Any other ``message_type`` (image, audio, an empty text…) is ``non_text``;
        a payload without one but carrying ``status`` is a delivery receipt.
        """
        if not isinstance(payload, dict):
            return cls(kind=MessageKind.UNRECOGNIZED)

        message_type = _as_str(payload.get("message_type"))
        raw_text = payload.get("text")
        text = raw_text if isinstance(raw_text, str) and raw_text else None
        status = _as_str(payload.get("status"))

        if message_type == "text" and text:
            kind = MessageKind.TEXT
        elif message_type:
            kind = MessageKind.NON_TEXT
        elif status:
            kind = MessageKind.STATUS
        else:
            kind = MessageKind.UNRECOGNIZED

        return cls(
            sender_id=_as_str(payload.get("from")),
            kind=kind,
            message_type=message_type,
            text=text,
            status=status,
            message_id=_as_str(payload.get("message_uuid") or payload.get("messageId")),
        )


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    service: str = "whatsapp-auto-replier"
    generator_ready: bool = Field(False, description="Gemini client initialised")
