"""Tests for the FastAPI endpoints and the inbound webhook pipeline."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from auto_replier.api.routes import ACK_BODY, INVALID_JSON_BODY
from auto_replier.server import app
from auto_replier.services.reply_generator import (
    FALLBACK_REPLY,
    ClientNotReadyError,
    ReplyGenerator,
)
from auto_replier.services.vonage_client import DeliveryReceipt, DeliverySendError

TEXT_PAYLOAD = {
    "from": "+15550001111",
    "to": "14157386102",
    "message_uuid": "aaaaaaaa-bbbb-cccc-dddd-0123456789ab",
    "channel": "whatsapp",
    "message_type": "text",
    "text": "What is the VIP price?",
}


@pytest.fixture
def mock_generator():
    """A started reply generator stand-in attached to app state (mirrors the lifespan)."""
    generator = MagicMock()
    generator.ready = True
    generator.generate_reply = AsyncMock(return_value="The VIP Luxury Cruise is €235.")
    app.state.reply_generator = generator
    yield generator
    app.state.reply_generator = None


@pytest.fixture
def mock_sender():
    sender = MagicMock()
    sender.send_text = AsyncMock(return_value=DeliveryReceipt(message_uuid="out-uuid-1"))
    app.state.whatsapp_sender = sender
    yield sender
    app.state.whatsapp_sender = None


@pytest.fixture
def client(mock_generator, mock_sender):
    return TestClient(app)


def _post(client: TestClient, payload):
    body = payload if isinstance(payload, bytes) else json.dumps(payload)
    return client.post(
        "/vonage/inbound", content=body, headers={"Content-Type": "application/json"},
    )


class TestTextMessages:
    def test_scenario_vip_price(self, client, mock_generator, mock_sender):
        response = _post(client, TEXT_PAYLOAD)

        assert response.status_code == 200
        assert response.text == ACK_BODY
        mock_generator.generate_reply.assert_awaited_once_with("What is the VIP price?")
        mock_sender.send_text.assert_awaited_once_with(
            "+15550001111", "The VIP Luxury Cruise is €235.",
        )

    def test_fallback_reply_is_sent_when_gemini_fails(self, client, mock_sender, knowledge_base):
        gemini = MagicMock()
        gemini.aio.models.generate_content = AsyncMock(side_effect=RuntimeError("quota exceeded"))
        generator = ReplyGenerator(api_key="test-key", knowledge_base=knowledge_base)
        with patch("auto_replier.services.reply_generator.genai.Client", return_value=gemini):
            asyncio.run(generator.start())
        app.state.reply_generator = generator

        response = _post(client, TEXT_PAYLOAD)

        assert response.status_code == 200
        assert response.text == ACK_BODY
        gemini.aio.models.generate_content.assert_awaited_once()
        mock_sender.send_text.assert_awaited_once_with("+15550001111", FALLBACK_REPLY)

    def test_generator_not_ready_still_acknowledged(self, client, mock_generator, mock_sender):
        mock_generator.generate_reply.side_effect = ClientNotReadyError("not ready")
        response = _post(client, TEXT_PAYLOAD)

        assert response.status_code == 200
        assert response.text == ACK_BODY
        mock_sender.send_text.assert_not_awaited()

    def test_send_failure_still_acknowledged(self, client, mock_generator, mock_sender):
        mock_sender.send_text.side_effect = DeliverySendError("Unauthorized", status_code=401)
        response = _post(client, TEXT_PAYLOAD)

        assert response.status_code == 200
        assert response.text == ACK_BODY
        mock_generator.generate_reply.assert_awaited_once()

    def test_unexpected_error_still_acknowledged(self, client, mock_generator, mock_sender):
        mock_generator.generate_reply.side_effect = RuntimeError("boom")
        response = _post(client, TEXT_PAYLOAD)
        assert response.status_code == 200

    def test_redelivery_is_not_deduplicated(self, client, mock_generator, mock_sender):
        """The same webhook delivered twice yields two independent replies."""
        first = _post(client, TEXT_PAYLOAD)
        second = _post(client, TEXT_PAYLOAD)

        assert first.status_code == second.status_code == 200
        assert mock_generator.generate_reply.await_count == 2
        assert mock_sender.send_text.await_count == 2

    def test_services_missing_still_acknowledged(self):
        app.state.reply_generator = None
        app.state.whatsapp_sender = None
        response = _post(TestClient(app), TEXT_PAYLOAD)
        assert response.status_code == 200
        assert response.text == ACK_BODY


class TestIgnoredPayloads:
    @pytest.mark.parametrize(
        "payload",
        [
            {"from": "+1555", "message_type": "image", "image": {"url": "https://x/y.jpg"}},
            {"from": "+1555", "message_type": "text", "text": ""},
            {"from": "+1555", "message_type": "text"},
            {"status": "delivered", "message_uuid": "abc", "to": "+1555"},
            {"status": "read", "messageId": "abc"},
            {"hello": "world"},
            {},
            [1, 2, 3],
            "just a string",
            42,
            None,
        ],
    )
    def test_no_generation_or_send(self, client, mock_generator, mock_sender, payload):
        response = _post(client, payload)

        assert response.status_code == 200
        assert response.text == ACK_BODY
        mock_generator.generate_reply.assert_not_awaited()
        mock_sender.send_text.assert_not_awaited()


class TestInvalidJson:
    @pytest.mark.parametrize("body", [b"not json", b"{\"from\": ", b"", b"\xff\xfe\x00garbage"])
    def test_returns_400_and_does_nothing(self, client, mock_generator, mock_sender, body):
        response = _post(client, body)

        assert response.status_code == 400
        assert response.text == INVALID_JSON_BODY
        mock_generator.generate_reply.assert_not_awaited()
        mock_sender.send_text.assert_not_awaited()

    def test_content_type_is_ignored(self, client, mock_generator):
        response = client.post(
            "/vonage/inbound",
            content=json.dumps(TEXT_PAYLOAD),
            headers={"Content-Type": "text/plain"},
        )
        assert response.status_code == 200
        mock_generator.generate_reply.assert_awaited_once()


class TestHealthEndpoint:
    def test_health_reports_generator_ready(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["service"] == "whatsapp-auto-replier"
        assert data["generator_ready"] is True

    def test_health_without_generator(self):
        app.state.reply_generator = None
        response = TestClient(app).get("/health")
        assert response.status_code == 200
        assert response.json()["generator_ready"] is False


class TestRequestId:
    def test_response_includes_request_id_header(self, client):
        response = _post(client, TEXT_PAYLOAD)
        assert "X-Request-ID" in response.headers

    def test_client_supplied_request_id_is_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "trace-123"})
        assert response.headers["X-Request-ID"] == "trace-123"


class TestRootEndpoint:
    def test_root_returns_service_info(self, client):
        data = client.get("/").json()
        assert data["service"] == "WhatsApp Auto-Replier"
        assert data["webhook"] == "/vonage/inbound"
