"""Tests for the WATI client and the /whatsapp router."""

import pytest

from estate_hive.services.exceptions import ProviderError
from estate_hive.services.whatsapp_service import normalize_messages_response


class TestNormalizeMessagesResponse:
    @pytest.mark.parametrize("data,items", [
        ([{"id": 1}], [{"id": 1}]),
        ({"data": [{"id": 2}]}, [{"id": 2}]),
        ({"result": [{"id": 3}]}, [{"id": 3}]),
        ({"ok": True, "list": [{"id": 4}]}, [{"id": 4}]),
        ({"ok": True}, []),
        ("unexpected", []),
    ])
    def test_reshaped(self, data, items):
        assert normalize_messages_response(data) == {"messages": {"items": items}}

    def test_messages_key_passed_through(self):
        data = {"messages": {"items": [{"id": 5}]}, "link": {}}

        assert normalize_messages_response(data) is data


class TestWatiService:
    @pytest.mark.asyncio
    async def test_get_messages(self, whatsapp_service, wati_stub):
        wati_stub.respond("/api/v1/getMessages", json_body={"data": [{"text": "hi"}]})

        result = await whatsapp_service.get_messages(page_size=50)

        assert result == {"messages": {"items": [{"text": "hi"}]}}
        assert wati_stub.requests[0].url.params["pageSize"] == "50"

    @pytest.mark.asyncio
    async def test_get_messages_error(self, whatsapp_service, wati_stub):
        wati_stub.respond("/api/v1/getMessages", status_code=503, json_body={"error": "down"})

        with pytest.raises(ProviderError) as exc_info:
            await whatsapp_service.get_messages()

        assert exc_info.value.status_code == 503


class TestWhatsAppEndpoints:
    def test_send(self, client, wati_stub):
        response = client.post("/whatsapp/send", json={"phone": "917259778145", "message": "Hello"})

        assert response.status_code == 200
        assert response.json() == {"success": True, "messageId": "wamid.1", "chatId": "917259778145"}
        assert wati_stub.json_of("/messages") == {"recipient": "917259778145", "text": "Hello"}

    @pytest.mark.parametrize("body", [
        {"phone": "917259778145"},
        {"message": "Hello"},
        {"phone": "  ", "message": "Hello"},
        {"phone": "917259778145", "message": "   "},
    ])
    def test_send_requires_phone_and_message(self, client, wati_stub, body):
        response = client.post("/whatsapp/send", json=body)

        assert response.status_code == 400
        assert response.json() == {"error": "phone and message are required"}
        assert wati_stub.requests == []

    def test_send_rejected_by_provider(self, client, fake_supabase, wati_stub):
        wati_stub.respond("/messages", status_code=400, json_body={"error": "invalid number"})

        response = client.post("/whatsapp/send", json={"phone": "1", "message": "Hello"})

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_send_requires_authentication(self, anon_client):
        response = anon_client.post("/whatsapp/send", json={"phone": "1", "message": "Hello"})

        assert response.status_code == 401

    def test_messages(self, client, wati_stub):
        wati_stub.respond("/api/v1/getMessages", json_body=[{"text": "hi"}])

        response = client.get("/whatsapp/messages")

        assert response.status_code == 200
        assert response.json() == {"messages": {"items": [{"text": "hi"}]}}

    def test_messages_provider_error(self, client, wati_stub):
        wati_stub.respond("/api/v1/getMessages", status_code=500, json_body={})

        response = client.get("/whatsapp/messages")

        assert response.status_code == 500
        assert "error" in response.json()
