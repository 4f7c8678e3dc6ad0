"""Tests for the conversations/messages CRUD API and bearer authentication."""

import time
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from estate_hive.config import settings


@pytest.fixture
def seeded(fake_supabase):
    telegram = fake_supabase.add_conversation(
        platform="telegram", platform_conversation_id="12345678", telegram_chat_id=12345678,
        telegram_username="johndoe", client_name="John Doe", unread_count=2,
        last_message="second", last_message_at="2024-01-01T10:05:00+00:00",
    )
    whatsapp = fake_supabase.add_conversation(
        platform="whatsapp", platform_conversation_id="917259778145", client_phone="917259778145",
        client_name="Ravi Kumar", unread_count=1,
        last_message="Is the 2BHK available?", last_message_at="2024-01-02T09:00:00+00:00",
    )
    fake_supabase.add_message(conversation_id=telegram["id"], content="first", sent_at="2024-01-01T10:00:00+00:00")
    fake_supabase.add_message(conversation_id=telegram["id"], content="second", sent_at="2024-01-01T10:05:00+00:00")
    fake_supabase.add_message(
        conversation_id=telegram["id"], content="Agent reply", sent_at="2024-01-01T10:03:00+00:00",
        sender_id="agent-1", is_read=True,
    )
    recent = datetime.now(timezone.utc).isoformat()
    fake_supabase.add_message(conversation_id=whatsapp["id"], content="Is the 2BHK available?", sent_at=recent)
    return {"telegram": telegram, "whatsapp": whatsapp}


class TestListAndGet:
    def test_list_most_recent_first(self, client, seeded):
        response = client.get("/conversations")

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 2
        assert [c["id"] for c in body["conversations"]] == [seeded["whatsapp"]["id"], seeded["telegram"]["id"]]

    def test_filter_by_platform(self, client, seeded):
        body = client.get("/conversations", params={"platform": "telegram"}).json()

        assert [c["platform"] for c in body["conversations"]] == ["telegram"]

    def test_invalid_platform(self, client):
        assert client.get("/conversations", params={"platform": "sms"}).status_code == 422

    def test_get_one(self, client, seeded):
        response = client.get(f"/conversations/{seeded['telegram']['id']}")

        assert response.status_code == 200
        assert response.json()["telegram_chat_id"] == 12345678

    def test_get_missing(self, client):
        assert client.get("/conversations/999").status_code == 404

    def test_store_failure(self, client, fake_supabase):
        fake_supabase.fail_on.add(("conversations", "select"))

        assert client.get("/conversations").status_code == 500

    def test_rows_from_other_platforms_are_listed(self, client, fake_supabase, seeded):
        sms = fake_supabase.add_conversation(
            platform="sms", client_name="Ravi SMS", last_message_at="2024-01-03T08:00:00+00:00"
        )

        listed = client.get("/conversations")
        fetched = client.get(f"/conversations/{sms['id']}")
        searched = client.get("/conversations/search", params={"q": "sms"})

        assert listed.status_code == 200
        assert listed.json()["total"] == 3
        assert listed.json()["conversations"][0]["platform"] == "sms"
        assert fetched.status_code == 200
        assert fetched.json()["platform"] == "sms"
        assert searched.status_code == 200
        assert [c["id"] for c in searched.json()["conversations"]] == [sms["id"]]


class TestCreateUpdateDelete:
    def test_create_whatsapp(self, client, fake_supabase):
        response = client.post("/conversations", json={
            "platform": "whatsapp", "client_phone": "917259778145", "client_name": "John Doe"
        })

        assert response.status_code == 201
        body = response.json()
        assert body["user_id"] == "agent-1"
        assert body["unread_count"] == 0
        assert fake_supabase.conversations[0]["platform_conversation_id"] == "917259778145"

    def test_create_telegram_keys_on_chat_id(self, client, fake_supabase):
        client.post("/conversations", json={"platform": "telegram", "telegram_chat_id": 42})

        assert fake_supabase.conversations[0]["platform_conversation_id"] == "42"

    def test_create_requires_platform(self, client):
        assert client.post("/conversations", json={"client_name": "x"}).status_code == 422

    def test_update(self, client, seeded):
        response = client.put(
            f"/conversations/{seeded['whatsapp']['id']}", json={"client_name": "Ravi K.", "status": "archived"}
        )

        assert response.status_code == 200
        assert response.json()["client_name"] == "Ravi K."
        assert response.json()["status"] == "archived"

    def test_update_rejects_negative_unread(self, client, seeded):
        response = client.put(f"/conversations/{seeded['whatsapp']['id']}", json={"unread_count": -1})

        assert response.status_code == 422

    def test_update_missing(self, client):
        assert client.put("/conversations/999", json={"client_name": "x"}).status_code == 404

    def test_delete(self, client, fake_supabase, seeded):
        response = client.delete(f"/conversations/{seeded['whatsapp']['id']}")

        assert response.status_code == 204
        assert [c["id"] for c in fake_supabase.conversations] == [seeded["telegram"]["id"]]

    def test_delete_missing(self, client):
        assert client.delete("/conversations/999").status_code == 404


class TestMessages:
    def test_messages_oldest_first(self, client, seeded):
        body = client.get(f"/conversations/{seeded['telegram']['id']}/messages").json()

        assert [m["content"] for m in body["messages"]] == ["first", "Agent reply", "second"]
        assert body["total"] == 3

    def test_create_agent_message(self, client, fake_supabase, seeded):
        conversation_id = seeded["whatsapp"]["id"]

        response = client.post(f"/conversations/{conversation_id}/messages", json={"content": "Yes, it is"})

        assert response.status_code == 201
        assert response.json()["sender_id"] == "agent-1"
        assert response.json()["is_read"] is True
        row = next(c for c in fake_supabase.conversations if c["id"] == conversation_id)
        assert row["last_message"] == "Yes, it is"
        assert row["unread_count"] == 1

    def test_create_message_requires_content(self, client, seeded):
        response = client.post(f"/conversations/{seeded['whatsapp']['id']}/messages", json={"content": ""})

        assert response.status_code == 422

    def test_create_message_missing_conversation(self, client):
        assert client.post("/conversations/999/messages", json={"content": "x"}).status_code == 404

    def test_mark_read(self, client, fake_supabase, seeded):
        conversation_id = seeded["telegram"]["id"]

        response = client.post(f"/conversations/{conversation_id}/read")

        assert response.status_code == 200
        assert response.json()["unread_count"] == 0
        messages = [m for m in fake_supabase.messages if m["conversation_id"] == conversation_id]
        assert all(m["is_read"] for m in messages)


class TestSearchAndStats:
    def test_search_conversations_by_name(self, client, seeded):
        body = client.get("/conversations/search", params={"q": "ravi"}).json()

        assert [c["id"] for c in body["conversations"]] == [seeded["whatsapp"]["id"]]

    def test_search_conversations_by_username(self, client, seeded):
        body = client.get("/conversations/search", params={"q": "JOHNDOE"}).json()

        assert [c["id"] for c in body["conversations"]] == [seeded["telegram"]["id"]]

    def test_search_with_filter_separators(self, client, seeded):
        response = client.get("/conversations/search", params={"q": "Ravi,(Kumar)"})

        assert response.status_code == 200

    def test_search_requires_term(self, client):
        assert client.get("/conversations/search").status_code == 422

    def test_search_messages(self, client, seeded):
        body = client.get("/messages/search", params={"q": "2bhk"}).json()

        assert [m["content"] for m in body["messages"]] == ["Is the 2BHK available?"]

    def test_search_messages_in_conversation_newest_first(self, client, seeded):
        body = client.get(
            "/messages/search", params={"q": "s", "conversation_id": seeded["telegram"]["id"]}
        ).json()

        assert [m["content"] for m in body["messages"]] == ["second", "first"]

    def test_stats(self, client, seeded):
        response = client.get("/conversations/stats")

        assert response.status_code == 200
        assert response.json() == {
            "total_conversations": 2,
            "whatsapp_conversations": 1,
            "telegram_conversations": 1,
            "total_unread": 3,
            "messages_last_24h": 1,
        }


class TestAuthentication:
    def _token(self, **claims):
        payload = {"sub": "agent-9", "aud": "authenticated", "exp": int(time.time()) + 3600, **claims}
        return jwt.encode(payload, settings.SUPABASE_JWT_SECRET, algorithm="HS256")

    def test_missing_token(self, anon_client):
        response = anon_client.get("/conversations")

        assert response.status_code == 401
        assert response.json()["detail"] == "Unauthorized"

    def test_valid_jwt(self, anon_client):
        response = anon_client.get("/conversations", headers={"Authorization": f"Bearer {self._token()}"})

        assert response.status_code == 200

    def test_expired_jwt(self, anon_client):
        token = self._token(exp=int((datetime.now(timezone.utc) - timedelta(hours=1)).timestamp()))

        response = anon_client.get("/conversations", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    def test_wrong_audience(self, anon_client):
        token = self._token(aud="anon")

        assert anon_client.get("/conversations", headers={"Authorization": f"Bearer {token}"}).status_code == 401

    def test_user_store_fallback(self, anon_client, monkeypatch):
        monkeypatch.setattr(settings, "SUPABASE_JWT_SECRET", "")

        ok = anon_client.get("/conversations", headers={"Authorization": "Bearer store-token"})
        rejected = anon_client.get("/conversations", headers={"Authorization": "Bearer unknown-token"})

        assert ok.status_code == 200
        assert rejected.status_code == 401
