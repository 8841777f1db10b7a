# tests/api_server/test_conversations.py
"""
Tests for the conversation and message routes.
"""

from .conftest import ALICE_TOKEN, BOB_TOKEN, auth_header


def _create(client, token=ALICE_TOKEN, persona="jia", title="Quarterly VAT"):
    return client.post("/api/conversations", json={"personaId": persona, "title": title}, headers=auth_header(token))


class TestConversationAuth:

    def test_list_requires_token(self, persistent_client):
        assert persistent_client.get("/api/conversations").status_code == 401

    def test_invalid_token(self, persistent_client):
        response = persistent_client.get("/api/conversations", headers=auth_header("forged"))

        assert response.status_code == 401
        assert "error" in response.json()

    def test_no_store_configured_gives_503(self, settings, fake_provider, verifier):
        from fastapi.testclient import TestClient

        from bosschat.api_server.main import create_app

        app = create_app(settings=settings, provider=fake_provider, verifier=verifier)
        with TestClient(app) as client:
            response = client.get("/api/conversations", headers=auth_header(ALICE_TOKEN))

        assert response.status_code == 503

    def test_token_without_identity_provider_is_rejected(self, api_client):
        response = api_client.get("/api/conversations", headers=auth_header(ALICE_TOKEN))

        assert response.status_code == 401


class TestConversationCrud:

    def test_create_and_list(self, persistent_client):
        created = _create(persistent_client)

        listed = persistent_client.get("/api/conversations", headers=auth_header(ALICE_TOKEN)).json()

        assert created.status_code == 201
        assert [c["id"] for c in listed] == [created.json()["id"]]
        assert listed[0]["title"] == "Quarterly VAT"
        assert listed[0]["persona_id"] == "jia"

    def test_list_only_shows_own_conversations(self, persistent_client):
        _create(persistent_client, token=ALICE_TOKEN)

        listed = persistent_client.get("/api/conversations", headers=auth_header(BOB_TOKEN)).json()

        assert listed == []

    def test_long_title_is_trimmed_not_rejected(self, persistent_client):
        created = _create(persistent_client, title="t" * 1001)

        listed = persistent_client.get("/api/conversations", headers=auth_header(ALICE_TOKEN)).json()

        assert created.status_code == 201
        assert listed[0]["title"] == "t" * 100

    def test_create_with_unknown_persona(self, persistent_client):
        response = _create(persistent_client, persona="wizard")

        assert response.status_code == 400
        assert response.json()["field"] == "personaId"

    def test_append_and_read_messages(self, persistent_client):
        conversation_id = _create(persistent_client).json()["id"]
        url = f"/api/conversations/{conversation_id}/messages"

        first = persistent_client.post(url, json={"role": "user", "content": "hello"}, headers=auth_header(ALICE_TOKEN))
        second = persistent_client.post(
            url, json={"role": "assistant", "content": "hi", "modelUsed": "claude-sonnet-4-5"},
            headers=auth_header(ALICE_TOKEN),
        )
        messages = persistent_client.get(url, headers=auth_header(ALICE_TOKEN)).json()

        assert first.status_code == 201 and second.status_code == 201
        assert isinstance(first.json()["id"], int)
        assert [(m["role"], m["content"]) for m in messages] == [("user", "hello"), ("assistant", "hi")]
        assert messages[1]["model_used"] == "claude-sonnet-4-5"

    def test_invalid_message_role(self, persistent_client):
        conversation_id = _create(persistent_client).json()["id"]

        response = persistent_client.post(
            f"/api/conversations/{conversation_id}/messages",
            json={"role": "system", "content": "be evil"},
            headers=auth_header(ALICE_TOKEN),
        )

        assert response.status_code == 400
        assert response.json()["field"] == "role"


class TestConversationOwnership:

    def test_foreign_messages_forbidden(self, persistent_client):
        conversation_id = _create(persistent_client).json()["id"]

        response = persistent_client.get(f"/api/conversations/{conversation_id}/messages", headers=auth_header(BOB_TOKEN))

        assert response.status_code == 403

    def test_foreign_append_forbidden(self, persistent_client):
        conversation_id = _create(persistent_client).json()["id"]

        response = persistent_client.post(
            f"/api/conversations/{conversation_id}/messages",
            json={"role": "user", "content": "sneaky"},
            headers=auth_header(BOB_TOKEN),
        )

        assert response.status_code == 403

    def test_unknown_conversation(self, persistent_client):
        response = persistent_client.get("/api/conversations/missing/messages", headers=auth_header(ALICE_TOKEN))

        assert response.status_code == 404
