"""Tests for the webhook, cron and health endpoints."""

import json
import pytest
from unittest.mock import Mock
from fastapi.testclient import TestClient

from reminder_bot.api.main import create_app
from reminder_bot.bootstrap import Services
from reminder_bot.errors import StoreUnavailable
from reminder_bot.store import Reminder


@pytest.fixture
def services(store, messenger, extractor, intake, dispatcher):
    return Services(store, messenger, extractor, intake, dispatcher)


@pytest.fixture
def api_client(services):
    """Create test API client with no cron token."""
    return TestClient(create_app(services=services))


@pytest.fixture
def guarded_client(services):
    """Create test API client whose /cron requires a token."""
    return TestClient(create_app(services=services, cron_token="tick-secret"))


def webhook_body(*texts, user="U1"):
    return {"events": [{"user": user, "text": t, "token": f"tok-{i}"} for i, t in enumerate(texts)]}


class TestGeneral:
    def test_health_check(self, api_client):
        response = api_client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "platform": "fake", "store": "MemoryReminderStore"}

    def test_api_info(self, api_client):
        response = api_client.get("/")
        assert response.status_code == 200
        assert response.json()["name"] == "Reminder Bot"


class TestWebhook:
    """Test inbound message handling over HTTP."""

    def test_parsed_and_unparsed_messages(self, api_client, store, messenger):
        response = api_client.post(
            "/webhook",
            json=webhook_body("remind me tomorrow at 8pm to take medicine", "hello"),
        )

        assert response.status_code == 200
        assert response.text == "OK"
        assert len(store.due_before("U1", 2**62)) == 1
        assert [handle for handle, _ in messenger.replies] == ["tok-0", "tok-1"]

    def test_invalid_signature_rejected(self, api_client, services, store):
        services.messenger.verify_request = Mock(return_value=False)

        response = api_client.post("/webhook", json=webhook_body("remind me tomorrow at 8pm to x"))

        assert response.status_code == 401
        assert store.user_keys() == []

    def test_body_must_be_json_object(self, api_client):
        assert api_client.post("/webhook", content=b"not json").status_code == 400
        assert api_client.post("/webhook", content=json.dumps([1, 2])).status_code == 400

    def test_store_outage_is_500_without_detail(self, api_client, store):
        store.insert = Mock(side_effect=StoreUnavailable("redis://secret-host refused"))

        response = api_client.post("/webhook", json=webhook_body("remind me tomorrow at 8pm to x"))

        assert response.status_code == 500
        assert "secret-host" not in response.text


class TestCron:
    """Test the sweep trigger endpoint."""

    def test_cron_runs_sweep(self, api_client, store, messenger, clock):
        store.insert("U1", Reminder(1000, "take medicine"))
        clock.now = 1000

        response = api_client.get("/cron")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["sent"] == 1
        assert data["cutoff_ms"] == 1000
        assert messenger.pushes == [("U1", "⏰ Reminder: take medicine")]

    def test_cron_twice_is_idempotent(self, api_client, store, messenger, clock):
        store.insert("U1", Reminder(1000, "once"))
        clock.now = 1000

        api_client.post("/cron")
        second = api_client.post("/cron")

        assert second.json()["sent"] == 0
        assert len(messenger.pushes) == 1

    def test_cron_token_required(self, guarded_client):
        assert guarded_client.get("/cron").status_code == 401
        assert guarded_client.get("/cron", headers={"X-Cron-Token": "wrong"}).status_code == 403

    def test_cron_token_header_or_query(self, guarded_client):
        assert guarded_client.get("/cron", headers={"X-Cron-Token": "tick-secret"}).status_code == 200
        assert guarded_client.get("/cron?token=tick-secret").status_code == 200

    def test_cron_store_outage_is_500(self, api_client, store):
        store.user_keys = Mock(side_effect=StoreUnavailable("unreachable"))

        response = api_client.get("/cron")

        assert response.status_code == 500
