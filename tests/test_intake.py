"""Tests for the loopback-only sync intake endpoint."""

import pytest

from ana_hub.db.models import BoardShareModel, CardModel
from ana_hub.db.services import CardService
from ana_hub.sync.intake import INTAKE_PATH, is_loopback

from .conftest import make_event

CREATE_EVENT = make_event(
    "card:create",
    {
        "board_id": 1,
        "title": "Sync Test Card",
        "description": "Created via /api/sync/apply",
        "column": "ideas",
        "tags": "company:wealth,sync",
    },
)


class TestLoopbackCheck:
    @pytest.mark.parametrize(
        "host",
        ["127.0.0.1", "127.10.0.3", "::1", "::ffff:127.0.0.1"],
    )
    def test_loopback_hosts(self, host):
        assert is_loopback(host)

    @pytest.mark.parametrize(
        "host",
        ["10.0.0.5", "192.168.1.20", "203.0.113.9", "2001:db8::1", "testclient", "localhost", "", None],
    )
    def test_other_hosts(self, host):
        assert not is_loopback(host)


class TestOriginEnforcement:
    def test_remote_caller_is_rejected(self, client, db_session):
        """TestClient's peer is not loopback, so nothing is applied."""
        response = client.post(INTAKE_PATH, json=CREATE_EVENT)

        assert response.status_code == 403
        assert response.json() == {"error": "Forbidden"}
        assert db_session.query(CardModel).count() == 0

    def test_rejection_does_not_parse_body(self, client):
        response = client.post(
            INTAKE_PATH,
            content=b"not json at all",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 403
        assert response.json() == {"error": "Forbidden"}

    def test_forwarded_header_is_ignored(self, client, db_session):
        response = client.post(
            INTAKE_PATH,
            json=CREATE_EVENT,
            headers={"X-Forwarded-For": "127.0.0.1"},
        )

        assert response.status_code == 403
        assert db_session.query(CardModel).count() == 0


class TestApply:
    @pytest.mark.asyncio
    async def test_local_create_is_applied(self, local_client, session_factory):
        response = await local_client.post(INTAKE_PATH, json=CREATE_EVENT)

        assert response.status_code == 200
        assert response.json()["ok"] is True

        db = session_factory()
        try:
            cards = CardService(db).get_cards_for_board(1)
            assert [c.title for c in cards] == ["Sync Test Card"]
            assert cards[0].column == "ideas"
        finally:
            db.close()

    @pytest.mark.asyncio
    async def test_missing_target_update_succeeds(self, local_client, session_factory):
        response = await local_client.post(
            INTAKE_PATH, json=make_event("card:update", {"id": 999, "column": "completed"})
        )

        assert response.status_code == 200
        assert response.json() == {"ok": True, "status": "noop"}

    @pytest.mark.asyncio
    async def test_unknown_type_succeeds(self, local_client, session_factory):
        response = await local_client.post(
            INTAKE_PATH, json=make_event("bogus:event", {"x": 1})
        )

        assert response.status_code == 200
        assert response.json() == {"ok": True, "status": "ignored"}

    @pytest.mark.asyncio
    async def test_share_twice_creates_two_tokens(self, local_client, session_factory):
        for _ in range(2):
            response = await local_client.post(
                INTAKE_PATH, json=make_event("board:share", {"board_id": 1})
            )
            assert response.status_code == 200

        db = session_factory()
        try:
            assert db.query(BoardShareModel).count() == 2
        finally:
            db.close()


class TestFailures:
    @pytest.mark.asyncio
    async def test_malformed_json_is_generic_failure(self, local_client):
        response = await local_client.post(
            INTAKE_PATH,
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Failed"}

    @pytest.mark.asyncio
    async def test_missing_timestamp_is_generic_failure(self, local_client):
        response = await local_client.post(
            INTAKE_PATH, json={"type": "card:create", "data": {"board_id": 1, "title": "x"}}
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Failed"}

    @pytest.mark.asyncio
    async def test_invalid_payload_is_generic_failure(self, local_client, session_factory):
        response = await local_client.post(
            INTAKE_PATH, json=make_event("card:create", {"board_id": 1})
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Failed"}

    @pytest.mark.asyncio
    async def test_storage_failure_is_generic_failure(self, local_client, session_factory):
        response = await local_client.post(
            INTAKE_PATH, json=make_event("card:create", {"board_id": 404, "title": "x"})
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Failed"}

        db = session_factory()
        try:
            assert db.query(CardModel).count() == 0
        finally:
            db.close()
