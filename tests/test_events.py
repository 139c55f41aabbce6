"""Tests for the sync event models."""

from datetime import timezone

import pytest

from ana_hub.sync.events import (
    CardCreateData,
    CardUpdateData,
    Event,
    EventTypes,
    EventValidationError,
    parse_payload,
)


class TestEventEnvelope:
    def test_parse_body(self):
        event = Event.parse_body(
            '{"type":"card:create","timestamp":"2024-01-01T00:00:00Z",'
            '"source":"relay","data":{"board_id":1,"title":"Sync Test Card"}}'
        )

        assert event.type == EventTypes.CARD_CREATE
        assert event.source == "relay"
        assert event.id is None
        assert event.timestamp.tzinfo is not None
        assert event.timestamp.astimezone(timezone.utc).year == 2024
        assert event.data["title"] == "Sync Test Card"

    def test_body_with_surrounding_whitespace(self):
        event = Event.parse_body('\n  {"type":"x:y","timestamp":"2024-01-01T00:00:00Z"}  \n')

        assert event.type == "x:y"
        assert event.data == {}

    @pytest.mark.parametrize(
        "body",
        [
            None,
            "",
            "   ",
            "not json",
            "[1, 2]",
            '{"timestamp":"2024-01-01T00:00:00Z"}',
            '{"type":"card:create"}',
            '{"type":"card:create","timestamp":"yesterday"}',
        ],
    )
    def test_undecodable_bodies(self, body):
        with pytest.raises(EventValidationError):
            Event.parse_body(body)

    def test_unknown_type_is_accepted(self):
        event = Event.model_validate(
            {"type": "bogus:event", "timestamp": "2024-01-01T00:00:00Z"}
        )

        assert parse_payload(event) is None

    def test_to_payload_omits_missing_id(self):
        event = Event.model_validate(
            {"type": "board:share", "timestamp": "2024-01-01T00:00:00Z", "data": {"board_id": 1}}
        )

        payload = event.to_payload()
        assert "id" not in payload
        assert payload["data"] == {"board_id": 1}

        stamped = event.model_copy(update={"id": "github:acme/hub-sync#3"})
        assert stamped.to_payload()["id"] == "github:acme/hub-sync#3"


class TestPayloads:
    def test_create_payload(self):
        event = Event.model_validate(
            {
                "type": "card:create",
                "timestamp": "2024-01-01T00:00:00Z",
                "data": {"board_id": 1, "title": "  Padded  ", "column": "ideas"},
            }
        )

        payload = parse_payload(event)
        assert isinstance(payload, CardCreateData)
        assert payload.title == "Padded"
        assert payload.column.value == "ideas"

    def test_update_payload_excludes_absent_fields(self):
        event = Event.model_validate(
            {
                "type": "card:update",
                "timestamp": "2024-01-01T00:00:00Z",
                "data": {"id": 5, "column": "inprogress"},
            }
        )

        payload = parse_payload(event)
        assert isinstance(payload, CardUpdateData)
        assert payload.model_dump(exclude={"id"}, exclude_none=True) == {
            "column": payload.column
        }

    def test_error_names_the_field(self):
        event = Event.model_validate(
            {"type": "card:comment", "timestamp": "2024-01-01T00:00:00Z", "data": {"card_id": 1}}
        )

        with pytest.raises(EventValidationError, match="author"):
            parse_payload(event)


class TestFieldLimits:
    def test_source_longer_than_column_is_rejected(self):
        body = (
            '{"type":"card:comment","timestamp":"2024-01-01T00:00:00Z",'
            f'"source":"{"s" * 51}","data":{{"card_id":1,"author":"Ana","content":"hi"}}}}'
        )

        with pytest.raises(EventValidationError):
            Event.parse_body(body)

    @pytest.mark.parametrize(
        "event_type,data",
        [
            (EventTypes.CARD_CREATE, {"board_id": 1, "title": "t", "agent": "a" * 101}),
            (EventTypes.CARD_UPDATE, {"id": 1, "agent": "a" * 101}),
        ],
    )
    def test_agent_longer_than_column_is_rejected(self, event_type, data):
        event = Event.model_validate(
            {"type": event_type, "timestamp": "2024-01-01T00:00:00Z", "data": data}
        )

        with pytest.raises(EventValidationError, match="agent"):
            parse_payload(event)

    def test_whitespace_only_comment_is_rejected(self):
        event = Event.model_validate(
            {
                "type": EventTypes.CARD_COMMENT,
                "timestamp": "2024-01-01T00:00:00Z",
                "data": {"card_id": 1, "author": "Ana", "content": "   \n"},
            }
        )

        with pytest.raises(EventValidationError, match="content"):
            parse_payload(event)
