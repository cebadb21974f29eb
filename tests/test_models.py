import json

import pytest

from app.relay.errors import ValidationFailure
from app.relay.models import ChangeEvent, OutboundMessage, RelayTarget


def make_body(**fields):
    payload = {"id": 5, "modified_by": 3, "modified_on": "2024-01-01T00:00:00Z"}
    payload.update(fields)
    return json.dumps(payload).encode("utf-8")


class TestChangeEvent:
    def test_audit_fields_are_extracted(self):
        event = ChangeEvent.from_body(make_body(name="Foo", price=12.5), "widgets")

        assert event.record_id == 5
        assert event.modified_by_user_id == 3
        assert event.modified_on == "2024-01-01T00:00:00Z"
        assert event.object_type_name == "widgets"
        assert event.changed_fields == {"name": "Foo", "price": 12.5}

    def test_changed_fields_never_contain_audit_fields(self):
        event = ChangeEvent.from_body(make_body(title="x"), "posts")

        for field in ("id", "modified_by", "modified_on"):
            assert field not in event.changed_fields

    def test_string_record_id(self):
        event = ChangeEvent.from_body(make_body(id="abc-123"), "widgets")

        assert event.record_id == "abc-123"

    def test_object_type_name_is_trimmed(self):
        event = ChangeEvent.from_body(make_body(), "  widgets ")

        assert event.object_type_name == "widgets"

    def test_no_changed_fields(self):
        event = ChangeEvent.from_body(make_body(), "widgets")

        assert event.changed_fields == {}

    @pytest.mark.parametrize("body", [
        b"",
        b"{not json",
        b"[1, 2, 3]",
        b"\"just a string\"",
        b"\xff\xfe",
        b'{"id": 5, "modified_by": 3, "modified_on": "x", "deep": ' + b"[" * 100000 + b"]" * 100000 + b"}",
        b'{"id": 1e400, "modified_by": 3, "modified_on": "x"}',
        b'{"id": NaN, "modified_by": 3, "modified_on": "x"}',
        b'{"id": 5, "modified_by": 3, "modified_on": "x", "price": -Infinity}',
    ])
    def test_malformed_body(self, body):
        with pytest.raises(ValidationFailure):
            ChangeEvent.from_body(body, "widgets")

    @pytest.mark.parametrize("missing", ["id", "modified_by", "modified_on"])
    def test_missing_audit_field(self, missing):
        payload = json.loads(make_body())
        del payload[missing]

        with pytest.raises(ValidationFailure):
            ChangeEvent.from_body(json.dumps(payload).encode("utf-8"), "widgets")

    @pytest.mark.parametrize("fields", [
        {"modified_by": "3"},
        {"modified_by": 3.5},
        {"modified_by": True},
        {"modified_by": 99999999999999999999999},
        {"modified_by": -(2 ** 63) - 1},
        {"modified_on": 1704067200},
        {"id": None},
        {"id": [5]},
    ])
    def test_wrongly_typed_audit_field(self, fields):
        with pytest.raises(ValidationFailure):
            ChangeEvent.from_body(make_body(**fields), "widgets")

    def test_largest_user_id(self):
        event = ChangeEvent.from_body(make_body(modified_by=2 ** 63 - 1), "widgets")

        assert event.modified_by_user_id == 2 ** 63 - 1

    @pytest.mark.parametrize("name", ["", "   "])
    def test_empty_object_type_name(self, name):
        with pytest.raises(ValidationFailure):
            ChangeEvent.from_body(make_body(), name)


class TestRelayTarget:
    def test_three_segments(self):
        target = RelayTarget.from_path(" AAA/BBB/CCC ")

        assert target.secret_path == "AAA/BBB/CCC"
        assert target.url("https://hooks.slack.com/services") == "https://hooks.slack.com/services/AAA/BBB/CCC"

    @pytest.mark.parametrize("path", ["", "  ", "AAA", "AAA/BBB", "AAA/BBB/CCC/DDD", "AAA//CCC", "/BBB/CCC"])
    def test_invalid_paths(self, path):
        with pytest.raises(ValidationFailure):
            RelayTarget.from_path(path)


class TestOutboundMessage:
    def test_wire_format(self):
        assert OutboundMessage(text="hello").to_wire() == {"text": "hello"}
