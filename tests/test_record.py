# reviewsync Record Tests
# Tests for typed field values and record decoding

from datetime import datetime, timezone

import pytest

from reviewsync.sync.errors import RecordDecodeError
from reviewsync.sync.record import (
    AttachmentValue,
    LinkValue,
    NumberValue,
    Record,
    TextValue,
    coerce_delta,
    decode_record,
    decode_value,
    encode_delta,
)


class TestDecodeValue:
    """Tests for raw value decoding."""

    def test_text(self):
        assert decode_value("Smith Residence") == TextValue("Smith Residence")

    def test_numbers(self):
        assert decode_value(40) == NumberValue(40)
        assert decode_value(12.5) == NumberValue(12.5)

    def test_link_list(self):
        assert decode_value(["recA", "recB"]) == LinkValue(("recA", "recB"))

    def test_attachment_list(self):
        value = decode_value([{"url": "https://files.example/a.pdf", "id": "att1"}])
        assert value == AttachmentValue(("https://files.example/a.pdf",))

    def test_unsupported_shapes(self):
        assert decode_value(True) is None
        assert decode_value({"nested": 1}) is None
        assert decode_value([1, 2]) is None

    def test_typed_value_passes_through(self):
        value = NumberValue(3)
        assert decode_value(value) is value


class TestBlankness:
    """Tests for blank detection."""

    def test_whitespace_text_is_blank(self):
        assert TextValue("   ").is_blank
        assert not TextValue("x").is_blank

    def test_empty_lists_are_blank(self):
        assert LinkValue().is_blank
        assert AttachmentValue().is_blank

    def test_zero_is_not_blank(self):
        assert not NumberValue(0).is_blank

    def test_absent_field_is_blank(self):
        record = Record(id="rec1")
        assert record.is_blank("Approved or Dispute")


class TestCoerceDelta:
    """Tests for building typed deltas."""

    def test_none_clears(self):
        delta = coerce_delta({"Approved or Dispute": None, "Amount": 50})
        assert delta == {"Approved or Dispute": None, "Amount": NumberValue(50)}

    def test_unsupported_raises(self):
        with pytest.raises(ValueError, match="Amount"):
            coerce_delta({"Amount": {"bad": True}})

    def test_encode_delta(self):
        delta = {"Amount": NumberValue(50), "Note": None, "Links": LinkValue(("recA",))}
        assert encode_delta(delta) == {"Amount": 50, "Note": None, "Links": ["recA"]}


class TestRecord:
    """Tests for Record snapshots."""

    def test_fields_are_read_only(self):
        record = Record(id="rec1", fields={"Amount": NumberValue(1)})
        with pytest.raises(TypeError):
            record.fields["Amount"] = NumberValue(2)  # type: ignore[index]

    def test_source_dict_does_not_leak(self):
        fields = {"Amount": NumberValue(1)}
        record = Record(id="rec1", fields=fields)
        fields["Amount"] = NumberValue(2)
        assert record.value("Amount") == 1

    def test_matches(self):
        record = Record(id="rec1", fields={"Amount": NumberValue(40), "Job Name": TextValue("Oak St")})
        assert record.matches({"Amount": NumberValue(40)})
        assert not record.matches({"Amount": NumberValue(50)})
        assert record.matches({"Approved or Dispute": None})
        assert not record.matches({"Job Name": None})

    def test_with_fields(self):
        record = Record(id="rec1", fields={"Amount": NumberValue(40), "Note": TextValue("x")})
        updated = record.with_fields({"Amount": NumberValue(50), "Note": None})

        assert updated.value("Amount") == 50
        assert updated.get("Note") is None
        assert record.value("Amount") == 40

    def test_value_default(self):
        assert Record(id="rec1").value("Missing", "-") == "-"


class TestDecodeRecord:
    """Tests for remote payload decoding."""

    def test_full_payload(self):
        record = decode_record(
            {
                "id": "rec1",
                "createdTime": "2024-05-01T10:00:00.000Z",
                "fields": {"Job Name": "Oak St", "Amount": 40, "Checked": True},
            }
        )
        assert record.id == "rec1"
        assert record.created_at == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)
        assert record.value("Job Name") == "Oak St"
        assert "Checked" not in record.fields

    def test_missing_fields_is_empty(self):
        record = decode_record({"id": "rec1"})
        assert len(record.fields) == 0

    def test_missing_id_raises(self):
        with pytest.raises(RecordDecodeError):
            decode_record({"fields": {}})

    def test_malformed_fields_raise(self):
        with pytest.raises(RecordDecodeError):
            decode_record({"id": "rec1", "fields": ["not", "a", "dict"]})

    def test_non_object_raises(self):
        with pytest.raises(RecordDecodeError):
            decode_record("rec1")

    def test_to_dict(self):
        payload = {"id": "rec1", "createdTime": "2024-05-01T10:00:00.000Z", "fields": {"Amount": 40}}
        assert decode_record(payload).to_dict() == payload
