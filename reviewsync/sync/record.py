# reviewsync Records
# Typed field values and immutable record snapshots decoded from remote payloads

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Union

from reviewsync.sync.errors import RecordDecodeError
from reviewsync.utils.clock import format_timestamp, parse_timestamp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextValue:
    """A free-text field value."""

    value: str

    @property
    def raw(self) -> str:
        return self.value

    @property
    def is_blank(self) -> bool:
        return not self.value.strip()


@dataclass(frozen=True)
class NumberValue:
    """A numeric field value (amounts, counters, ID numbers)."""

    value: int | float

    @property
    def raw(self) -> int | float:
        return self.value

    @property
    def is_blank(self) -> bool:
        return False


@dataclass(frozen=True)
class LinkValue:
    """An ordered list of identities of linked records."""

    ids: tuple[str, ...] = ()

    @property
    def raw(self) -> list[str]:
        return list(self.ids)

    @property
    def is_blank(self) -> bool:
        return len(self.ids) == 0


@dataclass(frozen=True)
class AttachmentValue:
    """An ordered list of externally addressable attachment URLs."""

    urls: tuple[str, ...] = ()

    @property
    def raw(self) -> list[dict[str, str]]:
        return [{"url": url} for url in self.urls]

    @property
    def is_blank(self) -> bool:
        return len(self.urls) == 0


FieldValue = Union[TextValue, NumberValue, LinkValue, AttachmentValue]

FIELD_VALUE_TYPES = (TextValue, NumberValue, LinkValue, AttachmentValue)


def decode_value(raw: Any) -> FieldValue | None:
    """
    Convert a raw JSON value into a typed field value.

    Args:
        raw: Value as found in the remote payload.

    Returns:
        The typed value, or None if the shape is not supported.
    """
    if isinstance(raw, FIELD_VALUE_TYPES):
        return raw
    if isinstance(raw, str):
        return TextValue(raw)
    # bool is an int subclass; checkboxes are not part of the value model
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return NumberValue(raw)
    if isinstance(raw, (list, tuple)):
        if all(isinstance(item, str) for item in raw):
            return LinkValue(tuple(raw))
        if all(isinstance(item, dict) and isinstance(item.get("url"), str) for item in raw):
            return AttachmentValue(tuple(item["url"] for item in raw))
    return None


def encode_value(value: FieldValue | None) -> Any:
    """Convert a typed field value back into its JSON form (None clears the field)."""
    if value is None:
        return None
    return value.raw


FieldDelta = Mapping[str, Union[FieldValue, None]]


def coerce_delta(raw: Mapping[str, Any]) -> dict[str, FieldValue | None]:
    """
    Build a typed field delta from raw values.

    None is kept as an explicit "clear this field" marker.

    Raises:
        ValueError: If a value has an unsupported shape.
    """
    delta: dict[str, FieldValue | None] = {}
    for name, raw_value in raw.items():
        if raw_value is None:
            delta[name] = None
            continue
        value = decode_value(raw_value)
        if value is None:
            raise ValueError(f"Unsupported value for field '{name}': {raw_value!r}")
        delta[name] = value
    return delta


def encode_delta(delta: FieldDelta) -> dict[str, Any]:
    """Encode a typed delta as a JSON-ready fields payload."""
    return {name: encode_value(value) for name, value in delta.items()}


@dataclass(frozen=True)
class Record:
    """
    Immutable snapshot of a remote record.

    A newer snapshot replaces an older one as a whole; fields are never
    mutated in place.
    """

    id: str
    fields: Mapping[str, FieldValue] = field(default_factory=dict)
    created_at: datetime | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def get(self, name: str) -> FieldValue | None:
        """Get a typed field value, or None if the field is absent."""
        return self.fields.get(name)

    def value(self, name: str, default: Any = None) -> Any:
        """Get the raw (JSON) form of a field value."""
        field_value = self.fields.get(name)
        if field_value is None:
            return default
        return field_value.raw

    def is_blank(self, name: str) -> bool:
        """Check if a field is absent or blank."""
        field_value = self.fields.get(name)
        return field_value is None or field_value.is_blank

    def matches(self, delta: FieldDelta) -> bool:
        """
        Check if applying the delta would leave this record unchanged.

        A None value in the delta matches an absent or blank field.
        """
        for name, new_value in delta.items():
            current = self.fields.get(name)
            if new_value is None or new_value.is_blank:
                if current is not None and not current.is_blank:
                    return False
            elif current != new_value:
                return False
        return True

    def with_fields(self, delta: FieldDelta) -> "Record":
        """Return a new record with the delta applied (None removes a field)."""
        fields = dict(self.fields)
        for name, value in delta.items():
            if value is None:
                fields.pop(name, None)
            else:
                fields[name] = value
        return Record(id=self.id, fields=fields, created_at=self.created_at)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the remote JSON shape."""
        data: dict[str, Any] = {
            "id": self.id,
            "fields": {name: value.raw for name, value in self.fields.items()},
        }
        if self.created_at is not None:
            data["createdTime"] = format_timestamp(self.created_at)
        return data


def decode_record(payload: Any) -> Record:
    """
    Decode a raw remote payload into a Record.

    Unsupported field shapes are dropped rather than failing the record.

    Args:
        payload: Dict with "id", "fields" and optionally "createdTime".

    Returns:
        Decoded Record.

    Raises:
        RecordDecodeError: If the payload has no identity or malformed fields.
    """
    if not isinstance(payload, dict):
        raise RecordDecodeError(f"Record payload is not an object: {payload!r}")

    record_id = payload.get("id")
    if not isinstance(record_id, str) or not record_id:
        raise RecordDecodeError(f"Record payload has no id: {payload!r}")

    raw_fields = payload.get("fields") or {}
    if not isinstance(raw_fields, dict):
        raise RecordDecodeError(f"Record {record_id} has malformed fields")

    fields: dict[str, FieldValue] = {}
    for name, raw_value in raw_fields.items():
        value = decode_value(raw_value)
        if value is None:
            logger.debug("Dropping unsupported value for %s.%s", record_id, name)
            continue
        fields[name] = value

    created_at = None
    created_raw = payload.get("createdTime")
    if isinstance(created_raw, str):
        try:
            created_at = parse_timestamp(created_raw)
        except ValueError:
            logger.debug("Ignoring malformed createdTime on %s: %r", record_id, created_raw)

    return Record(id=record_id, fields=fields, created_at=created_at)
