# reviewsync Linked Record Names
# Display names for the identities held in linked record fields

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from reviewsync.config.schema import LinkedTableConfig


@dataclass(frozen=True)
class LinkedTable:
    """
    A table whose records are referenced by a linked field.

    Attributes:
        field: Field on the reviewed table holding the links.
        table_id: Table the links point into.
        name_fields: Fields of the linked table tried in order for a display name.
    """

    field: str
    table_id: str
    name_fields: tuple[str, ...] = ("Name",)

    @classmethod
    def from_config(cls, config: LinkedTableConfig) -> LinkedTable:
        return cls(field=config.field, table_id=config.table_id, name_fields=tuple(config.name_fields))


def pick_display_name(identity: str, fields: Mapping[str, Any], name_fields: Sequence[str]) -> str:
    """
    Choose a human readable label for a linked record.

    The preferred name fields are tried in order; after that the first
    non-blank text field, then the first text item of a list field. A record
    with nothing readable keeps its identity as label.
    """
    for name in name_fields:
        value = fields.get(name)
        if isinstance(value, str) and value.strip():
            return value.strip()

    for value in fields.values():
        if isinstance(value, str) and value.strip():
            return value.strip()

    for value in fields.values():
        if isinstance(value, list) and value and isinstance(value[0], str) and value[0].strip():
            return value[0].strip()

    return identity


class LinkedNames:
    """
    Identity to display name lookup, per linked field.

    Unknown identities resolve to themselves, so a missing or failed table
    load degrades to showing record IDs.
    """

    def __init__(self, names: Mapping[str, Mapping[str, str]] | None = None):
        self._names: dict[str, dict[str, str]] = {field: dict(table) for field, table in (names or {}).items()}

    def update(self, field: str, names: Mapping[str, str]) -> None:
        """Add or replace the names known for a linked field."""
        self._names.setdefault(field, {}).update(names)

    def resolve(self, field: str, ids: Iterable[str]) -> list[str]:
        """Map identities of a linked field to display names, keeping order."""
        table = self._names.get(field, {})
        return [table.get(identity, identity) for identity in ids]

    def __len__(self) -> int:
        return sum(len(table) for table in self._names.values())
