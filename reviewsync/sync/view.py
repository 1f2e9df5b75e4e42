# reviewsync View Helpers
# Read-time search, filtering and sorting of working set snapshots

from collections.abc import Iterable, Mapping, Sequence
from typing import Optional

from reviewsync.sync.names import LinkedNames
from reviewsync.sync.record import AttachmentValue, LinkValue, NumberValue, Record


def record_text(record: Record, name: str, names: Optional[LinkedNames] = None) -> str:
    """
    Get a lowercase searchable rendering of a field.

    Linked identities are shown by display name when names are known.
    """
    value = record.get(name)
    if value is None:
        return ""
    if isinstance(value, LinkValue):
        labels = names.resolve(name, value.ids) if names is not None else list(value.ids)
        return ", ".join(labels).lower()
    if isinstance(value, AttachmentValue):
        return ", ".join(value.urls).lower()
    return str(value.raw).lower()


def matches_search(record: Record, term: str, fields: Iterable[str], names: Optional[LinkedNames] = None) -> bool:
    """Check if any of the fields contains the search term (case-insensitive)."""
    needle = term.strip().lower()
    if not needle:
        return True
    return any(needle in record_text(record, name, names) for name in fields)


def matches_filters(record: Record, filters: Mapping[str, str], names: Optional[LinkedNames] = None) -> bool:
    """
    Check exact field filters.

    Text and numbers compare by their string form. Linked fields match if
    they contain the wanted identity, or a linked record whose display name
    equals the wanted value (case-insensitive).
    """
    for name, wanted in filters.items():
        value = record.get(name)
        if value is None:
            return False
        if isinstance(value, LinkValue):
            if wanted in value.ids:
                continue
            if names is None:
                return False
            labels = {label.casefold() for label in names.resolve(name, value.ids)}
            if wanted.strip().casefold() not in labels:
                return False
        elif str(value.raw) != wanted:
            return False
    return True


def _sort_key(record: Record, name: str, names: Optional[LinkedNames]) -> tuple:
    value = record.get(name)
    if isinstance(value, NumberValue):
        return (0, value.value, "")
    return (1, 0, record_text(record, name, names))


def select_records(
    records: Iterable[Record],
    *,
    search: str | None = None,
    search_fields: Sequence[str] = (),
    filters: Mapping[str, str] | None = None,
    sort_by: str | None = None,
    descending: bool = False,
    names: Optional[LinkedNames] = None,
) -> list[Record]:
    """
    Select and order records for display.

    Args:
        records: Snapshot to select from.
        search: Optional case-insensitive search term.
        search_fields: Fields searched by the term.
        filters: Exact field filters (field name to value).
        sort_by: Field to sort on; blanks always sort last.
        descending: Reverse the order of non-blank values.
        names: Display names for linked fields.

    Returns:
        Matching records in display order.
    """
    selected = list(records)

    if filters:
        selected = [r for r in selected if matches_filters(r, filters, names)]

    if search:
        selected = [r for r in selected if matches_search(r, search, search_fields, names)]

    if sort_by:
        present = [r for r in selected if not r.is_blank(sort_by)]
        blank = [r for r in selected if r.is_blank(sort_by)]
        present.sort(key=lambda r: _sort_key(r, sort_by, names), reverse=descending)
        selected = present + blank

    return selected
