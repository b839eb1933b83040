"""Declarative change detection between a stored event and a fresh candidate.

A policy is an ordered tuple of ``FieldComparison`` entries. Each entry names a
field present on both ``CatalogEvent`` and ``RawCandidate`` and the comparator
used to decide whether the two values are the same.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

Comparator = Callable[[Any, Any], bool]


def exact(stored: Any, fresh: Any) -> bool:
    return stored == fresh


def unordered(stored: Any, fresh: Any) -> bool:
    return set(stored or []) == set(fresh or [])


def whitespace_insensitive(stored: Any, fresh: Any) -> bool:
    if isinstance(stored, str) and isinstance(fresh, str):
        return " ".join(stored.split()) == " ".join(fresh.split())
    return stored == fresh


@dataclass(frozen=True, slots=True)
class FieldComparison:
    name: str
    comparator: Comparator = exact

    def same(self, stored_row: Any, candidate: Any) -> bool:
        return self.comparator(getattr(stored_row, self.name), getattr(candidate, self.name))


CONTENT_FIELDS: tuple[FieldComparison, ...] = (
    FieldComparison("title"),
    FieldComparison("start_at"),
    FieldComparison("venue_name"),
    FieldComparison("address"),
    FieldComparison("description"),
    FieldComparison("category"),
    FieldComparison("tags", unordered),
    FieldComparison("image_url"),
)

SUBSTANTIVE_FIELDS: tuple[FieldComparison, ...] = (
    FieldComparison("title", whitespace_insensitive),
    FieldComparison("start_at"),
    FieldComparison("venue_name", whitespace_insensitive),
)

# Fields copied from a candidate onto the stored row when a change is detected.
WRITABLE_FIELDS: tuple[str, ...] = tuple(item.name for item in CONTENT_FIELDS) + ("city",)


@dataclass(frozen=True, slots=True)
class ChangePolicy:
    name: str
    fields: tuple[FieldComparison, ...]

    @classmethod
    def any_content(cls) -> "ChangePolicy":
        return cls(name="any", fields=CONTENT_FIELDS)

    @classmethod
    def substantive(cls) -> "ChangePolicy":
        return cls(name="substantive", fields=SUBSTANTIVE_FIELDS)

    @classmethod
    def from_name(cls, name: str) -> "ChangePolicy":
        if name == "substantive":
            return cls.substantive()
        if name == "any":
            return cls.any_content()
        raise ValueError(f"unknown change policy: {name!r}")

    def changed_fields(self, stored_row: Any, candidate: Any) -> list[str]:
        return [item.name for item in self.fields if not item.same(stored_row, candidate)]

    def has_changes(self, stored_row: Any, candidate: Any) -> bool:
        return any(not item.same(stored_row, candidate) for item in self.fields)
