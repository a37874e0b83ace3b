"""In-memory duplicate lookup built once per import run."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Literal

from workouts.services.fingerprint import FuzzyKey, fuzzy_key_for

DuplicateReason = Literal["health_uuid", "fuzzy"]


class DuplicateIndex:
    """Health identities and fuzzy keys of everything already stored.

    The index only grows during a run: every accepted candidate is inserted
    before the next one is checked, so duplicates inside a single import
    batch are caught as well.
    """

    def __init__(self) -> None:
        self._health_uuids: set[str] = set()
        self._fuzzy_keys: set[FuzzyKey] = set()

    @classmethod
    def build(cls, existing: Iterable[Any]) -> DuplicateIndex:
        index = cls()
        for record in existing:
            index.insert(record)
        return index

    def reason(self, candidate: Any) -> DuplicateReason | None:
        health_uuid = getattr(candidate, "health_uuid", None)
        if health_uuid and health_uuid in self._health_uuids:
            return "health_uuid"
        if fuzzy_key_for(candidate) in self._fuzzy_keys:
            return "fuzzy"
        return None

    def contains(self, candidate: Any) -> bool:
        return self.reason(candidate) is not None

    def insert(self, record: Any) -> None:
        health_uuid = getattr(record, "health_uuid", None)
        if health_uuid:
            self._health_uuids.add(health_uuid)
        self._fuzzy_keys.add(fuzzy_key_for(record))

    def __len__(self) -> int:
        return len(self._fuzzy_keys)


__all__ = ["DuplicateIndex", "DuplicateReason"]
