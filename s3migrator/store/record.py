"""Records stored as JSON objects in S3."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from s3migrator.core.status import MIGRATION_KEY, MigrationStatus, parse_status

if TYPE_CHECKING:
    from s3migrator.store.service import RecordStore


class Record:
    """A single stored entity of some type.

    A record has no id until its first successful save. Field changes are
    tracked so triggers can tell which fields a write touches.

    Attributes:
        type_name: The entity type this record belongs to
        id: Store-assigned identifier, None before the first save
    """

    def __init__(
        self,
        type_name: str,
        data: dict[str, Any] | None = None,
        *,
        id: str | None = None,
        store: "RecordStore | None" = None,
    ):
        self.type_name = type_name
        self.id = id
        self._data: dict[str, Any] = dict(data or {})
        # Fields of a brand-new record are all pending; loaded ones are clean.
        self._dirty: set[str] = set(self._data) if id is None else set()
        self._existed = id is not None
        self._store = store

    def __repr__(self) -> str:
        return f"<Record {self.type_name} id={self.id!r}>"

    def get(self, field: str, default: Any = None) -> Any:
        return self._data.get(field, default)

    def set(self, field: str, value: Any) -> None:
        self._data[field] = value
        self._dirty.add(field)

    def unset(self, field: str) -> None:
        if field in self._data:
            del self._data[field]
            self._dirty.add(field)

    def has(self, field: str) -> bool:
        return field in self._data

    def dirty_fields(self) -> set[str]:
        """Fields changed since the record was loaded or last saved."""
        return set(self._dirty)

    def field_state(self, field: str) -> tuple[bool, Any, bool]:
        """Snapshot a field as (present, value, dirty) for restore_field."""
        return field in self._data, self._data.get(field), field in self._dirty

    def restore_field(self, field: str, state: tuple[bool, Any, bool]) -> None:
        """Put a field back exactly as field_state saw it."""
        present, value, dirty = state
        if present:
            self._data[field] = value
        else:
            self._data.pop(field, None)
        if dirty:
            self._dirty.add(field)
        else:
            self._dirty.discard(field)

    def is_new(self) -> bool:
        """True until the record has been persisted once."""
        return self.id is None

    def existed(self) -> bool:
        """Whether the record already had an id before its latest save.

        False right after the save that created it, True after any later
        save and for records loaded from the store.
        """
        return self._existed

    @property
    def migration_status(self) -> MigrationStatus | None:
        return parse_status(self._data.get(MIGRATION_KEY))

    def to_dict(self) -> dict[str, Any]:
        """Return the stored representation, including the id."""
        result = dict(self._data)
        if self.id is not None:
            result["id"] = self.id
        return result

    @classmethod
    def from_dict(
        cls,
        type_name: str,
        data: dict[str, Any],
        store: "RecordStore | None" = None,
    ) -> "Record":
        payload = dict(data)
        record_id = payload.pop("id", None)
        return cls(type_name, payload, id=record_id, store=store)

    def replace_with(self, other: "Record") -> None:
        """Take over another record's fields, e.g. a trigger replacement."""
        if other is self:
            return
        changed = set(self._data) ^ set(other._data)
        changed |= {k for k, v in other._data.items() if self._data.get(k) != v}
        self._data = dict(other._data)
        self._dirty |= changed | other._dirty

    def mark_saved(self, existed: bool) -> None:
        """Called by the store once a save has been committed."""
        self._existed = existed
        self._dirty.clear()

    def bind(self, store: "RecordStore") -> None:
        if self._store is None:
            self._store = store

    async def save(self) -> "Record":
        """Persist the record through its store, running write triggers."""
        return await self._require_store().save(self)

    async def delete(self) -> None:
        """Delete the record through its store, running delete triggers."""
        await self._require_store().delete(self)

    def _require_store(self) -> "RecordStore":
        if self._store is None:
            raise RuntimeError(
                f"{self!r} is not bound to a RecordStore; use RecordStore.record()"
            )
        return self._store
