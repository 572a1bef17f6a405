"""Query builder for records of one type."""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterable

from s3migrator.store.record import Record

if TYPE_CHECKING:
    from s3migrator.store.service import RecordStore


class FilterOperator(str, Enum):
    """Supported filter operators."""

    EQUAL_TO = "eq"
    CONTAINED_IN = "in"
    NOT_CONTAINED_IN = "nin"


def same_value(a: Any, b: Any) -> bool:
    """Compare two JSON values; ``true``, ``1`` and ``1.0`` are all different."""
    for kind in (bool, float):
        if isinstance(a, kind) or isinstance(b, kind):
            return isinstance(a, kind) and isinstance(b, kind) and a == b
    return a == b


@dataclass
class Filter:
    """A single field condition."""

    field: str
    operator: FilterOperator
    value: Any

    def matches(self, data: dict) -> bool:
        actual = data.get(self.field)
        if self.operator == FilterOperator.EQUAL_TO:
            return same_value(actual, self.value)
        contained = any(same_value(actual, v) for v in self.value)
        if self.operator == FilterOperator.CONTAINED_IN:
            return contained
        # A missing field is never contained in the list
        return not contained


class RecordQuery:
    """Fluent query over records of one type.

    Records are returned in object-key order. There is no sort: the import
    sweep re-issues the same filtered query after each batch, and progress
    is carried entirely by each record's status field.

    Example:
        >>> pending = await (
        ...     store.query("Widget")
        ...     .not_contained_in("migrationStatus", [1, 2, 3])
        ...     .limit(1000)
        ...     .find()
        ... )
    """

    def __init__(self, store: "RecordStore", type_name: str):
        self._store = store
        self.type_name = type_name
        self.filters: list[Filter] = []
        self.limit_value: int | None = None

    def equal_to(self, field: str, value: Any) -> "RecordQuery":
        self.filters.append(Filter(field, FilterOperator.EQUAL_TO, value))
        return self

    def contained_in(self, field: str, values: Iterable[Any]) -> "RecordQuery":
        self.filters.append(
            Filter(field, FilterOperator.CONTAINED_IN, list(values))
        )
        return self

    def not_contained_in(self, field: str, values: Iterable[Any]) -> "RecordQuery":
        self.filters.append(
            Filter(field, FilterOperator.NOT_CONTAINED_IN, list(values))
        )
        return self

    def limit(self, n: int) -> "RecordQuery":
        if n < 0:
            raise ValueError("limit must be non-negative")
        self.limit_value = n
        return self

    def matches(self, data: dict) -> bool:
        return all(f.matches(data) for f in self.filters)

    async def find(self) -> list[Record]:
        """Run the query and return matching records."""
        return await self._store.find(self)

    async def count(self) -> int:
        """Count matching records, ignoring the limit."""
        return await self._store.count(self)
