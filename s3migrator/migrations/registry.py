"""Per-type registry of user-supplied migration handlers."""

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Callable, Iterator

from s3migrator.core.exceptions import DuplicateHandlerError

Handler = Callable[..., Any]


class EventKind(str, Enum):
    """Kinds of handler a type can register."""

    BEFORE_WRITE = "before_write"
    AFTER_WRITE = "after_write"
    BEFORE_DELETE = "before_delete"
    AFTER_DELETE = "after_delete"
    MIGRATE_ON_WRITE = "migrate_on_write"
    MIGRATE_ON_DELETE = "migrate_on_delete"


@dataclass
class HandlerSet:
    """The handlers registered for one entity type.

    Attributes:
        before_write: Runs before a write; may return a replacement record
        after_write: Runs after a write is committed
        before_delete: Runs before a delete; failing it aborts the delete
        after_delete: Runs after a delete is committed
        migrate_on_write: Migrates a record; runs on writes and in the import job
        migrate_on_delete: Migrates the deletion of a record
    """

    before_write: Handler | None = None
    after_write: Handler | None = None
    before_delete: Handler | None = None
    after_delete: Handler | None = None
    migrate_on_write: Handler | None = None
    migrate_on_delete: Handler | None = None

    def get(self, kind: EventKind) -> Handler | None:
        return getattr(self, EventKind(kind).value)

    def registered_kinds(self) -> list[EventKind]:
        return [kind for kind in EventKind if self.get(kind) is not None]

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))


def type_name(entity_type: Any) -> str:
    """Return the canonical name of an entity type.

    Strings are used as-is. Classes may set ``__migration_type__`` to pin
    their stored name; otherwise the class name is used.

    Raises:
        TypeError: If the value is neither a string nor a class
    """
    if isinstance(entity_type, str):
        if not entity_type:
            raise ValueError("Entity type name must not be empty")
        return entity_type
    if isinstance(entity_type, type):
        return getattr(entity_type, "__migration_type__", entity_type.__name__)
    raise TypeError(
        f"Entity type must be a name or a class, got {type(entity_type).__name__}"
    )


class TriggerRegistry:
    """Write-once map from entity type to its HandlerSet.

    Registration happens once at startup; a second handler of the same kind
    for the same type raises DuplicateHandlerError.

    Example:
        >>> registry = TriggerRegistry()
        >>> registry.register("Widget", EventKind.MIGRATE_ON_WRITE, migrate_widget)
        >>> registry.lookup("Widget").migrate_on_write is migrate_widget
        True
    """

    def __init__(self):
        self._handlers: dict[str, HandlerSet] = {}

    def register(self, entity_type: Any, kind: EventKind, handler: Handler) -> None:
        """Register a handler.

        Args:
            entity_type: Type name or class
            kind: The kind of handler
            handler: Sync or async callable

        Raises:
            DuplicateHandlerError: If this type already has a handler of this kind
            TypeError: If the handler is not callable
        """
        kind = EventKind(kind)
        if not callable(handler):
            raise TypeError(f"{kind.value} handler must be callable, got {handler!r}")

        key = type_name(entity_type)
        handlers = self._handlers.get(key) or HandlerSet()
        if handlers.get(kind) is not None:
            raise DuplicateHandlerError(key, kind.value)

        setattr(handlers, kind.value, handler)
        self._handlers[key] = handlers

    def lookup(self, entity_type: Any) -> HandlerSet:
        """Return the handlers for a type; empty for unknown types."""
        return self._handlers.get(type_name(entity_type)) or HandlerSet()

    def types(self) -> list[str]:
        return list(self._handlers)

    def items(self) -> Iterator[tuple[str, HandlerSet]]:
        return iter(self._handlers.items())

    def __contains__(self, entity_type: Any) -> bool:
        return type_name(entity_type) in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)
