"""Application event sourcing – event registry and JSON serializer.

Every persisted event carries an explicit type tag.  The tag is resolved
through an :class:`EventRegistry` that lists every known event kind, so a
payload can only ever be decoded into a class that was registered for it;
an unknown tag is a :class:`SerializationError`, never a guess.

Example::

    registry = EventRegistry()

    @registry.register
    @dataclasses.dataclass(frozen=True)
    class OrderCreated(DomainEvent):
        order_id: UUID
        total: Decimal

    serializer = EventSerializer(registry)
"""

from __future__ import annotations

import dataclasses
import enum
import json
import types
import typing
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Iterable, TypeVar
from uuid import UUID, uuid4

from niespro_eventstore.application.event_sourcing.stored_event import EventMetadata, StoredEvent
from niespro_eventstore.kernel.ddd.domain_event import DomainEvent
from niespro_eventstore.kernel.errors import SerializationError
from niespro_eventstore.kernel.time import ensure_utc
from niespro_eventstore.observability.correlation import CorrelationContext

E = TypeVar("E", bound=type[DomainEvent])


class EventRegistry:
    """Closed mapping between event type tags and event classes."""

    def __init__(self, events: Iterable[type[DomainEvent]] = ()) -> None:
        self._by_tag: dict[str, type[DomainEvent]] = {}
        self._by_class: dict[type[DomainEvent], str] = {}
        for event_class in events:
            self.register(event_class)

    @typing.overload
    def register(self, event_class: E, *, name: str | None = None) -> E: ...

    @typing.overload
    def register(self, event_class: None = None, *, name: str | None = None) -> Callable[[E], E]: ...

    def register(self, event_class: Any = None, *, name: str | None = None) -> Any:
        """Register *event_class* under *name* (default: the class name).

        Usable as a plain call or as a decorator, with or without ``name``.
        """
        if event_class is None:
            return lambda cls: self.register(cls, name=name)

        if not (isinstance(event_class, type) and issubclass(event_class, DomainEvent)):
            raise TypeError(f"{event_class!r} is not a DomainEvent subclass")
        if not dataclasses.is_dataclass(event_class):
            raise TypeError(f"{event_class.__name__} must be a dataclass")
        _check_fields(event_class, set())

        tag = name or event_class.__name__
        existing = self._by_tag.get(tag)
        if existing is not None and existing is not event_class:
            raise ValueError(f"Event type tag '{tag}' already registered for {existing.__qualname__}")
        self._by_tag[tag] = event_class
        self._by_class[event_class] = tag
        return event_class

    def tag_for(self, event_class: type[DomainEvent]) -> str:
        try:
            return self._by_class[event_class]
        except KeyError:
            raise SerializationError(
                f"Event class {event_class.__qualname__} is not registered",
                payload_type=event_class.__qualname__,
            ) from None

    def class_for(self, tag: str) -> type[DomainEvent]:
        try:
            return self._by_tag[tag]
        except KeyError:
            raise SerializationError(f"Unknown event type '{tag}'", payload_type=tag) from None

    def __contains__(self, tag: object) -> bool:
        return tag in self._by_tag

    def __len__(self) -> int:
        return len(self._by_tag)

    @property
    def tags(self) -> frozenset[str]:
        return frozenset(self._by_tag)


# ---------------------------------------------------------------------------
# JSON encoding helpers
# ---------------------------------------------------------------------------


def _field_values(obj: Any) -> dict[str, Any]:
    return {f.name: getattr(obj, f.name) for f in dataclasses.fields(obj)}


def _encode(value: Any) -> Any:
    if isinstance(value, datetime):
        return ensure_utc(value).isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, timedelta):
        return value.total_seconds()
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _field_values(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serialisable")


def _decode(value: Any, hint: Any) -> Any:  # noqa: PLR0911, PLR0912
    if value is None or hint is Any:
        return value

    origin = typing.get_origin(hint)
    if origin in (typing.Union, types.UnionType):
        args = [a for a in typing.get_args(hint) if a is not type(None)]
        if len(args) == 1:
            return _decode(value, args[0])
        raise TypeError(f"Cannot decode into ambiguous union {hint}")
    if origin in (list, tuple, set, frozenset):
        args = typing.get_args(hint)
        item_hint = args[0] if args else Any
        items = [_decode(v, item_hint) for v in value]
        return items if origin is list else origin(items)
    if origin is dict:
        _, value_hint = typing.get_args(hint) or (Any, Any)
        return {k: _decode(v, value_hint) for k, v in value.items()}

    if hint is datetime:
        return ensure_utc(datetime.fromisoformat(value))
    if hint is date:
        return date.fromisoformat(value)
    if hint is UUID:
        return UUID(value)
    if hint is Decimal:
        return Decimal(value)
    if hint is timedelta:
        return timedelta(seconds=value)
    if isinstance(hint, type) and issubclass(hint, enum.Enum):
        return hint(value)
    if isinstance(hint, type) and dataclasses.is_dataclass(hint):
        return _build(hint, value)
    return value


def _build(cls: type, data: dict[str, Any]) -> Any:
    hints = typing.get_type_hints(cls)
    kwargs = {
        f.name: _decode(data[f.name], hints.get(f.name, Any))
        for f in dataclasses.fields(cls)
        if f.init and f.name in data
    }
    return cls(**kwargs)


# ---------------------------------------------------------------------------
# Registration-time field checks
# ---------------------------------------------------------------------------


def _type_hints(cls: type) -> dict[str, Any]:
    try:
        return typing.get_type_hints(cls)
    except NameError as exc:
        raise TypeError(f"{cls.__qualname__} has an unresolvable annotation: {exc}") from exc


def _check_fields(cls: type, seen: set[type]) -> None:
    """Reject field annotations whose JSON form cannot be decoded unambiguously."""
    seen.add(cls)
    hints = _type_hints(cls)
    for f in dataclasses.fields(cls):
        _check_hint(hints.get(f.name, Any), f"{cls.__qualname__}.{f.name}", seen)


def _check_hint(hint: Any, where: str, seen: set[type]) -> None:  # noqa: PLR0912
    if hint is Any:
        return
    origin = typing.get_origin(hint)
    args = typing.get_args(hint)

    if origin in (typing.Union, types.UnionType):
        members = [a for a in args if a is not type(None)]
        if len(members) != 1:
            raise TypeError(f"{where}: union {hint} cannot be told apart once encoded")
        _check_hint(members[0], where, seen)
    elif origin is tuple:
        if len(args) == 2 and args[1] is Ellipsis:
            _check_hint(args[0], where, seen)
        elif args:
            raise TypeError(f"{where}: fixed-length {hint} is not supported, use tuple[X, ...]")
    elif origin in (list, set, frozenset):
        if args:
            _check_hint(args[0], where, seen)
    elif origin is dict:
        if args:
            if args[0] is not str:
                raise TypeError(f"{where}: {hint} keys must be str")
            _check_hint(args[1], where, seen)
    elif isinstance(hint, type) and dataclasses.is_dataclass(hint) and hint not in seen:
        _check_fields(hint, seen)


# ---------------------------------------------------------------------------
# EventSerializer
# ---------------------------------------------------------------------------


class EventSerializer:
    """Converts domain events to :class:`StoredEvent` records and back.

    Parameters
    ----------
    registry:
        The closed set of event kinds this serializer accepts.
    schema_version:
        Written to every record's metadata as ``event_version``.
    """

    def __init__(self, registry: EventRegistry, schema_version: str = "1.0") -> None:
        self._registry = registry
        self._schema_version = schema_version

    @property
    def registry(self) -> EventRegistry:
        return self._registry

    @property
    def schema_version(self) -> str:
        return self._schema_version

    def serialize(self, event: DomainEvent) -> tuple[str, str]:
        """Return ``(event_type, event_data)`` for *event*."""
        tag = self._registry.tag_for(type(event))
        try:
            data = json.dumps(_field_values(event), default=_encode, sort_keys=True)
        except (TypeError, ValueError) as exc:
            raise SerializationError(
                f"Cannot serialise event {tag}", payload_type=tag, cause=exc
            ) from exc
        return tag, data

    def deserialize(self, event_type: str, event_data: str) -> DomainEvent:
        cls = self._registry.class_for(event_type)
        try:
            return _build(cls, json.loads(event_data))
        except (TypeError, ValueError, KeyError, AttributeError, NameError, InvalidOperation) as exc:
            raise SerializationError(
                f"Cannot deserialise event {event_type}", payload_type=event_type, cause=exc
            ) from exc

    def build_metadata(self, event: DomainEvent, correlation_id: str | None = None) -> EventMetadata:
        """Metadata for *event*: causation is the event's own id."""
        return EventMetadata(
            correlation_id=correlation_id or CorrelationContext.current_correlation_id() or str(uuid4()),
            causation_id=str(event.event_id),
            timestamp=ensure_utc(event.occurred_at),
            event_version=self._schema_version,
        )

    def to_stored(
        self,
        aggregate_id: UUID,
        aggregate_type: str,
        event: DomainEvent,
        version: int,
    ) -> StoredEvent:
        event_type, event_data = self.serialize(event)
        metadata = self.build_metadata(event)
        return StoredEvent(
            aggregate_id=aggregate_id,
            aggregate_type=aggregate_type,
            event_type=event_type,
            event_data=event_data,
            version=version,
            timestamp=metadata.timestamp,
            metadata=metadata.to_json(),
            correlation_id=metadata.correlation_id,
            causation_id=metadata.causation_id,
        )

    def from_stored(self, record: StoredEvent) -> DomainEvent:
        return self.deserialize(record.event_type, record.event_data)


__all__ = ["EventRegistry", "EventSerializer"]
