"""Unit tests for EventSourcedAggregate, EventSourcedRepository and dispatch."""

from __future__ import annotations

import asyncio
import dataclasses
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

import pytest

from niespro_eventstore.application.dispatch import EventHandler, InProcessEventBus
from niespro_eventstore.application.dispatch import bus as bus_module
from niespro_eventstore.application.event_sourcing import (
    EventRegistry,
    EventSerializer,
    EventSourcedAggregate,
    EventSourcedRepository,
    InMemoryEventStore,
)
from niespro_eventstore.kernel.ddd import DomainEvent
from niespro_eventstore.kernel.errors import ConcurrencyConflictError
from niespro_eventstore.kernel.types import Ok


# ---------------------------------------------------------------------------
# Shared test fixtures – Order aggregate
# ---------------------------------------------------------------------------


@dataclasses.dataclass(frozen=True)
class OrderCreated(DomainEvent):
    order_id: UUID
    total: Decimal


@dataclasses.dataclass(frozen=True)
class OrderConfirmed(DomainEvent):
    order_id: UUID


@dataclasses.dataclass(frozen=True)
class OrderCancelled(DomainEvent):
    order_id: UUID
    reason: str = ""


class Order(EventSourcedAggregate):
    def __init__(self, id: UUID) -> None:  # noqa: A002
        super().__init__(id)
        self.status = "NEW"
        self.total = Decimal("0")

    @classmethod
    def create(cls, order_id: UUID, total: Decimal) -> "Order":
        order = cls(order_id)
        order._raise_event(OrderCreated(order_id=order_id, total=total))
        return order

    def confirm(self) -> None:
        self._raise_event(OrderConfirmed(order_id=self.id))

    def cancel(self, reason: str) -> None:
        self._raise_event(OrderCancelled(order_id=self.id, reason=reason))

    def apply(self, event: DomainEvent) -> None:
        if isinstance(event, OrderCreated):
            self.status = "PENDING"
            self.total = event.total
        elif isinstance(event, OrderConfirmed):
            self.status = "CONFIRMED"
        elif isinstance(event, OrderCancelled):
            self.status = "CANCELLED"


class OrderRepository(EventSourcedRepository[Order]):
    def _create_empty(self, aggregate_id: UUID) -> Order:
        return Order(aggregate_id)


class Recorder(EventHandler[Any]):
    def __init__(self) -> None:
        self.seen: list[DomainEvent] = []

    async def handle(self, event: Any) -> None:
        self.seen.append(event)


class Exploding(EventHandler[Any]):
    async def handle(self, event: Any) -> None:
        raise RuntimeError("subscriber down")


class RecordingLog:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str, dict[str, Any]]] = []

    def exception(self, event: str, **kw: Any) -> None:
        self.calls.append(("exception", event, kw))

    def error(self, event: str, **kw: Any) -> None:
        self.calls.append(("error", event, kw))


def _store() -> InMemoryEventStore:

    registry = EventRegistry([OrderCreated, OrderConfirmed, OrderCancelled])
    return InMemoryEventStore(EventSerializer(registry))


# ---------------------------------------------------------------------------
# EventSourcedAggregate
# ---------------------------------------------------------------------------


class TestEventSourcedAggregate:
    def test_raise_event_applies_and_records(self) -> None:
        order = Order.create(uuid4(), Decimal("12.50"))
        assert order.status == "PENDING"
        assert order.version == 1
        assert order.persisted_version == 0
        assert len(order.pending_events) == 1

    def test_replay_adopts_version(self) -> None:
        agg = uuid4()
        order = Order(agg)
        order.replay(OrderCreated(order_id=agg, total=Decimal("1")), 1)
        order.replay(OrderConfirmed(order_id=agg), 2)
        assert order.status == "CONFIRMED"
        assert order.version == 2
        assert order.pending_events == ()

    def test_aggregate_type_defaults_to_class_name(self) -> None:
        assert Order.aggregate_type() == "Order"

    def test_pull_events_clears(self) -> None:
        order = Order.create(uuid4(), Decimal("1"))
        assert len(order.pull_events()) == 1
        assert order.pending_events == ()
        assert order.persisted_version == order.version


# ---------------------------------------------------------------------------
# EventSourcedRepository
# ---------------------------------------------------------------------------


class TestEventSourcedRepository:
    def test_save_then_load_rebuilds_state(self) -> None:
        store = _store()
        repo = OrderRepository(store)
        agg = uuid4()

        async def run() -> Order | None:
            order = Order.create(agg, Decimal("99.90"))
            order.confirm()
            (await repo.save(order)).unwrap()
            return await repo.load(agg)

        loaded = asyncio.run(run())
        assert loaded is not None
        assert loaded.status == "CONFIRMED"
        assert loaded.total == Decimal("99.90")
        assert loaded.version == 2
        assert loaded.pending_events == ()

    def test_load_missing_returns_none(self) -> None:
        assert asyncio.run(OrderRepository(_store()).load(uuid4())) is None

    def test_save_without_changes_is_noop(self) -> None:
        store = _store()
        order = Order(uuid4())
        assert asyncio.run(OrderRepository(store).save(order)) == Ok([])
        assert store.all_events() == []

    def test_save_uses_aggregate_type(self) -> None:
        store = _store()
        asyncio.run(OrderRepository(store).save(Order.create(uuid4(), Decimal("1"))))
        assert store.all_events()[0].aggregate_type == "Order"

    def test_stale_copy_gets_conflict_and_keeps_pending(self) -> None:
        store = _store()
        repo = OrderRepository(store)
        agg = uuid4()

        async def run():  # type: ignore[no-untyped-def]
            await repo.save(Order.create(agg, Decimal("5")))
            first = await repo.load(agg)
            second = await repo.load(agg)
            assert first is not None and second is not None
            first.confirm()
            second.cancel("changed mind")
            ok = await repo.save(first)
            conflict = await repo.save(second)
            return ok, conflict, second

        ok, conflict, second = asyncio.run(run())
        assert ok.is_ok()
        assert conflict.is_err()
        assert isinstance(conflict.error, ConcurrencyConflictError)
        assert (conflict.error.expected, conflict.error.actual) == (1, 2)
        assert len(second.pending_events) == 1

    def test_publishes_after_append(self) -> None:
        store = _store()
        bus = InProcessEventBus()
        recorder = Recorder()
        bus.register(OrderCreated, recorder)
        bus.register(OrderConfirmed, recorder)
        order = Order.create(uuid4(), Decimal("3"))
        order.confirm()

        asyncio.run(OrderRepository(store, bus=bus).save(order))
        assert [type(e) for e in recorder.seen] == [OrderCreated, OrderConfirmed]

    def test_conflict_publishes_nothing(self) -> None:
        store = _store()
        bus = InProcessEventBus()
        recorder = Recorder()
        bus.register(OrderCreated, recorder)
        agg = uuid4()

        async def run() -> None:
            await store.append(agg, "Order", [OrderConfirmed(order_id=agg)], 0)
            await OrderRepository(store, bus=bus).save(Order.create(agg, Decimal("1")))

        asyncio.run(run())
        assert recorder.seen == []

    def test_subscriber_failure_does_not_undo_append(self) -> None:
        store = _store()
        bus = InProcessEventBus()
        recorder = Recorder()
        bus.register(OrderCreated, Exploding())
        bus.register(OrderCreated, recorder)
        agg = uuid4()

        result = asyncio.run(OrderRepository(store, bus=bus).save(Order.create(agg, Decimal("1"))))
        assert result.is_ok()
        assert asyncio.run(store.current_version(agg)) == 1
        assert len(recorder.seen) == 1


# ---------------------------------------------------------------------------
# InProcessEventBus
# ---------------------------------------------------------------------------


class TestInProcessEventBus:
    def test_publish_without_handlers(self) -> None:
        asyncio.run(InProcessEventBus().publish(OrderConfirmed(order_id=uuid4())))

    def test_dispatch_by_exact_type(self) -> None:
        bus = InProcessEventBus()
        recorder = Recorder()
        bus.register(OrderCancelled, recorder)
        asyncio.run(bus.publish(OrderConfirmed(order_id=uuid4())))
        assert recorder.seen == []

    def test_handler_failure_logged_at_exception_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        recording = RecordingLog()
        monkeypatch.setattr(bus_module, "log", recording)
        bus = InProcessEventBus()
        recorder = Recorder()
        bus.register(OrderConfirmed, Exploding())
        bus.register(OrderConfirmed, recorder)
        event = OrderConfirmed(order_id=uuid4())

        asyncio.run(bus.publish(event))

        assert recorder.seen == [event]
        assert len(recording.calls) == 1
        level, name, fields = recording.calls[0]
        assert (level, name) == ("exception", "event_bus.handler_failed")
        assert fields["handler"] == "Exploding"
        assert fields["event_id"] == str(event.event_id)
        assert isinstance(fields["exc_info"], RuntimeError)
