"""Unit tests for the event registry and JSON serializer."""

from __future__ import annotations

import dataclasses
import enum
import json
from datetime import UTC, datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID, uuid4

import pytest

from niespro_eventstore.application.event_sourcing import (
    EventMetadata,
    EventRegistry,
    EventSerializer,
    StoredEvent,
)
from niespro_eventstore.kernel.ddd import DomainEvent
from niespro_eventstore.kernel.errors import SerializationError
from niespro_eventstore.observability.correlation import CorrelationContext, RequestContext


# ---------------------------------------------------------------------------
# Shared test fixtures – Order events
# ---------------------------------------------------------------------------


class Channel(enum.Enum):
    ONLINE = "online"
    STORE = "store"


@dataclasses.dataclass(frozen=True)
class Address:
    street: str
    city: str


@dataclasses.dataclass(frozen=True)
class OrderCreated(DomainEvent):
    order_id: UUID
    customer_email: str
    total: Decimal
    currency: str = "EUR"


@dataclasses.dataclass(frozen=True)
class OrderShipped(DomainEvent):
    order_id: UUID
    address: Address
    channel: Channel
    eta: timedelta
    tracking_numbers: list[str] = dataclasses.field(default_factory=list)
    note: str | None = None


@dataclasses.dataclass(frozen=True)
class Unregistered(DomainEvent):
    value: int


@dataclasses.dataclass(frozen=True)
class Opaque(DomainEvent):
    blob: object


@dataclasses.dataclass(frozen=True)
class PaymentLinked(DomainEvent):
    ref: UUID | str


@dataclasses.dataclass(frozen=True)
class RangeSet(DomainEvent):
    bounds: tuple[int, str]


@dataclasses.dataclass(frozen=True)
class LinesAdded(DomainEvent):
    quantities: tuple[int, ...]
    prices: dict[str, Decimal] = dataclasses.field(default_factory=dict)


@dataclasses.dataclass(frozen=True)
class Refund:
    amount: Decimal | int


@dataclasses.dataclass(frozen=True)
class RefundIssued(DomainEvent):
    refunds: list[Refund]


@dataclasses.dataclass(frozen=True)
class CouponApplied(DomainEvent):
    coupon: CouponCode  # noqa: F821



OCCURRED = datetime(2025, 3, 1, 10, 30, tzinfo=UTC)


def _registry() -> EventRegistry:
    return EventRegistry([OrderCreated, OrderShipped, Opaque])


def _created(**overrides: object) -> OrderCreated:
    values: dict[str, object] = {
        "order_id": UUID("11111111-1111-1111-1111-111111111111"),
        "customer_email": "john.doe@example.com",
        "total": Decimal("100.50"),
        "occurred_at": OCCURRED,
    }
    values.update(overrides)
    return OrderCreated(**values)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# EventRegistry
# ---------------------------------------------------------------------------


class TestEventRegistry:
    def test_registers_under_class_name(self) -> None:
        registry = _registry()
        assert registry.tag_for(OrderCreated) == "OrderCreated"
        assert registry.class_for("OrderCreated") is OrderCreated

    def test_decorator_with_custom_name(self) -> None:
        registry = EventRegistry()

        @registry.register(name="order.cancelled.v1")
        @dataclasses.dataclass(frozen=True)
        class OrderCancelled(DomainEvent):
            reason: str

        assert "order.cancelled.v1" in registry
        assert registry.tag_for(OrderCancelled) == "order.cancelled.v1"

    def test_plain_decorator_returns_class(self) -> None:
        registry = EventRegistry()
        assert registry.register(OrderCreated) is OrderCreated
        assert len(registry) == 1

    def test_duplicate_tag_for_other_class_rejected(self) -> None:
        registry = EventRegistry([OrderCreated])
        with pytest.raises(ValueError, match="already registered"):
            registry.register(OrderShipped, name="OrderCreated")

    def test_re_registering_same_class_is_noop(self) -> None:
        registry = EventRegistry([OrderCreated])
        registry.register(OrderCreated)
        assert registry.tags == frozenset({"OrderCreated"})

    def test_non_event_rejected(self) -> None:
        with pytest.raises(TypeError):
            EventRegistry().register(Address)  # type: ignore[arg-type]

    def test_unknown_tag_raises_serialization_error(self) -> None:
        with pytest.raises(SerializationError) as exc_info:
            _registry().class_for("Nope")
        assert exc_info.value.payload_type == "Nope"

    def test_unregistered_class_raises_serialization_error(self) -> None:
        with pytest.raises(SerializationError):
            _registry().tag_for(Unregistered)

    def test_ambiguous_union_field_rejected(self) -> None:
        with pytest.raises(TypeError, match="PaymentLinked.ref"):
            EventRegistry().register(PaymentLinked)

    def test_fixed_length_tuple_field_rejected(self) -> None:
        with pytest.raises(TypeError, match="RangeSet.bounds"):
            EventRegistry().register(RangeSet)

    def test_ambiguous_union_in_nested_dataclass_rejected(self) -> None:
        with pytest.raises(TypeError, match="Refund.amount"):
            EventRegistry().register(RefundIssued)

    def test_unresolvable_annotation_rejected_at_registration(self) -> None:
        registry = EventRegistry()
        with pytest.raises(TypeError, match="CouponApplied"):
            registry.register(CouponApplied)
        assert "CouponApplied" not in registry

    def test_variadic_tuple_and_str_keyed_dict_accepted(self) -> None:
        registry = EventRegistry([LinesAdded])
        serializer = EventSerializer(registry)
        event = LinesAdded(quantities=(1, 2, 3), prices={"sku-1": Decimal("9.99")})
        restored = serializer.deserialize(*serializer.serialize(event))
        assert restored == event
        assert isinstance(restored.quantities, tuple)  # type: ignore[attr-defined]



# ---------------------------------------------------------------------------
# EventSerializer – payloads
# ---------------------------------------------------------------------------


class TestEventSerializerPayload:
    def test_serialize_returns_tag_and_json(self) -> None:
        tag, data = EventSerializer(_registry()).serialize(_created())
        assert tag == "OrderCreated"
        body = json.loads(data)
        assert body["customer_email"] == "john.doe@example.com"
        assert body["total"] == "100.50"
        assert body["order_id"] == "11111111-1111-1111-1111-111111111111"

    def test_payload_includes_event_identity(self) -> None:
        event = _created()
        _, data = EventSerializer(_registry()).serialize(event)
        body = json.loads(data)
        assert body["event_id"] == str(event.event_id)
        assert body["occurred_at"] == OCCURRED.isoformat()

    def test_roundtrip_restores_concrete_type_and_values(self) -> None:
        serializer = EventSerializer(_registry())
        event = _created()
        restored = serializer.deserialize(*serializer.serialize(event))
        assert isinstance(restored, OrderCreated)
        assert restored == event

    def test_roundtrip_nested_values(self) -> None:
        serializer = EventSerializer(_registry())
        event = OrderShipped(
            order_id=uuid4(),
            address=Address("1 Main St", "Lyon"),
            channel=Channel.STORE,
            eta=timedelta(hours=36),
            tracking_numbers=["A1", "B2"],
        )
        restored = serializer.deserialize(*serializer.serialize(event))
        assert restored == event
        assert isinstance(restored.address, Address)  # type: ignore[attr-defined]
        assert restored.channel is Channel.STORE  # type: ignore[attr-defined]

    def test_occurred_at_normalised_to_utc(self) -> None:
        serializer = EventSerializer(_registry())
        local = datetime(2025, 3, 1, 12, 30, tzinfo=timezone(timedelta(hours=2)))
        restored = serializer.deserialize(*serializer.serialize(_created(occurred_at=local)))
        assert restored.occurred_at == OCCURRED
        assert restored.occurred_at.tzinfo == UTC

    def test_unencodable_field_raises(self) -> None:
        with pytest.raises(SerializationError) as exc_info:
            EventSerializer(_registry()).serialize(Opaque(blob=object()))
        assert exc_info.value.payload_type == "Opaque"

    def test_unregistered_event_raises(self) -> None:
        with pytest.raises(SerializationError):
            EventSerializer(_registry()).serialize(Unregistered(value=1))

    def test_malformed_json_raises(self) -> None:
        with pytest.raises(SerializationError):
            EventSerializer(_registry()).deserialize("OrderCreated", "{not json")

    def test_missing_required_field_raises(self) -> None:
        with pytest.raises(SerializationError):
            EventSerializer(_registry()).deserialize("OrderCreated", '{"customer_email": "x"}')

    def test_unknown_tag_on_deserialize_raises(self) -> None:
        with pytest.raises(SerializationError):
            EventSerializer(_registry()).deserialize("Ghost", "{}")

    def test_unresolvable_annotation_on_deserialize_raises(self) -> None:
        registry = _registry()
        registry._by_tag["CouponApplied"] = CouponApplied  # bypasses the registration check
        with pytest.raises(SerializationError) as exc_info:
            EventSerializer(registry).deserialize("CouponApplied", '{"coupon": "SPRING"}')
        assert isinstance(exc_info.value.cause, NameError)



# ---------------------------------------------------------------------------
# EventSerializer – records and metadata
# ---------------------------------------------------------------------------


class TestEventSerializerRecords:
    def setup_method(self) -> None:
        CorrelationContext.clear()

    def teardown_method(self) -> None:
        CorrelationContext.clear()

    def test_to_stored_fills_record(self) -> None:
        serializer = EventSerializer(_registry())
        agg_id = uuid4()
        event = _created()
        record = serializer.to_stored(agg_id, "Order", event, 4)
        assert record.aggregate_id == agg_id
        assert record.aggregate_type == "Order"
        assert record.event_type == "OrderCreated"
        assert record.version == 4
        assert record.timestamp == OCCURRED
        assert record.causation_id == str(event.event_id)
        assert isinstance(record.id, UUID)

    def test_metadata_contents(self) -> None:
        serializer = EventSerializer(_registry(), schema_version="2.1")
        event = _created()
        meta = serializer.to_stored(uuid4(), "Order", event, 1).event_metadata()
        assert meta is not None
        assert meta.causation_id == str(event.event_id)
        assert meta.timestamp == OCCURRED
        assert meta.event_version == "2.1"
        assert UUID(meta.correlation_id)

    def test_fresh_correlation_id_without_context(self) -> None:
        serializer = EventSerializer(_registry())
        a = serializer.to_stored(uuid4(), "Order", _created(), 1)
        b = serializer.to_stored(uuid4(), "Order", _created(), 1)
        assert a.correlation_id != b.correlation_id

    def test_ambient_correlation_id_used(self) -> None:
        CorrelationContext.set(RequestContext(correlation_id="req-42"))
        record = EventSerializer(_registry()).to_stored(uuid4(), "Order", _created(), 1)
        assert record.correlation_id == "req-42"
        assert record.event_metadata().correlation_id == "req-42"  # type: ignore[union-attr]

    def test_from_stored(self) -> None:
        serializer = EventSerializer(_registry())
        event = _created()
        record = serializer.to_stored(uuid4(), "Order", event, 1)
        assert serializer.from_stored(record) == event


class TestEventMetadata:
    def test_json_roundtrip(self) -> None:
        meta = EventMetadata("c", "e", OCCURRED, "1.0")
        assert EventMetadata.from_json(meta.to_json()) == meta

    def test_malformed_metadata_raises(self) -> None:
        with pytest.raises(SerializationError):
            EventMetadata.from_json('{"correlation_id": "c"}')

    def test_record_without_metadata(self) -> None:
        record = StoredEvent(
            aggregate_id=uuid4(),
            aggregate_type="Order",
            event_type="OrderCreated",
            event_data="{}",
            version=1,
            timestamp=OCCURRED,
        )
        assert record.event_metadata() is None

    def test_stored_event_is_frozen(self) -> None:
        record = EventSerializer(_registry()).to_stored(uuid4(), "Order", _created(), 1)
        with pytest.raises(dataclasses.FrozenInstanceError):
            record.version = 2  # type: ignore[misc]
