"""Tests for the in-process event bus."""

from unittest.mock import AsyncMock, MagicMock

from app.models.enums import AuditSeverity
from app.services.events import EventBus, PayoutEvent, PayoutEvents


def make_event(name=PayoutEvents.COMMISSION_PAID):
    return PayoutEvent(name=name, entity="commission", entity_id="1")


class TestEventBus:
    async def test_delivers_to_named_and_wildcard_handlers(self):
        bus = EventBus()
        named = MagicMock()
        wildcard = AsyncMock()
        bus.subscribe(PayoutEvents.COMMISSION_PAID, named)
        bus.subscribe(EventBus.WILDCARD, wildcard)

        event = make_event()
        await bus.emit(event)

        named.assert_called_once_with(event)
        wildcard.assert_awaited_once_with(event)

    async def test_other_events_are_not_delivered(self):
        bus = EventBus()
        handler = MagicMock()
        bus.subscribe(PayoutEvents.JOB_COMPLETED, handler)

        await bus.emit(make_event())

        handler.assert_not_called()

    async def test_failing_handler_does_not_stop_others(self):
        bus = EventBus()
        failing = AsyncMock(side_effect=RuntimeError("audit store down"))
        healthy = MagicMock()
        bus.subscribe(EventBus.WILDCARD, failing)
        bus.subscribe(EventBus.WILDCARD, healthy)

        await bus.emit(make_event())

        healthy.assert_called_once()

    async def test_emit_all_keeps_order(self):
        bus = EventBus()
        received = []
        bus.subscribe(EventBus.WILDCARD, lambda event: received.append(event.name))

        await bus.emit_all(
            [make_event(PayoutEvents.BINARY_PAIRED), make_event()]
        )

        assert received == [PayoutEvents.BINARY_PAIRED, PayoutEvents.COMMISSION_PAID]

    async def test_unsubscribe(self):
        bus = EventBus()
        handler = MagicMock()
        bus.subscribe(PayoutEvents.COMMISSION_PAID, handler)
        bus.unsubscribe(PayoutEvents.COMMISSION_PAID, handler)

        await bus.emit(make_event())

        handler.assert_not_called()

    def test_default_severity_is_info(self):
        assert make_event().severity == AuditSeverity.INFO
