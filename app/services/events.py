"""
Event bus.

Structured events delivered to audit and alerting collaborators. Handlers
run in-process; a failing handler is logged and does not affect the
emitter or other handlers.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from app.models.enums import AuditSeverity


class PayoutEvents:
    """Standard payout events."""

    COMMISSION_PAID = "commission.paid"
    COMMISSION_REJECTED = "commission.rejected"
    LEDGER_REJECTED = "ledger.rejected"
    BINARY_PAIRED = "binary.paired"
    JOB_COMPLETED = "job.completed"
    JOB_FAILURE_THRESHOLD = "job.failure_threshold"


@dataclass
class PayoutEvent:
    """Event emitted by the payout core."""

    name: str
    entity: str
    entity_id: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)
    severity: AuditSeverity = AuditSeverity.INFO


class EventBus:
    """In-process publish/subscribe bus keyed by event name."""

    WILDCARD = "*"

    def __init__(self) -> None:
        self._handlers: dict[str, list[Callable]] = {}
        self.logger = logger.bind(service="EventBus")

    def subscribe(self, event_name: str, handler: Callable) -> None:
        """
        Subscribe handler to event.

        Args:
            event_name: Event name or "*" for every event
            handler: Sync or async callable taking a PayoutEvent
        """
        self._handlers.setdefault(event_name, []).append(handler)
        self.logger.debug(
            f"Handler {getattr(handler, '__name__', handler)} "
            f"subscribed to {event_name}"
        )

    def unsubscribe(self, event_name: str, handler: Callable) -> None:
        """Unsubscribe handler from event."""
        handlers = self._handlers.get(event_name, [])
        if handler in handlers:
            handlers.remove(handler)

    async def emit(self, event: PayoutEvent) -> None:
        """
        Deliver event to its subscribers.

        Args:
            event: Event to deliver
        """
        handlers = self._handlers.get(event.name, []) + self._handlers.get(
            self.WILDCARD, []
        )
        if not handlers:
            return

        for handler in handlers:
            try:
                result = handler(event)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                self.logger.exception(
                    f"Error in handler {getattr(handler, '__name__', handler)} "
                    f"for event {event.name}: {e}"
                )

    async def emit_all(self, events: list[PayoutEvent]) -> None:
        """Deliver events in order."""
        for event in events:
            await self.emit(event)

    def clear(self) -> None:
        """Remove all handlers."""
        self._handlers.clear()


# Global event bus instance
event_bus = EventBus()
