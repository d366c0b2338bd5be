"""
Audit trail service.

Append-only, hash-chained audit log. Each entry hashes its own content
together with the previous entry's hash; the first entry links to "0".
Entries are written in their own short transaction so an audit write never
joins (or blocks) a payout transaction.
"""

import hashlib
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.audit_log import AuditLog
from app.models.enums import AuditSeverity
from app.repositories.audit_log_repository import AuditLogRepository
from app.services.events import EventBus, PayoutEvent
from app.utils.datetime_utils import ensure_utc, utc_now


GENESIS_HASH = "0"

# Attempts when another writer extends the chain first
APPEND_RETRIES = 3


def normalize_payload(payload: dict[str, Any] | None) -> dict[str, Any] | None:
    """Make payload JSON-safe (Decimals, dates and enums become strings)."""
    if payload is None:
        return None
    return json.loads(json.dumps(payload, default=str))


def compute_entry_hash(
    entity: str,
    entity_id: str | None,
    action: str,
    actor: str,
    actor_role: str,
    severity: str,
    created_at: datetime,
    payload: dict[str, Any] | None,
    previous_hash: str,
) -> str:
    """
    Compute SHA-256 of an audit entry.

    Args:
        entity: Entity type
        entity_id: Entity identifier
        action: Action name
        actor: Who performed the action
        actor_role: Role of the actor
        severity: Entry severity
        created_at: Entry timestamp
        payload: JSON-safe payload
        previous_hash: Hash of the preceding entry

    Returns:
        Hex digest
    """
    data = {
        "entity": entity,
        "entity_id": entity_id,
        "action": action,
        "actor": actor,
        "actor_role": actor_role,
        "severity": severity,
        "timestamp": ensure_utc(created_at).isoformat(),
        "payload": payload,
        "previous_hash": previous_hash,
    }
    encoded = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


@dataclass
class ChainVerification:
    """Result of an audit chain verification."""

    is_valid: bool
    total_entries: int
    first_invalid_id: int | None = None
    reason: str | None = None


class AuditTrail:
    """Hash-chained audit trail writer and verifier."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession] | None = None) -> None:
        """
        Initialize audit trail.

        Args:
            session_maker: Factory for the audit trail's own sessions
        """
        if session_maker is None:
            from app.config.database import async_session_maker

            session_maker = async_session_maker
        self.session_maker = session_maker
        self.logger = logger.bind(service="AuditTrail")

    async def record(
        self,
        entity: str,
        action: str,
        entity_id: str | int | None = None,
        actor: str = "system",
        actor_role: str = "system",
        severity: AuditSeverity | str = AuditSeverity.INFO,
        payload: dict[str, Any] | None = None,
    ) -> AuditLog:
        """
        Append an entry to the chain.

        Args:
            entity: Entity type (e.g. "commission", "scheduled_job")
            action: Action name
            entity_id: Entity identifier
            actor: Who performed the action
            actor_role: Role of the actor
            severity: info / warning / critical
            payload: Extra data

        Returns:
            Stored entry

        Raises:
            IntegrityError: Chain contention persisted for every retry
        """
        entity_id = str(entity_id) if entity_id is not None else None
        severity = AuditSeverity(severity).value
        payload = normalize_payload(payload)

        attempt = 0
        while True:
            attempt += 1
            try:
                return await self._append(
                    entity, action, entity_id, actor, actor_role, severity, payload
                )
            except IntegrityError as e:
                if attempt >= APPEND_RETRIES:
                    self.logger.error(
                        f"Audit append for {entity}:{entity_id} {action} failed "
                        f"after {attempt} attempts: {e}"
                    )
                    raise
                self.logger.warning(
                    f"Audit chain tail moved, retrying append "
                    f"({attempt}/{APPEND_RETRIES})"
                )

    async def _append(
        self,
        entity: str,
        action: str,
        entity_id: str | None,
        actor: str,
        actor_role: str,
        severity: str,
        payload: dict[str, Any] | None,
    ) -> AuditLog:
        async with self.session_maker() as session:
            async with session.begin():
                tail = await AuditLogRepository(session).get_tail()
                previous_hash = tail.entry_hash if tail else GENESIS_HASH
                created_at = utc_now()
                entry = AuditLog(
                    entity=entity,
                    entity_id=entity_id,
                    action=action,
                    actor=actor,
                    actor_role=actor_role,
                    severity=severity,
                    payload=payload,
                    created_at=created_at,
                    previous_hash=previous_hash,
                    entry_hash=compute_entry_hash(
                        entity, entity_id, action, actor, actor_role,
                        severity, created_at, payload, previous_hash,
                    ),
                )
                session.add(entry)
                await session.flush()
            return entry

    async def verify_chain(self) -> ChainVerification:
        """
        Recompute the whole chain.

        Returns:
            ChainVerification with the first divergent entry, if any
        """
        expected_previous = GENESIS_HASH
        total = 0

        async with self.session_maker() as session:
            async for entry in AuditLogRepository(session).iter_chain():
                total += 1
                if entry.previous_hash != expected_previous:
                    return self._invalid(total, entry, "previous_hash does not link")

                recomputed = compute_entry_hash(
                    entry.entity,
                    entry.entity_id,
                    entry.action,
                    entry.actor,
                    entry.actor_role,
                    entry.severity,
                    entry.created_at,
                    entry.payload,
                    entry.previous_hash,
                )
                if recomputed != entry.entry_hash:
                    return self._invalid(total, entry, "entry_hash mismatch")

                expected_previous = entry.entry_hash

        self.logger.info(f"Audit chain verified: {total} entries")
        return ChainVerification(is_valid=True, total_entries=total)

    def _invalid(self, total: int, entry: AuditLog, reason: str) -> ChainVerification:
        self.logger.critical(f"Audit chain broken at entry {entry.id}: {reason}")
        return ChainVerification(
            is_valid=False,
            total_entries=total,
            first_invalid_id=entry.id,
            reason=reason,
        )

    async def handle_event(self, event: PayoutEvent) -> None:
        """Record a payout event."""
        await self.record(
            entity=event.entity,
            entity_id=event.entity_id,
            action=event.name,
            severity=event.severity,
            payload=event.payload,
        )

    def subscribe(self, bus: EventBus) -> None:
        """Record every event published on bus."""
        bus.subscribe(EventBus.WILDCARD, self.handle_event)
