"""
Fixtures for integration tests.

Every test gets its own SQLite database file with the full schema. The
connection hooks hand transaction control to SQLAlchemy so SAVEPOINTs work
with aiosqlite, and WAL lets readers and the single writer overlap.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.models import Base, Investment, Participant, ScheduledJob, Wallet
from app.models.enums import InvestmentStatus, LedgerEntryType, WalletName
from app.repositories.system_setting_repository import SystemSettingRepository
from app.services.ledger_service import LedgerService
from app.services.tree_placement_service import TreePlacementService
from app.utils.datetime_utils import utc_now


@pytest.fixture
async def engine(tmp_path):
    """Async engine on a fresh SQLite file."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'payouts.db'}")

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    """Session factory used by services under test."""
    return async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


class PayoutData:
    """Builders and readers for integration test data."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self.session_maker = session_maker

    async def register(self, code: str, sponsor_code: str | None = None) -> Participant:
        """Register a participant through TreePlacementService."""
        async with self.session_maker() as session:
            async with session.begin():
                return await TreePlacementService(session).register_participant(
                    code, sponsor_code
                )

    async def register_many(self, *pairs: tuple[str, str | None]) -> dict[str, Participant]:
        return {code: await self.register(code, sponsor) for code, sponsor in pairs}

    async def invest(
        self,
        participant_id: int,
        amount: str | Decimal = "1000",
        daily_rate: str | Decimal = "0.01",
        roi_cap_percent: str | Decimal = "200",
        total_paid: str | Decimal = "0",
        next_payout_at=None,
        **fields,
    ) -> Investment:
        """Write an active investment that is due now unless told otherwise."""
        amount = Decimal(amount)
        roi_cap_percent = Decimal(roi_cap_percent)
        async with self.session_maker() as session:
            async with session.begin():
                investment = Investment(
                    participant_id=participant_id,
                    amount=amount,
                    daily_rate=Decimal(daily_rate),
                    roi_cap_percent=roi_cap_percent,
                    total_cap=amount * roi_cap_percent / 100,
                    total_paid=Decimal(total_paid),
                    next_payout_at=next_payout_at or utc_now() - timedelta(minutes=1),
                    status=InvestmentStatus.ACTIVE.value,
                    **fields,
                )
                session.add(investment)
                await session.flush()
            return investment

    async def fund(self, participant_id: int, amount: str | Decimal, ref: str) -> None:
        """Credit the main wallet through the ledger."""
        async with self.session_maker() as session:
            async with session.begin():
                await LedgerService(session).credit(
                    participant_id,
                    WalletName.MAIN,
                    Decimal(amount),
                    reason="Test deposit",
                    source_ref=ref,
                    tx_type=LedgerEntryType.DEPOSIT,
                )

    async def set_setting(self, key: str, value) -> None:
        async with self.session_maker() as session:
            async with session.begin():
                await SystemSettingRepository(session).set_value(key, value)

    async def set_status(self, participant_id: int, status: str) -> None:
        async with self.session_maker() as session:
            async with session.begin():
                participant = await session.get(Participant, participant_id)
                participant.status = status

    async def set_counters(self, participant_id: int, **values) -> None:
        """Overwrite binary counters of a participant."""
        async with self.session_maker() as session:
            async with session.begin():
                participant = await session.get(Participant, participant_id)
                for name, value in values.items():
                    setattr(participant, name, Decimal(value))

    async def participant(self, participant_id: int) -> Participant:
        async with self.session_maker() as session:
            return await session.get(Participant, participant_id)

    async def investment(self, investment_id: int) -> Investment:
        async with self.session_maker() as session:
            return await session.get(Investment, investment_id)

    async def wallet(self, participant_id: int) -> Wallet:
        async with self.session_maker() as session:
            result = await session.execute(
                select(Wallet).where(Wallet.participant_id == participant_id)
            )
            return result.scalar_one()

    async def job(self, job_name: str) -> ScheduledJob:
        async with self.session_maker() as session:
            result = await session.execute(
                select(ScheduledJob).where(ScheduledJob.job_name == job_name)
            )
            return result.scalar_one()

    async def all(self, model, **filters) -> list:
        async with self.session_maker() as session:
            stmt = select(model).filter_by(**filters).order_by(model.id)
            result = await session.execute(stmt)
            return list(result.scalars().all())


@pytest.fixture
def data(session_maker):
    """Test data builders bound to the test database."""
    return PayoutData(session_maker)
