"""Integration tests for the daily binary pairing job."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import update

from app.models import BinaryPairingCycle, Commission, LedgerEntry, Participant
from app.models.enums import BinaryPosition
from app.repositories.participant_repository import ParticipantRepository
from app.services.commission import IncomeReportService, match_pairs
from app.services.distribution import BINARY_JOB, DistributionScheduler
from app.services.events import PayoutEvents


NOW = datetime(2026, 6, 15, 23, 59, tzinfo=UTC)


class Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return Clock(NOW)


@pytest.fixture
async def scheduler(session_maker, event_recorder, clock):
    bus, _ = event_recorder
    scheduler = DistributionScheduler(
        session_maker, events=bus, runner_id="runner-a", concurrency=1, clock=clock
    )
    await scheduler.ensure_jobs()
    return scheduler


@pytest.fixture
async def sponsor(data):
    people = await data.register_many(("S", None), ("a", "S"), ("b", "S"))
    return people["S"]


class TestBinaryJob:
    async def test_unequal_legs_pair_and_carry(self, data, scheduler, sponsor, event_recorder):
        """Scenario E: 2500 vs 1800 at pair value 1000."""
        _, received = event_recorder
        await data.set_counters(sponsor.id, left_business="2500", right_business="1800")

        report = await scheduler.run_job(BINARY_JOB)

        assert report.status == "success"
        assert report.processed == 1
        assert report.total_amount == Decimal("100")

        participant = await data.participant(sponsor.id)
        assert participant.left_business == Decimal("0")
        assert participant.right_business == Decimal("0")
        assert participant.carry_left == Decimal("1500")
        assert participant.carry_right == Decimal("0")
        assert participant.total_pairs == 1

        [cycle] = await data.all(BinaryPairingCycle, participant_id=sponsor.id)
        assert cycle.cycle_date == NOW.date()
        assert cycle.pairs_matched == 1
        assert cycle.left_volume == Decimal("2500")
        assert cycle.right_volume == Decimal("1800")
        assert cycle.final_commission == Decimal("100")

        [commission] = await data.all(Commission, recipient_id=sponsor.id)
        assert commission.type == "binary"
        assert commission.level == 0
        assert commission.status == "paid"
        assert commission.id == cycle.commission_id

        wallet = await data.wallet(sponsor.id)
        assert wallet.binary_balance == Decimal("100")
        assert len(await data.all(LedgerEntry, participant_id=sponsor.id)) == 1

        names = [event.name for event in received]
        assert PayoutEvents.BINARY_PAIRED in names
        assert PayoutEvents.COMMISSION_PAID in names

    async def test_same_day_rerun_pays_nothing(self, data, scheduler, sponsor):
        await data.set_counters(sponsor.id, left_business="2500", right_business="1800")
        await scheduler.run_job(BINARY_JOB)

        report = await scheduler.run_now(BINARY_JOB)

        assert report.processed == 0
        assert report.skipped == 1
        assert (await data.wallet(sponsor.id)).binary_balance == Decimal("100")
        assert len(await data.all(BinaryPairingCycle)) == 1

    async def test_carry_pairs_with_next_day_volume(self, data, scheduler, sponsor, clock):
        await data.set_counters(sponsor.id, left_business="2500", right_business="1800")
        await scheduler.run_job(BINARY_JOB)

        clock.now = NOW + timedelta(days=1)
        await data.set_counters(sponsor.id, right_business="1200")
        report = await scheduler.run_job(BINARY_JOB)

        assert report.processed == 1
        participant = await data.participant(sponsor.id)
        assert participant.carry_left == Decimal("500")
        assert participant.carry_right == Decimal("0")
        assert participant.total_pairs == 2
        assert (await data.wallet(sponsor.id)).binary_balance == Decimal("200")

    async def test_no_pairs_leaves_business_untouched(self, data, scheduler, sponsor):
        await data.set_counters(sponsor.id, left_business="900", right_business="5000")

        report = await scheduler.run_job(BINARY_JOB)

        assert report.status == "success"
        assert report.skipped == 1
        participant = await data.participant(sponsor.id)
        assert participant.left_business == Decimal("900")
        assert participant.right_business == Decimal("5000")
        assert participant.carry_left == participant.carry_right == Decimal("0")
        assert await data.all(BinaryPairingCycle) == []
        assert await data.all(Commission) == []

    async def test_daily_cap_from_settings(self, data, scheduler, sponsor):
        await data.set_setting("binary.daily_cap", "150")
        await data.set_counters(sponsor.id, left_business="5000", right_business="5000")

        report = await scheduler.run_job(BINARY_JOB)

        assert report.total_amount == Decimal("150")
        [cycle] = await data.all(BinaryPairingCycle)
        assert cycle.gross_commission == Decimal("500")
        assert cycle.capping_applied is True
        assert (await data.wallet(sponsor.id)).binary_balance == Decimal("150")

    async def test_disabled_binary_is_empty_success(self, data, scheduler, sponsor):
        await data.set_setting("binary.enabled", False)
        await data.set_counters(sponsor.id, left_business="2500", right_business="1800")

        report = await scheduler.run_job(BINARY_JOB)

        assert report.status == "success"
        assert report.processed == report.skipped == report.failed == 0
        assert (await data.participant(sponsor.id)).left_business == Decimal("2500")

    async def test_inactive_participants_are_not_paired(self, data, scheduler, sponsor):
        await data.set_counters(sponsor.id, left_business="2500", right_business="1800")
        await data.set_status(sponsor.id, "blocked")

        report = await scheduler.run_job(BINARY_JOB)

        assert report.processed == report.skipped == 0
        assert await data.all(BinaryPairingCycle) == []

    async def test_each_participant_paired_independently(self, data, scheduler, sponsor):
        other = await data.register("other")
        await data.set_counters(sponsor.id, left_business="2000", right_business="3000")
        await data.set_counters(other.id, left_business="1000", right_business="1000")

        report = await scheduler.run_job(BINARY_JOB)

        assert report.processed == 2
        assert report.total_amount == Decimal("300")
        assert (await data.participant(sponsor.id)).carry_right == Decimal("1000")
        assert (await data.participant(other.id)).carry_left == Decimal("0")


def pair(snapshot):
    return match_pairs(
        snapshot.left_business, snapshot.right_business,
        snapshot.carry_left, snapshot.carry_right,
        pair_value=Decimal("1000"),
        commission_per_pair=Decimal("100"),
        daily_cap=Decimal("50000"),
    )


class TestPairingSnapshot:
    async def test_volume_arriving_after_snapshot_is_kept(self, data, session_maker, sponsor):
        await data.set_counters(sponsor.id, left_business="2500", right_business="1000")

        async with session_maker() as session:
            async with session.begin():
                repo = ParticipantRepository(session)
                snapshot = await repo.get_by_id(sponsor.id, for_update=True)
                result = pair(snapshot)
                await repo.add_business(sponsor.id, BinaryPosition.LEFT, Decimal("300"))

                applied = await repo.apply_pairing(
                    snapshot, result.carry_out_left, result.carry_out_right, result.pairs
                )

        assert applied is True
        participant = await data.participant(sponsor.id)
        assert participant.left_business == Decimal("300")
        assert participant.right_business == Decimal("0")
        assert participant.carry_left == Decimal("1500")
        assert participant.total_pairs == 1

    async def test_changed_carry_is_not_overwritten(self, data, session_maker, sponsor):
        await data.set_counters(
            sponsor.id, left_business="2500", right_business="1000", carry_left="200"
        )

        async with session_maker() as session:
            async with session.begin():
                repo = ParticipantRepository(session)
                snapshot = await repo.get_by_id(sponsor.id, for_update=True)
                result = pair(snapshot)
                await session.execute(
                    update(Participant)
                    .where(Participant.id == sponsor.id)
                    .values(carry_left=Decimal("900"))
                    .execution_options(synchronize_session=False)
                )

                applied = await repo.apply_pairing(
                    snapshot, result.carry_out_left, result.carry_out_right, result.pairs
                )

        assert applied is False
        participant = await data.participant(sponsor.id)
        assert participant.carry_left == Decimal("900")
        assert participant.left_business == Decimal("2500")
        assert participant.total_pairs == 0

    async def test_lost_carry_race_fails_only_that_participant(
        self, data, scheduler, sponsor
    ):
        await data.set_counters(sponsor.id, left_business="2500", right_business="1800")

        with patch.object(
            ParticipantRepository, "apply_pairing", AsyncMock(return_value=False)
        ):
            report = await scheduler.run_job(BINARY_JOB)

        assert report.status == "failed"
        assert report.failed == 1
        assert report.errors[0].startswith(f"{sponsor.id}: ConcurrentUpdateError")
        assert await data.all(BinaryPairingCycle) == []
        assert await data.all(Commission) == []
        assert (await data.wallet(sponsor.id)).binary_balance == Decimal("0")
        assert (await data.participant(sponsor.id)).left_business == Decimal("2500")


class TestBinaryHistory:
    async def test_history_pages_latest_day_first(
        self, data, scheduler, sponsor, session_maker, clock
    ):
        await data.set_counters(sponsor.id, left_business="2500", right_business="1800")
        await scheduler.run_job(BINARY_JOB)
        clock.now = NOW + timedelta(days=1)
        await data.set_counters(sponsor.id, right_business="1200")
        await scheduler.run_job(BINARY_JOB)

        async with session_maker() as session:
            reports = IncomeReportService(session)
            first = await reports.get_binary_history(sponsor.id, page=1, limit=1)
            second = await reports.get_binary_history(sponsor.id, page=2, limit=1)

        assert [c.cycle_date for c in first["cycles"]] == [(NOW + timedelta(days=1)).date()]
        assert [c.cycle_date for c in second["cycles"]] == [NOW.date()]
        assert first["pagination"] == {"total": 2, "page": 1, "limit": 1, "pages": 2}
        assert first["stats"] == {
            "total_commission": Decimal("200"),
            "total_pairs": 2,
            "count": 2,
        }

    async def test_status_filter_and_empty_history(self, data, scheduler, sponsor, session_maker):
        await data.set_counters(sponsor.id, left_business="2500", right_business="1800")
        await scheduler.run_job(BINARY_JOB)

        async with session_maker() as session:
            reports = IncomeReportService(session)
            failed = await reports.get_binary_history(sponsor.id, status="failed")
            processed = await reports.get_binary_history(sponsor.id, status="processed")

        assert failed["cycles"] == []
        assert failed["pagination"]["pages"] == 0
        assert failed["stats"]["count"] == 1
        assert len(processed["cycles"]) == 1

    async def test_invalid_page_raises(self, sponsor, session_maker):
        async with session_maker() as session:
            with pytest.raises(ValueError, match="Invalid page"):
                await IncomeReportService(session).get_binary_history(sponsor.id, page=0)
