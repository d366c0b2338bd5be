"""Integration tests for binary volume propagation."""

from decimal import Decimal

from app.services.tree_placement_service import TreePlacementService
from jobs.tasks.volume_propagation import propagate_investment_volume_async


async def build_tree(data):
    """
    S
    ├── a (left)
    │   ├── c (left)
    │   └── d (right)
    └── b (right)
    """
    return await data.register_many(
        ("S", None), ("a", "S"), ("b", "S"), ("c", "S"), ("d", "S")
    )


async def propagate(session_maker, investment_id):
    async with session_maker() as session:
        async with session.begin():
            return await TreePlacementService(session).propagate_investment_volume(
                investment_id
            )


class TestPropagateVolume:
    async def test_volume_lands_on_arrival_side(self, data, session_maker):
        people = await build_tree(data)
        investment = await data.invest(people["d"].id, amount="1000")

        credited = await propagate(session_maker, investment.id)

        assert credited == 2
        a = await data.participant(people["a"].id)
        s = await data.participant(people["S"].id)
        assert (a.left_business, a.right_business) == (Decimal("0"), Decimal("1000"))
        assert (s.left_business, s.right_business) == (Decimal("1000"), Decimal("0"))

    async def test_right_subtree_volume(self, data, session_maker):
        people = await build_tree(data)
        investment = await data.invest(people["b"].id, amount="250.5")

        await propagate(session_maker, investment.id)

        s = await data.participant(people["S"].id)
        assert s.right_business == Decimal("250.5")
        assert s.left_business == Decimal("0")

    async def test_investor_own_counters_untouched(self, data, session_maker):
        people = await build_tree(data)
        investment = await data.invest(people["a"].id, amount="700")

        await propagate(session_maker, investment.id)

        a = await data.participant(people["a"].id)
        assert a.left_business == a.right_business == Decimal("0")

    async def test_investment_volume_propagates_once(self, data, session_maker):
        people = await build_tree(data)
        investment = await data.invest(people["c"].id, amount="1000")

        assert await propagate(session_maker, investment.id) == 2
        assert await propagate(session_maker, investment.id) == 0

        s = await data.participant(people["S"].id)
        assert s.left_business == Decimal("1000")
        assert (await data.investment(investment.id)).volume_propagated is True

    async def test_root_investment_credits_nobody(self, data, session_maker):
        people = await build_tree(data)
        investment = await data.invest(people["S"].id, amount="1000")

        assert await propagate(session_maker, investment.id) == 0

    async def test_unknown_investment_is_noop(self, session_maker):
        assert await propagate(session_maker, 999) == 0

    async def test_worker_task_uses_its_own_engine(self, data, engine):
        """The dramatiq task body propagates through a task-local engine."""
        people = await build_tree(data)
        investment = await data.invest(people["c"].id, amount="300")

        credited = await propagate_investment_volume_async(
            investment.id, database_url=engine.url.render_as_string(hide_password=False)
        )

        assert credited == 2
        s = await data.participant(people["S"].id)
        assert s.left_business == Decimal("300")


class TestBinarySummary:
    async def test_summary_reports_totals(self, data, session_maker):
        people = await build_tree(data)
        await data.set_counters(people["S"].id, left_business="800", carry_right="400")

        async with session_maker() as session:
            summary = await TreePlacementService(session).get_binary_summary(people["S"].id)

        assert summary["left_count"] == 1
        assert summary["right_count"] == 1
        assert summary["total_left"] == Decimal("800")
        assert summary["total_right"] == Decimal("400")
