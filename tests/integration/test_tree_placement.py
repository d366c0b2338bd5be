"""Integration tests for participant placement."""

import pytest
from sqlalchemy.exc import IntegrityError

from app.models import Participant
from app.services.tree_placement_service import TreePlacementService
from app.utils.exceptions import TreeIntegrityError


class TestBinaryPlacement:
    """Spillover placement under a sponsor."""

    async def test_first_referral_goes_left(self, data):
        """Scenario A: no children under sponsor -> left of sponsor."""
        people = await data.register_many(("S", None), ("P", "S"))

        assert people["P"].binary_parent_id == people["S"].id
        assert people["P"].binary_position == "left"

    async def test_second_referral_goes_right(self, data):
        """Scenario B: left filled, right empty -> right of sponsor."""
        people = await data.register_many(("S", None), ("L", "S"), ("P", "S"))

        assert people["P"].binary_parent_id == people["S"].id
        assert people["P"].binary_position == "right"

    async def test_full_sponsor_spills_to_left_child(self, data):
        """Scenario C: sponsor full -> left slot of the sponsor's left child."""
        people = await data.register_many(
            ("S", None), ("L", "S"), ("R", "S"), ("P", "S")
        )

        assert people["P"].binary_parent_id == people["L"].id
        assert people["P"].binary_position == "left"

    async def test_shallowest_slot_is_filled_first(self, data):
        """A whole level is filled left to right before the next one."""
        codes = ["a", "b", "c", "d", "e", "f", "g"]
        people = await data.register_many(("S", None), *[(code, "S") for code in codes])

        expected = {
            "a": ("S", "left"),
            "b": ("S", "right"),
            "c": ("a", "left"),
            "d": ("a", "right"),
            "e": ("b", "left"),
            "f": ("b", "right"),
            "g": ("c", "left"),
        }
        for code, (parent_code, position) in expected.items():
            assert people[code].binary_parent_id == people[parent_code].id, code
            assert people[code].binary_position == position, code

    async def test_spillover_stays_in_sponsor_subtree(self, data):
        """A sponsor deep in the tree places into its own subtree only."""
        people = await data.register_many(
            ("S", None), ("a", "S"), ("b", "S"),
            ("c", "a"), ("d", "a"), ("e", "a"),
        )

        assert people["e"].binary_parent_id == people["c"].id
        assert people["e"].binary_position == "left"

    async def test_child_counts_follow_placement(self, data):
        people = await data.register_many(("S", None), ("a", "S"), ("b", "S"))

        sponsor = await data.participant(people["S"].id)
        assert sponsor.left_count == 1
        assert sponsor.right_count == 1

    async def test_binary_shape_holds(self, data):
        """Every node has at most one child per side and one parent."""
        await data.register_many(("S", None), *[(f"p{i}", "S") for i in range(12)])

        participants = await data.all(Participant)
        slots = [
            (p.binary_parent_id, p.binary_position)
            for p in participants
            if p.binary_parent_id is not None
        ]
        assert len(slots) == len(set(slots)) == 12
        roots = [p for p in participants if p.binary_parent_id is None]
        assert [p.code for p in roots] == ["S"]
        assert roots[0].binary_position == "none"

    async def test_taken_slot_rejected_by_schema(self, data, session_maker):
        people = await data.register_many(("S", None), ("a", "S"))

        with pytest.raises(IntegrityError):
            async with session_maker() as session:
                async with session.begin():
                    session.add(
                        Participant(
                            code="intruder",
                            binary_parent_id=people["S"].id,
                            binary_position="left",
                        )
                    )

    async def test_iteration_ceiling_raises(self, data, session_maker):
        await data.register_many(("S", None), ("a", "S"), ("b", "S"))

        async with session_maker() as session:
            service = TreePlacementService(session)
            service.placement_finder.max_iterations = 1
            sponsor = await service.participant_repo.get_by_code("S")
            with pytest.raises(TreeIntegrityError):
                await service.find_binary_placement(sponsor)


class TestUplineChain:
    """Sponsor chain cached at join."""

    async def test_chain_is_bounded_to_five_levels(self, data):
        codes = [f"u{i}" for i in range(8)]
        people = await data.register_many(
            (codes[0], None), *[(codes[i], codes[i - 1]) for i in range(1, 8)]
        )

        chain = people["u7"].upline_chain
        assert len(chain) == 5
        assert [entry["level"] for entry in chain] == [1, 2, 3, 4, 5]
        assert [entry["participant_id"] for entry in chain] == [
            people[f"u{i}"].id for i in (6, 5, 4, 3, 2)
        ]

    async def test_chain_stops_at_root(self, data):
        people = await data.register_many(("root", None), ("kid", "root"), ("grandkid", "kid"))

        assert people["grandkid"].upline_chain == [
            {"participant_id": people["kid"].id, "level": 1},
            {"participant_id": people["root"].id, "level": 2},
        ]
        assert people["grandkid"].sponsor_id == people["kid"].id

    async def test_root_has_empty_chain(self, data):
        root = await data.register("root")

        assert root.upline_chain == []
        assert root.sponsor_id is None

    async def test_chain_is_frozen_at_join(self, data, session_maker):
        """Changing a sponsor later does not rewrite existing chains."""
        people = await data.register_many(("a", None), ("b", None), ("c", "a"), ("d", "c"))

        async with session_maker() as session:
            async with session.begin():
                c = await session.get(Participant, people["c"].id)
                c.sponsor_id = people["b"].id

        d = await data.participant(people["d"].id)
        assert [entry["participant_id"] for entry in d.upline_chain] == [
            people["c"].id, people["a"].id,
        ]

    async def test_sponsor_cycle_raises(self, data, session_maker):
        people = await data.register_many(("x", None), ("y", "x"))
        async with session_maker() as session:
            async with session.begin():
                x = await session.get(Participant, people["x"].id)
                x.sponsor_id = people["y"].id

        with pytest.raises(TreeIntegrityError):
            await data.register("z", "y")


class TestRegistration:
    async def test_unknown_sponsor_code_raises(self, data):
        with pytest.raises(ValueError, match="Unknown sponsor"):
            await data.register("orphan", "nobody")

    async def test_duplicate_code_raises(self, data):
        await data.register("dup")

        with pytest.raises(ValueError, match="already taken"):
            await data.register("dup")

    async def test_wallet_created_at_join(self, data):
        participant = await data.register("fresh")

        wallet = await data.wallet(participant.id)
        assert wallet.main_balance == 0
        assert wallet.version == 0

    async def test_build_tree_on_registration_without_writing(self, data, session_maker):
        await data.register_many(("S", None), ("a", "S"))

        async with session_maker() as session:
            placement = await TreePlacementService(session).build_tree_on_registration("S")

        assert placement.is_root is False
        assert placement.binary_placement.position == "right"
        assert [entry["level"] for entry in placement.upline_chain] == [1]
        assert len(await data.all(Participant)) == 2


class TestSponsorTeam:
    """Sponsor team counters and per-level team lookup."""

    async def test_join_counts_in_every_upline_level(self, data):
        codes = [f"u{i}" for i in range(7)]
        people = await data.register_many(
            (codes[0], None), *[(codes[i], codes[i - 1]) for i in range(1, 7)]
        )

        u0 = await data.participant(people["u0"].id)
        assert u0.team_counts == {1: 1, 2: 1, 3: 1, 4: 1, 5: 1}
        assert u0.team_total == 5

        u5 = await data.participant(people["u5"].id)
        assert u5.team_counts == {1: 1, 2: 0, 3: 0, 4: 0, 5: 0}
        assert u5.team_total == 1

        assert (await data.participant(people["u6"].id)).team_total == 0

    async def test_direct_referrals_counted_at_level_one(self, data):
        people = await data.register_many(
            ("S", None), ("a", "S"), ("b", "S"), ("c", "a")
        )

        sponsor = await data.participant(people["S"].id)
        assert sponsor.team_level_1 == 2
        assert sponsor.team_level_2 == 1
        assert sponsor.team_total == 3

    async def test_team_by_level_newest_first(self, data, session_maker):
        people = await data.register_many(
            ("S", None), ("a", "S"), ("b", "S"), ("c", "a"), ("d", "b"), ("e", "a")
        )

        async with session_maker() as session:
            service = TreePlacementService(session)
            level_1 = await service.get_team_by_level(people["S"].id, 1)
            level_2 = await service.get_team_by_level(people["S"].id, 2)
            level_3 = await service.get_team_by_level(people["S"].id, 3)

        assert [p.code for p in level_1] == ["b", "a"]
        assert [p.code for p in level_2] == ["e", "d", "c"]
        assert level_3 == []

    async def test_team_level_outside_depth_raises(self, data, session_maker):
        root = await data.register("root")

        async with session_maker() as session:
            service = TreePlacementService(session)
            with pytest.raises(ValueError, match="between 1 and"):
                await service.get_team_by_level(root.id, 0)
            with pytest.raises(ValueError, match="between 1 and"):
                await service.get_team_by_level(root.id, 6)

    async def test_summary_reports_team_counts(self, data, session_maker):
        people = await data.register_many(("S", None), ("a", "S"), ("b", "a"))

        async with session_maker() as session:
            summary = await TreePlacementService(session).get_binary_summary(
                people["S"].id
            )

        assert summary["team_by_level"][1] == 1
        assert summary["team_by_level"][2] == 1
        assert summary["team_total"] == 2
