"""
Commission eligibility module.

Direct commission needs an active sponsor. Level commission needs the
recipient to hold at least one active investment.
"""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.participant import Participant
from app.repositories.investment_repository import InvestmentRepository
from app.repositories.participant_repository import ParticipantRepository
from app.utils.exceptions import EligibilityFailure


@dataclass(frozen=True)
class Eligibility:
    """Eligibility decision for one recipient."""

    is_eligible: bool
    reason: str | None = None


ELIGIBLE = Eligibility(is_eligible=True)


class CommissionEligibility:
    """Checks commission eligibility of upline recipients."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize eligibility checker."""
        self.session = session
        self.participant_repo = ParticipantRepository(session)
        self.investment_repo = InvestmentRepository(session)

    def check_direct_eligibility(self, sponsor: Participant | None) -> Eligibility:
        """
        Check whether a sponsor may receive direct commission.

        Args:
            sponsor: Sponsor of the investor (None if missing)

        Returns:
            Eligibility
        """
        if sponsor is None:
            return Eligibility(False, "sponsor_missing")
        if not sponsor.is_active:
            return Eligibility(False, f"sponsor_{sponsor.status}")
        return ELIGIBLE

    async def check_upline_eligibility(
        self, participant_id: int, require_active_investment: bool = True
    ) -> Eligibility:
        """
        Check whether an upline member may receive level commission.

        Args:
            participant_id: Upline participant ID
            require_active_investment: Apply the active investment rule

        Returns:
            Eligibility
        """
        participant = await self.participant_repo.get_by_id(participant_id)
        if participant is None:
            return Eligibility(False, "recipient_missing")
        if not require_active_investment:
            return ELIGIBLE
        if not await self.investment_repo.has_active_investment(participant_id):
            return Eligibility(False, "no_active_investment")
        return ELIGIBLE

    async def require_upline_eligibility(
        self, participant_id: int, require_active_investment: bool = True
    ) -> None:
        """
        Raise if an upline member may not receive level commission.

        Raises:
            EligibilityFailure: With the rejection reason
        """
        eligibility = await self.check_upline_eligibility(
            participant_id, require_active_investment
        )
        if not eligibility.is_eligible:
            raise EligibilityFailure(participant_id, eligibility.reason or "ineligible")
