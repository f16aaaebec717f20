"""Booking service - restriction checks, overrides and ledger writes for bookings"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...models import RestrictionOverride, TimeBlock
from .exceptions import InvalidConfiguration, NotFound, RestrictionViolated
from .ledger import OccupancyLedger
from .occupants import GuestOccupant, InvitedBy, MemberOccupant
from .repository import SchedulingRepository
from .restrictions import Actor, RestrictionCheckResult, RestrictionGate
from .schemas import BookGuestRequest, BookMemberRequest, RestrictionCheckRequest

logger = logging.getLogger(__name__)


def violation_payload(result: RestrictionCheckResult) -> list[dict]:
    return [
        {
            "restrictionId": v.restriction_id,
            "restrictionName": v.restriction_name,
            "restrictionDescription": v.restriction_description,
            "category": v.category,
            "type": v.type,
            "message": v.message,
            "canOverride": v.can_override,
            "blocking": v.is_blocking,
        }
        for v in result.violations
    ]


class BookingService:
    """
    Member and guest bookings.

    Flow: run the restriction gate, reject blocking violations, reject
    advisory violations unless the request carries an override, then add
    the occupant through the ledger.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = SchedulingRepository()
        self.gate = RestrictionGate(db)
        self.ledger = OccupancyLedger(db)

    def check_restrictions(self, data: RestrictionCheckRequest) -> RestrictionCheckResult:
        if data.memberId is not None:
            actor = self.gate.actor_for_member(data.memberId)
        else:
            actor = self.gate.actor_for_guest(data.guestId)
        return self.gate.check(actor, data.date, data.time)

    def book_member(self, block_id: int, data: BookMemberRequest) -> MemberOccupant:
        block = self.ledger.get_block(block_id)
        self._check_member_booking_allowed(block, data.actingMemberId)

        booked_by = data.bookedByMemberId if data.bookedByMemberId is not None else data.actingMemberId
        if booked_by is not None and not self.repo.get_member(self.db, booked_by):
            raise NotFound(f"Member {booked_by} not found", {"memberId": booked_by})

        actor = self.gate.actor_for_member(data.memberId)
        self._enforce_restrictions(actor, block, data.override, data.overriddenBy, data.overrideReason,
                                   member_id=data.memberId)

        logger.info(f"📥 Booking member {data.memberId} into time block {block.id} ({block.start_time})")
        return self.ledger.add_member(block.id, data.memberId, booked_by)

    def book_guest(self, block_id: int, data: BookGuestRequest) -> GuestOccupant:
        block = self.ledger.get_block(block_id)
        self._check_member_booking_allowed(block, data.actingMemberId)

        inviting_member_id = (
            data.invitedByMemberId if data.invitedByMemberId is not None else data.actingMemberId
        )
        if data.courseSponsored:
            invited_by = InvitedBy.course()
        elif inviting_member_id is None:
            # Staff booking with no host on record
            invited_by = InvitedBy.none()
        else:
            if not self.repo.get_member(self.db, inviting_member_id):
                raise NotFound(f"Member {inviting_member_id} not found", {"memberId": inviting_member_id})
            invited_by = InvitedBy.member(inviting_member_id)

        actor = self.gate.actor_for_guest(data.guestId)
        self._enforce_restrictions(actor, block, data.override, data.overriddenBy, data.overrideReason,
                                   guest_id=data.guestId)

        logger.info(f"📥 Booking guest {data.guestId} into time block {block.id} ({block.start_time})")
        return self.ledger.add_guest(block.id, data.guestId, invited_by)

    def _check_member_booking_allowed(self, block: TimeBlock, acting_member_id: Optional[int]) -> None:
        """Members cannot book themselves on a teesheet closed to member booking; staff can"""
        if acting_member_id is None or not block.teesheet.disallow_member_booking:
            return
        logger.warning(
            f"⚠️ Member {acting_member_id} tried to book on {block.teesheet.date}, "
            f"which is closed to member booking"
        )
        raise RestrictionViolated(
            "Member booking is not available on this date - please contact the pro shop",
            violations=[],
            overridable=False,
        )

    def _enforce_restrictions(
        self,
        actor: Actor,
        block: TimeBlock,
        override: bool,
        overridden_by: Optional[str],
        reason: Optional[str],
        member_id: Optional[int] = None,
        guest_id: Optional[int] = None,
    ) -> None:
        result = self.gate.check(actor, block.teesheet.date, block.start_time)
        if not result.has_violations:
            return

        if result.blocking:
            logger.warning(f"⚠️ Booking into time block {block.id} blocked: {result.preferred_reason}")
            raise RestrictionViolated(
                result.preferred_reason or "This time is restricted - choose a different time",
                violations=violation_payload(result),
                overridable=False,
            )

        if not override:
            logger.warning(f"⚠️ Booking into time block {block.id} needs an override: {result.preferred_reason}")
            raise RestrictionViolated(
                result.preferred_reason or "This booking needs an override",
                violations=violation_payload(result),
                overridable=True,
            )

        if not overridden_by:
            raise InvalidConfiguration("An override must name who authorized it")

        # Staged in the session so they commit (or roll back) with the ledger insert
        for violation in result.advisory:
            self.db.add(
                RestrictionOverride(
                    restriction_id=violation.restriction_id,
                    time_block_id=block.id,
                    member_id=member_id,
                    guest_id=guest_id,
                    overridden_by=overridden_by,
                    reason=reason,
                )
            )
        logger.info(
            f"🔓 {overridden_by} overrode {len(result.advisory)} restriction(s) for time block {block.id}"
        )
