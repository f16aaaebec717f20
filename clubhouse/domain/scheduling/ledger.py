"""Occupancy ledger - members, guests and fills per time block against capacity"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...models import TimeBlock, TimeBlockFill, TimeBlockGuest, TimeBlockMember
from ...shared.retry import retry_read
from ...utils.sanitization import sanitize_label
from .exceptions import (
    CapacityExceeded,
    DuplicateBooking,
    Internal,
    InvalidConfiguration,
    NotFound,
    SchedulingError,
)
from .occupants import (
    BlockOccupancy,
    FillOccupant,
    FillType,
    GuestOccupant,
    InvitedBy,
    MemberOccupant,
    Occupant,
    fill_occupant,
    guest_occupant,
    member_occupant,
)
from .repository import SchedulingRepository

logger = logging.getLogger(__name__)


class OccupancyLedger:
    """
    Adds and removes occupants of time blocks.

    Every add re-reads the block with a row lock before counting, so on
    Postgres concurrent adds to one block serialize. Restrictions are not
    checked here; BookingService runs them before calling the ledger.
    Moving occupants between blocks goes through PartyMover.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = SchedulingRepository()

    # ========================================================================
    # READS
    # ========================================================================

    def get_block(self, block_id: int) -> TimeBlock:
        block = self.repo.get_time_block(self.db, block_id)
        if not block:
            raise NotFound(f"Time block {block_id} not found", {"timeBlockId": block_id})
        return block

    @retry_read
    def get_block_occupancy(self, block_id: int) -> BlockOccupancy:
        block = self.get_block(block_id)
        return BlockOccupancy(
            time_block_id=block.id,
            max_members=block.max_members,
            members=tuple(member_occupant(m) for m in self.repo.get_block_members(self.db, block_id)),
            guests=tuple(guest_occupant(g) for g in self.repo.get_block_guests(self.db, block_id)),
            fills=tuple(fill_occupant(f) for f in self.repo.get_block_fills(self.db, block_id)),
        )

    def list_occupants(self, block_id: int) -> list[Occupant]:
        return self.get_block_occupancy(block_id).occupants

    # ========================================================================
    # ADDS
    # ========================================================================

    def add_member(
        self, block_id: int, member_id: int, booked_by_member_id: Optional[int] = None
    ) -> MemberOccupant:
        """
        Put a member in a block.

        booked_by_member_id is who the booking is attributed to; None means the house.

        Raises:
            NotFound: block or member does not exist
            CapacityExceeded: block is full
            DuplicateBooking: member already in this block
        """
        if not self.repo.get_member(self.db, member_id):
            raise NotFound(f"Member {member_id} not found", {"memberId": member_id})

        def insert(block: TimeBlock) -> TimeBlockMember:
            if self.repo.get_block_member(self.db, block.id, member_id):
                raise DuplicateBooking(
                    "Member is already booked in this time block",
                    {"timeBlockId": block.id, "memberId": member_id},
                )
            row = TimeBlockMember(
                time_block_id=block.id,
                member_id=member_id,
                booked_by_member_id=booked_by_member_id,
                booking_date=block.teesheet.date,
                booking_time=block.start_time,
                checked_in=False,
            )
            self.db.add(row)
            return row

        row = self._add(block_id, insert, f"member {member_id}")
        return member_occupant(row)

    def add_guest(self, block_id: int, guest_id: int, invited_by: InvitedBy) -> GuestOccupant:
        """
        Put a guest in a block, attributed to a member or sponsored by the course.

        Raises:
            NotFound: block or guest does not exist
            CapacityExceeded: block is full
            DuplicateBooking: guest already in this block
        """
        if not self.repo.get_guest(self.db, guest_id):
            raise NotFound(f"Guest {guest_id} not found", {"guestId": guest_id})

        def insert(block: TimeBlock) -> TimeBlockGuest:
            if self.repo.get_block_guest(self.db, block.id, guest_id):
                raise DuplicateBooking(
                    "Guest is already booked in this time block",
                    {"timeBlockId": block.id, "guestId": guest_id},
                )
            row = TimeBlockGuest(
                time_block_id=block.id,
                guest_id=guest_id,
                invited_by_kind=invited_by.kind.value,
                invited_by_member_id=invited_by.member_id,
                booking_date=block.teesheet.date,
                booking_time=block.start_time,
                checked_in=False,
            )
            self.db.add(row)
            return row

        row = self._add(block_id, insert, f"guest {guest_id}")
        return guest_occupant(row)

    def add_fill(
        self,
        block_id: int,
        fill_type: FillType,
        custom_name: Optional[str] = None,
        added_by_member_id: Optional[int] = None,
    ) -> FillOccupant:
        """
        Hold a place in a block without a person attached.

        Raises:
            InvalidConfiguration: unknown fill type, or custom_fill without a name
            NotFound: block does not exist
            CapacityExceeded: block is full
        """
        try:
            fill_type = FillType(fill_type)
        except ValueError as e:
            raise InvalidConfiguration(f"Unknown fill type '{fill_type}'") from e

        if fill_type == FillType.CUSTOM:
            try:
                custom_name = sanitize_label(custom_name)
            except ValueError as e:
                raise InvalidConfiguration(str(e)) from e
            if not custom_name:
                raise InvalidConfiguration("A custom fill needs a name")
        else:
            custom_name = None

        def insert(block: TimeBlock) -> TimeBlockFill:
            row = TimeBlockFill(
                time_block_id=block.id,
                fill_type=fill_type.value,
                custom_name=custom_name,
                added_by_member_id=added_by_member_id,
            )
            self.db.add(row)
            return row

        row = self._add(block_id, insert, f"{fill_type.value}")
        return fill_occupant(row)

    def _add(self, block_id: int, insert, description: str):
        """Lock the block, check capacity, insert one occupant row and commit"""
        try:
            block = self.repo.lock_time_block(self.db, block_id)
            if not block:
                raise NotFound(f"Time block {block_id} not found", {"timeBlockId": block_id})

            occupancy = self.repo.count_occupants(self.db, block.id)
            if occupancy >= block.max_members:
                logger.warning(
                    f"⚠️ Time block {block.id} ({block.start_time}) is full "
                    f"({occupancy}/{block.max_members}) - rejected {description}"
                )
                raise CapacityExceeded(
                    f"The {block.start_time} time block is full - choose a different time",
                    {"timeBlockId": block.id, "maxMembers": block.max_members, "occupancy": occupancy},
                )

            row = insert(block)
            self.db.commit()
        except DuplicateBooking as e:
            self.db.rollback()
            logger.warning(f"⚠️ Duplicate booking rejected for time block {block_id}: {e.message}")
            raise
        except SchedulingError:
            self.db.rollback()
            raise
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"⚠️ Duplicate booking rejected for time block {block_id}: {description}")
            raise DuplicateBooking(
                "Already booked in this time block", {"timeBlockId": block_id}
            ) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to add {description} to time block {block_id}: {e}")
            raise Internal(f"Failed to add booking to time block {block_id}") from e

        self.db.refresh(row)
        logger.info(f"✅ Added {description} to time block {block_id}")
        return row

    # ========================================================================
    # REMOVALS (idempotent)
    # ========================================================================

    def remove_member(self, occupant_id: int) -> bool:
        """
        Remove a member occupant by row id. Returns False when it was already gone.

        Anyone that member booked in the same block is re-attributed to the house.
        """
        row = self.db.query(TimeBlockMember).filter(TimeBlockMember.id == occupant_id).first()
        if not row:
            logger.info(f"ℹ️ Member occupant {occupant_id} already removed")
            return False

        block_id, member_id = row.time_block_id, row.member_id
        self.db.query(TimeBlockMember).filter(
            TimeBlockMember.time_block_id == block_id,
            TimeBlockMember.booked_by_member_id == member_id,
            TimeBlockMember.id != occupant_id,
        ).update({TimeBlockMember.booked_by_member_id: None}, synchronize_session="fetch")
        self.db.delete(row)
        self._commit(f"remove member occupant {occupant_id}")

        logger.info(f"✅ Removed member {member_id} from time block {block_id}")
        return True

    def remove_guest(self, occupant_id: int) -> bool:
        row = self.db.query(TimeBlockGuest).filter(TimeBlockGuest.id == occupant_id).first()
        if not row:
            logger.info(f"ℹ️ Guest occupant {occupant_id} already removed")
            return False

        block_id, guest_id = row.time_block_id, row.guest_id
        self.db.delete(row)
        self._commit(f"remove guest occupant {occupant_id}")

        logger.info(f"✅ Removed guest {guest_id} from time block {block_id}")
        return True

    def remove_fill(self, occupant_id: int) -> bool:
        row = self.db.query(TimeBlockFill).filter(TimeBlockFill.id == occupant_id).first()
        if not row:
            logger.info(f"ℹ️ Fill {occupant_id} already removed")
            return False

        block_id = row.time_block_id
        self.db.delete(row)
        self._commit(f"remove fill {occupant_id}")

        logger.info(f"✅ Removed fill {occupant_id} from time block {block_id}")
        return True

    # ========================================================================
    # ATTRIBUTION AND CHECK-IN
    # ========================================================================

    def reassign_booked_by(
        self, block_id: int, member_id: int, booked_by_member_id: Optional[int]
    ) -> MemberOccupant:
        """Attribute a member's booking to another member, or to the house with None"""
        row = self.repo.get_block_member(self.db, block_id, member_id)
        if not row:
            raise NotFound(
                "Member is not booked in this time block",
                {"timeBlockId": block_id, "memberId": member_id},
            )
        if booked_by_member_id is not None and not self.repo.get_member(self.db, booked_by_member_id):
            raise NotFound(f"Member {booked_by_member_id} not found", {"memberId": booked_by_member_id})

        row.booked_by_member_id = booked_by_member_id
        self._commit(f"reassign booking of member {member_id}")
        self.db.refresh(row)

        attributed = f"member {booked_by_member_id}" if booked_by_member_id else "the house"
        logger.info(f"✅ Booking of member {member_id} in time block {block_id} attributed to {attributed}")
        return member_occupant(row)

    def set_member_checked_in(self, occupant_id: int, checked_in: bool) -> MemberOccupant:
        row = self.db.query(TimeBlockMember).filter(TimeBlockMember.id == occupant_id).first()
        if not row:
            raise NotFound(f"Member occupant {occupant_id} not found", {"occupantId": occupant_id})
        row.checked_in = checked_in
        row.checked_in_at = datetime.utcnow() if checked_in else None
        self._commit(f"check in member occupant {occupant_id}")
        self.db.refresh(row)
        return member_occupant(row)

    def set_guest_checked_in(self, occupant_id: int, checked_in: bool) -> GuestOccupant:
        row = self.db.query(TimeBlockGuest).filter(TimeBlockGuest.id == occupant_id).first()
        if not row:
            raise NotFound(f"Guest occupant {occupant_id} not found", {"occupantId": occupant_id})
        row.checked_in = checked_in
        row.checked_in_at = datetime.utcnow() if checked_in else None
        self._commit(f"check in guest occupant {occupant_id}")
        self.db.refresh(row)
        return guest_occupant(row)

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to {action}: {e}")
            raise Internal(f"Failed to {action}") from e


