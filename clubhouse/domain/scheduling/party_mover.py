"""Party moves - relocate every occupant of one time block to another"""

import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .exceptions import (
    CapacityExceeded,
    DuplicateBooking,
    Internal,
    InvalidConfiguration,
    NotFound,
    SchedulingError,
)
from .repository import SchedulingRepository

logger = logging.getLogger(__name__)


class PartyMover:
    """
    Moves a whole party in one transaction.

    Capacity and duplicate checks run before any row changes; if any row
    fails to move, none do. Attribution (booked_by, invited_by, added_by)
    travels unchanged, and so do recorded restriction overrides. Never retried.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = SchedulingRepository()

    def move_party(self, source_block_id: int, target_block_id: int) -> int:
        """
        Returns the number of occupants moved (0 for an empty source block).

        Raises:
            NotFound: either block does not exist
            InvalidConfiguration: source and target are the same block
            CapacityExceeded: target cannot take the whole party
            DuplicateBooking: a member or guest of the party is already in the target
        """
        try:
            # Lock in id order so two opposite moves cannot deadlock
            locked = {}
            for block_id in sorted({source_block_id, target_block_id}):
                block = self.repo.lock_time_block(self.db, block_id)
                if not block:
                    raise NotFound(f"Time block {block_id} not found", {"timeBlockId": block_id})
                locked[block_id] = block

            if source_block_id == target_block_id:
                raise InvalidConfiguration("Source and target time blocks are the same")

            source = locked[source_block_id]
            target = locked[target_block_id]

            members = self.repo.get_block_members(self.db, source.id)
            guests = self.repo.get_block_guests(self.db, source.id)
            fills = self.repo.get_block_fills(self.db, source.id)
            party_size = len(members) + len(guests) + len(fills)

            if party_size == 0:
                self.db.rollback()
                logger.info(f"ℹ️ Time block {source.id} is empty - nothing to move")
                return 0

            available = target.max_members - self.repo.count_occupants(self.db, target.id)
            if available < party_size:
                logger.warning(
                    f"⚠️ Cannot move party of {party_size} from time block {source.id} "
                    f"to {target.id}: only {available} place(s) left"
                )
                raise CapacityExceeded(
                    f"The {target.start_time} time block only has {available} place(s) left "
                    f"for a party of {party_size}",
                    {"timeBlockId": target.id, "available": available, "partySize": party_size},
                )

            for row in members:
                if self.repo.get_block_member(self.db, target.id, row.member_id):
                    raise DuplicateBooking(
                        f"Member {row.member_id} is already booked in the {target.start_time} time block",
                        {"timeBlockId": target.id, "memberId": row.member_id},
                    )
            for row in guests:
                if self.repo.get_block_guest(self.db, target.id, row.guest_id):
                    raise DuplicateBooking(
                        f"Guest {row.guest_id} is already booked in the {target.start_time} time block",
                        {"timeBlockId": target.id, "guestId": row.guest_id},
                    )

            target_date = target.teesheet.date
            for row in [*members, *guests]:
                row.time_block_id = target.id
                row.booking_time = target.start_time
                row.booking_date = target_date
            for row in fills:
                row.time_block_id = target.id
            self.repo.move_restriction_overrides(
                self.db,
                source.id,
                target.id,
                [row.member_id for row in members],
                [row.guest_id for row in guests],
            )

            self.db.commit()
        except SchedulingError:
            self.db.rollback()
            raise
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"⚠️ Party move {source_block_id} -> {target_block_id} hit a duplicate: {e}")
            raise DuplicateBooking(
                "A member of the party is already booked in the target time block",
                {"timeBlockId": target_block_id},
            ) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Party move {source_block_id} -> {target_block_id} failed: {e}")
            raise Internal("Failed to move party") from e

        logger.info(f"✅ Moved party of {party_size} from time block {source_block_id} to {target_block_id}")
        return party_size
