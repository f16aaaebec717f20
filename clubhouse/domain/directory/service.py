"""Directory service - Business logic for members and guests"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import Guest, Member
from ..scheduling.exceptions import Conflict, InvalidConfiguration, NotFound
from .repository import DirectoryRepository
from .schemas import GuestCreate, GuestUpdate, MemberCreate, MemberUpdate

logger = logging.getLogger(__name__)

# Columns that cannot be cleared by an update
REQUIRED_MEMBER_FIELDS = {"member_number", "first_name", "last_name"}
REQUIRED_GUEST_FIELDS = {"first_name", "last_name"}


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class DirectoryService:
    """Service layer for the member and guest directory"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = DirectoryRepository()

    # ========================================================================
    # MEMBERS
    # ========================================================================

    def get_members(self, search: Optional[str] = None, member_class: Optional[str] = None) -> list[Member]:
        return self.repo.get_members(self.db, search, member_class)

    def get_member(self, member_id: int) -> Member:
        member = self.repo.get_member_by_id(self.db, member_id)
        if not member:
            raise NotFound(f"Member {member_id} not found", {"memberId": member_id})
        return member

    def create_member(self, data: MemberCreate) -> Member:
        """
        Add a member.

        Raises:
            InvalidConfiguration: a required name or number is blank
            Conflict: the member number is taken
        """
        member_number = _clean(data.memberNumber)
        first_name = _clean(data.firstName)
        last_name = _clean(data.lastName)
        if not member_number or not first_name or not last_name:
            raise InvalidConfiguration("memberNumber, firstName and lastName cannot be blank")

        logger.info(f"📥 Creating member {member_number}")
        self._ensure_member_number_free(member_number)

        try:
            member = self.repo.create_member(
                self.db,
                member_number=member_number,
                first_name=first_name,
                last_name=last_name,
                member_class=_clean(data.memberClass),
            )
        except IntegrityError as e:
            self.db.rollback()
            raise self._number_taken(member_number) from e

        logger.info(f"✅ Created member {member.id} ({member.member_number})")
        return member

    def update_member(self, member_id: int, data: MemberUpdate) -> Member:
        member = self.get_member(member_id)

        field_names = {
            "memberNumber": "member_number",
            "firstName": "first_name",
            "lastName": "last_name",
            "memberClass": "member_class",
        }
        updates = self._updates(data, field_names, REQUIRED_MEMBER_FIELDS)

        new_number = updates.get("member_number")
        if new_number and new_number != member.member_number:
            self._ensure_member_number_free(new_number)

        try:
            member = self.repo.update(self.db, member, **updates)
        except IntegrityError as e:
            self.db.rollback()
            raise self._number_taken(new_number) from e

        logger.info(f"✅ Updated member {member.id}: {', '.join(sorted(updates)) or 'no changes'}")
        return member

    def _ensure_member_number_free(self, member_number: str) -> None:
        if self.repo.get_member_by_number(self.db, member_number):
            logger.warning(f"⚠️ Member number {member_number} is already in use")
            raise self._number_taken(member_number)

    @staticmethod
    def _number_taken(member_number: Optional[str]) -> Conflict:
        return Conflict(
            f"Member number {member_number} is already in use", {"memberNumber": member_number}
        )

    # ========================================================================
    # GUESTS
    # ========================================================================

    def get_guests(self, search: Optional[str] = None) -> list[Guest]:
        return self.repo.get_guests(self.db, search)

    def get_guest(self, guest_id: int) -> Guest:
        guest = self.repo.get_guest_by_id(self.db, guest_id)
        if not guest:
            raise NotFound(f"Guest {guest_id} not found", {"guestId": guest_id})
        return guest

    def create_guest(self, data: GuestCreate) -> Guest:
        """
        Add a guest. Two guests may not share a full name (case-insensitive),
        so the booking screens can tell them apart.
        """
        first_name = _clean(data.firstName)
        last_name = _clean(data.lastName)
        if not first_name or not last_name:
            raise InvalidConfiguration("firstName and lastName cannot be blank")

        existing = self.repo.get_guest_by_name(self.db, first_name, last_name)
        if existing:
            raise Conflict(
                f'A guest named "{first_name} {last_name}" already exists', {"guestId": existing.id}
            )

        guest = self.repo.create_guest(
            self.db, first_name=first_name, last_name=last_name, email=data.email
        )
        logger.info(f"✅ Created guest {guest.id}")
        return guest

    def update_guest(self, guest_id: int, data: GuestUpdate) -> Guest:
        guest = self.get_guest(guest_id)

        field_names = {"firstName": "first_name", "lastName": "last_name", "email": "email"}
        updates = self._updates(data, field_names, REQUIRED_GUEST_FIELDS)

        first_name = updates.get("first_name", guest.first_name)
        last_name = updates.get("last_name", guest.last_name)
        existing = self.repo.get_guest_by_name(self.db, first_name, last_name, exclude_id=guest.id)
        if existing:
            raise Conflict(
                f'A guest named "{first_name} {last_name}" already exists', {"guestId": existing.id}
            )

        guest = self.repo.update(self.db, guest, **updates)
        logger.info(f"✅ Updated guest {guest.id}")
        return guest

    # ========================================================================
    # HELPERS
    # ========================================================================

    @staticmethod
    def _updates(data, field_names: dict[str, str], required: set[str]) -> dict:
        """Column updates for the fields the caller actually sent"""
        updates = {}
        for field, value in data.model_dump(exclude_unset=True).items():
            column = field_names[field]
            value = _clean(value) if column != "email" else value
            if value is None and column in required:
                raise InvalidConfiguration(f"{field} cannot be cleared")
            updates[column] = value
        return updates
