"""Directory repository - Database operations for members and guests"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ...models import Guest, Member


class DirectoryRepository:
    """Repository for member and guest database operations"""

    # ---- members ----

    @staticmethod
    def get_members(db: Session, search: Optional[str] = None, member_class: Optional[str] = None) -> list[Member]:
        """Members ordered by name, optionally filtered by class and a name/number search"""
        query = db.query(Member)

        if member_class:
            query = query.filter(Member.member_class == member_class)

        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    Member.first_name.ilike(pattern),
                    Member.last_name.ilike(pattern),
                    Member.member_number.ilike(pattern),
                )
            )

        return query.order_by(Member.last_name, Member.first_name, Member.id).all()

    @staticmethod
    def get_member_by_id(db: Session, member_id: int) -> Optional[Member]:
        return db.query(Member).filter(Member.id == member_id).first()

    @staticmethod
    def get_member_by_number(db: Session, member_number: str) -> Optional[Member]:
        return db.query(Member).filter(Member.member_number == member_number).first()

    @staticmethod
    def create_member(db: Session, **member_data) -> Member:
        member = Member(**member_data)
        db.add(member)
        db.commit()
        db.refresh(member)
        return member

    # ---- guests ----

    @staticmethod
    def get_guests(db: Session, search: Optional[str] = None) -> list[Guest]:
        query = db.query(Guest)

        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    Guest.first_name.ilike(pattern),
                    Guest.last_name.ilike(pattern),
                    Guest.email.ilike(pattern),
                )
            )

        return query.order_by(Guest.last_name, Guest.first_name, Guest.id).all()

    @staticmethod
    def get_guest_by_id(db: Session, guest_id: int) -> Optional[Guest]:
        return db.query(Guest).filter(Guest.id == guest_id).first()

    @staticmethod
    def get_guest_by_name(
        db: Session, first_name: str, last_name: str, exclude_id: Optional[int] = None
    ) -> Optional[Guest]:
        """Case-insensitive match on the full name"""
        query = db.query(Guest).filter(
            func.lower(Guest.first_name) == first_name.lower(),
            func.lower(Guest.last_name) == last_name.lower(),
        )
        if exclude_id is not None:
            query = query.filter(Guest.id != exclude_id)
        return query.first()

    @staticmethod
    def create_guest(db: Session, **guest_data) -> Guest:
        guest = Guest(**guest_data)
        db.add(guest)
        db.commit()
        db.refresh(guest)
        return guest

    # ---- shared ----

    @staticmethod
    def update(db: Session, row, **updates):
        """Apply the given fields and commit"""
        for key, value in updates.items():
            setattr(row, key, value)

        db.commit()
        db.refresh(row)
        return row
