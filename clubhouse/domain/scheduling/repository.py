"""Scheduling repository - Database operations for configs, teesheets and time blocks"""

from datetime import date
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, selectinload

from ...models import (
    Guest,
    Member,
    RestrictionOverride,
    ScheduleConfig,
    ScheduleRule,
    SlotRequest,
    Teesheet,
    Template,
    TimeBlock,
    TimeBlockFill,
    TimeBlockGuest,
    TimeBlockMember,
    TimeblockRestriction,
)


def _with_occupants():
    return selectinload(Teesheet.time_blocks).options(
        selectinload(TimeBlock.members),
        selectinload(TimeBlock.guests),
        selectinload(TimeBlock.fills),
    )


class SchedulingRepository:
    """Repository for scheduling database operations. Never commits on its own."""

    # ---- configs ----

    @staticmethod
    def count_configs(db: Session) -> int:
        return db.query(func.count(ScheduleConfig.id)).scalar() or 0

    @staticmethod
    def get_active_configs(db: Session) -> list[ScheduleConfig]:
        """Active configs with rules loaded, in id order"""
        return (
            db.query(ScheduleConfig)
            .options(selectinload(ScheduleConfig.rules))
            .filter(ScheduleConfig.is_active.is_(True))
            .order_by(ScheduleConfig.id)
            .all()
        )

    @staticmethod
    def get_system_configs(db: Session) -> list[ScheduleConfig]:
        return (
            db.query(ScheduleConfig)
            .options(selectinload(ScheduleConfig.rules))
            .filter(ScheduleConfig.is_system_config.is_(True))
            .order_by(ScheduleConfig.id)
            .all()
        )

    @staticmethod
    def list_configs(db: Session) -> list[ScheduleConfig]:
        return (
            db.query(ScheduleConfig)
            .options(selectinload(ScheduleConfig.rules))
            .order_by(ScheduleConfig.id)
            .all()
        )

    @staticmethod
    def get_config(db: Session, config_id: int) -> Optional[ScheduleConfig]:
        return db.query(ScheduleConfig).filter(ScheduleConfig.id == config_id).first()

    @staticmethod
    def get_config_by_name(db: Session, name: str) -> Optional[ScheduleConfig]:
        return db.query(ScheduleConfig).filter(ScheduleConfig.name == name).first()

    @staticmethod
    def get_active_rules(db: Session, exclude_config_id: Optional[int] = None) -> list[ScheduleRule]:
        """Active rules belonging to active configs"""
        query = (
            db.query(ScheduleRule)
            .join(ScheduleConfig, ScheduleRule.config_id == ScheduleConfig.id)
            .filter(ScheduleRule.is_active.is_(True), ScheduleConfig.is_active.is_(True))
        )
        if exclude_config_id is not None:
            query = query.filter(ScheduleRule.config_id != exclude_config_id)
        return query.order_by(ScheduleRule.id).all()

    @staticmethod
    def get_rule(db: Session, rule_id: int) -> Optional[ScheduleRule]:
        return db.query(ScheduleRule).filter(ScheduleRule.id == rule_id).first()

    # ---- templates ----

    @staticmethod
    def get_template(db: Session, template_id: int) -> Optional[Template]:
        return (
            db.query(Template)
            .options(selectinload(Template.blocks))
            .filter(Template.id == template_id)
            .first()
        )

    # ---- teesheets ----

    @staticmethod
    def get_teesheet_by_date(db: Session, day: date) -> Optional[Teesheet]:
        """Teesheet for a date with blocks and occupants loaded"""
        return (
            db.query(Teesheet)
            .options(_with_occupants())
            .filter(Teesheet.date == day)
            .first()
        )

    @staticmethod
    def get_teesheet(db: Session, teesheet_id: int) -> Optional[Teesheet]:
        return (
            db.query(Teesheet)
            .options(_with_occupants())
            .filter(Teesheet.id == teesheet_id)
            .first()
        )

    # ---- time blocks ----

    @staticmethod
    def get_time_blocks(db: Session, teesheet_id: int) -> list[TimeBlock]:
        return (
            db.query(TimeBlock)
            .options(
                selectinload(TimeBlock.members),
                selectinload(TimeBlock.guests),
                selectinload(TimeBlock.fills),
            )
            .filter(TimeBlock.teesheet_id == teesheet_id)
            .order_by(TimeBlock.sort_order, TimeBlock.start_time)
            .all()
        )

    @staticmethod
    def get_time_block(db: Session, block_id: int) -> Optional[TimeBlock]:
        return db.query(TimeBlock).filter(TimeBlock.id == block_id).first()

    @staticmethod
    def lock_time_block(db: Session, block_id: int) -> Optional[TimeBlock]:
        """Re-read a block with a row lock held until the transaction ends"""
        return (
            db.query(TimeBlock)
            .filter(TimeBlock.id == block_id)
            .with_for_update()
            .first()
        )

    @staticmethod
    def release_slot_requests(db: Session, block_ids: list[int]) -> int:
        """Detach pending slot assignments from blocks that are about to be deleted"""
        if not block_ids:
            return 0
        return (
            db.query(SlotRequest)
            .filter(SlotRequest.assigned_time_block_id.in_(block_ids))
            .update(
                {SlotRequest.assigned_time_block_id: None, SlotRequest.status: "PENDING"},
                synchronize_session=False,
            )
        )

    @staticmethod
    def delete_time_blocks(db: Session, blocks: list[TimeBlock]) -> int:
        """Delete blocks along with their occupants and overrides (flushes, does not commit)"""
        block_ids = [block.id for block in blocks]
        if not block_ids:
            return 0
        db.query(RestrictionOverride).filter(
            RestrictionOverride.time_block_id.in_(block_ids)
        ).delete(synchronize_session=False)
        # ORM deletes so the session's identity map drops the old rows
        for block in blocks:
            db.delete(block)
        db.flush()
        return len(block_ids)

    @staticmethod
    def move_restriction_overrides(
        db: Session, source_block_id: int, target_block_id: int, member_ids: list[int], guest_ids: list[int]
    ) -> int:
        """Re-point the overrides of moved members and guests at their new block"""
        if not member_ids and not guest_ids:
            return 0
        return (
            db.query(RestrictionOverride)
            .filter(
                RestrictionOverride.time_block_id == source_block_id,
                or_(
                    RestrictionOverride.member_id.in_(member_ids),
                    RestrictionOverride.guest_id.in_(guest_ids),
                ),
            )
            .update({RestrictionOverride.time_block_id: target_block_id}, synchronize_session=False)
        )

    # ---- occupants ----

    @staticmethod
    def count_occupants(db: Session, block_id: int) -> int:
        members = db.query(func.count(TimeBlockMember.id)).filter(
            TimeBlockMember.time_block_id == block_id
        ).scalar()
        guests = db.query(func.count(TimeBlockGuest.id)).filter(
            TimeBlockGuest.time_block_id == block_id
        ).scalar()
        fills = db.query(func.count(TimeBlockFill.id)).filter(
            TimeBlockFill.time_block_id == block_id
        ).scalar()
        return (members or 0) + (guests or 0) + (fills or 0)

    @staticmethod
    def get_block_member(db: Session, block_id: int, member_id: int) -> Optional[TimeBlockMember]:
        return (
            db.query(TimeBlockMember)
            .filter(TimeBlockMember.time_block_id == block_id, TimeBlockMember.member_id == member_id)
            .first()
        )

    @staticmethod
    def get_block_guest(db: Session, block_id: int, guest_id: int) -> Optional[TimeBlockGuest]:
        return (
            db.query(TimeBlockGuest)
            .filter(TimeBlockGuest.time_block_id == block_id, TimeBlockGuest.guest_id == guest_id)
            .first()
        )

    @staticmethod
    def get_block_members(db: Session, block_id: int) -> list[TimeBlockMember]:
        return (
            db.query(TimeBlockMember)
            .filter(TimeBlockMember.time_block_id == block_id)
            .order_by(TimeBlockMember.id)
            .all()
        )

    @staticmethod
    def get_block_guests(db: Session, block_id: int) -> list[TimeBlockGuest]:
        return (
            db.query(TimeBlockGuest)
            .filter(TimeBlockGuest.time_block_id == block_id)
            .order_by(TimeBlockGuest.id)
            .all()
        )

    @staticmethod
    def get_block_fills(db: Session, block_id: int) -> list[TimeBlockFill]:
        return (
            db.query(TimeBlockFill)
            .filter(TimeBlockFill.time_block_id == block_id)
            .order_by(TimeBlockFill.id)
            .all()
        )

    @staticmethod
    def count_member_bookings_between(db: Session, member_id: int, start: date, end: date) -> int:
        return (
            db.query(func.count(TimeBlockMember.id))
            .filter(
                TimeBlockMember.member_id == member_id,
                TimeBlockMember.booking_date >= start,
                TimeBlockMember.booking_date <= end,
            )
            .scalar()
            or 0
        )

    # ---- people ----

    @staticmethod
    def get_member(db: Session, member_id: int) -> Optional[Member]:
        return db.query(Member).filter(Member.id == member_id).first()

    @staticmethod
    def get_guest(db: Session, guest_id: int) -> Optional[Guest]:
        return db.query(Guest).filter(Guest.id == guest_id).first()

    # ---- restrictions ----

    @staticmethod
    def get_active_restrictions(db: Session, category: str) -> list[TimeblockRestriction]:
        return (
            db.query(TimeblockRestriction)
            .filter(
                TimeblockRestriction.is_active.is_(True),
                TimeblockRestriction.restriction_category == category,
            )
            .order_by(TimeblockRestriction.priority.desc(), TimeblockRestriction.id)
            .all()
        )

    @staticmethod
    def list_restrictions(
        db: Session, category: Optional[str] = None, include_inactive: bool = False
    ) -> list[TimeblockRestriction]:
        query = db.query(TimeblockRestriction)
        if category:
            query = query.filter(TimeblockRestriction.restriction_category == category)
        if not include_inactive:
            query = query.filter(TimeblockRestriction.is_active.is_(True))
        return query.order_by(TimeblockRestriction.priority.desc(), TimeblockRestriction.id).all()

    @staticmethod
    def get_restriction(db: Session, restriction_id: int) -> Optional[TimeblockRestriction]:
        return db.query(TimeblockRestriction).filter(TimeblockRestriction.id == restriction_id).first()

    @staticmethod
    def list_overrides(
        db: Session, restriction_id: Optional[int] = None, time_block_id: Optional[int] = None
    ) -> list[RestrictionOverride]:
        query = db.query(RestrictionOverride)
        if restriction_id is not None:
            query = query.filter(RestrictionOverride.restriction_id == restriction_id)
        if time_block_id is not None:
            query = query.filter(RestrictionOverride.time_block_id == time_block_id)
        return query.order_by(RestrictionOverride.id).all()
