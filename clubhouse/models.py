from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class Template(Base):
    """Named, ordered list of tee time slots used by CUSTOM configs"""

    __tablename__ = "templates"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    blocks = relationship(
        "TemplateBlock",
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="TemplateBlock.sort_order",
    )


class TemplateBlock(Base):
    __tablename__ = "template_blocks"
    __table_args__ = (
        UniqueConstraint("template_id", "sort_order", name="template_blocks_template_sort_unq"),
    )

    id = Column(Integer, primary_key=True, index=True)
    template_id = Column(
        Integer, ForeignKey("templates.id", ondelete="CASCADE"), nullable=False, index=True
    )
    start_time = Column(String(5), nullable=False)  # HH:MM
    max_players = Column(Integer, nullable=False)
    display_name = Column(String(100), nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)

    template = relationship("Template", back_populates="blocks")


class ScheduleConfig(Base):
    """Schedule configuration that decides which tee times exist on a date"""

    __tablename__ = "schedule_configs"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), unique=True, nullable=False)
    kind = Column(String(10), nullable=False, default="REGULAR")  # REGULAR, CUSTOM
    # REGULAR configs
    start_time = Column(String(5), nullable=True)  # HH:MM
    end_time = Column(String(5), nullable=True)  # HH:MM
    interval_minutes = Column(Integer, nullable=True)
    # CUSTOM configs
    template_id = Column(Integer, ForeignKey("templates.id"), nullable=True)
    max_members_per_block = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    is_system_config = Column(Boolean, default=False, nullable=False)  # Fallback-eligible
    disallow_member_booking = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    rules = relationship(
        "ScheduleRule",
        back_populates="config",
        cascade="all, delete-orphan",
        order_by="ScheduleRule.id",
    )
    template = relationship("Template")


class ScheduleRule(Base):
    """
    Binds a config to calendar dates.
    Specific-date rule: start_date == end_date, days_of_week empty.
    Recurring rule: days_of_week set, optional start_date/end_date bounds.
    """

    __tablename__ = "schedule_rules"

    id = Column(Integer, primary_key=True, index=True)
    config_id = Column(
        Integer, ForeignKey("schedule_configs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    days_of_week = Column(JSON, nullable=True)  # [1,2,3,4,5] for Mon-Fri (0=Sunday)
    priority = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    config = relationship("ScheduleConfig", back_populates="rules")

    @property
    def is_specific_date(self) -> bool:
        return (
            self.start_date is not None
            and self.end_date is not None
            and self.start_date == self.end_date
            and not self.days_of_week
        )


class Teesheet(Base):
    """Materialized schedule for one calendar date (one row per date)"""

    __tablename__ = "teesheets"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, unique=True, nullable=False, index=True)
    config_id = Column(Integer, ForeignKey("schedule_configs.id", ondelete="SET NULL"), nullable=True)
    general_notes = Column(Text, nullable=True)
    is_public = Column(Boolean, default=False, nullable=False, index=True)
    published_at = Column(DateTime, nullable=True)
    published_by = Column(String(100), nullable=True)
    private_message = Column(
        Text, nullable=True, default="This teesheet is not yet available for booking."
    )
    disallow_member_booking = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    config = relationship("ScheduleConfig")
    time_blocks = relationship(
        "TimeBlock",
        back_populates="teesheet",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="TimeBlock.sort_order",
    )


class TimeBlock(Base):
    """One bookable tee time within a teesheet"""

    __tablename__ = "time_blocks"

    id = Column(Integer, primary_key=True, index=True)
    teesheet_id = Column(
        Integer, ForeignKey("teesheets.id", ondelete="CASCADE"), nullable=False, index=True
    )
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    max_members = Column(Integer, nullable=False, default=4)
    display_name = Column(String(100), nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    teesheet = relationship("Teesheet", back_populates="time_blocks")
    members = relationship(
        "TimeBlockMember",
        back_populates="time_block",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="TimeBlockMember.id",
    )
    guests = relationship(
        "TimeBlockGuest",
        back_populates="time_block",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="TimeBlockGuest.id",
    )
    fills = relationship(
        "TimeBlockFill",
        back_populates="time_block",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="TimeBlockFill.id",
    )


class Member(Base):
    __tablename__ = "members"

    id = Column(Integer, primary_key=True, index=True)
    member_number = Column(String(20), unique=True, nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    member_class = Column(String(50), nullable=True, index=True)
    created_at = Column(DateTime, server_default=func.now())


class Guest(Base):
    __tablename__ = "guests"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class TimeBlockMember(Base):
    __tablename__ = "time_block_members"
    __table_args__ = (
        UniqueConstraint("time_block_id", "member_id", name="block_members_time_block_member_unq"),
    )

    id = Column(Integer, primary_key=True, index=True)
    time_block_id = Column(
        Integer, ForeignKey("time_blocks.id", ondelete="CASCADE"), nullable=False, index=True
    )
    member_id = Column(
        Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # NULL means the slot is attributed to the house (admin booking)
    booked_by_member_id = Column(Integer, ForeignKey("members.id"), nullable=True)
    booking_date = Column(Date, nullable=False, index=True)
    booking_time = Column(String(5), nullable=False)
    checked_in = Column(Boolean, default=False, nullable=False)
    checked_in_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    time_block = relationship("TimeBlock", back_populates="members")
    member = relationship("Member", foreign_keys=[member_id])


class TimeBlockGuest(Base):
    __tablename__ = "time_block_guests"
    __table_args__ = (
        UniqueConstraint("time_block_id", "guest_id", name="block_guests_time_block_guest_unq"),
    )

    id = Column(Integer, primary_key=True, index=True)
    time_block_id = Column(
        Integer, ForeignKey("time_blocks.id", ondelete="CASCADE"), nullable=False, index=True
    )
    guest_id = Column(
        Integer, ForeignKey("guests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    invited_by_kind = Column(String(10), nullable=False, default="MEMBER")  # NONE, MEMBER, COURSE
    invited_by_member_id = Column(Integer, ForeignKey("members.id"), nullable=True)
    booking_date = Column(Date, nullable=False, index=True)
    booking_time = Column(String(5), nullable=False)
    checked_in = Column(Boolean, default=False, nullable=False)
    checked_in_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    time_block = relationship("TimeBlock", back_populates="guests")
    guest = relationship("Guest")


class TimeBlockFill(Base):
    """Placeholder occupant without a tracked person"""

    __tablename__ = "time_block_fills"

    id = Column(Integer, primary_key=True, index=True)
    time_block_id = Column(
        Integer, ForeignKey("time_blocks.id", ondelete="CASCADE"), nullable=False, index=True
    )
    fill_type = Column(String(50), nullable=False)  # guest_fill, reciprocal_fill, custom_fill
    custom_name = Column(String(100), nullable=True)  # Only for custom_fill
    added_by_member_id = Column(Integer, ForeignKey("members.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    time_block = relationship("TimeBlock", back_populates="fills")


class TimeblockRestriction(Base):
    __tablename__ = "timeblock_restrictions"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    # MEMBER_CLASS, GUEST, COURSE_AVAILABILITY
    restriction_category = Column(String(20), nullable=False, index=True)
    # TIME, FREQUENCY, AVAILABILITY
    restriction_type = Column(String(15), nullable=False, index=True)
    member_classes = Column(JSON, nullable=True)
    start_time = Column(String(5), nullable=True)
    end_time = Column(String(5), nullable=True)
    days_of_week = Column(JSON, nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    max_count = Column(Integer, nullable=True)
    period_days = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    can_override = Column(Boolean, default=True, nullable=False)
    priority = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class RestrictionOverride(Base):
    """Record of an authorized booking past an advisory restriction"""

    __tablename__ = "restriction_overrides"

    id = Column(Integer, primary_key=True, index=True)
    restriction_id = Column(Integer, ForeignKey("timeblock_restrictions.id"), nullable=True)
    time_block_id = Column(
        Integer, ForeignKey("time_blocks.id", ondelete="CASCADE"), nullable=True, index=True
    )
    member_id = Column(Integer, ForeignKey("members.id"), nullable=True)
    guest_id = Column(Integer, ForeignKey("guests.id"), nullable=True)
    overridden_by = Column(String(100), nullable=False)
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class SlotRequest(Base):
    """
    A member's pending request for a tee time on a date.
    Once placed, assigned_time_block_id points at a TimeBlock and must be
    cleared before that block is destroyed.
    """

    __tablename__ = "slot_requests"

    id = Column(Integer, primary_key=True, index=True)
    member_id = Column(Integer, ForeignKey("members.id"), nullable=False, index=True)
    request_date = Column(Date, nullable=False, index=True)
    preferred_time = Column(String(5), nullable=True)
    assigned_time_block_id = Column(
        Integer, ForeignKey("time_blocks.id", ondelete="SET NULL"), nullable=True, index=True
    )
    status = Column(String(20), default="PENDING", nullable=False)  # PENDING, ASSIGNED
    created_at = Column(DateTime, server_default=func.now())
