"""Scheduling domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...shared.validators import validate_days_of_week, validate_hhmm
from .occupants import FillType, InvitedByKind

# ============================================================================
# SCHEDULE CONFIGS
# ============================================================================


class ScheduleRuleCreate(BaseModel):
    """Specific-date rule: startDate == endDate, no daysOfWeek. Recurring rule: daysOfWeek set."""

    startDate: Optional[date] = None
    endDate: Optional[date] = None
    daysOfWeek: Optional[list[int]] = None
    priority: int = 0
    isActive: bool = True

    @field_validator("daysOfWeek")
    @classmethod
    def validate_days(cls, v):
        return validate_days_of_week(v)


class ScheduleRuleUpdate(BaseModel):
    startDate: Optional[date] = None
    endDate: Optional[date] = None
    daysOfWeek: Optional[list[int]] = None
    priority: Optional[int] = None
    isActive: Optional[bool] = None

    @field_validator("daysOfWeek")
    @classmethod
    def validate_days(cls, v):
        return validate_days_of_week(v)


class ScheduleRuleResponse(BaseModel):
    id: int
    configId: int
    startDate: Optional[date] = None
    endDate: Optional[date] = None
    daysOfWeek: Optional[list[int]] = None
    priority: int
    isActive: bool


class ScheduleConfigCreate(BaseModel):
    """Schema for creating a schedule config (REGULAR or CUSTOM)"""

    name: str = Field(..., min_length=1, max_length=50)
    kind: Literal["REGULAR", "CUSTOM"] = "REGULAR"
    startTime: Optional[str] = None
    endTime: Optional[str] = None
    intervalMinutes: Optional[int] = None
    templateId: Optional[int] = None
    maxMembersPerBlock: Optional[int] = Field(None, gt=0)
    isActive: bool = True
    isSystemConfig: bool = False
    disallowMemberBooking: bool = False
    rules: list[ScheduleRuleCreate] = []

    @field_validator("startTime", "endTime")
    @classmethod
    def validate_times(cls, v):
        return validate_hhmm(v)


class ScheduleConfigUpdate(BaseModel):
    """Only the fields sent are changed. The kind of a config is fixed once created."""

    name: Optional[str] = Field(None, min_length=1, max_length=50)
    startTime: Optional[str] = None
    endTime: Optional[str] = None
    intervalMinutes: Optional[int] = None
    templateId: Optional[int] = None
    maxMembersPerBlock: Optional[int] = Field(None, gt=0)
    isActive: Optional[bool] = None
    disallowMemberBooking: Optional[bool] = None

    @field_validator("startTime", "endTime")
    @classmethod
    def validate_times(cls, v):
        return validate_hhmm(v)


class ScheduleConfigResponse(BaseModel):
    id: int
    name: str
    kind: str
    startTime: Optional[str] = None
    endTime: Optional[str] = None
    intervalMinutes: Optional[int] = None
    templateId: Optional[int] = None
    maxMembersPerBlock: Optional[int] = None
    isActive: bool
    isSystemConfig: bool
    disallowMemberBooking: bool
    rules: list[ScheduleRuleResponse] = []


class TemplateBlockCreate(BaseModel):
    startTime: str
    maxPlayers: int = Field(..., gt=0)
    displayName: Optional[str] = None

    @field_validator("startTime")
    @classmethod
    def validate_start_time(cls, v):
        return validate_hhmm(v)


class TemplateCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    blocks: list[TemplateBlockCreate] = Field(..., min_length=1)


class TemplateBlockResponse(BaseModel):
    id: int
    startTime: str
    maxPlayers: int
    displayName: Optional[str] = None
    sortOrder: int


class TemplateResponse(BaseModel):
    id: int
    name: str
    blocks: list[TemplateBlockResponse] = []


class ConfigResolutionResponse(BaseModel):
    date: date
    dayOfWeek: int
    config: Optional[ScheduleConfigResponse] = None


# ============================================================================
# TEESHEETS
# ============================================================================


class MemberOccupantResponse(BaseModel):
    id: int
    kind: Literal["member"] = "member"
    memberId: int
    bookedByMemberId: Optional[int] = None
    checkedIn: bool = False


class InvitedByResponse(BaseModel):
    kind: InvitedByKind
    memberId: Optional[int] = None


class GuestOccupantResponse(BaseModel):
    id: int
    kind: Literal["guest"] = "guest"
    guestId: int
    invitedBy: InvitedByResponse
    checkedIn: bool = False


class FillOccupantResponse(BaseModel):
    id: int
    kind: Literal["fill"] = "fill"
    fillType: FillType
    customName: Optional[str] = None
    label: str
    addedByMemberId: Optional[int] = None


class TimeBlockResponse(BaseModel):
    id: int
    startTime: str
    endTime: str
    maxMembers: int
    displayName: Optional[str] = None
    sortOrder: int
    notes: Optional[str] = None
    occupancy: int
    available: int
    isAvailable: bool
    members: list[MemberOccupantResponse] = []
    guests: list[GuestOccupantResponse] = []
    fills: list[FillOccupantResponse] = []


class TeesheetResponse(BaseModel):
    id: int
    date: date
    configId: Optional[int] = None
    configName: Optional[str] = None
    isPublic: bool
    publishedAt: Optional[datetime] = None
    privateMessage: Optional[str] = None
    generalNotes: Optional[str] = None
    disallowMemberBooking: bool
    timeBlocks: list[TimeBlockResponse] = []


class ReassignConfigRequest(BaseModel):
    """Rebuilding blocks deletes every booking on the sheet, so callers must confirm"""

    configId: int
    confirm: bool = False


class VisibilityUpdate(BaseModel):
    isPublic: bool
    privateMessage: Optional[str] = Field(None, max_length=2000)
    publishedBy: Optional[str] = Field(None, max_length=100)


class NotesUpdate(BaseModel):
    notes: Optional[str] = Field(None, max_length=2000)


# ============================================================================
# BOOKINGS
# ============================================================================


class OverrideFields(BaseModel):
    """Explicit override of advisory restrictions (second call after a 403)"""

    override: bool = False
    overriddenBy: Optional[str] = None
    overrideReason: Optional[str] = None

    @model_validator(mode="after")
    def require_override_actor(self):
        if self.override and not self.overriddenBy:
            raise ValueError("overriddenBy is required when override is set")
        return self


class BookMemberRequest(OverrideFields):
    memberId: int
    # Member making the request; None for bookings made by club staff
    actingMemberId: Optional[int] = None
    # Defaults to actingMemberId
    bookedByMemberId: Optional[int] = None


class BookGuestRequest(OverrideFields):
    guestId: int
    actingMemberId: Optional[int] = None
    invitedByMemberId: Optional[int] = None
    courseSponsored: bool = False

    @model_validator(mode="after")
    def validate_invited_by(self):
        if self.courseSponsored and self.invitedByMemberId is not None:
            raise ValueError("A course-sponsored guest cannot also be invited by a member")
        return self


class AddFillRequest(BaseModel):
    fillType: FillType
    customName: Optional[str] = Field(None, max_length=100)
    addedByMemberId: Optional[int] = None


class BookedByUpdate(BaseModel):
    # None attributes the booking to the house
    bookedByMemberId: Optional[int] = None


class CheckInUpdate(BaseModel):
    checkedIn: bool


class RemoveOccupantResponse(BaseModel):
    removed: bool


class MovePartyRequest(BaseModel):
    targetBlockId: int


class MovePartyResponse(BaseModel):
    sourceBlockId: int
    targetBlockId: int
    movedCount: int


# ============================================================================
# RESTRICTIONS
# ============================================================================


class RestrictionCheckRequest(BaseModel):
    memberId: Optional[int] = None
    guestId: Optional[int] = None
    date: date
    time: str

    @field_validator("time")
    @classmethod
    def validate_time(cls, v):
        return validate_hhmm(v)

    @model_validator(mode="after")
    def validate_actor(self):
        if (self.memberId is None) == (self.guestId is None):
            raise ValueError("Exactly one of memberId or guestId is required")
        return self


class RestrictionViolationResponse(BaseModel):
    restrictionId: int
    restrictionName: str
    restrictionDescription: Optional[str] = None
    category: str
    type: str
    message: str
    canOverride: bool
    blocking: bool


class RestrictionCheckResponse(BaseModel):
    hasViolations: bool
    blocking: list[RestrictionViolationResponse] = []
    advisory: list[RestrictionViolationResponse] = []
    preferredReason: Optional[str] = None


RestrictionCategory = Literal["MEMBER_CLASS", "GUEST", "COURSE_AVAILABILITY"]
RestrictionType = Literal["TIME", "FREQUENCY", "AVAILABILITY"]


class RestrictionCreate(BaseModel):
    """
    MEMBER_CLASS restrictions are TIME or FREQUENCY, GUEST restrictions are
    TIME, and COURSE_AVAILABILITY restrictions are AVAILABILITY over a date range.
    """

    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=2000)
    restrictionCategory: RestrictionCategory
    restrictionType: RestrictionType
    # None or empty applies to every class
    memberClasses: Optional[list[str]] = None
    startTime: Optional[str] = None
    endTime: Optional[str] = None
    daysOfWeek: Optional[list[int]] = None
    startDate: Optional[date] = None
    endDate: Optional[date] = None
    maxCount: Optional[int] = Field(None, gt=0)
    periodDays: Optional[int] = Field(None, gt=0)
    isActive: bool = True
    canOverride: bool = True
    priority: int = 0

    @field_validator("startTime", "endTime")
    @classmethod
    def validate_times(cls, v):
        return validate_hhmm(v)

    @field_validator("daysOfWeek")
    @classmethod
    def validate_days(cls, v):
        return validate_days_of_week(v)


class RestrictionUpdate(BaseModel):
    """Only the fields sent are changed"""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=2000)
    restrictionCategory: Optional[RestrictionCategory] = None
    restrictionType: Optional[RestrictionType] = None
    memberClasses: Optional[list[str]] = None
    startTime: Optional[str] = None
    endTime: Optional[str] = None
    daysOfWeek: Optional[list[int]] = None
    startDate: Optional[date] = None
    endDate: Optional[date] = None
    maxCount: Optional[int] = Field(None, gt=0)
    periodDays: Optional[int] = Field(None, gt=0)
    isActive: Optional[bool] = None
    canOverride: Optional[bool] = None
    priority: Optional[int] = None

    @field_validator("startTime", "endTime")
    @classmethod
    def validate_times(cls, v):
        return validate_hhmm(v)

    @field_validator("daysOfWeek")
    @classmethod
    def validate_days(cls, v):
        return validate_days_of_week(v)


class RestrictionResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    restrictionCategory: str
    restrictionType: str
    memberClasses: Optional[list[str]] = None
    startTime: Optional[str] = None
    endTime: Optional[str] = None
    daysOfWeek: Optional[list[int]] = None
    startDate: Optional[date] = None
    endDate: Optional[date] = None
    maxCount: Optional[int] = None
    periodDays: Optional[int] = None
    isActive: bool
    canOverride: bool
    priority: int


class RestrictionOverrideResponse(BaseModel):
    id: int
    restrictionId: Optional[int] = None
    timeBlockId: Optional[int] = None
    memberId: Optional[int] = None
    guestId: Optional[int] = None
    overriddenBy: str
    reason: Optional[str] = None
    createdAt: Optional[datetime] = None
