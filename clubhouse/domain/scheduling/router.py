"""Scheduling router - FastAPI endpoints for teesheets, bookings, schedule configs and restrictions"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...config import BOOKING_RATE_LIMIT, BOOKING_RATE_WINDOW_SECONDS
from ...database import get_db
from ...models import (
    RestrictionOverride,
    ScheduleConfig,
    ScheduleRule,
    Teesheet,
    Template,
    TimeBlock,
    TimeblockRestriction,
)
from ...rate_limiter import create_rate_limiter
from ...shared.dates import club_today, day_of_week, to_date
from .config_service import ScheduleConfigService
from .exceptions import InvalidConfiguration
from .ledger import OccupancyLedger
from .materializer import TimeBlockMaterializer
from .occupants import BlockOccupancy, FillOccupant, GuestOccupant, MemberOccupant
from .party_mover import PartyMover
from .restriction_service import RestrictionService
from .restrictions import RestrictionCheckResult, RestrictionViolation
from .schemas import (
    AddFillRequest,
    BookedByUpdate,
    BookGuestRequest,
    BookMemberRequest,
    CheckInUpdate,
    ConfigResolutionResponse,
    FillOccupantResponse,
    GuestOccupantResponse,
    InvitedByResponse,
    MemberOccupantResponse,
    MovePartyRequest,
    MovePartyResponse,
    NotesUpdate,
    ReassignConfigRequest,
    RemoveOccupantResponse,
    RestrictionCheckRequest,
    RestrictionCheckResponse,
    RestrictionCreate,
    RestrictionOverrideResponse,
    RestrictionResponse,
    RestrictionUpdate,
    RestrictionViolationResponse,
    ScheduleConfigCreate,
    ScheduleConfigResponse,
    ScheduleConfigUpdate,
    ScheduleRuleCreate,
    ScheduleRuleResponse,
    ScheduleRuleUpdate,
    TeesheetResponse,
    TemplateBlockResponse,
    TemplateCreate,
    TemplateResponse,
    TimeBlockResponse,
    VisibilityUpdate,
)
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/teesheets", tags=["Teesheets"])
settings_router = APIRouter(prefix="/schedule-configs", tags=["Schedule Configs"])
restrictions_router = APIRouter(prefix="/restrictions", tags=["Restrictions"])

booking_rate_limit = create_rate_limiter(
    limit=BOOKING_RATE_LIMIT, window_seconds=BOOKING_RATE_WINDOW_SECONDS, key_prefix="booking"
)


def get_materializer(db: Session = Depends(get_db)) -> TimeBlockMaterializer:
    """Dependency injection for TimeBlockMaterializer"""
    return TimeBlockMaterializer(db)


def get_ledger(db: Session = Depends(get_db)) -> OccupancyLedger:
    """Dependency injection for OccupancyLedger"""
    return OccupancyLedger(db)


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db)


def get_party_mover(db: Session = Depends(get_db)) -> PartyMover:
    """Dependency injection for PartyMover"""
    return PartyMover(db)


def get_config_service(db: Session = Depends(get_db)) -> ScheduleConfigService:
    """Dependency injection for ScheduleConfigService"""
    return ScheduleConfigService(db)


def get_restriction_service(db: Session = Depends(get_db)) -> RestrictionService:
    """Dependency injection for RestrictionService"""
    return RestrictionService(db)


# ============================================================================
# RESPONSE BUILDERS
# ============================================================================


def member_response(occupant: MemberOccupant) -> MemberOccupantResponse:
    return MemberOccupantResponse(
        id=occupant.id,
        memberId=occupant.member_id,
        bookedByMemberId=occupant.booked_by_member_id,
        checkedIn=occupant.checked_in,
    )


def guest_response(occupant: GuestOccupant) -> GuestOccupantResponse:
    return GuestOccupantResponse(
        id=occupant.id,
        guestId=occupant.guest_id,
        invitedBy=InvitedByResponse(
            kind=occupant.invited_by.kind, memberId=occupant.invited_by.member_id
        ),
        checkedIn=occupant.checked_in,
    )


def fill_response(occupant: FillOccupant) -> FillOccupantResponse:
    return FillOccupantResponse(
        id=occupant.id,
        fillType=occupant.fill_type,
        customName=occupant.custom_name,
        label=occupant.label,
        addedByMemberId=occupant.added_by_member_id,
    )


def block_response(block: TimeBlock, occupancy: BlockOccupancy) -> TimeBlockResponse:
    return TimeBlockResponse(
        id=block.id,
        startTime=block.start_time,
        endTime=block.end_time,
        maxMembers=block.max_members,
        displayName=block.display_name,
        sortOrder=block.sort_order,
        notes=block.notes,
        occupancy=occupancy.occupancy,
        available=occupancy.available,
        isAvailable=occupancy.is_available,
        members=[member_response(m) for m in occupancy.members],
        guests=[guest_response(g) for g in occupancy.guests],
        fills=[fill_response(f) for f in occupancy.fills],
    )


def teesheet_response(teesheet: Teesheet) -> TeesheetResponse:
    config = teesheet.config
    return TeesheetResponse(
        id=teesheet.id,
        date=teesheet.date,
        configId=teesheet.config_id,
        configName=config.name if config else None,
        isPublic=teesheet.is_public,
        publishedAt=teesheet.published_at,
        privateMessage=teesheet.private_message,
        generalNotes=teesheet.general_notes,
        disallowMemberBooking=teesheet.disallow_member_booking,
        timeBlocks=[block_response(b, BlockOccupancy.from_block(b)) for b in teesheet.time_blocks],
    )


def config_response(config: ScheduleConfig) -> ScheduleConfigResponse:
    return ScheduleConfigResponse(
        id=config.id,
        name=config.name,
        kind=config.kind,
        startTime=config.start_time,
        endTime=config.end_time,
        intervalMinutes=config.interval_minutes,
        templateId=config.template_id,
        maxMembersPerBlock=config.max_members_per_block,
        isActive=config.is_active,
        isSystemConfig=config.is_system_config,
        disallowMemberBooking=config.disallow_member_booking,
        rules=[rule_response(r) for r in config.rules],
    )


def rule_response(rule: ScheduleRule) -> ScheduleRuleResponse:
    return ScheduleRuleResponse(
        id=rule.id,
        configId=rule.config_id,
        startDate=rule.start_date,
        endDate=rule.end_date,
        daysOfWeek=rule.days_of_week,
        priority=rule.priority,
        isActive=rule.is_active,
    )


def violation_response(violation: RestrictionViolation) -> RestrictionViolationResponse:
    return RestrictionViolationResponse(
        restrictionId=violation.restriction_id,
        restrictionName=violation.restriction_name,
        restrictionDescription=violation.restriction_description,
        category=violation.category,
        type=violation.type,
        message=violation.message,
        canOverride=violation.can_override,
        blocking=violation.is_blocking,
    )


def restriction_check_response(result: RestrictionCheckResult) -> RestrictionCheckResponse:
    return RestrictionCheckResponse(
        hasViolations=result.has_violations,
        blocking=[violation_response(v) for v in result.blocking],
        advisory=[violation_response(v) for v in result.advisory],
        preferredReason=result.preferred_reason,
    )


def restriction_response(restriction: TimeblockRestriction) -> RestrictionResponse:
    return RestrictionResponse(
        id=restriction.id,
        name=restriction.name,
        description=restriction.description,
        restrictionCategory=restriction.restriction_category,
        restrictionType=restriction.restriction_type,
        memberClasses=restriction.member_classes,
        startTime=restriction.start_time,
        endTime=restriction.end_time,
        daysOfWeek=restriction.days_of_week,
        startDate=restriction.start_date,
        endDate=restriction.end_date,
        maxCount=restriction.max_count,
        periodDays=restriction.period_days,
        isActive=restriction.is_active,
        canOverride=restriction.can_override,
        priority=restriction.priority,
    )


def override_response(override: RestrictionOverride) -> RestrictionOverrideResponse:
    return RestrictionOverrideResponse(
        id=override.id,
        restrictionId=override.restriction_id,
        timeBlockId=override.time_block_id,
        memberId=override.member_id,
        guestId=override.guest_id,
        overriddenBy=override.overridden_by,
        reason=override.reason,
        createdAt=override.created_at,
    )


def template_response(template: Template) -> TemplateResponse:
    return TemplateResponse(
        id=template.id,
        name=template.name,
        blocks=[
            TemplateBlockResponse(
                id=b.id,
                startTime=b.start_time,
                maxPlayers=b.max_players,
                displayName=b.display_name,
                sortOrder=b.sort_order,
            )
            for b in template.blocks
        ],
    )


# ============================================================================
# RESTRICTIONS
# ============================================================================


@router.post("/restrictions/check", response_model=RestrictionCheckResponse)
async def check_restrictions(
    data: RestrictionCheckRequest,
    service: BookingService = Depends(get_booking_service),
):
    """Check restrictions for a member or guest at a date and time without booking"""
    return restriction_check_response(service.check_restrictions(data))


# ============================================================================
# TIME BLOCKS AND BOOKINGS
# ============================================================================


@router.get("/blocks/{block_id}", response_model=TimeBlockResponse)
async def get_time_block(
    block_id: int,
    ledger: OccupancyLedger = Depends(get_ledger),
):
    """Get a time block with its occupants and remaining capacity"""
    occupancy = ledger.get_block_occupancy(block_id)
    return block_response(ledger.get_block(block_id), occupancy)


@router.patch("/blocks/{block_id}/notes", response_model=TimeBlockResponse)
async def update_block_notes(
    block_id: int,
    data: NotesUpdate,
    materializer: TimeBlockMaterializer = Depends(get_materializer),
    ledger: OccupancyLedger = Depends(get_ledger),
):
    block = materializer.update_block_notes(block_id, data.notes)
    return block_response(block, ledger.get_block_occupancy(block_id))


@router.post("/blocks/{block_id}/members", response_model=MemberOccupantResponse, status_code=201)
async def book_member(
    block_id: int,
    data: BookMemberRequest,
    service: BookingService = Depends(get_booking_service),
    _: None = Depends(booking_rate_limit),
):
    """
    Book a member into a time block.
    A 403 with overridable=true can be retried with override=true.
    """
    return member_response(service.book_member(block_id, data))


@router.post("/blocks/{block_id}/guests", response_model=GuestOccupantResponse, status_code=201)
async def book_guest(
    block_id: int,
    data: BookGuestRequest,
    service: BookingService = Depends(get_booking_service),
    _: None = Depends(booking_rate_limit),
):
    """Book a guest into a time block, invited by a member or sponsored by the course"""
    return guest_response(service.book_guest(block_id, data))


@router.post("/blocks/{block_id}/fills", response_model=FillOccupantResponse, status_code=201)
async def add_fill(
    block_id: int,
    data: AddFillRequest,
    ledger: OccupancyLedger = Depends(get_ledger),
    _: None = Depends(booking_rate_limit),
):
    """Hold places in a time block without naming players"""
    return fill_response(ledger.add_fill(block_id, data.fillType, data.customName, data.addedByMemberId))


@router.patch(
    "/blocks/{block_id}/members/{member_id}/booked-by", response_model=MemberOccupantResponse
)
async def reassign_booked_by(
    block_id: int,
    member_id: int,
    data: BookedByUpdate,
    ledger: OccupancyLedger = Depends(get_ledger),
):
    """Attribute a member's booking to another member, or to the house"""
    return member_response(ledger.reassign_booked_by(block_id, member_id, data.bookedByMemberId))


@router.post("/blocks/{block_id}/move", response_model=MovePartyResponse)
async def move_party(
    block_id: int,
    data: MovePartyRequest,
    mover: PartyMover = Depends(get_party_mover),
    _: None = Depends(booking_rate_limit),
):
    """Move everyone in a time block to another time block, all or nothing"""
    moved = mover.move_party(block_id, data.targetBlockId)
    return MovePartyResponse(sourceBlockId=block_id, targetBlockId=data.targetBlockId, movedCount=moved)


# ============================================================================
# OCCUPANTS
# ============================================================================


@router.delete("/occupants/members/{occupant_id}", response_model=RemoveOccupantResponse)
async def remove_member(occupant_id: int, ledger: OccupancyLedger = Depends(get_ledger)):
    """Remove a member from their time block (succeeds if already removed)"""
    return RemoveOccupantResponse(removed=ledger.remove_member(occupant_id))


@router.delete("/occupants/guests/{occupant_id}", response_model=RemoveOccupantResponse)
async def remove_guest(occupant_id: int, ledger: OccupancyLedger = Depends(get_ledger)):
    return RemoveOccupantResponse(removed=ledger.remove_guest(occupant_id))


@router.delete("/occupants/fills/{occupant_id}", response_model=RemoveOccupantResponse)
async def remove_fill(occupant_id: int, ledger: OccupancyLedger = Depends(get_ledger)):
    return RemoveOccupantResponse(removed=ledger.remove_fill(occupant_id))


@router.patch("/occupants/members/{occupant_id}/check-in", response_model=MemberOccupantResponse)
async def check_in_member(
    occupant_id: int, data: CheckInUpdate, ledger: OccupancyLedger = Depends(get_ledger)
):
    return member_response(ledger.set_member_checked_in(occupant_id, data.checkedIn))


@router.patch("/occupants/guests/{occupant_id}/check-in", response_model=GuestOccupantResponse)
async def check_in_guest(
    occupant_id: int, data: CheckInUpdate, ledger: OccupancyLedger = Depends(get_ledger)
):
    return guest_response(ledger.set_guest_checked_in(occupant_id, data.checkedIn))


# ============================================================================
# TEESHEETS
# ============================================================================


@router.get("/today", response_model=TeesheetResponse)
async def get_todays_teesheet(materializer: TimeBlockMaterializer = Depends(get_materializer)):
    """Get today's teesheet in the club's timezone"""
    result = materializer.get_or_create(club_today())
    return teesheet_response(result.teesheet)


@router.get("/{teesheet_date}", response_model=TeesheetResponse)
async def get_teesheet(
    teesheet_date: str,
    materializer: TimeBlockMaterializer = Depends(get_materializer),
):
    """Get the teesheet for a date (YYYY-MM-DD), creating it on first access"""
    result = materializer.get_or_create(teesheet_date)
    return teesheet_response(result.teesheet)


@router.post("/{teesheet_id}/reassign-config", response_model=TeesheetResponse)
async def reassign_config(
    teesheet_id: int,
    data: ReassignConfigRequest,
    materializer: TimeBlockMaterializer = Depends(get_materializer),
):
    """
    Switch a teesheet to another config and rebuild its time blocks.
    Every booking on the teesheet is deleted, so confirm must be true.
    """
    if not data.confirm:
        raise HTTPException(
            status_code=400,
            detail="Reassigning the config deletes every booking on this teesheet - resend with confirm=true",
        )
    result = materializer.reassign_config(teesheet_id, data.configId)
    return teesheet_response(result.teesheet)


@router.patch("/{teesheet_id}/visibility", response_model=TeesheetResponse)
async def update_visibility(
    teesheet_id: int,
    data: VisibilityUpdate,
    materializer: TimeBlockMaterializer = Depends(get_materializer),
):
    teesheet = materializer.update_visibility(
        teesheet_id, data.isPublic, data.privateMessage, data.publishedBy
    )
    return teesheet_response(teesheet)


@router.patch("/{teesheet_id}/notes", response_model=TeesheetResponse)
async def update_general_notes(
    teesheet_id: int,
    data: NotesUpdate,
    materializer: TimeBlockMaterializer = Depends(get_materializer),
):
    teesheet = materializer.update_general_notes(teesheet_id, data.notes)
    return teesheet_response(teesheet)


# ============================================================================
# SCHEDULE CONFIGS
# ============================================================================


@settings_router.get("", response_model=list[ScheduleConfigResponse])
async def list_configs(service: ScheduleConfigService = Depends(get_config_service)):
    """Get all schedule configs with their rules"""
    return [config_response(c) for c in service.list_configs()]


@settings_router.post("", response_model=ScheduleConfigResponse, status_code=201)
async def create_config(
    data: ScheduleConfigCreate,
    service: ScheduleConfigService = Depends(get_config_service),
):
    return config_response(service.create_config(data))


@settings_router.post("/templates", response_model=TemplateResponse, status_code=201)
async def create_template(
    data: TemplateCreate,
    service: ScheduleConfigService = Depends(get_config_service),
):
    return template_response(service.create_template(data))


@settings_router.get("/resolve/{config_date}", response_model=ConfigResolutionResponse)
async def resolve_config(
    config_date: str,
    service: ScheduleConfigService = Depends(get_config_service),
):
    """Preview which config governs a date without creating its teesheet"""
    try:
        day = to_date(config_date)
    except ValueError as e:
        raise InvalidConfiguration(str(e)) from e
    config = service.resolve(day)
    return ConfigResolutionResponse(
        date=day,
        dayOfWeek=day_of_week(day),
        config=config_response(config) if config else None,
    )


@settings_router.post("/{config_id}/rules", response_model=ScheduleRuleResponse, status_code=201)
async def add_rule(
    config_id: int,
    data: ScheduleRuleCreate,
    service: ScheduleConfigService = Depends(get_config_service),
):
    """Attach a rule to a config; rules that would make resolution ambiguous are rejected"""
    return rule_response(service.add_rule(config_id, data))


@settings_router.patch("/rules/{rule_id}", response_model=ScheduleRuleResponse)
async def update_rule(
    rule_id: int,
    data: ScheduleRuleUpdate,
    service: ScheduleConfigService = Depends(get_config_service),
):
    return rule_response(service.update_rule(rule_id, data))


@settings_router.delete("/rules/{rule_id}", response_model=ScheduleRuleResponse)
async def deactivate_rule(rule_id: int, service: ScheduleConfigService = Depends(get_config_service)):
    """Deactivate a rule; it stays on the config and can be re-enabled"""
    return rule_response(service.deactivate_rule(rule_id))


@settings_router.patch("/{config_id}", response_model=ScheduleConfigResponse)
async def update_config(
    config_id: int,
    data: ScheduleConfigUpdate,
    service: ScheduleConfigService = Depends(get_config_service),
):
    """
    Update a config. Existing teesheets keep their time blocks;
    use reassign-config to rebuild one.
    """
    return config_response(service.update_config(config_id, data))


@settings_router.delete("/{config_id}", response_model=ScheduleConfigResponse)
async def deactivate_config(config_id: int, service: ScheduleConfigService = Depends(get_config_service)):
    """Deactivate a config so no new date resolves to it"""
    return config_response(service.deactivate_config(config_id))


# ============================================================================
# RESTRICTION MANAGEMENT
# ============================================================================


@restrictions_router.get("", response_model=list[RestrictionResponse])
async def list_restrictions(
    category: Optional[str] = Query(None),
    includeInactive: bool = Query(False),
    service: RestrictionService = Depends(get_restriction_service),
):
    """Get restrictions, highest priority first"""
    return [restriction_response(r) for r in service.list_restrictions(category, includeInactive)]


@restrictions_router.get("/overrides", response_model=list[RestrictionOverrideResponse])
async def list_overrides(
    restrictionId: Optional[int] = Query(None),
    timeBlockId: Optional[int] = Query(None),
    service: RestrictionService = Depends(get_restriction_service),
):
    """Audit trail of bookings made past an advisory restriction"""
    return [override_response(o) for o in service.list_overrides(restrictionId, timeBlockId)]


@restrictions_router.get("/{restriction_id}", response_model=RestrictionResponse)
async def get_restriction(
    restriction_id: int, service: RestrictionService = Depends(get_restriction_service)
):
    return restriction_response(service.get_restriction(restriction_id))


@restrictions_router.post("", response_model=RestrictionResponse, status_code=201)
async def create_restriction(
    data: RestrictionCreate,
    service: RestrictionService = Depends(get_restriction_service),
):
    return restriction_response(service.create_restriction(data))


@restrictions_router.patch("/{restriction_id}", response_model=RestrictionResponse)
async def update_restriction(
    restriction_id: int,
    data: RestrictionUpdate,
    service: RestrictionService = Depends(get_restriction_service),
):
    return restriction_response(service.update_restriction(restriction_id, data))


@restrictions_router.delete("/{restriction_id}", response_model=RestrictionResponse)
async def deactivate_restriction(
    restriction_id: int, service: RestrictionService = Depends(get_restriction_service)
):
    """Deactivate a restriction; recorded overrides keep pointing at it"""
    return restriction_response(service.deactivate_restriction(restriction_id))
