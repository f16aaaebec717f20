"""Directory router - FastAPI endpoints for members and guests"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ...models import Guest, Member
from .schemas import (
    GuestCreate,
    GuestResponse,
    GuestUpdate,
    MemberCreate,
    MemberResponse,
    MemberUpdate,
)
from .service import DirectoryService

logger = logging.getLogger(__name__)

members_router = APIRouter(prefix="/members", tags=["Members"])
guests_router = APIRouter(prefix="/guests", tags=["Guests"])


def get_directory_service(db: Session = Depends(get_db)) -> DirectoryService:
    """Dependency injection for DirectoryService"""
    return DirectoryService(db)


def member_response(member: Member) -> MemberResponse:
    return MemberResponse(
        id=member.id,
        memberNumber=member.member_number,
        firstName=member.first_name,
        lastName=member.last_name,
        memberClass=member.member_class,
        createdAt=member.created_at,
    )


def guest_response(guest: Guest) -> GuestResponse:
    return GuestResponse(
        id=guest.id,
        firstName=guest.first_name,
        lastName=guest.last_name,
        email=guest.email,
        createdAt=guest.created_at,
    )


# ============================================================================
# MEMBERS
# ============================================================================


@members_router.get("", response_model=list[MemberResponse])
async def get_members(
    search: Optional[str] = Query(None),
    memberClass: Optional[str] = Query(None),
    service: DirectoryService = Depends(get_directory_service),
):
    """Get members by name, optionally filtered by a search term and class"""
    return [member_response(m) for m in service.get_members(search, memberClass)]


@members_router.get("/{member_id}", response_model=MemberResponse)
async def get_member(member_id: int, service: DirectoryService = Depends(get_directory_service)):
    return member_response(service.get_member(member_id))


@members_router.post("", response_model=MemberResponse, status_code=201)
async def create_member(data: MemberCreate, service: DirectoryService = Depends(get_directory_service)):
    return member_response(service.create_member(data))


@members_router.patch("/{member_id}", response_model=MemberResponse)
async def update_member(
    member_id: int,
    data: MemberUpdate,
    service: DirectoryService = Depends(get_directory_service),
):
    """Update a member; only the fields sent are changed"""
    return member_response(service.update_member(member_id, data))


# ============================================================================
# GUESTS
# ============================================================================


@guests_router.get("", response_model=list[GuestResponse])
async def get_guests(
    search: Optional[str] = Query(None),
    service: DirectoryService = Depends(get_directory_service),
):
    return [guest_response(g) for g in service.get_guests(search)]


@guests_router.get("/{guest_id}", response_model=GuestResponse)
async def get_guest(guest_id: int, service: DirectoryService = Depends(get_directory_service)):
    return guest_response(service.get_guest(guest_id))


@guests_router.post("", response_model=GuestResponse, status_code=201)
async def create_guest(data: GuestCreate, service: DirectoryService = Depends(get_directory_service)):
    """Create a guest; full names must be unique"""
    return guest_response(service.create_guest(data))


@guests_router.patch("/{guest_id}", response_model=GuestResponse)
async def update_guest(
    guest_id: int,
    data: GuestUpdate,
    service: DirectoryService = Depends(get_directory_service),
):
    return guest_response(service.update_guest(guest_id, data))
