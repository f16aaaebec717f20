"""Occupant variants - who (or what) is taking up a place in a tee time"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from ...models import TimeBlock, TimeBlockFill, TimeBlockGuest, TimeBlockMember


class InvitedByKind(str, Enum):
    NONE = "NONE"
    MEMBER = "MEMBER"
    COURSE = "COURSE"


class FillType(str, Enum):
    GUEST = "guest_fill"
    RECIPROCAL = "reciprocal_fill"
    CUSTOM = "custom_fill"


FILL_LABELS = {
    FillType.GUEST: "Guest Fill",
    FillType.RECIPROCAL: "Recip Fill",
    FillType.CUSTOM: "Custom Fill",
}


@dataclass(frozen=True)
class InvitedBy:
    """Who a guest is attributed to: nobody, a member, or the course itself"""

    kind: InvitedByKind
    member_id: Optional[int] = None

    def __post_init__(self):
        if self.kind == InvitedByKind.MEMBER and self.member_id is None:
            raise ValueError("A member invitation needs a member_id")
        if self.kind != InvitedByKind.MEMBER and self.member_id is not None:
            raise ValueError(f"A {self.kind.value} invitation cannot carry a member_id")

    @classmethod
    def member(cls, member_id: int) -> "InvitedBy":
        return cls(InvitedByKind.MEMBER, member_id)

    @classmethod
    def course(cls) -> "InvitedBy":
        return cls(InvitedByKind.COURSE)

    @classmethod
    def none(cls) -> "InvitedBy":
        return cls(InvitedByKind.NONE)


@dataclass(frozen=True)
class MemberOccupant:
    id: int
    time_block_id: int
    member_id: int
    booked_by_member_id: Optional[int]
    checked_in: bool = False
    kind: str = field(default="member", init=False)


@dataclass(frozen=True)
class GuestOccupant:
    id: int
    time_block_id: int
    guest_id: int
    invited_by: InvitedBy
    checked_in: bool = False
    kind: str = field(default="guest", init=False)


@dataclass(frozen=True)
class FillOccupant:
    id: int
    time_block_id: int
    fill_type: FillType
    custom_name: Optional[str]
    added_by_member_id: Optional[int]
    kind: str = field(default="fill", init=False)

    @property
    def label(self) -> str:
        if self.custom_name:
            return self.custom_name
        return FILL_LABELS.get(self.fill_type, "Fill")


Occupant = Union[MemberOccupant, GuestOccupant, FillOccupant]


def member_occupant(row: TimeBlockMember) -> MemberOccupant:
    return MemberOccupant(
        id=row.id,
        time_block_id=row.time_block_id,
        member_id=row.member_id,
        booked_by_member_id=row.booked_by_member_id,
        checked_in=bool(row.checked_in),
    )


def guest_occupant(row: TimeBlockGuest) -> GuestOccupant:
    if row.invited_by_kind == InvitedByKind.MEMBER.value:
        invited_by = InvitedBy.member(row.invited_by_member_id)
    else:
        invited_by = InvitedBy(InvitedByKind(row.invited_by_kind))
    return GuestOccupant(
        id=row.id,
        time_block_id=row.time_block_id,
        guest_id=row.guest_id,
        invited_by=invited_by,
        checked_in=bool(row.checked_in),
    )


def fill_occupant(row: TimeBlockFill) -> FillOccupant:
    return FillOccupant(
        id=row.id,
        time_block_id=row.time_block_id,
        fill_type=FillType(row.fill_type),
        custom_name=row.custom_name,
        added_by_member_id=row.added_by_member_id,
    )


@dataclass(frozen=True)
class BlockOccupancy:
    """Snapshot of a block's occupants against its capacity"""

    time_block_id: int
    max_members: int
    members: tuple[MemberOccupant, ...] = ()
    guests: tuple[GuestOccupant, ...] = ()
    fills: tuple[FillOccupant, ...] = ()

    @property
    def occupancy(self) -> int:
        return len(self.members) + len(self.guests) + len(self.fills)

    @property
    def available(self) -> int:
        return self.max_members - self.occupancy

    @property
    def is_available(self) -> bool:
        return self.available > 0

    @property
    def occupants(self) -> list[Occupant]:
        return [*self.members, *self.guests, *self.fills]

    @classmethod
    def from_block(cls, block: TimeBlock) -> "BlockOccupancy":
        return cls(
            time_block_id=block.id,
            max_members=block.max_members,
            members=tuple(member_occupant(m) for m in block.members),
            guests=tuple(guest_occupant(g) for g in block.guests),
            fills=tuple(fill_occupant(f) for f in block.fills),
        )
