"""
Restriction checks run before a booking.

TIME violations block the booking outright. Every other violation
(course availability, booking frequency) is advisory: the booking can go
ahead only on a second request that carries an explicit override.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Union

from sqlalchemy.orm import Session

from ...models import TimeblockRestriction
from ...shared.dates import DateLike, day_of_week, is_valid_hhmm, month_bounds, to_date
from .exceptions import InvalidConfiguration, NotFound
from .repository import SchedulingRepository

logger = logging.getLogger(__name__)

BLOCKING_TYPES = {"TIME"}


@dataclass(frozen=True)
class MemberActor:
    member_id: int
    member_class: Optional[str] = None


@dataclass(frozen=True)
class GuestActor:
    guest_id: int


Actor = Union[MemberActor, GuestActor]


@dataclass(frozen=True)
class RestrictionViolation:
    restriction_id: int
    restriction_name: str
    restriction_description: Optional[str]
    category: str
    type: str
    message: str
    can_override: bool

    @property
    def is_blocking(self) -> bool:
        return self.type in BLOCKING_TYPES


@dataclass
class RestrictionCheckResult:
    violations: list[RestrictionViolation] = field(default_factory=list)

    @property
    def has_violations(self) -> bool:
        return bool(self.violations)

    @property
    def blocking(self) -> list[RestrictionViolation]:
        return [v for v in self.violations if v.is_blocking]

    @property
    def advisory(self) -> list[RestrictionViolation]:
        return [v for v in self.violations if not v.is_blocking]

    @property
    def preferred_reason(self) -> Optional[str]:
        """Message to show first: course availability, then time, then whatever came first"""
        if not self.violations:
            return None
        for violation_type in ("AVAILABILITY", "TIME"):
            for violation in self.violations:
                if violation.type == violation_type:
                    return violation.restriction_description or violation.message
        first = self.violations[0]
        return first.restriction_description or first.message


def _applies_on_day(restriction: TimeblockRestriction, weekday: int) -> bool:
    # Empty or missing days_of_week applies every day
    return not restriction.days_of_week or weekday in restriction.days_of_week


def _within_dates(restriction: TimeblockRestriction, day: date) -> bool:
    if restriction.start_date and restriction.end_date:
        return restriction.start_date <= day <= restriction.end_date
    return True


def _within_hours(restriction: TimeblockRestriction, time: str) -> bool:
    # HH:MM strings compare correctly as text
    return (restriction.start_time or "00:00") <= time <= (restriction.end_time or "23:59")


def _violation(restriction: TimeblockRestriction, violation_type: str, message: str) -> RestrictionViolation:
    return RestrictionViolation(
        restriction_id=restriction.id,
        restriction_name=restriction.name,
        restriction_description=restriction.description,
        category=restriction.restriction_category,
        type=violation_type,
        message=message,
        can_override=bool(restriction.can_override),
    )


class RestrictionGate:
    """Evaluates active restrictions for an actor at a date and time. Reads only."""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SchedulingRepository()

    def actor_for_member(self, member_id: int) -> MemberActor:
        member = self.repo.get_member(self.db, member_id)
        if not member:
            raise NotFound(f"Member {member_id} not found", {"memberId": member_id})
        return MemberActor(member_id=member.id, member_class=member.member_class)

    def actor_for_guest(self, guest_id: int) -> GuestActor:
        if not self.repo.get_guest(self.db, guest_id):
            raise NotFound(f"Guest {guest_id} not found", {"guestId": guest_id})
        return GuestActor(guest_id=guest_id)

    def check(self, actor: Actor, target_date: DateLike, target_time: str) -> RestrictionCheckResult:
        try:
            day = to_date(target_date)
        except ValueError as e:
            raise InvalidConfiguration(str(e)) from e
        if not is_valid_hhmm(target_time):
            raise InvalidConfiguration(f"Invalid time '{target_time}' - expected HH:MM")

        weekday = day_of_week(day)
        violations: list[RestrictionViolation] = []

        for restriction in self.repo.get_active_restrictions(self.db, "COURSE_AVAILABILITY"):
            if restriction.start_date and restriction.end_date and _within_dates(restriction, day):
                violations.append(
                    _violation(
                        restriction,
                        "AVAILABILITY",
                        f"Course is restricted ({restriction.name}) from "
                        f"{restriction.start_date.strftime('%B %d, %Y')} to "
                        f"{restriction.end_date.strftime('%B %d, %Y')}",
                    )
                )

        if isinstance(actor, MemberActor):
            violations.extend(self._member_violations(actor, day, weekday, target_time))
        else:
            violations.extend(self._guest_violations(day, weekday, target_time))

        result = RestrictionCheckResult(violations=violations)
        if result.has_violations:
            logger.info(
                f"🚧 Restriction check for {actor} on {day} {target_time}: "
                f"{len(result.blocking)} blocking, {len(result.advisory)} advisory"
            )
        return result

    def _member_violations(
        self, actor: MemberActor, day: date, weekday: int, time: str
    ) -> list[RestrictionViolation]:
        # Members without a class are not covered by class restrictions
        if not actor.member_class:
            return []

        violations = []
        for restriction in self.repo.get_active_restrictions(self.db, "MEMBER_CLASS"):
            if restriction.member_classes and actor.member_class not in restriction.member_classes:
                continue

            if restriction.restriction_type == "TIME":
                if (
                    _applies_on_day(restriction, weekday)
                    and _within_hours(restriction, time)
                    and _within_dates(restriction, day)
                ):
                    violations.append(
                        _violation(
                            restriction,
                            "TIME",
                            f"Booking time ({time}) is within restricted hours "
                            f"({restriction.start_time or '00:00'} - {restriction.end_time or '23:59'})",
                        )
                    )

            elif restriction.restriction_type == "FREQUENCY" and restriction.max_count:
                first, last = month_bounds(day)
                current = self.repo.count_member_bookings_between(self.db, actor.member_id, first, last)
                if current + 1 > restriction.max_count:
                    violations.append(
                        _violation(
                            restriction,
                            "FREQUENCY",
                            f"Member has exceeded frequency limit ({current}/{restriction.max_count} "
                            f"bookings in {day.strftime('%B %Y')})",
                        )
                    )

        return violations

    def _guest_violations(self, day: date, weekday: int, time: str) -> list[RestrictionViolation]:
        violations = []
        for restriction in self.repo.get_active_restrictions(self.db, "GUEST"):
            if restriction.restriction_type != "TIME":
                continue
            if (
                _applies_on_day(restriction, weekday)
                and _within_hours(restriction, time)
                and _within_dates(restriction, day)
            ):
                violations.append(
                    _violation(
                        restriction,
                        "TIME",
                        f"Guest bookings are restricted between "
                        f"{restriction.start_time or '00:00'} and {restriction.end_time or '23:59'}",
                    )
                )
        return violations
