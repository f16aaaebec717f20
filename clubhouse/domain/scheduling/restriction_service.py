"""Restriction management - admin writes for timeblock restrictions"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...models import RestrictionOverride, TimeblockRestriction
from ...utils.sanitization import sanitize_label, sanitize_text
from .exceptions import InvalidConfiguration, NotFound
from .repository import SchedulingRepository
from .schemas import RestrictionCreate, RestrictionUpdate

logger = logging.getLogger(__name__)

COLUMNS = {
    "name": "name",
    "description": "description",
    "restrictionCategory": "restriction_category",
    "restrictionType": "restriction_type",
    "memberClasses": "member_classes",
    "startTime": "start_time",
    "endTime": "end_time",
    "daysOfWeek": "days_of_week",
    "startDate": "start_date",
    "endDate": "end_date",
    "maxCount": "max_count",
    "periodDays": "period_days",
    "isActive": "is_active",
    "canOverride": "can_override",
    "priority": "priority",
}
REQUIRED_COLUMNS = {"name", "restriction_category", "restriction_type", "is_active", "can_override", "priority"}

# Restriction types each category is evaluated for
ALLOWED_TYPES = {
    "MEMBER_CLASS": {"TIME", "FREQUENCY"},
    "GUEST": {"TIME"},
    "COURSE_AVAILABILITY": {"AVAILABILITY"},
}


class RestrictionService:
    """Create, list and change the restrictions the booking gate evaluates"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SchedulingRepository()

    def list_restrictions(
        self, category: Optional[str] = None, include_inactive: bool = False
    ) -> list[TimeblockRestriction]:
        return self.repo.list_restrictions(self.db, category, include_inactive)

    def get_restriction(self, restriction_id: int) -> TimeblockRestriction:
        restriction = self.repo.get_restriction(self.db, restriction_id)
        if not restriction:
            raise NotFound(f"Restriction {restriction_id} not found", {"restrictionId": restriction_id})
        return restriction

    def list_overrides(
        self, restriction_id: Optional[int] = None, time_block_id: Optional[int] = None
    ) -> list[RestrictionOverride]:
        return self.repo.list_overrides(self.db, restriction_id, time_block_id)

    def create_restriction(self, data: RestrictionCreate) -> TimeblockRestriction:
        values = {COLUMNS[field]: value for field, value in data.model_dump().items()}
        values = self._clean(values)
        self._validate(values)

        restriction = TimeblockRestriction(**values)
        self.db.add(restriction)
        self.db.commit()
        self.db.refresh(restriction)

        logger.info(
            f"✅ Created {restriction.restriction_category}/{restriction.restriction_type} "
            f"restriction {restriction.id} '{restriction.name}'"
        )
        return restriction

    def update_restriction(self, restriction_id: int, data: RestrictionUpdate) -> TimeblockRestriction:
        """
        Change the fields sent. The merged restriction is validated as a whole,
        so changing the category may require changing the type in the same call.
        """
        restriction = self.get_restriction(restriction_id)

        changes = {COLUMNS[field]: value for field, value in data.model_dump(exclude_unset=True).items()}
        for column, value in changes.items():
            if value is None and column in REQUIRED_COLUMNS:
                raise InvalidConfiguration(f"{column} cannot be cleared")
        changes = self._clean(changes)

        merged = {column: getattr(restriction, column) for column in COLUMNS.values()}
        merged.update(changes)
        self._validate(merged)

        for column, value in changes.items():
            setattr(restriction, column, value)
        self.db.commit()
        self.db.refresh(restriction)

        logger.info(f"✅ Updated restriction {restriction.id}: {', '.join(sorted(changes)) or 'no changes'}")
        return restriction

    def deactivate_restriction(self, restriction_id: int) -> TimeblockRestriction:
        """Stop enforcing a restriction. The row stays so recorded overrides keep their reference."""
        restriction = self.get_restriction(restriction_id)
        restriction.is_active = False
        self.db.commit()
        self.db.refresh(restriction)

        logger.info(f"🛑 Restriction {restriction.id} '{restriction.name}' deactivated")
        return restriction

    # ========================================================================
    # VALIDATION
    # ========================================================================

    @staticmethod
    def _clean(values: dict) -> dict:
        try:
            if "name" in values:
                values["name"] = sanitize_label(values["name"])
                if not values["name"]:
                    raise InvalidConfiguration("A restriction needs a name")
            if "description" in values:
                values["description"] = sanitize_text(values["description"])
        except ValueError as e:
            raise InvalidConfiguration(str(e)) from e

        if "member_classes" in values:
            classes = [c.strip() for c in values["member_classes"] or [] if c and c.strip()]
            values["member_classes"] = classes or None
        if "days_of_week" in values:
            values["days_of_week"] = values["days_of_week"] or None
        return values

    @staticmethod
    def _validate(values: dict) -> None:
        category = values["restriction_category"]
        restriction_type = values["restriction_type"]
        if restriction_type not in ALLOWED_TYPES[category]:
            raise InvalidConfiguration(
                f"{category} restrictions cannot be of type {restriction_type} "
                f"(allowed: {', '.join(sorted(ALLOWED_TYPES[category]))})"
            )

        start_date, end_date = values.get("start_date"), values.get("end_date")
        if start_date and end_date and start_date > end_date:
            raise InvalidConfiguration(f"Start date {start_date} is after end date {end_date}")
        if restriction_type == "AVAILABILITY" and not (start_date and end_date):
            raise InvalidConfiguration("Course availability restrictions need startDate and endDate")

        if restriction_type == "FREQUENCY" and not values.get("max_count"):
            raise InvalidConfiguration("FREQUENCY restrictions need maxCount")

        start_time, end_time = values.get("start_time"), values.get("end_time")
        # HH:MM strings compare correctly as text
        if start_time and end_time and start_time > end_time:
            raise InvalidConfiguration(f"Start time {start_time} is after end time {end_time}")
