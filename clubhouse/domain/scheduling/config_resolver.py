"""
Config resolution - decides which schedule config governs a calendar date.

Resolution order, first match wins:
1. Specific-date rule (start_date == end_date == date) on an active config
2. Recurring rule whose days_of_week include the date's weekday and whose
   optional date range contains the date; highest priority wins
3. System fallback: first system config with a rule covering the weekday

Ties in tiers 1 and 2 go to the lowest config id / rule id. ScheduleConfigService
rejects rules that would create such ties, so they only occur in legacy data.
"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...config import DEFAULT_MAX_MEMBERS_PER_BLOCK
from ...models import ScheduleConfig, ScheduleRule
from ...shared.dates import DateLike, day_of_week, normalize_date, to_date
from .exceptions import InvalidConfiguration
from .repository import SchedulingRepository

logger = logging.getLogger(__name__)

# Seeded the first time resolution runs against an empty config table
DEFAULT_SYSTEM_CONFIGS = [
    {
        "name": "Weekday (Default)",
        "start_time": "07:00",
        "end_time": "19:00",
        "interval_minutes": 15,
        "days_of_week": [1, 2, 3, 4, 5],
    },
    {
        "name": "Weekend (Default)",
        "start_time": "07:00",
        "end_time": "19:00",
        "interval_minutes": 20,
        "days_of_week": [0, 6],
    },
]


def rule_matches_specific_date(rule: ScheduleRule, day: date) -> bool:
    return rule.is_specific_date and rule.start_date == day


def rule_matches_recurring(rule: ScheduleRule, day: date, weekday: int) -> bool:
    if not rule.days_of_week or weekday not in rule.days_of_week:
        return False
    if rule.start_date is not None and day < rule.start_date:
        return False
    if rule.end_date is not None and day > rule.end_date:
        return False
    return True


class ConfigResolver:
    """Resolves the governing ScheduleConfig for a date"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SchedulingRepository()

    def resolve(self, value: DateLike) -> Optional[ScheduleConfig]:
        """
        Governing config for a date, with rules loaded.

        Returns None when no tier matches; write paths should call
        resolve_required instead.
        """
        try:
            day = to_date(value)
        except ValueError as e:
            raise InvalidConfiguration(str(e)) from e
        weekday = day_of_week(day)

        self.ensure_default_configs()
        configs = self.repo.get_active_configs(self.db)

        # Tier 1: specific date always outranks recurring rules
        for config in configs:
            for rule in config.rules:
                if rule.is_active and rule_matches_specific_date(rule, day):
                    logger.debug(f"📅 {day} resolved to '{config.name}' via specific-date rule {rule.id}")
                    return config

        # Tier 2: recurring, highest priority wins, first encountered on ties
        best_config = None
        best_priority = None
        for config in configs:
            for rule in config.rules:
                if not rule.is_active or not rule_matches_recurring(rule, day, weekday):
                    continue
                if best_priority is None or rule.priority > best_priority:
                    best_config = config
                    best_priority = rule.priority
        if best_config is not None:
            logger.debug(f"📅 {day} resolved to '{best_config.name}' via recurring rule (priority {best_priority})")
            return best_config

        # Tier 3: system fallback
        for config in self.repo.get_system_configs(self.db):
            for rule in config.rules:
                if rule.days_of_week and weekday in rule.days_of_week:
                    logger.debug(f"📅 {day} resolved to system config '{config.name}'")
                    return config

        logger.warning(f"⚠️ No schedule config matches {day} (day of week {weekday})")
        return None

    def resolve_required(self, value: DateLike) -> ScheduleConfig:
        config = self.resolve(value)
        if config is None:
            raise InvalidConfiguration(
                f"No schedule configuration applies to {normalize_date(value)}",
                {"date": normalize_date(value)},
            )
        return config

    def ensure_default_configs(self) -> bool:
        """
        Seed the default weekday/weekend system configs when no config exists.

        Returns True when this call inserted them. A concurrent bootstrap that
        loses the unique-name race is rolled back and ignored.
        """
        if self.repo.count_configs(self.db) > 0:
            return False

        logger.info("🔄 No schedule configs found - seeding default system configs")
        try:
            for seed in DEFAULT_SYSTEM_CONFIGS:
                config = ScheduleConfig(
                    name=seed["name"],
                    kind="REGULAR",
                    start_time=seed["start_time"],
                    end_time=seed["end_time"],
                    interval_minutes=seed["interval_minutes"],
                    max_members_per_block=DEFAULT_MAX_MEMBERS_PER_BLOCK,
                    is_active=True,
                    is_system_config=True,
                    disallow_member_booking=False,
                )
                config.rules.append(
                    ScheduleRule(days_of_week=seed["days_of_week"], priority=0, is_active=True)
                )
                self.db.add(config)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.info("ℹ️ Default schedule configs already seeded by another request")
            return False

        logger.info("✅ Seeded default system configs")
        return True
