"""Schedule config service - admin writes for configs, rules and templates"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import ScheduleConfig, ScheduleRule, Template, TemplateBlock
from ...shared.retry import retry_read
from .config_resolver import ConfigResolver, rule_matches_specific_date
from .exceptions import Conflict, InvalidConfiguration, NotFound
from .repository import SchedulingRepository
from .schemas import (
    ScheduleConfigCreate,
    ScheduleConfigUpdate,
    ScheduleRuleCreate,
    ScheduleRuleUpdate,
    TemplateCreate,
)
from .time_calculator import generate_time_blocks

logger = logging.getLogger(__name__)


def _ranges_overlap(
    start_a: Optional[date], end_a: Optional[date], start_b: Optional[date], end_b: Optional[date]
) -> bool:
    # None bounds are open-ended
    if start_a is not None and end_b is not None and start_a > end_b:
        return False
    if start_b is not None and end_a is not None and start_b > end_a:
        return False
    return True


class ScheduleConfigService:
    """Service layer for schedule configuration management"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SchedulingRepository()

    @retry_read
    def list_configs(self) -> list[ScheduleConfig]:
        return self.repo.list_configs(self.db)

    def get_config(self, config_id: int) -> ScheduleConfig:
        config = self.repo.get_config(self.db, config_id)
        if not config:
            raise NotFound(f"Schedule config {config_id} not found", {"configId": config_id})
        return config

    def resolve(self, value) -> Optional[ScheduleConfig]:
        """Preview which config governs a date without creating a teesheet"""
        return ConfigResolver(self.db).resolve(value)

    # ========================================================================
    # CONFIGS
    # ========================================================================

    def create_config(self, data: ScheduleConfigCreate) -> ScheduleConfig:
        """Create a config and its rules; each rule goes through the same checks as add_rule"""
        logger.info(f"📥 Creating schedule config '{data.name}' ({data.kind})")

        if self.repo.get_config_by_name(self.db, data.name):
            raise Conflict(f"A schedule config named '{data.name}' already exists", {"name": data.name})

        self._validate_layout(data.kind, data.startTime, data.endTime, data.intervalMinutes, data.templateId)

        for index, rule in enumerate(data.rules):
            self._validate_rule_shape(rule)
            # Rules within the same request must not collide with each other either
            for other in data.rules[index + 1:]:
                if data.isActive and self._rules_collide(rule, other):
                    raise Conflict("Two rules in this config overlap")
            if data.isActive:
                self._check_rule_conflicts(rule, exclude_config_id=None)

        config = ScheduleConfig(
            name=data.name,
            kind=data.kind,
            start_time=data.startTime if data.kind == "REGULAR" else None,
            end_time=data.endTime if data.kind == "REGULAR" else None,
            interval_minutes=data.intervalMinutes if data.kind == "REGULAR" else None,
            template_id=data.templateId if data.kind == "CUSTOM" else None,
            max_members_per_block=data.maxMembersPerBlock,
            is_active=data.isActive,
            is_system_config=data.isSystemConfig,
            disallow_member_booking=data.disallowMemberBooking,
        )
        for rule in data.rules:
            config.rules.append(self._build_rule(rule))

        self.db.add(config)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise Conflict(f"A schedule config named '{data.name}' already exists", {"name": data.name}) from e
        self.db.refresh(config)

        logger.info(f"✅ Created schedule config {config.id} '{config.name}' with {len(config.rules)} rule(s)")
        return config

    def add_rule(self, config_id: int, data: ScheduleRuleCreate) -> ScheduleRule:
        """
        Attach a rule to a config.

        Raises:
            NotFound: config does not exist
            InvalidConfiguration: malformed rule
            Conflict: the rule would make resolution ambiguous
        """
        config = self.get_config(config_id)
        self._validate_rule_shape(data)
        if config.is_active and data.isActive:
            self._check_rule_conflicts(data, exclude_config_id=config.id)

        rule = self._build_rule(data)
        rule.config_id = config.id
        self.db.add(rule)
        self.db.commit()
        self.db.refresh(rule)

        logger.info(f"✅ Added rule {rule.id} to schedule config {config.id} '{config.name}'")
        return rule

    def update_config(self, config_id: int, data: ScheduleConfigUpdate) -> ScheduleConfig:
        """
        Change a config's settings. Teesheets that already exist keep their
        blocks until reassigned; dates materialized later use the new layout.

        Raises:
            NotFound: config does not exist
            InvalidConfiguration: the resulting layout is malformed
            Conflict: the name is taken, or reactivating would make resolution ambiguous
        """
        config = self.get_config(config_id)
        changes = data.model_dump(exclude_unset=True)
        for field in ("name", "isActive", "disallowMemberBooking"):
            if field in changes and changes[field] is None:
                raise InvalidConfiguration(f"{field} cannot be cleared")

        name = changes.get("name", config.name)
        if name != config.name and self.repo.get_config_by_name(self.db, name):
            raise Conflict(f"A schedule config named '{name}' already exists", {"name": name})

        self._validate_layout(
            config.kind,
            changes.get("startTime", config.start_time),
            changes.get("endTime", config.end_time),
            changes.get("intervalMinutes", config.interval_minutes),
            changes.get("templateId", config.template_id),
        )

        if changes.get("isActive") and not config.is_active:
            for rule in config.rules:
                if rule.is_active:
                    self._check_rule_conflicts(self._rule_data(rule), exclude_config_id=config.id)

        columns = {
            "name": "name",
            "startTime": "start_time",
            "endTime": "end_time",
            "intervalMinutes": "interval_minutes",
            "templateId": "template_id",
            "maxMembersPerBlock": "max_members_per_block",
            "isActive": "is_active",
            "disallowMemberBooking": "disallow_member_booking",
        }
        for field, value in changes.items():
            setattr(config, columns[field], value)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise Conflict(f"A schedule config named '{name}' already exists", {"name": name}) from e
        self.db.refresh(config)

        logger.info(f"✅ Updated schedule config {config.id}: {', '.join(sorted(changes)) or 'no changes'}")
        return config

    def deactivate_config(self, config_id: int) -> ScheduleConfig:
        """Stop resolving dates to this config. Existing teesheets keep their blocks."""
        config = self.get_config(config_id)
        config.is_active = False
        self.db.commit()
        self.db.refresh(config)

        logger.info(f"🛑 Schedule config {config.id} '{config.name}' deactivated")
        return config

    def get_rule(self, rule_id: int) -> ScheduleRule:
        rule = self.repo.get_rule(self.db, rule_id)
        if not rule:
            raise NotFound(f"Schedule rule {rule_id} not found", {"ruleId": rule_id})
        return rule

    def update_rule(self, rule_id: int, data: ScheduleRuleUpdate) -> ScheduleRule:
        """Change a rule; the result goes through the same checks as add_rule"""
        rule = self.get_rule(rule_id)
        changes = data.model_dump(exclude_unset=True)

        current = self._rule_data(rule)
        merged = ScheduleRuleCreate(
            startDate=changes.get("startDate", current.startDate),
            endDate=changes.get("endDate", current.endDate),
            daysOfWeek=changes.get("daysOfWeek", current.daysOfWeek) or None,
            priority=changes.get("priority") if changes.get("priority") is not None else current.priority,
            isActive=changes.get("isActive") if changes.get("isActive") is not None else current.isActive,
        )
        self._validate_rule_shape(merged)
        if rule.config.is_active and merged.isActive:
            self._check_rule_conflicts(merged, exclude_config_id=rule.config_id)

        rule.start_date = merged.startDate
        rule.end_date = merged.endDate
        rule.days_of_week = merged.daysOfWeek
        rule.priority = merged.priority
        rule.is_active = merged.isActive
        self.db.commit()
        self.db.refresh(rule)

        logger.info(f"✅ Updated rule {rule.id} on schedule config {rule.config_id}")
        return rule

    def deactivate_rule(self, rule_id: int) -> ScheduleRule:
        rule = self.get_rule(rule_id)
        rule.is_active = False
        self.db.commit()
        self.db.refresh(rule)

        logger.info(f"🛑 Rule {rule.id} on schedule config {rule.config_id} deactivated")
        return rule

    def _validate_layout(
        self,
        kind: str,
        start_time: Optional[str],
        end_time: Optional[str],
        interval_minutes: Optional[int],
        template_id: Optional[int],
    ) -> None:
        if kind == "REGULAR":
            if not start_time or not end_time or interval_minutes is None:
                raise InvalidConfiguration("REGULAR configs need startTime, endTime and intervalMinutes")
            # Fails fast on inverted bounds or a non-positive interval
            generate_time_blocks(start_time, end_time, interval_minutes)
            if template_id is not None:
                raise InvalidConfiguration("REGULAR configs cannot reference a template")
        else:
            if template_id is None:
                raise InvalidConfiguration("CUSTOM configs need a templateId")
            template = self.repo.get_template(self.db, template_id)
            if not template:
                raise InvalidConfiguration(f"Template {template_id} not found")
            if not template.blocks:
                raise InvalidConfiguration(f"Template '{template.name}' has no blocks")

    @staticmethod
    def _rule_data(rule: ScheduleRule) -> ScheduleRuleCreate:
        return ScheduleRuleCreate(
            startDate=rule.start_date,
            endDate=rule.end_date,
            daysOfWeek=rule.days_of_week,
            priority=rule.priority,
            isActive=rule.is_active,
        )

    @staticmethod
    def _build_rule(data: ScheduleRuleCreate) -> ScheduleRule:
        return ScheduleRule(
            start_date=data.startDate,
            end_date=data.endDate,
            days_of_week=data.daysOfWeek or None,
            priority=data.priority,
            is_active=data.isActive,
        )

    @staticmethod
    def _is_specific(rule: ScheduleRuleCreate) -> bool:
        return not rule.daysOfWeek

    def _validate_rule_shape(self, rule: ScheduleRuleCreate) -> None:
        if rule.startDate and rule.endDate and rule.startDate > rule.endDate:
            raise InvalidConfiguration(
                f"Rule start date {rule.startDate} is after end date {rule.endDate}"
            )
        if self._is_specific(rule):
            if rule.startDate is None or rule.endDate is None or rule.startDate != rule.endDate:
                raise InvalidConfiguration(
                    "A rule without daysOfWeek must be a specific-date rule with startDate == endDate"
                )

    def _rules_collide(self, a: ScheduleRuleCreate, b: ScheduleRuleCreate) -> bool:
        if not a.isActive or not b.isActive:
            return False
        if self._is_specific(a) and self._is_specific(b):
            return a.startDate == b.startDate
        if self._is_specific(a) or self._is_specific(b):
            return False
        return (
            a.priority == b.priority
            and bool(set(a.daysOfWeek) & set(b.daysOfWeek))
            and _ranges_overlap(a.startDate, a.endDate, b.startDate, b.endDate)
        )

    def _check_rule_conflicts(self, rule: ScheduleRuleCreate, exclude_config_id: Optional[int]) -> None:
        if not rule.isActive:
            return

        existing_rules = self.repo.get_active_rules(self.db, exclude_config_id=exclude_config_id)

        if self._is_specific(rule):
            for existing in existing_rules:
                if rule_matches_specific_date(existing, rule.startDate):
                    raise Conflict(
                        f"{rule.startDate} already has a specific-date rule on config "
                        f"'{existing.config.name}'",
                        {"conflictingConfigId": existing.config_id},
                    )
            return

        days = set(rule.daysOfWeek)
        for existing in existing_rules:
            if not existing.days_of_week or existing.priority != rule.priority:
                continue
            if not days & set(existing.days_of_week):
                continue
            if _ranges_overlap(rule.startDate, rule.endDate, existing.start_date, existing.end_date):
                raise Conflict(
                    f"Recurring rule overlaps rule {existing.id} on config '{existing.config.name}' "
                    f"with the same priority {rule.priority}",
                    {"conflictingConfigId": existing.config_id, "conflictingRuleId": existing.id},
                )

    # ========================================================================
    # TEMPLATES
    # ========================================================================

    def create_template(self, data: TemplateCreate) -> Template:
        template = Template(name=data.name)
        for index, block in enumerate(data.blocks):
            template.blocks.append(
                TemplateBlock(
                    start_time=block.startTime,
                    max_players=block.maxPlayers,
                    display_name=block.displayName,
                    sort_order=index,
                )
            )
        self.db.add(template)
        self.db.commit()
        self.db.refresh(template)

        logger.info(f"✅ Created template {template.id} '{template.name}' with {len(template.blocks)} block(s)")
        return template
