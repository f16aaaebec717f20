from datetime import date

import pytest
from pydantic import ValidationError

from clubhouse.domain.scheduling.config_service import ScheduleConfigService
from clubhouse.domain.scheduling.exceptions import Conflict, InvalidConfiguration, NotFound
from clubhouse.domain.scheduling.materializer import TimeBlockMaterializer
from clubhouse.domain.scheduling.schemas import (
    ScheduleConfigCreate,
    ScheduleConfigUpdate,
    ScheduleRuleCreate,
    ScheduleRuleUpdate,
    TemplateBlockCreate,
    TemplateCreate,
)
from clubhouse.models import Template

CHRISTMAS = date(2025, 12, 25)


def regular(name, **overrides) -> ScheduleConfigCreate:
    fields = {
        "name": name,
        "kind": "REGULAR",
        "startTime": "07:00",
        "endTime": "18:00",
        "intervalMinutes": 10,
        "maxMembersPerBlock": 4,
    }
    fields.update(overrides)
    return ScheduleConfigCreate(**fields)


def test_create_regular_config_with_rules(db):
    service = ScheduleConfigService(db)
    config = service.create_config(
        regular("Summer Weekdays", rules=[ScheduleRuleCreate(daysOfWeek=[5, 1, 1, 2], priority=2)])
    )

    assert config.id is not None
    assert config.interval_minutes == 10
    assert len(config.rules) == 1
    assert config.rules[0].days_of_week == [1, 2, 5]
    assert [c.name for c in service.list_configs()] == ["Summer Weekdays"]


def test_duplicate_config_name_is_a_conflict(db):
    service = ScheduleConfigService(db)
    service.create_config(regular("Winter"))

    with pytest.raises(Conflict):
        service.create_config(regular("Winter"))


@pytest.mark.parametrize(
    "overrides",
    [
        {"startTime": "18:00", "endTime": "07:00"},
        {"intervalMinutes": 0},
        {"intervalMinutes": None},
    ],
)
def test_malformed_regular_config_is_rejected(db, overrides):
    with pytest.raises(InvalidConfiguration):
        ScheduleConfigService(db).create_config(regular("Broken", **overrides))


def test_bad_time_strings_fail_validation():
    with pytest.raises(ValidationError):
        regular("Broken", startTime="7am")


def test_custom_config_requires_non_empty_template(db):
    service = ScheduleConfigService(db)
    empty = Template(name="Empty")
    db.add(empty)
    db.commit()

    with pytest.raises(InvalidConfiguration):
        service.create_config(ScheduleConfigCreate(name="Custom", kind="CUSTOM"))
    with pytest.raises(InvalidConfiguration):
        service.create_config(ScheduleConfigCreate(name="Custom", kind="CUSTOM", templateId=999))
    with pytest.raises(InvalidConfiguration):
        service.create_config(ScheduleConfigCreate(name="Custom", kind="CUSTOM", templateId=empty.id))


def test_create_template_and_custom_config(db):
    service = ScheduleConfigService(db)
    template = service.create_template(
        TemplateCreate(
            name="Member Guest",
            blocks=[
                TemplateBlockCreate(startTime="08:00", maxPlayers=4, displayName="Hole 1"),
                TemplateBlockCreate(startTime="08:00", maxPlayers=4, displayName="Hole 10"),
            ],
        )
    )
    config = service.create_config(
        ScheduleConfigCreate(name="Tournament", kind="CUSTOM", templateId=template.id)
    )

    assert [b.display_name for b in template.blocks] == ["Hole 1", "Hole 10"]
    assert [b.sort_order for b in template.blocks] == [0, 1]
    assert config.template_id == template.id
    assert config.start_time is None


def test_second_specific_date_rule_for_same_date_conflicts(db):
    service = ScheduleConfigService(db)
    service.create_config(
        regular("Christmas", rules=[ScheduleRuleCreate(startDate=CHRISTMAS, endDate=CHRISTMAS)])
    )
    boxing = service.create_config(regular("Holiday Hours"))

    with pytest.raises(Conflict):
        service.add_rule(boxing.id, ScheduleRuleCreate(startDate=CHRISTMAS, endDate=CHRISTMAS))

    rule = service.add_rule(boxing.id, ScheduleRuleCreate(startDate=date(2025, 12, 26), endDate=date(2025, 12, 26)))
    assert rule.config_id == boxing.id


def test_overlapping_recurring_rules_with_same_priority_conflict(db):
    service = ScheduleConfigService(db)
    service.create_config(regular("Weekdays", rules=[ScheduleRuleCreate(daysOfWeek=[1, 2, 3, 4, 5])]))
    other = service.create_config(regular("Mondays"))

    with pytest.raises(Conflict):
        service.add_rule(other.id, ScheduleRuleCreate(daysOfWeek=[1]))

    # A different priority, or a disjoint date range, resolves unambiguously
    assert service.add_rule(other.id, ScheduleRuleCreate(daysOfWeek=[1], priority=5)).priority == 5


def test_disjoint_date_ranges_do_not_conflict(db):
    service = ScheduleConfigService(db)
    service.create_config(
        regular(
            "Winter",
            rules=[
                ScheduleRuleCreate(
                    daysOfWeek=[0, 6], startDate=date(2025, 11, 1), endDate=date(2026, 2, 28)
                )
            ],
        )
    )
    summer = service.create_config(regular("Summer"))

    rule = service.add_rule(
        summer.id,
        ScheduleRuleCreate(daysOfWeek=[0, 6], startDate=date(2026, 5, 1), endDate=date(2026, 9, 30)),
    )
    assert rule.id is not None


def test_inactive_config_rules_do_not_conflict(db):
    service = ScheduleConfigService(db)
    service.create_config(
        regular("Retired", isActive=False, rules=[ScheduleRuleCreate(daysOfWeek=[1, 2, 3])])
    )
    config = service.create_config(regular("Current", rules=[ScheduleRuleCreate(daysOfWeek=[1, 2, 3])]))
    assert len(config.rules) == 1


@pytest.mark.parametrize(
    "rule",
    [
        ScheduleRuleCreate(startDate=date(2025, 12, 24), endDate=date(2025, 12, 26)),
        ScheduleRuleCreate(startDate=CHRISTMAS),
        ScheduleRuleCreate(daysOfWeek=[1], startDate=date(2026, 1, 2), endDate=date(2026, 1, 1)),
    ],
)
def test_malformed_rules_are_rejected(db, rule):
    service = ScheduleConfigService(db)
    config = service.create_config(regular("Target"))

    with pytest.raises(InvalidConfiguration):
        service.add_rule(config.id, rule)


def test_out_of_range_weekday_fails_validation():
    with pytest.raises(ValidationError):
        ScheduleRuleCreate(daysOfWeek=[7])


def test_add_rule_to_missing_config(db):
    with pytest.raises(NotFound):
        ScheduleConfigService(db).add_rule(404, ScheduleRuleCreate(daysOfWeek=[1]))


def test_one_day_recurring_rule_is_not_a_specific_date_rule(db):
    service = ScheduleConfigService(db)
    service.create_config(
        regular(
            "Thursday Only",
            rules=[ScheduleRuleCreate(daysOfWeek=[4], startDate=CHRISTMAS, endDate=CHRISTMAS)],
        )
    )
    christmas = service.create_config(regular("Christmas"))

    rule = service.add_rule(christmas.id, ScheduleRuleCreate(startDate=CHRISTMAS, endDate=CHRISTMAS))

    assert rule.days_of_week is None
    assert service.resolve(CHRISTMAS).name == "Christmas"


# ============================================================================
# UPDATES AND DEACTIVATION
# ============================================================================


def test_update_config_applies_to_new_teesheets_only(db):
    service = ScheduleConfigService(db)
    config = service.create_config(
        regular("Winter Weekend", rules=[ScheduleRuleCreate(daysOfWeek=[0, 6], priority=5)])
    )
    materializer = TimeBlockMaterializer(db)
    saturday = materializer.get_or_create(date(2025, 12, 27))

    updated = service.update_config(config.id, ScheduleConfigUpdate(startTime="09:00", endTime="10:00"))

    assert (updated.start_time, updated.end_time, updated.interval_minutes) == ("09:00", "10:00", 10)
    assert len(materializer.get_time_blocks(saturday.teesheet.id)) == 67
    sunday = materializer.get_or_create(date(2025, 12, 28))
    assert [b.start_time for b in sunday.time_blocks][:2] == ["09:00", "09:10"]
    assert len(sunday.time_blocks) == 7


def test_update_config_validation(db):
    service = ScheduleConfigService(db)
    config = service.create_config(regular("Winter"))
    service.create_config(regular("Summer"))

    with pytest.raises(Conflict):
        service.update_config(config.id, ScheduleConfigUpdate(name="Summer"))
    with pytest.raises(InvalidConfiguration):
        service.update_config(config.id, ScheduleConfigUpdate(endTime="06:00"))
    with pytest.raises(InvalidConfiguration):
        service.update_config(config.id, ScheduleConfigUpdate(intervalMinutes=None))
    with pytest.raises(InvalidConfiguration):
        service.update_config(config.id, ScheduleConfigUpdate(isActive=None))
    with pytest.raises(NotFound):
        service.update_config(404, ScheduleConfigUpdate(name="Gone"))

    db.rollback()
    assert service.get_config(config.id).end_time == "18:00"


def test_reactivating_a_config_rechecks_its_rules(db):
    service = ScheduleConfigService(db)
    retired = service.create_config(
        regular("Retired", isActive=False, rules=[ScheduleRuleCreate(daysOfWeek=[1, 2])])
    )
    service.create_config(regular("Current", rules=[ScheduleRuleCreate(daysOfWeek=[2, 3])]))

    with pytest.raises(Conflict):
        service.update_config(retired.id, ScheduleConfigUpdate(isActive=True))


def test_deactivated_config_no_longer_resolves(db):
    service = ScheduleConfigService(db)
    christmas = service.create_config(
        regular("Christmas", rules=[ScheduleRuleCreate(startDate=CHRISTMAS, endDate=CHRISTMAS)])
    )
    assert service.resolve(CHRISTMAS).id == christmas.id

    assert service.deactivate_config(christmas.id).is_active is False
    assert service.resolve(CHRISTMAS) is None


def test_update_rule_rechecks_conflicts(db):
    service = ScheduleConfigService(db)
    service.create_config(regular("Weekdays", rules=[ScheduleRuleCreate(daysOfWeek=[1, 2, 3, 4, 5])]))
    mondays = service.create_config(regular("Mondays", rules=[ScheduleRuleCreate(daysOfWeek=[1], priority=5)]))
    rule = mondays.rules[0]

    with pytest.raises(Conflict):
        service.update_rule(rule.id, ScheduleRuleUpdate(priority=0))
    with pytest.raises(InvalidConfiguration):
        service.update_rule(rule.id, ScheduleRuleUpdate(daysOfWeek=[]))

    moved = service.update_rule(rule.id, ScheduleRuleUpdate(daysOfWeek=[0, 6], priority=0))
    assert (moved.days_of_week, moved.priority, moved.is_active) == ([0, 6], 0, True)


def test_deactivate_rule(db):
    service = ScheduleConfigService(db)
    christmas = service.create_config(
        regular("Christmas", rules=[ScheduleRuleCreate(startDate=CHRISTMAS, endDate=CHRISTMAS)])
    )

    rule = service.deactivate_rule(christmas.rules[0].id)

    assert rule.is_active is False
    assert service.resolve(CHRISTMAS) is None
    with pytest.raises(NotFound):
        service.deactivate_rule(404)
