from datetime import date

import pytest

from clubhouse.domain.scheduling.config_resolver import ConfigResolver
from clubhouse.domain.scheduling.exceptions import InvalidConfiguration
from clubhouse.domain.scheduling.repository import SchedulingRepository
from clubhouse.models import ScheduleConfig

SATURDAY = date(2025, 12, 27)
SUNDAY = date(2025, 12, 28)
MONDAY = date(2025, 12, 22)
TUESDAY = date(2025, 12, 23)
CHRISTMAS = date(2025, 12, 25)  # Thursday


def test_empty_store_seeds_default_system_configs(db):
    resolver = ConfigResolver(db)

    saturday = resolver.resolve(SATURDAY)
    monday = resolver.resolve(MONDAY)

    assert saturday.name == "Weekend (Default)"
    assert saturday.interval_minutes == 20
    assert (saturday.start_time, saturday.end_time) == ("07:00", "19:00")
    assert monday.name == "Weekday (Default)"
    assert monday.interval_minutes == 15
    assert all(c.is_system_config for c in (saturday, monday))
    assert db.query(ScheduleConfig).count() == 2


def test_seeding_happens_once(db):
    resolver = ConfigResolver(db)
    assert resolver.ensure_default_configs() is True
    assert resolver.ensure_default_configs() is False
    resolver.resolve(SUNDAY)
    assert db.query(ScheduleConfig).count() == 2


def test_losing_bootstrap_race_is_swallowed(db, make_config, monkeypatch):
    # Another worker already inserted one of the defaults after our emptiness check
    make_config("Weekend (Default)", days=[0, 6], is_system=True)
    monkeypatch.setattr(SchedulingRepository, "count_configs", staticmethod(lambda _db: 0))

    assert ConfigResolver(db).ensure_default_configs() is False
    assert db.query(ScheduleConfig).count() == 1


def test_resolution_is_deterministic(db, make_config):
    make_config("Weekdays", days=[1, 2, 3, 4, 5])
    make_config("Everyday", days=[0, 1, 2, 3, 4, 5, 6], priority=1)
    resolver = ConfigResolver(db)

    ids = {resolver.resolve(MONDAY).id for _ in range(5)}
    assert len(ids) == 1


def test_specific_date_beats_high_priority_recurring(db, make_config):
    make_config("Weekday Peak", days=[1, 2, 3, 4, 5], priority=100)
    christmas = make_config("Christmas", on_date=CHRISTMAS, priority=0)
    resolver = ConfigResolver(db)

    assert resolver.resolve(CHRISTMAS).id == christmas.id
    assert resolver.resolve(date(2025, 12, 24)).name == "Weekday Peak"


def test_one_day_recurring_rule_still_checks_the_weekday(db, make_config):
    make_config("Weekdays", days=[1, 2, 3, 4, 5], priority=1)
    # Mondays only, bounded to a single Thursday: never applies
    make_config("Monday Special", days=[1], priority=50, start_date=CHRISTMAS, end_date=CHRISTMAS)

    assert ConfigResolver(db).resolve(CHRISTMAS).name == "Weekdays"


def test_highest_priority_recurring_rule_wins(db, make_config):
    make_config("Standard", days=[1, 2, 3, 4, 5], priority=1)
    make_config("Winter", days=[1, 2], priority=5)

    resolver = ConfigResolver(db)
    assert resolver.resolve(MONDAY).name == "Winter"
    assert resolver.resolve(CHRISTMAS).name == "Standard"


def test_recurring_rule_date_range_is_respected(db, make_config):
    make_config("Standard", days=[1, 2, 3, 4, 5], priority=1)
    make_config(
        "Aeration Week",
        days=[1, 2, 3, 4, 5],
        priority=10,
        start_date=date(2026, 1, 5),
        end_date=date(2026, 1, 9),
    )
    resolver = ConfigResolver(db)

    assert resolver.resolve(MONDAY).name == "Standard"
    assert resolver.resolve(date(2026, 1, 6)).name == "Aeration Week"


def test_inactive_configs_are_ignored(db, make_config):
    make_config("Standard", days=[1, 2, 3, 4, 5], priority=1)
    make_config("Retired", days=[1], priority=50, is_active=False)

    assert ConfigResolver(db).resolve(MONDAY).name == "Standard"


def test_system_fallback_ignores_rule_date_range(db, make_config):
    make_config(
        "Old System",
        days=[0, 1, 2, 3, 4, 5, 6],
        is_system=True,
        start_date=date(2024, 1, 1),
        end_date=date(2024, 12, 31),
    )

    assert ConfigResolver(db).resolve(MONDAY).name == "Old System"


def test_no_match_returns_none(db, make_config):
    make_config("Mondays Only", days=[1])
    resolver = ConfigResolver(db)

    assert resolver.resolve(TUESDAY) is None
    with pytest.raises(InvalidConfiguration):
        resolver.resolve_required(TUESDAY)


def test_accepts_date_strings(db, make_config):
    make_config("Weekend", days=[0, 6])
    assert ConfigResolver(db).resolve("2025-12-27").name == "Weekend"


def test_invalid_date_is_rejected(db):
    with pytest.raises(InvalidConfiguration):
        ConfigResolver(db).resolve("not-a-date")
