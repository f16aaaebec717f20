"""
Test fixtures for the tee sheet API.

Each test gets its own temporary SQLite file database with the full schema.
A file (not :memory:) database lets threaded tests open separate connections.
"""

import itertools
import os
import tempfile
from collections.abc import Generator
from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from clubhouse import rate_limiter
from clubhouse.database import Base, build_engine, get_db
from clubhouse.domain.scheduling.materializer import TimeBlockMaterializer
from clubhouse.main import app
from clubhouse.models import (
    Guest,
    Member,
    ScheduleConfig,
    ScheduleRule,
    Template,
    TemplateBlock,
    TimeblockRestriction,
)


@pytest.fixture
def temp_db_path() -> Generator[str, None, None]:
    """Create a temporary database file."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        temp_path = f.name
    yield temp_path
    if os.path.exists(temp_path):
        os.unlink(temp_path)


@pytest.fixture
def engine(temp_db_path: str):
    test_engine = build_engine(f"sqlite:///{temp_db_path}")
    Base.metadata.create_all(test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory) -> Generator[TestClient, None, None]:
    """API client bound to the test database (lifespan is not run)."""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def _reset_rate_limits():
    rate_limiter.reset_rate_limits()
    yield
    rate_limiter.reset_rate_limits()


# ============================================================================
# FACTORIES
# ============================================================================


@pytest.fixture
def make_member(db: Session):
    counter = itertools.count(1)

    def _make(member_class=None, first_name="Pat", last_name=None) -> Member:
        n = next(counter)
        member = Member(
            member_number=f"M{n:04d}",
            first_name=first_name,
            last_name=last_name or f"Member{n}",
            member_class=member_class,
        )
        db.add(member)
        db.commit()
        db.refresh(member)
        return member

    return _make


@pytest.fixture
def make_guest(db: Session):
    counter = itertools.count(1)

    def _make(first_name="Casey") -> Guest:
        n = next(counter)
        guest = Guest(first_name=first_name, last_name=f"Guest{n}")
        db.add(guest)
        db.commit()
        db.refresh(guest)
        return guest

    return _make


@pytest.fixture
def make_config(db: Session):
    """REGULAR config with optional recurring and specific-date rules."""

    def _make(
        name,
        days=None,
        on_date=None,
        priority=0,
        start="07:00",
        end="19:00",
        interval=15,
        max_members=4,
        is_system=False,
        is_active=True,
        start_date=None,
        end_date=None,
        kind="REGULAR",
        template=None,
        disallow_member_booking=False,
    ) -> ScheduleConfig:
        config = ScheduleConfig(
            name=name,
            kind=kind,
            start_time=start if kind == "REGULAR" else None,
            end_time=end if kind == "REGULAR" else None,
            interval_minutes=interval if kind == "REGULAR" else None,
            template_id=template.id if template is not None else None,
            max_members_per_block=max_members,
            is_active=is_active,
            is_system_config=is_system,
            disallow_member_booking=disallow_member_booking,
        )
        if days is not None:
            config.rules.append(
                ScheduleRule(
                    days_of_week=days,
                    priority=priority,
                    start_date=start_date,
                    end_date=end_date,
                    is_active=True,
                )
            )
        if on_date is not None:
            config.rules.append(
                ScheduleRule(start_date=on_date, end_date=on_date, priority=priority, is_active=True)
            )
        db.add(config)
        db.commit()
        db.refresh(config)
        return config

    return _make


@pytest.fixture
def make_template(db: Session):
    def _make(name, blocks) -> Template:
        """blocks: list of (start_time, max_players, display_name)"""
        template = Template(name=name)
        for index, (start_time, max_players, display_name) in enumerate(blocks):
            template.blocks.append(
                TemplateBlock(
                    start_time=start_time,
                    max_players=max_players,
                    display_name=display_name,
                    sort_order=index,
                )
            )
        db.add(template)
        db.commit()
        db.refresh(template)
        return template

    return _make


@pytest.fixture
def make_restriction(db: Session):
    def _make(name, category, restriction_type, **fields) -> TimeblockRestriction:
        restriction = TimeblockRestriction(
            name=name,
            restriction_category=category,
            restriction_type=restriction_type,
            is_active=fields.pop("is_active", True),
            can_override=fields.pop("can_override", True),
            priority=fields.pop("priority", 0),
            **fields,
        )
        db.add(restriction)
        db.commit()
        db.refresh(restriction)
        return restriction

    return _make


@pytest.fixture
def saturday_sheet(db: Session):
    """Default weekend sheet for 2025-12-27: 37 blocks of 4 from 07:00 to 19:00"""
    return TimeBlockMaterializer(db).get_or_create(date(2025, 12, 27))
