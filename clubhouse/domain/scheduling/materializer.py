"""Teesheet materialization - lazily creates a date's teesheet and its time blocks"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...config import DEFAULT_MAX_MEMBERS_PER_BLOCK
from ...models import ScheduleConfig, Teesheet, TimeBlock
from ...shared.dates import DateLike, to_date
from ...shared.retry import retry_read
from ...utils.sanitization import sanitize_text
from .config_resolver import ConfigResolver
from .exceptions import Internal, InvalidConfiguration, NotFound, SchedulingError
from .repository import SchedulingRepository
from .time_calculator import BlockSpec, regular_block_specs, template_block_specs

logger = logging.getLogger(__name__)


def _clean_text(value: Optional[str]) -> Optional[str]:
    try:
        return sanitize_text(value)
    except ValueError as e:
        raise InvalidConfiguration(str(e)) from e


@dataclass
class TeesheetResult:
    teesheet: Teesheet
    config: Optional[ScheduleConfig]
    time_blocks: list[TimeBlock]


class TimeBlockMaterializer:
    """Creates each date's teesheet once and keeps its blocks in step with its config"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SchedulingRepository()
        self.resolver = ConfigResolver(db)

    @retry_read
    def get_or_create(self, value: DateLike) -> TeesheetResult:
        """
        Teesheet for a date with blocks and occupants loaded.

        An existing teesheet is returned as stored; its blocks are never
        regenerated here. A new teesheet and its blocks are inserted in one
        transaction. When a concurrent request wins the insert, the unique
        date constraint fails ours and we re-read the winner's rows.

        With no matching config the teesheet is still created, unbound and
        with no blocks.
        """
        try:
            day = to_date(value)
        except ValueError as e:
            raise InvalidConfiguration(str(e)) from e

        existing = self.repo.get_teesheet_by_date(self.db, day)
        if existing:
            return self._result(existing)

        config = self.resolver.resolve(day)

        teesheet = Teesheet(
            date=day,
            config_id=config.id if config else None,
            disallow_member_booking=bool(config and config.disallow_member_booking),
        )
        self.db.add(teesheet)
        try:
            self.db.flush()
        except IntegrityError:
            self.db.rollback()
            logger.info(f"ℹ️ Teesheet for {day} was created by a concurrent request - re-reading")
            existing = self.repo.get_teesheet_by_date(self.db, day)
            if not existing:
                raise Internal(f"Teesheet for {day} could not be created or read")
            return self._result(existing)

        try:
            block_count = 0
            if config is not None:
                block_count = self._create_blocks(teesheet, config)
            self.db.commit()
        except SchedulingError:
            self.db.rollback()
            raise
        except IntegrityError:
            # Postgres reports the losing insert here once the winner commits
            self.db.rollback()
            existing = self.repo.get_teesheet_by_date(self.db, day)
            if not existing:
                raise
            logger.info(f"ℹ️ Teesheet for {day} was created by a concurrent request - re-reading")
            return self._result(existing)

        config_name = config.name if config else "no config"
        logger.info(f"✅ Created teesheet {teesheet.id} for {day} ({config_name}, {block_count} blocks)")
        return self._result(self.repo.get_teesheet(self.db, teesheet.id))

    def get_teesheet(self, teesheet_id: int) -> Teesheet:
        teesheet = self.repo.get_teesheet(self.db, teesheet_id)
        if not teesheet:
            raise NotFound(f"Teesheet {teesheet_id} not found", {"teesheetId": teesheet_id})
        return teesheet

    def get_time_blocks(self, teesheet_id: int) -> list[TimeBlock]:
        self.get_teesheet(teesheet_id)
        return self.repo.get_time_blocks(self.db, teesheet_id)

    def reassign_config(self, teesheet_id: int, config_id: int) -> TeesheetResult:
        """
        Rebind a teesheet to another config and rebuild its blocks.

        Destroys every booking on the sheet. Slot requests pointing at the old
        blocks are released back to PENDING first. Runs as one transaction;
        any failure leaves the old blocks in place.
        """
        teesheet = self.get_teesheet(teesheet_id)
        config = self.repo.get_config(self.db, config_id)
        if not config:
            raise NotFound(f"Schedule config {config_id} not found", {"configId": config_id})

        logger.info(f"🔄 Reassigning teesheet {teesheet.id} ({teesheet.date}) to config '{config.name}'")

        try:
            # Validate the new layout before anything is destroyed
            specs = self.build_block_specs(config)

            old_blocks = list(teesheet.time_blocks)
            released = self.repo.release_slot_requests(self.db, [b.id for b in old_blocks])
            deleted = self.repo.delete_time_blocks(self.db, old_blocks)
            self.db.expire(teesheet, ["time_blocks"])

            teesheet.config_id = config.id
            teesheet.disallow_member_booking = bool(config.disallow_member_booking)
            self._add_blocks(teesheet, specs)
            self.db.commit()
        except SchedulingError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to reassign teesheet {teesheet_id}: {e}")
            raise Internal(f"Failed to reassign teesheet {teesheet_id}") from e

        logger.info(
            f"✅ Teesheet {teesheet_id} rebuilt: {deleted} blocks removed, {len(specs)} created, "
            f"{released} slot request(s) released"
        )
        return self._result(self.repo.get_teesheet(self.db, teesheet_id))

    def build_block_specs(self, config: ScheduleConfig) -> list[BlockSpec]:
        """
        Raises:
            InvalidConfiguration: incomplete REGULAR config, missing or empty template
        """
        if config.kind == "REGULAR":
            if not config.start_time or not config.end_time or config.interval_minutes is None:
                raise InvalidConfiguration(
                    f"Config '{config.name}' is missing its start time, end time or interval"
                )
            return regular_block_specs(
                config.start_time,
                config.end_time,
                config.interval_minutes,
                config.max_members_per_block or DEFAULT_MAX_MEMBERS_PER_BLOCK,
            )

        if config.kind == "CUSTOM":
            template = (
                self.repo.get_template(self.db, config.template_id)
                if config.template_id is not None
                else None
            )
            if not template:
                raise InvalidConfiguration(f"Config '{config.name}' references a missing template")
            if not template.blocks:
                raise InvalidConfiguration(f"Template '{template.name}' has no blocks")
            return template_block_specs(template.blocks)

        raise InvalidConfiguration(f"Config '{config.name}' has unknown kind '{config.kind}'")

    def _create_blocks(self, teesheet: Teesheet, config: ScheduleConfig) -> int:
        specs = self.build_block_specs(config)
        self._add_blocks(teesheet, specs)
        return len(specs)

    def _add_blocks(self, teesheet: Teesheet, specs: list[BlockSpec]) -> None:
        for spec in specs:
            self.db.add(
                TimeBlock(
                    teesheet_id=teesheet.id,
                    start_time=spec.start_time,
                    end_time=spec.start_time,
                    max_members=spec.max_members,
                    display_name=spec.display_name,
                    sort_order=spec.sort_order,
                )
            )
        self.db.flush()

    def _result(self, teesheet: Teesheet) -> TeesheetResult:
        return TeesheetResult(
            teesheet=teesheet,
            config=teesheet.config,
            time_blocks=sorted(teesheet.time_blocks, key=lambda b: (b.sort_order, b.start_time)),
        )

    # ========================================================================
    # SHEET SETTINGS
    # ========================================================================

    def update_visibility(
        self,
        teesheet_id: int,
        is_public: bool,
        private_message: Optional[str] = None,
        published_by: Optional[str] = None,
    ) -> Teesheet:
        message = _clean_text(private_message) if private_message is not None else None
        teesheet = self.get_teesheet(teesheet_id)
        teesheet.is_public = is_public
        if is_public:
            teesheet.published_at = datetime.utcnow()
            teesheet.published_by = published_by
        else:
            teesheet.published_at = None
            teesheet.published_by = None
            if message is not None:
                teesheet.private_message = message
        self.db.commit()
        self.db.refresh(teesheet)

        state = "published" if is_public else "hidden"
        logger.info(f"✅ Teesheet {teesheet.id} ({teesheet.date}) {state}")
        return teesheet

    def update_general_notes(self, teesheet_id: int, notes: Optional[str]) -> Teesheet:
        teesheet = self.get_teesheet(teesheet_id)
        teesheet.general_notes = _clean_text(notes)
        self.db.commit()
        self.db.refresh(teesheet)
        return teesheet

    def update_block_notes(self, block_id: int, notes: Optional[str]) -> TimeBlock:
        block = self.repo.get_time_block(self.db, block_id)
        if not block:
            raise NotFound(f"Time block {block_id} not found", {"timeBlockId": block_id})
        block.notes = _clean_text(notes)
        self.db.commit()
        self.db.refresh(block)
        return block
