from datetime import date

import pytest

from clubhouse.domain.scheduling.exceptions import (
    CapacityExceeded,
    DuplicateBooking,
    InvalidConfiguration,
    NotFound,
)
from clubhouse.domain.scheduling.ledger import OccupancyLedger
from clubhouse.domain.scheduling.materializer import TimeBlockMaterializer
from clubhouse.domain.scheduling.occupants import FillType, InvitedBy
from clubhouse.domain.scheduling.party_mover import PartyMover
from clubhouse.models import RestrictionOverride, TimeBlockGuest, TimeBlockMember


@pytest.fixture
def ledger(db):
    return OccupancyLedger(db)


@pytest.fixture
def party(ledger, saturday_sheet, make_member, make_guest):
    """Two members, a guest and a fill in the 07:00 block"""
    block = saturday_sheet.time_blocks[0]
    host, partner = make_member(), make_member()
    ledger.add_member(block.id, host.id, booked_by_member_id=host.id)
    ledger.add_member(block.id, partner.id, booked_by_member_id=host.id)
    ledger.add_guest(block.id, make_guest().id, InvitedBy.member(host.id))
    ledger.add_fill(block.id, FillType.CUSTOM, custom_name="Club Pro", added_by_member_id=host.id)
    return {"block": block, "host": host, "partner": partner}


def test_move_keeps_attribution(db, ledger, saturday_sheet, party):
    target = saturday_sheet.time_blocks[6]  # 09:00
    host = party["host"]

    moved = PartyMover(db).move_party(party["block"].id, target.id)

    assert moved == 4
    assert ledger.get_block_occupancy(party["block"].id).occupancy == 0
    occupancy = ledger.get_block_occupancy(target.id)
    assert occupancy.occupancy == 4
    assert {m.booked_by_member_id for m in occupancy.members} == {host.id}
    assert occupancy.guests[0].invited_by == InvitedBy.member(host.id)
    assert occupancy.fills[0].label == "Club Pro"
    assert occupancy.fills[0].added_by_member_id == host.id

    db.expire_all()
    assert {m.booking_time for m in db.query(TimeBlockMember).all()} == {"09:00"}
    assert db.query(TimeBlockGuest).one().booking_time == "09:00"


def test_move_to_another_date_updates_booking_date(db, ledger, party):
    sunday = TimeBlockMaterializer(db).get_or_create(date(2025, 12, 28))

    PartyMover(db).move_party(party["block"].id, sunday.time_blocks[0].id)

    db.expire_all()
    assert {m.booking_date for m in db.query(TimeBlockMember).all()} == {date(2025, 12, 28)}


def test_move_into_too_small_block_changes_nothing(db, ledger, saturday_sheet, party):
    target = saturday_sheet.time_blocks[1]
    ledger.add_fill(target.id, FillType.GUEST)

    with pytest.raises(CapacityExceeded) as exc:
        PartyMover(db).move_party(party["block"].id, target.id)

    assert exc.value.details == {"timeBlockId": target.id, "available": 3, "partySize": 4}
    assert ledger.get_block_occupancy(party["block"].id).occupancy == 4
    assert ledger.get_block_occupancy(target.id).occupancy == 1


def test_move_rejects_member_already_in_target(db, ledger, saturday_sheet, party):
    target = saturday_sheet.time_blocks[2]
    ledger.add_member(target.id, party["partner"].id)
    # Shrink the party so capacity is not the failing check
    for fill in ledger.get_block_occupancy(party["block"].id).fills:
        ledger.remove_fill(fill.id)

    with pytest.raises(DuplicateBooking):
        PartyMover(db).move_party(party["block"].id, target.id)

    assert ledger.get_block_occupancy(party["block"].id).occupancy == 3
    assert ledger.get_block_occupancy(target.id).occupancy == 1


def test_move_to_same_block(db, party):
    with pytest.raises(InvalidConfiguration):
        PartyMover(db).move_party(party["block"].id, party["block"].id)


def test_move_with_missing_block(db, party):
    with pytest.raises(NotFound):
        PartyMover(db).move_party(party["block"].id, 9999)
    with pytest.raises(NotFound):
        PartyMover(db).move_party(9999, party["block"].id)


def test_empty_source_moves_nothing(db, saturday_sheet):
    assert PartyMover(db).move_party(saturday_sheet.time_blocks[0].id, saturday_sheet.time_blocks[1].id) == 0


def test_overrides_follow_the_moved_party(db, saturday_sheet, party, make_member, make_restriction):
    source, target = party["block"], saturday_sheet.time_blocks[6]
    limit = make_restriction("Monthly Limit", "MEMBER_CLASS", "FREQUENCY", max_count=1)
    bystander = make_member()
    db.add_all(
        [
            RestrictionOverride(
                restriction_id=limit.id, time_block_id=source.id, member_id=party["host"].id, overridden_by="Head Pro"
            ),
            RestrictionOverride(
                restriction_id=limit.id, time_block_id=source.id, member_id=bystander.id, overridden_by="Head Pro"
            ),
        ]
    )
    db.commit()

    PartyMover(db).move_party(source.id, target.id)

    db.expire_all()
    blocks = {
        o.member_id: o.time_block_id for o in db.query(RestrictionOverride).order_by(RestrictionOverride.id)
    }
    assert blocks == {party["host"].id: target.id, bystander.id: source.id}
