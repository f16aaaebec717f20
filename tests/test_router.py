"""API tests - status codes and payload shapes for the teesheet and schedule config endpoints"""

from clubhouse.shared.dates import club_today

SATURDAY = "2025-12-27"


def get_sheet(client, day=SATURDAY):
    response = client.get(f"/teesheets/{day}")
    assert response.status_code == 200
    return response.json()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_get_teesheet_creates_it(client):
    sheet = get_sheet(client)

    assert sheet["date"] == SATURDAY
    assert sheet["configName"] == "Weekend (Default)"
    assert sheet["isPublic"] is False
    assert len(sheet["timeBlocks"]) == 37
    first = sheet["timeBlocks"][0]
    assert (first["startTime"], first["maxMembers"], first["available"], first["isAvailable"]) == (
        "07:00",
        4,
        4,
        True,
    )
    assert get_sheet(client)["id"] == sheet["id"]


def test_todays_teesheet(client):
    response = client.get("/teesheets/today")

    assert response.status_code == 200
    assert response.json()["date"] == club_today()


def test_invalid_date_is_422(client):
    response = client.get("/teesheets/2025-02-30")

    assert response.status_code == 422
    assert response.json()["error"] == "InvalidConfiguration"


def test_booking_flow(client, make_member, make_guest):
    host, friend, late = make_member(), make_member(), make_member()
    block_id = get_sheet(client)["timeBlocks"][0]["id"]

    response = client.post(
        f"/teesheets/blocks/{block_id}/members", json={"memberId": host.id, "actingMemberId": host.id}
    )
    assert response.status_code == 201
    assert response.json()["bookedByMemberId"] == host.id

    assert client.post(f"/teesheets/blocks/{block_id}/members", json={"memberId": friend.id}).status_code == 201
    guest = client.post(
        f"/teesheets/blocks/{block_id}/guests", json={"guestId": make_guest().id, "invitedByMemberId": host.id}
    )
    assert guest.status_code == 201
    assert guest.json()["invitedBy"] == {"kind": "MEMBER", "memberId": host.id}
    fill = client.post(f"/teesheets/blocks/{block_id}/fills", json={"fillType": "reciprocal_fill"})
    assert fill.status_code == 201
    assert fill.json()["label"] == "Recip Fill"

    full = client.post(f"/teesheets/blocks/{block_id}/members", json={"memberId": late.id})
    assert full.status_code == 409
    assert full.json()["error"] == "CapacityExceeded"
    assert full.json()["maxMembers"] == 4

    block = client.get(f"/teesheets/blocks/{block_id}").json()
    assert block["occupancy"] == 4
    assert block["isAvailable"] is False
    assert [m["memberId"] for m in block["members"]] == [host.id, friend.id]


def test_duplicate_booking_is_409(client, make_member):
    member = make_member()
    block_id = get_sheet(client)["timeBlocks"][1]["id"]
    client.post(f"/teesheets/blocks/{block_id}/members", json={"memberId": member.id})

    response = client.post(f"/teesheets/blocks/{block_id}/members", json={"memberId": member.id})

    assert response.status_code == 409
    assert response.json()["error"] == "DuplicateBooking"


def test_unknown_block_is_404(client, make_member):
    response = client.post("/teesheets/blocks/9999/members", json={"memberId": make_member().id})

    assert response.status_code == 404
    assert response.json()["timeBlockId"] == 9999


def test_removing_missing_occupant_succeeds(client, make_member):
    assert client.delete("/teesheets/occupants/members/9999").json() == {"removed": False}

    block_id = get_sheet(client)["timeBlocks"][0]["id"]
    occupant = client.post(f"/teesheets/blocks/{block_id}/members", json={"memberId": make_member().id}).json()
    assert client.delete(f"/teesheets/occupants/members/{occupant['id']}").json() == {"removed": True}
    assert client.delete(f"/teesheets/occupants/members/{occupant['id']}").json() == {"removed": False}


def test_check_in_and_booked_by(client, make_member):
    member, booker = make_member(), make_member()
    block_id = get_sheet(client)["timeBlocks"][0]["id"]
    occupant = client.post(f"/teesheets/blocks/{block_id}/members", json={"memberId": member.id}).json()

    checked_in = client.patch(f"/teesheets/occupants/members/{occupant['id']}/check-in", json={"checkedIn": True})
    assert checked_in.json()["checkedIn"] is True

    rebooked = client.patch(
        f"/teesheets/blocks/{block_id}/members/{member.id}/booked-by", json={"bookedByMemberId": booker.id}
    )
    assert rebooked.json()["bookedByMemberId"] == booker.id


def test_restriction_violation_payload(client, make_member, make_restriction):
    make_restriction(
        "Social Weekend Mornings",
        "MEMBER_CLASS",
        "TIME",
        member_classes=["Social"],
        days_of_week=[0, 6],
        start_time="07:00",
        end_time="11:00",
    )
    member = make_member(member_class="Social")
    block_id = get_sheet(client)["timeBlocks"][0]["id"]

    check = client.post(
        "/teesheets/restrictions/check", json={"memberId": member.id, "date": SATURDAY, "time": "07:00"}
    )
    assert check.status_code == 200
    assert check.json()["hasViolations"] is True
    assert check.json()["blocking"][0]["type"] == "TIME"

    response = client.post(f"/teesheets/blocks/{block_id}/members", json={"memberId": member.id})
    assert response.status_code == 403
    body = response.json()
    assert body["error"] == "RestrictionViolated"
    assert body["overridable"] is False
    assert body["violations"][0]["restrictionName"] == "Social Weekend Mornings"


def test_restriction_check_needs_exactly_one_actor(client):
    response = client.post(
        "/teesheets/restrictions/check", json={"memberId": 1, "guestId": 1, "date": SATURDAY, "time": "07:00"}
    )
    assert response.status_code == 422


def test_move_party(client, make_member):
    sheet = get_sheet(client)
    source, target = sheet["timeBlocks"][0]["id"], sheet["timeBlocks"][3]["id"]
    client.post(f"/teesheets/blocks/{source}/members", json={"memberId": make_member().id})
    client.post(f"/teesheets/blocks/{source}/fills", json={"fillType": "guest_fill"})

    response = client.post(f"/teesheets/blocks/{source}/move", json={"targetBlockId": target})

    assert response.status_code == 200
    assert response.json() == {"sourceBlockId": source, "targetBlockId": target, "movedCount": 2}
    assert client.get(f"/teesheets/blocks/{target}").json()["occupancy"] == 2


def test_reassign_requires_confirmation(client, make_config):
    sheet = get_sheet(client)
    other = make_config("Shotgun Saturday", start="08:00", end="08:00", interval=10)

    response = client.post(f"/teesheets/{sheet['id']}/reassign-config", json={"configId": other.id})
    assert response.status_code == 400
    assert len(get_sheet(client)["timeBlocks"]) == 37

    confirmed = client.post(
        f"/teesheets/{sheet['id']}/reassign-config", json={"configId": other.id, "confirm": True}
    )
    assert confirmed.status_code == 200
    assert confirmed.json()["configName"] == "Shotgun Saturday"
    assert [b["startTime"] for b in confirmed.json()["timeBlocks"]] == ["08:00"]


def test_visibility_and_notes(client):
    sheet = get_sheet(client)

    published = client.patch(f"/teesheets/{sheet['id']}/visibility", json={"isPublic": True})
    assert published.json()["isPublic"] is True
    assert published.json()["publishedAt"] is not None

    notes = client.patch(f"/teesheets/{sheet['id']}/notes", json={"notes": "Carts on paths"})
    assert notes.json()["generalNotes"] == "Carts on paths"

    block_id = sheet["timeBlocks"][0]["id"]
    block = client.patch(f"/teesheets/blocks/{block_id}/notes", json={"notes": "Shotgun start"})
    assert block.json()["notes"] == "Shotgun start"


def test_oversized_private_message_is_422(client):
    sheet = get_sheet(client)

    response = client.patch(
        f"/teesheets/{sheet['id']}/visibility", json={"isPublic": False, "privateMessage": "x" * 2500}
    )

    assert response.status_code == 422
    assert get_sheet(client)["privateMessage"] == sheet["privateMessage"]


# ============================================================================
# SCHEDULE CONFIGS
# ============================================================================


def test_create_and_resolve_config(client):
    response = client.post(
        "/schedule-configs",
        json={
            "name": "Winter Weekend",
            "startTime": "08:00",
            "endTime": "15:00",
            "intervalMinutes": 12,
            "rules": [{"daysOfWeek": [0, 6], "priority": 5}],
        },
    )
    assert response.status_code == 201
    assert response.json()["rules"][0]["daysOfWeek"] == [0, 6]

    resolved = client.get(f"/schedule-configs/resolve/{SATURDAY}").json()
    assert resolved["dayOfWeek"] == 6
    assert resolved["config"]["name"] == "Winter Weekend"

    names = [c["name"] for c in client.get("/schedule-configs").json()]
    assert names == ["Winter Weekend"]


def test_conflicting_rule_is_409(client):
    first = client.post(
        "/schedule-configs",
        json={
            "name": "Christmas",
            "startTime": "09:00",
            "endTime": "13:00",
            "intervalMinutes": 15,
            "rules": [{"startDate": "2025-12-25", "endDate": "2025-12-25"}],
        },
    ).json()
    second = client.post(
        "/schedule-configs",
        json={"name": "Holiday", "startTime": "09:00", "endTime": "13:00", "intervalMinutes": 15},
    ).json()

    response = client.post(
        f"/schedule-configs/{second['id']}/rules", json={"startDate": "2025-12-25", "endDate": "2025-12-25"}
    )

    assert response.status_code == 409
    assert response.json()["conflictingConfigId"] == first["id"]


def test_custom_config_from_template(client):
    template = client.post(
        "/schedule-configs/templates",
        json={
            "name": "Two Tee Start",
            "blocks": [
                {"startTime": "08:00", "maxPlayers": 4, "displayName": "Hole 1"},
                {"startTime": "08:00", "maxPlayers": 4, "displayName": "Hole 10"},
            ],
        },
    )
    assert template.status_code == 201
    assert [b["sortOrder"] for b in template.json()["blocks"]] == [0, 1]

    config = client.post(
        "/schedule-configs",
        json={
            "name": "Member Guest",
            "kind": "CUSTOM",
            "templateId": template.json()["id"],
            "rules": [{"startDate": SATURDAY, "endDate": SATURDAY}],
        },
    )
    assert config.status_code == 201

    sheet = get_sheet(client)
    assert [b["displayName"] for b in sheet["timeBlocks"]] == ["Hole 1", "Hole 10"]


def test_invalid_config_is_422(client):
    response = client.post(
        "/schedule-configs",
        json={"name": "Backwards", "startTime": "18:00", "endTime": "07:00", "intervalMinutes": 15},
    )
    assert response.status_code == 422
    assert response.json()["error"] == "InvalidConfiguration"


def test_update_and_deactivate_config(client):
    config = client.post(
        "/schedule-configs",
        json={
            "name": "Winter Weekend",
            "startTime": "08:00",
            "endTime": "15:00",
            "intervalMinutes": 12,
            "rules": [{"daysOfWeek": [0, 6], "priority": 5}],
        },
    ).json()
    rule_id = config["rules"][0]["id"]

    updated = client.patch(f"/schedule-configs/{config['id']}", json={"intervalMinutes": 10, "name": "Winter"})
    assert (updated.json()["name"], updated.json()["intervalMinutes"]) == ("Winter", 10)
    assert client.patch(f"/schedule-configs/{config['id']}", json={"endTime": "07:00"}).status_code == 422

    rule = client.patch(f"/schedule-configs/rules/{rule_id}", json={"daysOfWeek": [6]})
    assert rule.json()["daysOfWeek"] == [6]
    assert client.delete(f"/schedule-configs/rules/{rule_id}").json()["isActive"] is False

    assert client.delete(f"/schedule-configs/{config['id']}").json()["isActive"] is False
    assert client.patch("/schedule-configs/999", json={"name": "Gone"}).status_code == 404
