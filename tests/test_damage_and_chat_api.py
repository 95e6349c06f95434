from __future__ import annotations

from pulse.api.damage_reports import damage_percent


def test_damage_percent():
    assert damage_percent(3, 40) == 7.5
    assert damage_percent(1, 3) == 33.33
    assert damage_percent(5, 0) == 0.0


def test_damage_report_records_reporter_and_percent(login_as):
    lead = login_as("lead@pulse.test", "Lead", building="DC11", shift="2nd", name="Lee")
    created = lead.post(
        "/api/damage-reports",
        json={
            "building": "DC1",
            "container_no": "TGHU7654321",
            "damage_type": "Shortage",
            "severity": "Moderate",
            "pieces_damaged": 12,
            "pieces_total": 480,
        },
    )
    assert created.status_code == 201
    body = created.json()
    assert body["building"] == "DC11"
    assert body["damage_percent"] == 2.5
    assert body["reporter_name"] == "Lee"
    assert body["status"] == "Open"

    updated = lead.patch(f"/api/damage-reports/{body['id']}", json={"pieces_total": 0, "status": "In Review"})
    assert updated.json()["damage_percent"] == 0.0
    assert updated.json()["status"] == "In Review"


def test_damaged_pieces_cannot_exceed_total(login_as):
    manager = login_as("bm@pulse.test", "Building Manager", building="DC5")
    response = manager.post(
        "/api/damage-reports",
        json={"container_no": "C-1", "pieces_damaged": 50, "pieces_total": 10},
    )
    assert response.status_code == 422
    assert response.json()["detail"] == "Damaged pieces cannot exceed total pieces."
    bad_type = manager.post("/api/damage-reports", json={"container_no": "C-1", "damage_type": "Fire"})
    assert bad_type.status_code == 422


def test_any_lead_in_building_updates_damage_reports(login_as):
    manager = login_as("bm@pulse.test", "Building Manager", building="DC5")
    report_id = manager.post("/api/damage-reports", json={"container_no": "C-2"}).json()["id"]

    lead = login_as("lead@pulse.test", "Lead", building="DC5", shift="1st")
    updated = lead.patch(f"/api/damage-reports/{report_id}", json={"description": "Crushed corner"})
    assert updated.status_code == 200
    assert updated.json()["description"] == "Crushed corner"


def test_chat_post_pin_and_order(login_as):
    manager = login_as("bm@pulse.test", "Building Manager", building="DC5", name="Bea")
    first_id = manager.post("/api/chat", json={"message": "Trucks late today", "channel": "Shift Ops"}).json()["id"]
    second = manager.post("/api/chat", json={"message": "  Safety huddle at 9  ", "channel": "Safety"})
    assert second.status_code == 201
    assert second.json()["message"] == "Safety huddle at 9"
    assert second.json()["author_name"] == "Bea"
    assert second.json()["author_role"] == "Building Manager"

    pinned = manager.post(f"/api/chat/{first_id}/pin")
    assert pinned.json()["pinned"] is True
    listed = manager.get("/api/chat").json()
    assert listed[0]["id"] == first_id

    unpinned = manager.post(f"/api/chat/{first_id}/pin")
    assert unpinned.json()["pinned"] is False

    lead = login_as("lead@pulse.test", "Lead", building="DC5", shift="1st")
    assert lead.post(f"/api/chat/{first_id}/pin").status_code == 403
    assert [row["channel"] for row in lead.get("/api/chat", params={"channel": "Safety"}).json()] == ["Safety"]


def test_chat_delete_is_super_admin_only(login_as):
    manager = login_as("bm@pulse.test", "Building Manager", building="DC5")
    message_id = manager.post("/api/chat", json={"message": "hello"}).json()["id"]

    denied = manager.delete(f"/api/chat/{message_id}")
    assert denied.status_code == 403
    assert denied.json()["detail"] == "Only a Super Admin can delete chat messages."

    admin = login_as("admin@pulse.test", "Super Admin")
    assert admin.delete(f"/api/chat/{message_id}").json() == {"ok": True}


def test_chat_rejects_blank_and_oversized_messages(login_as):
    manager = login_as("bm@pulse.test", "Building Manager", building="DC5")
    assert manager.post("/api/chat", json={"message": "   "}).status_code == 422
    assert manager.post("/api/chat", json={"message": "x" * 2001}).status_code == 422
