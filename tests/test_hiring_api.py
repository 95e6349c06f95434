from __future__ import annotations


def test_candidate_moves_between_any_stages(login_as):
    lead = login_as("lead@pulse.test", "Lead", building="DC301", shift="1st")
    created = lead.post(
        "/api/hiring",
        json={"full_name": "Omar Reyes", "phone": " 555-0101 ", "role_applied": "Loader", "source": "Referral"},
    )
    assert created.status_code == 201
    body = created.json()
    assert body["building"] == "DC301"
    assert body["stage"] == "Applied"
    assert body["phone"] == "555-0101"

    candidate_id = body["id"]
    for stage in ("Offer", "Phone Screen", "Hired", "Applied"):
        moved = lead.patch(f"/api/hiring/{candidate_id}", json={"stage": stage})
        assert moved.status_code == 200
        assert moved.json()["stage"] == stage

    assert lead.patch(f"/api/hiring/{candidate_id}", json={"stage": "Ghosted"}).status_code == 422


def test_any_lead_in_building_edits_candidates(login_as):
    manager = login_as("bm@pulse.test", "Building Manager", building="DC5")
    candidate_id = manager.post("/api/hiring", json={"full_name": "Pia"}).json()["id"]

    lead = login_as("lead@pulse.test", "Lead", building="DC5", shift="2nd")
    updated = lead.patch(f"/api/hiring/{candidate_id}", json={"notes": "Strong interview"})
    assert updated.status_code == 200
    assert updated.json()["notes"] == "Strong interview"

    other = login_as("lead11@pulse.test", "Lead", building="DC11", shift="1st")
    assert other.get("/api/hiring").json() == []
    assert other.patch(f"/api/hiring/{candidate_id}", json={"notes": "x"}).status_code == 403


def test_stage_filter_and_delete(login_as):
    admin = login_as("admin@pulse.test", "Super Admin")
    admin.post("/api/hiring", json={"full_name": "Quinn", "building": "DC1", "stage": "Onsite"})
    rejected_id = admin.post(
        "/api/hiring", json={"full_name": "Rae", "building": "DC1", "stage": "Rejected"}
    ).json()["id"]

    onsite = admin.get("/api/hiring", params={"stage": "Onsite"}).json()
    assert [row["full_name"] for row in onsite] == ["Quinn"]

    assert admin.delete(f"/api/hiring/{rejected_id}").json() == {"ok": True}
    assert [row["full_name"] for row in admin.get("/api/hiring").json()] == ["Quinn"]


def test_candidate_name_is_required(login_as):
    manager = login_as("bm@pulse.test", "Building Manager", building="DC5")
    response = manager.post("/api/hiring", json={"full_name": "   "})
    assert response.status_code == 422
    assert response.json()["detail"] == "Candidate name is required."
