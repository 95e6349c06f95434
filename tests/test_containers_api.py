from __future__ import annotations

import pytest


def container_payload(**overrides):
    payload = {
        "building": "DC5",
        "shift": "1st",
        "work_date": "2026-10-19",
        "container_no": "MSCU1234567",
        "pieces_total": 3500,
        "skus_total": 12,
        "palletized": False,
        "workers": [{"name": "Ana", "minutes_worked": 240, "percent_contribution": 100}],
    }
    payload.update(overrides)
    return payload


def test_manager_create_computes_pay_and_forces_building(login_as):
    manager = login_as("bm@pulse.test", "Building Manager", building="DC5")

    created = manager.post("/api/containers", json=container_payload(building="DC11"))
    assert created.status_code == 201
    body = created.json()
    assert body["building"] == "DC5"
    assert body["pay_total"] == 180.0
    assert body["workers"] == [
        {"name": "Ana", "minutes_worked": 240.0, "percent_contribution": 100.0, "payout": 180.0},
    ]
    assert body["created_by_email"] == "bm@pulse.test"
    assert body["permissions"] == {"can_view": True, "can_edit": True, "can_delete": True}


def test_palletized_container_splits_flat_rate(login_as):
    admin = login_as("admin@pulse.test", "Super Admin")
    created = admin.post(
        "/api/containers",
        json=container_payload(
            building="DC18",
            pieces_total=12000,
            palletized=True,
            workers=[
                {"name": "Ana", "percent_contribution": 60},
                {"name": "Ben", "percent_contribution": 40},
                {"name": "", "percent_contribution": 0},
            ],
        ),
    )
    assert created.status_code == 201
    body = created.json()
    assert body["building"] == "DC18"
    assert body["pay_total"] == 100.0
    assert [worker["payout"] for worker in body["workers"]] == [60.0, 40.0]


def test_percent_split_must_total_100(login_as):
    manager = login_as("bm@pulse.test", "Building Manager", building="DC5")
    response = manager.post(
        "/api/containers",
        json=container_payload(workers=[{"name": "Ana", "percent_contribution": 57}]),
    )
    assert response.status_code == 422
    assert response.json()["detail"] == "Worker contribution percentages must total 100% (currently 57%)."
    assert manager.get("/api/containers").json() == []


def test_negative_values_and_missing_fields_are_rejected(login_as):
    manager = login_as("bm@pulse.test", "Building Manager", building="DC5")
    assert manager.post("/api/containers", json=container_payload(pieces_total=-5)).status_code == 422
    assert manager.post("/api/containers", json=container_payload(pieces_total=0)).status_code == 422
    assert manager.post("/api/containers", json=container_payload(container_no="   ")).status_code == 422
    negative_worker = container_payload(workers=[{"name": "Ana", "percent_contribution": -10}])
    assert manager.post("/api/containers", json=negative_worker).status_code == 422


def test_leads_are_sent_to_work_orders(login_as):
    lead = login_as("lead@pulse.test", "Lead", building="DC5", shift="1st")
    response = lead.post("/api/containers", json=container_payload())
    assert response.status_code == 403
    assert "work orders" in response.json()["detail"]


def test_quote_previews_without_writing(login_as):
    lead = login_as("lead@pulse.test", "Lead", building="DC5")
    quote = lead.post(
        "/api/containers/quote",
        json={"pieces_total": 7501, "workers": [{"name": "Ana", "percent_contribution": 50}]},
    )
    assert quote.status_code == 200
    body = quote.json()
    assert body["pay_total"] == pytest.approx(280.05)
    assert body["valid"] is False
    assert "50%" in body["error"]
    assert body["workers"][0]["payout"] == pytest.approx(140.03, abs=0.01)
    assert lead.get("/api/containers").json() == []


def test_update_recomputes_pay(login_as):
    manager = login_as("bm@pulse.test", "Building Manager", building="DC5")
    container_id = manager.post("/api/containers", json=container_payload()).json()["id"]

    updated = manager.patch(
        f"/api/containers/{container_id}",
        json={
            "pieces_total": 501,
            "workers": [
                {"name": "Ana", "percent_contribution": 50},
                {"name": "Ben", "percent_contribution": 50},
            ],
        },
    )
    assert updated.status_code == 200
    body = updated.json()
    assert body["pay_total"] == 130.0
    assert [worker["payout"] for worker in body["workers"]] == [65.0, 65.0]
    assert body["container_no"] == "MSCU1234567"


def test_list_is_scoped_to_manager_building(login_as):
    admin = login_as("admin@pulse.test", "Super Admin")
    admin.post("/api/containers", json=container_payload(building="DC5", container_no="A1"))
    admin.post("/api/containers", json=container_payload(building="DC11", container_no="B2"))

    manager = login_as("bm@pulse.test", "Building Manager", building="DC5")
    listed = manager.get("/api/containers", params={"building": "DC11"})
    assert [row["container_no"] for row in listed.json()] == ["A1"]

    everything = admin.get("/api/containers", params={"building": "ALL"})
    assert sorted(row["container_no"] for row in everything.json()) == ["A1", "B2"]

    other_id = next(row["id"] for row in everything.json() if row["container_no"] == "B2")
    assert manager.patch(f"/api/containers/{other_id}", json={"pieces_total": 10}).status_code == 403
    assert manager.delete(f"/api/containers/{other_id}").status_code == 403


def test_delete_and_missing_record(login_as):
    manager = login_as("bm@pulse.test", "Building Manager", building="DC5")
    container_id = manager.post("/api/containers", json=container_payload()).json()["id"]
    assert manager.delete(f"/api/containers/{container_id}").json() == {"ok": True}
    missing = manager.delete(f"/api/containers/{container_id}")
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Container not found"


def test_office_roles_can_list_but_not_write(login_as):
    admin = login_as("admin@pulse.test", "Super Admin")
    container_id = admin.post("/api/containers", json=container_payload(building="DC14")).json()["id"]

    hr = login_as("hr@pulse.test", "HR")
    listed = hr.get("/api/containers").json()
    assert [row["id"] for row in listed] == [container_id]
    assert listed[0]["permissions"]["can_edit"] is False
    assert hr.post("/api/containers", json=container_payload()).status_code == 403
    assert hr.delete(f"/api/containers/{container_id}").status_code == 403
