from __future__ import annotations

import pytest

import pulse.db as pulse_db
from pulse.main import app
from pulse.models import InjuryReport
from pulse.notify import get_notifier


class RecordingNotifier:
    def __init__(self, delivered: bool = True) -> None:
        self.delivered = delivered
        self.calls: list[tuple[str, int]] = []

    def notify(self, event: str, report_id: int) -> bool:
        self.calls.append((event, report_id))
        return self.delivered


@pytest.fixture
def notifier():
    recorder = RecordingNotifier()
    app.dependency_overrides[get_notifier] = lambda: recorder
    return recorder


def report_payload(**overrides):
    payload = {
        "shift": "1st",
        "work_date": "2026-10-19",
        "employee_name": "Sam Ortiz",
        "incident_datetime": "2026-10-19T08:30:00",
        "incident_location": "Dock 3",
        "incident_type": "Strain",
        "body_part": "Lower back",
        "injury_description": "Lifted carton awkwardly",
        "immediate_actions": "Ice pack, rest",
        "witnesses": [
            {"name": "Tia", "phone": "555-0102", "statement": "Saw the lift"},
            {"name": "", "phone": "", "statement": ""},
        ],
    }
    payload.update(overrides)
    return payload


def test_create_saves_draft_with_reporter_snapshot(login_as, notifier):
    lead = login_as("lead@pulse.test", "Lead", building="DC5", shift="1st", name="Lena Lead")
    created = lead.post("/api/injury-reports", json=report_payload(building="DC11"))
    assert created.status_code == 201
    body = created.json()
    assert body["building"] == "DC5"
    assert body["status"] == "Draft"
    assert body["reported_by_name"] == "Lena Lead"
    assert body["reported_by_role"] == "Lead"
    assert body["witnesses"] == [{"name": "Tia", "phone": "555-0102", "statement": "Saw the lift"}]
    assert body["can_close"] is False

    assert notifier.calls == [("draft", body["id"])]
    db = pulse_db.SessionLocal()
    assert db.get(InjuryReport, body["id"]).emailed_draft_at is not None
    db.close()


def test_missing_required_fields_are_listed(login_as, notifier):
    manager = login_as("bm@pulse.test", "Building Manager", building="DC5")
    response = manager.post(
        "/api/injury-reports",
        json=report_payload(employee_name="  ", body_part=None, immediate_actions=""),
    )
    assert response.status_code == 422
    assert response.json()["detail"] == (
        "Missing required fields: Employee name, Body part, Immediate actions taken."
    )
    assert notifier.calls == []


def test_submit_locks_report_for_lead_but_manager_can_still_edit(login_as, notifier):
    lead = login_as("lead@pulse.test", "Lead", building="DC5", shift="1st")
    report_id = lead.post("/api/injury-reports", json=report_payload()).json()["id"]

    edited = lead.patch(f"/api/injury-reports/{report_id}", json={"clinic_name": "CityMed", "sent_to_clinic": True})
    assert edited.status_code == 200
    assert edited.json()["sent_to_clinic"] is True

    submitted = lead.post(f"/api/injury-reports/{report_id}/submit")
    assert submitted.status_code == 200
    assert submitted.json()["status"] == "Submitted"
    assert submitted.json()["permissions"]["can_edit"] is False
    assert notifier.calls == [("draft", report_id), ("draft", report_id), ("submitted", report_id)]

    assert lead.patch(f"/api/injury-reports/{report_id}", json={"clinic_name": "Other"}).status_code == 403
    assert lead.delete(f"/api/injury-reports/{report_id}").status_code == 403
    assert lead.post(f"/api/injury-reports/{report_id}/submit").status_code == 403

    manager = login_as("bm@pulse.test", "Building Manager", building="DC5")
    corrected = manager.patch(f"/api/injury-reports/{report_id}", json={"incident_area": "Aisle 12"})
    assert corrected.status_code == 200
    assert corrected.json()["incident_area"] == "Aisle 12"
    assert corrected.json()["status"] == "Submitted"

    again = manager.post(f"/api/injury-reports/{report_id}/submit")
    assert again.status_code == 409


def test_close_requires_capability_and_submitted_status(login_as, notifier):
    manager = login_as("bm@pulse.test", "Building Manager", building="DC5")
    report_id = manager.post("/api/injury-reports", json=report_payload()).json()["id"]

    hr = login_as("hr@pulse.test", "HR")
    too_early = hr.post(f"/api/injury-reports/{report_id}/close", json={"hr_notes": "n/a"})
    assert too_early.status_code == 409

    manager.post(f"/api/injury-reports/{report_id}/submit")
    assert manager.post(f"/api/injury-reports/{report_id}/close", json={}).status_code == 403

    regional = login_as("rm@pulse.test", "Regional Manager")
    assert regional.get(f"/api/injury-reports/{report_id}").json()["can_close"] is False
    assert regional.post(f"/api/injury-reports/{report_id}/close", json={}).status_code == 403

    assert hr.get(f"/api/injury-reports/{report_id}").json()["can_close"] is True
    closed = hr.post(f"/api/injury-reports/{report_id}/close", json={"hr_notes": "  Claim filed  "})
    assert closed.status_code == 200
    assert closed.json()["status"] == "Closed"
    assert closed.json()["hr_notes"] == "Claim filed"

    blocked = manager.patch(f"/api/injury-reports/{report_id}", json={"incident_area": "Dock 1"})
    assert blocked.status_code == 409

    admin = login_as("admin@pulse.test", "Super Admin")
    fixed = admin.patch(f"/api/injury-reports/{report_id}", json={"incident_area": "Dock 1"})
    assert fixed.status_code == 200


def test_reports_are_scoped_by_building(login_as, notifier):
    lead = login_as("lead@pulse.test", "Lead", building="DC5", shift="1st")
    report_id = lead.post("/api/injury-reports", json=report_payload()).json()["id"]

    other = login_as("lead11@pulse.test", "Lead", building="DC11", shift="1st")
    assert other.get("/api/injury-reports").json() == []
    assert other.get(f"/api/injury-reports/{report_id}").status_code == 403

    director = login_as("dir@pulse.test", "Director of Operations")
    listed = director.get("/api/injury-reports", params={"status": "Draft"}).json()
    assert [row["id"] for row in listed] == [report_id]
    assert listed[0]["permissions"]["can_edit"] is False


def test_file_upload_signed_url_and_delete(login_as, notifier):
    lead = login_as("lead@pulse.test", "Lead", building="DC5", shift="1st")
    report_id = lead.post("/api/injury-reports", json=report_payload()).json()["id"]

    uploaded = lead.post(
        f"/api/injury-reports/{report_id}/files",
        files={"file": ("forklift photo.jpg", b"fake-jpeg-bytes", "image/jpeg")},
        data={"category": "photo"},
    )
    assert uploaded.status_code == 201
    upload = uploaded.json()
    assert upload["file_name"] == "forklift photo.jpg"
    assert upload["category"] == "photo"
    assert upload["file_size"] == len(b"fake-jpeg-bytes")

    listed = lead.get(f"/api/injury-reports/{report_id}/files").json()
    assert [row["id"] for row in listed] == [upload["id"]]

    url = lead.get(f"/api/injury-reports/{report_id}/files/{upload['id']}/url").json()["url"]
    fetched = lead.get(url)
    assert fetched.status_code == 200
    assert fetched.content == b"fake-jpeg-bytes"
    assert fetched.headers["content-type"].startswith("image/jpeg")

    tampered = lead.get(url.replace("signature=", "signature=0"))
    assert tampered.status_code == 403

    assert lead.delete(f"/api/injury-reports/{report_id}/files/{upload['id']}").json() == {"ok": True}
    assert lead.get(url).status_code == 404


def test_upload_rejects_empty_files_and_unknown_categories(login_as, notifier):
    manager = login_as("bm@pulse.test", "Building Manager", building="DC5")
    report_id = manager.post("/api/injury-reports", json=report_payload()).json()["id"]

    empty = manager.post(
        f"/api/injury-reports/{report_id}/files",
        files={"file": ("empty.pdf", b"", "application/pdf")},
    )
    assert empty.status_code == 422

    unknown = manager.post(
        f"/api/injury-reports/{report_id}/files",
        files={"file": ("note.txt", b"hello", "text/plain")},
        data={"category": "selfie"},
    )
    assert unknown.status_code == 422

    sanitized = manager.post(
        f"/api/injury-reports/{report_id}/files",
        files={"file": ("../../etc/pass?wd.txt", b"hello", "text/plain")},
    )
    assert sanitized.status_code == 201
    assert sanitized.json()["file_name"] == "pass_wd.txt"
    assert sanitized.json()["category"] == "other"


def test_delete_report_removes_stored_files(login_as, notifier, tmp_path):
    manager = login_as("bm@pulse.test", "Building Manager", building="DC5")
    report_id = manager.post("/api/injury-reports", json=report_payload()).json()["id"]
    manager.post(
        f"/api/injury-reports/{report_id}/files",
        files={"file": ("statement.pdf", b"%PDF-1.4", "application/pdf")},
        data={"category": "statement"},
    )
    report_dir = tmp_path / "uploads" / "injury-uploads" / "reports" / str(report_id)
    assert len(list(report_dir.iterdir())) == 1

    assert manager.delete(f"/api/injury-reports/{report_id}").json() == {"ok": True}
    assert list(report_dir.iterdir()) == []
    assert manager.get(f"/api/injury-reports/{report_id}").status_code == 404


def test_failed_email_leaves_report_unstamped(login_as):
    recorder = RecordingNotifier(delivered=False)
    app.dependency_overrides[get_notifier] = lambda: recorder

    manager = login_as("bm@pulse.test", "Building Manager", building="DC5")
    created = manager.post("/api/injury-reports", json=report_payload())
    assert created.status_code == 201
    assert recorder.calls == [("draft", created.json()["id"])]
    assert manager.get(f"/api/injury-reports/{created.json()['id']}").json()["emailed_draft_at"] is None


def test_office_role_creator_edits_and_submits_own_draft(login_as, notifier):
    hr = login_as("hr@pulse.test", "HR", name="Hana HR")
    created = hr.post("/api/injury-reports", json=report_payload(building="DC5"))
    assert created.status_code == 201
    report_id = created.json()["id"]
    assert created.json()["permissions"]["can_edit"] is True

    edited = hr.patch(f"/api/injury-reports/{report_id}", json={"incident_area": "Aisle 4"})
    assert edited.status_code == 200
    assert edited.json()["incident_area"] == "Aisle 4"

    uploaded = hr.post(
        f"/api/injury-reports/{report_id}/files",
        files={"file": ("statement.pdf", b"%PDF-1.4", "application/pdf")},
        data={"category": "statement"},
    )
    assert uploaded.status_code == 201

    submitted = hr.post(f"/api/injury-reports/{report_id}/submit")
    assert submitted.status_code == 200
    assert submitted.json()["status"] == "Submitted"
    assert submitted.json()["permissions"]["can_edit"] is False
    assert submitted.json()["can_close"] is True

    director = login_as("dir@pulse.test", "Director of Operations")
    assert director.patch(f"/api/injury-reports/{report_id}", json={"incident_area": "Dock 2"}).status_code == 403


def test_work_order_link_must_match_report_building(login_as, notifier):
    admin = login_as("admin@pulse.test", "Super Admin")
    dc11_order = admin.post("/api/work-orders", json={"building": "DC11", "work_order_code": "WO-11"}).json()["id"]
    dc5_order = admin.post("/api/work-orders", json={"building": "DC5", "work_order_code": "WO-5"}).json()["id"]

    manager = login_as("bm@pulse.test", "Building Manager", building="DC5")
    wrong_building = manager.post("/api/injury-reports", json=report_payload(work_order_id=dc11_order))
    assert wrong_building.status_code == 422
    assert wrong_building.json()["detail"] == "Linked work order belongs to a different building."

    missing = manager.post("/api/injury-reports", json=report_payload(work_order_id=9999))
    assert missing.status_code == 422
    assert missing.json()["detail"] == "Linked work order does not exist."

    created = manager.post("/api/injury-reports", json=report_payload(work_order_id=dc5_order))
    assert created.status_code == 201
    report_id = created.json()["id"]

    relinked = manager.patch(f"/api/injury-reports/{report_id}", json={"work_order_id": dc11_order})
    assert relinked.status_code == 422

    moved = admin.patch(f"/api/injury-reports/{report_id}", json={"building": "DC11"})
    assert moved.status_code == 422
    assert manager.get(f"/api/injury-reports/{report_id}").json()["work_order_id"] == dc5_order


def test_deleting_work_order_clears_injury_link(login_as, notifier):
    manager = login_as("bm@pulse.test", "Building Manager", building="DC5")
    work_order_id = manager.post("/api/work-orders", json={"work_order_code": "WO-6"}).json()["id"]
    report_id = manager.post("/api/injury-reports", json=report_payload(work_order_id=work_order_id)).json()["id"]

    assert manager.delete(f"/api/work-orders/{work_order_id}").json() == {"ok": True}
    assert manager.get(f"/api/injury-reports/{report_id}").json()["work_order_id"] is None
    assert manager.patch(f"/api/injury-reports/{report_id}", json={"incident_area": "Dock 2"}).status_code == 200
