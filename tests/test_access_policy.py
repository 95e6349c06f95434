from pulse.access import (
    BUILDING_MANAGER,
    DIRECTOR_OF_OPERATIONS,
    HR,
    LEAD,
    OTHER,
    REGIONAL_MANAGER,
    SUPER_ADMIN,
    WORKER,
    Actor,
    RecordRef,
    capabilities_for,
    chat_policy,
    container_policy,
    hiring_policy,
    injury_policy,
    readiness_policy,
    sanitize_role,
    workforce_policy,
)

LEAD_DC5 = Actor(id=10, email="lead@pulse.test", role=LEAD, building="DC5", shift="1st")
MANAGER_DC5 = Actor(id=20, email="bm@pulse.test", role=BUILDING_MANAGER, building="DC5")
ADMIN = Actor(id=1, email="admin@pulse.test", role=SUPER_ADMIN)
HR_USER = Actor(id=30, email="hr@pulse.test", role=HR)


def lead_record(building: str = "DC5", locked: bool = False, shift: str | None = "1st") -> RecordRef:
    return RecordRef(
        building=building,
        shift=shift,
        created_by_user_id=LEAD_DC5.id,
        created_by_email=LEAD_DC5.email,
        locked=locked,
    )


def test_unknown_roles_sanitize_to_worker():
    assert sanitize_role("building manager") == BUILDING_MANAGER
    assert sanitize_role("  Super Admin ") == SUPER_ADMIN
    assert sanitize_role("janitor") == WORKER
    assert sanitize_role(None) == WORKER
    assert sanitize_role("lumper") == WORKER


def test_lead_cannot_view_other_building():
    assert injury_policy.can_view(LEAD_DC5, lead_record()) is True
    assert injury_policy.can_view(LEAD_DC5, lead_record(building="DC11")) is False
    assert container_policy.can_view(LEAD_DC5, lead_record(building="DC11")) is False


def test_lead_loses_edit_once_record_locks_but_manager_keeps_it():
    draft = lead_record()
    submitted = lead_record(locked=True)
    assert injury_policy.can_edit(LEAD_DC5, draft) is True
    assert injury_policy.can_edit(LEAD_DC5, submitted) is False
    assert injury_policy.can_edit(MANAGER_DC5, submitted) is True
    assert injury_policy.can_delete(LEAD_DC5, submitted) is False


def test_lead_ownership_falls_back_to_email():
    by_email = RecordRef(building="DC5", created_by_user_id=None, created_by_email="LEAD@pulse.test")
    someone_else = RecordRef(building="DC5", created_by_user_id=99, created_by_email="other@pulse.test")
    assert container_policy.can_edit(LEAD_DC5, by_email) is True
    assert container_policy.can_edit(LEAD_DC5, someone_else) is False


def test_building_manager_is_confined_to_own_building():
    other = RecordRef(building="DC11")
    assert workforce_policy.can_view(MANAGER_DC5, other) is False
    assert workforce_policy.can_edit(MANAGER_DC5, other) is False
    assert workforce_policy.can_edit(MANAGER_DC5, RecordRef(building="DC5")) is True


def test_manager_scope_forces_own_building():
    scope = container_policy.scope_for(MANAGER_DC5, "DC11", "2nd")
    assert scope.effective_building == "DC5"
    assert scope.building_locked is True
    assert scope.effective_shift == "2nd"
    assert scope.shift_locked is False


def test_lead_scope_locks_building_and_shift():
    scope = readiness_policy.scope_for(LEAD_DC5, "DC1", "3rd")
    assert (scope.effective_building, scope.effective_shift) == ("DC5", "1st")
    assert scope.building_locked and scope.shift_locked


def test_super_admin_scope_is_unlocked():
    scope = container_policy.scope_for(ADMIN, "DC18", "4th")
    assert (scope.effective_building, scope.effective_shift) == ("DC18", "4th")
    assert not scope.building_locked and not scope.shift_locked


def test_workers_and_other_roles_have_no_access():
    for role in (WORKER, OTHER):
        actor = Actor(id=50, email="w@pulse.test", role=role, building="DC5")
        assert container_policy.can_create(actor) is False
        assert container_policy.can_view(actor, RecordRef(building="DC5")) is False
        assert container_policy.query_filter(actor) is None


def test_office_roles_view_everything_but_do_not_edit_others_records():
    record = RecordRef(building="DC14")
    for role in (HR, DIRECTOR_OF_OPERATIONS, REGIONAL_MANAGER):
        actor = Actor(id=60, email="office@pulse.test", role=role)
        assert injury_policy.can_view(actor, record) is True
        assert injury_policy.can_edit(actor, record) is False
        assert injury_policy.query_filter(actor, {"building": "ALL"}) == {}


def test_office_creator_edits_own_injury_report_until_locked():
    own = RecordRef(building="DC5", created_by_user_id=HR_USER.id, created_by_email=HR_USER.email)
    assert injury_policy.can_edit(HR_USER, own) is True
    assert injury_policy.can_delete(HR_USER, own) is True

    submitted = RecordRef(building="DC5", created_by_user_id=HR_USER.id, locked=True)
    assert injury_policy.can_edit(HR_USER, submitted) is False

    someone_else = RecordRef(building="DC5", created_by_user_id=LEAD_DC5.id)
    assert injury_policy.can_edit(HR_USER, someone_else) is False

    # Containers are not created by office roles, so authorship grants nothing there.
    assert container_policy.can_edit(HR_USER, own) is False


def test_injury_close_capability():
    assert capabilities_for(HR).can_close_injury_reports is True
    assert capabilities_for(DIRECTOR_OF_OPERATIONS).can_close_injury_reports is True
    assert capabilities_for(SUPER_ADMIN).can_close_injury_reports is True
    assert capabilities_for(REGIONAL_MANAGER).can_close_injury_reports is False
    assert capabilities_for(BUILDING_MANAGER).can_close_injury_reports is False


def test_containers_are_created_by_managers_only():
    assert container_policy.can_create(MANAGER_DC5) is True
    assert container_policy.can_create(ADMIN) is True
    assert container_policy.can_create(LEAD_DC5) is False


def test_scoped_roles_without_building_see_nothing():
    homeless = Actor(id=70, email="bm2@pulse.test", role=BUILDING_MANAGER, building=None)
    assert workforce_policy.can_create(homeless) is False
    assert workforce_policy.query_filter(homeless) is None


def test_query_filter_overrides_requested_building():
    assert hiring_policy.query_filter(MANAGER_DC5, {"building": "DC11", "stage": "Offer"}) == {
        "building": "DC5",
        "stage": "Offer",
    }
    assert hiring_policy.query_filter(ADMIN, {"building": "ALL", "stage": ""}) == {}


def test_readiness_lead_sees_own_shift_and_own_records_only():
    own = lead_record()
    other_shift = lead_record(shift="2nd")
    someone_elses = RecordRef(building="DC5", shift="1st", created_by_user_id=99, created_by_email="x@pulse.test")
    assert readiness_policy.can_view(LEAD_DC5, own) is True
    assert readiness_policy.can_view(LEAD_DC5, other_shift) is False
    assert readiness_policy.can_view(LEAD_DC5, someone_elses) is False
    assert readiness_policy.query_filter(LEAD_DC5) == {"building": "DC5", "shift": "1st"}


def test_delete_restricted_to_super_admin_where_configured():
    record = RecordRef(building="DC5", created_by_user_id=MANAGER_DC5.id)
    assert readiness_policy.can_delete(MANAGER_DC5, record) is False
    assert readiness_policy.can_delete(ADMIN, record) is True
    assert chat_policy.can_delete(MANAGER_DC5, record) is False
    assert chat_policy.can_delete(ADMIN, record) is True


def test_hiring_leads_edit_any_candidate_in_building():
    record = RecordRef(building="DC5", created_by_user_id=99)
    assert hiring_policy.can_edit(LEAD_DC5, record) is True


def test_workforce_is_read_only_for_leads():
    record = RecordRef(building="DC5", created_by_user_id=LEAD_DC5.id)
    assert workforce_policy.can_view(LEAD_DC5, record) is True
    assert workforce_policy.can_edit(LEAD_DC5, record) is False
    assert workforce_policy.can_create(LEAD_DC5) is False


def test_visible_filters_rows():
    rows = [lead_record(), lead_record(building="DC11")]
    assert container_policy.visible(LEAD_DC5, rows, lambda row: row) == [rows[0]]
