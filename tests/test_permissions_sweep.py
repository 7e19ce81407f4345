# tests/test_permissions_sweep.py

import pytest
from sqlalchemy.orm import Session

from taskdesk.models.enums import Role, TaskCategory, TaskStatus

from .helpers import auth, login, make_task, set_profile

PEOPLE = {
    "owner": ("owner@example.com", Role.owner, None),
    "admin": ("admin@example.com", Role.admin, "eng"),
    "homeless_admin": ("homeless@example.com", Role.admin, None),
    "viewer": ("viewer@example.com", Role.viewer, "eng"),
}

@pytest.fixture()
def jwts(client, db_session: Session) -> dict:
    out: dict = {}
    for key, (email, role, dept) in PEOPLE.items():
        out[key] = login(client, email)["access_token"]
        out[key + "_id"] = set_profile(db_session, email, role, dept)
    return out

@pytest.fixture()
def seeded(db_session: Session, jwts) -> None:
    admin_id = jwts["admin_id"]
    make_task(db_session, admin_id, TaskCategory.work, "eng", title="a")
    done = make_task(db_session, admin_id, TaskCategory.work, "eng", title="b")
    done.status = TaskStatus.completed
    db_session.add(done)
    db_session.commit()

    make_task(db_session, admin_id, TaskCategory.work, "ops", title="c")
    # personal tasks never count toward a department
    make_task(db_session, jwts["viewer_id"], TaskCategory.personal, "eng", title="d")

ENDPOINTS = ["tasks", "members", "summary"]

@pytest.mark.parametrize("endpoint", ENDPOINTS)
@pytest.mark.parametrize(
    "who,department,expected",
    [
        ("owner", "eng", 200),
        ("owner", "ops", 200),
        ("admin", "eng", 200),
        ("admin", "ops", 403),
        ("homeless_admin", "eng", 403),
        ("viewer", "eng", 403),
    ],
)
def test_department_endpoint_sweep(client, jwts, seeded, endpoint, who, department, expected):
    r = client.get(f"/departments/{department}/{endpoint}", headers=auth(jwts[who]))
    assert r.status_code == expected, r.text

def test_denial_messages(client, jwts):
    r = client.get("/departments/eng/summary", headers=auth(jwts["homeless_admin"]))
    assert r.json()["detail"] == "Admin users must have a department assigned"

    r = client.get("/departments/ops/tasks", headers=auth(jwts["admin"]))
    assert r.json()["detail"] == "Access denied. You can only access your own department"

    r = client.get("/departments/eng/members", headers=auth(jwts["viewer"]))
    assert r.json()["detail"] == "Access denied. Required roles: admin, owner"

def test_department_task_list_is_work_only(client, jwts, seeded):
    r = client.get("/departments/eng/tasks", headers=auth(jwts["admin"]))
    assert r.status_code == 200
    assert sorted(t["title"] for t in r.json()) == ["a", "b"]

def test_department_summary(client, jwts, seeded):
    r = client.get("/departments/eng/summary", headers=auth(jwts["admin"]))
    assert r.status_code == 200, r.text
    assert r.json() == {"department": "eng", "total": 2, "by_status": {"todo": 1, "completed": 1}}

def test_members_flag_assignable_roles(client, jwts):
    r = client.get("/departments/eng/members", headers=auth(jwts["admin"]))
    assert r.status_code == 200, r.text
    flags = {m["email"]: m["assignable"] for m in r.json()}
    assert flags == {"admin@example.com": False, "viewer@example.com": True}

    r = client.get("/departments/eng/members", headers=auth(jwts["owner"]))
    flags = {m["email"]: m["assignable"] for m in r.json()}
    assert flags == {"admin@example.com": True, "viewer@example.com": True}
