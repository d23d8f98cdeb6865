# tests/test_api.py
"""HTTP surface, driven through TestClient against the in-memory registry."""

import pytest
from fastapi.testclient import TestClient

from docflow.api import create_app
from docflow.config import settings
from docflow import DENIED, ON_FILTER_TRANSITION_USERS

AUTH = {"Authorization": f"Bearer {settings.api_token}"}


@pytest.fixture()
def client(registry):
    return TestClient(create_app(registry))


def seed(client):
    def post(path, payload):
        resp = client.post(path, json=payload, headers=AUTH)
        assert resp.status_code == 201, resp.text
        return resp.json()

    draft = post("/states", {"name": "draft"})
    review = post("/states", {"name": "review"})
    released = post("/states", {"name": "released", "document_status": 2})
    submit = post("/actions", {"name": "submit"})
    reject = post("/actions", {"name": "reject"})
    wf = post("/workflows", {"name": "review", "init_state_id": draft["id"]})
    t1 = post(
        f"/workflows/{wf['id']}/transitions",
        {"from_state_id": draft["id"], "action_id": submit["id"], "to_state_id": review["id"], "user_ids": [1]},
    )
    return dict(draft=draft, review=review, released=released, submit=submit, reject=reject, wf=wf, t1=t1)


def test_healthz(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
    assert resp.headers.get("X-Request-Id")


def test_requires_bearer_token(client):
    assert client.get("/workflows").status_code == 401
    assert client.get("/workflows", headers={"Authorization": "Bearer nope"}).status_code == 401


def test_create_and_list(client):
    ids = seed(client)
    wf_id = ids["wf"]["id"]

    resp = client.get("/workflows", headers=AUTH)
    assert resp.status_code == 200
    assert [w["id"] for w in resp.json()] == [wf_id]

    resp = client.get(f"/workflows/{wf_id}", headers=AUTH)
    assert resp.json()["init_state_id"] == ids["draft"]["id"]

    transitions = client.get(f"/workflows/{wf_id}/transitions", headers=AUTH).json()
    assert [t["id"] for t in transitions] == [ids["t1"]["id"]]

    states = client.get(f"/workflows/{wf_id}/states", headers=AUTH).json()
    assert {s["name"] for s in states} == {"draft", "review"}

    released = [s for s in client.get("/states", headers=AUTH).json() if s["name"] == "released"]
    assert released[0]["document_status"] == 2


def test_cycle_endpoint(client):
    ids = seed(client)
    wf_id = ids["wf"]["id"]
    assert client.get(f"/workflows/{wf_id}/cycles", headers=AUTH).json() == {"has_cycle": False, "path": []}

    client.post(
        f"/workflows/{wf_id}/transitions",
        json={"from_state_id": ids["review"]["id"], "action_id": ids["reject"]["id"], "to_state_id": ids["draft"]["id"]},
        headers=AUTH,
    )
    body = client.get(f"/workflows/{wf_id}/cycles", headers=AUTH).json()
    assert body["has_cycle"] is True
    assert body["path"][0]["id"] == body["path"][-1]["id"] == ids["draft"]["id"]


def test_grants_and_denied_hook(client, hooks):
    ids = seed(client)
    wf_id = ids["wf"]["id"]
    resp = client.post(
        f"/workflows/{wf_id}/transitions",
        json={
            "from_state_id": ids["review"]["id"],
            "action_id": ids["submit"]["id"],
            "to_state_id": ids["released"]["id"],
            "groups": [{"group_id": 10, "min_users": 2}],
        },
        headers=AUTH,
    )
    tid = resp.json()["id"]

    grants = client.get(f"/transitions/{tid}/grants", headers=AUTH).json()
    assert grants["groups"] == [{"id": 1, "group_id": 10, "name": "reviewers", "min_users": 2}]
    assert grants["users"] == []

    hooks.register(ON_FILTER_TRANSITION_USERS, lambda t, users: DENIED)
    grants = client.get(f"/transitions/{ids['t1']['id']}/grants", headers=AUTH).json()
    assert grants["users_denied"] is True
    assert grants["users"] == []


def test_error_mapping(client):
    ids = seed(client)
    wf_id = ids["wf"]["id"]

    resp = client.get("/workflows/999", headers=AUTH)
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "NOT_FOUND"

    resp = client.delete(f"/states/{ids['draft']['id']}", headers=AUTH)
    assert resp.status_code == 409

    resp = client.post(
        f"/workflows/{wf_id}/transitions",
        json={"from_state_id": ids["draft"]["id"], "action_id": ids["submit"]["id"],
              "to_state_id": ids["review"]["id"], "user_ids": [404]},
        headers=AUTH,
    )
    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "VALIDATION"

    resp = client.post("/states", json={"name": "x", "document_status": 99}, headers=AUTH)
    assert resp.status_code == 422


def test_delete_endpoints(client, registry):
    ids = seed(client)
    wf_id = ids["wf"]["id"]
    tid = ids["t1"]["id"]

    assert client.delete(f"/workflows/{wf_id}/transitions/{tid}", headers=AUTH).status_code == 204
    assert client.delete(f"/workflows/{wf_id}/transitions/{tid}", headers=AUTH).status_code == 404
    assert client.delete(f"/actions/{ids['reject']['id']}", headers=AUTH).status_code == 204
    assert client.delete(f"/workflows/{wf_id}", headers=AUTH).status_code == 204
    assert registry.get_workflow(wf_id) is None
    assert client.delete(f"/states/{ids['review']['id']}", headers=AUTH).status_code == 204
