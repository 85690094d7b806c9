"""Equipment requests API.

- GET   /api/equipment/requests        (admin)
- GET   /api/equipment/requests/mine
- POST  /api/equipment/requests
- PATCH /api/equipment/requests/<id>   (admin)
"""

from __future__ import annotations

import pytest

from intranet.domains.gamification.services import get_profile

pytestmark = pytest.mark.integration

BASE = "/api/equipment/requests"


@pytest.fixture()
def admin(make_user):
    return make_user("admin@example.com", full_name="Admin", roles=("admin",))


def test_create_request_awards_points(client, ana, headers_for):
    resp = client.post(BASE, json={"title": " Monitor ", "description": "Segundo monitor", "priority": "high"}, headers=headers_for(ana))
    assert resp.status_code == 201
    item = resp.get_json()["request"]
    assert item["title"] == "Monitor"
    assert (item["priority"], item["status"]) == ("high", "pending")
    assert item["requester_email"] == "ana@example.com"
    assert get_profile(ana.id).total_points == 4


def test_create_request_validation(client, ana, headers_for):
    resp = client.post(BASE, json={"title": "Mouse", "description": "Sem fio", "priority": "urgent"}, headers=headers_for(ana))
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "validation_error"
    assert get_profile(ana.id).total_points == 0


def test_mine_only_lists_own_requests(client, ana, bruno, headers_for):
    client.post(BASE, json={"title": "Teclado", "description": "ABNT2"}, headers=headers_for(ana))
    client.post(BASE, json={"title": "Headset", "description": "USB"}, headers=headers_for(bruno))

    mine = client.get(f"{BASE}/mine", headers=headers_for(ana)).get_json()["requests"]
    assert [r["title"] for r in mine] == ["Teclado"]


def test_full_list_and_status_are_admin_only(client, ana, admin, headers_for):
    request_id = client.post(BASE, json={"title": "Notebook", "description": "Troca"}, headers=headers_for(ana)).get_json()["request"]["id"]

    assert client.get(BASE, headers=headers_for(ana)).status_code == 403
    assert client.patch(f"{BASE}/{request_id}", json={"status": "approved"}, headers=headers_for(ana)).status_code == 403

    listing = client.get(BASE, headers=headers_for(admin)).get_json()["requests"]
    assert [r["id"] for r in listing] == [request_id]

    resp = client.patch(f"{BASE}/{request_id}", json={"status": "delivered"}, headers=headers_for(admin))
    assert resp.status_code == 200
    assert resp.get_json()["request"]["status"] == "delivered"

    assert client.patch(f"{BASE}/9999", json={"status": "approved"}, headers=headers_for(admin)).status_code == 404
    assert client.patch(f"{BASE}/{request_id}", json={"status": "lost"}, headers=headers_for(admin)).status_code == 400
