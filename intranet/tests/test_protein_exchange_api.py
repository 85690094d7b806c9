"""Protein exchange API.

- GET  /api/protein-exchange/exchanges
- POST /api/protein-exchange/exchanges/bulk
"""

from __future__ import annotations

import pytest

from intranet.domains.gamification.services import get_profile

pytestmark = pytest.mark.integration

BASE = "/api/protein-exchange/exchanges"


def _item(day, original="Frango", new="Peixe"):
    return {"exchange_date": f"2025-03-{day:02d}", "original_protein": original, "new_protein": new}


def test_bulk_creates_and_awards_per_day(client, ana, headers_for):
    resp = client.post(f"{BASE}/bulk", json={"exchanges": [_item(10), _item(11, "Carne", "Ovo")]}, headers=headers_for(ana))
    assert resp.status_code == 200
    body = resp.get_json()
    assert (body["created"], body["replaced"], body["points"]) == (2, 0, 10)
    assert body["skipped"] == []
    assert get_profile(ana.id).total_points == 10

    rows = client.get(BASE, headers=headers_for(ana)).get_json()["exchanges"]
    assert [r["exchange_date"] for r in rows] == ["2025-03-11", "2025-03-10"]


def test_resubmitting_a_day_replaces_without_points(client, ana, headers_for):
    headers = headers_for(ana)
    client.post(f"{BASE}/bulk", json={"exchanges": [_item(10)]}, headers=headers)
    body = client.post(f"{BASE}/bulk", json={"exchanges": [_item(10, "Frango", "Tofu")]}, headers=headers).get_json()

    assert (body["created"], body["replaced"], body["points"]) == (0, 1, 0)
    rows = client.get(BASE, headers=headers).get_json()["exchanges"]
    assert [r["new_protein"] for r in rows] == ["Tofu"]
    assert get_profile(ana.id).total_points == 5


def test_invalid_items_are_skipped(client, ana, headers_for):
    items = [_item(10), {"exchange_date": "2025-03-11", "original_protein": "Frango"}, _item(12, "Peixe", "peixe")]
    body = client.post(f"{BASE}/bulk", json={"exchanges": items}, headers=headers_for(ana)).get_json()

    assert body["created"] == 1
    assert [s["index"] for s in body["skipped"]] == [1, 2]


def test_empty_batch_rejected(client, ana, headers_for):
    resp = client.post(f"{BASE}/bulk", json={"exchanges": []}, headers=headers_for(ana))
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "validation_error"


def test_list_is_per_user_and_filtered_by_range(client, ana, bruno, headers_for):
    client.post(f"{BASE}/bulk", json={"exchanges": [_item(d) for d in (3, 10, 17)]}, headers=headers_for(ana))
    client.post(f"{BASE}/bulk", json={"exchanges": [_item(10)]}, headers=headers_for(bruno))

    rows = client.get(f"{BASE}?from=2025-03-05&to=2025-03-12", headers=headers_for(ana)).get_json()["exchanges"]
    assert [r["exchange_date"] for r in rows] == ["2025-03-10"]
    assert rows[0]["user_name"] == "Ana Souza"

    assert client.get(f"{BASE}?from=2025-03-12&to=2025-03-05", headers=headers_for(ana)).status_code == 400
