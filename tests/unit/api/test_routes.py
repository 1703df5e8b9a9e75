"""HTTP surface tests: FastAPI app with use cases wired to in-memory fakes."""

from __future__ import annotations

import asyncio

import pytest
from fastapi.testclient import TestClient

from haulpay.adapters.persistence.database import get_session
from haulpay.infrastructure.api import dependencies as deps
from haulpay.main import create_app

HEADERS = {"X-User-Id": "user-1", "X-User-Name": "Dana Dispatch", "X-Org-Id": "org-1"}


class FakeSession:
    def __init__(self):
        self.commits = 0

    async def commit(self):
        self.commits += 1

    async def rollback(self):
        pass


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def client(world, session):
    app = create_app()

    async def _session():
        yield session

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[deps.get_assign_driver_uc] = world.assign_driver
    app.dependency_overrides[deps.get_ledger_uc] = world.ledger
    app.dependency_overrides[deps.get_bulk_settlement_uc] = world.bulk
    return TestClient(app)


def test_assign_driver_returns_tagged_success(client, world, session, day_windows):
    load, _ = asyncio.run(world.add_load(day_windows))

    resp = client.post(f"/api/loads/{load.id}/assign-driver", json={"driver_id": 1}, headers=HEADERS)

    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "SUCCESS"
    assert len(data["leg_ids"]) == 1
    assert session.commits == 1


def test_assign_driver_reports_conflict_as_data(client, world, day_windows):
    busy, busy_stops = asyncio.run(world.add_load(day_windows, internal_id="L-7"))
    asyncio.run(world.add_leg(busy, busy_stops, driver_id=1))
    load, _ = asyncio.run(world.add_load(day_windows, internal_id="L-8"))

    resp = client.post(f"/api/loads/{load.id}/assign-driver", json={"driver_id": 1}, headers=HEADERS)

    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "CONFLICT"
    assert data["conflicting_load_id"] == busy.id


def test_actor_header_is_required(client, world, day_windows):
    load, _ = asyncio.run(world.add_load(day_windows))
    resp = client.post(f"/api/loads/{load.id}/assign-driver", json={"driver_id": 1})
    assert resp.status_code == 422


def test_manual_payable_money_is_a_string(client):
    resp = client.post(
        "/api/payables",
        json={
            "payee_type": "DRIVER", "payee_id": 1, "description": "Detention",
            "quantity": "2", "rate": "37.5",
        },
        headers=HEADERS,
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["total_amount"] == "75.00"
    assert body["source_type"] == "MANUAL"


def test_missing_entity_maps_to_404(client):
    resp = client.post("/api/payables/404/lock", headers=HEADERS)
    assert resp.status_code == 404


def test_business_rule_maps_to_409(client):
    created = client.post(
        "/api/payables",
        json={
            "payee_type": "DRIVER", "payee_id": 1, "description": "Tolls",
            "quantity": "1", "rate": "20",
        },
        headers=HEADERS,
    ).json()

    resp = client.post(f"/api/payables/{created['id']}/unlock", headers=HEADERS)

    assert resp.status_code == 409
    assert resp.json()["type"] == "BusinessRuleError"


def test_bulk_approve_reports_per_item_failures(client):
    resp = client.post("/api/settlements/bulk/approve", json={"settlement_ids": [404]}, headers=HEADERS)

    assert resp.status_code == 200
    data = resp.json()
    assert (data["success_count"], data["failure_count"]) == (0, 1)
    assert data["failed"][0]["item_id"] == 404
