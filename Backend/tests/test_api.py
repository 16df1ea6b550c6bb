"""HTTP tests for the claims and departments routers."""

from datetime import date, datetime

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from expense_insights.api import dependencies
from expense_insights.api.changes import router as changes_router
from expense_insights.api.claims import router as claims_router
from expense_insights.api.departments import router as departments_router
from expense_insights.config import Settings


@pytest.fixture
def make_client(accessor):
    def build(settings=None):
        dependencies.configure_cache(settings or Settings())
        app = FastAPI()
        app.include_router(claims_router, prefix="/api")
        app.include_router(departments_router, prefix="/api")
        app.include_router(changes_router, prefix="/api")
        app.dependency_overrides[dependencies.get_accessor] = lambda: accessor
        return TestClient(app)

    yield build
    dependencies.configure_cache(Settings())


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def data(seed):
    manager = seed.employee("Mpho Khumalo", department="Operations", role="manager")
    ana = seed.employee("Ana Dlamini", department="Operations", manager_id=manager.id)
    seed.claim(ana, "Travel", 400, expense_date=date(2024, 5, 1), status="approved")
    claim = seed.claim(ana, "Travel", 1000, expense_date=date(2024, 5, 10),
                       submitted_at=datetime(2024, 5, 11, 9, 0))
    return manager, ana, claim


class TestClaimRoutes:
    def test_claim_view(self, client, data):
        _, ana, claim = data
        resp = client.get(f"/api/claims/{claim.id}")
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["data"]["employee"]["name"] == "Ana Dlamini"
        assert body["data"]["claim"]["employeeId"] == ana.id

    def test_similar(self, client, data):
        _, _, claim = data
        body = client.get(f"/api/claims/{claim.id}/similar").json()
        assert body["success"] is True
        assert body["data"]["patterns"]["averageAmountForCategory"] == 400

    def test_insights(self, client, data):
        _, _, claim = data
        body = client.get(f"/api/claims/{claim.id}/insights").json()
        assert body["data"][0] == "This claim is 150% higher than average for Travel category"
        assert "This employee has a high approval rate (>90%)" in body["data"]

    def test_insights_window_parameter(self, client, data):
        _, _, claim = data
        body = client.get(f"/api/claims/{claim.id}/insights", params={"window": "excluding_current"}).json()
        assert "Employee has submitted multiple claims in this category recently" not in body["data"]

    def test_missing_claim_envelope(self, client):
        resp = client.get("/api/claims/missing/insights")
        assert resp.status_code == 200
        assert resp.json() == {"success": False, "error": "Claim not found"}

    def test_timeline(self, client, data):
        _, _, claim = data
        body = client.get(f"/api/claims/{claim.id}/timeline").json()
        assert [t["title"] for t in body["data"]] == ["Claim Submitted"]

    def test_views_round_trip(self, client, data):
        manager, _, claim = data
        resp = client.post(f"/api/claims/{claim.id}/views", json={"user_id": manager.id})
        assert resp.json()["success"] is True
        stats = client.get(f"/api/claims/{claim.id}/views").json()["data"]
        assert stats["totalViews"] == 1
        assert stats["viewersByRole"] == {"manager": 1}


class TestDepartmentRoutes:
    def test_department(self, client, data):
        body = client.get("/api/departments/Operations").json()
        assert body["success"] is True
        assert body["data"]["employeeCount"] == 2
        assert body["data"]["totalExpenses"] == 1400

    def test_unknown_department(self, client, data):
        body = client.get("/api/departments/Marketing").json()
        assert body == {"success": False, "error": "Department not found: Marketing"}

    def test_trends_rejects_bad_months(self, client, data):
        assert client.get("/api/departments/Operations/trends", params={"months": 0}).status_code == 422

    def test_comparison(self, client, data):
        body = client.get("/api/departments").json()
        assert [d["department"] for d in body["data"]] == ["Operations"]


class TestAnalyticsFreshness:
    def test_default_app_sees_writes_without_a_published_change(self, client, seed, data):
        _, ana, claim = data
        assert dependencies.get_cache() is None

        first = client.get(f"/api/claims/{claim.id}/similar").json()["data"]
        before = client.get("/api/departments/Operations").json()["data"]
        seed.claim(ana, "Travel", 1000, expense_date=date(2024, 5, 12))

        refreshed = client.get(f"/api/claims/{claim.id}/similar").json()["data"]
        after = client.get("/api/departments/Operations").json()["data"]
        assert len(refreshed["similarByAmount"]) == len(first["similarByAmount"]) + 1
        assert after["totalExpenses"] == before["totalExpenses"] + 1000


class TestChangeRoute:
    def test_published_change_invalidates_cached_analysis(self, make_client, seed, data):
        client = make_client(Settings(analytics_cache=True))
        _, ana, claim = data
        first = client.get(f"/api/claims/{claim.id}/similar").json()["data"]
        seed.claim(ana, "Travel", 1000, expense_date=date(2024, 5, 12))
        assert client.get(f"/api/claims/{claim.id}/similar").json()["data"] == first

        resp = client.post("/api/changes", json={"record_id": "new-claim"})
        assert resp.json() == {"status": "PUBLISHED", "delivered": 1}
        refreshed = client.get(f"/api/claims/{claim.id}/similar").json()["data"]
        assert len(refreshed["similarByAmount"]) == len(first["similarByAmount"]) + 1

    def test_publish_without_cache_reaches_nobody(self, client, data):
        resp = client.post("/api/changes", json={"record_id": "new-claim"})
        assert resp.json() == {"status": "PUBLISHED", "delivered": 0}
