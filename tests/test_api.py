"""
End-to-end checks through the HTTP surface: sign-in, opening a family,
acting on the ledger, and the error statuses clients rely on.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, inspect
from sqlalchemy.pool import StaticPool

from famledger import main
from famledger.main import app


@pytest.fixture
def opened(client, auth_headers):
    resp = client.put("/families/F1", json={"name": "Home"}, headers=auth_headers)
    assert resp.status_code == 200
    return resp.json()


def _task_id(family, title):
    return next(t["id"] for t in family["tasks"] if t["title"] == title)


def _reward_id(family, points):
    return next(r["id"] for r in family["rewards"] if r["points"] == points)


class TestAuth:
    def test_signup_token_me(self, client, auth_headers):
        resp = client.get("/auth/me", headers=auth_headers)

        assert resp.status_code == 200
        assert resp.json()["email"] == "parent@example.com"

    def test_duplicate_signup(self, client, auth_headers):
        resp = client.post("/auth/signup", json={"email": "parent@example.com", "password": "secret123"})

        assert resp.status_code == 400

    def test_wrong_password(self, client, auth_headers):
        resp = client.post("/auth/token", data={"username": "parent@example.com", "password": "nope-nope"})

        assert resp.status_code == 401

    def test_refresh(self, client):
        client.post("/auth/signup", json={"email": "r@example.com", "password": "secret123"})
        tokens = client.post("/auth/token", data={"username": "r@example.com", "password": "secret123"}).json()

        resp = client.post("/auth/refresh", params={"refresh_token": tokens["refresh_token"]})

        assert resp.status_code == 200
        assert resp.json()["access_token"]
        assert resp.json()["refresh_token"] != tokens["refresh_token"]

        reused = client.post("/auth/refresh", params={"refresh_token": tokens["refresh_token"]})
        assert reused.status_code == 401

    def test_family_routes_need_a_token(self, client):
        assert client.get("/families/F1").status_code == 401


class TestFamilyFlow:
    def test_open_seeds_the_family(self, opened):
        assert opened["name"] == "Home"
        assert [m["name"] for m in opened["members"]] == ["Admin"]
        assert opened["current_member_id"] == opened["members"][0]["id"]
        assert opened["tasks"] and opened["rewards"]

    def test_reopen_does_not_reseed(self, client, auth_headers, opened):
        again = client.put("/families/F1", headers=auth_headers).json()

        assert len(again["members"]) == 1
        assert len(again["tasks"]) == len(opened["tasks"])

    def test_complete_then_redeem_too_expensive(self, client, auth_headers, opened):
        resp = client.post(f"/families/F1/tasks/{_task_id(opened, '扫地')}/complete", headers=auth_headers)
        assert resp.status_code == 200
        body = resp.json()
        assert body["member"]["balance"] == 1
        assert body["transactions"][0]["points"] == 1

        resp = client.post(f"/families/F1/rewards/{_reward_id(opened, 5)}/redeem", headers=auth_headers)
        assert resp.status_code == 400

        ledger = client.get(f"/families/F1/members/{opened['current_member_id']}/ledger", headers=auth_headers).json()
        assert ledger["member"]["balance"] == 1
        assert len(ledger["transactions"]) == 1

    def test_acting_member_header(self, client, auth_headers, opened):
        admin_id = opened["current_member_id"]
        kid = client.post("/families/F1/members", json={"name": "Kid"}, headers=auth_headers).json()
        as_kid = {**auth_headers, "X-Member-Id": kid["id"]}

        resp = client.post(
            f"/families/F1/members/{admin_id}/adjustments", json={"points": 50, "memo": "sneaky"}, headers=as_kid
        )
        assert resp.status_code == 403

        resp = client.post(
            f"/families/F1/members/{kid['id']}/adjustments", json={"points": 7, "memo": "奖励"}, headers=auth_headers
        )
        assert resp.status_code == 200
        assert resp.json()["member"]["balance"] == 7

        resp = client.post("/families/F1/transfers", json={"to_member_id": admin_id, "points": 3}, headers=as_kid)
        assert resp.status_code == 200
        assert resp.json()["from_member"]["balance"] == 4
        assert resp.json()["to_member"]["balance"] == 3

    def test_last_admin_is_protected(self, client, auth_headers, opened):
        admin_id = opened["current_member_id"]

        assert client.delete(f"/families/F1/members/{admin_id}", headers=auth_headers).status_code == 403
        resp = client.put(f"/families/F1/members/{admin_id}/role", json={"role": "standard"}, headers=auth_headers)
        assert resp.status_code == 403

    def test_duplicate_member_name(self, client, auth_headers, opened):
        resp = client.post("/families/F1/members", json={"name": "admin"}, headers=auth_headers)

        assert resp.status_code == 409

    def test_daily_grant_is_idempotent(self, client, auth_headers, opened):
        first = client.post("/families/F1/daily-grant", headers=auth_headers).json()
        second = client.post("/families/F1/daily-grant", headers=auth_headers).json()

        assert len(first["granted"]) == 1
        assert second["granted"] == []
        assert second["skipped_member_ids"] == [opened["current_member_id"]]

    def test_transactions_feed_and_audit(self, client, auth_headers, opened):
        client.post(f"/families/F1/tasks/{_task_id(opened, '扫地')}/complete", headers=auth_headers)

        feed = client.get("/families/F1/transactions", headers=auth_headers).json()
        assert [t["title"] for t in feed] == ["扫地"]

        newer = client.get("/families/F1/transactions", params={"since": feed[0]["timestamp"]}, headers=auth_headers)
        assert newer.json() == []

        assert client.get("/families/F1/audit", headers=auth_headers).json() == []

    def test_blank_task_title_is_unprocessable(self, client, auth_headers, opened):
        resp = client.post("/families/F1/tasks", json={"title": "   ", "points": 2}, headers=auth_headers)

        assert resp.status_code == 422

    def test_ledger_kind_filter_and_summary(self, client, auth_headers, opened):
        admin_id = opened["current_member_id"]
        client.post(f"/families/F1/tasks/{_task_id(opened, '扫地')}/complete", headers=auth_headers)
        client.post(
            f"/families/F1/members/{admin_id}/adjustments", json={"points": 4, "memo": "奖励"}, headers=auth_headers
        )

        ledger = client.get(
            f"/families/F1/members/{admin_id}/ledger", params={"kind": "earn"}, headers=auth_headers
        ).json()
        assert [t["title"] for t in ledger["transactions"]] == ["扫地"]

        summary = client.get(f"/families/F1/members/{admin_id}/summary", headers=auth_headers).json()
        assert summary["balance"] == 5
        assert summary["totals"]["earn"] == 1
        assert summary["totals"]["adjustment"] == 4
        assert summary["last_7_days_count"] == 2
        assert summary["gained_on_day"] == 5

        old = client.get(
            f"/families/F1/members/{admin_id}/summary", params={"day": "2000-01-01"}, headers=auth_headers
        ).json()
        assert old["gained_on_day"] == 0

    def test_report_is_html(self, client, auth_headers, opened):
        resp = client.get("/families/F1/report", headers=auth_headers)

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/html")
        assert "扫地" in resp.text
        assert "Home" in resp.text

    def test_snapshot_export(self, client, auth_headers, opened):
        snap = client.get("/families/F1/snapshot", headers=auth_headers).json()

        assert snap["id"] == "F1"
        assert snap["members"][0]["history"] == []


class TestAccess:
    def test_other_account_cannot_read_family(self, client, auth_headers, opened):
        client.post("/auth/signup", json={"email": "stranger@example.com", "password": "secret123"})
        token = client.post(
            "/auth/token", data={"username": "stranger@example.com", "password": "secret123"}
        ).json()["access_token"]

        resp = client.get("/families/F1", headers={"Authorization": f"Bearer {token}"})

        assert resp.status_code == 403

    def test_unknown_family(self, client, auth_headers):
        assert client.get("/families/nowhere", headers=auth_headers).status_code == 404


class TestLifespan:
    def test_startup_creates_the_schema(self, monkeypatch):
        eng = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
        monkeypatch.setattr(main, "engine", eng)

        with TestClient(app):
            tables = set(inspect(eng).get_table_names())

        assert {"family", "member", "transaction"} <= tables
        eng.dispose()
