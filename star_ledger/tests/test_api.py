from decimal import Decimal
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from star_ledger.api import app, get_ledger_service
from star_ledger.notifications import DatabaseNotificationSink
from star_ledger.service import LedgerService


@pytest.fixture
def client(database, retry_config):
    service = LedgerService(
        database=database,
        notifier=DatabaseNotificationSink(database),
        retry_config=retry_config,
    )
    app.dependency_overrides[get_ledger_service] = lambda: service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _create_account(client, name, stars=0):
    response = client.post("/accounts", json={"display_name": name, "star_balance": stars})
    assert response.status_code == 201
    return response.json()["account_id"]


def _create_content(client, owner_id, price, kind="story"):
    response = client.post("/content", json={
        "owner_account_id": owner_id,
        "kind": kind,
        "star_price": price,
    })
    assert response.status_code == 201
    return response.json()["id"]


class TestViewEndpoint:
    def test_charged_view(self, client):
        owner_id = _create_account(client, "owner")
        viewer_id = _create_account(client, "viewer", stars=5)
        content_id = _create_content(client, owner_id, 3)

        response = client.post(f"/content/{content_id}/views", json={"viewer_account_id": viewer_id})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["charged"] is True
        assert Decimal(body["owner_earn"]) == Decimal("900")
        assert Decimal(body["viewer_earn"]) == Decimal("300")

        balance = client.get(f"/accounts/{viewer_id}/balance").json()
        assert balance["star_balance"] == 2
        assert Decimal(balance["wallet_balance"]) == Decimal("300")

    def test_repeat_view_is_idempotent(self, client):
        owner_id = _create_account(client, "owner")
        viewer_id = _create_account(client, "viewer", stars=5)
        content_id = _create_content(client, owner_id, 2)

        client.post(f"/content/{content_id}/views", json={"viewer_account_id": viewer_id})
        response = client.post(f"/content/{content_id}/views", json={"viewer_account_id": viewer_id})

        assert response.status_code == 200
        assert response.json()["already_viewed"] is True
        assert client.get(f"/accounts/{viewer_id}/ledger").json()["total_count"] == 1

    def test_insufficient_stars_is_402(self, client):
        owner_id = _create_account(client, "owner")
        viewer_id = _create_account(client, "viewer", stars=2)
        content_id = _create_content(client, owner_id, 3)

        response = client.post(f"/content/{content_id}/views", json={"viewer_account_id": viewer_id})

        assert response.status_code == 402
        assert response.json()["detail"]["error"] == "InsufficientStars"
        assert client.get(f"/accounts/{viewer_id}/balance").json()["star_balance"] == 2

    def test_unknown_content_is_404(self, client):
        viewer_id = _create_account(client, "viewer", stars=2)

        response = client.post("/content/nope/views", json={"viewer_account_id": viewer_id})

        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "ContentUnavailable"


class TestAccountEndpoints:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy", "service": "star-ledger"}

    def test_unknown_balance_is_404(self, client):
        assert client.get(f"/accounts/{uuid4()}/balance").status_code == 404

    def test_credit_stars(self, client):
        account_id = _create_account(client, "buyer")

        response = client.post(f"/accounts/{account_id}/stars", json={"stars": 4, "reference": "ref-1"})

        assert response.status_code == 200
        assert response.json()["star_balance"] == 4
        history = client.get(f"/accounts/{account_id}/wallet-history").json()
        assert history["entries"][0]["entry_type"] == "star_topup"

    def test_credit_zero_stars_rejected(self, client):
        account_id = _create_account(client, "buyer")

        assert client.post(f"/accounts/{account_id}/stars", json={"stars": 0}).status_code == 422

    def test_history_pagination_is_validated(self, client):
        account_id = _create_account(client, "buyer")

        assert client.get(f"/accounts/{account_id}/ledger", params={"offset": -1}).status_code == 422
        assert client.get(f"/accounts/{account_id}/ledger", params={"limit": 0}).status_code == 422
        assert client.get(f"/accounts/{account_id}/wallet-history", params={"limit": 201}).status_code == 422
        assert client.get(f"/accounts/{account_id}/notifications", params={"limit": 0}).status_code == 422
        assert client.get(f"/accounts/{account_id}/ledger", params={"limit": 200}).status_code == 200

    def test_opening_stars_appear_in_wallet_history(self, client):
        account_id = _create_account(client, "viewer", stars=3)

        entries = client.get(f"/accounts/{account_id}/wallet-history").json()["entries"]

        assert [e["entry_type"] for e in entries] == ["star_topup"]
        assert entries[0]["currency"] == "STAR"

    def test_notifications_listed(self, client):
        owner_id = _create_account(client, "owner")
        viewer_id = _create_account(client, "viewer", stars=5)
        content_id = _create_content(client, owner_id, 1)
        client.post(f"/content/{content_id}/views", json={"viewer_account_id": viewer_id})

        response = client.get(f"/accounts/{owner_id}/notifications")

        assert response.status_code == 200
        notifications = response.json()
        assert [n["category"] for n in notifications] == ["story_earn"]
        assert "₦300.00" in notifications[0]["message"]


class TestContentEndpoints:
    def test_price_above_five_rejected(self, client):
        owner_id = _create_account(client, "owner")

        response = client.post("/content", json={"owner_account_id": owner_id, "star_price": 6})

        assert response.status_code == 422

    def test_unknown_owner_is_404(self, client):
        response = client.post("/content", json={"owner_account_id": str(uuid4()), "star_price": 1})

        assert response.status_code == 404

    def test_suspend_blocks_views_and_reactivate_restores(self, client):
        owner_id = _create_account(client, "owner")
        viewer_id = _create_account(client, "viewer", stars=5)
        content_id = _create_content(client, owner_id, 1, kind="post")

        suspended = client.post(f"/admin/content/{content_id}/suspend", json={"reason": "Reported twice"})
        assert suspended.status_code == 200
        assert suspended.json()["status"] == "suspended"

        blocked = client.post(f"/content/{content_id}/views", json={"viewer_account_id": viewer_id})
        assert blocked.status_code == 404

        client.post(f"/admin/content/{content_id}/reactivate")
        allowed = client.post(f"/content/{content_id}/views", json={"viewer_account_id": viewer_id})
        assert allowed.status_code == 200
        assert client.get(f"/content/{content_id}").json()["view_count"] == 1

    def test_platform_revenue(self, client):
        owner_id = _create_account(client, "owner")
        viewer_id = _create_account(client, "viewer", stars=5)
        content_id = _create_content(client, owner_id, 4)
        client.post(f"/content/{content_id}/views", json={"viewer_account_id": viewer_id})

        revenue = client.get("/admin/platform-revenue").json()

        assert Decimal(revenue["total_ngn"]) == Decimal("400")
        assert revenue["charged_views"] == 1
