"""HTTP-level tests for the FastAPI application."""

from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from lostfound.api import ServiceContainer, create_app
from lostfound.api.app import status_code_for
from lostfound.api.dependencies import create_access_token
from lostfound.config.models import AlertsConfig, ConfirmationsConfig
from lostfound.persistence import PersistenceError
from lostfound.scheduler import SchedulerService
from lostfound.services import (
    AlertService,
    AuthorizationError,
    ConfirmationService,
    ConflictError,
    ListingService,
    ModerationService,
    NotFoundError,
    ThreadService,
    UserService,
    ValidationError,
)

SECRET = "test-secret"

LISTING = {
    "title": "Black wallet",
    "category": "bags",
    "location_text": "Châtelet, Paris",
    "found_at": "2024-01-01T10:00:00Z",
    "description": "Found near the metro entrance",
}


def auth(user_id):
    return {"Authorization": f"Bearer {create_access_token(user_id, SECRET)}"}


@pytest.fixture
def services(database, dispatcher, clock):
    alerts = AlertService(AlertsConfig(), dispatcher, clock=clock)
    confirmations = ConfirmationService(ConfirmationsConfig(), dispatcher, clock=clock)
    return ServiceContainer(
        users=UserService(clock=clock),
        listings=ListingService(alerts, SchedulerService(), clock=clock),
        alerts=alerts,
        threads=ThreadService(dispatcher, confirmation_service=confirmations, clock=clock),
        confirmations=confirmations,
        moderation=ModerationService(dispatcher, clock=clock),
    )


@pytest.fixture
def client(services):
    return TestClient(create_app(services, SECRET))


@pytest.fixture
def registered(client):
    for user_id in ("owner", "finder", "stranger"):
        response = client.post(
            "/users", json={"name": user_id.title(), "email": f"{user_id}@example.org"}, headers=auth(user_id)
        )
        assert response.status_code == 201


@pytest.fixture
def listing_id(client, registered):
    return client.post("/listings", json=LISTING, headers=auth("finder")).json()["id"]


@pytest.mark.parametrize(
    "error, expected",
    [
        (NotFoundError("Listing", "x"), 404),
        (ValidationError("bad"), 400),
        (AuthorizationError("no"), 403),
        (ConflictError("dup"), 409),
    ],
)
def test_status_code_for(error, expected):
    assert status_code_for(error) == expected


class TestAuthentication:
    def test_missing_token(self, client):
        assert client.get("/users/me").status_code in (401, 403)

    def test_bad_signature(self, client):
        token = create_access_token("owner", "another-secret")

        response = client.get("/users/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid or expired token"

    def test_token_without_subject(self, client):
        token = create_access_token("", SECRET)

        response = client.get("/users/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401


class TestUsers:
    def test_profile(self, client, registered):
        response = client.get("/users/me", headers=auth("owner"))

        assert response.status_code == 200
        assert response.json()["email"] == "owner@example.org"

    def test_duplicate_registration(self, client, registered):
        response = client.post("/users", json={"name": "Owner", "email": "owner@example.org"}, headers=auth("owner"))

        assert response.status_code == 409

    def test_invalid_email(self, client):
        response = client.post("/users", json={"name": "X", "email": "nope"}, headers=auth("x"))

        assert response.status_code == 422

    def test_update_contact(self, client, registered):
        response = client.patch("/users/me/contact", json={"phone": "0612345678"}, headers=auth("owner"))

        assert response.json()["phone"] == "0612345678"

    def test_unknown_profile(self, client):
        response = client.get("/users/me", headers=auth("ghost"))

        assert response.status_code == 404
        assert response.json() == {"detail": "User not found: ghost"}


class TestListings:
    def test_create_and_get(self, client, listing_id):
        response = client.get(f"/listings/{listing_id}")

        assert response.status_code == 200
        assert response.json()["title"] == "Black wallet"
        assert response.json()["views_count"] == 1

    def test_search(self, client, listing_id):
        response = client.get("/listings", params={"q": "wallet", "dateFrom": "2023-12-31", "size": 5})

        body = response.json()
        assert body["total_items"] == 1
        assert body["page_size"] == 5
        assert body["is_last"] is True
        assert body["items"][0]["id"] == listing_id

    def test_search_invalid_page(self, client):
        assert client.get("/listings", params={"page": -1}).status_code == 422

    def test_update_requires_finder(self, client, listing_id):
        response = client.put(f"/listings/{listing_id}", json={"title": "Mine"}, headers=auth("stranger"))

        assert response.status_code == 403

    def test_update(self, client, listing_id):
        response = client.put(f"/listings/{listing_id}", json={"title": "Brown wallet"}, headers=auth("finder"))

        assert response.status_code == 200
        assert response.json()["title"] == "Brown wallet"
        assert response.json()["category"] == "bags"

    def test_delete(self, client, listing_id):
        assert client.delete(f"/listings/{listing_id}", headers=auth("finder")).status_code == 204
        assert client.get(f"/listings/{listing_id}").status_code == 404

    def test_my_listings(self, client, listing_id):
        response = client.get("/users/me/listings", headers=auth("finder"))

        assert [item["id"] for item in response.json()] == [listing_id]


class TestAlerts:
    def test_crud(self, client, registered):
        created = client.post(
            "/alerts", json={"title": "My wallet", "category": "bags", "channels": ["push"]}, headers=auth("owner")
        )
        assert created.status_code == 201
        alert_id = created.json()["id"]

        assert client.get("/alerts/active-count", headers=auth("owner")).json() == {"count": 1}
        toggled = client.patch(f"/alerts/{alert_id}/toggle", headers=auth("owner"))
        assert toggled.json()["active"] is False
        assert client.get("/alerts", params={"active": "true"}, headers=auth("owner")).json() == []

        updated = client.put(f"/alerts/{alert_id}", json={"radius_km": 3}, headers=auth("owner"))
        assert updated.json()["radius_km"] == 3

        assert client.delete(f"/alerts/{alert_id}", headers=auth("owner")).status_code == 204
        assert client.get(f"/alerts/{alert_id}", headers=auth("owner")).status_code == 404

    def test_other_users_alert(self, client, registered):
        alert_id = client.post("/alerts", json={"title": "Keys"}, headers=auth("owner")).json()["id"]

        assert client.get(f"/alerts/{alert_id}", headers=auth("stranger")).status_code == 403

    def test_invalid_criteria(self, client, registered):
        response = client.post(
            "/alerts", json={"title": "Keys", "latitude": 48.85}, headers=auth("owner")
        )

        assert response.status_code == 400

    def test_listing_triggers_matching_alert(self, client, registered, dispatcher):
        client.post("/alerts", json={"title": "My wallet", "query_text": "wallet", "channels": ["push"]},
                    headers=auth("owner"))

        client.post("/listings", json=LISTING, headers=auth("finder"))

        recent = client.get("/alerts/recent", headers=auth("owner")).json()
        assert len(recent) == 1
        assert dispatcher.send_push.call_args.args[0] == "owner"


class TestThreadsAndConfirmations:
    def test_full_handover(self, client, listing_id):
        thread = client.post("/threads", json={"listing_id": listing_id}, headers=auth("owner"))
        assert thread.status_code == 201
        thread_id = thread.json()["id"]

        message = client.post(f"/threads/{thread_id}/messages", json={"body": "Hi"}, headers=auth("owner"))
        assert message.status_code == 201
        assert len(client.get(f"/threads/{thread_id}/messages", headers=auth("finder")).json()) == 1

        client.post(f"/threads/{thread_id}/approve", headers=auth("owner"))
        approved = client.post(f"/threads/{thread_id}/approve", headers=auth("finder"))
        assert approved.json()["status"] == "approved"

        code = client.get(f"/confirmations/thread/{thread_id}", headers=auth("owner")).json()["code"]
        redeemed = client.post("/confirmations/validate", params={"code": code.lower()}, headers=auth("finder"))
        assert redeemed.status_code == 200
        assert redeemed.json()["used_by_user_id"] == "finder"

        assert client.get(f"/threads/{thread_id}", headers=auth("owner")).json()["status"] == "closed"
        assert client.get(f"/listings/{listing_id}").json()["status"] == "resolved"

        again = client.post("/confirmations/validate", params={"code": code}, headers=auth("finder"))
        assert again.status_code == 400

    def test_generate_requires_approved_thread(self, client, listing_id):
        thread_id = client.post("/threads", json={"listing_id": listing_id}, headers=auth("owner")).json()["id"]

        response = client.post("/confirmations/generate", params={"threadId": thread_id}, headers=auth("owner"))

        assert response.status_code == 400

    def test_stranger_cannot_see_thread(self, client, listing_id):
        thread_id = client.post("/threads", json={"listing_id": listing_id}, headers=auth("owner")).json()["id"]

        assert client.get(f"/threads/{thread_id}", headers=auth("stranger")).status_code == 403

    def test_unknown_code(self, client, registered):
        response = client.post("/confirmations/validate", params={"code": "ZZZZZZ"}, headers=auth("owner"))

        assert response.status_code == 404
        assert response.json()["detail"] == "Invalid confirmation code"


class TestModeration:
    @pytest.fixture
    def moderator(self, services, registered):
        services.users.set_moderator("stranger")
        return "stranger"

    def test_report_and_approve(self, client, listing_id, moderator):
        response = client.post(
            "/moderation/flags",
            json={"entity_type": "listing", "entity_id": listing_id, "reason": "Scam", "priority": "high"},
            headers=auth("owner"),
        )
        assert response.status_code == 201
        flag_id = response.json()["id"]

        response = client.get("/moderation/flags", params={"status": "pending"}, headers=auth(moderator))
        assert response.json()["total_items"] == 1

        response = client.patch(f"/moderation/flags/{flag_id}/approve", headers=auth(moderator))
        assert response.status_code == 200
        assert response.json()["status"] == "approved"

        listing = client.get(f"/listings/{listing_id}").json()
        assert listing["status"] == "suspended"
        assert listing["is_moderated"]

        stats = client.get("/moderation/stats", headers=auth(moderator)).json()
        assert stats == {"pending": 0, "approved": 1, "rejected": 0, "total": 1}

    def test_reject(self, client, listing_id, moderator):
        flag_id = client.post(
            "/moderation/flags",
            json={"entity_type": "user", "entity_id": "finder", "reason": "Spam"},
            headers=auth("owner"),
        ).json()["id"]

        response = client.patch(f"/moderation/flags/{flag_id}/reject", headers=auth(moderator))

        assert response.json()["status"] == "rejected"
        assert client.get("/users/me", headers=auth("finder")).status_code == 200

    def test_review_requires_moderator(self, client, listing_id, moderator):
        assert client.get("/moderation/flags", headers=auth("owner")).status_code == 403
        assert client.get("/moderation/stats", headers=auth("owner")).status_code == 403

    def test_invalid_entity_type(self, client, registered):
        response = client.post(
            "/moderation/flags",
            json={"entity_type": "photo", "entity_id": "x", "reason": "Spam"},
            headers=auth("owner"),
        )

        assert response.status_code == 400

    def test_unknown_flag(self, client, moderator):
        assert client.patch("/moderation/flags/missing/approve", headers=auth(moderator)).status_code == 404


class TestOperational:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"ok": True, "db": True}

    def test_request_id_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "abc123"})

        assert response.headers["X-Request-ID"] == "abc123"

    def test_persistence_error_is_500(self, database):
        services = Mock()
        services.listings.get_listing.side_effect = PersistenceError("disk full")
        client = TestClient(create_app(services, SECRET))

        response = client.get("/listings/l1")

        assert response.status_code == 500
        assert response.json() == {"detail": "Internal server error"}
