"""HTTP tests for resource and reservation endpoints."""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from rentaly.api.factory import create_app
from rentaly.domain.errors import StoreUnavailableError
from rentaly.infra.repositories.reservations_repository import InMemoryReservationStore
from rentaly.infra.settings import Settings

HEADERS = {"X-Requester-ID": "user-a"}


@pytest.fixture
def client(store, registry, notifier, clock):
    app = create_app(
        Settings(), store=store, registry=registry, notifier=notifier, clock=clock
    )
    return TestClient(app)


def _book(client, start="2025-01-10", end="2025-01-13", resource_id="car-x", headers=HEADERS):
    return client.post(
        "/reservations",
        json={"resource_id": resource_id, "start": start, "end": end},
        headers=headers,
    )


class TestResources:
    def test_get_resource(self, client):
        response = client.get("/resources/car-x")
        assert response.status_code == 200
        assert response.json()["resource"] == {
            "id": "car-x",
            "day_rate": "1000",
            "available": True,
            "label": "Toyota Corolla 2022",
        }

    def test_unknown_resource(self, client):
        response = client.get("/resources/nope")
        assert response.status_code == 404
        assert response.json()["error"] == "resource_not_found"

    def test_quote(self, client):
        response = client.get(
            "/resources/car-y/quote", params={"start": "2025-03-01", "end": "2025-03-08"}
        )
        assert response.status_code == 200
        assert response.json() == {
            "resource_id": "car-y",
            "start": "2025-03-01",
            "end": "2025-03-08",
            "days": 7,
            "total_price": "349.93",
        }

    def test_quote_invalid_interval(self, client):
        response = client.get(
            "/resources/car-y/quote", params={"start": "2025-03-08", "end": "2025-03-01"}
        )
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_interval"


class TestCreateReservation:
    def test_created(self, client, notifier):
        response = _book(client)

        assert response.status_code == 201
        body = response.json()["reservation"]
        assert body["status"] == "pending"
        assert body["total_price"] == "3000.00"
        assert body["days"] == 3
        assert body["requester_id"] == "user-a"
        assert body["created_at"] == "2025-01-01T09:00:00+00:00"
        assert len(notifier.created) == 1

    def test_conflict_returns_409_with_details(self, client):
        first = _book(client).json()["reservation"]

        response = _book(client, start="2025-01-12", end="2025-01-15")

        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "interval_conflict"
        assert body["details"]["conflicting_reservation_id"] == first["id"]
        assert body["details"]["existing_start"] == "2025-01-10"

    def test_adjacent_accepted(self, client):
        _book(client)
        response = _book(client, start="2025-01-13", end="2025-01-15")
        assert response.status_code == 201
        assert response.json()["reservation"]["total_price"] == "2000.00"

    def test_timestamps_accepted(self, client):
        response = _book(client, start="2025-01-10T10:00:00Z", end="2025-01-11T12:00:00Z")
        assert response.status_code == 201
        body = response.json()["reservation"]
        assert body["days"] == 2
        assert body["start"] == "2025-01-10T10:00:00+00:00"

    @pytest.mark.parametrize(
        "start, end, resource_id, status, error",
        [
            ("2025-01-13", "2025-01-10", "car-x", 400, "invalid_interval"),
            ("2024-12-30", "2025-01-02", "car-x", 400, "past_start_date"),
            ("2025-01-10", "2025-01-13", "nope", 404, "resource_not_found"),
            ("2025-01-10", "2025-01-13", "car-off", 400, "resource_unavailable"),
            ("someday", "2025-01-13", "car-x", 400, "invalid_interval"),
            (
                "9999-12-31T20:00:00-05:00",
                "9999-12-31T23:00:00-05:00",
                "car-x",
                400,
                "invalid_interval",
            ),
        ],
    )
    def test_rejections(self, client, start, end, resource_id, status, error):
        response = _book(client, start=start, end=end, resource_id=resource_id)
        assert response.status_code == status
        assert response.json()["error"] == error

    def test_requester_header_required(self, client):
        response = _book(client, headers={})
        assert response.status_code == 401

    def test_missing_fields(self, client):
        response = client.post("/reservations", json={"resource_id": "car-x"}, headers=HEADERS)
        assert response.status_code == 422


class TestReadReservations:
    def test_get_by_id(self, client):
        created = _book(client).json()["reservation"]
        response = client.get(f"/reservations/{created['id']}")
        assert response.status_code == 200
        assert response.json()["reservation"] == created

    def test_get_unknown(self, client):
        response = client.get("/reservations/missing")
        assert response.status_code == 404
        assert response.json() == {
            "error": "reservation_not_found",
            "message": "Reservation missing not found",
            "details": {"reservation_id": "missing"},
        }

    def test_list_filters(self, client):
        _book(client)
        _book(client, resource_id="car-y", headers={"X-Requester-ID": "user-b"})
        _book(client, start="2025-02-01", end="2025-02-03")

        response = client.get("/reservations", params={"resource_id": "car-x"})
        starts = [r["start"] for r in response.json()["reservations"]]
        assert starts == ["2025-02-01", "2025-01-10"]

        response = client.get("/reservations", params={"requester_id": "user-b"})
        assert [r["resource_id"] for r in response.json()["reservations"]] == ["car-y"]

        response = client.get("/reservations", params={"from": "2025-01-15", "to": "2025-03-01"})
        assert len(response.json()["reservations"]) == 1

    def test_list_by_status(self, client):
        created = _book(client).json()["reservation"]
        _book(client, start="2025-02-01", end="2025-02-03")
        client.post(f"/reservations/{created['id']}/transitions", json={"status": "cancelled"})

        response = client.get("/reservations", params=[("status", "cancelled")])
        assert [r["id"] for r in response.json()["reservations"]] == [created["id"]]

    def test_list_limit_bounds(self, client):
        assert client.get("/reservations", params={"limit": 0}).status_code == 422
        assert client.get("/reservations", params={"limit": 501}).status_code == 422


class TestTransitions:
    def test_confirm(self, client, notifier):
        created = _book(client).json()["reservation"]

        response = client.post(
            f"/reservations/{created['id']}/transitions", json={"status": "confirmed"}
        )

        assert response.status_code == 200
        assert response.json()["reservation"]["status"] == "confirmed"
        assert len(notifier.status_changes) == 1

    def test_invalid_transition(self, client):
        created = _book(client).json()["reservation"]
        client.post(f"/reservations/{created['id']}/transitions", json={"status": "confirmed"})

        response = client.post(
            f"/reservations/{created['id']}/transitions", json={"status": "pending"}
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "invalid_transition"
        assert body["details"]["current_status"] == "confirmed"

    def test_unknown_reservation(self, client):
        response = client.post("/reservations/missing/transitions", json={"status": "confirmed"})
        assert response.status_code == 404
        assert response.json()["error"] == "reservation_not_found"

    def test_unknown_status_value(self, client):
        created = _book(client).json()["reservation"]
        response = client.post(
            f"/reservations/{created['id']}/transitions", json={"status": "archived"}
        )
        assert response.status_code == 422


class DownStore(InMemoryReservationStore):
    def find(self, query):
        raise StoreUnavailableError("connection refused")


def test_store_outage_maps_to_503(registry, clock):
    client = TestClient(create_app(Settings(), store=DownStore(clock=clock), registry=registry))

    response = client.get("/reservations")

    assert response.status_code == 503
    assert response.headers["Retry-After"] == "1"
    assert response.json()["error"] == "store_unavailable"


def test_created_price_is_exact_decimal_string(client):
    body = _book(client, resource_id="car-y").json()["reservation"]
    assert Decimal(body["total_price"]) == Decimal("149.97")
