import uuid
from decimal import Decimal

import pytest

from mechanic_booking.policy import Principal


@pytest.fixture
def oil_change(services):
    return str(services["Oil Change"].id)


def _signup(client, auth_header, role="customer", name="Pat Customer"):
    principal = Principal(uuid.uuid4())
    response = client.post(
        "/profiles/",
        json={"email": f"{principal.id.hex[:8]}@example.com", "full_name": name, "role": role},
        headers=auth_header(principal),
    )
    assert response.status_code == 201, response.text
    return principal


def _booking_body(service_id, **overrides):
    body = {
        "service_id": service_id,
        "vehicle_make": "Honda",
        "vehicle_model": "Civic",
        "vehicle_year": 2020,
        "location_address": "88 Harbour Road",
        "location_latitude": 40.7,
        "location_longitude": -74.0,
    }
    body.update(overrides)
    return body


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_requests_without_a_token_are_denied(client, services):
    response = client.get("/bookings/")
    assert response.status_code == 403
    assert response.json() == {"detail": "Not authorized"}
    assert client.get("/services/").status_code == 403


def test_forged_token_is_anonymous(client, services):
    response = client.get("/services/", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 403


def test_profile_me(client, auth_header):
    principal = _signup(client, auth_header, name="Jo Driver")
    response = client.get("/profiles/me", headers=auth_header(principal))
    assert response.status_code == 200
    assert response.json()["full_name"] == "Jo Driver"
    assert response.json()["id"] == str(principal.id)


def test_catalog_listing(client, auth_header, services):
    principal = _signup(client, auth_header)
    response = client.get("/services/", params={"category": "repair"}, headers=auth_header(principal))
    assert response.status_code == 200
    assert {s["name"] for s in response.json()} == {"Battery Replacement", "Brake Pad Replacement"}


def test_create_and_list_booking(client, auth_header, oil_change):
    customer = _signup(client, auth_header)

    response = client.post("/bookings/", json=_booking_body(oil_change), headers=auth_header(customer))
    assert response.status_code == 201, response.text
    booking = response.json()
    assert booking["status"] == "pending"
    assert Decimal(booking["total_price"]) == Decimal("49.99")
    assert booking["customer_id"] == str(customer.id)

    listed = client.get("/bookings/", headers=auth_header(customer)).json()
    assert len(listed) == 1
    assert listed[0]["service"]["name"] == "Oil Change"
    assert listed[0]["mechanic"] is None


def test_missing_field_is_reported_by_name(client, auth_header, oil_change):
    customer = _signup(client, auth_header)
    response = client.post(
        "/bookings/", json=_booking_body(oil_change, vehicle_make=""), headers=auth_header(customer)
    )
    assert response.status_code == 422
    assert response.json()["field"] == "vehicle_make"


def test_unknown_service_is_404(client, auth_header, services):
    customer = _signup(client, auth_header)
    response = client.post("/bookings/", json=_booking_body(str(uuid.uuid4())), headers=auth_header(customer))
    assert response.status_code == 404


def test_other_customers_booking_is_hidden(client, auth_header, oil_change):
    alice = _signup(client, auth_header, name="Alice")
    bob = _signup(client, auth_header, name="Bob")
    booking_id = client.post("/bookings/", json=_booking_body(oil_change), headers=auth_header(bob)).json()["id"]

    assert client.get(f"/bookings/{booking_id}", headers=auth_header(alice)).status_code == 404
    assert client.get("/bookings/", headers=auth_header(alice)).json() == []
    response = client.patch(f"/bookings/{booking_id}/status", json={"status": "cancelled"}, headers=auth_header(alice))
    assert response.status_code == 403


def test_booking_lifecycle_over_http(client, auth_header, oil_change):
    customer = _signup(client, auth_header)
    first = _signup(client, auth_header, role="mechanic", name="First")
    second = _signup(client, auth_header, role="mechanic", name="Second")
    for principal, name in ((first, "First Garage"), (second, "Second Garage")):
        response = client.post("/mechanics/", json={"business_name": name}, headers=auth_header(principal))
        assert response.status_code == 201, response.text

    booking_id = client.post("/bookings/", json=_booking_body(oil_change), headers=auth_header(customer)).json()["id"]

    accepted = client.post(f"/bookings/{booking_id}/accept", headers=auth_header(first))
    assert accepted.status_code == 200
    assert accepted.json()["status"] == "accepted"
    assert client.post(f"/bookings/{booking_id}/accept", headers=auth_header(second)).status_code == 409

    skipped = client.patch(f"/bookings/{booking_id}/status", json={"status": "completed"}, headers=auth_header(first))
    assert skipped.status_code == 409
    for status in ("in_progress", "completed"):
        response = client.patch(f"/bookings/{booking_id}/status", json={"status": status}, headers=auth_header(first))
        assert response.status_code == 200
        assert response.json()["status"] == status

    review = client.post(
        "/reviews/", json={"booking_id": booking_id, "rating": 5, "comment": "Great"}, headers=auth_header(customer)
    )
    assert review.status_code == 201
    again = client.post("/reviews/", json={"booking_id": booking_id, "rating": 4}, headers=auth_header(customer))
    assert again.status_code == 409

    mechanic = client.get("/mechanics/me", headers=auth_header(first)).json()
    assert mechanic["total_jobs"] == 1
    assert Decimal(mechanic["rating"]) == Decimal("5")

    summary = client.get(f"/bookings/{booking_id}", headers=auth_header(customer)).json()
    assert summary["mechanic"]["business_name"] == "First Garage"


def test_invalid_status_value(client, auth_header, oil_change):
    customer = _signup(client, auth_header)
    booking_id = client.post("/bookings/", json=_booking_body(oil_change), headers=auth_header(customer)).json()["id"]
    response = client.patch(f"/bookings/{booking_id}/status", json={"status": "lost"}, headers=auth_header(customer))
    assert response.status_code == 422
    assert response.json()["field"] == "status"


def test_customer_edits_pending_booking(client, auth_header, oil_change):
    customer = _signup(client, auth_header)
    booking_id = client.post("/bookings/", json=_booking_body(oil_change), headers=auth_header(customer)).json()["id"]
    response = client.patch(f"/bookings/{booking_id}", json={"notes": "Blue gate"}, headers=auth_header(customer))
    assert response.status_code == 200
    assert response.json()["notes"] == "Blue gate"


def test_mechanic_availability_toggle(client, auth_header):
    owner = _signup(client, auth_header, role="mechanic")
    customer = _signup(client, auth_header)
    client.post("/mechanics/", json={"business_name": "Night Owl Auto"}, headers=auth_header(owner))

    response = client.patch("/mechanics/me", json={"is_available": False}, headers=auth_header(owner))
    assert response.status_code == 200
    assert response.json()["is_available"] is False
    assert client.get("/mechanics/", params={"available": "true"}, headers=auth_header(customer)).json() == []
