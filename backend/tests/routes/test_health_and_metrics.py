from slotbook import __version__
from tests.helpers import at


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["version"] == __version__


def test_metrics_exposes_booking_counters(client, client_headers, resource, offering, future_day):
    client.post(
        "/api/v1/bookings",
        json={
            "resource_id": resource.id,
            "offering_id": offering.id,
            "start_at": at(future_day, 10).isoformat(),
            "idempotency_key": "metrics-1",
        },
        headers=client_headers,
    )

    response = client.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert 'slotbook_booking_create_total{outcome="created"}' in response.text
    assert "slotbook_service_operation_duration_seconds" in response.text


def test_unknown_route_is_problem_json(client):
    response = client.get("/api/v1/nowhere")

    assert response.status_code == 404
    assert response.headers["content-type"].startswith("application/problem+json")
    assert response.json()["title"] == "Not Found"
