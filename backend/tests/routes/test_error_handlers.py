from slotbook.api.dependencies.services import get_booking_service
from slotbook.core.exceptions import RepositoryException
from slotbook.main import app


class _FailingBookingService:
    def __init__(self, message):
        self.message = message

    def list_bookings(self, *args, **kwargs):
        raise RepositoryException(self.message)


def _list_with_failure(client, headers, message):
    app.dependency_overrides[get_booking_service] = lambda: _FailingBookingService(message)
    return client.get("/api/v1/bookings", params={"client_id": "c"}, headers=headers)


def test_pool_exhaustion_is_503_with_retry_after(client, client_headers):
    response = _list_with_failure(
        client, client_headers, "QueuePool limit of size 5 overflow 5 reached, connection timed out"
    )

    assert response.status_code == 503
    assert response.headers["retry-after"] == "2"
    assert response.json()["code"] == "SERVICE_UNAVAILABLE"


def test_storage_failure_is_500_without_internal_detail(client, client_headers):
    response = _list_with_failure(client, client_headers, "relation bookings does not exist")

    assert response.status_code == 500
    body = response.json()
    assert body["detail"] == "Internal Server Error"
    assert "relation" not in response.text
