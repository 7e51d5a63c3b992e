"""Tests for the /appointments API routes."""

import pytest


def booking(directory, start="2030-01-08T09:00:00", end="2030-01-08T09:45:00", **overrides):
    body = {
        "staffId": directory.staff_id,
        "serviceId": directory.service_id,
        "startTime": start,
        "endTime": end,
    }
    body.update(overrides)
    return body


@pytest.fixture
def booked_id(client, client_headers, directory):
    response = client.post("/appointments", json=booking(directory), headers=client_headers)
    assert response.status_code == 200
    return response.json()["id"]


class TestCreateRoute:
    """Tests for POST /appointments."""

    def test_create_appointment(self, client, client_headers, directory):
        response = client.post("/appointments", json=booking(directory), headers=client_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Appointment created successfully"
        assert isinstance(data["id"], int)

    def test_unauthenticated(self, client, directory):
        response = client.post("/appointments", json=booking(directory))
        assert response.status_code == 401

    def test_inverted_window_is_400(self, client, client_headers, directory):
        response = client.post(
            "/appointments",
            json=booking(directory, start="2030-01-08T10:00:00", end="2030-01-08T09:00:00"),
            headers=client_headers,
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Start time must be before end time"

    def test_sunday_is_400(self, client, client_headers, directory):
        response = client.post(
            "/appointments",
            json=booking(directory, start="2030-01-13T10:00:00", end="2030-01-13T10:45:00"),
            headers=client_headers,
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Salon is closed on Sunday"

    def test_malformed_body_is_400(self, client, client_headers, directory):
        body = booking(directory)
        del body["serviceId"]
        response = client.post("/appointments", json=body, headers=client_headers)
        assert response.status_code == 400

    def test_non_positive_id_is_400(self, client, client_headers, directory):
        response = client.post("/appointments", json=booking(directory, staffId=0), headers=client_headers)
        assert response.status_code == 400

    def test_unknown_service_is_404(self, client, client_headers, directory):
        response = client.post("/appointments", json=booking(directory, serviceId=999), headers=client_headers)
        assert response.status_code == 404
        assert response.json()["detail"] == "Service not found"

    def test_conflict_is_409_with_suggestion(self, client, client_headers, other_client_headers, directory, booked_id):
        response = client.post(
            "/appointments",
            json=booking(directory, start="2030-01-08T09:15:00", end="2030-01-08T10:00:00"),
            headers=other_client_headers,
        )
        assert response.status_code == 409
        assert response.json() == {
            "detail": "Staff member is not available for the requested time",
            "suggestedStart": "2030-01-08T10:30:00",
            "suggestedEnd": "2030-01-08T11:15:00",
        }

    def test_aware_timestamps_are_normalized(self, client, client_headers, admin_headers, directory):
        response = client.post(
            "/appointments",
            json=booking(directory, start="2030-01-08T09:00:00+00:00", end="2030-01-08T09:45:00+00:00"),
            headers=client_headers,
        )
        assert response.status_code == 200
        stored = client.get(f"/appointments/{response.json()['id']}", headers=admin_headers).json()
        assert stored["startTime"] == "2030-01-08T09:00:00"


class TestReadRoute:
    """Tests for GET /appointments/{id}."""

    def test_client_reads_own(self, client, client_headers, directory, booked_id):
        response = client.get(f"/appointments/{booked_id}", headers=client_headers)
        assert response.status_code == 200
        assert response.json() == {
            "id": booked_id,
            "clientId": directory.client_id,
            "staffId": directory.staff_id,
            "serviceId": directory.service_id,
            "startTime": "2030-01-08T09:00:00",
            "endTime": "2030-01-08T09:45:00",
            "status": "Scheduled",
        }

    def test_assigned_staff_reads(self, client, staff_headers, booked_id):
        assert client.get(f"/appointments/{booked_id}", headers=staff_headers).status_code == 200

    def test_stranger_is_403(self, client, other_client_headers, booked_id):
        assert client.get(f"/appointments/{booked_id}", headers=other_client_headers).status_code == 403

    def test_unknown_is_404(self, client, client_headers):
        response = client.get("/appointments/999", headers=client_headers)
        assert response.status_code == 404
        assert response.json()["detail"] == "Appointment not found"


class TestUpdateRoute:
    """Tests for PUT /appointments/{id}."""

    def test_reschedule(self, client, client_headers, directory, booked_id):
        response = client.put(
            f"/appointments/{booked_id}",
            json=booking(directory, start="2030-01-08T10:00:00", end="2030-01-08T10:45:00"),
            headers=client_headers,
        )
        assert response.status_code == 200
        assert response.json() == {"id": booked_id, "message": "Appointment updated successfully"}

    def test_other_client_is_403(self, client, other_client_headers, directory, booked_id):
        response = client.put(
            f"/appointments/{booked_id}",
            json=booking(directory, start="2030-01-08T10:00:00", end="2030-01-08T10:45:00"),
            headers=other_client_headers,
        )
        assert response.status_code == 403

    def test_unknown_status_is_400(self, client, client_headers, directory, booked_id):
        response = client.put(
            f"/appointments/{booked_id}",
            json=booking(directory, status="Postponed"),
            headers=client_headers,
        )
        assert response.status_code == 400

    def test_reopening_cancelled_is_400(self, client, client_headers, directory, booked_id):
        client.patch(f"/appointments/{booked_id}/cancel", headers=client_headers)
        response = client.put(f"/appointments/{booked_id}", json=booking(directory), headers=client_headers)
        assert response.status_code == 400


class TestCancelRoute:
    """Tests for PATCH /appointments/{id}/cancel."""

    def test_cancel_is_204_and_keeps_record(self, client, client_headers, booked_id):
        response = client.patch(f"/appointments/{booked_id}/cancel", headers=client_headers)
        assert response.status_code == 204
        assert response.content == b""

        stored = client.get(f"/appointments/{booked_id}", headers=client_headers)
        assert stored.json()["status"] == "Cancelled"

    def test_cancel_twice_is_204(self, client, client_headers, booked_id):
        client.patch(f"/appointments/{booked_id}/cancel", headers=client_headers)
        response = client.patch(f"/appointments/{booked_id}/cancel", headers=client_headers)
        assert response.status_code == 204

    def test_staff_may_cancel(self, client, staff_headers, booked_id):
        assert client.patch(f"/appointments/{booked_id}/cancel", headers=staff_headers).status_code == 204

    def test_stranger_is_403(self, client, other_client_headers, booked_id):
        response = client.patch(f"/appointments/{booked_id}/cancel", headers=other_client_headers)
        assert response.status_code == 403

    def test_unknown_is_404(self, client, admin_headers):
        assert client.patch("/appointments/999/cancel", headers=admin_headers).status_code == 404


class TestHealth:
    def test_root_and_health(self, client):
        assert client.get("/").status_code == 200
        assert client.get("/health").json() == {"status": "healthy"}
