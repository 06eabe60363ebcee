"""HTTP tests for the time slot and booking routers."""

from carbook.models import Booking, BookingStatus, TimeSlot, UserRole
from tests.conftest import auth_headers, make_booking, make_slot, make_user

MISSING_ID = "00000000-0000-4000-8000-000000000000"


class TestAuth:
    def test_missing_token_rejected(self, client):
        response = client.get("/api/time-slots/available/2025-03-10")
        assert response.status_code in (401, 403)

    def test_garbage_token_rejected(self, client):
        response = client.get(
            "/api/time-slots/available/2025-03-10", headers={"Authorization": "Bearer nope"}
        )
        assert response.status_code == 403

    def test_customer_cannot_create_slot(self, client, db):
        customer = make_user(db)
        response = client.post(
            "/api/time-slots",
            json={"date": "2025-03-10", "startTime": "09:00", "endTime": "10:00"},
            headers=auth_headers(customer),
        )
        assert response.status_code == 403


class TestTimeSlotRoutes:
    def test_create_and_list_available(self, client, db):
        admin = make_user(db, role=UserRole.ADMIN)
        response = client.post(
            "/api/time-slots",
            json={"date": "2025-03-10", "startTime": "9:00", "endTime": "10:00", "maxCapacity": 2},
            headers=auth_headers(admin),
        )
        assert response.status_code == 201
        assert response.json()["startTime"] == "09:00"
        assert response.json()["currentBookings"] == 0

        listed = client.get("/api/time-slots/available/2025-03-10", headers=auth_headers(admin))
        assert listed.status_code == 200
        assert [s["id"] for s in listed.json()] == [response.json()["id"]]

    def test_duplicate_slot_is_conflict(self, client, db):
        admin = make_user(db, role=UserRole.ADMIN)
        payload = {"date": "2025-03-10", "startTime": "09:00", "endTime": "10:00"}
        client.post("/api/time-slots", json=payload, headers=auth_headers(admin))

        response = client.post("/api/time-slots", json=payload, headers=auth_headers(admin))
        assert response.status_code == 409

    def test_generate(self, client, db):
        admin = make_user(db, role=UserRole.ADMIN)
        response = client.post(
            "/api/time-slots/generate",
            json={
                "startDate": "2025-03-10",
                "endDate": "2025-03-10",
                "startTime": "09:00",
                "endTime": "10:00",
                "slotDuration": 30,
            },
            headers=auth_headers(admin),
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Generated 2 time slots"
        assert len(response.json()["slots"]) == 2

    def test_generate_invalid_range(self, client, db):
        admin = make_user(db, role=UserRole.ADMIN)
        response = client.post(
            "/api/time-slots/generate",
            json={
                "startDate": "2025-03-11",
                "endDate": "2025-03-10",
                "startTime": "09:00",
                "endTime": "10:00",
                "slotDuration": 30,
            },
            headers=auth_headers(admin),
        )
        assert response.status_code == 400
        assert "startDate" in response.json()["detail"]

    def test_range_query(self, client, db):
        admin = make_user(db, role=UserRole.ADMIN)
        make_slot(db)
        response = client.get(
            "/api/time-slots/range",
            params={"startDate": "2025-03-01", "endDate": "2025-03-31"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 200
        assert len(response.json()) == 1

    def test_book_then_full(self, client, db):
        customer = make_user(db)
        first = make_booking(db, customer)
        second = make_booking(db, customer)
        slot = make_slot(db, max_capacity=1)

        booked = client.post(
            "/api/time-slots/book",
            json={"timeSlotId": slot.id, "bookingId": first.id},
            headers=auth_headers(customer),
        )
        assert booked.status_code == 200
        assert booked.json() == {"success": True, "message": "Time slot booked successfully"}

        full = client.post(
            "/api/time-slots/book",
            json={"timeSlotId": slot.id, "bookingId": second.id},
            headers=auth_headers(customer),
        )
        assert full.status_code == 409
        assert full.json()["detail"] == "Time slot is no longer available"

    def test_book_missing_slot(self, client, db):
        customer = make_user(db)
        booking = make_booking(db, customer)
        response = client.post(
            "/api/time-slots/book",
            json={"timeSlotId": MISSING_ID, "bookingId": booking.id},
            headers=auth_headers(customer),
        )
        assert response.status_code == 404
        assert response.json()["detail"] == "Time slot not found"

    def test_customer_cannot_book_for_someone_else(self, client, db):
        owner = make_user(db)
        intruder = make_user(db)
        booking = make_booking(db, owner)
        slot = make_slot(db)

        response = client.post(
            "/api/time-slots/book",
            json={"timeSlotId": slot.id, "bookingId": booking.id},
            headers=auth_headers(intruder),
        )
        assert response.status_code == 403

    def test_release(self, client, db):
        technician = make_user(db, role=UserRole.TECHNICIAN)
        customer = make_user(db)
        booking = make_booking(db, customer)
        slot = make_slot(db)
        client.post(
            "/api/time-slots/book",
            json={"timeSlotId": slot.id, "bookingId": booking.id},
            headers=auth_headers(customer),
        )

        response = client.post(
            f"/api/time-slots/{slot.id}/release",
            json={"bookingId": booking.id},
            headers=auth_headers(technician),
        )
        assert response.status_code == 200
        assert response.json()["currentBookings"] == 0
        assert response.json()["isAvailable"] is True

    def test_release_without_body(self, client, db):
        admin = make_user(db, role=UserRole.ADMIN)
        booking = make_booking(db, make_user(db))
        slot = make_slot(db, max_capacity=2)
        client.post(
            "/api/time-slots/book",
            json={"timeSlotId": slot.id, "bookingId": booking.id},
            headers=auth_headers(admin),
        )

        response = client.post(f"/api/time-slots/{slot.id}/release", headers=auth_headers(admin))
        assert response.status_code == 200
        assert response.json()["currentBookings"] == 1

    def test_slots_for_booking(self, client, db):
        admin = make_user(db, role=UserRole.ADMIN)
        booking = make_booking(db, make_user(db))
        slot = make_slot(db)
        client.post(
            "/api/time-slots/book",
            json={"timeSlotId": slot.id, "bookingId": booking.id},
            headers=auth_headers(admin),
        )

        response = client.get(f"/api/time-slots/booking/{booking.id}", headers=auth_headers(admin))
        assert [s["id"] for s in response.json()] == [slot.id]


class TestBookingRoutes:
    def test_create_booking(self, client, db):
        customer = make_user(db)
        response = client.post(
            "/api/bookings",
            json={
                "userId": customer.id,
                "vehicleId": "6f1c7a52-1d7e-4a4e-9d6b-2f6c1f0b9a11",
                "serviceId": "0b8e2f4c-5a3d-4c1e-8f2a-7d9e6b3c1a22",
                "scheduledDate": "2025-03-10T09:00:00",
            },
            headers=auth_headers(customer),
        )
        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "pending"
        assert body["completionCallTriggered"] is False
        assert body["priority"] == "normal"

    def test_customer_cannot_create_for_other_user(self, client, db):
        customer = make_user(db)
        other = make_user(db)
        response = client.post(
            "/api/bookings",
            json={
                "userId": other.id,
                "vehicleId": "6f1c7a52-1d7e-4a4e-9d6b-2f6c1f0b9a11",
                "serviceId": "0b8e2f4c-5a3d-4c1e-8f2a-7d9e6b3c1a22",
                "scheduledDate": "2025-03-10T09:00:00",
            },
            headers=auth_headers(customer),
        )
        assert response.status_code == 403

    def test_get_booking_not_found(self, client, db):
        admin = make_user(db, role=UserRole.ADMIN)
        response = client.get(f"/api/bookings/{MISSING_ID}", headers=auth_headers(admin))
        assert response.status_code == 404
        assert response.json()["detail"] == "Booking not found"

    def test_list_by_status(self, client, db):
        admin = make_user(db, role=UserRole.ADMIN)
        customer = make_user(db)
        make_booking(db, customer)
        confirmed = make_booking(db, customer, status=BookingStatus.CONFIRMED)

        response = client.get("/api/bookings/status/confirmed", headers=auth_headers(admin))
        assert [b["id"] for b in response.json()] == [confirmed.id]

    def test_customer_sees_own_bookings_only(self, client, db):
        customer = make_user(db)
        other = make_user(db)
        make_booking(db, customer)

        own = client.get(f"/api/bookings/user/{customer.id}", headers=auth_headers(customer))
        assert own.status_code == 200
        assert len(own.json()) == 1

        foreign = client.get(f"/api/bookings/user/{other.id}", headers=auth_headers(customer))
        assert foreign.status_code == 403

    def test_customer_cannot_list_all(self, client, db):
        customer = make_user(db)
        response = client.get("/api/bookings", headers=auth_headers(customer))
        assert response.status_code == 403


class TestStatusRoute:
    def test_invalid_transition_is_conflict(self, client, db):
        admin = make_user(db, role=UserRole.ADMIN)
        booking = make_booking(db, make_user(db))

        response = client.patch(
            f"/api/bookings/{booking.id}/status",
            json={"status": "completed"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 409
        assert "pending" in response.json()["detail"]

    def test_unknown_status_is_validation_error(self, client, db):
        admin = make_user(db, role=UserRole.ADMIN)
        booking = make_booking(db, make_user(db))

        response = client.patch(
            f"/api/bookings/{booking.id}/status",
            json={"status": "archived"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 422

    def test_customer_cannot_change_status(self, client, db):
        customer = make_user(db)
        booking = make_booking(db, customer)

        response = client.patch(
            f"/api/bookings/{booking.id}/status",
            json={"status": "cancelled"},
            headers=auth_headers(customer),
        )
        assert response.status_code == 403

    def test_completion_reports_call(self, client, db, notifier):
        technician = make_user(db, role=UserRole.TECHNICIAN)
        booking = make_booking(db, make_user(db), status=BookingStatus.IN_PROGRESS)

        response = client.patch(
            f"/api/bookings/{booking.id}/status",
            json={"status": "completed", "technicianNotes": "Full service done"},
            headers=auth_headers(technician),
        )
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "completed"
        assert body["technicianNotes"] == "Full service done"
        assert body["completionCallTriggered"] is True
        assert body["completionCall"] == {"attempted": True, "delivered": True, "warning": None}
        assert body["warnings"] == []
        assert notifier.calls == [booking.id]

    def test_failed_call_is_warning(self, client, db, notifier):
        notifier.delivered = False
        notifier.error = "Twilio not configured"
        technician = make_user(db, role=UserRole.TECHNICIAN)
        booking = make_booking(db, make_user(db), status=BookingStatus.IN_PROGRESS)

        response = client.patch(
            f"/api/bookings/{booking.id}/status",
            json={"status": "completed"},
            headers=auth_headers(technician),
        )
        assert response.status_code == 200
        assert response.json()["status"] == "completed"
        assert response.json()["warnings"] == ["Twilio not configured"]

        db.expire_all()
        assert db.get(Booking, booking.id).status == "completed"

    def test_cancel_frees_slot(self, client, db):
        admin = make_user(db, role=UserRole.ADMIN)
        booking = make_booking(db, make_user(db), status=BookingStatus.CONFIRMED)
        slot = make_slot(db)
        client.post(
            "/api/time-slots/book",
            json={"timeSlotId": slot.id, "bookingId": booking.id},
            headers=auth_headers(admin),
        )

        response = client.patch(
            f"/api/bookings/{booking.id}/status",
            json={"status": "cancelled"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 200
        assert response.json()["timeSlotId"] is None

        db.expire_all()
        assert db.get(TimeSlot, slot.id).current_bookings == 0


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}
