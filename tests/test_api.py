import json
from datetime import date, timedelta

from fastapi.testclient import TestClient

from call_scheduler.services.consultants import create_consultant
from call_scheduler.utils.tokens import make_token
from tests.conftest import EVERY_DAY_9_TO_17, booking_payload, tomorrow


def create(client, consultant, **kwargs):
    return client.post("/bookings", json=booking_payload(consultant.public_id, **kwargs))


class TestAvailabilityEndpoint:

    def test_slots_for_date(self, client, api_consultant):
        day = tomorrow()
        response = client.get("/availability", params={"consultant_id": api_consultant.public_id, "date": day.isoformat()})

        assert response.status_code == 200
        data = response.json()
        assert data["date"] == day.isoformat()
        assert data["dayOfWeek"] == day.isoweekday() % 7
        assert len(data["slots"]) == 8
        assert data["slots"][0] == {"start": "09:00", "end": "10:00", "available": True}

    def test_defaults_to_today(self, client, api_consultant):
        response = client.get("/availability", params={"consultant_id": api_consultant.public_id})
        assert response.status_code == 200
        assert response.json()["date"] == date.today().isoformat()

    def test_booked_slot_unavailable(self, client, api_consultant):
        create(client, api_consultant, time="11:00")

        data = client.get("/availability", params={
            "consultant_id": api_consultant.public_id,
            "date": tomorrow().isoformat(),
        }).json()

        slots = {s["start"]: s["available"] for s in data["slots"]}
        assert slots["11:00"] is False
        assert slots["10:00"] is True

    def test_invalid_date(self, client, api_consultant):
        for bad in ("2030-13-01", "tomorrow", "2030-02-30"):
            response = client.get("/availability", params={"consultant_id": api_consultant.public_id, "date": bad})
            assert response.status_code == 400
            assert response.json()["code"] == "invalid_date"

    def test_date_too_far(self, client, api_consultant):
        far = date.today() + timedelta(days=31)
        response = client.get("/availability", params={"consultant_id": api_consultant.public_id, "date": far.isoformat()})
        assert response.status_code == 400
        assert response.json()["code"] == "date_too_far"

    def test_unknown_consultant(self, client, api_consultant):
        response = client.get("/availability", params={"consultant_id": "missing"})
        assert response.status_code == 400
        assert response.json() == {"detail": "Invalid consultant.", "code": "invalid_consultant"}

    def test_missing_consultant_param(self, client):
        response = client.get("/availability")
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_consultant"


class TestCreateBookingEndpoint:

    def test_created(self, client, api_consultant):
        response = create(client, api_consultant)

        assert response.status_code == 201
        data = response.json()
        assert data["id"] > 0
        assert data["consultantId"] == api_consultant.public_id
        assert data["customerName"] == "John Smith"
        assert data["date"] == tomorrow().isoformat()
        assert data["time"] == "10:00"
        assert data["status"] == "pending"

    def test_email_is_normalized(self, client, api_consultant):
        response = create(client, api_consultant, customerEmail="  John@Example.COM ")
        assert response.status_code == 201
        assert response.json()["customerEmail"] == "john@example.com"

    def test_invalid_email(self, client, api_consultant):
        response = create(client, api_consultant, customerEmail="not-an-email")
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_email"

    def test_invalid_time_format(self, client, api_consultant):
        response = create(client, api_consultant, time="9am")
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_time"

    def test_missing_name(self, client, api_consultant):
        payload = booking_payload(api_consultant.public_id)
        del payload["customerName"]
        response = client.post("/bookings", json=payload)
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_name"

    def test_outside_hours(self, client, api_consultant):
        response = create(client, api_consultant, time="18:00")
        assert response.status_code == 400
        assert response.json()["code"] == "outside_hours"

    def test_past_date(self, client, api_consultant):
        response = create(client, api_consultant, booking_date=date.today() - timedelta(days=1))
        assert response.status_code == 400
        assert response.json()["code"] == "past_date"

    def test_duplicate_slot(self, client, api_consultant):
        assert create(client, api_consultant).status_code == 201

        response = create(client, api_consultant, customerEmail="late@example.com")

        assert response.status_code == 409
        assert response.json() == {"detail": "This time slot is already booked.", "code": "slot_taken"}

    def test_honeypot(self, client, api_consultant, redis):
        response = create(client, api_consultant, website="http://spam.example")

        assert response.status_code == 201
        assert response.json() == {"id": 0, "status": "pending"}
        assert client.get("/bookings/stats").json()["all"] == 0
        assert redis.llen("events:p2p") == 0

    def test_honeypot_answers_before_field_validation(self, client, api_consultant):
        response = create(
            client, api_consultant,
            website="http://spam.example", customerEmail="not-an-email", time="9am",
        )

        assert response.status_code == 201
        assert response.json() == {"id": 0, "status": "pending"}

    def test_non_object_body(self, client):
        response = client.post("/bookings", json=["not", "an", "object"])
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_request"

    def test_emits_event(self, client, api_consultant, redis):
        booking_id = create(client, api_consultant).json()["id"]

        event = json.loads(redis.lrange("events:p2p", 0, -1)[-1])

        assert event["type"] == "booking.created"
        assert event["booking_id"] == booking_id


class TestBookingToken:

    def test_required_when_secret_set(self, app_factory):
        app = app_factory(booking_secret="s3cret")
        client = TestClient(app)
        consultant = _consultant(app)

        missing = create(client, consultant)
        assert missing.status_code == 403
        assert missing.json()["code"] == "missing_token"

        ok = client.post(
            "/bookings",
            json=booking_payload(consultant.public_id),
            headers={"X-CS-Token": make_token("s3cret")},
        )
        assert ok.status_code == 201

    def test_forged_token(self, app_factory):
        app = app_factory(booking_secret="s3cret")
        client = TestClient(app)
        consultant = _consultant(app)

        response = client.post(
            "/bookings",
            json=booking_payload(consultant.public_id),
            headers={"X-CS-Token": make_token("wrong")},
        )
        assert response.status_code == 403
        assert response.json()["code"] == "invalid_token"


class TestBookingReadAndUpdate:

    def test_get_booking(self, client, api_consultant):
        booking_id = create(client, api_consultant).json()["id"]

        response = client.get(f"/bookings/{booking_id}")

        assert response.status_code == 200
        assert response.json()["id"] == booking_id

    def test_get_missing_booking(self, client):
        response = client.get("/bookings/999")
        assert response.status_code == 404
        assert response.json()["code"] == "not_found"

    def test_cancel_and_rebook(self, client, api_consultant):
        booking_id = create(client, api_consultant).json()["id"]

        cancelled = client.patch(f"/bookings/{booking_id}", json={"status": "cancelled"})
        assert cancelled.status_code == 200
        assert cancelled.json()["status"] == "cancelled"

        assert create(client, api_consultant).status_code == 201

        revived = client.patch(f"/bookings/{booking_id}", json={"status": "confirmed"})
        assert revived.status_code == 409
        assert revived.json()["code"] == "slot_taken"

    def test_invalid_status(self, client, api_consultant):
        booking_id = create(client, api_consultant).json()["id"]
        response = client.patch(f"/bookings/{booking_id}", json={"status": "archived"})
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_status"

    def test_stats(self, client, api_consultant):
        first = create(client, api_consultant).json()["id"]
        create(client, api_consultant, time="11:00")
        client.patch(f"/bookings/{first}", json={"status": "confirmed"})

        assert client.get("/bookings/stats").json() == {
            "all": 2, "pending": 1, "confirmed": 1, "cancelled": 0,
        }


class TestRateLimiting:

    def test_headers_on_limited_routes(self, client, api_consultant):
        response = client.get("/availability", params={"consultant_id": api_consultant.public_id})

        assert response.headers["X-RateLimit-Limit"] == "100"
        assert response.headers["X-RateLimit-Remaining"] == "99"
        assert "X-RateLimit-Reset" in response.headers

    def test_unlimited_routes_have_no_headers(self, client):
        response = client.get("/health")
        assert "X-RateLimit-Limit" not in response.headers

    def test_write_limit(self, app_factory):
        app = app_factory(rate_limit_write=3)
        client = TestClient(app)
        consultant = _consultant(app)

        statuses = [create(client, consultant, time=t).status_code for t in ("09:00", "10:00", "11:00")]
        assert statuses == [201, 201, 201]

        limited = create(client, consultant, time="12:00")

        assert limited.status_code == 429
        body = limited.json()
        assert body["code"] == "rate_limit_exceeded"
        assert body["retryAfter"] >= 1
        assert limited.headers["X-RateLimit-Remaining"] == "0"
        assert int(limited.headers["Retry-After"]) >= 1

        # Reads have their own budget
        read = client.get("/availability", params={"consultant_id": consultant.public_id})
        assert read.status_code == 200

    def test_rejected_requests_still_count(self, app_factory):
        app = app_factory(rate_limit_write=1)
        client = TestClient(app)
        consultant = _consultant(app)

        assert create(client, consultant, customerEmail="bad").status_code == 400
        assert create(client, consultant).status_code == 429


class TestConsultantsEndpoint:

    def test_lists_active_consultants(self, app, client, api_consultant):
        session = app.state.session_factory()
        try:
            weekdays_id = create_consultant(
                session, "Weekday Advisor", title="Lawyer",
                weekly_hours={d: ("09:00", "17:00") for d in range(1, 6)},
            ).public_id
            retired = create_consultant(session, "Retired", weekly_hours=EVERY_DAY_9_TO_17)
            retired.is_active = 0
            session.commit()
        finally:
            session.close()

        response = client.get("/consultants")

        assert response.status_code == 200
        assert response.json() == [
            {"id": api_consultant.public_id, "name": "Api Consultant", "title": None, "availableDays": [0, 1, 2, 3, 4, 5, 6]},
            {"id": weekdays_id, "name": "Weekday Advisor", "title": "Lawyer", "availableDays": [1, 2, 3, 4, 5]},
        ]

    def test_listed_id_works_for_availability(self, client, api_consultant):
        consultant_id = client.get("/consultants").json()[0]["id"]

        response = client.get("/availability", params={"consultant_id": consultant_id, "date": tomorrow().isoformat()})

        assert response.status_code == 200
        assert response.json()["slots"]

    def test_read_rate_limited(self, app_factory):
        client = TestClient(app_factory(rate_limit_read=2))

        first = client.get("/consultants")
        client.get("/consultants")
        limited = client.get("/consultants")

        assert first.headers["X-RateLimit-Limit"] == "2"
        assert first.headers["X-RateLimit-Remaining"] == "1"
        assert limited.status_code == 429


class TestServiceEndpoints:

    def test_health(self, client):
        assert client.get("/health").json() == {"redis": True}

    def test_config(self, app_factory):
        client = TestClient(app_factory(slot_duration=30, buffer_time=15))

        data = client.get("/config").json()

        assert data["slot_duration_minutes"] == 30
        assert data["buffer_time_minutes"] == 15
        assert data["slot_duration_text"] == "30 minutes"
        assert data["rate_limit_write"] == 100

    def test_starts_with_unusable_numbers(self, app_factory):
        client = TestClient(app_factory(slot_duration="abc", max_booking_days="soon", rate_limit_read="many"))

        data = client.get("/config").json()

        assert data["slot_duration_minutes"] == 60
        assert data["max_booking_days"] == 30
        assert data["rate_limit_read"] == 60


def _consultant(app):
    session = app.state.session_factory()
    try:
        return create_consultant(session, "Limited", weekly_hours=EVERY_DAY_9_TO_17)
    finally:
        session.close()
