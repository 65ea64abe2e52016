"""Request payload builders shared by the API tests."""

from datetime import date, timedelta

RAZORPAY_TEST_SECRET = "rzp_test_secret"


def days_from_today(days):
    return date.today() + timedelta(days=days)


def participant(**overrides):
    info = {
        "name": "Asha Rao",
        "email": "asha@example.com",
        "phone": "+91 98765 43210",
        "experience": "Beginner",
    }
    info.update(overrides)
    return info


def registration_payload(workshop_id, session_date, **overrides):
    payload = {
        "workshopId": workshop_id,
        "selectedDate": session_date.isoformat(),
        "participantInfo": participant(),
    }
    payload.update(overrides)
    return payload
