import json

import httpx
import pytest

from anantam_api.domain.payments.razorpay_service import RazorpayService
from anantam_api.domain.payments.signature import compute_payment_signature
from anantam_api.domain.workshops.router import get_razorpay_service
from helpers import RAZORPAY_TEST_SECRET, days_from_today, participant, registration_payload


class FakeOrdersApi:
    """Razorpay stand-in: creates orders and answers lookups for the ones it created."""

    def __init__(self):
        self.calls = []
        self.orders = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            body = json.loads(request.content)
            self.calls.append({"url": str(request.url), "auth": request.headers.get("authorization"), "body": body})
            order_id = f"order_test_{len(self.orders) + 1}"
            self.orders[order_id] = {
                "id": order_id,
                "entity": "order",
                "amount": body["amount"],
                "currency": body["currency"],
                "receipt": body["receipt"],
                "notes": body["notes"],
                "status": "created",
            }
            return httpx.Response(200, json=self.orders[order_id])

        order_id = request.url.path.rsplit("/", 1)[-1]
        if order_id not in self.orders:
            return httpx.Response(400, json={"error": {"description": "The id provided does not exist"}})
        return httpx.Response(200, json=self.orders[order_id])


@pytest.fixture()
def gateway(app):
    api = FakeOrdersApi()
    service = RazorpayService(transport=httpx.MockTransport(api))
    app.dependency_overrides[get_razorpay_service] = lambda: service
    yield api
    app.dependency_overrides.pop(get_razorpay_service, None)


def create_order(client, headers, workshop_id, session_date):
    response = client.post(
        "/workshops/payment/create",
        json=registration_payload(workshop_id, session_date),
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()["order"]["razorpayOrderId"]


def verify_payload(workshop_id, session_date, order_id, payment_id="pay_test_1", signature=None):
    payload = registration_payload(workshop_id, session_date)
    payload.update(
        razorpay_order_id=order_id,
        razorpay_payment_id=payment_id,
        razorpay_signature=signature
        if signature is not None
        else compute_payment_signature(order_id, payment_id, RAZORPAY_TEST_SECRET),
    )
    return payload


def test_create_order_in_paise(client, gateway, make_user, make_workshop):
    session_date = days_from_today(20)
    workshop = make_workshop(sessions={session_date: 2}, price="₹1,499.50")
    user, headers = make_user()

    response = client.post(
        "/workshops/payment/create",
        json=registration_payload(workshop.id, session_date),
        headers=headers,
    )

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["razorpayKey"] == "rzp_test_key"
    assert body["order"]["razorpayOrderId"] == "order_test_1"
    assert body["order"]["amount"] == 149950
    assert body["order"]["currency"] == "INR"
    assert body["order"]["workshopTitle"] == "Drone Basics"

    assert len(gateway.calls) == 1
    sent = gateway.calls[0]
    assert sent["url"].endswith("/orders")
    assert sent["auth"].startswith("Basic ")
    assert sent["body"]["amount"] == 149950
    assert sent["body"]["receipt"].startswith("workshop_")
    assert sent["body"]["notes"]["workshop_id"] == str(workshop.id)
    assert sent["body"]["notes"]["user_id"] == str(user.id)
    assert sent["body"]["notes"]["selected_date"] == session_date.isoformat()


def test_create_order_does_not_hold_a_seat(client, gateway, make_user, make_workshop, spots_left):
    session_date = days_from_today(20)
    workshop = make_workshop(sessions={session_date: 1})
    _, headers = make_user()

    create_order(client, headers, workshop.id, session_date)

    assert spots_left(workshop.id, session_date) == 1


def test_create_order_for_sold_out_session_is_rejected(client, gateway, make_user, make_workshop):
    session_date = days_from_today(20)
    workshop = make_workshop(sessions={session_date: 0}, allocated={session_date: 2})
    _, headers = make_user()

    response = client.post(
        "/workshops/payment/create",
        json=registration_payload(workshop.id, session_date),
        headers=headers,
    )

    assert response.status_code == 409
    assert gateway.calls == []


def test_gateway_failure_is_reported(client, app, make_user, make_workshop):
    session_date = days_from_today(20)
    workshop = make_workshop(sessions={session_date: 2})
    _, headers = make_user()
    failing = RazorpayService(
        transport=httpx.MockTransport(lambda request: httpx.Response(401, json={"error": "bad key"}))
    )
    app.dependency_overrides[get_razorpay_service] = lambda: failing
    try:
        response = client.post(
            "/workshops/payment/create",
            json=registration_payload(workshop.id, session_date),
            headers=headers,
        )
    finally:
        app.dependency_overrides.pop(get_razorpay_service, None)

    assert response.status_code == 502


def test_verified_payment_registers_as_paid(client, gateway, make_user, make_workshop, spots_left):
    session_date = days_from_today(20)
    workshop = make_workshop(sessions={session_date: 2})
    _, headers = make_user()
    order_id = create_order(client, headers, workshop.id, session_date)

    response = client.post(
        "/workshops/payment/verify",
        json=verify_payload(workshop.id, session_date, order_id),
        headers=headers,
    )

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Payment verified and registration successful"
    payment = body["registration"]["paymentInfo"]
    assert payment["status"] == "paid"
    assert payment["paymentMethod"] == "online"
    assert payment["paymentId"] == "pay_test_1"
    assert payment["razorpayOrderId"] == order_id
    assert spots_left(workshop.id, session_date) == 1


def test_bad_signature_is_rejected_without_registering(client, gateway, make_user, make_workshop, spots_left):
    session_date = days_from_today(20)
    workshop = make_workshop(sessions={session_date: 2})
    _, headers = make_user()
    order_id = create_order(client, headers, workshop.id, session_date)
    forged = compute_payment_signature(order_id, "pay_test_1", "not-the-secret")

    response = client.post(
        "/workshops/payment/verify",
        json=verify_payload(workshop.id, session_date, order_id, signature=forged),
        headers=headers,
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid payment signature"
    assert spots_left(workshop.id, session_date) == 2
    assert client.get("/workshops/user/registrations", headers=headers).json() == []


def test_signature_for_another_payment_is_rejected(client, gateway, make_user, make_workshop):
    session_date = days_from_today(20)
    workshop = make_workshop(sessions={session_date: 2})
    _, headers = make_user()
    order_id = create_order(client, headers, workshop.id, session_date)
    other = compute_payment_signature(order_id, "pay_other", RAZORPAY_TEST_SECRET)

    response = client.post(
        "/workshops/payment/verify",
        json=verify_payload(workshop.id, session_date, order_id, signature=other),
        headers=headers,
    )

    assert response.status_code == 400


def test_missing_verification_fields_are_rejected(client, make_user, make_workshop):
    session_date = days_from_today(20)
    workshop = make_workshop(sessions={session_date: 2})
    _, headers = make_user()
    payload = registration_payload(workshop.id, session_date)
    payload["razorpay_order_id"] = "order_test_1"

    response = client.post("/workshops/payment/verify", json=payload, headers=headers)

    assert response.status_code == 400
    assert response.json()["detail"] == "Missing payment verification parameters"


def test_verified_payment_for_sold_out_session_is_rejected(client, gateway, make_user, make_workshop, spots_left):
    session_date = days_from_today(20)
    workshop = make_workshop(sessions={session_date: 1})
    _, first_headers = make_user()
    _, second_headers = make_user()

    order_id = create_order(client, second_headers, workshop.id, session_date)
    client.post("/workshops/register", json=registration_payload(workshop.id, session_date), headers=first_headers)
    payload = verify_payload(workshop.id, session_date, order_id)
    payload["participantInfo"] = participant(email="second@example.com")
    response = client.post("/workshops/payment/verify", json=payload, headers=second_headers)

    assert response.status_code == 409
    assert response.json()["detail"] == "No spots available for selected date"
    assert spots_left(workshop.id, session_date) == 0


# ============================================================================
# ONE PAYMENT, ONE REGISTRATION
# ============================================================================


def test_payment_cannot_be_reused_for_another_date(client, gateway, make_user, make_workshop, spots_left):
    first, second = days_from_today(20), days_from_today(27)
    workshop = make_workshop(sessions={first: 5, second: 5})
    _, headers = make_user()
    order_id = create_order(client, headers, workshop.id, first)

    paid = client.post("/workshops/payment/verify", json=verify_payload(workshop.id, first, order_id), headers=headers)
    reused = client.post(
        "/workshops/payment/verify", json=verify_payload(workshop.id, second, order_id), headers=headers
    )

    assert paid.status_code == 201
    assert reused.status_code == 409
    assert reused.json()["detail"] == "This payment has already been used for a registration"
    assert spots_left(workshop.id, first) == 4
    assert spots_left(workshop.id, second) == 5
    assert len(client.get("/workshops/user/registrations", headers=headers).json()) == 1


def test_payment_cannot_be_reused_after_cancelling(client, gateway, make_user, make_workshop, spots_left):
    session_date = days_from_today(20)
    workshop = make_workshop(sessions={session_date: 5})
    _, headers = make_user()
    order_id = create_order(client, headers, workshop.id, session_date)
    payload = verify_payload(workshop.id, session_date, order_id)

    registration_id = client.post("/workshops/payment/verify", json=payload, headers=headers).json()["registration"][
        "id"
    ]
    client.put(f"/workshops/user/registrations/{registration_id}/cancel", headers=headers)
    response = client.post("/workshops/payment/verify", json=payload, headers=headers)

    assert response.status_code == 409
    assert spots_left(workshop.id, session_date) == 5


def test_order_for_another_workshop_is_rejected(client, gateway, make_user, make_workshop, spots_left):
    session_date = days_from_today(20)
    cheap = make_workshop(sessions={session_date: 5}, price="₹100", title="Intro Talk")
    pricey = make_workshop(sessions={session_date: 5}, price="₹9000", title="Pilot Licence Prep")
    _, headers = make_user()
    order_id = create_order(client, headers, cheap.id, session_date)

    response = client.post(
        "/workshops/payment/verify", json=verify_payload(pricey.id, session_date, order_id), headers=headers
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Payment order does not match this registration"
    assert spots_left(pricey.id, session_date) == 5


def test_order_for_another_date_is_rejected(client, gateway, make_user, make_workshop):
    first, second = days_from_today(20), days_from_today(27)
    workshop = make_workshop(sessions={first: 5, second: 5})
    _, headers = make_user()
    order_id = create_order(client, headers, workshop.id, first)

    response = client.post(
        "/workshops/payment/verify", json=verify_payload(workshop.id, second, order_id), headers=headers
    )

    assert response.status_code == 400


def test_order_created_by_another_user_is_rejected(client, gateway, make_user, make_workshop):
    session_date = days_from_today(20)
    workshop = make_workshop(sessions={session_date: 5})
    _, payer_headers = make_user()
    _, other_headers = make_user()
    order_id = create_order(client, payer_headers, workshop.id, session_date)

    response = client.post(
        "/workshops/payment/verify",
        json=verify_payload(workshop.id, session_date, order_id),
        headers=other_headers,
    )

    assert response.status_code == 400


def test_unknown_order_is_reported_as_gateway_failure(client, gateway, make_user, make_workshop, spots_left):
    session_date = days_from_today(20)
    workshop = make_workshop(sessions={session_date: 5})
    _, headers = make_user()

    response = client.post(
        "/workshops/payment/verify",
        json=verify_payload(workshop.id, session_date, "order_never_created"),
        headers=headers,
    )

    assert response.status_code == 502
    assert spots_left(workshop.id, session_date) == 5
