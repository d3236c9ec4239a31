"""
Tests end-to-end de la API HTTP.

Recorren el flujo completo quote -> reserve -> booking -> pago -> cancelación
-> reembolso -> estado de cuenta -> payout a través del cliente async, más
los códigos de error que expone la capa HTTP.
"""

import pytest
from sqlalchemy.exc import OperationalError

from app.api.routers import worker as worker_router
from factories import TEST_WEBHOOK_SECRET, manual_webhook

pytestmark = [pytest.mark.asyncio, pytest.mark.integration]

API = "/api/v1"
CUSTOMER = {"X-Customer-Id": "C1"}
STAY_JSON = {"property_id": "P1", "check_in": "2025-06-10", "check_out": "2025-06-13", "guests": 2}


async def _reserve(client, headers=CUSTOMER, stay=STAY_JSON):
    response = await client.post(f"{API}/reserve", json=stay, headers=headers)
    assert response.status_code == 200
    return response.json()


async def _book(client):
    reserved = await _reserve(client)
    response = await client.post(f"{API}/bookings", json={"hold_id": reserved["hold"]["id"]}, headers=CUSTOMER)
    assert response.status_code == 201
    return response.json()


async def _pay(client, booking_id, event_id="evt_api_1"):
    response = await client.post(f"{API}/bookings/{booking_id}/authorize-payment", json={}, headers=CUSTOMER)
    assert response.status_code == 200
    body, signature = manual_webhook(event_id, booking_id)
    return await client.post(
        f"{API}/webhooks/payment", content=body, headers={"X-Webhook-Signature": signature}
    )


class TestQuoteAndReserve:
    async def test_quote(self, client, seeded_property):
        response = await client.post(f"{API}/quote", json=STAY_JSON)

        assert response.status_code == 200
        data = response.json()
        assert data["nights"] == 3
        assert data["total"] == "395.00"
        assert data["currency"] == "USD"

    async def test_quote_invalid_range(self, client, seeded_property):
        response = await client.post(f"{API}/quote", json={**STAY_JSON, "check_out": "2025-06-10"})

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    async def test_quote_unknown_property(self, client, seeded_property):
        response = await client.post(f"{API}/quote", json={**STAY_JSON, "property_id": "P404"})

        assert response.status_code == 404
        assert response.json()["code"] == "PROPERTY_NOT_FOUND"

    async def test_reserve_requires_customer(self, client, seeded_property):
        response = await client.post(f"{API}/reserve", json=STAY_JSON)

        assert response.status_code == 401

    async def test_overlapping_reserve_reports_conflict(self, client, seeded_property):
        """Scenario A a través de HTTP."""
        first = await _reserve(client)
        second = await _reserve(
            client,
            headers={"X-Customer-Id": "C2"},
            stay={**STAY_JSON, "check_in": "2025-06-12", "check_out": "2025-06-15"},
        )

        assert first["can_reserve"] is True
        assert first["hold"]["status"] == "ACTIVE"
        assert second["can_reserve"] is False
        assert second["hold"] is None
        assert second["reasons"] == ["HOLD 2025-06-10..2025-06-13"]

    async def test_hold_is_private_to_its_customer(self, client, seeded_property):
        reserved = await _reserve(client)

        response = await client.get(f"{API}/holds/{reserved['hold']['id']}", headers={"X-Customer-Id": "C2"})

        assert response.status_code == 403
        assert response.json()["code"] == "NOT_OWNER"

    async def test_release_hold_frees_calendar(self, client, seeded_property):
        reserved = await _reserve(client)

        released = await client.delete(f"{API}/holds/{reserved['hold']['id']}", headers=CUSTOMER)
        calendar = await client.get(
            f"{API}/properties/P1/calendar", params={"from": "2025-06-01", "to": "2025-07-01"}
        )

        assert released.json()["status"] == "RELEASED"
        assert calendar.json()["events"] == []


class TestBookingAndPayment:
    async def test_full_payment_flow(self, client, seeded_property):
        booking = await _book(client)
        assert booking["status"] == "PENDING_PAYMENT"
        assert booking["total_amount"] == "395.00"

        webhook = await _pay(client, booking["id"])
        assert webhook.status_code == 200
        assert webhook.json() == {"status": "confirmed", "event_id": "evt_api_1"}

        read = await client.get(f"{API}/bookings/{booking['id']}", headers=CUSTOMER)
        assert read.json()["status"] == "CONFIRMED"

        calendar = await client.get(
            f"{API}/properties/P1/calendar", params={"from": "2025-06-01", "to": "2025-07-01"}
        )
        [event] = calendar.json()["events"]
        assert event["kind"] == "BOOKING"
        assert event["ref_id"] == booking["id"]

    async def test_duplicate_webhook_acknowledged(self, client, seeded_property):
        booking = await _book(client)
        await _pay(client, booking["id"])

        body, signature = manual_webhook("evt_api_1", booking["id"])
        again = await client.post(
            f"{API}/webhooks/payment", content=body, headers={"X-Webhook-Signature": signature}
        )

        assert again.status_code == 200
        assert again.json()["status"] == "duplicate"

    async def test_webhook_bad_signature(self, client, seeded_property):
        booking = await _book(client)
        body, _ = manual_webhook("evt_forged", booking["id"], secret=TEST_WEBHOOK_SECRET + "x")

        response = await client.post(
            f"{API}/webhooks/payment", content=body, headers={"X-Webhook-Signature": "forged"}
        )

        assert response.status_code == 401
        assert response.json()["code"] == "WEBHOOK_SIGNATURE_INVALID"

    async def test_expired_hold_cannot_be_booked(self, client, seeded_property, clock):
        reserved = await _reserve(client)
        clock.advance(minutes=20)

        response = await client.post(f"{API}/bookings", json={"hold_id": reserved["hold"]["id"]}, headers=CUSTOMER)

        assert response.status_code == 409
        assert response.json()["code"] == "HOLD_EXPIRED"

    async def test_unknown_booking(self, client, seeded_property):
        response = await client.get(f"{API}/bookings/nope", headers=CUSTOMER)

        assert response.status_code == 404
        assert response.json()["code"] == "BOOKING_NOT_FOUND"


class TestCancellationFlow:
    async def test_customer_cancel_then_admin_refund(self, client, seeded_property, admin_headers):
        booking = await _book(client)
        await _pay(client, booking["id"])

        cancelled = await client.post(
            f"{API}/bookings/{booking['id']}/cancel", json={"reason": "cambio de planes"}, headers=CUSTOMER
        )
        assert cancelled.status_code == 200
        data = cancelled.json()
        assert data["status"] == "CANCELLED"
        assert data["tier"] == "FREE"
        assert data["refundable_amount"] == "395.00"

        refund = await client.post(
            f"{API}/admin/bookings/{booking['id']}/refunds", json={"reason": "gratis"}, headers=admin_headers
        )
        assert refund.status_code == 201
        processed = await client.post(f"{API}/admin/refunds/{refund.json()['id']}/process", headers=admin_headers)
        assert processed.json()["status"] == "SUCCEEDED"

    async def test_force_cancel_waives_penalty_by_default(self, client, seeded_property, admin_headers, clock):
        booking = await _book(client)
        await _pay(client, booking["id"])
        clock.advance(days=39, hours=10)  # 2025-06-09 22:00, dos horas antes del check-in

        response = await client.post(
            f"{API}/admin/bookings/{booking['id']}/force-cancel",
            json={"reason": "inundación", "notes": "ticket 481"},
            headers=admin_headers,
        )

        data = response.json()
        assert response.status_code == 200
        assert data["actor"] == "ADMIN_OVERRIDE"
        assert data["mode"] == "HARD"
        assert data["penalty_amount"] == "0.00"

    async def test_force_cancel_twice_reports_already_cancelled(self, client, seeded_property, admin_headers):
        booking = await _book(client)
        url = f"{API}/admin/bookings/{booking['id']}/force-cancel"

        await client.post(url, json={"reason": "fraude"}, headers=admin_headers)
        again = await client.post(url, json={"reason": "fraude"}, headers=admin_headers)

        assert again.status_code == 200
        assert again.json()["already_cancelled"] is True

    async def test_admin_routes_require_key(self, client, seeded_property):
        booking = await _book(client)

        missing = await client.post(f"{API}/admin/bookings/{booking['id']}/force-cancel", json={})
        wrong = await client.post(
            f"{API}/admin/bookings/{booking['id']}/force-cancel", json={}, headers={"X-Admin-Key": "nope"}
        )

        assert missing.status_code == 403
        assert wrong.status_code == 403


class TestLedgerFlow:
    async def test_statement_to_paid_payout(self, client, seeded_property, admin_headers):
        booking = await _book(client)
        await _pay(client, booking["id"])

        generated = await client.post(
            f"{API}/admin/statements/generate", json={"period": "2025-06"}, headers=admin_headers
        )
        [statement] = generated.json()["statements"]
        assert statement["net_payable"] == "297.50"

        finalized = await client.post(f"{API}/admin/statements/{statement['id']}/finalize", headers=admin_headers)
        assert finalized.json()["status"] == "FINALIZED"

        payout = await client.post(
            f"{API}/admin/payouts", json={"statement_id": statement["id"]}, headers=admin_headers
        )
        assert payout.status_code == 201
        payout_id = payout.json()["id"]

        void = await client.post(
            f"{API}/admin/statements/{statement['id']}/void", json={"reason": "error"}, headers=admin_headers
        )
        assert void.status_code == 409
        assert void.json()["code"] == "STATEMENT_TRANSITION_DENIED"

        await client.post(f"{API}/admin/payouts/{payout_id}/mark-processing", headers=admin_headers)
        paid = await client.post(
            f"{API}/admin/payouts/{payout_id}/mark-succeeded",
            json={"idempotency_key": "bank-tx-1"},
            headers=admin_headers,
        )
        assert paid.json()["status"] == "SUCCEEDED"

        read = await client.get(f"{API}/admin/statements/{statement['id']}", headers=admin_headers)
        assert read.json()["status"] == "PAID"

    async def test_invalid_period_rejected(self, client, admin_headers):
        response = await client.post(
            f"{API}/admin/statements/generate", json={"period": "junio"}, headers=admin_headers
        )

        assert response.status_code == 422


class TestSweepWorker:
    async def test_sweep_endpoint_reclaims_expired_inventory(self, client, seeded_property, clock):
        await _book(client)
        await _reserve(client, stay={**STAY_JSON, "check_in": "2025-06-20", "check_out": "2025-06-22"})
        clock.advance(minutes=31)

        response = await client.post(f"{API}/workers/sweep-expired")

        assert response.status_code == 200
        assert response.json() == {"expired_holds": 1, "expired_bookings": 1}
        calendar = await client.get(
            f"{API}/properties/P1/calendar", params={"from": "2025-06-01", "to": "2025-07-01"}
        )
        assert calendar.json()["events"] == []

    async def test_sweep_endpoint_retries_locked_database(self, client, seeded_property, clock, monkeypatch):
        await _reserve(client)
        clock.advance(minutes=16)
        calls = []
        real_sweep = worker_router.run_expiry_sweep

        async def locked_once(session_maker, settings, sweep_clock):
            calls.append(sweep_clock)
            if len(calls) == 1:
                raise OperationalError("UPDATE holds", {}, Exception("database is locked"))
            return await real_sweep(session_maker, settings, sweep_clock)

        monkeypatch.setattr(worker_router, "run_expiry_sweep", locked_once)
        response = await client.post(f"{API}/workers/sweep-expired")

        assert response.status_code == 200
        assert response.json() == {"expired_holds": 1, "expired_bookings": 0}
        assert calls == [clock, clock]
