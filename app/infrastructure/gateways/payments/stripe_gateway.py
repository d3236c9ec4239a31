import logging
from decimal import Decimal

import stripe

from app.application.interfaces.payment_gateway import PaymentGateway
from app.domain.entities.payment import HostedSession, PaymentEventType, PaymentProvider, WebhookEvent
from app.domain.errors import WebhookSignatureInvalidError
from app.domain.value_objects.money import Money
from app.infrastructure.circuit_breaker import CircuitBreakerError, payment_breaker

logger = logging.getLogger(__name__)

_SUCCESS_EVENTS = {
    "checkout.session.completed",
    "checkout.session.async_payment_succeeded",
}
_FAILURE_EVENTS = {
    "checkout.session.async_payment_failed",
    "checkout.session.expired",
}


class StripePaymentGateway(PaymentGateway):
    """Hosted Stripe Checkout; webhooks verified with `stripe.Webhook.construct_event`."""

    provider = PaymentProvider.STRIPE

    def __init__(
        self,
        api_key: str | None,
        webhook_secret: str | None,
        public_base_url: str,
    ) -> None:
        stripe.api_key = api_key
        stripe.max_network_retries = 2
        self._webhook_secret = webhook_secret
        self._public_base_url = public_base_url.rstrip("/")

    async def create_hosted_session(
        self,
        booking_id: str,
        amount: Decimal,
        currency: str,
        idempotency_key: str,
    ) -> HostedSession:
        """
        Create a Checkout Session, protected by Circuit Breaker.

        Raises:
            CircuitBreakerError: When circuit is open (too many recent failures)
            stripe.StripeError: When Stripe API call fails
        """
        try:
            # stripe does not have async client; run sync call (acceptable for now)
            session = payment_breaker.call(
                stripe.checkout.Session.create,
                mode="payment",
                client_reference_id=booking_id,
                metadata={"booking_id": booking_id},
                line_items=[
                    {
                        "quantity": 1,
                        "price_data": {
                            "currency": currency.lower(),
                            "unit_amount": Money(amount, currency).to_cents(),
                            "product_data": {"name": f"Booking {booking_id}"},
                        },
                    }
                ],
                success_url=f"{self._public_base_url}/bookings/{booking_id}?payment=success",
                cancel_url=f"{self._public_base_url}/bookings/{booking_id}?payment=cancelled",
                idempotency_key=idempotency_key,
            )
        except CircuitBreakerError as e:
            logger.error(
                "Payment provider circuit breaker is open - service unavailable",
                extra={"circuit_state": str(e), "booking_id": booking_id}
            )
            raise
        except stripe.StripeError as e:
            logger.error(
                "Stripe API error creating checkout session",
                exc_info=e,
                extra={"booking_id": booking_id}
            )
            raise
        return HostedSession(provider_ref=session.id, redirect_url=session.url)

    def parse_webhook(self, payload: bytes, signature: str | None) -> WebhookEvent:
        if not self._webhook_secret:
            raise WebhookSignatureInvalidError("webhook secret not configured")
        if not signature:
            raise WebhookSignatureInvalidError("missing Stripe-Signature header")
        try:
            event = stripe.Webhook.construct_event(
                payload=payload.decode(),
                sig_header=signature,
                secret=self._webhook_secret,
            )
        except stripe.SignatureVerificationError as exc:
            raise WebhookSignatureInvalidError("invalid Stripe signature") from exc
        except ValueError as exc:
            raise WebhookSignatureInvalidError("malformed webhook payload") from exc

        event_dict = event.to_dict() if hasattr(event, "to_dict") else dict(event)
        data_obj = (event_dict.get("data") or {}).get("object") or {}
        event_type = event_dict.get("type", "")
        if event_type in _SUCCESS_EVENTS and data_obj.get("payment_status") == "paid":
            normalized = PaymentEventType.PAYMENT_SUCCEEDED
        elif event_type in _FAILURE_EVENTS:
            normalized = PaymentEventType.PAYMENT_FAILED
        else:
            normalized = PaymentEventType.OTHER

        metadata = data_obj.get("metadata") or {}
        currency = data_obj.get("currency")
        return WebhookEvent(
            event_id=event_dict["id"],
            event_type=normalized,
            provider_ref=data_obj.get("id"),
            booking_id=metadata.get("booking_id") or data_obj.get("client_reference_id"),
            amount_minor=data_obj.get("amount_total"),
            currency=currency.upper() if currency else None,
            raw=event_dict,
        )

    async def create_refund(
        self,
        provider_ref: str,
        amount: Decimal,
        currency: str,
        idempotency_key: str,
    ) -> str:
        try:
            session = payment_breaker.call(stripe.checkout.Session.retrieve, provider_ref)
            refund = payment_breaker.call(
                stripe.Refund.create,
                payment_intent=session.payment_intent,
                amount=Money(amount, currency).to_cents(),
                idempotency_key=idempotency_key,
            )
        except CircuitBreakerError as e:
            logger.error(
                "Payment provider circuit breaker is open - refund deferred",
                extra={"circuit_state": str(e), "provider_ref": provider_ref}
            )
            raise
        except stripe.StripeError as e:
            logger.error(
                "Stripe API error creating refund",
                exc_info=e,
                extra={"provider_ref": provider_ref}
            )
            raise
        return refund.id
