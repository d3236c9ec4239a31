import hashlib
import hmac
import json
from decimal import Decimal

from app.application.interfaces.payment_gateway import PaymentGateway
from app.domain.entities.payment import HostedSession, PaymentEventType, PaymentProvider, WebhookEvent
from app.domain.errors import ValidationError, WebhookSignatureInvalidError

_EVENT_TYPES = {
    "payment.succeeded": PaymentEventType.PAYMENT_SUCCEEDED,
    "payment.failed": PaymentEventType.PAYMENT_FAILED,
}


def sign_payload(payload: bytes, secret: str) -> str:
    """Firma HMAC-SHA256 (hex) del cuerpo crudo."""
    return hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()


class ManualPaymentGateway(PaymentGateway):
    """
    Proveedor MANUAL para desarrollo y pruebas.

    Emite una URL de pago local y acepta webhooks firmados con HMAC-SHA256
    sobre el cuerpo crudo (header X-Webhook-Signature).
    """

    provider = PaymentProvider.MANUAL

    def __init__(self, webhook_secret: str, public_base_url: str) -> None:
        self._webhook_secret = webhook_secret
        self._public_base_url = public_base_url.rstrip("/")

    async def create_hosted_session(
        self,
        booking_id: str,
        amount: Decimal,
        currency: str,
        idempotency_key: str,
    ) -> HostedSession:
        provider_ref = f"manual_{booking_id}"
        return HostedSession(
            provider_ref=provider_ref,
            redirect_url=f"{self._public_base_url}/pay/manual/{provider_ref}",
        )

    def parse_webhook(self, payload: bytes, signature: str | None) -> WebhookEvent:
        if not signature:
            raise WebhookSignatureInvalidError("missing X-Webhook-Signature header")
        expected = sign_payload(payload, self._webhook_secret)
        if not hmac.compare_digest(expected, signature):
            raise WebhookSignatureInvalidError("invalid HMAC signature")
        # Un JSON firmado pero con forma inesperada es un error del emisor, no un 500.
        try:
            event = json.loads(payload.decode())
            data = event.get("data") or {}
            currency = data.get("currency")
            return WebhookEvent(
                event_id=event["id"],
                event_type=_EVENT_TYPES.get(event.get("type"), PaymentEventType.OTHER),
                provider_ref=data.get("provider_ref"),
                booking_id=data.get("booking_id"),
                amount_minor=data.get("amount"),
                currency=currency.upper() if currency else None,
                raw=event,
            )
        except (ValueError, KeyError, AttributeError, TypeError) as exc:
            raise ValidationError("malformed webhook payload", field="payload") from exc

    async def create_refund(
        self,
        provider_ref: str,
        amount: Decimal,
        currency: str,
        idempotency_key: str,
    ) -> str:
        return f"manual_refund_{idempotency_key}"
