from decimal import Decimal

from app.domain.entities.payment import HostedSession, PaymentProvider, WebhookEvent


class PaymentGateway:
    """Puerto hacia el procesador de pagos (actor externo firmado)."""

    provider: PaymentProvider

    async def create_hosted_session(
        self,
        booking_id: str,
        amount: Decimal,
        currency: str,
        idempotency_key: str,
    ) -> HostedSession:
        raise NotImplementedError

    def parse_webhook(self, payload: bytes, signature: str | None) -> WebhookEvent:
        """
        Verifica la firma y normaliza el evento.

        Raises:
            WebhookSignatureInvalidError: Firma ausente o incorrecta.
        """
        raise NotImplementedError

    async def create_refund(
        self,
        provider_ref: str,
        amount: Decimal,
        currency: str,
        idempotency_key: str,
    ) -> str:
        raise NotImplementedError
