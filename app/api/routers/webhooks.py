from typing import Annotated

from fastapi import APIRouter, Depends, Request, status

from app.api.dependencies import get_use_cases
from app.api.schemas.reservations import WebhookAckResponse
from app.config import Settings, get_settings
from app.domain.entities.payment import PaymentProvider
from app.infrastructure.db.retry import retry_on_conflict

router = APIRouter()


@router.post("/webhooks/payment", response_model=WebhookAckResponse, status_code=status.HTTP_200_OK)
async def payment_webhook(
    request: Request,
    use_cases: Annotated[dict, Depends(get_use_cases)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> WebhookAckResponse:
    """
    Receive a signed payment event.

    The raw body is verified before parsing. A `Stripe-Signature` header routes
    the event to the Stripe gateway, otherwise `X-Webhook-Signature` is checked
    by the manual gateway.
    """
    raw_body = await request.body()
    stripe_signature = request.headers.get("Stripe-Signature")
    if stripe_signature is not None:
        provider, signature = PaymentProvider.STRIPE, stripe_signature
    else:
        provider, signature = PaymentProvider.MANUAL, request.headers.get("X-Webhook-Signature")

    async def execute_webhook():
        return await use_cases["payments"].handle_webhook(raw_body, signature, provider=provider)

    outcome = await retry_on_conflict(execute_webhook, max_attempts=settings.concurrency_retry_attempts)
    return WebhookAckResponse(status=outcome.status, event_id=outcome.event_id)
