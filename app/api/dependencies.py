import logging
import secrets
from functools import lru_cache

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db_session
from app.application.interfaces.clock import Clock, SystemClock
from app.application.interfaces.payment_gateway import PaymentGateway
from app.application.interfaces.uuid_generator import RealUUIDGenerator, UUIDGenerator
from app.application.use_cases.availability import AvailabilityService
from app.application.use_cases.booking_state_machine import BookingStateMachine
from app.application.use_cases.hold_manager import HoldManager
from app.application.use_cases.payment_reconciliation import PaymentReconciliationAdapter
from app.application.use_cases.quote import GetQuoteUseCase
from app.application.use_cases.refunds import RefundService
from app.application.use_cases.statement_ledger import PayoutLedger, StatementLedger
from app.config import Settings, get_settings
from app.domain.entities.payment import PaymentProvider
from app.infrastructure.db.repositories.availability_repo_sql import AvailabilityRepoSQL
from app.infrastructure.db.repositories.booking_repo_sql import BookingRepoSQL
from app.infrastructure.db.repositories.cancellation_repo_sql import CancellationRepoSQL
from app.infrastructure.db.repositories.hold_repo_sql import HoldRepoSQL
from app.infrastructure.db.repositories.payment_repo_sql import PaymentRepoSQL
from app.infrastructure.db.repositories.payout_repo_sql import PayoutRepoSQL
from app.infrastructure.db.repositories.property_repo_sql import PropertyRepoSQL
from app.infrastructure.db.repositories.statement_repo_sql import StatementRepoSQL
from app.infrastructure.db.transaction_manager import SQLAlchemyTransactionManager
from app.infrastructure.gateways.payments.manual_gateway import ManualPaymentGateway
from app.infrastructure.gateways.payments.stripe_gateway import StripePaymentGateway

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_clock() -> Clock:
    return SystemClock()


@lru_cache(maxsize=1)
def get_id_generator() -> UUIDGenerator:
    return RealUUIDGenerator()


def get_payment_gateways(
    settings: Settings = Depends(get_settings),
) -> dict[PaymentProvider, PaymentGateway]:
    gateways: dict[PaymentProvider, PaymentGateway] = {
        PaymentProvider.MANUAL: ManualPaymentGateway(
            webhook_secret=settings.manual_webhook_secret,
            public_base_url=settings.public_base_url,
        ),
    }
    if settings.stripe_api_key:
        gateways[PaymentProvider.STRIPE] = StripePaymentGateway(
            api_key=settings.stripe_api_key,
            webhook_secret=settings.stripe_webhook_secret,
            public_base_url=settings.public_base_url,
        )
    return gateways


def build_use_cases(
    session: AsyncSession,
    settings: Settings,
    clock: Clock,
    gateways: dict[PaymentProvider, PaymentGateway],
    id_generator: UUIDGenerator,
) -> dict:
    """Arma los casos de uso sobre una única sesión (una transacción por operación)."""
    property_repo = PropertyRepoSQL(session)
    availability_repo = AvailabilityRepoSQL(session)
    hold_repo = HoldRepoSQL(session)
    booking_repo = BookingRepoSQL(session)
    payment_repo = PaymentRepoSQL(session)
    cancellation_repo = CancellationRepoSQL(session)
    statement_repo = StatementRepoSQL(session)
    payout_repo = PayoutRepoSQL(session)
    tx_manager = SQLAlchemyTransactionManager(session)

    hold_manager = HoldManager(
        property_repo=property_repo,
        availability_repo=availability_repo,
        hold_repo=hold_repo,
        transaction_manager=tx_manager,
        clock=clock,
        id_generator=id_generator,
        hold_ttl_minutes=settings.hold_ttl_minutes,
    )
    bookings = BookingStateMachine(
        property_repo=property_repo,
        booking_repo=booking_repo,
        availability_repo=availability_repo,
        payment_repo=payment_repo,
        cancellation_repo=cancellation_repo,
        hold_manager=hold_manager,
        transaction_manager=tx_manager,
        clock=clock,
        id_generator=id_generator,
        payment_window_minutes=settings.payment_window_minutes,
    )

    return {
        "quote": GetQuoteUseCase(
            property_repo=property_repo,
            transaction_manager=tx_manager,
            clock=clock,
        ),
        "availability": AvailabilityService(
            property_repo=property_repo,
            availability_repo=availability_repo,
            transaction_manager=tx_manager,
            clock=clock,
            id_generator=id_generator,
        ),
        "hold_manager": hold_manager,
        "bookings": bookings,
        "payments": PaymentReconciliationAdapter(
            booking_repo=booking_repo,
            payment_repo=payment_repo,
            booking_state_machine=bookings,
            gateways=gateways,
            transaction_manager=tx_manager,
            clock=clock,
            id_generator=id_generator,
        ),
        "refunds": RefundService(
            booking_repo=booking_repo,
            cancellation_repo=cancellation_repo,
            payment_repo=payment_repo,
            gateways=gateways,
            transaction_manager=tx_manager,
            clock=clock,
            id_generator=id_generator,
        ),
        "statements": StatementLedger(
            booking_repo=booking_repo,
            cancellation_repo=cancellation_repo,
            property_repo=property_repo,
            statement_repo=statement_repo,
            payout_repo=payout_repo,
            transaction_manager=tx_manager,
            clock=clock,
            id_generator=id_generator,
            default_currency=settings.default_currency,
        ),
        "payouts": PayoutLedger(
            statement_repo=statement_repo,
            payout_repo=payout_repo,
            transaction_manager=tx_manager,
            clock=clock,
            id_generator=id_generator,
        ),
    }


def get_use_cases(
    settings: Settings = Depends(get_settings),
    session: AsyncSession = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
    gateways: dict[PaymentProvider, PaymentGateway] = Depends(get_payment_gateways),
    id_generator: UUIDGenerator = Depends(get_id_generator),
) -> dict:
    return build_use_cases(session, settings, clock, gateways, id_generator)


async def run_expiry_sweep(session_maker, settings: Settings, clock: Clock) -> dict:
    """Un ciclo de barrido con sesión propia (worker en segundo plano y endpoint)."""
    async with session_maker() as session:
        use_cases = build_use_cases(
            session,
            settings,
            clock,
            get_payment_gateways(settings),
            get_id_generator(),
        )
        holds = await use_cases["hold_manager"].sweep_expired(settings.sweep_batch_size)
        bookings = await use_cases["bookings"].sweep_expired(settings.sweep_batch_size)
    return {"expired_holds": holds, "expired_bookings": bookings}


def get_customer_id(
    customer_id: str | None = Header(default=None, alias="X-Customer-Id"),
) -> str:
    if not customer_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Customer-Id header is required",
        )
    return customer_id


def require_admin(
    admin_key: str | None = Header(default=None, alias="X-Admin-Key"),
    settings: Settings = Depends(get_settings),
) -> None:
    if not settings.admin_api_key:
        logger.warning("Security: admin route called but ADMIN_API_KEY is not configured")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access disabled")
    if not admin_key or not secrets.compare_digest(admin_key, settings.admin_api_key):
        logger.warning("Security: admin key rejected")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid admin key")
