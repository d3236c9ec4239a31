"""
Capa de Infraestructura - Motor de reservas y conciliación de pagos.

Esta capa contiene las implementaciones concretas de los puertos (interfaces).
Incluye adaptadores para bases de datos, proveedores de pago y workers.

Estructura:
- db/: Tablas, repositorios SQL, transacciones y reintentos
- gateways/payments/: Adaptadores de proveedores de pago (Manual, Stripe)
- messaging/: Worker de barrido de expiraciones
- circuit_breaker.py: Protección de llamadas al proveedor de pagos
"""

# Database
from app.infrastructure.db.repositories.availability_repo_sql import AvailabilityRepoSQL
from app.infrastructure.db.repositories.booking_repo_sql import BookingRepoSQL
from app.infrastructure.db.repositories.cancellation_repo_sql import CancellationRepoSQL
from app.infrastructure.db.repositories.hold_repo_sql import HoldRepoSQL
from app.infrastructure.db.repositories.payment_repo_sql import PaymentRepoSQL
from app.infrastructure.db.repositories.payout_repo_sql import PayoutRepoSQL
from app.infrastructure.db.repositories.property_repo_sql import PropertyRepoSQL
from app.infrastructure.db.repositories.statement_repo_sql import StatementRepoSQL
from app.infrastructure.db.transaction_manager import SQLAlchemyTransactionManager

# Gateways
from app.infrastructure.gateways.payments.manual_gateway import ManualPaymentGateway
from app.infrastructure.gateways.payments.stripe_gateway import StripePaymentGateway

# Messaging
from app.infrastructure.messaging.expiry_worker import ExpirySweepWorker

__all__ = [
    # Database - Repositories SQL
    "AvailabilityRepoSQL",
    "BookingRepoSQL",
    "CancellationRepoSQL",
    "HoldRepoSQL",
    "PaymentRepoSQL",
    "PayoutRepoSQL",
    "PropertyRepoSQL",
    "StatementRepoSQL",
    "SQLAlchemyTransactionManager",
    # Gateways
    "ManualPaymentGateway",
    "StripePaymentGateway",
    # Messaging
    "ExpirySweepWorker",
]
