"""Interfaces (Puertos) de la capa de aplicación."""

from app.application.interfaces.availability_repo import AvailabilityRepo
from app.application.interfaces.booking_repo import BookingRepo
from app.application.interfaces.cancellation_repo import CancellationRepo
from app.application.interfaces.clock import Clock, FakeClock, SystemClock
from app.application.interfaces.hold_repo import HoldRepo
from app.application.interfaces.payment_gateway import PaymentGateway
from app.application.interfaces.payment_repo import PaymentRepo
from app.application.interfaces.payout_repo import PayoutRepo
from app.application.interfaces.property_repo import PropertyRepo
from app.application.interfaces.statement_repo import StatementRepo
from app.application.interfaces.transaction_manager import TransactionManager
from app.application.interfaces.uuid_generator import (
    FakeUUIDGenerator,
    RealUUIDGenerator,
    UUIDGenerator,
)

__all__ = [
    # Repositories
    "AvailabilityRepo",
    "BookingRepo",
    "CancellationRepo",
    "HoldRepo",
    "PaymentRepo",
    "PayoutRepo",
    "PropertyRepo",
    "StatementRepo",
    # Gateways
    "PaymentGateway",
    # Infrastructure
    "TransactionManager",
    # Utilities
    "Clock",
    "SystemClock",
    "FakeClock",
    "UUIDGenerator",
    "RealUUIDGenerator",
    "FakeUUIDGenerator",
]
