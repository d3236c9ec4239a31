from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.types import TypeDecorator

metadata = MetaData()


class UTCDateTime(TypeDecorator):
    """Guarda UTC sin zona y devuelve datetimes timezone-aware."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError(f"naive datetime not allowed: {value!r}")
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value: datetime | None, dialect):
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


properties = Table(
    "properties",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("vendor_id", String(64), nullable=False, index=True),
    Column("name", String(255), nullable=False),
    Column("currency", String(3), nullable=False),
    Column("nightly_rate", Numeric(12, 2), nullable=False),
    Column("cleaning_fee", Numeric(12, 2), nullable=False, default=0),
    Column("service_fee_bps", Integer, nullable=False, default=0),
    Column("tax_bps", Integer, nullable=False, default=0),
    Column("commission_bps", Integer, nullable=False, default=0),
    Column("min_nights", Integer, nullable=False, default=1),
    Column("max_nights", Integer),
    Column("max_guests", Integer, nullable=False, default=1),
    Column("cancellation_policy", JSON, nullable=False),
    # Se incrementa en cada reserva para serializar escritores de la propiedad
    Column("lock_version", Integer, nullable=False, default=0, server_default=text("0")),
)

rate_overrides = Table(
    "rate_overrides",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("property_id", String(36), ForeignKey("properties.id"), nullable=False),
    Column("night", Date, nullable=False),
    Column("adjustment", Numeric(12, 2), nullable=False),
    UniqueConstraint("property_id", "night", name="uq_rate_override_night"),
)

availability_events = Table(
    "availability_events",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("property_id", String(36), ForeignKey("properties.id"), nullable=False),
    Column("kind", String(16), nullable=False),
    Column("start_date", Date, nullable=False),
    Column("end_date", Date, nullable=False),
    Column("ref_id", String(36), nullable=False, index=True),
    Column("expires_at", UTCDateTime),
    Column("released_at", UTCDateTime),
    Column("note", String(255)),
    Column("created_at", UTCDateTime, nullable=False),
    Index("ix_availability_property_range", "property_id", "start_date", "end_date"),
)

holds = Table(
    "holds",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("property_id", String(36), ForeignKey("properties.id"), nullable=False),
    Column("customer_id", String(64), nullable=False),
    Column("check_in", Date, nullable=False),
    Column("check_out", Date, nullable=False),
    Column("guests", Integer, nullable=False),
    Column("status", String(16), nullable=False),
    Column("expires_at", UTCDateTime, nullable=False),
    Column("booking_id", String(36)),
    Column("created_at", UTCDateTime, nullable=False),
    Column("updated_at", UTCDateTime, nullable=False),
    Index("ix_holds_status_expires", "status", "expires_at"),
)

bookings = Table(
    "bookings",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("property_id", String(36), ForeignKey("properties.id"), nullable=False),
    Column("vendor_id", String(64), nullable=False, index=True),
    Column("customer_id", String(64), nullable=False),
    Column("hold_id", String(36), ForeignKey("holds.id"), nullable=False, unique=True),
    Column("check_in", Date, nullable=False),
    Column("check_out", Date, nullable=False),
    Column("guests", Integer, nullable=False),
    Column("currency", String(3), nullable=False),
    Column("base_amount", Numeric(12, 2), nullable=False),
    Column("cleaning_fee", Numeric(12, 2), nullable=False),
    Column("service_fee", Numeric(12, 2), nullable=False),
    Column("taxes", Numeric(12, 2), nullable=False),
    Column("total_amount", Numeric(12, 2), nullable=False),
    Column("status", String(32), nullable=False),
    Column("expires_at", UTCDateTime, nullable=False),
    Column("version", Integer, nullable=False, default=0),
    Column("confirmed_event_id", String(255)),
    Column("confirmed_at", UTCDateTime),
    Column("cancelled_at", UTCDateTime),
    Column("expired_at", UTCDateTime),
    Column("created_at", UTCDateTime, nullable=False),
    Column("updated_at", UTCDateTime, nullable=False),
    Index("ix_bookings_status_expires", "status", "expires_at"),
)

payment_records = Table(
    "payment_records",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("booking_id", String(36), ForeignKey("bookings.id"), nullable=False, unique=True),
    Column("provider", String(16), nullable=False),
    Column("provider_ref", String(255), unique=True),
    Column("redirect_url", Text),
    Column("session_attempt", Integer, nullable=False, default=1, server_default=text("1")),
    Column("status", String(32), nullable=False),
    Column("amount", Numeric(12, 2), nullable=False),
    Column("currency", String(3), nullable=False),
    Column("captured_at", UTCDateTime),
    Column("created_at", UTCDateTime, nullable=False),
    Column("updated_at", UTCDateTime, nullable=False),
)

payment_events = Table(
    "payment_events",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("payment_id", String(36), ForeignKey("payment_records.id"), nullable=False),
    Column("provider_event_id", String(255), nullable=False),
    Column("event_type", String(32), nullable=False),
    Column("amount", Numeric(12, 2)),
    Column("currency", String(3)),
    Column("payload", JSON),
    Column("received_at", UTCDateTime, nullable=False),
    UniqueConstraint("payment_id", "provider_event_id", name="uq_payment_event_idempotency"),
)

cancellation_records = Table(
    "cancellation_records",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("booking_id", String(36), ForeignKey("bookings.id"), nullable=False, unique=True),
    Column("actor", String(32), nullable=False),
    Column("mode", String(8), nullable=False),
    Column("reason", String(500), nullable=False),
    Column("penalty_amount", Numeric(12, 2), nullable=False),
    Column("refundable_amount", Numeric(12, 2), nullable=False),
    Column("amount_paid", Numeric(12, 2), nullable=False),
    Column("currency", String(3), nullable=False),
    Column("notes", Text),
    Column("policy_snapshot", JSON, nullable=False),
    Column("cancelled_at", UTCDateTime, nullable=False),
)

refund_records = Table(
    "refund_records",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("booking_id", String(36), ForeignKey("bookings.id"), nullable=False, index=True),
    Column("vendor_id", String(64), nullable=False),
    Column("amount", Numeric(12, 2), nullable=False),
    Column("currency", String(3), nullable=False),
    Column("reason", String(500), nullable=False),
    Column("provider", String(16), nullable=False),
    Column("status", String(16), nullable=False),
    Column("provider_refund_ref", String(255)),
    Column("failure_reason", String(500)),
    Column("created_at", UTCDateTime, nullable=False),
    Column("processed_at", UTCDateTime),
)

vendor_statements = Table(
    "vendor_statements",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("vendor_id", String(64), nullable=False),
    Column("period_start", Date, nullable=False),
    Column("period_end", Date, nullable=False),
    Column("currency", String(3), nullable=False),
    Column("status", String(16), nullable=False),
    Column("gross_amount", Numeric(12, 2), nullable=False),
    Column("commission_amount", Numeric(12, 2), nullable=False),
    Column("refund_amount", Numeric(12, 2), nullable=False),
    Column("net_payable", Numeric(12, 2), nullable=False),
    Column("generated_at", UTCDateTime),
    Column("finalized_at", UTCDateTime),
    Column("paid_at", UTCDateTime),
    Column("voided_at", UTCDateTime),
    Column("void_reason", String(500)),
    # Uno vigente (no VOID) por anfitrión/periodo/moneda
    Index(
        "uq_statement_vendor_period_open",
        "vendor_id",
        "period_start",
        "period_end",
        "currency",
        unique=True,
        sqlite_where=text("status != 'VOID'"),
        postgresql_where=text("status != 'VOID'"),
    ),
)

statement_lines = Table(
    "statement_lines",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("statement_id", String(36), ForeignKey("vendor_statements.id"), nullable=False, index=True),
    Column("kind", String(16), nullable=False),
    Column("ref_id", String(36), nullable=False),
    Column("booking_id", String(36), nullable=False),
    Column("amount", Numeric(12, 2), nullable=False),
    Column("commission", Numeric(12, 2), nullable=False),
    UniqueConstraint("statement_id", "kind", "ref_id", name="uq_statement_line_ref"),
)

payouts = Table(
    "payouts",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("statement_id", String(36), ForeignKey("vendor_statements.id"), nullable=False, unique=True),
    Column("vendor_id", String(64), nullable=False),
    Column("status", String(16), nullable=False),
    Column("amount", Numeric(12, 2), nullable=False),
    Column("currency", String(3), nullable=False),
    Column("provider", String(32), nullable=False),
    Column("provider_ref", String(255)),
    Column("failure_reason", String(500)),
    Column("idempotency_key", String(255)),
    Column("attempts", Integer, nullable=False, default=0),
    Column("created_at", UTCDateTime, nullable=False),
    Column("processing_at", UTCDateTime),
    Column("succeeded_at", UTCDateTime),
    Column("failed_at", UTCDateTime),
    Column("cancelled_at", UTCDateTime),
    Column("updated_at", UTCDateTime, nullable=False),
)
