"""Excepciones de dominio para el motor de reservas y conciliación de pagos."""

from datetime import date


class DomainError(Exception):
    """Clase base para todos los errores de dominio."""

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(self.message)


class ValidationError(DomainError):
    """Error de validación de datos de entrada."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message=message, code="VALIDATION_ERROR")
        self.field = field


class NotFoundError(DomainError):
    """El recurso solicitado no existe."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            message=f"{resource} no encontrado: {identifier}",
            code=f"{resource.upper()}_NOT_FOUND",
        )
        self.resource = resource
        self.identifier = identifier


class PropertyNotFoundError(NotFoundError):
    def __init__(self, property_id: str):
        super().__init__("Property", property_id)


class HoldNotFoundError(NotFoundError):
    def __init__(self, hold_id: str):
        super().__init__("Hold", hold_id)


class BookingNotFoundError(NotFoundError):
    def __init__(self, booking_id: str):
        super().__init__("Booking", booking_id)


class PaymentNotFoundError(NotFoundError):
    def __init__(self, identifier: str):
        super().__init__("Payment", identifier)


class RefundNotFoundError(NotFoundError):
    def __init__(self, refund_id: str):
        super().__init__("Refund", refund_id)


class StatementNotFoundError(NotFoundError):
    def __init__(self, statement_id: str):
        super().__init__("Statement", statement_id)


class PayoutNotFoundError(NotFoundError):
    def __init__(self, payout_id: str):
        super().__init__("Payout", payout_id)


class AvailabilityEventNotFoundError(NotFoundError):
    def __init__(self, event_id: str):
        super().__init__("AvailabilityEvent", event_id)


class NotOwnerError(DomainError):
    """El recurso pertenece a otro cliente."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            message=f"{resource} {identifier} no pertenece al solicitante",
            code="NOT_OWNER",
        )
        self.resource = resource
        self.identifier = identifier


# === Inventario ===


class HoldConflictError(DomainError):
    """El rango solicitado se solapa con un hold, reserva o bloqueo activo."""

    def __init__(self, property_id: str, conflicts: list[tuple[str, date, date]]):
        ranges = ", ".join(f"{kind} {start.isoformat()}..{end.isoformat()}" for kind, start, end in conflicts)
        super().__init__(
            message=f"Fechas no disponibles para la propiedad {property_id}: {ranges}",
            code="HOLD_CONFLICT",
        )
        self.property_id = property_id
        self.conflicts = conflicts


class HoldExpiredError(DomainError):
    """El hold expiró antes de convertirse en reserva."""

    def __init__(self, hold_id: str):
        super().__init__(message=f"El hold {hold_id} expiró", code="HOLD_EXPIRED")
        self.hold_id = hold_id


# === Máquinas de estado ===


class InvalidTransitionError(DomainError):
    """Transición de estado no permitida."""

    def __init__(self, entity: str, entity_id: str, current_status: str, target_status: str):
        super().__init__(
            message=f"{entity} {entity_id}: transición no permitida {current_status} -> {target_status}",
            code="INVALID_TRANSITION",
        )
        self.entity = entity
        self.entity_id = entity_id
        self.current_status = current_status
        self.target_status = target_status


class ConcurrentModificationError(DomainError):
    """Conflicto de concurrencia optimista sobre una reserva."""

    def __init__(self, booking_id: str, expected_version: int):
        super().__init__(
            message=f"Conflicto de concurrencia en reserva {booking_id}: versión esperada {expected_version}",
            code="CONCURRENT_MODIFICATION",
        )
        self.booking_id = booking_id
        self.expected_version = expected_version


class CancellationNotAllowedError(DomainError):
    """La política no permite cancelar la reserva en este momento."""

    def __init__(self, booking_id: str, reason: str):
        super().__init__(
            message=f"No se puede cancelar la reserva {booking_id}: {reason}",
            code="CANCELLATION_NOT_ALLOWED",
        )
        self.booking_id = booking_id


# === Pagos ===


class WebhookSignatureInvalidError(DomainError):
    """Firma del webhook inválida o ausente."""

    def __init__(self, reason: str = "firma inválida"):
        super().__init__(message=f"Webhook rechazado: {reason}", code="WEBHOOK_SIGNATURE_INVALID")


class PaymentMismatchError(DomainError):
    """El pago no corresponde a la reserva (referencia, monto o moneda)."""

    def __init__(self, booking_id: str, reason: str):
        super().__init__(
            message=f"Pago inconsistente para la reserva {booking_id}: {reason}",
            code="PAYMENT_MISMATCH",
        )
        self.booking_id = booking_id


class RefundNotAllowedError(DomainError):
    """No hay monto reembolsable o el pago no fue capturado."""

    def __init__(self, booking_id: str, reason: str):
        super().__init__(
            message=f"No se puede reembolsar la reserva {booking_id}: {reason}",
            code="REFUND_NOT_ALLOWED",
        )
        self.booking_id = booking_id


# === Estados de cuenta y payouts ===


class StatementAlreadyFinalizedError(DomainError):
    """El estado de cuenta ya no está en borrador."""

    def __init__(self, statement_id: str, status: str):
        super().__init__(
            message=f"El estado de cuenta {statement_id} ya está {status}",
            code="STATEMENT_ALREADY_FINALIZED",
        )
        self.statement_id = statement_id
        self.status = status


class StatementTransitionDeniedError(DomainError):
    """Transición de estado de cuenta no permitida."""

    def __init__(self, statement_id: str, reason: str):
        super().__init__(
            message=f"Estado de cuenta {statement_id}: {reason}",
            code="STATEMENT_TRANSITION_DENIED",
        )
        self.statement_id = statement_id


class PayoutTransitionDeniedError(DomainError):
    """Transición de payout no permitida."""

    def __init__(self, reason: str, payout_id: str | None = None):
        subject = f"Payout {payout_id}" if payout_id else "Payout"
        super().__init__(
            message=f"{subject}: {reason}",
            code="PAYOUT_TRANSITION_DENIED",
        )
        self.payout_id = payout_id
