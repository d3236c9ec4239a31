"""
Circuit Breaker configuration for payment provider calls.

Outbound calls to the payment processor (hosted sessions, refunds) are
wrapped so that an unhealthy provider fails fast instead of tying up request
workers. Webhook verification is local and never goes through the breaker.

Circuit Breaker Pattern:
- CLOSED: Normal operation, requests pass through
- OPEN: Too many failures, requests fail immediately
- HALF_OPEN: Testing if service recovered, limited requests allowed
"""

import logging

from pybreaker import CircuitBreaker, CircuitBreakerError, CircuitBreakerListener

logger = logging.getLogger(__name__)


class StateChangeLogger(CircuitBreakerListener):
    """Logs circuit breaker state changes for monitoring and alerting."""

    def __init__(self, name: str):
        self.name = name

    def state_change(self, cb, old_state, new_state):
        logger.warning(
            "Circuit breaker state changed",
            extra={
                "breaker_name": self.name,
                "old_state": old_state.name if old_state else None,
                "new_state": new_state.name,
            }
        )


payment_breaker = CircuitBreaker(
    fail_max=5,  # Open circuit after 5 consecutive failures
    reset_timeout=60,  # Wait 60 seconds before attempting recovery
    name="payment_provider_circuit_breaker",
    listeners=[StateChangeLogger("payment_provider")],
)


__all__ = [
    "payment_breaker",
    "CircuitBreakerError",
]
