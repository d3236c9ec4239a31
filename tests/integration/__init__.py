"""
Integration tests package.

Tests de integración sobre SQLite que verifican:
- Holds, solapamientos y expiración perezosa
- Ciclo de vida de reservas y concurrencia optimista
- Conciliación de webhooks de pago
- Reembolsos, estados de cuenta y payouts
- Health checks y reintentos ante deadlocks
"""
