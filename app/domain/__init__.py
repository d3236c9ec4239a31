"""
Capa de Dominio - Motor de reservas de alquiler vacacional.

Esta capa contiene la lógica de negocio pura, sin dependencias de frameworks.
Incluye entidades, value objects, servicios puros y excepciones de dominio.

Estructura:
- entities/: Entidades del dominio (Hold, Booking, VendorStatement, etc.)
- value_objects/: Objetos de valor inmutables (DateRange, Money)
- services/: Cotización y política de cancelación
- errors.py: Excepciones específicas del dominio
"""
