"""
Capa de Aplicación - Motor de reservas y conciliación de pagos.

Esta capa contiene los casos de uso e interfaces (puertos).
Orquesta la lógica de negocio y define los contratos con la infraestructura.

Estructura:
- use_cases/: Hold Manager, Booking State Machine, pagos, cancelaciones, ledger
- interfaces/: Puertos (contratos para adaptadores)
"""
