"""
Pytest configuration and shared fixtures.

Este módulo provee fixtures reutilizables para:
- Base de datos SQLite por test (archivo temporal, tablas creadas con metadata)
- Reloj fijo y generador de ids determinista
- Propiedad de prueba con política de cancelación
- Casos de uso armados sobre la misma sesión que usa la API
- Cliente HTTP async contra la app FastAPI con overrides de dependencias
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.api.dependencies import build_use_cases, get_clock, get_id_generator, get_payment_gateways
from app.api.deps import get_db_session, get_session_maker
from app.application.interfaces.clock import FakeClock
from app.application.interfaces.uuid_generator import FakeUUIDGenerator
from app.config import Settings, get_settings
from app.domain.entities.payment import PaymentProvider
from app.domain.entities.property import Property
from app.infrastructure.db.repositories.property_repo_sql import PropertyRepoSQL
from app.infrastructure.db.tables import metadata
from app.infrastructure.gateways.payments.manual_gateway import ManualPaymentGateway
from app.main import app
from factories import NOW, TEST_ADMIN_KEY, TEST_WEBHOOK_SECRET, make_property


# ============================================================================
# CONFIGURACIÓN
# ============================================================================

@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        manual_webhook_secret=TEST_WEBHOOK_SECRET,
        admin_api_key=TEST_ADMIN_KEY,
        hold_ttl_minutes=15,
        payment_window_minutes=30,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(NOW)


@pytest.fixture
def id_generator() -> FakeUUIDGenerator:
    return FakeUUIDGenerator()


@pytest.fixture
def gateways(settings: Settings) -> dict:
    return {
        PaymentProvider.MANUAL: ManualPaymentGateway(
            webhook_secret=settings.manual_webhook_secret,
            public_base_url=settings.public_base_url,
        )
    }


# ============================================================================
# FIXTURES DE BASE DE DATOS
# ============================================================================

@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """
    Engine SQLite en archivo temporal.

    Un archivo (y no :memory:) permite abrir varias sesiones sobre los mismos
    datos, necesario para los tests de concurrencia.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


# ============================================================================
# FIXTURES DE DATOS DE PRUEBA
# ============================================================================

@pytest_asyncio.fixture
async def seeded_property(db_session: AsyncSession) -> Property:
    prop = make_property()
    async with db_session.begin():
        await PropertyRepoSQL(db_session).add(prop)
    return prop


@pytest.fixture
def use_cases(db_session, settings, clock, gateways, id_generator) -> dict:
    return build_use_cases(db_session, settings, clock, gateways, id_generator)


# ============================================================================
# FIXTURES DE CLIENTE HTTP
# ============================================================================

@pytest_asyncio.fixture
async def client(session_maker, settings, clock, gateways, id_generator) -> AsyncGenerator[AsyncClient, None]:
    """
    Cliente HTTP async con override de sesión, settings, reloj y gateways.
    Cada request abre su propia sesión sobre el engine de test.
    """
    async def override_get_db_session():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_get_db_session
    app.dependency_overrides[get_session_maker] = lambda: session_maker
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_id_generator] = lambda: id_generator
    app.dependency_overrides[get_payment_gateways] = lambda: gateways

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client

    # Limpiar overrides
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers() -> dict:
    return {"X-Admin-Key": TEST_ADMIN_KEY}


# ============================================================================
# MARKERS DE PYTEST
# ============================================================================

def pytest_configure(config):
    """
    Configurar markers personalizados de pytest.
    """
    config.addinivalue_line(
        "markers",
        "integration: Tests que recorren la API completa sobre SQLite"
    )
    config.addinivalue_line(
        "markers",
        "deadlock: Tests de reintento ante deadlocks y conflictos de concurrencia"
    )
    config.addinivalue_line(
        "markers",
        "circuit_breaker: Tests del circuit breaker del proveedor de pagos"
    )


# ============================================================================
# HOOKS DE PYTEST
# ============================================================================

@pytest.fixture(autouse=True)
def reset_circuit_breakers():
    """
    Reset circuit breakers antes de cada test.
    Evita que tests fallen por breakers abiertos de tests anteriores.
    """
    from app.infrastructure.circuit_breaker import payment_breaker

    payment_breaker.close()

    yield

    payment_breaker.close()
