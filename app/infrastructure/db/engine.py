from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.config import Settings


def build_engine(settings: Settings):
    kwargs = {"echo": settings.sql_echo}
    if not settings.database_url.startswith("sqlite"):
        kwargs.update(pool_pre_ping=True, pool_recycle=3600)
    return create_async_engine(settings.database_url, **kwargs)


def build_sessionmaker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
