"""
Database engines and session dependencies.

Two data sources: the operational database (drivers, divisions, fines,
payments) and the external license registry, which is only ever read.
Engines are created on first use.
"""
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import settings

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker] = None

_license_engine: Optional[AsyncEngine] = None
_license_session_factory: Optional[async_sessionmaker] = None


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        _engine = create_async_engine(
            settings.DATABASE_URL,
            echo=settings.DATABASE_ECHO,
            pool_pre_ping=True,
            pool_recycle=3600,
        )
    return _engine


def get_license_engine() -> AsyncEngine:
    global _license_engine
    if _license_engine is None:
        _license_engine = create_async_engine(
            settings.LICENSE_DATABASE_URL,
            echo=settings.DATABASE_ECHO,
            pool_pre_ping=True,
            pool_recycle=3600,
        )
    return _license_engine


def get_session_factory() -> async_sessionmaker:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _session_factory


def get_license_session_factory() -> async_sessionmaker:
    global _license_session_factory
    if _license_session_factory is None:
        _license_session_factory = async_sessionmaker(
            get_license_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _license_session_factory


async def aget_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a session on the operational database."""
    async with get_session_factory()() as session:
        yield session


async def aget_license_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a session on the license registry."""
    async with get_license_session_factory()() as session:
        yield session


async def close_db() -> None:
    global _engine, _session_factory, _license_engine, _license_session_factory
    if _engine is not None:
        await _engine.dispose()
    if _license_engine is not None:
        await _license_engine.dispose()
    _engine = _session_factory = None
    _license_engine = _license_session_factory = None
