"""
Dependency wiring.

Components are plain classes that take the frozen `Settings` (and a
clock) in their constructor.  These FastAPI dependencies assemble them
per request, so tests can swap settings, the session factory or the
clock through `app.dependency_overrides` without touching globals.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gatekeeper.core.clock import Clock, utcnow
from gatekeeper.core.config import Settings, settings
from gatekeeper.core.database import get_session_factory
from gatekeeper.services.access_gate import AccessGate
from gatekeeper.services.access_window import AccessWindowEvaluator
from gatekeeper.services.audit_service import AttemptLogger
from gatekeeper.services.credential_service import CredentialVerifier
from gatekeeper.services.device_service import DeviceAuthorizer
from gatekeeper.services.session_service import SessionManager


def get_settings() -> Settings:
    return settings


def get_clock() -> Clock:
    return utcnow


def get_access_window(
    config: Settings = Depends(get_settings),
    clock: Clock = Depends(get_clock),
) -> AccessWindowEvaluator:
    return AccessWindowEvaluator(config, clock)


def get_session_manager(
    config: Settings = Depends(get_settings),
    access_window: AccessWindowEvaluator = Depends(get_access_window),
    clock: Clock = Depends(get_clock),
) -> SessionManager:
    return SessionManager(config, access_window, clock)


def get_attempt_logger(
    config: Settings = Depends(get_settings),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    clock: Clock = Depends(get_clock),
) -> AttemptLogger:
    return AttemptLogger(config, session_factory, clock)


def get_access_gate(
    config: Settings = Depends(get_settings),
    access_window: AccessWindowEvaluator = Depends(get_access_window),
    sessions: SessionManager = Depends(get_session_manager),
    attempts: AttemptLogger = Depends(get_attempt_logger),
    clock: Clock = Depends(get_clock),
) -> AccessGate:
    return AccessGate(
        config,
        credentials=CredentialVerifier(config),
        devices=DeviceAuthorizer(config, clock),
        sessions=sessions,
        access_window=access_window,
        attempts=attempts,
    )
