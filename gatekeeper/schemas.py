"""
Pydantic schemas for request / response serialization.

The portal front-end speaks camelCase, so every schema uses a camel
alias generator while Python code keeps snake_case names.  Request
fields are optional on purpose: a missing field is a 400 decided by the
service, not FastAPI's generic 422.
"""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Auth ─────────────────────────────────────────────────────────────
class LoginRequest(CamelModel):
    # Any JSON value is accepted; the gate reports non-strings as missing.
    username: Any = None
    password: Any = None
    device_token: Any = None


class SessionOut(CamelModel):
    user_id: str
    username: str
    name: str
    is_admin: bool
    session_token: str
    device_token: str
    ip: str
    expires_at: datetime


class LoginResponse(CamelModel):
    success: bool = True
    session: SessionOut


class LogoutRequest(CamelModel):
    session_token: str | None = None
    device_token: str | None = None


class SuccessResponse(CamelModel):
    success: bool = True


class VerifySessionRequest(CamelModel):
    session_token: str | None = None


class SessionUserOut(CamelModel):
    user_id: uuid.UUID
    username: str
    name: str
    is_admin: bool


class VerifySessionResponse(CamelModel):
    valid: bool = True
    session: SessionUserOut


# ── Access ───────────────────────────────────────────────────────────
class IpOut(CamelModel):
    ip: str


class BusinessHoursOut(CamelModel):
    is_business_hours: bool
    current_time: str
    day: int
    hour: int


class IpAccessOut(CamelModel):
    authorized: bool
    ip: str
    required_ip: str | None = None


# ── Generic ──────────────────────────────────────────────────────────
class HealthOut(CamelModel):
    status: str = "ok"
    timestamp: datetime
    store: str
