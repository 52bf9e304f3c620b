"""
Access gate — the login pipeline.

A login request walks an explicit, ordered list of named steps.  Each
step answers with a `StepResult` (continue, or fail with a
`GatekeeperError`) and the first failure ends the walk:

    validate_input → check_network_origin → lookup_user
        → check_access_window → verify_password        (before_password)
        → verify_password → check_access_window        (after_credentials)
    → authorize_device → issue_session

The business-hours step is a no-op for admins.  Whatever happens,
exactly one login attempt is audited (with the username as the
client sent it) before the result is handed back; audit failures
never change the result.

All business logic lives here.  Controllers call `login` and render
the `LoginResult`.
"""

import enum
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from gatekeeper.core.config import Settings, WindowCheckOrder
from gatekeeper.core.errors import (
    GatekeeperError,
    IPNotAuthorized,
    MissingFields,
    OutsideAccessWindow,
)
from gatekeeper.core.network import is_address_allowed
from gatekeeper.models.device import AuthorizedDevice
from gatekeeper.models.user import User
from gatekeeper.services.access_window import AccessWindowEvaluator
from gatekeeper.services.audit_service import AttemptLogger
from gatekeeper.services.credential_service import CredentialVerifier
from gatekeeper.services.device_service import DeviceAuthorizer
from gatekeeper.services.session_service import IssuedSession, SessionManager

logger = logging.getLogger(__name__)

INTERNAL_ERROR_CODE = "internal_error"
AUDIT_TEXT_LENGTH = 256


def _as_text(value: Any) -> str | None:
    """Whatever the client sent, stringified to fit the audit columns."""
    if value is None:
        return None
    return str(value)[:AUDIT_TEXT_LENGTH]


class GateStep(str, enum.Enum):
    VALIDATE_INPUT = "validate_input"
    CHECK_NETWORK_ORIGIN = "check_network_origin"
    LOOKUP_USER = "lookup_user"
    CHECK_ACCESS_WINDOW = "check_access_window"
    VERIFY_PASSWORD = "verify_password"
    AUTHORIZE_DEVICE = "authorize_device"
    ISSUE_SESSION = "issue_session"


@dataclass(frozen=True)
class StepResult:
    error: GatekeeperError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def fail(cls, error: GatekeeperError) -> "StepResult":
        return cls(error=error)


CONTINUE = StepResult()


@dataclass
class LoginContext:
    # Raw client values; only validate_input guarantees they are strings.
    username: Any
    password: Any
    device_token: Any
    address: str
    user_agent: str | None = None
    user: User | None = None
    device: AuthorizedDevice | None = None
    issued: IssuedSession | None = None


@dataclass(frozen=True)
class SessionDescriptor:
    user_id: str
    username: str
    name: str
    is_admin: bool
    session_token: str
    device_token: str
    ip: str
    expires_at: datetime


@dataclass(frozen=True)
class LoginResult:
    session: SessionDescriptor | None = None
    error: GatekeeperError | None = None
    failed_step: GateStep | None = None

    @property
    def success(self) -> bool:
        return self.error is None and self.session is not None


StepHandler = Callable[[AsyncSession, LoginContext], Awaitable[StepResult]]


class AccessGate:
    def __init__(
        self,
        settings: Settings,
        *,
        credentials: CredentialVerifier,
        devices: DeviceAuthorizer,
        sessions: SessionManager,
        access_window: AccessWindowEvaluator,
        attempts: AttemptLogger,
    ) -> None:
        self._allowed_ips = settings.allowed_ips
        self._credentials = credentials
        self._devices = devices
        self._sessions = sessions
        self._access_window = access_window
        self._attempts = attempts
        self.steps: list[tuple[GateStep, StepHandler]] = self._build_steps(
            settings.ACCESS_WINDOW_CHECK
        )

    def _build_steps(self, order: WindowCheckOrder) -> list[tuple[GateStep, StepHandler]]:
        credential_steps = [
            (GateStep.CHECK_ACCESS_WINDOW, self._check_access_window),
            (GateStep.VERIFY_PASSWORD, self._verify_password),
        ]
        if order is WindowCheckOrder.AFTER_CREDENTIALS:
            credential_steps.reverse()
        return [
            (GateStep.VALIDATE_INPUT, self._validate_input),
            (GateStep.CHECK_NETWORK_ORIGIN, self._check_network_origin),
            (GateStep.LOOKUP_USER, self._lookup_user),
            *credential_steps,
            (GateStep.AUTHORIZE_DEVICE, self._authorize_device),
            (GateStep.ISSUE_SESSION, self._issue_session),
        ]

    @property
    def step_names(self) -> list[GateStep]:
        return [name for name, _ in self.steps]

    # ── Entry point ──────────────────────────────────────────────────

    async def login(
        self,
        db: AsyncSession,
        *,
        username: Any,
        password: Any,
        device_token: Any,
        address: str,
        user_agent: str | None = None,
    ) -> LoginResult:
        ctx = LoginContext(
            username=username,
            password=password,
            device_token=device_token,
            address=address,
            user_agent=user_agent,
        )
        try:
            result = await self._run(db, ctx)
        except Exception:
            await self._audit(
                ctx, success=False, code=INTERNAL_ERROR_CODE, reason="Erro interno no servidor",
            )
            raise

        if result.success:
            await self._audit(ctx, success=True)
            logger.info("Login succeeded: %s | IP: %s", username, address)
        else:
            await self._audit(
                ctx,
                success=False,
                code=result.error.code,
                reason=result.error.audit_message,
            )
            logger.info(
                "Login refused at %s: %s | IP: %s | %s",
                result.failed_step.value,
                username,
                address,
                result.error.code,
            )
        return result

    async def _run(self, db: AsyncSession, ctx: LoginContext) -> LoginResult:
        for name, handler in self.steps:
            try:
                outcome = await handler(db, ctx)
            except GatekeeperError as exc:
                outcome = StepResult.fail(exc)
            if not outcome.ok:
                return LoginResult(error=outcome.error, failed_step=name)
        return LoginResult(session=self._describe(ctx))

    async def _audit(
        self,
        ctx: LoginContext,
        *,
        success: bool,
        code: str | None = None,
        reason: str | None = None,
    ) -> None:
        await self._attempts.record(
            username=_as_text(ctx.username),
            ip_address=ctx.address,
            device_token=_as_text(ctx.device_token),
            success=success,
            failure_code=code,
            failure_reason=reason,
        )

    @staticmethod
    def _describe(ctx: LoginContext) -> SessionDescriptor:
        return SessionDescriptor(
            user_id=str(ctx.user.id),
            username=ctx.user.username,
            name=ctx.user.name,
            is_admin=ctx.user.is_admin,
            session_token=ctx.issued.session_token,
            device_token=ctx.issued.device_token,
            ip=ctx.issued.ip_address,
            expires_at=ctx.issued.expires_at,
        )

    # ── Steps ────────────────────────────────────────────────────────

    async def _validate_input(self, db: AsyncSession, ctx: LoginContext) -> StepResult:
        fields = (ctx.username, ctx.password, ctx.device_token)
        if not all(isinstance(value, str) and value for value in fields):
            return StepResult.fail(MissingFields())
        return CONTINUE

    async def _check_network_origin(self, db: AsyncSession, ctx: LoginContext) -> StepResult:
        if not is_address_allowed(ctx.address, self._allowed_ips):
            logger.warning("Unauthorized IP tried to log in: %s", ctx.address)
            return StepResult.fail(IPNotAuthorized())
        return CONTINUE

    async def _lookup_user(self, db: AsyncSession, ctx: LoginContext) -> StepResult:
        ctx.user = await self._credentials.find_user(db, ctx.username)
        return CONTINUE

    async def _check_access_window(self, db: AsyncSession, ctx: LoginContext) -> StepResult:
        if ctx.user.is_admin:
            return CONTINUE
        if not self._access_window.is_within_window():
            return StepResult.fail(OutsideAccessWindow())
        return CONTINUE

    async def _verify_password(self, db: AsyncSession, ctx: LoginContext) -> StepResult:
        self._credentials.check_password(ctx.user, ctx.password)
        return CONTINUE

    async def _authorize_device(self, db: AsyncSession, ctx: LoginContext) -> StepResult:
        ctx.device = await self._devices.authorize(
            db, ctx.user, ctx.device_token, ctx.address, ctx.user_agent,
        )
        return CONTINUE

    async def _issue_session(self, db: AsyncSession, ctx: LoginContext) -> StepResult:
        ctx.issued = await self._sessions.issue_or_refresh(
            db, ctx.user, ctx.device_token, ctx.address,
        )
        return CONTINUE
