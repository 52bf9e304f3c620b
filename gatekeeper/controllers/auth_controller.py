"""
Auth controller — login, logout & session verification.

All three routes are PUBLIC; the session token travels in the body.
Services raise or return typed results; this module only decides the
JSON shape and status code of each outcome.
"""

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from gatekeeper.core.database import get_db
from gatekeeper.core.errors import (
    AccessDenied,
    AuthFailed,
    GatekeeperError,
    IPNotAuthorized,
    OutsideAccessWindow,
    StoreError,
)
from gatekeeper.core.network import client_address
from gatekeeper.core.security import mask_token
from gatekeeper.dependencies import get_access_gate, get_session_manager
from gatekeeper.schemas import (
    LoginRequest,
    LoginResponse,
    LogoutRequest,
    SessionOut,
    SessionUserOut,
    SuccessResponse,
    VerifySessionRequest,
    VerifySessionResponse,
)
from gatekeeper.services.access_gate import AccessGate
from gatekeeper.services.session_service import SessionManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Auth"])


def login_error_body(exc: GatekeeperError) -> dict:
    """Response body for a refused login."""
    if isinstance(exc, AuthFailed):
        # Same body for every credential problem: no username enumeration.
        return {"error": exc.public_message}
    if isinstance(exc, IPNotAuthorized):
        return {"error": AccessDenied.public_message, "message": exc.public_message, "code": exc.code}
    if isinstance(exc, AccessDenied):
        return {"error": exc.audit_message, "message": exc.public_message, "code": exc.code}
    if isinstance(exc, StoreError):
        return {"error": exc.audit_message, "details": exc.details}
    return {"error": exc.public_message}


async def read_login_request(request: Request) -> LoginRequest:
    """Parse the login body leniently.

    Unreadable JSON, or JSON that is not an object, counts as an empty
    body so the gate still answers 400 and audits the attempt.
    """
    try:
        payload = await request.json()
    except ValueError:
        payload = None
    if not isinstance(payload, dict):
        payload = {}
    return LoginRequest.model_validate(payload)


@router.post(
    "/login",
    response_model=LoginResponse,
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": LoginRequest.model_json_schema()}},
        }
    },
)
async def login(
    request: Request,
    body: LoginRequest = Depends(read_login_request),
    db: AsyncSession = Depends(get_db),
    gate: AccessGate = Depends(get_access_gate),
):
    """Authenticate username + password + device token → session descriptor."""
    result = await gate.login(
        db,
        username=body.username,
        password=body.password,
        device_token=body.device_token,
        address=client_address(request),
        user_agent=request.headers.get("user-agent"),
    )
    if not result.success:
        return JSONResponse(
            status_code=result.error.status_code,
            content=login_error_body(result.error),
        )
    return LoginResponse(session=SessionOut(**asdict(result.session)))


@router.post("/logout", response_model=SuccessResponse)
async def logout(
    body: LogoutRequest,
    db: AsyncSession = Depends(get_db),
    sessions: SessionManager = Depends(get_session_manager),
):
    """Deactivate the session (server-side logout).  Idempotent."""
    if not body.session_token:
        return JSONResponse(status_code=400, content={"error": "Session token ausente"})
    try:
        await sessions.invalidate(db, body.session_token)
    except StoreError as exc:
        logger.error("Logout failed for %s: %s", mask_token(body.session_token), exc.details)
        return JSONResponse(status_code=500, content={"error": "Erro ao fazer logout"})
    return SuccessResponse()


@router.post("/verify-session", response_model=VerifySessionResponse)
async def verify_session(
    body: VerifySessionRequest,
    db: AsyncSession = Depends(get_db),
    sessions: SessionManager = Depends(get_session_manager),
):
    """Check a session token; touches last activity when valid."""
    if not body.session_token:
        return JSONResponse(status_code=400, content={"valid": False, "reason": "token_missing"})
    try:
        user = await sessions.validate(db, body.session_token)
    except StoreError as exc:
        logger.error("Session verification failed: %s", exc.details)
        return JSONResponse(
            status_code=500,
            content={"valid": False, "reason": "server_error", "error": "Erro ao verificar sessão"},
        )
    except GatekeeperError as exc:
        content = {"valid": False, "reason": exc.code}
        if isinstance(exc, OutsideAccessWindow):
            content["message"] = exc.public_message
        return JSONResponse(status_code=exc.status_code, content=content)

    return VerifySessionResponse(
        session=SessionUserOut(
            user_id=user.id,
            username=user.username,
            name=user.name,
            is_admin=user.is_admin,
        )
    )
