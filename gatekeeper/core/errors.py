"""
Gatekeeper error taxonomy.

Every failure a component can signal is a subclass of `GatekeeperError`
carrying:

- `status_code` — the HTTP status the controllers answer with.
- `code` — stable machine-readable identifier (audit log, API `reason`).
- `audit_message` — the precise human reason written to the audit trail.
- `public_message` — what the caller is allowed to see.

`AuthFailed` subclasses share one public message on purpose so the
login endpoint cannot be used to enumerate usernames; the audit log
still keeps the precise reason.
"""

from __future__ import annotations


class GatekeeperError(Exception):
    status_code: int = 400
    code: str = "error"
    audit_message: str = "Erro"
    public_message: str = "Erro"

    def __init__(self, message: str | None = None, *, details: str | None = None) -> None:
        super().__init__(message or self.audit_message)
        if message is not None:
            self.audit_message = message
        self.details = details


# ── 400 ──────────────────────────────────────────────────────────────
class InputError(GatekeeperError):
    status_code = 400
    code = "invalid_input"


class MissingFields(InputError):
    code = "missing_fields"
    audit_message = "Campos obrigatórios ausentes"
    public_message = "Campos obrigatórios ausentes"


# ── 403 ──────────────────────────────────────────────────────────────
class AccessDenied(GatekeeperError):
    status_code = 403
    code = "access_denied"
    public_message = "Acesso negado"


class IPNotAuthorized(AccessDenied):
    code = "ip_not_authorized"
    audit_message = "IP não autorizado"
    public_message = "Seu IP não está autorizado a acessar este sistema"


class OutsideAccessWindow(AccessDenied):
    code = "outside_business_hours"
    audit_message = "Fora do horário comercial"
    public_message = (
        "Acesso de usuários permitido apenas de segunda a sexta, "
        "das 8h às 18h (horário de Brasília)"
    )


class DeviceMismatch(AccessDenied):
    code = "device_mismatch"
    audit_message = "Dispositivo não autorizado"
    public_message = "Este usuário já está vinculado a outro dispositivo"


# ── 401 ──────────────────────────────────────────────────────────────
class AuthFailed(GatekeeperError):
    status_code = 401
    code = "auth_failed"
    public_message = "Usuário ou senha incorretos"


class UserNotFound(AuthFailed):
    code = "user_not_found"
    audit_message = "Usuário não encontrado"


class UserInactive(AuthFailed):
    code = "user_inactive"
    audit_message = "Usuário inativo"


class BadCredentials(AuthFailed):
    code = "bad_credentials"
    audit_message = "Senha incorreta"


class SessionInvalid(GatekeeperError):
    status_code = 401
    code = "session_invalid"
    public_message = "Sessão inválida"


class SessionNotFound(SessionInvalid):
    code = "session_not_found"
    audit_message = "Sessão não encontrada"


class SessionExpired(SessionInvalid):
    code = "session_expired"
    audit_message = "Sessão expirada"


class SessionUserInactive(SessionInvalid):
    code = "user_inactive"
    audit_message = "Usuário inativo"


# ── 500 ──────────────────────────────────────────────────────────────
class StoreError(GatekeeperError):
    status_code = 500
    code = "store_error"
    audit_message = "Erro no armazenamento"

    @property
    def public_message(self) -> str:  # type: ignore[override]
        return self.audit_message


class DeviceStoreError(StoreError):
    code = "device_store_error"
    audit_message = "Erro ao registrar dispositivo"


class SessionStoreError(StoreError):
    code = "session_store_error"
    audit_message = "Erro ao criar sessão"
