"""
Token & credential helpers.

- Session tokens are opaque bearer strings: a millisecond timestamp
  prefix (handy when reading logs) followed by a random alphanumeric
  suffix drawn from `secrets`, so they cannot be predicted.
- Device fingerprints are NOT a security boundary: device token plus
  issuance time, kept for auditing.
- Passwords are stored and compared as plaintext.  This is the
  contract of the existing user table and is kept as-is; a real
  deployment must move to salted one-way hashes.
"""

import hmac
import secrets
import string
from datetime import datetime

SESSION_TOKEN_PREFIX = "sess_"
_TOKEN_ALPHABET = string.ascii_letters + string.digits


def epoch_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


# ── Sessions ────────────────────────────────────────────────────────


def generate_session_token(issued_at: datetime, random_length: int = 24) -> str:
    suffix = "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(random_length))
    return f"{SESSION_TOKEN_PREFIX}{epoch_millis(issued_at)}_{suffix}"


def mask_token(token: str) -> str:
    """Shorten a bearer token for log lines."""
    return token[:20] + "..."


# ── Devices ─────────────────────────────────────────────────────────


def device_fingerprint(device_token: str, issued_at: datetime) -> str:
    return f"{device_token}_{epoch_millis(issued_at)}"


def device_label(user_agent: str | None, max_length: int) -> str:
    """User-agent string trimmed to what the device table can hold."""
    return (user_agent or "Unknown")[:max_length]


# ── Passwords ───────────────────────────────────────────────────────


def passwords_match(supplied: str, stored: str | None) -> bool:
    """Exact equality against the stored plaintext value."""
    if stored is None:
        return False
    return hmac.compare_digest(supplied.encode("utf-8"), stored.encode("utf-8"))
