"""
Tests for the login attempt audit trail.
"""

import asyncio

from gatekeeper.services.audit_service import AttemptLogger


class TestRecord:
    async def test_writes_one_row(self, attempt_logger, fetch_attempts, clock):
        ok = await attempt_logger.record(
            username="Alice",
            ip_address="200.10.20.30",
            device_token="device-A",
            success=False,
            failure_code="bad_credentials",
            failure_reason="Senha incorreta",
        )

        assert ok is True
        [attempt] = await fetch_attempts()
        assert attempt.username == "Alice"
        assert attempt.ip_address == "200.10.20.30"
        assert attempt.device_token == "device-A"
        assert attempt.success is False
        assert attempt.failure_code == "bad_credentials"
        assert attempt.failure_reason == "Senha incorreta"

    async def test_missing_username_and_device_are_allowed(self, attempt_logger, fetch_attempts):
        ok = await attempt_logger.record(
            username=None,
            ip_address="unknown",
            device_token=None,
            success=False,
            failure_code="missing_fields",
        )
        assert ok is True
        [attempt] = await fetch_attempts()
        assert attempt.username is None
        assert attempt.device_token is None

    async def test_successful_attempt_has_no_reason(self, attempt_logger, fetch_attempts):
        await attempt_logger.record(
            username="alice", ip_address="200.10.20.30", device_token="device-A", success=True,
        )
        [attempt] = await fetch_attempts()
        assert attempt.success is True
        assert attempt.failure_reason is None


class TestBestEffort:
    """A broken audit store never reaches the caller"""

    async def test_store_failure_returns_false(self, settings, clock):
        def broken_factory():
            raise RuntimeError("connection refused")

        logger = AttemptLogger(settings, broken_factory, clock)
        ok = await logger.record(
            username="alice", ip_address="200.10.20.30", device_token="d", success=True,
        )
        assert ok is False

    async def test_timeout_returns_false(self, settings, clock):
        class SlowSession:
            async def __aenter__(self):
                await asyncio.sleep(1)
                return self

            async def __aexit__(self, *exc_info):
                return False

        fast_settings = settings.model_copy(update={"STORE_TIMEOUT_SECONDS": 0.01})
        logger = AttemptLogger(fast_settings, SlowSession, clock)
        ok = await logger.record(
            username="alice", ip_address="200.10.20.30", device_token="d", success=True,
        )
        assert ok is False
