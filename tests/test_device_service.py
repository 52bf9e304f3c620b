"""
Tests for device binding under both policies.
"""

from unittest.mock import patch

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from gatekeeper.core.config import DevicePolicy
from gatekeeper.core.errors import DeviceMismatch, DeviceStoreError
from gatekeeper.core.security import epoch_millis
from gatekeeper.models import AuthorizedDevice

LONG_AGENT = "Mozilla/5.0 " + "x" * 200


async def load_device(session_factory, user_id) -> AuthorizedDevice | None:
    async with session_factory() as session:
        result = await session.execute(
            select(AuthorizedDevice).where(AuthorizedDevice.user_id == user_id)
        )
        return result.scalar_one_or_none()


class TestStrictPolicy:
    """First device binds; every other token is refused"""

    @pytest.fixture
    def device_policy(self):
        return DevicePolicy.STRICT

    async def test_first_login_binds_device(self, db, make_user, device_authorizer, session_factory, clock):
        user = await make_user()

        device = await device_authorizer.authorize(db, user, "device-A", "200.10.20.30", "Firefox")

        assert device.device_token == "device-A"
        stored = await load_device(session_factory, user.id)
        assert stored.device_token == "device-A"
        assert stored.device_fingerprint == f"device-A_{epoch_millis(clock.now)}"
        assert stored.device_name == "Firefox"
        assert stored.ip_address == "200.10.20.30"
        assert stored.is_active is True

    async def test_same_device_is_accepted_and_refreshed(
        self, db, make_user, device_authorizer, session_factory, clock
    ):
        user = await make_user()
        await device_authorizer.authorize(db, user, "device-A", "200.10.20.30", "Firefox")
        first = await load_device(session_factory, user.id)

        clock.advance(hours=1)
        await device_authorizer.authorize(db, user, "device-A", "200.10.20.31", "Chrome")

        stored = await load_device(session_factory, user.id)
        assert stored.id == first.id
        assert stored.device_token == "device-A"
        assert stored.device_fingerprint == first.device_fingerprint
        assert stored.ip_address == "200.10.20.31"
        assert stored.device_name == "Chrome"

    async def test_other_device_is_refused(self, db, make_user, device_authorizer, session_factory):
        user = await make_user()
        await device_authorizer.authorize(db, user, "device-A", "200.10.20.30", None)

        with pytest.raises(DeviceMismatch):
            await device_authorizer.authorize(db, user, "device-B", "200.10.20.30", None)

        stored = await load_device(session_factory, user.id)
        assert stored.device_token == "device-A"

    async def test_deactivated_binding_refuses_even_its_own_token(
        self, db, make_user, device_authorizer, session_factory
    ):
        user = await make_user()
        await device_authorizer.authorize(db, user, "device-A", "200.10.20.30", None)
        async with session_factory() as session:
            device = (
                await session.execute(select(AuthorizedDevice).where(AuthorizedDevice.user_id == user.id))
            ).scalar_one()
            device.is_active = False
            await session.commit()

        with pytest.raises(DeviceMismatch):
            await device_authorizer.authorize(db, user, "device-A", "200.10.20.30", None)

    async def test_bindings_are_per_user(self, db, make_user, device_authorizer):
        alice = await make_user(username="alice")
        bob = await make_user(username="bob")
        await device_authorizer.authorize(db, alice, "device-A", "200.10.20.30", None)
        device = await device_authorizer.authorize(db, bob, "device-B", "200.10.20.30", None)
        assert device.device_token == "device-B"


class TestLenientPolicy:
    """The single device row follows the latest login"""

    async def test_new_device_replaces_row_in_place(
        self, db, make_user, device_authorizer, session_factory, count_rows, clock
    ):
        user = await make_user()
        await device_authorizer.authorize(db, user, "device-A", "200.10.20.30", "Firefox")
        first = await load_device(session_factory, user.id)

        clock.advance(minutes=5)
        device = await device_authorizer.authorize(db, user, "device-B", "200.10.20.40", "Safari")

        assert device.device_token == "device-B"
        stored = await load_device(session_factory, user.id)
        assert stored.id == first.id
        assert stored.device_token == "device-B"
        assert stored.device_fingerprint == f"device-B_{epoch_millis(clock.now)}"
        assert stored.ip_address == "200.10.20.40"
        assert stored.device_name == "Safari"
        assert await count_rows(AuthorizedDevice) == 1

    async def test_reactivates_row(self, db, make_user, device_authorizer, session_factory):
        user = await make_user()
        await device_authorizer.authorize(db, user, "device-A", "200.10.20.30", None)
        async with session_factory() as session:
            device = (
                await session.execute(select(AuthorizedDevice).where(AuthorizedDevice.user_id == user.id))
            ).scalar_one()
            device.is_active = False
            await session.commit()

        await device_authorizer.authorize(db, user, "device-A", "200.10.20.30", None)
        assert (await load_device(session_factory, user.id)).is_active is True

    async def test_user_agent_label_is_truncated(self, db, make_user, device_authorizer, session_factory):
        user = await make_user()
        await device_authorizer.authorize(db, user, "device-A", "200.10.20.30", LONG_AGENT)

        stored = await load_device(session_factory, user.id)
        assert stored.device_name == LONG_AGENT[:95]
        assert stored.user_agent == LONG_AGENT[:95]

    async def test_missing_user_agent_is_unknown(self, db, make_user, device_authorizer, session_factory):
        user = await make_user()
        await device_authorizer.authorize(db, user, "device-A", "200.10.20.30", None)
        assert (await load_device(session_factory, user.id)).device_name == "Unknown"


class TestStoreFailures:
    async def test_driver_error_becomes_device_store_error(self, db, make_user, device_authorizer):
        user = await make_user()

        with patch.object(
            device_authorizer,
            "_upsert_lenient",
            side_effect=OperationalError("INSERT", {}, Exception("disk I/O error")),
        ):
            with pytest.raises(DeviceStoreError) as exc_info:
                await device_authorizer.authorize(db, user, "device-A", "200.10.20.30", None)

        assert exc_info.value.status_code == 500
        assert "disk I/O error" in exc_info.value.details
