"""
Tests for client address resolution and the allow-list check.
"""

import pytest

from gatekeeper.core.network import (
    UNKNOWN_ADDRESS,
    is_address_allowed,
    normalize_address,
    resolve_client_address,
)


class TestResolveClientAddress:
    """Forwarded-for header first, socket peer as fallback"""

    def test_prefers_first_forwarded_entry(self):
        headers = {"x-forwarded-for": " 179.82.106.43 , 10.0.0.1, 10.0.0.2"}
        assert resolve_client_address(headers, "10.9.9.9") == "179.82.106.43"

    def test_falls_back_to_peer(self):
        assert resolve_client_address({}, "192.168.0.7") == "192.168.0.7"

    def test_empty_forwarded_header_falls_back_to_peer(self):
        assert resolve_client_address({"x-forwarded-for": " , "}, "192.168.0.7") == "192.168.0.7"

    def test_strips_ipv4_mapped_prefix(self):
        assert resolve_client_address({}, "::ffff:179.82.106.43") == "179.82.106.43"
        assert resolve_client_address({"x-forwarded-for": "::ffff:10.1.2.3"}, None) == "10.1.2.3"

    def test_no_information_is_unknown(self):
        assert resolve_client_address({}, None) == UNKNOWN_ADDRESS


class TestNormalizeAddress:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("10.0.0.1", "10.0.0.1"),
            ("::FFFF:10.0.0.1", "10.0.0.1"),
            ("2001:db8::1", "2001:db8::1"),
            ("testclient", "testclient"),
        ],
    )
    def test_normalize(self, raw, expected):
        assert normalize_address(raw) == expected


class TestIsAddressAllowed:
    def test_exact_match(self):
        assert is_address_allowed("179.82.106.43", {"179.82.106.43"})

    def test_other_address_denied(self):
        assert not is_address_allowed("179.82.106.44", {"179.82.106.43"})

    def test_mapped_entry_in_allow_list(self):
        assert is_address_allowed("10.0.0.1", ["::ffff:10.0.0.1"])

    def test_empty_allow_list_denies_everything(self):
        assert not is_address_allowed("179.82.106.43", set())
