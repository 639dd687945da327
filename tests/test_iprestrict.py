"""Tests for the IP allow-list module."""

from __future__ import annotations

from ipaddress import IPv4Address, IPv6Address, ip_address, ip_network

from structlog.testing import CapturingLogger

from headerguard.security.iprestrict import (
    AllowList,
    IPCheckResult,
    parse_address,
    parse_allowed_ips,
    parse_range,
)


class TestParseRange:
    """Tests for parse_range."""

    def test_cidr(self):
        """Test CIDR notation."""
        assert parse_range("10.0.0.0/8") == ip_network("10.0.0.0/8")

    def test_cidr_with_host_bits(self):
        """Test host bits in a CIDR are masked off instead of rejected."""
        assert parse_range("192.168.1.77/24") == ip_network("192.168.1.0/24")

    def test_bare_ipv4_becomes_host_range(self):
        """Test bare IPv4 gets a /32 mask."""
        assert parse_range("4.4.4.4") == ip_network("4.4.4.4/32")

    def test_bare_ipv6_becomes_host_range(self):
        """Test bare IPv6 gets a /128 mask."""
        assert parse_range("2001:db8::1") == ip_network("2001:db8::1/128")

    def test_ipv4_mapped_ipv6_becomes_ipv4(self):
        """Test IPv4-mapped IPv6 addresses are treated as IPv4."""
        assert parse_range("::ffff:1.2.3.4") == ip_network("1.2.3.4/32")

    def test_invalid(self):
        """Test invalid entries return None."""
        assert parse_range("not-an-ip") is None
        assert parse_range("10.0.0.0/33") is None
        assert parse_range("300.1.1.1") is None


class TestParseAllowedIPs:
    """Tests for parse_allowed_ips."""

    def test_comma_separated_entries(self):
        """Test entries bundling several ranges."""
        allow_list = parse_allowed_ips(["1.1.1.1/32, 2.2.2.2/32", "3.3.3.3/32", "4.4.4.4"])
        assert [str(r) for r in allow_list.ranges] == [
            "1.1.1.1/32",
            "2.2.2.2/32",
            "3.3.3.3/32",
            "4.4.4.4/32",
        ]

    def test_blank_parts_are_ignored(self):
        """Test empty and whitespace parts are skipped."""
        allow_list = parse_allowed_ips(["", " , 10.0.0.1 ,", "   "])
        assert len(allow_list) == 1

    def test_invalid_entry_is_skipped(self):
        """Test an invalid entry does not stop other entries."""
        allow_list = parse_allowed_ips(["not-an-ip", "1.1.1.1, garbage/99, 2.2.2.2"])
        assert [str(r) for r in allow_list.ranges] == ["1.1.1.1/32", "2.2.2.2/32"]

    def test_invalid_entry_logged_when_enabled(self):
        """Test skipped entries are logged only with logging enabled."""
        log = CapturingLogger()
        parse_allowed_ips(["not-an-ip"], log_enabled=True, log=log)
        assert len(log.calls) == 1
        assert log.calls[0].method_name == "warning"
        assert log.calls[0].kwargs["entry"] == "not-an-ip"

    def test_invalid_entry_silent_when_disabled(self):
        """Test no log output with logging disabled."""
        log = CapturingLogger()
        parse_allowed_ips(["not-an-ip"], log_enabled=False, log=log)
        assert log.calls == []

    def test_empty_input(self):
        """Test no entries gives an empty allow-list."""
        assert len(parse_allowed_ips([])) == 0


class TestAllowList:
    """Tests for AllowList."""

    def test_contains(self):
        """Test addresses inside and outside the ranges."""
        allow_list = parse_allowed_ips(["1.1.1.1/32, 2.2.2.2/32", "3.3.3.3/32", "4.4.4.4"])
        for ip in ("1.1.1.1", "2.2.2.2", "3.3.3.3", "4.4.4.4"):
            assert allow_list.contains(ip_address(ip)) is True
        assert allow_list.contains(ip_address("5.5.5.5")) is False

    def test_cidr_range(self):
        """Test membership in a wider network."""
        allow_list = parse_allowed_ips(["10.0.0.0/8"])
        assert allow_list.contains(ip_address("10.255.255.255")) is True
        assert allow_list.contains(ip_address("11.0.0.1")) is False

    def test_ipv6_support(self):
        """Test IPv6 ranges."""
        allow_list = parse_allowed_ips(["2001:db8::/32"])
        assert allow_list.contains(ip_address("2001:db8::1")) is True
        assert allow_list.contains(ip_address("2001:db9::1")) is False

    def test_mixed_families_do_not_match(self):
        """Test an IPv6 address never matches an IPv4 range."""
        allow_list = parse_allowed_ips(["0.0.0.0/0"])
        assert allow_list.contains(ip_address("2001:db8::1")) is False

    def test_mapped_address_matches_ipv4_range(self):
        """Test IPv4-mapped IPv6 addresses match IPv4 ranges."""
        allow_list = parse_allowed_ips(["10.0.0.0/8"])
        assert allow_list.contains(IPv6Address("::ffff:10.1.2.3")) is True

    def test_none_never_allowed(self):
        """Test a missing address is denied even by a match-all range."""
        allow_list = parse_allowed_ips(["0.0.0.0/0", "::/0"])
        assert allow_list.contains(None) is False

    def test_empty_allow_list_denies(self):
        """Test an empty allow-list allows nothing."""
        assert AllowList().contains(IPv4Address("1.1.1.1")) is False

    def test_check_returns_result_object(self):
        """Test check returns an IPCheckResult with the matched range."""
        allow_list = parse_allowed_ips(["192.168.1.0/24"])
        result = allow_list.check(ip_address("192.168.1.50"))
        assert isinstance(result, IPCheckResult)
        assert result.allowed is True
        assert result.matched_rule == "192.168.1.0/24"

    def test_check_result_denied(self):
        """Test check result for an address outside every range."""
        result = parse_allowed_ips(["192.168.1.0/24"]).check(ip_address("10.0.0.1"))
        assert result.allowed is False
        assert result.matched_rule is None
        assert "not in allow list" in result.reason


class TestParseAddress:
    """Tests for parse_address."""

    def test_valid(self):
        assert parse_address(" 9.9.9.9 ") == IPv4Address("9.9.9.9")
        assert parse_address("::1") == IPv6Address("::1")

    def test_invalid(self):
        assert parse_address("") is None
        assert parse_address("example.com") is None
