# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Tests for endpoint parsing and hostname resolution."""

import pytest

from flowctl.core.errors import ResolutionError, UsageError
from flowctl.core.runtime import (
    Endpoint,
    get_hostname_ip,
    is_autoconf,
    parse_endpoint,
    resolve_endpoint,
    split_host_port,
)


class TestSplitHostPort:
    def test_host_and_port(self):
        assert split_host_port("node01:2200") == ("node01", 2200)

    def test_host_only_uses_default(self):
        assert split_host_port("node01") == ("node01", 2101)

    def test_custom_default(self):
        assert split_host_port("node01", default_port=9000) == ("node01", 9000)

    def test_splits_on_first_colon(self):
        with pytest.raises(UsageError, match="invalid port number"):
            split_host_port("node01:2101:extra")

    def test_empty_port(self):
        with pytest.raises(UsageError):
            split_host_port("node01:")


class TestIsAutoconf:
    @pytest.mark.parametrize("address", ["169.254.0.1", "169.254.255.254"])
    def test_link_local(self, address):
        assert is_autoconf(address) is True

    @pytest.mark.parametrize("address", ["10.0.0.1", "127.0.0.1", "169.253.0.1", "169.255.0.1"])
    def test_not_link_local(self, address):
        assert is_autoconf(address) is False


class TestGetHostnameIp:
    def test_resolves_ipv4(self, fake_dns):
        assert get_hostname_ip("node01") == "10.0.0.1"

    def test_skips_autoconf_address(self, fake_dns):
        assert get_hostname_ip("autoconf") == "10.0.0.9"

    def test_skips_ipv6_address(self, fake_dns):
        assert get_hostname_ip("dual") == "10.0.0.7"

    def test_ipv6_only_fails(self, fake_dns):
        with pytest.raises(ResolutionError, match="IPv6 is not currently supported"):
            get_hostname_ip("v6only")

    def test_autoconf_only_fails(self, fake_dns):
        with pytest.raises(ResolutionError, match="could not find an IPv4 address"):
            get_hostname_ip("autoconf-only")

    def test_unknown_host_fails(self, fake_dns):
        with pytest.raises(ResolutionError, match="could not resolve hostname nosuchhost"):
            get_hostname_ip("nosuchhost")

    def test_empty_host_fails(self, fake_dns):
        with pytest.raises(ResolutionError):
            get_hostname_ip("")

    def test_resolution_is_repeatable(self, fake_dns):
        assert get_hostname_ip("node02") == get_hostname_ip("node02")


class TestResolveEndpoint:
    def test_parse_endpoint(self, fake_dns):
        assert parse_endpoint("node02:2105") == Endpoint("10.0.0.2", 2105)

    def test_port_bounds(self, fake_dns):
        assert resolve_endpoint("node01", 0).port == 0
        assert resolve_endpoint("node01", 65535).port == 65535

    def test_port_too_large(self, fake_dns):
        with pytest.raises(UsageError, match=r"invalid port \(65536\) for process 4"):
            resolve_endpoint("node01", 65536, process_id=4)

    def test_negative_port(self, fake_dns):
        with pytest.raises(UsageError, match=r"invalid port \(-1\)"):
            parse_endpoint("node01:-1")

    def test_str(self):
        assert str(Endpoint("10.0.0.1", 2101)) == "10.0.0.1:2101"
