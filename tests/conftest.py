# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Shared fixtures: a fake name resolver so tests never touch real DNS."""

import socket
from unittest.mock import patch

import pytest


class FakeResolver:
    """Stand-in for socket.getaddrinfo backed by a host -> addresses table."""

    HOSTS = {
        "localhost": ["127.0.0.1"],
        "node01": ["10.0.0.1"],
        "node02": ["10.0.0.2"],
        "node03": ["10.0.0.3"],
        "node01.cluster": ["10.0.0.1"],
        "bcast": ["10.0.255.255"],
        "autoconf": ["169.254.10.20", "10.0.0.9"],
        "autoconf-only": ["169.254.10.20"],
        "v6only": ["fe80::1", "::1"],
        "dual": ["::1", "10.0.0.7"],
    }

    def __init__(self):
        self.calls: list[str] = []

    def __call__(self, host, port, *args, **kwargs):
        self.calls.append(host)
        if host not in self.HOSTS:
            raise socket.gaierror(socket.EAI_NONAME, "Name or service not known")
        infos = []
        for address in self.HOSTS[host]:
            if ":" in address:
                infos.append((socket.AF_INET6, socket.SOCK_STREAM, 6, "", (address, 0, 0, 0)))
            else:
                infos.append((socket.AF_INET, socket.SOCK_STREAM, 6, "", (address, 0)))
        return infos


@pytest.fixture
def fake_dns():
    resolver = FakeResolver()
    with patch("flowctl.core.runtime.socket.getaddrinfo", side_effect=resolver):
        yield resolver


@pytest.fixture(autouse=True)
def no_settings_file(monkeypatch, tmp_path):
    """Keep a developer's flowctl.yaml or FLOWCTL_SETTINGS out of the tests."""
    monkeypatch.delenv("FLOWCTL_SETTINGS", raising=False)
    monkeypatch.chdir(tmp_path)
