# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Endpoint values and hostname resolution.

This module turns ``host[:port]`` tokens into concrete IPv4 endpoints.
Only IPv4 addresses are accepted, and link-local (169.254.0.0/16)
auto-configuration addresses are skipped.
"""

import ipaddress
import logging
import socket
from dataclasses import dataclass

from .errors import ResolutionError, UsageError

logger = logging.getLogger(__name__)

DEFAULT_PORT = 2101
MAX_PORT = 65535


@dataclass(frozen=True)
class Endpoint:
    """Resolved network location of one process.

    Attributes:
        address: Dotted IPv4 address
        port: TCP port the process listens on
    """

    address: str
    port: int

    def __str__(self) -> str:
        return f"{self.address}:{self.port}"


def split_host_port(token: str, default_port: int = DEFAULT_PORT) -> tuple[str, int]:
    """Split a ``host[:port]`` token on its first colon.

    Args:
        token: Host token, e.g. ``"node01:2102"`` or ``"node01"``
        default_port: Port used when the token has no colon

    Returns:
        (hostname, port) tuple. The port is not range-checked here.

    Raises:
        UsageError: If the port component is not an integer.
    """
    hostname, sep, port_text = token.partition(":")
    if not sep:
        return hostname, default_port
    try:
        return hostname, int(port_text)
    except ValueError as err:
        raise UsageError(f"invalid port number ({port_text})") from err


def is_autoconf(address: str) -> bool:
    """Check whether an IPv4 address is a link-local auto-configuration address."""
    return ipaddress.IPv4Address(address).is_link_local


def get_hostname_ip(hostname: str) -> str:
    """Resolve hostname to its first usable IPv4 address.

    Addresses are considered in the order the platform resolver returns them.

    Args:
        hostname: Host name or literal address to resolve

    Returns:
        IPv4 address as string

    Raises:
        ResolutionError: If the name does not resolve, or resolves only to
            IPv6 or link-local addresses.
    """
    if not hostname:
        raise ResolutionError("could not resolve hostname (empty host name)")

    try:
        infos = socket.getaddrinfo(hostname, None)
    except (OSError, UnicodeError) as err:
        raise ResolutionError(f"could not resolve hostname {hostname}") from err

    for family, _, _, _, sockaddr in infos:
        if family != socket.AF_INET:
            continue
        address = sockaddr[0]
        if is_autoconf(address):
            logger.debug("Skipping auto-configuration address %s for %s", address, hostname)
            continue
        return address

    raise ResolutionError(
        f"could not find an IPv4 address for hostname {hostname} (IPv6 is not currently supported)"
    )


def resolve_endpoint(hostname: str, port: int, process_id: int | None = None) -> Endpoint:
    """Resolve a hostname and validate its port.

    Args:
        hostname: Host name to resolve
        port: Port, must be in 0..65535
        process_id: Index of the process this endpoint belongs to, used in
            error messages

    Raises:
        UsageError: If the port is out of range.
        ResolutionError: If the hostname cannot be resolved.
    """
    address = get_hostname_ip(hostname)
    if not 0 <= port <= MAX_PORT:
        if process_id is None:
            raise UsageError(f"invalid port ({port})")
        raise UsageError(f"invalid port ({port}) for process {process_id}")
    return Endpoint(address=address, port=port)


def parse_endpoint(token: str, process_id: int | None = None) -> Endpoint:
    """Parse and resolve a ``host[:port]`` token into an Endpoint."""
    hostname, port = split_host_port(token)
    return resolve_endpoint(hostname, port, process_id=process_id)
