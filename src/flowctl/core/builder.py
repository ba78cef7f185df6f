# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Build a Configuration from command-line tokens.

The builder makes a single left-to-right pass over the tokens. Each recognized
flag consumes itself plus a fixed number of value tokens (for ``--hosts``, as
many as the previously parsed process count). Unrecognized tokens are passed
through untouched, in order, so the application can parse them afterwards.

Building is all-or-nothing: the result holds either a fully resolved
Configuration or the ConfigurationError that stopped it. Nothing here exits
the process; that decision belongs to the entry point.

Usage:
    result = build(sys.argv[1:])
    if not result.ok:
        ...report result.error and exit...
    config, app_args = result.configuration, result.remaining_args
"""

import logging
import sys
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, TextIO

from flowctl.contract import BroadcastProtocol, SendBufferMode

from .config import Configuration
from .errors import ConfigurationError, ConsistencyError, ResolutionError, UsageError
from .runtime import DEFAULT_PORT, Endpoint, parse_endpoint, split_host_port
from .settings import FlowctlSettings

logger = logging.getLogger(__name__)

HOSTS_FILE_PREFIX = "@"

USAGE_TEXT = f"""\
flowctl options:
\t--procid,-p\tProcess ID (default 0)
\t--threads,-t\tNumber of threads (default 1)
\t--numprocs,-n\tNumber of processes (default 1)
\t--hosts,-h\tList of hostnames in the form host:port, or {HOSTS_FILE_PREFIX}file with one host:port per line
\t--local\t\tShorthand for -h localhost:{DEFAULT_PORT} localhost:{DEFAULT_PORT + 1} ... localhost:{DEFAULT_PORT - 1}+numprocs
\t--reachability\tMilliseconds between collection compactions
\t--deadlocktimeout\tMilliseconds asleep before printing deadlock diagnostics
\t--broadcastprotocol\ttcp|udp|both (default tcp)
\t--broadcastaddress\thost:port for broadcast control messages
\t--sendpool\tglobal|process|worker (default process)
Runs single-process by default, optionally set -t for number of threads
To run multiprocess, specify -p, -n, and -h
   Example for 2 machines, M1 and M2, using TCP port {DEFAULT_PORT}:
      M1> app -p 0 -n 2 -h M1:{DEFAULT_PORT} M2:{DEFAULT_PORT}
      M2> app -p 1 -n 2 -h M1:{DEFAULT_PORT} M2:{DEFAULT_PORT}
To run multiprocess on one machine, specify -p, -n and --local for each process
"""

_BROADCAST_PROTOCOLS: Dict[str, BroadcastProtocol] = {
    "tcp": BroadcastProtocol.TCP_ONLY,
    "tcponly": BroadcastProtocol.TCP_ONLY,
    "udp": BroadcastProtocol.UDP_ONLY,
    "udponly": BroadcastProtocol.UDP_ONLY,
    "tcpudp": BroadcastProtocol.TCP_UDP,
    "udptcp": BroadcastProtocol.TCP_UDP,
    "both": BroadcastProtocol.TCP_UDP,
}

_SEND_POOLS: Dict[str, SendBufferMode] = {
    "global": SendBufferMode.GLOBAL,
    "process": SendBufferMode.PER_REMOTE_PROCESS,
    "worker": SendBufferMode.PER_WORKER,
}

# flag -> (field, value); flags that take no value
_SWITCHES: Dict[str, tuple[str, bool]] = {
    "--varlengthint": ("variable_length_serialization", True),
    "--basic": ("one_time_per_message_serialization", False),
    "--distributedprogresstracker": ("distributed_progress_tracker", True),
    "--impersonation": ("impersonation", True),
    "--duplex": ("duplex_sockets", True),
    "--nagling": ("nagling", True),
    "--keepalives": ("keepalives", True),
    "--nothighpriorityqueue": ("dont_use_high_priority_queue", True),
    "--domainreporting": ("domain_reporting", True),
    "--inlinereporting": ("inline_reporting", True),
    "--aggregatereporting": ("aggregate_reporting", True),
    "--netstats": ("collect_net_stats", True),
    "--broadcastwakeup": ("use_broadcast_wakeup", True),
    "--netbroadcastwakeup": ("use_network_broadcast_wakeup", True),
}

_SWITCH_MESSAGES: Dict[str, str] = {
    "--keepalives": "TCP keep-alives enabled",
    "--broadcastwakeup": "Using broadcast wakeup",
    "--netbroadcastwakeup": "Using broadcast wakeup for networking threads",
}

# flag -> field; flags followed by one integer
_INTEGER_OPTIONS: Dict[str, str] = {
    "--threads": "worker_count",
    "-t": "worker_count",
    "--reachability": "compaction_interval",
    "--deadlocktimeout": "deadlock_timeout",
    "--sendpagesize": "send_page_size",
    "--sendpagecount": "send_page_count",
}


def usage_text() -> str:
    return USAGE_TEXT


def print_usage(stream: Optional[TextIO] = None) -> None:
    """Write the usage summary to the diagnostic stream (stderr by default)."""
    (stream or sys.stderr).write(USAGE_TEXT)


@dataclass(frozen=True)
class BuildResult:
    """Outcome of a build: a configuration plus pass-through args, or an error."""

    configuration: Optional[Configuration] = None
    remaining_args: tuple[str, ...] = ()
    error: Optional[ConfigurationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> tuple[Configuration, list[str]]:
        """Return (configuration, remaining_args), raising the error if the build failed."""
        if self.error is not None:
            raise self.error
        assert self.configuration is not None
        return self.configuration, list(self.remaining_args)


@dataclass
class _ScanState:
    """Mutable state of one left-to-right pass over the tokens."""

    args: Sequence[str]
    fields: Dict[str, Any] = field(default_factory=dict)
    host_tokens: List[str] = field(default_factory=lambda: [f"localhost:{DEFAULT_PORT}"])
    remaining: List[str] = field(default_factory=list)
    processes: int = 1
    pos: int = 0
    proc_id_set: bool = False
    num_procs_set: bool = False
    hosts_flag: Optional[str] = None

    @property
    def hosts_set(self) -> bool:
        return self.hosts_flag is not None

    def take(self, flag: str) -> str:
        """Consume and return the value token following flag."""
        if self.pos + 1 >= len(self.args):
            raise UsageError(f"missing value for {flag}", show_usage=True)
        value = self.args[self.pos + 1]
        self.pos += 2
        return value

    def take_int(self, flag: str) -> int:
        value = self.take(flag)
        try:
            return int(value)
        except ValueError as err:
            raise UsageError(f"{flag} expects an integer (got {value!r})", show_usage=True) from err


class ConfigurationBuilder:
    """Parses command-line tokens into a Configuration.

    Args:
        settings: Site settings whose ``defaults`` seed the configuration
            before flags are applied
        usage_stream: Where ``--help`` writes the usage text (default stderr)
    """

    def __init__(self, settings: Optional[FlowctlSettings] = None, usage_stream: Optional[TextIO] = None):
        self.settings = settings or FlowctlSettings()
        self.usage_stream = usage_stream
        self._handlers: Dict[str, Callable[[_ScanState, str], None]] = {
            "--usage": self._on_usage,
            "--help": self._on_usage,
            "-?": self._on_usage,
            "--procid": self._on_procid,
            "-p": self._on_procid,
            "--numprocs": self._on_numprocs,
            "-n": self._on_numprocs,
            "--hosts": self._on_hosts,
            "-h": self._on_hosts,
            "--local": self._on_local,
            "--netstatsinterface": self._on_netstats_interface,
            "--broadcastprotocol": self._on_broadcast_protocol,
            "--broadcastaddress": self._on_broadcast_address,
            "--sendpool": self._on_send_pool,
        }
        for flag in _SWITCHES:
            self._handlers[flag] = self._on_switch
        for flag in _INTEGER_OPTIONS:
            self._handlers[flag] = self._on_integer

    def build(self, args: Sequence[str]) -> BuildResult:
        """Build a configuration; never raises ConfigurationError."""
        try:
            config, remaining = self._build(args)
        except ConfigurationError as err:
            logger.error("Error: %s", err)
            return BuildResult(error=err)
        return BuildResult(configuration=config, remaining_args=tuple(remaining))

    def _build(self, args: Sequence[str]) -> tuple[Configuration, List[str]]:
        state = _ScanState(args=list(args), fields=self._initial_fields())

        while state.pos < len(state.args):
            token = state.args[state.pos]
            handler = self._handlers.get(token)
            if handler is None:
                state.remaining.append(token)
                state.pos += 1
            else:
                handler(state, token)

        self._check_consistency(state)

        endpoints, multiple_local = self._resolve_endpoints(state.host_tokens)
        state.fields["endpoints"] = endpoints
        state.fields["multiple_local_processes"] = multiple_local

        # Configuration checks the process ID against the endpoint count
        return Configuration(**state.fields), state.remaining

    def _initial_fields(self) -> Dict[str, Any]:
        defaults = self.settings.defaults
        fields: Dict[str, Any] = {}
        if defaults.netstats_interface is not None:
            fields["netstats_interface_name"] = defaults.netstats_interface
        for name in ("compaction_interval", "deadlock_timeout", "send_page_size", "send_page_count"):
            value = getattr(defaults, name)
            if value is not None:
                fields[name] = value
        return fields

    # ------------------------------------------------------------------
    # Flag handlers
    # ------------------------------------------------------------------

    def _on_usage(self, state: _ScanState, flag: str) -> None:
        print_usage(self.usage_stream)
        state.pos += 1

    def _on_procid(self, state: _ScanState, flag: str) -> None:
        process_id = state.take_int(flag)
        if process_id < 0:
            raise UsageError(f"process ID must not be negative (got {process_id})", show_usage=True)
        state.fields["process_id"] = process_id
        state.proc_id_set = True

    def _on_numprocs(self, state: _ScanState, flag: str) -> None:
        processes = state.take_int(flag)
        if processes < 1:
            raise UsageError(f"number of processes must be at least 1 (got {processes})", show_usage=True)
        state.processes = processes
        state.num_procs_set = True

    def _check_hosts_allowed(self, state: _ScanState, flag: str) -> None:
        if not state.num_procs_set:
            raise UsageError(f"--numprocs must be specified before {flag}", show_usage=True)
        if state.hosts_set:
            previous = "--local" if state.hosts_flag == "--local" else "--hosts"
            current = "--local" if flag == "--local" else "--hosts"
            if previous == current:
                raise UsageError(f"{current} may only be given once", show_usage=True)
            raise UsageError(f"{current} cannot be combined with {previous}", show_usage=True)

    def _on_hosts(self, state: _ScanState, flag: str) -> None:
        self._check_hosts_allowed(state, flag)

        if state.pos + 1 < len(state.args) and state.args[state.pos + 1].startswith(HOSTS_FILE_PREFIX):
            filename = state.take(flag)[len(HOSTS_FILE_PREFIX):]
            state.host_tokens = read_hosts_file(filename, state.processes)
        else:
            start = state.pos + 1
            tokens = list(state.args[start:start + state.processes])
            if len(tokens) < state.processes:
                raise UsageError(
                    f"{flag} expects {state.processes} hosts but only {len(tokens)} were given",
                    show_usage=True,
                )
            state.host_tokens = tokens
            state.pos = start + state.processes
        state.hosts_flag = flag

    def _on_local(self, state: _ScanState, flag: str) -> None:
        self._check_hosts_allowed(state, flag)
        state.host_tokens = [f"localhost:{DEFAULT_PORT + k}" for k in range(state.processes)]
        state.hosts_flag = flag
        state.pos += 1

    def _on_switch(self, state: _ScanState, flag: str) -> None:
        name, value = _SWITCHES[flag]
        state.fields[name] = value
        if flag in _SWITCH_MESSAGES:
            logger.info(_SWITCH_MESSAGES[flag])
        state.pos += 1

    def _on_integer(self, state: _ScanState, flag: str) -> None:
        value = state.take_int(flag)
        name = _INTEGER_OPTIONS[flag]
        if name == "worker_count" and value < 1:
            raise UsageError(f"number of threads must be at least 1 (got {value})", show_usage=True)
        state.fields[name] = value

    def _on_netstats_interface(self, state: _ScanState, flag: str) -> None:
        # Single token only; multi-word interface names must come from settings
        state.fields["netstats_interface_name"] = state.take(flag)

    def _on_broadcast_protocol(self, state: _ScanState, flag: str) -> None:
        value = state.take(flag)
        protocol = _BROADCAST_PROTOCOLS.get(value.lower())
        if protocol is None:
            logger.warning("Warning: unknown broadcast protocol (%s)", value)
            logger.warning("Valid broadcast protocols are: tcp, udp, both")
            protocol = BroadcastProtocol.TCP_ONLY
        state.fields["broadcast"] = protocol

    def _on_broadcast_address(self, state: _ScanState, flag: str) -> None:
        value = state.take(flag)
        try:
            state.fields["broadcast_address"] = parse_endpoint(value)
        except ConfigurationError as err:
            raise type(err)(f"cannot set broadcast address to {value}: {err}") from err

    def _on_send_pool(self, state: _ScanState, flag: str) -> None:
        value = state.take(flag)
        policy = _SEND_POOLS.get(value.lower())
        if policy is None:
            logger.warning("Warning: unknown send buffer policy (%s)", value)
            logger.warning("Valid send buffer policies are: global, process, worker")
            policy = SendBufferMode.PER_REMOTE_PROCESS
        state.fields["send_buffer_policy"] = policy

    # ------------------------------------------------------------------
    # Post-scan validation and resolution
    # ------------------------------------------------------------------

    def _check_consistency(self, state: _ScanState) -> None:
        if state.proc_id_set and not state.num_procs_set:
            raise ConsistencyError(
                "number of processes not supplied (use the --numprocs option, followed by an integer)",
                show_usage=True,
            )

        if state.num_procs_set and state.processes > 1 and not state.hosts_set:
            raise ConsistencyError(
                f"list of hosts not supplied (use the --hosts option, followed by {state.processes} hostnames)"
            )

        broadcast = state.fields.get("broadcast", BroadcastProtocol.TCP_ONLY)
        if broadcast != BroadcastProtocol.TCP_ONLY and state.fields.get("broadcast_address") is None:
            raise ConsistencyError("must set --broadcastaddress to use non-TCP broadcast protocol")

    def _resolve_endpoints(self, host_tokens: Sequence[str]) -> tuple[tuple[Endpoint, ...], bool]:
        """Resolve host tokens in process order and detect co-location.

        Co-location compares host names as written, not resolved addresses:
        two spellings of the same machine count as different hosts.
        """
        first_host = host_tokens[0].partition(":")[0]
        single_machine = True

        endpoints = []
        for process_id, token in enumerate(host_tokens):
            hostname, _ = split_host_port(token)
            if hostname != first_host:
                single_machine = False
            endpoints.append(parse_endpoint(token, process_id=process_id))
            logger.debug("Process %d -> %s (%s)", process_id, endpoints[-1], token)

        return tuple(endpoints), single_machine


def read_hosts_file(filename: str, count: int) -> List[str]:
    """Read the first count ``host[:port]`` lines of a hosts file.

    Raises:
        ResolutionError: If the file cannot be opened or decoded, or has fewer
            than count lines.
    """
    try:
        with open(filename, encoding="utf-8") as f:
            lines = []
            for _ in range(count):
                line = f.readline()
                if not line:
                    raise ResolutionError(f"insufficient number of hosts in the given hosts file, {filename}")
                lines.append(line.strip())
    except (OSError, UnicodeDecodeError, ValueError) as err:
        # ValueError: embedded NUL in the path
        raise ResolutionError(f"cannot read hosts file, {filename}") from err
    return lines


def build(args: Sequence[str], settings: Optional[FlowctlSettings] = None) -> BuildResult:
    """Build a configuration from command-line tokens.

    Args:
        args: Command-line tokens, without the program name
        settings: Optional site settings supplying defaults

    Returns:
        BuildResult with the configuration and pass-through tokens, or the error
    """
    return ConfigurationBuilder(settings=settings).build(args)


def build_or_raise(
    args: Sequence[str], settings: Optional[FlowctlSettings] = None
) -> tuple[Configuration, List[str]]:
    """Like build(), but raises the ConfigurationError on failure."""
    return build(args, settings=settings).unwrap()
