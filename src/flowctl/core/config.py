# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Immutable runtime configuration for one process of a distributed computation.

A Configuration is built once per process by ``flowctl.core.builder`` and then
handed, read-only, to every subsystem that needs topology, buffering or
networking parameters. It is safe to share across worker threads.
"""

from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Optional

from flowctl.contract import BroadcastProtocol, SendBufferMode

from .errors import ConsistencyError
from .runtime import Endpoint

# Sentinel for "no timeout"
INFINITE_TIMEOUT = -1

DEFAULT_COMPACTION_INTERVAL_MS = 1000
DEFAULT_SEND_PAGE_SIZE = 1 << 14
DEFAULT_SEND_PAGE_COUNT = 1 << 16
DEFAULT_NETSTATS_INTERFACE = "Ethernet 2"


@dataclass(frozen=True)
class Configuration:
    """Runtime configuration of the local process.

    Attributes:
        endpoints: Network addresses of all processes, indexed by process ID
        process_id: ID of the local process (starting at 0)
        worker_count: Number of workers (CPUs used) in the local process.
            All processes in a computation must use the same worker count.
        replication: Number of secondary copies of each stage; 0 disables
            replication
        compaction_interval: Period in milliseconds for collection state
            compaction
        deadlock_timeout: Milliseconds a process may sleep before diagnostics
            are printed, or INFINITE_TIMEOUT
        multiple_local_processes: True if processes share a machine, so
            pinned workers of later processes must use other CPUs
        broadcast: Protocol for broadcasting control messages
        broadcast_address: Address for broadcast control messages. Required
            unless broadcast is TCP only.
        send_buffer_policy: How send buffer pages are pooled
    """

    endpoints: tuple[Endpoint, ...]
    process_id: int = 0
    worker_count: int = 1
    replication: int = 0

    compaction_interval: int = DEFAULT_COMPACTION_INTERVAL_MS
    deadlock_timeout: int = INFINITE_TIMEOUT
    multiple_local_processes: bool = True

    centralizer_process_id: int = 0
    centralizer_thread_id: int = 0

    # Progress tracking and scheduling
    distributed_progress_tracker: bool = False
    impersonation: bool = False
    dont_use_high_priority_queue: bool = False
    use_broadcast_wakeup: bool = False
    use_network_broadcast_wakeup: bool = False

    # Sockets
    duplex_sockets: bool = False
    nagling: bool = False
    keepalives: bool = False

    # Reporting
    domain_reporting: bool = False
    inline_reporting: bool = False
    aggregate_reporting: bool = False
    collect_net_stats: bool = False
    netstats_interface_name: str = DEFAULT_NETSTATS_INTERFACE

    # Serialization
    variable_length_serialization: bool = False
    one_time_per_message_serialization: bool = True

    # Broadcast
    broadcast: BroadcastProtocol = BroadcastProtocol.TCP_ONLY
    broadcast_address: Optional[Endpoint] = None

    # Send buffers
    send_buffer_policy: SendBufferMode = SendBufferMode.PER_REMOTE_PROCESS
    send_page_size: int = DEFAULT_SEND_PAGE_SIZE
    send_page_count: int = DEFAULT_SEND_PAGE_COUNT

    def __post_init__(self):
        # Normalize so callers may pass a list
        object.__setattr__(self, "endpoints", tuple(self.endpoints))

        if not self.endpoints:
            raise ConsistencyError("configuration requires at least one endpoint")
        if not 0 <= self.process_id < len(self.endpoints):
            raise ConsistencyError(
                f"process ID {self.process_id} is out of range for {len(self.endpoints)} processes"
            )
        if self.worker_count < 1:
            raise ConsistencyError(f"worker count must be at least 1 (got {self.worker_count})")
        if self.replication < 0:
            raise ConsistencyError(f"replication must not be negative (got {self.replication})")
        if self.broadcast != BroadcastProtocol.TCP_ONLY and self.broadcast_address is None:
            raise ConsistencyError("must set --broadcastaddress to use non-TCP broadcast protocol")

    @property
    def processes(self) -> int:
        """Number of processes in this computation."""
        return len(self.endpoints)

    @property
    def local_endpoint(self) -> Endpoint:
        """Endpoint of the local process."""
        return self.endpoints[self.process_id]

    @property
    def has_deadlock_timeout(self) -> bool:
        return self.deadlock_timeout != INFINITE_TIMEOUT

    @classmethod
    def default(cls) -> "Configuration":
        """Build the configuration implied by an empty argument list."""
        from .builder import build_or_raise

        config, _ = build_or_raise([])
        return config

    def with_overrides(self, **changes: Any) -> "Configuration":
        """Return a copy with the given fields replaced; invariants are rechecked."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Plain-data view suitable for YAML or JSON output."""
        data = asdict(self)
        data["endpoints"] = [str(ep) for ep in self.endpoints]
        data["broadcast_address"] = str(self.broadcast_address) if self.broadcast_address else None
        data["broadcast"] = self.broadcast.value
        data["send_buffer_policy"] = self.send_buffer_policy.value
        data["processes"] = self.processes
        return data
