"""
flowctl - Runtime configuration and worker events for distributed dataflow processes.

Every process of a distributed computation builds one immutable Configuration
from its command line, then hands it to the subsystems that need topology,
buffering or networking parameters. Schedulers expose a WorkerGroup so that
observers can follow worker lifecycle events.

Key modules:
- core.builder: Command-line parsing into a Configuration
- core.config: The Configuration value
- core.runtime: Endpoint and hostname resolution
- core.workers: WorkerGroup event fan-out
- contract: Enums and event payload models
- cli.describe: The flowctl console script

Usage:
    # Print the configuration for process 0 of 2
    flowctl -p 0 -n 2 -h node01:2101 node02:2101
"""

__version__ = "0.2.0"

from .contract import BroadcastProtocol, SendBufferMode, WorkerEvent, WorkerEventKind
from .core.builder import BuildResult, ConfigurationBuilder, build, build_or_raise
from .core.config import INFINITE_TIMEOUT, Configuration
from .core.context import ProcessContext
from .core.errors import ConfigurationError, ConsistencyError, ResolutionError, UsageError
from .core.runtime import Endpoint
from .core.workers import WorkerGroup

__all__ = [
    # Version
    "__version__",
    # Builder
    "BuildResult",
    "ConfigurationBuilder",
    "build",
    "build_or_raise",
    # Config
    "Configuration",
    "INFINITE_TIMEOUT",
    "Endpoint",
    "ProcessContext",
    "BroadcastProtocol",
    "SendBufferMode",
    # Errors
    "ConfigurationError",
    "ConsistencyError",
    "ResolutionError",
    "UsageError",
    # Worker events
    "WorkerEvent",
    "WorkerEventKind",
    "WorkerGroup",
]
