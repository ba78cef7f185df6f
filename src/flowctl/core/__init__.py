# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Core modules for flowctl.

This package contains:
- builder: ConfigurationBuilder and build() for command-line tokens
- config: The immutable Configuration value
- runtime: Endpoint dataclass and hostname resolution
- settings: flowctl.yaml loading and validation
- context: ProcessContext passed explicitly to configuration consumers
- workers: WorkerGroup event fan-out
- forwarding: HTTP forwarding of worker events
"""

from .builder import BuildResult, ConfigurationBuilder, build, build_or_raise, print_usage
from .config import INFINITE_TIMEOUT, Configuration
from .context import ProcessContext
from .errors import ConfigurationError, ConsistencyError, ResolutionError, UsageError
from .forwarding import EventForwarder
from .runtime import DEFAULT_PORT, Endpoint, get_hostname_ip, parse_endpoint
from .settings import FlowctlSettings, get_flowctl_setting, load_settings
from .workers import Subscription, WorkerGroup

__all__ = [
    # Builder
    "BuildResult",
    "ConfigurationBuilder",
    "build",
    "build_or_raise",
    "print_usage",
    # Config
    "Configuration",
    "INFINITE_TIMEOUT",
    "ProcessContext",
    # Errors
    "ConfigurationError",
    "ConsistencyError",
    "ResolutionError",
    "UsageError",
    # Runtime
    "DEFAULT_PORT",
    "Endpoint",
    "get_hostname_ip",
    "parse_endpoint",
    # Settings
    "FlowctlSettings",
    "get_flowctl_setting",
    "load_settings",
    # Workers
    "EventForwarder",
    "Subscription",
    "WorkerGroup",
]
