# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Error taxonomy for configuration building."""


class ConfigurationError(Exception):
    """Base class for every fault that prevents a configuration from being built.

    Attributes:
        show_usage: Whether the entry point should print the usage text
            alongside the message.
    """

    def __init__(self, message: str, show_usage: bool = False):
        super().__init__(message)
        self.show_usage = show_usage


class UsageError(ConfigurationError):
    """Malformed or misordered command-line flags."""


class ResolutionError(ConfigurationError):
    """A hostname or hosts file could not be turned into endpoints."""


class ConsistencyError(ConfigurationError):
    """Flags that parse individually but cannot form a coherent topology."""
