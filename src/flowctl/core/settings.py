# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Site settings loaded from ``flowctl.yaml``.

The settings file supplies cluster-wide defaults that command-line flags may
override, and the optional event forwarding endpoints.

Lookup order:
    1. Explicit path passed to load_settings()
    2. FLOWCTL_SETTINGS environment variable
    3. ./flowctl.yaml

Example:
    defaults:
      netstats_interface: eth0
      deadlock_timeout: 60000
    reporting:
      events:
        endpoint: "https://trace.example.com"
        batch_size: 64
"""

import logging
import os
from pathlib import Path
from typing import Any, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import UsageError

logger = logging.getLogger(__name__)

SETTINGS_ENV_VAR = "FLOWCTL_SETTINGS"
SETTINGS_FILENAME = "flowctl.yaml"


class ConfigDefaults(BaseModel):
    """Initial values for configuration fields, applied before flags are parsed."""

    model_config = ConfigDict(extra="forbid")

    netstats_interface: Optional[str] = None
    compaction_interval: Optional[int] = None
    deadlock_timeout: Optional[int] = None
    send_page_size: Optional[int] = Field(default=None, gt=0)
    send_page_count: Optional[int] = Field(default=None, gt=0)


class ReportingEventsConfig(BaseModel):
    """Trace collectors that receive forwarded worker events.

    ``endpoint`` is shorthand for a one-element ``endpoints`` list; both may
    be given.
    """

    model_config = ConfigDict(extra="forbid")

    endpoint: Optional[str] = None
    endpoints: List[str] = Field(default_factory=list)
    batch_size: int = Field(default=64, gt=0)
    timeout: float = Field(default=2.0, gt=0)

    @field_validator("endpoints", mode="before")
    @classmethod
    def none_is_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def urls(self) -> tuple[str, ...]:
        """All collector base URLs, without trailing slashes, first occurrence kept."""
        candidates = ([self.endpoint] if self.endpoint else []) + self.endpoints
        return tuple(dict.fromkeys(url.rstrip("/") for url in candidates))


class ReportingConfig(BaseModel):
    events: Optional[ReportingEventsConfig] = None


class FlowctlSettings(BaseModel):
    """Top-level schema of ``flowctl.yaml``."""

    model_config = ConfigDict(extra="forbid")

    defaults: ConfigDefaults = Field(default_factory=ConfigDefaults)
    reporting: Optional[ReportingConfig] = None


def find_settings_file(path: Optional[Path] = None) -> Optional[Path]:
    """Locate the settings file, or None if there is none."""
    if path is not None:
        return Path(path)

    env_path = os.environ.get(SETTINGS_ENV_VAR)
    if env_path:
        return Path(env_path)

    local = Path.cwd() / SETTINGS_FILENAME
    if local.exists():
        return local
    return None


def load_settings(path: Optional[Path] = None) -> FlowctlSettings:
    """Load and validate settings.

    A missing default settings file yields empty settings; an explicitly
    named file that cannot be read is an error.

    Raises:
        UsageError: If the file cannot be read, is not valid YAML, or does
            not match the settings schema.
    """
    settings_path = find_settings_file(path)
    if settings_path is None:
        return FlowctlSettings()

    try:
        with open(settings_path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, UnicodeDecodeError) as err:
        raise UsageError(f"cannot read settings file, {settings_path}") from err
    except yaml.YAMLError as err:
        raise UsageError(f"settings file {settings_path} is not valid YAML: {err}") from err

    try:
        settings = FlowctlSettings.model_validate(raw)
    except ValidationError as err:
        raise UsageError(f"invalid settings in {settings_path}: {err}") from err

    logger.debug("Loaded settings from %s", settings_path)
    return settings


def get_flowctl_setting(key: str, default: Any = None, settings: Optional[FlowctlSettings] = None) -> Any:
    """Read a dotted key (e.g. ``"defaults.netstats_interface"``) from settings.

    Returns default when any component is missing or None.
    """
    if settings is None:
        settings = load_settings()

    value: Any = settings
    for part in key.split("."):
        value = getattr(value, part, None)
        if value is None:
            return default
    return value
