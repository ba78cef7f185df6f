# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Process-lifetime context.

ProcessContext is created once at startup and passed explicitly to components
that need the configuration but cannot receive it through their own
constructor arguments (for example, generated code factories). There is no
module-level instance: whoever needs it is handed it.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from .builder import build_or_raise
from .config import Configuration
from .forwarding import EventForwarder
from .settings import FlowctlSettings, load_settings
from .workers import WorkerGroup


@dataclass(frozen=True)
class ProcessContext:
    """Configuration and worker group of the running process.

    Attributes:
        configuration: The process configuration
        worker_group: Event fan-out for this process's workers, if created
        settings: Site settings the configuration was built with
        forwarder: HTTP forwarder attached to worker_group, when the settings
            name trace collectors
        app_args: Command-line tokens not consumed by the builder
    """

    configuration: Configuration
    worker_group: Optional[WorkerGroup] = None
    settings: Optional[FlowctlSettings] = None
    forwarder: Optional[EventForwarder] = None
    app_args: tuple[str, ...] = ()

    @classmethod
    def from_args(
        cls,
        args: Sequence[str],
        settings_path: Optional[Path] = None,
        with_worker_group: bool = True,
    ) -> "ProcessContext":
        """Load settings, build the configuration, and create the worker group.

        If ``reporting.events`` names any collectors, an EventForwarder is
        attached to the worker group.

        Raises:
            ConfigurationError: If settings or arguments are invalid.
        """
        settings = load_settings(settings_path)
        configuration, app_args = build_or_raise(args, settings=settings)
        worker_group = WorkerGroup(configuration.worker_count) if with_worker_group else None

        forwarder = None
        if worker_group is not None and settings.reporting is not None:
            forwarder = EventForwarder.from_settings(settings.reporting.events, configuration.process_id)
            if forwarder is not None:
                forwarder.attach(worker_group)

        return cls(
            configuration=configuration,
            worker_group=worker_group,
            settings=settings,
            forwarder=forwarder,
            app_args=tuple(app_args),
        )

    def close(self) -> None:
        if self.worker_group is not None:
            self.worker_group.close()
        # After the group, so events it flushed are still forwarded
        if self.forwarder is not None:
            self.forwarder.close()
