# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Shared contract between the configuration builder, the scheduling runtime and
worker event observers.

This package defines the canonical enums and Pydantic event models.
It has no internal imports and depends only on pydantic.

Usage (runtime side):
    from flowctl.contract import WorkItemStarting
    group.publish(WorkItemStarting(worker_id=0, stage_id=3, vertex_id=1))

Usage (observer side):
    from flowctl.contract import WorkerEventKind, parse_worker_event
"""

from flowctl.contract.enums import BroadcastProtocol, SendBufferMode, WorkerEventKind
from flowctl.contract.events import (
    RecordsReceived,
    RecordsSent,
    WorkerEvent,
    WorkerSleeping,
    WorkerStarting,
    WorkerTerminating,
    WorkerWaking,
    WorkItemEnding,
    WorkItemEnqueued,
    WorkItemStarting,
    parse_worker_event,
)

__all__ = [
    "BroadcastProtocol",
    "SendBufferMode",
    "WorkerEventKind",
    "WorkerEvent",
    "WorkerStarting",
    "WorkerWaking",
    "WorkItemStarting",
    "WorkItemEnding",
    "WorkItemEnqueued",
    "WorkerSleeping",
    "WorkerTerminating",
    "RecordsReceived",
    "RecordsSent",
    "parse_worker_event",
]
