# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Payload models for worker lifecycle events.

Each event kind has its own model, tagged by a literal ``kind`` field, and
``WorkerEvent`` is the discriminated union of all of them. Observers receive
instances of these models from ``flowctl.core.workers.WorkerGroup``.
"""

import time
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class _EventBase(BaseModel):
    """Fields common to every worker event."""

    model_config = ConfigDict(frozen=True)

    worker_id: int = Field(ge=0, description="Index of the worker raising the event")
    timestamp: float = Field(default_factory=time.time, description="Wall-clock time the event was raised")


class _OperatorEventBase(_EventBase):
    """Fields common to events about a specific operator (vertex) of a stage."""

    stage_id: int
    vertex_id: int


class WorkerStarting(_EventBase):
    """Raised by each worker when it first starts."""

    kind: Literal["starting"] = "starting"


class WorkerWaking(_EventBase):
    """Raised by a worker when it wakes from sleeping."""

    kind: Literal["waking"] = "waking"


class WorkItemStarting(_OperatorEventBase):
    """Raised immediately before a worker executes a work item."""

    kind: Literal["work_item_starting"] = "work_item_starting"


class WorkItemEnding(_OperatorEventBase):
    """Raised immediately after a worker executes a work item."""

    kind: Literal["work_item_ending"] = "work_item_ending"


class WorkItemEnqueued(_OperatorEventBase):
    """Raised immediately after a worker enqueues a work item."""

    kind: Literal["work_item_enqueued"] = "work_item_enqueued"
    is_local: bool = True


class WorkerSleeping(_EventBase):
    """Raised when a worker becomes idle because it has no work."""

    kind: Literal["sleeping"] = "sleeping"
    sleep_ms: int | None = None


class WorkerTerminating(_EventBase):
    """Raised when a worker has finished all work and the computation terminated."""

    kind: Literal["terminating"] = "terminating"


class RecordsReceived(_OperatorEventBase):
    """Raised when a batch of records is delivered to an operator."""

    kind: Literal["received_records"] = "received_records"
    channel_id: int
    record_count: int = Field(ge=0)


class RecordsSent(_OperatorEventBase):
    """Raised when a batch of records is sent by an operator."""

    kind: Literal["sent_records"] = "sent_records"
    channel_id: int
    record_count: int = Field(ge=0)


WorkerEvent = Annotated[
    Union[
        WorkerStarting,
        WorkerWaking,
        WorkItemStarting,
        WorkItemEnding,
        WorkItemEnqueued,
        WorkerSleeping,
        WorkerTerminating,
        RecordsReceived,
        RecordsSent,
    ],
    Field(discriminator="kind"),
]

_worker_event_adapter: TypeAdapter[WorkerEvent] = TypeAdapter(WorkerEvent)


def parse_worker_event(payload: dict) -> WorkerEvent:
    """Validate a JSON-style dict back into the matching event model."""
    return _worker_event_adapter.validate_python(payload)
