# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Forward worker events to external trace collectors over HTTP.

The forwarder is an ordinary WorkerGroup observer, but it never does network
I/O on the group's dispatch thread: handle() only appends to a bounded queue.
A delivery thread drains the queue and POSTs batches, as JSON arrays, to
``{endpoint}/api/processes/{process_id}/events`` on every configured endpoint.

Delivery is best effort. A full queue drops the event; HTTP errors and
unreachable collectors are logged at debug level and the batch is discarded.

Configuration (in flowctl.yaml):
    reporting:
      events:
        endpoints:
          - "https://trace.example.com"
        batch_size: 64
"""

import logging
import queue
import threading
from typing import TYPE_CHECKING, Iterable, List, Optional

import requests

from flowctl.contract import WorkerEvent, WorkerEventKind

if TYPE_CHECKING:
    from .settings import ReportingEventsConfig
    from .workers import Subscription, WorkerGroup

logger = logging.getLogger(__name__)

_STOP = object()


class EventForwarder:
    """Batched, fire-and-forget HTTP forwarding of worker events.

    Args:
        process_id: ID of the local process, part of the collector URL
        endpoints: Base URLs of the collectors
        batch_size: Most events sent in one request
        max_pending: Queue bound; events beyond it are dropped
        timeout: Per-request timeout in seconds
        session: HTTP session to send with (a new one by default)
    """

    def __init__(
        self,
        process_id: int,
        endpoints: Iterable[str],
        batch_size: int = 64,
        max_pending: int = 4096,
        timeout: float = 2.0,
        session: Optional[requests.Session] = None,
    ):
        self.process_id = process_id
        self.endpoints = tuple(endpoints)
        if not self.endpoints:
            raise ValueError("EventForwarder needs at least one endpoint")
        self.batch_size = batch_size
        self.timeout = timeout
        self.dropped = 0
        self._session = session or requests.Session()
        self._pending: "queue.Queue[object]" = queue.Queue(maxsize=max_pending)
        self._thread = threading.Thread(target=self._run, name=f"event-forwarder-{process_id}", daemon=True)
        self._thread.start()
        logger.info("Worker event forwarding enabled: %s", ", ".join(self.endpoints))

    @classmethod
    def from_settings(
        cls, events: "ReportingEventsConfig | None", process_id: int
    ) -> Optional["EventForwarder"]:
        """Create a forwarder, or None when no endpoints are configured."""
        if events is None or not events.urls:
            return None
        return cls(
            process_id=process_id,
            endpoints=events.urls,
            batch_size=events.batch_size,
            timeout=events.timeout,
        )

    def attach(
        self,
        group: "WorkerGroup",
        kinds: Optional[Iterable[WorkerEventKind]] = None,
    ) -> "Subscription":
        return group.subscribe(self.handle, kinds=kinds)

    def handle(self, event: WorkerEvent) -> None:
        """Queue event for delivery; never blocks."""
        try:
            self._pending.put_nowait(event)
        except queue.Full:
            self.dropped += 1
            if self.dropped == 1 or self.dropped % 1000 == 0:
                logger.warning("Event forwarding queue full, %d events dropped so far", self.dropped)

    def _next_batch(self) -> tuple[List[WorkerEvent], bool]:
        """Block for one event, then take whatever else is queued up to batch_size."""
        batch: List[WorkerEvent] = []
        item = self._pending.get()
        while True:
            if item is _STOP:
                return batch, True
            batch.append(item)
            if len(batch) >= self.batch_size:
                return batch, False
            try:
                item = self._pending.get_nowait()
            except queue.Empty:
                return batch, False

    def _run(self) -> None:
        stopping = False
        while not stopping:
            batch, stopping = self._next_batch()
            if batch:
                self._send(batch)

    def _send(self, batch: List[WorkerEvent]) -> None:
        payload = [event.model_dump(mode="json") for event in batch]
        for endpoint in self.endpoints:
            url = f"{endpoint}/api/processes/{self.process_id}/events"
            try:
                response = self._session.post(url, json=payload, timeout=self.timeout)
                if not response.ok:
                    logger.debug("Forwarding %d events to %s failed: HTTP %d", len(batch), endpoint, response.status_code)
            except requests.exceptions.RequestException as e:
                logger.debug("Forwarding %d events to %s error (ignored): %s", len(batch), endpoint, e)

    def close(self, timeout: Optional[float] = None) -> None:
        """Send what is already queued, then stop the delivery thread."""
        if not self._thread.is_alive():
            return
        # Blocking put: the stop marker must not be dropped on a full queue
        self._pending.put(_STOP)
        self._thread.join(timeout)
        self._session.close()
