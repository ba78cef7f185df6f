# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Fire-and-forget fan-out of worker lifecycle events.

A WorkerGroup is exposed once per scheduling runtime. Workers publish events
describing their own activity; any number of observers (tracing,
instrumentation, diagnostics) subscribe to some or all event kinds.

Publishing never blocks on observers: events are handed to a single dispatch
thread, which delivers them to each subscriber in publish order. A failing
observer is logged and skipped; its exception never reaches the worker.

Usage:
    with WorkerGroup(count=config.worker_count) as group:
        group.subscribe(tracer.on_event, kinds={WorkerEventKind.SLEEPING})
        group.publish(WorkerSleeping(worker_id=0))
"""

import itertools
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, FrozenSet, Iterable, Optional

from flowctl.contract import WorkerEvent, WorkerEventKind

logger = logging.getLogger(__name__)

EventHandler = Callable[[WorkerEvent], None]


@dataclass(frozen=True)
class _Subscriber:
    subscription_id: int
    handler: EventHandler
    kinds: Optional[FrozenSet[WorkerEventKind]]

    def wants(self, event: WorkerEvent) -> bool:
        return self.kinds is None or WorkerEventKind(event.kind) in self.kinds


@dataclass
class Subscription:
    """Handle returned by WorkerGroup.subscribe(); cancel() detaches the handler."""

    group: "WorkerGroup"
    subscription_id: int
    _active: bool = field(default=True, repr=False)

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if self._active:
            self.group._unsubscribe(self.subscription_id)
            self._active = False


class WorkerGroup:
    """The set of workers in one process, as seen by event observers.

    Args:
        count: Number of workers in the group
    """

    def __init__(self, count: int):
        if count < 1:
            raise ValueError(f"worker group needs at least one worker (got {count})")
        self.count = count
        self._lock = threading.Lock()
        self._ids = itertools.count()
        # Replaced wholesale on every change so publishers can read it without locking
        self._subscribers: tuple[_Subscriber, ...] = ()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="worker-events")
        self._closed = False
        self._dispatch_ident: Optional[int] = None

    def __enter__(self) -> "WorkerGroup":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(
        self,
        handler: EventHandler,
        kinds: Optional[Iterable[WorkerEventKind]] = None,
    ) -> Subscription:
        """Register handler for the given event kinds (all kinds if None).

        The handler receives every matching event published after this call
        returns. Events published concurrently with the call may be missed.
        """
        kind_set = frozenset(WorkerEventKind(k) for k in kinds) if kinds is not None else None
        with self._lock:
            subscription_id = next(self._ids)
            self._subscribers = self._subscribers + (_Subscriber(subscription_id, handler, kind_set),)
        return Subscription(group=self, subscription_id=subscription_id)

    def _unsubscribe(self, subscription_id: int) -> None:
        with self._lock:
            self._subscribers = tuple(s for s in self._subscribers if s.subscription_id != subscription_id)

    def publish(self, event: WorkerEvent) -> None:
        """Queue event for delivery to current subscribers and return immediately."""
        if event.worker_id >= self.count:
            logger.warning("Event %s from worker %d outside group of %d", event.kind, event.worker_id, self.count)

        targets = tuple(s for s in self._subscribers if s.wants(event))
        if not targets:
            return

        try:
            self._executor.submit(self._deliver, targets, event)
        except RuntimeError:
            # Executor already shut down
            logger.debug("Dropping %s event published after close()", event.kind)

    def _deliver(self, targets: tuple[_Subscriber, ...], event: WorkerEvent) -> None:
        self._dispatch_ident = threading.get_ident()
        for subscriber in targets:
            try:
                subscriber.handler(event)
            except Exception:
                logger.exception("Worker event observer failed on %s event (ignored)", event.kind)

    def close(self, wait: bool = True) -> None:
        """Stop accepting events; with wait=True, deliver everything already published.

        Called from a handler, close() does not wait: the dispatch thread
        cannot join itself, and queued events are still delivered after the
        handler returns.
        """
        if threading.get_ident() == self._dispatch_ident:
            wait = False
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._executor.shutdown(wait=wait)
