# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Tests for forwarding worker events to trace collectors."""

import threading
from unittest.mock import MagicMock, patch

import pytest
import requests

from flowctl.contract import WorkerEventKind, WorkerStarting, WorkerTerminating, WorkItemStarting
from flowctl.core.context import ProcessContext
from flowctl.core.forwarding import EventForwarder
from flowctl.core.settings import ReportingEventsConfig
from flowctl.core.workers import WorkerGroup


def ok_session() -> MagicMock:
    session = MagicMock(spec=requests.sessions.Session)
    session.post.return_value = MagicMock(ok=True, status_code=202)
    return session


def posted_events(session: MagicMock) -> list[dict]:
    """All event payloads sent through session, in order."""
    return [event for call in session.post.call_args_list for event in call.kwargs["json"]]


# ============================================================================
# Settings
# ============================================================================


class TestReportingEventsConfig:
    def test_no_endpoints(self):
        assert ReportingEventsConfig().urls == ()

    def test_merges_strips_and_deduplicates(self):
        events = ReportingEventsConfig(endpoint="https://a.com/", endpoints=["https://a.com", "https://b.com/"])

        assert events.urls == ("https://a.com", "https://b.com")

    def test_null_endpoints_list(self):
        events = ReportingEventsConfig.model_validate({"endpoint": "https://a.com", "endpoints": None})

        assert events.urls == ("https://a.com",)


class TestFromSettings:
    def test_none_without_endpoints(self):
        assert EventForwarder.from_settings(None, process_id=0) is None
        assert EventForwarder.from_settings(ReportingEventsConfig(), process_id=0) is None

    @patch("flowctl.core.forwarding.requests.Session")
    def test_uses_settings(self, mock_session_cls):
        events = ReportingEventsConfig(endpoint="https://trace.example.com", batch_size=8, timeout=0.5)

        forwarder = EventForwarder.from_settings(events, process_id=2)
        try:
            assert forwarder.endpoints == ("https://trace.example.com",)
            assert forwarder.process_id == 2
            assert forwarder.batch_size == 8
            assert forwarder.timeout == 0.5
        finally:
            forwarder.close()

    def test_requires_endpoint(self):
        with pytest.raises(ValueError):
            EventForwarder(process_id=0, endpoints=())


# ============================================================================
# Delivery
# ============================================================================


class TestDelivery:
    def test_posts_batch_to_process_url(self):
        session = ok_session()
        forwarder = EventForwarder(process_id=3, endpoints=["https://trace.example.com"], session=session)

        forwarder.handle(WorkerStarting(worker_id=1, timestamp=100.0))
        forwarder.close()

        args, kwargs = session.post.call_args
        assert args[0] == "https://trace.example.com/api/processes/3/events"
        assert kwargs["json"] == [{"worker_id": 1, "timestamp": 100.0, "kind": "starting"}]
        session.close.assert_called_once()

    def test_close_flushes_everything_in_order(self):
        session = ok_session()
        forwarder = EventForwarder(process_id=0, endpoints=["https://a.com"], batch_size=4, session=session)

        for worker_id in range(10):
            forwarder.handle(WorkerStarting(worker_id=worker_id))
        forwarder.close()

        assert [e["worker_id"] for e in posted_events(session)] == list(range(10))
        assert all(len(call.kwargs["json"]) <= 4 for call in session.post.call_args_list)

    def test_sends_to_every_endpoint(self):
        session = ok_session()
        forwarder = EventForwarder(process_id=0, endpoints=["https://a.com", "https://b.com"], session=session)

        forwarder.handle(WorkerTerminating(worker_id=0))
        forwarder.close()

        urls = [call.args[0] for call in session.post.call_args_list]
        assert urls == ["https://a.com/api/processes/0/events", "https://b.com/api/processes/0/events"]

    def test_network_error_ignored(self):
        session = ok_session()
        session.post.side_effect = requests.exceptions.ConnectionError("Network error")
        forwarder = EventForwarder(process_id=0, endpoints=["https://a.com"], session=session)

        forwarder.handle(WorkerStarting(worker_id=0))
        forwarder.handle(WorkerStarting(worker_id=1))
        forwarder.close()

        assert session.post.call_count >= 1

    def test_handle_does_not_wait_for_slow_collector(self):
        release = threading.Event()
        session = ok_session()
        session.post.side_effect = lambda *a, **kw: release.wait(timeout=5) and MagicMock(ok=True)
        forwarder = EventForwarder(process_id=0, endpoints=["https://a.com"], max_pending=2, session=session)

        # Beyond max_pending these are dropped rather than blocking
        for worker_id in range(10):
            forwarder.handle(WorkerStarting(worker_id=worker_id))

        assert forwarder.dropped > 0
        release.set()
        forwarder.close()

    def test_close_twice(self):
        session = ok_session()
        forwarder = EventForwarder(process_id=0, endpoints=["https://a.com"], session=session)

        forwarder.close()
        forwarder.close()

        session.close.assert_called_once()


class TestAttach:
    def test_group_events_reach_collector(self):
        session = ok_session()
        forwarder = EventForwarder(process_id=0, endpoints=["https://a.com"], session=session)
        group = WorkerGroup(count=1)

        forwarder.attach(group, kinds=[WorkerEventKind.WORK_ITEM_STARTING])
        group.publish(WorkerStarting(worker_id=0))
        group.publish(WorkItemStarting(worker_id=0, stage_id=4, vertex_id=2))
        group.close()
        forwarder.close()

        events = posted_events(session)
        assert [e["kind"] for e in events] == ["work_item_starting"]
        assert events[0]["stage_id"] == 4

    @patch("flowctl.core.forwarding.requests.Session")
    def test_process_context_attaches_forwarder(self, mock_session_cls, fake_dns, tmp_path):
        mock_session_cls.return_value = ok_session()
        (tmp_path / "flowctl.yaml").write_text("reporting:\n  events:\n    endpoint: https://trace.example.com\n")

        context = ProcessContext.from_args(["-t", "2"])
        context.worker_group.publish(WorkerStarting(worker_id=1))
        context.close()

        session = mock_session_cls.return_value
        assert [e["worker_id"] for e in posted_events(session)] == [1]
        assert session.post.call_args.args[0] == "https://trace.example.com/api/processes/0/events"

    def test_process_context_without_collectors(self, fake_dns):
        context = ProcessContext.from_args([])

        assert context.forwarder is None
        assert context.worker_group.subscriber_count == 0
        context.close()
