# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Enumerations shared by the configuration and worker event contract."""

from enum import Enum


class BroadcastProtocol(str, Enum):
    """Transport used to fan control messages out to every process.

    UDP_ONLY and TCP_UDP require a broadcast address.
    """

    TCP_ONLY = "tcp"
    UDP_ONLY = "udp"
    TCP_UDP = "both"


class SendBufferMode(str, Enum):
    """How send buffer pages are pooled."""

    GLOBAL = "global"
    PER_REMOTE_PROCESS = "process"
    PER_WORKER = "worker"


class WorkerEventKind(str, Enum):
    """The fixed vocabulary of worker lifecycle events."""

    STARTING = "starting"
    WAKING = "waking"
    WORK_ITEM_STARTING = "work_item_starting"
    WORK_ITEM_ENDING = "work_item_ending"
    WORK_ITEM_ENQUEUED = "work_item_enqueued"
    SLEEPING = "sleeping"
    TERMINATING = "terminating"
    RECEIVED_RECORDS = "received_records"
    SENT_RECORDS = "sent_records"
