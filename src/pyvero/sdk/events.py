# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

from pyvero.lib.types import StringEnum


class SocketEvents(StringEnum):
    """Event names carried in the ``event`` field of WebSocket envelopes."""
    GENERATOR_STATUS    = "generatorStatus"
    GENLOCK_STATUS      = "genlockStatus"
    CAPTURE_JOB_STATUS  = "captureJobStatus"
