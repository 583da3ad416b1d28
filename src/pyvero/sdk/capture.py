# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

import asyncio
import logging

from pydantic import ValidationError

from pyvero.lib.event.event_stream import EventStream
from pyvero.lib.event.event_waiter import EventWaiter
from pyvero.lib.types import EventPayload
from pyvero.sdk.events import SocketEvents
from pyvero.sdk.models import (
    CaptureConfiguration,
    CaptureJob,
    ConnectorSource,
    GeneratorStatusEntry,
    RateCondition,
    SfpTelemetry,
)
from pyvero.sdk.rest import RestTransport

CAPTURE_START_ROUTE = "/capture/start"

logger = logging.getLogger(__name__)


def _terminal_job(payload: EventPayload, job_id: str) -> CaptureJob | None:
    try:
        job = CaptureJob.model_validate(payload)
    except ValidationError:
        return None
    if job.id != job_id or not job.state.is_terminal:
        return None
    return job


def _telemetry(payload: EventPayload) -> list[SfpTelemetry]:
    try:
        return GeneratorStatusEntry.model_validate(payload).sfps_telemetry
    except ValidationError as exc:
        logger.warning("Ignoring malformed SFP telemetry: %s", exc.errors())
        return []


def rate_conditions_met(conditions: list[RateCondition], telemetry: list[SfpTelemetry]) -> bool:
    """True when every condition holds; telemetry with no SFPs never qualifies."""
    if not telemetry:
        return False
    return all(condition.is_met(telemetry) for condition in conditions)


class CaptureApi:
    """Packet capture jobs, capture sources and SFP link state."""

    def __init__(self, rest: RestTransport, events: EventStream) -> None:
        self._rest = rest
        self._events = events
        self.logger = logging.getLogger(self.__class__.__name__)

    async def start(self, config: CaptureConfiguration) -> None:
        self.logger.info("Starting capture '%s' (%s)", config.name, config.id)
        await asyncio.to_thread(self._rest.put, CAPTURE_START_ROUTE, config.to_wire())

    async def select_source(self, kind: str, index: int, source: ConnectorSource) -> None:
        self.logger.info("Selecting %s source #%d: %s", kind, index, source.source.id)
        await asyncio.to_thread(self._rest.put, f"/capture/sources/{kind}/{index}", source.to_wire())

    def make_capture_awaiter(self, job_id: str, timeout_ms: int) -> EventWaiter[CaptureJob]:
        """Arm a wait for job ``job_id`` to reach completed, failed or cancelled."""
        return EventWaiter(
            self._events,
            SocketEvents.CAPTURE_JOB_STATUS,
            timeout_ms,
            predicate=lambda payload: _terminal_job(payload, job_id) is not None,
            transform=lambda payload: _terminal_job(payload, job_id),
        )

    def make_sfp_state_awaiter(self,
                               conditions: list[RateCondition],
                               timeout_ms: int) -> EventWaiter[list[SfpTelemetry]]:
        """Arm a wait for SFP telemetry that satisfies every rate condition."""
        return EventWaiter(
            self._events,
            SocketEvents.GENERATOR_STATUS,
            timeout_ms,
            predicate=lambda payload: rate_conditions_met(conditions, _telemetry(payload)),
            transform=_telemetry,
        )
