# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

import asyncio
import contextlib
import json
from collections.abc import Callable
from typing import Any

import pytest

from pyvero.config.system_config_settings import SystemConfigSettings
from pyvero.demos.gen_capture_pcap import (
    GenCapturePcap,
    choose_profile,
    force_redundancy,
    source_addresses,
)
from pyvero.lib.event.event_stream import MESSAGE_CHANNEL, EventStream
from pyvero.sdk.capture import CaptureApi
from pyvero.sdk.exceptions import (
    CaptureArtifactMissingError,
    CaptureJobFailedError,
    ProfileSelectionError,
    WaitTimeoutError,
)
from pyvero.sdk.models import CaptureJobState, GeneratorStatus, ProfileList, WsMessage
from pyvero.sdk.settings_api import SettingsApi
from pyvero.sdk.signal_generator import SignalGeneratorApi

Reaction = Callable[[Any], list[WsMessage]]

PROFILES = {
    "content": [
        {"id": "p0", "meta": {"description": "720p50"}},
        {
            "id": "p1",
            "meta": {"description": "1080p59"},
            "senders": {
                "video": [{"id": "v1", "network": {"useRedundancy": False}}],
                "audio": [{"id": "a1", "network": {"useRedundancy": False}}],
            },
        },
    ]
}

VIDEO_SENDER = {
    "id": "v1",
    "network": {
        "primary": {"destAddr": "239.1.1.1", "destPort": 5000},
        "secondary": {"destAddr": "239.1.2.1", "destPort": 5000},
    },
}


def _status(profile_id: str = "p1", sfp_b_rate: float = 800_000_000, sfp_a_rate: float = 1000) -> dict:
    return {
        "channels": [{"channel": "channel1", "profileId": profile_id, "video": [VIDEO_SENDER]}],
        "sfps_telemetry": [
            {"name": "SFP A", "rx_rate": sfp_a_rate, "tx_rate": 0},
            {"name": "SFP B", "rx_rate": sfp_b_rate, "tx_rate": 0},
        ],
    }


class DemoRest:
    def __init__(self, loop: asyncio.AbstractEventLoop, events: EventStream) -> None:
        self.loop = loop
        self.events = events
        self.calls: list[tuple[str, str, Any]] = []
        self.reactions: dict[str, Reaction] = {}

    def get(self, route: str) -> Any:
        self.calls.append(("GET", route, None))
        return PROFILES if route == "/generator/profiles" else None

    def put(self, route: str, payload: Any = None) -> Any:
        self.calls.append(("PUT", route, payload))
        reaction = self.reactions.get(route)
        if reaction is not None:
            for message in reaction(payload):
                self.loop.call_soon_threadsafe(self.events.emit, MESSAGE_CHANNEL, message)
        return None


class FakeVero:
    """Appliance double: real SDK APIs over a scripted transport plus a status ticker."""

    def __init__(self, status: dict, with_event_feed: bool = True) -> None:
        self.status = status
        self.events = EventStream()
        self.rest = DemoRest(asyncio.get_running_loop(), self.events)
        self.rest.reactions["/settings/genlock"] = lambda payload: [
            WsMessage(event="genlockStatus", data=[{"family": payload["family"], "locked": True}])
        ]
        self.ws_client: object | None = object() if with_event_feed else None
        self.settings = SettingsApi(self.rest, self.events)  # type: ignore[arg-type]
        self.signal_generator = SignalGeneratorApi(self.rest, self.events)  # type: ignore[arg-type]
        self.capture = CaptureApi(self.rest, self.events)  # type: ignore[arg-type]
        self.credentials: tuple[str, str] | None = None
        self.closed = False
        self._ticker: asyncio.Task[None] | None = None

    def on_capture(self, state: str, result: dict | None) -> None:
        self.rest.reactions["/capture/start"] = lambda payload: [
            WsMessage(event="captureJobStatus", data=[{"id": payload["id"], "state": "running"}]),
            WsMessage(event="captureJobStatus", data=[{"id": payload["id"], "state": state, "result": result}]),
        ]

    async def login(self, username: str, password: str) -> None:
        self.credentials = (username, password)
        self._ticker = asyncio.create_task(self._tick())

    async def _tick(self) -> None:
        while True:
            self.events.emit(MESSAGE_CHANNEL, WsMessage(event="generatorStatus", data=[self.status]))
            await asyncio.sleep(0.005)

    async def close(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._ticker
        self.closed = True

    def puts(self, route: str) -> list[Any]:
        return [payload for method, r, payload in self.rest.calls if method == "PUT" and r == route]


@pytest.fixture(autouse=True)
def _short_timeouts(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(SystemConfigSettings, "set_genlock_timeout_ms", lambda: 500)
    monkeypatch.setattr(SystemConfigSettings, "start_generator_timeout_ms", lambda: 100)
    monkeypatch.setattr(SystemConfigSettings, "sfp_status_timeout_ms", lambda: 500)
    monkeypatch.setattr(SystemConfigSettings, "active_rate_timeout_ms", lambda: 100)
    monkeypatch.setattr(SystemConfigSettings, "capture_completion_timeout_ms", lambda: 200)
    monkeypatch.setattr(SystemConfigSettings, "force_redundancy", lambda: True)
    monkeypatch.setattr(SystemConfigSettings, "active_rate_kind", lambda: "moreThan")
    monkeypatch.setattr(SystemConfigSettings, "active_rates", lambda: {"SFP A": 0, "SFP B": 700_000_000})


def _demo(vero: FakeVero, output: list[str], **kwargs: Any) -> GenCapturePcap:
    kwargs.setdefault("profile_number", 2)
    return GenCapturePcap("vero.local", "user", "secret", output=output.append,
                          client_factory=lambda address: vero, **kwargs)  # type: ignore[arg-type, return-value]


def test_choose_profile_is_one_based_and_validated() -> None:
    profiles = ProfileList.model_validate(PROFILES)

    assert choose_profile(profiles, "2").id == "p1"
    assert choose_profile(profiles, 1).id == "p0"
    for answer in ("0", "3", "abc", ""):
        with pytest.raises(ProfileSelectionError):
            choose_profile(profiles, answer)


def test_force_redundancy_touches_every_sender() -> None:
    profile = ProfileList.model_validate(PROFILES).content[1]

    assert force_redundancy(profile) == 2
    assert all(sender.network.use_redundancy for sender in profile.senders.all())


def test_source_addresses_maps_stream_endpoints() -> None:
    status = GeneratorStatus.model_validate(_status()["channels"][0])

    [address] = source_addresses(status)

    assert address.to_dict() == {
        "primary": {"multicastAddress": "239.1.1.1", "destinationPort": 5000},
        "secondary": {"multicastAddress": "239.1.2.1", "destinationPort": 5000},
    }


@pytest.mark.asyncio
async def test_happy_path_without_capture() -> None:
    vero = FakeVero(_status())
    output: list[str] = []

    result = await _demo(vero, output).run()

    assert vero.credentials == ("user", "secret")
    assert vero.closed
    assert result.profile.id == "p1"
    assert result.capture_job is None
    assert {sfp.name: sfp.rx_rate for sfp in result.sfp_telemetry} == {"SFP A": 1000, "SFP B": 800_000_000}

    assert output[:2] == ["1\t: 720p50", "2\t: 1080p59"]
    assert json.loads(output[2]) == [address.to_dict() for address in result.source_addresses]
    assert output[3] == "1000"

    assert vero.puts("/settings/genlock") == [{"family": "genlock30M"}]
    [started] = vero.puts("/generator/channel1/start")
    assert started["id"] == "p1"
    assert started["senders"]["video"][0]["network"]["useRedundancy"] is True
    assert vero.puts("/capture/start") == []


@pytest.mark.asyncio
async def test_profile_is_prompted_when_not_given() -> None:
    vero = FakeVero(_status())
    prompts: list[str] = []

    def _prompt(text: str) -> str:
        prompts.append(text)
        return "2"

    result = await _demo(vero, [], profile_number=None, prompt=_prompt).run()

    assert prompts == ["Choose a profile: "]
    assert result.profile.id == "p1"


@pytest.mark.asyncio
async def test_sfp_report_skipped_without_event_feed() -> None:
    vero = FakeVero(_status(), with_event_feed=False)
    output: list[str] = []

    await _demo(vero, output).run()

    assert len(output) == 3


@pytest.mark.asyncio
async def test_invalid_profile_closes_session() -> None:
    vero = FakeVero(_status())

    with pytest.raises(ProfileSelectionError):
        await _demo(vero, [], profile_number=5).run()

    assert vero.closed
    assert vero.puts("/generator/channel1/start") == []


@pytest.mark.asyncio
async def test_generator_start_timeout() -> None:
    vero = FakeVero(_status(profile_id="someone-else"))

    with pytest.raises(WaitTimeoutError, match="generator to start"):
        await _demo(vero, []).run()

    assert vero.closed


@pytest.mark.asyncio
async def test_minimum_rate_timeout() -> None:
    vero = FakeVero(_status(sfp_b_rate=700_000_000))

    with pytest.raises(WaitTimeoutError, match="minimum rate"):
        await _demo(vero, [], capture=True).run()

    assert vero.puts("/capture/start") == []
    assert vero.closed


@pytest.mark.asyncio
async def test_capture_completes_with_artifact() -> None:
    vero = FakeVero(_status())
    vero.on_capture("completed", {"analysis": {"pcap": "capture.pcap"}})

    result = await _demo(vero, [], capture=True).run()

    assert result.capture_job is not None
    assert result.capture_job.state is CaptureJobState.COMPLETED

    [selected] = vero.puts("/capture/sources/video/0")
    assert selected["enabled"] is True
    assert selected["source"]["meta"]["name"] == "Video #1"
    assert selected["source"]["id"] == SystemConfigSettings.connector_source_id()
    assert selected["source"]["network"]["primary"] == {"multicastAddress": "239.1.1.1", "destinationPort": 5000}

    [started] = vero.puts("/capture/start")
    assert started["id"] == result.capture_job.id
    assert started["name"] == SystemConfigSettings.capture_name()


@pytest.mark.asyncio
async def test_capture_failed_state() -> None:
    vero = FakeVero(_status())
    vero.on_capture("failed", None)

    with pytest.raises(CaptureJobFailedError) as excinfo:
        await _demo(vero, [], capture=True).run()

    assert excinfo.value.state == "failed"


@pytest.mark.asyncio
async def test_capture_without_artifact() -> None:
    vero = FakeVero(_status())
    vero.on_capture("completed", None)

    with pytest.raises(CaptureArtifactMissingError):
        await _demo(vero, [], capture=True).run()


@pytest.mark.asyncio
async def test_capture_completion_timeout() -> None:
    vero = FakeVero(_status())

    with pytest.raises(WaitTimeoutError, match="capture to complete"):
        await _demo(vero, [], capture=True).run()
    assert vero.closed


@pytest.mark.asyncio
async def test_fractional_telemetry_reaches_minimum_rate() -> None:
    vero = FakeVero(_status(sfp_a_rate=1000.25, sfp_b_rate=812345678.9))
    output: list[str] = []

    result = await _demo(vero, output).run()

    assert output[3] == "1000.25"
    assert {sfp.name: sfp.rx_rate for sfp in result.sfp_telemetry} == {"SFP A": 1000.25, "SFP B": 812345678.9}
