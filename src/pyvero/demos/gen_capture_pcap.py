# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

"""
Generator + capture demo.

Logs in, locks genlock, starts a generator profile on channel 1, waits for
its senders to come up and for the SFP link rate to reach the configured
minimum, and optionally records a capture and waits for it to finish.
Every wait is a single bounded wait; nothing is retried.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field

from pydantic import ValidationError

from pyvero.config.system_config_settings import SystemConfigSettings
from pyvero.lib.event.event_waiter import wait_for_event
from pyvero.lib.types import CaptureJobId
from pyvero.sdk.events import SocketEvents
from pyvero.sdk.exceptions import (
    CaptureArtifactMissingError,
    CaptureJobFailedError,
    ProfileSelectionError,
    WaitTimeoutError,
)
from pyvero.sdk.models import (
    CaptureConfiguration,
    CaptureJob,
    CaptureJobState,
    ConnectorNetwork,
    ConnectorSource,
    ConnectorSourceDescription,
    ConnectorSourceMeta,
    GeneratorChannelId,
    GeneratorProfile,
    GeneratorStatus,
    GeneratorStatusEntry,
    GenlockFamily,
    GenlockSyncConfig,
    MulticastEndpoint,
    ProfileList,
    RateCondition,
    RateConditionKind,
    SfpTelemetry,
)
from pyvero.sdk.vero import Vero

COMMAND_NAME = "gen-capture-pcap"

Prompt = Callable[[str], str]
Output = Callable[[str], None]


@dataclass
class SourceAddress:
    primary: MulticastEndpoint
    secondary: MulticastEndpoint

    def to_dict(self) -> dict:
        return {
            "primary": self.primary.to_wire(),
            "secondary": self.secondary.to_wire(),
        }


@dataclass
class GenCapturePcapResult:
    profile: GeneratorProfile
    source_addresses: list[SourceAddress] = field(default_factory=list)
    sfp_telemetry: list[SfpTelemetry] = field(default_factory=list)
    capture_job: CaptureJob | None = None


def active_rate_conditions() -> list[RateCondition]:
    # TODO: derive the thresholds from the chosen profile's sender bitrates
    return [
        RateCondition(
            kind=RateConditionKind(SystemConfigSettings.active_rate_kind()),
            rates=SystemConfigSettings.active_rates(),
        )
    ]


def source_addresses(status: GeneratorStatus) -> list[SourceAddress]:
    """Primary/secondary multicast destinations of every active sender."""
    addresses = []
    for sender in status.active_senders():
        primary = sender.network.primary
        secondary = sender.network.secondary
        addresses.append(SourceAddress(
            primary=MulticastEndpoint(
                multicast_address=primary.dest_addr if primary else None,
                destination_port=primary.dest_port if primary else None,
            ),
            secondary=MulticastEndpoint(
                multicast_address=secondary.dest_addr if secondary else None,
                destination_port=secondary.dest_port if secondary else None,
            ),
        ))
    return addresses


def force_redundancy(profile: GeneratorProfile) -> int:
    """Enable redundancy on every video, audio and anc sender; returns the sender count."""
    senders = profile.senders.all()
    for sender in senders:
        sender.network.use_redundancy = True
    return len(senders)


def choose_profile(profiles: ProfileList, answer: str | int) -> GeneratorProfile:
    """
    Resolve a 1-based answer to a profile.

    Raises
    ------
    ProfileSelectionError
        If ``answer`` is not an integer within 1..len(profiles).
    """
    try:
        number = int(answer)
    except (TypeError, ValueError) as exc:
        raise ProfileSelectionError(f"Not a profile number: {answer!r}") from exc

    if not 1 <= number <= len(profiles.content):
        raise ProfileSelectionError(
            f"Profile {number} out of range; choose 1..{len(profiles.content)}"
        )
    return profiles.content[number - 1]


def connector_source(address: SourceAddress, source_id: str, name: str) -> ConnectorSource:
    return ConnectorSource(
        enabled=True,
        source=ConnectorSourceDescription(
            id=source_id,
            meta=ConnectorSourceMeta(name=name),
            network=ConnectorNetwork(
                primary=address.primary,
                secondary=address.secondary,
                use_redundancy=True,
            ),
        ),
    )


class GenCapturePcap:
    """
    One run of the generator + capture demo against ``address``.

    ``profile_number`` skips the interactive prompt; ``capture`` enables the
    capture stage after the minimum rate is reached.
    """

    def __init__(self,
                 address: str,
                 username: str,
                 password: str,
                 profile_number: int | None = None,
                 capture: bool = False,
                 prompt: Prompt = input,
                 output: Output = print,
                 client_factory: Callable[[str], Vero] | None = None) -> None:
        self.address = address
        self.username = username
        self.password = password
        self.profile_number = profile_number
        self.capture = capture
        self._prompt = prompt
        self._output = output
        self._client_factory = client_factory or self._default_client
        self.logger = logging.getLogger(self.__class__.__name__)

    @staticmethod
    def _default_client(address: str) -> Vero:
        return Vero(address,
                    http_timeout=SystemConfigSettings.http_timeout(),
                    verify_ssl=SystemConfigSettings.verify_ssl())

    async def run(self) -> GenCapturePcapResult:
        vero = self._client_factory(self.address)
        try:
            await vero.login(self.username, self.password)
            await vero.settings.set_genlock_sync(
                GenlockSyncConfig(family=GenlockFamily(SystemConfigSettings.genlock_family())),
                SystemConfigSettings.set_genlock_timeout_ms(),
            )

            profile = await self._select_profile(vero)
            if SystemConfigSettings.force_redundancy():
                count = force_redundancy(profile)
                self.logger.debug("Redundancy forced on %d senders", count)

            result = GenCapturePcapResult(profile=profile)
            status = await self._start_generator(vero, profile)

            result.source_addresses = source_addresses(status)
            self._output(json.dumps([address.to_dict() for address in result.source_addresses]))

            if vero.ws_client is not None:
                await self._report_sfp_status(vero)

            telemetry = await vero.capture.make_sfp_state_awaiter(
                active_rate_conditions(), SystemConfigSettings.active_rate_timeout_ms()
            )
            if telemetry is None:
                raise WaitTimeoutError("Timeout waiting for the minimum rate")
            result.sfp_telemetry = telemetry
            self.logger.info("Minimum rate reached: %s",
                             {sfp.name: sfp.rx_rate for sfp in telemetry})

            if self.capture:
                result.capture_job = await self._capture(vero, result)

            return result
        finally:
            await vero.close()

    async def _select_profile(self, vero: Vero) -> GeneratorProfile:
        profiles = await vero.signal_generator.profiles.get_all()
        for number, profile in enumerate(profiles.content, start=1):
            self._output(f"{number}\t: {profile.meta.description}")

        if self.profile_number is not None:
            answer: str | int = self.profile_number
        else:
            answer = await asyncio.to_thread(self._prompt, "Choose a profile: ")

        profile = choose_profile(profiles, answer)
        self.logger.info("Selected profile '%s' (%s)", profile.meta.description, profile.id)
        return profile

    async def _start_generator(self, vero: Vero, profile: GeneratorProfile) -> GeneratorStatus:
        channel = GeneratorChannelId(SystemConfigSettings.generator_channel())
        awaiter = vero.signal_generator.make_awaiter(
            channel, profile.id, SystemConfigSettings.start_generator_timeout_ms()
        )
        await vero.signal_generator.start(channel, profile)
        status = await awaiter
        if status is None:
            raise WaitTimeoutError("Timeout waiting for the generator to start")
        return status

    async def _report_sfp_status(self, vero: Vero) -> None:
        payload = await wait_for_event(vero.events, SocketEvents.GENERATOR_STATUS,
                                       SystemConfigSettings.sfp_status_timeout_ms(),
                                       predicate=lambda p: isinstance(p, dict))
        if payload is None:
            self.logger.warning("No generator status received; SFP telemetry unavailable")
            return

        try:
            entry = GeneratorStatusEntry.model_validate(payload)
        except ValidationError as exc:
            self.logger.warning("Malformed generator status; SFP telemetry unavailable: %s", exc.errors())
            return

        if entry.sfps_telemetry:
            self._output(json.dumps(entry.sfps_telemetry[0].rx_rate))

    async def _capture(self, vero: Vero, result: GenCapturePcapResult) -> CaptureJob:
        if result.source_addresses:
            kind = SystemConfigSettings.connector_kind()
            index = SystemConfigSettings.connector_index()
            source = connector_source(result.source_addresses[0],
                                      source_id=SystemConfigSettings.connector_source_id(),
                                      name=f"{kind.capitalize()} #{index + 1}")
            await vero.capture.select_source(kind, index, source)

        config = CaptureConfiguration(
            id=CaptureJobId(str(uuid.uuid1())),
            name=SystemConfigSettings.capture_name(),
            duration=SystemConfigSettings.capture_duration(),
            sfp_a_enabled=SystemConfigSettings.capture_sfp_a_enabled(),
            sfp_b_enabled=SystemConfigSettings.capture_sfp_b_enabled(),
            enable_list_analysis=SystemConfigSettings.capture_list_analysis(),
        )
        awaiter = vero.capture.make_capture_awaiter(
            config.id, SystemConfigSettings.capture_completion_timeout_ms()
        )
        await vero.capture.start(config)
        job = await awaiter

        if job is None:
            raise WaitTimeoutError("Timeout waiting for the capture to complete")
        if job.state is not CaptureJobState.COMPLETED:
            raise CaptureJobFailedError("Capture failed", state=str(job.state))
        if job.result is None or not job.result.analysis:
            raise CaptureArtifactMissingError("Pcap doesn't exist")

        self.logger.info("Capture %s completed", job.id)
        return job


async def gen_capture_pcap(address: str, username: str, password: str, **kwargs) -> GenCapturePcapResult:
    return await GenCapturePcap(address, username, password, **kwargs).run()


__all__ = [
    "COMMAND_NAME",
    "GenCapturePcap",
    "GenCapturePcapResult",
    "active_rate_conditions",
    "choose_profile",
    "force_redundancy",
    "gen_capture_pcap",
    "source_addresses",
]
