# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pyvero.lib.types import (
    BitRate,
    CaptureJobId,
    EventName,
    MulticastAddressStr,
    Port,
    ProfileId,
    SfpName,
    StringEnum,
)


class VeroModel(BaseModel):
    """Wire models accept both camelCase aliases and field names, and keep unknown keys."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# ────────────────────────────────────────────────────────────────────────────────
# Enumerations
# ────────────────────────────────────────────────────────────────────────────────
class GenlockFamily(StringEnum):
    GENLOCK_30M = "genlock30M"
    GENLOCK_25M = "genlock25M"
    PTP         = "ptp"


class GeneratorChannelId(StringEnum):
    CHANNEL_1 = "channel1"
    CHANNEL_2 = "channel2"


class CaptureJobState(StringEnum):
    PENDING     = "pending"
    RUNNING     = "running"
    COMPLETED   = "completed"
    FAILED      = "failed"
    CANCELLED   = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (CaptureJobState.COMPLETED, CaptureJobState.FAILED, CaptureJobState.CANCELLED)


class RateConditionKind(StringEnum):
    MORE_THAN = "moreThan"
    LESS_THAN = "lessThan"


# ────────────────────────────────────────────────────────────────────────────────
# Envelope
# ────────────────────────────────────────────────────────────────────────────────
class WsMessage(VeroModel):
    event: EventName    = Field(..., description="Event name.")
    data: list[Any]     = Field(default_factory=list, description="Event arguments; the payload is data[0].")

    @field_validator("data", mode="before")
    @classmethod
    def _wrap_scalar(cls, value: Any) -> list[Any]:
        if value is None:
            return []
        if isinstance(value, list):
            return value
        return [value]


# ────────────────────────────────────────────────────────────────────────────────
# Settings
# ────────────────────────────────────────────────────────────────────────────────
class GenlockSyncConfig(VeroModel):
    family: GenlockFamily = Field(..., description="Reference family to lock to.")


# ────────────────────────────────────────────────────────────────────────────────
# Generator
# ────────────────────────────────────────────────────────────────────────────────
class MulticastEndpoint(VeroModel):
    multicast_address: MulticastAddressStr | None   = Field(default=None, alias="multicastAddress")
    destination_port: Port | None                   = Field(default=None, alias="destinationPort")


class SenderNetwork(VeroModel):
    primary: MulticastEndpoint | None   = None
    secondary: MulticastEndpoint | None = None
    use_redundancy: bool                = Field(default=False, alias="useRedundancy")


class GeneratorSender(VeroModel):
    id: str | None          = None
    network: SenderNetwork  = Field(default_factory=SenderNetwork)


class GeneratorSenders(VeroModel):
    video: list[GeneratorSender] | None = None
    audio: list[GeneratorSender] | None = None
    anc: list[GeneratorSender] | None   = None

    def all(self) -> list[GeneratorSender]:
        return [*(self.video or []), *(self.audio or []), *(self.anc or [])]


class ProfileMeta(VeroModel):
    description: str = ""


class GeneratorProfile(VeroModel):
    id: ProfileId               = Field(..., description="Profile identifier.")
    meta: ProfileMeta           = Field(default_factory=ProfileMeta)
    senders: GeneratorSenders   = Field(default_factory=GeneratorSenders)


class ProfileList(VeroModel):
    content: list[GeneratorProfile] = Field(default_factory=list)


class StreamEndpoint(VeroModel):
    dest_addr: MulticastAddressStr | None   = Field(default=None, alias="destAddr")
    dest_port: Port | None                  = Field(default=None, alias="destPort")


class ActiveSenderNetwork(VeroModel):
    primary: StreamEndpoint | None      = None
    secondary: StreamEndpoint | None    = None


class ActiveSender(VeroModel):
    id: str | None                  = None
    network: ActiveSenderNetwork    = Field(default_factory=ActiveSenderNetwork)


class GeneratorStatus(VeroModel):
    channel: GeneratorChannelId | None  = None
    profile_id: ProfileId | None        = Field(default=None, alias="profileId")
    video: list[ActiveSender] | None    = None
    audio: list[ActiveSender] | None    = None
    anc: list[ActiveSender] | None      = None

    def active_senders(self) -> list[ActiveSender]:
        return [*(self.video or []), *(self.audio or []), *(self.anc or [])]


class SfpTelemetry(VeroModel):
    name: SfpName           = Field(..., description="SFP port name, e.g. 'SFP A'.")
    rx_rate: BitRate        = Field(default=0, description="Receive rate (bit/s).")
    tx_rate: BitRate        = Field(default=0, description="Transmit rate (bit/s).")

    @field_validator("rx_rate", "tx_rate")
    @classmethod
    def _non_negative(cls, value: BitRate) -> BitRate:
        if value < 0:
            raise ValueError("rate must be non-negative")
        return value


class GeneratorStatusEntry(VeroModel):
    channels: list[GeneratorStatus]     = Field(default_factory=list)
    sfps_telemetry: list[SfpTelemetry]  = Field(default_factory=list)


# ────────────────────────────────────────────────────────────────────────────────
# Capture
# ────────────────────────────────────────────────────────────────────────────────
class RateCondition(VeroModel):
    kind: RateConditionKind     = Field(..., description="Comparison applied to every listed SFP.")
    rates: dict[SfpName, BitRate] = Field(..., description="Threshold per SFP name (bit/s).")

    def is_met(self, telemetry: list[SfpTelemetry]) -> bool:
        """
        True when every listed SFP is present and its rx rate is strictly
        above (moreThan) or below (lessThan) its threshold.
        """
        by_name = {sfp.name: sfp.rx_rate for sfp in telemetry}
        for name, threshold in self.rates.items():
            rate = by_name.get(name)
            if rate is None:
                return False
            if self.kind is RateConditionKind.MORE_THAN and not rate > threshold:
                return False
            if self.kind is RateConditionKind.LESS_THAN and not rate < threshold:
                return False
        return True


class CaptureConfiguration(VeroModel):
    id: CaptureJobId                = Field(..., description="Client-chosen job id (UUID v1).")
    name: str                       = Field(..., description="Capture name.")
    duration: int                   = Field(..., ge=0, description="Capture duration (ms).")
    sfp_a_enabled: bool             = Field(default=True, alias="sfpAEnabled")
    sfp_b_enabled: bool             = Field(default=True, alias="sfpBEnabled")
    enable_list_analysis: bool      = Field(default=True, alias="enableListAnalysis")


class CaptureResult(VeroModel):
    analysis: Any | None = None


class CaptureJob(VeroModel):
    id: CaptureJobId                = Field(..., description="Capture job id.")
    state: CaptureJobState          = Field(..., description="Job state.")
    result: CaptureResult | None    = None


class ConnectorNetwork(VeroModel):
    primary: MulticastEndpoint      = Field(default_factory=MulticastEndpoint)
    secondary: MulticastEndpoint    = Field(default_factory=MulticastEndpoint)
    use_redundancy: bool            = Field(default=True, alias="useRedundancy")


class ConnectorSourceMeta(VeroModel):
    name: str = ""


class ConnectorSourceDescription(VeroModel):
    id: str                         = Field(..., description="Source id.")
    meta: ConnectorSourceMeta       = Field(default_factory=ConnectorSourceMeta)
    network: ConnectorNetwork       = Field(default_factory=ConnectorNetwork)


class ConnectorSource(VeroModel):
    enabled: bool                       = True
    source: ConnectorSourceDescription
