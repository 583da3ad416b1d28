# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, NewType, TypeAlias

ProfileId       = NewType("ProfileId", str)
CaptureJobId    = NewType("CaptureJobId", str)
EventName       = NewType("EventName", str)
AuthToken       = NewType("AuthToken", str)

TimeoutMs = NewType("TimeoutMs", int)
ExitCode = NewType("ExitCode", int)

# Bits per second as reported by SFP telemetry
BitRate: TypeAlias = int | float
SfpName = NewType("SfpName", str)

# Enum String Type
class StringEnum(str, Enum):
    """Py3.10-compatible StrEnum shim."""
    def __str__(self) -> str:
        return str(self.value)


# Event payloads arrive as decoded JSON of arbitrary shape
EventPayload: TypeAlias = Any

# ────────────────────────────────────────────────────────────────────────────────
# Network
# ────────────────────────────────────────────────────────────────────────────────
MulticastAddressStr = NewType("MulticastAddressStr", str)
# Ports arrive as integers or numeric strings depending on the endpoint
Port: TypeAlias = int | str

# ────────────────────────────────────────────────────────────────────────────────
# Paths / filesystem
# ────────────────────────────────────────────────────────────────────────────────
PathLike    = str | Path
FileNameStr = str
