# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

from typing import Any


class VeroError(Exception):
    """
    Base class for every failure raised by the appliance client and demos.
    """


class VeroApiError(VeroError):
    """
    The appliance answered a REST call with an HTTP error status, or the
    call could not be completed at the transport level (status 0).
    """

    def __init__(self, message: str, status_code: int = 0, body: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class VeroAuthError(VeroApiError):
    """Login was rejected by the appliance."""


class WaitTimeoutError(VeroError):
    """
    A bounded wait (genlock, generator start, minimum rate, capture
    completion) elapsed without the expected event.
    """


class CaptureJobFailedError(VeroError):
    """A capture job finished in a state other than completed."""

    def __init__(self, message: str, state: str | None = None) -> None:
        super().__init__(message)
        self.state = state


class CaptureArtifactMissingError(VeroError):
    """A capture completed without producing an analysis artifact."""


class ProfileSelectionError(VeroError):
    """The requested generator profile index is not a valid choice."""
