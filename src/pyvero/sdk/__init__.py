# pyvero appliance client
# SPDX-License-Identifier: Apache-2.0

from pyvero.sdk.events import SocketEvents
from pyvero.sdk.exceptions import (
    CaptureArtifactMissingError,
    CaptureJobFailedError,
    ProfileSelectionError,
    VeroApiError,
    VeroAuthError,
    VeroError,
    WaitTimeoutError,
)
from pyvero.sdk.vero import Vero

__all__ = [
    'Vero',
    'SocketEvents',
    'VeroError',
    'VeroApiError',
    'VeroAuthError',
    'WaitTimeoutError',
    'CaptureJobFailedError',
    'CaptureArtifactMissingError',
    'ProfileSelectionError',
]
