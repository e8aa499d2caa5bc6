"""Protocols for the platform collaborators the client drives.

Camera, gallery, permission prompts, alerts and the splash surface belong to
the host platform. The core only depends on these interfaces; concrete
desktop implementations live in ``plantrecog.desktop``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from plantrecog.acquisition import CaptureOptions, PickerOptions


class PermissionState(StrEnum):
    UNKNOWN = "unknown"
    DENIED = "denied"
    GRANTED = "granted"


@dataclass(frozen=True)
class ImageRef:
    """A local reference to an acquired image."""

    uri: str
    mime_type: str = "image/jpeg"


class PermissionPrompt(Protocol):
    """Platform permission primitive for one resource."""

    async def request(self) -> PermissionState:
        """Ask the user for access, suspending until they respond."""
        ...

    async def status(self) -> PermissionState:
        """Return the current authorization without prompting."""
        ...


class CaptureSession(Protocol):
    """A live camera owned for the lifetime of the camera view."""

    async def take_photo(self, options: CaptureOptions) -> ImageRef:
        """Trigger the shutter and return the saved image."""
        ...

    def close(self) -> None:
        """Release the camera device."""
        ...


class GalleryPicker(Protocol):
    """Platform media-library picker."""

    async def launch(self, options: PickerOptions) -> ImageRef | None:
        """Open the picker. Returns None if the user cancels."""
        ...


class AlertPresenter(Protocol):
    """Platform alert dialogs."""

    async def notify(self, title: str, message: str) -> None:
        """Show a dismissable notice."""
        ...

    async def fatal(self, title: str, message: str, action: str) -> None:
        """Show a blocking notice and return once its single action is pressed."""
        ...


class SplashScreen(Protocol):
    """Platform splash surface shown while the app bootstraps."""

    async def hold(self) -> None:
        """Keep the splash visible past its automatic hide."""
        ...

    async def release(self) -> None:
        """Hide the splash."""
        ...
