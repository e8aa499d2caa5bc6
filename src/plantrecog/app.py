"""Top-level application: wires bootstrap, acquisition, prediction and view."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from plantrecog.acquisition import ImageAcquisition
from plantrecog.bootstrap import BootstrapSequencer, ReadinessState
from plantrecog.permissions import PermissionCoordinator, Resource
from plantrecog.service.client import PredictionServiceClient
from plantrecog.state import PredictionStateMachine
from plantrecog.view import render

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    import httpx

    from plantrecog.config import Settings
    from plantrecog.host import (
        AlertPresenter,
        CaptureSession,
        GalleryPicker,
        ImageRef,
        PermissionPrompt,
        SplashScreen,
    )
    from plantrecog.view import ResultLayout

logger = logging.getLogger(__name__)


@dataclass
class Host:
    """Platform collaborators supplied by the embedding environment."""

    camera_prompt: PermissionPrompt
    media_library_prompt: PermissionPrompt
    open_camera: Callable[[], CaptureSession]
    picker: GalleryPicker
    alerts: AlertPresenter
    splash: SplashScreen
    terminate: Callable[[], None]


class PlantRecogApp:
    """The single screen: camera view with shutter and gallery triggers over a result list.

    Use as an async context manager; the camera session and the HTTP client
    are released on exit.
    """

    def __init__(self, settings: Settings, host: Host, http_client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings
        self._host = host
        self.service = PredictionServiceClient(settings, client=http_client)
        self.permissions = PermissionCoordinator(
            {Resource.CAMERA: host.camera_prompt, Resource.MEDIA_LIBRARY: host.media_library_prompt},
            host.alerts,
        )
        self.bootstrap = BootstrapSequencer(
            self.service, self.permissions, host.alerts, host.splash, host.terminate
        )
        self.predictions = PredictionStateMachine(self.service, host.alerts)
        self._camera: CaptureSession | None = None
        self._acquisition: ImageAcquisition | None = None

    async def __aenter__(self) -> PlantRecogApp:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def start(self) -> bool:
        """Run the bootstrap batch. Returns False if the app must not render."""
        outcome = await self.bootstrap.run()
        if not outcome.service_healthy:
            return False

        self._camera = self._host.open_camera()
        self._acquisition = ImageAcquisition(
            self.permissions,
            self._camera,
            self._host.picker,
            self.predictions,
            self._host.alerts,
            quality=self._settings.capture_quality,
        )
        return True

    @property
    def ready(self) -> bool:
        return self.bootstrap.readiness is ReadinessState.READY and self._acquisition is not None

    def render(self) -> ResultLayout | None:
        """Current screen content, or None while nothing may be rendered."""
        if not self.ready:
            return None
        return render(self.predictions.result)

    async def on_layout(self) -> None:
        """First frame is about to draw: drop the splash."""
        if self.ready:
            await self.bootstrap.release_splash()

    async def take_picture(self) -> ImageRef | None:
        if self._acquisition is None or self.predictions.busy:
            return None
        return await self._acquisition.capture_via_camera()

    async def pick_image(self) -> ImageRef | None:
        if self._acquisition is None or self.predictions.busy:
            return None
        return await self._acquisition.pick_from_gallery()

    async def aclose(self) -> None:
        if self._camera is not None:
            self._camera.close()
            self._camera = None
            logger.debug("Camera session released")
        self._acquisition = None
        await self.service.aclose()
