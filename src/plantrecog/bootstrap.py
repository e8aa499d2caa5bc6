"""Startup batch: service health, permissions and class list, run concurrently.

All four operations are started together and joined with settle-all
semantics. A failing operation is logged and leaves its slot at the default;
it never aborts the others. Readiness flips once the whole batch has settled.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, TypeVar

from plantrecog.host import PermissionState
from plantrecog.permissions import Resource

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from plantrecog.host import AlertPresenter, SplashScreen
    from plantrecog.permissions import PermissionCoordinator
    from plantrecog.service.client import PredictionServiceClient

logger = logging.getLogger(__name__)

T = TypeVar("T")

FATAL_ALERT_TITLE = "Oh! Snap"
FATAL_ALERT_MESSAGE = "The service is currently unavailable, please check later!"
FATAL_ALERT_ACTION = "Close App"


class ReadinessState(StrEnum):
    NOT_READY = "not_ready"
    READY = "ready"


@dataclass(frozen=True)
class BootstrapOutcome:
    """Settled results of the bootstrap batch."""

    service_healthy: bool
    camera: PermissionState
    media_library: PermissionState
    recognized: tuple[str, ...]


class BootstrapSequencer:
    """Runs the startup batch and gates first render on its completion."""

    def __init__(
        self,
        service: PredictionServiceClient,
        permissions: PermissionCoordinator,
        alerts: AlertPresenter,
        splash: SplashScreen,
        terminate: Callable[[], None],
    ) -> None:
        self._service = service
        self._permissions = permissions
        self._alerts = alerts
        self._splash = splash
        self._terminate = terminate
        self._readiness = ReadinessState.NOT_READY
        self._splash_released = False
        self._outcome: BootstrapOutcome | None = None
        self._lock = asyncio.Lock()

    @property
    def readiness(self) -> ReadinessState:
        return self._readiness

    @property
    def outcome(self) -> BootstrapOutcome | None:
        return self._outcome

    @property
    def recognized(self) -> tuple[str, ...]:
        return self._outcome.recognized if self._outcome is not None else ()

    async def run(self) -> BootstrapOutcome:
        """Run the batch once; presents the fatal path if the service is down.

        Overlapping callers wait for the batch already in progress and get its
        outcome.
        """
        async with self._lock:
            if self._outcome is None:
                self._outcome = await self._run_batch()
            return self._outcome

    async def _run_batch(self) -> BootstrapOutcome:
        await self._splash.hold()

        healthy, camera, media_library, recognized = await asyncio.gather(
            _settle("health check", self._service.check_health, False),
            _settle("camera permission", lambda: self._permissions.request(Resource.CAMERA), PermissionState.DENIED),
            _settle(
                "media library permission",
                lambda: self._permissions.request(Resource.MEDIA_LIBRARY),
                PermissionState.DENIED,
            ),
            _settle("class list fetch", self._service.fetch_recognized_classes, ()),
        )

        self._permissions.seed(Resource.CAMERA, camera)
        self._permissions.seed(Resource.MEDIA_LIBRARY, media_library)
        outcome = BootstrapOutcome(
            service_healthy=healthy,
            camera=camera,
            media_library=media_library,
            recognized=recognized,
        )
        self._readiness = ReadinessState.READY
        logger.info(
            "Bootstrap settled (healthy=%s, camera=%s, media_library=%s, classes=%d)",
            healthy,
            camera,
            media_library,
            len(recognized),
        )

        if not healthy:
            await self._alerts.fatal(FATAL_ALERT_TITLE, FATAL_ALERT_MESSAGE, FATAL_ALERT_ACTION)
            logger.error("Prediction service unavailable, terminating")
            self._terminate()

        return outcome

    async def release_splash(self) -> bool:
        """Hide the splash once ready; later calls are no-ops.

        Call when the first frame is about to draw. Returns True only on the
        call that actually released it.
        """
        if self._readiness is not ReadinessState.READY or self._splash_released:
            return False
        self._splash_released = True
        await self._splash.release()
        return True


async def _settle(name: str, operation: Callable[[], Awaitable[T]], default: T) -> T:
    try:
        return await operation()
    except Exception:
        logger.exception("Bootstrap %s failed, using default %r", name, default)
        return default
