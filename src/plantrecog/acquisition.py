"""Image acquisition from the live camera or the gallery picker."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from plantrecog.host import PermissionState
from plantrecog.permissions import Resource

if TYPE_CHECKING:
    from plantrecog.host import AlertPresenter, CaptureSession, GalleryPicker, ImageRef
    from plantrecog.permissions import PermissionCoordinator
    from plantrecog.state import PredictionStateMachine

logger = logging.getLogger(__name__)

CAPTURE_FAILED_TITLE = "Oh! Snap"
CAPTURE_FAILED_MESSAGE = "Could not take a picture, please try again!"
PICK_FAILED_MESSAGE = "Could not open that image, please pick another one!"


class CameraFacing(StrEnum):
    BACK = "back"
    FRONT = "front"


@dataclass(frozen=True)
class CaptureOptions:
    """Shutter settings. Quality 0.0 favors upload speed over fidelity."""

    quality: float = 0.0
    facing: CameraFacing = CameraFacing.BACK
    aspect: tuple[int, int] = (1, 1)


@dataclass(frozen=True)
class PickerOptions:
    """Gallery picker settings: one image, square crop, confirmed edit."""

    quality: float = 0.0
    aspect: tuple[int, int] = (1, 1)
    allows_editing: bool = True
    allows_multiple: bool = False
    media_type: str = "images"


class ImageAcquisition:
    """Acquires one image per call and hands it to the prediction state machine.

    The capture session is passed in and owned by whoever opened it (the app's
    camera view); this class never opens or closes the device.
    """

    def __init__(
        self,
        permissions: PermissionCoordinator,
        camera: CaptureSession,
        picker: GalleryPicker,
        predictions: PredictionStateMachine,
        alerts: AlertPresenter,
        quality: float = 0.0,
    ) -> None:
        self._permissions = permissions
        self._camera = camera
        self._picker = picker
        self._predictions = predictions
        self._alerts = alerts
        self._capture_options = CaptureOptions(quality=quality)
        self._picker_options = PickerOptions(quality=quality)

    async def capture_via_camera(self) -> ImageRef | None:
        """Take a photo and submit it.

        Returns None if camera access is denied, the shutter fails, or another
        prediction is already in flight.
        """
        if await self._permissions.ensure(Resource.CAMERA) is not PermissionState.GRANTED:
            logger.info("Capture abandoned: camera permission denied")
            return None

        try:
            photo = await self._camera.take_photo(self._capture_options)
        except Exception:
            logger.exception("Camera capture failed")
            await self._alerts.notify(CAPTURE_FAILED_TITLE, CAPTURE_FAILED_MESSAGE)
            return None

        logger.debug("Captured %s", photo.uri)
        if not await self._predictions.submit(photo):
            return None
        return photo

    async def pick_from_gallery(self) -> ImageRef | None:
        """Let the user pick an image and submit it.

        Returns None if media-library access is denied, the picker fails, the
        user cancels, or another prediction is already in flight. Cancellation
        leaves the prediction state untouched.
        """
        if await self._permissions.ensure(Resource.MEDIA_LIBRARY) is not PermissionState.GRANTED:
            logger.info("Pick abandoned: media library permission denied")
            return None

        try:
            image = await self._picker.launch(self._picker_options)
        except Exception:
            logger.exception("Gallery picker failed")
            await self._alerts.notify(CAPTURE_FAILED_TITLE, PICK_FAILED_MESSAGE)
            return None
        if image is None:
            logger.debug("Picker cancelled")
            return None

        if not await self._predictions.submit(image):
            return None
        return image
