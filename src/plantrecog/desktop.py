"""Desktop implementations of the host collaborators.

A webcam stands in for the phone camera (OpenCV), image files queued on the
command line stand in for the gallery (Pillow does the square crop), and
alerts go to the console.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import sys
import tempfile
from collections import deque
from pathlib import Path
from typing import TYPE_CHECKING
from uuid import uuid4

import cv2
from PIL import Image, ImageOps

from plantrecog.host import ImageRef, PermissionState

if TYPE_CHECKING:
    from collections.abc import Iterable

    import numpy as np
    from numpy.typing import NDArray

    from plantrecog.acquisition import CaptureOptions, PickerOptions

logger = logging.getLogger(__name__)


def jpeg_quality(quality: float) -> int:
    """Map a 0.0-1.0 quality to a JPEG quality level (1-95)."""
    return int(round(min(max(quality, 0.0), 1.0) * 94)) + 1


def crop_box(width: int, height: int, aspect: tuple[int, int]) -> tuple[int, int, int, int]:
    """Largest centered (left, top, right, bottom) box with the given aspect."""
    aw, ah = aspect
    if width * ah > height * aw:
        new_width = height * aw // ah
        left = (width - new_width) // 2
        return left, 0, left + new_width, height
    new_height = width * ah // aw
    top = (height - new_height) // 2
    return 0, top, width, top + new_height


class OpenCVCaptureSession:
    """Webcam capture session; owns the device until closed.

    The device is opened on the first shutter press.
    """

    def __init__(self, device: int = 0) -> None:
        self._device = device
        self._cap: cv2.VideoCapture | None = None
        self._output_dir = Path(tempfile.mkdtemp(prefix="plantrecog-camera-"))

    def _open(self) -> cv2.VideoCapture:
        if self._cap is None:
            cap = cv2.VideoCapture(self._device)
            if not cap.isOpened():
                raise RuntimeError(f"Cannot open camera device {self._device}")
            self._cap = cap
        return self._cap

    async def take_photo(self, options: CaptureOptions) -> ImageRef:
        cap = await asyncio.to_thread(self._open)
        ok, frame = await asyncio.to_thread(cap.read)
        if not ok or frame is None:
            raise RuntimeError("Camera returned no frame")

        frame = self._crop(frame, options.aspect)
        path = self._output_dir / f"{uuid4().hex}.jpg"
        params = [cv2.IMWRITE_JPEG_QUALITY, jpeg_quality(options.quality)]
        if not await asyncio.to_thread(cv2.imwrite, str(path), frame, params):
            raise RuntimeError(f"Failed to write {path}")
        return ImageRef(uri=path.as_uri())

    @staticmethod
    def _crop(frame: NDArray[np.uint8], aspect: tuple[int, int]) -> NDArray[np.uint8]:
        height, width = frame.shape[:2]
        left, top, right, bottom = crop_box(width, height, aspect)
        return frame[top:bottom, left:right]

    def close(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        shutil.rmtree(self._output_dir, ignore_errors=True)

    def __enter__(self) -> OpenCVCaptureSession:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()


class FilePicker:
    """Gallery picker fed from a queue of file paths; an empty queue is a cancel."""

    def __init__(self, paths: Iterable[str | Path] = ()) -> None:
        self._queue: deque[Path] = deque(Path(p) for p in paths)
        self._output_dir = Path(tempfile.mkdtemp(prefix="plantrecog-picker-"))

    def enqueue(self, path: str | Path) -> None:
        self._queue.append(Path(path))

    async def launch(self, options: PickerOptions) -> ImageRef | None:
        if not self._queue:
            return None
        source = self._queue.popleft()
        return await asyncio.to_thread(self._edit, source, options)

    def _edit(self, source: Path, options: PickerOptions) -> ImageRef:
        with Image.open(source) as img:
            image = ImageOps.exif_transpose(img).convert("RGB")
        if options.allows_editing:
            image = image.crop(crop_box(image.width, image.height, options.aspect))
        target = self._output_dir / f"{source.stem}-{uuid4().hex[:8]}.jpg"
        image.save(target, format="JPEG", quality=jpeg_quality(options.quality))
        return ImageRef(uri=target.as_uri())

    def cleanup(self) -> None:
        shutil.rmtree(self._output_dir, ignore_errors=True)


class GrantedPrompt:
    """Desktop has no permission model: every request is granted."""

    async def request(self) -> PermissionState:
        return PermissionState.GRANTED

    async def status(self) -> PermissionState:
        return PermissionState.GRANTED


class ConsoleAlerts:
    async def notify(self, title: str, message: str) -> None:
        logger.warning("%s: %s", title, message)
        print(f"{title}: {message}", file=sys.stderr)

    async def fatal(self, title: str, message: str, action: str) -> None:
        logger.error("%s: %s", title, message)
        print(f"{title}: {message} [{action}]", file=sys.stderr)


class NoSplash:
    async def hold(self) -> None:
        return None

    async def release(self) -> None:
        return None


def terminate() -> None:
    sys.exit(1)
