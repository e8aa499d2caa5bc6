"""Console entry point: ``plantrecog [--camera] [IMAGE ...]``."""

from __future__ import annotations

import argparse
import asyncio
import logging
from typing import TYPE_CHECKING

from plantrecog.app import Host, PlantRecogApp
from plantrecog.config import get_settings
from plantrecog.desktop import (
    ConsoleAlerts,
    FilePicker,
    GrantedPrompt,
    NoSplash,
    OpenCVCaptureSession,
    terminate,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from plantrecog.config import Settings

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="plantrecog", description="Identify plant species from photos.")
    parser.add_argument("images", nargs="*", help="image files to classify, one gallery pick each")
    parser.add_argument("--camera", action="store_true", help="take one photo with the webcam first")
    return parser


async def run(settings: Settings, images: Sequence[str], use_camera: bool) -> None:
    picker = FilePicker(images)
    host = Host(
        camera_prompt=GrantedPrompt(),
        media_library_prompt=GrantedPrompt(),
        open_camera=lambda: OpenCVCaptureSession(settings.camera_device),
        picker=picker,
        alerts=ConsoleAlerts(),
        splash=NoSplash(),
        terminate=terminate,
    )
    try:
        async with PlantRecogApp(settings, host) as app:
            if not await app.start():
                return
            await app.on_layout()
            logger.info("Service recognizes: %s", ", ".join(app.bootstrap.recognized) or "(unknown)")

            if use_camera:
                await app.take_picture()
                _show(app)
            for _ in images:
                await app.pick_image()
                _show(app)
            if not use_camera and not images:
                _show(app)
    finally:
        picker.cleanup()


def _show(app: PlantRecogApp) -> None:
    layout = app.render()
    if layout is not None:
        print(layout.as_text())
        print()


def main(argv: Sequence[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    settings = get_settings()

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logger.info("Starting PlantRecog (service=%s)", settings.service_url)

    asyncio.run(run(settings, args.images, args.camera))


if __name__ == "__main__":
    main()
