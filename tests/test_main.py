"""Tests for the console entry point."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

from plantrecog.main import build_parser, main


class TestParser:
    def test_images_and_camera_flag(self) -> None:
        args = build_parser().parse_args(["--camera", "a.jpg", "b.jpg"])
        assert args.camera is True
        assert args.images == ["a.jpg", "b.jpg"]

    def test_defaults(self) -> None:
        args = build_parser().parse_args([])
        assert args.camera is False
        assert args.images == []


class TestMain:
    @patch("plantrecog.main.run", new_callable=AsyncMock)
    def test_main_runs_with_parsed_arguments(self, mock_run: AsyncMock) -> None:
        main(["leaf.jpg"])
        mock_run.assert_awaited_once()
        _settings, images, use_camera = mock_run.await_args.args
        assert images == ["leaf.jpg"]
        assert use_camera is False
