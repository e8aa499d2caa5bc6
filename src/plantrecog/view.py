"""Pure rendering of the current prediction result."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from plantrecog.state import PredictionResult

INTRO_CAPTION = (
    "Know plants with just a click. Snap a photo or pick one from your gallery "
    "and a remote image classification service will name the species."
)


@dataclass(frozen=True)
class ResultLayout:
    heading: str
    caption: str | None
    lines: tuple[str, ...]

    def as_text(self) -> str:
        body = [self.caption] if self.caption is not None else list(self.lines)
        return "\n".join([self.heading, *body])


def render(result: PredictionResult) -> ResultLayout:
    """Lay out a result: upper-cased heading, then caption or ranked lines."""
    heading = result.primary.name.upper()
    if result.ranked[0].score is None:
        return ResultLayout(heading=heading, caption=INTRO_CAPTION, lines=())
    return ResultLayout(
        heading=heading,
        caption=None,
        lines=tuple(f"{item.name}: {item.score}" for item in result.ranked),
    )
