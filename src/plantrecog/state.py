"""Prediction state machine: the single writer of what the result view shows.

Lifecycle:
    IDLE -> SUBMITTING -> SUCCEEDED
                       -> FAILED (result reverts to the idle placeholder)

Only one submission may be in flight. A submit issued while SUBMITTING is
rejected and logged; the in-flight request keeps ownership of the result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol

from plantrecog.service.client import PredictionServiceError
from plantrecog.service.schemas import PredictionItem

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from plantrecog.host import AlertPresenter, ImageRef

logger = logging.getLogger(__name__)

PLACEHOLDER_LABEL = "PlantRecog"
PROCESSING_LABEL = "Processing Image..."

FAILURE_ALERT_TITLE = "Ops"
FAILURE_ALERT_MESSAGE = "Looks like something bad happened, please try again!"


class RequestLifecycleState(StrEnum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class PredictionResult:
    """Primary label plus the ranked candidate list. ``ranked`` is never empty."""

    primary: PredictionItem
    ranked: tuple[PredictionItem, ...]

    def __post_init__(self) -> None:
        if not self.ranked:
            raise ValueError("ranked must contain at least one item")

    @classmethod
    def placeholder(cls) -> PredictionResult:
        return cls(
            primary=PredictionItem(name=PLACEHOLDER_LABEL),
            ranked=(PredictionItem(name=""),),
        )

    @classmethod
    def from_predictions(cls, predictions: Sequence[PredictionItem]) -> PredictionResult:
        # Service order is kept as-is; it is assumed to be descending confidence.
        ranked = tuple(predictions)
        return cls(primary=ranked[0], ranked=ranked)


class Classifier(Protocol):
    async def classify(self, image: ImageRef) -> list[PredictionItem] | None: ...


class PredictionStateMachine:
    """Owns PredictionResult and RequestLifecycleState."""

    def __init__(self, classifier: Classifier, alerts: AlertPresenter) -> None:
        self._classifier = classifier
        self._alerts = alerts
        self._result = PredictionResult.placeholder()
        self._lifecycle = RequestLifecycleState.IDLE
        self._listeners: list[Callable[[PredictionResult, RequestLifecycleState], None]] = []

    @property
    def result(self) -> PredictionResult:
        return self._result

    @property
    def lifecycle(self) -> RequestLifecycleState:
        return self._lifecycle

    @property
    def busy(self) -> bool:
        """True while a submission is in flight; capture triggers should be disabled."""
        return self._lifecycle is RequestLifecycleState.SUBMITTING

    def subscribe(self, listener: Callable[[PredictionResult, RequestLifecycleState], None]) -> None:
        """Register a callback invoked after every transition."""
        self._listeners.append(listener)

    async def submit(self, image: ImageRef) -> bool:
        """Classify an image and settle the visible result.

        The transition into SUBMITTING happens before the first await, so the
        processing label is visible before the network call is issued.

        Returns:
            True if the submission was accepted, False if another one was
            already in flight.
        """
        if self.busy:
            logger.warning("Ignoring %s: a prediction is already in flight", image.uri)
            return False

        self._transition(
            RequestLifecycleState.SUBMITTING,
            PredictionResult(primary=PredictionItem(name=PROCESSING_LABEL), ranked=self._result.ranked),
        )

        try:
            try:
                predictions = await self._classifier.classify(image)
            except PredictionServiceError as exc:
                logger.warning("Prediction request for %s failed: %s", image.uri, exc)
                predictions = None
            except Exception:
                logger.exception("Unexpected error classifying %s", image.uri)
                predictions = None
            else:
                if predictions is None:
                    logger.warning("Service returned no usable prediction for %s", image.uri)

            if not predictions:
                self._transition(RequestLifecycleState.FAILED, PredictionResult.placeholder())
                await self._alerts.notify(FAILURE_ALERT_TITLE, FAILURE_ALERT_MESSAGE)
                return True

            self._transition(RequestLifecycleState.SUCCEEDED, PredictionResult.from_predictions(predictions))
            logger.info("Predicted %s (%s) for %s", predictions[0].name, predictions[0].score, image.uri)
            return True
        finally:
            # Cancellation must not leave the machine locked in SUBMITTING.
            if self.busy:
                logger.warning("Prediction for %s was interrupted", image.uri)
                self._transition(RequestLifecycleState.FAILED, PredictionResult.placeholder())

    def _transition(self, lifecycle: RequestLifecycleState, result: PredictionResult) -> None:
        self._lifecycle = lifecycle
        self._result = result
        for listener in self._listeners:
            try:
                listener(result, lifecycle)
            except Exception:
                logger.exception("Prediction listener %r failed", listener)
