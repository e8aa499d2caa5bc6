"""Tests for the prediction state machine."""

from __future__ import annotations

import asyncio

import pytest
from fakes import RecordingAlerts, ScriptedClassifier

from plantrecog.host import ImageRef
from plantrecog.service.client import PredictionServiceError
from plantrecog.service.schemas import PredictionItem
from plantrecog.state import (
    FAILURE_ALERT_MESSAGE,
    PLACEHOLDER_LABEL,
    PROCESSING_LABEL,
    PredictionResult,
    PredictionStateMachine,
    RequestLifecycleState,
)

ROSE = PredictionItem(name="Rose", score=0.92)
TULIP = PredictionItem(name="Tulip", score=0.4)
IMAGE = ImageRef(uri="file:///tmp/rose.jpg")


def _machine(*outcomes: list[PredictionItem] | None | Exception) -> tuple[
    PredictionStateMachine, ScriptedClassifier, RecordingAlerts
]:
    classifier = ScriptedClassifier(*outcomes)
    alerts = RecordingAlerts()
    return PredictionStateMachine(classifier, alerts), classifier, alerts


class TestPredictionResult:
    def test_placeholder_shape(self) -> None:
        result = PredictionResult.placeholder()
        assert result.primary == PredictionItem(name=PLACEHOLDER_LABEL, score=None)
        assert result.ranked == (PredictionItem(name="", score=None),)

    def test_empty_ranked_rejected(self) -> None:
        with pytest.raises(ValueError, match="at least one"):
            PredictionResult(primary=ROSE, ranked=())

    def test_from_predictions_keeps_service_order(self) -> None:
        # Deliberately ascending: the client must not re-sort.
        result = PredictionResult.from_predictions([TULIP, ROSE])
        assert result.primary == TULIP
        assert result.ranked == (TULIP, ROSE)


class TestSubmit:
    def test_starts_idle_with_placeholder(self) -> None:
        machine, _, _ = _machine()
        assert machine.lifecycle is RequestLifecycleState.IDLE
        assert machine.result == PredictionResult.placeholder()
        assert machine.result.ranked[0].score is None

    async def test_success_sets_primary_and_ranked(self) -> None:
        machine, classifier, alerts = _machine([ROSE, TULIP])

        assert await machine.submit(IMAGE) is True

        assert machine.lifecycle is RequestLifecycleState.SUCCEEDED
        assert machine.result.primary == PredictionItem(name="Rose", score=0.92)
        assert machine.result.ranked == (ROSE, TULIP)
        assert classifier.calls == [IMAGE]
        assert alerts.notices == []

    async def test_processing_is_visible_before_classify_runs(self) -> None:
        alerts = RecordingAlerts()
        seen: list[tuple[RequestLifecycleState, str]] = []

        class StateRecorder:
            async def classify(self, image: ImageRef) -> list[PredictionItem] | None:
                seen.append((machine.lifecycle, machine.result.primary.name))
                return [ROSE]

        machine = PredictionStateMachine(StateRecorder(), alerts)
        await machine.submit(IMAGE)

        assert seen == [(RequestLifecycleState.SUBMITTING, PROCESSING_LABEL)]

    async def test_processing_keeps_previous_ranked(self) -> None:
        machine, classifier, _ = _machine([ROSE, TULIP], [TULIP])
        await machine.submit(IMAGE)

        classifier.gate = asyncio.Event()
        task = asyncio.create_task(machine.submit(IMAGE))
        await asyncio.sleep(0)

        assert machine.lifecycle is RequestLifecycleState.SUBMITTING
        assert machine.result.primary.name == PROCESSING_LABEL
        assert machine.result.ranked == (ROSE, TULIP)

        classifier.gate.set()
        await task
        assert machine.result.ranked == (TULIP,)

    async def test_sentinel_reverts_to_placeholder_with_one_alert(self) -> None:
        machine, _, alerts = _machine([ROSE], None)
        await machine.submit(IMAGE)

        await machine.submit(IMAGE)

        assert machine.lifecycle is RequestLifecycleState.FAILED
        assert machine.result == PredictionResult.placeholder()
        assert alerts.notices == [("Ops", FAILURE_ALERT_MESSAGE)]

    async def test_service_error_is_contained(self, caplog: pytest.LogCaptureFixture) -> None:
        machine, _, alerts = _machine(PredictionServiceError("connection refused"))

        assert await machine.submit(IMAGE) is True

        assert machine.lifecycle is RequestLifecycleState.FAILED
        assert machine.result == PredictionResult.placeholder()
        assert len(alerts.notices) == 1
        assert "connection refused" not in alerts.notices[0][1]
        assert "connection refused" in caplog.text

    async def test_recovers_after_failure(self) -> None:
        machine, _, alerts = _machine(None, [ROSE, TULIP])

        await machine.submit(IMAGE)
        await machine.submit(IMAGE)

        assert machine.lifecycle is RequestLifecycleState.SUCCEEDED
        assert machine.result.primary == ROSE
        assert len(alerts.notices) == 1

    async def test_second_submit_while_in_flight_is_rejected(self) -> None:
        machine, classifier, alerts = _machine([ROSE])
        classifier.gate = asyncio.Event()

        first = asyncio.create_task(machine.submit(IMAGE))
        await asyncio.sleep(0)
        assert machine.busy

        assert await machine.submit(ImageRef(uri="file:///tmp/other.jpg")) is False

        classifier.gate.set()
        assert await first is True
        assert classifier.calls == [IMAGE]
        assert machine.result.primary == ROSE
        assert alerts.notices == []

    async def test_listeners_see_every_transition(self) -> None:
        machine, _, _ = _machine([ROSE], None)
        transitions: list[RequestLifecycleState] = []
        machine.subscribe(lambda _result, lifecycle: transitions.append(lifecycle))

        await machine.submit(IMAGE)
        await machine.submit(IMAGE)

        assert transitions == [
            RequestLifecycleState.SUBMITTING,
            RequestLifecycleState.SUCCEEDED,
            RequestLifecycleState.SUBMITTING,
            RequestLifecycleState.FAILED,
        ]

    async def test_ranked_never_empty(self) -> None:
        machine, _, _ = _machine([ROSE], None, PredictionServiceError("down"), [TULIP])
        snapshots: list[PredictionResult] = []
        machine.subscribe(lambda result, _lifecycle: snapshots.append(result))

        for _ in range(4):
            await machine.submit(IMAGE)

        assert all(len(result.ranked) >= 1 for result in snapshots)


class TestUnexpectedFailures:
    async def test_unexpected_error_fails_without_lockout(self) -> None:
        machine, _, alerts = _machine(RuntimeError("invalid url"), [ROSE])

        assert await machine.submit(IMAGE) is True

        assert not machine.busy
        assert machine.lifecycle is RequestLifecycleState.FAILED
        assert machine.result == PredictionResult.placeholder()
        assert alerts.notices == [("Ops", FAILURE_ALERT_MESSAGE)]

        assert await machine.submit(IMAGE) is True
        assert machine.result.primary == ROSE

    async def test_cancelled_submission_releases_machine(self) -> None:
        machine, classifier, _ = _machine([ROSE], [TULIP])
        classifier.gate = asyncio.Event()

        task = asyncio.create_task(machine.submit(IMAGE))
        await asyncio.sleep(0)
        assert machine.busy

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert not machine.busy
        assert machine.lifecycle is RequestLifecycleState.FAILED
        assert machine.result == PredictionResult.placeholder()

    async def test_raising_listener_does_not_wedge_machine(self) -> None:
        machine, _, _ = _machine([ROSE], [TULIP])

        def broken(_result: PredictionResult, _lifecycle: RequestLifecycleState) -> None:
            raise ValueError("render failed")

        machine.subscribe(broken)

        assert await machine.submit(IMAGE) is True
        assert machine.lifecycle is RequestLifecycleState.SUCCEEDED
        assert await machine.submit(IMAGE) is True
        assert machine.result.primary == TULIP
