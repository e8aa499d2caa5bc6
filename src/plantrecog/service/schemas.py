"""Pydantic schemas for the prediction service payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PredictionItem(BaseModel):
    """A single species candidate.

    ``score`` is None only for the placeholder shown before any real result.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    score: float | None = None


class RecognizedClassesResponse(BaseModel):
    """Response for the recognized-class listing endpoint."""

    recognized: list[str] = Field(default_factory=list)


class ClassifyResponse(BaseModel):
    """Response for the image classification endpoint.

    ``predictions`` is null when the service has no usable result.
    """

    predictions: list[PredictionItem] | None

    @field_validator("predictions")
    @classmethod
    def _scores_required(cls, value: list[PredictionItem] | None) -> list[PredictionItem] | None:
        if value is not None and any(item.score is None for item in value):
            raise ValueError("every prediction must carry a score")
        return value
