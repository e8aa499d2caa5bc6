"""HTTP client for the remote plant prediction service.

Every call is a single request/response round trip. There is no retry; a
failure at the transport, status or payload level raises
``PredictionServiceError`` so callers never see a partial result.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING, TypeVar
from urllib.parse import unquote, urlparse

import httpx
from pydantic import ValidationError

from plantrecog.service.schemas import ClassifyResponse, PredictionItem, RecognizedClassesResponse

if TYPE_CHECKING:
    from types import TracebackType

    from plantrecog.config import Settings
    from plantrecog.host import ImageRef

logger = logging.getLogger(__name__)

M = TypeVar("M", RecognizedClassesResponse, ClassifyResponse)

HEALTHY_STATUSES = frozenset({"ok", "up"})


class PredictionServiceError(Exception):
    """Raised when a prediction service call cannot produce a valid result."""


class PredictionServiceClient:
    """Stateless facade over the health, class-list and classify endpoints."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=settings.service_url,
            headers=self._build_headers(settings),
            timeout=settings.request_timeout,
        )

    async def __aenter__(self) -> PredictionServiceClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    # -- Public API ---------------------------------------------------------

    async def check_health(self) -> bool:
        """Return True if the service reports itself healthy.

        A non-2xx status is unhealthy. A 2xx body that is a JSON boolean, or an
        object with a ``status`` field, decides on its own; ``status`` must be
        ``ok`` or ``up``. Any other body leaves the decision to the status code.
        """
        try:
            response = await self._client.get(self._settings.health_path)
        except httpx.HTTPError as exc:
            raise PredictionServiceError(f"Health check failed: {exc}") from exc

        if not response.is_success:
            logger.warning("Health check returned HTTP %s", response.status_code)
            return False

        try:
            body = response.json()
        except ValueError:
            return True
        if isinstance(body, bool):
            healthy = body
        elif isinstance(body, dict) and "status" in body:
            healthy = str(body["status"]).lower() in HEALTHY_STATUSES
        else:
            return True
        if not healthy:
            logger.warning("Health check reported %r", body)
        return healthy

    async def fetch_recognized_classes(self) -> tuple[str, ...]:
        """Return the class names the service can recognize, in service order."""
        response = await self._request("GET", self._settings.classes_path)
        payload = self._parse(RecognizedClassesResponse, response)
        logger.info("Service recognizes %d classes", len(payload.recognized))
        return tuple(payload.recognized)

    async def classify(self, image: ImageRef) -> list[PredictionItem] | None:
        """Upload an image and return its ranked predictions.

        Returns:
            Predictions in the order the service ranked them, or None when the
            service signals it has no usable prediction.

        Raises:
            PredictionServiceError: On transport failure, a non-success status,
                a malformed payload, or an unreadable image file.
        """
        path = _local_path(image.uri)
        try:
            content = await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            raise PredictionServiceError(f"Cannot read image {path}: {exc}") from exc

        files = {"image": (path.name, content, image.mime_type)}
        response = await self._request("POST", self._settings.predict_path, files=files)
        payload = self._parse(ClassifyResponse, response)
        if not payload.predictions:
            return None
        return payload.predictions

    # -- Internal -----------------------------------------------------------

    @staticmethod
    def _build_headers(settings: Settings) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if settings.api_key is not None:
            headers["Authorization"] = f"Bearer {settings.api_key}"
        return headers

    async def _request(self, method: str, url: str, **kwargs: object) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)  # type: ignore[arg-type]
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise PredictionServiceError(
                f"{method} {url} returned HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise PredictionServiceError(f"{method} {url} failed: {exc}") from exc
        return response

    @staticmethod
    def _parse(model: type[M], response: httpx.Response) -> M:
        try:
            return model.model_validate_json(response.content)
        except ValidationError as exc:
            raise PredictionServiceError(f"Malformed {model.__name__} payload") from exc


def _local_path(uri: str) -> Path:
    parsed = urlparse(uri)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    return Path(uri)
