"""Camera and media-library authorization tracking."""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import TYPE_CHECKING

from plantrecog.host import PermissionState

if TYPE_CHECKING:
    from collections.abc import Mapping

    from plantrecog.host import AlertPresenter, PermissionPrompt

logger = logging.getLogger(__name__)


class Resource(StrEnum):
    CAMERA = "camera"
    MEDIA_LIBRARY = "media_library"


DENIED_NOTICE_TITLE = "Oh! Snap"

DENIED_NOTICES: dict[Resource, str] = {
    Resource.CAMERA: "App does not have permission for the Camera!",
    Resource.MEDIA_LIBRARY: "Not having enough permission to open gallery!",
}


class PermissionCoordinator:
    """Requests and tracks per-resource permission state.

    Each resource is owned independently. A resource that is not yet granted is
    re-asked lazily, every time a capture or pick needs it.
    """

    def __init__(self, prompts: Mapping[Resource, PermissionPrompt], alerts: AlertPresenter) -> None:
        self._prompts = dict(prompts)
        self._alerts = alerts
        self._states: dict[Resource, PermissionState] = {r: PermissionState.UNKNOWN for r in Resource}

    def state(self, resource: Resource) -> PermissionState:
        """Return the stored state without prompting."""
        return self._states[resource]

    def seed(self, resource: Resource, state: PermissionState) -> None:
        """Store a state obtained elsewhere (the bootstrap batch)."""
        self._states[resource] = state

    async def request(self, resource: Resource) -> PermissionState:
        """Prompt unconditionally and store the answer. Shows no notice."""
        state = await self._prompts[resource].request()
        self._states[resource] = state
        logger.info("Permission %s: %s", resource, state)
        return state

    async def ensure(self, resource: Resource) -> PermissionState:
        """Return GRANTED or DENIED, prompting only if not already granted.

        A resource not stored as granted is first checked with a status query,
        so a grant made in the system settings is picked up without a prompt.

        On denial a dismissable notice is shown; the caller should abandon the
        operation that needed the resource.
        """
        if self._states[resource] is PermissionState.GRANTED:
            return PermissionState.GRANTED

        # Access may have been granted outside the app since it was last asked.
        if await self._prompts[resource].status() is PermissionState.GRANTED:
            self._states[resource] = PermissionState.GRANTED
            logger.info("Permission %s: granted outside the app", resource)
            return PermissionState.GRANTED

        state = await self.request(resource)
        if state is PermissionState.GRANTED:
            return state

        self._states[resource] = PermissionState.DENIED
        await self._alerts.notify(DENIED_NOTICE_TITLE, DENIED_NOTICES[resource])
        return PermissionState.DENIED
