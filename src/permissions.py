"""PermissionManager: one-shot camera and storage access negotiation at startup."""
import logging
import os
from enum import Enum
from pathlib import Path
from typing import Optional

from src.capture.client import CaptureAdapter, Facing

logger = logging.getLogger(__name__)


class PermissionState(str, Enum):
    UNKNOWN = "unknown"
    GRANTED = "granted"
    DENIED = "denied"


class AccessState(str, Enum):
    UNREQUESTED = "unrequested"
    REQUESTING = "requesting"
    GRANTED = "granted"
    DENIED = "denied"
    INIT_ERROR = "init_error"

    @property
    def is_terminal_failure(self) -> bool:
        return self in (AccessState.DENIED, AccessState.INIT_ERROR)


class PermissionManager:
    """Requests access once per process. There is no re-request API:
    a refused camera has to be fixed on the host and the bot restarted."""

    def __init__(
        self,
        adapter: CaptureAdapter,
        photo_dir: Optional[Path] = None,
        mirror_storage: bool = False,
        facing: Facing = Facing.BACK,
    ) -> None:
        self._adapter = adapter
        self._facing = facing
        self._photo_dir = photo_dir
        self._mirror_storage = mirror_storage
        self._state = AccessState.UNREQUESTED
        self.camera = PermissionState.UNKNOWN
        self.storage = PermissionState.UNKNOWN
        self.init_error: Optional[str] = None

    @property
    def state(self) -> AccessState:
        return self._state

    @property
    def photo_dir(self) -> Optional[Path]:
        return self._photo_dir

    async def request_access(self) -> AccessState:
        match self._state:
            case AccessState.UNREQUESTED:
                pass
            case settled:
                return settled

        self._state = AccessState.REQUESTING
        logger.info("Requesting camera access…")
        try:
            camera_ok = await self._adapter.probe(self._facing)
            self.camera = PermissionState.GRANTED if camera_ok else PermissionState.DENIED
            self.storage = (
                self.camera if self._mirror_storage else self._request_storage()
            )
        except Exception as exc:
            logger.exception("Permission request error")
            self.init_error = f"Permission error: {exc}"
            self.camera = PermissionState.DENIED
            self.storage = PermissionState.DENIED
            self._state = AccessState.INIT_ERROR
            return self._state

        self._state = (
            AccessState.GRANTED if self.camera is PermissionState.GRANTED else AccessState.DENIED
        )
        logger.info(
            "Camera permission: %s, storage permission: %s",
            self.camera.value,
            self.storage.value,
        )
        return self._state

    def _request_storage(self) -> PermissionState:
        match self._photo_dir:
            case None:
                return PermissionState.DENIED
            case photo_dir:
                pass
        try:
            photo_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.warning("Photo directory %s unavailable: %s", photo_dir, exc)
            return PermissionState.DENIED
        return PermissionState.GRANTED if os.access(photo_dir, os.W_OK) else PermissionState.DENIED
