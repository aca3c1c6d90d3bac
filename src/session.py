"""CameraSession: capture-cycle orchestration, transport-agnostic."""
import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from src.analysis import AnalysisClient, AnalysisResult
from src.capture.client import CaptureAdapter, CapturedImage, Facing
from src.constants import (
    MSG_PROMPT_ACTIVE,
    MSG_PROMPT_CANCELLED,
    MSG_PROMPT_DRAFT,
    MSG_PROMPT_EMPTY,
    MSG_PROMPT_NOT_EDITING,
    MSG_PROMPT_PRESET_LOCKED,
    MSG_PROMPT_SAVED,
    MSG_PROMPT_USAGE,
    MSG_STATUS,
    PROMPT_PRESET_CUSTOM,
    PROMPT_PRESETS,
)
from src.errors import (
    AccessBlockedError,
    CaptureError,
    CycleActiveError,
    SessionBusyError,
)
from src.permissions import AccessState, PermissionManager, PermissionState
from src.prompt_store import PromptSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CaptureCycle:
    image: CapturedImage
    result: AnalysisResult


class CameraSession:
    """Owns the single active capture cycle.

    A cycle opens on a successful capture and closes on reset(). While a cycle
    is open, or while its analysis is in flight, further captures are refused.
    """

    def __init__(
        self,
        adapter: CaptureAdapter,
        permissions: PermissionManager,
        analyzer: AnalysisClient,
        prompts: PromptSettings,
        facing: Facing = Facing.BACK,
        preset: str = PROMPT_PRESET_CUSTOM,
    ) -> None:
        self._adapter = adapter
        self._permissions = permissions
        self._analyzer = analyzer
        self._prompts = prompts
        self._facing = facing
        self._preset = preset
        self._image: Optional[CapturedImage] = None
        self._result: Optional[AnalysisResult] = None
        self._busy = False

    # ── state ─────────────────────────────────────────────────────────────────

    @property
    def access(self) -> AccessState:
        return self._permissions.state

    @property
    def init_error(self) -> Optional[str]:
        return self._permissions.init_error

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def image(self) -> Optional[CapturedImage]:
        return self._image

    @property
    def result(self) -> Optional[AnalysisResult]:
        return self._result

    @property
    def facing(self) -> Facing:
        return self._facing

    @property
    def prompts(self) -> PromptSettings:
        return self._prompts

    @property
    def system_prompt(self) -> str:
        match self._preset:
            case p if p == PROMPT_PRESET_CUSTOM:
                return self._prompts.active
            case p:
                return PROMPT_PRESETS.get(p, self._prompts.active)

    @property
    def preset(self) -> str:
        return self._preset

    # ── lifecycle ─────────────────────────────────────────────────────────────

    async def start(self) -> AccessState:
        match self._analyzer.demo_mode:
            case True:
                logger.warning("Vision API key not set - demo mode enabled")
            case False:
                logger.info("Vision API key present")
        state = await self._permissions.request_access()
        match state:
            case AccessState.GRANTED:
                self._enable_photo_store()
                await self._open_camera()
            case AccessState.DENIED:
                logger.warning("Camera access denied")
            case _:
                logger.error("Initialization failed: %s", self._permissions.init_error)
        return state

    async def close(self) -> None:
        await asyncio.to_thread(self._adapter.release)
        logger.info("Camera released")

    def _enable_photo_store(self) -> None:
        match (self._permissions.storage, self._permissions.photo_dir):
            case (PermissionState.GRANTED, Path() as photo_dir):
                self._adapter.enable_photo_store(photo_dir)
            case _:
                pass

    async def _open_camera(self) -> bool:
        try:
            return await self._adapter.initialize(self._facing)
        except CaptureError as exc:
            logger.error("Camera initialization failed: %s", exc)
            return False

    # ── capture cycle ─────────────────────────────────────────────────────────

    def _ensure_access(self) -> None:
        match self._permissions.state:
            case AccessState.GRANTED:
                pass
            case state:
                raise AccessBlockedError(state.value)

    async def capture(self) -> CaptureCycle:
        self._ensure_access()
        match (self._busy, self._image):
            case (True, _):
                raise SessionBusyError("Analysis in progress")
            case (False, CapturedImage()):
                raise CycleActiveError("Reset before taking another photo")
            case _:
                pass

        self._busy = True
        try:
            image = await self._adapter.capture()
            self._image = image
            await asyncio.to_thread(self._adapter.release)
            result = await self._analyzer.analyze(image, self.system_prompt)
            self._result = result
        finally:
            self._busy = False

        match result.error:
            case None:
                pass
            case reason:
                logger.warning("Analysis failed: %s", reason)
        return CaptureCycle(image=image, result=result)

    async def reset(self) -> bool:
        self._ensure_access()
        match self._busy:
            case True:
                raise SessionBusyError("Analysis in progress")
            case False:
                pass
        self._image = None
        self._result = None
        return await self._open_camera()

    async def flip(self) -> Facing:
        self._ensure_access()
        match (self._busy, self._image):
            case (True, _):
                raise SessionBusyError("Analysis in progress")
            case (False, CapturedImage()):
                raise CycleActiveError("Reset before switching camera")
            case _:
                pass
        self._facing = self._facing.flipped()
        self._busy = True
        try:
            await self._adapter.initialize(self._facing)
        finally:
            self._busy = False
        return self._facing

    # ── prompt settings ───────────────────────────────────────────────────────

    def handle_prompt_command(self, action: str, text: str = "") -> str:
        prompts = self._prompts
        match action:
            case "show":
                return (
                    MSG_PROMPT_DRAFT % prompts.draft
                    if prompts.editing
                    else MSG_PROMPT_ACTIVE % self.system_prompt
                )
            case "edit" | "set" | "default" if self._preset != PROMPT_PRESET_CUSTOM:
                return MSG_PROMPT_PRESET_LOCKED % self._preset
            case "edit":
                return MSG_PROMPT_DRAFT % prompts.open()
            case "set":
                return MSG_PROMPT_DRAFT % prompts.set_draft(text)
            case "default":
                return MSG_PROMPT_DRAFT % prompts.reset_draft()
            case "save" | "cancel" if not prompts.editing:
                return MSG_PROMPT_NOT_EDITING
            case "save":
                try:
                    prompts.save()
                except ValueError:
                    return MSG_PROMPT_EMPTY
                logger.info("Prompt saved")
                return MSG_PROMPT_SAVED
            case "cancel":
                prompts.cancel()
                return MSG_PROMPT_CANCELLED
            case _:
                return MSG_PROMPT_USAGE

    # ── status ────────────────────────────────────────────────────────────────

    def status(self) -> str:
        mode = "demo (API key not configured)" if self._analyzer.demo_mode else "live"
        prompt = "custom" if self._preset == PROMPT_PRESET_CUSTOM else f"preset '{self._preset}'"
        return MSG_STATUS % (
            self.access.value,
            self._facing.value,
            type(self._adapter).__name__,
            "yes" if self._adapter.is_ready else "no",
            mode,
            prompt,
        )
