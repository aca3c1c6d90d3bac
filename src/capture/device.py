"""DeviceCaptureAdapter: local camera device via OpenCV, JPEG encoded by cv2.

OpenCV calls block, so every open, read, encode and release runs in a worker
thread through ``asyncio.to_thread``.
"""
import asyncio
import logging
import sys
import time
from pathlib import Path
from typing import Optional

import cv2

from src.capture.client import (
    CaptureAdapter,
    CapturedImage,
    Facing,
    Opener,
    VideoSource,
    frame_size,
    release_source,
)
from src.constants import (
    CAMERA_INDEX_BACK,
    CAMERA_INDEX_FRONT,
    JPEG_QUALITY,
    PHOTO_FILENAME_PREFIX,
    PHOTO_FILENAME_SUFFIX,
)
from src.errors import CaptureFailedError, CaptureNotReadyError, DeviceUnavailableError

logger = logging.getLogger(__name__)


def _camera_backends() -> list:
    return list(cv2.videoio_registry.getCameraBackends())


def _device_present(index: int) -> bool:
    """False only where absence can be told apart from refusal (Linux device nodes)."""
    match sys.platform:
        case p if p.startswith("linux"):
            return Path(f"/dev/video{index}").exists()
        case _:
            return True


class DeviceCaptureAdapter(CaptureAdapter):

    def __init__(
        self,
        index_back: int = CAMERA_INDEX_BACK,
        index_front: int = CAMERA_INDEX_FRONT,
        jpeg_quality: int = JPEG_QUALITY,
        opener: Opener = cv2.VideoCapture,
    ) -> None:
        self._indices = {Facing.BACK: index_back, Facing.FRONT: index_front}
        self._quality = jpeg_quality
        self._opener = opener
        self._source: Optional[VideoSource] = None
        self._facing = Facing.BACK
        self._ready = False
        self._generation = 0
        self._photo_dir: Optional[Path] = None

    @property
    def is_ready(self) -> bool:
        return self._ready

    @property
    def facing(self) -> Facing:
        return self._facing

    def enable_photo_store(self, photo_dir: Path) -> None:
        self._photo_dir = photo_dir

    async def initialize(self, facing: Facing) -> bool:
        self._ready = False
        self._facing = facing
        self._generation += 1
        generation = self._generation
        await asyncio.to_thread(release_source, self._detach())
        index = self._indices[facing]
        source, opened = await asyncio.to_thread(self._open_sync, index)
        match (opened, generation == self._generation):
            case (True, True):
                self._source = source
                self._ready = True
                logger.info("Camera %d (%s) ready", index, facing.value)
                return True
            case (_, False):
                # a newer initialize() took over while this one was opening
                await asyncio.to_thread(source.release)
                return False
            case _:
                await asyncio.to_thread(source.release)
                raise CaptureFailedError(f"Camera {index} ({facing.value}) could not be opened")

    async def probe(self, facing: Facing = Facing.BACK) -> bool:
        return await asyncio.to_thread(self._probe_sync, self._indices[facing])

    async def capture(self) -> CapturedImage:
        source = self._source
        match (self._ready, source):
            case (True, s) if s is not None:
                pass
            case _:
                raise CaptureNotReadyError("Camera not initialized")

        jpeg, width, height = await asyncio.to_thread(self._grab_sync, source)
        saved = await asyncio.to_thread(self._save_to_photo_store, jpeg)
        return CapturedImage.from_jpeg(
            jpeg, width, height, source_uri=saved.as_uri() if saved else None
        )

    def release(self) -> None:
        release_source(self._detach())

    def _detach(self) -> Optional[VideoSource]:
        source, self._source = self._source, None
        self._ready = False
        return source

    def _open_sync(self, index: int) -> tuple[VideoSource, bool]:
        try:
            source = self._opener(index)
        except cv2.error as exc:
            raise CaptureFailedError(f"Camera {index} could not be opened: {exc}") from exc
        return source, bool(source.isOpened())

    def _probe_sync(self, index: int) -> bool:
        try:
            source = self._opener(index)
        except cv2.error as exc:
            raise DeviceUnavailableError(f"Camera backend error: {exc}") from exc
        try:
            match bool(source.isOpened()):
                case True:
                    return True
                case False:
                    pass
        finally:
            source.release()

        match (_camera_backends(), _device_present(index)):
            case ([], _):
                raise DeviceUnavailableError("No camera backend available in this OpenCV build")
            case (_, False):
                raise DeviceUnavailableError(f"No camera device at index {index}")
            case _:
                return False

    def _grab_sync(self, source: VideoSource) -> tuple[bytes, int, int]:
        ok, frame = source.read()
        match ok:
            case False:
                raise CaptureFailedError("Camera returned no frame")
            case _:
                pass
        width, height = frame_size(frame)

        encoded, buffer = cv2.imencode(".jpg", frame, [cv2.IMWRITE_JPEG_QUALITY, self._quality])
        match encoded:
            case False:
                raise CaptureFailedError("JPEG encoding failed")
            case _:
                return buffer.tobytes(), width, height

    def _save_to_photo_store(self, jpeg: bytes) -> Optional[Path]:
        match self._photo_dir:
            case None:
                return None
            case photo_dir:
                pass
        stamp = time.strftime("%Y%m%d_%H%M%S")
        path = (photo_dir / f"{PHOTO_FILENAME_PREFIX}{stamp}{PHOTO_FILENAME_SUFFIX}").resolve()
        try:
            path.write_bytes(jpeg)
            logger.info("Photo saved to %s", path)
            return path
        except OSError as exc:
            logger.warning("Photo store save failed: %s", exc)
            return None
