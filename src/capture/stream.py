"""StreamCaptureAdapter: continuous video stream, frames snapshotted through Pillow.

Unlike a local device, a freshly opened stream yields black or stale frames for
a while. Readiness therefore waits for three things in order:

1. metadata loaded: the stream is open and reports a non-zero frame size;
2. playback started: the first frame decodes;
3. a fixed settle delay has elapsed.

``capture()`` on an adapter that is not ready raises CaptureNotReadyError
instead of returning a blank image.

Opening an RTSP or HTTP source and reading from a stalled one can block for
seconds, so every OpenCV call runs in a worker thread.
"""
import asyncio
import io
import logging
from typing import Any, Callable, Optional

import cv2
import numpy as np
from PIL import Image

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
    CAMERA_SETTLE_DELAY,
    CAMERA_WARMUP_TIMEOUT,
    JPEG_QUALITY,
    WARMUP_POLL_INTERVAL,
)
from src.errors import CaptureFailedError, CaptureNotReadyError, DeviceUnavailableError

logger = logging.getLogger(__name__)


def _stream_backends() -> list:
    return list(cv2.videoio_registry.getStreamBackends())


class StreamCaptureAdapter(CaptureAdapter):

    def __init__(
        self,
        url: str,
        front_url: Optional[str] = None,
        jpeg_quality: int = JPEG_QUALITY,
        settle_delay: float = CAMERA_SETTLE_DELAY,
        warmup_timeout: float = CAMERA_WARMUP_TIMEOUT,
        poll_interval: float = WARMUP_POLL_INTERVAL,
        opener: Opener = cv2.VideoCapture,
    ) -> None:
        self._urls = {Facing.BACK: url, Facing.FRONT: front_url or url}
        self._quality = jpeg_quality
        self.settle_delay = settle_delay
        self._warmup_timeout = warmup_timeout
        self._poll_interval = poll_interval
        self._opener = opener
        self._stream: Optional[VideoSource] = None
        self._facing = Facing.BACK
        self._ready = False
        self._generation = 0

    @property
    def is_ready(self) -> bool:
        return self._ready

    @property
    def facing(self) -> Facing:
        return self._facing

    async def initialize(self, facing: Facing) -> bool:
        self._ready = False
        self._facing = facing
        self._generation += 1
        generation = self._generation
        await asyncio.to_thread(release_source, self._detach())
        stream = await asyncio.to_thread(self._open_sync, self._urls[facing])
        match generation == self._generation:
            case True:
                self._stream = stream
            case False:
                # a newer initialize() took over while this one was connecting
                await asyncio.to_thread(stream.release)
                return False

        try:
            current = (
                await self._wait_for(stream, _has_metadata, "metadata")
                and await self._wait_for(stream, _first_frame, "first frame")
            )
            match current:
                case True:
                    logger.debug("Stream playback started, settling for %.1fs", self.settle_delay)
                    await asyncio.sleep(self.settle_delay)
                case False:
                    pass
        except BaseException:
            match self._stream is stream:
                case True:
                    self._detach()
                case False:
                    pass
            await asyncio.to_thread(stream.release)
            raise
        match self._stream is stream:
            case True:
                self._ready = True
                logger.info("Stream (%s) ready for capture", facing.value)
                return True
            case False:
                # superseded by a newer initialize() or released meanwhile
                return False

    async def probe(self, facing: Facing = Facing.BACK) -> bool:
        return await asyncio.to_thread(self._probe_sync, self._urls[facing])

    async def capture(self) -> CapturedImage:
        stream = self._stream
        match (self._ready, stream):
            case (True, s) if s is not None:
                pass
            case _:
                raise CaptureNotReadyError("Camera is not ready yet. Wait a few seconds and try again.")

        jpeg, width, height = await asyncio.to_thread(self._snapshot_sync, stream)
        logger.debug("Photo captured, %dx%d, %d bytes", width, height, len(jpeg))
        return CapturedImage.from_jpeg(jpeg, width, height)

    def release(self) -> None:
        release_source(self._detach())

    def _detach(self) -> Optional[VideoSource]:
        stream, self._stream = self._stream, None
        self._ready = False
        return stream

    def _open_sync(self, url: str) -> VideoSource:
        try:
            return self._opener(url)
        except cv2.error as exc:
            raise CaptureFailedError(f"Stream could not be opened: {exc}") from exc

    def _probe_sync(self, url: str) -> bool:
        try:
            stream = self._opener(url)
        except cv2.error as exc:
            raise DeviceUnavailableError(f"Stream backend error: {exc}") from exc
        try:
            match bool(stream.isOpened()):
                case True:
                    return True
                case False:
                    pass
        finally:
            stream.release()

        match _stream_backends():
            case []:
                raise DeviceUnavailableError("No stream backend available in this OpenCV build")
            case _:
                return False

    def _snapshot_sync(self, stream: VideoSource) -> tuple[bytes, int, int]:
        ok, frame = stream.read()
        match ok:
            case False:
                raise CaptureFailedError("Stream returned no frame")
            case _:
                pass
        width, height = frame_size(frame)

        # OpenCV frames are BGR; Pillow expects RGB.
        raster = np.ascontiguousarray(frame[:, :, ::-1], dtype=np.uint8)
        buffer = io.BytesIO()
        try:
            Image.fromarray(raster).save(buffer, format="JPEG", quality=self._quality)
        except (OSError, ValueError) as exc:
            raise CaptureFailedError(f"JPEG encoding failed: {exc}") from exc
        return buffer.getvalue(), width, height

    async def _wait_for(self, stream: VideoSource, check: Callable[[VideoSource], bool], what: str) -> bool:
        """Poll ``check`` until it passes. False if the stream was replaced meanwhile."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._warmup_timeout
        while not await asyncio.to_thread(check, stream):
            match (self._stream is stream, loop.time() >= deadline):
                case (False, _):
                    return False
                case (True, True):
                    raise CaptureFailedError(f"Stream {what} not available after {self._warmup_timeout:.0f}s")
                case _:
                    await asyncio.sleep(self._poll_interval)
        return self._stream is stream


def _has_metadata(stream: VideoSource) -> bool:
    return bool(stream.isOpened()) and (
        stream.get(cv2.CAP_PROP_FRAME_WIDTH) > 0 and stream.get(cv2.CAP_PROP_FRAME_HEIGHT) > 0
    )


def _first_frame(stream: VideoSource) -> bool:
    ok, frame = stream.read()
    return bool(ok) and _non_empty(frame)


def _non_empty(frame: Any) -> bool:
    return frame is not None and frame.size > 0
