"""CaptureAdapter: abstract base for still-frame capture backends."""
import base64
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional, Protocol

from src.constants import DATA_URI_PREFIX
from src.errors import CaptureFailedError


class Facing(str, Enum):
    FRONT = "front"
    BACK = "back"

    def flipped(self) -> "Facing":
        return Facing.FRONT if self is Facing.BACK else Facing.BACK


@dataclass(frozen=True)
class CapturedImage:
    raw_bytes: bytes
    base64: str
    source_uri: str
    width: int
    height: int

    @classmethod
    def from_jpeg(
        cls, jpeg: bytes, width: int, height: int, source_uri: Optional[str] = None
    ) -> "CapturedImage":
        encoded = base64.standard_b64encode(jpeg).decode()
        return cls(
            raw_bytes=jpeg,
            base64=encoded,
            source_uri=source_uri or DATA_URI_PREFIX + encoded,
            width=width,
            height=height,
        )


class VideoSource(Protocol):
    """The slice of ``cv2.VideoCapture`` the adapters rely on."""

    def isOpened(self) -> bool: ...

    def read(self) -> tuple[bool, Any]: ...

    def get(self, prop_id: int) -> float: ...

    def release(self) -> None: ...


Opener = Callable[[Any], VideoSource]


def release_source(source: Optional[VideoSource]) -> None:
    match source:
        case None:
            pass
        case s:
            s.release()


def frame_size(frame: Any) -> tuple[int, int]:
    """Return (width, height), raising CaptureFailedError on an empty frame."""
    match frame:
        case None:
            raise CaptureFailedError("No frame available from camera")
        case _:
            pass
    height, width = frame.shape[:2]
    match (width, height):
        case (0, _) | (_, 0):
            raise CaptureFailedError(f"Camera returned a {width}x{height} frame")
        case _:
            return int(width), int(height)


class CaptureAdapter(ABC):

    @property
    @abstractmethod
    def is_ready(self) -> bool: ...

    @property
    @abstractmethod
    def facing(self) -> Facing: ...

    @abstractmethod
    async def initialize(self, facing: Facing) -> bool:
        """Open the source for ``facing``; returns readiness. Raises CaptureError on failure."""
        ...

    @abstractmethod
    async def capture(self) -> CapturedImage:
        """Grab one still frame as JPEG. Raises CaptureNotReadyError / CaptureFailedError."""
        ...

    @abstractmethod
    async def probe(self, facing: Facing = Facing.BACK) -> bool:
        """Open and release the source for ``facing``. False means access was refused.

        Raises DeviceUnavailableError when there is no camera to ask for.
        """
        ...

    @abstractmethod
    def release(self) -> None: ...

    def enable_photo_store(self, photo_dir: Path) -> None:
        """Persist captures to ``photo_dir``. Variants without a photo store ignore it."""
        return None
