"""Fake OpenCV video sources shared by the capture, permission and session tests."""
import time

import cv2
import numpy as np
import pytest


class FakeVideoCapture:
    """Stands in for cv2.VideoCapture.

    ``metadata_after`` / ``frames_after`` count how many polls report nothing
    before size metadata and decoded frames show up, mimicking a stream warming up.
    """

    def __init__(
        self,
        source=0,
        *,
        width: int = 1920,
        height: int = 1080,
        opened: bool = True,
        metadata_after: int = 0,
        frames_after: int = 0,
        fail_reads: int = 0,
        read_delay: float = 0.0,
    ) -> None:
        self.source = source
        self.width = width
        self.height = height
        self.opened = opened
        self.released = False
        self.reads = 0
        self._metadata_after = metadata_after
        self._frames_after = frames_after
        self._fail_reads = fail_reads
        self._read_delay = read_delay

    def isOpened(self) -> bool:
        return self.opened and not self.released

    def get(self, prop_id: int) -> float:
        if self._metadata_after > 0:
            self._metadata_after -= 1
            return 0.0
        if prop_id == cv2.CAP_PROP_FRAME_WIDTH:
            return float(self.width)
        if prop_id == cv2.CAP_PROP_FRAME_HEIGHT:
            return float(self.height)
        return 0.0

    def read(self):
        self.reads += 1
        time.sleep(self._read_delay)
        if self.released or not self.opened:
            return False, None
        if self._frames_after > 0:
            self._frames_after -= 1
            return False, None
        if self._fail_reads > 0:
            self._fail_reads -= 1
            return False, None
        frame = np.full((self.height, self.width, 3), 128, dtype=np.uint8)
        frame[:, :, 2] = 200
        return True, frame

    def release(self) -> None:
        self.released = True


class FakeOpener:
    """Callable opener that records every source it was asked to open."""

    def __init__(self, *, delay: float = 0.0, **kwargs) -> None:
        self.delay = delay
        self.kwargs = kwargs
        self.opened: list[FakeVideoCapture] = []

    def __call__(self, source) -> FakeVideoCapture:
        time.sleep(self.delay)
        capture = FakeVideoCapture(source, **self.kwargs)
        self.opened.append(capture)
        return capture

    @property
    def sources(self) -> list:
        return [c.source for c in self.opened]


@pytest.fixture
def make_opener():
    return FakeOpener


@pytest.fixture
def camera_present(monkeypatch):
    """A camera backend and device node exist, so a refused open reads as denied access."""
    monkeypatch.setattr("src.capture.device._camera_backends", lambda: [cv2.CAP_V4L2])
    monkeypatch.setattr("src.capture.device._device_present", lambda index: True)
