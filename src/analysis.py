"""AnalysisClient: one vision request per capture cycle, never raises.

Without a credential the client runs in demo mode and makes no request at all.
When a request fails, the failure is reported in ``AnalysisResult.error``. With
``mask_errors`` on, the visible text becomes a canned placeholder so the flow
on screen is not interrupted.
"""
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from src.capture.client import CapturedImage
from src.constants import (
    MSG_ANALYSIS_FAILED,
    MSG_API_KEY_HINT,
    MSG_DEMO_MODE,
    MSG_PLACEHOLDER_ANALYSIS,
)
from src.vision.client import VisionClient

logger = logging.getLogger(__name__)


class ResultKind(str, Enum):
    TEXT = "text"
    DEMO = "demo"
    FAILURE = "failure"


@dataclass(frozen=True)
class AnalysisResult:
    kind: ResultKind
    text: str
    error: Optional[str] = None

    @classmethod
    def ok(cls, text: str) -> "AnalysisResult":
        return cls(kind=ResultKind.TEXT, text=text)

    @classmethod
    def demo(cls) -> "AnalysisResult":
        return cls(kind=ResultKind.DEMO, text=MSG_DEMO_MODE)

    @classmethod
    def failure(cls, reason: str, text: str) -> "AnalysisResult":
        return cls(kind=ResultKind.FAILURE, text=text, error=reason)


def _failure_notice(exc: Exception) -> str:
    notice = MSG_ANALYSIS_FAILED % exc
    match "api key" in str(exc).lower() or "api_key" in str(exc).lower():
        case True:
            return notice + MSG_API_KEY_HINT
        case False:
            return notice


class AnalysisClient:

    def __init__(self, vision: Optional[VisionClient], mask_errors: bool = True) -> None:
        self._vision = vision
        self._mask_errors = mask_errors

    @property
    def demo_mode(self) -> bool:
        return self._vision is None

    async def analyze(self, image: CapturedImage, system_prompt: str) -> AnalysisResult:
        match self._vision:
            case None:
                logger.info("Vision backend not configured, using demo mode")
                return AnalysisResult.demo()
            case vision:
                pass

        start = time.time()
        logger.info("Analyzing %dx%d image…", image.width, image.height)
        try:
            text = await vision.describe(image.base64, system_prompt)
        except Exception as exc:
            logger.error("Vision API error after %.1fs: %s", time.time() - start, exc)
            notice = _failure_notice(exc)
            shown = MSG_PLACEHOLDER_ANALYSIS if self._mask_errors else notice
            return AnalysisResult.failure(notice, shown)

        logger.info("Vision API response received (%.1fs)", time.time() - start)
        return AnalysisResult.ok(text)
