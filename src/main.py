"""Entry point: wires Config → capture adapter → CameraSession → TelegramClient."""
import logging
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler

from src.analysis import AnalysisClient
from src.capture.client import CaptureAdapter
from src.capture.device import DeviceCaptureAdapter
from src.capture.stream import StreamCaptureAdapter
from src.config import Config
from src.constants import MSG_BOT_STARTING
from src.permissions import PermissionManager
from src.prompt_store import PromptSettings, PromptStore
from src.session import CameraSession
from src.telegram.client import TelegramClient
from src.vision.claude import ClaudeVisionClient
from src.vision.client import VisionClient
from src.vision.openai import OpenAIVisionClient


def _setup_logging(level: str) -> None:
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    list(map(root.removeHandler, root.handlers[:]))
    root.addHandler(RichHandler(rich_tracebacks=True))


def build_capture_adapter(config: Config) -> CaptureAdapter:
    match config.camera_stream_url:
        case str() as url if url:
            return StreamCaptureAdapter(
                url,
                front_url=config.camera_stream_url_front,
                jpeg_quality=config.jpeg_quality,
                settle_delay=config.camera_settle_delay,
                warmup_timeout=config.camera_warmup_timeout,
            )
        case _:
            return DeviceCaptureAdapter(
                index_back=config.camera_index_back,
                index_front=config.camera_index_front,
                jpeg_quality=config.jpeg_quality,
            )


def build_vision_client(config: Config) -> Optional[VisionClient]:
    match (config.openai_api_key, config.anthropic_api_key):
        case (str() as k, _) if k:
            return OpenAIVisionClient(
                k,
                model=config.vision_model,
                max_tokens=config.max_tokens,
                timeout=config.analysis_timeout,
            )
        case (_, str() as k) if k:
            return ClaudeVisionClient(k, max_tokens=config.max_tokens, timeout=config.analysis_timeout)
        case _:
            return None


def build_session(config: Config) -> CameraSession:
    adapter = build_capture_adapter(config)
    photo_dir = Path(config.photo_dir).expanduser() if config.photo_dir else None
    match adapter:
        case DeviceCaptureAdapter():
            permissions = PermissionManager(adapter, photo_dir=photo_dir, facing=config.camera_facing)
        case _:
            permissions = PermissionManager(adapter, mirror_storage=True, facing=config.camera_facing)
    analyzer = AnalysisClient(build_vision_client(config), mask_errors=config.mask_analysis_errors)
    prompts = PromptSettings(PromptStore(Path(config.prompt_store_path)))
    return CameraSession(
        adapter,
        permissions,
        analyzer,
        prompts,
        facing=config.camera_facing,
        preset=config.system_prompt_preset,
    )


def main() -> None:
    config = Config.from_env()
    _setup_logging(config.log_level)

    logger = logging.getLogger(__name__)
    logger.info(MSG_BOT_STARTING)

    session = build_session(config)
    client = TelegramClient(config)
    client.run(session)


if __name__ == "__main__":
    main()
