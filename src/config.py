from dataclasses import dataclass
from typing import Optional
import os
from dotenv import load_dotenv

from src.capture.client import Facing
from src.constants import (
    ANALYSIS_TIMEOUT,
    CAMERA_INDEX_BACK,
    CAMERA_INDEX_FRONT,
    CAMERA_SETTLE_DELAY,
    CAMERA_WARMUP_TIMEOUT,
    JPEG_QUALITY,
    MAX_TOKENS,
    PROMPT_PRESET_CUSTOM,
    PROMPT_PRESETS,
    PROMPT_STORE_PATH,
    VISION_MODEL,
)

_TRUTHY = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Config:
    telegram_bot_token: str
    allowed_chat_id: str
    log_level: str
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    vision_model: str = VISION_MODEL
    max_tokens: int = MAX_TOKENS
    analysis_timeout: float = ANALYSIS_TIMEOUT
    mask_analysis_errors: bool = True
    camera_stream_url: Optional[str] = None
    camera_stream_url_front: Optional[str] = None
    camera_index_back: int = CAMERA_INDEX_BACK
    camera_index_front: int = CAMERA_INDEX_FRONT
    camera_facing: Facing = Facing.BACK
    camera_settle_delay: float = CAMERA_SETTLE_DELAY
    camera_warmup_timeout: float = CAMERA_WARMUP_TIMEOUT
    jpeg_quality: int = JPEG_QUALITY
    photo_dir: Optional[str] = None
    prompt_store_path: str = PROMPT_STORE_PATH
    system_prompt_preset: str = PROMPT_PRESET_CUSTOM

    @classmethod
    def from_env(cls) -> "Config":
        load_dotenv()

        token = os.getenv("TELEGRAM_BOT_TOKEN")
        chat_id = os.getenv("ALLOWED_CHAT_ID")
        log_level = os.getenv("LOG_LEVEL", "INFO")
        openai_api_key = os.getenv("OPENAI_API_KEY") or None
        anthropic_api_key = os.getenv("ANTHROPIC_API_KEY") or None
        vision_model = os.getenv("VISION_MODEL") or VISION_MODEL
        max_tokens = os.getenv("MAX_TOKENS", str(MAX_TOKENS))
        analysis_timeout = os.getenv("ANALYSIS_TIMEOUT", str(ANALYSIS_TIMEOUT))
        mask_errors = os.getenv("MASK_ANALYSIS_ERRORS", "true")
        stream_url = os.getenv("CAMERA_STREAM_URL") or None
        stream_url_front = os.getenv("CAMERA_STREAM_URL_FRONT") or None
        index_back = os.getenv("CAMERA_INDEX_BACK", str(CAMERA_INDEX_BACK))
        index_front = os.getenv("CAMERA_INDEX_FRONT", str(CAMERA_INDEX_FRONT))
        facing = os.getenv("CAMERA_FACING", Facing.BACK.value)
        settle_delay = os.getenv("CAMERA_SETTLE_DELAY", str(CAMERA_SETTLE_DELAY))
        warmup_timeout = os.getenv("CAMERA_WARMUP_TIMEOUT", str(CAMERA_WARMUP_TIMEOUT))
        jpeg_quality = os.getenv("JPEG_QUALITY", str(JPEG_QUALITY))
        photo_dir = os.getenv("PHOTO_DIR") or None
        prompt_store_path = os.getenv("PROMPT_STORE_PATH") or PROMPT_STORE_PATH
        preset = os.getenv("SYSTEM_PROMPT_PRESET") or PROMPT_PRESET_CUSTOM

        return cls._validate(
            telegram_bot_token=token,
            allowed_chat_id=chat_id,
            log_level=log_level,
            openai_api_key=openai_api_key,
            anthropic_api_key=anthropic_api_key,
            vision_model=vision_model,
            max_tokens=int(max_tokens),
            analysis_timeout=float(analysis_timeout),
            mask_analysis_errors=mask_errors.strip().lower() in _TRUTHY,
            camera_stream_url=stream_url,
            camera_stream_url_front=stream_url_front,
            camera_index_back=int(index_back),
            camera_index_front=int(index_front),
            camera_facing=facing.strip().lower(),
            camera_settle_delay=float(settle_delay),
            camera_warmup_timeout=float(warmup_timeout),
            jpeg_quality=int(jpeg_quality),
            photo_dir=photo_dir,
            prompt_store_path=prompt_store_path,
            system_prompt_preset=preset.strip().lower(),
        )

    @staticmethod
    def _validate(
        telegram_bot_token: Optional[str],
        allowed_chat_id: Optional[str],
        camera_facing: str,
        jpeg_quality: int,
        max_tokens: int,
        camera_settle_delay: float,
        system_prompt_preset: str,
        **rest,
    ) -> "Config":
        match telegram_bot_token:
            case None | "":
                raise ValueError("TELEGRAM_BOT_TOKEN must be set in .env")
            case _:
                pass

        match allowed_chat_id:
            case None | "":
                raise ValueError("ALLOWED_CHAT_ID must be set in .env")
            case _:
                pass

        match camera_facing:
            case "front" | "back":
                facing = Facing(camera_facing)
            case other:
                raise ValueError(f"CAMERA_FACING must be 'front' or 'back', got {other!r}")

        match jpeg_quality:
            case q if 1 <= q <= 100:
                pass
            case q:
                raise ValueError(f"JPEG_QUALITY must be between 1 and 100, got {q}")

        match max_tokens:
            case n if n > 0:
                pass
            case n:
                raise ValueError(f"MAX_TOKENS must be positive, got {n}")

        match camera_settle_delay:
            case d if d >= 0:
                pass
            case d:
                raise ValueError(f"CAMERA_SETTLE_DELAY must not be negative, got {d}")

        match system_prompt_preset:
            case p if p == PROMPT_PRESET_CUSTOM or p in PROMPT_PRESETS:
                pass
            case p:
                raise ValueError(f"Unknown SYSTEM_PROMPT_PRESET {p!r}")

        return Config(
            telegram_bot_token=telegram_bot_token,
            allowed_chat_id=allowed_chat_id,
            camera_facing=facing,
            jpeg_quality=jpeg_quality,
            max_tokens=max_tokens,
            camera_settle_delay=camera_settle_delay,
            system_prompt_preset=system_prompt_preset,
            **rest,
        )
