"""CameraSession tests: capture cycles driven through fake cameras and a mocked vision backend."""
import asyncio
import base64
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.analysis import AnalysisClient, ResultKind
from src.capture.client import Facing
from src.capture.device import DeviceCaptureAdapter
from src.capture.stream import StreamCaptureAdapter
from src.config import Config
from src.constants import (
    DEFAULT_PROMPT,
    MSG_DEMO_MODE,
    MSG_PLACEHOLDER_ANALYSIS,
    MSG_PROMPT_CANCELLED,
    MSG_PROMPT_EMPTY,
    MSG_PROMPT_NOT_EDITING,
    MSG_PROMPT_PRESET_LOCKED,
    MSG_PROMPT_SAVED,
    MSG_PROMPT_USAGE,
    PROMPT_PRESETS,
)
from src.errors import (
    AccessBlockedError,
    CaptureFailedError,
    CaptureNotReadyError,
    CycleActiveError,
    SessionBusyError,
)
from src.main import build_vision_client
from src.permissions import AccessState, PermissionManager
from src.prompt_store import PromptSettings, PromptStore
from src.session import CameraSession
from src.vision.client import VisionClient


def make_vision(text: str = "A red apple on a table") -> MagicMock:
    vision = MagicMock(spec=VisionClient)
    vision.describe = AsyncMock(return_value=text)
    return vision


def make_session(
    tmp_path: Path,
    opener,
    *,
    vision=None,
    facing: Facing = Facing.BACK,
    preset: str = "custom",
    photo_dir: Path | None = None,
    mask_errors: bool = True,
) -> CameraSession:
    adapter = DeviceCaptureAdapter(opener=opener)
    permissions = PermissionManager(adapter, photo_dir=photo_dir, facing=facing)
    prompts = PromptSettings(PromptStore(path=tmp_path / "prompt.json"))
    return CameraSession(
        adapter,
        permissions,
        AnalysisClient(vision, mask_errors=mask_errors),
        prompts,
        facing=facing,
        preset=preset,
    )


# ── end-to-end cycles ─────────────────────────────────────────────────────────


async def test_back_camera_capture_returns_analysis_text(tmp_path, make_opener):
    opener = make_opener()
    vision = make_vision()
    session = make_session(tmp_path, opener, vision=vision)

    assert await session.start() is AccessState.GRANTED
    cycle = await session.capture()

    assert opener.sources[-1] == 0
    assert (cycle.image.width, cycle.image.height) == (1920, 1080)
    assert cycle.image.raw_bytes.startswith(b"\xff\xd8")
    assert cycle.image.source_uri.startswith("data:image/jpeg;base64,")
    assert base64.b64decode(cycle.image.base64) == cycle.image.raw_bytes
    assert cycle.result.kind is ResultKind.TEXT
    assert cycle.result.text == "A red apple on a table"
    assert cycle.result.error is None
    vision.describe.assert_awaited_once_with(cycle.image.base64, DEFAULT_PROMPT)
    assert session.image is cycle.image
    assert session.result is cycle.result


async def test_front_camera_without_credential_is_demo(tmp_path, make_opener):
    config = Config(telegram_bot_token="t", allowed_chat_id="1", log_level="INFO")
    with patch("src.vision.openai.AsyncOpenAI") as mock_openai, patch(
        "src.vision.claude.AsyncAnthropic"
    ) as mock_anthropic:
        vision = build_vision_client(config)
        opener = make_opener()
        session = make_session(tmp_path, opener, vision=vision, facing=Facing.FRONT)

        await session.start()
        cycle = await session.capture()

    assert vision is None
    assert opener.sources[-1] == 1
    assert cycle.result.kind is ResultKind.DEMO
    assert cycle.result.text == MSG_DEMO_MODE
    mock_openai.assert_not_called()
    mock_anthropic.assert_not_called()


async def test_analysis_failure_still_completes_cycle(tmp_path, make_opener):
    vision = make_vision()
    vision.describe.side_effect = ConnectionError("network down")
    session = make_session(tmp_path, make_opener(), vision=vision)
    await session.start()

    cycle = await session.capture()

    assert cycle.result.kind is ResultKind.FAILURE
    assert cycle.result.text == MSG_PLACEHOLDER_ANALYSIS
    assert "network down" in cycle.result.error
    assert not session.busy
    with pytest.raises(CycleActiveError):
        await session.capture()


async def test_stream_session_capture(tmp_path, make_opener):
    opener = make_opener(metadata_after=2, frames_after=1)
    adapter = StreamCaptureAdapter(
        "http://cam.local/stream", settle_delay=0, poll_interval=0, opener=opener
    )
    session = CameraSession(
        adapter,
        PermissionManager(adapter, mirror_storage=True),
        AnalysisClient(make_vision("A bottle of wine")),
        PromptSettings(PromptStore(path=tmp_path / "prompt.json")),
    )

    await session.start()
    cycle = await session.capture()

    assert cycle.result.text == "A bottle of wine"
    assert cycle.image.source_uri.startswith("data:image/jpeg;base64,")


# ── cycle rules ───────────────────────────────────────────────────────────────


async def test_second_capture_refused_until_reset(tmp_path, make_opener):
    vision = make_vision()
    session = make_session(tmp_path, make_opener(), vision=vision)
    await session.start()
    await session.capture()

    with pytest.raises(CycleActiveError):
        await session.capture()

    assert await session.reset() is True
    assert session.image is None
    assert session.result is None
    await session.capture()
    assert vision.describe.await_count == 2


async def test_camera_released_after_capture(tmp_path, make_opener):
    opener = make_opener()
    session = make_session(tmp_path, opener, vision=make_vision())
    await session.start()

    await session.capture()

    assert opener.opened[-1].released


async def test_capture_refused_while_analysis_pending(tmp_path, make_opener):
    gate = asyncio.Event()

    async def slow_describe(image_b64, prompt):
        await gate.wait()
        return "done"

    vision = make_vision()
    vision.describe.side_effect = slow_describe
    session = make_session(tmp_path, make_opener(), vision=vision)
    await session.start()

    pending = asyncio.create_task(session.capture())
    while not session.busy:
        await asyncio.sleep(0)

    with pytest.raises(SessionBusyError):
        await session.capture()
    with pytest.raises(SessionBusyError):
        await session.reset()

    gate.set()
    cycle = await pending
    assert cycle.result.text == "done"
    assert not session.busy


async def test_capture_blocked_when_camera_denied(tmp_path, make_opener, camera_present):
    session = make_session(tmp_path, make_opener(opened=False), vision=make_vision())

    assert await session.start() is AccessState.DENIED
    with pytest.raises(AccessBlockedError):
        await session.capture()
    with pytest.raises(AccessBlockedError):
        await session.reset()


async def test_capture_blocked_before_start(tmp_path, make_opener):
    session = make_session(tmp_path, make_opener())

    with pytest.raises(AccessBlockedError):
        await session.capture()


async def test_capture_failure_leaves_no_cycle_and_can_retry(tmp_path, make_opener):
    vision = make_vision()
    session = make_session(tmp_path, make_opener(fail_reads=1), vision=vision)
    await session.start()

    with pytest.raises(CaptureFailedError):
        await session.capture()

    assert session.image is None
    assert not session.busy
    vision.describe.assert_not_awaited()
    cycle = await session.capture()
    assert cycle.result.kind is ResultKind.TEXT


async def test_capture_not_ready_after_camera_released(tmp_path, make_opener):
    opener = make_opener()
    session = make_session(tmp_path, opener, vision=make_vision())
    await session.start()
    session._adapter.release()

    with pytest.raises(CaptureNotReadyError):
        await session.capture()
    assert await session.reset() is True
    await session.capture()


# ── facing ────────────────────────────────────────────────────────────────────


async def test_flip_switches_to_front_camera(tmp_path, make_opener):
    opener = make_opener()
    session = make_session(tmp_path, opener, vision=make_vision())
    await session.start()

    assert await session.flip() is Facing.FRONT
    assert session.facing is Facing.FRONT
    assert opener.sources[-1] == 1
    assert await session.flip() is Facing.BACK
    assert opener.sources[-1] == 0


async def test_flip_refused_while_cycle_active(tmp_path, make_opener):
    session = make_session(tmp_path, make_opener(), vision=make_vision())
    await session.start()
    await session.capture()

    with pytest.raises(CycleActiveError):
        await session.flip()
    assert session.facing is Facing.BACK


async def test_reset_reopens_current_facing(tmp_path, make_opener):
    opener = make_opener()
    session = make_session(tmp_path, opener, vision=make_vision(), facing=Facing.FRONT)
    await session.start()
    await session.capture()

    await session.reset()

    assert opener.sources[-1] == 1


# ── photo store ───────────────────────────────────────────────────────────────


async def test_capture_saved_to_photo_dir_when_storage_granted(tmp_path, make_opener):
    photo_dir = tmp_path / "photos"
    session = make_session(tmp_path, make_opener(), vision=make_vision(), photo_dir=photo_dir)
    await session.start()

    cycle = await session.capture()

    saved = list(photo_dir.glob("*.jpg"))
    assert len(saved) == 1
    assert saved[0].read_bytes() == cycle.image.raw_bytes
    assert cycle.image.source_uri == saved[0].resolve().as_uri()


async def test_no_photo_saved_without_photo_dir(tmp_path, make_opener):
    session = make_session(tmp_path, make_opener(), vision=make_vision())
    await session.start()

    cycle = await session.capture()

    assert cycle.image.source_uri.startswith("data:")


# ── prompts ───────────────────────────────────────────────────────────────────


async def test_saved_prompt_is_sent_and_survives_restart(tmp_path, make_opener):
    vision = make_vision()
    session = make_session(tmp_path, make_opener(), vision=vision)
    await session.start()

    session.handle_prompt_command("edit")
    session.handle_prompt_command("set", "Name the wine and its region.")
    assert session.handle_prompt_command("save") == MSG_PROMPT_SAVED
    cycle = await session.capture()

    vision.describe.assert_awaited_once_with(cycle.image.base64, "Name the wine and its region.")
    restarted = make_session(tmp_path, make_opener())
    assert restarted.system_prompt == "Name the wine and its region."


def test_prompt_cancel_keeps_active(tmp_path, make_opener):
    session = make_session(tmp_path, make_opener())

    session.handle_prompt_command("edit")
    session.handle_prompt_command("set", "temporary")
    assert "temporary" in session.handle_prompt_command("show")
    assert session.handle_prompt_command("cancel") == MSG_PROMPT_CANCELLED

    assert session.system_prompt == DEFAULT_PROMPT
    assert DEFAULT_PROMPT in session.handle_prompt_command("show")


def test_prompt_save_blank_is_rejected(tmp_path, make_opener):
    session = make_session(tmp_path, make_opener())

    session.handle_prompt_command("edit")
    session.handle_prompt_command("set", "   ")

    assert session.handle_prompt_command("save") == MSG_PROMPT_EMPTY
    assert session.system_prompt == DEFAULT_PROMPT


def test_prompt_save_without_edit(tmp_path, make_opener):
    session = make_session(tmp_path, make_opener())
    assert session.handle_prompt_command("save") == MSG_PROMPT_NOT_EDITING
    assert session.handle_prompt_command("cancel") == MSG_PROMPT_NOT_EDITING


def test_prompt_unknown_action_returns_usage(tmp_path, make_opener):
    session = make_session(tmp_path, make_opener())
    assert session.handle_prompt_command("frobnicate") == MSG_PROMPT_USAGE


def test_preset_replaces_prompt_and_locks_editing(tmp_path, make_opener):
    session = make_session(tmp_path, make_opener(), preset="simple")

    assert session.system_prompt == PROMPT_PRESETS["simple"]
    assert session.handle_prompt_command("edit") == MSG_PROMPT_PRESET_LOCKED % "simple"
    assert not session.prompts.editing


# ── status ────────────────────────────────────────────────────────────────────


async def test_status_reports_demo_mode_and_readiness(tmp_path, make_opener):
    session = make_session(tmp_path, make_opener())
    await session.start()

    status = session.status()

    assert "demo" in status
    assert "DeviceCaptureAdapter" in status
    assert "granted" in status


async def test_camera_without_device_is_init_error(tmp_path, make_opener, monkeypatch):
    monkeypatch.setattr("src.capture.device._device_present", lambda index: False)
    session = make_session(tmp_path, make_opener(opened=False), vision=make_vision())

    assert await session.start() is AccessState.INIT_ERROR
    assert session.init_error.startswith("Permission error")
    with pytest.raises(AccessBlockedError):
        await session.capture()


async def test_front_camera_probed_when_front_configured(tmp_path, make_opener):
    opener = make_opener()
    session = make_session(tmp_path, opener, facing=Facing.FRONT)

    await session.start()

    assert opener.sources == [1, 1]
