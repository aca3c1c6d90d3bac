"""TelegramClient: chat commands drive the camera session via python-telegram-bot."""
import logging
import time
from typing import Awaitable, Callable, Optional

from telegram import Update
from telegram.ext import Application, CommandHandler, ContextTypes

from src.bot_client import BotClient
from src.config import Config
from src.constants import (
    CMD_FLIP,
    CMD_HELP,
    CMD_PROMPT,
    CMD_RESET,
    CMD_SNAP,
    CMD_START,
    CMD_STATUS,
    MSG_ACCESS_PENDING,
    MSG_API_ERROR,
    MSG_BLOCKED_CHAT,
    MSG_BUSY,
    MSG_CAMERA_UNAVAILABLE,
    MSG_CAPTURE_FAILED,
    MSG_CYCLE_ACTIVE,
    MSG_FLIP_FAILED,
    MSG_FLIPPED,
    MSG_HELP,
    MSG_INIT_ERROR,
    MSG_NO_CAMERA_ACCESS,
    MSG_PROMPT_USAGE,
    MSG_RESET_DONE,
    MSG_SEND_FAIL,
    MSG_SEND_OK,
)
from src.errors import AccessBlockedError, CaptureError, CycleActiveError, SessionBusyError
from src.permissions import AccessState
from src.session import CameraSession
from src.telegram.typing import TelegramChatAction

logger = logging.getLogger(__name__)

CommandCallback = Callable[[str, Update, ContextTypes.DEFAULT_TYPE], Awaitable[None]]

_PROMPT_ACTIONS = ("show", "edit", "default", "save", "cancel")


def _digits(s: str) -> str:
    return "".join(c for c in s if c.isdigit() or c == "-")


class TelegramClient(BotClient):

    def __init__(self, config: Config, session: Optional[CameraSession] = None) -> None:
        self._token = config.telegram_bot_token
        self._allowed_chat_id = config.allowed_chat_id
        self._app: Optional[Application] = None
        self._session = session

    # ── BotClient interface ───────────────────────────────────────────────────

    def run(self, session: CameraSession) -> None:
        self._session = session
        self._app = (
            Application.builder()
            .token(self._token)
            .post_init(self._on_startup)
            .post_shutdown(self._on_shutdown)
            .build()
        )
        commands: dict[str, CommandCallback] = {
            CMD_START: self._on_help,
            CMD_HELP: self._on_help,
            CMD_SNAP: self._on_snap,
            CMD_FLIP: self._on_flip,
            CMD_RESET: self._on_reset,
            CMD_STATUS: self._on_status,
            CMD_PROMPT: self._on_prompt,
        }
        for name, callback in commands.items():
            self._app.add_handler(CommandHandler(name, self._guarded(callback)))
        self._app.run_polling()

    async def send_message(self, to: str, text: str) -> bool:
        match self._app:
            case None:
                logger.error("send_message called before run()")
                return False
            case app:
                try:
                    await app.bot.send_message(chat_id=int(to), text=text)
                    return True
                except Exception as exc:
                    logger.error("Telegram send_message failed: %s", exc)
                    return False

    async def send_photo(self, to: str, photo: bytes) -> bool:
        match self._app:
            case None:
                logger.error("send_photo called before run()")
                return False
            case app:
                try:
                    await app.bot.send_photo(chat_id=int(to), photo=photo)
                    return True
                except Exception as exc:
                    logger.error("Telegram send_photo failed: %s", exc)
                    return False

    # ── application lifecycle ─────────────────────────────────────────────────

    async def _on_startup(self, app: Application) -> None:
        await self._session.start()

    async def _on_shutdown(self, app: Application) -> None:
        await self._session.close()

    # ── helpers (also used in tests) ─────────────────────────────────────────

    def _is_allowed(self, update: Update) -> bool:
        if update.effective_chat is None:
            return False
        incoming = _digits(str(update.effective_chat.id))
        allowed = _digits(self._allowed_chat_id)
        return incoming == allowed

    @staticmethod
    def _command_args(update: Update) -> str:
        """Text after the command word, newlines preserved."""
        text = (update.message.text if update.message else None) or ""
        match text.split(None, 1):
            case [_, rest]:
                return rest.strip()
            case _:
                return ""

    @staticmethod
    def _parse_prompt_args(args: str) -> tuple[str, str] | None:
        """Parse '/prompt' arguments → (action, text) or None."""
        match args.strip().split(None, 1):
            case []:
                return ("show", "")
            case [action] if action.lower() in _PROMPT_ACTIONS:
                return (action.lower(), "")
            case [action, text] if action.lower() == "set":
                return ("set", text.strip())
            case _:
                return None

    def _blocked_reply(self) -> str:
        match self._session.access:
            case AccessState.INIT_ERROR:
                return MSG_INIT_ERROR % (self._session.init_error or "unknown error")
            case AccessState.DENIED:
                return MSG_NO_CAMERA_ACCESS
            case _:
                return MSG_ACCESS_PENDING

    # ── internal handler factory ──────────────────────────────────────────────

    def _guarded(self, callback: CommandCallback) -> Callable:
        async def _handler(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
            match self._is_allowed(update):
                case False:
                    chat_id = update.effective_chat.id if update.effective_chat else "?"
                    logger.warning(MSG_BLOCKED_CHAT, chat_id)
                    return
                case True:
                    pass
            sender = str(update.effective_chat.id)
            await callback(sender, update, context)

        return _handler

    # ── commands ──────────────────────────────────────────────────────────────

    async def _on_help(self, sender: str, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        await self.send_message(sender, MSG_HELP)

    async def _on_status(self, sender: str, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        await self.send_message(sender, self._session.status())

    async def _on_prompt(self, sender: str, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        match self._parse_prompt_args(self._command_args(update)):
            case None:
                await self.send_message(sender, MSG_PROMPT_USAGE)
            case (action, text):
                await self.send_message(sender, self._session.handle_prompt_command(action, text))

    async def _on_snap(self, sender: str, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        start = time.time()
        try:
            async with TelegramChatAction(context.bot, sender):
                cycle = await self._session.capture()
        except AccessBlockedError:
            await self.send_message(sender, self._blocked_reply())
            return
        except SessionBusyError:
            await self.send_message(sender, MSG_BUSY)
            return
        except CycleActiveError:
            await self.send_message(sender, MSG_CYCLE_ACTIVE)
            return
        except CaptureError as exc:
            logger.warning("Capture failed: %s", exc)
            await self.send_message(sender, MSG_CAPTURE_FAILED % exc)
            return

        await self.send_photo(sender, cycle.image.raw_bytes)
        match cycle.result.error:
            case None:
                pass
            case reason:
                await self.send_message(sender, MSG_API_ERROR % reason)
        success = await self.send_message(sender, cycle.result.text)
        elapsed = time.time() - start
        match success:
            case True:
                logger.info(MSG_SEND_OK, elapsed)
            case False:
                logger.error(MSG_SEND_FAIL, elapsed)

    async def _on_reset(self, sender: str, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        try:
            ready = await self._session.reset()
        except AccessBlockedError:
            await self.send_message(sender, self._blocked_reply())
            return
        except SessionBusyError:
            await self.send_message(sender, MSG_BUSY)
            return
        await self.send_message(sender, MSG_RESET_DONE if ready else MSG_CAMERA_UNAVAILABLE)

    async def _on_flip(self, sender: str, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        try:
            facing = await self._session.flip()
        except AccessBlockedError:
            await self.send_message(sender, self._blocked_reply())
            return
        except SessionBusyError:
            await self.send_message(sender, MSG_BUSY)
            return
        except CycleActiveError:
            await self.send_message(sender, MSG_CYCLE_ACTIVE)
            return
        except CaptureError as exc:
            logger.warning("Camera switch failed: %s", exc)
            await self.send_message(sender, MSG_FLIP_FAILED % exc)
            return
        await self.send_message(sender, MSG_FLIPPED % facing.value)
