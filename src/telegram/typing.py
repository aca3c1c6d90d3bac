"""Chat action shown while a photo is being taken and analyzed.

Telegram clears a chat action after about five seconds, so it is re-sent on an
interval until the block it wraps finishes.
"""
import asyncio
import logging
from typing import Optional

from telegram import Bot
from telegram.constants import ChatAction
from telegram.error import TelegramError

from src.bot_client import ActivityIndicator
from src.constants import TELEGRAM_ACTION_INTERVAL

logger = logging.getLogger(__name__)


class TelegramChatAction(ActivityIndicator):

    def __init__(
        self,
        bot: Bot,
        chat_id: str,
        action: ChatAction = ChatAction.UPLOAD_PHOTO,
        interval: float = TELEGRAM_ACTION_INTERVAL,
    ) -> None:
        self._bot = bot
        self._chat_id = int(chat_id)
        self._action = action
        self._interval = interval
        self._done: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None

    async def __aenter__(self) -> "TelegramChatAction":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    async def start(self) -> None:
        await self.stop()
        self._done = asyncio.Event()
        self._task = asyncio.create_task(self._repeat(self._done))

    async def stop(self) -> None:
        done, task = self._done, self._task
        self._done, self._task = None, None
        match (done, task):
            case (asyncio.Event() as event, asyncio.Task() as running):
                event.set()
                await running
            case _:
                pass

    async def _repeat(self, done: asyncio.Event) -> None:
        while not done.is_set():
            try:
                await self._bot.send_chat_action(chat_id=self._chat_id, action=self._action)
            except TelegramError as exc:
                logger.debug("Chat action %s failed: %s", self._action, exc)
            try:
                await asyncio.wait_for(done.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass
