"""Abstract interfaces for transport-agnostic camera front ends."""
from abc import ABC, abstractmethod

from src.session import CameraSession


class ActivityIndicator(ABC):
    @abstractmethod
    async def start(self) -> None: ...

    @abstractmethod
    async def stop(self) -> None: ...


class BotClient(ABC):
    @abstractmethod
    def run(self, session: CameraSession) -> None: ...

    @abstractmethod
    async def send_message(self, to: str, text: str) -> bool: ...

    @abstractmethod
    async def send_photo(self, to: str, photo: bytes) -> bool: ...
