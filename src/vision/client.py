"""VisionClient: abstract base for multimodal completion backends."""
from abc import ABC, abstractmethod


class VisionClient(ABC):
    @abstractmethod
    async def describe(self, image_b64: str, system_prompt: str) -> str:
        """Send a base64 JPEG with a system prompt and return the model's text. Raises on failure."""
        ...
