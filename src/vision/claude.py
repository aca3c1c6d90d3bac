"""ClaudeVisionClient: Anthropic Claude vision backend."""
from typing import Optional

from anthropic import AsyncAnthropic

from src.constants import (
    ANALYSIS_INSTRUCTION,
    ANALYSIS_TIMEOUT,
    CLAUDE_VISION_MODEL,
    JPEG_MIME,
    MAX_TOKENS,
)
from src.vision.client import VisionClient


class ClaudeVisionClient(VisionClient):

    def __init__(
        self,
        api_key: str,
        model: str = CLAUDE_VISION_MODEL,
        max_tokens: int = MAX_TOKENS,
        timeout: float = ANALYSIS_TIMEOUT,
        client: Optional[AsyncAnthropic] = None,
    ) -> None:
        self._client = client or AsyncAnthropic(api_key=api_key, timeout=timeout)
        self._model = model
        self._max_tokens = max_tokens

    async def describe(self, image_b64: str, system_prompt: str) -> str:
        message = await self._client.messages.create(
            model=self._model,
            max_tokens=self._max_tokens,
            system=system_prompt,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": ANALYSIS_INSTRUCTION},
                        {
                            "type": "image",
                            "source": {
                                "type": "base64",
                                "media_type": JPEG_MIME,
                                "data": image_b64,
                            },
                        },
                    ],
                }
            ],
        )
        texts = [block.text for block in message.content if getattr(block, "type", "text") == "text"]
        match "".join(texts).strip():
            case "":
                raise ValueError("Malformed response: no completion text")
            case text:
                return text
