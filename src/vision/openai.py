"""OpenAIVisionClient: OpenAI chat-completions vision backend."""
from typing import Optional

from openai import AsyncOpenAI

from src.constants import (
    ANALYSIS_INSTRUCTION,
    ANALYSIS_TIMEOUT,
    DATA_URI_PREFIX,
    MAX_TOKENS,
    VISION_MODEL,
)
from src.vision.client import VisionClient


class OpenAIVisionClient(VisionClient):

    def __init__(
        self,
        api_key: str,
        model: str = VISION_MODEL,
        max_tokens: int = MAX_TOKENS,
        timeout: float = ANALYSIS_TIMEOUT,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self._client = client or AsyncOpenAI(api_key=api_key, timeout=timeout)
        self._model = model
        self._max_tokens = max_tokens

    async def describe(self, image_b64: str, system_prompt: str) -> str:
        response = await self._client.chat.completions.create(
            model=self._model,
            messages=[
                {"role": "system", "content": system_prompt},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": ANALYSIS_INSTRUCTION},
                        {
                            "type": "image_url",
                            "image_url": {"url": f"{DATA_URI_PREFIX}{image_b64}"},
                        },
                    ],
                },
            ],
            max_tokens=self._max_tokens,
        )
        match response.choices:
            case [first, *_] if first.message.content:
                return first.message.content.strip()
            case _:
                raise ValueError("Malformed response: no completion text")
