from __future__ import annotations

import os
from typing import Optional, Sequence

from openai import AsyncOpenAI

from app.ai.types import ChatMessage


class OpenAIProvider:
    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_s: float = 30.0,
        max_retries: int = 2,
        temperature: float = 0.2,
        top_p: float = 0.9,
    ):
        self._model = model
        self._temperature = temperature
        self._top_p = top_p
        key = (api_key or os.getenv("OPENAI_API_KEY") or "").strip()
        if not key:
            raise RuntimeError("OPENAI_API_KEY is missing")

        self._client = AsyncOpenAI(
            api_key=key,
            base_url=(base_url or os.getenv("OPENAI_BASE_URL") or None),
            timeout=float(os.getenv("OPENAI_TIMEOUT_S", str(timeout_s))),
            max_retries=int(os.getenv("OPENAI_MAX_RETRIES", str(max_retries))),
        )

    @property
    def model(self) -> str:
        return self._model

    async def complete_json(self, messages: Sequence[ChatMessage]) -> str:
        payload = [{"role": m.role, "content": m.content} for m in messages]

        response = await self._client.chat.completions.create(
            model=self._model,
            messages=payload,
            temperature=self._temperature,
            top_p=self._top_p,
            response_format={"type": "json_object"},
        )
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""
