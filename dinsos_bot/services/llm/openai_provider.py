from typing import List, Optional

import httpx

from dinsos_bot.logging_config import get_logger
from dinsos_bot.services.llm.base import LLMError, LLMProvider, LLMResponse

logger = get_logger("llm.openai")


class OpenAICompatibleProvider(LLMProvider):
    """Chat-completions provider for OpenAI-compatible APIs (Groq, OpenAI)."""

    def __init__(
        self,
        api_key: str,
        base_url: str,
        default_model: str = "llama-3.3-70b-versatile",
        timeout_seconds: float = 60.0,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.default_model = default_model
        self.timeout_seconds = timeout_seconds

    async def generate(
        self,
        messages: List[dict],
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 500,
    ) -> LLMResponse:
        model = model or self.default_model
        payload = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        logger.debug(f"LLM request: model={model}, messages_count={len(messages)}")

        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.post(
                    self.base_url,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                )
        except httpx.HTTPError as e:
            logger.error(f"LLM transport error: {e}")
            raise LLMError(f"LLM request failed: {e}") from e

        logger.debug(f"LLM response status: {response.status_code}")
        if response.status_code != 200:
            logger.error(f"LLM error: {response.text}")
            raise LLMError(f"LLM API error: {response.status_code} - {response.text}")

        data = response.json()
        content = ""
        if data.get("choices"):
            message = data["choices"][0].get("message", {})
            content = message.get("content") or ""
        if not content.strip():
            raise LLMError("LLM returned empty content")

        return LLMResponse(
            content=content,
            model=data.get("model", model),
            usage=data.get("usage"),
        )
