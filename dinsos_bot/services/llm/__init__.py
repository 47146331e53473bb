from dinsos_bot.services.llm.base import LLMError, LLMProvider, LLMResponse
from dinsos_bot.services.llm.openai_provider import OpenAICompatibleProvider

__all__ = ["LLMError", "LLMProvider", "LLMResponse", "OpenAICompatibleProvider"]
