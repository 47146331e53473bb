import json
from typing import Optional

from dinsos_bot.config import Settings
from dinsos_bot.logging_config import get_logger
from dinsos_bot.services.knowledge_service import KnowledgeBase
from dinsos_bot.services.llm import LLMError, LLMProvider, OpenAICompatibleProvider
from dinsos_bot.services.result import Result

logger = get_logger("ai_service")

TONE_INSTRUCTIONS = """PENTING - GAYA BICARA:
- Bicara seperti staf customer service yang ramah, bukan robot
- Gunakan bahasa sehari-hari (tapi tetap sopan)
- Boleh pakai kata "kamu", "kok", "nih", "ya", "deh" untuk lebih natural
- Jangan terlalu formal atau kaku
- Jawaban langsung to the point, ga usah bertele-tele
- Akhiri dengan menawarkan bantuan lebih lanjut

Jawab dengan ramah dan informatif. Gunakan Bahasa Indonesia."""


def build_system_prompt(knowledge: KnowledgeBase, context: str = "") -> str:
    programs = json.dumps([p.as_prompt_data() for p in knowledge.programs], ensure_ascii=False, indent=2)
    parts = [knowledge.knowledge_text, f"DATA PROGRAM BANTUAN:\n{programs}"]
    if context:
        parts.append(context)
    parts.append(TONE_INSTRUCTIONS)
    return "\n\n".join(parts)


class AIResponder:
    """Free-text answers from the LLM, grounded on the loaded knowledge."""

    def __init__(
        self,
        provider: Optional[LLMProvider],
        knowledge: KnowledgeBase,
        *,
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 500,
    ):
        self.provider = provider
        self.knowledge = knowledge
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def ask(self, question: str) -> str:
        """Raises LLMError when no answer could be produced."""
        if self.provider is None:
            raise LLMError("LLM provider not configured")

        messages = [
            {"role": "system", "content": build_system_prompt(self.knowledge)},
            {"role": "user", "content": question},
        ]
        response = await self.provider.generate(
            messages,
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        logger.debug(f"LLM response: {response.content[:100]}...")
        return response.content

    async def answer(self, question: str) -> Result[str]:
        try:
            return Result.success(await self.ask(question))
        except Exception as e:
            logger.error(f"AI generation error: {e}", exc_info=True)
            return Result.failure(str(e), "ai_error")


def build_ai_responder(settings: Settings, knowledge: KnowledgeBase) -> AIResponder:
    provider = None
    if settings.llm_api_key:
        provider = OpenAICompatibleProvider(
            api_key=settings.llm_api_key,
            base_url=settings.llm_base_url,
            default_model=settings.llm_model,
            timeout_seconds=settings.llm_timeout_seconds,
        )
    else:
        logger.warning("LLM_API_KEY not set, AI answers will use the fallback reply")
    return AIResponder(
        provider,
        knowledge,
        model=settings.llm_model,
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
    )
