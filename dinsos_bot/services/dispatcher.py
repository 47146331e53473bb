from datetime import datetime
from typing import Awaitable, Callable

from sqlalchemy.orm import Session

from dinsos_bot.config import Settings
from dinsos_bot.logging_config import get_logger
from dinsos_bot.services import menu_service
from dinsos_bot.services.admin_service import AdminCommands, registrations_digest
from dinsos_bot.services.ai_service import AIResponder
from dinsos_bot.services.conversation_service import RegistrationSessions
from dinsos_bot.services.intent_service import (
    MenuIntent,
    classify_menu_intent,
    is_data_command,
    is_info_query,
    parse_program_index,
    parse_registration_command,
)
from dinsos_bot.services.knowledge_service import KnowledgeBase
from dinsos_bot.services.working_hours_service import is_working_hours, to_local

logger = get_logger("dispatcher")

ReplyFn = Callable[[str], Awaitable[None]]


class Dispatcher:
    """Routes an admitted message from a sender with no open registration session.

    First match wins: admin commands, data listing, office-hours gate, menu,
    program detail, registration start, FAQ, then the AI answer.
    """

    def __init__(
        self,
        settings: Settings,
        knowledge: KnowledgeBase,
        responder: AIResponder,
        sessions: RegistrationSessions,
        admin: AdminCommands,
    ):
        self.settings = settings
        self.knowledge = knowledge
        self.responder = responder
        self.sessions = sessions
        self.admin = admin

    async def dispatch(self, db: Session, sender: str, text: str, now: datetime, reply: ReplyFn) -> None:
        if sender in self.sessions:
            raise RuntimeError(f"Dispatch called while a registration session is open for {sender}")

        text = (text or "").strip()
        local_now = to_local(now, self.settings.timezone)

        admin_reply = self.admin.handle(db, sender, text, now)
        if admin_reply is not None:
            logger.info("Admin command", extra={"context": {"sender": sender, "command": text}})
            await reply(admin_reply)
            return

        if is_data_command(text) and self.admin.is_admin(sender):
            await reply(registrations_digest(db, self.settings.timezone))
            return

        if not is_working_hours(local_now, self.settings) and not is_info_query(text):
            await reply(menu_service.outside_working_hours(local_now, self.settings))
            return

        menu_reply = self._menu_reply(text, local_now)
        if menu_reply is not None:
            await reply(menu_reply)
            return

        program_index = parse_program_index(text)
        if program_index is not None:
            program = self.knowledge.program_at(program_index)
            await reply(menu_service.program_detail(program) if program else menu_service.PROGRAM_NOT_FOUND)
            return

        program_name = parse_registration_command(text)
        if program_name is not None:
            await reply(self.sessions.start(sender, program_name))
            return

        faq_answer = self.knowledge.lookup_faq(text)
        if faq_answer:
            await reply(f"{faq_answer}{menu_service.FAQ_RESPONSE_SUFFIX}")
            return

        await reply(menu_service.PROCESSING)
        result = await self.responder.answer(text)
        if result.ok:
            await reply(f"{result.value}{menu_service.AI_RESPONSE_SUFFIX}")
        else:
            logger.warning(
                "AI fallback reply sent",
                extra={"context": {"sender": sender, "error_code": result.error_code}},
            )
            await reply(menu_service.ai_error_fallback(self.settings))

    def _menu_reply(self, text: str, local_now: datetime):
        intent = classify_menu_intent(text)
        if intent == MenuIntent.MAIN_MENU:
            return menu_service.main_menu(local_now, self.settings)
        if intent == MenuIntent.PROGRAM_LIST:
            return menu_service.services_info(local_now, self.knowledge)
        if intent == MenuIntent.FAQ_LIST:
            return menu_service.faq_digest(local_now, self.knowledge)
        if intent == MenuIntent.CONTACT:
            return menu_service.contact_card(local_now, self.settings)
        return None
