from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dinsos_bot.config import Settings
from dinsos_bot.logging_config import for_sender, get_logger
from dinsos_bot.schemas.message import ChatContext, InboundMessage
from dinsos_bot.services import menu_service
from dinsos_bot.services.admin_service import AdminCommands
from dinsos_bot.services.admission_service import AdmissionContext, AdmissionPipeline, build_pipeline
from dinsos_bot.services.ai_service import build_ai_responder
from dinsos_bot.services.blacklist_service import Blacklist
from dinsos_bot.services.clock import SystemClock
from dinsos_bot.services.conversation_service import RegistrationSessions
from dinsos_bot.services.dispatcher import Dispatcher, ReplyFn
from dinsos_bot.services.knowledge_service import load_knowledge_base
from dinsos_bot.services.state_machine import get_validators

logger = get_logger("message_service")

STAGE_REGISTRATION = "registration"
STAGE_DISPATCH = "dispatch"
STAGE_ADMISSION_COMMIT = "admission_commit"


@dataclass
class ProcessOutcome:
    accepted: bool
    stage: str
    reason: Optional[str] = None


@dataclass
class ReplyCollector:
    """Reply callback that keeps outbound texts in order, for the HTTP response."""

    replies: list[str] = field(default_factory=list)

    async def __call__(self, text: str) -> None:
        self.replies.append(text)


class MessageProcessor:
    def __init__(
        self,
        pipeline: AdmissionPipeline,
        sessions: RegistrationSessions,
        dispatcher: Dispatcher,
        clock: SystemClock,
    ):
        self.pipeline = pipeline
        self.sessions = sessions
        self.dispatcher = dispatcher
        self.clock = clock

    async def process(
        self,
        db: Session,
        message: InboundMessage,
        chat: Optional[ChatContext],
        reply: ReplyFn,
    ) -> ProcessOutcome:
        """Run one inbound message through admission and then routing.

        Never raises. A message whose admission state cannot be committed is
        dropped unanswered; a routing failure is answered with a generic apology.
        """
        now = self.clock.now()
        decision = self.pipeline.run(AdmissionContext(db=db, message=message, chat=chat, now=now))

        # Activation and rate-limit rows are committed before any await.
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to commit admission state: {e}", extra={"context": {"sender": message.sender}})
            return ProcessOutcome(accepted=False, stage=STAGE_ADMISSION_COMMIT, reason="store error")

        if decision.reply:
            await reply(decision.reply)
        if not decision.accepted:
            return ProcessOutcome(accepted=False, stage=decision.stage, reason=decision.reason)

        sender = message.sender
        log = for_sender(logger, sender)
        log.info("Message admitted", context={"in_registration": sender in self.sessions})

        if sender in self.sessions:
            await reply(self.sessions.handle(db, sender, message.text, now))
            return ProcessOutcome(accepted=True, stage=STAGE_REGISTRATION)

        try:
            await self.dispatcher.dispatch(db, sender, message.text, now, reply)
        except Exception as e:
            db.rollback()
            log.error(f"Error handling message: {e}", exc_info=True)
            await reply(menu_service.GENERIC_ERROR)
            return ProcessOutcome(accepted=True, stage=STAGE_DISPATCH, reason="error")
        return ProcessOutcome(accepted=True, stage=STAGE_DISPATCH)


def build_message_processor(settings: Settings, clock: Optional[SystemClock] = None) -> MessageProcessor:
    clock = clock or SystemClock()
    blacklist = Blacklist(settings.personal_contacts)
    knowledge = load_knowledge_base(settings.knowledge_dir, settings.dinas_name)
    sessions = RegistrationSessions(get_validators(settings.registration_validation))
    dispatcher = Dispatcher(
        settings,
        knowledge,
        build_ai_responder(settings, knowledge),
        sessions,
        AdminCommands(settings, blacklist, started_at=clock.now()),
    )
    return MessageProcessor(build_pipeline(settings, blacklist), sessions, dispatcher, clock)
