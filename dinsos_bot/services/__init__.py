from dinsos_bot.services.admission_service import AdmissionDecision, AdmissionPipeline, build_pipeline
from dinsos_bot.services.conversation_service import RegistrationSessions
from dinsos_bot.services.message_service import (
    MessageProcessor,
    ProcessOutcome,
    ReplyCollector,
    build_message_processor,
)
from dinsos_bot.services.state_machine import (
    InvalidTransitionError,
    RegistrationStep,
    can_transition,
    transition,
)
