from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dinsos_bot.logging_config import get_logger
from dinsos_bot.services.registration_service import save_registration
from dinsos_bot.services.result import Result
from dinsos_bot.services.state_machine import (
    FieldValidator,
    RegistrationSession,
    RegistrationStep,
    StepAction,
    advance,
    start_prompt,
    submitted_reply,
)

logger = get_logger("conversation_service")

MSG_SUBMIT_FAILED = (
    "Maaf, pendaftaran kamu belum berhasil disimpan karena ada kendala teknis. "
    'Coba ketik "ya" lagi beberapa saat lagi, atau "batal" untuk membatalkan.'
)


class SessionAlreadyOpenError(Exception):
    """Guard only: callers check for an open session before starting one."""

    def __init__(self, sender: str):
        self.sender = sender
        super().__init__(f"Registration session already open for {sender}")


class RegistrationSessions:
    """In-memory registration sessions, at most one per sender.

    Sessions are transient; only submitted registrations reach the database.
    """

    def __init__(self, validators: Optional[dict[RegistrationStep, FieldValidator]] = None):
        self._sessions: dict[str, RegistrationSession] = {}
        self._validators = validators or {}

    def __contains__(self, sender: str) -> bool:
        return sender in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, sender: str) -> Optional[RegistrationSession]:
        return self._sessions.get(sender)

    def start(self, sender: str, program: str) -> str:
        if sender in self._sessions:
            raise SessionAlreadyOpenError(sender)
        self._sessions[sender] = RegistrationSession(sender=sender, program=program)
        logger.info("Registration started", extra={"context": {"sender": sender, "program": program}})
        return start_prompt(program)

    def discard(self, sender: str) -> bool:
        return self._sessions.pop(sender, None) is not None

    def handle(self, db: Session, sender: str, text: str, now: datetime) -> str:
        """Consume one message for the sender's open session and return the reply."""
        session = self._sessions[sender]
        outcome = advance(session, text, self._validators)

        if outcome.action == StepAction.SUBMIT:
            result = self._submit(db, session, now)
            if not result.ok:
                return MSG_SUBMIT_FAILED
            del self._sessions[sender]
            return submitted_reply(session, result.value)

        if outcome.action == StepAction.CANCEL:
            del self._sessions[sender]
            logger.info("Registration cancelled", extra={"context": {"sender": sender}})

        return outcome.reply

    def _submit(self, db: Session, session: RegistrationSession, now: datetime) -> Result[str]:
        # The record is committed before the caller drops the session.
        data = session.collected
        try:
            registration_id = save_registration(
                db,
                sender=session.sender,
                program=session.program,
                name=data["name"],
                nik=data["nik"],
                address=data["address"],
                phone=data["phone"],
                now=now,
            )
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(
                f"Registration submit failed: {e}",
                extra={"context": {"sender": session.sender, "program": session.program}},
            )
            return Result.failure(str(e), "db_error")
        return Result.success(registration_id)
