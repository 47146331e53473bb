from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from dinsos_bot.logging_config import get_logger
from dinsos_bot.models import Registration

logger = get_logger("registration_service")


def _next_registration_id(db: Session, now: datetime) -> str:
    stamp = int(now.timestamp() * 1000)
    while db.get(Registration, f"REG-{stamp}") is not None:
        stamp += 1
    return f"REG-{stamp}"


def save_registration(
    db: Session,
    *,
    sender: str,
    program: str,
    name: str,
    nik: str,
    address: str,
    phone: str,
    now: datetime,
) -> str:
    """Insert a submitted registration and flush it. Returns the registration id."""
    now = now.astimezone(timezone.utc)
    registration = Registration(
        id=_next_registration_id(db, now),
        sender=sender,
        program=program,
        name=name,
        nik=nik,
        address=address,
        phone=phone,
        created_at=now,
        status="pending",
    )
    db.add(registration)
    db.flush()
    logger.info(
        "Registration saved",
        extra={"context": {"registration_id": registration.id, "sender": sender, "program": program}},
    )
    return registration.id


def get_registration(db: Session, registration_id: str) -> Optional[Registration]:
    return db.get(Registration, registration_id)


def count_registrations(db: Session) -> int:
    return db.query(Registration).count()


def list_recent_registrations(db: Session, limit: int = 5) -> list[Registration]:
    return (
        db.query(Registration)
        .order_by(Registration.created_at.desc(), Registration.id.desc())
        .limit(limit)
        .all()
    )


def list_registrations_by_sender(db: Session, sender: str) -> list[Registration]:
    return (
        db.query(Registration)
        .filter(Registration.sender == sender)
        .order_by(Registration.created_at.desc())
        .all()
    )
