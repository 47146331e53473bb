from datetime import datetime, time, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from dinsos_bot.logging_config import get_logger
from dinsos_bot.models import ActivatedUser

logger = get_logger("activation_service")


def get_activation(db: Session, sender: str) -> Optional[ActivatedUser]:
    return db.query(ActivatedUser).filter(ActivatedUser.phone == sender).first()


def is_activated(db: Session, sender: str) -> bool:
    record = get_activation(db, sender)
    return bool(record and record.activated)


def set_activated(db: Session, sender: str, now: datetime) -> ActivatedUser:
    """Create or update the activation row for a sender with activated=true.

    The row is locked for the read-modify-write, so a second activation for the
    same sender updates the existing record instead of inserting a duplicate.
    activated_at keeps its first value.
    """
    now = now.astimezone(timezone.utc)
    record = db.get(ActivatedUser, sender, with_for_update=True)
    if record is None:
        record = ActivatedUser(phone=sender, activated=True, activated_at=now, last_message_at=now)
        db.add(record)
    else:
        record.activated = True
        record.last_message_at = now
    db.flush()
    logger.info("Sender activated", extra={"context": {"sender": sender}})
    return record


def touch_last_message(db: Session, sender: str, now: datetime) -> None:
    db.query(ActivatedUser).filter(ActivatedUser.phone == sender).update(
        {ActivatedUser.last_message_at: now.astimezone(timezone.utc)},
        synchronize_session=False,
    )


def get_activation_stats(db: Session, now: datetime) -> dict:
    """Count activated senders: total, since local midnight, and over the last 7 days.

    `now` should carry the office timezone so "today" matches local calendar days.
    """
    local_midnight = datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)
    today_start = local_midnight.astimezone(timezone.utc)
    week_start = (local_midnight - timedelta(days=7)).astimezone(timezone.utc)

    activated = db.query(ActivatedUser).filter(ActivatedUser.activated.is_(True))
    return {
        "total": activated.count(),
        "today": activated.filter(ActivatedUser.activated_at >= today_start).count(),
        "this_week": activated.filter(ActivatedUser.activated_at >= week_start).count(),
    }
