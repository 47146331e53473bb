from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlalchemy.orm import Session

from dinsos_bot.logging_config import get_logger
from dinsos_bot.models import RateLimit

logger = get_logger("rate_limit_service")


class RateLimitVerdict(str, Enum):
    ALLOWED = "allowed"
    WARN = "warn"  # this message hit the limit: warn once, drop it
    BLOCKED = "blocked"  # already warned in this window: drop silently


@dataclass(frozen=True)
class RateLimitStatus:
    verdict: RateLimitVerdict
    count: int
    limit: int
    reset_at_ms: int

    @property
    def allowed(self) -> bool:
        return self.verdict == RateLimitVerdict.ALLOWED


def build_rate_limit_warning(limit: int, contact_whatsapp: str, contact_phone: str) -> str:
    return (
        f"Anda sudah mencapai batas maksimal pesan per jam ({limit} pesan).\n\n"
        "Untuk bantuan lebih lanjut, silakan hubungi langsung:\n"
        f"WhatsApp: {contact_whatsapp}\n"
        f"Telepon: {contact_phone}\n\n"
        "Terima kasih atas pengertiannya."
    )


def get_rate_limit(db: Session, sender: str) -> Optional[RateLimit]:
    return db.query(RateLimit).filter(RateLimit.phone == sender).first()


def upsert_rate_limit(db: Session, sender: str, count: int, reset_at_ms: int) -> RateLimit:
    record = db.get(RateLimit, sender, with_for_update=True)
    if record is None:
        record = RateLimit(phone=sender, count=count, reset_time=reset_at_ms)
        db.add(record)
    else:
        record.count = count
        record.reset_time = reset_at_ms
    db.flush()
    return record


def hit_rate_limit(db: Session, sender: str, now_ms: int, window_ms: int) -> RateLimit:
    """Count one message for a sender in a single locked read-modify-write.

    An expired window is replaced by a fresh one starting at count=1; it is
    never partially reused.
    """
    record = db.get(RateLimit, sender, with_for_update=True)
    if record is None:
        record = RateLimit(phone=sender, count=1, reset_time=now_ms + window_ms)
        db.add(record)
    elif now_ms > record.reset_time:
        record.count = 1
        record.reset_time = now_ms + window_ms
    else:
        record.count = record.count + 1
    db.flush()
    return record


def evaluate_count(count: int, limit: int) -> RateLimitVerdict:
    """Map the post-increment counter to a verdict.

    Only the message that lands exactly on the limit produces a warning, so a
    sender is warned at most once per window.
    """
    if count < limit:
        return RateLimitVerdict.ALLOWED
    if count == limit:
        return RateLimitVerdict.WARN
    return RateLimitVerdict.BLOCKED


def check_rate_limit(db: Session, sender: str, now_ms: int, *, limit: int, window_ms: int) -> RateLimitStatus:
    record = hit_rate_limit(db, sender, now_ms, window_ms)
    verdict = evaluate_count(record.count, limit)
    if verdict != RateLimitVerdict.ALLOWED:
        logger.info(
            "Rate limit exceeded",
            extra={"context": {"sender": sender, "count": record.count, "limit": limit, "verdict": verdict.value}},
        )
    return RateLimitStatus(verdict=verdict, count=record.count, limit=limit, reset_at_ms=record.reset_time)


def reset_rate_limit(db: Session, sender: str) -> bool:
    deleted = db.query(RateLimit).filter(RateLimit.phone == sender).delete(synchronize_session=False)
    if deleted:
        logger.info(f"Rate limit reset for {sender}")
    return bool(deleted)


def list_rate_limits(db: Session, limit: int = 10) -> list[RateLimit]:
    return db.query(RateLimit).order_by(RateLimit.count.desc()).limit(limit).all()


def clean_expired_rate_limits(db: Session, now_ms: int) -> int:
    deleted = db.query(RateLimit).filter(RateLimit.reset_time < now_ms).delete(synchronize_session=False)
    logger.info(f"Cleaned {deleted} expired rate limits")
    return deleted
