import asyncio
import os
import time

from fastapi import Depends, FastAPI
from sqlalchemy.orm import Session

from dinsos_bot.config import get_settings
from dinsos_bot.database import SessionLocal, get_db, init_db
from dinsos_bot.logging_config import get_logger, setup_logging
from dinsos_bot.models import ActivatedUser, RateLimit, Registration
from dinsos_bot.routers import message
from dinsos_bot.services.clock import SystemClock, utc_now
from dinsos_bot.services.message_service import build_message_processor
from dinsos_bot.services.rate_limit_service import clean_expired_rate_limits

settings = get_settings()
setup_logging(settings.log_level)
logger = get_logger("main")

app = FastAPI(
    title="Dinas Sosial WhatsApp Bot",
    description="Admission pipeline, registration flow and knowledge answers for the Dinas Sosial bot",
    version="2.0.0",
)

app.include_router(message.router)

cleanup_logger = get_logger("rate_limit_cleanup")
_cleanup_task: asyncio.Task | None = None
_started_monotonic = time.monotonic()


def _is_cleanup_enabled() -> bool:
    return not os.environ.get("PYTEST_CURRENT_TEST")


async def _rate_limit_cleanup_loop() -> None:
    interval_seconds = max(settings.rate_limit_cleanup_interval_seconds, 1.0)
    while True:
        try:
            await asyncio.sleep(interval_seconds)
            db = SessionLocal()
            try:
                deleted = clean_expired_rate_limits(db, SystemClock().now_ms())
                db.commit()
                if deleted:
                    cleanup_logger.info("Expired rate limits removed", extra={"context": {"deleted": deleted}})
            finally:
                db.close()
        except asyncio.CancelledError:
            break
        except Exception as exc:
            cleanup_logger.error(
                "Rate limit cleanup failed",
                extra={"context": {"error": str(exc)}},
            )


@app.on_event("startup")
async def startup() -> None:
    init_db()
    app.state.processor = build_message_processor(settings)
    logger.info(
        "Bot started",
        extra={"context": {"bot_name": settings.bot_name, "dinas_name": settings.dinas_name}},
    )

    global _cleanup_task
    if not _is_cleanup_enabled():
        return
    if _cleanup_task is None or _cleanup_task.done():
        _cleanup_task = asyncio.create_task(_rate_limit_cleanup_loop())
        cleanup_logger.info("Rate limit cleanup started")


@app.on_event("shutdown")
async def shutdown() -> None:
    global _cleanup_task
    if _cleanup_task is None:
        return
    _cleanup_task.cancel()
    try:
        await _cleanup_task
    except asyncio.CancelledError:
        pass
    _cleanup_task = None


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/ping")
async def ping():
    return {
        "status": "alive",
        "uptime": int(time.monotonic() - _started_monotonic),
        "timestamp": utc_now().isoformat(),
    }


@app.get("/db-check")
def db_check(db: Session = Depends(get_db)):
    return {
        "status": "ok",
        "activated_users": db.query(ActivatedUser).count(),
        "rate_limits": db.query(RateLimit).count(),
        "registrations": db.query(Registration).count(),
    }
