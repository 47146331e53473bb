import json
import os
from datetime import datetime, timezone

# Keep module-level engine/settings away from the real data directory.
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from dinsos_bot.config import Settings
from dinsos_bot.database import init_db
from dinsos_bot.schemas.message import InboundMessage
from dinsos_bot.services.clock import FixedClock

ADMIN = "6281100000001@c.us"
CITIZEN = "6281200000002@c.us"
FRIEND = "6281300000003@c.us"

# Monday 2026-10-19 10:00 in Asia/Pontianak (UTC+7)
WORKING_NOW = datetime(2026, 10, 19, 3, 0, tzinfo=timezone.utc)
# Monday 2026-10-19 20:00 local
EVENING_NOW = datetime(2026, 10, 19, 13, 0, tzinfo=timezone.utc)

PROGRAMS = [
    {
        "name": "PKH",
        "description": "Program Keluarga Harapan",
        "requirements": ["KTP", "Kartu Keluarga"],
        "howToApply": "Datang ke kelurahan",
    },
    {
        "name": "BPNT",
        "description": "Bantuan Pangan Non Tunai",
        "requirements": ["KTP"],
        "howToApply": "Ajukan lewat kelurahan",
    },
]

FAQ = {
    "syarat, persyaratan": "Syaratnya KTP dan KK.",
    "biaya, gratis": "Semua layanan gratis.",
}


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    """Real in-memory SQLite session."""
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def knowledge_dir(tmp_path):
    (tmp_path / "programs.json").write_text(json.dumps(PROGRAMS), encoding="utf-8")
    (tmp_path / "faq.json").write_text(json.dumps(FAQ), encoding="utf-8")
    (tmp_path / "knowledge.txt").write_text("Anda adalah asisten Dinas Sosial.", encoding="utf-8")
    return tmp_path


@pytest.fixture
def settings(knowledge_dir):
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        admin_numbers=[ADMIN],
        personal_contacts=[FRIEND],
        knowledge_dir=str(knowledge_dir),
        llm_api_key=None,
    )


@pytest.fixture
def clock():
    return FixedClock(WORKING_NOW)


def make_message(sender: str, text: str, clock: FixedClock, **overrides) -> InboundMessage:
    data = {
        "sender": sender,
        "text": text,
        "timestamp": int(clock.now().timestamp()),
        "is_from_self": False,
        "is_group": False,
    }
    data.update(overrides)
    return InboundMessage(**data)
