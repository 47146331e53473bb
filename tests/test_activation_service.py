from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from dinsos_bot.models import ActivatedUser
from dinsos_bot.services.activation_service import (
    get_activation,
    get_activation_stats,
    is_activated,
    set_activated,
    touch_last_message,
)
from tests.conftest import CITIZEN, WORKING_NOW


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class TestActivation:
    def test_unknown_sender_not_activated(self, db):
        assert get_activation(db, CITIZEN) is None
        assert is_activated(db, CITIZEN) is False

    def test_set_activated_creates_record(self, db):
        set_activated(db, CITIZEN, WORKING_NOW)

        assert is_activated(db, CITIZEN) is True
        record = get_activation(db, CITIZEN)
        assert _as_utc(record.activated_at) == WORKING_NOW

    def test_second_activation_updates_same_row(self, db):
        set_activated(db, CITIZEN, WORKING_NOW)
        later = WORKING_NOW + timedelta(hours=1)
        set_activated(db, CITIZEN, later)

        assert db.query(ActivatedUser).count() == 1
        record = get_activation(db, CITIZEN)
        assert _as_utc(record.activated_at) == WORKING_NOW
        assert _as_utc(record.last_message_at) == later

    def test_touch_last_message(self, db):
        set_activated(db, CITIZEN, WORKING_NOW)
        later = WORKING_NOW + timedelta(minutes=5)
        touch_last_message(db, CITIZEN, later)
        db.expire_all()

        assert _as_utc(get_activation(db, CITIZEN).last_message_at) == later


class TestActivationStats:
    def test_counts_today_and_week(self, db):
        set_activated(db, "today@c.us", WORKING_NOW)
        set_activated(db, "week@c.us", WORKING_NOW - timedelta(days=3))
        set_activated(db, "old@c.us", WORKING_NOW - timedelta(days=30))

        local_now = WORKING_NOW.astimezone(ZoneInfo("Asia/Pontianak"))
        stats = get_activation_stats(db, local_now)

        assert stats == {"total": 3, "today": 1, "this_week": 2}
