from datetime import timedelta

from dinsos_bot.services.registration_service import (
    count_registrations,
    get_registration,
    list_recent_registrations,
    list_registrations_by_sender,
    save_registration,
)
from tests.conftest import CITIZEN, WORKING_NOW


def _save(db, now=WORKING_NOW, sender=CITIZEN, name="Budi"):
    return save_registration(
        db,
        sender=sender,
        program="PKH",
        name=name,
        nik="1234567890123456",
        address="Jl. Melati",
        phone="081234567890",
        now=now,
    )


class TestSaveRegistration:
    def test_id_is_time_derived(self, db):
        registration_id = _save(db)

        assert registration_id == f"REG-{int(WORKING_NOW.timestamp() * 1000)}"

    def test_record_keeps_typed_phone_and_sender(self, db):
        registration = get_registration(db, _save(db))

        assert registration.sender == CITIZEN
        assert registration.phone == "081234567890"
        assert registration.status == "pending"
        assert registration.program == "PKH"

    def test_same_millisecond_gets_unique_id(self, db):
        first = _save(db)
        second = _save(db, sender="other@c.us")

        assert first != second
        assert count_registrations(db) == 2


class TestListRegistrations:
    def test_recent_newest_first(self, db):
        for i in range(7):
            _save(db, now=WORKING_NOW + timedelta(minutes=i), name=f"Warga {i}")

        recent = list_recent_registrations(db, limit=5)

        assert len(recent) == 5
        assert recent[0].name == "Warga 6"
        assert recent[-1].name == "Warga 2"

    def test_by_sender(self, db):
        _save(db)
        _save(db, now=WORKING_NOW + timedelta(seconds=1), sender="other@c.us")

        assert [r.sender for r in list_registrations_by_sender(db, CITIZEN)] == [CITIZEN]
