import asyncio
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from dinsos_bot.database import get_db
from dinsos_bot.main import app
from dinsos_bot.routers.message import get_processor
from dinsos_bot.schemas.message import ChatContext, MessageRequest
from dinsos_bot.services.activation_service import is_activated, set_activated
from dinsos_bot.services import menu_service
from dinsos_bot.services.message_service import ReplyCollector, build_message_processor
from dinsos_bot.services.rate_limit_service import get_rate_limit
from dinsos_bot.services.registration_service import count_registrations, list_registrations_by_sender
from dinsos_bot.services.result import Result
from tests.conftest import ADMIN, CITIZEN, FRIEND, make_message


@pytest.fixture
def processor(settings, clock):
    return build_message_processor(settings, clock)


@pytest.fixture
def client(db, processor):
    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_processor] = lambda: processor
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _post(client, clock, text, sender=CITIZEN, chat=None, **overrides):
    payload = {
        "message": {
            "from": sender,
            "body": text,
            "timestamp": int(clock.now().timestamp()),
            **overrides,
        },
        "chat": chat if chat is not None else {"isMyContact": False, "name": "Warga"},
    }
    response = client.post("/message", json=payload)
    assert response.status_code == 200
    clock.advance(seconds=5)
    return response.json()


class TestMessageSchemas:
    def test_accepts_transport_field_names(self):
        request = MessageRequest.model_validate(
            {
                "message": {"from": CITIZEN, "body": "halo", "timestamp": 1, "fromMe": False, "isGroup": False},
                "chat": {"isMyContact": True, "name": "Andi", "lastMessage": {"fromMe": True, "timestamp": 1}},
            }
        )

        assert request.message.sender == CITIZEN
        assert request.chat.is_known_contact is True
        assert request.chat.last_message.from_self is True

    def test_chat_is_optional(self):
        request = MessageRequest.model_validate({"message": {"sender": CITIZEN, "timestamp": 1}})
        assert request.chat is None
        assert request.message.text == ""


class TestMessageEndpoint:
    def test_request_validation(self, client):
        response = client.post("/message", json={"message": {"body": "halo"}})
        assert response.status_code == 422

    def test_registration_conversation(self, client, clock, db):
        body = _post(client, clock, "halo")
        assert body["accepted"] is True
        assert "Ada yang bisa saya bantu?" in body["replies"][0]

        body = _post(client, clock, "daftar ProgramX")
        assert body["replies"] == [
            "Oke siap, saya bantu daftarin kamu untuk ProgramX ya!\n\n"
            "Boleh kasih tau nama lengkap kamu? (sesuai KTP)"
        ]

        _post(client, clock, "Budi")
        _post(client, clock, "1234567890123456")
        _post(client, clock, "Jl. Melati RT 01")
        body = _post(client, clock, "081234567890")
        assert body["stage"] == "registration"
        assert "Program: ProgramX" in body["replies"][0]

        body = _post(client, clock, "ya")
        assert "ID Registrasi: REG-" in body["replies"][0]

        records = list_registrations_by_sender(db, CITIZEN)
        assert len(records) == 1
        assert records[0].program == "ProgramX"
        assert records[0].name == "Budi"
        assert records[0].nik == "1234567890123456"
        assert records[0].phone == "081234567890"

    def test_menu_inside_session_goes_to_session(self, client, clock):
        _post(client, clock, "daftar PKH")

        body = _post(client, clock, "menu")

        assert body["stage"] == "registration"
        assert body["replies"] == ["Oke menu, sekarang NIK-nya berapa?"]

    def test_ignored_message_has_no_replies(self, client, clock):
        body = _post(client, clock, "halo", sender=FRIEND)

        assert body == {
            "success": True,
            "accepted": False,
            "stage": "blacklist",
            "reason": "personal contact in blacklist (Warga)",
            "replies": [],
        }

    def test_rate_limit_warning_once(self, client, clock, db):
        bodies = [_post(client, clock, "halo") for _ in range(22)]

        warned = [b for b in bodies if b["replies"] and "batas maksimal" in b["replies"][0]]
        assert len(warned) == 1
        assert bodies[19] is warned[0]
        assert bodies[20]["replies"] == []
        assert bodies[21]["stage"] == "rate_limit"

    def test_ai_fallback_without_llm_key(self, client, clock, settings):
        body = _post(client, clock, "halo min, kapan bansos cair?")

        assert body["stage"] == "dispatch"
        assert body["replies"] == [menu_service.PROCESSING, menu_service.ai_error_fallback(settings)]

    def test_ai_answer(self, client, clock, processor):
        processor.dispatcher.responder.answer = AsyncMock(return_value=Result.success("Bulan depan."))

        body = _post(client, clock, "halo min, kapan bansos cair?")

        assert body["replies"][1] == f"Bulan depan.{menu_service.AI_RESPONSE_SUFFIX}"


class TestMessageProcessor:
    def test_dispatch_error_gets_apology(self, processor, db, clock):
        processor.dispatcher.dispatch = AsyncMock(side_effect=RuntimeError("boom"))
        collector = ReplyCollector()

        outcome = asyncio.run(
            processor.process(db, make_message(CITIZEN, "halo", clock), ChatContext(is_known_contact=False), collector)
        )

        assert outcome.accepted is True
        assert outcome.reason == "error"
        assert collector.replies == [menu_service.GENERIC_ERROR]

    def test_store_error_during_data_listing_gets_apology(self, processor, db, clock, monkeypatch):
        set_activated(db, ADMIN, clock.now())
        db.commit()

        def _locked(_db):
            raise OperationalError("SELECT count(*)", {}, Exception("database is locked"))

        monkeypatch.setattr("dinsos_bot.services.admin_service.count_registrations", _locked)
        collector = ReplyCollector()

        outcome = asyncio.run(processor.process(db, make_message(ADMIN, "data", clock), None, collector))

        assert outcome.stage == "dispatch"
        assert outcome.reason == "error"
        assert collector.replies == [menu_service.GENERIC_ERROR]

    def test_admission_commit_failure_drops_message(self, processor, db, clock, monkeypatch):
        def _failing_commit():
            raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db, "commit", _failing_commit)
        collector = ReplyCollector()

        outcome = asyncio.run(processor.process(db, make_message(CITIZEN, "halo", clock), None, collector))

        assert outcome.accepted is False
        assert outcome.stage == "admission_commit"
        assert collector.replies == []
        assert get_rate_limit(db, CITIZEN) is None
        assert not is_activated(db, CITIZEN)

    def test_admission_state_committed(self, processor, db, clock):
        collector = ReplyCollector()
        asyncio.run(processor.process(db, make_message(CITIZEN, "halo", clock), None, collector))
        db.rollback()

        assert is_activated(db, CITIZEN)
        assert count_registrations(db) == 0


class TestHealth:
    def test_health(self):
        assert TestClient(app).get("/health").json() == {"status": "ok"}

    def test_ping(self):
        body = TestClient(app).get("/ping").json()
        assert body["status"] == "alive"
        assert body["uptime"] >= 0
