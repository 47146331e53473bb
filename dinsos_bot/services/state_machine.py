import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional


class RegistrationStep(str, Enum):
    NAME = "name"
    NIK = "nik"
    ADDRESS = "address"
    PHONE = "phone"
    CONFIRM = "confirm"


VALID_TRANSITIONS = {
    RegistrationStep.NAME: [RegistrationStep.NIK],
    RegistrationStep.NIK: [RegistrationStep.ADDRESS],
    RegistrationStep.ADDRESS: [RegistrationStep.PHONE],
    RegistrationStep.PHONE: [RegistrationStep.CONFIRM],
    RegistrationStep.CONFIRM: [RegistrationStep.CONFIRM],
}

YES_WORDS = {"ya", "yes"}
CANCEL_WORDS = {"batal", "cancel"}

STEP_PROMPTS = {
    RegistrationStep.NAME: "Boleh kasih tau nama lengkap kamu? (sesuai KTP)",
    RegistrationStep.NIK: "NIK-nya berapa?",
    RegistrationStep.ADDRESS: "Alamat lengkap kamu dimana? (RT/RW juga ya)",
    RegistrationStep.PHONE: "Nomor HP yang bisa dihubungi berapa?",
    RegistrationStep.CONFIRM: 'Ketik "ya" kalau datanya udah bener, atau "batal" kalau mau dibatalin.',
}

MSG_CONFIRM_UNCLEAR = (
    'Maaf, saya kurang paham. Ketik "ya" kalau datanya udah bener, atau "batal" kalau mau dibatalin.'
)
MSG_CANCELLED = "Oke, pendaftarannya dibatalin ya. Ga papa kok! Kalau mau daftar lagi, tinggal hubungi aja."


class InvalidTransitionError(Exception):
    def __init__(self, from_step: RegistrationStep, to_step: RegistrationStep):
        self.from_step = from_step
        self.to_step = to_step
        super().__init__(f"Invalid transition: {from_step.value} -> {to_step.value}")


def can_transition(from_step: RegistrationStep, to_step: RegistrationStep) -> bool:
    """Check if transition is valid."""
    allowed = VALID_TRANSITIONS.get(from_step, [])
    return to_step in allowed


def transition(from_step: RegistrationStep, to_step: RegistrationStep) -> RegistrationStep:
    """Perform step transition. Raises InvalidTransitionError if not allowed."""
    if not can_transition(from_step, to_step):
        raise InvalidTransitionError(from_step, to_step)
    return to_step


# Validators return an error message for bad input, None when the value is accepted.
FieldValidator = Callable[[str], Optional[str]]

_NIK_RE = re.compile(r"^\d{16}$")
_PHONE_RE = re.compile(r"^\+?\d{8,15}$")


def validate_nik(value: str) -> Optional[str]:
    if _NIK_RE.match(value.replace(" ", "")):
        return None
    return "NIK harus 16 digit angka ya. Coba kirim ulang NIK-nya."


def validate_phone(value: str) -> Optional[str]:
    if _PHONE_RE.match(re.sub(r"[\s\-]", "", value)):
        return None
    return "Nomor HP-nya kayaknya kurang pas. Kirim angka saja ya, contoh: 081234567890."


VALIDATION_MODES: dict[str, dict[RegistrationStep, FieldValidator]] = {
    "permissive": {},
    "strict": {
        RegistrationStep.NIK: validate_nik,
        RegistrationStep.PHONE: validate_phone,
    },
}


def get_validators(mode: str) -> dict[RegistrationStep, FieldValidator]:
    try:
        return VALIDATION_MODES[mode]
    except KeyError:
        raise ValueError(f"Unknown registration validation mode: {mode}") from None


class StepAction(str, Enum):
    CONTINUE = "continue"
    SUBMIT = "submit"
    CANCEL = "cancel"


@dataclass
class RegistrationSession:
    sender: str
    program: str
    step: RegistrationStep = RegistrationStep.NAME
    collected: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class StepOutcome:
    action: StepAction
    reply: Optional[str] = None


def start_prompt(program: str) -> str:
    return f"Oke siap, saya bantu daftarin kamu untuk {program} ya!\n\n{STEP_PROMPTS[RegistrationStep.NAME]}"


def confirmation_summary(session: RegistrationSession) -> str:
    data = session.collected
    return (
        "Oke, saya cek dulu datanya ya:\n\n"
        f"Program: {session.program}\n"
        f"Nama: {data.get('name', '')}\n"
        f"NIK: {data.get('nik', '')}\n"
        f"Alamat: {data.get('address', '')}\n"
        f"HP: {data.get('phone', '')}\n\n"
        'Udah bener semua? Kalau udah, ketik "ya" buat submit.\n'
        'Kalau ada yang salah, ketik "batal" aja.'
    )


def submitted_reply(session: RegistrationSession, registration_id: str) -> str:
    data = session.collected
    return (
        "Pendaftaran kamu udah masuk kok!\n\n"
        f"Terima kasih {data.get('name', '')}, data kamu udah kami terima dan bakal segera diproses.\n\n"
        f"ID Registrasi: {registration_id}\n\n"
        f"Nanti staff kami bakal hubungi kamu di {data.get('phone', '')} untuk verifikasi lebih lanjut.\n\n"
        'Ada yang mau ditanyain lagi ga? Atau ketik "menu" aja kalau mau balik.'
    )


def _next_field_reply(session: RegistrationSession, value: str) -> str:
    if session.step == RegistrationStep.NIK:
        return f"Oke {value}, sekarang NIK-nya berapa?"
    if session.step == RegistrationStep.ADDRESS:
        return "Noted! Sekarang alamat lengkap kamu dimana? (RT/RW juga ya)"
    if session.step == RegistrationStep.PHONE:
        return "Oke deh, terakhir... Nomor HP yang bisa dihubungi berapa?"
    return confirmation_summary(session)


def advance(
    session: RegistrationSession,
    text: str,
    validators: Optional[dict[RegistrationStep, FieldValidator]] = None,
) -> StepOutcome:
    """Feed one message into the session.

    Field steps store the value and move forward. The confirm step only
    reports SUBMIT/CANCEL; persisting and destroying the session is the
    caller's job. The session is mutated in place.
    """
    value = (text or "").strip()
    validators = validators or {}

    if session.step == RegistrationStep.CONFIRM:
        answer = value.lower()
        if answer in YES_WORDS:
            return StepOutcome(StepAction.SUBMIT)
        if answer in CANCEL_WORDS:
            return StepOutcome(StepAction.CANCEL, MSG_CANCELLED)
        session.step = transition(session.step, RegistrationStep.CONFIRM)
        return StepOutcome(StepAction.CONTINUE, MSG_CONFIRM_UNCLEAR)

    if not value:
        return StepOutcome(StepAction.CONTINUE, STEP_PROMPTS[session.step])

    validator = validators.get(session.step)
    if validator:
        error = validator(value)
        if error:
            return StepOutcome(StepAction.CONTINUE, error)

    current = session.step
    session.collected[current.value] = value
    session.step = transition(current, VALID_TRANSITIONS[current][0])
    return StepOutcome(StepAction.CONTINUE, _next_field_reply(session, value))
