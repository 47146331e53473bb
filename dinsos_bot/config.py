from enum import Enum

from pydantic_settings import BaseSettings


class FailPolicy(str, Enum):
    OPEN = "open"  # lookup failed -> let the message through
    CLOSED = "closed"  # lookup failed -> drop the message


DEFAULT_BOT_KEYWORDS = (
    "bantuan", "daftar", "program", "pkh", "bpnt", "pip", "blt",
    "dinas", "sosial", "dinsos",
    "menu", "info", "syarat", "cara", "informasi",
    "registrasi", "pendaftaran", "dftar",
    "dtks", "data", "verifikasi",
    "lansia", "disabilitas", "anak", "ibu", "balita",
    "faq", "kontak", "jam", "operasional", "alamat", "telepon",
)

DEFAULT_TRIGGER_KEYWORDS = (
    "halo", "hai", "hi", "hello", "hey",
    "pagi", "siang", "sore", "malam",
    "selamat pagi", "selamat siang", "selamat sore", "selamat malam",
    "assalamualaikum", "assalamualaykum", "waalaikumsalam",
    "menu", "mulai", "start", "info", "bantuan", "daftar",
    "permisi", "maaf", "mau tanya",
    "gan", "min", "admin", "bang", "kak", "bro",
)

DEFAULT_PUBLIC_USER_PATTERNS = ("ibu", "bapak", "pak ", "bu ", "bpk", "bp ")


class Settings(BaseSettings):
    database_url: str = "sqlite:///./data/bot.db"
    debug: bool = False
    log_level: str = "INFO"

    bot_name: str = "Bot Dinas Sosial"
    dinas_name: str = "Dinas Sosial"
    contact_phone: str = "(0561) 123456"
    contact_whatsapp: str = "0812-3456-7890"
    contact_email: str = "dinsos@example.com"
    office_address: str = "Jl. Contoh No.1"

    # Admission pipeline
    message_max_age_seconds: int = 12 * 60 * 60
    manual_reply_window_seconds: int = 300
    rate_limit_max: int = 20
    rate_limit_window_seconds: int = 60 * 60
    rate_limit_cleanup_interval_seconds: float = 15 * 60

    admin_numbers: list[str] = []
    personal_contacts: list[str] = []
    bot_keywords: list[str] = list(DEFAULT_BOT_KEYWORDS)
    trigger_keywords: list[str] = list(DEFAULT_TRIGGER_KEYWORDS)
    public_user_patterns: list[str] = list(DEFAULT_PUBLIC_USER_PATTERNS)

    manual_reply_failure_policy: FailPolicy = FailPolicy.OPEN
    context_failure_policy: FailPolicy = FailPolicy.OPEN
    opt_in_failure_policy: FailPolicy = FailPolicy.CLOSED
    rate_limit_failure_policy: FailPolicy = FailPolicy.CLOSED

    # Office hours, local time. Days: 0=Monday .. 6=Sunday
    working_hours_start: int = 8
    working_hours_end: int = 16
    working_days: list[int] = [0, 1, 2, 3, 4]
    timezone: str = "Asia/Pontianak"

    # permissive | strict
    registration_validation: str = "permissive"

    knowledge_dir: str = "config"

    # OpenAI-compatible chat completions endpoint (Groq by default)
    llm_api_key: str | None = None
    llm_base_url: str = "https://api.groq.com/openai/v1/chat/completions"
    llm_model: str = "llama-3.3-70b-versatile"
    llm_temperature: float = 0.7
    llm_max_tokens: int = 500
    llm_timeout_seconds: float = 60.0

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def rate_limit_window_ms(self) -> int:
        return self.rate_limit_window_seconds * 1000


settings = Settings()


def get_settings() -> Settings:
    return settings
