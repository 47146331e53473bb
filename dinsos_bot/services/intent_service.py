import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from dinsos_bot.schemas.message import ChatContext


def normalize_for_matching(text: str) -> str:
    """Normalize text for matching commands (casefold + collapse whitespace)."""
    if not text:
        return ""
    normalized = text.strip().casefold()
    return re.sub(r"\s+", " ", normalized)


def contains_keyword(text: str, keywords: Iterable[str]) -> bool:
    """Substring match, so "halo" also matches "haloo min"."""
    lowered = (text or "").casefold()
    return any(keyword.casefold() in lowered for keyword in keywords if keyword)


@dataclass(frozen=True)
class ContextVerdict:
    is_for_bot: bool
    reason: str


def is_likely_public_user(chat: ChatContext, public_user_patterns: Iterable[str]) -> bool:
    if chat.is_known_contact is False:
        return True
    name = (chat.display_name or "").casefold()
    return any(pattern in name for pattern in public_user_patterns)


def detect_context(
    text: str,
    chat: ChatContext,
    *,
    bot_keywords: Iterable[str],
    trigger_keywords: Iterable[str],
    public_user_patterns: Iterable[str],
) -> ContextVerdict:
    """Decide whether a message is meant for the bot or is a personal chat."""
    if contains_keyword(text, bot_keywords):
        return ContextVerdict(True, "contains bot keywords")

    if is_likely_public_user(chat, public_user_patterns):
        return ContextVerdict(True, "public user")

    if contains_keyword(text, trigger_keywords):
        return ContextVerdict(True, "contains trigger keywords")

    if chat.is_known_contact:
        return ContextVerdict(False, "personal chat (saved contact, no bot keywords)")

    return ContextVerdict(True, "fallback (unable to determine, assume bot)")


class MenuIntent(str, Enum):
    MAIN_MENU = "main_menu"
    PROGRAM_LIST = "program_list"
    FAQ_LIST = "faq_list"
    CONTACT = "contact"


MAIN_MENU_WORDS = {"halo", "hi", "menu", "mulai"}
INFO_QUERY_SUBSTRINGS = ("jam", "operasional", "kontak")
INFO_QUERY_EXACT = {"menu", "4"}
DATA_COMMANDS = {"admin", "data"}
REGISTER_PREFIX = "daftar "

_SINGLE_DIGIT_RE = re.compile(r"^[1-9]$")


def classify_menu_intent(text: str) -> Optional[MenuIntent]:
    normalized = normalize_for_matching(text)
    if normalized in MAIN_MENU_WORDS:
        return MenuIntent.MAIN_MENU
    if normalized == "1" or "info layanan" in normalized:
        return MenuIntent.PROGRAM_LIST
    if normalized == "2" or "daftar bantuan" in normalized:
        return MenuIntent.PROGRAM_LIST
    if normalized == "3" or "faq" in normalized:
        return MenuIntent.FAQ_LIST
    if normalized == "4" or "kontak" in normalized:
        return MenuIntent.CONTACT
    return None


def is_info_query(text: str) -> bool:
    """Intents still answered outside office hours."""
    normalized = normalize_for_matching(text)
    return normalized in INFO_QUERY_EXACT or any(token in normalized for token in INFO_QUERY_SUBSTRINGS)


def is_data_command(text: str) -> bool:
    return normalize_for_matching(text) in DATA_COMMANDS


def parse_program_index(text: str) -> Optional[int]:
    """Return the zero-based program position for a bare digit 1-9."""
    stripped = (text or "").strip()
    if _SINGLE_DIGIT_RE.match(stripped):
        return int(stripped) - 1
    return None


def parse_registration_command(text: str) -> Optional[str]:
    """Return the program name from "daftar <program>", keeping the user's casing."""
    stripped = (text or "").strip()
    if not stripped.casefold().startswith(REGISTER_PREFIX):
        return None
    program = stripped[len(REGISTER_PREFIX):].strip()
    return program or None
