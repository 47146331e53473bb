from typing import Iterable

from dinsos_bot.logging_config import get_logger

logger = get_logger("blacklist_service")


class Blacklist:
    """Personal contacts the bot must never answer.

    Seeded from configuration; admin changes at runtime live only in this
    process and are lost on restart.
    """

    def __init__(self, senders: Iterable[str] = ()):
        self._senders = {s.strip() for s in senders if s and s.strip()}

    def __contains__(self, sender: str) -> bool:
        return sender in self._senders

    def add(self, sender: str) -> bool:
        if sender in self._senders:
            return False
        self._senders.add(sender)
        logger.info(f"Added to blacklist: {sender}")
        return True

    def remove(self, sender: str) -> bool:
        if sender not in self._senders:
            return False
        self._senders.discard(sender)
        logger.info(f"Removed from blacklist: {sender}")
        return True

    def entries(self) -> list[str]:
        return sorted(self._senders)
