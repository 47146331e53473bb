"""Operator commands, available only to senders listed in ADMIN_NUMBERS."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from dinsos_bot.config import Settings
from dinsos_bot.services.activation_service import get_activation_stats
from dinsos_bot.services.blacklist_service import Blacklist
from dinsos_bot.services.intent_service import normalize_for_matching
from dinsos_bot.services.rate_limit_service import list_rate_limits, reset_rate_limit
from dinsos_bot.services.registration_service import count_registrations, list_recent_registrations
from dinsos_bot.services.working_hours_service import is_working_hours, to_local, working_hours_status

RECENT_REGISTRATIONS_LIMIT = 5
TOP_RATE_LIMITS = 10


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they were stored as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def registrations_digest(db: Session, tz_name: str) -> str:
    count = count_registrations(db)
    if count == 0:
        return "Belum ada data pendaftaran nih."

    lines = [f"Ini data pendaftaran terbaru (total: {count} orang):\n"]
    for i, reg in enumerate(list_recent_registrations(db, RECENT_REGISTRATIONS_LIMIT), start=1):
        created = to_local(_as_utc(reg.created_at), tz_name)
        lines.append(
            f"{i}. {reg.name or 'N/A'} - {reg.program}\n"
            f"   ID: {reg.id}\n"
            f"   NIK: {reg.nik or 'N/A'}\n"
            f"   {created:%d/%m/%Y %H:%M}\n"
        )
    if count > RECENT_REGISTRATIONS_LIMIT:
        lines.append(f"(Ini cuma {RECENT_REGISTRATIONS_LIMIT} data terakhir, totalnya ada {count} orang)")
    return "\n".join(lines).rstrip()


class AdminCommands:
    def __init__(self, settings: Settings, blacklist: Blacklist, started_at: datetime):
        self.settings = settings
        self.blacklist = blacklist
        self.started_at = started_at
        self.admins = frozenset(settings.admin_numbers)

    def is_admin(self, sender: str) -> bool:
        return sender in self.admins

    def handle(self, db: Session, sender: str, text: str, now: datetime) -> Optional[str]:
        """Return the reply for an admin command, or None when the text is not one."""
        if not self.is_admin(sender):
            return None

        command = normalize_for_matching(text)
        # Arguments keep their original casing.
        args = (text or "").strip().split()

        if command == "bot status":
            return self.status(db, now)
        if command == "bot limits":
            return self.limits(db)
        if command.startswith("reset limit ") and len(args) == 3:
            return self.reset_limit(db, args[2])
        if command == "blacklist":
            return self.list_blacklist()
        if command.startswith("blacklist add ") and len(args) == 3:
            return self.blacklist_add(args[2])
        if command.startswith("blacklist remove ") and len(args) == 3:
            return self.blacklist_remove(args[2])
        return None

    def status(self, db: Session, now: datetime) -> str:
        local_now = to_local(now, self.settings.timezone)
        uptime_hours = int((now - self.started_at).total_seconds() // 3600)
        stats = get_activation_stats(db, local_now)
        working = is_working_hours(local_now, self.settings)
        return (
            "BOT STATUS\n\n"
            "Status: Running\n"
            f"Uptime: {uptime_hours} hours\n"
            f"Activated users: {stats['total']} (today: {stats['today']}, 7 days: {stats['this_week']})\n"
            f"Registrations: {count_registrations(db)}\n"
            f"Working hours: {'YES' if working else 'NO'} ({working_hours_status(local_now, self.settings)})"
        )

    def limits(self, db: Session) -> str:
        records = list_rate_limits(db, TOP_RATE_LIMITS)
        if not records:
            return "RATE LIMITS\n\nBelum ada data."
        lines = ["RATE LIMITS\n"]
        for i, record in enumerate(records, start=1):
            lines.append(f"{i}. {record.phone}: {record.count}/{self.settings.rate_limit_max}")
        return "\n".join(lines)

    def reset_limit(self, db: Session, target: str) -> str:
        if reset_rate_limit(db, target):
            db.commit()
            return f"Rate limit untuk {target} sudah direset."
        return f"Tidak ada rate limit untuk {target}."

    def list_blacklist(self) -> str:
        entries = self.blacklist.entries()
        if not entries:
            return "BLACKLIST\n\nKosong."
        return "BLACKLIST\n\n" + "\n".join(f"- {entry}" for entry in entries)

    def blacklist_add(self, target: str) -> str:
        if self.blacklist.add(target):
            return f"{target} ditambahkan ke blacklist."
        return f"{target} sudah ada di blacklist."

    def blacklist_remove(self, target: str) -> str:
        if self.blacklist.remove(target):
            return f"{target} dihapus dari blacklist."
        return f"{target} tidak ada di blacklist."
