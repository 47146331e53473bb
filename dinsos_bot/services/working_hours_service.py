from datetime import datetime
from zoneinfo import ZoneInfo

from dinsos_bot.config import Settings

DAY_NAMES = ("Senin", "Selasa", "Rabu", "Kamis", "Jumat", "Sabtu", "Minggu")


def to_local(now: datetime, tz_name: str) -> datetime:
    return now.astimezone(ZoneInfo(tz_name))


def is_working_hours(local_now: datetime, settings: Settings) -> bool:
    if local_now.weekday() not in settings.working_days:
        return False
    return settings.working_hours_start <= local_now.hour < settings.working_hours_end


def time_based_greeting(local_now: datetime) -> str:
    hour = local_now.hour
    if 5 <= hour < 11:
        return "Selamat pagi"
    if 11 <= hour < 15:
        return "Selamat siang"
    if 15 <= hour < 18:
        return "Selamat sore"
    return "Selamat malam"


def working_hours_status(local_now: datetime, settings: Settings) -> str:
    """Readable status for admin/debug output, e.g. "Senin, 14:30 (JAM KERJA)"."""
    status = "JAM KERJA" if is_working_hours(local_now, settings) else "LUAR JAM KERJA"
    return f"{DAY_NAMES[local_now.weekday()]}, {local_now:%H:%M} ({status})"


def working_hours_info(settings: Settings) -> str:
    days = sorted(settings.working_days)
    if days and days == list(range(days[0], days[-1] + 1)):
        day_range = f"{DAY_NAMES[days[0]]} - {DAY_NAMES[days[-1]]}"
    else:
        day_range = ", ".join(DAY_NAMES[d] for d in days)
    return (
        "Jam Operasional:\n"
        f"{day_range}: {settings.working_hours_start:02d}.00 - {settings.working_hours_end:02d}.00 WIB\n"
        "Di luar jam tersebut kantor TUTUP"
    )
