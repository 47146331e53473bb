from dinsos_bot.models.activated_user import ActivatedUser
from dinsos_bot.models.rate_limit import RateLimit
from dinsos_bot.models.registration import Registration

__all__ = [
    "ActivatedUser",
    "RateLimit",
    "Registration",
]
