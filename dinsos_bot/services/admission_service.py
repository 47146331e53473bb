"""Admission pipeline: ordered filters deciding whether a message is answered.

Order matters. Later filters rely on earlier ones having run:
self/group -> old message -> manual reply -> blacklist -> context -> opt-in -> rate limit.
The first rejection stops the chain. Only the rate limiter may attach a reply.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dinsos_bot.config import FailPolicy, Settings
from dinsos_bot.logging_config import get_logger
from dinsos_bot.schemas.message import ChatContext, InboundMessage
from dinsos_bot.services.activation_service import is_activated, set_activated, touch_last_message
from dinsos_bot.services.blacklist_service import Blacklist
from dinsos_bot.services.intent_service import contains_keyword, detect_context
from dinsos_bot.services.rate_limit_service import (
    RateLimitVerdict,
    build_rate_limit_warning,
    check_rate_limit,
)

logger = get_logger("admission")

GROUP_SUFFIX = "@g.us"
STAGE_ADMITTED = "admitted"


@dataclass(frozen=True)
class AdmissionDecision:
    accepted: bool
    stage: str
    reason: str = ""
    reply: Optional[str] = None

    @classmethod
    def accept(cls, stage: str, reason: str = "") -> "AdmissionDecision":
        return cls(accepted=True, stage=stage, reason=reason)

    @classmethod
    def reject(cls, stage: str, reason: str, reply: Optional[str] = None) -> "AdmissionDecision":
        return cls(accepted=False, stage=stage, reason=reason, reply=reply)


@dataclass
class AdmissionContext:
    db: Session
    message: InboundMessage
    chat: Optional[ChatContext]
    now: datetime

    @property
    def sender(self) -> str:
        return self.message.sender

    @property
    def text(self) -> str:
        return self.message.text or ""


class AdmissionFilter(ABC):
    """One step of the pipeline. `failure_policy` decides the outcome when check() raises."""

    name: str = "filter"
    failure_policy: FailPolicy = FailPolicy.OPEN

    @abstractmethod
    def check(self, ctx: AdmissionContext) -> AdmissionDecision:
        pass

    def on_failure(self, error: Exception) -> AdmissionDecision:
        reason = f"check failed ({type(error).__name__}), policy={self.failure_policy.value}"
        if self.failure_policy == FailPolicy.OPEN:
            return AdmissionDecision.accept(self.name, reason)
        return AdmissionDecision.reject(self.name, reason)


class SelfGroupFilter(AdmissionFilter):
    name = "self_group"

    def check(self, ctx: AdmissionContext) -> AdmissionDecision:
        if ctx.message.is_from_self:
            return AdmissionDecision.reject(self.name, "sent by this account")
        if ctx.message.is_group or ctx.sender.endswith(GROUP_SUFFIX):
            return AdmissionDecision.reject(self.name, "group chat")
        return AdmissionDecision.accept(self.name)


class OldMessageFilter(AdmissionFilter):
    """Drops history the transport replays after a reconnect."""

    name = "old_message"

    def __init__(self, max_age_seconds: int):
        self.max_age_seconds = max_age_seconds

    def check(self, ctx: AdmissionContext) -> AdmissionDecision:
        age = ctx.now.timestamp() - ctx.message.timestamp
        if age > self.max_age_seconds:
            return AdmissionDecision.reject(self.name, f"old message ({round(age / 3600)}h old)")
        return AdmissionDecision.accept(self.name)


class ManualReplyFilter(AdmissionFilter):
    """Stays quiet when the operator already answered this chat by hand."""

    name = "manual_reply"

    def __init__(self, window_seconds: int, failure_policy: FailPolicy = FailPolicy.OPEN):
        self.window_seconds = window_seconds
        self.failure_policy = failure_policy

    def check(self, ctx: AdmissionContext) -> AdmissionDecision:
        last = ctx.chat.last_message if ctx.chat else None
        if last is None or not last.from_self:
            return AdmissionDecision.accept(self.name)

        delta = ctx.message.timestamp - last.timestamp
        if -self.window_seconds < delta < self.window_seconds:
            return AdmissionDecision.reject(self.name, "manual reply detected")
        return AdmissionDecision.accept(self.name)


class BlacklistFilter(AdmissionFilter):
    name = "blacklist"

    def __init__(self, blacklist: Blacklist):
        self.blacklist = blacklist

    def check(self, ctx: AdmissionContext) -> AdmissionDecision:
        if ctx.sender in self.blacklist:
            name = ctx.chat.display_name if ctx.chat and ctx.chat.display_name else "Unknown"
            return AdmissionDecision.reject(self.name, f"personal contact in blacklist ({name})")
        return AdmissionDecision.accept(self.name)


class ContextFilter(AdmissionFilter):
    name = "context"

    def __init__(
        self,
        *,
        bot_keywords: Iterable[str],
        trigger_keywords: Iterable[str],
        public_user_patterns: Iterable[str],
        failure_policy: FailPolicy = FailPolicy.OPEN,
    ):
        self.bot_keywords = tuple(bot_keywords)
        self.trigger_keywords = tuple(trigger_keywords)
        self.public_user_patterns = tuple(public_user_patterns)
        self.failure_policy = failure_policy

    def check(self, ctx: AdmissionContext) -> AdmissionDecision:
        verdict = detect_context(
            ctx.text,
            ctx.chat or ChatContext(),
            bot_keywords=self.bot_keywords,
            trigger_keywords=self.trigger_keywords,
            public_user_patterns=self.public_user_patterns,
        )
        if verdict.is_for_bot:
            return AdmissionDecision.accept(self.name, verdict.reason)
        return AdmissionDecision.reject(self.name, verdict.reason)


class OptInFilter(AdmissionFilter):
    """New senders must say a bot/trigger keyword once before the bot answers them."""

    name = "opt_in"

    def __init__(
        self,
        *,
        bot_keywords: Iterable[str],
        trigger_keywords: Iterable[str],
        failure_policy: FailPolicy = FailPolicy.CLOSED,
    ):
        self.bot_keywords = tuple(bot_keywords)
        self.trigger_keywords = tuple(trigger_keywords)
        self.failure_policy = failure_policy

    def check(self, ctx: AdmissionContext) -> AdmissionDecision:
        if is_activated(ctx.db, ctx.sender):
            touch_last_message(ctx.db, ctx.sender, ctx.now)
            return AdmissionDecision.accept(self.name, "already activated")

        if contains_keyword(ctx.text, self.trigger_keywords):
            via = "trigger"
        elif contains_keyword(ctx.text, self.bot_keywords):
            via = "bot"
        else:
            return AdmissionDecision.reject(self.name, "new sender without trigger keyword")

        set_activated(ctx.db, ctx.sender, ctx.now)
        return AdmissionDecision.accept(self.name, f"activated via {via} keyword")


class RateLimitFilter(AdmissionFilter):
    name = "rate_limit"

    def __init__(self, *, limit: int, window_ms: int, warning: str, failure_policy: FailPolicy = FailPolicy.CLOSED):
        self.limit = limit
        self.window_ms = window_ms
        self.warning = warning
        self.failure_policy = failure_policy

    def check(self, ctx: AdmissionContext) -> AdmissionDecision:
        now_ms = int(ctx.now.timestamp() * 1000)
        status = check_rate_limit(ctx.db, ctx.sender, now_ms, limit=self.limit, window_ms=self.window_ms)

        if status.verdict == RateLimitVerdict.ALLOWED:
            return AdmissionDecision.accept(self.name, f"{status.count}/{status.limit}")
        reason = f"rate limit exceeded ({status.count}/{status.limit})"
        if status.verdict == RateLimitVerdict.WARN:
            return AdmissionDecision.reject(self.name, reason, reply=self.warning)
        return AdmissionDecision.reject(self.name, reason)


class AdmissionPipeline:
    def __init__(self, filters: list[AdmissionFilter]):
        self.filters = list(filters)

    def run(self, ctx: AdmissionContext) -> AdmissionDecision:
        for admission_filter in self.filters:
            try:
                decision = admission_filter.check(ctx)
            except Exception as e:
                if isinstance(e, SQLAlchemyError):
                    ctx.db.rollback()
                decision = admission_filter.on_failure(e)
                logger.error(
                    f"Admission filter {admission_filter.name} failed: {e}",
                    extra={"context": {"sender": ctx.sender, "decision": decision.accepted}},
                )

            if not decision.accepted:
                logger.info(
                    f"Skip: {decision.reason}",
                    extra={"context": {"sender": ctx.sender, "stage": decision.stage}},
                )
                return decision

        return AdmissionDecision.accept(STAGE_ADMITTED)


def build_pipeline(settings: Settings, blacklist: Blacklist) -> AdmissionPipeline:
    return AdmissionPipeline(
        [
            SelfGroupFilter(),
            OldMessageFilter(settings.message_max_age_seconds),
            ManualReplyFilter(
                settings.manual_reply_window_seconds,
                failure_policy=settings.manual_reply_failure_policy,
            ),
            BlacklistFilter(blacklist),
            ContextFilter(
                bot_keywords=settings.bot_keywords,
                trigger_keywords=settings.trigger_keywords,
                public_user_patterns=settings.public_user_patterns,
                failure_policy=settings.context_failure_policy,
            ),
            OptInFilter(
                bot_keywords=settings.bot_keywords,
                trigger_keywords=settings.trigger_keywords,
                failure_policy=settings.opt_in_failure_policy,
            ),
            RateLimitFilter(
                limit=settings.rate_limit_max,
                window_ms=settings.rate_limit_window_ms,
                warning=build_rate_limit_warning(
                    settings.rate_limit_max,
                    settings.contact_whatsapp,
                    settings.contact_phone,
                ),
                failure_policy=settings.rate_limit_failure_policy,
            ),
        ]
    )
