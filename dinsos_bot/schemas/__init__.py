from dinsos_bot.schemas.message import (
    ChatContext,
    InboundMessage,
    LastChatMessage,
    MessageRequest,
    MessageResponse,
)

__all__ = ["ChatContext", "InboundMessage", "LastChatMessage", "MessageRequest", "MessageResponse"]
