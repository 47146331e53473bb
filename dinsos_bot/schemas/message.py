from typing import Optional

from pydantic import AliasChoices, BaseModel, Field


class LastChatMessage(BaseModel):
    from_self: bool = Field(default=False, validation_alias=AliasChoices("from_self", "fromMe"))
    timestamp: int


class ChatContext(BaseModel):
    # None: the transport could not tell whether the chat is a saved contact
    is_known_contact: Optional[bool] = Field(
        default=None,
        validation_alias=AliasChoices("is_known_contact", "isMyContact"),
    )
    display_name: Optional[str] = Field(default=None, validation_alias=AliasChoices("display_name", "name"))
    last_message: Optional[LastChatMessage] = Field(
        default=None,
        validation_alias=AliasChoices("last_message", "lastMessage"),
    )


class InboundMessage(BaseModel):
    sender: str = Field(validation_alias=AliasChoices("sender", "from"))
    text: str = Field(default="", validation_alias=AliasChoices("text", "body"))
    timestamp: int  # seconds, assigned by the origin
    is_from_self: bool = Field(default=False, validation_alias=AliasChoices("is_from_self", "fromMe"))
    is_group: bool = Field(default=False, validation_alias=AliasChoices("is_group", "isGroup"))


class MessageRequest(BaseModel):
    message: InboundMessage
    chat: Optional[ChatContext] = None


class MessageResponse(BaseModel):
    success: bool
    accepted: bool
    stage: str
    reason: Optional[str] = None
    replies: list[str] = []
