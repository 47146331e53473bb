from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from dinsos_bot.database import get_db
from dinsos_bot.schemas.message import MessageRequest, MessageResponse
from dinsos_bot.services.message_service import MessageProcessor, ReplyCollector

router = APIRouter()


def get_processor(request: Request) -> MessageProcessor:
    return request.app.state.processor


@router.post("/message", response_model=MessageResponse)
async def handle_message(
    request: MessageRequest,
    db: Session = Depends(get_db),
    processor: MessageProcessor = Depends(get_processor),
):
    """Handle one inbound chat message; replies come back in order."""
    collector = ReplyCollector()
    outcome = await processor.process(db, request.message, request.chat, collector)
    return MessageResponse(
        success=True,
        accepted=outcome.accepted,
        stage=outcome.stage,
        reason=outcome.reason,
        replies=collector.replies,
    )
