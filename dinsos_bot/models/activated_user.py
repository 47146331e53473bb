from sqlalchemy import Boolean, Column, DateTime, Text

from dinsos_bot.database import Base


class ActivatedUser(Base):
    __tablename__ = "activated_users"

    phone = Column(Text, primary_key=True)  # sender id, e.g. 6281234567890@c.us
    activated = Column(Boolean, nullable=False, default=True)
    activated_at = Column(DateTime(timezone=True), nullable=False)
    last_message_at = Column(DateTime(timezone=True))
