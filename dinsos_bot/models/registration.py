from sqlalchemy import Column, DateTime, Index, Text

from dinsos_bot.database import Base


class Registration(Base):
    """A submitted registration.

    ``sender`` is the WhatsApp id the conversation came from; ``phone`` is the
    number the applicant typed during the flow.
    """

    __tablename__ = "registrations"
    __table_args__ = (
        Index("idx_registrations_sender", "sender"),
        Index("idx_registrations_status", "status"),
    )

    id = Column(Text, primary_key=True)  # REG-<epoch ms>
    sender = Column(Text, nullable=False)
    program = Column(Text, nullable=False)
    name = Column(Text)
    nik = Column(Text)
    address = Column(Text)
    phone = Column(Text)
    created_at = Column(DateTime(timezone=True), nullable=False)
    status = Column(Text, nullable=False, default="pending")  # pending, verified, rejected
