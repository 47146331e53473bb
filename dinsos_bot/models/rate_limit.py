from sqlalchemy import BigInteger, Column, Index, Integer, Text

from dinsos_bot.database import Base


class RateLimit(Base):
    __tablename__ = "rate_limits"
    __table_args__ = (Index("idx_rate_limits_reset", "reset_time"),)

    phone = Column(Text, primary_key=True)
    count = Column(Integer, nullable=False, default=0)
    reset_time = Column(BigInteger, nullable=False)  # epoch milliseconds
