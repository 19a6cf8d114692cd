"""Session token model."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.database import Base, utcnow

TOKEN_MAX_LENGTH = 32


class Token(Base):
    """Opaque bearer token. Expired once last_used_at falls outside the TTL."""

    __tablename__ = "token"

    token = Column(String(TOKEN_MAX_LENGTH), primary_key=True)
    user_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    last_used_at = Column(DateTime, nullable=False, default=utcnow, index=True)

    user = relationship("User", back_populates="tokens")
