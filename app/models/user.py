"""User model."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from app.database import Base, utcnow


class User(Base):
    """Account holder. Created inactive, activated by consuming activation_token."""

    __tablename__ = "user"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(32), nullable=False)
    email = Column(String(256), unique=True, nullable=False, index=True)
    password_hash = Column(String(256), nullable=False)
    activation_token = Column(String(16), nullable=True, index=True)
    password_reset_token = Column(String(16), nullable=True, index=True)
    inactive = Column(Boolean, nullable=False, default=True)
    image = Column(String(64), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    tokens = relationship("Token", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
