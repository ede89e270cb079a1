"""SQLAlchemy model for application users."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from concierge.models.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    first_name = Column(String(50), nullable=False, default="")
    last_name = Column(String(50), nullable=False, default="")
    # Profile fields used to personalize prompts.
    city = Column(String(120), nullable=True)
    postal_code = Column(String(20), nullable=True)
    country = Column(String(120), nullable=True)
    conversations = relationship(
        "Conversation",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    knowledge_facts = relationship(
        "KnowledgeFact",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


__all__ = ["User"]
