from sqlalchemy import Column, DateTime, String, Text, func
from sqlalchemy.orm import relationship

from linguachat.database import Base


class ConversationModel(Base):
    """SQLAlchemy model for conversations table.

    The primary key is derived from the sorted participant pair, so the pair
    itself is never updated after insert.
    """

    __tablename__ = "conversations"

    id = Column(String(300), primary_key=True)
    user_a_id = Column(String(128), nullable=False, index=True)
    user_b_id = Column(String(128), nullable=False, index=True)
    last_message = Column(Text, nullable=False, default="")
    last_message_at = Column(DateTime(timezone=True), nullable=False, index=True)
    last_message_sender_id = Column(String(128))
    created_at = Column(DateTime(timezone=True), default=func.now())
    updated_at = Column(
        DateTime(timezone=True), default=func.now(), onupdate=func.now()
    )

    # Relationships
    messages = relationship(
        "MessageModel", back_populates="conversation", cascade="all, delete-orphan"
    )
    participants = relationship(
        "ParticipantModel", back_populates="conversation", cascade="all, delete-orphan"
    )
