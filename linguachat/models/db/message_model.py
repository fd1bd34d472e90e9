from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    String,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from linguachat.database import Base


class MessageModel(Base):
    """SQLAlchemy model for messages table."""

    __tablename__ = "messages"

    id = Column(String(36), primary_key=True)
    conversation_id = Column(
        String(300),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sender_id = Column(String(128), nullable=False)
    text = Column(Text, nullable=False, default="")
    sender_language = Column(String(2), nullable=False)
    translated_text = Column(Text)
    attachments = Column(JSON, default=list)
    link_preview = Column(JSON)
    sent_at = Column(DateTime(timezone=True), nullable=False, index=True)
    read = Column(Boolean, nullable=False, default=False)
    edited = Column(Boolean, nullable=False, default=False)
    edited_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), default=func.now())
    updated_at = Column(
        DateTime(timezone=True), default=func.now(), onupdate=func.now()
    )

    # Relationships
    conversation = relationship("ConversationModel", back_populates="messages")

    # Constraints (enforced by database CHECK constraints in the migration)
    # sender_language IN ('en', 'es')
