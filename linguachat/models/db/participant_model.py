import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from linguachat.database import Base


class ParticipantModel(Base):
    """Per-participant state of a conversation.

    Holds the denormalized profile snapshot shown in conversation lists plus
    the participant's own unread counter and archived flag.
    """

    __tablename__ = "conversation_participants"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    conversation_id = Column(
        String(300),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(String(128), nullable=False, index=True)
    username = Column(String(20))
    display_name = Column(String(255))
    avatar_url = Column(String(2048))
    language = Column(String(2))
    unread_count = Column(Integer, nullable=False, default=0)
    archived = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=func.now())

    # Relationships
    conversation = relationship("ConversationModel", back_populates="participants")

    __table_args__ = (
        UniqueConstraint("conversation_id", "user_id", name="uq_participant_conversation"),
    )
