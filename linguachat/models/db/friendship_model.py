import uuid

from sqlalchemy import Column, DateTime, String, func

from linguachat.database import Base


class FriendshipModel(Base):
    """SQLAlchemy model for friendships table."""

    __tablename__ = "friendships"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # Sorted "a_b" key; the unique index allows one relation per unordered pair
    pair_key = Column(String(300), nullable=False, unique=True)
    from_user_id = Column(String(128), nullable=False, index=True)
    to_user_id = Column(String(128), nullable=False, index=True)
    status = Column(String(10), nullable=False, default="pending")
    created_at = Column(DateTime(timezone=True), default=func.now())
    accepted_at = Column(DateTime(timezone=True))

    # Constraints (enforced by database CHECK constraints in the migration)
    # status IN ('pending', 'accepted')
