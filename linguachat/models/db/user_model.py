from sqlalchemy import Column, DateTime, String, func

from linguachat.database import Base


class UserModel(Base):
    """SQLAlchemy model for users table."""

    __tablename__ = "users"

    id = Column(String(128), primary_key=True)
    username = Column(String(20), nullable=False, unique=True, index=True)
    display_name = Column(String(255), nullable=False)
    avatar_url = Column(String(2048))
    email = Column(String(255))
    # NULL means the user never chose; readers treat it as 'en'
    language = Column(String(2))
    created_at = Column(DateTime(timezone=True), default=func.now())
    updated_at = Column(
        DateTime(timezone=True), default=func.now(), onupdate=func.now()
    )
