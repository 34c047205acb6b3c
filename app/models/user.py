"""
User model - accounts, roles and credentials
"""
from sqlalchemy import Column, String, DateTime, Uuid, func
from sqlalchemy.orm import relationship
from app.database import Base
from app.utils.clock import utcnow
import uuid


class User(Base):
    """
    Users table - profile, role and credentials

    `password_hash` is the current credential. `password` is the deprecated
    bcrypt column kept for accounts created before the auth migration.
    """
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    role = Column(String(10), nullable=False, default="user")  # admin | user
    password_hash = Column(String(255))
    password = Column(String(255))  # legacy bcrypt hash
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)

    attempts = relationship("QuizAttempt", back_populates="user", cascade="all, delete-orphan")
    favorites = relationship("UserFavorite", back_populates="user", cascade="all, delete-orphan")

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_legacy(self) -> bool:
        return not self.password_hash and bool(self.password)

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username}, role={self.role})>"
