"""
User database model.
Represents bank customers and their credentials.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String

from banking.database import Base


def utcnow():
    return datetime.now(timezone.utc)


class User(Base):
    """
    User table - stores customer identity and the password hash.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    # bcrypt hash, never the plaintext password
    password_hash = Column(String(255), nullable=False)
    phone = Column(String(30), nullable=True)
    address = Column(String(500), nullable=True)
    created_date = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username})>"
