# app/models/user.py
from sqlalchemy import Column, String

from app.database import Base


class User(Base):
    """
    Marketplace user account.
    The chat core only reads display fields from this table.
    """
    __tablename__ = "users"

    id = Column(String(255), primary_key=True, index=True)
    name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True, index=True)
    avatar_url = Column(String(1024), nullable=True)

    def __repr__(self):
        return f"<User {self.id} - {self.email}>"

    @property
    def display_name(self):
        """Get user's display name"""
        if self.name:
            return self.name
        return f"User {self.id[:4]}"
