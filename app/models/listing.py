# app/models/listing.py
from sqlalchemy import Column, String, JSON

from app.database import Base


class Listing(Base):
    """
    Rental listing owned by a marketplace user.
    Read by chat discovery (owner_id) and for conversation summaries.
    """
    __tablename__ = "listings"

    id = Column(String(255), primary_key=True, index=True)
    owner_id = Column(String(255), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    images = Column(JSON, nullable=True)

    def __repr__(self):
        return f"<Listing {self.id} - {self.title}>"
