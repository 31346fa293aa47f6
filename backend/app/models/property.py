"""
Property model for records imported from operator CSV uploads.

The address is the natural key. Uploads are reconciled against its
normalized form, stored in `address_key`, whose unique constraint backs
the ON CONFLICT upsert.
"""

from sqlalchemy import Column, Integer, String, Float, Text, DateTime, Boolean
from sqlalchemy.sql import func

from app.core.database import Base


class Property(Base):
    """A single physical property."""

    __tablename__ = "properties"

    id = Column(Integer, primary_key=True, index=True)

    # Address fields (unbounded; uploads are not length-checked)
    property_address = Column(String, nullable=False)
    address_key = Column(String, nullable=False, unique=True)  # trimmed, lowercased address
    city = Column(String, index=True)
    state = Column(String, index=True)
    zip = Column(String)
    county = Column(String)

    # Coordinates
    latitude = Column(Float)
    longitude = Column(Float)

    # Property details (all optional; unknown is NULL)
    year_built = Column(Integer)
    occupancy_rate = Column(Float)  # percentage
    parking_spaces = Column(Integer)
    has_ev_charging = Column(Boolean)  # NULL = unknown, distinct from False
    redevelopment_opportunities = Column(Text)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Property(id={self.id}, address={self.property_address}, city={self.city}, state={self.state})>"
