"""Company model."""
from sqlalchemy import Column, String, Text, DateTime, Boolean
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from insulcrm.database import Base, IdType


class Company(Base):
    """Company (builder, property manager, etc.) that clients belong to."""

    __tablename__ = 'company'

    id = Column(IdType, primary_key=True, autoincrement=True)
    company_name = Column(String(200), nullable=False)
    site_address = Column(Text, nullable=True)
    city = Column(String(100), nullable=True)
    postcode = Column(String(20), nullable=True)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, server_default='true')
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    clients = relationship('Client', back_populates='company')

    def __repr__(self):
        return f"<Company(id={self.id}, name='{self.company_name}')>"

    def to_dict(self):
        return {
            'id': self.id,
            'company_name': self.company_name,
            'site_address': self.site_address,
            'city': self.city,
            'postcode': self.postcode,
            'phone': self.phone,
            'email': self.email,
            'notes': self.notes,
            'is_active': bool(self.is_active),
        }
