"""Client model."""
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Boolean, BigInteger
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from insulcrm.database import Base, IdType


class Client(Base):
    """Client contact, optionally attached to a company."""

    __tablename__ = 'client'

    id = Column(IdType, primary_key=True, autoincrement=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    client_type = Column(String(50), nullable=True)  # Residential, Commercial, Builder
    company_id = Column(BigInteger, ForeignKey('company.id'), nullable=True)
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, server_default='true')
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    company = relationship('Company', back_populates='clients')
    quotes = relationship('Quote', back_populates='client')

    def __repr__(self):
        return f"<Client(id={self.id}, name='{self.full_name}')>"

    @property
    def full_name(self):
        return ' '.join(part for part in (self.first_name, self.last_name) if part)

    def to_dict(self):
        return {
            'id': self.id,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'full_name': self.full_name,
            'email': self.email,
            'phone': self.phone,
            'client_type': self.client_type,
            'company_id': self.company_id,
            'company_name': self.company.company_name if self.company else None,
            'notes': self.notes,
            'is_active': bool(self.is_active),
        }
