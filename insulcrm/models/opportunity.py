"""Opportunity model for the sales pipeline."""
import enum
from sqlalchemy import Column, BigInteger, String, Numeric, DateTime, Date, Text, ForeignKey, Boolean
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from insulcrm.database import Base, IdType


class OpportunityStage(enum.Enum):
    """Kanban columns, in pipeline order."""
    NEW = "NEW"
    QUALIFIED = "QUALIFIED"
    QUOTED = "QUOTED"
    WON = "WON"
    LOST = "LOST"


class Opportunity(Base):
    """
    Sales opportunity.

    Moves NEW -> QUALIFIED -> QUOTED -> WON/LOST. Saving a quote against an
    opportunity moves it to QUOTED; accepting that quote moves it to WON.
    """

    __tablename__ = 'opportunity'

    id = Column(IdType, primary_key=True, autoincrement=True)
    opp_number = Column(String(64), nullable=False, unique=True)
    opportunity_name = Column(String(200), nullable=True)
    client_id = Column(BigInteger, ForeignKey('client.id'), nullable=False)
    company_id = Column(BigInteger, ForeignKey('company.id'), nullable=True)
    stage = Column(String(20), nullable=False, default='NEW')
    sub_status = Column(String(50), nullable=True)
    site_address = Column(Text, nullable=True)
    site_city = Column(String(100), nullable=True)
    site_postcode = Column(String(20), nullable=True)
    estimated_value = Column(Numeric(14, 2), nullable=True)
    actual_value = Column(Numeric(14, 2), nullable=True)
    due_date = Column(Date, nullable=True)
    follow_up_date = Column(Date, nullable=True)
    opportunity_source = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, server_default='true')
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    client = relationship('Client')
    company = relationship('Company')
    quotes = relationship('Quote', back_populates='opportunity')

    def __repr__(self):
        return f"<Opportunity(id={self.id}, number='{self.opp_number}', stage='{self.stage}')>"

    @property
    def is_open(self):
        return self.stage not in (OpportunityStage.WON.value, OpportunityStage.LOST.value)

    def to_dict(self):
        return {
            'id': self.id,
            'opp_number': self.opp_number,
            'opportunity_name': self.opportunity_name,
            'client_id': self.client_id,
            'client_name': self.client.full_name if self.client else None,
            'company_id': self.company_id,
            'stage': self.stage,
            'sub_status': self.sub_status,
            'site_address': self.site_address,
            'site_city': self.site_city,
            'site_postcode': self.site_postcode,
            'estimated_value': float(self.estimated_value) if self.estimated_value is not None else None,
            'actual_value': float(self.actual_value) if self.actual_value is not None else None,
            'due_date': self.due_date.isoformat() if self.due_date else None,
            'follow_up_date': self.follow_up_date.isoformat() if self.follow_up_date else None,
            'opportunity_source': self.opportunity_source,
            'notes': self.notes,
            'is_active': bool(self.is_active),
        }
