"""Quote model for insulation quotes."""
import enum
from datetime import date
from sqlalchemy import Column, BigInteger, Integer, String, Numeric, DateTime, Date, Text, ForeignKey, Boolean
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from insulcrm.database import Base, IdType


class QuoteStatus(enum.Enum):
    """Quote status enum."""
    DRAFT = "Draft"
    SENT = "Sent"
    ACCEPTED = "Accepted"
    DECLINED = "Declined"


EDITABLE_STATUSES = (QuoteStatus.DRAFT.value, QuoteStatus.SENT.value)


class Quote(Base):
    """
    Quote (aggregate root of sections and line items).

    Pricing settings and every computed total are stored with the quote, so a
    saved quote keeps its figures even after catalog prices or tier defaults
    change.
    """

    __tablename__ = 'quote'

    id = Column(IdType, primary_key=True, autoincrement=True)
    quote_number = Column(String(64), nullable=False, index=True)
    version_number = Column(Integer, nullable=False, default=0, server_default='0')  # 0 = draft
    is_draft = Column(Boolean, nullable=False, default=True, server_default='true')
    is_current = Column(Boolean, nullable=False, default=True, server_default='true')
    superseded_at = Column(DateTime(timezone=True), nullable=True)
    status = Column(String(20), nullable=False, default='Draft')
    reference = Column(String(100), nullable=True)
    client_id = Column(BigInteger, ForeignKey('client.id'), nullable=False)
    opportunity_id = Column(BigInteger, ForeignKey('opportunity.id'), nullable=True)
    site_address = Column(Text, nullable=False)
    city = Column(String(100), nullable=True)
    postcode = Column(String(20), nullable=True)
    job_type = Column(String(50), nullable=True)
    quote_date = Column(Date, nullable=True)
    valid_until = Column(Date, nullable=True)
    accepted_date = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)

    # Pricing settings
    pricing_tier = Column(String(20), nullable=False, default='Retail')
    markup_percent = Column(Numeric(6, 2), nullable=False, default=60)
    waste_percent = Column(Numeric(6, 2), nullable=False, default=10)
    labour_rate = Column(Numeric(10, 2), nullable=False, default=3)

    # Stored totals
    total_cost_ex_gst = Column(Numeric(14, 2), nullable=False, default=0)
    total_sell_ex_gst = Column(Numeric(14, 2), nullable=False, default=0)
    gst_amount = Column(Numeric(14, 2), nullable=False, default=0)
    total_inc_gst = Column(Numeric(14, 2), nullable=False, default=0)
    gross_profit = Column(Numeric(14, 2), nullable=False, default=0)
    gross_profit_percent = Column(Numeric(6, 1), nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    client = relationship('Client', back_populates='quotes')
    opportunity = relationship('Opportunity', back_populates='quotes')
    sections = relationship(
        'QuoteSection',
        back_populates='quote',
        cascade='all, delete-orphan',
        order_by='QuoteSection.sort_order',
    )

    def __repr__(self):
        return f"<Quote(id={self.id}, number='{self.quote_number}', v={self.version_number}, status='{self.status}')>"

    @property
    def is_editable(self):
        return self.status in EDITABLE_STATUSES

    @property
    def is_expired(self):
        """Check if quote is expired (calculated, not stored)."""
        if self.is_editable and self.valid_until:
            return date.today() > self.valid_until
        return False
