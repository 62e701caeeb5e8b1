"""QuoteSection model: a typed grouping of line items within a quote."""
from sqlalchemy import Column, BigInteger, Integer, String, ForeignKey
from sqlalchemy.orm import relationship
from insulcrm.database import Base, IdType


class QuoteSection(Base):

    __tablename__ = 'quote_section'

    id = Column(IdType, primary_key=True, autoincrement=True)
    quote_id = Column(BigInteger, ForeignKey('quote.id'), nullable=False)
    app_type_id = Column(BigInteger, ForeignKey('app_type.id'), nullable=True)
    custom_name = Column(String(200), nullable=True)
    section_color = Column(String(9), nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)

    # Relationships
    quote = relationship('Quote', back_populates='sections')
    app_type = relationship('ApplicationType')
    line_items = relationship(
        'QuoteLineItem',
        back_populates='section',
        cascade='all, delete-orphan',
        order_by='QuoteLineItem.sort_order',
    )

    def __repr__(self):
        return f"<QuoteSection(id={self.id}, quote_id={self.quote_id}, name='{self.display_name}')>"

    @property
    def display_name(self):
        if self.app_type is not None:
            return self.app_type.name
        return self.custom_name or 'Section'
