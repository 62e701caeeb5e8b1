"""QuoteLineItem model for quote line items."""
from sqlalchemy import Column, BigInteger, Integer, String, Numeric, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from insulcrm.database import Base, IdType


class QuoteLineItem(Base):
    """
    Quote line item.

    Stores a snapshot of the description and every computed figure at the
    time the quote was priced, so history does not move with the catalog.
    """

    __tablename__ = 'quote_line_item'

    id = Column(IdType, primary_key=True, autoincrement=True)
    section_id = Column(BigInteger, ForeignKey('quote_section.id'), nullable=False)
    product_id = Column(BigInteger, ForeignKey('product.id'), nullable=True)
    marker = Column(String(50), nullable=True)
    description = Column(String(255), nullable=False)
    area_sqm = Column(Numeric(12, 2), nullable=False, default=0)
    is_labour = Column(Boolean, nullable=False, default=False)
    cost_price = Column(Numeric(12, 2), nullable=False, default=0)
    sell_price = Column(Numeric(12, 2), nullable=False, default=0)
    packs_required = Column(Integer, nullable=False, default=0)
    line_cost = Column(Numeric(14, 2), nullable=False, default=0)
    line_sell = Column(Numeric(14, 2), nullable=False, default=0)
    margin_percent = Column(Numeric(6, 1), nullable=False, default=0)
    sort_order = Column(Integer, nullable=False, default=0)

    # Relationships
    section = relationship('QuoteSection', back_populates='line_items')
    product = relationship('Product', foreign_keys=[product_id])

    def __repr__(self):
        return f"<QuoteLineItem(id={self.id}, section_id={self.section_id}, description='{self.description}', sell={self.line_sell})>"
