"""Product model."""
from decimal import Decimal
from sqlalchemy import Column, String, Boolean, Numeric, DateTime
from sqlalchemy.sql import func
from insulcrm.database import Base, IdType


class Product(Base):
    """
    Catalog product (insulation pack/bale or labour item).

    Prices are per pack; bale_size_sqm is the area one pack covers.
    """

    __tablename__ = 'product'

    id = Column(IdType, primary_key=True, autoincrement=True)
    sku = Column(String(64), nullable=True, unique=True)
    product_description = Column(String(255), nullable=False)
    category = Column(String(100), nullable=True)
    r_value = Column(String(20), nullable=True)
    application_type = Column(String(100), nullable=True)
    bale_size_sqm = Column(Numeric(10, 3), nullable=False, default=1, server_default='1')
    cost_price = Column(Numeric(12, 2), nullable=False, default=0, server_default='0.00')
    retail_price = Column(Numeric(12, 2), nullable=False, default=0, server_default='0.00')
    pack_price = Column(Numeric(12, 2), nullable=False, default=0, server_default='0.00')
    waste_percentage = Column(Numeric(5, 2), nullable=False, default=0, server_default='0')
    is_labour = Column(Boolean, nullable=False, default=False, server_default='false')
    is_active = Column(Boolean, nullable=False, default=True, server_default='true')
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Product(id={self.id}, sku='{self.sku}', description='{self.product_description}')>"

    def to_catalog_product(self):
        """Snapshot used by the pricing calculator."""
        from insulcrm.services.pricing_service import CatalogProduct
        return CatalogProduct(
            id=self.id,
            sku=self.sku or '',
            description=self.product_description,
            cost_price=Decimal(self.cost_price or 0),
            pack_price=Decimal(self.pack_price or 0),
            pack_size=Decimal(self.bale_size_sqm or 0),
            waste_percent=Decimal(self.waste_percentage or 0),
            is_labour=bool(self.is_labour),
            is_active=bool(self.is_active),
        )

    def to_dict(self):
        return {
            'id': self.id,
            'sku': self.sku,
            'product_description': self.product_description,
            'category': self.category,
            'r_value': self.r_value,
            'application_type': self.application_type,
            'bale_size_sqm': float(self.bale_size_sqm or 0),
            'cost_price': float(self.cost_price or 0),
            'retail_price': float(self.retail_price or 0),
            'pack_price': float(self.pack_price or 0),
            'waste_percentage': float(self.waste_percentage or 0),
            'is_labour': bool(self.is_labour),
            'is_active': bool(self.is_active),
        }
