"""Catalog service: product picker feed, search and product maintenance."""
import logging
from typing import Dict, Any, Iterable, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from insulcrm.models import Product, ApplicationType
from insulcrm.services.pricing_service import CatalogProduct
from insulcrm.utils.number_format import parse_decimal
from insulcrm.exceptions import ValidationError, NotFoundError, ConflictError

logger = logging.getLogger(__name__)

MIN_SEARCH_LENGTH = 2
SEARCH_LIMIT = 10

PRODUCT_PRICE_FIELDS = ('cost_price', 'retail_price', 'pack_price', 'waste_percentage')
PRODUCT_TEXT_FIELDS = ('sku', 'category', 'r_value', 'application_type')


def _pickable(query):
    """Only active, non-labour products may be offered on a quote line."""
    return query.filter(Product.is_active.is_(True), Product.is_labour.is_(False))


def list_active_products(session: Session) -> List[Product]:
    """Products offered to the line-item product picker."""
    return _pickable(session.query(Product)).order_by(Product.product_description).all()


def search_products(session: Session, term: str, limit: int = SEARCH_LIMIT) -> List[Product]:
    """
    Typeahead search over the product picker feed.

    Terms shorter than two characters return nothing.
    """
    term = (term or '').strip().lower()
    if len(term) < MIN_SEARCH_LENGTH:
        return []

    pattern = f'%{term}%'
    query = _pickable(session.query(Product)).filter(
        or_(
            func.lower(Product.sku).like(pattern),
            func.lower(Product.product_description).like(pattern),
            func.lower(Product.r_value).like(pattern),
            func.lower(Product.application_type).like(pattern),
        )
    )
    return query.order_by(Product.product_description).limit(limit).all()


def load_catalog_products(session: Session, product_ids: Iterable[int]) -> Dict[int, CatalogProduct]:
    """Batch fetch pickable products and snapshot them for pricing."""
    ids = {int(pid) for pid in product_ids}
    if not ids:
        return {}

    products = _pickable(session.query(Product)).filter(Product.id.in_(ids)).all()
    return {p.id: p.to_catalog_product() for p in products}


def list_application_types(session: Session) -> List[ApplicationType]:
    return (
        session.query(ApplicationType)
        .filter(ApplicationType.is_active.is_(True))
        .order_by(ApplicationType.sort_order, ApplicationType.name)
        .all()
    )


def _product_values(data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    """Validate and normalise product input."""
    values: Dict[str, Any] = {}

    if not partial or 'product_description' in data:
        description = (data.get('product_description') or '').strip()
        if not description:
            raise ValidationError('Product description is required', field='product_description')
        values['product_description'] = description

    for name in PRODUCT_TEXT_FIELDS:
        if name in data:
            values[name] = (str(data[name]).strip() if data[name] is not None else '') or None

    for name in PRODUCT_PRICE_FIELDS:
        if name in data:
            try:
                values[name] = parse_decimal(data[name], name)
            except ValueError as e:
                raise ValidationError(str(e), field=name)

    if 'bale_size_sqm' in data:
        try:
            size = parse_decimal(data['bale_size_sqm'], 'bale_size_sqm')
        except ValueError as e:
            raise ValidationError(str(e), field='bale_size_sqm')
        if size == 0:
            raise ValidationError('bale_size_sqm must be greater than zero', field='bale_size_sqm')
        values['bale_size_sqm'] = size

    for name in ('is_labour', 'is_active'):
        if name in data:
            values[name] = bool(data[name])

    return values


def _ensure_unique_sku(session: Session, sku: Optional[str], exclude_id: Optional[int] = None) -> None:
    if not sku:
        return
    query = session.query(Product).filter(func.lower(Product.sku) == sku.lower())
    if exclude_id:
        query = query.filter(Product.id != exclude_id)
    if query.first():
        raise ConflictError(f"A product with SKU '{sku}' already exists")


def create_product(session: Session, data: Dict[str, Any]) -> Product:
    """Create a catalog product."""
    values = _product_values(data)
    _ensure_unique_sku(session, values.get('sku'))

    try:
        product = Product(**values)
        session.add(product)
        session.commit()
        logger.info(f"[CATALOG] Product created: {product.sku} ({product.id})")
        return product
    except Exception:
        session.rollback()
        raise


def update_product(session: Session, product_id: int, data: Dict[str, Any]) -> Product:
    """Update a catalog product. Saved quotes keep their own snapshot."""
    product = session.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise NotFoundError(f'Product {product_id} not found')

    values = _product_values(data, partial=True)
    if 'sku' in values:
        _ensure_unique_sku(session, values['sku'], exclude_id=product.id)

    try:
        for name, value in values.items():
            setattr(product, name, value)
        session.commit()
        return product
    except Exception:
        session.rollback()
        raise
