"""Quote service for pricing, persisting, versioning and accepting quotes."""

import logging
from datetime import datetime, date, timedelta
from decimal import Decimal
from io import BytesIO
from xml.sax.saxutils import escape
from typing import Dict, Any, List, Optional

from reportlab.lib.pagesizes import A4
from reportlab.lib import colors
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.enums import TA_CENTER

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from insulcrm.models import (
    Quote, QuoteSection, QuoteLineItem, QuoteStatus, Client, Opportunity, ApplicationType
)
from insulcrm.services import pricing_service
from insulcrm.services.pricing_service import LineItem, Section, QuoteDraft
from insulcrm.services.catalog_service import load_catalog_products
from insulcrm.services.opportunity_service import mark_quoted, mark_won
from insulcrm.exceptions import BusinessLogicError, NotFoundError, ValidationError, ConflictError
from insulcrm.utils.number_format import to_decimal, to_non_negative_decimal, round_money, round_percent
from insulcrm.utils.formatters import money, percent, area, date_nz

logger = logging.getLogger(__name__)

DEFAULT_SECTION_COLOR = '#ffffff'


# ---------------------------------------------------------------------------
# Draft building (payload -> pricing tree)
# ---------------------------------------------------------------------------

def settings_for(payload: Dict[str, Any], config, quote: Optional[Quote] = None):
    """Pricing settings: payload values, else the stored quote's, else config defaults."""
    stored = {}
    if quote is not None:
        stored = {
            'pricing_tier': quote.pricing_tier,
            'markup_percent': quote.markup_percent,
            'waste_percent': quote.waste_percent,
            'labour_rate': quote.labour_rate,
        }

    # A missing or null value falls back; blank numeric input prices as 0
    overrides = {}
    for name in ('pricing_tier', 'markup_percent', 'waste_percent', 'labour_rate'):
        value = payload.get(name)
        if value is None:
            value = stored.get(name)
        if value is None:
            continue
        if name == 'pricing_tier' and not str(value).strip():
            continue
        overrides[name] = value
    return pricing_service.settings_from_config(config, **overrides)


def _product_id(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid product id: {value!r}", field='product_id')


def _app_type_id(value) -> Optional[int]:
    if value in (None, ''):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid application type id: {value!r}", field='app_type_id')


def _manual_line(key: str, data: Dict[str, Any]) -> LineItem:
    line_cost = round_money(to_non_negative_decimal(data.get('line_cost')))
    line_sell = round_money(to_non_negative_decimal(data.get('line_sell')))
    return LineItem(
        key=key,
        area=to_non_negative_decimal(data.get('area_sqm')),
        marker=(data.get('marker') or '').strip(),
        description=(data.get('description') or '').strip() or 'Custom Item',
        cost_price=round_money(to_non_negative_decimal(data.get('cost_price'))),
        sell_price=round_money(to_non_negative_decimal(data.get('sell_price'))),
        line_cost=line_cost,
        line_sell=line_sell,
        margin_percent=round_percent(pricing_service.margin_percent(line_cost, line_sell)),
    )


def draft_from_payload(payload: Dict[str, Any], session: Session, config,
                       quote: Optional[Quote] = None) -> QuoteDraft:
    """
    Build a priced QuoteDraft from submitted JSON.

    Only raw inputs are read (product, area, marker, labour flag); computed
    figures sent by the client are ignored and re-derived here. Manual lines
    (no product, not labour) keep their entered cost and sell.
    """
    settings = settings_for(payload, config, quote)
    sections_data = payload.get('sections') or []
    if not isinstance(sections_data, list):
        raise ValidationError('sections must be a list', field='sections')

    product_ids = []
    for section_data in sections_data:
        for line_data in section_data.get('line_items') or []:
            if line_data.get('product_id') and not line_data.get('is_labour'):
                product_ids.append(_product_id(line_data['product_id']))

    products = load_catalog_products(session, product_ids)
    missing = set(product_ids) - set(products)
    if missing:
        raise ValidationError(
            f"Products not available for quoting: {', '.join(str(pid) for pid in sorted(missing))}",
            field='product_id',
        )

    section_type_ids = [_app_type_id(s.get('app_type_id')) for s in sections_data]
    app_type_ids = {type_id for type_id in section_type_ids if type_id}
    app_types = {}
    if app_type_ids:
        app_types = {
            at.id: at for at in
            session.query(ApplicationType).filter(ApplicationType.id.in_(app_type_ids)).all()
        }

    sections = []
    for s_index, section_data in enumerate(sections_data):
        app_type = app_types.get(section_type_ids[s_index])
        name = app_type.name if app_type else (section_data.get('custom_name') or '').strip()
        color = section_data.get('section_color') or (app_type.color_hex if app_type else None)

        items = []
        last_product_key = None
        for l_index, line_data in enumerate(section_data.get('line_items') or []):
            key = f's{s_index}-l{l_index}'
            if line_data.get('is_labour'):
                items.append(LineItem(
                    key=key,
                    area=to_non_negative_decimal(line_data.get('area_sqm')),
                    is_labour=True,
                    marker=(line_data.get('marker') or '').strip(),
                    description=(line_data.get('description') or '').strip() or f"Labour - {name or 'Section'}",
                    paired_with=last_product_key,
                ))
            elif line_data.get('product_id'):
                product = products[_product_id(line_data['product_id'])]
                items.append(LineItem(
                    key=key,
                    product=product,
                    area=to_non_negative_decimal(line_data.get('area_sqm')),
                    marker=(line_data.get('marker') or '').strip(),
                    description=product.description,
                ))
                last_product_key = key
            else:
                items.append(_manual_line(key, line_data))

        sections.append(Section(
            key=f's{s_index}',
            name=name,
            app_type_id=app_type.id if app_type else None,
            color=color or DEFAULT_SECTION_COLOR,
            line_items=tuple(items),
        ))

    return pricing_service.recalculate_quote(QuoteDraft(settings=settings, sections=tuple(sections)))


def select_product_in_draft(draft: QuoteDraft, section_index: int, line_index: int,
                            product_id: int, session: Session) -> QuoteDraft:
    """Select a product on one line of a draft, deriving its labour line."""
    try:
        section = draft.sections[section_index]
        line = section.line_items[line_index]
    except (IndexError, TypeError):
        raise ValidationError('Line item not found in draft', field='line_index')

    if line.is_labour:
        raise BusinessLogicError('A product cannot be selected on a labour line')

    product_id = _product_id(product_id)
    products = load_catalog_products(session, [product_id])
    product = products.get(product_id)
    if product is None:
        raise ValidationError(f'Product {product_id} is not available for quoting', field='product_id')

    updated = pricing_service.select_product(section, line.key, product, draft.settings)
    sections = list(draft.sections)
    sections[section_index] = updated
    return QuoteDraft(settings=draft.settings, sections=tuple(sections))


def _line_to_dict(item: LineItem) -> Dict[str, Any]:
    return {
        'key': item.key,
        'product_id': item.product.id if item.product else None,
        'sku': item.product.sku if item.product else ('LABOUR' if item.is_labour else None),
        'marker': item.marker,
        'description': item.description,
        'area_sqm': float(item.area),
        'is_labour': item.is_labour,
        'is_manual': item.is_manual,
        'paired_with': item.paired_with,
        'cost_price': float(item.cost_price),
        'sell_price': float(item.sell_price),
        'packs_required': item.packs_required,
        'line_cost': float(item.line_cost),
        'line_sell': float(item.line_sell),
        'margin_percent': float(item.margin_percent),
    }


def totals_to_dict(totals: pricing_service.QuoteTotals) -> Dict[str, float]:
    return {
        'total_cost_ex_gst': float(totals.total_cost_ex_tax),
        'total_sell_ex_gst': float(totals.total_sell_ex_tax),
        'gross_profit': float(totals.gross_profit),
        'gross_profit_percent': float(totals.gross_profit_percent),
        'gst_amount': float(totals.tax_amount),
        'total_inc_gst': float(totals.total_inc_tax),
    }


def draft_to_dict(draft: QuoteDraft) -> Dict[str, Any]:
    settings = draft.settings
    return {
        'pricing_tier': settings.pricing_tier,
        'markup_percent': float(settings.markup_percent),
        'effective_markup_percent': float(pricing_service.resolve_markup(settings)),
        'waste_percent': float(settings.waste_percent),
        'labour_rate': float(settings.labour_rate),
        'sections': [
            {
                'key': section.key,
                'app_type_id': section.app_type_id,
                'custom_name': section.name,
                'section_color': section.color,
                'line_items': [_line_to_dict(item) for item in section.line_items],
            }
            for section in draft.sections
        ],
        'totals': totals_to_dict(draft.totals),
    }


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

def generate_quote_number(session: Session) -> str:
    """Generate a unique quote number: Q-YYYYMMDD-NNNN."""
    prefix = f"Q-{datetime.now().strftime('%Y%m%d')}-"
    count = (
        session.query(func.count(func.distinct(Quote.quote_number)))
        .filter(Quote.quote_number.like(f'{prefix}%'))
        .scalar()
    ) or 0
    sequence = count + 1
    while session.query(Quote.id).filter(Quote.quote_number == f'{prefix}{sequence:04d}').first():
        sequence += 1
    return f'{prefix}{sequence:04d}'


def _parse_date(value, field_name: str) -> Optional[date]:
    if value in (None, ''):
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(f'{field_name} must be a date (YYYY-MM-DD)', field=field_name)


def _store_draft(quote: Quote, draft: QuoteDraft) -> None:
    """Write settings, sections, line items and totals onto the quote."""
    settings = draft.settings
    quote.pricing_tier = settings.pricing_tier
    quote.markup_percent = to_decimal(settings.markup_percent)
    quote.waste_percent = to_decimal(settings.waste_percent)
    quote.labour_rate = to_decimal(settings.labour_rate)

    quote.sections.clear()
    for s_index, section in enumerate(draft.sections):
        quote_section = QuoteSection(
            app_type_id=section.app_type_id,
            custom_name=section.name or None,
            section_color=section.color,
            sort_order=s_index,
        )
        for l_index, item in enumerate(section.line_items):
            quote_section.line_items.append(QuoteLineItem(
                product_id=item.product.id if item.product else None,
                marker=item.marker or None,
                description=item.description or ('Labour' if item.is_labour else 'Custom Item'),
                area_sqm=item.area,
                is_labour=item.is_labour,
                cost_price=item.cost_price,
                sell_price=item.sell_price,
                packs_required=item.packs_required,
                line_cost=item.line_cost,
                line_sell=item.line_sell,
                margin_percent=item.margin_percent,
                sort_order=l_index,
            ))
        quote.sections.append(quote_section)

    totals = draft.totals
    quote.total_cost_ex_gst = totals.total_cost_ex_tax
    quote.total_sell_ex_gst = totals.total_sell_ex_tax
    quote.gst_amount = totals.tax_amount
    quote.total_inc_gst = totals.total_inc_tax
    quote.gross_profit = totals.gross_profit
    quote.gross_profit_percent = totals.gross_profit_percent


def _apply_header(quote: Quote, payload: Dict[str, Any], session: Session) -> None:
    """Validate and copy header fields present in the payload."""
    if 'client_id' in payload or quote.client_id is None:
        client_id = payload.get('client_id')
        if not client_id:
            raise ValidationError('Please select a client', field='client_id')
        if not session.query(Client.id).filter(Client.id == client_id).first():
            raise NotFoundError(f'Client {client_id} not found')
        quote.client_id = client_id

    if 'site_address' in payload or not quote.site_address:
        site_address = (payload.get('site_address') or '').strip()
        if not site_address:
            raise ValidationError('Please enter a site address', field='site_address')
        quote.site_address = site_address

    if payload.get('opportunity_id'):
        opportunity = session.query(Opportunity).filter(Opportunity.id == payload['opportunity_id']).first()
        if not opportunity:
            raise NotFoundError(f"Opportunity {payload['opportunity_id']} not found")
        quote.opportunity = opportunity

    for name in ('city', 'postcode', 'job_type', 'reference', 'notes'):
        if name in payload:
            setattr(quote, name, str(payload[name] or '').strip() or None)

    for name in ('quote_date', 'valid_until'):
        if name in payload:
            setattr(quote, name, _parse_date(payload[name], name))


def create_quote(payload: Dict[str, Any], session: Session, config) -> Quote:
    """Price and persist a new draft quote in one transaction."""
    quote_number = (payload.get('quote_number') or '').strip()
    if quote_number and session.query(Quote.id).filter(Quote.quote_number == quote_number).first():
        raise ConflictError(f'Quote number {quote_number} is already in use')

    try:
        quote = Quote(
            quote_number=quote_number or generate_quote_number(session),
            version_number=0,
            is_draft=True,
            is_current=True,
            status=QuoteStatus.DRAFT.value,
            quote_date=date.today(),
            valid_until=date.today() + timedelta(days=config.get('QUOTE_VALID_DAYS', 30)),
        )
        _apply_header(quote, payload, session)

        draft = draft_from_payload(payload, session, config)
        _store_draft(quote, draft)

        if quote.opportunity is not None:
            mark_quoted(quote.opportunity, quote.total_inc_gst)

        session.add(quote)
        session.commit()
        logger.info(f"[QUOTE] {quote.quote_number} saved: total inc GST {quote.total_inc_gst}")
        return quote
    except Exception:
        session.rollback()
        raise


def list_quotes(session: Session, status: str = '', search: str = '',
                client_id: Optional[int] = None, include_superseded: bool = False) -> List[Quote]:
    """Quotes, most recent first; superseded versions are hidden by default."""
    query = session.query(Quote)

    if not include_superseded:
        query = query.filter(Quote.is_current.is_(True))
    if status:
        query = query.filter(Quote.status == status)
    if client_id:
        query = query.filter(Quote.client_id == client_id)

    search = (search or '').strip()
    if search:
        pattern = f'%{search.lower()}%'
        query = query.outerjoin(Client, Quote.client_id == Client.id).filter(
            or_(
                func.lower(Quote.quote_number).like(pattern),
                func.lower(Quote.reference).like(pattern),
                func.lower(Quote.site_address).like(pattern),
                func.lower(Client.first_name).like(pattern),
                func.lower(Client.last_name).like(pattern),
            )
        )

    return query.order_by(Quote.created_at.desc(), Quote.id.desc()).all()


def get_quote(session: Session, quote_id: int) -> Quote:
    quote = session.query(Quote).filter(Quote.id == quote_id).first()
    if not quote:
        raise NotFoundError(f'Quote {quote_id} not found')
    return quote


def update_quote(quote_id: int, payload: Dict[str, Any], session: Session, config) -> Quote:
    """Re-price an editable quote, replacing its sections when supplied."""
    quote = get_quote(session, quote_id)
    if not quote.is_editable:
        raise BusinessLogicError(f'Quote {quote.quote_number} is {quote.status} and can no longer be edited')
    if not quote.is_draft:
        raise BusinessLogicError('Final versions cannot be edited; create a revision instead')

    try:
        _apply_header(quote, payload, session)
        if 'status' in payload:
            status = payload['status']
            if status not in (QuoteStatus.DRAFT.value, QuoteStatus.SENT.value):
                raise ValidationError('Status can only be set to Draft or Sent here', field='status')
            quote.status = status

        if 'sections' not in payload:
            payload = dict(payload, sections=_stored_sections_payload(quote))
        draft = draft_from_payload(payload, session, config, quote=quote)
        _store_draft(quote, draft)

        if quote.opportunity is not None:
            mark_quoted(quote.opportunity, quote.total_inc_gst)

        session.commit()
        return quote
    except Exception:
        session.rollback()
        raise


def _stored_sections_payload(quote: Quote) -> List[Dict[str, Any]]:
    """Raw inputs of the stored sections, for re-pricing after a settings change."""
    return [
        {
            'app_type_id': section.app_type_id,
            'custom_name': section.custom_name,
            'section_color': section.section_color,
            'line_items': [
                {
                    'product_id': line.product_id,
                    'marker': line.marker,
                    'description': line.description,
                    'area_sqm': line.area_sqm,
                    'is_labour': line.is_labour,
                    'cost_price': line.cost_price,
                    'sell_price': line.sell_price,
                    'line_cost': line.line_cost,
                    'line_sell': line.line_sell,
                }
                for line in section.line_items
            ],
        }
        for section in quote.sections
    ]


def finalize_quote(quote_id: int, session: Session) -> Quote:
    """
    Turn a draft into the next final version of its quote number.

    Drafts are version 0. The first final is version 1, later finals
    increment, and earlier finals of the same number stop being current.
    """
    quote = get_quote(session, quote_id)
    if not quote.is_draft:
        raise BusinessLogicError(f'Quote {quote.quote_number} v{quote.version_number} is already final')
    if not quote.sections:
        raise BusinessLogicError('Cannot finalize a quote without sections')

    try:
        latest = (
            session.query(func.max(Quote.version_number))
            .filter(Quote.quote_number == quote.quote_number, Quote.is_draft.is_(False))
            .scalar()
        ) or 0

        now = datetime.now()
        previous = session.query(Quote).filter(
            Quote.quote_number == quote.quote_number,
            Quote.is_draft.is_(False),
            Quote.is_current.is_(True),
            Quote.id != quote.id,
        ).all()
        for old in previous:
            old.is_current = False
            old.superseded_at = now

        quote.version_number = latest + 1
        quote.is_draft = False
        quote.is_current = True
        session.commit()
        logger.info(f"[QUOTE] {quote.quote_number} finalized as version {quote.version_number}")
        return quote
    except Exception:
        session.rollback()
        raise


def revise_quote(quote_id: int, session: Session) -> Quote:
    """Copy a final quote into a new draft under the same quote number."""
    source = get_quote(session, quote_id)
    if source.is_draft:
        raise BusinessLogicError('Only final versions can be revised')
    if not source.is_editable:
        raise BusinessLogicError(f'Quote {source.quote_number} is {source.status} and cannot be revised')

    try:
        revision = Quote(
            quote_number=source.quote_number,
            version_number=0,
            is_draft=True,
            is_current=True,
            status=QuoteStatus.DRAFT.value,
            reference=source.reference,
            client_id=source.client_id,
            opportunity_id=source.opportunity_id,
            site_address=source.site_address,
            city=source.city,
            postcode=source.postcode,
            job_type=source.job_type,
            quote_date=date.today(),
            valid_until=source.valid_until,
            notes=source.notes,
            pricing_tier=source.pricing_tier,
            markup_percent=source.markup_percent,
            waste_percent=source.waste_percent,
            labour_rate=source.labour_rate,
            total_cost_ex_gst=source.total_cost_ex_gst,
            total_sell_ex_gst=source.total_sell_ex_gst,
            gst_amount=source.gst_amount,
            total_inc_gst=source.total_inc_gst,
            gross_profit=source.gross_profit,
            gross_profit_percent=source.gross_profit_percent,
        )
        for section in source.sections:
            copy = QuoteSection(
                app_type_id=section.app_type_id,
                custom_name=section.custom_name,
                section_color=section.section_color,
                sort_order=section.sort_order,
            )
            for line in section.line_items:
                copy.line_items.append(QuoteLineItem(
                    product_id=line.product_id, marker=line.marker, description=line.description,
                    area_sqm=line.area_sqm, is_labour=line.is_labour,
                    cost_price=line.cost_price, sell_price=line.sell_price,
                    packs_required=line.packs_required, line_cost=line.line_cost,
                    line_sell=line.line_sell, margin_percent=line.margin_percent,
                    sort_order=line.sort_order,
                ))
            revision.sections.append(copy)

        session.add(revision)
        session.commit()
        return revision
    except Exception:
        session.rollback()
        raise


def accept_quote(quote_id: int, session: Session) -> Quote:
    """Accept a quote; its opportunity (if any) is marked WON."""
    quote = get_quote(session, quote_id)

    if quote.status == QuoteStatus.ACCEPTED.value:
        raise BusinessLogicError('Quote has already been accepted')
    if not quote.is_current:
        raise BusinessLogicError(f'Quote {quote.quote_number} v{quote.version_number} has been superseded')
    if not quote.is_editable:
        raise BusinessLogicError(f'Quote {quote.quote_number} is {quote.status} and cannot be accepted')
    if quote.is_expired:
        raise BusinessLogicError('Quote has expired')

    try:
        quote.status = QuoteStatus.ACCEPTED.value
        quote.accepted_date = datetime.now()
        if quote.opportunity is not None:
            mark_won(quote.opportunity, quote.total_inc_gst)
        session.commit()
        logger.info(f"[QUOTE] {quote.quote_number} accepted")
        return quote
    except Exception:
        session.rollback()
        raise


def quote_to_dict(quote: Quote, include_sections: bool = True) -> Dict[str, Any]:
    data = {
        'id': quote.id,
        'quote_number': quote.quote_number,
        'version_number': quote.version_number,
        'is_draft': bool(quote.is_draft),
        'is_current': bool(quote.is_current),
        'status': quote.status,
        'reference': quote.reference,
        'client_id': quote.client_id,
        'client_name': quote.client.full_name if quote.client else None,
        'opportunity_id': quote.opportunity_id,
        'site_address': quote.site_address,
        'city': quote.city,
        'postcode': quote.postcode,
        'job_type': quote.job_type,
        'quote_date': quote.quote_date.isoformat() if quote.quote_date else None,
        'valid_until': quote.valid_until.isoformat() if quote.valid_until else None,
        'accepted_date': quote.accepted_date.isoformat() if quote.accepted_date else None,
        'is_expired': quote.is_expired,
        'notes': quote.notes,
        'pricing_tier': quote.pricing_tier,
        'markup_percent': float(quote.markup_percent),
        'waste_percent': float(quote.waste_percent),
        'labour_rate': float(quote.labour_rate),
        'totals': {
            'total_cost_ex_gst': float(quote.total_cost_ex_gst),
            'total_sell_ex_gst': float(quote.total_sell_ex_gst),
            'gross_profit': float(quote.gross_profit),
            'gross_profit_percent': float(quote.gross_profit_percent),
            'gst_amount': float(quote.gst_amount),
            'total_inc_gst': float(quote.total_inc_gst),
        },
    }
    if include_sections:
        data['sections'] = [
            {
                'id': section.id,
                'app_type_id': section.app_type_id,
                'name': section.display_name,
                'custom_name': section.custom_name,
                'section_color': section.section_color,
                'line_items': [
                    {
                        'id': line.id,
                        'product_id': line.product_id,
                        'marker': line.marker,
                        'description': line.description,
                        'area_sqm': float(line.area_sqm),
                        'is_labour': bool(line.is_labour),
                        'cost_price': float(line.cost_price),
                        'sell_price': float(line.sell_price),
                        'packs_required': line.packs_required,
                        'line_cost': float(line.line_cost),
                        'line_sell': float(line.line_sell),
                        'margin_percent': float(line.margin_percent),
                    }
                    for line in section.line_items
                ],
            }
            for section in quote.sections
        ]
    return data


# ---------------------------------------------------------------------------
# PDF
# ---------------------------------------------------------------------------

def _header_color(section_color: Optional[str]):
    # White sections would hide the white header text
    if not section_color or section_color.lower() in ('#ffffff', '#fff'):
        return colors.HexColor('#0066CC')
    try:
        return colors.HexColor(section_color)
    except ValueError:
        return colors.HexColor('#0066CC')


def _render_quote_pdf(quote: Quote, business_info: Dict[str, Any]) -> BytesIO:
    """Render a stored quote (sections, lines and totals) to PDF."""
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=0.6*inch,
        leftMargin=0.6*inch,
        topMargin=0.75*inch,
        bottomMargin=0.75*inch
    )

    elements = []
    styles = getSampleStyleSheet()

    title_style = ParagraphStyle(
        'QuoteTitle',
        parent=styles['Heading1'],
        fontSize=24,
        textColor=colors.HexColor('#0066CC'),
        spaceAfter=12,
        alignment=TA_CENTER,
        fontName='Helvetica-Bold'
    )

    header_style = ParagraphStyle(
        'QuoteHeader',
        parent=styles['Normal'],
        fontSize=10,
        textColor=colors.HexColor('#7F8C8D'),
        alignment=TA_CENTER,
        spaceAfter=6
    )

    section_style = ParagraphStyle(
        'SectionTitle',
        parent=styles['Heading3'],
        fontSize=12,
        textColor=colors.HexColor('#2C3E50'),
        spaceBefore=10,
        spaceAfter=4
    )

    # 1. Title and business header
    elements.append(Paragraph("QUOTATION", title_style))

    if business_info.get('name'):
        elements.append(Paragraph(f"<b>{escape(business_info['name'])}</b>", header_style))
    if business_info.get('address'):
        elements.append(Paragraph(escape(business_info['address']), header_style))

    contact_parts = []
    if business_info.get('phone'):
        contact_parts.append(f"Ph: {escape(business_info['phone'])}")
    if business_info.get('email'):
        contact_parts.append(f"Email: {escape(business_info['email'])}")
    if contact_parts:
        elements.append(Paragraph(" | ".join(contact_parts), header_style))

    elements.append(Spacer(1, 0.3*inch))

    # 2. Quote metadata
    number = quote.quote_number if quote.is_draft else f"{quote.quote_number} v{quote.version_number}"
    info_data = [
        ['Quote No:', number],
        ['Date:', date_nz(quote.quote_date)],
    ]
    if quote.valid_until:
        info_data.append(['Valid Until:', date_nz(quote.valid_until)])
    if quote.client:
        info_data.append(['Client:', quote.client.full_name])
    site = ', '.join(part for part in (quote.site_address, quote.city, quote.postcode) if part)
    info_data.append(['Site:', site])
    if quote.reference:
        info_data.append(['Reference:', quote.reference])

    info_table = Table(info_data, colWidths=[1.5*inch, 4.5*inch])
    info_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (0, -1), 'RIGHT'),
        ('ALIGN', (1, 0), (1, -1), 'LEFT'),
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('TEXTCOLOR', (0, 0), (-1, -1), colors.HexColor('#34495E')),
    ]))
    elements.append(info_table)
    elements.append(Spacer(1, 0.2*inch))

    # 3. One table per section
    for section in quote.sections:
        elements.append(Paragraph(section.display_name, section_style))
        table_data = [['Marker', 'Description', 'Area', 'Packs', 'Amount']]
        for line in section.line_items:
            table_data.append([
                line.marker or '',
                line.description,
                area(line.area_sqm),
                '' if line.is_labour else str(line.packs_required),
                money(line.line_sell),
            ])

        items_table = Table(table_data, colWidths=[0.8*inch, 3.4*inch, 0.9*inch, 0.6*inch, 1.1*inch])
        items_table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), _header_color(section.section_color)),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('BOTTOMPADDING', (0, 0), (-1, 0), 8),
            ('ALIGN', (2, 1), (3, -1), 'CENTER'),
            ('ALIGN', (4, 1), (4, -1), 'RIGHT'),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#BDC3C7')),
            ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#ECF0F1')]),
        ]))
        elements.append(items_table)

    elements.append(Spacer(1, 0.3*inch))

    # 4. Totals
    tax_rate = business_info.get('gst_rate')
    if tax_rate is None:
        tax_rate = Decimal('0.15')
    totals_table = Table([
        ['Subtotal (ex GST):', money(quote.total_sell_ex_gst)],
        [f"GST ({percent(to_decimal(tax_rate) * 100, 0)}):", money(quote.gst_amount)],
        ['TOTAL (inc GST):', money(quote.total_inc_gst)],
    ], colWidths=[5.3*inch, 1.5*inch])
    totals_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (-1, -1), 'RIGHT'),
        ('FONTNAME', (0, 0), (-1, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, 1), 10),
        ('FONTSIZE', (0, 2), (-1, 2), 13),
        ('TEXTCOLOR', (0, 2), (-1, 2), colors.HexColor('#0066CC')),
        ('LINEABOVE', (0, 2), (-1, 2), 1.5, colors.HexColor('#0066CC')),
    ]))
    elements.append(totals_table)
    elements.append(Spacer(1, 0.4*inch))

    footer_style = ParagraphStyle('Footer', parent=styles['Normal'], fontSize=9, textColor=colors.HexColor('#95A5A6'), alignment=TA_CENTER)
    valid_days = business_info.get('valid_days', 30)
    footer_text = f"<b>IMPORTANT:</b><br/>Prices are valid for {valid_days} days from the quote date.<br/><i>This is not a tax invoice.</i>"
    if quote.notes:
        footer_text += f"<br/><br/><b>Notes:</b> {escape(quote.notes)}"
    elements.append(Paragraph(footer_text, footer_style))

    doc.build(elements)
    buffer.seek(0)
    return buffer


def generate_quote_pdf_from_db(quote_id: int, session: Session, business_info: Dict[str, Any]) -> BytesIO:
    """Generate PDF from a persisted quote in DB."""
    quote = get_quote(session, quote_id)
    return _render_quote_pdf(quote, business_info)
