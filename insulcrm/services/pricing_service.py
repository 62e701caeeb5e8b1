"""
Quote pricing calculator.

Converts raw line-item inputs (product, area, waste, markup tier) into billable
quantities and aggregates a quote's sections into financial totals.

Everything in this module is pure: functions take the current draft and
settings and return new objects, they never touch the database or the request.
Degenerate numeric input produces a defined number instead of an exception,
because the values arrive from live form input.
"""
import math
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Dict, Optional, Tuple

from insulcrm.utils.number_format import (
    to_decimal,
    to_non_negative_decimal,
    round_money,
    round_percent,
)

CUSTOM_TIER = 'Custom'

DEFAULT_TIER_MARKUPS = {
    'Retail': Decimal('60'),
    'Trade': Decimal('40'),
    'VIP': Decimal('25'),
}

ZERO = Decimal('0')
ONE = Decimal('1')
HUNDRED = Decimal('100')


@dataclass(frozen=True)
class CatalogProduct:
    """Read-only snapshot of a catalog product used for pricing."""
    id: Optional[int]
    sku: str = ''
    description: str = ''
    cost_price: Decimal = ZERO
    pack_price: Decimal = ZERO
    pack_size: Decimal = ONE
    waste_percent: Decimal = ZERO
    is_labour: bool = False
    is_active: bool = True


@dataclass(frozen=True)
class PricingSettings:
    """Quote-global pricing inputs."""
    pricing_tier: str = 'Retail'
    markup_percent: Decimal = Decimal('60')
    waste_percent: Decimal = Decimal('10')
    labour_rate: Decimal = Decimal('3.00')
    labour_cost_rate: Decimal = Decimal('1.50')
    tax_rate: Decimal = Decimal('0.15')
    tier_markups: Dict[str, Decimal] = field(default_factory=lambda: dict(DEFAULT_TIER_MARKUPS))
    fallback_markup: Decimal = Decimal('60')


@dataclass(frozen=True)
class LineResult:
    packs_required: int
    line_cost: Decimal
    line_sell: Decimal
    margin_percent: Decimal


@dataclass(frozen=True)
class LineItem:
    """
    A quote line. Product lines reference a CatalogProduct; labour lines are
    synthetic (no product) and remember the key of the product line they were
    derived from in `paired_with`; manual lines have neither.
    """
    key: str
    product: Optional[CatalogProduct] = None
    area: Decimal = ZERO
    is_labour: bool = False
    marker: str = ''
    description: str = ''
    cost_price: Decimal = ZERO
    sell_price: Decimal = ZERO
    packs_required: int = 0
    line_cost: Decimal = ZERO
    line_sell: Decimal = ZERO
    margin_percent: Decimal = ZERO
    paired_with: Optional[str] = None

    @property
    def is_manual(self) -> bool:
        return self.product is None and not self.is_labour


@dataclass(frozen=True)
class Section:
    key: str
    name: str = ''
    app_type_id: Optional[int] = None
    color: str = '#ffffff'
    line_items: Tuple[LineItem, ...] = ()

    @property
    def display_name(self) -> str:
        return self.name or 'Section'


@dataclass(frozen=True)
class QuoteTotals:
    total_cost_ex_tax: Decimal
    total_sell_ex_tax: Decimal
    gross_profit: Decimal
    gross_profit_percent: Decimal
    tax_amount: Decimal
    total_inc_tax: Decimal


@dataclass(frozen=True)
class QuoteDraft:
    settings: PricingSettings
    sections: Tuple[Section, ...] = ()

    @property
    def totals(self) -> QuoteTotals:
        return calculate_totals(self.sections, self.settings.tax_rate)


def resolve_markup(settings: PricingSettings) -> Decimal:
    """Markup percent for the quote's tier; unknown tiers use the fallback."""
    if settings.pricing_tier == CUSTOM_TIER:
        return to_decimal(settings.markup_percent)
    return to_decimal(settings.tier_markups.get(settings.pricing_tier, settings.fallback_markup))


def margin_percent(cost: Decimal, sell: Decimal) -> Decimal:
    """Gross profit as a percentage of sell price (0 when nothing is sold)."""
    if sell > 0:
        return (sell - cost) / sell * HUNDRED
    return ZERO


def calculate_line(product: CatalogProduct, area, settings: PricingSettings) -> LineResult:
    """
    Price one product line.

    Packs always round up, so a partial pack still costs a whole pack.
    Intermediate values are kept exact and rounded once at the end.
    """
    area_value = to_non_negative_decimal(area)
    waste = to_decimal(settings.waste_percent)
    pack_size = to_decimal(product.pack_size)
    if pack_size <= 0:
        pack_size = ONE

    area_with_waste = area_value * (ONE + waste / HUNDRED)
    packs_required = max(math.ceil(area_with_waste / pack_size), 0)

    line_cost = packs_required * to_decimal(product.pack_price)
    line_sell = line_cost * (ONE + resolve_markup(settings) / HUNDRED)

    return LineResult(
        packs_required=packs_required,
        line_cost=round_money(line_cost),
        line_sell=round_money(line_sell),
        margin_percent=round_percent(margin_percent(line_cost, line_sell)),
    )


def _price_labour(item: LineItem, settings: PricingSettings) -> LineItem:
    area_value = to_non_negative_decimal(item.area)
    labour_cost_rate = to_decimal(settings.labour_cost_rate)
    labour_rate = to_decimal(settings.labour_rate)
    labour_cost = area_value * labour_cost_rate
    labour_sell = area_value * labour_rate

    return replace(
        item,
        area=area_value,
        cost_price=round_money(labour_cost_rate),
        sell_price=round_money(labour_rate),
        packs_required=0,
        line_cost=round_money(labour_cost),
        line_sell=round_money(labour_sell),
        margin_percent=round_percent(margin_percent(labour_cost, labour_sell)),
    )


def recalculate_line_item(item: LineItem, settings: PricingSettings) -> LineItem:
    """Re-derive a line's computed fields from the current settings."""
    if item.is_labour:
        return _price_labour(item, settings)

    if item.product is None:
        return item

    product = item.product
    result = calculate_line(product, item.area, settings)
    unit_sell = to_decimal(product.cost_price) * (ONE + resolve_markup(settings) / HUNDRED)

    return replace(
        item,
        area=to_non_negative_decimal(item.area),
        description=item.description or product.description,
        cost_price=round_money(to_decimal(product.cost_price)),
        sell_price=round_money(unit_sell),
        packs_required=result.packs_required,
        line_cost=result.line_cost,
        line_sell=result.line_sell,
        margin_percent=result.margin_percent,
    )


def labour_key_for(line_key: str) -> str:
    return f"{line_key}-labour"


def derive_labour_line(product_line: LineItem, settings: PricingSettings,
                       section_name: str = 'Section') -> Optional[LineItem]:
    """
    Build the installation labour line paired with a product line.

    Returns None for labour lines, lines without a product, and lines whose
    area is zero or unset: no zero-value labour rows are created.
    """
    if product_line.is_labour or product_line.product is None:
        return None

    area_value = to_non_negative_decimal(product_line.area)
    if not area_value:
        return None

    labour = LineItem(
        key=labour_key_for(product_line.key),
        area=area_value,
        is_labour=True,
        description=f"Labour - {section_name or 'Section'}",
        paired_with=product_line.key,
    )
    return _price_labour(labour, settings)


def _line_index(items, line_key: str) -> int:
    for index, item in enumerate(items):
        if item.key == line_key:
            return index
    return -1


def select_product(section: Section, line_key: str, product: CatalogProduct,
                   settings: PricingSettings) -> Section:
    """
    Put `product` on a line, re-price it and insert its labour line right after.

    An existing labour line already paired with the line is replaced rather
    than duplicated. Labour lines cannot take a product; the section is
    returned unchanged in that case, as it is when the key is unknown.
    """
    index = _line_index(section.line_items, line_key)
    if index < 0:
        return section

    current = section.line_items[index]
    if current.is_labour:
        return section

    priced = recalculate_line_item(
        replace(current, product=product, description=product.description),
        settings,
    )

    items = [item for item in section.line_items if item.paired_with != line_key]
    index = _line_index(items, line_key)
    items[index] = priced

    labour = derive_labour_line(priced, settings, section.display_name)
    if labour is not None:
        items.insert(index + 1, labour)

    return replace(section, line_items=tuple(items))


def update_line_area(section: Section, line_key: str, area, settings: PricingSettings) -> Section:
    """Change one line's area and recompute only that line."""
    index = _line_index(section.line_items, line_key)
    if index < 0:
        return section

    items = list(section.line_items)
    items[index] = recalculate_line_item(
        replace(items[index], area=to_non_negative_decimal(area)),
        settings,
    )
    return replace(section, line_items=tuple(items))


def recalculate_section(section: Section, settings: PricingSettings) -> Section:
    return replace(
        section,
        line_items=tuple(recalculate_line_item(item, settings) for item in section.line_items),
    )


def recalculate_quote(draft: QuoteDraft) -> QuoteDraft:
    """Recompute every line of every section from the draft's settings."""
    return replace(
        draft,
        sections=tuple(recalculate_section(s, draft.settings) for s in draft.sections),
    )


def calculate_totals(sections, tax_rate=Decimal('0.15')) -> QuoteTotals:
    """
    Aggregate line values (product and labour lines alike) into quote totals.
    """
    total_cost = ZERO
    total_sell = ZERO
    for section in sections:
        for item in section.line_items:
            total_cost += to_decimal(item.line_cost)
            total_sell += to_decimal(item.line_sell)

    gross_profit = total_sell - total_cost
    gross_profit_pct = gross_profit / total_sell * HUNDRED if total_sell > 0 else ZERO
    tax_amount = total_sell * to_decimal(tax_rate)

    return QuoteTotals(
        total_cost_ex_tax=round_money(total_cost),
        total_sell_ex_tax=round_money(total_sell),
        gross_profit=round_money(gross_profit),
        gross_profit_percent=round_percent(gross_profit_pct),
        tax_amount=round_money(tax_amount),
        total_inc_tax=round_money(total_sell + tax_amount),
    )


def settings_from_config(config, **overrides) -> PricingSettings:
    """Build PricingSettings from app config defaults plus per-quote values."""
    values = {
        'pricing_tier': config.get('DEFAULT_PRICING_TIER', 'Retail'),
        'markup_percent': config.get('DEFAULT_MARKUP_PERCENT', Decimal('60')),
        'waste_percent': config.get('DEFAULT_WASTE_PERCENT', Decimal('10')),
        'labour_rate': config.get('DEFAULT_LABOUR_RATE', Decimal('3.00')),
        'labour_cost_rate': config.get('LABOUR_COST_RATE', Decimal('1.50')),
        'tax_rate': config.get('GST_RATE', Decimal('0.15')),
        'tier_markups': dict(config.get('PRICING_TIER_MARKUPS', DEFAULT_TIER_MARKUPS)),
    }
    for name, value in overrides.items():
        if value is None:
            continue
        if name == 'pricing_tier':
            values[name] = str(value)
        else:
            values[name] = to_decimal(value)
    return PricingSettings(**values)
