"""
Pricing Engine

Computes per-line and per-order monetary totals from catalog data.

All arithmetic is done with `decimal.Decimal` and quantized to cents with
ROUND_HALF_UP. Tax is rounded per line, never on the aggregate, so an order's
totals can always be rebuilt from its stored line items.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.exceptions import InvalidQuantity, ProductNotFound, ValidationError
from orderdesk.models.product import Product
from orderdesk.services.org_access_service import OrgContext

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

PRICING_AUTO = "auto"
PRICING_MANUAL = "manual"


def to_money(value: Any) -> Decimal:
    """Convert to Decimal and round to cents (half up)."""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        # str() keeps floats coming back from SQLite at their printed precision
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_rate(value: Any) -> Decimal:
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class LineRequest:
    product_id: int
    quantity: int
    unit_price: Decimal | None = None


@dataclass(frozen=True)
class LineAmounts:
    subtotal: Decimal
    tax_amount: Decimal
    total: Decimal


@dataclass(frozen=True)
class PricedLine:
    product_id: int
    sku: str
    name: str
    quantity: int
    unit_price: Decimal
    tax_rate: Decimal
    subtotal: Decimal
    tax_amount: Decimal
    total: Decimal
    pricing_mode: str = PRICING_AUTO


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal = ZERO
    tax_total: Decimal = ZERO
    grand_total: Decimal = ZERO


@dataclass
class PricingResult:
    lines: list[PricedLine] = field(default_factory=list)
    totals: OrderTotals = field(default_factory=OrderTotals)


def validate_quantity(quantity: Any, product_id: Any = None) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidQuantity(quantity, product_id)
    return quantity


def compute_line_amounts(quantity: int, unit_price: Any, tax_rate: Any) -> LineAmounts:
    """
    Line subtotal = quantity x unit price; line tax = subtotal x rate / 100,
    rounded on the line.
    """
    price = to_money(unit_price)
    rate = to_rate(tax_rate)
    subtotal = to_money(price * quantity)
    tax_amount = to_money(subtotal * rate / HUNDRED)
    return LineAmounts(subtotal=subtotal, tax_amount=tax_amount, total=subtotal + tax_amount)


def _override_price(value: Any) -> Decimal:
    """An override is stored as given, so it must already be a whole number of cents."""
    price = value if isinstance(value, Decimal) else Decimal(str(value))
    if not price.is_finite() or price.normalize().as_tuple().exponent < -2:
        raise ValidationError("Unit price override must have at most 2 decimal places", field="unit_price")
    if price < ZERO:
        raise ValidationError("Unit price override must not be negative", field="unit_price")
    return price.quantize(CENT)


def price_line(product: Product, quantity: int, override_price: Any = None) -> PricedLine:
    """Price one line against a loaded catalog product."""
    validate_quantity(quantity, product.id)

    if override_price is None:
        unit_price = to_money(product.unit_price)
        mode = PRICING_AUTO
    else:
        unit_price = _override_price(override_price)
        mode = PRICING_MANUAL

    tax_rate = to_rate(product.tax_rate)
    amounts = compute_line_amounts(quantity, unit_price, tax_rate)
    return PricedLine(
        product_id=product.id,
        sku=product.sku,
        name=product.name,
        quantity=quantity,
        unit_price=unit_price,
        tax_rate=tax_rate,
        subtotal=amounts.subtotal,
        tax_amount=amounts.tax_amount,
        total=amounts.total,
        pricing_mode=mode,
    )


def totals_from_lines(lines: Iterable[Any]) -> OrderTotals:
    """
    Recompute order totals from line data.

    Accepts anything with `quantity`, `unit_price` and `tax_rate` attributes,
    so persisted OrderItem rows and PricedLine values give identical results.
    """
    subtotal = ZERO
    tax_total = ZERO
    for line in lines:
        amounts = compute_line_amounts(line.quantity, line.unit_price, line.tax_rate)
        subtotal += amounts.subtotal
        tax_total += amounts.tax_amount
    return OrderTotals(subtotal=subtotal, tax_total=tax_total, grand_total=subtotal + tax_total)


async def load_active_products(ctx: OrgContext, product_ids: Iterable[int], db: AsyncSession) -> dict[int, Product]:
    """Load active products of the context organization keyed by id."""
    ids = sorted(set(product_ids))
    if not ids:
        return {}
    result = await db.execute(
        select(Product).where(
            Product.organization_id == ctx.organization_id,
            Product.id.in_(ids),
            Product.is_active.is_(True),
        )
    )
    return {product.id: product for product in result.scalars().all()}


async def price_order(ctx: OrgContext, lines: Sequence[LineRequest], db: AsyncSession) -> PricingResult:
    """
    Price an ordered list of line requests for one organization.

    Raises:
        ValidationError: no lines were supplied
        InvalidQuantity: a quantity is not a positive integer
        ProductNotFound: a product is missing, inactive or owned by another organization
    """
    if not lines:
        raise ValidationError("Order must contain at least one item", field="items")

    for line in lines:
        validate_quantity(line.quantity, line.product_id)

    products = await load_active_products(ctx, (line.product_id for line in lines), db)

    priced: list[PricedLine] = []
    for line in lines:
        product = products.get(line.product_id)
        if product is None:
            logger.warning(
                "Pricing rejected: product_id=%s not found in org_id=%s", line.product_id, ctx.organization_id
            )
            raise ProductNotFound(line.product_id)
        priced.append(price_line(product, line.quantity, line.unit_price))

    return PricingResult(lines=priced, totals=totals_from_lines(priced))
