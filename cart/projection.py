"""Read-only rendering of a cart for callers.

Prices come from the line snapshots. Product name and image are looked up
fresh on every render and are never stored on the line.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

import structlog

from .exceptions import ProductServiceUnavailable

logger = structlog.get_logger(__name__)

CENTS = Decimal('0.01')


@dataclass(frozen=True)
class RenderedLine:
    id: str
    product_id: str
    variant_id: Optional[str]
    product_name: Optional[str]
    product_image: Optional[str]
    quantity: int
    price: Decimal
    total: Decimal


@dataclass(frozen=True)
class RenderedCart:
    id: str
    user_id: Optional[str]
    session_key: Optional[str]
    lines: List[RenderedLine] = field(default_factory=list)
    total: Decimal = Decimal('0.00')

    @property
    def item_count(self):
        return sum(line.quantity for line in self.lines)


def _display_fields(product_service, product_ids):
    displays = {}
    for product_id in product_ids:
        try:
            product = product_service.get_product(product_id)
        except ProductServiceUnavailable as exc:
            logger.warning("Product display lookup failed", product_id=product_id, error=str(exc))
            product = None
        displays[product_id] = (product.name, product.image) if product else (None, None)
    return displays


def render_cart(cart, product_service, lines=None):
    if lines is None:
        lines = list(cart.items.all())

    displays = _display_fields(product_service, dict.fromkeys(item.product_id for item in lines))

    rendered = []
    for item in lines:
        name, image = displays[item.product_id]
        rendered.append(
            RenderedLine(
                id=str(item.id),
                product_id=item.product_id,
                variant_id=item.variant_id,
                product_name=name,
                product_image=image,
                quantity=item.quantity,
                price=item.price_at_addition.quantize(CENTS),
                total=item.total_price,
            )
        )

    return RenderedCart(
        id=str(cart.id),
        user_id=cart.user_id,
        session_key=cart.session_key,
        lines=rendered,
        total=sum((line.total for line in rendered), Decimal('0.00')).quantize(CENTS),
    )
