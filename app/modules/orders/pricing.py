"""Exact decimal pricing of order lines.

Products and sums run in a local decimal context wide enough to hold every
digit of the result, so no rounding ever takes place.
"""

from dataclasses import dataclass
from decimal import Decimal, localcontext
from typing import Iterable, Sequence

from app.modules.articles.schemas import Variant
from app.modules.base_prices.schemas import BasePrice
from app.modules.orders.schemas import Details


def exact_mul(a: Decimal, b: Decimal) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = len(a.as_tuple().digits) + len(b.as_tuple().digits)
        return a * b


def exact_add(a: Decimal, b: Decimal) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = max(a.adjusted(), b.adjusted()) - min(a.as_tuple().exponent, b.as_tuple().exponent) + 2
        return a + b


@dataclass(frozen=True)
class Calculation:
    price: Decimal
    details: Details


def calculate(label: str, price: Decimal, labels: Sequence[str], multiplier: Decimal) -> Calculation:
    """Prices one unit as base price times variant multiplier."""
    return Calculation(
        price=exact_mul(price, multiplier),
        details=Details(
            base_price=BasePrice(label=label, price=str(price)),
            variant=Variant(labels=list(labels), multiplier=str(multiplier)),
        ),
    )


def line_total(price: Decimal, amount: int) -> Decimal:
    return exact_mul(price, Decimal(amount))


def order_sum(lines: Iterable[tuple[Decimal, int]]) -> Decimal:
    """Sum of price * amount over (price, amount) lines."""
    total = Decimal(0)
    for price, amount in lines:
        total = exact_add(total, line_total(price, amount))
    return total
