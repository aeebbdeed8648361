"""Sale commission rules.

The seller pays a percentage commission on the final price; the buyer pays
no marketplace fee. All amounts are integer minor units (cents).
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal


@dataclass(frozen=True)
class SaleFees:
    sale_price: int
    commission_rate: Decimal
    seller_commission: int
    seller_payout: int
    buyer_fee: int
    buyer_total: int


def calculate_sale_fees(sale_price: int, commission_percent: Decimal) -> SaleFees:
    """Split a sale price into commission and seller payout."""
    if sale_price < 0:
        raise ValueError("sale_price must be non-negative")

    rate = Decimal(str(commission_percent))
    commission = int(
        (Decimal(sale_price) * rate / Decimal("100")).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    )

    return SaleFees(
        sale_price=sale_price,
        commission_rate=rate,
        seller_commission=commission,
        seller_payout=sale_price - commission,
        buyer_fee=0,
        buyer_total=sale_price,
    )
