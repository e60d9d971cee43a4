"""Split-payment arithmetic. All amounts are integer ZAR cents."""

from dataclasses import asdict, dataclass

from libs.common.currency import percent_of


@dataclass(frozen=True)
class SplitBreakdown:
    book_price_cents: int
    delivery_fee_cents: int
    platform_fee_cents: int
    seller_amount_cents: int
    total_cents: int
    # Flat amount Paystack leaves in the main account on a split charge
    platform_charge_cents: int

    def as_dict(self) -> dict:
        return asdict(self)


def compute_split(
    book_price_cents: int, delivery_fee_cents: int = 0, fee_percent: float = 10.0
) -> SplitBreakdown:
    """
    The platform keeps ``fee_percent`` of the book price plus the delivery fee
    (it pays the courier); the seller receives the rest of the book price.
    """
    if book_price_cents < 0 or delivery_fee_cents < 0:
        raise ValueError("Amounts must not be negative")
    if not 0 <= fee_percent <= 100:
        raise ValueError("fee_percent must be between 0 and 100")

    platform_fee = percent_of(book_price_cents, fee_percent)
    return SplitBreakdown(
        book_price_cents=book_price_cents,
        delivery_fee_cents=delivery_fee_cents,
        platform_fee_cents=platform_fee,
        seller_amount_cents=book_price_cents - platform_fee,
        total_cents=book_price_cents + delivery_fee_cents,
        platform_charge_cents=platform_fee + delivery_fee_cents,
    )
