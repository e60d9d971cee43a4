"""Courier quote engine.

Rates are estimated from a province-to-province distance table when a
courier's live API is not available. Prices are in rands.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from services.delivery_service.schemas import Address, DeliveryQuote, PackageDetails

DEFAULT_DISTANCE_KM = 800

PROVINCE_DISTANCES_KM: dict[tuple[str, str], int] = {
    ("Western Cape", "Western Cape"): 50,
    ("Gauteng", "Gauteng"): 40,
    ("KwaZulu-Natal", "KwaZulu-Natal"): 60,
    ("Western Cape", "Gauteng"): 1400,
    ("Western Cape", "KwaZulu-Natal"): 1600,
    ("Gauteng", "KwaZulu-Natal"): 600,
}

BASE_PRICE = 45.0
RATE_PER_KM_MIN = 0.08
RATE_PER_KM_MAX = 0.25
PRICE_PER_KG = 15.0
EXPRESS_MULTIPLIER = 1.4
ECONOMY_MULTIPLIER = 0.75
EXPRESS_MAX_DISTANCE_KM = 500
SAME_DAY_MIN_PRICE = 60.0


def round2(value: float) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def estimate_distance_km(pickup: Address, delivery: Address) -> int:
    key = (pickup.province, delivery.province)
    return (
        PROVINCE_DISTANCES_KM.get(key)
        or PROVINCE_DISTANCES_KM.get((delivery.province, pickup.province))
        or DEFAULT_DISTANCE_KM
    )


def price_tiers(distance_km: float, weight_kg: float = 1.0) -> dict[str, float]:
    """Standard, express and economy prices for a route."""
    rate = max(RATE_PER_KM_MIN, min(RATE_PER_KM_MAX, (distance_km / 1000) * 0.08))
    weight_charge = max(1.0, weight_kg * PRICE_PER_KG)
    standard = round2(BASE_PRICE + distance_km * rate + weight_charge)
    return {
        "standard": standard,
        "express": round2(standard * EXPRESS_MULTIPLIER),
        "economy": round2(standard * ECONOMY_MULTIPLIER),
    }


def _eta(is_local: bool) -> dict[str, str]:
    return {
        "express": "1-2" if is_local else "2-3",
        "standard": "2-3" if is_local else "3-5",
        "economy": "3-5" if is_local else "5-7",
    }


def courier_guy_quotes(
    distance_km: int, pricing: dict[str, float], eta: dict[str, str]
) -> list[DeliveryQuote]:
    quotes = [
        DeliveryQuote(
            provider="courier-guy",
            service="Standard Delivery",
            service_code="cg_std",
            price=pricing["standard"],
            estimated_days=eta["standard"],
            insurance_included=True,
            max_value=5000,
        )
    ]
    if distance_km <= EXPRESS_MAX_DISTANCE_KM:
        quotes.append(
            DeliveryQuote(
                provider="courier-guy",
                service="Express Delivery",
                service_code="cg_exp",
                price=pricing["express"],
                estimated_days=eta["express"],
                insurance_included=True,
                max_value=5000,
            )
        )
    return quotes


def fastway_quotes(
    pricing: dict[str, float], eta: dict[str, str], same_province: bool
) -> list[DeliveryQuote]:
    quotes = [
        DeliveryQuote(
            provider="fastway",
            service="Parcel Connect",
            service_code="fw_std",
            price=round2(pricing["standard"] * 1.1),
            estimated_days=eta["standard"],
            max_value=3000,
        )
    ]
    if same_province:
        quotes.append(
            DeliveryQuote(
                provider="fastway",
                service="Local Delivery",
                service_code="fw_local",
                price=round2(pricing["economy"] * 1.2),
                estimated_days=eta["economy"],
                max_value=2000,
            )
        )
    return quotes


def generate_quotes(
    pickup: Address,
    delivery: Address,
    package: Optional[PackageDetails] = None,
) -> list[DeliveryQuote]:
    """All estimated quotes for a route, cheapest first."""
    distance = estimate_distance_km(pickup, delivery)
    weight = (package.weight if package else 0) or 1.0
    pricing = price_tiers(distance, weight)
    same_province = pickup.province == delivery.province
    eta = _eta(same_province)

    quotes = courier_guy_quotes(distance, pricing, eta)
    quotes += fastway_quotes(pricing, eta, same_province)
    quotes.append(
        DeliveryQuote(
            provider="postnet",
            service="PostNet Economy",
            service_code="pn_eco",
            price=pricing["economy"],
            estimated_days=eta["economy"],
            tracking_included=False,
            max_value=1000,
            restrictions=["No fragile items", "Max 5kg"],
        )
    )
    if pickup.city.lower() == delivery.city.lower():
        quotes.append(
            DeliveryQuote(
                provider="local-courier",
                service="Same Day Delivery",
                service_code="local_same",
                price=round2(max(pricing["economy"], SAME_DAY_MIN_PRICE)),
                estimated_days="0-1",
                max_value=2000,
                restrictions=["Same city only"],
            )
        )

    return sorted(quotes, key=lambda q: q.price)


def find_quote(
    quotes: list[DeliveryQuote], provider: str, service_code: str
) -> Optional[DeliveryQuote]:
    for quote in quotes:
        if quote.provider == provider and quote.service_code == service_code:
            return quote
    return None


def fastest_quote(quotes: list[DeliveryQuote]) -> Optional[DeliveryQuote]:
    """Lowest upper bound on delivery days, cheapest on ties."""
    if not quotes:
        return None

    def upper_days(quote: DeliveryQuote) -> int:
        return int(quote.estimated_days.split("-")[-1])

    return min(quotes, key=lambda q: (upper_days(q), q.price))
