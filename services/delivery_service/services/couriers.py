"""Live courier API clients.

Each client is enabled by its API key. When a client is missing or its API
fails, quote aggregation keeps the estimated quotes for that provider.
"""

from typing import Optional

import httpx
from libs.common.config import get_settings
from libs.common.logging import get_logger
from services.delivery_service.schemas import Address, DeliveryQuote, PackageDetails
from services.delivery_service.services.quotes import generate_quotes, round2

logger = get_logger(__name__)


class CourierError(Exception):
    """A courier API call failed or returned something unusable."""

    def __init__(self, provider: str, message: str, status_code: int = None):
        self.provider = provider
        self.message = message
        self.status_code = status_code
        super().__init__(f"{provider}: {message}")


def _address_payload(address: Address) -> dict:
    return {
        "street_address": address.street or "",
        "local_area": address.suburb or "",
        "city": address.city,
        "zone": address.province,
        "code": address.postal_code or "",
        "country": address.country,
    }


class CourierGuyClient:
    """The Courier Guy (ShipLogic) rates and booking API."""

    provider = "courier-guy"

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._headers = {"Authorization": f"Bearer {api_key}"}

    async def _post(self, path: str, payload: dict) -> dict:
        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self._transport
        ) as client:
            try:
                response = await client.post(
                    f"{self.base_url}{path}", json=payload, headers=self._headers
                )
            except httpx.HTTPError as e:
                raise CourierError(self.provider, f"unreachable: {e}") from e
        if not response.is_success:
            raise CourierError(self.provider, response.text, response.status_code)
        try:
            data = response.json()
        except ValueError as e:
            raise CourierError(self.provider, "response was not JSON") from e
        if not isinstance(data, dict):
            raise CourierError(self.provider, "unexpected response body")
        return data

    @staticmethod
    def _parcel(package: Optional[PackageDetails]) -> dict:
        package = package or PackageDetails()
        return {
            "submitted_weight_kg": package.weight or 1.0,
            "submitted_length_cm": package.length or 30,
            "submitted_width_cm": package.width or 25,
            "submitted_height_cm": package.height or 8,
        }

    async def get_rates(
        self,
        pickup: Address,
        delivery: Address,
        package: Optional[PackageDetails] = None,
    ) -> list[DeliveryQuote]:
        data = await self._post(
            "/rates",
            {
                "collection_address": _address_payload(pickup),
                "delivery_address": _address_payload(delivery),
                "parcels": [self._parcel(package)],
                "declared_value": (package.value if package else None) or 0,
            },
        )
        quotes = []
        try:
            for rate in data.get("rates") or []:
                level = rate.get("service_level") or {}
                code = level.get("code")
                if not code or rate.get("rate") is None:
                    continue
                quotes.append(
                    DeliveryQuote(
                        provider=self.provider,
                        service=level.get("name") or code,
                        service_code=f"cg_{code.lower()}",
                        price=round2(float(rate["rate"])),
                        estimated_days=level.get("delivery_days") or "2-3",
                        insurance_included=True,
                        max_value=5000,
                        live=True,
                    )
                )
        except (ValueError, TypeError, AttributeError) as e:
            raise CourierError(self.provider, f"malformed rates: {e}") from e
        if not quotes:
            raise CourierError(self.provider, "no rates returned")
        return quotes

    async def book_shipment(
        self,
        *,
        reference: str,
        service_code: str,
        pickup: Address,
        delivery: Address,
        package: Optional[PackageDetails] = None,
    ) -> dict:
        """Returns ``{"shipment_id", "tracking_number"}``."""
        level = service_code.removeprefix("cg_").upper()
        data = await self._post(
            "/shipments",
            {
                "collection_address": _address_payload(pickup),
                "delivery_address": _address_payload(delivery),
                "parcels": [self._parcel(package)],
                "service_level_code": level,
                "customer_reference": reference,
            },
        )
        tracking = data.get("short_tracking_reference") or data.get("tracking_reference")
        if not isinstance(tracking, str) or not tracking:
            raise CourierError(self.provider, "booking returned no tracking reference")
        return {"shipment_id": str(data.get("id", "")), "tracking_number": tracking}


class FastwayClient:
    """Fastway parcel pricing lookup (rates only)."""

    provider = "fastway"

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def get_rates(
        self,
        pickup: Address,
        delivery: Address,
        package: Optional[PackageDetails] = None,
    ) -> list[DeliveryQuote]:
        if not pickup.postal_code or not delivery.postal_code:
            raise CourierError(self.provider, "postal codes are required")

        params = {
            "api_key": self.api_key,
            "PickupPostcode": pickup.postal_code,
            "DestPostcode": delivery.postal_code,
            "WeightInKg": (package.weight if package else None) or 1.0,
        }
        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self._transport
        ) as client:
            try:
                response = await client.get(
                    f"{self.base_url}/psc/lookup", params=params
                )
            except httpx.HTTPError as e:
                raise CourierError(self.provider, f"unreachable: {e}") from e
        if not response.is_success:
            raise CourierError(self.provider, response.text, response.status_code)

        quotes = []
        try:
            result = response.json().get("result") or {}
            days = str(result.get("delivery_timeframe_days") or "3")
            estimated = days if "-" in days else f"{days}-{days}"
            for service in result.get("services") or []:
                price = service.get("totalprice_normal")
                name = service.get("name")
                if price is None or not name:
                    continue
                quotes.append(
                    DeliveryQuote(
                        provider=self.provider,
                        service=name,
                        service_code=f"fw_{name.lower().replace(' ', '_')}",
                        price=round2(float(price)),
                        estimated_days=estimated,
                        max_value=3000,
                        live=True,
                    )
                )
        except (ValueError, TypeError, AttributeError) as e:
            raise CourierError(self.provider, f"malformed rates: {e}") from e
        if not quotes:
            raise CourierError(self.provider, "no services returned")
        return quotes


def get_live_couriers() -> list:
    """Clients for every courier with configured credentials."""
    settings = get_settings()
    clients = []
    if settings.COURIER_GUY_API_KEY:
        clients.append(
            CourierGuyClient(
                settings.COURIER_GUY_API_KEY,
                settings.COURIER_GUY_API_URL,
                settings.COURIER_TIMEOUT_SECONDS,
            )
        )
    if settings.FASTWAY_API_KEY:
        clients.append(
            FastwayClient(
                settings.FASTWAY_API_KEY,
                settings.FASTWAY_API_URL,
                settings.COURIER_TIMEOUT_SECONDS,
            )
        )
    return clients


async def aggregate_quotes(
    pickup: Address,
    delivery: Address,
    package: Optional[PackageDetails] = None,
    couriers: Optional[list] = None,
) -> list[DeliveryQuote]:
    """
    Live rates where available, estimated rates otherwise, cheapest first.
    """
    quotes = generate_quotes(pickup, delivery, package)
    couriers = get_live_couriers() if couriers is None else couriers

    for courier in couriers:
        try:
            live = await courier.get_rates(pickup, delivery, package)
        except CourierError as e:
            logger.warning(
                f"Live rates unavailable from {e.provider}, using estimates: {e.message}",
                extra={"extra_fields": {"provider": e.provider}},
            )
            continue
        quotes = [q for q in quotes if q.provider != courier.provider] + live

    return sorted(quotes, key=lambda q: q.price)
