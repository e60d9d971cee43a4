"""
Paystack API client.

Provides async methods for:
- Initializing and verifying split transactions
- Creating/updating seller subaccounts
- Creating transfer recipients and initiating transfers
- Refunding transactions
"""

import hashlib
import hmac
from dataclasses import dataclass, field
from typing import Optional

import httpx
from fastapi import HTTPException, status
from libs.common.config import get_settings
from libs.common.logging import get_logger

logger = get_logger(__name__)

settings = get_settings()

ALREADY_REFUNDED_MARKERS = ("already refunded", "fully reversed")

# Any other refund status (pending, processing, needs-attention) is unconfirmed
REFUND_DONE_STATES = {"processed", "already_refunded"}


@dataclass
class InitializedTransaction:
    authorization_url: str
    access_code: str
    reference: str


@dataclass
class Transaction:
    """Verified transaction state."""

    reference: str
    status: str  # success, failed, abandoned, reversed, ongoing, pending
    amount: int  # in cents
    currency: str
    paid_at: Optional[str] = None
    raw: dict = field(default_factory=dict)


@dataclass
class Subaccount:
    subaccount_code: str
    business_name: str
    settlement_bank: str
    account_number: str
    percentage_charge: float
    active: bool
    raw: dict = field(default_factory=dict)


@dataclass
class TransferRecipient:
    recipient_code: str
    name: str
    account_number: str
    bank_code: str


@dataclass
class TransferResult:
    transfer_code: str
    reference: str
    status: str  # pending, success, failed, otp
    amount: int  # in cents
    currency: str


@dataclass
class RefundResult:
    status: str  # pending, processing, needs-attention, processed, already_refunded
    amount: Optional[int]
    refund_id: Optional[str] = None

    @property
    def already_refunded(self) -> bool:
        return self.status == "already_refunded"

    @property
    def completed(self) -> bool:
        """True once the money has actually gone back to the customer."""
        return self.status in REFUND_DONE_STATES


class PaystackError(Exception):
    """Base exception for Paystack API errors."""

    def __init__(
        self, message: str, status_code: int = None, response_data: dict = None
    ):
        self.message = message
        self.status_code = status_code
        self.response_data = response_data or {}
        super().__init__(message)


def paystack_enabled() -> bool:
    key = (settings.PAYSTACK_SECRET_KEY or "").strip()
    return bool(key) and not key.startswith("your-")


def verify_webhook_signature(raw_body: bytes, signature: str) -> bool:
    """Paystack signs the raw body with HMAC-SHA512 keyed by the secret key."""
    if not paystack_enabled() or not signature:
        return False
    secret = (settings.PAYSTACK_SECRET_KEY or "").encode("utf-8")
    digest = hmac.new(secret, raw_body, hashlib.sha512).hexdigest()
    return hmac.compare_digest(digest, signature)


class PaystackClient:
    """Async client for the Paystack REST API."""

    def __init__(
        self,
        secret_key: str = None,
        base_url: str = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.secret_key = secret_key or settings.PAYSTACK_SECRET_KEY
        if not self.secret_key:
            raise ValueError("PAYSTACK_SECRET_KEY is required")
        self.base_url = (base_url or settings.PAYSTACK_API_BASE_URL).rstrip("/")
        self._transport = transport
        self._headers = {
            "Authorization": f"Bearer {self.secret_key}",
            "Content-Type": "application/json",
        }

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: dict = None,
        json_data: dict = None,
    ) -> dict:
        """Make an async request to the Paystack API."""
        url = f"{self.base_url}{endpoint}"

        async with httpx.AsyncClient(timeout=30.0, transport=self._transport) as client:
            try:
                response = await client.request(
                    method=method,
                    url=url,
                    headers=self._headers,
                    params=params,
                    json=json_data,
                )
            except httpx.HTTPError as e:
                raise PaystackError(message=f"Paystack unreachable: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {"message": response.text}

        if not response.is_success:
            logger.error(
                f"Paystack API error: {response.status_code} - {data}",
                extra={"extra_fields": {"endpoint": endpoint}},
            )
            raise PaystackError(
                message=data.get("message", "Unknown Paystack error"),
                status_code=response.status_code,
                response_data=data,
            )

        if not data.get("status"):
            raise PaystackError(
                message=data.get("message", "Paystack request failed"),
                status_code=response.status_code,
                response_data=data,
            )

        return data

    # =========================================================================
    # Transactions
    # =========================================================================

    async def initialize_transaction(
        self,
        *,
        email: str,
        amount_cents: int,
        reference: str,
        currency: str = "ZAR",
        callback_url: Optional[str] = None,
        metadata: Optional[dict] = None,
        subaccount: Optional[str] = None,
        transaction_charge: Optional[int] = None,
        bearer: Optional[str] = None,
    ) -> InitializedTransaction:
        """
        Start a hosted checkout.

        With ``subaccount`` the payment is split: the main account keeps
        ``transaction_charge`` (flat, in cents) and the subaccount settles the
        rest. ``bearer`` decides who pays Paystack's processing fee.
        """
        payload = {
            "email": email,
            "amount": amount_cents,
            "currency": currency,
            "reference": reference,
            "metadata": metadata or {},
        }
        if callback_url:
            payload["callback_url"] = callback_url
        if subaccount:
            payload["subaccount"] = subaccount
            if transaction_charge is not None:
                payload["transaction_charge"] = transaction_charge
            if bearer:
                payload["bearer"] = bearer

        data = await self._request("POST", "/transaction/initialize", json_data=payload)
        body = data.get("data") or {}
        return InitializedTransaction(
            authorization_url=body.get("authorization_url", ""),
            access_code=body.get("access_code", ""),
            reference=body.get("reference", reference),
        )

    async def verify_transaction(self, reference: str) -> Transaction:
        data = await self._request("GET", f"/transaction/verify/{reference}")
        body = data.get("data") or {}
        return Transaction(
            reference=body.get("reference", reference),
            status=str(body.get("status") or "").lower(),
            amount=int(body.get("amount") or 0),
            currency=body.get("currency", "ZAR"),
            paid_at=body.get("paid_at") or body.get("paidAt"),
            raw=body,
        )

    # =========================================================================
    # Subaccounts
    # =========================================================================

    @staticmethod
    def _subaccount_from(body: dict) -> Subaccount:
        return Subaccount(
            subaccount_code=body.get("subaccount_code", ""),
            business_name=body.get("business_name", ""),
            settlement_bank=str(body.get("settlement_bank", "")),
            account_number=str(body.get("account_number", "")),
            percentage_charge=float(body.get("percentage_charge") or 0),
            active=bool(body.get("active", True)),
            raw=body,
        )

    async def create_subaccount(
        self,
        *,
        business_name: str,
        settlement_bank: str,
        account_number: str,
        percentage_charge: float,
        primary_contact_email: Optional[str] = None,
        primary_contact_name: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> Subaccount:
        data = await self._request(
            "POST",
            "/subaccount",
            json_data={
                "business_name": business_name,
                "settlement_bank": settlement_bank,
                "account_number": account_number,
                "percentage_charge": percentage_charge,
                "primary_contact_email": primary_contact_email,
                "primary_contact_name": primary_contact_name,
                "metadata": metadata or {},
            },
        )
        return self._subaccount_from(data.get("data") or {})

    async def update_subaccount(self, subaccount_code: str, **fields) -> Subaccount:
        payload = {key: value for key, value in fields.items() if value is not None}
        data = await self._request(
            "PUT", f"/subaccount/{subaccount_code}", json_data=payload
        )
        return self._subaccount_from(data.get("data") or {})

    # =========================================================================
    # Transfers
    # =========================================================================

    async def create_transfer_recipient(
        self,
        *,
        account_number: str,
        bank_code: str,
        name: str,
        currency: str = "ZAR",
    ) -> TransferRecipient:
        """South African bank accounts use recipient type ``basa``."""
        data = await self._request(
            "POST",
            "/transferrecipient",
            json_data={
                "type": "basa",
                "name": name,
                "account_number": account_number,
                "bank_code": bank_code,
                "currency": currency,
                "description": f"Seller payouts: {name}",
            },
        )
        recipient = data.get("data") or {}
        details = recipient.get("details") or {}
        return TransferRecipient(
            recipient_code=recipient.get("recipient_code", ""),
            name=recipient.get("name", name),
            account_number=details.get("account_number", account_number),
            bank_code=details.get("bank_code", bank_code),
        )

    async def initiate_transfer(
        self,
        *,
        recipient_code: str,
        amount_cents: int,
        reason: str,
        reference: str,
        currency: str = "ZAR",
    ) -> TransferResult:
        """Outcome arrives later via transfer.success / transfer.failed webhooks."""
        data = await self._request(
            "POST",
            "/transfer",
            json_data={
                "source": "balance",
                "recipient": recipient_code,
                "amount": amount_cents,
                "currency": currency,
                "reason": reason,
                "reference": reference,
            },
        )
        transfer = data.get("data") or {}
        return TransferResult(
            transfer_code=transfer.get("transfer_code", ""),
            reference=transfer.get("reference", reference),
            status=transfer.get("status", "pending"),
            amount=int(transfer.get("amount") or amount_cents),
            currency=transfer.get("currency", currency),
        )

    # =========================================================================
    # Refunds
    # =========================================================================

    async def create_refund(
        self,
        *,
        transaction_reference: str,
        amount_cents: Optional[int] = None,
        currency: str = "ZAR",
        customer_note: Optional[str] = None,
        merchant_note: Optional[str] = None,
    ) -> RefundResult:
        """
        Refund a transaction (in full when ``amount_cents`` is omitted).

        A transaction that Paystack reports as already refunded is treated as
        success so retries stay idempotent.
        """
        payload = {"transaction": transaction_reference, "currency": currency}
        if amount_cents is not None:
            payload["amount"] = amount_cents
        if customer_note:
            payload["customer_note"] = customer_note
        if merchant_note:
            payload["merchant_note"] = merchant_note

        try:
            data = await self._request("POST", "/refund", json_data=payload)
        except PaystackError as e:
            message = (e.message or "").lower()
            if any(marker in message for marker in ALREADY_REFUNDED_MARKERS):
                logger.info(f"Transaction {transaction_reference} already refunded")
                return RefundResult(status="already_refunded", amount=amount_cents)
            raise

        refund = data.get("data") or {}
        refund_id = refund.get("id")
        return RefundResult(
            status=str(refund.get("status") or "pending"),
            amount=refund.get("amount", amount_cents),
            refund_id=str(refund_id) if refund_id is not None else None,
        )


def get_paystack_client() -> PaystackClient:
    """FastAPI dependency; 503 when Paystack is not configured."""
    if not paystack_enabled():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Paystack is not configured.",
        )
    return PaystackClient()


def get_optional_paystack_client() -> Optional[PaystackClient]:
    """Dependency for flows that only sometimes need Paystack."""
    if not paystack_enabled():
        return None
    return PaystackClient()
