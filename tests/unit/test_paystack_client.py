"""Unit tests for the Paystack client against a mocked transport."""

import hashlib
import hmac
import json

import httpx
import pytest
from services.payments_service.paystack_client import (
    PaystackClient,
    PaystackError,
    verify_webhook_signature,
)


def _client(handler) -> PaystackClient:
    return PaystackClient(
        secret_key="sk_test_rebooked",
        base_url="https://paystack.test",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_initialize_split_transaction_payload():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "status": True,
                "data": {
                    "authorization_url": "https://checkout.paystack.com/abc",
                    "access_code": "abc",
                    "reference": "RB-1",
                },
            },
        )

    result = await _client(handler).initialize_transaction(
        email="buyer@test.com",
        amount_cents=51400,
        reference="RB-1",
        subaccount="ACCT_x",
        transaction_charge=10900,
        bearer="account",
    )

    assert seen["path"] == "/transaction/initialize"
    assert seen["auth"] == "Bearer sk_test_rebooked"
    assert seen["body"]["amount"] == 51400
    assert seen["body"]["currency"] == "ZAR"
    assert seen["body"]["subaccount"] == "ACCT_x"
    assert seen["body"]["transaction_charge"] == 10900
    assert seen["body"]["bearer"] == "account"
    assert result.access_code == "abc"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_initialize_without_subaccount_omits_split_fields():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"status": True, "data": {}})

    await _client(handler).initialize_transaction(
        email="buyer@test.com",
        amount_cents=1000,
        reference="RB-2",
        transaction_charge=100,
    )

    assert "subaccount" not in seen["body"]
    assert "transaction_charge" not in seen["body"]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_verify_transaction_parses_status_and_amount():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/transaction/verify/RB-3"
        return httpx.Response(
            200,
            json={
                "status": True,
                "data": {
                    "reference": "RB-3",
                    "status": "success",
                    "amount": 51400,
                    "currency": "ZAR",
                    "paid_at": "2025-03-01T10:00:00.000Z",
                },
            },
        )

    tx = await _client(handler).verify_transaction("RB-3")

    assert tx.status == "success"
    assert tx.amount == 51400
    assert tx.paid_at == "2025-03-01T10:00:00.000Z"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_http_error_raises_paystack_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"status": False, "message": "Invalid key"})

    with pytest.raises(PaystackError) as exc:
        await _client(handler).verify_transaction("RB-4")

    assert exc.value.status_code == 400
    assert exc.value.message == "Invalid key"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_status_false_raises_even_on_200():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": False, "message": "Nope"})

    with pytest.raises(PaystackError):
        await _client(handler).verify_transaction("RB-5")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_network_error_raises_paystack_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(PaystackError) as exc:
        await _client(handler).verify_transaction("RB-6")

    assert "unreachable" in exc.value.message


@pytest.mark.asyncio
@pytest.mark.unit
async def test_refund_already_refunded_is_success():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            400,
            json={"status": False, "message": "Transaction has been fully reversed"},
        )

    result = await _client(handler).create_refund(
        transaction_reference="RB-7", amount_cents=51400
    )

    assert result.already_refunded


@pytest.mark.asyncio
@pytest.mark.unit
async def test_refund_payload_and_result():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "status": True,
                "data": {"id": 55, "status": "pending", "amount": 51400},
            },
        )

    result = await _client(handler).create_refund(
        transaction_reference="RB-8",
        amount_cents=51400,
        customer_note="Seller declined",
    )

    assert seen["body"] == {
        "transaction": "RB-8",
        "currency": "ZAR",
        "amount": 51400,
        "customer_note": "Seller declined",
    }
    assert result.status == "pending"
    assert result.refund_id == "55"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_transfer_recipient_uses_basa_type():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "status": True,
                "data": {
                    "recipient_code": "RCP_1",
                    "name": "Thandi",
                    "details": {"account_number": "1234567890", "bank_code": "470010"},
                },
            },
        )

    recipient = await _client(handler).create_transfer_recipient(
        account_number="1234567890", bank_code="470010", name="Thandi"
    )

    assert seen["body"]["type"] == "basa"
    assert recipient.recipient_code == "RCP_1"


@pytest.mark.unit
def test_webhook_signature_verification():
    body = b'{"event":"charge.success"}'
    good = hmac.new(b"sk_test_rebooked", body, hashlib.sha512).hexdigest()

    assert verify_webhook_signature(body, good)
    assert not verify_webhook_signature(body, "0" * 128)


@pytest.mark.unit
def test_client_requires_secret_key(monkeypatch):
    from services.payments_service import paystack_client

    monkeypatch.setattr(paystack_client.settings, "PAYSTACK_SECRET_KEY", None)

    with pytest.raises(ValueError):
        PaystackClient()


@pytest.mark.unit
def test_webhook_signature_rejected_without_secret_key(monkeypatch):
    from services.payments_service import paystack_client

    monkeypatch.setattr(paystack_client.settings, "PAYSTACK_SECRET_KEY", "")
    body = b'{"event":"charge.success"}'
    forged = hmac.new(b"", body, hashlib.sha512).hexdigest()

    assert not verify_webhook_signature(body, forged)


@pytest.mark.unit
@pytest.mark.parametrize(
    "refund_status, completed",
    [
        ("processed", True),
        ("already_refunded", True),
        ("pending", False),
        ("processing", False),
        ("needs-attention", False),
    ],
)
def test_refund_result_completed_only_when_money_moved(refund_status, completed):
    from services.payments_service.paystack_client import RefundResult

    assert RefundResult(status=refund_status, amount=100).completed is completed
