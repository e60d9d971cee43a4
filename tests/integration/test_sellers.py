"""Integration tests for sellers_service endpoints."""

import pytest
from tests.factories import CAPE_TOWN


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_supported_banks(sellers_client):
    response = await sellers_client.get("/sellers/banks")

    assert response.status_code == 200
    banks = {b["name"]: b["code"] for b in response.json()}
    assert banks["Capitec Bank"] == "470010"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_onboarding_flow(sellers_client, seller, acting_as, fake_paystack):
    acting_as.set(seller)

    readiness = await sellers_client.get("/sellers/me/readiness")
    assert readiness.json()["can_sell"] is False

    banking = await sellers_client.put(
        "/sellers/me/banking",
        json={
            "business_name": "Thandi's Textbooks",
            "bank_name": "Capitec Bank",
            "account_number": "1234567890",
            "account_holder": "Thandi Seller",
        },
    )
    assert banking.status_code == 200, banking.text
    assert banking.json()["subaccount_code"] == "ACCT_test123"
    assert banking.json()["account_number"] == "******7890"

    pickup = await sellers_client.put("/sellers/me/pickup-address", json=CAPE_TOWN)
    assert pickup.status_code == 200
    assert pickup.json()["pickup_address"]["city"] == "Cape Town"

    readiness = await sellers_client.get("/sellers/me/readiness")
    assert readiness.json() == {
        "can_sell": True,
        "has_banking": True,
        "has_pickup_address": True,
        "missing": [],
    }


@pytest.mark.asyncio
@pytest.mark.integration
async def test_invalid_account_number_rejected(sellers_client, seller, acting_as):
    acting_as.set(seller)

    response = await sellers_client.put(
        "/sellers/me/banking",
        json={
            "business_name": "Thandi's Textbooks",
            "bank_name": "Capitec Bank",
            "account_number": "12ab",
            "account_holder": "Thandi Seller",
        },
    )

    assert response.status_code == 422


@pytest.mark.asyncio
@pytest.mark.integration
async def test_profile_created_on_first_visit(sellers_client, seller, acting_as):
    acting_as.set(seller)

    response = await sellers_client.get("/sellers/me")

    assert response.status_code == 200
    data = response.json()
    assert data["auth_id"] == seller.user_id
    assert data["full_name"] == "Thandi Seller"
    assert data["banking"]["subaccount_active"] is False
