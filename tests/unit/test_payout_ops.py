"""Unit tests for seller payouts in split and transfer settlement modes."""

import pytest
from services.payments_service.models import (
    PayoutMethod,
    PayoutStatus,
    SettlementMode,
)
from services.payments_service.services import payout_ops
from tests.factories import (
    SellerPayoutFactory,
    SellerProfileFactory,
    create_order_with_payment,
)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_split_mode_payout_recorded_as_paid(db_session, fake_paystack):
    _, _, order = await create_order_with_payment(db_session)

    payout = await payout_ops.release_seller_funds(db_session, order, fake_paystack)

    assert payout.method == PayoutMethod.SUBACCOUNT_SPLIT
    assert payout.status == PayoutStatus.PAID
    assert payout.amount_cents == order.seller_amount_cents
    assert fake_paystack.calls_to("initiate_transfer") == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_release_is_idempotent_per_order(db_session, fake_paystack):
    _, _, order = await create_order_with_payment(db_session)

    first = await payout_ops.release_seller_funds(db_session, order, fake_paystack)
    await db_session.commit()
    second = await payout_ops.release_seller_funds(db_session, order, fake_paystack)

    assert first.id == second.id


@pytest.mark.asyncio
@pytest.mark.unit
async def test_transfer_mode_initiates_paystack_transfer(db_session, fake_paystack):
    _, payment, order = await create_order_with_payment(db_session)
    payment.settlement_mode = SettlementMode.TRANSFER
    db_session.add(
        SellerProfileFactory.create(
            auth_id=order.seller_auth_id, recipient_code="RCP_seller"
        )
    )
    await db_session.commit()

    payout = await payout_ops.release_seller_funds(db_session, order, fake_paystack)

    transfer = fake_paystack.calls_to("initiate_transfer")[0]
    assert transfer["recipient_code"] == "RCP_seller"
    assert transfer["amount_cents"] == order.seller_amount_cents
    assert transfer["reference"] == f"PAYOUT-{order.order_number}"
    assert payout.status == PayoutStatus.PROCESSING
    assert payout.attempts == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_transfer_without_recipient_fails(db_session, fake_paystack):
    _, payment, order = await create_order_with_payment(db_session)
    payment.settlement_mode = SettlementMode.TRANSFER
    await db_session.commit()

    payout = await payout_ops.release_seller_funds(db_session, order, fake_paystack)

    assert payout.status == PayoutStatus.FAILED
    assert "recipient" in payout.failure_reason


@pytest.mark.asyncio
@pytest.mark.unit
async def test_failed_transfer_is_retried(db_session, fake_paystack):
    _, payment, order = await create_order_with_payment(db_session)
    payment.settlement_mode = SettlementMode.TRANSFER
    db_session.add(
        SellerProfileFactory.create(
            auth_id=order.seller_auth_id, recipient_code="RCP_seller"
        )
    )
    await db_session.commit()
    fake_paystack.fail_transfer = True
    payout = await payout_ops.release_seller_funds(db_session, order, fake_paystack)
    await db_session.commit()
    assert payout.status == PayoutStatus.FAILED

    fake_paystack.fail_transfer = False
    retried = await payout_ops.retry_stalled_payouts(db_session, fake_paystack)

    assert retried == 1
    await db_session.refresh(payout)
    assert payout.status == PayoutStatus.PROCESSING
    assert payout.attempts == 2


@pytest.mark.asyncio
@pytest.mark.unit
async def test_transfer_webhooks_settle_payout(db_session):
    payout = SellerPayoutFactory.create()
    db_session.add(payout)
    await db_session.commit()

    await payout_ops.apply_transfer_event(
        db_session,
        "transfer.success",
        {"reference": payout.transfer_reference, "transfer_code": "TRF_done"},
    )

    await db_session.refresh(payout)
    assert payout.status == PayoutStatus.PAID
    assert payout.transfer_code == "TRF_done"
    assert payout.paid_at is not None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_transfer_reversed_marks_failed(db_session):
    payout = SellerPayoutFactory.create()
    db_session.add(payout)
    await db_session.commit()

    await payout_ops.apply_transfer_event(
        db_session, "transfer.reversed", {"reference": payout.transfer_reference}
    )

    await db_session.refresh(payout)
    assert payout.status == PayoutStatus.FAILED
    assert payout.failure_reason == "transfer reversed"
