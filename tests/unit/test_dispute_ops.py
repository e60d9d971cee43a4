"""Unit tests for opening and resolving order disputes."""

import pytest
from fastapi import HTTPException
from libs.auth.models import AuthUser
from services.books_service.models import BookStatus
from services.communications_service.models import Notification, NotificationType
from services.delivery_service.models import Shipment, ShipmentStatus
from services.orders_service.models import (
    CancellationReason,
    DisputeResolution,
    DisputeStatus,
    DisputeType,
    OrderStatus,
    RefundStatus,
)
from services.orders_service.schemas import OpenDisputeRequest, ResolveDisputeRequest
from services.orders_service.services import dispute_ops, order_ops
from services.payments_service.models import PaymentStatus, PayoutStatus
from services.payments_service.services import payout_ops
from sqlalchemy import select
from tests.factories import create_order_with_payment

ADMIN = AuthUser(
    user_id="admin-auth-1", email="admin@test.com", app_metadata={"role": "admin"}
)


def _user(auth_id: str) -> AuthUser:
    return AuthUser(user_id=auth_id, email=f"{auth_id}@test.com")


def _complaint(kind: DisputeType = DisputeType.ITEM_DAMAGED) -> OpenDisputeRequest:
    return OpenDisputeRequest(
        dispute_type=kind,
        description="The cover is torn and pages are missing.",
        evidence_urls=["https://img.test/cover.jpg"],
    )


async def _disputed_order(db, order_status=OrderStatus.DELIVERED):
    book, payment, order = await create_order_with_payment(db, status=order_status)
    dispute = await dispute_ops.open_dispute(
        db, order.id, _user(order.buyer_auth_id), _complaint()
    )
    return book, payment, order, dispute


# ---------------------------------------------------------------------------
# open_dispute
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_buyer_opens_dispute_and_holds_payout(db_session):
    _, _, order, dispute = await _disputed_order(db_session)

    assert dispute.status == DisputeStatus.OPEN
    assert dispute.opened_by_role == "buyer"
    assert dispute.evidence_urls == ["https://img.test/cover.jpg"]
    await db_session.refresh(order)
    assert order.dispute_hold is True

    notes = (
        await db_session.execute(
            select(Notification).where(
                Notification.user_auth_id == order.seller_auth_id
            )
        )
    ).scalars().all()
    assert [n.type for n in notes] == [NotificationType.DISPUTE_OPENED]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_seller_can_open_dispute(db_session):
    _, _, order = await create_order_with_payment(
        db_session, status=OrderStatus.COLLECTED
    )

    dispute = await dispute_ops.open_dispute(
        db_session,
        order.id,
        _user(order.seller_auth_id),
        _complaint(DisputeType.OTHER),
    )

    assert dispute.opened_by_role == "seller"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_dispute_before_commit_rejected(db_session):
    _, _, order = await create_order_with_payment(db_session)

    with pytest.raises(HTTPException) as exc:
        await dispute_ops.open_dispute(
            db_session, order.id, _user(order.buyer_auth_id), _complaint()
        )

    assert exc.value.status_code == 409


@pytest.mark.asyncio
@pytest.mark.unit
async def test_stranger_cannot_open_dispute(db_session):
    _, _, order = await create_order_with_payment(
        db_session, status=OrderStatus.DELIVERED
    )

    with pytest.raises(HTTPException) as exc:
        await dispute_ops.open_dispute(
            db_session, order.id, _user("someone-else"), _complaint()
        )

    assert exc.value.status_code == 403


@pytest.mark.asyncio
@pytest.mark.unit
async def test_only_one_open_dispute_per_order(db_session):
    _, _, order, _ = await _disputed_order(db_session)

    with pytest.raises(HTTPException) as exc:
        await dispute_ops.open_dispute(
            db_session, order.id, _user(order.seller_auth_id), _complaint()
        )

    assert exc.value.status_code == 409
    assert exc.value.detail == "An open dispute already exists for this order"


# ---------------------------------------------------------------------------
# resolve_dispute
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_refund_buyer_on_committed_order(db_session, fake_paystack):
    book, payment, order = await create_order_with_payment(db_session)
    await order_ops.commit_order(db_session, order.id, _user(order.seller_auth_id))
    dispute = await dispute_ops.open_dispute(
        db_session,
        order.id,
        _user(order.buyer_auth_id),
        _complaint(DisputeType.ITEM_NOT_RECEIVED),
    )

    resolved = await dispute_ops.resolve_dispute(
        db_session,
        dispute.id,
        ADMIN,
        ResolveDisputeRequest(resolution=DisputeResolution.REFUND_BUYER),
        fake_paystack,
    )

    assert resolved.status == DisputeStatus.RESOLVED
    assert resolved.refund_amount_cents == payment.total_cents
    assert resolved.payout_amount_cents is None
    refund = fake_paystack.calls_to("create_refund")[0]
    assert refund["amount_cents"] == payment.total_cents

    await db_session.refresh(order)
    assert order.status == OrderStatus.REFUNDED
    assert order.cancellation_reason == CancellationReason.DISPUTE_REFUND
    assert order.refund_status == RefundStatus.SUCCEEDED
    assert order.dispute_hold is False
    await db_session.refresh(payment)
    assert payment.status == PaymentStatus.REFUNDED
    await db_session.refresh(book)
    assert book.status == BookStatus.AVAILABLE
    shipment = (
        await db_session.execute(select(Shipment).where(Shipment.order_id == order.id))
    ).scalar_one()
    assert shipment.status == ShipmentStatus.CANCELLED
    assert await payout_ops.get_payout_for_order(db_session, order.id) is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_partial_refund_pays_seller_the_rest(db_session, fake_paystack):
    _, payment, order, dispute = await _disputed_order(db_session)

    resolved = await dispute_ops.resolve_dispute(
        db_session,
        dispute.id,
        ADMIN,
        ResolveDisputeRequest(
            resolution=DisputeResolution.PARTIAL_REFUND,
            amount_cents=20000,
            notes="Damaged but usable",
        ),
        fake_paystack,
    )

    assert fake_paystack.calls_to("create_refund")[0]["amount_cents"] == 20000
    assert resolved.refund_amount_cents == 20000
    assert resolved.payout_amount_cents == order.seller_amount_cents - 20000
    await db_session.refresh(payment)
    assert payment.status == PaymentStatus.PARTIALLY_REFUNDED
    assert payment.refunded_amount_cents == 20000
    await db_session.refresh(order)
    assert order.status == OrderStatus.DELIVERED
    assert order.refund_status == RefundStatus.SUCCEEDED
    payout = await payout_ops.get_payout_for_order(db_session, order.id)
    assert payout.amount_cents == order.seller_amount_cents - 20000
    assert payout.status == PayoutStatus.PAID


@pytest.mark.asyncio
@pytest.mark.unit
@pytest.mark.parametrize("amount_cents", [None, 51400, 60000])
async def test_partial_refund_needs_amount_below_total(
    db_session, fake_paystack, amount_cents
):
    _, _, _, dispute = await _disputed_order(db_session)

    with pytest.raises(HTTPException) as exc:
        await dispute_ops.resolve_dispute(
            db_session,
            dispute.id,
            ADMIN,
            ResolveDisputeRequest(
                resolution=DisputeResolution.PARTIAL_REFUND, amount_cents=amount_cents
            ),
            fake_paystack,
        )

    assert exc.value.status_code == 422
    assert fake_paystack.calls_to("create_refund") == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_pay_seller_releases_full_share(db_session, fake_paystack):
    _, _, order, dispute = await _disputed_order(
        db_session, order_status=OrderStatus.COMMITTED
    )

    resolved = await dispute_ops.resolve_dispute(
        db_session,
        dispute.id,
        ADMIN,
        ResolveDisputeRequest(resolution=DisputeResolution.PAY_SELLER),
        fake_paystack,
    )

    assert resolved.payout_amount_cents == order.seller_amount_cents
    assert fake_paystack.calls_to("create_refund") == []
    payout = await payout_ops.get_payout_for_order(db_session, order.id)
    assert payout.amount_cents == order.seller_amount_cents


@pytest.mark.asyncio
@pytest.mark.unit
async def test_no_action_releases_held_payout_after_collection(
    db_session, fake_paystack
):
    _, _, order, dispute = await _disputed_order(
        db_session, order_status=OrderStatus.COMMITTED
    )
    await order_ops.mark_collected(db_session, order, fake_paystack)
    assert await payout_ops.get_payout_for_order(db_session, order.id) is None

    resolved = await dispute_ops.resolve_dispute(
        db_session,
        dispute.id,
        ADMIN,
        ResolveDisputeRequest(resolution=DisputeResolution.NO_ACTION),
        fake_paystack,
    )

    assert resolved.resolution == DisputeResolution.NO_ACTION
    payout = await payout_ops.get_payout_for_order(db_session, order.id)
    assert payout.amount_cents == order.seller_amount_cents


@pytest.mark.asyncio
@pytest.mark.unit
async def test_no_action_before_collection_moves_no_money(db_session, fake_paystack):
    _, _, order, dispute = await _disputed_order(
        db_session, order_status=OrderStatus.COMMITTED
    )

    resolved = await dispute_ops.resolve_dispute(
        db_session,
        dispute.id,
        ADMIN,
        ResolveDisputeRequest(resolution=DisputeResolution.NO_ACTION),
        fake_paystack,
    )

    assert resolved.payout_amount_cents is None
    assert await payout_ops.get_payout_for_order(db_session, order.id) is None
    await db_session.refresh(order)
    assert order.dispute_hold is False


@pytest.mark.asyncio
@pytest.mark.unit
async def test_resolved_dispute_cannot_be_resolved_again(db_session, fake_paystack):
    _, _, _, dispute = await _disputed_order(db_session)
    request = ResolveDisputeRequest(resolution=DisputeResolution.NO_ACTION)
    await dispute_ops.resolve_dispute(
        db_session, dispute.id, ADMIN, request, fake_paystack
    )

    with pytest.raises(HTTPException) as exc:
        await dispute_ops.resolve_dispute(
            db_session, dispute.id, ADMIN, request, fake_paystack
        )

    assert exc.value.status_code == 409


@pytest.mark.asyncio
@pytest.mark.unit
async def test_failed_refund_leaves_dispute_open(db_session, fake_paystack):
    _, _, order, dispute = await _disputed_order(db_session)
    fake_paystack.fail_refund = True

    with pytest.raises(HTTPException) as exc:
        await dispute_ops.resolve_dispute(
            db_session,
            dispute.id,
            ADMIN,
            ResolveDisputeRequest(resolution=DisputeResolution.REFUND_BUYER),
            fake_paystack,
        )

    assert exc.value.status_code == 502
    await db_session.refresh(dispute)
    await db_session.refresh(order)
    assert dispute.status == DisputeStatus.OPEN
    assert order.dispute_hold is True


@pytest.mark.asyncio
@pytest.mark.unit
async def test_unconfirmed_dispute_refund_settles_by_webhook(db_session, fake_paystack):
    _, _, order, dispute = await _disputed_order(db_session)
    fake_paystack.refund_status = "processing"

    await dispute_ops.resolve_dispute(
        db_session,
        dispute.id,
        ADMIN,
        ResolveDisputeRequest(resolution=DisputeResolution.REFUND_BUYER),
        fake_paystack,
    )
    await db_session.refresh(order)
    assert order.status == OrderStatus.CANCELLED
    assert order.refund_status == RefundStatus.PENDING

    await order_ops.apply_refund_event(
        db_session,
        "refund.processed",
        {"transaction_reference": order.payment_reference},
    )

    await db_session.refresh(order)
    assert order.status == OrderStatus.REFUNDED
    assert order.refund_status == RefundStatus.SUCCEEDED


@pytest.mark.asyncio
@pytest.mark.unit
async def test_resolution_notifies_both_parties(db_session, fake_paystack):
    _, _, order, dispute = await _disputed_order(db_session)

    await dispute_ops.resolve_dispute(
        db_session,
        dispute.id,
        ADMIN,
        ResolveDisputeRequest(resolution=DisputeResolution.PAY_SELLER),
        fake_paystack,
    )

    resolved_notes = (
        await db_session.execute(
            select(Notification).where(
                Notification.type == NotificationType.DISPUTE_RESOLVED
            )
        )
    ).scalars().all()
    assert {n.user_auth_id for n in resolved_notes} == {
        order.buyer_auth_id,
        order.seller_auth_id,
    }
