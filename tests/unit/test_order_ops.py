"""Unit tests for the order lifecycle and the 48-hour commit window.

Tests call order_ops directly with the db_session fixture and a FakePaystack.
"""

from datetime import timedelta

import pytest
from fastapi import HTTPException
from libs.auth.models import AuthUser
from libs.common.datetime_utils import utc_now
from services.books_service.models import BookStatus
from services.communications_service.models import Notification, NotificationType
from services.delivery_service.models import Shipment
from services.orders_service.models import (
    CancellationReason,
    Order,
    OrderStatus,
    RefundStatus,
)
from services.orders_service.services import order_ops
from services.payments_service.models import PaymentStatus
from sqlalchemy import select
from tests.factories import (
    BookFactory,
    PaymentFactory,
    SellerProfileFactory,
    create_order_with_payment,
)


def _user(auth_id: str) -> AuthUser:
    return AuthUser(user_id=auth_id, email=f"{auth_id}@test.com")


async def _notifications_for(db, auth_id):
    result = await db.execute(
        select(Notification).where(Notification.user_auth_id == auth_id)
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# create_order_from_payment
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_order_sets_48_hour_deadline_and_reserves_book(db_session):
    seller = SellerProfileFactory.create()
    book = BookFactory.create(seller_auth_id=seller.auth_id)
    paid_at = utc_now() - timedelta(minutes=5)
    payment = PaymentFactory.create(
        book_id=book.id,
        seller_auth_id=seller.auth_id,
        status=PaymentStatus.PAID,
        paid_at=paid_at,
    )
    db_session.add_all([seller, book, payment])
    await db_session.commit()

    order = await order_ops.create_order_from_payment(db_session, payment)

    assert order.status == OrderStatus.PAID
    assert order.commit_deadline == paid_at + timedelta(hours=48)
    assert order.seller_email == seller.email
    assert order.pickup_address["city"] == "Cape Town"
    assert order.delivery_provider == "courier-guy"
    await db_session.refresh(book)
    assert book.status == BookStatus.PENDING_COMMIT

    seller_notes = await _notifications_for(db_session, seller.auth_id)
    assert [n.type for n in seller_notes] == [NotificationType.COMMIT_REQUIRED]
    buyer_notes = await _notifications_for(db_session, payment.buyer_auth_id)
    assert [n.type for n in buyer_notes] == [NotificationType.ORDER_PAID]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_order_idempotent_per_reference(db_session):
    book = BookFactory.create()
    payment = PaymentFactory.create(
        book_id=book.id, status=PaymentStatus.PAID, paid_at=utc_now()
    )
    db_session.add_all([book, payment])
    await db_session.commit()

    first = await order_ops.create_order_from_payment(db_session, payment)
    second = await order_ops.create_order_from_payment(db_session, payment)

    assert first.id == second.id
    result = await db_session.execute(
        select(Order).where(Order.payment_reference == payment.reference)
    )
    assert len(result.scalars().all()) == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_order_for_reserved_book_raises(db_session):
    book = BookFactory.create(status=BookStatus.PENDING_COMMIT)
    payment = PaymentFactory.create(
        book_id=book.id, status=PaymentStatus.PAID, paid_at=utc_now()
    )
    db_session.add_all([book, payment])
    await db_session.commit()

    with pytest.raises(order_ops.BookUnavailableError):
        await order_ops.create_order_from_payment(db_session, payment)


# ---------------------------------------------------------------------------
# commit_order
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_commit_within_window_books_shipment_and_sells_book(db_session):
    book, _, order = await create_order_with_payment(db_session)

    committed = await order_ops.commit_order(
        db_session, order.id, _user(order.seller_auth_id)
    )

    assert committed.status == OrderStatus.COMMITTED
    assert committed.committed_at is not None
    await db_session.refresh(book)
    assert book.status == BookStatus.SOLD
    shipment = (
        await db_session.execute(select(Shipment).where(Shipment.order_id == order.id))
    ).scalar_one()
    assert shipment.tracking_number.startswith("RB-CG-")
    assert shipment.delivery_address["city"] == "Johannesburg"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_commit_after_deadline_rejected(db_session):
    _, _, order = await create_order_with_payment(
        db_session, paid_at=utc_now() - timedelta(hours=49)
    )

    with pytest.raises(HTTPException) as exc:
        await order_ops.commit_order(db_session, order.id, _user(order.seller_auth_id))

    assert exc.value.status_code == 409
    assert exc.value.detail == "Commit window has expired"
    await db_session.refresh(order)
    assert order.status == OrderStatus.PAID
    assert order.committed_at is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_commit_exactly_at_deadline_rejected(db_session):
    _, _, order = await create_order_with_payment(db_session)

    with pytest.raises(HTTPException) as exc:
        await order_ops.commit_order(
            db_session,
            order.id,
            _user(order.seller_auth_id),
            now=order.commit_deadline,
        )

    assert exc.value.status_code == 409


@pytest.mark.asyncio
@pytest.mark.unit
async def test_commit_by_someone_else_forbidden(db_session):
    _, _, order = await create_order_with_payment(db_session)

    with pytest.raises(HTTPException) as exc:
        await order_ops.commit_order(db_session, order.id, _user(order.buyer_auth_id))

    assert exc.value.status_code == 403


@pytest.mark.asyncio
@pytest.mark.unit
async def test_commit_twice_returns_order_unchanged(db_session):
    _, _, order = await create_order_with_payment(db_session)
    seller = _user(order.seller_auth_id)

    first = await order_ops.commit_order(db_session, order.id, seller)
    committed_at = first.committed_at
    second = await order_ops.commit_order(db_session, order.id, seller)

    assert second.status == OrderStatus.COMMITTED
    assert second.committed_at == committed_at
    shipments = (
        await db_session.execute(select(Shipment).where(Shipment.order_id == order.id))
    ).scalars().all()
    assert len(shipments) == 1


# ---------------------------------------------------------------------------
# Cancellation and refunds
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_decline_refunds_buyer_and_relists_book(db_session, fake_paystack):
    book, payment, order = await create_order_with_payment(db_session)

    declined = await order_ops.decline_order(
        db_session,
        order.id,
        _user(order.seller_auth_id),
        "Book is damaged",
        fake_paystack,
    )

    assert declined.status == OrderStatus.REFUNDED
    assert declined.cancellation_reason == CancellationReason.SELLER_DECLINED
    assert declined.decline_reason == "Book is damaged"
    assert declined.declined_at is not None
    assert declined.refund_status == RefundStatus.SUCCEEDED
    refund = fake_paystack.calls_to("create_refund")[0]
    assert refund["transaction_reference"] == payment.reference
    assert refund["amount_cents"] == payment.total_cents
    await db_session.refresh(book)
    assert book.status == BookStatus.AVAILABLE
    await db_session.refresh(payment)
    assert payment.status == PaymentStatus.REFUNDED


@pytest.mark.asyncio
@pytest.mark.unit
async def test_failed_refund_leaves_order_cancelled_for_retry(db_session, fake_paystack):
    _, payment, order = await create_order_with_payment(db_session)
    fake_paystack.fail_refund = True

    cancelled = await order_ops.cancel_order_by_buyer(
        db_session, order.id, _user(order.buyer_auth_id), fake_paystack
    )

    assert cancelled.status == OrderStatus.CANCELLED
    assert cancelled.refund_status == RefundStatus.FAILED
    assert cancelled.refund_attempts == 1
    assert cancelled.refund_error == "Refund could not be processed"
    await db_session.refresh(payment)
    assert payment.status == PaymentStatus.PAID

    fake_paystack.fail_refund = False
    retried = await order_ops.retry_failed_refunds(db_session, fake_paystack)

    assert retried == 1
    await db_session.refresh(cancelled)
    assert cancelled.status == OrderStatus.REFUNDED
    assert cancelled.refund_attempts == 2


@pytest.mark.asyncio
@pytest.mark.unit
async def test_pending_refund_waits_for_webhook(db_session, fake_paystack):
    _, _, order = await create_order_with_payment(db_session)
    fake_paystack.refund_status = "pending"

    cancelled = await order_ops.cancel_order_by_buyer(
        db_session, order.id, _user(order.buyer_auth_id), fake_paystack
    )
    assert cancelled.status == OrderStatus.CANCELLED
    assert cancelled.refund_status == RefundStatus.PENDING

    await order_ops.apply_refund_event(
        db_session,
        "refund.processed",
        {"transaction_reference": order.payment_reference, "status": "processed"},
    )

    await db_session.refresh(cancelled)
    assert cancelled.status == OrderStatus.REFUNDED
    assert cancelled.refund_status == RefundStatus.SUCCEEDED


@pytest.mark.asyncio
@pytest.mark.unit
async def test_refund_failed_webhook_reopens_refund(db_session, fake_paystack):
    _, payment, order = await create_order_with_payment(db_session)
    await order_ops.cancel_order_by_buyer(
        db_session, order.id, _user(order.buyer_auth_id), fake_paystack
    )

    await order_ops.apply_refund_event(
        db_session,
        "refund.failed",
        {"transaction": {"reference": order.payment_reference}},
    )

    await db_session.refresh(order)
    await db_session.refresh(payment)
    assert order.status == OrderStatus.CANCELLED
    assert order.refund_status == RefundStatus.FAILED
    assert payment.status == PaymentStatus.PAID


@pytest.mark.asyncio
@pytest.mark.unit
async def test_buyer_cannot_cancel_after_commit(db_session, fake_paystack):
    _, _, order = await create_order_with_payment(db_session)
    await order_ops.commit_order(db_session, order.id, _user(order.seller_auth_id))

    with pytest.raises(HTTPException) as exc:
        await order_ops.cancel_order_by_buyer(
            db_session, order.id, _user(order.buyer_auth_id), fake_paystack
        )

    assert exc.value.status_code == 409
    assert fake_paystack.calls_to("create_refund") == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_refund_without_paystack_marks_failed(db_session):
    _, _, order = await create_order_with_payment(db_session)

    cancelled = await order_ops.cancel_order_by_buyer(
        db_session, order.id, _user(order.buyer_auth_id), None
    )

    assert cancelled.status == OrderStatus.CANCELLED
    assert cancelled.refund_status == RefundStatus.FAILED
    assert cancelled.refund_error == "Paystack is not configured"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_admin_refund_of_committed_order_cancels_shipment(
    db_session, fake_paystack
):
    book, _, order = await create_order_with_payment(db_session)
    await order_ops.commit_order(db_session, order.id, _user(order.seller_auth_id))

    refunded = await order_ops.admin_refund(
        db_session, order.id, "Buyer reported fraud", fake_paystack
    )

    assert refunded.status == OrderStatus.REFUNDED
    assert refunded.cancellation_reason == CancellationReason.ADMIN_REFUND
    shipment = (
        await db_session.execute(select(Shipment).where(Shipment.order_id == order.id))
    ).scalar_one()
    assert shipment.status.value == "cancelled"
    await db_session.refresh(book)
    assert book.status == BookStatus.AVAILABLE


# ---------------------------------------------------------------------------
# Sweeps
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_expire_overdue_commits_cancels_and_refunds(db_session, fake_paystack):
    book, _, overdue = await create_order_with_payment(
        db_session, paid_at=utc_now() - timedelta(hours=50)
    )
    _, _, fresh = await create_order_with_payment(
        db_session, paid_at=utc_now() - timedelta(hours=2)
    )

    expired = await order_ops.expire_overdue_commits(db_session, fake_paystack)

    assert expired == 1
    await db_session.refresh(overdue)
    await db_session.refresh(fresh)
    assert overdue.status == OrderStatus.REFUNDED
    assert overdue.cancellation_reason == CancellationReason.COMMIT_EXPIRED
    assert fresh.status == OrderStatus.PAID
    await db_session.refresh(book)
    assert book.status == BookStatus.AVAILABLE

    buyer_notes = await _notifications_for(db_session, overdue.buyer_auth_id)
    assert NotificationType.ORDER_EXPIRED in [n.type for n in buyer_notes]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_expire_is_idempotent(db_session, fake_paystack):
    await create_order_with_payment(db_session, paid_at=utc_now() - timedelta(hours=50))

    assert await order_ops.expire_overdue_commits(db_session, fake_paystack) == 1
    assert await order_ops.expire_overdue_commits(db_session, fake_paystack) == 0
    assert len(fake_paystack.calls_to("create_refund")) == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_expired_order_can_never_be_committed(db_session, fake_paystack):
    _, _, order = await create_order_with_payment(
        db_session, paid_at=utc_now() - timedelta(hours=50)
    )
    await order_ops.expire_overdue_commits(db_session, fake_paystack)

    with pytest.raises(HTTPException) as exc:
        await order_ops.commit_order(db_session, order.id, _user(order.seller_auth_id))

    assert exc.value.status_code == 409


@pytest.mark.asyncio
@pytest.mark.unit
async def test_commit_reminder_sent_once_inside_last_24_hours(db_session):
    _, _, due = await create_order_with_payment(
        db_session, paid_at=utc_now() - timedelta(hours=30)
    )
    _, _, early = await create_order_with_payment(
        db_session, paid_at=utc_now() - timedelta(hours=2)
    )

    assert await order_ops.send_commit_reminders(db_session) == 1
    assert await order_ops.send_commit_reminders(db_session) == 0

    await db_session.refresh(due)
    await db_session.refresh(early)
    assert due.commit_reminder_sent_at is not None
    assert early.commit_reminder_sent_at is None
    notes = await _notifications_for(db_session, due.seller_auth_id)
    assert [n.type for n in notes] == [NotificationType.COMMIT_REMINDER]


# ---------------------------------------------------------------------------
# Fulfilment
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_collected_then_delivered(db_session):
    _, _, order = await create_order_with_payment(db_session)
    await order_ops.commit_order(db_session, order.id, _user(order.seller_auth_id))

    order = await order_ops.mark_collected(db_session, order)
    assert order.status == OrderStatus.COLLECTED
    order = await order_ops.mark_delivered(db_session, order)
    assert order.status == OrderStatus.DELIVERED
    assert order.delivered_at is not None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_cannot_deliver_uncollected_order(db_session):
    _, _, order = await create_order_with_payment(db_session)

    with pytest.raises(HTTPException) as exc:
        await order_ops.mark_delivered(db_session, order)

    assert exc.value.status_code == 409


@pytest.mark.asyncio
@pytest.mark.unit
async def test_receipt_is_pdf_for_both_parties(db_session):
    _, _, order = await create_order_with_payment(db_session)

    buyer_pdf = order_ops.render_receipt(order, _user(order.buyer_auth_id))
    seller_pdf = order_ops.render_receipt(order, _user(order.seller_auth_id))

    assert buyer_pdf.startswith(b"%PDF")
    assert seller_pdf.startswith(b"%PDF")


@pytest.mark.unit
def test_order_number_format():
    number = Order.generate_order_number(utc_now().replace(year=2025, month=3, day=1))

    assert number.startswith("RB-20250301-")
    assert len(number) == len("RB-20250301-XXXXX")



# ---------------------------------------------------------------------------
# Unconfirmed refunds and refund webhooks on live orders
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
@pytest.mark.parametrize("provider_status", ["processing", "needs-attention"])
async def test_unconfirmed_refund_keeps_order_cancelled(
    db_session, fake_paystack, provider_status
):
    _, _, order = await create_order_with_payment(db_session)
    fake_paystack.refund_status = provider_status

    cancelled = await order_ops.cancel_order_by_buyer(
        db_session, order.id, _user(order.buyer_auth_id), fake_paystack
    )

    assert cancelled.status == OrderStatus.CANCELLED
    assert cancelled.refund_status == RefundStatus.PENDING
    assert cancelled.refunded_at is None
    buyer_notes = await _notifications_for(db_session, order.buyer_auth_id)
    assert NotificationType.REFUND_PROCESSED not in {n.type for n in buyer_notes}


@pytest.mark.asyncio
@pytest.mark.unit
async def test_refund_failed_webhook_leaves_delivered_order_delivered(db_session):
    _, payment, order = await create_order_with_payment(
        db_session, status=OrderStatus.DELIVERED
    )

    await order_ops.apply_refund_event(
        db_session,
        "refund.failed",
        {"transaction_reference": order.payment_reference},
    )

    await db_session.refresh(order)
    await db_session.refresh(payment)
    assert order.status == OrderStatus.DELIVERED
    assert order.refund_status == RefundStatus.FAILED
    assert payment.status == PaymentStatus.PAID


@pytest.mark.asyncio
@pytest.mark.unit
async def test_refund_processed_webhook_leaves_delivered_order_delivered(db_session):
    _, _, order = await create_order_with_payment(
        db_session, status=OrderStatus.DELIVERED
    )

    await order_ops.apply_refund_event(
        db_session,
        "refund.processed",
        {"transaction_reference": order.payment_reference},
    )

    await db_session.refresh(order)
    assert order.status == OrderStatus.DELIVERED
    assert order.refund_status == RefundStatus.SUCCEEDED


@pytest.mark.asyncio
@pytest.mark.unit
async def test_collection_under_dispute_holds_payout(db_session, fake_paystack):
    from services.payments_service.services import payout_ops

    _, _, order = await create_order_with_payment(
        db_session, status=OrderStatus.COMMITTED, dispute_hold=True
    )

    collected = await order_ops.mark_collected(db_session, order, fake_paystack)

    assert collected.status == OrderStatus.COLLECTED
    assert await payout_ops.get_payout_for_order(db_session, order.id) is None
