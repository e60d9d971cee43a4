"""
Order workflow email templates.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from libs.common.config import get_settings
from libs.common.currency import format_rand
from libs.common.emails.core import send_email
from services.communications_service.templates.base import (
    GRADIENT_AMBER,
    GRADIENT_BLUE,
    GRADIENT_BRAND,
    GRADIENT_RED,
    cta_button,
    detail_box,
    notice,
    wrap_html,
)

# South Africa has no daylight saving
SAST = timezone(timedelta(hours=2), "SAST")


def format_deadline(value: datetime) -> str:
    return value.astimezone(SAST).strftime("%a %d %b %Y, %H:%M SAST")


def _orders_url(path: str = "") -> str:
    return f"{get_settings().FRONTEND_URL.rstrip('/')}/orders{path}"


async def send_new_order_email(
    to_email: str,
    order_number: str,
    book_title: str,
    seller_amount_cents: int,
    commit_deadline: datetime,
) -> bool:
    """
    Tell the seller a buyer has paid and they must commit before the deadline.
    """
    deadline = format_deadline(commit_deadline)
    subject = f"New order for '{book_title}' - commit by {deadline}"

    body = f"""Hi there,

Good news! A buyer has paid for your book "{book_title}".

Order: {order_number}
You will receive: {format_rand(seller_amount_cents)}
Commit before: {deadline}

Please confirm the sale before the deadline. If you don't, the order is
cancelled automatically and the buyer is refunded.

Commit here: {_orders_url()}
"""

    body_html = (
        f"<p>Good news! A buyer has paid for <strong>{book_title}</strong>.</p>"
        + detail_box(
            {
                "Order": order_number,
                "You will receive": format_rand(seller_amount_cents),
                "Commit before": deadline,
            }
        )
        + notice(
            "If you don't commit before the deadline the order is cancelled "
            "automatically and the buyer is refunded."
        )
        + cta_button("Commit to sale", _orders_url())
    )

    html_body = wrap_html(
        title="You sold a book!",
        subtitle="Commit to the sale within 48 hours",
        body_html=body_html,
        preheader=f"Commit to order {order_number} before {deadline}",
    )
    return await send_email(to_email, subject, body, html_body)


async def send_payment_received_email(
    to_email: str,
    order_number: str,
    book_title: str,
    total_cents: int,
    commit_deadline: datetime,
) -> bool:
    """Buyer receipt: payment taken, waiting on the seller."""
    deadline = format_deadline(commit_deadline)
    subject = f"Payment received - order {order_number}"

    body = f"""Hi there,

We've received your payment of {format_rand(total_cents)} for "{book_title}".

The seller has until {deadline} to confirm the sale. If they don't,
your order is cancelled and you are refunded in full.
"""

    body_html = (
        f"<p>We've received your payment for <strong>{book_title}</strong>.</p>"
        + detail_box(
            {
                "Order": order_number,
                "Amount paid": format_rand(total_cents),
                "Seller commits by": deadline,
            }
        )
        + "<p>If the seller doesn't confirm in time you are refunded in full.</p>"
    )

    html_body = wrap_html(
        title="Payment received",
        subtitle="Waiting for the seller to commit",
        body_html=body_html,
        header_gradient=GRADIENT_BLUE,
    )
    return await send_email(to_email, subject, body, html_body)


async def send_commit_reminder_email(
    to_email: str,
    order_number: str,
    book_title: str,
    commit_deadline: datetime,
) -> bool:
    deadline = format_deadline(commit_deadline)
    subject = f"Reminder: commit to order {order_number} before {deadline}"

    body = f"""Hi there,

You still need to commit to the sale of "{book_title}" (order {order_number}).
The order is cancelled automatically at {deadline}.

Commit here: {_orders_url()}
"""

    body_html = (
        f"<p>You still need to commit to the sale of <strong>{book_title}</strong>.</p>"
        + detail_box({"Order": order_number, "Deadline": deadline}, "#f59e0b")
        + cta_button("Commit now", _orders_url(), color="#d97706")
    )

    html_body = wrap_html(
        title="Your commit window is closing",
        body_html=body_html,
        header_gradient=GRADIENT_AMBER,
    )
    return await send_email(to_email, subject, body, html_body)


async def send_order_committed_email(
    to_email: str,
    order_number: str,
    book_title: str,
    courier: Optional[str] = None,
    tracking_number: Optional[str] = None,
) -> bool:
    """Tell the buyer the seller confirmed and a courier is booked."""
    subject = f"Your order {order_number} is confirmed"

    body = f"""Hi there,

The seller has committed to your order for "{book_title}".
Courier: {courier or "to be assigned"}
Tracking number: {tracking_number or "available soon"}
"""

    body_html = (
        f"<p>The seller has committed to your order for <strong>{book_title}</strong>.</p>"
        + detail_box(
            {
                "Order": order_number,
                "Courier": courier or "to be assigned",
                "Tracking number": tracking_number or "available soon",
            }
        )
        + cta_button("Track your order", _orders_url())
    )

    html_body = wrap_html(
        title="Order confirmed",
        subtitle="Your book is on its way",
        body_html=body_html,
    )
    return await send_email(to_email, subject, body, html_body)


async def send_order_cancelled_email(
    to_email: str,
    order_number: str,
    book_title: str,
    reason: str,
    refund_cents: Optional[int] = None,
) -> bool:
    """Cancellation notice; buyers get the refund amount, sellers do not."""
    subject = f"Order {order_number} cancelled"
    refund_line = (
        f"A refund of {format_rand(refund_cents)} has been issued to your original payment method."
        if refund_cents
        else ""
    )

    body = f"""Hi there,

Order {order_number} for "{book_title}" has been cancelled: {reason}.
{refund_line}
"""

    body_html = (
        f"<p>Order <strong>{order_number}</strong> for <strong>{book_title}</strong> "
        f"has been cancelled.</p>"
        + detail_box(
            {
                "Reason": reason,
                "Refund": format_rand(refund_cents) if refund_cents else "",
            },
            "#ef4444",
        )
        + (f"<p>{refund_line}</p>" if refund_line else "")
    )

    html_body = wrap_html(
        title="Order cancelled",
        body_html=body_html,
        header_gradient=GRADIENT_RED,
    )
    return await send_email(to_email, subject, body, html_body)


async def send_order_delivered_email(
    to_email: str,
    order_number: str,
    book_title: str,
    seller_amount_cents: int,
) -> bool:
    """Seller notice that the buyer received the book."""
    subject = f"Order {order_number} delivered"

    body = f"""Hi there,

"{book_title}" has been delivered to the buyer (order {order_number}).
Your earnings of {format_rand(seller_amount_cents)} have been released.
"""

    body_html = (
        f"<p><strong>{book_title}</strong> has been delivered to the buyer.</p>"
        + detail_box(
            {"Order": order_number, "Earnings": format_rand(seller_amount_cents)}
        )
    )

    html_body = wrap_html(
        title="Delivered!",
        subtitle="Thanks for selling on ReBooked",
        body_html=body_html,
        header_gradient=GRADIENT_BRAND,
    )
    return await send_email(to_email, subject, body, html_body)


async def send_dispute_resolved_email(
    to_email: str,
    order_number: str,
    book_title: str,
    outcome: str,
    notes: Optional[str] = None,
) -> bool:
    subject = f"Dispute on order {order_number} resolved"

    body = f"""Hi there,

The dispute on order {order_number} ("{book_title}") has been resolved.

Outcome: {outcome}
{notes or ""}
"""

    body_html = (
        f"<p>The dispute on order <strong>{order_number}</strong> for "
        f"<strong>{book_title}</strong> has been resolved.</p>"
        + detail_box({"Outcome": outcome, "Notes": notes or ""}, "#f59e0b")
        + cta_button("View order", _orders_url())
    )

    html_body = wrap_html(
        title="Dispute resolved",
        body_html=body_html,
        header_gradient=GRADIENT_AMBER,
    )
    return await send_email(to_email, subject, body, html_body)
