"""Integration tests for communications_service notification endpoints."""

import pytest
from services.communications_service.models import Notification, NotificationType


def _notification(user_auth_id: str, **overrides) -> Notification:
    data = {
        "user_auth_id": user_auth_id,
        "type": NotificationType.ORDER_PAID,
        "title": "Payment received",
        "message": "Your payment was received.",
        "read": False,
    }
    data.update(overrides)
    return Notification(**data)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_feed_lists_only_my_notifications(
    communications_client, db_session, buyer
):
    db_session.add_all([_notification(buyer.user_id), _notification("someone-else")])
    await db_session.commit()

    response = await communications_client.get("/notifications/me")

    assert response.status_code == 200
    assert len(response.json()) == 1
    assert response.json()[0]["type"] == "order_paid"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_mark_read_and_unread_count(communications_client, db_session, buyer):
    first = _notification(buyer.user_id)
    db_session.add_all([first, _notification(buyer.user_id)])
    await db_session.commit()

    assert (await communications_client.get("/notifications/me/unread-count")).json() == {
        "unread": 2
    }

    response = await communications_client.post(f"/notifications/{first.id}/read")
    assert response.status_code == 200
    assert response.json()["read"] is True

    unread = await communications_client.get(
        "/notifications/me", params={"unread_only": True}
    )
    assert len(unread.json()) == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_mark_all_read(communications_client, db_session, buyer):
    db_session.add_all([_notification(buyer.user_id), _notification(buyer.user_id)])
    await db_session.commit()

    response = await communications_client.post("/notifications/me/read-all")

    assert response.json() == {"updated": 2}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cannot_read_someone_elses_notification(
    communications_client, db_session
):
    other = _notification("someone-else")
    db_session.add(other)
    await db_session.commit()

    response = await communications_client.post(f"/notifications/{other.id}/read")

    assert response.status_code == 404
