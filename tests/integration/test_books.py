"""Integration tests for books_service endpoints."""

import pytest
from services.books_service.models import BookStatus
from tests.factories import BookFactory, SellerProfileFactory

LISTING = {
    "title": "Campbell Biology",
    "author": "Urry et al.",
    "isbn": "9780134093413",
    "condition": "good",
    "category": "Biology",
    "university": "Wits",
    "price_cents": 52000,
}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_ready_seller_can_list(books_client, db_session, seller, acting_as):
    db_session.add(SellerProfileFactory.create(auth_id=seller.user_id))
    await db_session.commit()
    acting_as.set(seller)

    response = await books_client.post("/books", json=LISTING)

    assert response.status_code == 201, response.text
    data = response.json()
    assert data["status"] == "available"
    assert data["seller_auth_id"] == seller.user_id


@pytest.mark.asyncio
@pytest.mark.integration
async def test_unready_seller_cannot_list(books_client, seller, acting_as):
    acting_as.set(seller)

    response = await books_client.post("/books", json=LISTING)

    assert response.status_code == 403


@pytest.mark.asyncio
@pytest.mark.integration
async def test_browse_shows_only_available_books(books_client, db_session):
    available = BookFactory.create(title="Calculus: Early Transcendentals")
    reserved = BookFactory.create(status=BookStatus.PENDING_COMMIT)
    sold = BookFactory.create(status=BookStatus.SOLD)
    db_session.add_all([available, reserved, sold])
    await db_session.commit()

    response = await books_client.get("/books")

    assert [b["id"] for b in response.json()] == [str(available.id)]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_search_by_title(books_client, db_session):
    db_session.add_all(
        [
            BookFactory.create(title="Calculus: Early Transcendentals"),
            BookFactory.create(title="Organic Chemistry"),
        ]
    )
    await db_session.commit()

    response = await books_client.get("/books", params={"search": "calculus"})

    assert [b["title"] for b in response.json()] == ["Calculus: Early Transcendentals"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_reserved_listing_cannot_be_edited(
    books_client, db_session, seller, acting_as
):
    book = BookFactory.create(
        seller_auth_id=seller.user_id, status=BookStatus.PENDING_COMMIT
    )
    db_session.add(book)
    await db_session.commit()
    acting_as.set(seller)

    response = await books_client.patch(f"/books/{book.id}", json={"price_cents": 100})

    assert response.status_code == 409


@pytest.mark.asyncio
@pytest.mark.integration
async def test_seller_withdraws_listing(books_client, db_session, seller, acting_as):
    book = BookFactory.create(seller_auth_id=seller.user_id)
    db_session.add(book)
    await db_session.commit()
    acting_as.set(seller)

    response = await books_client.delete(f"/books/{book.id}")

    assert response.status_code == 200
    assert response.json()["status"] == "withdrawn"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_other_users_cannot_edit_listing(books_client, db_session):
    book = BookFactory.create()
    db_session.add(book)
    await db_session.commit()

    response = await books_client.patch(f"/books/{book.id}", json={"price_cents": 500})

    assert response.status_code == 403
