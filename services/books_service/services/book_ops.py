"""Book listing operations and availability transitions."""

import uuid
from typing import Optional

from fastapi import HTTPException, status
from libs.auth.models import AuthUser
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.books_service.models import Book, BookStatus
from services.books_service.schemas import BookCreate, BookUpdate
from services.sellers_service.services.seller_ops import require_ready_seller
from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------


async def get_book(db: AsyncSession, book_id: uuid.UUID) -> Book:
    result = await db.execute(select(Book).where(Book.id == book_id))
    book = result.scalar_one_or_none()
    if not book:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Book not found")
    return book


async def create_book(db: AsyncSession, seller: AuthUser, data: BookCreate) -> Book:
    await require_ready_seller(db, seller.user_id)

    book = Book(seller_auth_id=seller.user_id, **data.model_dump())
    db.add(book)
    await db.commit()
    await db.refresh(book)
    logger.info(f"Seller {seller.user_id} listed book {book.id}")
    return book


async def list_books(
    db: AsyncSession,
    *,
    search: Optional[str] = None,
    university: Optional[str] = None,
    category: Optional[str] = None,
    min_price_cents: Optional[int] = None,
    max_price_cents: Optional[int] = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Book]:
    """Browse available listings, newest first."""
    query = select(Book).where(Book.status == BookStatus.AVAILABLE)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(
            or_(
                Book.title.ilike(pattern),
                Book.author.ilike(pattern),
                Book.isbn.ilike(pattern),
            )
        )
    if university:
        query = query.where(Book.university == university)
    if category:
        query = query.where(Book.category == category)
    if min_price_cents is not None:
        query = query.where(Book.price_cents >= min_price_cents)
    if max_price_cents is not None:
        query = query.where(Book.price_cents <= max_price_cents)

    query = query.order_by(Book.created_at.desc()).limit(limit).offset(offset)
    result = await db.execute(query)
    return list(result.scalars().all())


async def list_seller_books(db: AsyncSession, seller_auth_id: str) -> list[Book]:
    result = await db.execute(
        select(Book)
        .where(Book.seller_auth_id == seller_auth_id)
        .order_by(Book.created_at.desc())
    )
    return list(result.scalars().all())


async def _owned_available_book(
    db: AsyncSession, book_id: uuid.UUID, seller: AuthUser
) -> Book:
    book = await get_book(db, book_id)
    if book.seller_auth_id != seller.user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Not your listing"
        )
    if book.status != BookStatus.AVAILABLE:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Listing cannot be changed while {book.status.value}",
        )
    return book


async def update_book(
    db: AsyncSession, book_id: uuid.UUID, seller: AuthUser, data: BookUpdate
) -> Book:
    book = await _owned_available_book(db, book_id, seller)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(book, field, value)
    await db.commit()
    await db.refresh(book)
    return book


async def withdraw_book(db: AsyncSession, book_id: uuid.UUID, seller: AuthUser) -> Book:
    book = await _owned_available_book(db, book_id, seller)
    book.status = BookStatus.WITHDRAWN
    await db.commit()
    await db.refresh(book)
    return book


# ---------------------------------------------------------------------------
# Availability transitions (caller commits)
# ---------------------------------------------------------------------------


async def reserve_for_order(db: AsyncSession, book_id: uuid.UUID) -> bool:
    """Hold an available book for a paid order. False if someone got there first."""
    result = await db.execute(
        update(Book)
        .where(Book.id == book_id, Book.status == BookStatus.AVAILABLE)
        .values(status=BookStatus.PENDING_COMMIT, updated_at=utc_now())
    )
    return (result.rowcount or 0) == 1


async def mark_sold(db: AsyncSession, book_id: uuid.UUID) -> None:
    book = await get_book(db, book_id)
    book.status = BookStatus.SOLD
    book.sold_at = utc_now()
    db.add(book)


async def relist(db: AsyncSession, book_id: uuid.UUID) -> None:
    """Put a book back on sale after its order was cancelled or refunded."""
    book = await get_book(db, book_id)
    if book.status == BookStatus.WITHDRAWN:
        return
    book.status = BookStatus.AVAILABLE
    book.sold_at = None
    db.add(book)
