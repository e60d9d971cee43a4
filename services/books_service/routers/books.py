"""Book listing endpoints."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.books_service.schemas import BookCreate, BookResponse, BookUpdate
from services.books_service.services import book_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/books", tags=["books"])


@router.post("", response_model=BookResponse, status_code=status.HTTP_201_CREATED)
async def create_listing(
    payload: BookCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """List a book for sale. Requires completed banking and pickup setup."""
    return await book_ops.create_book(db, current_user, payload)


@router.get("", response_model=list[BookResponse])
async def browse_listings(
    search: Optional[str] = None,
    university: Optional[str] = None,
    category: Optional[str] = None,
    min_price_cents: Optional[int] = Query(None, ge=0),
    max_price_cents: Optional[int] = Query(None, ge=0),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_async_db),
):
    return await book_ops.list_books(
        db,
        search=search,
        university=university,
        category=category,
        min_price_cents=min_price_cents,
        max_price_cents=max_price_cents,
        limit=limit,
        offset=offset,
    )


@router.get("/me", response_model=list[BookResponse])
async def list_my_listings(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await book_ops.list_seller_books(db, current_user.user_id)


@router.get("/{book_id}", response_model=BookResponse)
async def get_listing(book_id: uuid.UUID, db: AsyncSession = Depends(get_async_db)):
    return await book_ops.get_book(db, book_id)


@router.patch("/{book_id}", response_model=BookResponse)
async def update_listing(
    book_id: uuid.UUID,
    payload: BookUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await book_ops.update_book(db, book_id, current_user, payload)


@router.delete("/{book_id}", response_model=BookResponse)
async def withdraw_listing(
    book_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await book_ops.withdraw_book(db, book_id, current_user)
