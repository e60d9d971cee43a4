import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from services.books_service.models import BookCondition, BookStatus

# ============================================================================
# BOOK SCHEMAS
# ============================================================================


class BookBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    author: str = Field(..., min_length=1, max_length=255)
    isbn: Optional[str] = Field(None, max_length=20)
    description: Optional[str] = None
    condition: BookCondition
    category: Optional[str] = Field(None, max_length=100)
    university: Optional[str] = Field(None, max_length=150)
    university_year: Optional[str] = Field(None, max_length=50)
    price_cents: int = Field(..., ge=100, description="Listing price in ZAR cents")
    image_urls: list[str] = []


class BookCreate(BookBase):
    pass


class BookUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    author: Optional[str] = Field(None, min_length=1, max_length=255)
    isbn: Optional[str] = Field(None, max_length=20)
    description: Optional[str] = None
    condition: Optional[BookCondition] = None
    category: Optional[str] = Field(None, max_length=100)
    university: Optional[str] = Field(None, max_length=150)
    university_year: Optional[str] = Field(None, max_length=50)
    price_cents: Optional[int] = Field(None, ge=100)
    image_urls: Optional[list[str]] = None


class BookResponse(BookBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    seller_auth_id: str
    status: BookStatus
    sold_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
