import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from libs.db.types import JSONType, UTCDateTime
from services.books_service.models.enums import BookCondition, BookStatus, enum_values
from sqlalchemy import Enum as SAEnum
from sqlalchemy import Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column


class Book(Base):
    """A textbook listing."""

    __tablename__ = "books"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    seller_auth_id: Mapped[str] = mapped_column(String, index=True, nullable=False)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    author: Mapped[str] = mapped_column(String(255), nullable=False)
    isbn: Mapped[Optional[str]] = mapped_column(String(20), index=True, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    condition: Mapped[BookCondition] = mapped_column(
        SAEnum(
            BookCondition,
            name="book_condition_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    category: Mapped[Optional[str]] = mapped_column(String(100), index=True, nullable=True)
    university: Mapped[Optional[str]] = mapped_column(
        String(150), index=True, nullable=True
    )
    university_year: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    image_urls: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)

    status: Mapped[BookStatus] = mapped_column(
        SAEnum(
            BookStatus,
            name="book_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=BookStatus.AVAILABLE,
        index=True,
        nullable=False,
    )
    sold_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, onupdate=utc_now
    )

    def __repr__(self):
        return f"<Book {self.title!r} ({self.status.value})>"
