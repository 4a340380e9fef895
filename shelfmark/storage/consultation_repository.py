"""
Consultation scheduling for Shelfmark.

Members book a (book, date, slot) triple to read a book on site; staff
approve, reject or complete the request.

Slot conflicts are detected by a pre-insert existence check against
pending/approved requests. The check and the insert are separate
statements, so two concurrent requests for the same free slot can both
succeed. Status updates accept any value of the closed status set,
whatever the current status.
"""

from datetime import date, datetime
from typing import Any, Optional, Union

from loguru import logger
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import ConflictError, NotFoundError, ValidationError
from .models import (
    ACTIVE_STATUSES,
    Book,
    ConsultationRequest,
    ConsultationStatus,
    TimeSlot,
    User,
)


STATUS_VALUES = frozenset(status.value for status in ConsultationStatus)
SLOT_VALUES = tuple(slot.value for slot in TimeSlot)

# Book columns shown next to each request
BOOK_DISPLAY_COLUMNS = (Book.title, Book.author_1, Book.author_2, Book.location)
USER_DISPLAY_COLUMNS = (User.first_name, User.last_name, User.email)


def parse_requested_date(value: Union[str, date]) -> date:
    """Accept a date or a whole ISO date/datetime string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        raise ValidationError("Invalid date", detail=f"Expected YYYY-MM-DD, got '{value}'")


def parse_time_slot(value: str) -> str:
    """Exact slot value; ``HH:MM:00`` is read as ``HH:MM``."""
    slot = str(value).strip()
    if len(slot) == 8 and slot.endswith(":00"):
        slot = slot[:5]
    if slot not in SLOT_VALUES:
        raise ValidationError(
            "Invalid time slot",
            detail=f"Expected one of {', '.join(SLOT_VALUES)}",
        )
    return slot


def request_to_dict(request: ConsultationRequest) -> dict[str, Any]:
    """Row view of a consultation request."""
    return {
        "id": request.id,
        "user_id": request.user_id,
        "book_id": request.book_id,
        "requested_date": request.requested_date,
        "requested_time_slot": request.requested_time_slot,
        "status": request.status,
        "notes": request.notes,
        "admin_notes": request.admin_notes,
        "created_at": request.created_at,
        "updated_at": request.updated_at,
    }


class ConsultationRepository:
    """Creation, listing and triage of consultation requests."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_active(
        self,
        book_id: int,
        requested_date: date,
        time_slot: str,
    ) -> Optional[int]:
        """ID of a pending/approved request holding this slot, if any."""
        stmt = select(ConsultationRequest.id).where(
            ConsultationRequest.book_id == book_id,
            ConsultationRequest.requested_date == requested_date,
            ConsultationRequest.requested_time_slot == time_slot,
            ConsultationRequest.status.in_(ACTIVE_STATUSES),
        ).limit(1)
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def create(
        self,
        user_id: int,
        book_id: Optional[int],
        requested_date: Optional[Union[str, date]],
        time_slot: Optional[str],
        notes: Optional[str] = None,
    ) -> ConsultationRequest:
        """
        Create a pending consultation request.

        Args:
            user_id: Requesting principal
            book_id: Book to consult
            requested_date: Day of the visit
            time_slot: One of the daily slots
            notes: Free-text note from the member

        Returns:
            Created ConsultationRequest

        Raises:
            ValidationError: Missing book, date or slot, or malformed value
            NotFoundError: Book does not exist
            ConflictError: Slot already pending or approved for this book
        """
        if not book_id or not requested_date or not time_slot:
            raise ValidationError("Book ID, date, and time slot are required")

        visit_date = parse_requested_date(requested_date)
        slot = parse_time_slot(time_slot)

        book_exists = (
            await self.session.execute(select(Book.id).where(Book.id == book_id))
        ).scalar_one_or_none()
        if book_exists is None:
            raise NotFoundError("Book", book_id)

        if await self.find_active(book_id, visit_date, slot) is not None:
            raise ConflictError(
                "This time slot is already requested or booked",
                detail=f"Book {book_id} on {visit_date.isoformat()} at {slot}",
            )

        request = ConsultationRequest(
            user_id=user_id,
            book_id=book_id,
            requested_date=visit_date,
            requested_time_slot=slot,
            status=ConsultationStatus.PENDING.value,
            notes=notes or None,
        )
        self.session.add(request)
        await self.session.commit()
        await self.session.refresh(request)

        logger.info(
            f"Consultation request {request.id}: user {user_id}, book {book_id}, "
            f"{visit_date.isoformat()} {slot}"
        )
        return request

    async def list_for_user(self, user_id: int) -> list[dict[str, Any]]:
        """A member's own requests with book details, newest first."""
        stmt = (
            select(ConsultationRequest, *BOOK_DISPLAY_COLUMNS)
            .join(Book, ConsultationRequest.book_id == Book.id)
            .where(ConsultationRequest.user_id == user_id)
            .order_by(ConsultationRequest.created_at.desc(), ConsultationRequest.id.desc())
        )
        rows = (await self.session.execute(stmt)).all()
        return [
            {**request_to_dict(row[0]), **dict(zip(("title", "author_1", "author_2", "location"), row[1:]))}
            for row in rows
        ]

    async def list_all(self) -> list[dict[str, Any]]:
        """Every request with book and requester details, newest first."""
        stmt = (
            select(ConsultationRequest, *BOOK_DISPLAY_COLUMNS, *USER_DISPLAY_COLUMNS)
            .join(Book, ConsultationRequest.book_id == Book.id)
            .join(User, ConsultationRequest.user_id == User.id)
            .order_by(ConsultationRequest.created_at.desc(), ConsultationRequest.id.desc())
        )
        rows = (await self.session.execute(stmt)).all()
        keys = ("title", "author_1", "author_2", "location", "first_name", "last_name", "email")
        return [{**request_to_dict(row[0]), **dict(zip(keys, row[1:]))} for row in rows]

    async def update_status(
        self,
        request_id: int,
        status: Optional[str],
        admin_notes: Optional[str] = None,
    ) -> ConsultationRequest:
        """
        Overwrite status and admin notes.

        Any status of the closed set is accepted regardless of the
        current one.

        Raises:
            ValidationError: Status outside the closed set
            NotFoundError: Unknown request
        """
        if status not in STATUS_VALUES:
            raise ValidationError("Invalid status")

        stmt = (
            update(ConsultationRequest)
            .where(ConsultationRequest.id == request_id)
            .values(status=status, admin_notes=admin_notes or None, updated_at=func.now())
            .returning(ConsultationRequest)
            .execution_options(synchronize_session=False)
        )
        request = (await self.session.execute(stmt)).scalar_one_or_none()
        if request is None:
            await self.session.rollback()
            raise NotFoundError("Consultation request", request_id)

        await self.session.commit()
        await self.session.refresh(request)

        logger.info(f"Consultation request {request_id} -> {status}")
        return request
