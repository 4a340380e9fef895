"""
Consultation API Routes

Members request an on-site reading slot for a book and follow their own
requests; librarians and admins see every request and set its status.
"""

from fastapi import APIRouter, Depends, status
from loguru import logger

from shelfmark.api.dependencies import (
    Principal,
    get_consultation_repository,
    get_current_principal,
    require_roles,
)
from shelfmark.api.middleware.error_handler import service_errors
from shelfmark.api.schemas import (
    ConsultationCreate,
    ConsultationMutationResponse,
    ConsultationUpdate,
    ConsultationWithBook,
    ConsultationWithBookAndUser,
    ErrorResponse,
)
from shelfmark.storage.consultation_repository import ConsultationRepository
from shelfmark.storage.models import STAFF_ROLES


router = APIRouter(prefix="/consultations", tags=["consultations"])

staff_only = require_roles(*STAFF_ROLES)


@router.post(
    "",
    response_model=ConsultationMutationResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Missing or invalid book, date or slot"},
        404: {"model": ErrorResponse, "description": "Book not found"},
        409: {"model": ErrorResponse, "description": "Slot already requested or booked"},
    },
)
async def create_request(
    body: ConsultationCreate,
    principal: Principal = Depends(get_current_principal),
    repo: ConsultationRepository = Depends(get_consultation_repository),
):
    """Request a consultation slot for the authenticated user."""
    async with service_errors("Error creating consultation request"):
        request = await repo.create(
            user_id=principal.user_id,
            book_id=body.book_id,
            requested_date=body.requested_date,
            time_slot=body.requested_time_slot,
            notes=body.notes,
        )

    return {"message": "Consultation request created successfully", "request": request}


@router.get("/my-requests", response_model=list[ConsultationWithBook])
async def list_my_requests(
    principal: Principal = Depends(get_current_principal),
    repo: ConsultationRepository = Depends(get_consultation_repository),
):
    """The caller's own requests, newest first."""
    async with service_errors("Error fetching consultation requests"):
        return await repo.list_for_user(principal.user_id)


@router.get(
    "",
    response_model=list[ConsultationWithBookAndUser],
    responses={403: {"model": ErrorResponse, "description": "Insufficient permissions"}},
)
async def list_all_requests(
    principal: Principal = Depends(staff_only),
    repo: ConsultationRepository = Depends(get_consultation_repository),
):
    """Every request with book and requester details (librarian or admin)."""
    async with service_errors("Error fetching consultation requests"):
        requests = await repo.list_all()

    logger.debug(f"{principal.role.value} {principal.user_id} listed {len(requests)} requests")
    return requests


@router.put(
    "/{request_id}",
    response_model=ConsultationMutationResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid status"},
        403: {"model": ErrorResponse, "description": "Insufficient permissions"},
        404: {"model": ErrorResponse, "description": "Consultation request not found"},
    },
)
async def update_request(
    request_id: int,
    body: ConsultationUpdate,
    principal: Principal = Depends(staff_only),
    repo: ConsultationRepository = Depends(get_consultation_repository),
):
    """Set the status and admin note of a request (librarian or admin)."""
    async with service_errors("Error updating consultation request"):
        request = await repo.update_status(request_id, body.status, body.admin_notes)

    logger.info(f"User {principal.user_id} set request {request_id} to {request.status}")
    return {"message": "Consultation request updated successfully", "request": request}
