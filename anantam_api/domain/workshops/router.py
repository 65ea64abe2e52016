"""Workshop router - FastAPI endpoints for workshops and registrations"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from sqlalchemy.orm import Session

from ...auth import get_current_admin, get_current_user
from ...database import get_db
from ...models import User
from ...storage import image_url_for, is_storage_configured, upload_image, validate_image_upload
from ..payments.razorpay_service import RazorpayService
from .schemas import (
    AvailabilityResponse,
    CancellationResult,
    CancelRegistrationRequest,
    PaymentOrderCreate,
    PaymentOrderResult,
    PaymentVerifyRequest,
    RegistrationCreate,
    RegistrationPage,
    RegistrationResponse,
    RegistrationResult,
    RegistrationStatus,
    RegistrationStatusUpdate,
    WorkshopCreate,
    WorkshopResponse,
    WorkshopUpdate,
    registration_to_response,
    workshop_to_response,
)
from .service import WorkshopService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workshops", tags=["Workshops"])


def get_razorpay_service() -> RazorpayService:
    """Dependency injection for the payment gateway client"""
    return RazorpayService()


def get_workshop_service(
    db: Session = Depends(get_db),
    payments: RazorpayService = Depends(get_razorpay_service),
) -> WorkshopService:
    """Dependency injection for WorkshopService"""
    return WorkshopService(db, payments)


def _to_response(workshop) -> WorkshopResponse:
    return workshop_to_response(workshop, image_url_for(workshop.image_key))


# ============================================================================
# ADMIN
# Declared before /{workshop_id} so the literal paths win
# ============================================================================


@router.get("/admin/workshops", response_model=list[WorkshopResponse])
async def admin_list_workshops(
    admin: User = Depends(get_current_admin),
    service: WorkshopService = Depends(get_workshop_service),
):
    """All workshops including inactive ones"""
    return [_to_response(w) for w in service.list_workshops(active_only=False)]


@router.post("/admin/workshops", response_model=WorkshopResponse, status_code=201)
async def admin_create_workshop(
    data: WorkshopCreate,
    admin: User = Depends(get_current_admin),
    service: WorkshopService = Depends(get_workshop_service),
):
    return _to_response(service.create_workshop(data))


@router.get("/admin/registrations", response_model=RegistrationPage)
async def admin_list_registrations(
    workshopId: Optional[int] = Query(None),
    status: Optional[RegistrationStatus] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    admin: User = Depends(get_current_admin),
    service: WorkshopService = Depends(get_workshop_service),
):
    """Paginated registrations, newest first, optionally filtered by workshop and status"""
    result = service.list_registrations(workshopId, status, page, limit)
    result["registrations"] = [
        registration_to_response(r, include_user=True) for r in result["registrations"]
    ]
    return result


@router.put("/admin/registrations/{registration_id}/status", response_model=RegistrationResult)
async def admin_update_registration_status(
    registration_id: int,
    data: RegistrationStatusUpdate,
    admin: User = Depends(get_current_admin),
    service: WorkshopService = Depends(get_workshop_service),
):
    registration = service.update_registration_status(registration_id, data)
    return {
        "message": "Registration status updated successfully",
        "registration": registration_to_response(registration, include_user=True),
    }


@router.put("/admin/workshops/{workshop_id}", response_model=WorkshopResponse)
async def admin_update_workshop(
    workshop_id: int,
    data: WorkshopUpdate,
    admin: User = Depends(get_current_admin),
    service: WorkshopService = Depends(get_workshop_service),
):
    return _to_response(service.update_workshop(workshop_id, data))


@router.delete("/admin/workshops/{workshop_id}")
async def admin_delete_workshop(
    workshop_id: int,
    admin: User = Depends(get_current_admin),
    service: WorkshopService = Depends(get_workshop_service),
):
    """Delete a workshop together with all of its registrations"""
    service.delete_workshop(workshop_id)
    return {"message": "Workshop deleted successfully"}


@router.patch("/admin/workshops/{workshop_id}/toggle-status")
async def admin_toggle_workshop(
    workshop_id: int,
    admin: User = Depends(get_current_admin),
    service: WorkshopService = Depends(get_workshop_service),
):
    workshop = service.toggle_status(workshop_id)
    state = "activated" if workshop.is_active else "deactivated"
    return {
        "message": f"Workshop {state} successfully",
        "workshop": _to_response(workshop),
    }


@router.post("/admin/workshops/{workshop_id}/image", response_model=WorkshopResponse)
async def admin_upload_workshop_image(
    workshop_id: int,
    file: UploadFile = File(...),
    admin: User = Depends(get_current_admin),
    service: WorkshopService = Depends(get_workshop_service),
):
    """Upload a cover image to R2 and attach it to the workshop"""
    service.get_workshop(workshop_id)

    if not is_storage_configured():
        raise HTTPException(status_code=503, detail="Image storage not configured")

    contents = await file.read()
    ext = validate_image_upload(file.filename, file.content_type, len(contents))

    try:
        key = upload_image(f"workshops/{workshop_id}", contents, file.content_type, ext)
    except Exception as e:
        logger.error(f"❌ Workshop image upload failed for {workshop_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to upload image") from e

    return _to_response(service.set_image(workshop_id, key))


# ============================================================================
# USER
# ============================================================================


@router.post("/register", response_model=RegistrationResult, status_code=201)
async def register_for_workshop(
    data: RegistrationCreate,
    current_user: User = Depends(get_current_user),
    service: WorkshopService = Depends(get_workshop_service),
):
    """Register with offline payment; the seat is held until cancelled"""
    registration = service.register_offline(data, current_user)
    return {
        "message": "Registration successful",
        "registration": registration_to_response(registration),
    }


@router.post("/payment/create", response_model=PaymentOrderResult, status_code=201)
async def create_payment_order(
    data: PaymentOrderCreate,
    current_user: User = Depends(get_current_user),
    service: WorkshopService = Depends(get_workshop_service),
):
    """Create a Razorpay order for the workshop price"""
    return await service.create_payment_order(data, current_user)


@router.post("/payment/verify", response_model=RegistrationResult, status_code=201)
async def verify_payment(
    data: PaymentVerifyRequest,
    current_user: User = Depends(get_current_user),
    service: WorkshopService = Depends(get_workshop_service),
):
    """Check the checkout signature, then register as paid"""
    registration = await service.verify_payment_and_register(data, current_user)
    return {
        "message": "Payment verified and registration successful",
        "registration": registration_to_response(registration),
    }


@router.get("/user/registrations", response_model=list[RegistrationResponse])
async def get_user_registrations(
    current_user: User = Depends(get_current_user),
    service: WorkshopService = Depends(get_workshop_service),
):
    return [registration_to_response(r) for r in service.list_user_registrations(current_user)]


@router.put("/user/registrations/{registration_id}/cancel", response_model=CancellationResult)
async def cancel_registration(
    registration_id: int,
    data: Optional[CancelRegistrationRequest] = None,
    current_user: User = Depends(get_current_user),
    service: WorkshopService = Depends(get_workshop_service),
):
    """Cancel one of the caller's registrations and report the refund owed"""
    reason = data.reason if data else None
    registration, refund = service.cancel_registration(registration_id, current_user, reason)
    return {
        "message": "Registration cancelled successfully",
        "refundAmount": float(refund),
        "registration": registration_to_response(registration),
    }


# ============================================================================
# PUBLIC
# ============================================================================


@router.get("", response_model=list[WorkshopResponse])
async def list_workshops(service: WorkshopService = Depends(get_workshop_service)):
    """Active workshops, newest first"""
    return [_to_response(w) for w in service.list_workshops()]


@router.get("/{workshop_id}/availability", response_model=AvailabilityResponse)
async def check_availability(
    workshop_id: int,
    session_date: date = Query(..., alias="date", description="Session date (YYYY-MM-DD)"),
    service: WorkshopService = Depends(get_workshop_service),
):
    return service.check_availability(workshop_id, session_date)


@router.get("/{workshop_id}", response_model=WorkshopResponse)
async def get_workshop(
    workshop_id: int,
    service: WorkshopService = Depends(get_workshop_service),
):
    return _to_response(service.get_active_workshop(workshop_id))
