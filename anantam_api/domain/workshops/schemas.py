"""Workshop domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...models import Workshop, WorkshopRegistration
from ...shared.validators import validate_email, validate_phone, validate_required_text

WorkshopLevel = Literal["Beginner", "Intermediate", "Advanced", "All Levels"]
ExperienceLevel = Literal["Beginner", "Intermediate", "Advanced"]
RegistrationStatus = Literal["registered", "confirmed", "cancelled", "completed"]


# ============================================================================
# WORKSHOPS
# ============================================================================


class SessionInput(BaseModel):
    """A bookable session date and the seats it starts with"""

    date: date
    spots: int = Field(..., ge=0)


class SessionResponse(BaseModel):
    date: date
    spots: int
    allocatedSpots: int
    available: bool


class WorkshopCreate(BaseModel):
    """Schema for creating a workshop (admin)"""

    title: str
    description: str
    duration: str
    schedule: str
    location: Optional[str] = None
    price: str
    capacity: int = Field(..., ge=1)
    level: WorkshopLevel = "Beginner"
    upcoming: list[SessionInput] = []
    curriculum: list[str] = []
    isActive: bool = True

    @field_validator("title", "description", "duration", "schedule", "price")
    @classmethod
    def validate_text(cls, v: str, info) -> str:
        return validate_required_text(v, info.field_name)

    @field_validator("upcoming")
    @classmethod
    def validate_unique_dates(cls, v: list[SessionInput]) -> list[SessionInput]:
        dates = [s.date for s in v]
        if len(dates) != len(set(dates)):
            raise ValueError("Session dates must be unique")
        return v


class WorkshopUpdate(BaseModel):
    """Schema for updating a workshop (admin); omitted fields are left unchanged"""

    title: Optional[str] = None
    description: Optional[str] = None
    duration: Optional[str] = None
    schedule: Optional[str] = None
    location: Optional[str] = None
    price: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=1)
    level: Optional[WorkshopLevel] = None
    upcoming: Optional[list[SessionInput]] = None
    curriculum: Optional[list[str]] = None
    isActive: Optional[bool] = None

    @field_validator("upcoming")
    @classmethod
    def validate_unique_dates(cls, v: Optional[list[SessionInput]]) -> Optional[list[SessionInput]]:
        if v is None:
            return v
        dates = [s.date for s in v]
        if len(dates) != len(set(dates)):
            raise ValueError("Session dates must be unique")
        return v


class WorkshopResponse(BaseModel):
    id: int
    title: str
    description: str
    duration: str
    schedule: str
    location: str
    price: str
    capacity: int
    level: str
    upcoming: list[SessionResponse]
    curriculum: list[str]
    isActive: bool
    imageUrl: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class WorkshopSummary(BaseModel):
    id: int
    title: str
    duration: str
    price: str
    location: str


class AvailabilityResponse(BaseModel):
    workshopId: int
    date: date
    available: bool
    spots: int


# ============================================================================
# REGISTRATIONS
# ============================================================================


class ParticipantInfo(BaseModel):
    name: str
    email: str
    phone: str
    experience: ExperienceLevel
    additionalInfo: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return validate_required_text(v, "name")

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v: str) -> str:
        return validate_email(validate_required_text(v, "email"))

    @field_validator("phone")
    @classmethod
    def validate_phone_field(cls, v: str) -> str:
        return validate_phone(validate_required_text(v, "phone"))


class RegistrationCreate(BaseModel):
    """Offline registration; the seat is held and payment is collected later"""

    workshopId: int
    selectedDate: date
    participantInfo: ParticipantInfo
    paymentMethod: Literal["offline", "bank_transfer"] = "offline"


class PaymentOrderCreate(BaseModel):
    workshopId: int
    selectedDate: date
    participantInfo: ParticipantInfo


class PaymentVerifyRequest(BaseModel):
    # Field names are the ones the Razorpay checkout handler returns
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    razorpay_signature: Optional[str] = None
    workshopId: int
    selectedDate: date
    participantInfo: ParticipantInfo


class CancelRegistrationRequest(BaseModel):
    reason: Optional[str] = None


class RegistrationStatusUpdate(BaseModel):
    status: RegistrationStatus
    notes: Optional[str] = None


class PaymentInfoResponse(BaseModel):
    amount: str
    status: str
    paymentId: Optional[str] = None
    paymentMethod: Optional[str] = None
    razorpayOrderId: Optional[str] = None


class UserSummary(BaseModel):
    id: int
    name: str
    email: str


class RegistrationResponse(BaseModel):
    id: int
    workshop: WorkshopSummary
    user: Optional[UserSummary] = None
    selectedDate: date
    participantInfo: ParticipantInfo
    paymentInfo: PaymentInfoResponse
    registrationStatus: str
    registrationDate: datetime
    confirmationDate: Optional[datetime] = None
    cancellationDate: Optional[datetime] = None
    cancellationReason: Optional[str] = None
    refundAmount: float
    notes: Optional[str] = None


class RegistrationPage(BaseModel):
    registrations: list[RegistrationResponse]
    totalPages: int
    currentPage: int
    total: int


class RegistrationResult(BaseModel):
    message: str
    registration: RegistrationResponse


class CancellationResult(BaseModel):
    message: str
    refundAmount: float
    registration: RegistrationResponse


class PaymentOrderResponse(BaseModel):
    razorpayOrderId: str
    amount: int
    currency: str
    workshopTitle: str
    selectedDate: date
    participantInfo: ParticipantInfo


class PaymentOrderResult(BaseModel):
    success: bool = True
    order: PaymentOrderResponse
    razorpayKey: Optional[str] = None


# ============================================================================
# BUILDERS
# ============================================================================


def workshop_to_response(workshop: Workshop, image_url: Optional[str] = None) -> WorkshopResponse:
    return WorkshopResponse(
        id=workshop.id,
        title=workshop.title,
        description=workshop.description,
        duration=workshop.duration,
        schedule=workshop.schedule,
        location=workshop.location,
        price=workshop.price,
        capacity=workshop.capacity,
        level=workshop.level,
        upcoming=[
            SessionResponse(
                date=s.session_date,
                spots=s.spots,
                allocatedSpots=s.allocated_spots,
                available=s.spots > 0,
            )
            for s in workshop.sessions
        ],
        curriculum=list(workshop.curriculum or []),
        isActive=workshop.is_active,
        imageUrl=image_url,
        createdAt=workshop.created_at,
        updatedAt=workshop.updated_at,
    )


def registration_to_response(
    registration: WorkshopRegistration, include_user: bool = False
) -> RegistrationResponse:
    workshop = registration.workshop
    user = registration.user if include_user else None
    return RegistrationResponse(
        id=registration.id,
        workshop=WorkshopSummary(
            id=workshop.id,
            title=workshop.title,
            duration=workshop.duration,
            price=workshop.price,
            location=workshop.location,
        ),
        user=UserSummary(id=user.id, name=user.name, email=user.email) if user else None,
        selectedDate=registration.selected_date,
        participantInfo=ParticipantInfo.model_construct(
            name=registration.participant_name,
            email=registration.participant_email,
            phone=registration.participant_phone,
            experience=registration.participant_experience,
            additionalInfo=registration.participant_additional_info,
        ),
        paymentInfo=PaymentInfoResponse(
            amount=registration.payment_amount,
            status=registration.payment_status,
            paymentId=registration.payment_id,
            paymentMethod=registration.payment_method,
            razorpayOrderId=registration.gateway_order_id,
        ),
        registrationStatus=registration.status,
        registrationDate=registration.registration_date,
        confirmationDate=registration.confirmation_date,
        cancellationDate=registration.cancellation_date,
        cancellationReason=registration.cancellation_reason,
        refundAmount=float(registration.refund_amount or 0),
        notes=registration.notes,
    )
