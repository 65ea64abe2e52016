"""Workshop service - Business logic for workshops, seats and registrations"""

import logging
import math
import time
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...config import RAZORPAY_KEY_SECRET
from ...models import User, Workshop, WorkshopRegistration
from ..payments.razorpay_service import RazorpayError, RazorpayService, to_minor_units
from ..payments.signature import verify_payment_signature
from .inventory import has_available_spots
from .refunds import calculate_refund, parse_amount
from .repository import WorkshopRepository
from .schemas import (
    ParticipantInfo,
    PaymentOrderCreate,
    PaymentVerifyRequest,
    RegistrationCreate,
    RegistrationStatusUpdate,
    WorkshopCreate,
    WorkshopUpdate,
)

logger = logging.getLogger(__name__)

WORKSHOP_NOT_FOUND = "Workshop not found"
WORKSHOP_UNAVAILABLE = "Workshop not found or inactive"
NO_SPOTS = "No spots available for selected date"
ALREADY_REGISTERED = "You are already registered for this workshop on the selected date"
REGISTRATION_NOT_FOUND = "Registration not found"
CANNOT_CANCEL = "Registration cannot be cancelled at this time"
PAYMENT_ALREADY_USED = "This payment has already been used for a registration"
ORDER_MISMATCH = "Payment order does not match this registration"
DEFAULT_CANCEL_REASON = "User requested cancellation"
ADMIN_CANCEL_REASON = "Cancelled by admin"

# Attended or still booked; used for the profile activity counter
ATTENDED_STATUSES = ("registered", "confirmed", "completed")


def _order_matches(order: dict, data: PaymentVerifyRequest, user: User) -> bool:
    """Compare the notes stamped on a gateway order with the booking being paid for"""
    notes = order.get("notes") or {}
    return (
        notes.get("workshop_id") == str(data.workshopId)
        and notes.get("user_id") == str(user.id)
        and notes.get("selected_date") == data.selectedDate.isoformat()
    )


class WorkshopService:
    """Service layer for workshop business logic"""

    def __init__(self, db: Session, payments: Optional[RazorpayService] = None):
        self.db = db
        self.repo = WorkshopRepository()
        self.payments = payments or RazorpayService()

    # ========================================================================
    # CATALOGUE
    # ========================================================================

    def list_workshops(self, active_only: bool = True) -> list[Workshop]:
        return self.repo.list_workshops(self.db, active_only=active_only)

    def get_active_workshop(self, workshop_id: int) -> Workshop:
        workshop = self.repo.get_active_workshop(self.db, workshop_id)
        if not workshop:
            raise HTTPException(status_code=404, detail=WORKSHOP_NOT_FOUND)
        return workshop

    def get_workshop(self, workshop_id: int) -> Workshop:
        workshop = self.repo.get_workshop(self.db, workshop_id)
        if not workshop:
            raise HTTPException(status_code=404, detail=WORKSHOP_NOT_FOUND)
        return workshop

    def check_availability(self, workshop_id: int, session_date: date) -> dict:
        workshop = self.get_active_workshop(workshop_id)
        session = workshop.find_session(session_date)
        return {
            "workshopId": workshop.id,
            "date": session_date,
            "available": has_available_spots(workshop, session_date),
            "spots": session.spots if session else 0,
        }

    # ========================================================================
    # REGISTRATION
    # ========================================================================

    def _check_admission(self, workshop_id: int, user: User, session_date: date) -> Workshop:
        """Run the admission checks in order; raise on the first failure"""
        workshop = self.repo.get_active_workshop(self.db, workshop_id)
        if not workshop:
            raise HTTPException(status_code=404, detail=WORKSHOP_UNAVAILABLE)

        if not has_available_spots(workshop, session_date):
            raise HTTPException(status_code=409, detail=NO_SPOTS)

        if self.repo.find_active_registration(self.db, workshop.id, user.id, session_date):
            raise HTTPException(status_code=409, detail=ALREADY_REGISTERED)

        return workshop

    def _admit(
        self,
        workshop_id: int,
        user: User,
        session_date: date,
        participant: ParticipantInfo,
        payment: dict,
    ) -> WorkshopRegistration:
        """
        Admit a participant: claim a seat, then record the registration.

        The seat claim is a conditional UPDATE, so a concurrent request that
        took the last seat after the checks above makes this claim fail
        instead of overbooking. Claim and insert commit together.
        """
        workshop = self._check_admission(workshop_id, user, session_date)

        try:
            remaining = self.repo.claim_spots(self.db, workshop.id, session_date)
            if remaining is None:
                self.db.rollback()
                logger.warning(f"⚠️ Lost the race for the last seat: workshop {workshop.id} on {session_date}")
                raise HTTPException(status_code=409, detail=NO_SPOTS)

            registration = self.repo.add_registration(
                self.db,
                workshop_id=workshop.id,
                user_id=user.id,
                selected_date=session_date,
                participant_name=participant.name,
                participant_email=participant.email,
                participant_phone=participant.phone,
                participant_experience=participant.experience,
                participant_additional_info=participant.additionalInfo,
                payment_amount=workshop.price,
                **payment,
            )
            self.db.commit()
        except HTTPException:
            raise
        except IntegrityError as e:
            self.db.rollback()
            if payment.get("gateway_order_id"):
                # A concurrent verify of the same payment committed first
                logger.warning(f"⚠️ Duplicate use of gateway order {payment['gateway_order_id']} rejected")
                raise HTTPException(status_code=409, detail=PAYMENT_ALREADY_USED) from e
            logger.error(f"❌ Failed to register user {user.id} for workshop {workshop.id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to register for workshop") from e
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to register user {user.id} for workshop {workshop.id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to register for workshop") from e

        self.db.refresh(registration)
        logger.info(
            f"✅ Registration {registration.id}: user {user.id} -> workshop {workshop.id} "
            f"on {session_date} ({remaining} spots left)"
        )
        return registration

    def register_offline(self, data: RegistrationCreate, user: User) -> WorkshopRegistration:
        """Register with payment collected later (offline or bank transfer)"""
        return self._admit(
            data.workshopId,
            user,
            data.selectedDate,
            data.participantInfo,
            {"payment_status": "pending", "payment_method": data.paymentMethod},
        )

    async def create_payment_order(self, data: PaymentOrderCreate, user: User) -> dict:
        """Create a gateway order for a seat that is still available"""
        workshop = self._check_admission(data.workshopId, user, data.selectedDate)

        if not self.payments.is_available():
            logger.error("❌ Razorpay credentials not configured")
            raise HTTPException(status_code=503, detail="Payment gateway not configured")

        amount = to_minor_units(parse_amount(workshop.price))
        if amount <= 0:
            raise HTTPException(status_code=400, detail="Workshop has no payable price")

        try:
            order = await self.payments.create_order(
                amount=amount,
                receipt=f"workshop_{int(time.time() * 1000)}",
                notes={
                    "workshop_id": str(workshop.id),
                    "user_id": str(user.id),
                    "selected_date": data.selectedDate.isoformat(),
                    "participant_name": data.participantInfo.name,
                },
            )
        except RazorpayError as e:
            raise HTTPException(status_code=502, detail="Failed to create payment order") from e

        return {
            "success": True,
            "order": {
                "razorpayOrderId": order["id"],
                "amount": order.get("amount", amount),
                "currency": order.get("currency", self.payments.currency),
                "workshopTitle": workshop.title,
                "selectedDate": data.selectedDate,
                "participantInfo": data.participantInfo,
            },
            "razorpayKey": self.payments.key_id,
        }

    async def verify_payment_and_register(self, data: PaymentVerifyRequest, user: User) -> WorkshopRegistration:
        """
        Accept a gateway payment, then admit.

        The payment must carry a valid checkout signature, must not have
        settled an earlier registration, and its order must have been created
        for this user, workshop and date.
        """
        if not data.razorpay_order_id or not data.razorpay_payment_id or not data.razorpay_signature:
            raise HTTPException(status_code=400, detail="Missing payment verification parameters")

        if not RAZORPAY_KEY_SECRET:
            logger.error("❌ RAZORPAY_KEY_SECRET not configured")
            raise HTTPException(status_code=503, detail="Payment gateway not configured")

        if not verify_payment_signature(
            data.razorpay_order_id,
            data.razorpay_payment_id,
            data.razorpay_signature,
            RAZORPAY_KEY_SECRET,
        ):
            raise HTTPException(status_code=400, detail="Invalid payment signature")

        if self.repo.find_registration_by_payment(self.db, data.razorpay_order_id, data.razorpay_payment_id):
            logger.warning(f"⚠️ Replayed payment {data.razorpay_payment_id} for order {data.razorpay_order_id}")
            raise HTTPException(status_code=409, detail=PAYMENT_ALREADY_USED)

        try:
            order = await self.payments.fetch_order(data.razorpay_order_id)
        except RazorpayError as e:
            raise HTTPException(status_code=502, detail="Failed to confirm payment order") from e

        if not _order_matches(order, data, user):
            logger.warning(
                f"⚠️ Order {data.razorpay_order_id} was not created for user {user.id}, "
                f"workshop {data.workshopId} on {data.selectedDate}"
            )
            raise HTTPException(status_code=400, detail=ORDER_MISMATCH)

        return self._admit(
            data.workshopId,
            user,
            data.selectedDate,
            data.participantInfo,
            {
                "payment_status": "paid",
                "payment_method": "online",
                "payment_id": data.razorpay_payment_id,
                "gateway_order_id": data.razorpay_order_id,
                "gateway_signature": data.razorpay_signature,
            },
        )

    def list_user_registrations(self, user: User) -> list[WorkshopRegistration]:
        return self.repo.list_user_registrations(self.db, user.id)

    def count_attended(self, user: User) -> int:
        return self.repo.count_user_registrations(self.db, user.id, ATTENDED_STATUSES)

    # ========================================================================
    # CANCELLATION
    # ========================================================================

    def cancel_registration(
        self,
        registration_id: int,
        user: User,
        reason: Optional[str] = None,
        today: Optional[date] = None,
    ) -> tuple[WorkshopRegistration, Decimal]:
        """Cancel one of the user's own registrations"""
        registration = self.repo.get_user_registration(self.db, registration_id, user.id)
        if not registration:
            raise HTTPException(status_code=404, detail=REGISTRATION_NOT_FOUND)
        return self._cancel(registration, reason or DEFAULT_CANCEL_REASON, today)

    def _cancel(
        self, registration: WorkshopRegistration, reason: str, today: Optional[date] = None
    ) -> tuple[WorkshopRegistration, Decimal]:
        """
        Cancel, record the refund owed and give the seat back.

        The refund is a ledger entry only; no money is moved here.
        """
        if not registration.can_cancel():
            raise HTTPException(status_code=409, detail=CANNOT_CANCEL)

        refund = calculate_refund(registration.payment_amount, registration.selected_date, today)

        try:
            if not self.repo.mark_cancelled(self.db, registration, reason, refund):
                # Cancelled concurrently by another request
                self.db.rollback()
                raise HTTPException(status_code=409, detail=CANNOT_CANCEL)

            remaining = self.repo.release_spots(
                self.db, registration.workshop_id, registration.selected_date
            )
            if remaining is None:
                logger.warning(
                    f"⚠️ Seat not restored for registration {registration.id}: session "
                    f"{registration.selected_date} missing or already at allocation"
                )
            self.db.commit()
        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to cancel registration {registration.id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to cancel registration") from e

        self.db.refresh(registration)
        logger.info(f"✅ Registration {registration.id} cancelled, refund {refund}")
        return registration, refund

    # ========================================================================
    # ADMIN
    # ========================================================================

    def create_workshop(self, data: WorkshopCreate) -> Workshop:
        fields = {
            "title": data.title,
            "description": data.description,
            "duration": data.duration,
            "schedule": data.schedule,
            "price": data.price,
            "capacity": data.capacity,
            "level": data.level,
            "curriculum": data.curriculum,
            "is_active": data.isActive,
        }
        if data.location:
            fields["location"] = data.location

        sessions = [{"session_date": s.date, "spots": s.spots} for s in data.upcoming]
        workshop = self.repo.create_workshop(self.db, sessions, **fields)
        logger.info(f"✅ Workshop created: {workshop.id} '{workshop.title}'")
        return workshop

    def update_workshop(self, workshop_id: int, data: WorkshopUpdate) -> Workshop:
        workshop = self.get_workshop(workshop_id)

        updates = {}
        if data.title is not None:
            updates["title"] = data.title
        if data.description is not None:
            updates["description"] = data.description
        if data.duration is not None:
            updates["duration"] = data.duration
        if data.schedule is not None:
            updates["schedule"] = data.schedule
        if data.location is not None:
            updates["location"] = data.location
        if data.price is not None:
            updates["price"] = data.price
        if data.capacity is not None:
            updates["capacity"] = data.capacity
        if data.level is not None:
            updates["level"] = data.level
        if data.curriculum is not None:
            updates["curriculum"] = data.curriculum
        if data.isActive is not None:
            updates["is_active"] = data.isActive

        if data.upcoming is not None:
            self.repo.replace_sessions(
                self.db,
                workshop,
                [{"session_date": s.date, "spots": s.spots} for s in data.upcoming],
            )

        return self.repo.update_workshop(self.db, workshop, **updates)

    def delete_workshop(self, workshop_id: int) -> None:
        workshop = self.get_workshop(workshop_id)
        self.repo.delete_workshop(self.db, workshop)
        logger.info(f"🗑️ Workshop {workshop_id} deleted with its registrations")

    def toggle_status(self, workshop_id: int) -> Workshop:
        workshop = self.get_workshop(workshop_id)
        return self.repo.update_workshop(self.db, workshop, is_active=not workshop.is_active)

    def set_image(self, workshop_id: int, image_key: str) -> Workshop:
        workshop = self.get_workshop(workshop_id)
        return self.repo.update_workshop(self.db, workshop, image_key=image_key)

    def list_registrations(
        self,
        workshop_id: Optional[int] = None,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> dict:
        registrations, total = self.repo.list_registrations(
            self.db,
            workshop_id=workshop_id,
            status=status,
            offset=(page - 1) * limit,
            limit=limit,
        )
        return {
            "registrations": registrations,
            "totalPages": math.ceil(total / limit) if limit else 0,
            "currentPage": page,
            "total": total,
        }

    def update_registration_status(
        self, registration_id: int, data: RegistrationStatusUpdate, today: Optional[date] = None
    ) -> WorkshopRegistration:
        registration = self.repo.get_registration(self.db, registration_id)
        if not registration:
            raise HTTPException(status_code=404, detail=REGISTRATION_NOT_FOUND)

        old_status = registration.status

        if data.status == "cancelled" and old_status != "cancelled":
            # Same path as a user cancellation: refund ledger entry and seat release
            registration, _ = self._cancel(registration, ADMIN_CANCEL_REASON, today)
        elif old_status == "cancelled" and data.status != "cancelled":
            raise HTTPException(status_code=409, detail="Cancelled registrations cannot be reopened")
        else:
            registration.status = data.status
            if data.status == "confirmed" and old_status != "confirmed":
                registration.confirmation_date = datetime.utcnow()

        if data.notes:
            registration.notes = data.notes
        registration.updated_at = datetime.utcnow()

        try:
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to update registration {registration_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to update registration status") from e

        self.db.refresh(registration)
        logger.info(f"✅ Registration {registration_id} status {old_status} -> {registration.status}")
        return registration
