"""Workshop repository - Database operations for workshops and registrations"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload, selectinload

from ...models import (
    ACTIVE_REGISTRATION_STATUSES,
    Workshop,
    WorkshopRegistration,
    WorkshopSession,
)


class WorkshopRepository:
    """Repository for workshop and registration database operations"""

    # ------------------------------------------------------------------
    # Workshops
    # ------------------------------------------------------------------

    @staticmethod
    def list_workshops(db: Session, active_only: bool = True) -> list[Workshop]:
        query = db.query(Workshop).options(selectinload(Workshop.sessions))
        if active_only:
            query = query.filter(Workshop.is_active.is_(True))
        return query.order_by(Workshop.created_at.desc(), Workshop.id.desc()).all()

    @staticmethod
    def get_workshop(db: Session, workshop_id: int) -> Optional[Workshop]:
        return (
            db.query(Workshop)
            .options(selectinload(Workshop.sessions))
            .filter(Workshop.id == workshop_id)
            .first()
        )

    @staticmethod
    def get_active_workshop(db: Session, workshop_id: int) -> Optional[Workshop]:
        return (
            db.query(Workshop)
            .options(selectinload(Workshop.sessions))
            .filter(Workshop.id == workshop_id, Workshop.is_active.is_(True))
            .first()
        )

    @staticmethod
    def create_workshop(db: Session, sessions: list[dict], **fields) -> Workshop:
        workshop = Workshop(**fields)
        workshop.sessions = [
            WorkshopSession(
                session_date=s["session_date"], spots=s["spots"], allocated_spots=s["spots"]
            )
            for s in sessions
        ]
        db.add(workshop)
        db.commit()
        db.refresh(workshop)
        return workshop

    @staticmethod
    def update_workshop(db: Session, workshop: Workshop, **updates) -> Workshop:
        for key, value in updates.items():
            setattr(workshop, key, value)
        workshop.updated_at = datetime.utcnow()
        db.commit()
        db.refresh(workshop)
        return workshop

    @staticmethod
    def replace_sessions(db: Session, workshop: Workshop, sessions: list[dict]) -> None:
        """
        Replace the session list of a workshop.

        A session that already exists on the same date keeps the seats already
        booked: its remaining count becomes the new allocation minus the booked
        seats (never below zero).
        """
        existing = {s.session_date: s for s in workshop.sessions}
        replacement = []
        for item in sessions:
            current = existing.get(item["session_date"])
            if current is not None:
                booked = current.allocated_spots - current.spots
                current.allocated_spots = item["spots"]
                current.spots = max(item["spots"] - booked, 0)
                replacement.append(current)
            else:
                replacement.append(
                    WorkshopSession(
                        session_date=item["session_date"],
                        spots=item["spots"],
                        allocated_spots=item["spots"],
                    )
                )
        workshop.sessions = replacement

    @staticmethod
    def delete_workshop(db: Session, workshop: Workshop) -> None:
        db.delete(workshop)
        db.commit()

    # ------------------------------------------------------------------
    # Seat counters
    # ------------------------------------------------------------------

    @staticmethod
    def get_session(db: Session, workshop_id: int, session_date: date) -> Optional[WorkshopSession]:
        return (
            db.query(WorkshopSession)
            .filter(
                WorkshopSession.workshop_id == workshop_id,
                WorkshopSession.session_date == session_date,
            )
            .first()
        )

    @staticmethod
    def claim_spots(db: Session, workshop_id: int, session_date: date, count: int = 1) -> Optional[int]:
        """
        Decrement the session counter only if enough seats remain.

        Single conditional UPDATE, so two requests racing for the last seat
        cannot both succeed. Returns the remaining seats, or None when nothing
        was claimed. Does not commit.
        """
        claimed = (
            db.query(WorkshopSession)
            .filter(
                WorkshopSession.workshop_id == workshop_id,
                WorkshopSession.session_date == session_date,
                WorkshopSession.spots >= count,
            )
            .update({WorkshopSession.spots: WorkshopSession.spots - count}, synchronize_session=False)
        )
        if claimed != 1:
            return None
        return WorkshopRepository._remaining(db, workshop_id, session_date)

    @staticmethod
    def release_spots(db: Session, workshop_id: int, session_date: date, count: int = 1) -> Optional[int]:
        """
        Increment the session counter without exceeding its allocation.

        Returns the remaining seats, or None when the session is gone or
        already full. Does not commit.
        """
        released = (
            db.query(WorkshopSession)
            .filter(
                WorkshopSession.workshop_id == workshop_id,
                WorkshopSession.session_date == session_date,
                WorkshopSession.spots + count <= WorkshopSession.allocated_spots,
            )
            .update({WorkshopSession.spots: WorkshopSession.spots + count}, synchronize_session=False)
        )
        if released != 1:
            return None
        return WorkshopRepository._remaining(db, workshop_id, session_date)

    @staticmethod
    def _remaining(db: Session, workshop_id: int, session_date: date) -> Optional[int]:
        return (
            db.query(WorkshopSession.spots)
            .filter(
                WorkshopSession.workshop_id == workshop_id,
                WorkshopSession.session_date == session_date,
            )
            .scalar()
        )

    # ------------------------------------------------------------------
    # Registrations
    # ------------------------------------------------------------------

    @staticmethod
    def find_active_registration(
        db: Session, workshop_id: int, user_id: int, session_date: date
    ) -> Optional[WorkshopRegistration]:
        return (
            db.query(WorkshopRegistration)
            .filter(
                WorkshopRegistration.workshop_id == workshop_id,
                WorkshopRegistration.user_id == user_id,
                WorkshopRegistration.selected_date == session_date,
                WorkshopRegistration.status.in_(ACTIVE_REGISTRATION_STATUSES),
            )
            .first()
        )

    @staticmethod
    def find_registration_by_payment(
        db: Session, gateway_order_id: str, payment_id: str
    ) -> Optional[WorkshopRegistration]:
        """Any registration, cancelled or not, already settled by this order or payment"""
        return (
            db.query(WorkshopRegistration)
            .filter(
                or_(
                    WorkshopRegistration.gateway_order_id == gateway_order_id,
                    WorkshopRegistration.payment_id == payment_id,
                )
            )
            .first()
        )

    @staticmethod
    def get_registration(db: Session, registration_id: int) -> Optional[WorkshopRegistration]:
        return (
            db.query(WorkshopRegistration)
            .options(joinedload(WorkshopRegistration.workshop), joinedload(WorkshopRegistration.user))
            .filter(WorkshopRegistration.id == registration_id)
            .first()
        )

    @staticmethod
    def get_user_registration(
        db: Session, registration_id: int, user_id: int
    ) -> Optional[WorkshopRegistration]:
        return (
            db.query(WorkshopRegistration)
            .options(joinedload(WorkshopRegistration.workshop))
            .filter(
                WorkshopRegistration.id == registration_id,
                WorkshopRegistration.user_id == user_id,
            )
            .first()
        )

    @staticmethod
    def list_user_registrations(db: Session, user_id: int) -> list[WorkshopRegistration]:
        return (
            db.query(WorkshopRegistration)
            .options(joinedload(WorkshopRegistration.workshop))
            .filter(WorkshopRegistration.user_id == user_id)
            .order_by(WorkshopRegistration.created_at.desc(), WorkshopRegistration.id.desc())
            .all()
        )

    @staticmethod
    def list_registrations(
        db: Session,
        workshop_id: Optional[int] = None,
        status: Optional[str] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list[WorkshopRegistration], int]:
        query = db.query(WorkshopRegistration)
        if workshop_id is not None:
            query = query.filter(WorkshopRegistration.workshop_id == workshop_id)
        if status:
            query = query.filter(WorkshopRegistration.status == status)

        total = query.count()
        registrations = (
            query.options(joinedload(WorkshopRegistration.workshop), joinedload(WorkshopRegistration.user))
            .order_by(WorkshopRegistration.created_at.desc(), WorkshopRegistration.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return registrations, total

    @staticmethod
    def count_user_registrations(db: Session, user_id: int, statuses: tuple[str, ...]) -> int:
        return (
            db.query(WorkshopRegistration)
            .filter(
                WorkshopRegistration.user_id == user_id,
                WorkshopRegistration.status.in_(statuses),
            )
            .count()
        )

    @staticmethod
    def add_registration(db: Session, **fields) -> WorkshopRegistration:
        """Stage a registration in the current transaction (no commit)"""
        registration = WorkshopRegistration(**fields)
        db.add(registration)
        db.flush()
        return registration

    @staticmethod
    def mark_cancelled(
        db: Session,
        registration: WorkshopRegistration,
        reason: str,
        refund_amount,
    ) -> bool:
        """
        Flip an active registration to cancelled.

        Conditional on the stored status still being active, so a duplicate
        cancel racing this one updates nothing. Does not commit.
        """
        now = datetime.utcnow()
        updated = (
            db.query(WorkshopRegistration)
            .filter(
                WorkshopRegistration.id == registration.id,
                WorkshopRegistration.status.in_(ACTIVE_REGISTRATION_STATUSES),
            )
            .update(
                {
                    WorkshopRegistration.status: "cancelled",
                    WorkshopRegistration.cancellation_date: now,
                    WorkshopRegistration.cancellation_reason: reason,
                    WorkshopRegistration.refund_amount: refund_amount,
                    WorkshopRegistration.updated_at: now,
                },
                synchronize_session=False,
            )
        )
        return updated == 1
