from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .database import Base

WORKSHOP_LEVELS = ("Beginner", "Intermediate", "Advanced", "All Levels")
EXPERIENCE_LEVELS = ("Beginner", "Intermediate", "Advanced")
REGISTRATION_STATUSES = ("registered", "confirmed", "cancelled", "completed")
# Registrations in these states hold a seat and may still be cancelled
ACTIVE_REGISTRATION_STATUSES = ("registered", "confirmed")
PAYMENT_STATUSES = ("pending", "paid", "failed", "refunded")
PAYMENT_METHODS = ("online", "offline", "bank_transfer")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=True)  # null for social-login accounts
    auth_method = Column(String(20), default="email", nullable=False)  # email, google
    is_email_verified = Column(Boolean, default=False, nullable=False)
    role = Column(String(20), default="user", nullable=False)  # user, admin
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    registrations = relationship("WorkshopRegistration", back_populates="user")

    def can_login_with_password(self) -> bool:
        return bool(self.password_hash)


class Workshop(Base):
    __tablename__ = "workshops"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    duration = Column(String(100), nullable=False)  # e.g. "2 days"
    schedule = Column(String(255), nullable=False)  # e.g. "Sat-Sun, 10AM-4PM"
    location = Column(String(255), nullable=False, default="Anantam Training Center, Bangalore")
    price = Column(String(50), nullable=False)  # Display string, e.g. "₹1000"
    capacity = Column(Integer, nullable=False)
    level = Column(String(20), nullable=False, default="Beginner")
    curriculum = Column(JSON, default=list, nullable=False)  # Ordered list of topics
    image_key = Column(String(500), nullable=True)  # R2 key for the cover image
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    sessions = relationship(
        "WorkshopSession",
        back_populates="workshop",
        cascade="all, delete-orphan",
        order_by="WorkshopSession.session_date",
    )
    registrations = relationship(
        "WorkshopRegistration", back_populates="workshop", cascade="all, delete-orphan"
    )

    def find_session(self, session_date):
        return next((s for s in self.sessions if s.session_date == session_date), None)


class WorkshopSession(Base):
    __tablename__ = "workshop_sessions"
    __table_args__ = (UniqueConstraint("workshop_id", "session_date", name="uq_workshop_session_date"),)

    id = Column(Integer, primary_key=True, index=True)
    workshop_id = Column(Integer, ForeignKey("workshops.id", ondelete="CASCADE"), nullable=False)
    session_date = Column(Date, nullable=False)
    spots = Column(Integer, nullable=False)  # Remaining seats
    allocated_spots = Column(Integer, nullable=False)  # Seats the session was created with

    workshop = relationship("Workshop", back_populates="sessions")


class WorkshopRegistration(Base):
    __tablename__ = "workshop_registrations"

    id = Column(Integer, primary_key=True, index=True)
    workshop_id = Column(Integer, ForeignKey("workshops.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    selected_date = Column(Date, nullable=False)

    # Participant contact info
    participant_name = Column(String(255), nullable=False)
    participant_email = Column(String(255), nullable=False)
    participant_phone = Column(String(50), nullable=False)
    participant_experience = Column(String(20), nullable=False)
    participant_additional_info = Column(Text, nullable=True)

    # Payment info
    payment_amount = Column(String(50), nullable=False)  # Copied from Workshop.price
    payment_status = Column(String(20), default="pending", nullable=False)
    payment_id = Column(String(255), nullable=True, unique=True)
    payment_method = Column(String(20), nullable=True)
    # One registration per gateway payment; NULL for offline registrations
    gateway_order_id = Column(String(255), nullable=True, unique=True)
    gateway_signature = Column(String(255), nullable=True)

    status = Column(String(20), default="registered", nullable=False, index=True)
    registration_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    confirmation_date = Column(DateTime, nullable=True)
    cancellation_date = Column(DateTime, nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    refund_amount = Column(Numeric(10, 2), default=0, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    workshop = relationship("Workshop", back_populates="registrations")
    user = relationship("User", back_populates="registrations")

    def can_cancel(self) -> bool:
        return self.status in ACTIVE_REGISTRATION_STATUSES
