"""
SQLAlchemy ORM models for the Studio Booking API.

Tables:
    profiles      — customer and admin accounts (contact details for duplicate checks)
    coaches       — instructors referenced by the schedule sheet coach mapping
    classes       — scheduled studio classes
    bookings      — a customer's seat in a class, with its payment state
    package_types — purchasable class-credit bundles
    packages      — bundles owned by a customer
    transactions  — one row per gateway payment (keyed by payment_id)
"""
import uuid
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Float, DateTime, ForeignKey, Index,
)
from sqlalchemy.orm import relationship

from database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class Profile(Base):
    """Customer profile; email and phone_number feed the duplicate guard."""
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), nullable=True, index=True)
    full_name = Column(String(200), nullable=True)
    phone_number = Column(String(32), nullable=True, index=True)
    role = Column(String(20), nullable=False, default="member")  # "member" | "admin"
    created_at = Column(DateTime, default=datetime.utcnow)

    bookings = relationship("Booking", back_populates="profile", lazy="select")


class Coach(Base):
    """Instructor. Integer ids match column I of the CONFIGURATION sheet."""
    __tablename__ = "coaches"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)

    classes = relationship("StudioClass", back_populates="coach", lazy="select")


class StudioClass(Base):
    """A scheduled class. Times are naive studio-local datetimes."""
    __tablename__ = "classes"

    id = Column(String(36), primary_key=True, default=_uuid)
    title = Column(String(200), nullable=False)
    class_type = Column(String(50), nullable=False)
    coach_id = Column(Integer, ForeignKey("coaches.id"), nullable=True)
    location = Column(String(200), nullable=True)
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False, index=True)
    capacity = Column(Integer, nullable=False, default=6)
    price = Column(Integer, nullable=False, default=0)  # IDR
    original_price = Column(Integer, nullable=True)
    status = Column(String(20), nullable=False, default="scheduled")  # scheduled | delayed | completed | cancelled
    created_at = Column(DateTime, default=datetime.utcnow)

    coach = relationship("Coach", back_populates="classes")
    bookings = relationship("Booking", back_populates="studio_class", lazy="select")

    __table_args__ = (
        # For the completion cron: filter by status, compare end_time
        Index("ix_classes_status_end", "status", "end_time"),
    )


class Booking(Base):
    """A customer's reservation in a class."""
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    class_id = Column(String(36), ForeignKey("classes.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="pending_payment")  # pending_payment | confirmed | cancelled | completed
    payment_status = Column(String(20), nullable=True)  # pending | paid | failed | expired
    payment_id = Column(String(128), nullable=True, index=True)  # gateway order / invoice id
    created_at = Column(DateTime, default=datetime.utcnow)

    profile = relationship("Profile", back_populates="bookings")
    studio_class = relationship("StudioClass", back_populates="bookings")


class PackageType(Base):
    """Catalog entry for a class-credit bundle."""
    __tablename__ = "package_types"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(200), nullable=False)
    class_credits = Column(Integer, nullable=False)
    validity_days = Column(Integer, nullable=False)
    price = Column(Integer, nullable=False)  # IDR
    location = Column(String(200), nullable=True)


class Package(Base):
    """Credits owned by a customer after a successful purchase."""
    __tablename__ = "packages"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    package_type_id = Column(String(36), ForeignKey("package_types.id"), nullable=False)
    total_credits = Column(Integer, nullable=False)
    remaining_credits = Column(Integer, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    status = Column(String(20), nullable=False, default="active")  # active | expired | used
    created_at = Column(DateTime, default=datetime.utcnow)


class Transaction(Base):
    """Payment record written by the gateway webhooks."""
    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), nullable=False, index=True)
    type = Column(String(30), nullable=False)  # package_purchase | single_class
    package_type_id = Column(String(36), nullable=True)
    booking_id = Column(String(36), nullable=True)
    amount = Column(Float, nullable=False)
    payment_method = Column(String(20), nullable=False)  # midtrans | xendit
    payment_status = Column(String(20), nullable=False)
    payment_id = Column(String(128), nullable=False, index=True)
    location = Column(String(200), nullable=True)
    paid_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
