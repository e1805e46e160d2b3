"""
Database Models

SQLAlchemy ORM models for doctors, their weekly hours and bookings.
"""

from datetime import date, datetime, time
from typing import Optional, List

from sqlalchemy import (
    Date, DateTime, ForeignKey, Index, Integer, SmallInteger, String, Text, Time,
    CheckConstraint, UniqueConstraint, text
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


class TimestampMixin:
    """Mixin that adds created_at and updated_at timestamp columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )


class DoctorModel(Base, TimestampMixin):
    """
    Doctor model.

    Seeded administratively; read-only for the scheduling flow.
    """

    __tablename__ = "doctors"
    __table_args__ = (
        Index("idx_doctor_specialty", "specialty"),
        Index("idx_doctor_city", "city"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    crm: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    specialty: Mapped[str] = mapped_column(String(100), nullable=False)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Relationships
    hours: Mapped[List["DoctorHoursModel"]] = relationship(
        "DoctorHoursModel",
        back_populates="doctor",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    bookings: Mapped[List["BookingModel"]] = relationship(
        "BookingModel",
        back_populates="doctor"
    )

    def __repr__(self) -> str:
        return f"<Doctor(id={self.id}, name='{self.name}', specialty='{self.specialty}')>"


class DoctorHoursModel(Base):
    """
    Recurring weekly working window of a doctor.

    weekday: 0 = Sunday ... 6 = Saturday
    """

    __tablename__ = "doctor_hours"
    __table_args__ = (
        Index("idx_hours_doctor_weekday", "doctor_id", "weekday"),
        CheckConstraint("weekday BETWEEN 0 AND 6", name="ck_hours_weekday"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    doctor_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("doctors.id", ondelete="CASCADE"),
        nullable=False
    )
    weekday: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    start: Mapped[time] = mapped_column(Time, nullable=False)
    end: Mapped[time] = mapped_column(Time, nullable=False)

    # Relationships
    doctor: Mapped["DoctorModel"] = relationship("DoctorModel", back_populates="hours")

    def __repr__(self) -> str:
        return (
            f"<DoctorHours(doctor_id={self.doctor_id}, weekday={self.weekday}, "
            f"start={self.start}, end={self.end})>"
        )


class BookingModel(Base, TimestampMixin):
    """
    Booking model.

    One row per committed appointment. The (doctor_id, slot) unique
    constraint backs the no-double-booking rule.
    """

    __tablename__ = "bookings"
    __table_args__ = (
        UniqueConstraint("doctor_id", "slot", name="uq_booking_doctor_slot"),
        Index("idx_booking_doctor", "doctor_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    protocol: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    doctor_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("doctors.id", ondelete="CASCADE"),
        nullable=False
    )
    slot: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    patient_name: Mapped[str] = mapped_column(String(255), nullable=False)
    patient_birth: Mapped[date] = mapped_column(Date, nullable=False)
    specialty: Mapped[str] = mapped_column(String(100), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)

    # Relationships
    doctor: Mapped["DoctorModel"] = relationship("DoctorModel", back_populates="bookings")

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, protocol='{self.protocol}', "
            f"doctor_id={self.doctor_id}, slot={self.slot})>"
        )
