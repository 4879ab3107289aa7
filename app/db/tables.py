# app/db/tables.py

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, String, Text, Time
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class BookingEventType(Base):
    __tablename__ = "booking_event_types"

    id = Column(String, primary_key=True, default=_uuid)
    investor_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    duration_minutes = Column(Integer, nullable=False, default=30)
    buffer_before_minutes = Column(Integer, nullable=False, default=0)
    buffer_after_minutes = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)


class AvailabilityRule(Base):
    __tablename__ = "booking_availability"

    id = Column(String, primary_key=True, default=_uuid)
    investor_id = Column(String, nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False)  # 0=Sunday ... 6=Saturday
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)


class SlotOverride(Base):
    __tablename__ = "booking_slot_overrides"

    id = Column(String, primary_key=True, default=_uuid)
    investor_id = Column(String, nullable=False, index=True)
    date = Column(Date, nullable=False)
    is_available = Column(Boolean, nullable=False, default=False)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String, primary_key=True, default=_uuid)
    investor_id = Column(String, nullable=False, index=True)
    event_type_id = Column(String, ForeignKey("booking_event_types.id"), nullable=True)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    booker_name = Column(String, nullable=True)
    booker_email = Column(String, nullable=True)
    booker_company = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(String, nullable=False, default="confirmed")  # confirmed, cancelled
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)


class LinkedCalendar(Base):
    __tablename__ = "linked_calendars"

    id = Column(String, primary_key=True, default=_uuid)
    investor_id = Column(String, nullable=False, index=True)
    calendar_id = Column(String, nullable=True, default="primary")
    access_token = Column(Text, nullable=True)
    refresh_token = Column(Text, nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    include_in_availability = Column(Boolean, nullable=False, default=True)


class Company(Base):
    __tablename__ = "companies"

    id = Column(String, primary_key=True, default=_uuid)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    stage = Column(String, nullable=True)
    category = Column(String, nullable=True)


class MemoResponse(Base):
    __tablename__ = "memo_responses"

    id = Column(String, primary_key=True, default=_uuid)
    company_id = Column(String, ForeignKey("companies.id"), nullable=False, index=True)
    question_key = Column(String, nullable=False)
    answer = Column(Text, nullable=True)
