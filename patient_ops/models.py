from __future__ import annotations

import uuid
import datetime as dt

from sqlalchemy import Date, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .db import Base


def new_uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class CalendarEventRow(Base):
    __tablename__ = "calendar_events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    event_type: Mapped[str] = mapped_column(String(20), nullable=False, default="appointment")
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    time: Mapped[str | None] = mapped_column(String(8), nullable=True)  # "HH:MM"

    # free string: the status set is chosen by the UI configuration
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    color: Mapped[str | None] = mapped_column(String(20), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    patient_first_name: Mapped[str] = mapped_column(String(80), nullable=False, default="")
    patient_middle_name: Mapped[str | None] = mapped_column(String(80), nullable=True)
    patient_last_name: Mapped[str] = mapped_column(String(80), nullable=False, default="")

    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class CommunicationRow(Base):
    __tablename__ = "communications"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)

    patient_name: Mapped[str | None] = mapped_column(String(250), nullable=True)
    patient_first_name: Mapped[str] = mapped_column(String(80), nullable=False)
    patient_middle_name: Mapped[str | None] = mapped_column(String(80), nullable=True)
    patient_last_name: Mapped[str] = mapped_column(String(80), nullable=False)

    school_year: Mapped[str] = mapped_column(String(20), nullable=False, default="")
    current_dentist: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    language: Mapped[str] = mapped_column(String(60), nullable=False, default="")
    date_called: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    date_emailed: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    referral_type: Mapped[str] = mapped_column(String(10), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str] = mapped_column(String(120), nullable=False)

    # optional: the encounter this outreach belongs to
    appointment_id: Mapped[str | None] = mapped_column(ForeignKey("calendar_events.id"), nullable=True)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class DentistRow(Base):
    __tablename__ = "dentists"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class StaffRow(Base):
    __tablename__ = "staff"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
