from __future__ import annotations
import datetime as dt
import uuid

from sqlalchemy import Column, Date, DateTime, Integer, JSON, String, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base

Base = declarative_base()

MATCH_PENDING = "pending"
MATCH_READY = "ready"
MATCH_FAILED = "failed"


def _new_id() -> str:
    return str(uuid.uuid4())


def _now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class Subject(Base):
    __tablename__ = "subjects"

    id = Column(String(36), primary_key=True, default=_new_id)
    kind = Column(String(16), nullable=False, default="person")  # person | organization
    name = Column(String(255), nullable=False)
    birth_date = Column(Date, nullable=True)
    birth_time = Column(String(8), nullable=True)  # HH:MM[:SS], local wall clock
    city = Column(String(255), nullable=True)
    timezone = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)


class CompatibilityMatch(Base):
    __tablename__ = "compatibility_matches"
    __table_args__ = (UniqueConstraint("subject_a_id", "subject_b_id", name="uq_match_pair"),)

    id = Column(String(36), primary_key=True, default=_new_id)
    subject_a_id = Column(String(36), nullable=False, index=True)
    subject_b_id = Column(String(36), nullable=False, index=True)
    kind = Column(String(16), nullable=False, default="person")
    status = Column(String(16), nullable=False, default=MATCH_PENDING)
    score = Column(Integer, nullable=False, default=0)
    analysis = Column(JSON, nullable=False, default=dict)
    error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)


class Reading(Base):
    __tablename__ = "readings"

    id = Column(String(36), primary_key=True, default=_new_id)
    match_id = Column(String(36), nullable=False, index=True)
    card_name = Column(String(64), nullable=False)
    meaning = Column(Text, nullable=False)
    interpretation = Column(Text, nullable=False)
    interpretation_source = Column(String(16), nullable=False, default="template")  # ai | template
    image_url = Column(Text, nullable=False)
    image_source = Column(String(16), nullable=False, default="static")  # generated | static
    audio_data = Column(Text, nullable=True)  # base64
    audio_mime_type = Column(String(32), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
