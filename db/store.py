"""
Persistence for subjects, compatibility matches and card readings.

All public methods open their own short-lived session and return plain
dicts, so callers never hold ORM objects across threads.
"""
from __future__ import annotations
import datetime as dt
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from db.models import (
    MATCH_FAILED,
    MATCH_PENDING,
    CompatibilityMatch,
    Reading,
    Subject,
)

logger = logging.getLogger(__name__)


class NotFoundError(LookupError):
    """Raised when a subject, match or reading id does not exist."""


def _iso(value: Optional[dt.datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def subject_to_dict(row: Subject) -> Dict[str, Any]:
    return {
        "id": row.id,
        "kind": row.kind,
        "name": row.name,
        "birth_date": row.birth_date.isoformat() if row.birth_date else None,
        "birth_time": row.birth_time,
        "city": row.city,
        "timezone": row.timezone,
        "created_at": _iso(row.created_at),
    }


def match_to_dict(row: CompatibilityMatch) -> Dict[str, Any]:
    return {
        "id": row.id,
        "subject_a_id": row.subject_a_id,
        "subject_b_id": row.subject_b_id,
        "kind": row.kind,
        "status": row.status,
        "score": int(row.score or 0),
        "analysis": dict(row.analysis or {}),
        "error": row.error,
        "created_at": _iso(row.created_at),
        "updated_at": _iso(row.updated_at),
    }


def reading_to_dict(row: Reading) -> Dict[str, Any]:
    return {
        "id": row.id,
        "match_id": row.match_id,
        "card_name": row.card_name,
        "meaning": row.meaning,
        "interpretation": row.interpretation,
        "interpretation_source": row.interpretation_source,
        "image_url": row.image_url,
        "image_source": row.image_source,
        "audio_data": row.audio_data,
        "audio_mime_type": row.audio_mime_type,
        "created_at": _iso(row.created_at),
    }


class Store:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def session(self) -> Iterator[Session]:
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    # --------------- Subjects ---------------
    def add_subject(
        self,
        name: str,
        kind: str = "person",
        birth_date: Optional[dt.date] = None,
        birth_time: Optional[str] = None,
        city: Optional[str] = None,
        timezone: Optional[str] = None,
    ) -> Dict[str, Any]:
        with self.session() as db:
            row = Subject(
                name=name,
                kind=kind,
                birth_date=birth_date,
                birth_time=birth_time,
                city=city,
                timezone=timezone,
            )
            db.add(row)
            db.flush()
            return subject_to_dict(row)

    def get_subject(self, subject_id: str) -> Dict[str, Any]:
        with self.session() as db:
            row = db.get(Subject, subject_id)
            if row is None:
                raise NotFoundError(f"Subject not found: {subject_id}")
            return subject_to_dict(row)

    # --------------- Matches ---------------
    def get_match(self, match_id: str) -> Dict[str, Any]:
        with self.session() as db:
            row = db.get(CompatibilityMatch, match_id)
            if row is None:
                raise NotFoundError(f"Match not found: {match_id}")
            return match_to_dict(row)

    def find_match(self, subject_a_id: str, subject_b_id: str) -> Optional[Dict[str, Any]]:
        with self.session() as db:
            row = (
                db.query(CompatibilityMatch)
                .filter(
                    CompatibilityMatch.subject_a_id == subject_a_id,
                    CompatibilityMatch.subject_b_id == subject_b_id,
                )
                .one_or_none()
            )
            return match_to_dict(row) if row is not None else None

    def insert_match_if_absent(self, subject_a_id: str, subject_b_id: str, kind: str) -> Tuple[Dict[str, Any], bool]:
        """Insert a pending row for the ordered pair. Returns ``(match, created)``.

        The unique constraint on the pair decides races: a losing insert rolls
        back and returns the row the winner committed.
        """
        existing = self.find_match(subject_a_id, subject_b_id)
        if existing is not None:
            return existing, False
        try:
            with self.session() as db:
                row = CompatibilityMatch(
                    subject_a_id=subject_a_id,
                    subject_b_id=subject_b_id,
                    kind=kind,
                    status=MATCH_PENDING,
                    score=0,
                    analysis={"status": MATCH_PENDING},
                )
                db.add(row)
                db.flush()
                created = match_to_dict(row)
        except IntegrityError:
            logger.info("match_insert_conflict", extra={"subject_a_id": subject_a_id, "subject_b_id": subject_b_id})
            winner = self.find_match(subject_a_id, subject_b_id)
            if winner is None:
                raise
            return winner, False
        return created, True

    def update_match(self, match_id: str, **fields: Any) -> Dict[str, Any]:
        with self.session() as db:
            row = db.get(CompatibilityMatch, match_id)
            if row is None:
                raise NotFoundError(f"Match not found: {match_id}")
            for key, value in fields.items():
                setattr(row, key, value)
            db.flush()
            return match_to_dict(row)

    def reset_failed_match(self, match_id: str) -> bool:
        """Flip a failed match back to pending. True only for the caller that flipped it."""
        with self.session() as db:
            count = (
                db.query(CompatibilityMatch)
                .filter(CompatibilityMatch.id == match_id, CompatibilityMatch.status == MATCH_FAILED)
                .update(
                    {"status": MATCH_PENDING, "error": None, "analysis": {"status": MATCH_PENDING}},
                    synchronize_session=False,
                )
            )
            return count == 1

    # --------------- Readings ---------------
    def insert_reading(self, **fields: Any) -> Dict[str, Any]:
        with self.session() as db:
            row = Reading(**fields)
            db.add(row)
            db.flush()
            return reading_to_dict(row)

    def get_reading(self, reading_id: str) -> Dict[str, Any]:
        with self.session() as db:
            row = db.get(Reading, reading_id)
            if row is None:
                raise NotFoundError(f"Reading not found: {reading_id}")
            return reading_to_dict(row)

    def set_reading_audio_once(self, reading_id: str, audio_data: str, mime_type: str) -> bool:
        """Store audio only if none is stored yet. Returns True when this call wrote it."""
        with self.session() as db:
            count = (
                db.query(Reading)
                .filter(Reading.id == reading_id, Reading.audio_data.is_(None))
                .update({"audio_data": audio_data, "audio_mime_type": mime_type}, synchronize_session=False)
            )
            return count == 1
