from __future__ import annotations
import logging
from typing import Any, Dict, Optional, Tuple

from astro_core.pillars import BirthSubject
from db.models import MATCH_FAILED, MATCH_PENDING, MATCH_READY
from db.store import Store
from services.ai_agent_services import TextSynthesizer
from services.compatibility_services import MatchKind, compute_compatibility, subject_from_row
from services.job_queue import BackgroundJobQueue

logger = logging.getLogger(__name__)


def match_job_key(match_id: str) -> str:
    return f"match:{match_id}"


class MatchService:
    """Idempotent creation and background promotion of compatibility matches."""

    def __init__(self, store: Store, synthesizer: TextSynthesizer, jobs: BackgroundJobQueue):
        self.store = store
        self.synthesizer = synthesizer
        self.jobs = jobs

    def _subjects(self, subject_a_id: str, subject_b_id: str) -> Tuple[BirthSubject, BirthSubject, MatchKind]:
        row_a = self.store.get_subject(subject_a_id)
        row_b = self.store.get_subject(subject_b_id)
        subject_a = subject_from_row(row_a)
        subject_b = subject_from_row(row_b, fallback=subject_a)
        return subject_a, subject_b, MatchKind(row_b["kind"])

    def ensure_match(self, subject_a_id: str, subject_b_id: str) -> Dict[str, Any]:
        """Return the pair's match row, inserting a pending placeholder if there is none."""
        row_b = self.store.get_subject(subject_b_id)
        self.store.get_subject(subject_a_id)
        match, created = self.store.insert_match_if_absent(subject_a_id, subject_b_id, row_b["kind"])
        if created:
            logger.info("match_placeholder_created", extra={"match_id": match["id"]})
        return match

    def create_match_eager(
        self,
        subject_a_id: str,
        subject_b_id: str,
        context: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Compute inline and store once. Provider errors propagate to the caller."""
        subject_a, subject_b, kind = self._subjects(subject_a_id, subject_b_id)
        result = compute_compatibility(subject_a, subject_b, kind, self.synthesizer, context)
        match, _ = self.store.insert_match_if_absent(subject_a_id, subject_b_id, kind.value)
        updated = self.store.update_match(
            match["id"],
            status=MATCH_READY,
            score=result.score,
            analysis=result.analysis,
            error=None,
        )
        logger.info("match_ready", extra={"match_id": updated["id"], "score": result.score, "mode": "eager"})
        return updated

    def create_match_background(
        self,
        subject_a_id: str,
        subject_b_id: str,
        context: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Return the placeholder immediately and synthesize it on the job queue."""
        match = self.ensure_match(subject_a_id, subject_b_id)
        status = match["status"]
        if status == MATCH_READY:
            return match
        if status == MATCH_FAILED:
            if self.store.reset_failed_match(match["id"]):
                logger.info("match_retry", extra={"match_id": match["id"]})
            match = self.store.get_match(match["id"])
        # a run still finishing for this key gets a follow-up, which sees the reset row
        self.jobs.enqueue(match_job_key(match["id"]), self._run_synthesis, match["id"], context)
        return match

    def _run_synthesis(self, match_id: str, context: Optional[str] = None) -> None:
        match = self.store.get_match(match_id)
        if match["status"] != MATCH_PENDING:
            return
        try:
            subject_a, subject_b, kind = self._subjects(match["subject_a_id"], match["subject_b_id"])
            result = compute_compatibility(subject_a, subject_b, kind, self.synthesizer, context)
        except Exception as exc:
            self.store.update_match(
                match_id,
                status=MATCH_FAILED,
                error=str(exc),
                analysis={"status": MATCH_FAILED},
            )
            logger.warning("match_failed", extra={"match_id": match_id, "error": str(exc)})
            return
        self.store.update_match(
            match_id,
            status=MATCH_READY,
            score=result.score,
            analysis=result.analysis,
            error=None,
        )
        logger.info("match_ready", extra={"match_id": match_id, "score": result.score, "mode": "background"})

    def get_match(self, match_id: str) -> Dict[str, Any]:
        return self.store.get_match(match_id)
