"""
engine.py — ProgressionEngine facade
====================================
One object that a UI layer talks to.  It owns the immutable Catalog and the
injected collaborators; the learner's ProgressRecord is always passed in and
mutated in place, never held.

Collaborators (all optional):
  settings          Settings                   defaults to get_settings()
  clock             () -> datetime             defaults to timezone-aware UTC now
  fetch_progress    (learner_id) -> record|None used by load_progress()
  persist_progress  (record) -> None           called once after every
                                               successful mutation

Flow
----
  engine = ProgressionEngine(load_catalog())
  progress = engine.load_progress("ana")
  engine.set_lesson_completed("fundamentals", True, progress)
  result = engine.submit_quiz("fundamentals-quiz", [2, 2], progress)
  outcome = engine.try_issue_certificate(progress)   # Certificate | Rejected

A call that raises (unknown lesson, bad answer, invalid handbook patch)
leaves the record untouched and does not reach persist_progress.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Callable, Mapping, Optional, Sequence, Union

from progression import aggregator, certification, insights, progress_store, resolver
from progression.catalog import CatalogSource, load_catalog
from progression.certification import Rejected
from progression.config import Settings, get_settings
from progression.grader import QuizResult, grade_quiz
from progression.models import Catalog, Certificate, HandbookProgress, Lesson, ProgressRecord, Quiz

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
FetchProgress = Callable[[str], Optional[ProgressRecord]]
PersistProgress = Callable[[ProgressRecord], None]


class ProgressionEngine:
    """
    Lesson unlocking, completion tracking, quiz grading and certification for
    a single catalog.

    Usage:
        engine = ProgressionEngine(catalog, clock=lambda: fixed_now)
        engine.get_accessible_lessons(progress)
    """

    def __init__(
        self,
        catalog: CatalogSource = None,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
        fetch_progress: Optional[FetchProgress] = None,
        persist_progress: Optional[PersistProgress] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.catalog: Catalog = load_catalog(catalog, settings=self.settings)
        self._clock = clock or progress_store.utcnow
        self._fetch = fetch_progress
        self._persist = persist_progress

    # ── Internals ─────────────────────────────────────────────────────────────

    def now(self) -> datetime:
        return self._clock()

    def _commit(self, progress: ProgressRecord) -> ProgressRecord:
        if self._persist is not None:
            self._persist(progress)
        return progress

    # ── Records ───────────────────────────────────────────────────────────────

    def load_progress(self, learner_id: str) -> ProgressRecord:
        """Fetch the learner's record, or start a fresh one with the default role."""
        record = self._fetch(learner_id) if self._fetch is not None else None
        if record is None:
            logger.info("No stored progress for %s; starting a new record", learner_id)
            record = progress_store.new_progress(learner_id, self.settings.learner.default_role)
        return record

    # ── Reads ─────────────────────────────────────────────────────────────────

    def get_accessible_lessons(self, progress: ProgressRecord) -> list[str]:
        return resolver.get_accessible_lessons(self.catalog, progress)

    def is_accessible(self, lesson_id: str, progress: ProgressRecord) -> bool:
        return resolver.is_accessible(self.catalog.lesson(lesson_id), progress)

    def lesson_availability(self, lesson_id: str, progress: ProgressRecord):
        return resolver.lesson_availability(self.catalog.lesson(lesson_id), progress)

    def get_module_completion(self, progress: ProgressRecord) -> dict[str, float]:
        return aggregator.get_module_completion(self.catalog, progress)

    def overall_completion(self, progress: ProgressRecord) -> int:
        return aggregator.overall_completion(self.catalog, progress)

    def completion_stats(self, progress: ProgressRecord) -> dict:
        return aggregator.completion_stats(self.catalog, progress)

    # ── Lessons ───────────────────────────────────────────────────────────────

    def set_lesson_completed(self, lesson_id: str, completed: bool, progress: ProgressRecord) -> ProgressRecord:
        progress_store.set_lesson_completed(
            progress, lesson_id, completed, catalog=self.catalog, now=self.now(),
        )
        return self._commit(progress)

    # ── Quizzes ───────────────────────────────────────────────────────────────

    def grade_quiz(self, quiz: Union[Quiz, str], answers: Sequence[Optional[int]]) -> QuizResult:
        """Pure scoring; nothing is recorded."""
        if isinstance(quiz, str):
            quiz = self.catalog.quiz(quiz)
        return grade_quiz(quiz, answers)

    def submit_quiz(self, quiz_id: str, answers: Sequence[Optional[int]], progress: ProgressRecord) -> QuizResult:
        """Grade, record the score and attempt, and complete the lesson on a pass."""
        result = self.grade_quiz(self.catalog.quiz(quiz_id), answers)
        progress_store.record_quiz_result(progress, result, catalog=self.catalog, now=self.now())
        self._commit(progress)
        return result

    # ── Certification ─────────────────────────────────────────────────────────

    def try_issue_certificate(self, progress: ProgressRecord) -> Union[Certificate, Rejected]:
        issued_before = len(progress.certificates)
        outcome = certification.try_issue_certificate(
            self.catalog, progress, now=self.now(), settings=self.settings,
        )
        if len(progress.certificates) != issued_before:
            self._commit(progress)
        return outcome

    def certificate_pdf(self, certificate: Certificate, learner_name: Optional[str] = None) -> bytes:
        return certification.generate_certificate_pdf(
            certificate, learner_name=learner_name, program_title=self.catalog.title or None,
        )

    # ── Handbook, role, study time ────────────────────────────────────────────

    def update_handbook_progress(
        self,
        progress: ProgressRecord,
        patch: Union[HandbookProgress, Mapping[str, Any]],
    ) -> ProgressRecord:
        progress_store.update_handbook_progress(progress, patch, now=self.now())
        return self._commit(progress)

    def set_role_path(self, progress: ProgressRecord, role: str) -> ProgressRecord:
        if not insights.is_known_role(role.strip()):
            logger.warning("Learner %s: unknown role path %r", progress.learner_id, role)
        progress_store.set_role_path(progress, role, now=self.now())
        return self._commit(progress)

    def record_study_time(
        self,
        progress: ProgressRecord,
        minutes: int,
        day: Optional[date] = None,
    ) -> ProgressRecord:
        progress_store.record_study_time(progress, minutes, day=day, now=self.now())
        return self._commit(progress)

    # ── Insights ──────────────────────────────────────────────────────────────

    def recommend_next_lessons(self, progress: ProgressRecord, limit: int = 3) -> list[Lesson]:
        return insights.recommend_next_lessons(self.catalog, progress, limit=limit)

    def learning_insights(self, progress: ProgressRecord) -> insights.LearningInsights:
        return insights.learning_insights(self.catalog, progress, today=self.now().date())
