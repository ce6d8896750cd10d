"""
progress_store.py — Mutations over one learner's ProgressRecord
===============================================================
Every function here validates its inputs first and only then mutates the
record in place, so a rejected call leaves the record deep-equal to its
previous value.  Each returns the same record instance it was given.

Public API
----------
  new_progress(learner_id, role_path)         fresh record
  set_lesson_completed(progress, lesson_id, completed, catalog=…)
  record_quiz_result(progress, result, catalog=…)
  append_certificate(progress, certificate)
  set_role_path(progress, role)
  record_study_time(progress, minutes, day=…)
  update_handbook_progress(progress, patch)
  current_streak(time_spent, today)           pure helper
  dump_progress(progress) / load_progress_json(text)

Time is always passed in (``now``) so callers control the clock; when
omitted, timezone-aware UTC now is used.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Mapping, Optional, Union

from progression.grader import QuizResult
from progression.models import Catalog, Certificate, HandbookProgress, ProgressRecord, StudyTime

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_progress(learner_id: str = "default", role_path: str = "Analyst") -> ProgressRecord:
    """Create the one record a learner keeps for their lifetime."""
    return ProgressRecord(learner_id=learner_id, role_path=role_path)


# ─── Lesson completion ───────────────────────────────────────────────────────

def set_lesson_completed(
    progress: ProgressRecord,
    lesson_id: str,
    completed: bool,
    *,
    catalog: Catalog,
    now: Optional[datetime] = None,
) -> ProgressRecord:
    """
    Mark a lesson complete or incomplete.

    Un-marking never cascades: lessons completed on top of this one stay
    completed even though their prerequisite no longer is.  Unlocking of
    dependants is left to the resolver on the next read.

    Raises NotFoundError if the lesson is not in the catalog.
    """
    catalog.lesson(lesson_id)
    now = now or utcnow()

    if completed:
        progress.completed_lessons.add(lesson_id)
    else:
        progress.completed_lessons.discard(lesson_id)
    progress.last_activity_date = now

    logger.info(
        "Learner %s: lesson %s marked %s",
        progress.learner_id, lesson_id, "complete" if completed else "incomplete",
    )
    return progress


# ─── Quiz results ────────────────────────────────────────────────────────────

def record_quiz_result(
    progress: ProgressRecord,
    result: QuizResult,
    *,
    catalog: Catalog,
    now: Optional[datetime] = None,
) -> ProgressRecord:
    """
    Upsert the latest score, bump the attempt counter and, on a pass,
    complete the quiz's lesson.  Re-submissions simply overwrite the score;
    no attempt cap is enforced.
    """
    quiz = catalog.quiz(result.quiz_id)
    catalog.lesson(result.lesson_id)
    if result.lesson_id != quiz.lesson_id:
        raise ValueError(
            f"Result for quiz {quiz.id!r} names lesson {result.lesson_id!r}, "
            f"but the quiz belongs to {quiz.lesson_id!r}"
        )
    now = now or utcnow()

    progress.quiz_scores[result.quiz_id] = result.score_percent
    progress.quiz_attempts[result.quiz_id] = progress.quiz_attempts.get(result.quiz_id, 0) + 1
    progress.last_activity_date = now
    logger.info(
        "Learner %s: quiz %s scored %d%% (attempt %d)",
        progress.learner_id, result.quiz_id, result.score_percent,
        progress.quiz_attempts[result.quiz_id],
    )

    if result.passed:
        set_lesson_completed(progress, result.lesson_id, True, catalog=catalog, now=now)
    return progress


# ─── Certificates ────────────────────────────────────────────────────────────

def append_certificate(
    progress: ProgressRecord,
    certificate: Certificate,
    *,
    now: Optional[datetime] = None,
) -> ProgressRecord:
    """Append-only; existing certificates are never modified or removed."""
    if certificate.learner_id != progress.learner_id:
        raise ValueError(
            f"Certificate {certificate.id} belongs to {certificate.learner_id!r}, "
            f"not {progress.learner_id!r}"
        )
    progress.certificates.append(certificate)
    progress.last_activity_date = now or utcnow()
    logger.info("Learner %s: certificate %s issued", progress.learner_id, certificate.id)
    return progress


# ─── Role path ───────────────────────────────────────────────────────────────

def set_role_path(
    progress: ProgressRecord,
    role: str,
    *,
    now: Optional[datetime] = None,
) -> ProgressRecord:
    """Change the learner's role path; affects recommendations only."""
    role = role.strip()
    if not role:
        raise ValueError("Role path must not be empty")
    progress.role_path = role
    progress.last_activity_date = now or utcnow()
    return progress


# ─── Study time & streak ─────────────────────────────────────────────────────

def current_streak(time_spent: list[StudyTime], today: date) -> int:
    """
    Consecutive study days ending today, or ending yesterday when nothing
    has been logged yet today.
    """
    studied = {entry.day for entry in time_spent if entry.minutes > 0}
    cursor = today if today in studied else today - timedelta(days=1)
    streak = 0
    while cursor in studied:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def record_study_time(
    progress: ProgressRecord,
    minutes: int,
    *,
    day: Optional[date] = None,
    now: Optional[datetime] = None,
) -> ProgressRecord:
    """
    Add minutes to the day's log entry and refresh ``streak_days``, counted
    back from the later of ``day`` and today.
    """
    if minutes < 0:
        raise ValueError(f"Study minutes must not be negative, got {minutes}")
    now = now or utcnow()
    day = day or now.date()

    entry = next((e for e in progress.time_spent if e.day == day), None)
    if entry is None:
        progress.time_spent.append(StudyTime(day=day, minutes=minutes))
        progress.time_spent.sort(key=lambda e: e.day)
    else:
        entry.minutes += minutes

    # backfilled days never move the streak anchor into the past
    progress.streak_days = current_streak(progress.time_spent, max(day, now.date()))
    progress.last_activity_date = now
    logger.debug(
        "Learner %s: +%d min on %s (streak %d)",
        progress.learner_id, minutes, day.isoformat(), progress.streak_days,
    )
    return progress


# ─── Handbook ────────────────────────────────────────────────────────────────

def update_handbook_progress(
    progress: ProgressRecord,
    patch: Union[HandbookProgress, Mapping[str, Any]],
    *,
    now: Optional[datetime] = None,
) -> ProgressRecord:
    """
    Shallow-merge ``patch`` into the handbook sub-record.  Only the keys
    present in the patch are replaced.  Unknown keys raise ValueError and an
    invalid value raises pydantic's ValidationError; either way the record is
    left untouched.
    """
    now = now or utcnow()
    if isinstance(patch, HandbookProgress):
        changes = patch.model_dump(exclude_unset=True)
    else:
        changes = dict(patch)
        unknown = sorted(set(changes) - set(HandbookProgress.model_fields))
        if unknown:
            raise ValueError(f"Unknown handbook progress fields: {unknown}")

    merged = progress.handbook_progress.model_dump()
    merged.update(changes)
    if "last_activity_date" not in changes:
        merged["last_activity_date"] = now
    updated = HandbookProgress.model_validate(merged)

    progress.handbook_progress = updated
    progress.last_activity_date = now
    return progress


# ─── Serialization ───────────────────────────────────────────────────────────

def dump_progress(progress: ProgressRecord) -> str:
    """JSON text for an external persistence collaborator."""
    return progress.model_dump_json(indent=2)


def load_progress_json(text: str) -> ProgressRecord:
    """Inverse of dump_progress; unknown keys from newer writers are ignored."""
    return ProgressRecord.model_validate_json(text)
