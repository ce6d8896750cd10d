"""
resolver.py — Accessibility Resolver
====================================
Decides whether a lesson is unlocked for a learner.  Pure functions over
(Catalog, ProgressRecord); nothing is cached, unlocking is recomputed on
every read.

Rules, in order:
  MANUALLY_LOCKED          → locked
  no prerequisites         → accessible
  OPEN                     → accessible
  GATED_BY_PREREQUISITES   → accessible iff every prerequisite is completed

Gaining completions can only unlock lessons, never lock them.  Removing a
completion may re-lock dependants, but a dependant that was already
completed stays in completed_lessons (no cascade).
"""

from __future__ import annotations

from enum import Enum

from progression.models import Catalog, Gating, Lesson, ProgressRecord


class Availability(str, Enum):
    """Lesson availability status for display."""
    LOCKED    = "locked"      # prerequisites not met or manually locked
    AVAILABLE = "available"   # can be started
    COMPLETED = "completed"   # finished


def missing_prerequisites(lesson: Lesson, progress: ProgressRecord) -> list[str]:
    """IDs of prerequisites not yet completed, in declaration order."""
    return [p for p in lesson.prerequisites if p not in progress.completed_lessons]


def is_accessible(lesson: Lesson, progress: ProgressRecord) -> bool:
    if lesson.gating == Gating.MANUALLY_LOCKED:
        return False
    if not lesson.prerequisites or lesson.gating == Gating.OPEN:
        return True
    return not missing_prerequisites(lesson, progress)


def lesson_availability(lesson: Lesson, progress: ProgressRecord) -> tuple[Availability, list[str]]:
    """
    Returns:
        Tuple of (availability status, list of missing prerequisite IDs)
    """
    if progress.is_completed(lesson.id):
        return Availability.COMPLETED, []
    if is_accessible(lesson, progress):
        return Availability.AVAILABLE, []
    return Availability.LOCKED, missing_prerequisites(lesson, progress)


def get_accessible_lessons(catalog: Catalog, progress: ProgressRecord) -> list[str]:
    """IDs of every accessible lesson (completed or not), in catalog order."""
    return [lesson.id for lesson in catalog.all_lessons() if is_accessible(lesson, progress)]
