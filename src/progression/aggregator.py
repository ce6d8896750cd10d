"""
aggregator.py — Progress Aggregator
===================================
Per-module and overall completion percentages.  Recomputed on demand: the
record is small and mutation frequency is low, so nothing is cached.

  module_completion    100 × |completed ∩ module lessons| / |module lessons|
  overall_completion   same ratio over every catalog lesson, rounded half-up;
                       reaches 100 only when every lesson is complete
"""

from __future__ import annotations

import logging
import math

from progression.models import Catalog, Module, ProgressRecord

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Round x.5 away from zero for non-negative values (12.5 → 13)."""
    return int(math.floor(value + 0.5))


def _ratio(lesson_ids: list[str], progress: ProgressRecord) -> float:
    if not lesson_ids:
        return 0.0
    done = sum(1 for lid in lesson_ids if lid in progress.completed_lessons)
    return 100.0 * done / len(lesson_ids)


def module_completion(module: Module, progress: ProgressRecord) -> float:
    return _ratio(module.lesson_ids, progress)


def overall_completion(catalog: Catalog, progress: ProgressRecord) -> int:
    lesson_ids = catalog.lesson_ids
    pct = round_half_up(_ratio(lesson_ids, progress))
    if pct == 100 and not all(lid in progress.completed_lessons for lid in lesson_ids):
        # e.g. 249/250 lessons = 99.6 %; never report a finished curriculum early
        pct = 99
    return pct


def get_module_completion(catalog: Catalog, progress: ProgressRecord) -> dict[str, float]:
    """module_id → completion percent, in catalog order."""
    result = {module.id: module_completion(module, progress) for module in catalog.modules}
    logger.debug("Module completion for %s: %s", progress.learner_id, result)
    return result


def completion_stats(catalog: Catalog, progress: ProgressRecord) -> dict:
    """
    Summary numbers for a progress header.

    Returns:
        Dictionary with total / completed / remaining lesson counts, the
        overall percent, and completed / remaining lesson minutes
    """
    lessons = catalog.all_lessons()
    done = [lesson for lesson in lessons if lesson.id in progress.completed_lessons]
    return {
        "total_lessons":     len(lessons),
        "completed":         len(done),
        "remaining":         len(lessons) - len(done),
        "completion_percent": overall_completion(catalog, progress),
        "minutes_completed": sum(lesson.duration_minutes for lesson in done),
        "minutes_remaining": sum(lesson.duration_minutes for lesson in lessons) - sum(
            lesson.duration_minutes for lesson in done
        ),
    }
