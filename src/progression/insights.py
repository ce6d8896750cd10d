"""
insights.py — Role Paths, Recommendations & Learning Insights
=============================================================
Read-only views over (Catalog, ProgressRecord) for the learner dashboard:

  describe_role(role)                        short blurb for the role picker
  recommend_next_lessons(catalog, progress)  what to study next
  learning_insights(catalog, progress)       streak, minutes, quiz strengths/gaps

The role path never affects access or certification; it only reorders
recommendations so lessons from modules aimed at the learner's role come
first.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from progression.aggregator import overall_completion
from progression.models import Catalog, Lesson, ProgressRecord
from progression.progress_store import current_streak
from progression.resolver import is_accessible

logger = logging.getLogger(__name__)


# ─── Role paths ──────────────────────────────────────────────────────────────

ROLE_DESCRIPTIONS: dict[str, str] = {
    "Analyst": (
        "Hands-on work with data: cleaning, exploring, visualising and "
        "explaining results to stakeholders."
    ),
    "Business User": (
        "Reading dashboards and reports with confidence and asking the right "
        "questions of the numbers behind a decision."
    ),
    "Manager": (
        "Setting data-informed goals, judging evidence quality and leading "
        "teams that rely on analytics."
    ),
    "Data Steward": (
        "Owning data quality, definitions and governance so that shared "
        "datasets stay trustworthy."
    ),
}

_GENERIC_ROLE_DESCRIPTION = "A general path through the full data literacy curriculum."


def describe_role(role: str) -> str:
    return ROLE_DESCRIPTIONS.get(role, _GENERIC_ROLE_DESCRIPTION)


def is_known_role(role: str) -> bool:
    return role in ROLE_DESCRIPTIONS


# ─── Recommendations ─────────────────────────────────────────────────────────

def recommend_next_lessons(catalog: Catalog, progress: ProgressRecord, limit: int = 3) -> list[Lesson]:
    """
    Accessible lessons the learner has not completed yet.

    Lessons in modules tagged with the learner's role path come first; ties
    keep catalog order.
    """
    if limit <= 0:
        return []

    candidates: list[tuple[int, int, Lesson]] = []
    position = 0
    for module in catalog.modules:
        role_rank = 0 if progress.role_path in module.roles else 1
        for lesson in module.lessons:
            if not progress.is_completed(lesson.id) and is_accessible(lesson, progress):
                candidates.append((role_rank, position, lesson))
            position += 1

    candidates.sort(key=lambda c: (c[0], c[1]))
    picked = [lesson for _, _, lesson in candidates[:limit]]
    logger.debug(
        "Recommendations for %s (%s): %s",
        progress.learner_id, progress.role_path, [l.id for l in picked],
    )
    return picked


# ─── Insights ────────────────────────────────────────────────────────────────

@dataclass
class QuizStanding:
    """Latest quiz score for one lesson, measured against its pass mark."""
    quiz_id:       str
    lesson_id:     str
    lesson_title:  str
    score_percent: int
    passing_score: int

    @property
    def passed(self) -> bool:
        return self.score_percent >= self.passing_score


@dataclass
class LearningInsights:
    """Dashboard summary for one learner."""
    learner_id:          str
    role_path:           str
    overall_percent:     int
    streak_days:         int
    total_minutes:       int
    strengths:           list[QuizStanding] = field(default_factory=list)
    areas_to_improve:    list[QuizStanding] = field(default_factory=list)
    summary:             str = ""


def _summary_sentence(insights: LearningInsights) -> str:
    parts = [f"You are {insights.overall_percent}% through the curriculum"]
    if insights.streak_days:
        parts.append(f"on a {insights.streak_days}-day study streak")
    sentence = " ".join(parts) + f" with {insights.total_minutes} minutes logged."
    if insights.areas_to_improve:
        titles = ", ".join(s.lesson_title for s in insights.areas_to_improve)
        sentence += f" Revisit: {titles}."
    elif insights.strengths:
        sentence += " Every quiz you have taken is at or above its pass mark."
    return sentence


def learning_insights(
    catalog: Catalog,
    progress: ProgressRecord,
    today: Optional[date] = None,
) -> LearningInsights:
    """
    Streak, total minutes and quiz standings.

    ``today`` anchors the streak; when omitted the stored ``streak_days`` is
    used as recorded by the last study-time entry.
    """
    streak = current_streak(progress.time_spent, today) if today else progress.streak_days

    strengths: list[QuizStanding] = []
    gaps: list[QuizStanding] = []
    for quiz in catalog.quizzes:
        if quiz.id not in progress.quiz_scores:
            continue
        standing = QuizStanding(
            quiz_id=quiz.id,
            lesson_id=quiz.lesson_id,
            lesson_title=catalog.lesson(quiz.lesson_id).title,
            score_percent=progress.quiz_scores[quiz.id],
            passing_score=quiz.passing_score_percent,
        )
        (strengths if standing.passed else gaps).append(standing)

    insights = LearningInsights(
        learner_id=progress.learner_id,
        role_path=progress.role_path,
        overall_percent=overall_completion(catalog, progress),
        streak_days=streak,
        total_minutes=progress.total_study_minutes(),
        strengths=strengths,
        areas_to_improve=gaps,
    )
    insights.summary = _summary_sentence(insights)
    return insights
