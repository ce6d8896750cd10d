"""
grader.py — Quiz Grader
=======================
Scores a submitted quiz attempt against the answer key.  Grading is a pure
function of (quiz, answers); recording the score and completing the linked
lesson is the caller's job (see progress_store.record_quiz_result).

Scoring:
    score_percent = round_half_up(100 × correct_count / total_questions)
    passed        = score_percent ≥ quiz.passing_score_percent

Answer shape:
    • ``None`` or a missing trailing entry counts as incorrect, never raises.
    • Entries beyond the question count are ignored.
    • A non-integer, or an integer outside [0, len(options)), raises
      InvalidAnswerError; the UI cannot produce one, so it signals a caller bug.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from progression.aggregator import round_half_up
from progression.errors import InvalidAnswerError
from progression.models import Quiz

logger = logging.getLogger(__name__)


# ─── Result models ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class QuestionFeedback:
    """Per-question result after the learner answers."""
    question_id:    str
    correct:        bool
    learner_index:  Optional[int]   # None when left unanswered
    correct_index:  int
    explanation:    str


@dataclass(frozen=True)
class QuizResult:
    """Scored outcome of one submission."""
    quiz_id:        str
    lesson_id:      str
    score_percent:  int
    passed:         bool
    correct_count:  int
    total_count:    int
    per_question:   list[QuestionFeedback] = field(default_factory=list)

    @property
    def unanswered_count(self) -> int:
        return sum(1 for fb in self.per_question if fb.learner_index is None)


# ─── Grading ─────────────────────────────────────────────────────────────────

def validate_answers(quiz: Quiz, answers: Sequence[Optional[int]]) -> None:
    """Raise InvalidAnswerError for the first non-integer or out-of-range option index."""
    for question, chosen in zip(quiz.questions, answers):
        if chosen is None:
            continue
        if not isinstance(chosen, int) or isinstance(chosen, bool):
            raise InvalidAnswerError(question.id, chosen, len(question.options))
        if not 0 <= chosen < len(question.options):
            raise InvalidAnswerError(question.id, chosen, len(question.options))


def grade_quiz(quiz: Quiz, answers: Sequence[Optional[int]]) -> QuizResult:
    """
    Score the attempt.

    Parameters
    ----------
    quiz    : Quiz
    answers : sequence of 0-based option indices (or None), in the same
              order as quiz.questions

    Returns
    -------
    QuizResult
    """
    validate_answers(quiz, answers)
    if len(answers) > len(quiz.questions):
        logger.warning(
            "Quiz %s: %d answers for %d questions; extra answers ignored",
            quiz.id, len(answers), len(quiz.questions),
        )

    feedback: list[QuestionFeedback] = []
    correct_count = 0
    for i, q in enumerate(quiz.questions):
        chosen = answers[i] if i < len(answers) else None
        is_correct = chosen is not None and chosen == q.correct_option_index
        if is_correct:
            correct_count += 1
        feedback.append(QuestionFeedback(
            question_id=q.id,
            correct=is_correct,
            learner_index=chosen,
            correct_index=q.correct_option_index,
            explanation=q.explanation,
        ))

    total = len(quiz.questions)
    score = round_half_up(100 * correct_count / total) if total else 0
    passed = score >= quiz.passing_score_percent

    logger.debug("Quiz %s graded: %d/%d → %d%% (passed=%s)", quiz.id, correct_count, total, score, passed)
    return QuizResult(
        quiz_id=quiz.id,
        lesson_id=quiz.lesson_id,
        score_percent=score,
        passed=passed,
        correct_count=correct_count,
        total_count=total,
        per_question=feedback,
    )
