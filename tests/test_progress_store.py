"""
Tests for ProgressRecord mutations: lesson completion, quiz recording, role
path, study time / streak, handbook patches and JSON round trip.
"""
from dataclasses import replace
from datetime import date, timedelta

import pytest
from pydantic import ValidationError

from factories import FIXED_NOW, make_catalog, make_lesson, make_module, make_progress

from progression.errors import NotFoundError
from progression.grader import grade_quiz
from progression.models import Bookmark, Certificate, HandbookProgress, StudyTime
from progression.progress_store import (
    append_certificate,
    current_streak,
    dump_progress,
    load_progress_json,
    new_progress,
    record_quiz_result,
    record_study_time,
    set_lesson_completed,
    set_role_path,
    update_handbook_progress,
)


class TestNewProgress:
    def test_fresh_record(self):
        p = new_progress("ana", "Manager")
        assert p.learner_id == "ana"
        assert p.role_path == "Manager"
        assert p.completed_lessons == set()


# ─── Lesson completion ────────────────────────────────────────────────────────

class TestSetLessonCompleted:
    def test_mark_complete(self, catalog):
        p = make_progress()
        returned = set_lesson_completed(p, "A", True, catalog=catalog, now=FIXED_NOW)
        assert returned is p
        assert "A" in p.completed_lessons
        assert p.last_activity_date == FIXED_NOW

    def test_mark_complete_idempotent(self, catalog):
        p = make_progress(completed=["A"])
        set_lesson_completed(p, "A", True, catalog=catalog, now=FIXED_NOW)
        assert p.completed_lessons == {"A"}

    def test_unmark_does_not_cascade(self, catalog):
        p = make_progress()
        set_lesson_completed(p, "A", True, catalog=catalog, now=FIXED_NOW)
        set_lesson_completed(p, "B", True, catalog=catalog, now=FIXED_NOW)
        set_lesson_completed(p, "A", False, catalog=catalog, now=FIXED_NOW)
        assert p.completed_lessons == {"B"}

    def test_unmark_absent_is_noop(self, catalog):
        p = make_progress()
        set_lesson_completed(p, "A", False, catalog=catalog, now=FIXED_NOW)
        assert p.completed_lessons == set()

    def test_unknown_lesson_leaves_record_unchanged(self, catalog):
        p = make_progress(completed=["A"])
        before = p.model_copy(deep=True)
        with pytest.raises(NotFoundError):
            set_lesson_completed(p, "Z", True, catalog=catalog, now=FIXED_NOW)
        assert p == before

    def test_locked_lesson_can_still_be_completed(self, catalog):
        p = make_progress()
        set_lesson_completed(p, "D", True, catalog=catalog, now=FIXED_NOW)
        assert "D" in p.completed_lessons


# ─── Quiz results ─────────────────────────────────────────────────────────────

class TestRecordQuizResult:
    def test_pass_completes_lesson(self, catalog):
        p = make_progress()
        result = grade_quiz(catalog.quiz("quiz-a"), [0, 1])
        record_quiz_result(p, result, catalog=catalog, now=FIXED_NOW)
        assert p.quiz_scores == {"quiz-a": 100}
        assert p.quiz_attempts == {"quiz-a": 1}
        assert "A" in p.completed_lessons

    def test_fail_records_score_only(self, catalog):
        p = make_progress()
        result = grade_quiz(catalog.quiz("quiz-a"), [0, None])
        record_quiz_result(p, result, catalog=catalog, now=FIXED_NOW)
        assert p.quiz_scores == {"quiz-a": 50}
        assert "A" not in p.completed_lessons

    def test_resubmission_overwrites_and_counts(self, catalog):
        p = make_progress()
        quiz = catalog.quiz("quiz-a")
        record_quiz_result(p, grade_quiz(quiz, [0, 1]), catalog=catalog, now=FIXED_NOW)
        record_quiz_result(p, grade_quiz(quiz, [1, 1]), catalog=catalog, now=FIXED_NOW)
        assert p.quiz_scores["quiz-a"] == 50
        assert p.quiz_attempts["quiz-a"] == 2
        # a later failure does not un-complete the lesson
        assert "A" in p.completed_lessons

    def test_result_for_unknown_quiz_rejected(self, catalog):
        result = grade_quiz(catalog.quiz("quiz-a"), [0, 1])
        bare = make_catalog(modules=[make_module("m1", [make_lesson("A")])], quizzes=[])
        p = make_progress()
        before = p.model_copy(deep=True)
        with pytest.raises(NotFoundError):
            record_quiz_result(p, result, catalog=bare, now=FIXED_NOW)
        assert p == before

    def test_result_for_wrong_lesson_rejected(self, catalog):
        result = replace(grade_quiz(catalog.quiz("quiz-a"), [0, 1]), lesson_id="B")
        p = make_progress()
        before = p.model_copy(deep=True)
        with pytest.raises(ValueError, match="belongs to"):
            record_quiz_result(p, result, catalog=catalog, now=FIXED_NOW)
        assert p == before


# ─── Certificates & role ──────────────────────────────────────────────────────

class TestAppendCertificate:
    def _cert(self, learner_id="learner-1"):
        return Certificate(
            id="cert-x", title="T", learner_id=learner_id, issued_date=FIXED_NOW,
            expiration_date=FIXED_NOW + timedelta(days=1), overall_score_percent=100,
        )

    def test_appends(self):
        p = make_progress()
        append_certificate(p, self._cert(), now=FIXED_NOW)
        assert [c.id for c in p.certificates] == ["cert-x"]

    def test_wrong_learner_rejected(self):
        p = make_progress()
        with pytest.raises(ValueError):
            append_certificate(p, self._cert("someone-else"), now=FIXED_NOW)
        assert p.certificates == []


class TestSetRolePath:
    def test_sets_role(self):
        p = make_progress()
        set_role_path(p, " Data Steward ", now=FIXED_NOW)
        assert p.role_path == "Data Steward"

    def test_empty_role_rejected(self):
        p = make_progress(role_path="Manager")
        with pytest.raises(ValueError):
            set_role_path(p, "   ", now=FIXED_NOW)
        assert p.role_path == "Manager"


# ─── Study time & streak ──────────────────────────────────────────────────────

class TestCurrentStreak:
    def _log(self, *days):
        return [StudyTime(day=d, minutes=10) for d in days]

    def test_empty(self):
        assert current_streak([], date(2024, 3, 1)) == 0

    def test_consecutive_days_ending_today(self):
        log = self._log(date(2024, 2, 28), date(2024, 2, 29), date(2024, 3, 1))
        assert current_streak(log, date(2024, 3, 1)) == 3

    def test_ending_yesterday_still_counts(self):
        log = self._log(date(2024, 2, 28), date(2024, 2, 29))
        assert current_streak(log, date(2024, 3, 1)) == 2

    def test_gap_breaks_streak(self):
        log = self._log(date(2024, 2, 26), date(2024, 2, 28), date(2024, 2, 29))
        assert current_streak(log, date(2024, 2, 29)) == 2

    def test_zero_minute_days_ignored(self):
        log = [StudyTime(day=date(2024, 3, 1), minutes=0)]
        assert current_streak(log, date(2024, 3, 1)) == 0


class TestRecordStudyTime:
    def test_creates_and_accumulates(self):
        p = make_progress()
        record_study_time(p, 20, now=FIXED_NOW)
        record_study_time(p, 15, now=FIXED_NOW)
        assert p.minutes_on(FIXED_NOW.date()) == 35
        assert len(p.time_spent) == 1
        assert p.streak_days == 1

    def test_streak_over_days(self):
        p = make_progress()
        for offset in (2, 1, 0):
            record_study_time(p, 10, day=FIXED_NOW.date() - timedelta(days=offset), now=FIXED_NOW)
        assert p.streak_days == 3
        assert [e.day for e in p.time_spent] == sorted(e.day for e in p.time_spent)

    def test_negative_minutes_rejected(self):
        p = make_progress()
        with pytest.raises(ValueError):
            record_study_time(p, -1, now=FIXED_NOW)
        assert p.time_spent == []

    def test_backfill_keeps_current_streak(self):
        p = make_progress()
        today = FIXED_NOW.date()
        for offset in (1, 0):
            record_study_time(p, 10, day=today - timedelta(days=offset), now=FIXED_NOW)
        assert p.streak_days == 2
        record_study_time(p, 10, day=today - timedelta(days=5), now=FIXED_NOW)
        assert p.streak_days == 2

    def test_backfill_closing_a_gap_extends_streak(self):
        p = make_progress()
        today = FIXED_NOW.date()
        for offset in (2, 0):
            record_study_time(p, 10, day=today - timedelta(days=offset), now=FIXED_NOW)
        assert p.streak_days == 1
        record_study_time(p, 10, day=today - timedelta(days=1), now=FIXED_NOW)
        assert p.streak_days == 3


# ─── Handbook ─────────────────────────────────────────────────────────────────

class TestUpdateHandbookProgress:
    def test_shallow_merge(self):
        p = make_progress()
        update_handbook_progress(p, {"last_visited_chapter": "ch1"}, now=FIXED_NOW)
        update_handbook_progress(p, {"completed_sections": ["s1", "s2"]}, now=FIXED_NOW)
        hb = p.handbook_progress
        assert hb.last_visited_chapter == "ch1"
        assert hb.completed_sections == ["s1", "s2"]
        assert hb.last_activity_date == FIXED_NOW

    def test_model_patch_only_applies_set_fields(self):
        p = make_progress()
        update_handbook_progress(p, {"last_visited_chapter": "ch1", "read_time_minutes": 12}, now=FIXED_NOW)
        update_handbook_progress(p, HandbookProgress(last_visited_section="s3"), now=FIXED_NOW)
        assert p.handbook_progress.last_visited_chapter == "ch1"
        assert p.handbook_progress.last_visited_section == "s3"
        assert p.handbook_progress.read_time_minutes == 12

    def test_bookmarks_replaced_wholesale(self):
        p = make_progress()
        mark = {"chapter_id": "ch1", "section_id": "s1", "date_added": FIXED_NOW}
        update_handbook_progress(p, {"bookmarks": [mark]}, now=FIXED_NOW)
        assert p.handbook_progress.bookmarks == [Bookmark(**mark)]

    def test_invalid_patch_leaves_record_unchanged(self):
        p = make_progress()
        update_handbook_progress(p, {"read_time_minutes": 5}, now=FIXED_NOW)
        before = p.model_copy(deep=True)
        with pytest.raises(ValidationError):
            update_handbook_progress(p, {"read_time_minutes": -3}, now=FIXED_NOW)
        assert p == before

    def test_unknown_key_leaves_record_unchanged(self):
        p = make_progress()
        update_handbook_progress(p, {"last_visited_chapter": "ch1"}, now=FIXED_NOW)
        before = p.model_copy(deep=True)
        with pytest.raises(ValueError, match="bookmark"):
            update_handbook_progress(p, {"bookmark": ["x"]}, now=FIXED_NOW + timedelta(hours=1))
        assert p == before


# ─── Serialization ────────────────────────────────────────────────────────────

class TestSerialization:
    def test_round_trip(self, catalog):
        p = make_progress()
        record_quiz_result(p, grade_quiz(catalog.quiz("quiz-a"), [0, 1]), catalog=catalog, now=FIXED_NOW)
        record_study_time(p, 25, now=FIXED_NOW)
        update_handbook_progress(p, {"last_visited_chapter": "ch2"}, now=FIXED_NOW)
        assert load_progress_json(dump_progress(p)) == p

    def test_unknown_keys_ignored(self):
        p = load_progress_json('{"learner_id": "ana", "completed_lessons": ["A"], "future_field": 1}')
        assert p.learner_id == "ana"
        assert p.completed_lessons == {"A"}

    def test_dump_sorts_completed_lessons(self):
        text = dump_progress(make_progress(completed=["C", "A"]))
        assert text.index('"A"') < text.index('"C"')
