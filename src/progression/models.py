"""
Data models for the Learning Progression Engine.

Catalog models (Lesson, Module, Quiz, Catalog) are frozen and validated when
the catalog is loaded, so malformed content is rejected up front rather than
at use time.  ProgressRecord is the only mutable model: one per learner.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from pydantic import (
    AliasChoices, BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator,
)

from progression.errors import NotFoundError


# ─── Enumerations ────────────────────────────────────────────────────────────

class Level(str, Enum):
    """Difficulty band of a module."""
    BEGINNER     = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED     = "advanced"


class Gating(str, Enum):
    """How a lesson becomes accessible."""
    OPEN                   = "open"                    # always accessible
    GATED_BY_PREREQUISITES = "gated_by_prerequisites"  # unlocked once every prerequisite is complete
    MANUALLY_LOCKED        = "manually_locked"         # closed by the catalog author


_DURATION_RE = re.compile(r"^\s*(\d+)")


def _as_id(value: Any) -> Any:
    """Legacy catalogs use numeric IDs; the engine keys everything by string."""
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


# ─── Catalog models ──────────────────────────────────────────────────────────

class Lesson(BaseModel):
    model_config = ConfigDict(frozen=True)

    id:               str
    title:            str
    duration_minutes: int = Field(default=0, ge=0,
                                  validation_alias=AliasChoices("duration_minutes", "durationMinutes", "duration"))
    prerequisites:    tuple[str, ...] = ()
    quiz_id:          Optional[str] = Field(default=None, validation_alias=AliasChoices("quiz_id", "quizId"))
    gating:           Gating = Gating.OPEN
    content:          str = ""

    @model_validator(mode="before")
    @classmethod
    def _map_legacy_lock(cls, data: Any) -> Any:
        # locked=false → OPEN; otherwise prerequisites imply GATED_BY_PREREQUISITES
        if not isinstance(data, dict):
            return data
        data = dict(data)
        locked = data.pop("locked", None)
        if "gating" not in data:
            if locked is False or not data.get("prerequisites"):
                data["gating"] = Gating.OPEN
            else:
                data["gating"] = Gating.GATED_BY_PREREQUISITES
        return data

    @field_validator("id", "quiz_id", mode="before")
    @classmethod
    def _coerce_id(cls, v: Any) -> Any:
        return _as_id(v)

    @field_validator("prerequisites", mode="before")
    @classmethod
    def _coerce_prerequisites(cls, v: Any) -> Any:
        if v is None:
            return ()
        return tuple(_as_id(p) for p in v)

    @field_validator("duration_minutes", mode="before")
    @classmethod
    def _parse_duration(cls, v: Any) -> Any:
        # "45 min" → 45
        if isinstance(v, str):
            m = _DURATION_RE.match(v)
            if not m:
                raise ValueError(f"Cannot parse lesson duration {v!r}")
            return int(m.group(1))
        return v

    @model_validator(mode="after")
    def _no_self_prerequisite(self) -> "Lesson":
        if self.id in self.prerequisites:
            raise ValueError(f"Lesson {self.id!r} lists itself as a prerequisite")
        return self


class Module(BaseModel):
    model_config = ConfigDict(frozen=True)

    id:          str
    title:       str
    description: str = ""
    level:       Level = Level.BEGINNER
    lessons:     tuple[Lesson, ...] = ()
    roles:       tuple[str, ...] = Field(default=(), validation_alias=AliasChoices("roles", "role"))

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v: Any) -> Any:
        return _as_id(v)

    @field_validator("level", mode="before")
    @classmethod
    def _lower_level(cls, v: Any) -> Any:
        return v.lower() if isinstance(v, str) else v

    @property
    def lesson_ids(self) -> list[str]:
        return [lesson.id for lesson in self.lessons]


class QuizQuestion(BaseModel):
    """A single multiple-choice question."""
    model_config = ConfigDict(frozen=True)

    id:                   str
    prompt:               str = Field(validation_alias=AliasChoices("prompt", "question"))
    options:              tuple[str, ...] = Field(min_length=2)
    correct_option_index: int = Field(ge=0,
                                      validation_alias=AliasChoices("correct_option_index", "correctAnswer"))
    explanation:          str = ""

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v: Any) -> Any:
        return _as_id(v)

    @model_validator(mode="after")
    def _correct_index_in_range(self) -> "QuizQuestion":
        if self.correct_option_index >= len(self.options):
            raise ValueError(
                f"Question {self.id!r}: correct_option_index {self.correct_option_index} "
                f"out of range for {len(self.options)} options"
            )
        return self


class Quiz(BaseModel):
    model_config = ConfigDict(frozen=True)

    id:                    str
    lesson_id:             str = Field(validation_alias=AliasChoices("lesson_id", "lessonId"))
    title:                 str = ""
    questions:             tuple[QuizQuestion, ...] = Field(min_length=1)
    passing_score_percent: int = Field(default=70, ge=0, le=100,
                                       validation_alias=AliasChoices("passing_score_percent", "passingScore"))
    attempts_allowed:      Optional[int] = Field(default=None, ge=0,
                                                 description="Display only; never enforced")

    @field_validator("id", "lesson_id", mode="before")
    @classmethod
    def _coerce_id(cls, v: Any) -> Any:
        return _as_id(v)


def _find_cycle(edges: dict[str, tuple[str, ...]]) -> Optional[list[str]]:
    """Return one prerequisite cycle as a list of lesson IDs, or None."""
    WHITE, GREY, BLACK = 0, 1, 2
    colour = {node: WHITE for node in edges}
    path: list[str] = []

    def visit(node: str) -> Optional[list[str]]:
        colour[node] = GREY
        path.append(node)
        for nxt in edges.get(node, ()):
            if colour.get(nxt) == GREY:
                return path[path.index(nxt):] + [nxt]
            if colour.get(nxt) == WHITE:
                found = visit(nxt)
                if found:
                    return found
        path.pop()
        colour[node] = BLACK
        return None

    for node in edges:
        if colour[node] == WHITE:
            found = visit(node)
            if found:
                return found
    return None


class Catalog(BaseModel):
    """
    Immutable curriculum: modules of ordered lessons plus their quizzes.
    Lesson IDs are unique across the whole catalog, so prerequisites may
    point into other modules.
    """
    model_config = ConfigDict(frozen=True)

    title:   str = ""
    modules: tuple[Module, ...] = ()
    quizzes: tuple[Quiz, ...] = ()

    @model_validator(mode="after")
    def _check_references(self) -> "Catalog":
        module_ids = [m.id for m in self.modules]
        dup_modules = {m for m in module_ids if module_ids.count(m) > 1}
        if dup_modules:
            raise ValueError(f"Duplicate module IDs: {sorted(dup_modules)}")

        lessons = self.all_lessons()
        lesson_ids = [lesson.id for lesson in lessons]
        dup_lessons = {lid for lid in lesson_ids if lesson_ids.count(lid) > 1}
        if dup_lessons:
            raise ValueError(f"Duplicate lesson IDs: {sorted(dup_lessons)}")

        quiz_ids = [q.id for q in self.quizzes]
        dup_quizzes = {qid for qid in quiz_ids if quiz_ids.count(qid) > 1}
        if dup_quizzes:
            raise ValueError(f"Duplicate quiz IDs: {sorted(dup_quizzes)}")

        known_lessons = set(lesson_ids)
        known_quizzes = set(quiz_ids)
        for lesson in lessons:
            unknown = [p for p in lesson.prerequisites if p not in known_lessons]
            if unknown:
                raise ValueError(f"Lesson {lesson.id!r} has unknown prerequisites: {unknown}")
            if lesson.quiz_id is not None and lesson.quiz_id not in known_quizzes:
                raise ValueError(f"Lesson {lesson.id!r} references unknown quiz {lesson.quiz_id!r}")
        for quiz in self.quizzes:
            if quiz.lesson_id not in known_lessons:
                raise ValueError(f"Quiz {quiz.id!r} references unknown lesson {quiz.lesson_id!r}")

        cycle = _find_cycle({lesson.id: lesson.prerequisites for lesson in lessons})
        if cycle:
            raise ValueError(f"Prerequisite cycle: {' → '.join(cycle)}")
        return self

    # ── Lookups ──────────────────────────────────────────────────────────────

    def all_lessons(self) -> list[Lesson]:
        """Every lesson, in module order then lesson order."""
        return [lesson for module in self.modules for lesson in module.lessons]

    @property
    def lesson_ids(self) -> list[str]:
        return [lesson.id for lesson in self.all_lessons()]

    def has_lesson(self, lesson_id: str) -> bool:
        return any(lesson.id == lesson_id for lesson in self.all_lessons())

    def lesson(self, lesson_id: str) -> Lesson:
        found = next((l for l in self.all_lessons() if l.id == lesson_id), None)
        if found is None:
            raise NotFoundError("lesson", lesson_id)
        return found

    def module(self, module_id: str) -> Module:
        found = next((m for m in self.modules if m.id == module_id), None)
        if found is None:
            raise NotFoundError("module", module_id)
        return found

    def module_for_lesson(self, lesson_id: str) -> Module:
        found = next((m for m in self.modules if lesson_id in m.lesson_ids), None)
        if found is None:
            raise NotFoundError("lesson", lesson_id)
        return found

    def quiz(self, quiz_id: str) -> Quiz:
        found = next((q for q in self.quizzes if q.id == quiz_id), None)
        if found is None:
            raise NotFoundError("quiz", quiz_id)
        return found

    def quiz_for_lesson(self, lesson_id: str) -> Optional[Quiz]:
        return next((q for q in self.quizzes if q.lesson_id == lesson_id), None)


# ─── Progress models ─────────────────────────────────────────────────────────

class StudyTime(BaseModel):
    """Minutes studied on one calendar day."""
    day:     date
    minutes: int = Field(ge=0)


class Bookmark(BaseModel):
    chapter_id: str
    section_id: str
    note:       Optional[str] = None
    date_added: datetime


class HandbookProgress(BaseModel):
    """Handbook reading state; no invariants shared with lesson completion."""
    last_visited_chapter: str = ""
    last_visited_section: str = ""
    bookmarks:            list[Bookmark] = Field(default_factory=list)
    completed_sections:   list[str] = Field(default_factory=list)
    read_time_minutes:    int = Field(default=0, ge=0)
    last_activity_date:   Optional[datetime] = None


class Certificate(BaseModel):
    """Issued only by the Certification Gate; immutable once created."""
    model_config = ConfigDict(frozen=True)

    id:                    str
    title:                 str
    learner_id:            str
    issued_date:           datetime
    expiration_date:       datetime
    overall_score_percent: int = Field(ge=0, le=100)

    def is_valid_on(self, moment: datetime) -> bool:
        return self.issued_date <= moment < self.expiration_date


class ProgressRecord(BaseModel):
    """
    One learner's progress.  Every engine operation mutates this single
    instance in place; it is never replaced by a second record.
    """
    learner_id:         str = "default"
    completed_lessons:  set[str] = Field(default_factory=set)
    quiz_scores:        dict[str, int] = Field(default_factory=dict)   # quiz_id → latest %
    quiz_attempts:      dict[str, int] = Field(default_factory=dict)   # quiz_id → submissions
    certificates:       list[Certificate] = Field(default_factory=list)
    role_path:          str = "Analyst"
    streak_days:        int = Field(default=0, ge=0)
    last_activity_date: Optional[datetime] = None
    time_spent:         list[StudyTime] = Field(default_factory=list)
    handbook_progress:  HandbookProgress = Field(default_factory=HandbookProgress)

    @field_serializer("completed_lessons")
    def _sorted_lessons(self, value: set[str]) -> list[str]:
        return sorted(value)

    # ── Derived helpers ──────────────────────────────────────────────────────

    def is_completed(self, lesson_id: str) -> bool:
        return lesson_id in self.completed_lessons

    def latest_certificate(self) -> Optional[Certificate]:
        return self.certificates[-1] if self.certificates else None

    def total_study_minutes(self) -> int:
        return sum(entry.minutes for entry in self.time_spent)

    def minutes_on(self, day: date) -> int:
        return next((e.minutes for e in self.time_spent if e.day == day), 0)
