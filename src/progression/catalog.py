"""
catalog.py — Curriculum source and load-time validation
=======================================================
The engine treats the catalog as immutable configuration.  It can come from:

  • a ready-made ``Catalog`` instance,
  • a plain dict (e.g. parsed from a CMS export),
  • a JSON file on disk,
  • nothing at all — ``PROGRESSION_CATALOG_PATH`` is consulted, then the
    built-in ``DEFAULT_CATALOG`` below is used.

Validation happens once, here.  Pydantic rejects malformed entries and the
Catalog model rejects duplicate IDs, dangling references and prerequisite
cycles; every failure is re-raised as ``CatalogError``.

Legacy data from older front-end exports (numeric IDs, ``locked`` flags,
``"45 min"`` durations, camelCase quiz keys) is accepted and normalised.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import ValidationError

from progression.config import Settings, get_settings
from progression.errors import CatalogError
from progression.models import Catalog

logger = logging.getLogger(__name__)


# ─── Built-in curriculum ─────────────────────────────────────────────────────
# Data literacy track: three modules, six lessons, one quiz on lesson 1.

DEFAULT_CATALOG: dict[str, Any] = {
    "title": "Data Literacy Program",
    "modules": [
        {
            "id":          "foundations",
            "title":       "Foundations of Data Literacy",
            "description": "Essential concepts and skills for understanding and working with data",
            "level":       "beginner",
            "lessons": [
                {
                    "id":               "fundamentals",
                    "title":            "Fundamentals of Data Literacy",
                    "duration_minutes": 45,
                    "quiz_id":          "fundamentals-quiz",
                    "content": (
                        "This introductory lesson covers the basic concepts of data "
                        "literacy and why it matters in your daily work."
                    ),
                },
                {
                    "id":               "data-quality",
                    "title":            "Understanding Data Quality",
                    "duration_minutes": 30,
                    "prerequisites":    ["fundamentals"],
                    "content": (
                        "Learn how to assess data quality and reliability before "
                        "making decisions based on that data."
                    ),
                },
                {
                    "id":               "visualization",
                    "title":            "Data Visualization Principles",
                    "duration_minutes": 60,
                    "prerequisites":    ["fundamentals", "data-quality"],
                    "content": (
                        "Discover key principles for creating and interpreting "
                        "effective data visualizations."
                    ),
                },
            ],
        },
        {
            "id":          "applied",
            "title":       "Applied Data Skills",
            "description": "Practical applications of data literacy in government contexts",
            "level":       "intermediate",
            "lessons": [
                {
                    "id":               "statistics",
                    "title":            "Interpreting Statistical Data",
                    "duration_minutes": 45,
                    "prerequisites":    ["fundamentals", "data-quality", "visualization"],
                    "content": (
                        "Build skills to interpret statistical information and "
                        "understand its implications."
                    ),
                },
                {
                    "id":               "ethics",
                    "title":            "Ethics in Data Usage",
                    "duration_minutes": 30,
                    "prerequisites":    ["fundamentals", "data-quality"],
                    "content": (
                        "Explore ethical considerations when working with sensitive "
                        "data in a government context."
                    ),
                },
            ],
        },
        {
            "id":          "leadership",
            "title":       "Leadership and Decision Making",
            "description": "Advanced concepts for data-driven leadership and decision making",
            "level":       "advanced",
            "roles":       ["Manager", "Director", "Analyst"],
            "lessons": [
                {
                    "id":               "decisions",
                    "title":            "Making Data-Driven Decisions",
                    "duration_minutes": 60,
                    "prerequisites":    ["fundamentals", "data-quality", "visualization",
                                         "statistics", "ethics"],
                    "content": (
                        "Learn frameworks for incorporating data insights into "
                        "strategic decision-making processes."
                    ),
                },
            ],
        },
    ],
    "quizzes": [
        {
            "id":                    "fundamentals-quiz",
            "lesson_id":             "fundamentals",
            "title":                 "Quiz: Fundamentals of Data Literacy",
            "passing_score_percent": 70,
            "questions": [
                {
                    "id":     "what-is-literacy",
                    "prompt": "What is data literacy?",
                    "options": [
                        "The ability to read and write data files",
                        "The ability to create databases",
                        "The ability to read, understand, analyze and communicate with data",
                        "The ability to program data algorithms",
                    ],
                    "correct_option_index": 2,
                    "explanation": (
                        "Data literacy is the ability to read, understand, analyze and "
                        "communicate with data, including how it was collected and how "
                        "to interpret and apply insights."
                    ),
                },
                {
                    "id":     "not-a-pillar",
                    "prompt": "Which of these is NOT a pillar of data literacy?",
                    "options": [
                        "Data Quality Assessment",
                        "Statistical Analysis",
                        "Programming Proficiency",
                        "Visualization Interpretation",
                    ],
                    "correct_option_index": 2,
                    "explanation": (
                        "Programming proficiency is helpful but not a core pillar; the "
                        "focus is on understanding, interpreting and applying data."
                    ),
                },
            ],
        },
    ],
}


CatalogSource = Union[Catalog, dict, str, Path, None]


def load_catalog(source: CatalogSource = None, settings: Optional[Settings] = None) -> Catalog:
    """
    Build a validated Catalog.

    Parameters
    ----------
    source   : Catalog | dict | str | Path | None
               ``None`` → ``settings.catalog.path`` if set, else DEFAULT_CATALOG.
    settings : Settings (optional) — defaults to ``get_settings()``.

    Raises
    ------
    CatalogError  on unreadable files, invalid JSON or failed validation.
    """
    if isinstance(source, Catalog):
        return source

    if source is None:
        settings = settings or get_settings()
        source = settings.catalog.resolved_path or DEFAULT_CATALOG

    if isinstance(source, (str, Path)):
        data = _read_json(Path(source))
        origin = str(source)
    else:
        data = source
        origin = "<dict>"

    try:
        catalog = Catalog.model_validate(data)
    except ValidationError as exc:
        raise CatalogError(f"Invalid catalog {origin}: {exc}") from exc

    logger.debug(
        "Loaded catalog %r from %s: %d modules, %d lessons, %d quizzes",
        catalog.title, origin, len(catalog.modules), len(catalog.lesson_ids), len(catalog.quizzes),
    )
    return catalog


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise CatalogError(f"Cannot read catalog file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise CatalogError(f"Catalog file {path} is not valid JSON: {exc}") from exc
