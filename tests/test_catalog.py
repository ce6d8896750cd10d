"""
Tests for catalog loading: built-in curriculum, dict / JSON / env-configured
sources, and CatalogError wrapping.
"""
import json

import pytest

from factories import make_catalog, make_catalog_data, make_lesson, make_module, make_settings

from progression.catalog import DEFAULT_CATALOG, load_catalog
from progression.errors import CatalogError, ProgressionError
from progression.models import Gating, Level


class TestDefaultCatalog:
    def test_shape(self, default_catalog):
        assert default_catalog.title == "Data Literacy Program"
        assert [m.id for m in default_catalog.modules] == ["foundations", "applied", "leadership"]
        assert len(default_catalog.lesson_ids) == 6
        assert [q.id for q in default_catalog.quizzes] == ["fundamentals-quiz"]

    def test_levels(self, default_catalog):
        assert [m.level for m in default_catalog.modules] == [
            Level.BEGINNER, Level.INTERMEDIATE, Level.ADVANCED,
        ]

    def test_only_first_lesson_open(self, default_catalog):
        open_lessons = [l.id for l in default_catalog.all_lessons() if l.gating == Gating.OPEN]
        assert open_lessons == ["fundamentals"]

    def test_quiz_linked_both_ways(self, default_catalog):
        assert default_catalog.lesson("fundamentals").quiz_id == "fundamentals-quiz"
        assert default_catalog.quiz("fundamentals-quiz").lesson_id == "fundamentals"

    def test_leadership_targets_managers(self, default_catalog):
        assert "Manager" in default_catalog.module("leadership").roles


class TestLoadCatalogSources:
    def test_catalog_instance_passed_through(self):
        catalog = make_catalog()
        assert load_catalog(catalog) is catalog

    def test_dict_source(self):
        catalog = load_catalog(make_catalog_data())
        assert catalog.lesson_ids == ["A", "B", "C", "D"]

    def test_json_file_source(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps(make_catalog_data()), encoding="utf-8")
        assert load_catalog(path).title == "Test Catalog"
        assert load_catalog(str(path)).title == "Test Catalog"

    def test_none_uses_default(self):
        assert load_catalog(settings=make_settings()).title == DEFAULT_CATALOG["title"]

    def test_none_uses_configured_path(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.json"
        path.write_text(json.dumps(make_catalog_data(title="Custom")), encoding="utf-8")
        monkeypatch.setenv("PROGRESSION_CATALOG_PATH", str(path))
        assert load_catalog().title == "Custom"

    def test_legacy_front_end_shape(self):
        legacy = {
            "modules": [{
                "id": 1, "title": "Foundations", "level": "Beginner",
                "lessons": [
                    {"id": 1, "title": "Intro", "duration": "45 min", "locked": False},
                    {"id": 2, "title": "Quality", "duration": "30 min", "locked": True, "prerequisites": [1]},
                ],
            }],
            "quizzes": [{
                "id": "q1", "lessonId": 1, "passingScore": 70,
                "questions": [{"id": 1, "question": "Q?", "options": ["a", "b"], "correctAnswer": 0}],
            }],
        }
        catalog = load_catalog(legacy)
        assert catalog.lesson_ids == ["1", "2"]
        assert catalog.lesson("2").gating == Gating.GATED_BY_PREREQUISITES
        assert catalog.lesson("1").duration_minutes == 45
        assert catalog.quiz("q1").lesson_id == "1"


class TestLoadCatalogErrors:
    def test_validation_failure_wrapped(self):
        modules = [make_module("m1", [make_lesson("A", ["B"]), make_lesson("B", ["A"])])]
        with pytest.raises(CatalogError, match="cycle"):
            load_catalog(make_catalog_data(modules=modules, quizzes=[]))

    def test_catalog_error_is_value_error(self):
        with pytest.raises(ValueError):
            load_catalog({"modules": "not-a-list"})

    def test_catalog_error_is_progression_error(self):
        with pytest.raises(ProgressionError):
            load_catalog({"modules": [{"title": "no id"}]})

    def test_missing_file(self, tmp_path):
        with pytest.raises(CatalogError, match="Cannot read"):
            load_catalog(tmp_path / "absent.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(CatalogError, match="not valid JSON"):
            load_catalog(path)
