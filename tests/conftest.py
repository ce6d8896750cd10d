"""
Shared pytest fixtures for the progression engine test suite.
Factory helpers live in tests/factories.py so they can be imported
directly by test modules as well as being used here.
"""
import sys
import os

_tests_dir = os.path.dirname(__file__)
_src_dir   = os.path.join(_tests_dir, "..", "src")
for _p in (_tests_dir, _src_dir):
    if _p not in sys.path:
        sys.path.insert(0, _p)

# Keep a developer's .env from leaking into tests
for _key in [k for k in os.environ if k.startswith("PROGRESSION_")]:
    os.environ.pop(_key)


import pytest

from factories import FIXED_NOW, make_catalog, make_progress, make_settings

from progression.catalog import load_catalog
from progression.engine import ProgressionEngine


# ─── pytest fixtures ──────────────────────────────────────────────────────────

@pytest.fixture
def catalog():
    return make_catalog()


@pytest.fixture
def default_catalog():
    return load_catalog(settings=make_settings())


@pytest.fixture
def progress():
    return make_progress()


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def persisted():
    """Records handed to persist_progress, in call order."""
    return []


@pytest.fixture
def engine(catalog, settings, persisted):
    return ProgressionEngine(
        catalog,
        settings=settings,
        clock=lambda: FIXED_NOW,
        persist_progress=persisted.append,
    )
