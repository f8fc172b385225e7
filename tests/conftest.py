"""
Shared pytest fixtures for the LearnPath test suite.
All fixtures use mock mode — no Azure credentials required — and a fresh
SQLite file per test.  Factory helpers live in tests/factories.py so they
can be imported directly by test modules as well as being used here.
"""
import sys
import os

_tests_dir = os.path.dirname(__file__)
_src_dir   = os.path.join(_tests_dir, "..", "src")
for _p in (_tests_dir, _src_dir):
    if _p not in sys.path:
        sys.path.insert(0, _p)

# Force mock mode — never call Azure during tests
os.environ["FORCE_MOCK_MODE"] = "true"
os.environ.setdefault("AZURE_OPENAI_ENDPOINT", "<placeholder>")
os.environ.setdefault("AZURE_OPENAI_API_KEY",  "<placeholder>")


import pytest

from factories import make_course, make_user

from learnpath import database


# ─── pytest fixtures ──────────────────────────────────────────────────────────

@pytest.fixture
def db(tmp_path, monkeypatch):
    """Point the store at a throw-away database file."""
    monkeypatch.setattr(database, "_DB_PATH", tmp_path / "learnpath_test.db")
    database.init_db()
    return tmp_path / "learnpath_test.db"


@pytest.fixture
def ctx(db):
    return make_user("Test User")


@pytest.fixture
def course3(ctx):
    """Three milestones, each quiz keyed [0, 1, 2]."""
    return make_course(ctx, n_milestones=3)
