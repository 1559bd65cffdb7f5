"""
Shared pytest fixtures.

Environment variables are set before anything imports ``tally_sync`` so the
module-level settings and engine point at a throwaway database.
"""
import os
import sys
import tempfile

# Ensure the package is importable when running pytest from project root
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

_tmp_db = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
_tmp_db.close()

os.environ["DATABASE_URL"] = f"sqlite:///{_tmp_db.name}"
os.environ["SOURCE_SCHEMA"] = "tally"
os.environ["LOG_FILE"] = ""
os.environ["CORS_ORIGINS"] = "*"

import pytest  # noqa: E402
from sqlmodel import Session  # noqa: E402

from tally_sync.core.database import build_engine, create_db_and_tables  # noqa: E402
from tally_sync.etl.entities import ENTITY_SPECS  # noqa: E402
from tally_sync.etl.sources import StaticSource  # noqa: E402

SOURCE_TABLES = ["companies", "divisions"] + [s.source_table for s in ENTITY_SPECS.values()]


def build_source(**tables) -> StaticSource:
    """
    StaticSource with every source table present (empty unless given).

    Keyword names are the bare source table names: ``ledger=[...]`` fills
    ``tally.ledger``; ``companies=[...]`` fills ``companies``.
    """
    data = {name: [] for name in SOURCE_TABLES}
    for name, rows in tables.items():
        key = name if name in data else f"tally.{name}"
        data[key] = rows
    return StaticSource(data)


@pytest.fixture
def db_engine(tmp_path):
    eng = build_engine(f"sqlite:///{tmp_path / 'warehouse.db'}")
    create_db_and_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(db_engine):
    with Session(db_engine) as s:
        yield s


def pytest_sessionfinish(session, exitstatus):
    try:
        os.unlink(_tmp_db.name)
    except OSError:
        pass


@pytest.fixture
def make_source():
    return build_source
