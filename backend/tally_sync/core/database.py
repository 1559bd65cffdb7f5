"""SQLModel database engine and session management."""
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine, Session
from tally_sync.core.config import settings

# Import models so SQLModel.metadata knows about all tables
import tally_sync.models.tenant  # noqa: F401
import tally_sync.models.master  # noqa: F401
import tally_sync.models.transaction  # noqa: F401


def _connect_args(url: str) -> dict:
    """Per-call timeout for the backing store, expressed the way each driver wants it."""
    if url.startswith("sqlite"):
        return {"check_same_thread": False, "timeout": settings.DB_STATEMENT_TIMEOUT}
    if url.startswith("postgresql"):
        ms = settings.DB_STATEMENT_TIMEOUT * 1000
        return {"options": f"-c statement_timeout={ms}"}
    return {}


def build_engine(url: str) -> Engine:
    return create_engine(url, connect_args=_connect_args(url), echo=False)


engine = build_engine(settings.DATABASE_URL)


def create_db_and_tables(bind: Engine | None = None) -> None:
    """Create all tables defined in SQLModel models."""
    SQLModel.metadata.create_all(bind or engine)


def get_session():
    """FastAPI dependency: yields a SQLModel session."""
    with Session(engine) as session:
        yield session
