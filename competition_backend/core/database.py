from sqlmodel import SQLModel, Session, create_engine
from sqlalchemy.pool import StaticPool

from competition_backend.core.config import DATABASE_URL, SQL_ECHO


def make_engine(url: str = DATABASE_URL, echo: bool = SQL_ECHO):
    """
    Build a sync engine for the given URL.
    In-memory SQLite shares one connection across threads (tests, TestClient).
    """
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
        if ":memory:" in url or url == "sqlite://":
            return create_engine(url, echo=echo, connect_args=connect_args, poolclass=StaticPool)
        return create_engine(url, echo=echo, connect_args=connect_args)
    return create_engine(url, echo=echo)


# --- Engine ---
engine = make_engine()


# --- Initialize DB tables ---
def init_db(bind=None):
    """Create tables if they don't exist."""
    # Import models so every table is registered on the metadata
    from competition_backend import models  # noqa: F401

    SQLModel.metadata.create_all(bind or engine)


# --- Session dependency (used in routes) ---
def get_session():
    with Session(engine) as session:
        yield session
