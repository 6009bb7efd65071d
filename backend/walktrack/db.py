from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

# SQLAlchemy Base class for models to inherit
Base = declarative_base()


def make_engine(database_url: str):
    """Create the engine backing the key-value store.

    In-memory SQLite gets a single shared connection; otherwise every new
    connection would see its own empty database.
    """
    if database_url.startswith("sqlite") and (":memory:" in database_url or database_url.endswith("://")):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})
    return create_engine(
        database_url,
        pool_pre_ping=True,   # helps avoid stale connections
    )


def make_session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(engine) -> None:
    # Import ensures the table is registered on Base.metadata
    from walktrack.models.preference import Preference  # noqa: F401

    Base.metadata.create_all(bind=engine)
