from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import settings


def _connect_args(url: str) -> dict:
    # SQLite connections are shared with the threadpool that runs sync endpoints.
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.database_url,
    connect_args=_connect_args(settings.database_url),
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Yield a database session and make sure it is always closed.

    Stores are responsible for doing commit / rollback explicitly.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    from . import models  # noqa: F401  registers the tables on Base.metadata

    Base.metadata.create_all(bind=engine)


def dispose_db() -> None:
    engine.dispose()
