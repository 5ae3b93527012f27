from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from island_rewards.config import settings


def _connect_args(database_url: str) -> dict:
    # SQLite connections are shared between the event loop and the scheduler thread
    if database_url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.database_url,
    connect_args=_connect_args(settings.database_url),
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    pass


def get_db():
    """Yield a database session scoped to one request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
