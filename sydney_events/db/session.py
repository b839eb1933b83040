from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from sydney_events.core.config import settings


class Base(DeclarativeBase):
    pass


engine = create_engine(settings.database_dsn, pool_pre_ping=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None) -> None:
    # Model modules register their tables on Base.metadata when imported.
    import sydney_events.models.event  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
