from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from sostrack.config import settings

Base = declarative_base()


def make_engine(url: str):
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        # one shared connection, otherwise every thread gets its own empty database
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)
    return create_engine(url, pool_pre_ping=True)


def make_session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


engine = make_engine(settings.database_url)
SessionLocal = make_session_factory(engine)


def init_db(bind=None):
    # models must be imported so their tables are registered on Base.metadata
    from sostrack import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
