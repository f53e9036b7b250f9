from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm import sessionmaker

from chatrelay.settings import settings

Base = declarative_base()


def make_engine(database_url: str, **kwargs) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        # Needed for SQLite + multithreaded servers
        connect_args = {"check_same_thread": False}
    return create_engine(database_url, future=True, connect_args=connect_args, **kwargs)


def make_sessionmaker(bind: Engine) -> sessionmaker:
    return sessionmaker(bind=bind, autoflush=False, autocommit=False, future=True)


engine = make_engine(settings.database_url)
SessionLocal = make_sessionmaker(engine)
