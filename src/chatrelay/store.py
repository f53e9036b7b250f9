"""Message persistence.

``MessageStore`` is the port the broadcast engine and the channel API talk
to. ``SqlMessageStore`` backs it with SQLAlchemy. Both methods are blocking
and open their own ORM session, so they can run concurrently from the
thread pool.
"""

from typing import Protocol

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from chatrelay.db import Base
from chatrelay.db import SessionLocal
from chatrelay.errors import PersistenceError
from chatrelay.models import Channel
from chatrelay.models import Message
from chatrelay.models import User
from chatrelay.schemas import MessageCreate
from chatrelay.schemas import MessageRead

DEFAULT_CHANNEL_NAME = "general"


class MessageStore(Protocol):
    def insert(self, username: str, text: str, channel_id: int) -> None: ...

    def query_by_channel(self, channel_id: int) -> list[MessageRead]: ...


class SqlMessageStore:
    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self.session_factory = session_factory

    def insert(self, username: str, text: str, channel_id: int) -> None:
        data = MessageCreate(username=username, text=text, channel_id=channel_id)

        with self.session_factory() as db:
            try:
                # messages.username references users.username
                if db.query(User.id).filter_by(username=data.username).first() is None:
                    db.add(User(username=data.username))
                db.add(
                    Message(username=data.username, message=data.text, channel_id=data.channel_id)
                )
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                raise PersistenceError(f"Failed to insert message from {username}: {e}") from e

    def query_by_channel(self, channel_id: int) -> list[MessageRead]:
        with self.session_factory() as db:
            try:
                rows = db.query(Message).filter_by(channel_id=channel_id).order_by(Message.id).all()
            except SQLAlchemyError as e:
                raise PersistenceError(f"Failed to get channel messages: {e}") from e
            return [MessageRead.model_validate(row) for row in rows]


def init_db(engine: Engine, default_channel_id: int = 1) -> None:
    """Create any missing tables and make sure the default channel exists."""
    # Import models to ensure they're registered on Base.metadata
    from chatrelay import models  # noqa: F401

    Base.metadata.create_all(bind=engine)

    with sessionmaker(bind=engine)() as db:
        if db.get(Channel, default_channel_id) is None:
            db.add(Channel(id=default_channel_id, name=DEFAULT_CHANNEL_NAME))
            db.commit()
