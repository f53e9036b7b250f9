import asyncio
import os
import time

# Minimal values for tests
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ALLOWED_ORIGIN", "http://localhost:3000")
os.environ.setdefault("SEND_TIMEOUT", "1.0")

from httpx import ASGITransport
from httpx import AsyncClient
import pytest
from sqlalchemy.pool import StaticPool

from chatrelay.app import create_app
from chatrelay.db import make_engine
from chatrelay.db import make_sessionmaker
from chatrelay.errors import PersistenceError
from chatrelay.pool import ConnectionPool
from chatrelay.schemas import MessageRead
from chatrelay.settings import Settings
from chatrelay.store import init_db
from chatrelay.store import SqlMessageStore

ALLOWED_ORIGIN = "http://localhost:3000"


class FakeConnection:
    """In-memory stand-in for a WebSocket.

    Frames pushed with ``push`` are what the client "sends"; ``sent`` holds
    what the relay wrote to this client.
    """

    def __init__(self, fail_send=False, send_delay=0.0):
        self.inbox = asyncio.Queue()
        self.sent = []
        self.fail_send = fail_send
        self.send_delay = send_delay
        self.close_calls = 0

    def push(self, text):
        self.inbox.put_nowait({"type": "websocket.receive", "text": text})

    def push_bytes(self, data):
        self.inbox.put_nowait({"type": "websocket.receive", "bytes": data})

    def disconnect(self, code=1000):
        self.inbox.put_nowait({"type": "websocket.disconnect", "code": code})

    def fail_read(self, exc):
        self.inbox.put_nowait(exc)

    async def receive(self):
        item = await self.inbox.get()
        if isinstance(item, BaseException):
            raise item
        return item

    async def send_text(self, data):
        if self.send_delay:
            await asyncio.sleep(self.send_delay)
        if self.fail_send:
            raise ConnectionResetError("peer went away")
        self.sent.append(data)

    async def close(self, code=1000):
        self.close_calls += 1


class RecordingReporter:
    def __init__(self):
        self.persistence = []
        self.delivery = []
        self.receive = []

    def persistence_failed(self, identity, text, exc):
        self.persistence.append((identity, text, exc))

    def delivery_failed(self, sender, recipient, exc):
        self.delivery.append((sender, recipient, exc))

    def receive_failed(self, identity, exc):
        self.receive.append((identity, exc))


class MemoryStore:
    def __init__(self):
        self.rows = []

    def insert(self, username, text, channel_id):
        self.rows.append(MessageRead(username=username, message=text, channel_id=channel_id))

    def query_by_channel(self, channel_id):
        return [row for row in self.rows if row.channel_id == channel_id]


class FailingStore(MemoryStore):
    def insert(self, username, text, channel_id):
        raise PersistenceError("database is locked")


async def eventually(predicate, timeout=2.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


def wait_until(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met in time")
        time.sleep(0.01)


@pytest.fixture
def pool():
    return ConnectionPool()


@pytest.fixture
def reporter():
    return RecordingReporter()


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def engine():
    # One shared in-memory SQLite connection, visible from the thread pool too
    test_engine = make_engine("sqlite://", poolclass=StaticPool)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def db_engine(engine):
    init_db(engine)
    return engine


@pytest.fixture
def sql_store(db_engine):
    return SqlMessageStore(make_sessionmaker(db_engine))


@pytest.fixture
def test_settings():
    return Settings(ALLOWED_ORIGIN=ALLOWED_ORIGIN, SEND_TIMEOUT=1.0, LOG_LEVEL="DEBUG")


@pytest.fixture
def app(test_settings, db_engine, sql_store, reporter):
    return create_app(test_settings, engine=db_engine, store=sql_store, reporter=reporter)


# ---- HTTP client bound to the ASGI app ----
@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


@pytest.fixture
def make_conn():
    return FakeConnection


@pytest.fixture(name="eventually")
def eventually_fixture():
    return eventually


@pytest.fixture(name="wait_until")
def wait_until_fixture():
    return wait_until


@pytest.fixture
def failing_store():
    return FailingStore()
