"""The broadcast engine: one ``ChatSession`` per connected client.

A session claims an identity in the pool, then reads data frames until the
read fails. Binary frames are treated as UTF-8 text. Each frame is stored
and relayed to every other identity in the pool. Storage and delivery
failures go to the ``ErrorReporter``; neither ends the session. Whatever
ends the loop, the identity is released and the connection closed exactly
once.
"""

import asyncio
from collections.abc import Mapping
from enum import Enum
from functools import partial
import logging
from typing import Any

from starlette.concurrency import run_in_threadpool
from starlette.websockets import WebSocketDisconnect

from chatrelay.errors import IdentityInUse
from chatrelay.identity import random_identity
from chatrelay.pool import Connection
from chatrelay.pool import ConnectionPool
from chatrelay.reporting import ErrorReporter
from chatrelay.reporting import LoggingErrorReporter
from chatrelay.store import MessageStore

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    CONNECTING = "connecting"
    REGISTERED = "registered"
    READING = "reading"
    CLOSING = "closing"
    CLOSED = "closed"


async def fan_out(
    pool: ConnectionPool,
    sender: str,
    text: str,
    reporter: ErrorReporter,
    timeout: float | None = None,
) -> int:
    """Send ``text`` to everyone in the pool except ``sender``.

    Returns the number of successful deliveries.
    """
    recipients = [(identity, conn) for identity, conn in await pool.snapshot() if identity != sender]
    if not recipients:
        return 0

    results = await asyncio.gather(
        *(_deliver(sender, identity, conn, text, reporter, timeout) for identity, conn in recipients)
    )
    return sum(results)


async def _deliver(
    sender: str,
    recipient: str,
    connection: Connection,
    text: str,
    reporter: ErrorReporter,
    timeout: float | None,
) -> bool:
    try:
        await asyncio.wait_for(connection.send_text(text), timeout=timeout)
    except Exception as e:
        # The recipient stays in the pool until its own read fails
        reporter.delivery_failed(sender, recipient, e)
        return False
    return True


def frame_text(message: Mapping[str, Any]) -> str:
    """Payload of a websocket.receive message; bytes are decoded as UTF-8."""
    if message.get("text") is not None:
        return message["text"]
    data = message.get("bytes") or b""
    return data.decode("utf-8", errors="replace")


class ChatSession:
    def __init__(
        self,
        connection: Connection,
        pool: ConnectionPool,
        store: MessageStore,
        reporter: ErrorReporter | None = None,
        channel_id: int = 1,
        send_timeout: float | None = None,
        identity_length: int = 5,
    ):
        self.connection = connection
        self.pool = pool
        self.store = store
        self.reporter = reporter or LoggingErrorReporter()
        self.channel_id = channel_id
        self.send_timeout = send_timeout
        self.identity_length = identity_length

        self.identity: str | None = None
        self.state = SessionState.CONNECTING

    async def run(self) -> None:
        try:
            try:
                self.identity = await self.pool.claim(
                    self.connection, partial(random_identity, self.identity_length)
                )
            except IdentityInUse as e:
                logger.warning("No free identity for new connection: %s", e)
                return
            self.state = SessionState.REGISTERED
            logger.info("%s connected (%d online)", self.identity, len(self.pool))

            while True:
                text = await self.receive()
                if text is None:
                    break
                await self.handle_message(text)
        finally:
            await self.close()

    async def receive(self) -> str | None:
        """Next frame as text, or None once the connection can no longer be read."""
        self.state = SessionState.READING
        try:
            message = await self.connection.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
            text = frame_text(message)
        except WebSocketDisconnect as e:
            logger.info("%s disconnected (code=%s)", self.identity, e.code)
            return None
        except Exception as e:
            self.reporter.receive_failed(self.identity, e)
            return None
        self.state = SessionState.REGISTERED
        return text

    async def handle_message(self, text: str) -> int:
        logger.info("receive: %s", text)

        try:
            await run_in_threadpool(self.store.insert, self.identity, text.strip(), self.channel_id)
        except Exception as e:
            self.reporter.persistence_failed(self.identity, text, e)

        return await fan_out(self.pool, self.identity, text, self.reporter, self.send_timeout)

    async def close(self) -> None:
        if self.state in (SessionState.CLOSING, SessionState.CLOSED):
            return
        self.state = SessionState.CLOSING

        if self.identity is not None:
            await self.pool.deregister(self.identity)
        try:
            await self.connection.close()
        except (RuntimeError, OSError, WebSocketDisconnect) as e:
            # The client already hung up
            logger.debug("%s already closed: %s", self.identity, e)

        self.state = SessionState.CLOSED
        logger.info("%s left (%d online)", self.identity, len(self.pool))
