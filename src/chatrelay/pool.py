import asyncio
from collections.abc import Callable
from collections.abc import Mapping
from typing import Any
from typing import Protocol

from chatrelay.errors import IdentityInUse
from chatrelay.identity import random_identity

MAX_CLAIM_ATTEMPTS = 100


class Connection(Protocol):
    """The slice of a WebSocket the relay needs."""

    async def send_text(self, data: str) -> None: ...

    async def receive(self) -> Mapping[str, Any]: ...

    async def close(self, code: int = 1000) -> None: ...


class ConnectionPool:
    """Live connections keyed by identity.

    Every read and write of the mapping happens under one lock, and the lock
    is only held for the dict operation itself. Fan-out works on a copy
    returned by ``snapshot`` so sends never happen while it is held.
    """

    def __init__(self):
        self._connections: dict[str, Connection] = {}  # {identity: connection}
        self._lock = asyncio.Lock()

    async def register(self, identity: str, connection: Connection) -> None:
        async with self._lock:
            if identity in self._connections:
                raise IdentityInUse(identity)
            self._connections[identity] = connection

    async def claim(
        self, connection: Connection, generate: Callable[[], str] = random_identity
    ) -> str:
        """Draw identities until one is free and register ``connection`` under it."""
        async with self._lock:
            for _ in range(MAX_CLAIM_ATTEMPTS):
                identity = generate()
                if identity not in self._connections:
                    self._connections[identity] = connection
                    return identity
        raise IdentityInUse(identity)

    async def deregister(self, identity: str) -> None:
        async with self._lock:
            self._connections.pop(identity, None)

    async def snapshot(self) -> list[tuple[str, Connection]]:
        async with self._lock:
            return list(self._connections.items())

    def identities(self) -> list[str]:
        return list(self._connections)

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, identity: object) -> bool:
        return identity in self._connections
