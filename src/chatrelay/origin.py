from dataclasses import dataclass

from starlette.requests import HTTPConnection


@dataclass(frozen=True)
class OriginPolicy:
    """Which browser origin may open a chat socket."""

    allowed_origin: str

    def allows(self, origin: str | None) -> bool:
        return origin == self.allowed_origin

    def check(self, conn: HTTPConnection) -> bool:
        return self.allows(conn.headers.get("origin"))
