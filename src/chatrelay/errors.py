class ChatRelayError(Exception):
    """Base class for errors raised by the relay."""


class IdentityInUse(ChatRelayError):
    def __init__(self, identity: str):
        super().__init__(f"Identity already registered: {identity}")
        self.identity = identity


class PersistenceError(ChatRelayError):
    """The message store could not complete an operation."""
