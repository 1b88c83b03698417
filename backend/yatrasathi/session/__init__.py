from .principal import Principal, SessionState, merge_principal
from .provider import SessionProvider
from .storage import MemorySessionStore, RedisSessionStore, SessionStore, session_key

__all__ = [
    "Principal",
    "SessionState",
    "merge_principal",
    "SessionProvider",
    "SessionStore",
    "MemorySessionStore",
    "RedisSessionStore",
    "session_key",
]
