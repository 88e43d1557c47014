"""
IAM-authenticated MySQL connections: token generation, connect helpers,
liveness checks, and the idle pool.
"""

from .connect import connect, cursor_to_dicts, execute, fetch_all
from .health import is_open, ping, ping_quiet
from .manager import PoolManager
from .token import TokenProvider, classify_token_error

__all__ = [
    "connect",
    "execute",
    "cursor_to_dicts",
    "fetch_all",
    "is_open",
    "ping",
    "ping_quiet",
    "PoolManager",
    "TokenProvider",
    "classify_token_error",
]
