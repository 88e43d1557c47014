"""
Connection liveness checks.
"""

from typing import Any


def is_open(conn: Any) -> bool:
    """Cheap local check: does the driver still consider the socket open?"""
    try:
        return bool(conn.open)
    except Exception:
        return False


def ping(conn: Any) -> None:
    """
    Server round-trip. Never reconnects: a reconnect would reuse the original
    token, which has most likely expired by now.
    """
    conn.ping(reconnect=False)


def ping_quiet(conn: Any) -> bool:
    try:
        ping(conn)
        return True
    except Exception:
        return False
