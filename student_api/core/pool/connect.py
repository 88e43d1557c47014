"""
PyMySQL helpers: open a connection with an IAM token as password, run a
read query, turn the cursor into dicts.
"""

from typing import Any

import pymysql

from student_api.core.config import ConnectionConfig


def connect(config: ConnectionConfig, password: str) -> Any:
    """
    Open a connection to the configured database.

    - password: the IAM auth token; used once, never stored.
    - TLS is enabled when ``config.ssl_ca`` is set (the server then accepts the
      token via the mysql_clear_password plugin).
    """
    for name, val in [
        ("host", config.host),
        ("database", config.database),
        ("user", config.user),
    ]:
        if not val:
            raise ValueError(f"connection config must provide {name}")

    ssl = {"ca": config.ssl_ca} if config.ssl_ca else None
    return pymysql.connect(
        host=config.host,
        port=int(config.port),
        database=config.database,
        user=config.user,
        password=password,
        connect_timeout=config.connect_timeout,
        ssl=ssl,
        autocommit=True,
        charset="utf8mb4",
    )


def execute(conn: Any, sql: str, params: dict | list | tuple | None = None) -> Any:
    """Execute SQL and return the cursor; caller closes it."""
    cur = conn.cursor()
    if params is not None:
        cur.execute(sql, params)
    else:
        cur.execute(sql)
    return cur


def cursor_to_dicts(cursor: Any) -> list[dict[str, Any]]:
    """Convert cursor result to list of dicts."""
    desc = cursor.description
    if not desc:
        return []
    names = [d[0] for d in desc]
    return [dict(zip(names, row, strict=True)) for row in cursor.fetchall()]


def fetch_all(conn: Any, sql: str, params: dict | list | tuple | None = None) -> list[dict[str, Any]]:
    cur = execute(conn, sql, params)
    try:
        return cursor_to_dicts(cur)
    finally:
        try:
            cur.close()
        except Exception:
            pass
