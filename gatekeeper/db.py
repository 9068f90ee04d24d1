import logging
import threading
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import unquote, urlparse

import mysql.connector

from gatekeeper.tokens import RowMode, Scalar

log = logging.getLogger(__name__)

MYSQL_PORT = 3306


class ExecutionFailed(Exception):
    """Raised when a statement could not be run; the message is the driver's."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def parse_database_url(url: str) -> Dict[str, Any]:
    parts = urlparse(url)
    if parts.scheme not in ("mysql", "mysql+mysqlconnector"):
        raise ValueError(f"unsupported database url scheme: {parts.scheme!r}")

    params = {
        "host": parts.hostname or "localhost",
        "port": parts.port or MYSQL_PORT,
        "user": unquote(parts.username or ""),
        "password": unquote(parts.password or ""),
    }
    database = parts.path.lstrip("/")
    if database:
        params["database"] = database
    return params


class Database:
    """The single connection every request shares.

    mysql-connector connections are not safe to use from several threads at
    once, so statements are serialized on a lock held for one execute+fetch.
    """

    def __init__(self, conn=None):
        self.conn = conn
        self._lock = threading.Lock()

    @classmethod
    def connect(cls, url: str) -> "Database":
        params = parse_database_url(url)
        conn = mysql.connector.connect(autocommit=True, **params)
        log.info("connected to %s:%s", params["host"], params["port"])
        return cls(conn)

    def execute(self, sql: str, params: Sequence[Scalar], mode: RowMode) -> List[Any]:
        if self.conn is None:
            raise ExecutionFailed("database connection is not established")

        with self._lock:
            try:
                cur = self.conn.cursor(dictionary=mode is RowMode.RECORD)
                try:
                    cur.execute(sql, tuple(params) or None)
                    rows = cur.fetchall() if cur.with_rows else []
                finally:
                    cur.close()
            except mysql.connector.Error as e:
                raise ExecutionFailed(_message(e)) from e

        if mode is RowMode.ARRAY:
            return [list(r) for r in rows]
        return [dict(r) for r in rows]


def _message(err: "mysql.connector.Error") -> str:
    msg: Optional[str] = getattr(err, "msg", None)
    return msg or str(err)
