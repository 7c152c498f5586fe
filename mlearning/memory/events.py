"""Events domain: learn events and their error mirror."""
import json
import sqlite3
import time

from .common import hash_id, row_to_dict, utcnow

DEFAULT_APP = "MLearning"


class Events:
    def __init__(self, conn: sqlite3.Connection):
        self._conn = conn

    def record(
        self,
        source: str,
        tool: str,
        message: str,
        signature_hash: str,
        level: str = "info",
        app: str | None = None,
        context: dict | None = None,
    ) -> str:
        eid = hash_id(f"learn:{signature_hash}:{time.time_ns()}")
        self._conn.execute(
            "INSERT INTO learn_events (id, created_at, source, app, level, tool, message, context, signature_hash) "
            "VALUES (?,?,?,?,?,?,?,?,?)",
            (eid, utcnow(), source, app or DEFAULT_APP, level, tool, message, json.dumps(context or {}), signature_hash),
        )
        self._conn.commit()
        return eid

    def record_error(
        self,
        source: str,
        tool: str,
        message: str,
        signature_hash: str,
        app: str | None = None,
        context: dict | None = None,
    ) -> str:
        eid = hash_id(f"error:{signature_hash}:{time.time_ns()}")
        self._conn.execute(
            "INSERT INTO error_events (id, created_at, source, app, tool, message, context, signature_hash) "
            "VALUES (?,?,?,?,?,?,?,?)",
            (eid, utcnow(), source, app or DEFAULT_APP, tool, message, json.dumps(context or {}), signature_hash),
        )
        self._conn.commit()
        return eid

    def recent(self, limit: int = 50) -> list[dict]:
        rows = self._conn.execute(
            "SELECT * FROM learn_events ORDER BY created_at DESC LIMIT ?", (limit,)
        ).fetchall()
        return [row_to_dict(r, ("context",)) for r in rows]

    def count_for_signature(self, signature_hash: str) -> int:
        row = self._conn.execute(
            "SELECT COUNT(*) FROM learn_events WHERE signature_hash=?", (signature_hash,)
        ).fetchone()
        return row[0] if row else 0
