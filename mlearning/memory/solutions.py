"""Verified solutions: known fixes keyed by (tool, message) signature."""
import sqlite3

from .common import utcnow


def _to_dict(row) -> dict:
    d = dict(row)
    d["auto_applicable"] = bool(d.get("auto_applicable"))
    return d


class Solutions:
    def __init__(self, conn: sqlite3.Connection):
        self._conn = conn

    def get(self, signature_hash: str) -> dict | None:
        row = self._conn.execute(
            "SELECT * FROM verified_solutions WHERE signature_hash=?", (signature_hash,)
        ).fetchone()
        return _to_dict(row) if row else None

    def upsert(
        self,
        signature_hash: str,
        summary: str = "",
        solution: str = "",
        confidence_score: float = 0.0,
        auto_applicable: bool = False,
        tool: str | None = None,
        message: str | None = None,
    ) -> str:
        now = utcnow()
        self._conn.execute(
            """INSERT INTO verified_solutions
               (signature_hash, created_at, updated_at, tool, message, summary, solution, confidence_score, auto_applicable)
               VALUES (?,?,?,?,?,?,?,?,?)
               ON CONFLICT(signature_hash) DO UPDATE SET
                 updated_at=excluded.updated_at,
                 tool=COALESCE(excluded.tool, verified_solutions.tool),
                 message=COALESCE(excluded.message, verified_solutions.message),
                 summary=excluded.summary,
                 solution=excluded.solution,
                 confidence_score=excluded.confidence_score,
                 auto_applicable=excluded.auto_applicable""",
            (signature_hash, now, now, tool, message, summary, solution, float(confidence_score), 1 if auto_applicable else 0),
        )
        self._conn.commit()
        return signature_hash
