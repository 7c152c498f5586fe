"""Proposals domain: code proposals and pre-write file snapshots."""
import sqlite3
import time

from .common import hash_id, utcnow


class Proposals:
    def __init__(self, conn: sqlite3.Connection):
        self._conn = conn

    def record(
        self,
        source: str,
        target_file: str,
        zone: str,
        intent: str,
        proposed_code: str,
        proposal_hash: str,
        mode: str,
        status: str,
        project: str | None = None,
    ) -> str:
        pid = hash_id(f"proposal:{proposal_hash}:{time.time_ns()}")
        self._conn.execute(
            "INSERT INTO code_proposals (id, created_at, source, project, target_file, insertion_zone, intent, "
            "proposed_code, proposal_hash, mode, status) VALUES (?,?,?,?,?,?,?,?,?,?,?)",
            (pid, utcnow(), source, project, target_file, zone, intent, proposed_code, proposal_hash, mode, status),
        )
        self._conn.commit()
        return pid

    def record_snapshot(self, file_path: str, content_hash: str, size: int, project: str | None = None) -> str:
        sid = hash_id(f"snapshot:{file_path}:{content_hash}:{time.time_ns()}")
        self._conn.execute(
            "INSERT INTO file_snapshots (id, created_at, project, file_path, content_hash, bytes) VALUES (?,?,?,?,?,?)",
            (sid, utcnow(), project, file_path, content_hash, size),
        )
        self._conn.commit()
        return sid

    def recent(self, limit: int = 25) -> list[dict]:
        rows = self._conn.execute(
            "SELECT * FROM code_proposals ORDER BY created_at DESC LIMIT ?", (limit,)
        ).fetchall()
        return [dict(r) for r in rows]

    def snapshots_for(self, file_path: str, limit: int = 25) -> list[dict]:
        rows = self._conn.execute(
            "SELECT * FROM file_snapshots WHERE file_path=? ORDER BY created_at DESC LIMIT ?", (file_path, limit)
        ).fetchall()
        return [dict(r) for r in rows]
