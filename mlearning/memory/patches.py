"""Patch domain: fix attempts and applied patches (write-once, unique patch_key)."""
import sqlite3
import time

from .common import hash_id, utcnow


class Patches:
    def __init__(self, conn: sqlite3.Connection):
        self._conn = conn

    def record_attempt(
        self,
        source: str,
        target_file: str,
        fix_type: str,
        mode: str,
        changed: bool,
        summary: str = "",
        diff_count: int = 0,
    ) -> str:
        aid = hash_id(f"attempt:{target_file}:{fix_type}:{time.time_ns()}")
        self._conn.execute(
            "INSERT INTO fix_attempts (id, created_at, source, target_file, fix_type, mode, changed, summary, diff_count) "
            "VALUES (?,?,?,?,?,?,?,?,?)",
            (aid, utcnow(), source, target_file, fix_type, mode, 1 if changed else 0, summary, diff_count),
        )
        self._conn.commit()
        return aid

    def record(
        self,
        source: str,
        target_file: str,
        patch_type: str,
        patch_key: str,
        backup_name: str,
        summary: str = "",
        project: str | None = None,
    ) -> str:
        """Insert a PatchRecord. A repeated patch_key raises sqlite3.IntegrityError."""
        pid = hash_id(f"patch:{patch_key}")
        self._conn.execute(
            "INSERT INTO applied_patches (id, created_at, source, project, target_file, patch_type, patch_key, summary, backup_name) "
            "VALUES (?,?,?,?,?,?,?,?,?)",
            (pid, utcnow(), source, project, target_file, patch_type, patch_key, summary, backup_name),
        )
        self._conn.commit()
        return pid

    def find_by_key(self, patch_key: str) -> dict | None:
        row = self._conn.execute(
            "SELECT * FROM applied_patches WHERE patch_key=?", (patch_key,)
        ).fetchone()
        return dict(row) if row else None

    def recent(self, limit: int = 25) -> list[dict]:
        rows = self._conn.execute(
            "SELECT * FROM applied_patches ORDER BY created_at DESC LIMIT ?", (limit,)
        ).fetchall()
        return [dict(r) for r in rows]

    def recent_attempts(self, limit: int = 25) -> list[dict]:
        rows = self._conn.execute(
            "SELECT * FROM fix_attempts ORDER BY created_at DESC LIMIT ?", (limit,)
        ).fetchall()
        return [{**dict(r), "changed": bool(r["changed"])} for r in rows]
