"""
Event store for MLearning.

Holds everything structured the backend records:
  - Events:     learn events (every ingested runtime event) + error mirror
  - Solutions:  verified fixes keyed by (tool, message) signature hash
  - Patches:    fix attempts and applied patches (patch_key is unique)
  - Proposals:  code proposals and pre-write file snapshots

Storage: one SQLite file. The panel serves requests from a thread pool, so the
connection is shared across threads and every call goes through one lock.
"""

import functools
import sqlite3
import threading
from pathlib import Path

from .events import Events
from .patches import Patches
from .proposals import Proposals
from .schema import init_schema
from .solutions import Solutions


def _locked(method):
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper


class EventStore:
    def __init__(self, db_path: Path | str):
        self._path = Path(db_path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self._conn = sqlite3.connect(str(self._path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        init_schema(self._conn)

        self._events = Events(self._conn)
        self._solutions = Solutions(self._conn)
        self._patches = Patches(self._conn)
        self._proposals = Proposals(self._conn)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    @_locked
    def record_event(self, source: str, tool: str, message: str, signature_hash: str, level: str = "info", app: str | None = None, context: dict | None = None) -> str:
        return self._events.record(source, tool, message, signature_hash, level, app, context)

    @_locked
    def record_error_event(self, source: str, tool: str, message: str, signature_hash: str, app: str | None = None, context: dict | None = None) -> str:
        return self._events.record_error(source, tool, message, signature_hash, app, context)

    @_locked
    def recent_events(self, limit: int = 50) -> list[dict]:
        return self._events.recent(limit)

    @_locked
    def event_count(self, signature_hash: str) -> int:
        return self._events.count_for_signature(signature_hash)

    # ------------------------------------------------------------------
    # Verified solutions
    # ------------------------------------------------------------------
    @_locked
    def find_solution(self, signature_hash: str) -> dict | None:
        return self._solutions.get(signature_hash)

    @_locked
    def upsert_solution(self, signature_hash: str, summary: str = "", solution: str = "", confidence_score: float = 0.0, auto_applicable: bool = False, tool: str | None = None, message: str | None = None) -> str:
        return self._solutions.upsert(signature_hash, summary, solution, confidence_score, auto_applicable, tool, message)

    # ------------------------------------------------------------------
    # Patches
    # ------------------------------------------------------------------
    @_locked
    def record_fix_attempt(self, source: str, target_file: str, fix_type: str, mode: str, changed: bool, summary: str = "", diff_count: int = 0) -> str:
        return self._patches.record_attempt(source, target_file, fix_type, mode, changed, summary, diff_count)

    @_locked
    def record_patch(self, source: str, target_file: str, patch_type: str, patch_key: str, backup_name: str, summary: str = "", project: str | None = None) -> str:
        return self._patches.record(source, target_file, patch_type, patch_key, backup_name, summary, project)

    @_locked
    def find_patch(self, patch_key: str) -> dict | None:
        return self._patches.find_by_key(patch_key)

    @_locked
    def recent_patches(self, limit: int = 25) -> list[dict]:
        return self._patches.recent(limit)

    @_locked
    def recent_fix_attempts(self, limit: int = 25) -> list[dict]:
        return self._patches.recent_attempts(limit)

    # ------------------------------------------------------------------
    # Proposals
    # ------------------------------------------------------------------
    @_locked
    def record_proposal(self, source: str, target_file: str, zone: str, intent: str, proposed_code: str, proposal_hash: str, mode: str, status: str, project: str | None = None) -> str:
        return self._proposals.record(source, target_file, zone, intent, proposed_code, proposal_hash, mode, status, project)

    @_locked
    def record_snapshot(self, file_path: str, content_hash: str, size: int, project: str | None = None) -> str:
        return self._proposals.record_snapshot(file_path, content_hash, size, project)

    @_locked
    def recent_proposals(self, limit: int = 25) -> list[dict]:
        return self._proposals.recent(limit)

    @_locked
    def snapshots_for(self, file_path: str, limit: int = 25) -> list[dict]:
        return self._proposals.snapshots_for(file_path, limit)

    def close(self):
        with self._lock:
            self._conn.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
