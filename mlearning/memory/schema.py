"""Schema creation for the event store DB."""
import sqlite3


SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS learn_events (
        id              TEXT PRIMARY KEY,
        created_at      TEXT NOT NULL,
        source          TEXT NOT NULL,
        app             TEXT NOT NULL DEFAULT 'MLearning',
        level           TEXT NOT NULL DEFAULT 'info',
        tool            TEXT NOT NULL,
        message         TEXT NOT NULL,
        context         TEXT DEFAULT '{}',
        signature_hash  TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS error_events (
        id              TEXT PRIMARY KEY,
        created_at      TEXT NOT NULL,
        source          TEXT NOT NULL,
        app             TEXT NOT NULL DEFAULT 'MLearning',
        tool            TEXT NOT NULL,
        message         TEXT NOT NULL,
        context         TEXT DEFAULT '{}',
        signature_hash  TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS verified_solutions (
        signature_hash   TEXT PRIMARY KEY,
        created_at       TEXT NOT NULL,
        updated_at       TEXT NOT NULL,
        tool             TEXT,
        message          TEXT,
        summary          TEXT DEFAULT '',
        solution         TEXT DEFAULT '',
        confidence_score REAL DEFAULT 0.0,
        auto_applicable  INTEGER DEFAULT 0
    );

    CREATE TABLE IF NOT EXISTS fix_attempts (
        id           TEXT PRIMARY KEY,
        created_at   TEXT NOT NULL,
        source       TEXT NOT NULL,
        target_file  TEXT NOT NULL,
        fix_type     TEXT NOT NULL,
        mode         TEXT NOT NULL,
        changed      INTEGER NOT NULL DEFAULT 0,
        summary      TEXT DEFAULT '',
        diff_count   INTEGER NOT NULL DEFAULT 0
    );

    CREATE TABLE IF NOT EXISTS applied_patches (
        id           TEXT PRIMARY KEY,
        created_at   TEXT NOT NULL,
        source       TEXT NOT NULL,
        project      TEXT,
        target_file  TEXT NOT NULL,
        patch_type   TEXT NOT NULL,
        patch_key    TEXT NOT NULL UNIQUE,
        summary      TEXT DEFAULT '',
        backup_name  TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS code_proposals (
        id             TEXT PRIMARY KEY,
        created_at     TEXT NOT NULL,
        source         TEXT NOT NULL,
        project        TEXT,
        target_file    TEXT NOT NULL,
        insertion_zone TEXT NOT NULL,
        intent         TEXT NOT NULL,
        proposed_code  TEXT NOT NULL,
        proposal_hash  TEXT NOT NULL,
        mode           TEXT NOT NULL,
        status         TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS file_snapshots (
        id            TEXT PRIMARY KEY,
        created_at    TEXT NOT NULL,
        project       TEXT,
        file_path     TEXT NOT NULL,
        content_hash  TEXT NOT NULL,
        bytes         INTEGER NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_learn_events_sig ON learn_events(signature_hash);
    CREATE INDEX IF NOT EXISTS idx_learn_events_ts ON learn_events(created_at DESC);
    CREATE INDEX IF NOT EXISTS idx_error_events_sig ON error_events(signature_hash);
    CREATE INDEX IF NOT EXISTS idx_applied_patches_ts ON applied_patches(created_at DESC);
    CREATE INDEX IF NOT EXISTS idx_code_proposals_hash ON code_proposals(proposal_hash);
    CREATE INDEX IF NOT EXISTS idx_code_proposals_ts ON code_proposals(created_at DESC);
    CREATE INDEX IF NOT EXISTS idx_file_snapshots_path ON file_snapshots(file_path);
"""


def init_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(SCHEMA_SQL)
    conn.commit()
