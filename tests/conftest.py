"""Shared pytest fixtures: temp app root with an allowlisted index.js, settings, store, engine."""
import os
import pytest
from pathlib import Path

from mlearning.config import load_settings
from mlearning.memory import EventStore
from mlearning.patching import PatchOrchestrator
from mlearning.patching.zones import DEFAULT_ZONES

TOKEN = "test-panel-token"

INDEX_JS = (
    'import express from "express";\n'
    "const app = express();\n"
    "\n"
    f"{DEFAULT_ZONES['helpers'].marker}\n"
    "function readText(p) { return p; }\n"
    "\n"
    f"{DEFAULT_ZONES['routes'].marker}\n"
    'app.get("/known-fix", async (req, res) => {\n'
    '  const { data } = await supabase.from("verified_solutions").select("*").single();\n'
    "  res.json(data);\n"
    "});\n"
)


@pytest.fixture
def app_root(tmp_path):
    """Set MLEARNING_ROOT to a temp directory holding index.js; restore after test."""
    root = tmp_path / "app_root"
    root.mkdir()
    (root / "conf").mkdir()
    (root / "index.js").write_text(INDEX_JS, encoding="utf-8")
    orig = os.environ.get("MLEARNING_ROOT")
    os.environ["MLEARNING_ROOT"] = str(root)
    try:
        yield root
    finally:
        if orig is not None:
            os.environ["MLEARNING_ROOT"] = orig
        elif "MLEARNING_ROOT" in os.environ:
            del os.environ["MLEARNING_ROOT"]


@pytest.fixture
def mock_env(monkeypatch):
    """Strip real secrets from the environment so tests never pick them up."""
    for key in ("PANEL_TOKEN", "OPENAI_API_KEY", "MLEARNING_DB", "MLEARNING_FILE_ALLOWLIST",
                "MLEARNING_FIX_ALLOWLIST", "MLEARNING_AUTO_APPLY_THRESHOLD", "MLEARNING_LOCK_TIMEOUT"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def settings(app_root, mock_env):
    return load_settings(app_root, panel_token=TOKEN)


@pytest.fixture
def store(settings):
    s = EventStore(settings.db_path)
    yield s
    s.close()


@pytest.fixture
def engine(settings, store):
    return PatchOrchestrator(settings, store)


@pytest.fixture
def backups_on_disk(settings):
    """Callable listing backup files currently under the backups dir."""
    def _list() -> list[Path]:
        if not settings.backups_dir.exists():
            return []
        return sorted(settings.backups_dir.glob("*.bak"))
    return _list
