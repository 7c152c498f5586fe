"""
Runtime settings for MLearning: app root, secrets, allowlists, zones.

Settings are resolved once (environment first, then conf/secrets.env under the
app root) and handed to the orchestrator, the policy gate and the panel app.
The object is frozen; nothing mutates it after startup.
"""
import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from mlearning.patching.zones import DEFAULT_ZONES, InsertionZone

DEFAULT_FILE_ALLOWLIST = ("index.js",)
DEFAULT_FIX_ALLOWLIST = ("replace_single_with_maybeSingle",)
AUTO_APPLY_CONFIDENCE_THRESHOLD = 0.85
DEFAULT_MODEL = "gpt-4o-mini"

BACKUPS_DIRNAME = "fix-backups"
PROPOSALS_DIRNAME = "fix-proposals"

_SECRET_KEYS = (
    "PANEL_TOKEN",
    "OPENAI_API_KEY",
    "MLEARNING_DB",
    "MLEARNING_MODEL",
    "MLEARNING_FILE_ALLOWLIST",
    "MLEARNING_FIX_ALLOWLIST",
    "MLEARNING_AUTO_APPLY_THRESHOLD",
    "MLEARNING_LOCK_TIMEOUT",
)


def app_root() -> Path:
    return Path(os.environ.get("MLEARNING_ROOT", os.getcwd()))


def load_secrets(root: Path | None = None) -> dict:
    """Read conf/secrets.env under the app root, then overlay the environment."""
    secrets = {}
    conf = (root or app_root()) / "conf" / "secrets.env"
    if conf.exists():
        for line in conf.read_text().splitlines():
            line = line.strip()
            if line and not line.startswith("#") and "=" in line:
                k, v = line.split("=", 1)
                secrets[k.strip()] = v.strip().strip('"\'')
    for k in _SECRET_KEYS:
        if os.environ.get(k):
            secrets[k] = os.environ[k]
    return secrets


def _parse_list(raw: str | None, fallback: tuple[str, ...]) -> frozenset[str]:
    raw = (raw or "").strip()
    if not raw:
        return frozenset(fallback)
    return frozenset(p.strip() for p in raw.split(",") if p.strip())


@dataclass(frozen=True)
class Settings:
    root: Path
    db_path: Path
    panel_token: str = ""
    openai_api_key: str = ""
    model: str = DEFAULT_MODEL
    file_allowlist: frozenset[str] = frozenset(DEFAULT_FILE_ALLOWLIST)
    fix_allowlist: frozenset[str] = frozenset(DEFAULT_FIX_ALLOWLIST)
    auto_apply_threshold: float = AUTO_APPLY_CONFIDENCE_THRESHOLD
    lock_timeout: float | None = None
    zones: Mapping[str, InsertionZone] = field(default_factory=lambda: MappingProxyType(dict(DEFAULT_ZONES)))

    @property
    def backups_dir(self) -> Path:
        return self.root / BACKUPS_DIRNAME

    @property
    def proposals_dir(self) -> Path:
        return self.root / PROPOSALS_DIRNAME

    def target_path(self, target_file: str) -> Path:
        return self.root / target_file

    @property
    def default_target(self) -> str:
        # Lowest name wins so the default is stable across runs.
        return sorted(self.file_allowlist)[0] if self.file_allowlist else ""


def load_settings(root: Path | str | None = None, **overrides) -> Settings:
    """Build the immutable Settings from env + secrets.env. Keyword overrides win (tests, CLI)."""
    base = Path(root) if root else app_root()
    secrets = load_secrets(base)
    timeout = secrets.get("MLEARNING_LOCK_TIMEOUT")
    values = {
        "root": base,
        "db_path": Path(secrets.get("MLEARNING_DB") or base / "memory" / "mlearning.db"),
        "panel_token": secrets.get("PANEL_TOKEN", ""),
        "openai_api_key": secrets.get("OPENAI_API_KEY", ""),
        "model": secrets.get("MLEARNING_MODEL") or DEFAULT_MODEL,
        "file_allowlist": _parse_list(secrets.get("MLEARNING_FILE_ALLOWLIST"), DEFAULT_FILE_ALLOWLIST),
        "fix_allowlist": _parse_list(secrets.get("MLEARNING_FIX_ALLOWLIST"), DEFAULT_FIX_ALLOWLIST),
        "auto_apply_threshold": float(secrets.get("MLEARNING_AUTO_APPLY_THRESHOLD") or AUTO_APPLY_CONFIDENCE_THRESHOLD),
        "lock_timeout": float(timeout) if timeout else None,
    }
    values.update(overrides)
    for key in ("file_allowlist", "fix_allowlist"):
        values[key] = frozenset(values[key])
    if "zones" in values and not isinstance(values["zones"], MappingProxyType):
        values["zones"] = MappingProxyType(dict(values["zones"]))
    return Settings(**values)


def configure_logging(level: int | str = logging.INFO) -> None:
    """One stderr handler for the whole process; safe to call twice."""
    root = logging.getLogger("mlearning")
    if any(getattr(h, "_mlearning", False) for h in root.handlers):
        root.setLevel(level)
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    handler._mlearning = True
    root.addHandler(handler)
    root.setLevel(level)
