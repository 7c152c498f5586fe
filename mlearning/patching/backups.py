"""Timestamped, never-overwritten copies of a file taken before each destructive write."""
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from .errors import BackupError

log = logging.getLogger(__name__)

MAX_NAME_ATTEMPTS = 1000


@dataclass(frozen=True)
class Backup:
    name: str
    path: str
    created_at: str

    def to_dict(self) -> dict:
        return {"backupName": self.name, "backupPath": self.path, "createdAt": self.created_at}


def now_stamp() -> str:
    # Microsecond resolution; ':' and '.' are not filename friendly everywhere.
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%fZ")


class BackupManager:
    def __init__(self, backups_dir: Path | str):
        self.backups_dir = Path(backups_dir)

    def _create_exclusive(self, base: str, stamp: str, data: bytes) -> Path:
        for n in range(MAX_NAME_ATTEMPTS):
            suffix = f"-{n}" if n else ""
            candidate = self.backups_dir / f"{base}.{stamp}{suffix}.bak"
            try:
                with open(candidate, "xb") as f:
                    f.write(data)
                    f.flush()
                    os.fsync(f.fileno())
                return candidate
            except FileExistsError:
                continue
        raise BackupError(f"Could not find a free backup name for {base}", stamp=stamp)

    def backup(self, target_path: Path | str) -> Backup:
        """Copy the current bytes of target_path. Raises BackupError on any failure."""
        target = Path(target_path)
        try:
            self.backups_dir.mkdir(parents=True, exist_ok=True)
            data = target.read_bytes()
            stamp = now_stamp()
            path = self._create_exclusive(target.name, stamp, data)
        except BackupError:
            raise
        except OSError as e:
            raise BackupError(f"Backup of {target.name} failed: {e}") from e
        log.info("backup %s -> %s (%d bytes)", target.name, path.name, len(data))
        return Backup(name=path.name, path=str(path), created_at=stamp)

    def list_backups(self, basename: str | None = None) -> list[dict]:
        if not self.backups_dir.exists():
            return []
        pattern = f"{basename}.*.bak" if basename else "*.bak"
        files = sorted(self.backups_dir.glob(pattern), key=lambda p: p.name, reverse=True)
        return [{"backupName": p.name, "bytes": p.stat().st_size} for p in files]
