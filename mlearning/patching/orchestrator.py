"""
Patch orchestrator: the only code path that writes to an allowlisted file.

Two operations, each in preview or apply mode:
  - apply_fix:      run a registered deterministic fixer over the whole file
  - apply_proposal: splice proposed code in right after a zone marker

Safety model:
  - Inputs, allowlists, zone and mode are checked before the lock is taken
  - Everything that reads or writes the target happens under its file lock
  - Preview never touches disk (no backup, no write)
  - Apply backs up first; a failed backup aborts the write
  - A proposal hash that already has a PatchRecord is never applied again
  - Audit rows (attempts, proposals, snapshots) are best-effort
"""
import logging
import os
import tempfile
from pathlib import Path

from . import signature
from .backups import BackupManager
from .diff import diff_to_json, semantic_diff
from .errors import (
    DuplicateApplyError,
    MarkerNotFoundError,
    NotAllowlistedError,
    PatchError,
    StoreError,
    TargetNotFoundError,
    UnknownZoneError,
    ValidationError,
)
from .fixers import run_fix
from .locks import FileLockManager

log = logging.getLogger(__name__)

PREVIEW = "preview"
APPLY = "apply"
MODE_ALIASES = {"preview": PREVIEW, "dry-run": PREVIEW, "apply": APPLY}

DEFAULT_PROJECT = "MLearning"
SOURCE = "panel"


def normalize_mode(mode: str | None) -> str:
    """None means preview. "dry-run" is accepted for older panel clients."""
    if mode is None:
        return PREVIEW
    m = MODE_ALIASES.get(mode) if isinstance(mode, str) else None
    if m is None:
        raise ValidationError("Invalid mode", mode=mode)
    return m


def insert_after_marker(original: str, marker: str, code: str) -> str | None:
    """Return original with code spliced in after the first marker, or None if the marker is absent.

    The block is framed by one blank line on each side; a newline already
    following the marker is absorbed so the spacing does not grow.
    """
    idx = original.find(marker)
    if idx == -1:
        return None
    at = idx + len(marker)
    rest = original[at:]
    if rest.startswith("\n"):
        rest = rest[1:]
    return original[:at] + "\n\n" + code.strip() + "\n\n" + rest


def _write_text(path: Path, content: str) -> None:
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


def _best_effort(what: str, fn, *args, **kwargs) -> None:
    # Audit writes must never fail the primary response.
    try:
        fn(*args, **kwargs)
    except Exception as e:
        log.warning("best-effort %s failed: %s", what, e)


class PatchOrchestrator:
    def __init__(self, settings, store=None, locks: FileLockManager | None = None, backups: BackupManager | None = None):
        self.settings = settings
        self.store = store
        self.locks = locks or FileLockManager()
        self.backups = backups or BackupManager(settings.backups_dir)

    # ------------------------------------------------------------------
    # Preconditions
    # ------------------------------------------------------------------

    def _check_target(self, target_file: str) -> Path:
        if target_file not in self.settings.file_allowlist:
            raise NotAllowlistedError("Target file not allowlisted", targetFile=target_file)
        return self.settings.target_path(target_file)

    def _check_exists(self, target_file: str, path: Path) -> None:
        if not path.is_file():
            raise TargetNotFoundError(target_file)

    def _read_target(self, target_file: str, path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise TargetNotFoundError(target_file) from None
        except UnicodeDecodeError as e:
            raise ValidationError("Target file is not valid UTF-8", targetFile=target_file, position=e.start) from e

    def _record(self, what: str, method: str, **row) -> None:
        if self.store is None:
            return
        _best_effort(what, getattr(self.store, method), **row)

    def _commit_write(self, path: Path, content: str):
        backup = self.backups.backup(path)
        _write_text(path, content)
        return backup

    # ------------------------------------------------------------------
    # Apply a registered fixer
    # ------------------------------------------------------------------

    def apply_fix(self, target_file: str, fix_type: str, mode: str | None = PREVIEW) -> dict:
        if not target_file or not fix_type:
            raise ValidationError("Missing targetFile or fixType")
        path = self._check_target(target_file)
        if fix_type not in self.settings.fix_allowlist:
            raise NotAllowlistedError("Fix not allowlisted", fixType=fix_type)
        mode = normalize_mode(mode)
        self._check_exists(target_file, path)

        with self.locks.hold(target_file, self.settings.lock_timeout):
            original = self._read_target(target_file, path)
            fix = run_fix(fix_type, original)
            diff = semantic_diff(original, fix.updated)

            self._record(
                "fix attempt", "record_fix_attempt",
                source=SOURCE, target_file=target_file, fix_type=fix_type, mode=mode,
                changed=fix.changed, summary=fix.summary, diff_count=len(diff),
            )

            if mode == PREVIEW:
                log.debug("preview fix %s on %s: %d diff lines", fix_type, target_file, len(diff))
                return {
                    "mode": mode,
                    "targetFile": target_file,
                    "fixType": fix_type,
                    "changed": fix.changed,
                    "summary": fix.summary,
                    "semanticDiff": diff_to_json(diff),
                    "note": "Preview only. No files changed.",
                }

            backup = self._commit_write(path, fix.updated)
            patch_key = signature.fix_patch_key(fix_type, target_file, backup.name)
            self._record(
                "patch record", "record_patch",
                source=SOURCE, project=DEFAULT_PROJECT, target_file=target_file, patch_type="fix",
                patch_key=patch_key, summary=fix.summary, backup_name=backup.name,
            )
            log.info("applied fix %s to %s (backup %s)", fix_type, target_file, backup.name)
            return {
                "mode": mode,
                "applied": True,
                "targetFile": target_file,
                "fixType": fix_type,
                "changed": fix.changed,
                "summary": fix.summary,
                "patchKey": patch_key,
                "backup": backup.to_dict(),
                "diff_count": len(diff),
            }

    # ------------------------------------------------------------------
    # Insert proposed code at a zone marker
    # ------------------------------------------------------------------

    def _already_applied(self, patch_key: str) -> bool:
        if self.store is None:
            return False
        try:
            return self.store.find_patch(patch_key) is not None
        except PatchError:
            raise
        except Exception as e:
            # Without an answer the duplicate guard cannot hold: refuse the write.
            raise StoreError(f"Could not check applied patches: {e}") from e

    def apply_proposal(
        self,
        target_file: str,
        zone: str,
        proposed_code: str,
        intent: str,
        mode: str | None = PREVIEW,
        project: str = DEFAULT_PROJECT,
    ) -> dict:
        if not target_file or not zone or not proposed_code or not intent:
            raise ValidationError("Missing targetFile, zone, proposedCode, or intent")
        path = self._check_target(target_file)
        insertion_zone = self.settings.zones.get(zone)
        if insertion_zone is None:
            raise UnknownZoneError(zone)
        mode = normalize_mode(mode)
        self._check_exists(target_file, path)
        project = project or DEFAULT_PROJECT
        code = str(proposed_code).strip()

        with self.locks.hold(target_file, self.settings.lock_timeout):
            original = self._read_target(target_file, path)
            updated = insert_after_marker(original, insertion_zone.marker, code)
            if updated is None:
                raise MarkerNotFoundError(zone, target_file)

            diff = semantic_diff(original, updated)
            phash = signature.proposal_hash(target_file, zone, intent, code)

            self._record(
                "proposal", "record_proposal",
                source=SOURCE, project=project, target_file=target_file, zone=zone, intent=intent,
                proposed_code=code, proposal_hash=phash, mode=mode,
                status="applied_requested" if mode == APPLY else "previewed",
            )
            self._record(
                "snapshot", "record_snapshot",
                project=project, file_path=target_file,
                content_hash=signature.sha256(original), size=len(original.encode("utf-8")),
            )

            if mode == PREVIEW:
                log.debug("preview proposal %s on %s/%s", phash[:12], target_file, zone)
                return {
                    "mode": mode,
                    "targetFile": target_file,
                    "zone": zone,
                    "intent": intent,
                    "proposalHash": phash,
                    "semanticDiff": diff_to_json(diff),
                    "note": "Preview only. No files were modified.",
                }

            if self._already_applied(phash):
                log.info("duplicate proposal %s refused for %s", phash[:12], target_file)
                raise DuplicateApplyError(phash)

            backup = self._commit_write(path, updated)
            self._record(
                "patch record", "record_patch",
                source=SOURCE, project=project, target_file=target_file, patch_type="proposal",
                patch_key=phash, summary=intent, backup_name=backup.name,
            )
            log.info("applied proposal %s to %s/%s (backup %s)", phash[:12], target_file, zone, backup.name)
            return {
                "mode": mode,
                "applied": True,
                "targetFile": target_file,
                "zone": zone,
                "intent": intent,
                "proposalHash": phash,
                "backup": backup.to_dict(),
                "diff_count": len(diff),
            }
