"""
Guarded patch engine.

Decides whether a proposed change may be written to an allowlisted file,
serializes writes per file, previews them as a positional diff, backs up
before every write and refuses to apply the same proposal twice.

Usage:
  from mlearning.config import load_settings
  from mlearning.memory import EventStore
  from mlearning.patching import PatchOrchestrator

  settings = load_settings()
  engine = PatchOrchestrator(settings, EventStore(settings.db_path))
  engine.apply_fix("index.js", "replace_single_with_maybeSingle", mode="preview")
"""

from .backups import Backup, BackupManager
from .diff import DiffEntry, apply_semantic_diff, semantic_diff
from .errors import PatchError
from .fixers import FIXERS, FixDescriptor, run_fix
from .locks import FileLockManager
from .orchestrator import APPLY, PREVIEW, PatchOrchestrator, insert_after_marker, normalize_mode
from .policy import PolicyDecision, can_auto_apply, evaluate_auto_apply, explain_decision
from .signature import build_signature, content_hash, proposal_hash, signature_hash
from .zones import DEFAULT_ZONES, InsertionZone
