"""
Deterministic fixers.

Each fixer takes the full text of a file and returns the updated text plus a
summary. The registry is closed: a fixer runs only if it is listed here AND
its name is in the fix allowlist of the running Settings.
"""
import re
from dataclasses import dataclass
from typing import Callable

UNKNOWN_FIX_SUMMARY = "Unknown fixType"


@dataclass(frozen=True)
class FixDescriptor:
    fix_type: str
    original: str
    updated: str
    changed: bool
    summary: str


def fix_replace_single_with_maybe_single(original: str) -> tuple[str, str]:
    updated = original.replace(".single(", ".maybeSingle(")
    if updated != original:
        return updated, "Replaced .single( with .maybeSingle( to avoid 400 errors on 0-row results."
    return updated, "No .single( usage found."


_CR = re.compile(r"\r\n?")


def fix_normalize_line_endings(original: str) -> tuple[str, str]:
    updated = _CR.sub("\n", original)
    if updated != original:
        return updated, "Normalized CRLF/CR line endings to LF."
    return updated, "Line endings already LF."


FIXERS: dict[str, Callable[[str], tuple[str, str]]] = {
    "replace_single_with_maybeSingle": fix_replace_single_with_maybe_single,
    "normalize_line_endings": fix_normalize_line_endings,
}


def is_registered(fix_type: str) -> bool:
    return fix_type in FIXERS


def run_fix(fix_type: str, original: str) -> FixDescriptor:
    """Run a registered fixer. Unknown types come back unchanged, never raise."""
    fixer = FIXERS.get(fix_type)
    if fixer is None:
        return FixDescriptor(fix_type, original, original, False, UNKNOWN_FIX_SUMMARY)
    updated, summary = fixer(original)
    return FixDescriptor(fix_type, original, updated, updated != original, summary)
