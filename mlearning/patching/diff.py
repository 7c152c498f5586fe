"""
Semantic diff: a positional line comparison.

Line i of the old text is compared with line i of the new text; nothing tries
to detect shifted blocks. An insertion near the top therefore shows up as a
change on every following line. Consumers rely on the line-aligned shape, so
do not swap this for difflib.
"""
from dataclasses import dataclass


@dataclass(frozen=True)
class DiffEntry:
    line: int
    before: str
    after: str

    def to_dict(self) -> dict:
        return {"line": self.line, "before": self.before, "after": self.after}


def _lines(text: str) -> list[str]:
    return text.split("\n")


def semantic_diff(before: str, after: str) -> list[DiffEntry]:
    old = _lines(before)
    new = _lines(after)
    entries = []
    for i in range(max(len(old), len(new))):
        # A missing line reads as "", so padding with blank lines is not a change.
        a = old[i] if i < len(old) else ""
        b = new[i] if i < len(new) else ""
        if a != b:
            entries.append(DiffEntry(i + 1, a, b))
    return entries


def apply_semantic_diff(original: str, entries: list[DiffEntry]) -> str:
    """Replay entries onto original.

    Exact when the new text has at least as many lines as the old one and
    does not end in extra blank lines; the positional format cannot express
    trailing deletions.
    """
    lines = _lines(original)
    for e in entries:
        while len(lines) < e.line:
            lines.append("")
        lines[e.line - 1] = e.after
    return "\n".join(lines)


def diff_to_json(entries: list[DiffEntry]) -> list[dict]:
    return [e.to_dict() for e in entries]
