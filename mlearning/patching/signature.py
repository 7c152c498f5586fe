"""Stable content hashes used as lookup and dedup keys."""
import hashlib

SEPARATOR = "|"


def sha256(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def signature_hash(*fields) -> str:
    """Hash of trimmed, lower-cased fields joined in the given order.

    Two events that differ only in case or surrounding whitespace share a
    signature, so a verified solution recorded for one is found for the other.
    """
    return sha256(SEPARATOR.join(str(f or "").strip().lower() for f in fields))


def build_signature(tool: str, message: str) -> str:
    return signature_hash(tool, message)


def content_hash(*parts) -> str:
    """Hash of the parts joined as-is. Case matters here (code, file names)."""
    return sha256(SEPARATOR.join(str(p if p is not None else "") for p in parts))


def proposal_hash(target_file: str, zone: str, intent: str, code: str) -> str:
    return content_hash(target_file, zone, intent, code.strip())


def fix_patch_key(fix_type: str, target_file: str, backup_name: str) -> str:
    return content_hash(fix_type, target_file, backup_name)
