"""Unit tests for mlearning/patching/signature.py: stable lookup and dedup keys."""
import hashlib
import re

from mlearning.patching.signature import (
    build_signature,
    content_hash,
    fix_patch_key,
    proposal_hash,
    signature_hash,
)


def test_build_signature_ignores_case_and_whitespace():
    """Same (tool, message) up to case/surrounding whitespace: identical hash."""
    a = build_signature("Supabase", "  JSON object requested, multiple (or no) rows returned ")
    b = build_signature("supabase", "json object requested, multiple (or no) rows returned")
    assert a == b


def test_build_signature_is_repeatable():
    """Repeated calls with the same input never change."""
    assert build_signature("shell", "exit 1") == build_signature("shell", "exit 1")


def test_build_signature_differs_for_different_message():
    """Different message text: different hash."""
    assert build_signature("shell", "exit 1") != build_signature("shell", "exit 2")


def test_build_signature_field_order_matters():
    """(tool, message) is ordered; swapping the fields changes the key."""
    assert build_signature("a", "b") != build_signature("b", "a")


def test_signature_is_sha256_hex_of_joined_fields():
    """Known vector: sha256('tool|message')."""
    expected = hashlib.sha256(b"tool|message").hexdigest()
    assert signature_hash(" TOOL ", "Message") == expected
    assert re.fullmatch(r"[0-9a-f]{64}", expected)


def test_signature_none_fields_are_empty():
    """None is treated like an empty field."""
    assert signature_hash(None, "x") == signature_hash("", "x")


def test_content_hash_is_case_sensitive():
    """content_hash keeps case (code and file names differ by case)."""
    assert content_hash("A", "b") != content_hash("a", "b")


def test_proposal_hash_trims_code_only_whitespace():
    """Surrounding whitespace of code does not change the proposal hash."""
    h1 = proposal_hash("index.js", "routes", "add ping", "console.log(1)")
    h2 = proposal_hash("index.js", "routes", "add ping", "\n  console.log(1)\n\n")
    assert h1 == h2
    assert h1 != proposal_hash("index.js", "routes", "add ping", "console.log(2)")


def test_fix_patch_key_depends_on_backup_name():
    """Two applies of the same fix produce different keys (different backups)."""
    k1 = fix_patch_key("replace_single_with_maybeSingle", "index.js", "index.js.a.bak")
    k2 = fix_patch_key("replace_single_with_maybeSingle", "index.js", "index.js.b.bak")
    assert k1 != k2


def test_proposal_hash_keeps_intent_verbatim():
    """Only the code is trimmed; intent whitespace is part of the key."""
    h1 = proposal_hash("index.js", "routes", "add ping", "x")
    h2 = proposal_hash("index.js", "routes", " add ping ", "x")
    assert h1 != h2
