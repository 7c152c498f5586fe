"""Tests for tools/mlearning_patch.py: operator CLI over the patch engine."""
import json

from tools import mlearning_patch

FIX = "replace_single_with_maybeSingle"


def _run(capsys, *argv):
    code = mlearning_patch.main(list(argv))
    out = capsys.readouterr().out
    return code, (json.loads(out) if out.strip() else None)


def test_no_args_is_usage_error(settings, capsys):
    assert mlearning_patch.main([]) == 2


def test_zones(settings, capsys):
    code, out = _run(capsys, "zones")
    assert code == 0
    assert {z["zone"] for z in out["zones"]} == {"routes", "helpers"}


def test_fix_preview_then_apply(settings, app_root, capsys):
    code, out = _run(capsys, "fix", "index.js", FIX)
    assert code == 0 and out["mode"] == "preview"
    assert ".single(" in (app_root / "index.js").read_text()

    code, out = _run(capsys, "fix", "index.js", FIX, "--apply")
    assert code == 0 and out["applied"] is True
    assert ".maybeSingle(" in (app_root / "index.js").read_text()


def test_refusal_exits_1(settings, capsys):
    code, out = _run(capsys, "fix", "server.js", FIX)
    assert code == 1
    assert out["ok"] is False


def test_propose_from_file_and_duplicate(settings, app_root, tmp_path, capsys):
    snippet = tmp_path / "snippet.js"
    snippet.write_text("console.log('hi');\n")
    code, out = _run(capsys, "propose", "index.js", "helpers", str(snippet), "--intent", "log", "--apply")
    assert code == 0 and out["applied"] is True
    code, out = _run(capsys, "propose", "index.js", "helpers", str(snippet), "--intent", "log", "--apply")
    assert code == 1
    assert out["proposalHash"]


def test_propose_requires_intent(settings, capsys):
    assert mlearning_patch.main(["propose", "index.js", "routes", "-"]) == 2
    assert mlearning_patch.main(["propose", "index.js", "routes", "-", "--intent"]) == 2


def test_decision_without_solution(settings, capsys):
    code, out = _run(capsys, "decision", "shell", "exit 1", FIX)
    assert code == 0
    assert out["decision"] == "no"


def test_backups_listing(settings, capsys):
    code, out = _run(capsys, "backups")
    assert code == 0 and out["backups"] == []
    _run(capsys, "fix", "index.js", FIX, "--apply")
    code, out = _run(capsys, "backups", "index.js")
    assert len(out["backups"]) == 1
    assert out["backups"][0]["backupName"].startswith("index.js.")


def test_decision_matches_panel_shape(settings, store, capsys):
    from mlearning.patching import build_signature

    store.upsert_solution(build_signature("shell", "exit 1"), "s", "x", 0.9, True)
    code, out = _run(capsys, "decision", "shell", "exit 1", FIX)
    assert code == 0
    assert out["decision"] == "yes"
    assert out["fixType"] == FIX
    assert out["targetFile"] == "index.js"
    assert out["explanation"] == "All criteria satisfied."
