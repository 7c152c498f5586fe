#!/usr/bin/env python3
"""
Operator CLI for the guarded patch engine (same rules as the panel endpoints).

Usage:
  mlearning_patch.py fix <targetFile> <fixType> [--apply]
  mlearning_patch.py propose <targetFile> <zone> <codeFile|-> --intent <text> [--project <name>] [--apply]
  mlearning_patch.py decision <tool> <message> <fixType> [--file <targetFile>]
  mlearning_patch.py zones
  mlearning_patch.py backups [targetFile]

Without --apply every command is a preview. Output is JSON on stdout.
Exit codes: 0 ok, 1 refused/failed by the engine, 2 usage error.
"""
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))
from mlearning.config import configure_logging, load_settings
from mlearning.memory import EventStore
from mlearning.patching import APPLY, PREVIEW, PatchOrchestrator, build_signature, explain_decision
from mlearning.patching.backups import BackupManager
from mlearning.patching.errors import PatchError


def _usage(msg: str = "") -> int:
    if msg:
        print(msg, file=sys.stderr)
    print(__doc__.strip().split("\n\n")[1], file=sys.stderr)
    return 2


def _pop_flag(args: list[str], flag: str) -> bool:
    if flag in args:
        args.remove(flag)
        return True
    return False


def _pop_option(args: list[str], name: str) -> str | None:
    if name not in args:
        return None
    i = args.index(name)
    if i + 1 >= len(args):
        raise IndexError(name)
    value = args[i + 1]
    del args[i:i + 2]
    return value


def _read_code(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def main(argv: list[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        return _usage()
    configure_logging("WARNING")
    cmd = args.pop(0)
    settings = load_settings()

    if cmd == "zones":
        print(json.dumps({"ok": True, "zones": [z.to_dict() for z in settings.zones.values()]}, indent=2))
        return 0
    if cmd == "backups":
        basename = args[0] if args else None
        print(json.dumps({"ok": True, "backups": BackupManager(settings.backups_dir).list_backups(basename)}, indent=2))
        return 0

    try:
        mode = APPLY if _pop_flag(args, "--apply") else PREVIEW
        intent = _pop_option(args, "--intent")
        project = _pop_option(args, "--project")
        target_opt = _pop_option(args, "--file")
    except IndexError as e:
        return _usage(f"Missing value for {e}")

    with EventStore(settings.db_path) as store:
        engine = PatchOrchestrator(settings, store)
        try:
            if cmd == "fix":
                if len(args) != 2:
                    return _usage("fix needs <targetFile> <fixType>")
                result = engine.apply_fix(args[0], args[1], mode)
            elif cmd == "propose":
                if len(args) != 3 or not intent:
                    return _usage("propose needs <targetFile> <zone> <codeFile|-> --intent <text>")
                result = engine.apply_proposal(args[0], args[1], _read_code(args[2]), intent, mode, project or "MLearning")
            elif cmd == "decision":
                if len(args) != 3:
                    return _usage("decision needs <tool> <message> <fixType>")
                solution = store.find_solution(build_signature(args[0], args[1]))
                decision = explain_decision(solution, args[2], target_opt or settings.default_target, settings)
                print(json.dumps({"ok": True, **decision}, indent=2))
                return 0
            else:
                return _usage(f"Unknown command: {cmd}")
        except PatchError as e:
            print(json.dumps(e.to_dict(), indent=2))
            return 1
        except OSError as e:
            print(json.dumps({"ok": False, "error": str(e)}, indent=2))
            return 1

    print(json.dumps({"ok": True, **result}, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
