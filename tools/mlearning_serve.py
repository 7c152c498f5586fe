#!/usr/bin/env python3
"""
Run the MLearning panel with uvicorn.

Usage:
  mlearning_serve.py [port]        (default: $PORT or 3000)
"""
import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))
from mlearning.config import configure_logging, load_settings
from mlearning.panel import create_app

DEFAULT_PORT = 3000


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    try:
        port = int(args[0]) if args else int(os.environ.get("PORT", DEFAULT_PORT))
    except ValueError:
        print("Usage: mlearning_serve.py [port]", file=sys.stderr)
        return 2

    import uvicorn

    configure_logging()
    settings = load_settings()
    app = create_app(settings)
    routes = sorted(r.path for r in app.routes if getattr(r, "path", "").startswith("/panel"))
    print(f"Registered panel routes: {', '.join(routes)}", file=sys.stderr)
    print(f"MLearning running on port {port} (root {settings.root})", file=sys.stderr)
    uvicorn.run(app, host="0.0.0.0", port=port)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
