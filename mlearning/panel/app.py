"""MLearning panel: FastAPI backend for event ingestion, known fixes and guarded patching."""
import hmac
import logging
import os
from datetime import datetime, timezone
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from mlearning import analyst
from mlearning.config import Settings, load_settings
from mlearning.memory import EventStore
from mlearning.patching import PatchOrchestrator, build_signature, explain_decision
from mlearning.patching.errors import AuthError, MisconfiguredError, PatchError, ValidationError
from mlearning.patching.zones import zones_in

log = logging.getLogger(__name__)

INTROSPECT_MAX_ENTRIES = 200
FEED_LIMIT = 50
HISTORY_LIMIT = 25
DEFAULT_APP = "MLearning"

HOME_HTML = """<!DOCTYPE html>
<html lang="en">
<head><meta charset="UTF-8" /><title>MLearning</title></head>
<body style="background:#0b1220;color:#e5e7eb;font-family:system-ui,sans-serif;text-align:center;padding-top:20vh">
  <h1>MLearning is alive</h1>
  <p>Embedded learning system running.</p>
  <a href="/panel" style="color:#3b82f6">Open Control Panel</a>
</body>
</html>"""


def _utcnow() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


# ── Request bodies ──────────────────────────────────────────
class LearnEventBody(BaseModel):
    source: str | None = None
    app: str | None = None
    level: str = "info"
    tool: str | None = None
    message: str | None = None
    context: dict[str, Any] = Field(default_factory=dict)


class SignatureBody(BaseModel):
    tool: str | None = None
    message: str | None = None


class DecisionBody(SignatureBody):
    fixType: str | None = None
    targetFile: str | None = None


class ApplyFixBody(BaseModel):
    targetFile: str | None = None
    fixType: str | None = None
    mode: str | None = None


class ApplyProposalBody(BaseModel):
    targetFile: str | None = None
    zone: str | None = None
    proposedCode: str | None = None
    intent: str | None = None
    mode: str | None = None
    project: str | None = None


class AnalyzeBody(BaseModel):
    summary: str | None = None
    context: dict[str, Any] = Field(default_factory=dict)


# ── Dependencies ────────────────────────────────────────────
def require_panel_token(request: Request) -> None:
    """Shared-token auth. A server without a token is misconfigured, never open."""
    expected = request.app.state.settings.panel_token
    if not expected:
        raise MisconfiguredError("PANEL_TOKEN is not set. Add it to secrets to protect apply endpoints.")
    got = request.headers.get("x-panel-token")
    if not got:
        auth = request.headers.get("authorization", "")
        if auth.startswith("Bearer "):
            got = auth[len("Bearer "):]
    if not got or not hmac.compare_digest(got.encode(), expected.encode()):
        raise AuthError("Unauthorized (bad token)")


def _known_fix_response(solution: dict | None) -> dict:
    if not solution:
        return {"type": "unknown", "summary": "I haven't seen this error before. Logged for learning."}
    return {
        "type": "known-fix",
        "summary": solution.get("summary"),
        "solution": solution.get("solution"),
        "confidence": solution.get("confidence_score"),
        "auto_applicable": solution.get("auto_applicable"),
    }


def create_app(
    settings: Settings | None = None,
    store: EventStore | None = None,
    orchestrator: PatchOrchestrator | None = None,
    analyze=None,
) -> FastAPI:
    settings = settings or load_settings()
    store = store or EventStore(settings.db_path)

    app = FastAPI(title="MLearning Panel", version="1.0")
    app.state.settings = settings
    app.state.store = store
    app.state.orchestrator = orchestrator or PatchOrchestrator(settings, store)
    app.state.analyze = analyze or analyst.analyze_event

    @app.exception_handler(PatchError)
    def _patch_error(_request: Request, exc: PatchError):
        if exc.status >= 500:
            log.error("%s: %s", type(exc).__name__, exc.message)
        return JSONResponse(status_code=exc.status, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    def _bad_body(_request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"ok": False, "error": "Malformed request body", "details": jsonable_encoder(exc.errors())})

    @app.exception_handler(StarletteHTTPException)
    def _http_error(_request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"ok": False, "error": str(exc.detail)})

    @app.exception_handler(Exception)
    def _unhandled(request: Request, exc: Exception):
        log.error("unhandled error on %s: %s", request.url.path, exc, exc_info=exc)
        return JSONResponse(status_code=500, content={"ok": False, "error": str(exc) or type(exc).__name__})

    # ── Static ──────────────────────────────────────────────
    @app.get("/", response_class=HTMLResponse)
    def index():
        return HOME_HTML

    @app.get("/panel")
    def panel():
        page = settings.root / "panel.html"
        if not page.is_file():
            raise StarletteHTTPException(status_code=404, detail="panel.html not found")
        return FileResponse(page)

    # ── Introspection ───────────────────────────────────────
    @app.get("/introspect-app")
    def introspect_app():
        """Allowlisted files in the app root with size and which zone markers they carry."""
        entries = sorted(os.listdir(settings.root))[:INTROSPECT_MAX_ENTRIES]
        allowlisted = []
        for name in entries:
            path = settings.root / name
            if name not in settings.file_allowlist or not path.is_file():
                continue
            text = path.read_text(encoding="utf-8", errors="replace")
            allowlisted.append({
                "file": name,
                "bytes": len(text.encode("utf-8")),
                "markers": zones_in(text, settings.zones),
            })
        dirs = {
            "backups": {"path": settings.backups_dir.name, "exists": settings.backups_dir.is_dir()},
            "proposals": {"path": settings.proposals_dir.name, "exists": settings.proposals_dir.is_dir()},
        }
        return {"ok": True, "allowlisted": allowlisted, "dirs": dirs, "note": "Only allowlisted files are scanned."}

    # ── Events & known fixes ────────────────────────────────
    @app.post("/learn-event")
    def learn_event(body: LearnEventBody):
        if not body.source or not body.tool or not body.message:
            raise ValidationError("Missing source, tool, or message")
        sig = build_signature(body.tool, body.message)
        app_name = body.app or DEFAULT_APP
        try:
            store.record_event(body.source, body.tool, body.message, sig, body.level, app_name, body.context)
            if str(body.level).lower() == "error":
                store.record_error_event(body.source, body.tool, body.message, sig, app_name, body.context)
        except Exception as e:
            log.warning("best-effort learn event insert failed: %s", e)
        try:
            known = store.find_solution(sig)
        except Exception as e:
            log.warning("known-fix lookup failed: %s", e)
            known = None
        return {
            "ok": True,
            "received": True,
            "signatureHash": sig,
            "known": bool(known),
            "response": _known_fix_response(known),
        }

    @app.get("/known-fix")
    def known_fix(tool: str | None = None, message: str | None = None):
        if not tool or not message:
            raise ValidationError("Missing tool or message")
        sig = build_signature(tool, message)
        solution = store.find_solution(sig)
        if not solution:
            return {"ok": True, "known": False, "signatureHash": sig}
        return {"ok": True, "known": True, "signatureHash": sig, "solution": solution}

    @app.post("/suggest-action")
    def suggest_action(body: SignatureBody):
        if not body.tool or not body.message:
            raise ValidationError("Missing tool or message")
        solution = store.find_solution(build_signature(body.tool, body.message))
        if not solution:
            return {"ok": True, "suggestion": "No known fix yet. Observe more occurrences before acting."}
        return {
            "ok": True,
            "suggestion": solution.get("solution") or solution.get("summary"),
            "confidence": solution.get("confidence_score"),
        }

    @app.get("/learn-feed")
    def learn_feed():
        return {"ok": True, "events": store.recent_events(FEED_LIMIT)}

    @app.get("/panel-history")
    def panel_history():
        out = {"ok": True, "proposals": [], "patches": [], "events": []}
        for key, fetch in (
            ("proposals", store.recent_proposals),
            ("patches", store.recent_patches),
            ("events", store.recent_events),
        ):
            try:
                out[key] = fetch(HISTORY_LIMIT)
            except Exception as e:
                log.warning("panel history %s unavailable: %s", key, e)
        return out

    # ── Auto-apply decision (explain only) ──────────────────
    @app.post("/auto-apply-decision")
    def auto_apply_decision(body: DecisionBody):
        if not body.tool or not body.message or not body.fixType:
            raise ValidationError("Missing tool/message/fixType")
        target_file = body.targetFile or settings.default_target
        solution = store.find_solution(build_signature(body.tool, body.message))
        return {"ok": True, **explain_decision(solution, body.fixType, target_file, settings)}

    # ── Guarded writes ──────────────────────────────────────
    @app.post("/apply-fix", dependencies=[Depends(require_panel_token)])
    def apply_fix(body: ApplyFixBody):
        result = app.state.orchestrator.apply_fix(body.targetFile, body.fixType, body.mode)
        return {"ok": True, **result}

    @app.post("/apply-proposal", dependencies=[Depends(require_panel_token)])
    def apply_proposal(body: ApplyProposalBody):
        result = app.state.orchestrator.apply_proposal(
            body.targetFile, body.zone, body.proposedCode, body.intent, body.mode, body.project or DEFAULT_APP,
        )
        return {"ok": True, **result}

    # ── Panel utilities ─────────────────────────────────────
    @app.post("/panel/ping", dependencies=[Depends(require_panel_token)])
    def panel_ping():
        return {"ok": True, "source": "MLearning backend", "time": _utcnow()}

    @app.post("/panel/analyze-test", dependencies=[Depends(require_panel_token)])
    def panel_analyze_test(body: AnalyzeBody):
        if not body.summary:
            raise ValidationError("Missing summary")
        try:
            analysis = app.state.analyze(body.summary, body.context, settings)
        except Exception as e:
            log.error("analyze-test failed: %s", e)
            return JSONResponse(status_code=500, content={"ok": False, "error": str(e)})
        return {"ok": True, "analysis": analysis, "time": _utcnow()}

    return app
