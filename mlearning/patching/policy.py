"""
Auto-apply policy gate.

Decides whether a verified solution would be eligible for unattended
application. The verdict is advisory: nothing in MLearning turns a "yes" into
a write. Applying still goes through the explicit apply endpoints.
"""
from dataclasses import dataclass, field

ALL_CRITERIA_MET = "All criteria satisfied."


@dataclass(frozen=True)
class PolicyDecision:
    allowed: bool
    reasons: list[str] = field(default_factory=list)

    @property
    def explanation(self):
        return ALL_CRITERIA_MET if self.allowed else list(self.reasons)


def failed_criteria(confidence_score: float, auto_applicable: bool, fix_type: str, target_file: str, settings) -> list[str]:
    threshold = settings.auto_apply_threshold
    reasons = []
    if not auto_applicable:
        reasons.append("Not marked auto_applicable")
    if confidence_score < threshold:
        reasons.append(f"Confidence {confidence_score} < {threshold}")
    if fix_type not in settings.fix_allowlist:
        reasons.append(f"fixType '{fix_type}' not allowlisted")
    if target_file not in settings.file_allowlist:
        reasons.append(f"targetFile '{target_file}' not allowlisted")
    return reasons


def evaluate_auto_apply(confidence_score: float, auto_applicable: bool, fix_type: str, target_file: str, settings) -> PolicyDecision:
    reasons = failed_criteria(confidence_score, auto_applicable, fix_type, target_file, settings)
    return PolicyDecision(allowed=not reasons, reasons=reasons)


def can_auto_apply(confidence_score: float, auto_applicable: bool, fix_type: str, target_file: str, settings) -> bool:
    return evaluate_auto_apply(confidence_score, auto_applicable, fix_type, target_file, settings).allowed


def explain_decision(solution: dict | None, fix_type: str, target_file: str, settings) -> dict:
    """Auto-apply verdict for a looked-up verified solution, shaped for JSON output."""
    if not solution:
        return {"decision": "no", "reason": "No verified solution exists yet."}
    confidence = solution.get("confidence_score") or 0
    auto_applicable = solution.get("auto_applicable") is True
    decision = evaluate_auto_apply(confidence, auto_applicable, fix_type, target_file, settings)
    return {
        "decision": "yes" if decision.allowed else "no",
        "confidenceScore": confidence,
        "autoApplicable": auto_applicable,
        "fixType": fix_type,
        "targetFile": target_file,
        "explanation": decision.explanation,
    }
