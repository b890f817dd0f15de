"""
Content-safety guardrails for generated assistant text.

A single declarative table binds each violation kind to its detection
pattern, severity, neutral replacement phrase and disclaimer paragraph.
New categories are added as table rows, never as new branches.
"""
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from re import Pattern
from typing import Dict, Iterable, List, Optional, Sequence

logger = logging.getLogger(__name__)


class GuardrailTableError(Exception):
    """A violation kind reached repair without a row in the rule table."""


class ViolationKind(str, Enum):
    PRICING_EXACT = "pricing:exact"
    LEGAL_PROMISE = "legal:promise"
    VENDOR_BIAS = "vendor:bias"
    PRIVACY_LEAK = "privacy:leak"
    UNSAFE_ADVICE = "unsafe:advice"
    TIMELINE_GUARANTEE = "timeline:guarantee"
    APPROVAL_GUARANTEE = "approval:guarantee"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class GuardrailRule:
    kind: ViolationKind
    pattern: Pattern[str]
    severity: Severity
    replacement: str
    disclaimer: str


@dataclass
class ViolationDetail:
    kind: ViolationKind
    matches: List[str]
    severity: Severity


@dataclass
class RepairResult:
    repaired: str
    violations: List[ViolationDetail] = field(default_factory=list)
    changed: bool = False


@dataclass
class ComplianceReport:
    compliant: bool
    issues: List[ViolationDetail] = field(default_factory=list)


@dataclass
class PreflightResult:
    safe: bool
    warnings: List[str] = field(default_factory=list)


# =============================================================================
# RULE TABLE
# =============================================================================

_APPROVAL_DISCLAIMER = (
    "**Note:** Approval timelines depend on local authorities. We'll guide you through "
    "the process but cannot guarantee specific outcomes or timelines."
)
_APPROVAL_REPLACEMENT = "will assist with and support the approval process"


def _rule(kind: ViolationKind, pattern: str, severity: Severity, replacement: str, disclaimer: str) -> GuardrailRule:
    return GuardrailRule(kind, re.compile(pattern, re.IGNORECASE), severity, replacement, disclaimer)


GUARDRAIL_RULES: List[GuardrailRule] = [
    _rule(
        ViolationKind.PRICING_EXACT,
        r"(?:₹|\brs\.?|\binr\s*)[,\s]*\d{1,3}(?:,\d{2,3})*(?:\.\d+)?(?:\s*(?:lakh|lac|cr|crore)s?)?",
        Severity.MEDIUM,
        "a budget range based on materials, scope, and market rates",
        "**Note:** Exact pricing isn't provided at this stage. We'll share a detailed Bill of "
        "Quantities (BOQ) after site assessment and requirement finalization.",
    ),
    _rule(
        ViolationKind.LEGAL_PROMISE,
        r"\b(?:guarantee[sd]?|promise[sd]?|assure[sd]?|certif(?:y|ied))\s+"
        r"(?:approval|permit|license|clearance|sanction)",
        Severity.HIGH,
        _APPROVAL_REPLACEMENT,
        _APPROVAL_DISCLAIMER,
    ),
    _rule(
        ViolationKind.VENDOR_BIAS,
        r"\b(?:only use|must use|exclusively|always choose)\s+(?:brand|vendor|supplier|manufacturer)\s+\w+",
        Severity.MEDIUM,
        "will recommend from our panel of certified vendors",
        "**Note:** We maintain vendor neutrality and will provide multiple certified options "
        "for your consideration.",
    ),
    _rule(
        ViolationKind.PRIVACY_LEAK,
        r"\b(?:password|api[-_]?key|token|secret|private[-_]?key|camera\s+feed|live\s+stream|admin\s+portal)",
        Severity.HIGH,
        "[REDACTED - SENSITIVE INFORMATION]",
        "**Security Note:** Sensitive credentials and access information are never shared "
        "through this channel.",
    ),
    _rule(
        ViolationKind.UNSAFE_ADVICE,
        r"\b(?:skip|bypass|ignore|disable)\s+(?:safety|security|compliance|permit|inspection)",
        Severity.HIGH,
        "ensure proper compliance with safety and regulatory requirements for",
        "**Safety Note:** All projects must comply with applicable safety standards and building codes.",
    ),
    _rule(
        ViolationKind.TIMELINE_GUARANTEE,
        r"\b(?:definitely|guaranteed|certainly|will\s+(?:be\s+)?complete[sd]?)\s+"
        r"(?:in|within|by)\s+\d+\s+(?:day|week|month)s?",
        Severity.MEDIUM,
        "is typically completed within the estimated timeframe, subject to factors like "
        "weather, material availability, and approvals",
        "**Note:** Timelines are estimates and may vary based on external factors beyond our control.",
    ),
    _rule(
        ViolationKind.APPROVAL_GUARANTEE,
        r"\b(?:will\s+(?:definitely\s+)?get|guaranteed|assured)\s+(?:approval|permit|clearance|sanction|noc)",
        Severity.HIGH,
        _APPROVAL_REPLACEMENT,
        _APPROVAL_DISCLAIMER,
    ),
]

RULES_BY_KIND: Dict[ViolationKind, GuardrailRule] = {r.kind: r for r in GUARDRAIL_RULES}

UNIVERSAL_GUARDRAILS = [
    "Always maintain professional and ethical standards",
    "Provide ranges and estimates, not exact prices",
    "Never guarantee government approvals or timelines",
    "Respect privacy and data security",
    "Promote safety and compliance",
    "Remain vendor-neutral unless explicitly authorized",
]

_PREFLIGHT_CHECKS = [
    (
        re.compile(r"\b(?:tell|give|provide)\s+(?:exact|specific)\s+price", re.IGNORECASE),
        "Prompt requests exact pricing - this may lead to violations",
    ),
    (
        re.compile(r"\b(?:guarantee|promise|assure)\b", re.IGNORECASE),
        "Prompt contains guarantee language - may trigger violations",
    ),
    (
        re.compile(r"\b(?:best|only|always)\s+(?:vendor|brand|supplier)", re.IGNORECASE),
        "Prompt may encourage vendor bias",
    ),
]


# =============================================================================
# SCANNING
# =============================================================================

def scan_detailed(text: str) -> List[ViolationDetail]:
    """
    Scan text against every rule, in table order.

    Returns:
        One ViolationDetail per matched kind, with its deduplicated matches
    """
    results = []
    for rule in GUARDRAIL_RULES:
        matches: List[str] = []
        for m in rule.pattern.finditer(text or ""):
            if m.group(0) not in matches:
                matches.append(m.group(0))
        if matches:
            results.append(ViolationDetail(kind=rule.kind, matches=matches, severity=rule.severity))
    return results


def scan(text: str) -> List[ViolationKind]:
    """Get the violation kinds present in text."""
    return [d.kind for d in scan_detailed(text)]


def validate(text: str) -> ComplianceReport:
    """Read-only compliance check."""
    issues = scan_detailed(text)
    return ComplianceReport(compliant=not issues, issues=issues)


# =============================================================================
# REPAIR
# =============================================================================

def repair(text: str, kinds: Iterable[ViolationKind]) -> str:
    """
    Replace the first match of each kind and append its disclaimer.

    A disclaimer shared by several kinds (legal and approval) is appended once.

    Args:
        text: Text to repair
        kinds: Violation kinds to repair, typically from scan()

    Returns:
        The repaired text

    Raises:
        GuardrailTableError: If a kind has no row in the rule table
    """
    repaired = text
    disclaimers: List[str] = []
    for kind in kinds:
        try:
            rule = RULES_BY_KIND[ViolationKind(kind)]
        except (KeyError, ValueError) as e:
            raise GuardrailTableError(f"No guardrail rule for violation kind {kind!r}") from e
        repaired = rule.pattern.sub(rule.replacement, repaired, count=1)
        if rule.disclaimer not in disclaimers:
            disclaimers.append(rule.disclaimer)
    for disclaimer in disclaimers:
        repaired += f"\n\n{disclaimer}"
    return repaired


def smart_repair(text: str) -> RepairResult:
    """Scan and repair in one step; unchanged text is returned as-is."""
    detailed = scan_detailed(text)
    if not detailed:
        return RepairResult(repaired=text, violations=[], changed=False)
    repaired = repair(text, [d.kind for d in detailed])
    logger.info(
        f"METRIC guardrail_repair kinds={','.join(d.kind.value for d in detailed)} "
        f"high={sum(1 for d in detailed if d.severity == Severity.HIGH)}"
    )
    return RepairResult(repaired=repaired, violations=detailed, changed=True)


# =============================================================================
# REPORTING AND PROMPT HELPERS
# =============================================================================

def create_report(text: str) -> Dict[str, object]:
    """Build a monitoring report for a piece of generated text."""
    detailed = scan_detailed(text)
    return {
        "scannedAt": datetime.now(timezone.utc).isoformat(),
        "textLength": len(text),
        "violations": [
            {"type": d.kind.value, "severity": d.severity.value, "count": len(d.matches)}
            for d in detailed
        ],
        "compliant": not detailed,
        "requiresRepair": any(d.severity == Severity.HIGH for d in detailed),
    }


def preflight_prompt(prompt: str) -> PreflightResult:
    """Warn when a prompt itself invites exact prices, guarantees or vendor bias."""
    warnings = [message for pattern, message in _PREFLIGHT_CHECKS if pattern.search(prompt)]
    return PreflightResult(safe=not warnings, warnings=warnings)


def preamble(extra_guardrails: Optional[Sequence[str]] = None) -> str:
    """Numbered guardrail block for system prompts."""
    rules = UNIVERSAL_GUARDRAILS + list(extra_guardrails or [])
    lines = "\n".join(f"{i}. {g}" for i, g in enumerate(rules, start=1))
    return f"[CRITICAL GUARDRAILS]\n{lines}"
