"""
Parameter value extraction.

This module turns a free-text user reply into a typed slot value for the
parameter that was just asked. It is deterministic and never raises:
1. Empty input -> no value (the planner re-asks)
2. Exact option passthrough (a structured UI sends the option label verbatim)
3. Per-parameter rules from an ordered table of {key, pattern, handler}
4. Multi-value keyword mapping for multi-select parameters
5. Universal fallback: the raw text, unchanged

No LLM is used here. Unknown parameters simply trust the raw text.
"""
import logging
import re
from dataclasses import dataclass
from enum import Enum
from re import Match, Pattern
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from catalog.parameters import ParameterRegistry

logger = logging.getLogger(__name__)


class SelectionKind(str, Enum):
    SINGLE = "single"
    MULTIPLE = "multiple"


@dataclass(frozen=True)
class Selection:
    """Tagged result for multi-select parameters."""
    kind: SelectionKind
    labels: Tuple[str, ...]

    @property
    def value(self) -> Any:
        """Slot value: a single label string, or an ordered list of labels."""
        if self.kind == SelectionKind.SINGLE:
            return self.labels[0]
        return list(self.labels)


@dataclass
class ExtractionResult:
    """Result of extracting one parameter value."""
    value: Any = None
    source: str = "none"  # none | option | rule | multi | fallback
    selection: Optional[Selection] = None
    rule_key: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.value is not None


@dataclass(frozen=True)
class ExtractionRule:
    """One row of the extraction table: parameter id, pattern and value handler."""
    key: str
    pattern: Pattern[str]
    handler: Callable[[Match[str]], Any]


# =============================================================================
# HANDLERS
# =============================================================================

def _const(value: Any) -> Callable[[Match[str]], Any]:
    return lambda m: value


def _lower_group(m: Match[str]) -> str:
    return m.group(1).lower()


def _int_group(m: Match[str]) -> int:
    return int(m.group(1).replace(",", ""))


def _months(m: Match[str]) -> str:
    return f"{int(m.group(1))} months"


def _weeks(m: Match[str]) -> str:
    return f"{int(m.group(1))} weeks"


def _floors(m: Match[str]) -> str:
    return f"G+{int(m.group(1))}"


def _solar_type(m: Match[str]) -> str:
    return re.sub(r"[\s-]+", "-", m.group(1).lower())


def parse_amount(m: Match[str]) -> Optional[int]:
    """
    Parse a bill amount like "3,500", "rs 4500" or "4.5k" into rupees.

    Args:
        m: Match with the digits in group "amount" and an optional "k" suffix

    Returns:
        Integer amount in rupees
    """
    amount = float(m.group("amount").replace(",", ""))
    if m.group("thousands"):
        amount *= 1000
    return int(round(amount))


def _rules(keys: Sequence[str], pattern: str, handler: Callable[[Match[str]], Any]) -> List[ExtractionRule]:
    compiled = re.compile(pattern, re.IGNORECASE)
    return [ExtractionRule(key=key, pattern=compiled, handler=handler) for key in keys]


# =============================================================================
# RULE TABLE
# =============================================================================

_AREA_KEYS = ("areaSqft", "totalAreaSqft", "availableRoofAreaSqft", "plotSize")
_TIMELINE_KEYS = ("timeline", "installationTimeline")
_BOOLEAN_KEYS = ("backupRequirement", "interestedInSubsidy")
_UNSURE = r"\b(?:not sure|unsure|don't know|dont know|not certain|maybe)\b"

# Rows are evaluated in order for a key; the first matching row wins.
EXTRACTION_RULES: List[ExtractionRule] = [
    *_rules(
        ["spaceType"],
        r"\b(home|house|apartment|flat|villa|office|retail|shop|business|commercial)\b",
        _lower_group,
    ),
    *_rules(
        _AREA_KEYS,
        r"(\d{1,3}(?:,\d{3})+|\d{3,6})\s*(?:sq\.?\s*ft|sqft|square\s*feet|sq\.?\s*m|m2|yards?|yds?)",
        _int_group,
    ),
    *_rules(["bhkRoomCount"], r"(\d)\s*bhk", _int_group),
    *_rules(["bhkRoomCount"], r"(\d)\s*bed\s*rooms?", _int_group),
    *_rules(["stylePreference"], r"\b(?:modern|contemporary|minimalist|scandinavian)\b", _const("Modern")),
    *_rules(["stylePreference"], r"\b(?:european|classic|traditional|vintage)\b", _const("European/Classic")),
    *_rules(["stylePreference"], r"\b(?:cozy|cosy|warm|rustic|bohemian)\b", _const("Cozy & Classic")),
    *_rules(["stylePreference"], r"\b(?:luxury|premium|high-end)\b", _const("Luxury")),
    # "later" and negatives before positives: "I don't have it yet" must not read as "have".
    # A bare "no" only counts at the start of the reply; "yes, no problem" is a yes.
    *_rules(
        ["floorPlanAvailability"],
        r"\b(?:later|will share|i'll share|ill share)\b",
        _const("I'll share later"),
    ),
    *_rules(
        ["floorPlanAvailability"],
        r"^\s*(?:no|nope)\b|\b(?:not available|not ready|don't have|dont have|do not have)\b",
        _const("No"),
    ),
    *_rules(
        ["floorPlanAvailability"],
        r"\b(?:yes|yeah|yep|have|available|ready)\b",
        _const("Yes"),
    ),
    *_rules(_TIMELINE_KEYS, r"\b(\d{1,2})\s*months?\b", _months),
    *_rules(_TIMELINE_KEYS, r"\b(\d{1,2})\s*weeks?\b", _weeks),
    *_rules(_TIMELINE_KEYS, r"\b(?:flexible|no rush|whenever)\b", _const("Flexible")),
    *_rules(
        ["propertyType"],
        r"\b(independent house|apartment|villa|commercial building|industrial shed|office|retail|house|business|school)\b",
        _lower_group,
    ),
    *_rules(["desiredSolarType"], r"\b(on[-\s]?grid|hybrid|off[-\s]?grid)\b", _solar_type),
    # Uncertainty before yes/no: "not sure" contains "sure", "no, not sure yet" starts with "no"
    *_rules(["backupRequirement"], _UNSURE, _const("Not Sure")),
    *_rules(["interestedInSubsidy"], _UNSURE, _const("Need help understanding eligibility")),
    *_rules(_BOOLEAN_KEYS, r"\b(?:yes|yeah|yep|true|(?<!not )sure)\b", _const(True)),
    *_rules(_BOOLEAN_KEYS, r"\b(?:no|nope|false|not required)\b", _const(False)),
    *_rules(
        ["monthlyBillInr"],
        r"(?:₹|\brs\.?|\binr)?\s*(?P<amount>\d{1,3}(?:,\d{2,3})+|\d+(?:\.\d+)?)\s*(?P<thousands>k\b)?",
        parse_amount,
    ),
    *_rules(["numberOfFloors"], r"\bg\s*\+\s*(\d)\b", _floors),
    *_rules(["numberOfFloors"], r"^\s*(?:g|ground(?: floor)?(?: only)?)\s*$", _const("G")),
]

_RULES_BY_KEY: Dict[str, List[ExtractionRule]] = {}
for _rule in EXTRACTION_RULES:
    _RULES_BY_KEY.setdefault(_rule.key, []).append(_rule)


# Multi-select keyword tables: (pattern, canonical label), in label order.
AUTOMATION_FOCUS_KEYWORDS: List[Tuple[Pattern[str], str]] = [
    (re.compile(r"\b(?:lighting|ambience|lights?)\b", re.IGNORECASE), "Lighting & Ambience"),
    (re.compile(r"\b(?:security|safety|cctv|cameras?)\b", re.IGNORECASE), "Security & Safety"),
    (re.compile(r"\b(?:climate|energy|ac|thermostat)\b", re.IGNORECASE), "Climate & Energy"),
    (re.compile(r"\b(?:entertainment|media|tv|music)\b", re.IGNORECASE), "Entertainment & Media"),
    (re.compile(r"\b(?:whole home|everything)\b", re.IGNORECASE), "Whole Home Suite"),
    (re.compile(r"\bnot sure\b", re.IGNORECASE), "Not Sure"),
]

MULTI_VALUE_TABLES: Dict[str, List[Tuple[Pattern[str], str]]] = {
    "automationFocus": AUTOMATION_FOCUS_KEYWORDS,
}

_LIST_DELIMITER = re.compile(r",|;|\band\b", re.IGNORECASE)


# =============================================================================
# MULTI-VALUE EXTRACTION
# =============================================================================

def _labels_in_order(text: str, table: List[Tuple[Pattern[str], str]]) -> List[str]:
    """Labels whose keywords occur in text, ordered by first occurrence."""
    found = []
    for pattern, label in table:
        m = pattern.search(text)
        if m:
            found.append((m.start(), label))
    found.sort(key=lambda item: item[0])
    return [label for _, label in found]


def _dedupe(values: List[str]) -> List[str]:
    seen = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


def extract_selection(raw_text: str, table: List[Tuple[Pattern[str], str]]) -> Optional[Selection]:
    """
    Map free text to one or more canonical labels.

    Splits on commas and "and" when the text holds delimiters or more than
    one label matches. Segments without a known keyword are kept verbatim.

    Returns:
        A SINGLE or MULTIPLE Selection, or None if nothing usable was found
    """
    text = raw_text.strip()
    matched = _labels_in_order(text, table)
    has_delimiters = bool(_LIST_DELIMITER.search(text))

    if len(matched) > 1 or has_delimiters:
        labels: List[str] = []
        for segment in _LIST_DELIMITER.split(text):
            segment = segment.strip()
            if not segment:
                continue
            segment_labels = _labels_in_order(segment, table)
            labels.extend(segment_labels if segment_labels else [segment])
        labels = _dedupe(labels)
        if not labels:
            return None
        kind = SelectionKind.SINGLE if len(labels) == 1 else SelectionKind.MULTIPLE
        return Selection(kind=kind, labels=tuple(labels))

    if matched:
        return Selection(kind=SelectionKind.SINGLE, labels=(matched[0],))
    return None


# =============================================================================
# PUBLIC API
# =============================================================================

_default_registry: Optional[ParameterRegistry] = None


def _registry(registry: Optional[ParameterRegistry]) -> ParameterRegistry:
    global _default_registry
    if registry is not None:
        return registry
    if _default_registry is None:
        _default_registry = ParameterRegistry()
    return _default_registry


def match_option(options: Optional[List[str]], raw_text: str) -> Optional[str]:
    """Return the configured option equal (case-insensitively) to the text."""
    if not options:
        return None
    wanted = raw_text.strip().lower()
    for option in options:
        if option.lower() == wanted:
            return option
    return None


def extract_detailed(
    service: str,
    parameter_id: str,
    raw_text: str,
    registry: Optional[ParameterRegistry] = None,
) -> ExtractionResult:
    """
    Extract a parameter value and report how it was found.

    Args:
        service: Service name (e.g., "solar_services")
        parameter_id: The parameter that was just asked
        raw_text: The user's reply, unmodified
        registry: Parameter registry used for exact option passthrough

    Returns:
        ExtractionResult; value is None when the parameter must be re-asked
    """
    raw = raw_text or ""
    text = raw.lower().strip()
    if not text:
        return ExtractionResult()

    parameter = _registry(registry).get_parameter(service, parameter_id)
    option = match_option(parameter.options if parameter else None, raw)
    if option is not None:
        return ExtractionResult(value=option, source="option")

    for rule in _RULES_BY_KEY.get(parameter_id, []):
        m = rule.pattern.search(text)
        if not m:
            continue
        value = rule.handler(m)
        if value is not None:
            logger.debug(f"Extraction rule matched: {parameter_id} -> {value!r}")
            return ExtractionResult(value=value, source="rule", rule_key=rule.key)

    table = MULTI_VALUE_TABLES.get(parameter_id)
    if table:
        selection = extract_selection(raw, table)
        if selection is not None:
            return ExtractionResult(value=selection.value, source="multi", selection=selection)

    return ExtractionResult(value=raw.strip(), source="fallback")


def extract(
    service: str,
    parameter_id: str,
    raw_text: str,
    registry: Optional[ParameterRegistry] = None,
) -> Any:
    """
    Extract a slot value from raw user text.

    Returns:
        The typed value (str, int, bool or list of str), or None to re-ask
    """
    return extract_detailed(service, parameter_id, raw_text, registry).value
