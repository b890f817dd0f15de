"""
Assistant output sanitizer.

Cleans AI-generated text before it reaches the user: role-label artifacts,
dashes, whitespace, and option lists the UI already renders as chips.
"""
import re
from typing import List, Optional, Sequence

_ROLE_PREFIX = re.compile(r"(^|[\n\r])\s*(?:assistant|user)\s*[:\-–—]\s*", re.IGNORECASE)
_INLINE_ASSISTANT = re.compile(r"\bassistant\s*:\s*", re.IGNORECASE)
_DASHES = re.compile(r"[–—]")
_WHITESPACE_RUN = re.compile(r"\s{2,}")

_INLINE_OPTIONS = re.compile(r"\s*\((?:options?|choices?)\s*:[^)]*\)", re.IGNORECASE)
_OPTION_PREAMBLE = re.compile(
    r"^\s*(?:options?|choices?|choose from|select from|pick from|you can choose from)\s*:\s*[^.?!\n]*[.?!]?\s*",
    re.IGNORECASE,
)
_BULLET = re.compile(r"^\s*(?:[-*•]|\d+[.)]|[a-z][.)])\s*", re.IGNORECASE)
_EDGE_PUNCTUATION = re.compile(r"^[\s\"'`.,;:!?]+|[\s\"'`.,;:!?]+$")
_JOINERS = re.compile(r"(?:\bor\b|\band\b|[,|/;]|\s)+", re.IGNORECASE)


def sanitize_assistant(text: str) -> str:
    """Strip role prefixes, replace en/em dashes, collapse whitespace and trim."""
    cleaned = _ROLE_PREFIX.sub(lambda m: m.group(1), str(text or ""))
    cleaned = _INLINE_ASSISTANT.sub("", cleaned)
    cleaned = _DASHES.sub(" ", cleaned)
    cleaned = _WHITESPACE_RUN.sub(" ", cleaned)
    return cleaned.strip()


def _line_core(line: str) -> str:
    core = _BULLET.sub("", line)
    return _EDGE_PUNCTUATION.sub("", core).strip()


def _enumerates_all(line: str, options: Sequence[str]) -> bool:
    """True if the line is every option joined only by delimiters or conjunctions."""
    remainder = line.lower()
    for option in sorted(options, key=len, reverse=True):
        lowered = option.lower()
        if lowered not in remainder:
            return False
        remainder = remainder.replace(lowered, " ")
    remainder = _BULLET.sub("", remainder)
    remainder = _EDGE_PUNCTUATION.sub("", remainder)
    return _JOINERS.sub("", remainder) == ""


def _trailing_run(options: Sequence[str]) -> re.Pattern:
    alternatives = "|".join(re.escape(o) for o in sorted(options, key=len, reverse=True))
    item = rf"(?<!\w)(?:{alternatives})(?!\w)"
    joiner = r"\s*(?:,|\||/|;|\bor\b|\band\b)\s*(?:or\s+|and\s+)?"
    label = r"(?:\s*\b(?:options?|choices?|choose from|select from|pick from)\s*:)?"
    return re.compile(rf"{label}[\s:,-]*{item}(?:{joiner}{item})+\s*(?P<end>[.?!]?)\s*$", re.IGNORECASE)


def strip_option_phrases(text: str, options: Optional[List[str]] = None) -> str:
    """
    Remove option listings from assistant text.

    Removes inline "(Options: ...)" annotations and leading option preambles,
    then, when options are given, lines that are exactly one option, lines
    that enumerate all options, and trailing delimiter-joined option runs.
    Prose that merely mentions an option is kept.

    Args:
        text: Assistant text
        options: The configured options for the parameter being asked

    Returns:
        The text without option listings
    """
    cleaned = _INLINE_OPTIONS.sub("", text or "")
    option_list = [o for o in (options or []) if o and o.strip()]
    lowered_options = {o.lower() for o in option_list}
    trailing = _trailing_run(option_list) if len(option_list) >= 2 else None

    kept = []
    for line in cleaned.splitlines():
        line = _OPTION_PREAMBLE.sub("", line)
        if not line.strip():
            continue
        if option_list:
            if _line_core(line).lower() in lowered_options:
                continue
            if _enumerates_all(line, option_list):
                continue
            if trailing is not None:
                line = trailing.sub(lambda m: m.group("end"), line)
                if not _line_core(line):
                    continue
        kept.append(line.rstrip())
    return "\n".join(kept).strip()
