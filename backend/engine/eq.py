"""
Emotional intelligence (EQ) helpers.

Detects emotional signal keywords in user text, scores intensity and
modulates assistant replies with an empathy line and a tone prefix.
The only non-determinism is the empathy phrase pick; pass an explicit
random.Random for reproducible output.
"""
import random
import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from catalog.characters import EQConfig


MODULATION_PREFIXES: Dict[str, str] = {
    "reassuring": "Let me reassure you:",
    "focused": "Let's focus on the essentials:",
    "patient": "Let me explain this step by step:",
    "practical": "Here's a practical approach:",
    "transparent": "To be completely transparent:",
    "value-focused": "To maximize value:",
    "simplifying": "Let me simplify this:",
    "enthusiastic": "I'm excited to share:",
    "clarifying": "To clarify:",
    "solution-oriented": "Here's what we can do:",
    "technical": "From a technical perspective:",
    "basic": "In simple terms:",
}


@dataclass(frozen=True)
class ResponseApproach:
    approach: str
    guidelines: List[str]


# Upper bound (exclusive) of each band; the last band is closed at 1.0.
RESPONSE_APPROACHES = [
    (0.2, ResponseApproach("neutral", [
        "Maintain professional tone",
        "Provide clear information",
        "Be concise and factual",
    ])),
    (0.5, ResponseApproach("empathetic", [
        "Acknowledge their feelings",
        "Be supportive and warm",
        "Provide reassurance",
    ])),
    (0.8, ResponseApproach("highly-empathetic", [
        "Lead with strong empathy",
        "Validate their concerns",
        "Be patient and understanding",
        "Offer solutions gradually",
    ])),
]
CRISIS_RESPONSE = ResponseApproach("crisis-response", [
    "Prioritize emotional support",
    "Acknowledge urgency/frustration",
    "Break down complex issues",
    "Offer immediate next steps",
])

_CAPS_WORD = re.compile(r"\b[A-Z]{2,}\b")


def _signal_pattern(keyword: str) -> re.Pattern:
    return re.compile(rf"\b{re.escape(keyword)}\b", re.IGNORECASE)


# =============================================================================
# DETECTION
# =============================================================================

def detect_all_signals(config: EQConfig, text: str) -> List[str]:
    """All configured signal keywords present in text, in declaration order."""
    if not text:
        return []
    return [k for k in config.detection if k and _signal_pattern(k).search(text)]


def detect_signal(config: EQConfig, text: str) -> Optional[str]:
    """First configured signal keyword present in text, or None."""
    signals = detect_all_signals(config, text)
    return signals[0] if signals else None


def pick_empathy_line(config: EQConfig, signal: Optional[str], rng: Optional[random.Random] = None) -> Optional[str]:
    """Uniformly random empathy phrase when a signal is present."""
    if not signal or not config.empathyPhrases:
        return None
    chooser = rng or random
    return chooser.choice(config.empathyPhrases)


def suggest_modulation(config: EQConfig, signal: Optional[str]) -> Optional[str]:
    if not signal:
        return None
    return config.modulation.get(signal)


def build_modulation_prefix(modulation: Optional[str]) -> str:
    if not modulation:
        return ""
    return MODULATION_PREFIXES.get(modulation, "")


# =============================================================================
# INTENSITY
# =============================================================================

def analyze_emotional_intensity(config: EQConfig, text: str) -> float:
    """
    Score how emotionally charged a message is, from 0.0 to 1.0.

    Weighted, capped sum of:
    - distinct matched signals: 0.1 each, max 0.4
    - exclamation marks: 0.1 each, max 0.3
    - question marks: 0.05 each, max 0.2
    - all-caps words (2+ letters): 0.05 each, max 0.1
    """
    text = text or ""
    signals = detect_all_signals(config, text)
    intensity = 0.0
    intensity += min(len(signals) * 0.1, 0.4)
    intensity += min(text.count("!") * 0.1, 0.3)
    intensity += min(text.count("?") * 0.05, 0.2)
    intensity += min(len(_CAPS_WORD.findall(text)) * 0.05, 0.1)
    return min(round(intensity, 4), 1.0)


def get_response_approach(intensity: float) -> ResponseApproach:
    for upper, approach in RESPONSE_APPROACHES:
        if intensity < upper:
            return approach
    return CRISIS_RESPONSE


# =============================================================================
# REPLY MODULATION
# =============================================================================

def craft_assistant_reply(
    config: EQConfig,
    user_text: str,
    base: str,
    rng: Optional[random.Random] = None,
) -> str:
    """
    Prepend an empathy line and a tone prefix to a base reply.

    Args:
        config: The character's EQ configuration
        user_text: The user's latest message
        base: The reply to modulate
        rng: Optional random source for the empathy pick

    Returns:
        The reply, with empathy and tone prefix when a signal was detected
    """
    signal = detect_signal(config, user_text)
    empathy = pick_empathy_line(config, signal, rng)
    prefix = build_modulation_prefix(suggest_modulation(config, signal))

    parts = []
    if empathy:
        parts.append(empathy)
    parts.append(f"{prefix} {base}" if prefix else base)
    return "\n\n".join(parts)


def create_eq_system_prompt(config: EQConfig) -> str:
    """EQ section that can be appended to a system prompt."""
    signals = "\n".join(f'- "{s}"' for s in config.detection)
    phrases = "\n".join(f"{i}. {p}" for i, p in enumerate(config.empathyPhrases, start=1))
    tones = "\n".join(f'- When user is "{s}" -> Use "{t}" tone' for s, t in config.modulation.items())
    return (
        "[EMOTIONAL INTELLIGENCE]\n"
        "You are trained to detect and respond to emotional cues in user messages.\n\n"
        f"**Signals to Watch For:**\n{signals}\n\n"
        f"**Empathy Phrases (use when appropriate):**\n{phrases}\n\n"
        f"**Tone Modulation Map:**\n{tones}\n\n"
        "Always maintain cultural sensitivity and professionalism while being emotionally aware."
    )
