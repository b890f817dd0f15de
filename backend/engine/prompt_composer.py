"""
Persona-driven prompt composition.

Builds the system prompts sent to the text model from a character and the
service's parameter definitions. The composer only phrases guidance; the
planner alone decides which parameter is asked next.

All functions are pure and deterministic.
"""
import re
from typing import Any, Optional, Sequence

from catalog.characters import Character, EQConfig, ParameterGuidance
from catalog.parameters import ParameterDefinition, ParameterType

from . import guardrails

# Guardrails shared by every enquiry prompt, ahead of character-specific ones
ENQUIRY_GUARDRAILS = [
    "DO: Be professional, empathetic, and culturally respectful",
    "DO: Reflect the consultant's tone and communication style",
    "DO: Return strictly the requested format",
    "DO NOT: Promise discounts, legal approvals, exact pricing, or vendor favoritism",
    "DO NOT: Expose personal data, private keys, or external links",
    "If user asks for exact price: reply with ranges + factors + suggest next step",
]

DEFAULT_COLLECTION_FLOW = "Ask questions one at a time, validate responses, and collect all required parameters."

SIMPLICITY_RULES = """[SIMPLICITY RULES]
1. Use short sentences (15 words or fewer each).
2. Avoid jargon; prefer everyday words.
3. Ask ONE question at a time. Do not compound questions.
4. If the user seems unsure, offer a simple example or range.
5. Acknowledge good answers briefly (e.g., "Got it.", "Perfect.", "Thanks.").
6. Keep options to 3-4 choices when offering choices.
7. Prefer measurements in the user's units; if unknown, ask which they prefer."""

QUESTION_STYLE = "\n".join([
    "[QUESTION STYLE]",
    "• Opening question template: \"To start, what is the [parameter] in simple terms?\"",
    "• Re-ask (unclear) template: \"Just to be sure, about [parameter], is it closer to [A] or [B]?\"",
    "• Affirmation template: \"Thanks, that helps.\" / \"Great, noted.\" / \"Perfect, moving on.\"",
])

_RESPONSE_TYPES = {
    ParameterType.TEXT: "free text",
    ParameterType.NUMBER: "number",
    ParameterType.BOOL: "yes/no",
    ParameterType.CHOICE: "single choice",
    ParameterType.MEDIA: "media upload",
}


# =============================================================================
# GUARDRAIL AND EQ SECTIONS
# =============================================================================

def build_guardrail_preamble(character: Character) -> str:
    """Numbered [GUARDRAILS] block: universal rules, then the character's own."""
    rules = ENQUIRY_GUARDRAILS + list(character.guardrails)
    lines = "\n".join(f"{i}. {g}" for i, g in enumerate(rules, start=1))
    return f"[GUARDRAILS]\n{lines}"


def _eq_modulation_hints(eq: Optional[EQConfig]) -> str:
    if not eq or not eq.modulation:
        return "Respond with empathy based on user's emotional state."
    hints = ", ".join(f"{signal}→{tone}" for signal, tone in list(eq.modulation.items())[:5])
    return f"When user shows: {hints}... adapt tone accordingly."


def _secondary_languages(secondary: Any) -> str:
    if isinstance(secondary, list):
        return "/".join(secondary) if secondary else "None"
    return secondary or "None"


# =============================================================================
# PARAMETER GUIDANCE
# =============================================================================

def default_guidance(parameter: ParameterDefinition) -> ParameterGuidance:
    """Guidance derived from the parameter definition alone."""
    response_type = _RESPONSE_TYPES[parameter.type]
    if parameter.type == ParameterType.CHOICE and parameter.allow_multiple:
        response_type = "multiple choice"
    rules = [f"One of: {' | '.join(parameter.options)}"] if parameter.options else []
    return ParameterGuidance(
        id=parameter.id,
        label=parameter.label,
        purpose=parameter.goal,
        questionIntent=f"Find out the {parameter.label.lower()}",
        aiGuidance=parameter.expected_format or "Accept the user's own words",
        responseType=response_type,
        exampleQuestions=[f"Could you tell me the {parameter.label.lower()}?"],
        validation={"rules": rules} if rules else None,
        usageInProcess=parameter.goal,
    )


def resolve_guidance(character: Character, parameter: ParameterDefinition) -> ParameterGuidance:
    """Character-level guidance over the defaults for one parameter."""
    base = default_guidance(parameter)
    override = character.guidance_for(parameter.id)
    if override is None:
        return base
    fields = override.model_dump(exclude_unset=True, exclude_none=True)
    return ParameterGuidance.model_validate({**base.model_dump(), **fields})


def build_parameter_guidance(character: Character, parameters: Sequence[ParameterDefinition]) -> str:
    """One guidance entry per declared parameter, in declared order."""
    lines = [
        "[PARAMETER GUIDANCE]",
        "",
        f"You must collect these {len(parameters)} key parameters through natural conversation:",
        "",
    ]
    for index, parameter in enumerate(parameters, start=1):
        g = resolve_guidance(character, parameter)
        lines.append(f"{index}. {g.label or parameter.label} (ID: {parameter.id})")
        lines.append(f"   Purpose: {g.purpose}")
        lines.append(f"   Question Intent: {g.questionIntent}")
        lines.append(f"   AI Guidance: {g.aiGuidance}")
        lines.append(f"   Response Type: {g.responseType}")
        if g.exampleQuestions:
            lines.append("   Example Questions:")
            lines.extend(f'      - "{q}"' for q in g.exampleQuestions)
        if g.validation:
            lines.append(f"   Validation: {' | '.join(g.validation.rules) or 'Standard validation'}")
            if g.validation.followUps:
                lines.append("   Follow-ups:")
                lines.extend(f"      - {f}" for f in g.validation.followUps[:2])
        cues = list(g.emotionCues.items())[:3]
        if cues:
            lines.append(f"   Emotion Handling: {', '.join(f'{e}→{t}' for e, t in cues)}")
        lines.append(f"   Usage: {g.usageInProcess}")
        lines.append("")
    lines.extend([
        "**Collection Strategy:**",
        "- Ask only about the parameter you are given for this turn",
        "- Adapt phrasing to the user's answers and emotional state",
        "- Use parameter guidance and example questions for phrasing",
        "- Never ask about a parameter that is already collected",
    ])
    return "\n".join(lines)


# =============================================================================
# SYSTEM PROMPTS
# =============================================================================

def compose_enquiry_prompt(
    character: Character,
    guardrail_preamble: str,
    parameters: Sequence[ParameterDefinition],
) -> str:
    """
    Compose the full enquiry system prompt for a character.

    Sections are bracket-labelled and always appear in the same order.

    Args:
        character: The consultant character (defaults already merged)
        guardrail_preamble: Output of build_guardrail_preamble()
        parameters: The service's parameter definitions, in question order

    Returns:
        The system prompt
    """
    region = character.region.state + (f", {character.region.city}" if character.region.city else "")
    language = character.language
    enquiry = character.prompts.enquiry
    opening = language.openingPhrases or ["Hello!"]

    sections = [
        f"[ROLE] You are {character.name}, a {character.service} consultant for home services in {region}.",
        f"[PERSONA] {character.persona}",
        f"[QUALIFICATION] {character.qualification or 'Expert consultant'}",
        f"[TONE] {character.tone}",
        f"[LANGUAGE] Primary: {language.primary}, Secondary: {_secondary_languages(language.secondary)}. "
        f"Locale: {language.locale}",
        f"[OPENING PHRASES] When greeting users, prefer these natural openings: {' | '.join(opening)}",
        f"[EMOTIONAL INTELLIGENCE] Detect these signals and respond with empathy: "
        f"{', '.join(character.eq.detection)}",
        f"[EQ MODULATION] {_eq_modulation_hints(character.eq)}",
        guardrail_preamble,
        SIMPLICITY_RULES,
        QUESTION_STYLE,
        f"[CONVERSATIONAL COLLECTION FLOW] {enquiry.collectionFlow or DEFAULT_COLLECTION_FLOW}",
        build_parameter_guidance(character, parameters),
        f"[STYLE] {enquiry.style}",
        "\n".join([
            "[OUTPUT]",
            f"• Respond conversationally as {character.name}.",
            '• Do NOT prefix responses with role labels like "assistant:" or "user:".',
            "• Introduce yourself only once at the start; avoid re-introductions mid-conversation.",
            "• Ask ONE short, clear question at a time based on missing parameters.",
            "• Use a brief affirmation when appropriate.",
            "• If the user's reply is ambiguous, re-ask using the re-ask template.",
        ]),
    ]
    return "\n\n".join(sections)


def compose_turn_prompt(
    character: Character,
    parameter: ParameterDefinition,
    recent_turns: Sequence[Any],
    include_guardrails: bool = True,
) -> str:
    """
    Per-turn task prompt: one affirmation, then one question about `parameter`.

    Args:
        character: The consultant character
        parameter: The parameter the planner chose to ask next
        recent_turns: Recent transcript turns (objects with role and text)
        include_guardrails: Append the guardrail block (left off for preflight checks)

    Returns:
        The system prompt for this turn
    """
    context = "\n".join(f"{_role_name(t).upper()}: {t.text}" for t in recent_turns)
    options = " | ".join(parameter.options) if parameter.options else None
    lines = [
        f"You are {character.name}, a {character.service} consultant. "
        f"Persona: {character.persona}. Tone: {character.tone}.",
        f"CONTEXT (recent turns):\n{context}",
        "",
        "TASK:",
        "1) Start with ONE warm, human, emotionally-aware affirmation (3-8 words) tailored to the user's last input.",
        f"   - Explicitly reference their selection/value if it matches an option: {options or '(no options)'}.",
        "   - Convey benefit or understanding (comfort, clarity, aesthetics, budget fit, timeline confidence).",
        '   - Avoid generic phrases like "Excellent choice", "Noted", "Got it" by themselves.',
        "   - Vary language each turn; do not repeat prior affirmations.",
        f'2) Then ask ONE concise next question about "{parameter.label}" (14 words or fewer).',
        f"   - Use the expected format: {parameter.expected_format or '(no specific format)'}.",
        f"   - If there are options, include exactly: {f'(Options: {options})' if options else '(no options)'}.",
        "3) No greetings. No extra sentences. Keep it natural and warm.",
    ]
    if include_guardrails:
        lines += ["", guardrails.preamble(character.guardrails)]
    return "\n".join(lines)


def compose_user_prompt(transcript: Sequence[Any]) -> str:
    """User content for the model: the transcript text, one turn per line."""
    return "\n".join(t.text for t in transcript)


def build_introduction(character: Character) -> str:
    """
    One-line self introduction used on the first assistant reply.

    "Ananya Rao - Interior Design Consultant" -> "Hello! I'm Ananya, your Interior Design Consultant."
    """
    raw_name = character.name or "Consultant"
    name_part, _, role_part = raw_name.partition(" - ")
    words = name_part.strip().split()
    first_name = re.sub(r"[^A-Za-z]", "", words[0]) if words else ""
    role = role_part.strip() or f"{character.service.replace('_', ' ')} consultant"
    return f"Hello! I'm {first_name or 'Consultant'}, your {role}."


def _role_name(turn: Any) -> str:
    role = getattr(turn, "role", "")
    return getattr(role, "value", role)


def fallback_question(parameter: ParameterDefinition) -> str:
    """Deterministic question used when no model text is available."""
    return f"Could you tell me the {parameter.label.lower()}?"
