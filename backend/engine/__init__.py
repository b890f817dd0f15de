"""
Questionnaire engine - planner, extractor, guardrails, EQ, prompts and sanitizer.
"""
from .planner import (
    SessionStatus,
    Role,
    Turn,
    DialogueSession,
    CompletionEvent,
    TurnAction,
    TurnOutcome,
    next_missing_parameter,
    start_session,
    apply_user_turn,
    record_assistant_turn,
)
from .extract import (
    ExtractionResult,
    Selection,
    SelectionKind,
    extract,
    extract_detailed,
)
from .guardrails import (
    GuardrailTableError,
    ViolationKind,
    scan,
    smart_repair,
    validate,
)

__all__ = [
    "SessionStatus",
    "Role",
    "Turn",
    "DialogueSession",
    "CompletionEvent",
    "TurnAction",
    "TurnOutcome",
    "next_missing_parameter",
    "start_session",
    "apply_user_turn",
    "record_assistant_turn",
    "ExtractionResult",
    "Selection",
    "SelectionKind",
    "extract",
    "extract_detailed",
    "GuardrailTableError",
    "ViolationKind",
    "scan",
    "smart_repair",
    "validate",
]
