"""
Deterministic questionnaire planner.

This module is the SINGLE SOURCE OF TRUTH for dialogue flow decisions.
It uses the service's parameter definitions to determine:
- Which parameter to ask for next (strictly positional)
- Which parameter a user reply answers
- When the questionnaire is complete

NO LLM calls are made in this module. All logic is deterministic.
Functions return updated copies of the session; persistence is the
caller's job.
"""
import copy
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from catalog.parameters import ParameterDefinition, ParameterRegistry

from .extract import ExtractionResult, extract_detailed

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    """Session lifecycle. Moves forward only: new -> collecting -> completed."""
    NEW = "new"
    COLLECTING = "collecting"
    COMPLETED = "completed"


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class TurnAction(str, Enum):
    """What the caller should do after a user turn."""
    ASK_QUESTION = "ASK_QUESTION"
    COMPLETE = "COMPLETE"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Turn:
    role: Role
    text: str
    timestamp: datetime = field(default_factory=_now)


@dataclass
class DialogueSession:
    """One questionnaire conversation."""
    id: str
    service: str
    character_id: str
    status: SessionStatus = SessionStatus.NEW
    transcript: List[Turn] = field(default_factory=list)
    parameters: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)
    reprompt_count: int = 0
    channel: Optional[str] = None
    user_ref: Optional[str] = None

    def turns(self, role: Role) -> List[Turn]:
        return [t for t in self.transcript if t.role == role]


@dataclass
class CompletionEvent:
    """Handed to the webhook dispatcher when every parameter is collected."""
    session_id: str
    service: str
    parameters: Dict[str, Any]
    character_id: str
    channel: Optional[str]
    user_ref: Optional[str]
    completed_at: datetime

    def payload(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "service": self.service,
            "parameters": self.parameters,
            "characterId": self.character_id,
            "channel": self.channel,
            "userRef": self.user_ref,
            "completedAt": self.completed_at.isoformat(),
        }


@dataclass
class TurnOutcome:
    """Result of applying one user turn."""
    session: DialogueSession
    action: TurnAction
    answered_parameter: Optional[str] = None
    next_parameter: Optional[str] = None
    extraction: Optional[ExtractionResult] = None
    trigger_only: bool = False
    stalled: bool = False
    completion: Optional[CompletionEvent] = None


# =============================================================================
# SLOT CHECKING
# =============================================================================

def is_slot_filled(collected: Dict[str, Any], parameter_id: str) -> bool:
    """A slot is answered once it holds any value other than None."""
    return collected.get(parameter_id) is not None


def next_missing_parameter(
    parameters: Sequence[ParameterDefinition],
    collected: Dict[str, Any],
) -> Optional[str]:
    """
    Get the next parameter that needs to be filled.

    Returns the first parameter id, in declared order, whose slot is
    unanswered. Independent of semantic relevance.

    Args:
        parameters: The service's parameter definitions, in question order
        collected: Current slot values

    Returns:
        The next parameter id, or None if all are answered
    """
    for parameter in parameters:
        if not is_slot_filled(collected, parameter.id):
            return parameter.id
    return None


def get_missing_parameters(
    parameters: Sequence[ParameterDefinition],
    collected: Dict[str, Any],
) -> List[str]:
    """Ids of all unanswered parameters, in declared order."""
    return [p.id for p in parameters if not is_slot_filled(collected, p.id)]


# =============================================================================
# SESSION TRANSITIONS
# =============================================================================

def start_session(
    service: str,
    character_id: str,
    channel: Optional[str] = None,
    user_ref: Optional[str] = None,
    session_id: Optional[str] = None,
) -> DialogueSession:
    """Create a new session with no turns and no collected slots."""
    now = _now()
    return DialogueSession(
        id=session_id or f"q_{uuid.uuid4().hex[:16]}",
        service=service,
        character_id=character_id,
        status=SessionStatus.NEW,
        created_at=now,
        updated_at=now,
        channel=channel,
        user_ref=user_ref,
    )


def is_first_assistant_reply(session: DialogueSession) -> bool:
    """True until the assistant has replied once (the reply that introduces the character)."""
    return not session.turns(Role.ASSISTANT) and not session.parameters


def apply_user_turn(
    session: DialogueSession,
    text: str,
    registry: ParameterRegistry,
    max_reprompts: int = 0,
) -> TurnOutcome:
    """
    Apply one user message to a session.

    The first user message only moves the session from new to collecting.
    Later messages answer the parameter that was asked last, which is the
    first unanswered one. A reply with no extractable value leaves the slot
    empty so the same parameter is asked again.

    Args:
        session: Current session (not modified)
        text: The user's message
        registry: Parameter registry for the session's service
        max_reprompts: Consecutive failed extractions after which the turn is
            flagged as stalled. 0 means unlimited.

    Returns:
        TurnOutcome holding the updated session copy
    """
    updated = copy.deepcopy(session)
    parameters = registry.get(updated.service)

    if updated.status == SessionStatus.COMPLETED:
        logger.debug(f"Session {updated.id} already completed, ignoring user turn")
        return TurnOutcome(session=updated, action=TurnAction.COMPLETE)

    now = _now()
    updated.transcript.append(Turn(role=Role.USER, text=text, timestamp=now))
    updated.updated_at = now

    outcome = TurnOutcome(session=updated, action=TurnAction.ASK_QUESTION)

    if updated.status == SessionStatus.NEW:
        # The first message is a trigger, never an answer
        updated.status = SessionStatus.COLLECTING
        outcome.trigger_only = True
    else:
        asked = next_missing_parameter(parameters, updated.parameters)
        if asked:
            result = extract_detailed(updated.service, asked, text, registry)
            outcome.answered_parameter = asked
            outcome.extraction = result
            if result.found:
                updated.parameters[asked] = result.value
                updated.reprompt_count = 0
                logger.debug(f"Session {updated.id}: saved {asked}={result.value!r} via {result.source}")
            else:
                updated.reprompt_count += 1
                logger.debug(f"Session {updated.id}: no value for {asked}, re-asking")
                if max_reprompts > 0 and updated.reprompt_count >= max_reprompts:
                    outcome.stalled = True
                    logger.warning(
                        f"METRIC questionnaire_stalled sessionId={updated.id} "
                        f"param={asked} reprompts={updated.reprompt_count}"
                    )

    outcome.next_parameter = next_missing_parameter(parameters, updated.parameters)
    if outcome.next_parameter is None:
        updated.status = SessionStatus.COMPLETED
        outcome.action = TurnAction.COMPLETE
        outcome.completion = CompletionEvent(
            session_id=updated.id,
            service=updated.service,
            parameters=dict(updated.parameters),
            character_id=updated.character_id,
            channel=updated.channel,
            user_ref=updated.user_ref,
            completed_at=now,
        )
    return outcome


def record_assistant_turn(session: DialogueSession, text: str) -> DialogueSession:
    """Return a copy of the session with an assistant turn appended."""
    updated = copy.deepcopy(session)
    now = _now()
    updated.transcript.append(Turn(role=Role.ASSISTANT, text=text, timestamp=now))
    updated.updated_at = now
    return updated
