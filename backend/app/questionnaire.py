"""
Questionnaire turn orchestration.

Each user message runs through the same pipeline:
1. Planner applies the turn (trigger, extraction, re-ask or completion)
2. On completion: closing message + completion event for the webhook
3. Otherwise the prompt composer builds the system prompt for the next
   parameter and the text model phrases the question
4. Output pipeline: option stripping, sanitizer, guardrail repair, EQ
   modulation, and the character introduction on the first reply

The model never decides which parameter is asked. If it is unavailable or
fails, a deterministic question is used and the turn still succeeds.
"""
import logging
import random
from typing import Dict, List, Optional, Tuple, Union

from fastapi import HTTPException

from catalog.characters import Character, CharacterRegistry, CharacterRegistryError
from catalog.parameters import ParameterDefinition, ParameterRegistry
from engine import eq, guardrails
from engine.planner import (
    CompletionEvent,
    DialogueSession,
    SessionStatus,
    TurnAction,
    TurnOutcome,
    apply_user_turn,
    is_first_assistant_reply,
    next_missing_parameter,
    record_assistant_turn,
    start_session,
)
from engine.prompt_composer import (
    build_guardrail_preamble,
    build_introduction,
    compose_enquiry_prompt,
    compose_turn_prompt,
    compose_user_prompt,
    fallback_question,
)
from engine.sanitize import sanitize_assistant, strip_option_phrases

from .ai_service import AIServiceError, AITextService
from .config import Settings, load_settings
from .models import (
    CompletionResponse,
    CreateQuestionnaireResponse,
    DiagnosticsPayload,
    QuestionResponse,
    SessionSnapshot,
    TranscriptTurn,
    ViolationInfo,
)
from .session_store import InMemorySessionStore
from .webhook import WebhookDispatcher

logger = logging.getLogger(__name__)

COMPLETION_MESSAGE = "Thank you! All details captured."
RECENT_TURNS = 4


def _log_turn_summary(
    session_id: str,
    service: str,
    asked_param: Optional[str],
    next_param: Optional[str],
    slots_filled: int,
    ai_used: bool,
) -> None:
    """
    Structured single-line summary for each questionnaire turn.

    - session_id: Questionnaire session identifier
    - service: Which service the questionnaire collects for
    - asked_param: Parameter the user's reply answered (if any)
    - next_param: Parameter asked next, or none on completion
    - slots_filled: Total number of parameters collected
    - ai_used: Whether the text model phrased the reply
    """
    logger.info(
        "[Q-SUMMARY] "
        f"id={session_id} "
        f"service={service} "
        f"asked={asked_param or 'none'} "
        f"next={next_param or 'none'} "
        f"filled={slots_filled} "
        f"ai_used={ai_used}"
    )


# =============================================================================
# Internal Metrics Counters (for anomaly detection, not exposed via API)
# =============================================================================
class _QuestionnaireMetrics:
    """
    Simple in-memory counters for questionnaire turns.

    Counters reset on server restart.
    """

    def __init__(self):
        self.total_turns = 0
        self.ai_replies = 0
        self.fallback_replies = 0
        self.trigger_turns = 0
        self.completions = 0
        self.reasks = 0
        self.guardrail_repairs = 0
        self.stalls = 0
        self.consecutive_fallbacks = 0
        self.max_consecutive_fallbacks = 0

    def record_turn(
        self,
        action: str,
        ai_used: bool = False,
        fallback: bool = False,
        trigger: bool = False,
        reask: bool = False,
        repaired: bool = False,
        stalled: bool = False,
    ):
        """Record metrics for one processed turn."""
        self.total_turns += 1
        if action == TurnAction.COMPLETE.value:
            self.completions += 1
        if ai_used:
            self.ai_replies += 1
        if trigger:
            self.trigger_turns += 1
        if reask:
            self.reasks += 1
        if repaired:
            self.guardrail_repairs += 1
        if stalled:
            self.stalls += 1

        if fallback:
            self.fallback_replies += 1
            self.consecutive_fallbacks += 1
            self.max_consecutive_fallbacks = max(self.max_consecutive_fallbacks, self.consecutive_fallbacks)
            if self.consecutive_fallbacks >= 3:
                logger.warning(
                    f"[Q-ANOMALY] consecutive_fallbacks={self.consecutive_fallbacks} "
                    f"(threshold=3, max_seen={self.max_consecutive_fallbacks})"
                )
        elif ai_used:
            self.consecutive_fallbacks = 0

    def log_summary(self):
        """Log a summary of current metrics."""
        if self.total_turns == 0:
            return
        replies = self.ai_replies + self.fallback_replies
        fallback_rate = (self.fallback_replies / replies) * 100 if replies else 0.0
        logger.info(
            f"[Q-METRICS] "
            f"turns={self.total_turns} "
            f"completions={self.completions} "
            f"fallback_rate={fallback_rate:.1f}% "
            f"reasks={self.reasks} "
            f"guardrail_repairs={self.guardrail_repairs} "
            f"stalls={self.stalls}"
        )


class QuestionnaireService:
    """
    Owns the registries, session store and outbound clients for the API.

    Args:
        settings: Loaded settings
        parameters: Parameter registry
        characters: Character registry
        store: Session store
        ai: Text generation client
        webhook: Completion webhook dispatcher
        rng: Random source for empathy phrase selection
    """

    def __init__(
        self,
        settings: Settings,
        parameters: ParameterRegistry,
        characters: CharacterRegistry,
        store: InMemorySessionStore,
        ai: AITextService,
        webhook: WebhookDispatcher,
        rng: Optional[random.Random] = None,
    ):
        self.settings = settings
        self.parameters = parameters
        self.characters = characters
        self.store = store
        self.ai = ai
        self.webhook = webhook
        self.rng = rng or random.Random()
        self.metrics = _QuestionnaireMetrics()

    @classmethod
    def from_settings(cls, settings: Settings) -> "QuestionnaireService":
        return cls(
            settings=settings,
            parameters=ParameterRegistry(),
            characters=CharacterRegistry(settings.character_registry_path),
            store=InMemorySessionStore(ttl_minutes=settings.session_ttl_minutes),
            ai=AITextService(settings.openai_api_key, settings.openai_model, settings.ai_temperature),
            webhook=WebhookDispatcher(settings.webhook_url),
        )

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    def _character(self, service: str) -> Character:
        try:
            return self.characters.pick(service)
        except CharacterRegistryError as e:
            logger.error(f"Character registry error for service={service}: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def _session(self, session_id: str) -> DialogueSession:
        session = self.store.get(session_id)
        if session is None:
            raise HTTPException(status_code=404, detail=f"Questionnaire {session_id} not found")
        return session

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    def create(
        self,
        service: str,
        channel: Optional[str] = None,
        user_ref: Optional[str] = None,
    ) -> CreateQuestionnaireResponse:
        """
        Start a questionnaire for a service.

        The response carries the character's opening phrase; the first
        question is asked after the user's first message.
        """
        if not self.parameters.get(service):
            logger.warning(f"Rejected questionnaire for unknown service={service}")
            raise HTTPException(status_code=422, detail=f"Unknown service: {service}")

        character = self._character(service)
        session = self.store.create(
            start_session(service, character.id, channel=channel, user_ref=user_ref)
        )
        opening = character.language.openingPhrases[0] if character.language.openingPhrases else "Hello!"
        logger.info(f"Questionnaire created: id={session.id} service={service} character={character.id}")
        return CreateQuestionnaireResponse(
            id=session.id,
            service=service,
            character=character.name,
            characterId=character.id,
            status=session.status.value,
            nextQuestion=opening,
        )

    async def handle_message(
        self,
        session_id: str,
        text: str,
        debug: bool = False,
    ) -> Tuple[Union[QuestionResponse, CompletionResponse], Optional[CompletionEvent]]:
        """
        Process one user message.

        Args:
            session_id: Questionnaire id
            text: The user's message
            debug: Attach diagnostics to the response

        Returns:
            (response, completion event). The event is set only on the turn
            that completes the questionnaire; the caller dispatches it.
        """
        if not text or not text.strip():
            raise HTTPException(status_code=422, detail="text is required")
        debug = debug or self.settings.debug

        self._session(session_id)
        async with self.store.lock(session_id):
            session = self._session(session_id)

            if session.status == SessionStatus.COMPLETED:
                logger.info(f"Message for completed questionnaire id={session_id}, returning captured parameters")
                return CompletionResponse(id=session.id, parameters=session.parameters), None

            outcome = apply_user_turn(session, text, self.parameters, self.settings.max_reprompts)
            if outcome.action == TurnAction.COMPLETE:
                return self._complete(outcome, debug)
            return await self._ask(outcome, text, debug), None

    def snapshot(self, session_id: str) -> SessionSnapshot:
        session = self._session(session_id)
        return SessionSnapshot(
            id=session.id,
            service=session.service,
            characterId=session.character_id,
            status=session.status.value,
            channel=session.channel,
            userRef=session.user_ref,
            parameters=session.parameters,
            nextParam=next_missing_parameter(self.parameters.get(session.service), session.parameters),
            repromptCount=session.reprompt_count,
            transcript=[
                TranscriptTurn(role=t.role.value, text=t.text, timestamp=t.timestamp)
                for t in session.transcript
            ],
            createdAt=session.created_at,
            updatedAt=session.updated_at,
        )

    # =========================================================================
    # TURN HANDLING
    # =========================================================================

    def _complete(
        self,
        outcome: TurnOutcome,
        debug: bool,
    ) -> Tuple[CompletionResponse, Optional[CompletionEvent]]:
        session = self.store.save(record_assistant_turn(outcome.session, COMPLETION_MESSAGE))
        logger.info(
            f"METRIC questionnaire_completed sessionId={session.id} service={session.service} "
            f"params={len(session.parameters)}"
        )
        _log_turn_summary(session.id, session.service, outcome.answered_parameter, None, len(session.parameters), False)
        self._record(outcome, ai_used=False, fallback=False, repaired=False)

        diagnostics = None
        if debug:
            diagnostics = DiagnosticsPayload(
                answeredParam=outcome.answered_parameter,
                extractionSource=outcome.extraction.source if outcome.extraction else None,
                triggerOnly=outcome.trigger_only,
                repromptCount=session.reprompt_count,
            )
        response = CompletionResponse(id=session.id, parameters=session.parameters, diagnostics=diagnostics)
        return response, outcome.completion

    async def _ask(self, outcome: TurnOutcome, user_text: str, debug: bool) -> QuestionResponse:
        session = outcome.session
        parameter = self.parameters.get_parameter(session.service, outcome.next_parameter)
        character = self._character(session.service)

        reply, diagnostics = await self._compose_reply(session, character, parameter, user_text)
        session = self.store.save(record_assistant_turn(session, reply))

        diagnostics.answeredParam = outcome.answered_parameter
        diagnostics.extractionSource = outcome.extraction.source if outcome.extraction else None
        diagnostics.triggerOnly = outcome.trigger_only
        diagnostics.repromptCount = session.reprompt_count
        diagnostics.stalled = outcome.stalled

        _log_turn_summary(
            session.id, session.service, outcome.answered_parameter, parameter.id,
            len(session.parameters), diagnostics.aiUsed,
        )
        self._record(
            outcome,
            ai_used=diagnostics.aiUsed,
            fallback=not diagnostics.aiUsed,
            repaired=bool(diagnostics.guardrailViolations),
        )

        return QuestionResponse(
            id=session.id,
            status=session.status.value,
            askedParam=parameter.id,
            nextQuestion=reply,
            parameterLabel=parameter.label,
            options=list(parameter.options or []),
            expectedFormat=parameter.expected_format or "",
            allowMultiple=parameter.allow_multiple,
            parameters=session.parameters,
            diagnostics=diagnostics if debug else None,
        )

    async def _compose_reply(
        self,
        session: DialogueSession,
        character: Character,
        parameter: ParameterDefinition,
        user_text: str,
    ) -> Tuple[str, DiagnosticsPayload]:
        """Generate, clean and modulate the assistant reply for the next parameter."""
        diagnostics = DiagnosticsPayload()
        signals = eq.detect_all_signals(character.eq, user_text)
        intensity = eq.analyze_emotional_intensity(character.eq, user_text)
        approach = eq.get_response_approach(intensity)
        diagnostics.signals = signals
        diagnostics.intensity = intensity
        diagnostics.approach = approach.approach

        recent = session.transcript[-RECENT_TURNS:]
        preflight = guardrails.preflight_prompt(
            compose_turn_prompt(character, parameter, recent, include_guardrails=False)
        )
        if not preflight.safe:
            logger.info(f"METRIC guardrail_preflight sessionId={session.id} warnings={len(preflight.warnings)}")
            diagnostics.preflightWarnings = preflight.warnings

        system = self._system_prompt(session, character, parameter, approach)
        try:
            raw = await self.ai.generate_text(
                system=system,
                user=compose_user_prompt(session.transcript),
                model=character.model,
                session_id=session.id,
            )
            diagnostics.aiUsed = True
        except AIServiceError as e:
            logger.warning(f"METRIC ai_fallback sessionId={session.id} param={parameter.id} reason={e}")
            raw = fallback_question(parameter)
            diagnostics.fallbackReason = str(e)

        reply = sanitize_assistant(strip_option_phrases(raw, parameter.options))
        if not reply:
            reply = fallback_question(parameter)

        if self.settings.enable_guardrails:
            repair = guardrails.smart_repair(reply)
            reply = repair.repaired
            diagnostics.guardrailViolations = [
                ViolationInfo(kind=v.kind.value, severity=v.severity.value) for v in repair.violations
            ]

        if self.settings.enable_eq_engine:
            reply = eq.craft_assistant_reply(character.eq, user_text, reply, self.rng)

        if is_first_assistant_reply(session):
            reply = f"{build_introduction(character)}\n\n{reply}"
        return reply, diagnostics

    def _system_prompt(
        self,
        session: DialogueSession,
        character: Character,
        parameter: ParameterDefinition,
        approach: eq.ResponseApproach,
    ) -> str:
        sections = [
            compose_enquiry_prompt(
                character,
                build_guardrail_preamble(character),
                self.parameters.get(session.service),
            ),
            compose_turn_prompt(character, parameter, session.transcript[-RECENT_TURNS:]),
        ]
        if self.settings.enable_eq_engine:
            sections.append(f"[RESPONSE APPROACH] {approach.approach}: {'; '.join(approach.guidelines)}")
        return "\n\n".join(sections)

    def _record(self, outcome: TurnOutcome, ai_used: bool, fallback: bool, repaired: bool) -> None:
        reask = bool(outcome.answered_parameter) and not (outcome.extraction and outcome.extraction.found)
        self.metrics.record_turn(
            action=outcome.action.value,
            ai_used=ai_used,
            fallback=fallback,
            trigger=outcome.trigger_only,
            reask=reask,
            repaired=repaired,
            stalled=outcome.stalled,
        )
        # Log metrics summary every 100 turns
        if self.metrics.total_turns % 100 == 0:
            self.metrics.log_summary()

    # =========================================================================
    # ADMIN
    # =========================================================================

    def list_characters(self) -> List[Dict]:
        try:
            return [c.model_dump() for c in self.characters.characters()]
        except CharacterRegistryError as e:
            raise HTTPException(status_code=500, detail=str(e))

    def reload_characters(self) -> int:
        try:
            document = self.characters.reload()
        except CharacterRegistryError as e:
            raise HTTPException(status_code=500, detail=str(e))
        logger.info(f"Character registry reloaded: {len(document.characters)} characters")
        return len(document.characters)


# Singleton instance (created lazily)
_questionnaire_service: Optional[QuestionnaireService] = None


def get_questionnaire_service() -> QuestionnaireService:
    """Get or create the QuestionnaireService singleton."""
    global _questionnaire_service
    if _questionnaire_service is None:
        _questionnaire_service = QuestionnaireService.from_settings(load_settings())
    return _questionnaire_service


def reset_questionnaire_service(service: Optional[QuestionnaireService] = None) -> None:
    """Replace (or clear) the singleton; used when settings change and in tests."""
    global _questionnaire_service
    _questionnaire_service = service
