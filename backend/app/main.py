"""
Questionnaire Backend - FastAPI Application

This backend is the SOLE authority for questionnaire flow.
The planner decides which parameter is asked; the text model only phrases it.

Python 3.9 compatible.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional, Union

from fastapi import BackgroundTasks, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import load_env_files
from .models import (
    CompletionResponse,
    CreateQuestionnaireRequest,
    CreateQuestionnaireResponse,
    MessageRequest,
    QuestionResponse,
    ReloadResponse,
    SessionSnapshot,
)
from .questionnaire import get_questionnaire_service

VERSION = "1.0.0"

# Load environment variables from backend/.env, then ./.env
load_env_files()

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if os.getenv("DEBUG", "false").lower() == "true" else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _mask_key(key: Optional[str]) -> str:
    """Mask API key showing only last 4 chars."""
    if not key:
        return "(not set)"
    if len(key) <= 4:
        return "****"
    return f"****{key[-4:]}"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - initialize services."""
    logger.info("=" * 60)
    logger.info("Initializing Questionnaire Backend")
    logger.info("=" * 60)

    service = get_questionnaire_service()
    settings = service.settings

    logger.info(f"OPENAI_API_KEY present: {bool(settings.openai_api_key)} ({_mask_key(settings.openai_api_key)})")
    logger.info(f"OPENAI_MODEL: {settings.openai_model}")
    logger.info(f"QUESTIONNAIRE_WEBHOOK_URL present: {bool(settings.webhook_url)}")
    logger.info(f"ENABLE_EQ_ENGINE={settings.enable_eq_engine} ENABLE_GUARDRAILS={settings.enable_guardrails}")

    # The service runs without a model key; questions fall back to deterministic text
    if not service.ai.is_configured:
        logger.warning("Text model NOT configured - fallback questions will be used")
    if not service.webhook.is_configured:
        logger.warning("Completion webhook NOT configured - completions will not be delivered")

    logger.info("=" * 60)

    yield

    logger.info("Shutting down Questionnaire Backend")


app = FastAPI(
    title="Questionnaire Backend",
    description="Character-driven service questionnaires with deterministic slot planning",
    version=VERSION,
    lifespan=lifespan,
)

# CORS middleware for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": VERSION}


@app.get("/")
async def root():
    service = get_questionnaire_service()
    return {"name": "Questionnaire Backend", "version": VERSION, "services": service.parameters.services()}


# =============================================================================
# QUESTIONNAIRES
# =============================================================================

@app.post("/questionnaires", response_model=CreateQuestionnaireResponse, status_code=201)
async def create_questionnaire(request: CreateQuestionnaireRequest) -> CreateQuestionnaireResponse:
    """Start a questionnaire; the first question follows the user's first message."""
    logger.info(f"Create questionnaire: service={request.service}, channel={request.channel}")
    return get_questionnaire_service().create(
        request.service,
        channel=request.channel,
        user_ref=request.userRef,
    )


@app.post(
    "/questionnaires/{questionnaire_id}/messages",
    response_model=Union[QuestionResponse, CompletionResponse],
    response_model_exclude_none=True,
)
async def post_message(
    questionnaire_id: str,
    request: MessageRequest,
    background_tasks: BackgroundTasks,
) -> Union[QuestionResponse, CompletionResponse]:
    """
    Process one user message.

    Returns the next question, or the completion message once every
    parameter is collected. Webhook delivery runs after the response is sent.
    """
    msg_preview = request.text[:50] + "..." if len(request.text) > 50 else request.text
    logger.info(f"Questionnaire turn: id={questionnaire_id}, message='{msg_preview}'")

    service = get_questionnaire_service()
    response, completion = await service.handle_message(questionnaire_id, request.text, debug=request.debug)
    if completion is not None:
        background_tasks.add_task(service.webhook.dispatch, completion.payload())
    return response


@app.get("/questionnaires/{questionnaire_id}", response_model=SessionSnapshot)
async def get_questionnaire(questionnaire_id: str) -> SessionSnapshot:
    return get_questionnaire_service().snapshot(questionnaire_id)


# =============================================================================
# ADMIN
# =============================================================================

@app.get("/admin/characters")
async def list_characters() -> List[Dict[str, Any]]:
    """All characters with registry defaults merged in."""
    return get_questionnaire_service().list_characters()


@app.post("/admin/characters/reload", response_model=ReloadResponse)
async def reload_characters() -> ReloadResponse:
    count = get_questionnaire_service().reload_characters()
    return ReloadResponse(status="reloaded", count=count)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
