"""
Pydantic models for the Questionnaire API.
Python 3.9 compatible - uses typing.List, typing.Dict, typing.Optional
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

MEDIA_TYPES = ["png", "jpeg", "jpg", "pdf"]


class CreateQuestionnaireRequest(BaseModel):
    service: str
    channel: Optional[str] = None
    userRef: Optional[str] = None


class CreateQuestionnaireResponse(BaseModel):
    id: str
    service: str
    character: str
    characterId: str
    status: str
    nextQuestion: str  # Opening phrase; the first question follows the user's first message


class MessageRequest(BaseModel):
    text: str
    debug: bool = False


class ViolationInfo(BaseModel):
    kind: str
    severity: str


class DiagnosticsPayload(BaseModel):
    """Debug information returned when debug=true."""
    answeredParam: Optional[str] = None
    extractionSource: Optional[str] = None
    triggerOnly: bool = False
    guardrailViolations: List[ViolationInfo] = Field(default_factory=list)
    preflightWarnings: List[str] = Field(default_factory=list)
    signals: List[str] = Field(default_factory=list)
    intensity: float = 0.0
    approach: str = "neutral"
    aiUsed: bool = False
    fallbackReason: Optional[str] = None
    repromptCount: int = 0
    stalled: bool = False


class QuestionResponse(BaseModel):
    id: str
    status: str
    askedParam: str
    nextQuestion: str
    parameterLabel: str
    options: List[str] = Field(default_factory=list)
    expectedFormat: str = ""
    allowMultiple: bool = False
    mediaUpload: bool = True
    mediaTypes: List[str] = Field(default_factory=lambda: list(MEDIA_TYPES))
    parameters: Dict[str, Any] = Field(default_factory=dict)
    diagnostics: Optional[DiagnosticsPayload] = None


class CompletionResponse(BaseModel):
    id: str
    status: str = "completed"
    message: str = "Thank you! All details captured."
    parameters: Dict[str, Any] = Field(default_factory=dict)
    diagnostics: Optional[DiagnosticsPayload] = None


class TranscriptTurn(BaseModel):
    role: str
    text: str
    timestamp: datetime


class SessionSnapshot(BaseModel):
    id: str
    service: str
    characterId: str
    status: str
    channel: Optional[str] = None
    userRef: Optional[str] = None
    parameters: Dict[str, Any] = Field(default_factory=dict)
    nextParam: Optional[str] = None
    repromptCount: int = 0
    transcript: List[TranscriptTurn] = Field(default_factory=list)
    createdAt: datetime
    updatedAt: datetime


class ReloadResponse(BaseModel):
    status: str
    count: int
