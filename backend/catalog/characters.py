"""
Consultant character registry.

Characters (one per service) are loaded from a JSON registry file, validated
with pydantic, and cached by file mtime. The registry object owns its cache;
callers receive it by injection and call reload() to force a re-read.
"""
import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_PATH = Path(__file__).parent / "data" / "characters.json"


class CharacterRegistryError(Exception):
    """Raised when the registry file is missing, malformed or lacks a service."""


# =============================================================================
# CHARACTER MODELS
# =============================================================================

class EQConfig(BaseModel):
    """Emotional signal keywords, empathy phrase pool and signal -> tone map."""
    detection: List[str] = Field(default_factory=list)
    empathyPhrases: List[str] = Field(default_factory=list)
    modulation: Dict[str, str] = Field(default_factory=dict)


class Region(BaseModel):
    state: str
    city: Optional[str] = None


class LanguageConfig(BaseModel):
    primary: str = "English"
    secondary: Union[List[str], str, None] = None
    locale: str = "en-IN"
    openingPhrases: List[str] = Field(default_factory=list)


class GuidanceValidation(BaseModel):
    rules: List[str] = Field(default_factory=list)
    followUps: List[str] = Field(default_factory=list)


class ParameterGuidance(BaseModel):
    """Character-level phrasing guidance for one parameter (overrides defaults)."""
    id: str
    label: Optional[str] = None
    purpose: Optional[str] = None
    questionIntent: Optional[str] = None
    aiGuidance: Optional[str] = None
    responseType: Optional[str] = None
    exampleQuestions: List[str] = Field(default_factory=list)
    validation: Optional[GuidanceValidation] = None
    emotionCues: Dict[str, str] = Field(default_factory=dict)
    usageInProcess: Optional[str] = None


class EnquiryPrompt(BaseModel):
    style: str = "Warm, concise and practical. Plain language."
    collectionFlow: Optional[str] = None
    parameters: List[ParameterGuidance] = Field(default_factory=list)


class CharacterPrompts(BaseModel):
    enquiry: EnquiryPrompt = Field(default_factory=EnquiryPrompt)


class Character(BaseModel):
    """A consultant persona bound to exactly one service."""
    id: str
    name: str
    service: str
    persona: str
    qualification: Optional[str] = None
    tone: str
    region: Region
    language: LanguageConfig = Field(default_factory=LanguageConfig)
    eq: EQConfig = Field(default_factory=EQConfig)
    guardrails: List[str] = Field(default_factory=list)
    prompts: CharacterPrompts = Field(default_factory=CharacterPrompts)
    model: Optional[str] = None

    def guidance_for(self, parameter_id: str) -> Optional[ParameterGuidance]:
        for guidance in self.prompts.enquiry.parameters:
            if guidance.id == parameter_id:
                return guidance
        return None


class RegistryDocument(BaseModel):
    version: Optional[str] = None
    defaults: Dict[str, Any] = Field(default_factory=dict)
    characters: List[Dict[str, Any]]


# =============================================================================
# MERGING
# =============================================================================

def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge override on top of base, recursing into nested dicts.

    Lists in override replace lists in base rather than being concatenated.
    Neither input is mutated.
    """
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


# =============================================================================
# REGISTRY
# =============================================================================

class CharacterRegistry:
    """
    File-backed character registry with an mtime cache.

    Args:
        path: Path to the registry JSON file. Defaults to the bundled
            catalog/data/characters.json.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path else DEFAULT_REGISTRY_PATH
        self._document: Optional[RegistryDocument] = None
        self._mtime: Optional[float] = None

    def _load(self) -> RegistryDocument:
        try:
            mtime = os.stat(self.path).st_mtime
        except OSError as e:
            raise CharacterRegistryError(f"Character registry not found at {self.path}: {e}") from e

        if self._document is not None and self._mtime == mtime:
            logger.debug(f"Returning cached character registry from {self.path}")
            return self._document

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read character registry {self.path}: {e}")
            raise CharacterRegistryError(f"Failed to load character registry: {e}") from e

        try:
            document = RegistryDocument.model_validate(raw)
            # Every merged character must validate, so bad entries fail at load time
            for entry in document.characters:
                Character.model_validate(deep_merge(document.defaults, entry))
        except ValidationError as e:
            logger.error(f"Character registry validation failed for {self.path}: {e}")
            raise CharacterRegistryError(f"Character registry validation failed: {e}") from e

        self._document = document
        self._mtime = mtime
        logger.info(f"Loaded character registry from {self.path} ({len(document.characters)} characters)")
        return document

    def load(self) -> RegistryDocument:
        """Get the registry document, re-reading it if the file changed."""
        return self._load()

    def reload(self) -> RegistryDocument:
        """Drop the cache and re-read the registry from disk."""
        self._document = None
        self._mtime = None
        return self._load()

    def characters(self) -> List[Character]:
        """All characters with registry defaults applied."""
        document = self._load()
        return [Character.model_validate(deep_merge(document.defaults, c)) for c in document.characters]

    def pick(self, service: str) -> Character:
        """
        Pick the character for a service, merged over the registry defaults.

        Raises:
            CharacterRegistryError: If no character serves the service
        """
        document = self._load()
        for entry in document.characters:
            if entry.get("service") == service:
                return Character.model_validate(deep_merge(document.defaults, entry))
        raise CharacterRegistryError(f"Character for service {service} not found")
