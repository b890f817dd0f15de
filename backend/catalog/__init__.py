"""
Service parameter sets and consultant character registry.
"""
from .parameters import (
    ParameterType,
    ParameterDefinition,
    ParameterRegistry,
    SERVICE_PARAMETERS,
)
from .characters import (
    EQConfig,
    Character,
    CharacterRegistry,
    CharacterRegistryError,
)

__all__ = [
    "ParameterType",
    "ParameterDefinition",
    "ParameterRegistry",
    "SERVICE_PARAMETERS",
    "EQConfig",
    "Character",
    "CharacterRegistry",
    "CharacterRegistryError",
]
