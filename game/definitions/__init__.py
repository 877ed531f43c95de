"""Static definition tables loaded once at start-up."""

from game.definitions.npc import DEFAULT_DEFINITION, NpcDefinition
from game.definitions.registry import (
    DefinitionNotFoundError,
    NpcDefinitionRegistry,
    RegistryInitializationError,
    all_definitions,
    definitions,
    get_definition,
    init_definitions,
    is_ready,
    name_for,
)

__all__ = [
    "DEFAULT_DEFINITION",
    "NpcDefinition",
    "DefinitionNotFoundError",
    "NpcDefinitionRegistry",
    "RegistryInitializationError",
    "all_definitions",
    "definitions",
    "get_definition",
    "init_definitions",
    "is_ready",
    "name_for",
]
