"""Loader that fills the NPC definition table from a YAML or JSON data file.

Expected layout (either a bare list or a mapping with an ``npcs`` list)::

    npcs:
      - id: 3
        name: Goblin
        examine: A smelly creature.
        size: 1
        walk_animation: 1
        walk_back_animation: 2
        walk_left_animation: 3
        walk_right_animation: 4
        actions: [Talk-to, null, Attack, null, null]

``null`` action entries are padding in the source data and are dropped.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Self

import structlog
import yaml

from common.constants import NO_ANIMATION
from game.definitions.npc import DEFAULT_DEFINITION, NpcDefinition
from game.definitions.registry import RegistryInitializationError

log = structlog.get_logger()

ANIMATION_KEYS = (
    "walk_animation",
    "walk_back_animation",
    "walk_left_animation",
    "walk_right_animation",
)


class DefinitionParseError(ValueError):
    """A record in the definition data file is malformed."""


def _optional_text(raw: Dict[str, Any], key: str, index: int) -> str | None:
    value = raw.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise DefinitionParseError(
            f"Record {index}: '{key}' must be text, got {type(value).__name__}"
        )
    return value


def _int_field(raw: Dict[str, Any], key: str, index: int, default: int) -> int:
    value = raw.get(key, default)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int):
        raise DefinitionParseError(
            f"Record {index}: '{key}' must be an integer, got {value!r}"
        )
    return value


def parse_record(raw: Any, index: int) -> NpcDefinition:
    """Convert one raw mapping into an :class:`NpcDefinition`."""
    if not isinstance(raw, dict):
        raise DefinitionParseError(
            f"Record {index} must be a mapping, got {type(raw).__name__}"
        )
    if "id" not in raw:
        raise DefinitionParseError(f"Record {index} has no 'id'")
    definition_id = raw["id"]
    if isinstance(definition_id, bool) or not isinstance(definition_id, int):
        raise DefinitionParseError(
            f"Record {index}: 'id' must be an integer, got {definition_id!r}"
        )

    raw_actions = raw.get("actions") or []
    if not isinstance(raw_actions, list):
        raise DefinitionParseError(f"Record {index}: 'actions' must be a list")
    actions = []
    for action in raw_actions:
        if action is None:
            continue
        if not isinstance(action, str):
            raise DefinitionParseError(
                f"Record {index}: action {action!r} is not text"
            )
        actions.append(action)

    walk, back, left, right = (
        _int_field(raw, key, index, NO_ANIMATION) for key in ANIMATION_KEYS
    )
    return NpcDefinition(
        id=definition_id,
        name=_optional_text(raw, "name", index),
        examine=_optional_text(raw, "examine", index),
        size=_int_field(raw, "size", index, 1),
        walk_animation=walk,
        walk_back_animation=back,
        walk_left_animation=left,
        walk_right_animation=right,
        actions=actions,
    )


class NpcDefinitionParser:
    """Reads NPC definitions from ``path`` and writes them into a slot list.

    Instances are callable so they can be handed straight to
    :func:`game.definitions.registry.init_definitions`.
    """

    def __init__(self: Self, path: Path | str):
        self.path = Path(path)

    def __call__(self: Self, slots: List[NpcDefinition]) -> int:
        return self.run(slots)

    def read_records(self: Self) -> List[Any]:
        """Load the raw record list from the data file."""
        if not self.path.is_file():
            log.error("NPC definition file not found", path=str(self.path))
            raise FileNotFoundError(f"NPC definition file not found: {self.path}")
        try:
            with self.path.open("r", encoding="utf-8") as f:
                if self.path.suffix.lower() == ".json":
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            log.error(
                "Error parsing NPC definition file",
                path=str(self.path),
                error=str(e),
                exc_info=True,
            )
            raise

        if data is None:
            log.warning("NPC definition file is empty", path=str(self.path))
            return []
        if isinstance(data, dict):
            data = data.get("npcs", [])
        if not isinstance(data, list):
            raise DefinitionParseError(
                f"{self.path}: expected a list of records or an 'npcs' list"
            )
        return data

    def run(self: Self, slots: List[NpcDefinition]) -> int:
        """Parse every record and store it at ``slots[record.id]``."""
        records = self.read_records()
        written = 0
        for index, raw in enumerate(records):
            definition = parse_record(raw, index)
            store_definition(slots, definition)
            written += 1
        log.info(
            "NPC definitions parsed",
            path=str(self.path),
            records=written,
            capacity=len(slots),
        )
        return written


def store_definition(slots: List[NpcDefinition], definition: NpcDefinition) -> None:
    """Write ``definition`` into its own slot; ids outside the table fail loudly."""
    if not 0 <= definition.id < len(slots):
        log.critical(
            "Definition id outside table",
            definition_id=definition.id,
            capacity=len(slots),
        )
        raise RegistryInitializationError(
            f"Definition id {definition.id} outside table of {len(slots)} slots"
        )
    if slots[definition.id] is not DEFAULT_DEFINITION:
        log.warning("Duplicate NPC definition, replacing", definition_id=definition.id)
    slots[definition.id] = definition
