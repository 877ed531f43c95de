# game/definitions/registry.py
"""Process-wide table of NPC definitions.

The table is built exactly once at start-up: every slot is pre-filled with
:data:`~game.definitions.npc.DEFAULT_DEFINITION`, a loader writes the real
definitions into their slots, and the result is frozen into a tuple.  Reads
after that need no locking.

Typical start-up::

    from game.definitions.parser import NpcDefinitionParser
    from game.definitions.registry import init_definitions, get_definition

    init_definitions(NpcDefinitionParser(data_path))
    goblin = get_definition(3)
"""

from __future__ import annotations

import threading
from typing import (
    Any,
    Callable,
    Iterable,
    Iterator,
    List,
    Optional,
    Self,
    Sequence,
    Tuple,
)

import polars as pl
import structlog

from common.constants import NPC_DEFINITION_CAPACITY
from game.definitions.npc import DEFAULT_DEFINITION, NpcDefinition

log = structlog.get_logger()

# A loader receives the pre-filled slot list and writes definitions into it
DefinitionLoader = Callable[[List[NpcDefinition]], Any]

NPC_DEFINITION_SCHEMA: dict[str, pl.DataType] = {
    "id": pl.Int32,
    "name": pl.Utf8,
    "examine": pl.Utf8,
    "size": pl.Int16,
    "walk_animation": pl.Int32,
    "walk_back_animation": pl.Int32,
    "walk_left_animation": pl.Int32,
    "walk_right_animation": pl.Int32,
    "actions": pl.List(pl.Utf8),
}


class DefinitionNotFoundError(LookupError):
    """No definition exists for the requested id."""

    def __init__(self, definition_id: Any, reason: str = "no definition") -> None:
        # args holds the raw values; __str__ formats them
        super().__init__(definition_id, reason)
        self.definition_id = definition_id
        self.reason = reason

    def __str__(self) -> str:
        return f"No definition for id {self.definition_id} ({self.reason})"


class RegistryInitializationError(RuntimeError):
    """The registry's build-once protocol was violated."""


class DefinitionSlots(list):
    """Fixed-length slot list handed to a loader.

    Only ``slots[i] = definition`` with ``0 <= i < len(slots)`` is allowed;
    negative indices, slices and anything that changes the length fail.
    """

    def __setitem__(self, index, value) -> None:
        if isinstance(index, bool) or not isinstance(index, int):
            raise RegistryInitializationError(
                f"Slot index must be an integer, got {index!r}"
            )
        if not 0 <= index < len(self):
            log.critical(
                "Loader wrote outside table", index=index, capacity=len(self)
            )
            raise RegistryInitializationError(
                f"Slot index {index} outside table of {len(self)} slots"
            )
        super().__setitem__(index, value)

    def _resize(self, *args, **kwargs):
        raise RegistryInitializationError("Definition table length is fixed")

    __delitem__ = _resize
    __iadd__ = _resize
    __imul__ = _resize
    append = _resize
    extend = _resize
    insert = _resize
    pop = _resize
    remove = _resize
    clear = _resize
    sort = _resize
    reverse = _resize


class NpcDefinitionRegistry:
    """Fixed-capacity, read-only table of :class:`NpcDefinition` by id."""

    def __init__(self: Self, definitions: Iterable[NpcDefinition]):
        frozen: Tuple[NpcDefinition, ...] = tuple(definitions)
        self._validate_slots(frozen)
        self._definitions = frozen
        self._populated_count: int = sum(
            1 for d in frozen if d is not DEFAULT_DEFINITION
        )

    @classmethod
    def build(
        cls,
        loader: DefinitionLoader,
        capacity: int = NPC_DEFINITION_CAPACITY,
    ) -> "NpcDefinitionRegistry":
        """Allocate the slot list, run ``loader`` over it and freeze the result."""
        if capacity < 0:
            raise ValueError(f"Registry capacity must be >= 0, got {capacity}")

        log.info("Building NPC definition table", capacity=capacity)
        slots = DefinitionSlots([DEFAULT_DEFINITION] * capacity)

        try:
            loader(slots)
        except Exception as e:
            log.error(
                "Definition loader failed, table not published",
                error=str(e),
                exc_info=True,
            )
            raise

        if len(slots) != capacity:
            log.critical(
                "Loader changed table length", expected=capacity, actual=len(slots)
            )
            raise RegistryInitializationError(
                f"Loader changed table length from {capacity} to {len(slots)}"
            )
        registry = cls(slots)
        log.info(
            "NPC definition table ready",
            capacity=capacity,
            populated=registry.populated_count,
        )
        return registry

    @staticmethod
    def _validate_slots(slots: Sequence[NpcDefinition]) -> None:
        """Check every slot holds the default or a definition with its own id."""
        for index, definition in enumerate(slots):
            if definition is DEFAULT_DEFINITION:
                continue
            if not isinstance(definition, NpcDefinition):
                log.critical(
                    "Loader stored a non-definition",
                    index=index,
                    type=type(definition).__name__,
                )
                raise RegistryInitializationError(
                    f"Slot {index} holds {type(definition).__name__}, not NpcDefinition"
                )
            if definition.id != index:
                log.critical(
                    "Loader stored definition at wrong index",
                    index=index,
                    definition_id=definition.id,
                )
                raise RegistryInitializationError(
                    f"Slot {index} holds definition with id {definition.id}"
                )

    # --- Lookup ---
    def find(self: Self, definition_id: int) -> Optional[NpcDefinition]:
        """Return the definition for ``definition_id``, or ``None`` if absent."""
        if isinstance(definition_id, bool) or not isinstance(definition_id, int):
            return None
        if not 0 <= definition_id < len(self._definitions):
            return None
        definition = self._definitions[definition_id]
        if definition is DEFAULT_DEFINITION:
            return None
        return definition

    def get(self: Self, definition_id: int) -> NpcDefinition:
        """Return the definition for ``definition_id``.

        Raises :class:`DefinitionNotFoundError` both for ids outside the table
        and for slots the loader never filled.
        """
        definition = self.find(definition_id)
        if definition is None:
            in_range = (
                isinstance(definition_id, int)
                and not isinstance(definition_id, bool)
                and 0 <= definition_id < len(self._definitions)
            )
            raise DefinitionNotFoundError(
                definition_id, "not loaded" if in_range else "out of range"
            )
        return definition

    def name_for(self: Self, definition_id: int) -> Optional[str]:
        """Return the name of ``definition_id``; raises like :meth:`get`."""
        return self.get(definition_id).name

    # --- Iteration ---
    def all(self: Self) -> Iterator[NpcDefinition]:
        """Iterate every slot in id order, default entries included."""
        return iter(self._definitions)

    def populated(self: Self) -> Iterator[NpcDefinition]:
        """Iterate only the slots the loader filled, in id order."""
        return (d for d in self._definitions if d is not DEFAULT_DEFINITION)

    def to_frame(self: Self) -> pl.DataFrame:
        """Tabular view of the populated definitions."""
        rows = [
            {
                "id": d.id,
                "name": d.name,
                "examine": d.examine,
                "size": d.size,
                "walk_animation": d.walk_animation,
                "walk_back_animation": d.walk_back_animation,
                "walk_left_animation": d.walk_left_animation,
                "walk_right_animation": d.walk_right_animation,
                "actions": list(d.actions),
            }
            for d in self.populated()
        ]
        if not rows:
            return pl.DataFrame(schema=NPC_DEFINITION_SCHEMA)
        return pl.DataFrame(rows, schema=NPC_DEFINITION_SCHEMA)

    @property
    def capacity(self: Self) -> int:
        return len(self._definitions)

    @property
    def populated_count(self: Self) -> int:
        return self._populated_count

    def __len__(self: Self) -> int:
        return len(self._definitions)

    def __contains__(self: Self, definition_id: object) -> bool:
        return self.find(definition_id) is not None  # type: ignore[arg-type]


# --- Process-wide registry ---
_registry: Optional[NpcDefinitionRegistry] = None
_init_lock = threading.Lock()


def init_definitions(
    loader: DefinitionLoader, capacity: int = NPC_DEFINITION_CAPACITY
) -> NpcDefinitionRegistry:
    """Build and publish the process-wide registry. Only callable once."""
    global _registry
    with _init_lock:
        if _registry is not None:
            log.critical("NPC definitions initialized twice")
            raise RegistryInitializationError("NPC definitions already initialized")
        registry = NpcDefinitionRegistry.build(loader, capacity)
        _registry = registry
    return registry


def is_ready() -> bool:
    return _registry is not None


def definitions() -> NpcDefinitionRegistry:
    """Return the published registry; fails if start-up has not run yet."""
    registry = _registry
    if registry is None:
        log.critical("NPC definitions read before initialization")
        raise RegistryInitializationError("NPC definitions not initialized")
    return registry


def get_definition(definition_id: int) -> NpcDefinition:
    return definitions().get(definition_id)


def all_definitions() -> Iterator[NpcDefinition]:
    return definitions().all()


def name_for(definition_id: int) -> Optional[str]:
    return definitions().name_for(definition_id)
