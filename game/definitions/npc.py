"""Static metadata describing a non-player character type.

An :class:`NpcDefinition` is created once by the definition loader and never
changes afterwards.  Gameplay code reads definitions through the registry in
:mod:`game.definitions.registry`; it never builds or edits them itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple

from common.constants import DEFAULT_DEFINITION_ID, NO_ANIMATION


@dataclass(frozen=True)
class NpcDefinition:
    """Immutable attributes of one NPC type.

    Parameters
    ----------
    id:
        Identifier, equal to the definition's index in the registry table.
    name:
        Display name. ``None`` for the default definition.
    examine:
        Text shown when the NPC is examined.
    size:
        Footprint of the NPC in tiles.
    walk_animation, walk_back_animation, walk_left_animation, walk_right_animation:
        Animation resource ids for each walking direction.  Not validated here.
    actions:
        Interaction labels offered for the NPC, in menu order.  Any iterable is
        accepted and copied into a tuple.
    """

    id: int
    name: Optional[str]
    examine: Optional[str]
    size: int
    walk_animation: int
    walk_back_animation: int
    walk_left_animation: int
    walk_right_animation: int
    actions: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        # Own a copy so the caller's list cannot change the definition later
        object.__setattr__(self, "actions", tuple(self.actions))

    def has_action(self, action: str) -> bool:
        """Return ``True`` if ``action`` is one of the actions (exact match)."""
        return action in self.actions

    @property
    def is_default(self) -> bool:
        """``True`` only for the shared placeholder definition."""
        return self is DEFAULT_DEFINITION


# Placeholder stored in every registry slot the loader never fills.
# Compared by identity, never by value.
DEFAULT_DEFINITION = NpcDefinition(
    id=DEFAULT_DEFINITION_ID,
    name=None,
    examine=None,
    size=-1,
    walk_animation=NO_ANIMATION,
    walk_back_animation=NO_ANIMATION,
    walk_left_animation=NO_ANIMATION,
    walk_right_animation=NO_ANIMATION,
    actions=(),
)
