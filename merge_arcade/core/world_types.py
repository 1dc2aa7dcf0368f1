"""
World Types
===========

Immutable records exchanged with the physics world: body states and
collision-begin contacts, plus the collision categories used to filter
which shapes interact.

Kept free of any engine import so the simulation layer can be driven by any
world that honours the same contract.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

# Collision filter categories (bit flags)
CATEGORY_DEFAULT = 0x0001
CATEGORY_ITEM = 0x0002
CATEGORY_WALL = 0x0004
CATEGORY_SENSOR = 0x0008

# What each category collides with. Sensors never collide.
COLLISION_MASKS = {
    CATEGORY_ITEM: CATEGORY_WALL | CATEGORY_ITEM,
    CATEGORY_WALL: CATEGORY_ITEM,
    CATEGORY_SENSOR: 0,
}

LABEL_ITEM = "item"
LABEL_TOP_WALL = "top_wall"
LABEL_BOTTOM_WALL = "bottom_wall"
LABEL_LEFT_WALL = "left_wall"
LABEL_RIGHT_WALL = "right_wall"


@dataclass(frozen=True)
class BodyState:
    """Read-only view of a dynamic body at one instant."""
    body_id: int
    position: Tuple[float, float]
    velocity: Tuple[float, float]
    angle: float
    speed: float
    label: str = LABEL_ITEM


@dataclass(frozen=True)
class ContactEvent:
    """
    A collision that started during a physics step.

    `a` is always a dynamic body. `b` is the other dynamic body, or None when
    `a` hit a static boundary, in which case `boundary` names it.
    """
    a: BodyState
    b: Optional[BodyState]
    boundary: str = ""

    @property
    def is_boundary(self) -> bool:
        return self.b is None
