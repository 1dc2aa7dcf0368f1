"""
State Snapshot
==============

Read-only per-tick view of the session for presentation and audio
collaborators, plus the discrete event records they react to.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Tuple, Union

import numpy as np

from merge_arcade.core.danger_monitor import DangerState
from merge_arcade.core.launcher import LauncherState
from merge_arcade.core.merge_resolver import ImpactEvent

Vec = Tuple[float, float]


@dataclass(frozen=True)
class ItemView:
    """Presentation view of one item."""
    body_id: int
    tier_index: int
    position: Vec
    angle: float
    radius: float
    created_at_tick: int    # 0 = no spawn-pop animation
    is_projectile: bool


@dataclass(frozen=True)
class ShotFired:
    tick: int
    body_id: int
    tier_index: int
    velocity: Vec


@dataclass(frozen=True)
class MergeOccurred:
    tick: int
    body_id: int
    tier_index: int          # Resulting tier
    position: Vec
    score_delta: int


@dataclass(frozen=True)
class GameOverTriggered:
    tick: int
    score: int


GameEvent = Union[ShotFired, MergeOccurred, ImpactEvent, GameOverTriggered]


@dataclass(frozen=True)
class GameSnapshot:
    """
    Complete published state for one tick.

    Events are the ones raised since the previous snapshot.
    """
    tick: int
    items: Tuple[ItemView, ...]
    score: int
    game_over: bool
    launcher: LauncherState
    danger: DangerState
    pending_tier: int
    locked: bool
    events: Tuple[GameEvent, ...] = field(default_factory=tuple)

    @property
    def is_warning(self) -> bool:
        return self.danger.is_warning

    @property
    def item_count(self) -> int:
        return len(self.items)

    def to_arrays(self) -> Dict[str, np.ndarray]:
        """Pack item data into parallel numpy arrays."""
        n = len(self.items)
        tier = np.zeros(n, dtype=np.int16)
        x = np.zeros(n, dtype=np.float32)
        y = np.zeros(n, dtype=np.float32)
        angle = np.zeros(n, dtype=np.float32)
        radius = np.zeros(n, dtype=np.float32)
        created = np.zeros(n, dtype=np.int64)

        for i, item in enumerate(self.items):
            tier[i] = item.tier_index
            x[i], y[i] = item.position
            angle[i] = item.angle
            radius[i] = item.radius
            created[i] = item.created_at_tick

        return {
            "item_tier": tier,
            "item_x": x,
            "item_y": y,
            "item_angle": angle,
            "item_radius": radius,
            "item_created_tick": created,
        }
