"""
Danger Monitor
==============

Hysteresis timer that turns sustained overflow past the fill line into
game-over.

An item counts as overflowing when its center is past the fill line on
the launcher side (y below the line) and it is settled (speed under the
settle threshold). A projectile still travelling toward the pile is fast
and therefore never counts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from merge_arcade.core.config_loader import GameConfig, get_config
from merge_arcade.core.world_types import BodyState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DangerState:
    """Published danger state. window_start_tick is None while Safe."""
    window_start_tick: Optional[int] = None

    @property
    def is_warning(self) -> bool:
        return self.window_start_tick is not None


class DangerMonitor:
    """
    Safe/Warning state machine with a grace window measured in ticks.

    - Safe + overflowing: enter Warning at the current tick.
    - Warning + overflowing for grace_ticks consecutive ticks: game over.
    - Not overflowing: back to Safe; the window never accumulates across
      interruptions.

    Game-over is signalled once; evaluation then stops until reset().
    """

    def __init__(self, config: Optional[GameConfig] = None):
        """
        Initialize danger monitor.

        Args:
            config: Game configuration. Uses default if None.
        """
        if config is None:
            config = get_config()

        self._fill_line_y = config.board.fill_line_y
        self._settle_speed = config.danger.settle_speed
        self._grace_ticks = config.grace_ticks

        self._window_start: Optional[int] = None
        self._triggered = False

    @property
    def grace_ticks(self) -> int:
        return self._grace_ticks

    @property
    def fill_line_y(self) -> float:
        return self._fill_line_y

    @property
    def state(self) -> DangerState:
        return DangerState(window_start_tick=self._window_start)

    @property
    def triggered(self) -> bool:
        """True once game-over has been signalled."""
        return self._triggered

    def is_overflowing(self, body: BodyState) -> bool:
        """Settled and past the fill line."""
        return body.position[1] < self._fill_line_y and body.speed < self._settle_speed

    def any_overflowing(self, bodies: Iterable[BodyState]) -> bool:
        return any(self.is_overflowing(b) for b in bodies)

    def update(self, overflowing: bool, tick: int) -> bool:
        """
        Advance the state machine by one tick.

        Args:
            overflowing: Whether any settled item is past the fill line.
            tick: Current simulation tick.

        Returns:
            True exactly once, on the tick that triggers game-over.
        """
        if self._triggered:
            return False

        if not overflowing:
            if self._window_start is not None:
                logger.debug("Danger cleared at tick %d", tick)
            self._window_start = None
            return False

        if self._window_start is None:
            self._window_start = tick
            logger.debug("Danger warning started at tick %d", tick)

        # Inclusive count: the starting tick is the first overflowing tick
        if tick - self._window_start + 1 >= self._grace_ticks:
            self._triggered = True
            logger.info("Overflow held for %d ticks, game over at tick %d", self._grace_ticks, tick)
            return True

        return False

    def reset(self) -> None:
        """Reset to Safe and re-enable evaluation."""
        self._window_start = None
        self._triggered = False
