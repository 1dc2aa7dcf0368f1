"""
Spawn Queue
===========

Single-slot "on deck" queue holding the tier that will be launched next,
plus the fire lock that holds it back during the post-shot cooldown.
"""

from __future__ import annotations

import logging
import random
from typing import Optional

from merge_arcade.core.config_loader import GameConfig, get_config

logger = logging.getLogger(__name__)


class SpawnQueue:
    """
    Uniform random spawn queue over the smallest tiers.

    The pending tier is stable until advance() is called. After a shot the
    queue is locked until a real-time deadline; poll() advances and unlocks
    exactly once when the deadline has passed. The cooldown is polled state,
    never a blocking wait.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        seed: Optional[int] = None
    ):
        """
        Initialize spawn queue.

        Args:
            config: Game configuration. Uses default if None.
            seed: Random seed for reproducibility. Random if None.
        """
        if config is None:
            config = get_config()

        self._spawnable_count = config.spawn.spawnable_count
        self._rng = random.Random(seed)
        self._draws = 0

        self._locked = False
        self._unlock_at: Optional[float] = None

        self._pending = self._draw()

    def _draw(self) -> int:
        self._draws += 1
        return self._rng.randrange(self._spawnable_count)

    def peek(self) -> int:
        """Tier index that will be fired next."""
        return self._pending

    def advance(self) -> int:
        """
        Draw a new pending tier, replacing the current one.

        Returns:
            The new pending tier index.
        """
        self._pending = self._draw()
        return self._pending

    @property
    def locked(self) -> bool:
        """True while a shot's cooldown is running."""
        return self._locked

    @property
    def unlock_at(self) -> Optional[float]:
        """Clock time at which the current lock expires, or None."""
        return self._unlock_at

    @property
    def draws(self) -> int:
        """Total number of tiers drawn, including the initial one."""
        return self._draws

    def lock(self, unlock_at: float) -> None:
        """Lock the queue until the given clock time."""
        self._locked = True
        self._unlock_at = unlock_at

    def poll(self, now: float) -> bool:
        """
        Release the lock if its deadline has passed.

        Advances the queue exactly once per completed cooldown.

        Returns:
            True if the queue advanced and unlocked on this call.
        """
        if not self._locked or now < self._unlock_at:
            return False
        self._locked = False
        self._unlock_at = None
        self.advance()
        logger.debug("Spawn queue unlocked, next tier %d", self._pending)
        return True

    def reset(self, seed: Optional[int] = None) -> None:
        """
        Reset the queue with optional new seed.

        Args:
            seed: New random seed. Keeps current RNG if None.
        """
        if seed is not None:
            self._rng = random.Random(seed)
        self._draws = 0
        self._locked = False
        self._unlock_at = None
        self._pending = self._draw()
