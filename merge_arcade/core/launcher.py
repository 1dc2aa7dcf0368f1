"""
Launcher Controller
===================

Turns pointer drags into an aim angle, a power fraction and a launch
velocity, and enforces the fire lock.

States: Idle and Aiming. A drag may only start while the spawn queue is
unlocked and the session is running. Releasing fires; leaving the play
surface abandons the drag without firing.

Angles are in world space with y pointing up: straight up is pi/2 and the
cone spans [cone_margin, pi - cone_margin].
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

from merge_arcade.core.config_loader import GameConfig, get_config
from merge_arcade.core.spawn_queue import SpawnQueue

logger = logging.getLogger(__name__)

Vec = Tuple[float, float]

STRAIGHT_UP = math.pi / 2


@dataclass(frozen=True)
class LauncherState:
    """Published launcher state."""
    is_dragging: bool
    aim_angle: float
    power_fraction: float


@dataclass(frozen=True)
class LaunchRequest:
    """A shot to spawn: tier, origin and initial velocity."""
    tier_index: int
    origin: Vec
    velocity: Vec
    aim_angle: float
    power_fraction: float

    @property
    def speed(self) -> float:
        return math.hypot(*self.velocity)


def constrain_angle(dx: float, dy: float, min_angle: float, max_angle: float) -> float:
    """
    Map a pointer offset onto the upward cone.

    Offsets in the upper half-plane are clamped to [min_angle, max_angle].
    Offsets at or below the horizontal stick to the cone edge on their own
    side, so crossing the horizontal never flips the aim to the opposite
    side. Directly below snaps to straight up.

    Args:
        dx: Pointer x minus launch origin x.
        dy: Pointer y minus launch origin y (y up).
        min_angle: Right edge of the cone.
        max_angle: Left edge of the cone.

    Returns:
        Angle in radians within [min_angle, max_angle].
    """
    if dy <= 0.0:
        if dx > 0.0:
            return min_angle
        if dx < 0.0:
            return max_angle
        return min(max(STRAIGHT_UP, min_angle), max_angle)

    angle = math.atan2(dy, dx)
    return min(max(angle, min_angle), max_angle)


class LauncherController:
    """
    Aim/power state machine for the launcher.

    The controller never creates bodies. On release it returns a
    LaunchRequest and locks the spawn queue; the simulation loop spawns the
    projectile.
    """

    def __init__(
        self,
        queue: SpawnQueue,
        config: Optional[GameConfig] = None
    ):
        """
        Initialize launcher.

        Args:
            queue: Spawn queue supplying the tier to fire.
            config: Game configuration. Uses default if None.
        """
        if config is None:
            config = get_config()

        self._queue = queue
        self._launcher = config.launcher
        self._origin = config.board.launch_origin

        if config.board.width > self._launcher.wide_board_threshold:
            self._width_factor = self._launcher.wide_board_speed_factor
        else:
            self._width_factor = 1.0

        self._dragging = False
        self._aim_angle = STRAIGHT_UP
        self._power = 0.0

    @property
    def origin(self) -> Vec:
        """Fixed launch origin."""
        return self._origin

    @property
    def screen_width_factor(self) -> float:
        return self._width_factor

    @property
    def is_dragging(self) -> bool:
        return self._dragging

    @property
    def state(self) -> LauncherState:
        return LauncherState(
            is_dragging=self._dragging,
            aim_angle=self._aim_angle,
            power_fraction=self._power
        )

    def drag_start(self, point: Vec, game_over: bool = False) -> bool:
        """
        Idle -> Aiming, if the queue is unlocked and the session is running.

        Returns:
            True if aiming started.
        """
        if game_over or self._queue.locked:
            return False
        self._dragging = True
        self._update_aim(point)
        return True

    def drag_move(self, point: Vec) -> None:
        """Recompute aim and power while aiming. Ignored otherwise."""
        if not self._dragging or self._queue.locked:
            return
        self._update_aim(point)

    def abandon(self) -> None:
        """Aiming -> Idle without firing (pointer left the play surface)."""
        self._dragging = False

    def release(
        self,
        now: float,
        point: Optional[Vec] = None,
        game_over: bool = False
    ) -> Optional[LaunchRequest]:
        """
        Aiming -> Idle, firing the pending tier.

        Locks the spawn queue until now + cooldown. Releases while idle,
        locked or after game over are no-ops.

        Args:
            now: Current clock time in seconds.
            point: Final pointer position, if known.
            game_over: True if the session has ended.

        Returns:
            The LaunchRequest to spawn, or None if nothing was fired.
        """
        if not self._dragging:
            return None
        self._dragging = False
        if game_over or self._queue.locked:
            return None

        if point is not None:
            self._update_aim(point)

        request = LaunchRequest(
            tier_index=self._queue.peek(),
            origin=self._origin,
            velocity=self.launch_velocity(self._aim_angle, self._power),
            aim_angle=self._aim_angle,
            power_fraction=self._power
        )
        self._queue.lock(now + self._launcher.cooldown_seconds)
        logger.debug(
            "Fire tier %d angle=%.3f power=%.2f",
            request.tier_index, request.aim_angle, request.power_fraction
        )
        return request

    def launch_velocity(self, angle: float, power_fraction: float) -> Vec:
        """Velocity vector for a shot at the given angle and power."""
        launcher = self._launcher
        multiplier = launcher.min_power_multiplier + power_fraction * (
            launcher.max_power_multiplier - launcher.min_power_multiplier
        )
        speed = launcher.base_speed * self._width_factor * multiplier
        return (math.cos(angle) * speed, math.sin(angle) * speed)

    def _update_aim(self, point: Vec) -> None:
        dx = point[0] - self._origin[0]
        dy = point[1] - self._origin[1]
        distance = math.hypot(dx, dy)

        # No direction at the origin itself; keep the previous aim
        if distance > 0.0:
            self._aim_angle = constrain_angle(
                dx, dy, self._launcher.min_angle, self._launcher.max_angle
            )
        self._power = min(distance / self._launcher.max_drag_distance, 1.0)

    def reset(self) -> None:
        self._dragging = False
        self._aim_angle = STRAIGHT_UP
        self._power = 0.0
