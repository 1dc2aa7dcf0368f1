"""
Physics World
=============

Manages the pymunk Space, static boundaries, and circle body creation/removal.

Collision-begin callbacks fire in the middle of a pymunk step, where the
space must not be mutated. Contacts are buffered and delivered as one batch
to registered listeners once the whole step has finished.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, Dict, List, Optional, Tuple

import pymunk

from merge_arcade.core.config_loader import GameConfig, get_config
from merge_arcade.core.world_types import (
    BodyState,
    ContactEvent,
    CATEGORY_ITEM,
    CATEGORY_SENSOR,
    CATEGORY_WALL,
    COLLISION_MASKS,
    LABEL_ITEM,
    LABEL_TOP_WALL,
    LABEL_BOTTOM_WALL,
    LABEL_LEFT_WALL,
    LABEL_RIGHT_WALL,
)

logger = logging.getLogger(__name__)

ContactListener = Callable[[List[ContactEvent]], None]


def _air_friction_velocity_func(retention_per_second: float):
    """Build a velocity function that applies per-body air friction."""
    def velocity_func(body: pymunk.Body, gravity, damping: float, dt: float) -> None:
        pymunk.Body.update_velocity(
            body, gravity, damping * retention_per_second ** dt, dt
        )
    return velocity_func


class PhysicsWorld:
    """
    Manages the pymunk physics simulation.

    Handles:
    - Space creation and configuration
    - Static boundary segments (top, bottom, left, right)
    - Circle body creation and removal
    - Fixed-step stepping with substeps
    - Batched collision-begin delivery
    """

    def __init__(self, config: Optional[GameConfig] = None):
        """
        Initialize physics world.

        Args:
            config: Game configuration. Uses default if None.
        """
        if config is None:
            config = get_config()

        self._config = config

        self._space = pymunk.Space()
        self._space.gravity = config.physics.gravity
        self._space.damping = config.physics.damping
        self._space.sleep_time_threshold = config.physics.sleep_time_threshold

        # Track dynamic bodies
        self._bodies: Dict[int, Tuple[pymunk.Body, pymunk.Circle]] = {}
        self._next_id = 1

        self._wall_shapes: List[pymunk.Segment] = []
        self._create_walls()

        # Contacts collected during the current step
        self._pending_contacts: List[ContactEvent] = []
        self._listeners: List[ContactListener] = []
        self._space.on_collision(begin=self._on_collision_begin)

    def _create_walls(self) -> None:
        """Create static boundary segments with their inner edges on the board limits."""
        board = self._config.board
        t = board.wall_thickness
        top = board.top_wall_y + t
        bottom = -board.bottom_overhang - t
        left = -t
        right = board.width + t

        static_body = self._space.static_body
        segments = (
            (LABEL_TOP_WALL, (left, top), (right, top)),
            (LABEL_BOTTOM_WALL, (left, bottom), (right, bottom)),
            (LABEL_LEFT_WALL, (left, bottom), (left, top)),
            (LABEL_RIGHT_WALL, (right, bottom), (right, top)),
        )
        wall_filter = pymunk.ShapeFilter(
            categories=CATEGORY_WALL,
            mask=COLLISION_MASKS[CATEGORY_WALL]
        )
        for label, a, b in segments:
            wall = pymunk.Segment(static_body, a, b, t)
            wall.friction = self._config.physics.wall_friction
            wall.elasticity = self._config.physics.wall_elasticity
            wall.filter = wall_filter
            wall.boundary_label = label
            self._wall_shapes.append(wall)

        self._space.add(*self._wall_shapes)

    @property
    def space(self) -> pymunk.Space:
        """The pymunk Space instance."""
        return self._space

    @property
    def body_count(self) -> int:
        """Number of dynamic bodies currently in the world."""
        return len(self._bodies)

    def on_collision_start(self, callback: ContactListener) -> None:
        """Register a listener for the per-step batch of collision-begin contacts."""
        self._listeners.append(callback)

    def create_circle_body(
        self,
        position: Tuple[float, float],
        radius: float,
        mass: float,
        restitution: float,
        friction_linear: float,
        friction_air: float,
        collision_group: int = CATEGORY_ITEM
    ) -> int:
        """
        Create a dynamic circle body.

        Args:
            position: World position of the center.
            radius: Circle radius.
            mass: Body mass.
            restitution: Elasticity of the shape.
            friction_linear: Surface friction.
            friction_air: Fraction of velocity lost per reference tick.
            collision_group: Collision category (CATEGORY_ITEM or CATEGORY_SENSOR).

        Returns:
            The new body ID.
        """
        moment = pymunk.moment_for_circle(mass, 0, radius)
        body = pymunk.Body(mass, moment)
        body.position = position

        ticks_per_second = 1000.0 / self._config.physics.tick_ms
        retention = (1.0 - friction_air) ** ticks_per_second
        body.velocity_func = _air_friction_velocity_func(retention)

        shape = pymunk.Circle(body, radius)
        shape.friction = friction_linear
        shape.elasticity = restitution
        shape.filter = pymunk.ShapeFilter(
            categories=collision_group,
            mask=COLLISION_MASKS.get(collision_group, 0)
        )
        shape.sensor = collision_group == CATEGORY_SENSOR

        body_id = self._next_id
        self._next_id += 1
        body.item_id = body_id

        self._space.add(body, shape)
        self._bodies[body_id] = (body, shape)
        return body_id

    def remove_body(self, body_id: int) -> bool:
        """
        Remove a body from the world.

        Returns:
            True if the body existed.
        """
        entry = self._bodies.pop(body_id, None)
        if entry is None:
            return False
        self._space.remove(*entry)
        return True

    def has_body(self, body_id: int) -> bool:
        return body_id in self._bodies

    def set_velocity(self, body_id: int, velocity: Tuple[float, float]) -> None:
        entry = self._bodies.get(body_id)
        if entry is not None:
            body = entry[0]
            body.velocity = velocity
            body.activate()

    def set_position(self, body_id: int, position: Tuple[float, float]) -> None:
        entry = self._bodies.get(body_id)
        if entry is not None:
            body = entry[0]
            body.position = position
            body.activate()
            self._space.reindex_shapes_for_body(body)

    def get_body(self, body_id: int) -> Optional[BodyState]:
        """Get the current state of a body, or None if it doesn't exist."""
        entry = self._bodies.get(body_id)
        if entry is None:
            return None
        return self._state_of(body_id, entry[0])

    def all_bodies(self) -> List[BodyState]:
        """States of all dynamic bodies, in creation order."""
        return [self._state_of(body_id, body) for body_id, (body, _) in self._bodies.items()]

    @staticmethod
    def _state_of(body_id: int, body: pymunk.Body) -> BodyState:
        vx, vy = body.velocity
        return BodyState(
            body_id=body_id,
            position=(body.position.x, body.position.y),
            velocity=(vx, vy),
            angle=body.angle,
            speed=math.sqrt(vx * vx + vy * vy),
            label=LABEL_ITEM
        )

    def step_simulation(self, dt_millis: Optional[float] = None) -> List[ContactEvent]:
        """
        Advance physics simulation by one fixed timestep.

        Args:
            dt_millis: Timestep in milliseconds. Uses config tick if None.

        Returns:
            The batch of contacts that started during this step (also
            delivered to every registered listener).
        """
        if dt_millis is None:
            dt_millis = self._config.physics.tick_ms

        substeps = self._config.physics.substeps
        dt = dt_millis / 1000.0
        for _ in range(substeps):
            self._space.step(dt / substeps)

        batch = self._pending_contacts
        self._pending_contacts = []
        for listener in self._listeners:
            listener(batch)
        return batch

    def _on_collision_begin(
        self,
        arbiter: pymunk.Arbiter,
        space: pymunk.Space,
        data
    ) -> None:
        """Buffer a contact. Must not mutate the space."""
        shape_a, shape_b = arbiter.shapes
        id_a = getattr(shape_a.body, "item_id", None)
        id_b = getattr(shape_b.body, "item_id", None)

        if id_a is None and id_b is None:
            return

        if id_a is None:
            shape_a, shape_b = shape_b, shape_a
            id_a, id_b = id_b, id_a

        state_a = self._state_of(id_a, shape_a.body)
        if id_b is None:
            event = ContactEvent(
                a=state_a,
                b=None,
                boundary=getattr(shape_b, "boundary_label", "")
            )
        else:
            event = ContactEvent(a=state_a, b=self._state_of(id_b, shape_b.body))
        self._pending_contacts.append(event)

    def clear(self) -> None:
        """Remove all dynamic bodies from the world."""
        for body_id in list(self._bodies.keys()):
            self.remove_body(body_id)
        self._pending_contacts.clear()
