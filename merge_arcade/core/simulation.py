"""
Simulation Loop
===============

Main session orchestrator combining physics, merging, launching, spawning
and overflow detection.

One step = one fixed physics tick:

1. Step the physics world by a fixed dt
2. Clamp items that tunneled through the top boundary
3. Resolve the tick's collision batch into merges and impacts
4. Run the danger monitor on the post-merge item set
5. Publish a GameSnapshot

Input handlers (pointer_down/move/up/leave) run synchronously between
steps on the same thread; nothing here blocks or sleeps.
"""

from __future__ import annotations

import dataclasses
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple, TYPE_CHECKING

from merge_arcade.core.config_loader import GameConfig, get_config
from merge_arcade.core.danger_monitor import DangerMonitor
from merge_arcade.core.launcher import LauncherController
from merge_arcade.core.merge_resolver import (
    CollisionPair,
    MergeBatchResult,
    MergeResolver,
)
from merge_arcade.core.spawn_queue import SpawnQueue
from merge_arcade.core.state_snapshot import (
    GameEvent,
    GameOverTriggered,
    GameSnapshot,
    ItemView,
    MergeOccurred,
    ShotFired,
)
from merge_arcade.core.tier_catalog import TierCatalog
from merge_arcade.core.world_types import CATEGORY_ITEM, ContactEvent

if TYPE_CHECKING:
    from merge_arcade.core.physics_world import PhysicsWorld

logger = logging.getLogger(__name__)

Vec = Tuple[float, float]


@dataclass(frozen=True)
class ItemTag:
    """Side-table entry for an item body."""
    tier_index: int
    created_at_tick: int = 0
    is_projectile: bool = False


@dataclass
class SessionState:
    """Score and terminal flag for one session."""
    score: int = 0
    game_over: bool = False


def _default_world_factory(config: GameConfig) -> "PhysicsWorld":
    from merge_arcade.core.physics_world import PhysicsWorld
    return PhysicsWorld(config)


class SimulationLoop:
    """
    Fixed-timestep game session.

    Owns the physics world exclusively: merges and launches are requested
    through this class and applied between physics steps, never during one.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        seed: Optional[int] = None,
        clock: Optional[Callable[[], float]] = None,
        world_factory: Optional[Callable[[GameConfig], "PhysicsWorld"]] = None
    ):
        """
        Initialize the session.

        Args:
            config: Game configuration. Uses default if None.
            seed: Random seed for spawn draws and merge jitter.
            clock: Monotonic clock in seconds, used for the fire cooldown.
            world_factory: Builds a fresh physics world per session.
                Uses the pymunk PhysicsWorld if None.
        """
        if config is None:
            config = get_config()

        self._config = config
        self._seed = seed
        self._clock = clock if clock is not None else time.monotonic
        self._world_factory = world_factory if world_factory is not None else _default_world_factory

        # Fails fast on an inconsistent tier table
        self._catalog = TierCatalog(config)

        self._listeners: List[Callable[[GameEvent], None]] = []
        self._new_session()
        logger.info("Session started (seed=%s, %d tiers)", seed, len(self._catalog))

    def _new_session(self) -> None:
        """Build every per-session component from scratch."""
        self._world = self._world_factory(self._config)
        self._world.on_collision_start(self._on_contacts)

        self._spawn_queue = SpawnQueue(self._config, self._seed)
        self._merger = MergeResolver(self._catalog, self._config, rng_seed=self._seed)
        self._launcher = LauncherController(self._spawn_queue, self._config)
        self._danger = DangerMonitor(self._config)

        self._items: Dict[int, ItemTag] = {}
        self._session = SessionState()
        self._tick = 0
        self._contacts: List[ContactEvent] = []
        self._events: List[GameEvent] = []

    def restart(self, seed: Optional[int] = None) -> GameSnapshot:
        """
        Discard the current session and start a fresh one.

        Args:
            seed: New random seed. Uses previous if None.

        Returns:
            Initial snapshot of the new session.
        """
        if seed is not None:
            self._seed = seed
        self._new_session()
        logger.info("Session restarted (seed=%s)", self._seed)
        return self.snapshot()

    @property
    def config(self) -> GameConfig:
        return self._config

    @property
    def catalog(self) -> TierCatalog:
        return self._catalog

    @property
    def world(self) -> "PhysicsWorld":
        """Physics world of the current session."""
        return self._world

    @property
    def spawn_queue(self) -> SpawnQueue:
        return self._spawn_queue

    @property
    def launcher(self) -> LauncherController:
        return self._launcher

    @property
    def danger_monitor(self) -> DangerMonitor:
        return self._danger

    @property
    def tick(self) -> int:
        """Number of ticks simulated in this session."""
        return self._tick

    @property
    def score(self) -> int:
        return self._session.score

    @property
    def game_over(self) -> bool:
        return self._session.game_over

    @property
    def items(self) -> Dict[int, ItemTag]:
        """Copy of the item side-table (body ID -> tag)."""
        return dict(self._items)

    def subscribe(self, callback: Callable[[GameEvent], None]) -> None:
        """Register a listener for discrete game events. Survives restarts."""
        self._listeners.append(callback)

    def _emit(self, event: GameEvent) -> None:
        self._events.append(event)
        for listener in self._listeners:
            listener(event)

    def _tier_of(self, body_id: int) -> Optional[int]:
        tag = self._items.get(body_id)
        return tag.tier_index if tag is not None else None

    def place_item(
        self,
        tier_index: int,
        position: Vec,
        velocity: Vec = (0.0, 0.0),
        is_projectile: bool = False,
        created_at_tick: int = 0
    ) -> int:
        """
        Create an item body and tag it.

        Args:
            tier_index: Tier of the new item.
            position: World position of its center.
            velocity: Initial velocity.
            is_projectile: True for a freshly launched shot.
            created_at_tick: Tick stamp for the spawn-pop animation (0 = none).

        Returns:
            The new body ID.

        Raises:
            OutOfRangeError: If tier_index is not in the catalog.
        """
        tier = self._catalog.tier_at(tier_index)
        physics = self._config.physics
        body_id = self._world.create_circle_body(
            position,
            tier.radius,
            tier.mass,
            tier.restitution,
            physics.friction,
            physics.friction_air,
            CATEGORY_ITEM
        )
        if velocity != (0.0, 0.0):
            self._world.set_velocity(body_id, velocity)
        self._items[body_id] = ItemTag(
            tier_index=tier_index,
            created_at_tick=created_at_tick,
            is_projectile=is_projectile
        )
        return body_id

    # ------------------------------------------------------------------
    # Input

    def _poll_cooldown(self) -> None:
        self._spawn_queue.poll(self._clock())

    def pointer_down(self, x: float, y: float) -> bool:
        """Start aiming. Returns True if a drag started."""
        self._poll_cooldown()
        return self._launcher.drag_start((x, y), game_over=self._session.game_over)

    def pointer_move(self, x: float, y: float) -> None:
        self._launcher.drag_move((x, y))

    def pointer_leave(self) -> None:
        """Pointer left the play surface: abandon the drag without firing."""
        self._launcher.abandon()

    def pointer_up(self, x: Optional[float] = None, y: Optional[float] = None) -> Optional[int]:
        """
        Release the drag and fire.

        Returns:
            Body ID of the projectile, or None if no shot was fired.
        """
        point = (x, y) if x is not None and y is not None else None
        request = self._launcher.release(
            self._clock(), point, game_over=self._session.game_over
        )
        if request is None:
            return None

        body_id = self.place_item(
            request.tier_index,
            request.origin,
            request.velocity,
            is_projectile=True
        )
        self._emit(ShotFired(
            tick=self._tick,
            body_id=body_id,
            tier_index=request.tier_index,
            velocity=request.velocity
        ))
        return body_id

    # ------------------------------------------------------------------
    # Tick

    def _on_contacts(self, batch: List[ContactEvent]) -> None:
        self._contacts.extend(batch)

    def step(self, dt_millis: Optional[float] = None) -> GameSnapshot:
        """
        Advance the session by one fixed tick.

        After game-over nothing is stepped or mutated; the current snapshot
        is returned.

        Args:
            dt_millis: Physics timestep in milliseconds. Uses config tick if None.

        Returns:
            Snapshot for this tick, carrying the events raised since the
            previous step.
        """
        if self._session.game_over:
            return self._publish()

        if dt_millis is None:
            dt_millis = self._config.physics.tick_ms

        self._poll_cooldown()
        self._tick += 1

        self._contacts = []
        self._world.step_simulation(dt_millis)

        self._apply_safety_clamp()

        pairs = []
        for contact in self._contacts:
            pair = CollisionPair.from_contact(contact, self._tier_of)
            if pair is not None:
                pairs.append(pair)
        self._contacts = []

        batch = self._merger.resolve(pairs, self._tick)
        self._apply_merges(batch)
        for impact in batch.impacts:
            self._emit(impact)

        self._update_danger()

        return self._publish()

    def _apply_safety_clamp(self) -> None:
        """Push items that passed the top boundary back inside it."""
        clamp_y = self._config.board.clamp_y
        for body in self._world.all_bodies():
            if body.body_id not in self._items:
                continue
            x, y = body.position
            if y <= clamp_y:
                continue
            logger.warning(
                "Item %d tunneled past top boundary (y=%.1f), clamping", body.body_id, y
            )
            self._world.set_position(body.body_id, (x, clamp_y))
            vx, vy = body.velocity
            if vy > 0:
                self._world.set_velocity(body.body_id, (vx, -abs(vy) * 0.5))

    def _apply_merges(self, batch: MergeBatchResult) -> None:
        for merge in batch.merges:
            for body_id in merge.consumed_ids:
                self._world.remove_body(body_id)
                self._items.pop(body_id, None)

            new_id = self.place_item(
                merge.result_tier,
                merge.position,
                merge.velocity,
                created_at_tick=merge.created_at_tick
            )
            self._session.score += merge.score_delta
            self._emit(MergeOccurred(
                tick=self._tick,
                body_id=new_id,
                tier_index=merge.result_tier,
                position=merge.position,
                score_delta=merge.score_delta
            ))

    def _update_danger(self) -> None:
        settle_speed = self._config.danger.settle_speed
        bodies = []
        for body in self._world.all_bodies():
            tag = self._items.get(body.body_id)
            if tag is None:
                continue
            if tag.is_projectile and body.speed < settle_speed:
                self._items[body.body_id] = dataclasses.replace(tag, is_projectile=False)
            bodies.append(body)

        overflowing = self._danger.any_overflowing(bodies)
        if self._danger.update(overflowing, self._tick):
            self._session.game_over = True
            self._launcher.abandon()
            self._emit(GameOverTriggered(tick=self._tick, score=self._session.score))

    # ------------------------------------------------------------------
    # Publishing

    def snapshot(self) -> GameSnapshot:
        """Current state, including events not yet published by a step."""
        items = []
        for body in self._world.all_bodies():
            tag = self._items.get(body.body_id)
            if tag is None:
                continue
            items.append(ItemView(
                body_id=body.body_id,
                tier_index=tag.tier_index,
                position=body.position,
                angle=body.angle,
                radius=self._catalog.tier_at(tag.tier_index).radius,
                created_at_tick=tag.created_at_tick,
                is_projectile=tag.is_projectile
            ))

        return GameSnapshot(
            tick=self._tick,
            items=tuple(items),
            score=self._session.score,
            game_over=self._session.game_over,
            launcher=self._launcher.state,
            danger=self._danger.state,
            pending_tier=self._spawn_queue.peek(),
            locked=self._spawn_queue.locked,
            events=tuple(self._events)
        )

    def _publish(self) -> GameSnapshot:
        snapshot = self.snapshot()
        self._events = []
        return snapshot
