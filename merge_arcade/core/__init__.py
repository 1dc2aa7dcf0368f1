"""
Merge Arcade Core - The game-simulation layer.

This module provides the tier model, merge rule, launcher state machine,
spawn sequencing and overflow detection, orchestrated by a fixed-timestep
simulation loop.

Main exports:
- SimulationLoop: One game session (input handlers + step)
- GameSnapshot: Read-only per-tick state for presentation/audio
- TierCatalog: Ordered tier table
- GameConfig: Configuration loaded from game_config.yaml

The pymunk-backed PhysicsWorld lives in merge_arcade.core.physics_world and
is imported lazily by SimulationLoop.
"""

from merge_arcade.core.config_loader import GameConfig, load_config
from merge_arcade.core.errors import ConfigError, MergeArcadeError, OutOfRangeError
from merge_arcade.core.tier_catalog import Tier, TierCatalog
from merge_arcade.core.spawn_queue import SpawnQueue
from merge_arcade.core.merge_resolver import (
    CollisionPair,
    ImpactEvent,
    MergeOutcome,
    MergeResolver,
)
from merge_arcade.core.launcher import LauncherController, LauncherState, LaunchRequest
from merge_arcade.core.danger_monitor import DangerMonitor, DangerState
from merge_arcade.core.state_snapshot import (
    GameOverTriggered,
    GameSnapshot,
    ItemView,
    MergeOccurred,
    ShotFired,
)
from merge_arcade.core.simulation import ItemTag, SessionState, SimulationLoop

__all__ = [
    "GameConfig",
    "load_config",
    "ConfigError",
    "MergeArcadeError",
    "OutOfRangeError",
    "Tier",
    "TierCatalog",
    "SpawnQueue",
    "CollisionPair",
    "ImpactEvent",
    "MergeOutcome",
    "MergeResolver",
    "LauncherController",
    "LauncherState",
    "LaunchRequest",
    "DangerMonitor",
    "DangerState",
    "GameOverTriggered",
    "GameSnapshot",
    "ItemView",
    "MergeOccurred",
    "ShotFired",
    "ItemTag",
    "SessionState",
    "SimulationLoop",
]
