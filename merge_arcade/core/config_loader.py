"""
Configuration Loader
====================

Loads and validates game_config.yaml, providing typed access to all parameters.
"""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple, Optional

import yaml

from merge_arcade.core.errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BoardConfig:
    """Board geometry, launcher and fill line placement."""
    width: int                   # Play surface width in pixels
    height: int                  # Play surface height in pixels
    top_boundary_offset: float   # Top wall inner edge, measured down from the board top
    bottom_overhang: float       # Bottom wall inner edge, measured below the board bottom
    wall_thickness: float        # Boundary segment radius
    launcher_offset: float       # Launcher height above the board bottom
    fill_line_offset: float      # Fill line height above the board bottom
    clamp_margin: float          # Tunneling clamp distance inside the top wall

    @property
    def top_wall_y(self) -> float:
        """Y coordinate of the top wall's inner edge."""
        return self.height - self.top_boundary_offset

    @property
    def clamp_y(self) -> float:
        """Highest Y an item center may reach before the safety clamp acts."""
        return self.top_wall_y - self.clamp_margin

    @property
    def fill_line_y(self) -> float:
        """Y coordinate of the fill line."""
        return self.fill_line_offset

    @property
    def launch_origin(self) -> Tuple[float, float]:
        """Fixed launch position (centered horizontally)."""
        return (self.width / 2.0, self.launcher_offset)


@dataclass(frozen=True)
class PhysicsConfig:
    """Physics simulation parameters."""
    gravity_x: float
    gravity_y: float
    damping: float
    tick_ms: float
    substeps: int
    friction: float
    friction_air: float
    wall_friction: float
    wall_elasticity: float
    sleep_time_threshold: float

    @property
    def gravity(self) -> Tuple[float, float]:
        return (self.gravity_x, self.gravity_y)


@dataclass(frozen=True)
class TierConfig:
    """Configuration for a single item tier."""
    id: int
    name: str
    radius: float
    mass: float
    restitution: float
    score: int
    color: Tuple[int, int, int]


@dataclass(frozen=True)
class LauncherConfig:
    """Aim, power and fire cooldown parameters."""
    base_speed: float
    min_power_multiplier: float
    max_power_multiplier: float
    wide_board_threshold: int
    wide_board_speed_factor: float
    max_drag_distance: float
    cone_margin: float
    cooldown_seconds: float

    @property
    def min_angle(self) -> float:
        """Right edge of the upward cone (radians)."""
        return self.cone_margin

    @property
    def max_angle(self) -> float:
        """Left edge of the upward cone (radians)."""
        return math.pi - self.cone_margin


@dataclass(frozen=True)
class SpawnConfig:
    """Spawn queue parameters."""
    spawnable_count: int


@dataclass(frozen=True)
class MergeConfig:
    """Merge nudge and impact reporting parameters."""
    nudge_upward: float
    nudge_jitter: float
    impact_speed_threshold: float
    impact_full_speed: float
    impact_max_intensity: float
    wall_impact_intensity: float


@dataclass(frozen=True)
class DangerConfig:
    """Overflow detection parameters."""
    grace_seconds: float
    settle_speed: float


@dataclass(frozen=True)
class GameConfig:
    """
    Complete game configuration loaded from YAML.

    All values are immutable to prevent accidental modification during runtime.
    """
    board: BoardConfig
    physics: PhysicsConfig
    tiers: Tuple[TierConfig, ...]
    launcher: LauncherConfig
    spawn: SpawnConfig
    merge: MergeConfig
    danger: DangerConfig

    @property
    def num_tiers(self) -> int:
        """Total number of tiers in the ladder."""
        return len(self.tiers)

    @property
    def grace_ticks(self) -> int:
        """Grace period expressed in simulation ticks."""
        return max(1, int(round(self.danger.grace_seconds * 1000.0 / self.physics.tick_ms)))

    def get_tier(self, tier_id: int) -> TierConfig:
        """Get tier config by ID."""
        if 0 <= tier_id < len(self.tiers):
            return self.tiers[tier_id]
        raise ConfigError(f"Invalid tier ID: {tier_id}")


def _parse_color(color_data: List) -> Tuple[int, int, int]:
    """Parse RGB color from YAML."""
    if len(color_data) != 3:
        raise ConfigError(f"Color must have 3 values [R, G, B], got {color_data}")
    return (int(color_data[0]), int(color_data[1]), int(color_data[2]))


def _parse_tier(tier_data: dict) -> TierConfig:
    """Parse a single tier configuration from YAML."""
    return TierConfig(
        id=int(tier_data["id"]),
        name=str(tier_data.get("name", f"tier_{tier_data['id']}")),
        radius=float(tier_data["radius"]),
        mass=float(tier_data["mass"]),
        restitution=float(tier_data["restitution"]),
        score=int(tier_data["score"]),
        color=_parse_color(tier_data.get("color", [200, 200, 200]))
    )


def validate_tiers(tiers: Tuple[TierConfig, ...]) -> None:
    """
    Check the tier table invariants.

    Radius, mass and score strictly increase with the index; restitution
    never increases.

    Raises:
        ConfigError: If any invariant is violated.
    """
    if len(tiers) < 2:
        raise ConfigError(f"Tier table needs at least 2 tiers, got {len(tiers)}")

    for i, tier in enumerate(tiers):
        if tier.id != i:
            raise ConfigError(f"Tier ID mismatch: expected {i}, got {tier.id}")
        if tier.radius <= 0 or tier.mass <= 0:
            raise ConfigError(f"Tier {i} must have positive radius and mass")
        if tier.score < 0:
            raise ConfigError(f"Tier {i} has negative score {tier.score}")

    for lower, upper in zip(tiers, tiers[1:]):
        if upper.radius <= lower.radius:
            raise ConfigError(
                f"Tier radius must strictly increase: tier {upper.id} "
                f"({upper.radius}) <= tier {lower.id} ({lower.radius})"
            )
        if upper.mass <= lower.mass:
            raise ConfigError(
                f"Tier mass must strictly increase: tier {upper.id} "
                f"({upper.mass}) <= tier {lower.id} ({lower.mass})"
            )
        if upper.score <= lower.score:
            raise ConfigError(
                f"Tier score must strictly increase: tier {upper.id} "
                f"({upper.score}) <= tier {lower.id} ({lower.score})"
            )
        if upper.restitution > lower.restitution:
            raise ConfigError(
                f"Tier restitution must not increase: tier {upper.id} "
                f"({upper.restitution}) > tier {lower.id} ({lower.restitution})"
            )


def _validate_config(config: GameConfig) -> None:
    """Validate configuration consistency."""
    validate_tiers(config.tiers)

    spawnable = config.spawn.spawnable_count
    if not 1 <= spawnable < len(config.tiers):
        raise ConfigError(
            f"spawnable_count ({spawnable}) must be in [1, {len(config.tiers) - 1}]"
        )

    board = config.board
    if board.width <= 0 or board.height <= 0:
        raise ConfigError(f"Board dimensions must be positive, got {board.width}x{board.height}")
    if not 0 < board.fill_line_y < board.top_wall_y:
        raise ConfigError(
            f"Fill line ({board.fill_line_y}) must sit inside the board below the top wall"
        )
    if board.launcher_offset >= board.fill_line_offset:
        raise ConfigError(
            f"Launcher ({board.launcher_offset}) must sit below the fill line "
            f"({board.fill_line_offset})"
        )

    if config.physics.tick_ms <= 0:
        raise ConfigError(f"tick_ms must be positive, got {config.physics.tick_ms}")
    if config.physics.substeps < 1:
        raise ConfigError(f"substeps must be at least 1, got {config.physics.substeps}")
    if not 0 <= config.physics.friction_air < 1:
        raise ConfigError(f"friction_air must be in [0, 1), got {config.physics.friction_air}")

    launcher = config.launcher
    if launcher.base_speed <= 0 or launcher.max_drag_distance <= 0:
        raise ConfigError("Launcher base_speed and max_drag_distance must be positive")
    if launcher.min_power_multiplier > launcher.max_power_multiplier:
        raise ConfigError(
            f"min_power_multiplier ({launcher.min_power_multiplier}) exceeds "
            f"max_power_multiplier ({launcher.max_power_multiplier})"
        )
    if not 0 < launcher.cone_margin < math.pi / 2:
        raise ConfigError(f"cone_margin must be in (0, pi/2), got {launcher.cone_margin}")
    if launcher.cooldown_seconds < 0:
        raise ConfigError(f"cooldown_seconds must not be negative, got {launcher.cooldown_seconds}")

    if config.danger.grace_seconds <= 0:
        raise ConfigError(f"grace_seconds must be positive, got {config.danger.grace_seconds}")


def load_config(config_path: Optional[str] = None) -> GameConfig:
    """
    Load and validate game configuration from YAML.

    Args:
        config_path: Path to game_config.yaml. If None, uses default location.

    Returns:
        Validated GameConfig instance.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ConfigError: If config validation fails.
    """
    if config_path is None:
        config_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)),
            "game_config.yaml"
        )

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r") as f:
        raw = yaml.safe_load(f)

    try:
        config = _build_config(raw)
    except (KeyError, TypeError) as e:
        raise ConfigError(f"Malformed config {config_path}: {e!r}") from e

    _validate_config(config)
    logger.debug("Loaded config from %s (%d tiers)", config_path, config.num_tiers)
    return config


def _build_config(raw: dict) -> GameConfig:
    """Build a GameConfig from the parsed YAML mapping."""
    board_data = raw["board"]
    board = BoardConfig(
        width=int(board_data["width"]),
        height=int(board_data["height"]),
        top_boundary_offset=float(board_data["top_boundary_offset"]),
        bottom_overhang=float(board_data.get("bottom_overhang", 100.0)),
        wall_thickness=float(board_data.get("wall_thickness", 200.0)),
        launcher_offset=float(board_data["launcher_offset"]),
        fill_line_offset=float(board_data["fill_line_offset"]),
        clamp_margin=float(board_data.get("clamp_margin", 5.0))
    )

    physics_data = raw["physics"]
    physics = PhysicsConfig(
        gravity_x=float(physics_data["gravity_x"]),
        gravity_y=float(physics_data["gravity_y"]),
        damping=float(physics_data.get("damping", 1.0)),
        tick_ms=float(physics_data["tick_ms"]),
        substeps=int(physics_data.get("substeps", 1)),
        friction=float(physics_data["friction"]),
        friction_air=float(physics_data["friction_air"]),
        wall_friction=float(physics_data.get("wall_friction", physics_data["friction"])),
        wall_elasticity=float(physics_data["wall_elasticity"]),
        sleep_time_threshold=float(physics_data.get("sleep_time_threshold", 0.5))
    )

    tiers = tuple(_parse_tier(t) for t in raw["tiers"])

    launcher_data = raw["launcher"]
    launcher = LauncherConfig(
        base_speed=float(launcher_data["base_speed"]),
        min_power_multiplier=float(launcher_data["min_power_multiplier"]),
        max_power_multiplier=float(launcher_data["max_power_multiplier"]),
        wide_board_threshold=int(launcher_data.get("wide_board_threshold", 500)),
        wide_board_speed_factor=float(launcher_data.get("wide_board_speed_factor", 1.0)),
        max_drag_distance=float(launcher_data["max_drag_distance"]),
        cone_margin=float(launcher_data["cone_margin"]),
        cooldown_seconds=float(launcher_data["cooldown_seconds"])
    )

    spawn = SpawnConfig(
        spawnable_count=int(raw["spawn"]["spawnable_count"])
    )

    merge_data = raw["merge"]
    merge = MergeConfig(
        nudge_upward=float(merge_data["nudge_upward"]),
        nudge_jitter=float(merge_data.get("nudge_jitter", 0.0)),
        impact_speed_threshold=float(merge_data.get("impact_speed_threshold", 60.0)),
        impact_full_speed=float(merge_data.get("impact_full_speed", 600.0)),
        impact_max_intensity=float(merge_data.get("impact_max_intensity", 0.8)),
        wall_impact_intensity=float(merge_data.get("wall_impact_intensity", 0.3))
    )

    danger_data = raw["danger"]
    danger = DangerConfig(
        grace_seconds=float(danger_data["grace_seconds"]),
        settle_speed=float(danger_data["settle_speed"])
    )

    return GameConfig(
        board=board,
        physics=physics,
        tiers=tiers,
        launcher=launcher,
        spawn=spawn,
        merge=merge,
        danger=danger
    )


# Module-level singleton for convenience
_cached_config: Optional[GameConfig] = None


def get_config() -> GameConfig:
    """Get the cached game configuration, loading if necessary."""
    global _cached_config
    if _cached_config is None:
        _cached_config = load_config()
    return _cached_config


def reload_config(config_path: Optional[str] = None) -> GameConfig:
    """Reload the configuration (useful for testing)."""
    global _cached_config
    _cached_config = load_config(config_path)
    return _cached_config
