"""
Tier Catalog
============

Static ordered table of item tiers, loaded from config.

Index 0 is the smallest spawnable tier and index N-1 is terminal: two
terminal items never merge.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

from merge_arcade.core.config_loader import (
    GameConfig,
    TierConfig,
    get_config,
    validate_tiers
)
from merge_arcade.core.errors import OutOfRangeError


@dataclass(frozen=True)
class Tier:
    """
    Runtime representation of an item tier.

    Wraps TierConfig with the names the simulation reasons in.
    """
    config: TierConfig

    @property
    def index(self) -> int:
        return self.config.id

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def radius(self) -> float:
        return self.config.radius

    @property
    def mass(self) -> float:
        return self.config.mass

    @property
    def restitution(self) -> float:
        return self.config.restitution

    @property
    def score_value(self) -> int:
        return self.config.score

    @property
    def color(self) -> Tuple[int, int, int]:
        return self.config.color

    def __repr__(self) -> str:
        return f"Tier({self.index}: {self.name})"


class TierCatalog:
    """
    Collection of all tiers in the merge ladder.

    Pure lookup table; never mutated after construction.
    """

    def __init__(self, config: Optional[GameConfig] = None):
        """
        Initialize catalog from game config.

        Args:
            config: GameConfig instance. If None, loads from default location.

        Raises:
            ConfigError: If the tier table violates its invariants.
        """
        if config is None:
            config = get_config()

        # Configs built by hand (dataclasses.replace) skip load_config
        validate_tiers(config.tiers)

        self._tiers: Tuple[Tier, ...] = tuple(Tier(t) for t in config.tiers)
        self._spawnable_count = config.spawn.spawnable_count

    def __len__(self) -> int:
        """Total number of tiers."""
        return len(self._tiers)

    def __getitem__(self, index: int) -> Tier:
        return self.tier_at(index)

    def __iter__(self) -> Iterator[Tier]:
        return iter(self._tiers)

    def tier_at(self, index: int) -> Tier:
        """
        Get a tier by index.

        Raises:
            OutOfRangeError: If index is outside [0, N-1].
        """
        if 0 <= index < len(self._tiers):
            return self._tiers[index]
        raise OutOfRangeError(f"Tier index {index} out of range [0, {len(self._tiers)})")

    def is_terminal(self, index: int) -> bool:
        """True if this is the last tier (cannot merge further)."""
        return index == len(self._tiers) - 1

    def next_tier(self, index: int) -> Optional[Tier]:
        """Tier produced by merging two items of the given tier, or None if terminal."""
        if self.is_terminal(index):
            return None
        return self.tier_at(index + 1)

    @property
    def spawnable_count(self) -> int:
        """Number of tiers that can be launched directly."""
        return self._spawnable_count

    @property
    def terminal_index(self) -> int:
        return len(self._tiers) - 1

