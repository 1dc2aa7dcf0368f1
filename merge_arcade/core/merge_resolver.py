"""
Merge Resolver
==============

Classifies a physics step's collision pairs and executes the merge rule.

The resolver never touches the physics world. It returns the merges to
apply (bodies to remove, body to create, nudge velocity, score delta) and
the cosmetic impacts to report; the simulation loop applies them after the
step has completed.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Set, Tuple

from merge_arcade.core.config_loader import GameConfig, get_config
from merge_arcade.core.tier_catalog import TierCatalog
from merge_arcade.core.world_types import ContactEvent

logger = logging.getLogger(__name__)

Vec = Tuple[float, float]


@dataclass(frozen=True)
class CollisionPair:
    """
    A contact between a tagged item and another item or a boundary.

    Item B fields are None when item A hit a static boundary.
    """
    id_a: int
    tier_a: int
    position_a: Vec
    velocity_a: Vec
    speed_a: float
    id_b: Optional[int] = None
    tier_b: Optional[int] = None
    position_b: Optional[Vec] = None
    velocity_b: Optional[Vec] = None
    speed_b: float = 0.0
    boundary: str = ""

    @property
    def is_boundary(self) -> bool:
        return self.id_b is None

    @property
    def sorted_ids(self) -> Tuple[int, int]:
        """Canonical ordering for deterministic processing."""
        return (min(self.id_a, self.id_b), max(self.id_a, self.id_b))

    @classmethod
    def from_contact(
        cls,
        contact: ContactEvent,
        tier_of: Callable[[int], Optional[int]]
    ) -> Optional["CollisionPair"]:
        """
        Tag a raw contact with item tiers.

        Args:
            contact: Contact reported by the physics world.
            tier_of: Lookup from body ID to tier index (None if not an item).

        Returns:
            The tagged pair, or None if a body is not a known item.
        """
        tier_a = tier_of(contact.a.body_id)
        if tier_a is None:
            return None

        if contact.b is None:
            return cls(
                id_a=contact.a.body_id,
                tier_a=tier_a,
                position_a=contact.a.position,
                velocity_a=contact.a.velocity,
                speed_a=contact.a.speed,
                boundary=contact.boundary
            )

        tier_b = tier_of(contact.b.body_id)
        if tier_b is None:
            return None
        return cls(
            id_a=contact.a.body_id,
            tier_a=tier_a,
            position_a=contact.a.position,
            velocity_a=contact.a.velocity,
            speed_a=contact.a.speed,
            id_b=contact.b.body_id,
            tier_b=tier_b,
            position_b=contact.b.position,
            velocity_b=contact.b.velocity,
            speed_b=contact.b.speed
        )


@dataclass(frozen=True)
class MergeOutcome:
    """A merge to apply: two items consumed into one of the next tier."""
    consumed_ids: Tuple[int, int]
    source_tier: int
    result_tier: int
    position: Vec
    velocity: Vec
    score_delta: int
    created_at_tick: int


@dataclass(frozen=True)
class ImpactEvent:
    """Cosmetic impact, for audio/presentation only."""
    tick: int
    intensity: float
    position: Vec
    boundary: str = ""


@dataclass
class MergeBatchResult:
    """Everything produced by resolving one batch."""
    merges: List[MergeOutcome] = field(default_factory=list)
    impacts: List[ImpactEvent] = field(default_factory=list)

    @property
    def score_delta(self) -> int:
        return sum(m.score_delta for m in self.merges)


class MergeResolver:
    """
    Executes the merge rule over one batch of collision pairs.

    Within a batch each item takes part in at most one merge. Pairs that
    reference an item already consumed in the batch are dropped, which also
    absorbs duplicate delivery of the same contact.
    """

    def __init__(
        self,
        catalog: TierCatalog,
        config: Optional[GameConfig] = None,
        rng_seed: Optional[int] = None
    ):
        """
        Initialize merge resolver.

        Args:
            catalog: Tier catalog.
            config: Game configuration. Uses default if None.
            rng_seed: Seed for the horizontal nudge jitter.
        """
        if config is None:
            config = get_config()

        self._catalog = catalog
        self._merge = config.merge
        self._rng = random.Random(rng_seed)

    def can_merge(self, pair: CollisionPair) -> bool:
        """Same tier, non-terminal, two distinct items."""
        if pair.is_boundary or pair.id_a == pair.id_b:
            return False
        return pair.tier_a == pair.tier_b and not self._catalog.is_terminal(pair.tier_a)

    def resolve(self, pairs: List[CollisionPair], tick: int) -> MergeBatchResult:
        """
        Resolve one batch of collision pairs.

        Args:
            pairs: Tagged pairs from a single physics step.
            tick: Current simulation tick (stamped on created items).

        Returns:
            MergeBatchResult with merges to apply and impacts to report.
        """
        result = MergeBatchResult()
        if not pairs:
            return result

        candidates = [p for p in pairs if self.can_merge(p)]
        others = [p for p in pairs if not self.can_merge(p)]

        # Stable sort keeps delivery order among duplicates
        candidates.sort(key=lambda p: p.sorted_ids)

        consumed: Set[int] = set()
        for pair in candidates:
            if pair.id_a in consumed or pair.id_b in consumed:
                continue
            outcome = self._merge_pair(pair, tick)
            consumed.add(pair.id_a)
            consumed.add(pair.id_b)
            result.merges.append(outcome)

        for pair in others:
            if pair.id_a in consumed or pair.id_b in consumed:
                continue
            impact = self._impact_for(pair, tick)
            if impact is not None:
                result.impacts.append(impact)

        return result

    def _merge_pair(self, pair: CollisionPair, tick: int) -> MergeOutcome:
        """Build the merge of two same-tier items."""
        result_tier = self._catalog.tier_at(pair.tier_a + 1)

        ax, ay = pair.position_a
        bx, by = pair.position_b
        position = ((ax + bx) / 2.0, (ay + by) / 2.0)

        # Upward pop plus bounded horizontal jitter to avoid re-stacking
        jitter = self._merge.nudge_jitter
        velocity = (self._rng.uniform(-jitter, jitter), self._merge.nudge_upward)

        logger.debug(
            "Merge %d+%d (tier %d) -> tier %d at (%.1f, %.1f)",
            pair.id_a, pair.id_b, pair.tier_a, result_tier.index, position[0], position[1]
        )
        return MergeOutcome(
            consumed_ids=(pair.id_a, pair.id_b),
            source_tier=pair.tier_a,
            result_tier=result_tier.index,
            position=position,
            velocity=velocity,
            score_delta=result_tier.score_value,
            created_at_tick=tick
        )

    def _impact_for(self, pair: CollisionPair, tick: int) -> Optional[ImpactEvent]:
        """Impact event for a non-merging contact, if fast enough."""
        threshold = self._merge.impact_speed_threshold

        if pair.is_boundary:
            if pair.speed_a <= threshold:
                return None
            return ImpactEvent(
                tick=tick,
                intensity=self._merge.wall_impact_intensity,
                position=pair.position_a,
                boundary=pair.boundary
            )

        speed = abs(pair.speed_a - pair.speed_b)
        if speed <= threshold:
            return None
        intensity = min(speed / self._merge.impact_full_speed, self._merge.impact_max_intensity)
        ax, ay = pair.position_a
        bx, by = pair.position_b
        return ImpactEvent(
            tick=tick,
            intensity=intensity,
            position=((ax + bx) / 2.0, (ay + by) / 2.0)
        )
