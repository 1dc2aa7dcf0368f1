"""
Tests for the simulation loop: firing, merging, clamping, game-over and restart.
"""

import numpy as np
import pytest

from merge_arcade.core.errors import OutOfRangeError
from merge_arcade.core.state_snapshot import (
    GameOverTriggered,
    MergeOccurred,
    ShotFired,
)


def fire(loop, dx=0.0, dy=None):
    """Drag from the launcher to an offset and release."""
    ox, oy = loop.launcher.origin
    if dy is None:
        dy = loop.config.launcher.max_drag_distance
    loop.pointer_down(ox + dx, oy + dy)
    return loop.pointer_up(ox + dx, oy + dy)


class TestSessionStart:
    """A fresh session."""

    def test_initial_state(self, loop):
        snap = loop.snapshot()
        assert snap.score == 0
        assert not snap.game_over
        assert snap.items == ()
        assert snap.pending_tier in {0, 1, 2}
        assert not snap.locked
        assert not snap.is_warning
        assert snap.tick == 0

    def test_step_counts_ticks(self, loop):
        for _ in range(3):
            snap = loop.step()
        assert snap.tick == 3
        assert loop.world.steps == 3


class TestFiring:
    """Shots, cooldown and queue advance."""

    def test_fire_spawns_one_projectile(self, loop, config):
        pending = loop.spawn_queue.peek()
        body_id = fire(loop)

        assert body_id is not None
        assert list(loop.items) == [body_id]
        tag = loop.items[body_id]
        assert tag.tier_index == pending
        assert tag.is_projectile
        assert tag.created_at_tick == 0

        state = loop.world.get_body(body_id)
        assert state.position == config.board.launch_origin
        expected = (config.launcher.base_speed * config.launcher.max_power_multiplier
                    * loop.launcher.screen_width_factor)
        assert state.speed == pytest.approx(expected)
        assert state.velocity[1] > 0

    def test_fire_emits_event(self, loop):
        events = []
        loop.subscribe(events.append)
        body_id = fire(loop)
        assert len(events) == 1
        assert isinstance(events[0], ShotFired)
        assert events[0].body_id == body_id

        snap = loop.step()
        assert any(isinstance(e, ShotFired) for e in snap.events)
        assert loop.step().events == ()

    def test_second_fire_during_cooldown_is_noop(self, loop, clock, config):
        fire(loop)
        draws = loop.spawn_queue.draws

        clock.advance(config.launcher.cooldown_seconds / 2)
        loop.step()
        assert fire(loop) is None
        assert len(loop.items) == 1
        assert loop.spawn_queue.draws == draws
        assert loop.spawn_queue.locked

    def test_cooldown_advances_queue_exactly_once(self, loop, clock, config):
        fire(loop)
        assert loop.spawn_queue.draws == 1

        clock.advance(config.launcher.cooldown_seconds)
        snap = loop.step()
        assert not snap.locked
        assert loop.spawn_queue.draws == 2

        for _ in range(10):
            clock.advance(1.0)
            loop.step()
        assert loop.spawn_queue.draws == 2

    def test_fire_again_after_cooldown(self, loop, clock, config):
        first = fire(loop)
        clock.advance(config.launcher.cooldown_seconds)
        loop.step()
        second = fire(loop)
        assert second is not None and second != first
        assert len(loop.items) == 2

    def test_fired_tier_matches_displayed_tier(self, loop, clock, config):
        for _ in range(10):
            shown = loop.snapshot().pending_tier
            body_id = fire(loop)
            assert loop.items[body_id].tier_index == shown
            clock.advance(config.launcher.cooldown_seconds)
            loop.step()

    def test_pointer_leave_abandons_shot(self, loop):
        ox, oy = loop.launcher.origin
        loop.pointer_down(ox, oy + 100)
        loop.pointer_move(ox + 40, oy + 150)
        assert loop.snapshot().launcher.is_dragging
        loop.pointer_leave()
        assert loop.pointer_up(ox, oy + 100) is None
        assert loop.items == {}
        assert not loop.spawn_queue.locked

    def test_projectile_flag_clears_when_settled(self, loop):
        body_id = fire(loop)
        loop.world.set_velocity(body_id, (0.0, 0.0))
        loop.world.set_position(body_id, (225.0, 500.0))
        loop.step()
        assert not loop.items[body_id].is_projectile


class TestMerging:
    """Merges driven by the tick's collision batch."""

    def test_two_tier0_items_merge(self, loop, catalog_score):
        a = loop.place_item(0, (100.0, 400.0))
        b = loop.place_item(0, (140.0, 400.0))
        loop.world.queue_contact(a, b)
        snap = loop.step()

        assert len(snap.items) == 1
        item = snap.items[0]
        assert item.tier_index == 1
        assert item.position == pytest.approx((120.0, 400.0))
        assert item.created_at_tick == snap.tick
        assert snap.score == catalog_score(1)
        assert a not in loop.items and b not in loop.items

        merges = [e for e in snap.events if isinstance(e, MergeOccurred)]
        assert len(merges) == 1
        assert merges[0].tier_index == 1

    def test_merged_item_gets_nudge(self, loop, config):
        a = loop.place_item(3, (100.0, 400.0))
        b = loop.place_item(3, (180.0, 400.0))
        loop.world.queue_contact(a, b)
        loop.step()
        (new_id,) = loop.items
        vx, vy = loop.world.get_body(new_id).velocity
        assert vy == config.merge.nudge_upward
        assert abs(vx) <= config.merge.nudge_jitter

    def test_duplicate_delivery_merges_once(self, loop, catalog_score):
        a = loop.place_item(2, (100.0, 400.0))
        b = loop.place_item(2, (170.0, 400.0))
        loop.world.queue_contact(a, b)
        loop.world.queue_contact(b, a)
        snap = loop.step()
        assert len(snap.items) == 1
        assert snap.score == catalog_score(3)

    def test_terminal_items_do_not_merge(self, loop):
        terminal = loop.catalog.terminal_index
        a = loop.place_item(terminal, (150.0, 450.0))
        b = loop.place_item(terminal, (300.0, 450.0))
        loop.world.queue_contact(a, b)
        snap = loop.step()
        assert len(snap.items) == 2
        assert snap.score == 0

    def test_mixed_tiers_do_not_merge(self, loop):
        a = loop.place_item(0, (100.0, 400.0))
        b = loop.place_item(1, (150.0, 400.0))
        loop.world.queue_contact(a, b)
        snap = loop.step()
        assert sorted(i.tier_index for i in snap.items) == [0, 1]
        assert snap.score == 0

    def test_chain_merges_across_ticks(self, loop, catalog_score):
        a = loop.place_item(0, (100.0, 400.0))
        b = loop.place_item(0, (140.0, 400.0))
        c = loop.place_item(1, (120.0, 460.0))
        loop.world.queue_contact(a, b)
        loop.step()
        (merged,) = [i for i, tag in loop.items.items() if i != c]
        loop.world.queue_contact(merged, c)
        snap = loop.step()
        assert [i.tier_index for i in snap.items] == [2]
        assert snap.score == catalog_score(1) + catalog_score(2)

    def test_score_only_increases(self, loop):
        scores = [loop.score]
        for k in range(4):
            a = loop.place_item(k, (100.0, 300.0 + 80 * k))
            b = loop.place_item(k, (200.0, 300.0 + 80 * k))
            loop.world.queue_contact(a, b)
            loop.step()
            scores.append(loop.score)
        assert scores == sorted(scores)
        assert len(set(scores)) == len(scores)

    def test_place_item_rejects_unknown_tier(self, loop):
        with pytest.raises(OutOfRangeError):
            loop.place_item(42, (100.0, 400.0))


class TestSafetyClamp:
    """Tunneling safety net at the top boundary."""

    def test_clamps_position_and_reflects_velocity(self, loop, config):
        body_id = loop.place_item(0, (200.0, config.board.clamp_y + 20), velocity=(10.0, 300.0))
        loop.step()
        state = loop.world.get_body(body_id)
        assert state.position[1] == pytest.approx(config.board.clamp_y)
        assert state.position[0] == pytest.approx(200.0 + 10.0 * config.physics.tick_ms / 1000.0)
        assert state.velocity == pytest.approx((10.0, -150.0))

    def test_inward_velocity_untouched(self, loop, config):
        body_id = loop.place_item(0, (200.0, config.board.clamp_y + 50), velocity=(0.0, -60.0))
        loop.step()
        state = loop.world.get_body(body_id)
        assert state.position[1] == pytest.approx(config.board.clamp_y)
        assert state.velocity == (0.0, -60.0)

    def test_items_inside_untouched(self, loop):
        body_id = loop.place_item(0, (200.0, 400.0))
        loop.step()
        assert loop.world.get_body(body_id).position == (200.0, 400.0)


class TestGameOver:
    """Sustained overflow ends the session."""

    def overflow(self, loop):
        return loop.place_item(2, (225.0, loop.config.board.fill_line_y - 30))

    def test_warning_then_game_over(self, loop, config):
        self.overflow(loop)
        grace = config.grace_ticks

        snap = loop.step()
        assert snap.is_warning and not snap.game_over
        for _ in range(grace - 2):
            snap = loop.step()
        assert not snap.game_over

        snap = loop.step()
        assert snap.game_over
        assert [e for e in snap.events if isinstance(e, GameOverTriggered)]

    def test_moving_item_never_counts(self, loop, config):
        loop.place_item(0, (225.0, 60.0), velocity=(config.danger.settle_speed * 2, 0.0))
        for _ in range(config.grace_ticks + 5):
            snap = loop.step()
        assert not snap.game_over

    def test_clearing_overflow_resets_window(self, loop, config):
        body_id = self.overflow(loop)
        for _ in range(config.grace_ticks - 1):
            loop.step()
        loop.world.set_position(body_id, (225.0, 500.0))
        loop.step()
        loop.world.set_position(body_id, (225.0, 100.0))
        for _ in range(config.grace_ticks - 1):
            snap = loop.step()
        assert not snap.game_over

    def test_no_mutation_after_game_over(self, loop, config):
        events = []
        loop.subscribe(events.append)
        self.overflow(loop)
        a = loop.place_item(0, (100.0, 400.0))
        b = loop.place_item(0, (140.0, 400.0))
        for _ in range(config.grace_ticks):
            loop.step()
        assert loop.game_over
        assert sum(isinstance(e, GameOverTriggered) for e in events) == 1

        tick, steps, score = loop.tick, loop.world.steps, loop.score
        loop.world.queue_contact(a, b)
        for _ in range(10):
            snap = loop.step()
        assert snap.game_over
        assert (loop.tick, loop.world.steps, loop.score) == (tick, steps, score)
        assert len(loop.items) == 3
        assert sum(isinstance(e, GameOverTriggered) for e in events) == 1

    def test_input_ignored_after_game_over(self, loop, config):
        self.overflow(loop)
        for _ in range(config.grace_ticks):
            loop.step()
        ox, oy = loop.launcher.origin
        assert not loop.pointer_down(ox, oy + 100)
        assert loop.pointer_up(ox, oy + 100) is None
        assert len(loop.items) == 1


class TestRestart:
    """Restart rebuilds the session from scratch."""

    def test_restart_resets_everything(self, loop, config):
        old_world = loop.world
        stuck = loop.place_item(1, (225.0, 100.0))
        fire(loop)
        for _ in range(config.grace_ticks):
            loop.step()
        assert loop.game_over and loop.spawn_queue.locked

        snap = loop.restart()
        assert loop.world is not old_world
        assert snap.items == ()
        assert snap.score == 0
        assert not snap.game_over
        assert not snap.locked
        assert not snap.is_warning
        assert snap.tick == 0
        assert snap.events == ()
        assert stuck not in loop.items

    def test_stale_contacts_do_not_leak(self, loop):
        a = loop.place_item(0, (100.0, 400.0))
        b = loop.place_item(0, (140.0, 400.0))
        loop.world.queue_contact(a, b)
        loop.restart()
        snap = loop.step()
        assert snap.score == 0
        assert snap.items == ()

    def test_listeners_survive_restart(self, loop):
        events = []
        loop.subscribe(events.append)
        loop.restart()
        fire(loop)
        assert len(events) == 1

    def test_restart_with_seed_is_reproducible(self, loop):
        loop.restart(seed=5)
        first = loop.snapshot().pending_tier
        loop.restart(seed=5)
        assert loop.snapshot().pending_tier == first


class TestSnapshotArrays:
    """Array view of the published items."""

    def test_to_arrays(self, loop):
        loop.place_item(0, (100.0, 400.0))
        loop.place_item(4, (300.0, 500.0))
        arrays = loop.snapshot().to_arrays()
        assert arrays["item_tier"].tolist() == [0, 4]
        np.testing.assert_allclose(arrays["item_x"], [100.0, 300.0])
        np.testing.assert_allclose(arrays["item_radius"], [22.0, 62.0])
        assert arrays["item_created_tick"].dtype == np.int64


@pytest.fixture
def catalog_score(loop):
    return lambda index: loop.catalog.tier_at(index).score_value
