"""
Human Play Mode
================

Play the merge arcade interactively with the mouse.

Controls:
    - Press and drag away from the launcher: aim (direction) and power (distance)
    - Release: fire
    - Leave the window while dragging: cancel the shot
    - R: Restart game
    - ESC: Quit

Usage:
    python -m tools.play_human [--seed SEED] [--width WIDTH] [--height HEIGHT]
"""

from __future__ import annotations

import argparse
import logging
import math
import sys
import time
from typing import Optional, Tuple

try:
    import pygame
    PYGAME_AVAILABLE = True
except ImportError:
    PYGAME_AVAILABLE = False

from merge_arcade.core.config_loader import load_config, GameConfig
from merge_arcade.core.merge_resolver import ImpactEvent
from merge_arcade.core.simulation import SimulationLoop
from merge_arcade.core.state_snapshot import (
    GameEvent,
    GameOverTriggered,
    GameSnapshot,
    MergeOccurred,
)

logger = logging.getLogger(__name__)

# Ticks over which a freshly merged item grows to full size
POP_TICKS = 12


class ArcadeRenderer:
    """Draws a GameSnapshot onto a pygame surface."""

    def __init__(self, config: GameConfig, window_width: int, window_height: int):
        self._config = config
        self._window_width = window_width
        self._window_height = window_height

        self._bg = (255, 240, 225)
        self._box_fill = (255, 252, 245)
        self._box_border = (200, 160, 120)
        self._text_dark = (80, 60, 40)
        self._text_light = (140, 110, 80)
        self._fill_line = (255, 100, 100)
        self._aim_color = (90, 70, 50)

        pygame.font.init()
        self._font_large = pygame.font.Font(None, 42)
        self._font_medium = pygame.font.Font(None, 28)
        self._font_small = pygame.font.Font(None, 20)

        self._calculate_layout()

    def _calculate_layout(self) -> None:
        """Fit the board into the window below the score bar."""
        self._top_ui_height = 60
        board = self._config.board

        available_height = self._window_height - self._top_ui_height - 20
        available_width = self._window_width - 20
        self._scale = min(available_width / board.width, available_height / board.height)

        self._board_render_width = int(board.width * self._scale)
        self._board_render_height = int(board.height * self._scale)
        self._board_x = (self._window_width - self._board_render_width) // 2
        self._board_y = self._top_ui_height + (available_height - self._board_render_height) // 2

    def world_to_screen(self, position: Tuple[float, float]) -> Tuple[int, int]:
        """Convert a world position to screen pixels (Y is flipped)."""
        x, y = position
        return (
            int(self._board_x + x * self._scale),
            int(self._board_y + (self._config.board.height - y) * self._scale)
        )

    def screen_to_world(self, screen_x: int, screen_y: int) -> Tuple[float, float]:
        """Convert screen pixels to a world position."""
        return (
            (screen_x - self._board_x) / self._scale,
            self._config.board.height - (screen_y - self._board_y) / self._scale
        )

    def render(self, screen: pygame.Surface, snap: GameSnapshot) -> None:
        screen.fill(self._bg)
        self._draw_board(screen, snap)
        self._draw_items(screen, snap)
        if not snap.game_over:
            self._draw_launcher(screen, snap)
        self._draw_score(screen, snap)
        if snap.game_over:
            self._draw_game_over(screen, snap.score)

    def _draw_board(self, screen: pygame.Surface, snap: GameSnapshot) -> None:
        rect = pygame.Rect(
            self._board_x, self._board_y,
            self._board_render_width, self._board_render_height
        )
        pygame.draw.rect(screen, self._box_fill, rect)
        pygame.draw.rect(screen, self._box_border, rect, 3)

        top_y = self.world_to_screen((0.0, self._config.board.top_wall_y))[1]
        pygame.draw.line(
            screen, self._box_border,
            (self._board_x, top_y), (self._board_x + self._board_render_width, top_y), 2
        )

        # Fill line flashes while the grace window is running
        visible = not snap.is_warning or (snap.tick // 15) % 2 == 0
        if visible:
            y = self.world_to_screen((0.0, self._config.board.fill_line_y))[1]
            width = 3 if snap.is_warning else 1
            pygame.draw.line(
                screen, self._fill_line,
                (self._board_x, y), (self._board_x + self._board_render_width, y), width
            )

    def _draw_items(self, screen: pygame.Surface, snap: GameSnapshot) -> None:
        for item in snap.items:
            scale = 1.0
            if item.created_at_tick > 0:
                age = snap.tick - item.created_at_tick
                scale = min(1.0, 0.5 + 0.5 * age / POP_TICKS)

            color = self._config.get_tier(item.tier_index).color
            center = self.world_to_screen(item.position)
            radius = max(2, int(item.radius * self._scale * scale))
            pygame.draw.circle(screen, color, center, radius)
            pygame.draw.circle(screen, self._box_border, center, radius, 2)

            # Spin marker
            end = (
                center[0] + int(math.cos(item.angle) * radius * 0.7),
                center[1] - int(math.sin(item.angle) * radius * 0.7)
            )
            pygame.draw.line(screen, self._text_light, center, end, 2)

    def _draw_launcher(self, screen: pygame.Surface, snap: GameSnapshot) -> None:
        origin = self.world_to_screen(self._config.board.launch_origin)

        if not snap.locked:
            tier = self._config.get_tier(snap.pending_tier)
            pygame.draw.circle(screen, tier.color, origin, int(tier.radius * self._scale))
            pygame.draw.circle(screen, self._box_border, origin, int(tier.radius * self._scale), 2)

        launcher = snap.launcher
        if launcher.is_dragging:
            length = (40 + 160 * launcher.power_fraction) * self._scale
            end = (
                origin[0] + int(math.cos(launcher.aim_angle) * length),
                origin[1] - int(math.sin(launcher.aim_angle) * length)
            )
            pygame.draw.line(screen, self._aim_color, origin, end, 3)

    def _draw_score(self, screen: pygame.Surface, snap: GameSnapshot) -> None:
        score = self._font_large.render(f"Score: {snap.score}", True, self._text_dark)
        screen.blit(score, (20, 15))

        next_name = self._config.get_tier(snap.pending_tier).name
        label = self._font_small.render(f"Next: {next_name}", True, self._text_light)
        screen.blit(label, (self._window_width - label.get_width() - 20, 25))

    def _draw_game_over(self, screen: pygame.Surface, score: int) -> None:
        overlay = pygame.Surface((self._window_width, self._window_height), pygame.SRCALPHA)
        overlay.fill((0, 0, 0, 140))
        screen.blit(overlay, (0, 0))

        title = self._font_large.render("GAME OVER", True, (255, 255, 255))
        detail = self._font_medium.render(
            f"Score: {score}   -   R to restart", True, (255, 255, 255)
        )
        cx = self._window_width // 2
        cy = self._window_height // 2
        screen.blit(title, (cx - title.get_width() // 2, cy - 40))
        screen.blit(detail, (cx - detail.get_width() // 2, cy + 10))


class HumanPlayer:
    """Real-time session driven by the mouse at a fixed physics rate."""

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        seed: Optional[int] = None,
        window_width: int = 520,
        window_height: int = 860,
        target_fps: int = 60
    ):
        if not PYGAME_AVAILABLE:
            raise ImportError("pygame required. Install: pip install pygame")

        if config is None:
            config = load_config()

        self._config = config
        self._seed = seed
        self._target_fps = target_fps

        self._loop = SimulationLoop(config=config, seed=seed)
        self._loop.subscribe(self._on_event)

        pygame.init()
        self._screen = pygame.display.set_mode((window_width, window_height))
        pygame.display.set_caption("Merge Arcade")
        self._clock = pygame.time.Clock()
        self._renderer = ArcadeRenderer(config, window_width, window_height)

        self._running = True
        self._physics_dt = config.physics.tick_ms / 1000.0
        self._physics_accumulator = 0.0
        self._last_time = time.monotonic()
        self._snapshot = self._loop.snapshot()

    def run(self) -> int:
        """Run the game loop. Returns final score."""
        logger.info("Drag from the launcher to aim, release to fire. R restarts, ESC quits.")

        while self._running:
            self._handle_events()
            self._update_physics()
            self._renderer.render(self._screen, self._snapshot)
            pygame.display.flip()
            self._clock.tick(self._target_fps)

        pygame.quit()
        return self._loop.score

    def _handle_events(self) -> None:
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self._running = False

            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    self._running = False
                elif event.key == pygame.K_r:
                    self._restart()

            elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
                self._loop.pointer_down(*self._renderer.screen_to_world(*event.pos))

            elif event.type == pygame.MOUSEMOTION:
                self._loop.pointer_move(*self._renderer.screen_to_world(*event.pos))

            elif event.type == pygame.MOUSEBUTTONUP and event.button == 1:
                self._loop.pointer_up(*self._renderer.screen_to_world(*event.pos))

            elif event.type == pygame.WINDOWLEAVE:
                self._loop.pointer_leave()

    def _update_physics(self) -> None:
        """Run as many fixed ticks as wall time allows."""
        now = time.monotonic()
        self._physics_accumulator += now - self._last_time
        self._last_time = now

        # Limit to prevent spiral
        if self._physics_accumulator > 0.2:
            self._physics_accumulator = 0.2

        while self._physics_accumulator >= self._physics_dt:
            self._physics_accumulator -= self._physics_dt
            self._snapshot = self._loop.step()

    def _on_event(self, event: GameEvent) -> None:
        if isinstance(event, MergeOccurred):
            logger.info("  +%d (Total: %d)", event.score_delta, self._loop.score)
        elif isinstance(event, GameOverTriggered):
            logger.info("GAME OVER - Score: %d", event.score)
        elif isinstance(event, ImpactEvent):
            logger.debug("Impact %.2f at (%.0f, %.0f)", event.intensity, *event.position)

    def _restart(self) -> None:
        self._snapshot = self._loop.restart(seed=self._seed)
        self._physics_accumulator = 0.0
        self._last_time = time.monotonic()
        logger.info("=== Game Restarted ===")


def main():
    parser = argparse.ArgumentParser(description="Play the merge arcade interactively")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--width", type=int, default=520, help="Window width (default: 520)")
    parser.add_argument("--height", type=int, default=860, help="Window height (default: 860)")
    parser.add_argument("--fps", type=int, default=60, help="Target FPS")
    parser.add_argument("--config", type=str, default=None, help="Path to a game config YAML")
    parser.add_argument("--verbose", action="store_true", help="Log impacts and debug output")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    try:
        config = load_config(args.config)
        player = HumanPlayer(
            config=config,
            seed=args.seed,
            window_width=args.width,
            window_height=args.height,
            target_fps=args.fps
        )
        score = player.run()
        logger.info("Final Score: %d", score)
        return 0
    except ImportError as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
