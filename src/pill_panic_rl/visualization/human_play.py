from __future__ import annotations

import argparse
import logging
from typing import Callable, Dict

import pygame

from pill_panic_rl.game import (
    BOARD_HEIGHT,
    BOARD_WIDTH,
    Direction,
    GameConfig,
    GameState,
    PillPanicGame,
    SoundEvent,
    SpeedSetting,
)
from .renderer import Renderer


logger = logging.getLogger(__name__)


def _key_commands(game: PillPanicGame) -> Dict[int, Callable[[], object]]:
    return {
        pygame.K_LEFT: lambda: game.move_pill(Direction.LEFT),
        pygame.K_RIGHT: lambda: game.move_pill(Direction.RIGHT),
        pygame.K_UP: game.rotate_pill,
        pygame.K_z: game.rotate_pill,
        pygame.K_SPACE: game.drop_pill,
    }


def toggle_pause(game: PillPanicGame, down_held: bool) -> None:
    """Pause or resume. On resume fast drop follows the down key, whose release may have been missed."""
    if game.get_game_state() == GameState.PAUSED:
        game.resume()
        game.set_fast_drop(down_held)
    else:
        game.pause()


def _log_sound(event: SoundEvent) -> None:
    logger.debug("sound: %s", event.value)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser()
    p.add_argument("--level", type=int, default=1)
    p.add_argument("--speed", choices=[s.value for s in SpeedSetting], default=SpeedSetting.MEDIUM.value)
    p.add_argument("--batch_spawn_chance", type=float, default=0.0)
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("--verbose", action="store_true")
    return p


def run() -> None:
    args = build_parser().parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    game = PillPanicGame(
        GameConfig(random_seed=args.seed, batch_spawn_chance=args.batch_spawn_chance),
        sound_hook=_log_sound,
    )
    game.set_callbacks(
        on_state_change=lambda state: print(f"State: {state.value}"),
        on_stats_change=lambda stats: pygame.display.set_caption(
            f"Pill Panic - level {stats.level}  score {stats.score}  infections {stats.infection_count}"
        ),
    )
    speed = SpeedSetting(args.speed)

    pygame.init()
    try:
        clock = pygame.time.Clock()
        cell_size = 28
        margin = 20
        renderer = Renderer(cell_size=cell_size, margin=margin)
        screen = pygame.display.set_mode((BOARD_WIDTH * cell_size + margin * 2, BOARD_HEIGHT * cell_size + margin * 2))
        font = pygame.font.SysFont(None, 28)
        commands = _key_commands(game)

        level = args.level
        game.start_game(level, speed)

        running = True
        while running:
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
                elif event.type == pygame.KEYDOWN:
                    state = game.get_game_state()
                    if event.key == pygame.K_ESCAPE:
                        running = False
                    elif event.key == pygame.K_p:
                        toggle_pause(game, down_held=bool(pygame.key.get_pressed()[pygame.K_DOWN]))
                    elif event.key == pygame.K_r and state in (GameState.GAME_OVER, GameState.LEVEL_COMPLETE):
                        if state == GameState.LEVEL_COMPLETE:
                            level += 1
                            game.start_game(level, speed, initial_score=game.get_stats().score)
                        else:
                            game.start_game(level, speed)
                    elif event.key == pygame.K_DOWN:
                        game.set_fast_drop(True)
                    elif event.key in commands:
                        commands[event.key]()
                elif event.type == pygame.KEYUP and event.key == pygame.K_DOWN:
                    game.set_fast_drop(False)

            game.update(clock.get_time())
            renderer.draw(screen, game)

            state = game.get_game_state()
            if state != GameState.PLAYING:
                messages = {
                    GameState.PAUSED: "Paused - P to resume",
                    GameState.GAME_OVER: "Game Over - R to restart, ESC to quit",
                    GameState.LEVEL_COMPLETE: "Level clear - R for next level",
                }
                text = font.render(messages.get(state, ""), True, (255, 255, 255))
                rect = text.get_rect(center=(screen.get_width() // 2, 30))
                screen.blit(text, rect)
            pygame.display.flip()

            clock.tick(60)
    finally:
        pygame.quit()


if __name__ == "__main__":  # pragma: no cover
    run()
