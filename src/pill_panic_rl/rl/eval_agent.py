from __future__ import annotations

import argparse
import logging
from typing import List

import pygame

from pill_panic_rl.game import GameState
from pill_panic_rl.rl.train_ppo import make_env
from pill_panic_rl.visualization.renderer import Renderer


logger = logging.getLogger(__name__)

CELL_SIZE = 30
MARGIN = 24


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Watch a trained agent play Pill Panic")
    p.add_argument("--algo", choices=["ppo", "maskable"], default="maskable")
    p.add_argument("--model", type=str, required=True)
    p.add_argument("--level", type=int, default=1)
    p.add_argument("--episodes", type=int, default=5)
    p.add_argument("--fps", type=int, default=30)
    p.add_argument("--advance_levels", action="store_true",
                   help="Start the next episode one level higher after a cleared level")
    return p


def main() -> None:
    args = build_parser().parse_args()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    if args.algo == "maskable":
        from sb3_contrib import MaskablePPO as Algo
    else:
        from stable_baselines3 import PPO as Algo

    env = make_env(args.level)
    model = Algo.load(args.model, device="auto")
    game = env.unwrapped.game
    renderer = Renderer(cell_size=CELL_SIZE, margin=MARGIN)

    pygame.init()
    try:
        screen = pygame.display.set_mode(
            (MARGIN * 2 + game.grid.width * CELL_SIZE, MARGIN * 2 + game.grid.height * CELL_SIZE)
        )
        pygame.display.set_caption("Pill Panic - agent replay")
        font = pygame.font.SysFont(None, 20)
        clock = pygame.time.Clock()

        level = args.level
        scores: List[int] = []
        obs, info = env.reset(options={"level": level})
        episode_reward = 0.0
        while len(scores) < args.episodes:
            for event in pygame.event.get():
                if event.type == pygame.QUIT or (event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE):
                    return

            if args.algo == "maskable":
                action, _ = model.predict(obs, deterministic=True, action_masks=env.get_action_mask())
            else:
                action, _ = model.predict(obs, deterministic=True)
            obs, reward, terminated, truncated, info = env.step(int(action))
            episode_reward += float(reward)

            renderer.draw(screen, game)
            hud = font.render(
                f"level {level}  score {info['score']}  infections {info['infection_count']}", True, (230, 230, 230)
            )
            screen.blit(hud, (MARGIN, 4))
            pygame.display.flip()
            clock.tick(args.fps)

            if terminated or truncated:
                scores.append(int(info["score"]))
                logger.info("Episode %d on level %d: %s, score %d, reward %.2f",
                            len(scores), level, info["state"], info["score"], episode_reward)
                if args.advance_levels and info["state"] == GameState.LEVEL_COMPLETE.value:
                    level += 1
                obs, info = env.reset(options={"level": level})
                episode_reward = 0.0

        logger.info("Mean score over %d episodes: %.1f", len(scores), sum(scores) / max(1, len(scores)))
    finally:
        env.close()
        pygame.quit()


if __name__ == "__main__":  # pragma: no cover
    main()
