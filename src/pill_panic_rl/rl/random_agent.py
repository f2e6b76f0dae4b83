from __future__ import annotations

import numpy as np
import gymnasium as gym

import pill_panic_rl.env  # noqa: F401


def run_random(steps: int = 2000, seed: int | None = None, level: int = 1) -> float:
    """Baseline that picks uniformly among the currently legal actions."""
    env = gym.make("PillPanic-8x16-v0", level=level)
    rng = np.random.default_rng(seed)
    obs, info = env.reset(seed=seed)
    total_reward = 0.0
    cleared_levels = 0
    episodes = 0
    for _ in range(steps):
        legal = np.flatnonzero(info["action_mask"])
        obs, reward, terminated, truncated, info = env.step(int(rng.choice(legal)))
        total_reward += float(reward)
        if terminated or truncated:
            episodes += 1
            cleared_levels += info["state"] == "level_complete"
            print(f"Episode {episodes}: {info['state']} after {info['steps']} steps, "
                  f"score={info['score']} infections left={info['infection_count']}")
            obs, info = env.reset()
    env.close()
    print(f"Random agent total reward: {total_reward:.2f} ({episodes} episodes, {cleared_levels} cleared)")
    return total_reward


if __name__ == "__main__":  # pragma: no cover
    run_random()
