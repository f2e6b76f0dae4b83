from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

import numpy as np
import gymnasium as gym
from gymnasium import spaces

from pill_panic_rl.game import (
    BOARD_HEIGHT,
    BOARD_WIDTH,
    Action,
    GameConfig,
    GameState,
    PillPanicGame,
    SpeedSetting,
)
from pill_panic_rl.game.core import FIXED_TIMESTEP_MS


RENDER_CELL_PX = 12

RGB_PALETTE = {
    0: (30, 30, 36),
    1: (240, 60, 60),    # infections
    2: (60, 110, 240),
    3: (240, 220, 60),
    4: (180, 30, 30),    # committed capsule cells
    5: (30, 60, 180),
    6: (180, 160, 30),
}


def _compute_action_mask(game: PillPanicGame) -> np.ndarray:
    mask = np.zeros((len(Action),), dtype=np.bool_)
    for action in game.legal_actions():
        mask[int(action)] = True
    return mask


class PillPanicEnv(gym.Env):
    """Single-level Pill Panic episodes driven through the engine's command interface.

    Each step applies one action to the controlled capsule, then advances the
    engine by `frames_per_step` fixed timesteps. The episode terminates on
    game over or when the level is cleared.
    """

    metadata = {"render_modes": ["human", "rgb_array"], "render_fps": 30}

    def __init__(self, config: Optional[GameConfig] = None, render_mode: Optional[str] = None,
                 level: int = 1,
                 speed_setting: SpeedSetting = SpeedSetting.MEDIUM,
                 frames_per_step: int = 6,
                 max_episode_steps: int = 5000,
                 reward_weights: Optional[Dict[str, float]] = None,
                 invalid_action_penalty: float = -0.1,
                 step_penalty: float = 0.0,
                 terminal_penalty: float = -5.0) -> None:
        super().__init__()
        self.game = PillPanicGame(config)
        self.render_mode = render_mode
        self.level = int(level)
        self.speed_setting = speed_setting
        self.frames_per_step = int(frames_per_step)
        self.max_episode_steps = int(max_episode_steps)

        # Reward shaping parameters
        self.invalid_action_penalty = float(invalid_action_penalty)
        self.step_penalty = float(step_penalty)
        self.terminal_penalty = float(terminal_penalty)
        self.reward_weights: Dict[str, float] = {
            "score": 0.001,       # reward per engine score point
            "infections": 1.0,    # reward per infection cleared
            "level_complete": 10.0,
        }
        if reward_weights:
            self.reward_weights.update({k: float(v) for k, v in reward_weights.items()})

        self.observation_space = spaces.Dict(
            {
                "grid": spaces.Box(low=0, high=6, shape=(BOARD_HEIGHT, BOARD_WIDTH), dtype=np.int8),
                "falling": spaces.Box(low=0, high=3, shape=(BOARD_HEIGHT, BOARD_WIDTH), dtype=np.int8),
                "next_colors": spaces.Box(low=0, high=3, shape=(2,), dtype=np.int8),
            }
        )
        self.action_space = spaces.Discrete(len(Action))

        self._last_obs: Optional[Dict[str, Any]] = None
        self._steps = 0

    def _get_obs(self) -> Dict[str, Any]:
        state = self.game.get_state()
        grid = np.where(state > 0, state, 0).astype(np.int8)
        falling = np.where(state < 0, -state, 0).astype(np.int8)
        next_colors = np.zeros((2,), dtype=np.int8)
        nxt = self.game.get_next_piece()
        if nxt is not None:
            next_colors[:] = [int(c) for c in nxt.colors]
        return {"grid": grid, "falling": falling, "next_colors": next_colors}

    def _get_info(self) -> Dict[str, Any]:
        stats = self.game.get_stats()
        return {
            "action_mask": _compute_action_mask(self.game),
            "score": stats.score,
            "infection_count": stats.infection_count,
            "pieces_placed": stats.pieces_placed,
            "state": self.game.get_game_state().value,
            "steps": self._steps,
        }

    def get_action_mask(self) -> np.ndarray:
        return _compute_action_mask(self.game)

    def reset(self, *, seed: Optional[int] = None, options: Optional[dict] = None) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        super().reset(seed=seed)
        options = options or {}
        self.game.reset(seed)
        self.game.start_game(int(options.get("level", self.level)), self.speed_setting)
        self._steps = 0
        obs = self._get_obs()
        self._last_obs = obs
        return obs, self._get_info()

    def step(self, action: int):
        action = Action(int(action))
        before = self.game.get_stats()

        reward_components: Dict[str, float] = {}
        if bool(self.get_action_mask()[int(action)]):
            self.game.apply_action(action)
        else:
            reward_components["invalid"] = self.invalid_action_penalty

        for _ in range(self.frames_per_step):
            self.game.update(FIXED_TIMESTEP_MS)

        after = self.game.get_stats()
        state = self.game.get_game_state()
        reward_components["score"] = self.reward_weights["score"] * float(after.score - before.score)
        reward_components["infections"] = self.reward_weights["infections"] * float(
            max(0, before.infection_count - after.infection_count))
        reward_components["step"] = self.step_penalty

        terminated = state in (GameState.GAME_OVER, GameState.LEVEL_COMPLETE)
        if state == GameState.GAME_OVER:
            reward_components["terminal"] = self.terminal_penalty
        elif state == GameState.LEVEL_COMPLETE:
            reward_components["level_complete"] = self.reward_weights["level_complete"]
        self._steps += 1
        truncated = (not terminated) and self._steps >= self.max_episode_steps

        reward = float(sum(reward_components.values()))
        obs = self._get_obs()
        info = self._get_info()
        info["reward_components"] = reward_components
        self._last_obs = obs
        return obs, reward, terminated, truncated, info

    def render(self) -> Optional[np.ndarray]:
        if self.render_mode != "rgb_array":
            # the pygame viewer in pill_panic_rl.visualization handles human play
            return None
        obs = self._last_obs if self._last_obs is not None else self._get_obs()
        # falling cells reuse the committed-capsule shades
        codes = np.where(obs["falling"] > 0, obs["falling"] + 3, obs["grid"])
        palette = np.array([RGB_PALETTE[i] for i in range(len(RGB_PALETTE))], dtype=np.uint8)
        img = palette[codes]
        return np.repeat(np.repeat(img, RENDER_CELL_PX, axis=0), RENDER_CELL_PX, axis=1)
