from __future__ import annotations

import numpy as np
import gymnasium as gym


class ResampleInvalidActionWrapper(gym.Wrapper):
    """Replace a masked-out action with a uniformly drawn legal one.

    For agents without action masking (vanilla PPO, random baselines). The
    replacement is reported as ``info["resampled_from"]``. `get_action_mask()`
    is forwarded so masking algorithms can sit on top of it.
    """

    def step(self, action):  # type: ignore[override]
        requested = int(action)
        mask = self.get_action_mask()
        resampled = False
        if not (0 <= requested < mask.shape[0] and mask[requested]):
            legal = np.flatnonzero(mask)
            # NONE is always legal, so there is something to draw from
            action = int(self.np_random.choice(legal))
            resampled = True
        obs, reward, terminated, truncated, info = self.env.step(action)
        if resampled:
            info["resampled_from"] = requested
        return obs, reward, terminated, truncated, info

    def get_action_mask(self) -> np.ndarray:
        return self.env.unwrapped.get_action_mask()
