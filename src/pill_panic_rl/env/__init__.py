"""Gymnasium environments for Pill Panic RL."""

from __future__ import annotations

from gymnasium.envs.registration import register

# Register default Pill Panic environment (6 discrete actions)
register(
    id="PillPanic-8x16-v0",
    entry_point="pill_panic_rl.env.pill_panic_env:PillPanicEnv",
)

__all__ = ["PillPanic-8x16-v0"]
