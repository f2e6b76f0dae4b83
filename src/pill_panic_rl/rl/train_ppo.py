from __future__ import annotations

import argparse
import logging
import os
from typing import Any, Callable, Dict

import gymnasium as gym

# Ensure envs are registered
import pill_panic_rl.env  # noqa: F401
from pill_panic_rl.env.wrappers import ResampleInvalidActionWrapper
from pill_panic_rl.game import GameConfig, SpeedSetting


ENV_ID = "PillPanic-8x16-v0"


def make_env(level: int = 1, seed: int | None = None, **env_kwargs: Any) -> gym.Env:
    config = GameConfig(random_seed=seed, batch_spawn_chance=float(env_kwargs.pop("batch_spawn_chance", 0.0)))
    env = gym.make(ENV_ID, config=config, level=level, **env_kwargs)
    # Resample invalid actions for vanilla PPO; also forwards get_action_mask
    env = ResampleInvalidActionWrapper(env)
    if seed is not None:
        env.reset(seed=seed)
    return env


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser()
    p.add_argument("--algo", choices=["ppo", "maskable"], default="maskable")
    p.add_argument("--level", type=int, default=1)
    p.add_argument("--speed", choices=[s.value for s in SpeedSetting], default=SpeedSetting.MEDIUM.value)
    p.add_argument("--frames_per_step", type=int, default=6,
                   help="Engine frames (16.67 ms each) advanced per agent action")
    p.add_argument("--batch_spawn_chance", type=float, default=0.0)
    p.add_argument("--timesteps", type=int, default=500_000)
    p.add_argument("--checkpoint_every", type=int, default=50_000)
    p.add_argument("--logdir", type=str, default="./logs/pillpanic")
    p.add_argument("--save_path", type=str, default="./models/pillpanic.zip")
    p.add_argument("--n_envs", type=int, default=8)
    return p


def _env_factory(args: argparse.Namespace, index: int, masked: bool) -> Callable[[], gym.Env]:
    env_kwargs: Dict[str, Any] = {
        "speed_setting": SpeedSetting(args.speed),
        "frames_per_step": args.frames_per_step,
        "batch_spawn_chance": args.batch_spawn_chance,
    }

    def thunk() -> gym.Env:
        env = make_env(args.level, seed=index, **env_kwargs)
        if masked:
            from sb3_contrib.common.wrappers import ActionMasker

            env = ActionMasker(env, lambda e: e.get_action_mask())
        return env

    return thunk


def main() -> None:
    args = build_parser().parse_args()
    logging.basicConfig(level=logging.WARNING)

    from stable_baselines3.common.callbacks import CheckpointCallback
    from stable_baselines3.common.vec_env import SubprocVecEnv, VecMonitor

    masked = args.algo == "maskable"
    if masked:
        from sb3_contrib import MaskablePPO as Algo
    else:
        from stable_baselines3 import PPO as Algo

    vec_env = VecMonitor(SubprocVecEnv([_env_factory(args, i, masked) for i in range(args.n_envs)]))
    model = Algo(
        policy="MultiInputPolicy",
        env=vec_env,
        verbose=1,
        tensorboard_log=args.logdir,
    )

    save_dir = os.path.dirname(args.save_path) or "."
    os.makedirs(save_dir, exist_ok=True)
    checkpoints = CheckpointCallback(
        save_freq=max(1, args.checkpoint_every // args.n_envs),
        save_path=os.path.join(save_dir, "checkpoints"),
        name_prefix="pillpanic",
    )
    model.learn(total_timesteps=args.timesteps, callback=checkpoints)
    model.save(args.save_path)
    vec_env.close()
    print(f"Saved {args.algo} model to {args.save_path}")


if __name__ == "__main__":  # pragma: no cover
    main()
