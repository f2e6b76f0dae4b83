import gymnasium as gym
import numpy as np

import pill_panic_rl.env  # noqa: F401  registers the environment ids
from pill_panic_rl.env.pill_panic_env import PillPanicEnv
from pill_panic_rl.env.wrappers import ResampleInvalidActionWrapper
from pill_panic_rl.game import Action, GameConfig, GameState


def test_reset_returns_observation_inside_space():
    env = PillPanicEnv()
    obs, info = env.reset(seed=3)
    assert set(obs) == {"grid", "falling", "next_colors"}
    assert obs["grid"].shape == (16, 8)
    assert obs["falling"].dtype == np.int8
    assert env.observation_space.contains(obs)
    # the spawned capsule shows up in the falling layer only
    assert np.count_nonzero(obs["falling"]) == 2
    assert np.count_nonzero(obs["grid"]) == info["infection_count"] == 4
    assert info["state"] == GameState.PLAYING.value


def test_action_mask_matches_engine_legal_actions():
    env = PillPanicEnv()
    env.reset(seed=0)
    mask = env.get_action_mask()
    assert mask.dtype == np.bool_
    assert mask.shape == (len(Action),)
    assert mask[Action.NONE]
    assert [Action(i) for i in np.flatnonzero(mask)] == env.game.legal_actions()


def test_reset_is_reproducible_for_a_seed():
    env = PillPanicEnv()
    first, _ = env.reset(seed=11)
    second, _ = env.reset(seed=11)
    for key in first:
        np.testing.assert_array_equal(first[key], second[key])


def test_dropping_until_episode_ends():
    env = PillPanicEnv(max_episode_steps=400)
    env.reset(seed=1)
    terminated = truncated = False
    steps = 0
    while not (terminated or truncated):
        mask = env.get_action_mask()
        action = Action.DROP if mask[Action.DROP] else Action.NONE
        _, reward, terminated, truncated, info = env.step(action)
        assert isinstance(reward, float)
        assert "invalid" not in info["reward_components"]
        steps += 1
    assert steps <= 400
    assert info["pieces_placed"] > 0
    if terminated:
        assert info["state"] in (GameState.GAME_OVER.value, GameState.LEVEL_COMPLETE.value)


def test_masked_action_is_penalized_without_wrapper():
    env = PillPanicEnv(invalid_action_penalty=-0.5)
    env.reset(seed=2)
    env.game.pause()
    assert env.get_action_mask().tolist() == [True] + [False] * (len(Action) - 1)
    _, reward, terminated, _, info = env.step(Action.LEFT)
    assert info["reward_components"]["invalid"] == -0.5
    assert reward == -0.5
    assert not terminated


def test_resample_wrapper_replaces_masked_action():
    env = ResampleInvalidActionWrapper(PillPanicEnv())
    env.reset(seed=2)
    env.unwrapped.game.pause()
    assert env.get_action_mask().sum() == 1
    _, _, _, _, info = env.step(Action.LEFT)
    assert "invalid" not in info["reward_components"]
    assert info["resampled_from"] == Action.LEFT


def test_rgb_render_has_board_shape():
    env = PillPanicEnv(render_mode="rgb_array")
    env.reset(seed=4)
    frame = env.render()
    assert frame.shape == (16 * 12, 8 * 12, 3)
    assert frame.dtype == np.uint8


def test_registered_id_builds_env_with_config():
    env = gym.make("PillPanic-8x16-v0", config=GameConfig(random_seed=5))
    obs, _ = env.reset(seed=5)
    assert obs["grid"].shape == (16, 8)
    env.close()


def test_random_agent_plays_only_legal_actions(capsys):
    from pill_panic_rl.rl.random_agent import run_random

    total = run_random(steps=60, seed=0)
    assert isinstance(total, float)
    assert "Random agent total reward" in capsys.readouterr().out
