from pill_panic_rl.game import GameConfig, GameState, PillPanicGame, SpeedSetting
from pill_panic_rl.visualization.human_play import toggle_pause


def test_resume_drops_fast_drop_released_while_paused():
    game = PillPanicGame(GameConfig(random_seed=0))
    game.start_game(1, SpeedSetting.MEDIUM)
    game.set_fast_drop(True)
    toggle_pause(game, down_held=True)
    assert game.get_game_state() == GameState.PAUSED
    # key released while paused; the engine ignores it
    game.set_fast_drop(False)
    assert game.fall_interval == 80

    toggle_pause(game, down_held=False)
    assert game.get_game_state() == GameState.PLAYING
    assert game.fall_interval == 800


def test_resume_keeps_fast_drop_while_key_still_held():
    game = PillPanicGame(GameConfig(random_seed=0))
    game.start_game(1, SpeedSetting.LOW)
    toggle_pause(game, down_held=False)
    toggle_pause(game, down_held=True)
    assert game.fall_interval == 80
