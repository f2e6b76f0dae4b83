from __future__ import annotations

import itertools
import logging
import random
from dataclasses import dataclass, replace
from enum import Enum, IntEnum
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from .grid import PLAYABLE_COLORS, Color, Coordinate, GameGrid
from .levels import LevelGenerator, generate_infections
from .matcher import process_matches, settle
from .pieces import CellColor, Controllable, Fragment, FragmentGroup, Piece
from .rules import LevelRules, ScoringRules, SpeedRules, SpeedSetting


logger = logging.getLogger(__name__)

FIXED_TIMESTEP_MS = 16.67
MAX_FRAME_DELTA_MS = 100.0

# Batch spawn start columns; capsules are two cells wide
SPAWN_COLUMNS = {1: (3,), 2: (2, 4), 3: (1, 3, 5)}


class GameState(Enum):
    MENU = "menu"
    PLAYING = "playing"
    PAUSED = "paused"
    GAME_OVER = "game_over"
    LEVEL_COMPLETE = "level_complete"


class Direction(Enum):
    LEFT = (-1, 0)
    RIGHT = (1, 0)
    DOWN = (0, 1)


class Action(IntEnum):
    NONE = 0
    LEFT = 1
    RIGHT = 2
    DOWN = 3
    ROTATE = 4
    DROP = 5


class SoundEvent(Enum):
    MOVE = "move"
    ROTATE = "rotate"
    DROP = "drop"
    MATCH = "match"
    GAME_OVER = "game_over"
    LEVEL_COMPLETE = "level_complete"


@dataclass(frozen=True)
class GameStats:
    score: int = 0
    level: int = 1
    infection_count: int = 0
    lines_cleared: int = 0
    pieces_placed: int = 0
    speed_level: int = 0
    speed_setting: SpeedSetting = SpeedSetting.MEDIUM


@dataclass
class GameConfig:
    random_seed: Optional[int] = None
    spawn_y: int = 0
    batch_spawn_chance: float = 0.0  # chance that a spawn drops 1-3 capsules instead of 1
    controllable_fragments: bool = True


StateCallback = Callable[[GameState], None]
StatsCallback = Callable[[GameStats], None]
BoardCallback = Callable[[], None]
SoundHook = Callable[[SoundEvent], None]


class PillPanicGame:
    """Rule engine: board, falling entities, cascades and the level state machine.

    Driven from outside by `update(delta_ms)` once per frame plus the player
    commands. Every active falling entity receives gravity on the same tick;
    the first active user-controllable one receives the commands.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        scoring: Optional[ScoringRules] = None,
        speed: Optional[SpeedRules] = None,
        levels: Optional[LevelRules] = None,
        sound_hook: Optional[SoundHook] = None,
        level_generator: Optional[LevelGenerator] = None,
    ) -> None:
        self.config = config or GameConfig()
        self.scoring = scoring or ScoringRules()
        self.speed = speed or SpeedRules()
        self.levels = levels or LevelRules()
        self.rng = random.Random(self.config.random_seed)
        self.grid = GameGrid()
        self._sound_hook = sound_hook
        self._level_generator = level_generator or generate_infections
        self._ids = itertools.count(1)

        self._on_state_change: Optional[StateCallback] = None
        self._on_stats_change: Optional[StatsCallback] = None
        self._on_board_change: Optional[BoardCallback] = None

        self._state = GameState.MENU
        self._stats = GameStats()
        self._falling: List[Controllable] = []
        self._next_piece: Optional[Piece] = None
        self._accumulator = 0.0
        self._fall_timer = 0.0
        self._fast_drop = False
        self._fall_interval = self.speed.base_interval(SpeedSetting.MEDIUM)

    # ------------------------------------------------------------------
    # Collaborator interface
    # ------------------------------------------------------------------
    def set_callbacks(
        self,
        on_state_change: Optional[StateCallback] = None,
        on_stats_change: Optional[StatsCallback] = None,
        on_board_change: Optional[BoardCallback] = None,
    ) -> None:
        self._on_state_change = on_state_change
        self._on_stats_change = on_stats_change
        self._on_board_change = on_board_change

    def get_board(self) -> GameGrid:
        return self.grid

    def get_all_falling_pieces(self) -> List[Controllable]:
        return list(self._falling)

    def get_current_piece(self) -> Optional[Controllable]:
        for entity in self._falling:
            if entity.is_active and entity.is_user_controllable:
                return entity
        return None

    def get_next_piece(self) -> Optional[Piece]:
        return self._next_piece

    def get_stats(self) -> GameStats:
        return self._stats

    def get_game_state(self) -> GameState:
        return self._state

    @property
    def fall_interval(self) -> int:
        return self._fall_interval

    # ------------------------------------------------------------------
    # Level lifecycle
    # ------------------------------------------------------------------
    def reset(self, seed: Optional[int] = None) -> None:
        """Re-seed and return to the menu with an empty board."""
        if seed is not None:
            self.rng.seed(seed)
        self.grid.clear()
        self._falling = []
        self._next_piece = None
        self._stats = GameStats()
        self._accumulator = 0.0
        self._fall_timer = 0.0
        self._fast_drop = False
        self._change_state(GameState.MENU)

    def start_game(
        self,
        level: int = 1,
        speed_setting: SpeedSetting = SpeedSetting.MEDIUM,
        initial_score: int = 0,
    ) -> None:
        base_interval = self.speed.base_interval(speed_setting)
        self.grid.clear()
        self.grid.add_infections(self._level_generator(self.rng, level, self.grid, self.levels))
        self._stats = GameStats(
            score=initial_score,
            level=level,
            infection_count=self.grid.count_infection(),
            speed_setting=speed_setting,
        )
        self._falling = []
        self._next_piece = self._random_piece()
        self._fall_interval = base_interval
        self._fast_drop = False
        self._accumulator = 0.0
        self._fall_timer = 0.0
        logger.info("Starting level %d (%s, %d infections)", level, speed_setting.value, self._stats.infection_count)
        self._change_state(GameState.PLAYING)
        self._spawn_next()
        self._notify_stats_change()

    def pause(self) -> None:
        if self._state == GameState.PLAYING:
            self._change_state(GameState.PAUSED)

    def resume(self) -> None:
        if self._state == GameState.PAUSED:
            self._change_state(GameState.PLAYING)

    # ------------------------------------------------------------------
    # Fixed-timestep loop
    # ------------------------------------------------------------------
    def update(self, delta_ms: float) -> None:
        if self._state != GameState.PLAYING:
            return
        self._accumulator += min(max(delta_ms, 0.0), MAX_FRAME_DELTA_MS)
        while self._accumulator >= FIXED_TIMESTEP_MS:
            self._accumulator -= FIXED_TIMESTEP_MS
            self._fixed_update(FIXED_TIMESTEP_MS)
            if self._state != GameState.PLAYING:
                self._accumulator = 0.0
                break

    def _fixed_update(self, timestep: float) -> None:
        if not self._falling:
            return
        self._fall_timer += timestep
        if self._fall_timer >= self._fall_interval:
            self._fall_timer = 0.0
            self._apply_gravity_to_all()

    def _landing_entities(self, active: List[Controllable]) -> List[Controllable]:
        """Entities that stop this pass: blocked by the board, or resting on one that stops."""
        landed = [e for e in active if not e.can_move(self.grid, 0, 1)]
        blocked = {pos for e in landed for pos in e.positions()}
        changed = bool(landed)
        while changed:
            changed = False
            for entity in active:
                if entity in landed:
                    continue
                if any((x, y + 1) in blocked for x, y in entity.positions()):
                    landed.append(entity)
                    blocked.update(entity.positions())
                    changed = True
        return landed

    def _apply_gravity_to_all(self) -> None:
        active = [e for e in self._falling if e.is_active]
        landed = self._landing_entities(active)
        for entity in active:
            if entity not in landed:
                entity.move(0, 1)

        for entity in landed:
            entity.place(self.grid)
            logger.debug("Placed %r", entity)
            if isinstance(entity, Piece):
                self._count_placed_piece()
        if landed:
            self._falling = [e for e in self._falling if e.is_active]

        self._notify_board_change()
        if not self._falling:
            self._resolve_cascades()

    def _count_placed_piece(self) -> None:
        placed = self._stats.pieces_placed + 1
        speed_level = self.speed.speed_level_for(placed)
        self._stats = replace(self._stats, pieces_placed=placed, speed_level=speed_level)
        if not self._fast_drop:
            self._fall_interval = self._progressive_interval()
        self._notify_stats_change()

    def _progressive_interval(self) -> int:
        return self.speed.interval_for(self._stats.speed_setting, self._stats.speed_level)

    # ------------------------------------------------------------------
    # Cascades, spawn, win/loss
    # ------------------------------------------------------------------
    def _falling_positions(self) -> List[Coordinate]:
        return [pos for entity in self._falling for pos in entity.positions()]

    def _resolve_cascades(self) -> None:
        settle(self.grid, self._falling_positions())
        combo = 0
        total_cleared = 0
        while True:
            result = process_matches(self.grid, self._falling_positions())
            if result.cleared_count == 0:
                break
            combo += 1
            total_cleared += result.cleared_count
            gained = self.scoring.score_for_clear(result.cleared_count, combo)
            self._stats = replace(self._stats, score=self._stats.score + gained)
            logger.debug(
                "Cascade step %d: cleared %d cells (%d infections), freed %d, +%d",
                combo, result.cleared_count, result.infections_cleared, len(result.freed), gained,
            )
            self._play(SoundEvent.MATCH)
            if result.freed:
                self._falling.append(self._make_fragments(result.freed))
            self._notify_board_change()

        self._stats = replace(
            self._stats,
            lines_cleared=self._stats.lines_cleared + self.scoring.lines_for_cells(total_cleared),
            infection_count=self.grid.count_infection(),
        )
        self._notify_stats_change()

        if self._stats.infection_count == 0:
            self._level_complete()
        elif not self._falling:
            self._spawn_next()

    def _make_fragments(self, freed: Sequence[CellColor]) -> Controllable:
        controllable = self.config.controllable_fragments
        fragments = [Fragment(next(self._ids), c.color, c.x, c.y, controllable) for c in freed]
        if len(fragments) == 1:
            return fragments[0]
        return FragmentGroup(next(self._ids), fragments, controllable)

    def _random_colors(self) -> Tuple[Color, Color]:
        return self.rng.choice(PLAYABLE_COLORS), self.rng.choice(PLAYABLE_COLORS)

    def _random_piece(self) -> Piece:
        return Piece(next(self._ids), self._random_colors(), x=SPAWN_COLUMNS[1][0], y=self.config.spawn_y)

    def _batch_size(self) -> int:
        if self.config.batch_spawn_chance > 0 and self.rng.random() < self.config.batch_spawn_chance:
            return self.rng.randint(1, 3)
        return 1

    def _spawn_next(self) -> None:
        if self._falling or self._next_piece is None:
            return
        batch_size = self._batch_size()
        batch: List[Piece] = []
        for i, column in enumerate(SPAWN_COLUMNS[batch_size]):
            piece = self._next_piece if i == 0 else self._random_piece()
            piece.x = max(0, min(self.grid.width - 2, column))
            piece.y = self.config.spawn_y
            batch.append(piece)
        self._next_piece = self._random_piece()
        self._falling.extend(batch)
        self._fall_timer = 0.0
        logger.debug("Spawned %d capsule(s): %r", batch_size, batch)
        self._notify_board_change()

        if any(not piece.can_move(self.grid, 0, 0) for piece in batch):
            self._game_over()

    def _game_over(self) -> None:
        logger.info("Game over on level %d with score %d", self._stats.level, self._stats.score)
        self._play(SoundEvent.GAME_OVER)
        self._change_state(GameState.GAME_OVER)

    def _level_complete(self) -> None:
        bonus = self.scoring.level_complete_bonus(self._stats.level)
        self._stats = replace(self._stats, score=self._stats.score + bonus)
        logger.info("Level %d complete, score %d", self._stats.level, self._stats.score)
        self._play(SoundEvent.LEVEL_COMPLETE)
        self._change_state(GameState.LEVEL_COMPLETE)
        self._notify_stats_change()

    # ------------------------------------------------------------------
    # Player commands
    # ------------------------------------------------------------------
    def _controlled(self) -> Optional[Controllable]:
        if self._state != GameState.PLAYING:
            return None
        return self.get_current_piece()

    def move_pill(self, direction: Direction) -> bool:
        entity = self._controlled()
        if entity is None:
            return False
        dx, dy = direction.value
        if not entity.can_move(self.grid, dx, dy):
            return False
        entity.move(dx, dy)
        if direction != Direction.DOWN:
            self._play(SoundEvent.MOVE)
        self._notify_board_change()
        return True

    def rotate_pill(self) -> bool:
        entity = self._controlled()
        if entity is None or not entity.try_rotate(self.grid):
            return False
        self._play(SoundEvent.ROTATE)
        self._notify_board_change()
        return True

    def drop_pill(self) -> bool:
        """Hard drop: slide down while legal. Placement waits for the next gravity pass."""
        entity = self._controlled()
        if entity is None:
            return False
        while entity.can_move(self.grid, 0, 1):
            entity.move(0, 1)
        self._play(SoundEvent.DROP)
        self._notify_board_change()
        return True

    def set_fast_drop(self, fast: bool) -> None:
        if self._state != GameState.PLAYING:
            return
        self._fast_drop = bool(fast)
        self._fall_interval = self.speed.fast_interval if fast else self._progressive_interval()

    def find_piece_at(self, x: int, y: int) -> Optional[Controllable]:
        for entity in self._falling:
            if entity.is_active and (x, y) in entity.positions():
                return entity
        return None

    def tap_to_rotate(self, x: int, y: int) -> bool:
        if self._state != GameState.PLAYING:
            return False
        entity = self.find_piece_at(x, y)
        if entity is None or not entity.try_rotate(self.grid):
            return False
        self._play(SoundEvent.ROTATE)
        self._notify_board_change()
        return True

    def apply_action(self, action: Action) -> bool:
        if action == Action.LEFT:
            return self.move_pill(Direction.LEFT)
        if action == Action.RIGHT:
            return self.move_pill(Direction.RIGHT)
        if action == Action.DOWN:
            return self.move_pill(Direction.DOWN)
        if action == Action.ROTATE:
            return self.rotate_pill()
        if action == Action.DROP:
            return self.drop_pill()
        return True

    def legal_actions(self) -> List[Action]:
        entity = self._controlled()
        if entity is None:
            return [Action.NONE]
        legal = [Action.NONE]
        for action, direction in ((Action.LEFT, Direction.LEFT), (Action.RIGHT, Direction.RIGHT), (Action.DOWN, Direction.DOWN)):
            if entity.can_move(self.grid, *direction.value):
                legal.append(action)
        if entity.can_rotate(self.grid):
            legal.append(Action.ROTATE)
        legal.append(Action.DROP)
        return legal

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------
    def get_state(self) -> np.ndarray:
        # Falling entities overlaid as negative colors on a copy of the board
        state = self.grid.clone_state()
        for entity in self._falling:
            if not entity.is_active:
                continue
            for cell in entity.cells():
                if self.grid.is_in_bounds(cell.x, cell.y):
                    state[cell.y, cell.x] = -int(cell.color)
        return state

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------
    def _play(self, event: SoundEvent) -> None:
        if self._sound_hook is not None:
            self._sound_hook(event)

    def _change_state(self, state: GameState) -> None:
        if state == self._state:
            return
        logger.info("State %s -> %s", self._state.value, state.value)
        self._state = state
        if self._on_state_change is not None:
            self._on_state_change(state)

    def _notify_stats_change(self) -> None:
        if self._on_stats_change is not None:
            self._on_stats_change(self._stats)

    def _notify_board_change(self) -> None:
        if self._on_board_change is not None:
            self._on_board_change()
