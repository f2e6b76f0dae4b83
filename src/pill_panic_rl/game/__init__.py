"""Game module for Pill Panic RL.

Exports the rule engine and supporting classes:
- GameGrid: Fixed-size cell board with bounds/occupancy queries
- Piece, Fragment, FragmentGroup: Falling entities with movement and rotation
- find_matches / clear_matches / apply_gravity / process_matches: Matching and cascades
- ScoringRules, SpeedRules, LevelRules: Scoring, fall speed and level configuration
- PillPanicGame: Fixed-timestep game loop and state machine
"""

from .grid import (
    BOARD_HEIGHT,
    BOARD_WIDTH,
    EMPTY_CELL,
    OUT_OF_BOUNDS,
    Cell,
    CellKind,
    Color,
    GameGrid,
    Infection,
)
from .pieces import Controllable, Fragment, FragmentGroup, KICK_OFFSETS, Orientation, Piece
from .matcher import (
    MIN_MATCH_LENGTH,
    Run,
    apply_gravity,
    clear_matches,
    find_matches,
    process_matches,
)
from .rules import LevelRules, ScoringRules, SpeedRules, SpeedSetting
from .levels import generate_infections
from .core import (
    Action,
    Direction,
    GameConfig,
    GameState,
    GameStats,
    PillPanicGame,
    SoundEvent,
)

__all__ = [
    "BOARD_HEIGHT",
    "BOARD_WIDTH",
    "EMPTY_CELL",
    "OUT_OF_BOUNDS",
    "Cell",
    "CellKind",
    "Color",
    "GameGrid",
    "Infection",
    "Controllable",
    "Fragment",
    "FragmentGroup",
    "KICK_OFFSETS",
    "Orientation",
    "Piece",
    "MIN_MATCH_LENGTH",
    "Run",
    "apply_gravity",
    "clear_matches",
    "find_matches",
    "process_matches",
    "LevelRules",
    "ScoringRules",
    "SpeedRules",
    "SpeedSetting",
    "generate_infections",
    "Action",
    "Direction",
    "GameConfig",
    "GameState",
    "GameStats",
    "PillPanicGame",
    "SoundEvent",
]
