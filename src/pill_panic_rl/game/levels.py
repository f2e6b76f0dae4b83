from __future__ import annotations

import logging
import math
import random
from typing import Callable, List

from .grid import PLAYABLE_COLORS, GameGrid, Infection
from .rules import LevelRules


logger = logging.getLogger(__name__)

MAX_PLACEMENT_ATTEMPTS = 200

LevelGenerator = Callable[[random.Random, int, GameGrid, LevelRules], List[Infection]]


def generate_infections(rng: random.Random, level: int, grid: GameGrid, rules: LevelRules) -> List[Infection]:
    """Random infection layout for `level` in the lower part of an empty `grid`.

    Higher levels get more infections spread over more of the board. A slot
    that cannot be filled within MAX_PLACEMENT_ATTEMPTS tries is skipped.
    """
    count = rules.infection_count(level)
    min_y = int(math.floor(grid.height * (1.0 - rules.board_usage(level))))
    max_y = grid.height - 1
    taken = set()
    infections: List[Infection] = []
    for _ in range(count):
        for _attempt in range(MAX_PLACEMENT_ATTEMPTS):
            x = rng.randrange(grid.width)
            y = rng.randint(min_y, max_y)
            if (x, y) in taken or not grid.is_empty(x, y):
                continue
            taken.add((x, y))
            infections.append(Infection(x, y, rng.choice(PLAYABLE_COLORS)))
            break
    if len(infections) < count:
        logger.warning("Placed %d of %d infections for level %d", len(infections), count, level)
    logger.debug("Generated %d infections for level %d in rows %d..%d", len(infections), level, min_y, max_y)
    return infections
