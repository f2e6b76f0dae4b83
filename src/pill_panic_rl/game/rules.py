from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict


class SpeedSetting(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class ScoringRules:
    clear_points: int = 100
    level_bonus: int = 1000
    cells_per_line: int = 4

    def score_for_clear(self, cleared: int, combo: int) -> int:
        if cleared <= 0:
            return 0
        return cleared * self.clear_points * max(1, combo)

    def lines_for_cells(self, cleared: int) -> int:
        return cleared // self.cells_per_line

    def level_complete_bonus(self, level: int) -> int:
        return self.level_bonus * level


def _default_intervals() -> Dict[SpeedSetting, int]:
    return {SpeedSetting.LOW: 1000, SpeedSetting.MEDIUM: 800, SpeedSetting.HIGH: 500}


@dataclass
class SpeedRules:
    base_intervals: Dict[SpeedSetting, int] = field(default_factory=_default_intervals)
    fast_interval: int = 80
    increase_interval: int = 10  # capsules placed per speed level
    increase_factor: float = 0.9
    max_increases: int = 20
    min_interval: int = 50

    def base_interval(self, setting: SpeedSetting) -> int:
        try:
            return self.base_intervals[setting]
        except KeyError:
            raise ValueError(f"Unknown speed setting: {setting!r}") from None

    def speed_level_for(self, pieces_placed: int) -> int:
        return min(pieces_placed // self.increase_interval, self.max_increases)

    def interval_for(self, setting: SpeedSetting, speed_level: int) -> int:
        interval = self.base_interval(setting) * (self.increase_factor ** speed_level)
        return max(self.min_interval, int(interval))


@dataclass
class LevelRules:
    infections_per_level: int = 4
    max_infections: int = 48
    base_usage: float = 0.5
    usage_per_level: float = 0.02
    max_usage: float = 0.85

    def infection_count(self, level: int) -> int:
        return min(self.infections_per_level * max(1, level), self.max_infections)

    def board_usage(self, level: int) -> float:
        # Fraction of the board (from the floor up) that may hold infections
        return min(self.base_usage + level * self.usage_per_level, self.max_usage)
