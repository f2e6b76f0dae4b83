from __future__ import annotations

from typing import Tuple

import pygame

from pill_panic_rl.game import CellKind, Color, PillPanicGame


def _color_for(color: int) -> Tuple[int, int, int]:
    palette = {
        Color.RED: (230, 60, 60),
        Color.BLUE: (60, 110, 235),
        Color.YELLOW: (240, 215, 60),
    }
    return palette.get(Color(int(color)), (200, 200, 200))


class Renderer:
    def __init__(self, cell_size: int = 30, margin: int = 20) -> None:
        self.cell_size = cell_size
        self.margin = margin

    def _rect(self, x: int, y: int) -> pygame.Rect:
        return pygame.Rect(x * self.cell_size, y * self.cell_size, self.cell_size - 1, self.cell_size - 1)

    def _grid_surface(self, game: PillPanicGame) -> pygame.Surface:
        grid = game.get_board()
        surf = pygame.Surface((grid.width * self.cell_size, grid.height * self.cell_size))
        surf.fill((30, 30, 36))
        for y in range(grid.height):
            for x in range(grid.width):
                rect = self._rect(x, y)
                kind = int(grid.kinds[y, x])
                if kind == CellKind.EMPTY:
                    pygame.draw.rect(surf, (20, 20, 26), rect)
                elif kind == CellKind.INFECTION:
                    # infections drawn as circles
                    pygame.draw.rect(surf, (20, 20, 26), rect)
                    pygame.draw.circle(surf, _color_for(grid.colors[y, x]), rect.center, self.cell_size // 2 - 3)
                else:
                    pygame.draw.rect(surf, _color_for(grid.colors[y, x]), rect, border_radius=6)
        for entity in game.get_all_falling_pieces():
            if not entity.is_active:
                continue
            for cell in entity.cells():
                if grid.is_in_bounds(cell.x, cell.y):
                    rect = self._rect(cell.x, cell.y)
                    pygame.draw.rect(surf, _color_for(cell.color), rect, border_radius=6)
                    pygame.draw.rect(surf, (250, 250, 250), rect, width=1, border_radius=6)
        return surf

    def draw(self, screen: pygame.Surface, game: PillPanicGame) -> None:
        grid_surf = self._grid_surface(game)
        screen.fill((10, 10, 14))
        screen.blit(grid_surf, (self.margin, self.margin))
