"""Data models."""

from dataclasses import dataclass
from enum import Enum


class Cell(Enum):
    EMPTY = "empty"
    SNAKE = "snake"
    FOOD = "food"
    # Never stored in the grid; the classification of a move off the board.
    OUTSIDE = "outside"


class Direction(Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"

    @property
    def delta(self) -> tuple[int, int]:
        return _DELTAS[self]

    @property
    def opposite(self) -> "Direction":
        return _OPPOSITES[self]


_DELTAS = {
    Direction.UP: (-1, 0),
    Direction.DOWN: (1, 0),
    Direction.LEFT: (0, -1),
    Direction.RIGHT: (0, 1),
}
_OPPOSITES = {
    Direction.UP: Direction.DOWN,
    Direction.DOWN: Direction.UP,
    Direction.LEFT: Direction.RIGHT,
    Direction.RIGHT: Direction.LEFT,
}


@dataclass(frozen=True)
class Position:
    row: int
    col: int

    def translate(self, direction: Direction) -> "Position":
        dr, dc = direction.delta
        return Position(self.row + dr, self.col + dc)

    def as_list(self) -> list[int]:
        return [self.row, self.col]


class SessionPhase(Enum):
    IDLE = "idle"
    COUNTDOWN = "countdown"
    RUNNING = "running"
    PAUSED = "paused"
    GAME_OVER = "game_over"
