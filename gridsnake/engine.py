"""Core game state and logic."""

import logging
import random
from collections import deque
from typing import Optional

from .constants import (
    INITIAL_LENGTH, MAX_PENDING_DIRECTIONS,
    FOOD_ROLL_RANGE, FOOD_ROLL_THRESHOLDS,
)
from .models import Cell, Direction, Position

logger = logging.getLogger(__name__)

BOARD_SYMBOLS = {Cell.EMPTY: ".", Cell.SNAKE: "o", Cell.FOOD: "*"}


class SimulationEngine:
    """Single-snake simulation on a bounded grid.

    The body deque (head first) together with the occupancy set and the food
    set are the only state; the grid handed to renderers is derived from them.
    Once ``game_over`` is set the engine ignores every further call.
    """

    def __init__(self, rows: int, cols: int, rng: Optional[random.Random] = None):
        if rows < 1 or cols < INITIAL_LENGTH + 1:
            raise ValueError(
                f"grid {rows}x{cols} is too small for the initial snake "
                f"(need at least 1x{INITIAL_LENGTH + 1})"
            )
        self.rows = rows
        self.cols = cols
        self.rng = rng if rng is not None else random.Random()
        self.direction = Direction.RIGHT
        self.score = 0
        self.game_over = False
        self._pending: deque[Direction] = deque()
        self._body: deque[Position] = deque()
        self._occupied: set[Position] = set()
        self._food: set[Position] = set()

        self._add_snake()
        self._spawn_food(1)

    def _add_snake(self):
        r = self.rows // 2
        for c in range(1, INITIAL_LENGTH + 1):
            self._add_head(Position(r, c))

    # ── Accessors ──────────────────────────────────────────────────

    def head(self) -> Position:
        return self._body[0]

    def tail(self) -> Position:
        return self._body[-1]

    def body(self) -> tuple[Position, ...]:
        return tuple(self._body)

    def food(self) -> tuple[Position, ...]:
        return tuple(sorted(self._food, key=lambda p: (p.row, p.col)))

    def pending_directions(self) -> tuple[Direction, ...]:
        return tuple(self._pending)

    def cell(self, pos: Position) -> Cell:
        if self.outside_grid(pos):
            return Cell.OUTSIDE
        if pos in self._occupied:
            return Cell.SNAKE
        if pos in self._food:
            return Cell.FOOD
        return Cell.EMPTY

    def grid(self) -> list[list[Cell]]:
        return [
            [self.cell(Position(r, c)) for c in range(self.cols)]
            for r in range(self.rows)
        ]

    def board_text(self) -> str:
        """Return the board as text, one line per row, head drawn as ``@``."""
        lines = []
        head = self.head()
        for r, row in enumerate(self.grid()):
            chars = [BOARD_SYMBOLS[cell] for cell in row]
            if head.row == r:
                chars[head.col] = "@"
            lines.append("".join(chars))
        return "\n".join(lines)

    # ── Direction buffering ────────────────────────────────────────

    def _last_direction(self) -> Direction:
        if self._pending:
            return self._pending[-1]
        return self.direction

    def can_change_direction(self, direction: Direction) -> bool:
        if self.game_over or len(self._pending) >= MAX_PENDING_DIRECTIONS:
            return False
        last = self._last_direction()
        return direction != last and direction != last.opposite

    def request_direction_change(self, direction: Direction):
        if self.can_change_direction(direction):
            self._pending.append(direction)

    # ── Movement ───────────────────────────────────────────────────

    def outside_grid(self, pos: Position) -> bool:
        return pos.row < 0 or pos.row >= self.rows or pos.col < 0 or pos.col >= self.cols

    def will_hit(self, new_head: Position) -> Cell:
        if self.outside_grid(new_head):
            return Cell.OUTSIDE
        # The tail leaves its cell on this same tick.
        if new_head == self.tail():
            return Cell.EMPTY
        return self.cell(new_head)

    def advance(self):
        if self.game_over:
            return

        if self._pending:
            self.direction = self._pending.popleft()

        new_head = self.head().translate(self.direction)
        hit = self.will_hit(new_head)

        if hit in (Cell.OUTSIDE, Cell.SNAKE):
            self.game_over = True
            logger.debug("Game over at %s (%s), score %d", new_head, hit.value, self.score)
        elif hit == Cell.EMPTY:
            self._remove_tail()
            self._add_head(new_head)
        elif hit == Cell.FOOD:
            self._food.discard(new_head)
            self._add_head(new_head)
            self.score += 1
            if not self._food:
                self._spawn_food(self.food_spawn_count())

    def _add_head(self, pos: Position):
        self._body.appendleft(pos)
        self._occupied.add(pos)

    def _remove_tail(self):
        tail = self._body.pop()
        self._occupied.discard(tail)

    # ── Food ───────────────────────────────────────────────────────

    def empty_positions(self) -> list[Position]:
        return [
            Position(r, c)
            for r in range(self.rows)
            for c in range(self.cols)
            if self.cell(Position(r, c)) == Cell.EMPTY
        ]

    def food_spawn_count(self) -> int:
        roll = self.rng.randrange(FOOD_ROLL_RANGE)
        one, two = FOOD_ROLL_THRESHOLDS
        if roll < one:
            return 1
        if roll < two:
            return 2
        return 3

    def _spawn_food(self, count: int) -> list[Position]:
        empty = self.empty_positions()
        placed = self.rng.sample(empty, min(count, len(empty)))
        self._food.update(placed)
        logger.debug("Spawned %d food (requested %d)", len(placed), count)
        return placed

    def __repr__(self):
        return (
            f"<SimulationEngine {self.rows}x{self.cols} length={len(self._body)} "
            f"score={self.score} game_over={self.game_over}>"
        )
