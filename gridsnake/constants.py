"""Game constants."""

import os

ROWS, COLS = 15, 15
INITIAL_LENGTH = 3
MAX_PENDING_DIRECTIONS = 2

# Food batch roll: randrange(100) below the first threshold spawns 1,
# below the second spawns 2, anything else spawns 3.
FOOD_ROLL_RANGE = 100
FOOD_ROLL_THRESHOLDS = (60, 90)

# Session timing, in seconds
TICK_INTERVAL = 0.2
POLL_INTERVAL = 0.01
COUNTDOWN_FROM = 3
COUNTDOWN_STEP = 0.5
DEAD_SEGMENT_DELAY = 0.05
GAME_OVER_DELAY = 1.0

HOST = os.environ.get("SNAKE_HOST", "127.0.0.1")
PORT = int(os.environ.get("SNAKE_PORT", "8765"))
SEED = os.environ.get("SNAKE_SEED")

PAUSE_KEYS = {"p", "P"}
KEY_DIRECTIONS = {
    "w": "up", "W": "up", "ArrowUp": "up",
    "s": "down", "S": "down", "ArrowDown": "down",
    "a": "left", "A": "left", "ArrowLeft": "left",
    "d": "right", "D": "right", "ArrowRight": "right",
}
