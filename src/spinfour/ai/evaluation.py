"""
Static position evaluation.

All tiers share one evaluator; a tier only changes the ``Weights`` it is
scored with. Scores are from ``player``'s point of view: positive is good
for ``player``.
"""

import logging
from dataclasses import dataclass
from functools import wraps
from typing import Callable, List, Tuple, TypeVar

from ..board import (
    LINES,
    LINES_THROUGH,
    SIZE,
    Board,
    Outcome,
    Player,
    Quadrant,
    detect_outcome,
    quadrant_cells,
)

logger = logging.getLogger(__name__)

WIN_SCORE = 1_000_000

CENTER_WEIGHTS = [
    [3, 4, 4, 3],
    [4, 6, 6, 4],
    [4, 6, 6, 4],
    [3, 4, 4, 3],
]

CORNERS = ((0, 0), (0, 3), (3, 0), (3, 3))

# Rows and columns come first in LINES, the two diagonals last.
_DIAGONAL_START = 2 * SIZE

_NEIGHBOURS = ((0, 1), (1, 0), (1, 1), (1, -1))


@dataclass(frozen=True)
class Weights:
    lines: float = 1.0
    center: float = 1.0
    corners: float = 0.0
    quadrants: float = 0.0
    connectivity: float = 0.0
    threats: float = 0.0
    forks: float = 0.0


BASIC_WEIGHTS = Weights()
EXPERT_WEIGHTS = Weights(lines=2.0, center=2.0, corners=1.0, quadrants=1.5, connectivity=1.0, threats=3.0, forks=2.0)
MASTER_WEIGHTS = Weights(lines=3.0, center=2.0, corners=1.0, quadrants=2.5, connectivity=2.5, threats=4.0, forks=3.0)

F = TypeVar("F", bound=Callable[..., int])


def neutral_on_error(fn: F) -> F:
    """Score a malformed board as 0 instead of aborting the search."""

    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except (IndexError, TypeError, ValueError) as e:
            logger.debug("%s scored 0 on a malformed board: %s", fn.__name__, e)
            return 0

    return wrapper  # type: ignore[return-value]


def line_counts(board: Board, line: List[Tuple[int, int]], player: Player) -> Tuple[int, int, int]:
    me = int(player)
    mc = 0
    yc = 0
    for r, c in line:
        v = board.grid[r][c]
        if v == me:
            mc += 1
        elif v != 0:
            yc += 1
    return mc, yc, len(line) - mc - yc


@neutral_on_error
def line_score(board: Board, player: Player) -> int:
    s = 0
    for idx, line in enumerate(LINES):
        mc, yc, _ = line_counts(board, line, player)
        if yc == 0 and mc > 0:
            v = 10 ** mc
        elif mc == 0 and yc > 0:
            v = -(10 ** yc)
        else:
            continue
        if idx >= _DIAGONAL_START:
            v = v * 3 // 2
        s += v
    return s


@neutral_on_error
def center_control(board: Board, player: Player) -> int:
    me = int(player)
    s = 0
    for r, c, v in board.cells():
        if v == me:
            s += CENTER_WEIGHTS[r][c]
        elif v != 0:
            s -= CENTER_WEIGHTS[r][c]
    return s


@neutral_on_error
def corner_control(board: Board, player: Player) -> int:
    me = int(player)
    s = 0
    for r, c in CORNERS:
        v = board.grid[r][c]
        if v == me:
            s += 15
        elif v != 0:
            s -= 10
    return s


@neutral_on_error
def quadrant_control(board: Board, player: Player) -> int:
    s = 0
    for q in Quadrant:
        mc, yc, empty = line_counts(board, quadrant_cells(q), player)
        if mc == 4:
            s += 80
        elif mc == 3 and empty == 1:
            s += 40
        elif mc == 2 and empty == 2:
            s += 15
        elif mc > yc:
            s += (mc - yc) * 5
        if yc == 4:
            s -= 60
        elif yc == 3 and empty == 1:
            s -= 30
    return s


def _adjacent_pairs(board: Board, value: int) -> int:
    n = 0
    for r, c, v in board.cells():
        if v != value:
            continue
        for dr, dc in _NEIGHBOURS:
            rr, cc = r + dr, c + dc
            if 0 <= rr < SIZE and 0 <= cc < SIZE and board.grid[rr][cc] == value:
                n += 1
    return n


@neutral_on_error
def connectivity(board: Board, player: Player) -> int:
    return 10 * (_adjacent_pairs(board, int(player)) - _adjacent_pairs(board, int(player.opponent)))


@neutral_on_error
def threats(board: Board, player: Player) -> int:
    s = 0
    for idx, line in enumerate(LINES):
        mc, yc, empty = line_counts(board, line, player)
        diagonal = idx >= _DIAGONAL_START
        if mc == 3 and empty == 1:
            s += 120 if diagonal else 100
        elif mc == 2 and empty == 2:
            s += 25 if diagonal else 20
        if yc == 3 and empty == 1:
            s -= 100 if diagonal else 80
    return s


@neutral_on_error
def fork_potential(board: Board, row: int, col: int, player: Player) -> int:
    """Lines through (row, col) that ``player`` is building; 0 unless two or more."""
    n = 0
    for line in LINES_THROUGH[row][col]:
        mc, yc, empty = line_counts(board, line, player)
        if mc >= 2 and yc == 0 and empty >= 1:
            n += 1
    return n if n > 1 else 0


@neutral_on_error
def fork_cells(board: Board, player: Player) -> int:
    """Empty cells where one more stone would open two near-complete lines."""
    n = 0
    for r, c in board.legal_placements():
        lines = 0
        for line in LINES_THROUGH[r][c]:
            mc, yc, _ = line_counts(board, line, player)
            if mc >= 2 and yc == 0:
                lines += 1
        if lines >= 2:
            n += 1
    return n


@neutral_on_error
def evaluate(board: Board, player: Player, weights: Weights = BASIC_WEIGHTS) -> int:
    outcome = detect_outcome(board)
    if outcome == Outcome.DRAW:
        return 0
    if outcome.winner == player:
        return WIN_SCORE
    if outcome.winner == player.opponent:
        return -WIN_SCORE
    total = weights.lines * line_score(board, player)
    total += weights.center * center_control(board, player)
    if weights.corners:
        total += weights.corners * corner_control(board, player)
    if weights.quadrants:
        total += weights.quadrants * quadrant_control(board, player)
    if weights.connectivity:
        total += weights.connectivity * connectivity(board, player)
    if weights.threats:
        total += weights.threats * threats(board, player)
    if weights.forks:
        total += weights.forks * 50 * (fork_cells(board, player) - fork_cells(board, player.opponent))
    return int(total)
