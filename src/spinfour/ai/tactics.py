import random
from dataclasses import dataclass, replace
from typing import List, NamedTuple, Optional, Tuple, Union

from ..board import (
    LINES_THROUGH,
    Board,
    Direction,
    Outcome,
    Player,
    Quadrant,
    apply_placement,
    detect_outcome,
    quadrant_cells,
    quadrant_index_for_cell,
    rotate_quadrant,
)
from .evaluation import Weights, BASIC_WEIGHTS, evaluate, fork_potential, line_counts, line_score


class Placement(NamedTuple):
    row: int
    col: int


class Rotation(NamedTuple):
    quadrant: Quadrant
    direction: Direction


Action = Union[Placement, Rotation]

# Centre first, then corners, then edges.
PRIORITY_CELLS = [
    (1, 1), (1, 2), (2, 1), (2, 2),
    (0, 0), (0, 3), (3, 0), (3, 3),
    (0, 1), (0, 2), (1, 0), (1, 3),
    (2, 0), (2, 3), (3, 1), (3, 2),
]


@dataclass(frozen=True)
class Rules:
    """How a turn resolves: plain placement, placement plus automatic rotation,
    or placement and rotation as separate turns."""

    auto_rotate: bool = False
    manual_rotations: bool = False
    rotation_counts: Tuple[int, int, int, int] = (0, 0, 0, 0)
    rotation_cap: Optional[int] = None

    def can_rotate(self, q: Quadrant) -> bool:
        return self.rotation_cap is None or self.rotation_counts[int(q)] < self.rotation_cap

    def _counted(self, q: Quadrant) -> "Rules":
        counts = list(self.rotation_counts)
        counts[int(q)] += 1
        return replace(self, rotation_counts=tuple(counts))

    def rotations(self, board: Board, distinct: bool = False) -> List[Rotation]:
        """Rotations allowed under the cap; ``distinct`` drops ones that leave
        the board unchanged or duplicate another rotation's result."""
        out: List[Rotation] = []
        seen = set()
        for q in Quadrant:
            if not self.can_rotate(q):
                continue
            for d in (Direction.CW, Direction.CCW):
                if distinct:
                    grid = rotate_quadrant(board, q, d).grid
                    if grid == board.grid or grid in seen:
                        continue
                    seen.add(grid)
                out.append(Rotation(q, d))
        return out

    def actions(self, board: Board) -> List[Action]:
        out: List[Action] = [Placement(r, c) for r, c in board.legal_placements()]
        if self.manual_rotations:
            out.extend(self.rotations(board, distinct=True))
        return out

    def apply(self, board: Board, action: Action, player: Player) -> Tuple[Board, "Rules"]:
        if isinstance(action, Rotation):
            return rotate_quadrant(board, action.quadrant, action.direction), self._counted(action.quadrant)
        r, c = action
        b2 = apply_placement(board, r, c, player)
        if b2 is board:
            raise ValueError(f"illegal placement ({r}, {c})")
        if self.auto_rotate:
            q = quadrant_index_for_cell(r, c)
            if self.can_rotate(q):
                return rotate_quadrant(b2, q, Direction.CW), self._counted(q)
        return b2, self


PLAIN = Rules()


def wins(board: Board, player: Player) -> bool:
    return detect_outcome(board) == Outcome.win_for(player)


def winning_actions(board: Board, player: Player, rules: Rules = PLAIN, include_rotations: bool = True) -> List[Action]:
    out: List[Action] = []
    candidates: List[Action] = [Placement(r, c) for r, c in board.legal_placements()]
    if include_rotations and rules.manual_rotations:
        candidates.extend(rules.rotations(board))
    for action in candidates:
        b2, _ = rules.apply(board, action, player)
        if wins(b2, player):
            out.append(action)
    return out


def find_winning_move(board: Board, player: Player, rules: Rules = PLAIN) -> Optional[Placement]:
    moves = winning_actions(board, player, rules, include_rotations=False)
    return moves[0] if moves else None


def is_safe_after(board: Board, action: Action, player: Player, rules: Rules) -> bool:
    b2, r2 = rules.apply(board, action, player)
    outcome = detect_outcome(b2)
    if outcome == Outcome.win_for(player.opponent):
        return False
    if outcome != Outcome.NONE:
        return True
    return not winning_actions(b2, player.opponent, r2)


def find_blocking_move(board: Board, player: Player, rules: Rules = PLAIN) -> Optional[Placement]:
    """A placement that leaves the opponent without an immediate win.

    Occupying one of the opponent's winning cells is tried first. When
    nothing stops every threat, the first threatened cell is returned.
    """
    opponent_wins = winning_actions(board, player.opponent, rules)
    if not opponent_wins:
        return None
    threats = [a for a in opponent_wins if isinstance(a, Placement)]
    legal = [Placement(r, c) for r, c in board.legal_placements()]
    ordered = threats + [m for m in legal if m not in threats]
    for move in ordered:
        if is_safe_after(board, move, player, rules):
            return move
    return threats[0] if threats else None


def placement_defends(board: Board, player: Player, rules: Rules) -> bool:
    return any(is_safe_after(board, Placement(r, c), player, rules) for r, c in board.legal_placements())


def find_blocking_rotation(board: Board, player: Player, rules: Rules) -> Optional[Rotation]:
    if not winning_actions(board, player.opponent, rules):
        return None
    for rot in rules.rotations(board):
        if is_safe_after(board, rot, player, rules):
            return rot
    return None


def winning_rotation(board: Board, player: Player, rules: Rules) -> Optional[Rotation]:
    for rot in rules.rotations(board):
        if wins(rotate_quadrant(board, rot.quadrant, rot.direction), player):
            return rot
    return None


def strategic_move(board: Board) -> Optional[Placement]:
    for r, c in PRIORITY_CELLS:
        if board.grid[r][c] == 0:
            return Placement(r, c)
    return None


def random_move(board: Board, rng=random) -> Optional[Placement]:
    moves = board.legal_placements()
    if not moves:
        return None
    r, c = rng.choice(moves)
    return Placement(r, c)


def prevents_opponent_fork(board: Board, move: Placement, player: Player) -> int:
    b2 = apply_placement(board, move.row, move.col, player)
    opp = player.opponent
    for r, c in b2.legal_placements():
        b3 = apply_placement(b2, r, c, opp)
        if fork_potential(b3, r, c, opp) > 0:
            return 0
    return 1


def shared_lines(board: Board, move: Placement, player: Player) -> float:
    me = int(player)
    count = sum(1 for c in range(4) if board.grid[move.row][c] == me)
    count += sum(1 for r in range(4) if board.grid[r][move.col] == me)
    q = quadrant_index_for_cell(move.row, move.col)
    count += sum(1 for r, c in quadrant_cells(q) if board.grid[r][c] == me)
    return count * 0.5


def defensive_value(board: Board, move: Placement, player: Player) -> int:
    opp = player.opponent
    b2 = apply_placement(board, move.row, move.col, opp)
    value = 0
    for line in LINES_THROUGH[move.row][move.col]:
        mc, _, _ = line_counts(b2, line, opp)
        if mc >= 3:
            value += 5
    return value


def tactical_score(board: Board, move: Placement, player: Player) -> float:
    placed = apply_placement(board, move.row, move.col, player)
    score = fork_potential(placed, move.row, move.col, player) * 50
    score += prevents_opponent_fork(board, move, player) * 40
    if move.row in (1, 2) and move.col in (1, 2):
        score += 30
    if move.row == move.col or move.row + move.col == 3:
        score += 15
    score += shared_lines(board, move, player) * 20
    score += defensive_value(board, move, player) * 30
    return score


def tactical_move(board: Board, player: Player) -> Optional[Placement]:
    best: Optional[Placement] = None
    best_score = 0.0
    for r, c in board.legal_placements():
        s = tactical_score(board, Placement(r, c), player)
        if s > best_score:
            best_score = s
            best = Placement(r, c)
    return best


# -- rotation scoring --------------------------------------------------------


def _follow_up(board: Board, player: Player, win_bonus: int, fork_bonus: int, min_fork: int) -> int:
    value = 0
    for r, c in board.legal_placements():
        b2 = apply_placement(board, r, c, player)
        if wins(b2, player):
            value += win_bonus
        fork = fork_potential(b2, r, c, player)
        if fork > min_fork:
            value += fork * fork_bonus
    return value


def ranked_rotations(
    board: Board,
    player: Player,
    rules: Rules,
    weights: Weights = BASIC_WEIGHTS,
    deep: bool = False,
) -> List[Tuple[Rotation, int]]:
    """Score every allowed rotation by the position it leaves plus the
    follow-up placements it opens for both sides."""
    opp = player.opponent
    scored = []
    for rot in rules.rotations(board):
        b2 = rotate_quadrant(board, rot.quadrant, rot.direction)
        value = evaluate(b2, player, weights)
        if deep:
            value += _follow_up(b2, player, 2000, 100, 1)
            value -= _follow_up(b2, opp, 1500, 80, 1)
        else:
            value += _follow_up(b2, player, 1000, 50, 0)
            if find_winning_move(b2, opp) is not None:
                value -= 1000
        scored.append((rot, value))
    scored.sort(key=lambda item: item[1], reverse=True)
    return scored


def strategic_rotation(board: Board, player: Player, rules: Rules) -> Optional[Rotation]:
    best: Optional[Rotation] = None
    best_value = 0
    for rot in rules.rotations(board):
        v = line_score(rotate_quadrant(board, rot.quadrant, rot.direction), player)
        if v > best_value:
            best_value = v
            best = rot
    return best
