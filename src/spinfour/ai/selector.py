import logging
import random
from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Optional, Tuple

from ..board import Board, Player
from . import minimax
from .evaluation import BASIC_WEIGHTS, EXPERT_WEIGHTS, MASTER_WEIGHTS, Weights
from .tactics import (
    PLAIN,
    Action,
    Placement,
    Rotation,
    Rules,
    find_blocking_move,
    find_blocking_rotation,
    find_winning_move,
    placement_defends,
    random_move,
    ranked_rotations,
    strategic_move,
    strategic_rotation,
    tactical_move,
    winning_actions,
    winning_rotation,
)

logger = logging.getLogger(__name__)


class Difficulty(IntEnum):
    EASY = 1
    MEDIUM = 2
    HARD = 3
    EXPERT = 4
    MASTER = 5

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def from_label(cls, label: str) -> "Difficulty":
        try:
            return cls[label.strip().upper()]
        except KeyError:
            raise ValueError(f"unknown difficulty {label!r}") from None


SEARCH_DEPTH: Dict[Difficulty, int] = {
    Difficulty.HARD: 3,
    Difficulty.EXPERT: 6,
    Difficulty.MASTER: 8,
}

TIER_WEIGHTS: Dict[Difficulty, Weights] = {
    Difficulty.EASY: BASIC_WEIGHTS,
    Difficulty.MEDIUM: BASIC_WEIGHTS,
    Difficulty.HARD: BASIC_WEIGHTS,
    Difficulty.EXPERT: EXPERT_WEIGHTS,
    Difficulty.MASTER: MASTER_WEIGHTS,
}

# Master plays a near-optimal alternative this often, never a worse one.
MASTER_VARIATION = 0.1
NEAR_OPTIMAL_MARGIN = 50
ROTATION_VARIATION = 0.15
ROTATION_MARGIN = 100


@dataclass(frozen=True)
class AIContext:
    """Read-only view of a session handed to the selector on the computer's turn."""

    board: Board
    current_player: Player
    rotation_counts: Tuple[int, int, int, int] = (0, 0, 0, 0)
    rotation_cap: Optional[int] = None
    auto_rotate: bool = False

    @property
    def rules(self) -> Rules:
        return Rules(
            auto_rotate=self.auto_rotate,
            manual_rotations=not self.auto_rotate,
            rotation_counts=self.rotation_counts,
            rotation_cap=self.rotation_cap,
        )


def _search(board: Board, player: Player, difficulty: Difficulty, rules: Rules,
            time_ms: Optional[int], margin: int = 0):
    return minimax.rank_moves(
        board,
        player,
        max_depth=SEARCH_DEPTH[difficulty],
        time_ms=time_ms,
        rules=rules,
        weights=TIER_WEIGHTS[difficulty],
        margin=margin,
    )


def select_move(board: Board,
                difficulty: Difficulty,
                player: Player,
                context: Optional[AIContext] = None,
                rng=None,
                time_ms: Optional[int] = None) -> Optional[Placement]:
    """Pick a placement for ``player``; None when the board is full."""
    rng = rng or random
    rules = context.rules if context is not None else PLAIN
    if not board.legal_placements():
        return None

    win = find_winning_move(board, player, rules)
    if difficulty == Difficulty.EASY:
        if win is not None and rng.random() < 0.2:
            return win
        return random_move(board, rng)
    if win is not None:
        return win
    block = find_blocking_move(board, player, rules)
    if block is not None:
        return block

    if difficulty == Difficulty.MEDIUM:
        if rng.random() < 0.4:
            return strategic_move(board) or random_move(board, rng)
        return random_move(board, rng)

    if difficulty == Difficulty.HARD:
        tactical = tactical_move(board, player)
        if tactical is not None:
            return tactical
        roll = rng.random()
        if roll < 0.6:
            return strategic_move(board) or random_move(board, rng)
        if roll < 0.85:
            ranked = _search(board, player, difficulty, rules, time_ms)
            if ranked:
                return ranked[0][0]
        return random_move(board, rng)

    if difficulty == Difficulty.EXPERT:
        if rng.random() < 0.9:
            ranked = _search(board, player, difficulty, rules, time_ms)
            if ranked:
                return ranked[0][0]
        return tactical_move(board, player) or strategic_move(board) or random_move(board, rng)

    ranked = _search(board, player, difficulty, rules, time_ms, margin=NEAR_OPTIMAL_MARGIN)
    if not ranked:
        return random_move(board, rng)
    best_move, best_val = ranked[0]
    if rng.random() < MASTER_VARIATION:
        alternatives = [mv for mv, val in ranked[1:] if val > best_val - NEAR_OPTIMAL_MARGIN]
        if alternatives:
            choice = rng.choice(alternatives)
            logger.debug("master varies: %s instead of %s", choice, best_move)
            return choice
    return best_move


def select_rotation(board: Board,
                    player: Player,
                    rotation_counts: Tuple[int, int, int, int],
                    cap: Optional[int],
                    difficulty: Difficulty,
                    rng=None) -> Optional[Rotation]:
    """Pick a rotation for manual-rotation games; None when every quadrant is capped."""
    rng = rng or random
    rules = Rules(manual_rotations=True, rotation_counts=tuple(rotation_counts), rotation_cap=cap)
    options = rules.rotations(board)
    if not options:
        return None
    fallback = rng.choice(options)

    if difficulty == Difficulty.EASY:
        if rng.random() < 0.2:
            return ranked_rotations(board, player, rules)[0][0]
        return fallback

    if difficulty == Difficulty.MEDIUM:
        if rng.random() < 0.4:
            return winning_rotation(board, player, rules) or find_blocking_rotation(board, player, rules) or fallback
        return fallback

    if difficulty == Difficulty.HARD:
        if rng.random() < 0.6:
            return (winning_rotation(board, player, rules)
                    or find_blocking_rotation(board, player, rules)
                    or strategic_rotation(board, player, rules)
                    or fallback)
        return fallback

    if difficulty == Difficulty.EXPERT:
        if rng.random() < 0.9:
            return (winning_rotation(board, player, rules)
                    or find_blocking_rotation(board, player, rules)
                    or ranked_rotations(board, player, rules, EXPERT_WEIGHTS)[0][0])
        return fallback

    win = winning_rotation(board, player, rules)
    if win is not None:
        return win
    block = find_blocking_rotation(board, player, rules)
    if block is not None:
        return block
    ranked = ranked_rotations(board, player, rules, MASTER_WEIGHTS, deep=True)
    if len(ranked) >= 2 and ranked[0][1] - ranked[1][1] < ROTATION_MARGIN and rng.random() < ROTATION_VARIATION:
        return ranked[1][0]
    return ranked[0][0]


def plan_turn(context: AIContext,
              difficulty: Difficulty,
              rng=None,
              time_ms: Optional[int] = None) -> Optional[Action]:
    """Decide the computer's whole turn: a placement, or in manual-rotation
    games possibly a rotation instead."""
    rng = rng or random
    board = context.board
    player = context.current_player
    if not context.auto_rotate and difficulty >= Difficulty.HARD:
        rules = context.rules
        win = find_winning_move(board, player, rules)
        if win is not None:
            return win
        rot = winning_rotation(board, player, rules)
        if rot is not None:
            return rot
        threatened = bool(winning_actions(board, player.opponent, rules))
        if threatened and not placement_defends(board, player, rules):
            defence = find_blocking_rotation(board, player, rules)
            if defence is not None:
                return defence
    move = select_move(board, difficulty, player, context=context, rng=rng, time_ms=time_ms)
    if move is not None:
        return move
    if context.auto_rotate:
        return None
    return select_rotation(board, player, context.rotation_counts, context.rotation_cap, difficulty, rng=rng)
