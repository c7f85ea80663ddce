import time
import math
from typing import List, Tuple, Optional, Dict
from ..board import Board, Player, Outcome, detect_outcome
from .evaluation import CENTER_WEIGHTS, BASIC_WEIGHTS, Weights, evaluate as static_eval
from .tactics import Action, Placement, Rules, PLAIN

Key = Tuple[int, tuple, tuple]
TTEntry = Tuple[int, int, int, Optional[Action]]
TT: Dict[Key, TTEntry] = {}

MATE = 1_000_000_000
MATE_HORIZON = 10_000

STATS: Dict[str, int] = {
    "nodes": 0,
    "evals": 0,
    "tt_probe": 0,
    "tt_hit": 0,
    "cuts": 0,
    "leaf_terminal": 0,
}

def reset_stats() -> None:
    for k in STATS:
        STATS[k] = 0
    TT.clear()

def stats_snapshot() -> Dict[str, int]:
    return dict(STATS)

def board_key(board: Board, to_move: Player, rules: Rules) -> Key:
    return (int(to_move), board.grid, rules.rotation_counts)

def apply_move(board: Board, player: Player, mv: Action, rules: Rules) -> Tuple[Board, Rules, Optional[Player], bool]:
    b2, r2 = rules.apply(board, mv, player)
    outcome = detect_outcome(b2)
    if outcome == Outcome.NONE:
        return b2, r2, None, False
    STATS["leaf_terminal"] += 1
    return b2, r2, outcome.winner, True

def order_moves(moves: List[Action], tt_best: Optional[Action]) -> List[Action]:
    if tt_best is not None and tt_best in moves:
        return [tt_best] + [m for m in moves if m != tt_best]
    def score(m: Action) -> int:
        if isinstance(m, Placement):
            return CENTER_WEIGHTS[m.row][m.col]
        return 0
    return sorted(moves, key=score, reverse=True)

def evaluate(board: Board, player_to_maximize: Player, weights: Weights) -> int:
    STATS["evals"] += 1
    return static_eval(board, player_to_maximize, weights)

def terminal_value(winner: Optional[Player], player_to_maximize: Player, depth: int) -> int:
    # Remaining depth is larger for quicker results: win fast, lose slow.
    if winner is None:
        return 0
    if winner == player_to_maximize:
        return MATE - (MATE_HORIZON - depth)
    return -MATE + (MATE_HORIZON - depth)

def search(board: Board,
           rules: Rules,
           player_to_move: Player,
           player_to_maximize: Player,
           depth: int,
           alpha: float,
           beta: float,
           deadline: Optional[float],
           weights: Weights) -> int:
    STATS["nodes"] += 1
    if depth == 0 or (deadline is not None and time.time() > deadline):
        return evaluate(board, player_to_maximize, weights)

    moves = rules.actions(board)
    if not moves:
        return evaluate(board, player_to_maximize, weights)

    key = board_key(board, player_to_move, rules)
    STATS["tt_probe"] += 1
    tt_move: Optional[Action] = None
    if key in TT:
        tt_depth, tt_val, tt_flag, tt_move = TT[key]
        if tt_depth >= depth:
            STATS["tt_hit"] += 1
            if tt_flag == 0:
                return tt_val
            if tt_flag < 0 and tt_val <= alpha:
                return tt_val
            if tt_flag > 0 and tt_val >= beta:
                return tt_val
    moves = order_moves(moves, tt_move)

    maximizing = player_to_move == player_to_maximize
    best = -math.inf if maximizing else math.inf
    best_mv: Optional[Action] = None
    a0, b0 = alpha, beta
    for mv in moves:
        b2, r2, winner, terminal = apply_move(board, player_to_move, mv, rules)
        if terminal:
            val = terminal_value(winner, player_to_maximize, depth)
        else:
            val = search(b2, r2, player_to_move.opponent, player_to_maximize, depth - 1,
                         alpha, beta, deadline, weights)
        if maximizing:
            if val > best:
                best = val
                best_mv = mv
            alpha = max(alpha, best)
        else:
            if val < best:
                best = val
                best_mv = mv
            beta = min(beta, best)
        if beta <= alpha:
            STATS["cuts"] += 1
            break
    flag = 0
    if best <= a0:
        flag = -1
    elif best >= b0:
        flag = 1
    TT[key] = (depth, int(best), flag, best_mv)
    return int(best)

def rank_moves(board: Board,
               player_to_move: Player,
               max_depth: int = 3,
               time_ms: Optional[int] = None,
               rules: Rules = PLAIN,
               weights: Weights = BASIC_WEIGHTS,
               margin: int = 0,
               placements_only: bool = True) -> List[Tuple[Action, int]]:
    """Root moves with their scores from the deepest fully searched depth, best first.

    Moves scoring within ``margin`` of the best carry exact values; the rest
    only carry upper bounds.
    """
    TT.clear()
    start_ts = time.time()
    deadline = None if time_ms is None else start_ts + time_ms / 1000.0
    root = [Placement(r, c) for r, c in board.legal_placements()] if placements_only else rules.actions(board)
    if not root:
        return []
    ranked: List[Tuple[Action, int]] = []

    for d in range(1, max_depth + 1):
        if d > 1 and deadline is not None and time.time() > deadline:
            break
        tt_best = ranked[0][0] if ranked else None
        moves = order_moves(root, tt_best)
        scored: List[Tuple[Action, int]] = []
        best_val = -math.inf
        # depth 1 ignores the deadline so there is always an answer
        d_deadline = deadline if d > 1 else None
        for mv in moves:
            b2, r2, winner, terminal = apply_move(board, player_to_move, mv, rules)
            if terminal:
                val = terminal_value(winner, player_to_move, d)
            else:
                alpha = best_val - margin if best_val > -math.inf else -math.inf
                val = search(b2, r2, player_to_move.opponent, player_to_move, d - 1,
                             alpha, math.inf, d_deadline, weights)
            scored.append((mv, val))
            best_val = max(best_val, val)
        if d_deadline is not None and time.time() > d_deadline:
            break
        scored.sort(key=lambda item: item[1], reverse=True)
        ranked = scored
        if abs(ranked[0][1]) >= MATE - MATE_HORIZON:
            break
    return ranked

def best_move(board: Board,
              player_to_move: Player,
              max_depth: int = 3,
              time_ms: Optional[int] = None,
              rules: Rules = PLAIN,
              weights: Weights = BASIC_WEIGHTS,
              placements_only: bool = True) -> Optional[Action]:
    ranked = rank_moves(board, player_to_move, max_depth=max_depth, time_ms=time_ms,
                        rules=rules, weights=weights, placements_only=placements_only)
    if not ranked:
        return None
    return ranked[0][0]
