import argparse
import random
import time
from statistics import mean
from typing import Optional

from spinfour.board import Board, Player, apply_placement, detect_outcome, initialize, Outcome
from spinfour.ai.minimax import reset_stats, stats_snapshot
from spinfour.ai.selector import Difficulty, select_move

def random_position(plies: int, seed: int = 42):
    rng = random.Random(seed)
    board = initialize()
    side = Player.BLACK
    for _ in range(plies):
        if detect_outcome(board) != Outcome.NONE:
            break
        moves = board.legal_placements()
        if not moves:
            break
        r, c = rng.choice(moves)
        nxt = apply_placement(board, r, c, side)
        if detect_outcome(nxt) != Outcome.NONE:
            # keep benchmark positions undecided
            continue
        board = nxt
        side = side.opponent
    return board, side

def bench_position(board: Board, side: Player, difficulty: Difficulty, time_ms: Optional[int], repeats: int, seed: int):
    times = []
    nodes = []
    evals = []
    cuts = []
    tt_probe = []
    tt_hit = []
    for i in range(repeats):
        reset_stats()
        rng = random.Random(seed + i)
        t0 = time.time()
        _ = select_move(board, difficulty, side, rng=rng, time_ms=time_ms)
        dt = time.time() - t0
        s = stats_snapshot()
        times.append(dt)
        nodes.append(s["nodes"])
        evals.append(s["evals"])
        cuts.append(s["cuts"])
        tt_probe.append(s["tt_probe"])
        tt_hit.append(s["tt_hit"])
    return {
        "time_s_avg": mean(times),
        "nodes_avg": int(mean(nodes)),
        "nps": int(mean(nodes) / mean(times)) if mean(times) > 0 else 0,
        "evals_avg": int(mean(evals)),
        "cuts_avg": int(mean(cuts)),
        "tt_probe_avg": int(mean(tt_probe)),
        "tt_hit_avg": int(mean(tt_hit)),
    }

def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--plies", type=int, nargs="+", default=[0, 3, 6, 9])
    parser.add_argument("--tiers", nargs="+", choices=[d.label for d in Difficulty],
                        default=[d.label for d in Difficulty])
    parser.add_argument("--time", type=int, default=None)
    parser.add_argument("--repeats", type=int, default=3)
    parser.add_argument("--seed", type=int, default=42)
    args = parser.parse_args()

    print("Spin-four move selection benchmark")
    for p in args.plies:
        board, side = random_position(p, seed=args.seed)
        print(f"\nPosition after {p} plies (to move: {'B' if side == Player.BLACK else 'W'})")
        for label in args.tiers:
            res = bench_position(board, side, Difficulty.from_label(label), args.time, args.repeats, args.seed)
            print(f"{label:>7}  time={res['time_s_avg']:.3f}s  nodes={res['nodes_avg']:>8}  nps={res['nps']:>8}  evals={res['evals_avg']:>8}  cuts={res['cuts_avg']:>8}  tt_hit={res['tt_hit_avg']:>8}/{res['tt_probe_avg']:>8}")

if __name__ == "__main__":
    main()
