import sys
import argparse
from typing import Optional, Tuple

from spinfour.board import Direction, Player, Quadrant
from spinfour.errors import GameError
from spinfour.game import AI_SEAT, GameMode, GameSession, GameSettings, RotationMode
from spinfour.ai.selector import Difficulty, plan_turn
from spinfour.ai.tactics import Rotation

COLS = "ABCD"
ROWS = "1234"
ME = "terminal"

def render_board(s: GameSession) -> None:
    grid = s.board.grid
    sep = "  +---+---++---+---+"
    print("    " + "   ".join(COLS))
    for r in range(4):
        if r in (0, 2):
            print(sep)
        line = []
        for c in range(4):
            v = grid[r][c]
            ch = "." if v == 0 else ("B" if v == int(Player.BLACK) else "W")
            line.append(ch)
        left = str(r + 1) + " | "
        mid = " | ".join(line[:2]) + " || " + " | ".join(line[2:])
        print(left + mid + " |")
    print(sep)
    counts = " ".join(f"{q.name}:{s.rotation_counts[q]}" for q in Quadrant)
    cap = "inf" if s.rotation_cap is None else s.rotation_cap
    print(f"  rotations {counts} (cap {cap})")

def parse_cell(s: str) -> Tuple[int, int]:
    cell = s.strip().upper()
    if len(cell) != 2 or cell[0] not in COLS or cell[1] not in ROWS:
        raise ValueError("Cell")
    return ROWS.index(cell[1]), COLS.index(cell[0])

def parse_rotation(quad: str, direc: str) -> Tuple[Quadrant, Direction]:
    qmap = {q.name: q for q in Quadrant}
    dmap = {"CW": Direction.CW, "CCW": Direction.CCW}
    if quad.upper() not in qmap:
        raise ValueError("Quadrant")
    if direc.upper() not in dmap:
        raise ValueError("Direction")
    return qmap[quad.upper()], dmap[direc.upper()]

def action_to_str(action) -> str:
    if isinstance(action, Rotation):
        d = "CW" if action.direction == Direction.CW else "CCW"
        return f"rotate {action.quadrant.name} {d}"
    return f"place {COLS[action.col]}{ROWS[action.row]}"

def play_computer(s: GameSession, time_ms: Optional[int]) -> None:
    while s.is_ai_turn():
        action = plan_turn(s.ai_context(), s.settings.difficulty, time_ms=time_ms)
        if action is None:
            return
        print(f"[W-BOT] {action_to_str(action)}")
        if isinstance(action, Rotation):
            s.rotate(AI_SEAT, int(action.quadrant), action.direction)
        else:
            s.place(AI_SEAT, action.row, action.col)
        render_board(s)

def print_help() -> None:
    print("Commands:")
    print("  place <Cell>            e.g. place B2")
    print("  rotate <Quadrant> <Dir> e.g. rotate Q00 CW (manual rotation only)")
    print("  skip, reset, board, help, quit")
    print("Cell: A-D + 1-4, Quadrant: Q00 Q01 Q10 Q11, Dir: CW or CCW")

def main() -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("--mode", choices=["local", "vs-ai"], default="vs-ai")
    parser.add_argument("--difficulty", choices=[d.label for d in Difficulty], default="medium")
    parser.add_argument("--rotation", choices=["manual", "auto"], default="auto")
    parser.add_argument("--cap", type=int, default=None)
    parser.add_argument("--time", type=int, default=1500)
    args = parser.parse_args()

    settings = GameSettings(
        game_mode=GameMode(args.mode),
        rotation_mode=RotationMode(args.rotation),
        difficulty=Difficulty.from_label(args.difficulty),
        rotation_cap=args.cap,
    )
    s = GameSession("cli", settings, creator=ME)
    print("Spin-four CLI")
    print_help()
    render_board(s)

    while True:
        if s.is_over:
            if s.outcome.winner is not None:
                print(f"Winner: {s.outcome.winner.label.capitalize()}")
            else:
                print("Draw.")
            print("Type reset to play again or quit to leave.")
        p = "B" if s.current_player == Player.BLACK else "W"
        try:
            line = input(f"[{p}] > ").strip()
        except EOFError:
            print()
            break
        if not line:
            continue
        parts = line.split()
        cmd = parts[0].lower()
        if cmd in ("q", "quit", "exit"):
            print("Bye.")
            return 0
        if cmd in ("h", "help", "?"):
            print_help()
            continue
        if cmd in ("b", "board"):
            render_board(s)
            continue
        try:
            if cmd == "place" and len(parts) == 2:
                r, c = parse_cell(parts[1])
                s.place(ME, r, c)
            elif cmd == "rotate" and len(parts) == 3:
                q, d = parse_rotation(parts[1], parts[2])
                s.rotate(ME, int(q), d)
            elif cmd == "skip":
                s.skip_turn()
            elif cmd == "reset":
                s.reset(ME)
            else:
                raise ValueError("unknown command, try help")
        except (ValueError, GameError) as e:
            print(f"Invalid: {e}")
            continue
        render_board(s)
        play_computer(s, args.time)
    return 0

if __name__ == "__main__":
    sys.exit(main())
