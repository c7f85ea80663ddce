from enum import Enum, IntEnum
from typing import Iterator, List, Optional, Tuple

SIZE = 4

Cell = Tuple[int, int]
Grid = Tuple[Tuple[int, ...], ...]


class Player(IntEnum):
    BLACK = 1
    WHITE = 2

    @property
    def opponent(self) -> "Player":
        return Player.BLACK if self == Player.WHITE else Player.WHITE

    @property
    def label(self) -> str:
        return self.name.lower()


class Quadrant(IntEnum):
    Q00 = 0
    Q01 = 1
    Q10 = 2
    Q11 = 3

    @property
    def origin(self) -> Cell:
        return 2 * (int(self) // 2), 2 * (int(self) % 2)


class Direction(IntEnum):
    CW = 1
    CCW = -1

    @property
    def label(self) -> str:
        return "clockwise" if self == Direction.CW else "counter-clockwise"

    @classmethod
    def from_label(cls, label: str) -> "Direction":
        if label == "clockwise":
            return cls.CW
        if label == "counter-clockwise":
            return cls.CCW
        raise ValueError(f"invalid direction {label!r}")


class Outcome(Enum):
    NONE = "none"
    BLACK_WINS = "black-wins"
    WHITE_WINS = "white-wins"
    DRAW = "draw"

    @property
    def winner(self) -> Optional[Player]:
        if self == Outcome.BLACK_WINS:
            return Player.BLACK
        if self == Outcome.WHITE_WINS:
            return Player.WHITE
        return None

    @classmethod
    def win_for(cls, player: Player) -> "Outcome":
        return cls.BLACK_WINS if player == Player.BLACK else cls.WHITE_WINS


def _compute_lines() -> List[List[Cell]]:
    lines = []
    for r in range(SIZE):
        lines.append([(r, c) for c in range(SIZE)])
    for c in range(SIZE):
        lines.append([(r, c) for r in range(SIZE)])
    lines.append([(k, k) for k in range(SIZE)])
    lines.append([(k, SIZE - 1 - k) for k in range(SIZE)])
    return lines


LINES = _compute_lines()


def _lines_through() -> List[List[List[List[Cell]]]]:
    table: List[List[List[List[Cell]]]] = [[[] for _ in range(SIZE)] for _ in range(SIZE)]
    for line in LINES:
        for r, c in line:
            table[r][c].append(line)
    return table


LINES_THROUGH = _lines_through()


class Board:
    """Immutable 4x4 grid. Operations hand back a new board, never mutate."""

    __slots__ = ("grid",)

    def __init__(self, grid: Optional[Grid] = None) -> None:
        if grid is None:
            grid = tuple(tuple(0 for _ in range(SIZE)) for _ in range(SIZE))
        self.grid: Grid = grid

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Board) and self.grid == other.grid

    def __hash__(self) -> int:
        return hash(self.grid)

    def __repr__(self) -> str:
        rows = ["".join(".BW"[v] for v in row) for row in self.grid]
        return f"Board({'/'.join(rows)})"

    @classmethod
    def from_rows(cls, rows: List[str]) -> "Board":
        """Build a board from strings such as ``["B..W", "....", ...]``."""
        symbols = {".": 0, "B": int(Player.BLACK), "W": int(Player.WHITE)}
        return cls(tuple(tuple(symbols[ch] for ch in row) for row in rows))

    def at(self, r: int, c: int) -> int:
        return self.grid[r][c]

    def with_cells(self, changes: List[Tuple[int, int, int]]) -> "Board":
        rows = [list(row) for row in self.grid]
        for r, c, v in changes:
            rows[r][c] = v
        return Board(tuple(tuple(row) for row in rows))

    def legal_placements(self) -> List[Cell]:
        out = []
        for r in range(SIZE):
            for c in range(SIZE):
                if self.grid[r][c] == 0:
                    out.append((r, c))
        return out

    def cells(self) -> Iterator[Tuple[int, int, int]]:
        for r in range(SIZE):
            for c in range(SIZE):
                yield r, c, self.grid[r][c]

    def stones(self) -> int:
        return sum(1 for _, _, v in self.cells() if v != 0)

    def full(self) -> bool:
        for r in range(SIZE):
            for c in range(SIZE):
                if self.grid[r][c] == 0:
                    return False
        return True

    def to_labels(self) -> List[List[Optional[str]]]:
        names = {0: None, int(Player.BLACK): "black", int(Player.WHITE): "white"}
        return [[names[v] for v in row] for row in self.grid]


def initialize() -> Board:
    return Board()


def is_legal_placement(board: Board, row: int, col: int) -> bool:
    if not isinstance(row, int) or not isinstance(col, int):
        return False
    return 0 <= row < SIZE and 0 <= col < SIZE and board.grid[row][col] == 0


def apply_placement(board: Board, row: int, col: int, player: Player) -> Board:
    # Returning the input object is the rejection signal.
    if not is_legal_placement(board, row, col):
        return board
    return board.with_cells([(row, col, int(player))])


def quadrant_cells(q: Quadrant) -> List[Cell]:
    r0, c0 = Quadrant(q).origin
    return [(r0, c0), (r0, c0 + 1), (r0 + 1, c0), (r0 + 1, c0 + 1)]


def rotate_quadrant(board: Board, q: Quadrant, d: Direction) -> Board:
    r0, c0 = Quadrant(q).origin
    sub = [[board.grid[r0 + i][c0 + j] for j in range(2)] for i in range(2)]
    rot = [[0] * 2 for _ in range(2)]
    if d == Direction.CW:
        for i in range(2):
            for j in range(2):
                rot[j][1 - i] = sub[i][j]
    elif d == Direction.CCW:
        for i in range(2):
            for j in range(2):
                rot[1 - j][i] = sub[i][j]
    else:
        raise ValueError("Invalid direction")
    return board.with_cells([(r0 + i, c0 + j, rot[i][j]) for i in range(2) for j in range(2)])


def detect_outcome(board: Board) -> Outcome:
    for line in LINES:
        r, c = line[0]
        first = board.grid[r][c]
        if first != 0 and all(board.grid[rr][cc] == first for rr, cc in line[1:]):
            return Outcome.win_for(Player(first))
    if board.full():
        return Outcome.DRAW
    return Outcome.NONE


def quadrant_index_for_cell(row: int, col: int) -> Quadrant:
    return Quadrant((row // 2) * 2 + (col // 2))
