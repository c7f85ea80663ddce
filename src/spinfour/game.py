from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from .board import (
    Board,
    Direction,
    Outcome,
    Player,
    Quadrant,
    apply_placement,
    detect_outcome,
    initialize,
    quadrant_index_for_cell,
    rotate_quadrant,
)
from .ai.selector import AIContext, Difficulty
from .errors import GameFull, IllegalMove, MoveInFlight, NotSeated, NotYourTurn, RotationCapExceeded

AI_SEAT = "computer"


class GameMode(str, Enum):
    LOCAL = "local"
    VS_AI = "vs-ai"
    ONLINE = "online"


class RotationMode(str, Enum):
    MANUAL = "manual"
    AUTO = "auto"


class Role(str, Enum):
    BLACK = "black"
    WHITE = "white"
    SPECTATOR = "spectator"


class SessionState(str, Enum):
    WAITING = "waiting-for-opponent"
    IN_PROGRESS = "in-progress"
    GAME_OVER = "game-over"


@dataclass(frozen=True)
class GameSettings:
    game_mode: GameMode = GameMode.ONLINE
    rotation_mode: RotationMode = RotationMode.MANUAL
    difficulty: Difficulty = Difficulty.MEDIUM
    # None means a quadrant may be rotated any number of times.
    rotation_cap: Optional[int] = 3


@dataclass(frozen=True)
class LastMove:
    row: int
    col: int
    player: Player


@dataclass(frozen=True)
class LastRotation:
    quadrant: Quadrant
    direction: Direction


def _seat_role(p: Player) -> Role:
    return Role.BLACK if p == Player.BLACK else Role.WHITE


class GameSession:
    """Authoritative state of one game plus the seats and spectators attached to it.

    Every mutating operation either completes or raises a ``GameError``
    subclass before touching any state.
    """

    def __init__(self, game_id: str, settings: GameSettings, creator: Optional[str] = None) -> None:
        self.game_id = game_id
        self.settings = settings
        self.players: Dict[Player, Optional[str]] = {Player.BLACK: None, Player.WHITE: None}
        self.spectators: List[str] = []
        self.generation = 0
        self._reset_state()
        if creator is not None:
            self.players[Player.BLACK] = creator
            if settings.game_mode == GameMode.LOCAL:
                self.players[Player.WHITE] = creator
        if settings.game_mode == GameMode.VS_AI:
            self.players[Player.WHITE] = AI_SEAT

    def _reset_state(self) -> None:
        self.board: Board = initialize()
        self.current_player: Player = Player.BLACK
        self.rotation_counts: Dict[Quadrant, int] = {q: 0 for q in Quadrant}
        self.last_move: Optional[LastMove] = None
        self.last_rotation: Optional[LastRotation] = None
        self.outcome: Outcome = Outcome.NONE
        self.move_in_flight = False
        self._pending_cell: Optional[tuple] = None

    # -- membership -------------------------------------------------------

    @property
    def rotation_cap(self) -> Optional[int]:
        return self.settings.rotation_cap

    @property
    def is_waiting(self) -> bool:
        return self.players[Player.BLACK] is None or self.players[Player.WHITE] is None

    @property
    def is_over(self) -> bool:
        return self.outcome != Outcome.NONE

    @property
    def state(self) -> SessionState:
        if self.is_over:
            return SessionState.GAME_OVER
        if self.is_waiting:
            return SessionState.WAITING
        return SessionState.IN_PROGRESS

    @property
    def members(self) -> List[str]:
        out: List[str] = []
        for conn in (self.players[Player.BLACK], self.players[Player.WHITE]):
            if conn is not None and conn != AI_SEAT and conn not in out:
                out.append(conn)
        out.extend(s for s in self.spectators if s not in out)
        return out

    def is_empty(self) -> bool:
        return not self.members

    def colors_of(self, connection_id: str) -> Set[Player]:
        return {p for p, conn in self.players.items() if conn == connection_id}

    def role_of(self, connection_id: str) -> Optional[Role]:
        colors = self.colors_of(connection_id)
        if Player.BLACK in colors:
            return Role.BLACK
        if Player.WHITE in colors:
            return Role.WHITE
        if connection_id in self.spectators:
            return Role.SPECTATOR
        return None

    def join(self, connection_id: str, wants_spectator: bool = False) -> Role:
        current = self.role_of(connection_id)
        if current is not None:
            return current
        if wants_spectator:
            self.spectators.append(connection_id)
            return Role.SPECTATOR
        for p in (Player.BLACK, Player.WHITE):
            if self.players[p] is None:
                self.players[p] = connection_id
                return _seat_role(p)
        raise GameFull(self.game_id)

    def leave(self, connection_id: str) -> Optional[Role]:
        role = self.role_of(connection_id)
        for p in self.colors_of(connection_id):
            self.players[p] = None
        if connection_id in self.spectators:
            self.spectators.remove(connection_id)
        return role

    # -- turn guards --------------------------------------------------------

    def _check_turn(self, connection_id: str) -> None:
        if self.is_over:
            raise IllegalMove("game is over")
        if self.is_waiting:
            raise NotYourTurn("waiting for an opponent")
        if self.move_in_flight:
            raise MoveInFlight("previous move still resolving")
        if self.current_player not in self.colors_of(connection_id):
            raise NotYourTurn(f"{connection_id} cannot play {self.current_player.label}")

    def can_rotate(self, q: Quadrant) -> bool:
        cap = self.rotation_cap
        return cap is None or self.rotation_counts[q] < cap

    def _finish_turn(self) -> None:
        self.outcome = detect_outcome(self.board)
        if self.outcome == Outcome.NONE:
            self.current_player = self.current_player.opponent

    # -- transitions ------------------------------------------------------

    def begin_place(self, connection_id: str, row: int, col: int) -> None:
        """Put the current player's disc on (row, col).

        In manual mode this is the whole turn. In auto mode the session is
        left with ``move_in_flight`` set until ``complete_place`` rotates the
        placed cell's quadrant.
        """
        self._check_turn(connection_id)
        new_board = apply_placement(self.board, row, col, self.current_player)
        if new_board is self.board:
            raise IllegalMove(f"cannot place at ({row}, {col})")
        self.board = new_board
        self.last_move = LastMove(row, col, self.current_player)
        if self.settings.rotation_mode == RotationMode.AUTO:
            self.move_in_flight = True
            self._pending_cell = (row, col)
        else:
            self._finish_turn()

    def complete_place(self, generation: Optional[int] = None) -> None:
        if not self.move_in_flight or (generation is not None and generation != self.generation):
            raise IllegalMove("no placement awaiting rotation")
        q = quadrant_index_for_cell(*self._pending_cell)
        if self.can_rotate(q):
            self.board = rotate_quadrant(self.board, q, Direction.CW)
            self.rotation_counts[q] += 1
            self.last_rotation = LastRotation(q, Direction.CW)
        else:
            self.last_rotation = None
        self.move_in_flight = False
        self._pending_cell = None
        self._finish_turn()

    def place(self, connection_id: str, row: int, col: int) -> None:
        self.begin_place(connection_id, row, col)
        if self.move_in_flight:
            self.complete_place()

    def rotate(self, connection_id: str, quadrant: int, direction: Direction) -> None:
        if self.settings.rotation_mode != RotationMode.MANUAL:
            raise IllegalMove("rotations are automatic in this game")
        self._check_turn(connection_id)
        if not isinstance(quadrant, int) or not 0 <= quadrant <= 3:
            raise IllegalMove(f"invalid quadrant {quadrant!r}")
        q = Quadrant(quadrant)
        if not self.can_rotate(q):
            raise RotationCapExceeded(f"quadrant {int(q)} reached its rotation cap")
        self.board = rotate_quadrant(self.board, q, Direction(direction))
        self.rotation_counts[q] += 1
        self.last_rotation = LastRotation(q, Direction(direction))
        self._finish_turn()

    def reset(self, connection_id: str) -> None:
        if not self.colors_of(connection_id):
            raise NotSeated(f"{connection_id} holds no seat")
        self.generation += 1
        self._reset_state()

    def skip_turn(self) -> None:
        if self.settings.game_mode == GameMode.ONLINE:
            raise IllegalMove("turns cannot be skipped in online games")
        if self.is_over or self.move_in_flight:
            raise IllegalMove("cannot skip now")
        self.current_player = self.current_player.opponent

    # -- computer opponent -------------------------------------------------

    @property
    def ai_player(self) -> Optional[Player]:
        if self.settings.game_mode != GameMode.VS_AI:
            return None
        return Player.WHITE

    def is_ai_turn(self) -> bool:
        return (
            self.ai_player is not None
            and self.state == SessionState.IN_PROGRESS
            and not self.move_in_flight
            and self.current_player == self.ai_player
        )

    def ai_context(self) -> AIContext:
        return AIContext(
            board=self.board,
            current_player=self.current_player,
            rotation_counts=tuple(self.rotation_counts[q] for q in Quadrant),
            rotation_cap=self.rotation_cap,
            auto_rotate=self.settings.rotation_mode == RotationMode.AUTO,
        )

    # -- serialisation -----------------------------------------------------

    def snapshot(self) -> Dict[str, Any]:
        winner: Optional[str] = None
        if self.outcome == Outcome.DRAW:
            winner = "draw"
        elif self.outcome.winner is not None:
            winner = self.outcome.winner.label
        last_move = None
        if self.last_move is not None:
            last_move = {"row": self.last_move.row, "col": self.last_move.col, "player": self.last_move.player.label}
        last_rotation = None
        if self.last_rotation is not None:
            last_rotation = {
                "quadrantIndex": int(self.last_rotation.quadrant),
                "direction": self.last_rotation.direction.label,
            }
        return {
            "gameId": self.game_id,
            "board": self.board.to_labels(),
            "currentPlayer": self.current_player.label,
            "winner": winner,
            "outcome": self.outcome.value,
            "state": self.state.value,
            "rotationCounts": [self.rotation_counts[q] for q in Quadrant],
            "rotationCap": self.rotation_cap,
            "lastMove": last_move,
            "lastRotation": last_rotation,
            "isGameOver": self.is_over,
            "isWaiting": self.is_waiting,
            "moveInFlight": self.move_in_flight,
            "settings": {
                "gameMode": self.settings.game_mode.value,
                "rotationMode": self.settings.rotation_mode.value,
                "aiDifficulty": self.settings.difficulty.label,
            },
            "players": {
                "black": self.players[Player.BLACK],
                "white": self.players[Player.WHITE],
            },
            "spectators": list(self.spectators),
        }
