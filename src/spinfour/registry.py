import asyncio
import logging
import random
from typing import Any, Dict, Optional
from uuid import uuid4

from typing_extensions import Protocol

from .ai.selector import Difficulty, plan_turn
from .ai.tactics import Action, Rotation
from .board import Direction
from .config import ServerSettings
from .errors import GameFull, GameNotFound, RejectedIntent
from .game import AI_SEAT, GameMode, GameSession, GameSettings, RotationMode
from .messages import (
    CreateGame,
    GameFullMessage,
    GameNotFoundMessage,
    GameOptions,
    GameStateMessage,
    JoinedGame,
    JoinGame,
    LeaveGame,
    Message,
    PlaceDisc,
    PlayerJoined,
    PlayerLeft,
    ResetGame,
    RotateBlock,
)

logger = logging.getLogger(__name__)


class Channel(Protocol):
    async def send(self, connection_id: str, message: Dict[str, Any]) -> None:
        ...


def new_game_id() -> str:
    return uuid4().hex


class SessionRegistry:
    def __init__(self, channel: Channel, settings: Optional[ServerSettings] = None, rng=None) -> None:
        self.channel = channel
        self.settings = settings or ServerSettings()
        self.rng = rng or random.Random()
        self.sessions: Dict[str, GameSession] = {}
        self.joined: Dict[str, str] = {}

    # -- lookup -------------------------------------------------------------

    def get(self, game_id: str) -> GameSession:
        session = self.sessions.get(game_id)
        if session is None:
            raise GameNotFound(game_id)
        return session

    def game_of(self, connection_id: str) -> Optional[str]:
        return self.joined.get(connection_id)

    def _session_for(self, connection_id: str, game_id: str) -> Optional[GameSession]:
        joined = self.joined.get(connection_id)
        if joined is None or joined != game_id:
            logger.debug("dropping intent from %s for %s (joined %s)", connection_id, game_id, joined)
            return None
        return self.sessions.get(joined)

    def settings_for(self, options: GameOptions) -> GameSettings:
        mode = GameMode(options.game_mode)
        networked = mode == GameMode.ONLINE
        if options.rotation_mode is not None:
            rotation_mode = RotationMode(options.rotation_mode)
        else:
            rotation_mode = RotationMode.MANUAL if networked else RotationMode.AUTO
        if options.rotation_cap is not None:
            cap = options.rotation_cap
        else:
            cap = self.settings.online_rotation_cap if networked else self.settings.local_rotation_cap
        difficulty = Difficulty.from_label(options.ai_difficulty or self.settings.default_difficulty)
        return GameSettings(game_mode=mode, rotation_mode=rotation_mode, difficulty=difficulty, rotation_cap=cap)

    # -- delivery -----------------------------------------------------------

    async def _deliver(self, connection_id: str, message: Message) -> None:
        try:
            await self.channel.send(connection_id, message.to_wire())
        except Exception as e:
            logger.warning("delivery to %s failed: %s", connection_id, e)

    async def broadcast_state(self, session: GameSession) -> None:
        message = GameStateMessage(state=session.snapshot())
        for conn in session.members:
            await self._deliver(conn, message)

    # -- intents ------------------------------------------------------------

    async def create_game(self, connection_id: str, options: Optional[GameOptions] = None) -> str:
        if connection_id in self.joined:
            await self.leave(connection_id)
        game_id = new_game_id()
        session = GameSession(game_id, self.settings_for(options or GameOptions()), creator=connection_id)
        self.sessions[game_id] = session
        self.joined[connection_id] = game_id
        logger.info("game %s created by %s (%s)", game_id, connection_id, session.settings.game_mode.value)
        await self._deliver(connection_id, JoinedGame(game_id=game_id, role="black"))
        await self.broadcast_state(session)
        return game_id

    async def join(self, connection_id: str, game_id: str, spectator: bool = False) -> None:
        session = self.sessions.get(game_id)
        if session is None:
            logger.info("%s asked for unknown game %s", connection_id, game_id)
            await self._deliver(connection_id, GameNotFoundMessage())
            return
        held = session.role_of(connection_id)
        if held is not None:
            await self._deliver(connection_id, JoinedGame(game_id=game_id, role=held.value))
            return
        previous = self.joined.get(connection_id)
        try:
            role = session.join(connection_id, spectator)
        except GameFull:
            logger.info("%s turned away from full game %s", connection_id, game_id)
            await self._deliver(connection_id, GameFullMessage())
            return
        if previous is not None and previous != game_id:
            await self.leave(connection_id)
        self.joined[connection_id] = game_id
        logger.info("%s joined %s as %s", connection_id, game_id, role.value)
        await self._deliver(connection_id, JoinedGame(game_id=game_id, role=role.value))
        for conn in session.members:
            if conn != connection_id:
                await self._deliver(conn, PlayerJoined(role=role.value))
        await self.broadcast_state(session)

    async def _place(self, session: GameSession, connection_id: str, row: int, col: int) -> bool:
        try:
            session.begin_place(connection_id, row, col)
        except RejectedIntent as e:
            logger.debug("place by %s rejected: %s", connection_id, e)
            return False
        await self.broadcast_state(session)
        if not session.move_in_flight:
            return True
        generation = session.generation
        await asyncio.sleep(self.settings.auto_rotate_delay_ms / 1000.0)
        if self.sessions.get(session.game_id) is not session:
            return False
        try:
            session.complete_place(generation)
        except RejectedIntent as e:
            logger.debug("stale rotation in %s discarded: %s", session.game_id, e)
            return False
        await self.broadcast_state(session)
        return True

    async def _rotate(self, session: GameSession, connection_id: str, quadrant: int, direction: Direction) -> bool:
        try:
            session.rotate(connection_id, quadrant, direction)
        except RejectedIntent as e:
            logger.debug("rotate by %s rejected: %s", connection_id, e)
            return False
        await self.broadcast_state(session)
        return True

    async def place(self, connection_id: str, game_id: str, row: int, col: int) -> None:
        session = self._session_for(connection_id, game_id)
        if session is None:
            return
        if await self._place(session, connection_id, row, col):
            await self.play_computer(session)

    async def rotate(self, connection_id: str, game_id: str, quadrant: int, direction: str) -> None:
        session = self._session_for(connection_id, game_id)
        if session is None:
            return
        if await self._rotate(session, connection_id, quadrant, Direction.from_label(direction)):
            await self.play_computer(session)

    async def reset(self, connection_id: str, game_id: str) -> None:
        session = self._session_for(connection_id, game_id)
        if session is None:
            return
        try:
            session.reset(connection_id)
        except RejectedIntent as e:
            logger.debug("reset by %s rejected: %s", connection_id, e)
            return
        logger.info("game %s reset by %s", game_id, connection_id)
        await self.broadcast_state(session)

    async def leave(self, connection_id: str, game_id: Optional[str] = None) -> None:
        joined = self.joined.get(connection_id)
        if joined is None or (game_id is not None and game_id != joined):
            return
        del self.joined[connection_id]
        session = self.sessions.get(joined)
        if session is None:
            return
        role = session.leave(connection_id)
        logger.info("%s left %s", connection_id, joined)
        if session.is_empty():
            del self.sessions[joined]
            logger.info("game %s destroyed", joined)
            return
        if role is not None:
            for conn in session.members:
                await self._deliver(conn, PlayerLeft(role=role.value))
        await self.broadcast_state(session)

    async def disconnect(self, connection_id: str) -> None:
        await self.leave(connection_id)

    async def play_computer(self, session: GameSession) -> None:
        """Play computer turns until a human is to move again."""
        while session.is_ai_turn():
            action = plan_turn(
                session.ai_context(),
                session.settings.difficulty,
                rng=self.rng,
                time_ms=self.settings.ai_time_ms,
            )
            if action is None:
                break
            if isinstance(action, Rotation):
                done = await self._rotate(session, AI_SEAT, int(action.quadrant), action.direction)
            else:
                done = await self._place(session, AI_SEAT, action.row, action.col)
            if not done:
                logger.warning("computer move %s not applied in %s", action, session.game_id)
                break

    def suggest(self, game_id: str, difficulty: Difficulty, time_ms: Optional[int] = None) -> Optional[Action]:
        session = self.get(game_id)
        budget = self.settings.ai_time_ms
        if time_ms is not None:
            budget = min(time_ms, budget)
        return plan_turn(session.ai_context(), difficulty, rng=self.rng, time_ms=budget)

    async def dispatch(self, connection_id: str, intent) -> None:
        if isinstance(intent, CreateGame):
            await self.create_game(connection_id, intent.options)
        elif isinstance(intent, JoinGame):
            await self.join(connection_id, intent.game_id, intent.spectator)
        elif isinstance(intent, PlaceDisc):
            await self.place(connection_id, intent.game_id, intent.move.row, intent.move.col)
        elif isinstance(intent, RotateBlock):
            await self.rotate(connection_id, intent.game_id, intent.rotation.quadrant_index, intent.rotation.direction)
        elif isinstance(intent, ResetGame):
            await self.reset(connection_id, intent.game_id)
        elif isinstance(intent, LeaveGame):
            await self.leave(connection_id, intent.game_id)
        else:
            raise TypeError(f"unsupported intent {intent!r}")
