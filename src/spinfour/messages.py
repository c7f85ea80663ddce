from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel
from typing_extensions import Annotated


class Message(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class MovePayload(Message):
    row: int
    col: int


class RotationPayload(Message):
    quadrant_index: int = Field(ge=0, le=3)
    direction: Literal["clockwise", "counter-clockwise"]


class GameOptions(Message):
    game_mode: Literal["local", "vs-ai", "online"] = "online"
    rotation_mode: Optional[Literal["manual", "auto"]] = None
    ai_difficulty: Optional[Literal["easy", "medium", "hard", "expert", "master"]] = None
    rotation_cap: Optional[int] = Field(default=None, ge=0)


# -- client -> server --------------------------------------------------------


class CreateGame(Message):
    type: Literal["createGame"] = "createGame"
    options: GameOptions = Field(default_factory=GameOptions)


class JoinGame(Message):
    type: Literal["joinGame"] = "joinGame"
    game_id: str
    spectator: bool = False


class PlaceDisc(Message):
    type: Literal["placeDisc"] = "placeDisc"
    game_id: str
    move: MovePayload


class RotateBlock(Message):
    type: Literal["rotateBlock"] = "rotateBlock"
    game_id: str
    rotation: RotationPayload


class ResetGame(Message):
    type: Literal["resetGame"] = "resetGame"
    game_id: str


class LeaveGame(Message):
    type: Literal["leaveGame"] = "leaveGame"
    game_id: str


Intent = Annotated[
    Union[CreateGame, JoinGame, PlaceDisc, RotateBlock, ResetGame, LeaveGame],
    Field(discriminator="type"),
]

INTENT_ADAPTER: TypeAdapter = TypeAdapter(Intent)


def parse_intent(raw: Union[str, bytes, Dict[str, Any]]):
    """Validate one inbound frame; raises ``pydantic.ValidationError``."""
    if isinstance(raw, (str, bytes)):
        return INTENT_ADAPTER.validate_json(raw)
    return INTENT_ADAPTER.validate_python(raw)


# -- server -> client --------------------------------------------------------


class GameStateMessage(Message):
    type: Literal["gameState"] = "gameState"
    state: Dict[str, Any]


class JoinedGame(Message):
    type: Literal["joinedGame"] = "joinedGame"
    game_id: str
    role: Literal["black", "white", "spectator"]


class GameNotFoundMessage(Message):
    type: Literal["gameNotFound"] = "gameNotFound"


class GameFullMessage(Message):
    type: Literal["gameFull"] = "gameFull"


class PlayerJoined(Message):
    type: Literal["playerJoined"] = "playerJoined"
    role: Literal["black", "white", "spectator"]


class PlayerLeft(Message):
    type: Literal["playerLeft"] = "playerLeft"
    role: Literal["black", "white", "spectator"]

