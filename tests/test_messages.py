import pytest
from pydantic import ValidationError

from spinfour.messages import (
    CreateGame,
    GameStateMessage,
    JoinedGame,
    PlaceDisc,
    RotateBlock,
    parse_intent,
)

def test_create_game_defaults():
    intent = parse_intent('{"type": "createGame"}')
    assert isinstance(intent, CreateGame)
    assert intent.options.game_mode == "online"
    assert intent.options.rotation_cap is None

def test_create_game_options_use_camel_case():
    intent = parse_intent({"type": "createGame", "options": {"gameMode": "vs-ai", "aiDifficulty": "master",
                                                             "rotationMode": "auto", "rotationCap": 2}})
    assert intent.options.game_mode == "vs-ai"
    assert intent.options.ai_difficulty == "master"
    assert intent.options.rotation_mode == "auto"
    assert intent.options.rotation_cap == 2

def test_place_and_rotate():
    place = parse_intent({"type": "placeDisc", "gameId": "g", "move": {"row": 1, "col": 3}})
    assert isinstance(place, PlaceDisc)
    assert (place.game_id, place.move.row, place.move.col) == ("g", 1, 3)
    rot = parse_intent({"type": "rotateBlock", "gameId": "g",
                        "rotation": {"quadrantIndex": 2, "direction": "counter-clockwise"}})
    assert isinstance(rot, RotateBlock)
    assert rot.rotation.quadrant_index == 2

@pytest.mark.parametrize("raw", [
    "not json",
    '{"type": "explode"}',
    '{"type": "placeDisc", "gameId": "g"}',
    '{"type": "placeDisc", "gameId": "g", "move": {"row": "x", "col": 0}}',
    '{"type": "rotateBlock", "gameId": "g", "rotation": {"quadrantIndex": 4, "direction": "clockwise"}}',
    '{"type": "rotateBlock", "gameId": "g", "rotation": {"quadrantIndex": 0, "direction": "sideways"}}',
    '{"type": "createGame", "options": {"gameMode": "hotseat"}}',
])
def test_malformed_intents_are_rejected(raw):
    with pytest.raises(ValidationError):
        parse_intent(raw)

def test_outbound_wire_format():
    assert JoinedGame(game_id="g", role="black").to_wire() == {"type": "joinedGame", "gameId": "g", "role": "black"}
    assert GameStateMessage(state={"gameId": "g"}).to_wire() == {"type": "gameState", "state": {"gameId": "g"}}
