import random
import time

import pytest

from spinfour.ai.selector import Difficulty
from spinfour.board import Player
from spinfour.config import ServerSettings
from spinfour.messages import GameOptions, parse_intent
from spinfour.registry import SessionRegistry

SETTINGS = ServerSettings(auto_rotate_delay_ms=0, ai_time_ms=50)


class RecordingChannel:
    def __init__(self, broken=()):
        self.sent = []
        self.broken = set(broken)

    async def send(self, connection_id, message):
        if connection_id in self.broken:
            raise ConnectionError("gone")
        self.sent.append((connection_id, message))

    def to(self, connection_id):
        return [m for c, m in self.sent if c == connection_id]

    def types(self, connection_id):
        return [m["type"] for m in self.to(connection_id)]

    def clear(self):
        self.sent.clear()


def make(broken=()):
    channel = RecordingChannel(broken)
    return SessionRegistry(channel, SETTINGS, rng=random.Random(0)), channel


async def two_players(registry, black="a", white="b"):
    gid = await registry.create_game(black)
    await registry.join(white, gid)
    return gid


@pytest.mark.asyncio
async def test_create_game_seats_creator_as_black():
    registry, channel = make()
    gid = await registry.create_game("a")
    assert channel.types("a") == ["joinedGame", "gameState"]
    joined, state = channel.to("a")
    assert joined == {"type": "joinedGame", "gameId": gid, "role": "black"}
    assert state["state"]["state"] == "waiting-for-opponent"
    assert state["state"]["rotationCap"] == 3
    assert state["state"]["settings"]["rotationMode"] == "manual"
    assert registry.game_of("a") == gid


@pytest.mark.asyncio
async def test_join_notifies_room():
    registry, channel = make()
    gid = await registry.create_game("a")
    channel.clear()
    await registry.join("b", gid)
    assert channel.to("b")[0] == {"type": "joinedGame", "gameId": gid, "role": "white"}
    assert channel.types("a") == ["playerJoined", "gameState"]
    assert channel.to("a")[0]["role"] == "white"
    assert channel.to("b")[-1]["state"]["state"] == "in-progress"


@pytest.mark.asyncio
async def test_rejoining_only_confirms_role():
    registry, channel = make()
    gid = await two_players(registry)
    channel.clear()
    await registry.join("b", gid)
    assert channel.sent == [("b", {"type": "joinedGame", "gameId": gid, "role": "white"})]


@pytest.mark.asyncio
async def test_full_game_and_spectator():
    registry, channel = make()
    gid = await two_players(registry)
    channel.clear()
    await registry.join("c", gid)
    assert channel.types("c") == ["gameFull"]
    await registry.join("c", gid, spectator=True)
    assert channel.types("c")[1:] == ["joinedGame", "gameState"]
    assert channel.to("c")[1]["role"] == "spectator"
    assert channel.types("a") == ["playerJoined", "gameState"]


@pytest.mark.asyncio
async def test_failed_join_keeps_current_game():
    registry, channel = make()
    own = await registry.create_game("a")
    await registry.join("z", own)
    full = await two_players(registry, "p", "q")
    channel.clear()
    await registry.join("a", full)
    assert channel.types("a") == ["gameFull"]
    assert registry.game_of("a") == own
    assert registry.get(own).players[Player.BLACK] == "a"
    assert channel.types("z") == []


@pytest.mark.asyncio
async def test_switching_games_leaves_the_old_one():
    registry, channel = make()
    own = await registry.create_game("a")
    await registry.join("z", own)
    other = await registry.create_game("p")
    channel.clear()
    await registry.join("a", other)
    assert registry.game_of("a") == other
    assert registry.get(own).players[Player.BLACK] is None
    assert channel.types("z") == ["playerLeft", "gameState"]
    assert channel.to("a")[0]["role"] == "white"


@pytest.mark.asyncio
async def test_unknown_game():
    registry, channel = make()
    await registry.join("a", "nope")
    assert channel.to("a") == [{"type": "gameNotFound"}]


@pytest.mark.asyncio
async def test_place_broadcasts_and_rejections_are_silent():
    registry, channel = make()
    gid = await two_players(registry)
    await registry.join("c", gid, spectator=True)
    channel.clear()
    await registry.place("b", gid, 0, 0)
    await registry.place("a", gid, 9, 9)
    await registry.place("c", gid, 0, 0)
    assert channel.sent == []
    await registry.place("a", gid, 0, 0)
    for conn in ("a", "b", "c"):
        assert channel.types(conn) == ["gameState"]
    assert channel.to("c")[0]["state"]["board"][0][0] == "black"
    assert registry.get(gid).current_player == Player.WHITE


@pytest.mark.asyncio
async def test_intent_for_other_game_is_dropped():
    registry, channel = make()
    gid = await two_players(registry)
    other = await registry.create_game("x")
    channel.clear()
    await registry.place("a", other, 0, 0)
    assert channel.sent == []
    assert registry.get(gid).board.stones() == 0


@pytest.mark.asyncio
async def test_auto_rotation_broadcasts_twice():
    registry, channel = make()
    gid = await registry.create_game("a", GameOptions(rotation_mode="auto"))
    await registry.join("b", gid)
    channel.clear()
    await registry.place("a", gid, 1, 1)
    states = [m["state"] for m in channel.to("b")]
    assert len(states) == 2
    assert states[0]["moveInFlight"] is True
    assert states[0]["board"][1][1] == "black"
    assert states[1]["moveInFlight"] is False
    assert states[1]["board"][1][0] == "black"
    assert states[1]["rotationCounts"] == [1, 0, 0, 0]
    assert states[1]["lastRotation"] == {"quadrantIndex": 0, "direction": "clockwise"}


@pytest.mark.asyncio
async def test_rotate_and_cap():
    registry, channel = make()
    gid = await registry.create_game("a", GameOptions(rotation_cap=1))
    await registry.join("b", gid)
    await registry.rotate("a", gid, 2, "counter-clockwise")
    channel.clear()
    await registry.rotate("b", gid, 2, "clockwise")
    assert channel.sent == []
    session = registry.get(gid)
    assert session.current_player == Player.WHITE
    assert session.snapshot()["rotationCounts"] == [0, 0, 1, 0]


@pytest.mark.asyncio
async def test_reset_rules():
    registry, channel = make()
    gid = await two_players(registry)
    await registry.join("c", gid, spectator=True)
    await registry.place("a", gid, 2, 2)
    channel.clear()
    await registry.reset("c", gid)
    assert channel.sent == []
    await registry.reset("b", gid)
    assert channel.types("c") == ["gameState"]
    state = channel.to("c")[0]["state"]
    assert state["board"][2][2] is None
    assert state["players"] == {"black": "a", "white": "b"}


@pytest.mark.asyncio
async def test_disconnect_vacates_and_last_member_destroys():
    registry, channel = make()
    gid = await two_players(registry)
    channel.clear()
    await registry.disconnect("b")
    assert gid in registry.sessions
    await registry.disconnect("a")
    assert channel.types("a") == ["playerLeft", "gameState"]
    assert channel.to("a")[0]["role"] == "white"
    assert channel.to("a")[1]["state"]["state"] == "waiting-for-opponent"
    assert gid not in registry.sessions
    assert registry.game_of("a") is None


@pytest.mark.asyncio
async def test_creating_again_leaves_previous_game():
    registry, channel = make()
    first = await registry.create_game("a")
    second = await registry.create_game("a")
    assert first != second
    assert first not in registry.sessions
    assert registry.game_of("a") == second


@pytest.mark.asyncio
async def test_failed_delivery_does_not_stop_room():
    registry, channel = make(broken={"b"})
    gid = await two_players(registry)
    await registry.join("c", gid, spectator=True)
    channel.clear()
    await registry.place("a", gid, 3, 3)
    assert channel.types("a") == ["gameState"]
    assert channel.types("c") == ["gameState"]


@pytest.mark.asyncio
async def test_computer_replies_in_vs_ai_games():
    registry, channel = make()
    gid = await registry.create_game("a", GameOptions(game_mode="vs-ai", ai_difficulty="easy"))
    channel.clear()
    await registry.place("a", gid, 0, 0)
    session = registry.get(gid)
    assert session.board.stones() == 2
    assert session.current_player == Player.BLACK
    # placement and rotation for each side
    assert channel.types("a") == ["gameState"] * 4
    assert session.snapshot()["players"]["white"] == "computer"


@pytest.mark.asyncio
async def test_suggest_search_is_bounded_by_configured_budget():
    registry, channel = make()
    gid = await registry.create_game("a")
    t0 = time.time()
    action = registry.suggest(gid, Difficulty.MASTER)
    assert action is not None
    t1 = time.time()
    registry.suggest(gid, Difficulty.MASTER, time_ms=600_000)
    t2 = time.time()
    # requested time never exceeds the configured 50 ms budget
    assert t1 - t0 < 10
    assert t2 - t1 < 10


@pytest.mark.asyncio
async def test_dispatch_routes_parsed_intents():
    registry, channel = make()
    await registry.dispatch("a", parse_intent('{"type": "createGame"}'))
    gid = registry.game_of("a")
    await registry.dispatch("b", parse_intent({"type": "joinGame", "gameId": gid}))
    await registry.dispatch("a", parse_intent(
        {"type": "placeDisc", "gameId": gid, "move": {"row": 1, "col": 2}}))
    await registry.dispatch("b", parse_intent(
        {"type": "rotateBlock", "gameId": gid, "rotation": {"quadrantIndex": 3, "direction": "clockwise"}}))
    await registry.dispatch("b", parse_intent({"type": "leaveGame", "gameId": gid}))
    session = registry.get(gid)
    assert session.board.at(1, 2) == Player.BLACK
    assert session.rotation_counts[3] == 1
    assert session.is_waiting
    assert registry.game_of("b") is None
