import random

import pytest

from spinfour.board import Board, Direction, Player, Quadrant
from spinfour.ai.evaluation import EXPERT_WEIGHTS, WIN_SCORE, evaluate, fork_potential, line_score
from spinfour.ai.selector import AIContext, Difficulty, plan_turn, select_move, select_rotation
from spinfour.ai.tactics import Placement, Rotation

WIN_FOR_BLACK = Board.from_rows([
    "BBB.",
    "....",
    ".W..",
    "WW..",
])

THREAT_BY_WHITE = Board.from_rows([
    "WWW.",
    "....",
    ".B..",
    "B..B",
])

# (0,1) is taken, so only turning Q00 clockwise completes row 0.
ROTATION_WIN = Board.from_rows([
    "BWBB",
    "B...",
    "...W",
    "..WW",
])

FULL = Board.from_rows(["BWBW", "BWBW", "WBWB", "WBWB"])

@pytest.mark.parametrize("seed", range(20))
def test_master_always_takes_immediate_win(seed):
    mv = select_move(WIN_FOR_BLACK, Difficulty.MASTER, Player.BLACK, rng=random.Random(seed), time_ms=200)
    assert mv == Placement(0, 3)

@pytest.mark.parametrize("difficulty", [Difficulty.MEDIUM, Difficulty.HARD, Difficulty.EXPERT])
def test_medium_and_up_block(difficulty):
    for seed in range(5):
        mv = select_move(THREAT_BY_WHITE, difficulty, Player.BLACK, rng=random.Random(seed), time_ms=200)
        assert mv == Placement(0, 3)

def test_easy_returns_a_legal_move():
    rng = random.Random(3)
    for _ in range(20):
        mv = select_move(THREAT_BY_WHITE, Difficulty.EASY, Player.BLACK, rng=rng)
        assert THREAT_BY_WHITE.at(mv.row, mv.col) == 0

@pytest.mark.parametrize("difficulty", list(Difficulty))
def test_full_board_yields_no_move(difficulty):
    assert select_move(FULL, difficulty, Player.BLACK, rng=random.Random(0)) is None

def test_select_rotation_none_when_all_capped():
    assert select_rotation(WIN_FOR_BLACK, Player.BLACK, (1, 1, 1, 1), 1, Difficulty.MASTER) is None

def test_select_rotation_respects_cap():
    rng = random.Random(5)
    for difficulty in Difficulty:
        rot = select_rotation(ROTATION_WIN, Player.BLACK, (2, 0, 0, 0), 2, difficulty, rng=rng)
        assert rot is not None
        assert rot.quadrant != Quadrant.Q00

def test_master_rotation_takes_the_win():
    rot = select_rotation(ROTATION_WIN, Player.BLACK, (0, 0, 0, 0), 3, Difficulty.MASTER, rng=random.Random(1))
    assert rot == Rotation(Quadrant.Q00, Direction.CW)

def test_plan_turn_prefers_winning_rotation_in_manual_mode():
    ctx = AIContext(board=ROTATION_WIN, current_player=Player.BLACK, rotation_cap=3)
    action = plan_turn(ctx, Difficulty.HARD, rng=random.Random(0), time_ms=200)
    assert action == Rotation(Quadrant.Q00, Direction.CW)

def test_plan_turn_places_in_auto_mode():
    ctx = AIContext(board=ROTATION_WIN, current_player=Player.BLACK, auto_rotate=True)
    action = plan_turn(ctx, Difficulty.MEDIUM, rng=random.Random(0))
    assert isinstance(action, Placement)

def test_difficulty_labels():
    assert Difficulty.from_label("Expert") == Difficulty.EXPERT
    assert Difficulty.MASTER.label == "master"
    assert Difficulty.EASY < Difficulty.MASTER
    with pytest.raises(ValueError):
        Difficulty.from_label("impossible")

def test_evaluation_is_symmetric_and_bounded():
    assert evaluate(WIN_FOR_BLACK, Player.BLACK) == -evaluate(WIN_FOR_BLACK, Player.WHITE)
    won = Board.from_rows(["BBBB", "WWW.", "....", "...."])
    assert evaluate(won, Player.BLACK, EXPERT_WEIGHTS) == WIN_SCORE
    assert evaluate(won, Player.WHITE, EXPERT_WEIGHTS) == -WIN_SCORE
    assert line_score(WIN_FOR_BLACK, Player.BLACK) > 0

def test_malformed_board_scores_neutral():
    broken = Board(((0, 0), (0, 0)))
    assert line_score(broken, Player.BLACK) == 0
    assert fork_potential(broken, 3, 3, Player.BLACK) == 0

def test_evaluate_on_malformed_board_is_neutral():
    broken = Board(((0, 0), (0, 0)))
    assert evaluate(broken, Player.BLACK) == 0
    assert evaluate(broken, Player.WHITE, EXPERT_WEIGHTS) == 0
