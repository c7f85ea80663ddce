from spinfour.board import (
    LINES,
    LINES_THROUGH,
    Board,
    Direction,
    Player,
    apply_placement,
    initialize,
    is_legal_placement,
)

def test_initialize_is_empty():
    b = initialize()
    assert b.stones() == 0
    assert len(b.legal_placements()) == 16
    assert not b.full()

def test_apply_placement_changes_only_target_cell():
    b = Board.from_rows(["B...", "....", "..W.", "...."])
    out = apply_placement(b, 1, 2, Player.WHITE)
    assert out is not b
    for r in range(4):
        for c in range(4):
            if (r, c) == (1, 2):
                assert out.at(r, c) == Player.WHITE
            else:
                assert out.at(r, c) == b.at(r, c)

def test_rejected_placement_returns_same_board():
    b = apply_placement(initialize(), 0, 0, Player.BLACK)
    assert apply_placement(b, 0, 0, Player.WHITE) is b
    assert apply_placement(b, 4, 0, Player.WHITE) is b
    assert apply_placement(b, 0, -1, Player.WHITE) is b

def test_legality_checks():
    b = apply_placement(initialize(), 3, 3, Player.BLACK)
    assert is_legal_placement(b, 0, 0)
    assert not is_legal_placement(b, 3, 3)
    assert not is_legal_placement(b, 1, 4)
    assert not is_legal_placement(b, 1.0, 1)

def test_lines_cover_rows_cols_and_diagonals():
    assert len(LINES) == 10
    assert len(LINES_THROUGH[0][0]) == 3
    assert len(LINES_THROUGH[0][1]) == 2
    assert len(LINES_THROUGH[1][1]) == 3

def test_labels():
    b = Board.from_rows(["B...", "...W", "....", "...."])
    labels = b.to_labels()
    assert labels[0][0] == "black"
    assert labels[1][3] == "white"
    assert labels[2][2] is None
    assert Player.BLACK.opponent == Player.WHITE
    assert Direction.from_label("counter-clockwise") == Direction.CCW
