from __future__ import annotations

from groupcheck.history import EditHistory
from tests.utils import assign

S0 = assign([("p1", "g1", 0), ("p2", "g1", 0)])
S1 = assign([("p1", "g1", 0), ("p2", "g2", 0)])
S2 = assign([("p1", "g2", 0), ("p2", "g2", 0)])


def test_commit_undo_redo_sequence() -> None:
    history = EditHistory()

    history.commit(S1)
    history.commit(S2)
    assert history.undo() == S1
    assert history.redo() == S2
    history.undo()
    assert history.undo() == S1
    assert history.current == S1
    assert not history.can_undo


def test_undo_returns_to_initial_state() -> None:
    history = EditHistory(S0)

    history.commit(S1)

    assert history.undo() == S0
    assert history.can_redo


def test_commit_clears_redo() -> None:
    history = EditHistory(S0)
    history.commit(S1)
    history.undo()

    history.commit(S2)

    assert not history.can_redo
    assert history.redo() == S2


def test_redo_on_empty_is_noop() -> None:
    history = EditHistory(S0)

    assert history.redo() == S0
    assert EditHistory().undo() is None


def test_snapshots_are_isolated_from_callers() -> None:
    source = assign([("p1", "g1", 0)])
    history = EditHistory(source)

    source[0].group_id = "mutated-input"
    snapshot = history.current
    snapshot[0].group_id = "mutated-output"
    committed = history.commit(S1)
    committed[0].group_id = "mutated-commit"

    assert history.undo()[0].group_id == "g1"
    assert history.redo() == S1


def test_reset_drops_both_stacks() -> None:
    history = EditHistory(S0)
    history.commit(S1)
    history.commit(S2)
    history.undo()

    history.reset(S0)

    assert history.current == S0
    assert not history.can_undo
    assert not history.can_redo
