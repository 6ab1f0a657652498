"""Builders shared by the groupcheck tests."""
from __future__ import annotations

from typing import Iterable, Sequence

from groupcheck.models import Assignment, Group, Person, Problem


def groups(*sizes: tuple[str, int]) -> list[Group]:
    return [Group(id=gid, size=size) for gid, size in sizes]


def make_problem(
    person_ids: Sequence[str] = ("p1", "p2", "p3", "p4"),
    group_sizes: Sequence[tuple[str, int]] = (("g1", 2), ("g2", 2)),
    num_sessions: int = 2,
    constraints: Iterable = (),
    attributes: dict[str, dict[str, str]] | None = None,
) -> Problem:
    attributes = attributes or {}
    return Problem(
        people=[Person(id=pid, attributes=dict(attributes.get(pid, {}))) for pid in person_ids],
        groups=groups(*group_sizes),
        num_sessions=num_sessions,
        constraints=list(constraints),
    )


def assign(rows: Iterable[tuple[str, str, int]]) -> list[Assignment]:
    """Assignments from (person, group, session) triples."""
    return [Assignment(person_id=p, group_id=g, session_id=s) for p, g, s in rows]


def layout(sessions: dict[int, dict[str, Sequence[str]]]) -> list[Assignment]:
    """Assignments from {session: {group: [people]}}."""
    return [
        Assignment(person_id=pid, group_id=gid, session_id=session)
        for session, by_group in sessions.items()
        for gid, members in by_group.items()
        for pid in members
    ]
