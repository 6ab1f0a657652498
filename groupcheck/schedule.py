"""Schedule indexing and contact counting for groupcheck."""

from collections.abc import Iterator
from dataclasses import replace

from groupcheck.models import Assignment, ContactSummary, Problem

# session -> group -> person ids, in assignment order
ScheduleIndex = dict[int, dict[str, list[str]]]


def build_schedule_index(assignments: list[Assignment]) -> ScheduleIndex:
    """
    Group a flat assignment list by session and group.

    Duplicates are kept: a person assigned twice to the same session shows up
    in both membership lists.
    """
    index: ScheduleIndex = {}
    for a in assignments:
        index.setdefault(a.session_id, {}).setdefault(a.group_id, []).append(a.person_id)
    return index


def clone_assignments(assignments: list[Assignment]) -> list[Assignment]:
    return [replace(a) for a in assignments]


def apply_move(
    assignments: list[Assignment],
    person_id: str,
    group_id: str,
    session_id: int,
) -> list[Assignment]:
    """Return a new list with the person's assignment for the session replaced."""
    moved = [
        replace(a)
        for a in assignments
        if not (a.person_id == person_id and a.session_id == session_id)
    ]
    moved.append(Assignment(person_id=person_id, group_id=group_id, session_id=session_id))
    return moved


def find_group(index: ScheduleIndex, session_id: int, person_id: str) -> str | None:
    """Return the first group holding the person in the session, if any."""
    for group_id, members in index.get(session_id, {}).items():
        if person_id in members:
            return group_id
    return None


def pair_key(a: str, b: str) -> tuple[str, str]:
    return (a, b) if a < b else (b, a)


def iter_pairs(members: list[str]) -> Iterator[tuple[str, str]]:
    """Yield every unordered pair of positions in a membership list."""
    for i in range(len(members)):
        for j in range(i + 1, len(members)):
            yield members[i], members[j]


def count_unique_contacts(index: ScheduleIndex, people_count: int) -> ContactSummary:
    """
    Count unordered pairs that shared a group in at least one session.

    A pair seen in several sessions is counted once. The average counts each
    contact for both people involved.
    """
    seen: set[tuple[str, str]] = set()
    for groups in index.values():
        for members in groups.values():
            for a, b in iter_pairs(members):
                if a != b:
                    seen.add(pair_key(a, b))

    unique_contacts = len(seen)
    return ContactSummary(
        unique_contacts=unique_contacts,
        avg_unique_contacts=unique_contacts * 2 / max(1, people_count),
    )


def find_unassigned(problem: Problem, assignments: list[Assignment]) -> dict[int, list[str]]:
    """
    List, per session, eligible people who have no assignment in it.

    Sessions with nobody missing are left out.
    """
    assigned: dict[int, set[str]] = {}
    for a in assignments:
        assigned.setdefault(a.session_id, set()).add(a.person_id)

    missing: dict[int, list[str]] = {}
    for person in problem.people:
        sessions = problem.all_sessions() if person.sessions is None else person.sessions
        for session in sessions:
            if person.id not in assigned.get(session, set()):
                missing.setdefault(session, []).append(person.id)
    return dict(sorted(missing.items()))
