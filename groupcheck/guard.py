"""Move validation for manual schedule editing."""

import logging
from collections.abc import Collection

from groupcheck.compliance import effective_sessions
from groupcheck.models import DropDecision, EditMode, ImmovablePeople, ImmovablePerson, Problem
from groupcheck.schedule import ScheduleIndex

logger = logging.getLogger(__name__)


def _required_groups(problem: Problem, person_id: str, session_id: int) -> list[str]:
    """Groups that immovable constraints pin this person to in this session."""
    required: list[str] = []
    for c in problem.constraints:
        if isinstance(c, ImmovablePerson):
            applies = c.person_id == person_id
        elif isinstance(c, ImmovablePeople):
            applies = person_id in c.people
        else:
            continue
        if c.group_id is None or not applies:
            continue
        if session_id in effective_sessions(c.sessions, problem.num_sessions):
            required.append(c.group_id)
    return required


def can_drop(
    problem: Problem | None,
    schedule: ScheduleIndex,
    person_id: str,
    target_group_id: str,
    session_id: int,
    mode: EditMode,
    locked_people: Collection[str] = (),
    locked_groups: Collection[str] = (),
) -> DropDecision:
    """
    Decide whether a person may be dropped into a group for a session.

    Locks always reject. Capacity and immovable conflicts reject only in
    strict mode; in warn and free mode they come back as warnings.
    """
    if problem is None:
        return DropDecision(ok=False, reason="No problem loaded")
    if person_id in locked_people:
        return DropDecision(ok=False, reason="Person is locked")
    if target_group_id in locked_groups:
        return DropDecision(ok=False, reason="Group is locked")

    warnings: list[str] = []

    group = problem.group(target_group_id)
    if group is not None:
        occupants = schedule.get(session_id, {}).get(target_group_id, [])
        occupancy = len(occupants) if person_id in occupants else len(occupants) + 1
        if occupancy > group.size:
            if mode == "strict":
                logger.debug("Rejected %s -> %s: capacity", person_id, target_group_id)
                return DropDecision(ok=False, reason="Capacity exceeded")
            warnings.append(
                f"Capacity exceeded: {target_group_id} would hold {occupancy}/{group.size}"
            )

    for required in _required_groups(problem, person_id, session_id):
        if required != target_group_id:
            if mode == "strict":
                logger.debug("Rejected %s -> %s: immovable", person_id, target_group_id)
                return DropDecision(ok=False, reason="Immovable constraint")
            warnings.append(f"Immovable constraint: {person_id} belongs in {required}")

    return DropDecision(ok=True, warnings=warnings)
