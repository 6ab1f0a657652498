"""Per-constraint compliance evaluation for groupcheck."""

from collections.abc import Callable

from groupcheck.models import (
    UNKNOWN_ATTRIBUTE,
    Assignment,
    AttributeBalance,
    AttributeBalanceDetail,
    ComplianceEntry,
    Constraint,
    ImmovableDetail,
    ImmovablePeople,
    ImmovablePerson,
    MustStayTogether,
    NotTogetherDetail,
    PairMeetingCount,
    PairMeetingSessionDetail,
    PairMeetingSummaryDetail,
    Problem,
    RepeatEncounter,
    RepeatEncounterDetail,
    ShouldNotBeTogether,
    ShouldStayTogether,
    TogetherSplitDetail,
    ViolationDetail,
)
from groupcheck.schedule import ScheduleIndex, build_schedule_index, find_group, iter_pairs, pair_key


def format_sessions(sessions: list[int] | None, total: int) -> str:
    """Render a session scope for display (1-based)."""
    if not sessions or len(sessions) == total:
        return "All sessions"
    return "Sessions " + ", ".join(str(s + 1) for s in sessions)


def effective_sessions(sessions: list[int] | None, num_sessions: int) -> list[int]:
    """Explicit sessions in ascending order, or every session when unset."""
    if sessions is None:
        return list(range(num_sessions))
    return sorted(set(sessions))


def _entry(
    index: int,
    constraint: Constraint,
    title: str,
    violations: int,
    details: list[ViolationDetail],
    subtitle: str | None = None,
) -> ComplianceEntry:
    return ComplianceEntry(
        constraint_index=index,
        kind=constraint.kind,
        title=title,
        subtitle=subtitle,
        satisfied=violations == 0,
        violation_count=violations,
        details=details,
        constraint=constraint,
    )


def _repeat_encounter(
    problem: Problem, schedule: ScheduleIndex, c: RepeatEncounter, index: int
) -> ComplianceEntry:
    # Counted over every session; repeats in different sessions each count.
    # A person listed twice in one group also forms a (p, p) pair.
    pair_counts: dict[tuple[str, str], int] = {}
    pair_sessions: dict[tuple[str, str], set[int]] = {}
    for session in sorted(schedule):
        for members in schedule[session].values():
            for a, b in iter_pairs(members):
                key = pair_key(a, b)
                pair_counts[key] = pair_counts.get(key, 0) + 1
                pair_sessions.setdefault(key, set()).add(session)

    details: list[ViolationDetail] = []
    violations = 0
    if c.max_allowed_encounters is not None:
        for key, count in pair_counts.items():
            if count > c.max_allowed_encounters:
                violations += count - c.max_allowed_encounters
                details.append(
                    RepeatEncounterDetail(
                        pair=key,
                        count=count,
                        max_allowed=c.max_allowed_encounters,
                        sessions=sorted(pair_sessions[key]),
                    )
                )

    limit = "no limit" if c.max_allowed_encounters is None else f"max {c.max_allowed_encounters}"
    return _entry(
        index,
        c,
        f"Repeat Encounter ({limit})",
        violations,
        details,
        subtitle=f"Penalty: {c.penalty_function}, Weight: {c.penalty_weight}",
    )


def _attribute_balance(
    problem: Problem, schedule: ScheduleIndex, c: AttributeBalance, index: int
) -> ComplianceEntry:
    details: list[ViolationDetail] = []
    violations = 0

    if c.group_id is not None and c.attribute_key is not None:
        for session in effective_sessions(c.sessions, problem.num_sessions):
            counts: dict[str, int] = {}
            for person_id in schedule.get(session, {}).get(c.group_id, []):
                person = problem.person(person_id)
                value = UNKNOWN_ATTRIBUTE
                if person is not None:
                    value = person.attributes.get(c.attribute_key, UNKNOWN_ATTRIBUTE)
                counts[value] = counts.get(value, 0) + 1

            for value, desired in c.desired_values.items():
                if value == UNKNOWN_ATTRIBUTE:
                    continue
                actual = counts.get(value, 0)
                if c.mode == "at_least":
                    deviation = max(0, desired - actual)
                else:
                    deviation = abs(actual - desired)
                if deviation:
                    violations += deviation
                    details.append(
                        AttributeBalanceDetail(
                            session=session,
                            group_id=c.group_id,
                            attribute=value,
                            desired=desired,
                            actual=actual,
                        )
                    )

    subtitle = (
        f"{format_sessions(c.sessions, problem.num_sessions)} • Weight: {c.penalty_weight}"
    )
    if c.mode == "at_least":
        subtitle += " • Mode: At least"
    return _entry(
        index,
        c,
        f"Attribute Balance – {c.group_id} ({c.attribute_key})",
        violations,
        details,
        subtitle=subtitle,
    )


def _immovable_person(
    problem: Problem, schedule: ScheduleIndex, c: ImmovablePerson, index: int
) -> ComplianceEntry:
    details: list[ViolationDetail] = []
    violations = 0

    if c.person_id is not None and c.group_id is not None:
        for session in effective_sessions(c.sessions, problem.num_sessions):
            # With duplicate assignments the last group holding the person counts
            assigned = None
            for group_id, members in schedule.get(session, {}).items():
                if c.person_id in members:
                    assigned = group_id
            if assigned != c.group_id:
                violations += 1
                details.append(
                    ImmovableDetail(
                        session=session,
                        person_id=c.person_id,
                        required_group=c.group_id,
                        assigned_group=assigned,
                    )
                )

    return _entry(
        index,
        c,
        "Immovable Person",
        violations,
        details,
        subtitle=f"{format_sessions(c.sessions, problem.num_sessions)} • Group: {c.group_id}",
    )


def _immovable_people(
    problem: Problem, schedule: ScheduleIndex, c: ImmovablePeople, index: int
) -> ComplianceEntry:
    details: list[ViolationDetail] = []
    violations = 0

    if c.group_id is not None:
        for session in effective_sessions(c.sessions, problem.num_sessions):
            members = schedule.get(session, {}).get(c.group_id, [])
            for person_id in c.people:
                if person_id not in members:
                    violations += 1
                    details.append(
                        ImmovableDetail(
                            session=session,
                            person_id=person_id,
                            required_group=c.group_id,
                            assigned_group=find_group(schedule, session, person_id),
                        )
                    )

    return _entry(
        index,
        c,
        "Immovable People",
        violations,
        details,
        subtitle=f"{format_sessions(c.sessions, problem.num_sessions)} • Group: {c.group_id}",
    )


def _stay_together(
    problem: Problem,
    schedule: ScheduleIndex,
    c: MustStayTogether | ShouldStayTogether,
    index: int,
) -> ComplianceEntry:
    details: list[ViolationDetail] = []
    violations = 0

    for session in effective_sessions(c.sessions, problem.num_sessions):
        found = [(pid, find_group(schedule, session, pid)) for pid in c.people]
        absent = sum(1 for _, gid in found if gid is None)
        distinct = {gid for _, gid in found if gid is not None}

        # Each absent person counts on its own; present people add one per extra group
        violations += absent
        if len(distinct) > 1:
            violations += len(distinct) - 1
        if absent or len(distinct) > 1:
            details.append(TogetherSplitDetail(session=session, people=found))

    if isinstance(c, MustStayTogether):
        title = "Must Stay Together"
        subtitle = format_sessions(c.sessions, problem.num_sessions)
    else:
        title = "Should Stay Together"
        subtitle = f"{format_sessions(c.sessions, problem.num_sessions)} • Weight: {c.penalty_weight}"
    return _entry(index, c, title, violations, details, subtitle=subtitle)


def _should_not_be_together(
    problem: Problem, schedule: ScheduleIndex, c: ShouldNotBeTogether, index: int
) -> ComplianceEntry:
    listed = set(c.people)
    details: list[ViolationDetail] = []
    violations = 0

    for session in effective_sessions(c.sessions, problem.num_sessions):
        for group_id, members in schedule.get(session, {}).items():
            involved = [pid for pid in members if pid in listed]
            if len(involved) > 1:
                violations += len(involved) - 1
                details.append(
                    NotTogetherDetail(session=session, group_id=group_id, people=involved)
                )

    return _entry(
        index,
        c,
        "Should Not Be Together",
        violations,
        details,
        subtitle=f"{format_sessions(c.sessions, problem.num_sessions)} • Weight: {c.penalty_weight}",
    )


def _pair_meeting_count(
    problem: Problem, schedule: ScheduleIndex, c: PairMeetingCount, index: int
) -> ComplianceEntry:
    if len(c.people) != 2:
        # Not a pair; nothing to measure
        return _entry(index, c, "Pair Meeting Count", 0, [])

    id_a, id_b = c.people
    sessions = effective_sessions(c.sessions, problem.num_sessions)
    per_session: list[PairMeetingSessionDetail] = []
    count = 0
    for session in sessions:
        shared = None
        for group_id, members in schedule.get(session, {}).items():
            if id_a in members and id_b in members:
                shared = group_id
                break
        if shared is not None:
            count += 1
        per_session.append(
            PairMeetingSessionDetail(
                session=session,
                people=(id_a, id_b),
                together=shared is not None,
                group_id=shared,
            )
        )

    if c.mode == "exact":
        deviation = abs(c.target_meetings - count)
    elif c.mode == "at_most":
        deviation = max(0, count - c.target_meetings)
    else:
        deviation = max(0, c.target_meetings - count)

    details: list[ViolationDetail] = [
        PairMeetingSummaryDetail(
            people=(id_a, id_b),
            target=c.target_meetings,
            actual=count,
            mode=c.mode,
            sessions=sessions,
        )
    ]
    details.extend(per_session)
    return _entry(
        index,
        c,
        f"Pair Meeting Count ({c.mode.replace('_', ' ')})",
        deviation,
        details,
        subtitle=(
            f"{format_sessions(c.sessions, problem.num_sessions)} • Target: {c.target_meetings}"
        ),
    )


_EVALUATORS: dict[type, Callable[..., ComplianceEntry]] = {
    RepeatEncounter: _repeat_encounter,
    AttributeBalance: _attribute_balance,
    ImmovablePerson: _immovable_person,
    ImmovablePeople: _immovable_people,
    MustStayTogether: _stay_together,
    ShouldStayTogether: _stay_together,
    ShouldNotBeTogether: _should_not_be_together,
    PairMeetingCount: _pair_meeting_count,
}


def evaluate_constraint(
    problem: Problem,
    schedule: ScheduleIndex,
    constraint: Constraint,
    index: int,
) -> ComplianceEntry:
    """Evaluate one constraint against an already-built schedule index."""
    evaluator = _EVALUATORS.get(type(constraint))
    if evaluator is None:
        # Unrecognized kinds pass through as satisfied
        return _entry(index, constraint, constraint.kind, 0, [])
    return evaluator(problem, schedule, constraint, index)


def evaluate_compliance(problem: Problem, assignments: list[Assignment]) -> list[ComplianceEntry]:
    """
    Build a compliance report: one entry per constraint, in input order.

    Pure: neither the problem nor the assignments are modified, and every call
    returns fresh structures.
    """
    schedule = build_schedule_index(assignments)
    return [
        evaluate_constraint(problem, schedule, constraint, i)
        for i, constraint in enumerate(problem.constraints)
    ]


def total_violations(report: list[ComplianceEntry]) -> int:
    return sum(entry.violation_count for entry in report)
