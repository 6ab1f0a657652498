"""Reference scoring service: scores an assignment set without searching."""

import time
from typing import Protocol

import numpy as np

from groupcheck.compliance import evaluate_constraint
from groupcheck.models import (
    Assignment,
    AttributeBalance,
    ComplianceEntry,
    ImmovablePeople,
    ImmovablePerson,
    MustStayTogether,
    Problem,
    RepeatEncounter,
    Solution,
)
from groupcheck.schedule import ScheduleIndex, build_schedule_index

# Weight applied to violations of constraints treated as hard
HARD_CONSTRAINT_WEIGHT = 1000.0


class ScoringService(Protocol):
    """Anything that can score a problem/assignment pair asynchronously."""

    async def evaluate(self, problem: Problem, assignments: list[Assignment]) -> Solution: ...


def _contact_matrix(schedule: ScheduleIndex, person_ids: list[str]) -> np.ndarray:
    """Symmetric matrix of co-location counts between people."""
    position = {pid: i for i, pid in enumerate(person_ids)}
    matrix = np.zeros((len(person_ids), len(person_ids)), dtype=np.int64)
    for groups in schedule.values():
        for members in groups.values():
            idx = np.array([position[pid] for pid in members], dtype=np.intp)
            if len(idx) < 2:
                continue
            # Outer product marks every pair in the group; self-pairs are dropped below
            block = np.zeros(len(person_ids), dtype=np.int64)
            np.add.at(block, idx, 1)
            matrix += np.outer(block, block)
    np.fill_diagonal(matrix, 0)
    return matrix


def _contacts_weight(problem: Problem) -> float:
    if not problem.objectives:
        return 1.0
    for objective in problem.objectives:
        if objective.type == "maximize_unique_contacts":
            return objective.weight
    return 0.0


def _attribute_penalty(entry: ComplianceEntry, c: AttributeBalance) -> float:
    """Squared, weighted deviations taken from the balance evaluator's details."""
    return sum((d.actual - d.desired) ** 2 * c.penalty_weight for d in entry.details)


def score_assignments(problem: Problem, assignments: list[Assignment]) -> Solution:
    """
    Score an assignment set with the solver's cost model.

    Lower is better: repetition, balance and constraint penalties add to the
    score, unique contacts subtract from it.
    """
    started = time.perf_counter()
    schedule = build_schedule_index(assignments)

    # Unknown ids in the assignments still take part in contacts
    person_ids = [p.id for p in problem.people]
    known = set(person_ids)
    for a in assignments:
        if a.person_id not in known:
            known.add(a.person_id)
            person_ids.append(a.person_id)

    contacts = np.triu(_contact_matrix(schedule, person_ids), k=1)
    unique_contacts = int(np.count_nonzero(contacts))

    repeat = next((c for c in problem.constraints if isinstance(c, RepeatEncounter)), None)
    max_allowed = 1
    exponent = 2
    w_repetition = 0.0
    if repeat is not None:
        if repeat.max_allowed_encounters is not None:
            max_allowed = repeat.max_allowed_encounters
        exponent = 1 if repeat.penalty_function == "linear" else 2
        w_repetition = repeat.penalty_weight
    overage = np.clip(contacts - max_allowed, 0, None)
    repetition_penalty = float(np.sum(overage**exponent))

    attribute_penalty = 0.0
    constraint_penalty = 0
    weighted_constraint_penalty = 0.0
    for i, c in enumerate(problem.constraints):
        if isinstance(c, RepeatEncounter):
            continue
        entry = evaluate_constraint(problem, schedule, c, i)
        if isinstance(c, AttributeBalance):
            attribute_penalty += _attribute_penalty(entry, c)
            continue
        constraint_penalty += entry.violation_count
        if isinstance(c, (MustStayTogether, ImmovablePerson, ImmovablePeople)):
            weight = HARD_CONSTRAINT_WEIGHT
        else:
            weight = getattr(c, "penalty_weight", 0.0)
        weighted_constraint_penalty += entry.violation_count * weight

    w_contacts = _contacts_weight(problem)
    people_count = len(problem.people)
    baseline = people_count * (people_count - 1) // 2 * w_contacts
    weighted_repetition = repetition_penalty * w_repetition
    final_score = (
        weighted_repetition
        + attribute_penalty
        + weighted_constraint_penalty
        - unique_contacts * w_contacts
        + baseline
    )

    return Solution(
        assignments=[Assignment(a.person_id, a.group_id, a.session_id) for a in assignments],
        final_score=final_score,
        unique_contacts=unique_contacts,
        repetition_penalty=repetition_penalty,
        attribute_balance_penalty=attribute_penalty,
        constraint_penalty=constraint_penalty,
        iteration_count=0,
        elapsed_time_ms=(time.perf_counter() - started) * 1000,
        weighted_repetition_penalty=weighted_repetition,
        weighted_constraint_penalty=weighted_constraint_penalty,
    )


class LocalScoringService:
    """In-process scoring service built on score_assignments."""

    async def evaluate(self, problem: Problem, assignments: list[Assignment]) -> Solution:
        return score_assignments(problem, assignments)
