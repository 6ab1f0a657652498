from __future__ import annotations

from groupcheck.compliance import evaluate_compliance, format_sessions, total_violations
from groupcheck.models import (
    AttributeBalance,
    ImmovablePeople,
    ImmovablePerson,
    MustStayTogether,
    PairMeetingCount,
    RepeatEncounter,
    ShouldNotBeTogether,
    ShouldStayTogether,
    UnknownConstraint,
)
from tests.utils import assign, layout, make_problem


def test_report_has_one_entry_per_constraint_in_order() -> None:
    problem = make_problem(
        constraints=[
            ShouldNotBeTogether(people=["p1", "p2"]),
            RepeatEncounter(max_allowed_encounters=1),
            UnknownConstraint(kind="Future"),
        ]
    )

    report = evaluate_compliance(problem, [])

    assert [e.constraint_index for e in report] == [0, 1, 2]
    assert [e.kind for e in report] == ["ShouldNotBeTogether", "RepeatEncounter", "Future"]


def test_evaluation_is_idempotent_and_pure() -> None:
    problem = make_problem(
        constraints=[
            RepeatEncounter(max_allowed_encounters=0),
            MustStayTogether(people=["p1", "p3"]),
        ]
    )
    assignments = layout({0: {"g1": ["p1", "p2"], "g2": ["p3", "p4"]}, 1: {"g1": ["p1", "p2"]}})
    snapshot = [(a.person_id, a.group_id, a.session_id) for a in assignments]

    first = evaluate_compliance(problem, assignments)
    second = evaluate_compliance(problem, assignments)

    assert first == second
    assert first is not second
    assert [(a.person_id, a.group_id, a.session_id) for a in assignments] == snapshot


def test_repeat_encounter_counts_overage_per_pair() -> None:
    problem = make_problem(num_sessions=3, constraints=[RepeatEncounter(max_allowed_encounters=1)])
    assignments = layout({0: {"g1": ["p1", "p2"]}, 1: {"g1": ["p2", "p1"]}})

    entry = evaluate_compliance(problem, assignments)[0]

    assert not entry.satisfied
    assert entry.violation_count == 1
    assert entry.title == "Repeat Encounter (max 1)"
    detail = entry.details[0]
    assert detail.pair == ("p1", "p2")
    assert detail.count == 2
    assert detail.sessions == [0, 1]


def test_repeat_encounter_monotonic_for_over_limit_pair() -> None:
    problem = make_problem(num_sessions=3, constraints=[RepeatEncounter(max_allowed_encounters=1)])
    base = layout({0: {"g1": ["p1", "p2"]}, 1: {"g1": ["p1", "p2"]}})
    more = base + assign([("p1", "g2", 2), ("p2", "g2", 2)])

    before = evaluate_compliance(problem, base)[0].violation_count
    after = evaluate_compliance(problem, more)[0].violation_count

    assert after == before + 1


def test_repeat_encounter_pair_symmetry() -> None:
    problem = make_problem(constraints=[RepeatEncounter(max_allowed_encounters=0)])
    assignments = layout({0: {"g1": ["p1", "p2"], "g2": ["p3", "p4"]}, 1: {"g1": ["p4", "p1"]}})

    forward = evaluate_compliance(problem, assignments)[0]
    backward = evaluate_compliance(problem, list(reversed(assignments)))[0]

    assert forward.violation_count == backward.violation_count == 3
    assert {d.pair for d in forward.details} == {d.pair for d in backward.details}


def test_repeat_encounter_without_limit_is_satisfied() -> None:
    problem = make_problem(constraints=[RepeatEncounter()])
    assignments = layout({0: {"g1": ["p1", "p2"]}, 1: {"g1": ["p1", "p2"]}})

    entry = evaluate_compliance(problem, assignments)[0]

    assert entry.satisfied
    assert entry.violation_count == 0


def test_duplicate_assignments_inflate_co_location() -> None:
    problem = make_problem(constraints=[RepeatEncounter(max_allowed_encounters=0)])
    assignments = assign([("p1", "g1", 0), ("p1", "g1", 0), ("p2", "g1", 0)])

    entry = evaluate_compliance(problem, assignments)[0]
    counts = {d.pair: d.count for d in entry.details}

    # p1 meets p2 twice and also pairs with their own duplicate
    assert counts == {("p1", "p1"): 1, ("p1", "p2"): 2}
    assert entry.violation_count == 3


def test_duplicate_assignment_immovable_uses_last_group() -> None:
    problem = make_problem(constraints=[ImmovablePerson(person_id="p1", group_id="g2", sessions=[0])])
    assignments = assign([("p1", "g1", 0), ("p1", "g2", 0)])

    assert evaluate_compliance(problem, assignments)[0].satisfied

    reversed_order = assign([("p1", "g2", 0), ("p1", "g1", 0)])
    entry = evaluate_compliance(problem, reversed_order)[0]
    assert entry.violation_count == 1
    assert entry.details[0].assigned_group == "g1"


ATTRIBUTES = {
    "a1": {"gender": "A"},
    "a2": {"gender": "A"},
    "a3": {"gender": "A"},
    "b1": {"gender": "B"},
    "n1": {},
}


def _balance_problem(mode: str):
    return make_problem(
        person_ids=list(ATTRIBUTES),
        group_sizes=[("g1", 4), ("g2", 4)],
        num_sessions=1,
        attributes=ATTRIBUTES,
        constraints=[
            AttributeBalance(
                group_id="g1",
                attribute_key="gender",
                desired_values={"A": 2, "B": 2},
                mode=mode,
            )
        ],
    )


def test_attribute_balance_exact_mode() -> None:
    assignments = layout({0: {"g1": ["a1", "a2", "a3", "b1"]}})

    entry = evaluate_compliance(_balance_problem("exact"), assignments)[0]

    assert entry.violation_count == 2
    assert [(d.attribute, d.desired, d.actual) for d in entry.details] == [("A", 2, 3), ("B", 2, 1)]


def test_attribute_balance_at_least_mode_ignores_surplus() -> None:
    assignments = layout({0: {"g1": ["a1", "a2", "a3", "b1"]}})

    entry = evaluate_compliance(_balance_problem("at_least"), assignments)[0]

    assert entry.violation_count == 1
    assert entry.details[0].attribute == "B"
    assert entry.subtitle.endswith("Mode: At least")


def test_attribute_balance_unknown_values_never_match() -> None:
    problem = _balance_problem("exact")
    problem.constraints[0].desired_values = {"__UNKNOWN__": 2}
    assignments = layout({0: {"g1": ["n1", "ghost"]}})

    entry = evaluate_compliance(problem, assignments)[0]

    assert entry.satisfied


def test_immovable_person() -> None:
    problem = make_problem(
        num_sessions=3,
        constraints=[ImmovablePerson(person_id="p1", group_id="g1", sessions=[0, 1, 2])],
    )
    assignments = layout({0: {"g1": ["p1"]}, 1: {"g2": ["p1"]}})

    entry = evaluate_compliance(problem, assignments)[0]

    assert entry.violation_count == 2
    assert [(d.session, d.assigned_group) for d in entry.details] == [(1, "g2"), (2, None)]


def test_immovable_person_missing_fields_means_no_restriction() -> None:
    problem = make_problem(constraints=[ImmovablePerson(), AttributeBalance()])

    report = evaluate_compliance(problem, layout({0: {"g1": ["p1"]}}))

    assert all(entry.satisfied for entry in report)


def test_immovable_people_defaults_to_all_sessions() -> None:
    problem = make_problem(constraints=[ImmovablePeople(people=["p1", "p2"], group_id="g1")])
    assignments = layout({0: {"g1": ["p1", "p2"]}, 1: {"g1": ["p1"], "g2": ["p2"]}})

    entry = evaluate_compliance(problem, assignments)[0]

    assert entry.violation_count == 1
    assert (entry.details[0].session, entry.details[0].person_id) == (1, "p2")


def test_must_stay_together_counts_each_absent_person() -> None:
    problem = make_problem(
        person_ids=["x", "y", "z"],
        constraints=[MustStayTogether(people=["x", "y", "z"], sessions=[0])],
    )

    entry = evaluate_compliance(problem, layout({1: {"g1": ["x", "y", "z"]}}))[0]

    assert entry.violation_count == 3
    assert entry.details[0].people == [("x", None), ("y", None), ("z", None)]


def test_stay_together_split_and_absent() -> None:
    problem = make_problem(
        constraints=[
            ShouldStayTogether(people=["p1", "p2", "p3"]),
        ]
    )
    assignments = layout(
        {
            0: {"g1": ["p1"], "g2": ["p2", "p3"]},
            1: {"g1": ["p1"], "g2": ["p2"]},
        }
    )

    entry = evaluate_compliance(problem, assignments)[0]

    # session 0: two groups -> 1; session 1: split (1) + p3 absent (1)
    assert entry.violation_count == 3
    assert [d.session for d in entry.details] == [0, 1]
    assert entry.title == "Should Stay Together"


def test_stay_together_satisfied_when_all_in_one_group() -> None:
    problem = make_problem(constraints=[MustStayTogether(people=["p1", "p2"])])
    assignments = layout({0: {"g1": ["p1", "p2"]}, 1: {"g2": ["p2", "p1"]}})

    entry = evaluate_compliance(problem, assignments)[0]

    assert entry.satisfied
    assert entry.details == []


def test_should_not_be_together_counts_excess_members() -> None:
    problem = make_problem(
        person_ids=["x", "y", "z", "w"],
        constraints=[ShouldNotBeTogether(people=["x", "y", "z"], sessions=[0])],
    )
    assignments = layout({0: {"G": ["x", "y", "z", "w"]}, 1: {"G": ["x", "y"]}})

    entry = evaluate_compliance(problem, assignments)[0]

    assert entry.violation_count == 2
    assert entry.details[0].group_id == "G"
    assert entry.details[0].people == ["x", "y", "z"]


def test_details_are_session_ascending() -> None:
    problem = make_problem(constraints=[ShouldNotBeTogether(people=["p1", "p2"], sessions=[1, 0])])
    assignments = layout({1: {"g1": ["p1", "p2"]}, 0: {"g2": ["p2", "p1"]}})

    entry = evaluate_compliance(problem, assignments)[0]

    assert [d.session for d in entry.details] == [0, 1]


def test_pair_meeting_count_modes() -> None:
    assignments = layout({0: {"g1": ["p1", "p2"]}, 1: {"g1": ["p1"], "g2": ["p2"]}})

    at_least = make_problem(constraints=[PairMeetingCount(people=["p1", "p2"], target_meetings=2)])
    at_most = make_problem(
        constraints=[PairMeetingCount(people=["p1", "p2"], target_meetings=0, mode="at_most")]
    )

    entry = evaluate_compliance(at_least, assignments)[0]
    assert entry.violation_count == 1
    assert entry.details[0].actual == 1
    assert [d.kind for d in entry.details[1:]] == ["PairMeetingTogether", "PairMeetingApart"]

    assert evaluate_compliance(at_most, assignments)[0].violation_count == 1


def test_unknown_constraint_passes_through() -> None:
    problem = make_problem(constraints=[UnknownConstraint(kind="PreferNearWindow", raw={"x": 1})])

    entry = evaluate_compliance(problem, layout({0: {"g1": ["p1", "p2"]}}))[0]

    assert entry.satisfied
    assert entry.violation_count == 0
    assert entry.details == []
    assert entry.title == "PreferNearWindow"


def test_total_violations() -> None:
    problem = make_problem(
        constraints=[
            ShouldNotBeTogether(people=["p1", "p2"]),
            ImmovablePerson(person_id="p3", group_id="g2", sessions=[0]),
        ]
    )
    assignments = layout({0: {"g1": ["p1", "p2", "p3"]}})

    assert total_violations(evaluate_compliance(problem, assignments)) == 2


def test_format_sessions() -> None:
    assert format_sessions(None, 3) == "All sessions"
    assert format_sessions([0, 1, 2], 3) == "All sessions"
    assert format_sessions([0, 2], 3) == "Sessions 1, 3"
