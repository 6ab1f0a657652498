"""Problem and assignment file parsing for groupcheck."""

import csv
import logging
from pathlib import Path
from typing import Any

import yaml

from groupcheck.models import (
    Assignment,
    AttributeBalance,
    Constraint,
    Group,
    ImmovablePeople,
    ImmovablePerson,
    MustStayTogether,
    Objective,
    PairMeetingCount,
    Person,
    Problem,
    RepeatEncounter,
    ShouldNotBeTogether,
    ShouldStayTogether,
    UnknownConstraint,
)

logger = logging.getLogger(__name__)

ASSIGNMENT_COLUMNS = ("person_id", "group_id", "session_id")


class ProblemFormatError(ValueError):
    pass


def _sessions(raw: Any) -> list[int] | None:
    if raw is None:
        return None
    return [int(s) for s in raw]


def _people(raw: Any) -> list[str]:
    return [str(p) for p in raw or []]


def _optional_str(raw: Any) -> str | None:
    return None if raw is None else str(raw)


def parse_constraint(data: Any) -> Constraint:
    """
    Build a constraint from its tagged mapping form.

    Missing fields fall back to "no restriction" instead of raising, since
    constraints are user-authored and may be half-finished.
    """
    if not isinstance(data, dict) or "type" not in data:
        raise ProblemFormatError(f"Constraint must be a mapping with a 'type': {data!r}")

    kind = data["type"]
    if kind == "RepeatEncounter":
        max_allowed = data.get("max_allowed_encounters")
        return RepeatEncounter(
            max_allowed_encounters=None if max_allowed is None else int(max_allowed),
            penalty_function=data.get("penalty_function", "squared"),
            penalty_weight=float(data.get("penalty_weight", 0.0)),
        )
    if kind == "AttributeBalance":
        return AttributeBalance(
            group_id=_optional_str(data.get("group_id")),
            attribute_key=_optional_str(data.get("attribute_key")),
            desired_values={str(k): int(v) for k, v in (data.get("desired_values") or {}).items()},
            penalty_weight=float(data.get("penalty_weight", 0.0)),
            mode=data.get("mode") or "exact",
            sessions=_sessions(data.get("sessions")),
        )
    if kind == "ImmovablePerson":
        return ImmovablePerson(
            person_id=_optional_str(data.get("person_id")),
            group_id=_optional_str(data.get("group_id")),
            sessions=_sessions(data.get("sessions")),
        )
    if kind == "ImmovablePeople":
        return ImmovablePeople(
            people=_people(data.get("people")),
            group_id=_optional_str(data.get("group_id")),
            sessions=_sessions(data.get("sessions")),
        )
    if kind == "MustStayTogether":
        return MustStayTogether(
            people=_people(data.get("people")),
            sessions=_sessions(data.get("sessions")),
        )
    if kind == "ShouldStayTogether":
        return ShouldStayTogether(
            people=_people(data.get("people")),
            penalty_weight=float(data.get("penalty_weight", 0.0)),
            sessions=_sessions(data.get("sessions")),
        )
    if kind == "ShouldNotBeTogether":
        return ShouldNotBeTogether(
            people=_people(data.get("people")),
            penalty_weight=float(data.get("penalty_weight", 0.0)),
            sessions=_sessions(data.get("sessions")),
        )
    if kind == "PairMeetingCount":
        return PairMeetingCount(
            people=_people(data.get("people")),
            target_meetings=int(data.get("target_meetings", 0)),
            mode=data.get("mode") or "at_least",
            penalty_weight=float(data.get("penalty_weight", 0.0)),
            sessions=_sessions(data.get("sessions")),
        )

    logger.warning("Unknown constraint type %r; treating it as satisfied", kind)
    return UnknownConstraint(kind=str(kind), raw=dict(data))


def parse_problem(data: Any) -> Problem:
    """Build a Problem from its mapping form (as loaded from YAML or JSON)."""
    if not isinstance(data, dict):
        raise ProblemFormatError("Problem file must contain a mapping")
    # Saved problems nest the definition under "problem"
    if "problem" in data and isinstance(data["problem"], dict):
        data = data["problem"]

    for required in ("people", "groups", "num_sessions"):
        if required not in data:
            raise ProblemFormatError(f"Problem is missing '{required}'")

    try:
        people = [
            Person(
                id=str(entry["id"]),
                attributes={str(k): str(v) for k, v in (entry.get("attributes") or {}).items()},
                sessions=_sessions(entry.get("sessions")),
            )
            for entry in data["people"]
        ]
        groups = [Group(id=str(entry["id"]), size=int(entry["size"])) for entry in data["groups"]]
        objectives = [
            Objective(type=str(entry["type"]), weight=float(entry.get("weight", 1.0)))
            for entry in data.get("objectives") or []
        ]
        num_sessions = int(data["num_sessions"])
        constraints = [parse_constraint(c) for c in data.get("constraints") or []]
    except ProblemFormatError:
        raise
    except (KeyError, TypeError, ValueError) as e:
        raise ProblemFormatError(f"Malformed problem definition: {e}") from e

    logger.info(
        "Parsed problem: %d people, %d groups, %d sessions, %d constraints",
        len(people),
        len(groups),
        num_sessions,
        len(constraints),
    )
    return Problem(
        people=people,
        groups=groups,
        num_sessions=num_sessions,
        constraints=constraints,
        settings=dict(data.get("settings") or {}),
        objectives=objectives,
    )


def _load_mapping(path: Path) -> Any:
    # JSON is a subset of YAML, so one loader covers both
    with path.open(encoding="utf-8") as f:
        try:
            return yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ProblemFormatError(f"Could not parse {path}: {e}") from e


def parse_problem_file(path: Path) -> Problem:
    return parse_problem(_load_mapping(path))


def parse_assignments(data: Any) -> list[Assignment]:
    """
    Build assignments from a list of mappings.

    Accepts a bare list, a mapping with "assignments", or a saved result with
    "solution.assignments".
    """
    if isinstance(data, dict):
        if isinstance(data.get("solution"), dict):
            data = data["solution"]
        data = data.get("assignments")
    if not isinstance(data, list):
        raise ProblemFormatError("No assignment list found")

    try:
        return [
            Assignment(
                person_id=str(entry["person_id"]),
                group_id=str(entry["group_id"]),
                session_id=int(entry["session_id"]),
            )
            for entry in data
        ]
    except (KeyError, TypeError, ValueError) as e:
        raise ProblemFormatError(f"Malformed assignment: {e}") from e


def parse_assignments_csv(csv_path: Path) -> list[Assignment]:
    """Parse a CSV file with person_id, group_id and session_id columns."""
    assignments: list[Assignment] = []

    with csv_path.open(newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        fieldnames = [name.strip() for name in reader.fieldnames or []]
        missing = [col for col in ASSIGNMENT_COLUMNS if col not in fieldnames]
        if missing:
            raise ProblemFormatError(f"Assignments CSV is missing columns: {', '.join(missing)}")

        for line_no, row in enumerate(reader, start=2):
            row = {k.strip(): (v or "").strip() for k, v in row.items() if k is not None}
            if not row.get("person_id"):
                continue
            try:
                session_id = int(row["session_id"])
            except ValueError as e:
                raise ProblemFormatError(f"Line {line_no}: bad session_id {row['session_id']!r}") from e
            assignments.append(
                Assignment(person_id=row["person_id"], group_id=row["group_id"], session_id=session_id)
            )

    return assignments


def parse_assignments_file(path: Path) -> list[Assignment]:
    if path.suffix.lower() == ".csv":
        return parse_assignments_csv(path)
    return parse_assignments(_load_mapping(path))


def load_embedded_assignments(path: Path) -> list[Assignment] | None:
    """Assignments stored alongside the problem definition, if any."""
    data = _load_mapping(path)
    if isinstance(data, dict) and isinstance(data.get("solution"), dict):
        return parse_assignments(data["solution"])
    return None
