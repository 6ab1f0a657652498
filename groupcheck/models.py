"""Data models for groupcheck."""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Literal

EditMode = Literal["strict", "warn", "free"]

# Attribute bucket for people without a value (or unknown people); never matched
UNKNOWN_ATTRIBUTE = "__UNKNOWN__"


@dataclass
class Person:
    """A participant with free-form attributes."""

    id: str
    attributes: dict[str, str] = field(default_factory=dict)
    sessions: list[int] | None = None  # None = eligible for every session

    @property
    def name(self) -> str:
        return self.attributes.get("name", self.id)


@dataclass
class Group:
    """A group with a fixed per-session capacity."""

    id: str
    size: int


@dataclass
class Objective:
    type: str
    weight: float = 1.0


@dataclass
class Assignment:
    """A person placed into a group for one session."""

    person_id: str
    group_id: str
    session_id: int


# --- Constraint variants ---


@dataclass
class RepeatEncounter:
    kind: ClassVar[str] = "RepeatEncounter"

    max_allowed_encounters: int | None = None  # None = unlimited
    penalty_function: Literal["linear", "squared"] = "squared"
    penalty_weight: float = 0.0


@dataclass
class AttributeBalance:
    kind: ClassVar[str] = "AttributeBalance"

    group_id: str | None = None
    attribute_key: str | None = None
    desired_values: dict[str, int] = field(default_factory=dict)
    penalty_weight: float = 0.0
    mode: Literal["exact", "at_least"] = "exact"
    sessions: list[int] | None = None


@dataclass
class ImmovablePerson:
    kind: ClassVar[str] = "ImmovablePerson"

    person_id: str | None = None
    group_id: str | None = None
    sessions: list[int] | None = None


@dataclass
class ImmovablePeople:
    kind: ClassVar[str] = "ImmovablePeople"

    people: list[str] = field(default_factory=list)
    group_id: str | None = None
    sessions: list[int] | None = None


@dataclass
class MustStayTogether:
    kind: ClassVar[str] = "MustStayTogether"

    people: list[str] = field(default_factory=list)
    sessions: list[int] | None = None


@dataclass
class ShouldStayTogether:
    kind: ClassVar[str] = "ShouldStayTogether"

    people: list[str] = field(default_factory=list)
    penalty_weight: float = 0.0
    sessions: list[int] | None = None


@dataclass
class ShouldNotBeTogether:
    kind: ClassVar[str] = "ShouldNotBeTogether"

    people: list[str] = field(default_factory=list)
    penalty_weight: float = 0.0
    sessions: list[int] | None = None


@dataclass
class PairMeetingCount:
    kind: ClassVar[str] = "PairMeetingCount"

    people: list[str] = field(default_factory=list)
    target_meetings: int = 0
    mode: Literal["at_least", "exact", "at_most"] = "at_least"
    penalty_weight: float = 0.0
    sessions: list[int] | None = None


@dataclass
class UnknownConstraint:
    """A constraint with a tag this version does not understand."""

    kind: str
    raw: dict[str, Any] = field(default_factory=dict)


Constraint = (
    RepeatEncounter
    | AttributeBalance
    | ImmovablePerson
    | ImmovablePeople
    | MustStayTogether
    | ShouldStayTogether
    | ShouldNotBeTogether
    | PairMeetingCount
    | UnknownConstraint
)


@dataclass
class Problem:
    """People, groups and constraints over a number of sessions."""

    people: list[Person]
    groups: list[Group]
    num_sessions: int
    constraints: list[Constraint] = field(default_factory=list)
    settings: dict[str, Any] = field(default_factory=dict)  # solver config, passed through
    objectives: list[Objective] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._people_by_id = {p.id: p for p in self.people}
        self._groups_by_id = {g.id: g for g in self.groups}

    def person(self, person_id: str) -> Person | None:
        return self._people_by_id.get(person_id)

    def group(self, group_id: str) -> Group | None:
        return self._groups_by_id.get(group_id)

    def display_name(self, person_id: str) -> str:
        person = self.person(person_id)
        return person.name if person else person_id

    def all_sessions(self) -> list[int]:
        return list(range(self.num_sessions))


# --- Violation details ---


@dataclass
class RepeatEncounterDetail:
    kind: ClassVar[str] = "RepeatEncounter"

    pair: tuple[str, str]
    count: int
    max_allowed: int
    sessions: list[int]

    def key(self) -> str:
        return f"{self.kind}|{'|'.join(sorted(self.pair))}"


@dataclass
class AttributeBalanceDetail:
    kind: ClassVar[str] = "AttributeBalance"

    session: int
    group_id: str
    attribute: str
    desired: int
    actual: int

    def key(self) -> str:
        return f"{self.kind}|{self.session}|{self.group_id}|{self.attribute}"


@dataclass
class ImmovableDetail:
    kind: ClassVar[str] = "Immovable"

    session: int
    person_id: str
    required_group: str
    assigned_group: str | None = None

    def key(self) -> str:
        return (
            f"{self.kind}|{self.session}|{self.person_id}|{self.required_group}"
            f"|{self.assigned_group or ''}"
        )


@dataclass
class TogetherSplitDetail:
    kind: ClassVar[str] = "TogetherSplit"

    session: int
    people: list[tuple[str, str | None]]  # (person_id, group_id or None if absent)

    def key(self) -> str:
        return f"{self.kind}|{self.session}|{','.join(sorted(p for p, _ in self.people))}"


@dataclass
class NotTogetherDetail:
    kind: ClassVar[str] = "NotTogether"

    session: int
    group_id: str
    people: list[str]

    def key(self) -> str:
        return f"{self.kind}|{self.session}|{self.group_id}|{','.join(sorted(self.people))}"


@dataclass
class PairMeetingSummaryDetail:
    kind: ClassVar[str] = "PairMeetingCountSummary"

    people: tuple[str, str]
    target: int
    actual: int
    mode: str
    sessions: list[int]

    def key(self) -> str:
        return f"{self.kind}|{'|'.join(sorted(self.people))}|{self.actual}"


@dataclass
class PairMeetingSessionDetail:
    session: int
    people: tuple[str, str]
    together: bool
    group_id: str | None = None

    @property
    def kind(self) -> str:
        return "PairMeetingTogether" if self.together else "PairMeetingApart"

    def key(self) -> str:
        return f"{self.kind}|{self.session}|{self.group_id or ''}"


ViolationDetail = (
    RepeatEncounterDetail
    | AttributeBalanceDetail
    | ImmovableDetail
    | TogetherSplitDetail
    | NotTogetherDetail
    | PairMeetingSummaryDetail
    | PairMeetingSessionDetail
)


@dataclass
class ComplianceEntry:
    """Satisfaction summary for one constraint."""

    constraint_index: int
    kind: str
    title: str
    satisfied: bool
    violation_count: int
    details: list[ViolationDetail]
    constraint: Constraint
    subtitle: str | None = None


@dataclass
class ContactSummary:
    unique_contacts: int
    avg_unique_contacts: float


@dataclass
class Solution:
    """Scored result returned by a scoring service."""

    assignments: list[Assignment]
    final_score: float
    unique_contacts: int
    repetition_penalty: float = 0.0
    attribute_balance_penalty: float = 0.0
    constraint_penalty: int = 0
    iteration_count: int = 0
    elapsed_time_ms: float = 0.0
    weighted_repetition_penalty: float = 0.0
    weighted_constraint_penalty: float = 0.0


@dataclass
class DropDecision:
    """Outcome of checking a single-person move."""

    ok: bool
    reason: str | None = None
    warnings: list[str] = field(default_factory=list)


@dataclass
class PreviewDelta:
    group_id: str
    session_id: int
    score_delta: float
    unique_delta: int
    constraint_delta: int
