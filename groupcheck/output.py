"""Output formatting for groupcheck."""

import csv
import io
from dataclasses import asdict, dataclass, is_dataclass
from typing import Any

from groupcheck.models import (
    AttributeBalanceDetail,
    ComplianceEntry,
    ContactSummary,
    ImmovableDetail,
    NotTogetherDetail,
    PairMeetingSessionDetail,
    PairMeetingSummaryDetail,
    Problem,
    RepeatEncounterDetail,
    Solution,
    TogetherSplitDetail,
    ViolationDetail,
)


def _session_label(session: int) -> str:
    return f"Session {session + 1}"


def describe_detail(problem: Problem, detail: ViolationDetail) -> str:
    """One-line, human-readable description of a violation detail."""
    name = problem.display_name

    if isinstance(detail, RepeatEncounterDetail):
        a, b = detail.pair
        sessions = ", ".join(str(s + 1) for s in detail.sessions)
        return (
            f"{name(a)} & {name(b)} met {detail.count} times "
            f"(max {detail.max_allowed}) in sessions {sessions}"
        )
    if isinstance(detail, AttributeBalanceDetail):
        return (
            f"{_session_label(detail.session)}: {detail.group_id} has {detail.actual} "
            f"'{detail.attribute}' (wanted {detail.desired})"
        )
    if isinstance(detail, ImmovableDetail):
        where = detail.assigned_group or "unassigned"
        return (
            f"{_session_label(detail.session)}: {name(detail.person_id)} is in {where}, "
            f"required {detail.required_group}"
        )
    if isinstance(detail, TogetherSplitDetail):
        placed = ", ".join(f"{name(pid)} → {gid or 'unassigned'}" for pid, gid in detail.people)
        return f"{_session_label(detail.session)}: split ({placed})"
    if isinstance(detail, NotTogetherDetail):
        people = ", ".join(name(pid) for pid in detail.people)
        return f"{_session_label(detail.session)}: {people} together in {detail.group_id}"
    if isinstance(detail, PairMeetingSummaryDetail):
        a, b = detail.people
        return (
            f"{name(a)} & {name(b)} met {detail.actual} times "
            f"(target {detail.target}, {detail.mode.replace('_', ' ')})"
        )
    if isinstance(detail, PairMeetingSessionDetail):
        state = f"together in {detail.group_id}" if detail.together else "apart"
        return f"{_session_label(detail.session)}: {state}"
    return str(detail)


def format_report(
    problem: Problem,
    report: list[ComplianceEntry],
    contacts: ContactSummary | None = None,
    solution: Solution | None = None,
) -> str:
    """Format a compliance report for display."""
    lines: list[str] = []

    if contacts is not None:
        lines.append("=== Contacts ===")
        lines.append(f"Unique contacts: {contacts.unique_contacts}")
        lines.append(f"Average unique contacts per person: {contacts.avg_unique_contacts:.2f}")
        lines.append("")

    if solution is not None:
        lines.append("=== Score ===")
        lines.append(f"Final score: {solution.final_score:.2f}")
        lines.append(f"Repetition penalty: {solution.repetition_penalty:g}")
        lines.append(f"Attribute balance penalty: {solution.attribute_balance_penalty:.2f}")
        lines.append(f"Constraint penalty: {solution.constraint_penalty}")
        lines.append("")

    lines.append("=== Constraint Compliance ===")
    if not report:
        lines.append("No constraints defined.")
        return "\n".join(lines)

    satisfied = sum(1 for entry in report if entry.satisfied)
    lines.append(f"{satisfied}/{len(report)} constraints satisfied")
    lines.append("")

    for entry in report:
        status = "OK" if entry.satisfied else f"{entry.violation_count} violation(s)"
        lines.append(f"[{entry.constraint_index + 1}] {entry.title}: {status}")
        if entry.subtitle:
            lines.append(f"    {entry.subtitle}")
        for detail in entry.details:
            if isinstance(detail, (PairMeetingSummaryDetail, PairMeetingSessionDetail)) and entry.satisfied:
                continue
            lines.append(f"    - {describe_detail(problem, detail)}")

    return "\n".join(lines)


def format_report_csv(report: list[ComplianceEntry]) -> str:
    """Format a compliance report as CSV, one row per constraint."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(["index", "kind", "title", "satisfied", "violation_count", "detail_count"])
    for entry in report:
        writer.writerow(
            [
                entry.constraint_index,
                entry.kind,
                entry.title,
                "yes" if entry.satisfied else "no",
                entry.violation_count,
                len(entry.details),
            ]
        )
    return buffer.getvalue().rstrip("\n")


def _detail_to_dict(detail: ViolationDetail) -> dict[str, Any]:
    data = asdict(detail)
    data["kind"] = detail.kind
    return data


def _constraint_to_dict(constraint: Any) -> dict[str, Any]:
    data = asdict(constraint) if is_dataclass(constraint) else {}
    data["type"] = constraint.kind
    return data


def report_to_dict(
    report: list[ComplianceEntry],
    contacts: ContactSummary | None = None,
) -> dict[str, Any]:
    """JSON-ready form of a compliance report."""
    data: dict[str, Any] = {
        "constraints": [
            {
                "index": entry.constraint_index,
                "kind": entry.kind,
                "title": entry.title,
                "subtitle": entry.subtitle,
                "satisfied": entry.satisfied,
                "violation_count": entry.violation_count,
                "details": [_detail_to_dict(d) for d in entry.details],
                "constraint": _constraint_to_dict(entry.constraint),
            }
            for entry in report
        ]
    }
    if contacts is not None:
        data["unique_contacts"] = contacts.unique_contacts
        data["avg_unique_contacts"] = contacts.avg_unique_contacts
    return data


@dataclass
class ChangeItem:
    key: str
    before: ComplianceEntry | None = None
    after: ComplianceEntry | None = None


def compare_reports(
    before: list[ComplianceEntry],
    after: list[ComplianceEntry],
) -> dict[str, list[ChangeItem]]:
    """
    Group the entries that changed between two reports by constraint kind.

    Entries are matched on kind and index. An entry has changed when its
    violation count differs or its set of violation details differs.
    """
    changed: dict[str, list[ChangeItem]] = {}
    before_by_key = {f"{e.kind}#{e.constraint_index}": e for e in before}
    seen: set[str] = set()

    for entry in after:
        key = f"{entry.kind}#{entry.constraint_index}"
        seen.add(key)
        prev = before_by_key.get(key)
        if prev is not None:
            before_details = {d.key() for d in prev.details}
            after_details = {d.key() for d in entry.details}
            if prev.violation_count == entry.violation_count and before_details == after_details:
                continue
        changed.setdefault(entry.kind, []).append(ChangeItem(key=key, before=prev, after=entry))

    for key, prev in before_by_key.items():
        if key not in seen:
            changed.setdefault(prev.kind, []).append(ChangeItem(key=key, before=prev))

    return changed


def format_delta(value: float) -> str:
    sign = "+" if value > 0 else ""
    return f"{sign}{value:.2f}"


def format_change_report(changes: dict[str, list[ChangeItem]]) -> str:
    """Format the output of compare_reports for display."""
    lines = ["=== Compliance Changes ==="]
    if not changes:
        lines.append("No compliance changes.")
        return "\n".join(lines)

    for kind, items in changes.items():
        lines.append(f"--- {kind} ---")
        for item in items:
            title = (item.after or item.before).title
            before_count = item.before.violation_count if item.before else 0
            after_count = item.after.violation_count if item.after else 0
            if item.before is None:
                lines.append(f"  {title}: added ({after_count} violations)")
            elif item.after is None:
                lines.append(f"  {title}: removed (had {before_count} violations)")
            else:
                delta = format_delta(after_count - before_count)
                lines.append(f"  {title}: {before_count} -> {after_count} ({delta})")
    return "\n".join(lines)
