"""Command-line interface for groupcheck."""

import argparse
import json
import logging
import sys
from pathlib import Path

from groupcheck.compliance import evaluate_compliance
from groupcheck.output import (
    compare_reports,
    format_change_report,
    format_report,
    format_report_csv,
    report_to_dict,
)
from groupcheck.parser import (
    ProblemFormatError,
    load_embedded_assignments,
    parse_assignments_file,
    parse_problem_file,
)
from groupcheck.schedule import build_schedule_index, count_unique_contacts
from groupcheck.scoring import score_assignments


def main() -> int:
    """Main entry point for groupcheck CLI."""
    parser = argparse.ArgumentParser(
        description="Check group assignments against a problem's constraints.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
  groupcheck problem.yaml assignments.csv
  groupcheck problem.yaml result.json --score
  groupcheck problem.yaml before.csv --compare after.csv
  groupcheck saved_result.yaml --format json
""",
    )
    parser.add_argument(
        "problem",
        type=Path,
        help="Path to the problem definition (YAML or JSON)",
    )
    parser.add_argument(
        "assignments",
        type=Path,
        nargs="?",
        help="Path to the assignments (CSV, YAML or JSON); defaults to the problem's solution",
    )
    parser.add_argument(
        "--format",
        choices=["text", "csv", "json"],
        default="text",
        help="Output format (default: text)",
    )
    parser.add_argument(
        "--score",
        action="store_true",
        help="Also score the assignments with the built-in scoring service",
    )
    parser.add_argument(
        "--compare",
        type=Path,
        help="Second assignment file; print what changed in compliance",
    )
    parser.add_argument(
        "--fail-on-violation",
        action="store_true",
        help="Exit with status 2 if any constraint is violated",
    )
    parser.add_argument("--verbose", action="store_true", help="Log progress")
    parser.add_argument("--debug", action="store_true", help="Log debugging detail")

    args = parser.parse_args()

    level = logging.DEBUG if args.debug else logging.INFO if args.verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    if not args.problem.exists():
        print(f"Error: Problem file not found: {args.problem}", file=sys.stderr)
        return 1

    try:
        problem = parse_problem_file(args.problem)
    except ProblemFormatError as e:
        print(f"Error parsing problem file: {e}", file=sys.stderr)
        return 1

    try:
        if args.assignments:
            if not args.assignments.exists():
                print(f"Error: Assignments file not found: {args.assignments}", file=sys.stderr)
                return 1
            assignments = parse_assignments_file(args.assignments)
        else:
            embedded = load_embedded_assignments(args.problem)
            if embedded is None:
                print("Error: No assignments given and the problem file has no solution", file=sys.stderr)
                return 1
            assignments = embedded
    except ProblemFormatError as e:
        print(f"Error parsing assignments: {e}", file=sys.stderr)
        return 1

    report = evaluate_compliance(problem, assignments)
    contacts = count_unique_contacts(build_schedule_index(assignments), len(problem.people))
    solution = score_assignments(problem, assignments) if args.score else None

    if args.format == "json":
        data = report_to_dict(report, contacts)
        if solution is not None:
            data["score"] = {
                "final_score": solution.final_score,
                "repetition_penalty": solution.repetition_penalty,
                "attribute_balance_penalty": solution.attribute_balance_penalty,
                "constraint_penalty": solution.constraint_penalty,
            }
        print(json.dumps(data, indent=2))
    elif args.format == "csv":
        print(format_report_csv(report))
    else:
        print(format_report(problem, report, contacts, solution))

    if args.compare:
        if not args.compare.exists():
            print(f"Error: Comparison file not found: {args.compare}", file=sys.stderr)
            return 1
        try:
            other = parse_assignments_file(args.compare)
        except ProblemFormatError as e:
            print(f"Error parsing comparison assignments: {e}", file=sys.stderr)
            return 1
        print()
        print(format_change_report(compare_reports(report, evaluate_compliance(problem, other))))

    if args.fail_on_violation and not all(entry.satisfied for entry in report):
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
