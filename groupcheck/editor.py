"""Manual editing session tying guard, history, compliance and preview together."""

import asyncio
import logging

from groupcheck.compliance import evaluate_compliance
from groupcheck.guard import can_drop
from groupcheck.history import EditHistory
from groupcheck.models import (
    Assignment,
    ComplianceEntry,
    ContactSummary,
    DropDecision,
    EditMode,
    Problem,
    Solution,
)
from groupcheck.preview import DEFAULT_DEBOUNCE_SECONDS, PreviewCoordinator
from groupcheck.schedule import (
    ScheduleIndex,
    apply_move,
    build_schedule_index,
    count_unique_contacts,
    find_unassigned,
)
from groupcheck.scoring import LocalScoringService, ScoringService

logger = logging.getLogger(__name__)


class EditorSession:
    """
    Draft assignments for one problem, edited one move at a time.

    People taken out of a session sit in per-session storage until they are
    dropped into a group again.
    """

    def __init__(
        self,
        problem: Problem,
        assignments: list[Assignment],
        mode: EditMode = "warn",
        scorer: ScoringService | None = None,
        debounce: float = DEFAULT_DEBOUNCE_SECONDS,
    ):
        self.problem = problem
        self.mode: EditMode = mode
        self.history = EditHistory(assignments)
        self.locked_people: set[str] = set()
        self.locked_groups: set[str] = set()
        self.storage: dict[int, set[str]] = {}
        self.has_unsaved_changes = False
        self.scorer = scorer or LocalScoringService()
        self.previewer = PreviewCoordinator(self.scorer, debounce=debounce)
        # Score of the current draft, the baseline for previews
        self.evaluated: Solution | None = None
        self.eval_error: str | None = None
        self._revision = 0

    @property
    def assignments(self) -> list[Assignment]:
        return self.history.current

    def schedule(self) -> ScheduleIndex:
        return build_schedule_index(self.history.current)

    def set_mode(self, mode: EditMode) -> None:
        self.mode = mode

    def lock_person(self, person_id: str) -> None:
        self.locked_people.add(person_id)

    def unlock_person(self, person_id: str) -> None:
        self.locked_people.discard(person_id)

    def lock_group(self, group_id: str) -> None:
        self.locked_groups.add(group_id)

    def unlock_group(self, group_id: str) -> None:
        self.locked_groups.discard(group_id)

    def check_move(self, person_id: str, group_id: str, session_id: int) -> DropDecision:
        return can_drop(
            self.problem,
            self.schedule(),
            person_id,
            group_id,
            session_id,
            self.mode,
            self.locked_people,
            self.locked_groups,
        )

    def move(self, person_id: str, group_id: str, session_id: int) -> DropDecision:
        """Move a person into a group for a session if the guard allows it."""
        decision = self.check_move(person_id, group_id, session_id)
        if not decision.ok:
            return decision

        self._commit(apply_move(self.history.current, person_id, group_id, session_id))
        self.storage.get(session_id, set()).discard(person_id)
        logger.info("Moved %s to %s in session %d", person_id, group_id, session_id)
        return decision

    def unassign(self, person_id: str, session_id: int) -> DropDecision:
        """Take a person out of their group for a session and put them in storage."""
        if person_id in self.locked_people:
            return DropDecision(ok=False, reason="Person is locked")
        current = self.history.current
        remaining = [
            a for a in current if not (a.person_id == person_id and a.session_id == session_id)
        ]
        if len(remaining) == len(current):
            return DropDecision(ok=False, reason="Person is not assigned")
        self._commit(remaining)
        self.storage.setdefault(session_id, set()).add(person_id)
        logger.info("Moved %s to storage in session %d", person_id, session_id)
        return DropDecision(ok=True)

    def pull_new_people(self) -> int:
        """Put every eligible but unassigned person into storage; return entries added."""
        added = 0
        for session, people in find_unassigned(self.problem, self.history.current).items():
            stored = self.storage.setdefault(session, set())
            for person_id in people:
                if person_id not in stored:
                    stored.add(person_id)
                    added += 1
        logger.info("Pulled %d storage entries", added)
        return added

    def _draft_changed(self) -> None:
        self._revision += 1
        self.evaluated = None
        self.previewer.invalidate()

    def _commit(self, next_assignments: list[Assignment]) -> None:
        self.history.commit(next_assignments)
        self._draft_changed()
        self.has_unsaved_changes = True

    def undo(self) -> list[Assignment]:
        self._draft_changed()
        logger.info("Undo")
        return self.history.undo()

    def redo(self) -> list[Assignment]:
        self._draft_changed()
        logger.info("Redo")
        return self.history.redo()

    def compliance(self) -> list[ComplianceEntry]:
        return evaluate_compliance(self.problem, self.history.current)

    def contacts(self) -> ContactSummary:
        return count_unique_contacts(self.schedule(), len(self.problem.people))

    async def evaluate(self) -> Solution | None:
        """
        Score the current draft through the scoring service.

        The result is kept as the baseline for later previews. A result that
        arrives after the draft has changed is dropped.
        """
        revision = self._revision
        self.eval_error = None
        try:
            solution = await self.scorer.evaluate(self.problem, self.history.current)
        except Exception as e:
            if revision == self._revision:
                logger.warning("Draft scoring failed: %s", e)
                self.eval_error = str(e)
            return None
        if revision != self._revision:
            return None
        self.evaluated = solution
        return solution

    def preview(
        self,
        person_id: str,
        group_id: str,
        session_id: int,
        baseline: Solution | None = None,
    ) -> asyncio.Task:
        return self.previewer.request(
            self.problem,
            self.history.current,
            person_id,
            group_id,
            session_id,
            baseline or self.evaluated,
        )
