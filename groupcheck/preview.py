"""Debounced score previews for hypothetical moves."""

import asyncio
import logging

from groupcheck.models import Assignment, PreviewDelta, Problem, Solution
from groupcheck.schedule import apply_move
from groupcheck.scoring import ScoringService

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.12

PreviewKey = tuple[str, int, str, int]  # (person, session, target group, assignment count)


class PreviewCoordinator:
    """
    Score hypothetical single-person moves through a scoring service.

    Only the most recently issued request may update the displayed delta.
    Earlier requests are never aborted; their responses are dropped when they
    arrive because their key is no longer the active one.
    """

    def __init__(self, scorer: ScoringService, debounce: float = DEFAULT_DEBOUNCE_SECONDS):
        self.scorer = scorer
        self.debounce = debounce
        self.active_key: PreviewKey | None = None
        self.delta: PreviewDelta | None = None
        self.error: str | None = None
        self.loading = False

    def request(
        self,
        problem: Problem,
        assignments: list[Assignment],
        person_id: str,
        group_id: str,
        session_id: int,
        baseline: Solution | None = None,
    ) -> asyncio.Task:
        """
        Schedule a preview of moving person_id into group_id for session_id.

        Must be called from a running event loop. The returned task finishes
        once the request has been dropped, applied or failed.
        """
        key: PreviewKey = (person_id, session_id, group_id, len(assignments))
        if key == self.active_key and self.delta is not None:
            return asyncio.create_task(asyncio.sleep(0))

        self.active_key = key
        self.loading = True
        self.error = None
        hypothetical = apply_move(assignments, person_id, group_id, session_id)
        return asyncio.create_task(
            self._run(key, problem, assignments, hypothetical, baseline)
        )

    async def _run(
        self,
        key: PreviewKey,
        problem: Problem,
        assignments: list[Assignment],
        hypothetical: list[Assignment],
        baseline: Solution | None,
    ) -> None:
        if self.debounce > 0:
            await asyncio.sleep(self.debounce)
        if key != self.active_key:
            # Superseded before it was ever sent
            return

        try:
            result = await self.scorer.evaluate(problem, hypothetical)
            if baseline is None and key == self.active_key:
                # No evaluated draft to compare against; score it now
                baseline = await self.scorer.evaluate(problem, assignments)
        except Exception as e:
            if key != self.active_key:
                logger.debug("Dropping stale preview failure for %s", key)
                return
            logger.warning("Preview scoring failed for %s: %s", key, e)
            self.error = str(e)
            self.delta = None
            self.loading = False
            return

        if key != self.active_key:
            logger.debug("Dropping stale preview response for %s", key)
            return

        _, session_id, group_id, _ = key
        self.delta = PreviewDelta(
            group_id=group_id,
            session_id=session_id,
            score_delta=result.final_score - baseline.final_score,
            unique_delta=result.unique_contacts - baseline.unique_contacts,
            constraint_delta=result.constraint_penalty - baseline.constraint_penalty,
        )
        self.loading = False

    def invalidate(self) -> None:
        """Forget the active request so any in-flight response is discarded."""
        self.active_key = None
        self.loading = False

    def clear(self) -> None:
        self.invalidate()
        self.delta = None
        self.error = None
