"""In-memory working set of approval workflows for one scope."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from src.core.logger import get_logger
from src.core.metrics import record_workflow_load
from src.workflow.errors import FetchError
from src.workflow.models import ApprovalWorkflow, WorkflowScope, WorkflowStats
from src.workflow.remote import RemoteWorkflowBoundary
from src.workflow.states import ALL_STATUSES, ALL_TAB
from src.workflow.stats import StatsAccumulator, compute_stats


logger = get_logger("makeitsocial.workflow.store")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class WorkflowStore:
    """Canonical session copy of the workflows; the remote boundary stays the source of truth."""

    def __init__(
        self,
        *,
        remote: RemoteWorkflowBoundary,
        scope: WorkflowScope,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._remote = remote
        self._clock = clock
        self.scope = scope
        self._workflows: Dict[str, ApprovalWorkflow] = {}
        self._stats = StatsAccumulator(as_of=clock())
        self.generation = 0
        self.loaded = False
        self.last_error: Optional[str] = None

    def __len__(self) -> int:
        return len(self._workflows)

    async def load(self, scope: WorkflowScope | None = None) -> List[ApprovalWorkflow]:
        target = scope or self.scope
        try:
            workflows = await self._remote.get_workflows(target)
        except FetchError as exc:
            self.last_error = exc.code
            record_workflow_load(organization_id=target.organization_id, outcome=exc.code)
            logger.error(
                "workflow_load_failed",
                organization_id=target.organization_id,
                company_id=target.company_id,
                product_id=target.product_id,
                error_code=exc.code,
                error=str(exc),
                kept_workflows=len(self._workflows),
            )
            return []

        loaded: Dict[str, ApprovalWorkflow] = {}
        for workflow in workflows:
            loaded[workflow.id] = workflow
        self.scope = target
        self._workflows = loaded
        self._stats = StatsAccumulator.from_workflows(loaded.values(), now=self._clock())
        self.generation += 1
        self.loaded = True
        self.last_error = None
        record_workflow_load(organization_id=target.organization_id, outcome="ok")
        logger.info(
            "workflow_load_succeeded",
            organization_id=target.organization_id,
            workflows=len(loaded),
            generation=self.generation,
        )
        return list(loaded.values())

    def all(self) -> List[ApprovalWorkflow]:
        return list(self._workflows.values())

    def get(self, workflow_id: str) -> Optional[ApprovalWorkflow]:
        return self._workflows.get(workflow_id)

    def get_by_status(self, status: str) -> List[ApprovalWorkflow]:
        if status == ALL_TAB:
            return list(self._workflows.values())
        if status not in ALL_STATUSES:
            return []
        return [workflow for workflow in self._workflows.values() if workflow.status == status]

    def find_by_post(self, post_id: str) -> List[ApprovalWorkflow]:
        return [workflow for workflow in self._workflows.values() if workflow.post_id == post_id]

    def _advance_stats(self) -> None:
        self._stats.advance(self._clock(), self._workflows.values())

    def add(self, workflow: ApprovalWorkflow) -> None:
        if workflow.id in self._workflows:
            raise ValueError(f"workflow already tracked: {workflow.id}")
        self._advance_stats()
        self._workflows[workflow.id] = workflow
        self._stats.add(workflow)

    def replace(self, workflow: ApprovalWorkflow) -> ApprovalWorkflow:
        """Swap in the updated entity and shift its stats bucket; returns the prior copy."""

        before = self._workflows[workflow.id]
        self._advance_stats()
        self._workflows[workflow.id] = workflow
        self._stats.apply_transition(before, workflow)
        return before

    @property
    def stats(self) -> WorkflowStats:
        self._advance_stats()
        return self._stats.snapshot()

    @property
    def stats_as_of(self) -> datetime:
        return self._stats.as_of

    def recompute_stats(self, now: datetime | None = None) -> WorkflowStats:
        """Rebuild the accumulator from scratch, e.g. to roll overdue counts forward in time."""

        as_of = now or self._clock()
        self._stats = StatsAccumulator.from_workflows(self._workflows.values(), now=as_of)
        return self._stats.snapshot()

    def full_stats(self) -> WorkflowStats:
        return compute_stats(self._workflows.values(), now=self._stats.as_of)
