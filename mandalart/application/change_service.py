"""Routes a user's change either straight to the tree or through approval."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from mandalart.application.approval_pipeline import ApprovalPipeline, Change, execute_change
from mandalart.application.audit_trail import AuditTrail
from mandalart.application.node_repository import NodeRepository
from mandalart.application.tree_mutator import TreeMutator
from mandalart.domain.changes import CreateNodeChange, UpdateNodeChange, change_log_action
from mandalart.domain.entities import Actor

logger = logging.getLogger(__name__)


@dataclass
class ChangeOutcome:
    """Either the node that was changed or the request that now awaits approval."""
    applied: bool
    node_id: Optional[str] = None
    request_id: Optional[str] = None


def requires_approval(is_team: bool, is_owner: bool) -> bool:
    """Only non-owners of TEAM projects go through the approval gate."""
    return is_team and not is_owner


class ChangeService:
    """Applies the SOLO/owner versus TEAM-member policy supplied by the caller."""

    def __init__(
        self,
        repository: NodeRepository,
        mutator: TreeMutator,
        pipeline: ApprovalPipeline,
        audit: AuditTrail,
    ) -> None:
        self._repository = repository
        self._mutator = mutator
        self._pipeline = pipeline
        self._audit = audit

    async def apply(self, change: Change, actor: Actor, is_team: bool, is_owner: bool) -> ChangeOutcome:
        if requires_approval(is_team, is_owner):
            request_id = await self._pipeline.submit_request(actor, change, self.request_details(change))
            return ChangeOutcome(applied=False, request_id=request_id)

        # Captured before execution: the snapshot that follows may rename the node
        target_name = self._target_name(change)
        node_id = await execute_change(self._mutator, change)
        await self._audit.record(
            actor,
            change_log_action(change),
            node_id,
            target_name,
            self.log_details(change),
        )
        logger.info(f"Applied {change.action} directly for {actor.user_name}")
        return ChangeOutcome(applied=True, node_id=node_id)

    def _target_name(self, change: Change) -> str:
        if isinstance(change, CreateNodeChange):
            return change.data.title
        node = self._repository.get(change.node_id)
        if isinstance(change, UpdateNodeChange) and change.data.title:
            return change.data.title
        return node.title if node is not None else change.node_id

    def _parent_title(self, parent_id: Optional[str]) -> str:
        parent = self._repository.get(parent_id)
        if parent is None:
            return "root"
        return parent.title or parent.id

    def log_details(self, change: Change) -> str:
        if isinstance(change, CreateNodeChange):
            return f"Created {change.data.node_type.value}"
        if isinstance(change, UpdateNodeChange):
            fields = ", ".join(sorted(change.data.model_dump(exclude_unset=True)))
            return f"Updated {fields}" if fields else "Updated"
        return (
            f"Moved {self._target_name(change)} to slot {change.target_slot_index} "
            f"of {self._parent_title(change.target_parent_id)}"
        )

    def request_details(self, change: Change) -> str:
        if isinstance(change, CreateNodeChange):
            return f"Request to create {change.data.node_type.value}: {change.data.title}"
        if isinstance(change, UpdateNodeChange):
            return f"Request to update {self._target_name(change)}"
        return (
            f"Request to move {self._target_name(change)} to slot {change.target_slot_index} "
            f"of {self._parent_title(change.target_parent_id)}"
        )
