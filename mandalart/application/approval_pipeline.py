"""
Approval gate for collaborative projects.

A change submitted here waits as a PENDING request until an owner approves it
(the change is executed, then the request becomes APPROVED) or rejects it. Both
decisions leave one entry in the audit trail; submitting does not.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Set, Union

from mandalart.application.audit_trail import AuditTrail
from mandalart.application.tree_mutator import TreeMutator
from mandalart.domain.changes import (
    ApprovalRequest,
    CreateNodeChange,
    MoveNodeChange,
    UpdateNodeChange,
    change_log_action,
    dump_change,
)
from mandalart.domain.entities import Actor, ApprovalStatus, LogAction
from mandalart.domain.errors import ConflictError, NotFoundError, RemoteFailureError, ValidationError
from mandalart.domain.events import ChangeApproved, ChangeRejected, ChangeRequested, event_publisher
from mandalart.storage.interface import ProjectStore

logger = logging.getLogger(__name__)

Change = Union[CreateNodeChange, UpdateNodeChange, MoveNodeChange]


async def execute_change(mutator: TreeMutator, change: Change) -> str:
    """Run a change through the mutator and return the affected node id."""
    if isinstance(change, CreateNodeChange):
        return await mutator.create_node(change.parent_id, change.slot_index, change.data)
    elif isinstance(change, UpdateNodeChange):
        await mutator.update_node(change.node_id, change.data)
        return change.node_id
    elif isinstance(change, MoveNodeChange):
        await mutator.move_node(change.node_id, change.target_parent_id, change.target_slot_index)
        return change.node_id
    raise ValidationError(f"Unsupported change type: {type(change).__name__}")


class ApprovalPipeline:
    """Owns the pending requests of one project."""

    def __init__(self, project_id: str, store: ProjectStore, mutator: TreeMutator, audit: AuditTrail) -> None:
        self.project_id = project_id
        self._store = store
        self._mutator = mutator
        self._audit = audit
        self._pending: Dict[str, ApprovalRequest] = {}
        self._in_flight: Set[str] = set()
        # Requests whose change is applied but whose APPROVED status is not yet stored
        self._executed: Dict[str, str] = {}

    def replace_pending(self, requests: Iterable[ApprovalRequest]) -> None:
        """Take the latest pending-requests snapshot."""
        self._pending = {r.id: r for r in requests if r.status == ApprovalStatus.PENDING}

    def clear(self) -> None:
        self._pending = {}
        self._in_flight = set()
        self._executed = {}

    @property
    def pending_requests(self) -> List[ApprovalRequest]:
        return sorted(self._pending.values(), key=lambda r: r.created_at)

    def get_pending(self, request_id: str) -> ApprovalRequest:
        request = self._pending.get(request_id)
        if request is None:
            raise NotFoundError(f"Pending request not found: {request_id}")
        return request

    async def get_request(self, request_id: str) -> ApprovalRequest:
        """Any request of the project, including resolved ones kept for audits."""
        request = self._pending.get(request_id)
        if request is None:
            request = await self._store.get_request(self.project_id, request_id)
        if request is None:
            raise NotFoundError(f"Request not found: {request_id}")
        return request

    async def submit_request(self, actor: Actor, change: Change, details: Optional[str] = None) -> str:
        """Queue a change for approval. No tree write and no log entry happen here."""
        if isinstance(change, UpdateNodeChange):
            TreeMutator.check_patch(change.data)
        action = change_log_action(change)
        document = {
            "user_id": actor.user_id,
            "user_name": actor.user_name,
            "action": action,
            "payload": dump_change(change),
            "status": ApprovalStatus.PENDING,
        }
        if details is not None:
            document["details"] = details
        request_id = await self._store.add_request(self.project_id, document)
        logger.info(f"Submitted {action.value} request {request_id} from {actor.user_name}")

        event_publisher.publish(ChangeRequested(
            aggregate_id=request_id,
            project_id=self.project_id,
            action=action.value,
            user_name=actor.user_name,
        ))
        return request_id

    async def approve_request(self, request_id: str, approver: Actor) -> str:
        """
        Execute a pending change and mark it APPROVED.

        If execution fails the request stays PENDING, nothing is logged and the
        approval can be retried. If the change was applied but the status write
        failed, a retry records the decision without executing the change again.

        Returns:
            Id of the node the change created or touched
        """
        request = self._claim(request_id)
        try:
            node_id = self._executed.get(request_id)
            if node_id is None:
                node_id = await execute_change(self._mutator, request.payload)
                self._executed[request_id] = node_id
            try:
                await self._store.update_request(self.project_id, request_id, {
                    "status": ApprovalStatus.APPROVED,
                })
            except RemoteFailureError:
                logger.error(f"Request {request_id} was applied to node {node_id} but is still PENDING; "
                             f"approving again only records the decision")
                raise
        finally:
            self._in_flight.discard(request_id)
        self._executed.pop(request_id, None)
        self._pending.pop(request_id, None)

        await self._audit.record(
            approver,
            LogAction.APPROVE_CHANGE,
            request_id,
            request.action.value,
            f"Approved request from {request.user_name}",
        )
        logger.info(f"Approved request {request_id} by {approver.user_name}")

        event_publisher.publish(ChangeApproved(
            aggregate_id=request_id,
            project_id=self.project_id,
            action=request.action.value,
            approver=approver.user_name,
        ))
        return node_id

    async def reject_request(self, request_id: str, approver: Actor) -> None:
        """Mark a pending request REJECTED without touching the tree."""
        if request_id in self._executed:
            raise ConflictError(f"Request {request_id} is already applied; approve it to finish")
        request = self._claim(request_id)
        try:
            await self._store.update_request(self.project_id, request_id, {
                "status": ApprovalStatus.REJECTED,
            })
        finally:
            self._in_flight.discard(request_id)
        self._pending.pop(request_id, None)

        await self._audit.record(
            approver,
            LogAction.REJECT_CHANGE,
            request_id,
            request.action.value,
            f"Rejected request from {request.user_name}",
        )
        logger.info(f"Rejected request {request_id} by {approver.user_name}")

        event_publisher.publish(ChangeRejected(
            aggregate_id=request_id,
            project_id=self.project_id,
            action=request.action.value,
            approver=approver.user_name,
        ))

    def _claim(self, request_id: str) -> ApprovalRequest:
        request = self.get_pending(request_id)
        if request_id in self._in_flight:
            raise ConflictError(f"Request is already being resolved: {request_id}")
        self._in_flight.add(request_id)
        return request
