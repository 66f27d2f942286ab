"""Tests for the approval gate and its audit entries."""
from __future__ import annotations

import asyncio
from unittest.mock import patch

import pytest

from mandalart.application.approval_pipeline import execute_change
from mandalart.domain.changes import CreateNodeChange, MoveNodeChange, UpdateNodeChange
from mandalart.domain.entities import ApprovalStatus, LogAction, NodeDraft, NodePatch, NodeStatus, NodeType
from mandalart.domain.errors import (
    ConflictError,
    NotFoundError,
    RemoteFailureError,
    SlotOccupiedError,
    ValidationError,
)


def create_task(parent_id, slot, title="X"):
    return CreateNodeChange(parent_id=parent_id, slot_index=slot, data=NodeDraft(title=title, node_type=NodeType.TASK))


class TestSubmitRequest:
    """Queued requests."""

    def test_submit_does_not_touch_tree_or_log(self, session, tree, member):
        before = len(session.repository)

        request_id = asyncio.run(session.pipeline.submit_request(member, create_task(tree["G1"], 3)))

        assert len(session.repository) == before
        assert session.audit.logs == []
        pending = session.pipeline.get_pending(request_id)
        assert pending.status == ApprovalStatus.PENDING
        assert pending.action == LogAction.CREATE_NODE
        assert pending.user_name == "Max"
        assert isinstance(pending.payload, CreateNodeChange)
        assert pending.payload.data.title == "X"

    def test_pending_requests_are_ordered_by_creation(self, session, tree, member):
        first = asyncio.run(session.pipeline.submit_request(member, create_task(tree["G1"], 3, "A")))
        second = asyncio.run(session.pipeline.submit_request(member, create_task(tree["G1"], 4, "B")))

        assert [r.id for r in session.pipeline.pending_requests] == [first, second]


class TestApproveRequest:
    """Approval executes the stored change."""

    def test_approve_create_request(self, session, store, tree, owner, member):
        request_id = asyncio.run(session.pipeline.submit_request(
            member, create_task(tree["G1"], 3), "Request to create TASK: X",
        ))

        node_id = asyncio.run(session.pipeline.approve_request(request_id, owner))

        created = session.repository.get(node_id)
        assert created.title == "X"
        assert created.node_type == NodeType.TASK
        assert created.parent_id == tree["G1"]
        assert created.slot_index == 3
        assert created.depth == 2

        assert session.pipeline.pending_requests == []
        assert asyncio.run(store.get_request("project-1", request_id)).status == ApprovalStatus.APPROVED

        [entry] = session.audit.logs
        assert entry.action == LogAction.APPROVE_CHANGE
        assert entry.user_id == "owner-1"
        assert entry.user_name == "Olivia"
        assert entry.target_id == request_id
        assert entry.target_name == "CREATE_NODE"
        assert entry.details == "Approved request from Max"

    def test_approve_update_keeps_unset_fields(self, session, tree, owner, member):
        change = UpdateNodeChange(node_id=tree["G1"], data=NodePatch(status=NodeStatus.IN_PROGRESS))
        request_id = asyncio.run(session.pipeline.submit_request(member, change))

        asyncio.run(session.pipeline.approve_request(request_id, owner))

        node = session.repository.get(tree["G1"])
        assert node.status == NodeStatus.IN_PROGRESS
        assert node.description == "first"
        assert node.title == "G1"

    def test_approve_move_request(self, session, tree, owner, member, check_invariants):
        change = MoveNodeChange(node_id=tree["G1"], target_parent_id=tree["G3"], target_slot_index=2)
        request_id = asyncio.run(session.pipeline.submit_request(member, change))

        asyncio.run(session.pipeline.approve_request(request_id, owner))

        assert session.repository.get(tree["T1"]).depth == 4
        assert session.audit.logs[0].target_name == "MOVE_NODE"
        check_invariants(session.repository)

    def test_failed_execution_keeps_request_pending(self, session, store, tree, owner, member):
        request_id = asyncio.run(session.pipeline.submit_request(member, create_task(tree["R"], 1)))

        with pytest.raises(SlotOccupiedError):
            asyncio.run(session.pipeline.approve_request(request_id, owner))

        assert session.pipeline.get_pending(request_id).status == ApprovalStatus.PENDING
        assert asyncio.run(store.get_request("project-1", request_id)).status == ApprovalStatus.PENDING
        assert session.audit.logs == []

    def test_failed_approval_can_be_retried(self, session, tree, owner, member):
        request_id = asyncio.run(session.pipeline.submit_request(member, create_task(tree["G1"], 2)))
        with pytest.raises(SlotOccupiedError):
            asyncio.run(session.pipeline.approve_request(request_id, owner))

        # Free the slot and try again
        asyncio.run(session.mutator.move_node(tree["T1"], tree["G1"], 7))
        node_id = asyncio.run(session.pipeline.approve_request(request_id, owner))

        assert session.repository.get(node_id).slot_index == 2

    def test_approve_unknown_request(self, session, owner):
        with pytest.raises(NotFoundError):
            asyncio.run(session.pipeline.approve_request("missing", owner))

    def test_approve_twice(self, session, tree, owner, member):
        request_id = asyncio.run(session.pipeline.submit_request(member, create_task(tree["G1"], 3)))
        asyncio.run(session.pipeline.approve_request(request_id, owner))
        count = len(session.repository)

        with pytest.raises(NotFoundError):
            asyncio.run(session.pipeline.approve_request(request_id, owner))

        assert len(session.repository) == count
        assert len(session.audit.logs) == 1


class TestRejectRequest:
    """Rejection never touches the tree."""

    def test_reject_request(self, session, store, tree, owner, member):
        before = [n.model_dump() for n in session.repository.nodes()]
        request_id = asyncio.run(session.pipeline.submit_request(member, create_task(tree["G1"], 3)))

        asyncio.run(session.pipeline.reject_request(request_id, owner))

        assert [n.model_dump() for n in session.repository.nodes()] == before
        assert session.pipeline.pending_requests == []
        assert asyncio.run(store.get_request("project-1", request_id)).status == ApprovalStatus.REJECTED

        [entry] = session.audit.logs
        assert entry.action == LogAction.REJECT_CHANGE
        assert entry.target_id == request_id
        assert entry.details == "Rejected request from Max"

    def test_resolved_request_cannot_be_approved(self, session, tree, owner, member):
        request_id = asyncio.run(session.pipeline.submit_request(member, create_task(tree["G1"], 3)))
        asyncio.run(session.pipeline.reject_request(request_id, owner))

        with pytest.raises(NotFoundError):
            asyncio.run(session.pipeline.approve_request(request_id, owner))
        with pytest.raises(NotFoundError):
            asyncio.run(session.pipeline.reject_request(request_id, owner))


def test_execute_change_dispatches_by_action(session, tree):
    change = UpdateNodeChange(node_id=tree["G2"], data=NodePatch(title="Health"))

    node_id = asyncio.run(execute_change(session.mutator, change))

    assert node_id == tree["G2"]
    assert session.repository.get(tree["G2"]).title == "Health"


class TestStatusWriteFailure:
    """The change is applied but marking the request APPROVED fails."""

    @staticmethod
    async def unavailable(*args, **kwargs):
        raise RemoteFailureError("approvals collection unavailable")

    def test_retry_records_decision_without_reexecuting(self, session, store, tree, owner, member):
        request_id = asyncio.run(session.pipeline.submit_request(member, create_task(tree["G1"], 3)))

        with patch.object(store, "update_request", side_effect=self.unavailable):
            with pytest.raises(RemoteFailureError):
                asyncio.run(session.pipeline.approve_request(request_id, owner))

        created = [n for n in session.repository.children_of(tree["G1"]) if n.slot_index == 3]
        assert len(created) == 1
        assert session.pipeline.get_pending(request_id).status == ApprovalStatus.PENDING
        assert session.audit.logs == []

        node_id = asyncio.run(session.pipeline.approve_request(request_id, owner))

        assert node_id == created[0].id
        assert len([n for n in session.repository.children_of(tree["G1"]) if n.slot_index == 3]) == 1
        assert asyncio.run(store.get_request("project-1", request_id)).status == ApprovalStatus.APPROVED
        [entry] = session.audit.logs
        assert entry.action == LogAction.APPROVE_CHANGE

    def test_applied_request_cannot_be_rejected(self, session, store, tree, owner, member):
        request_id = asyncio.run(session.pipeline.submit_request(member, create_task(tree["G1"], 3)))
        with patch.object(store, "update_request", side_effect=self.unavailable):
            with pytest.raises(RemoteFailureError):
                asyncio.run(session.pipeline.approve_request(request_id, owner))

        with pytest.raises(ConflictError):
            asyncio.run(session.pipeline.reject_request(request_id, owner))


class TestRequestValidation:
    """Requests that could never be executed are refused up front."""

    def test_patch_clearing_required_field_is_refused(self, session, tree, member):
        change = UpdateNodeChange(node_id=tree["G1"], data=NodePatch(title=None))

        with pytest.raises(ValidationError, match="title"):
            asyncio.run(session.pipeline.submit_request(member, change))

        assert session.pipeline.pending_requests == []

    def test_get_request_reads_resolved_requests(self, session, tree, owner, member):
        request_id = asyncio.run(session.pipeline.submit_request(member, create_task(tree["G1"], 3)))
        assert asyncio.run(session.pipeline.get_request(request_id)).status == ApprovalStatus.PENDING

        asyncio.run(session.pipeline.reject_request(request_id, owner))

        resolved = asyncio.run(session.pipeline.get_request(request_id))
        assert resolved.status == ApprovalStatus.REJECTED
        assert resolved.user_name == "Max"
        with pytest.raises(NotFoundError):
            asyncio.run(session.pipeline.get_request("missing"))
