from fastapi import APIRouter, Depends
from typing import List

from mandalart.schemas.api_schemas import ApprovalDecisionResponse, ChangeResponse, ChangeSubmission
from mandalart.dependencies import get_actor, get_session
from mandalart.application.project_session import ProjectSession
from mandalart.domain.changes import ApprovalRequest
from mandalart.domain.entities import Actor, ApprovalStatus

router = APIRouter()


@router.post("/projects/{project_id}/changes", response_model=ChangeResponse, status_code=201)
async def submit_change(
    project_id: str,
    submission: ChangeSubmission,
    session: ProjectSession = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    """
    Create, update or move a node.

    Owners and SOLO projects change the tree right away; other TEAM members get
    an approval request instead.
    """
    outcome = await session.changes.apply(
        submission.change, actor, is_team=submission.is_team, is_owner=submission.is_owner
    )
    return ChangeResponse(applied=outcome.applied, node_id=outcome.node_id, request_id=outcome.request_id)


@router.get("/projects/{project_id}/approvals", response_model=List[ApprovalRequest])
async def get_pending_approvals(project_id: str, session: ProjectSession = Depends(get_session)):
    """
    Requests still waiting for a decision, oldest first.
    """
    return session.pipeline.pending_requests


@router.get("/projects/{project_id}/approvals/{request_id}", response_model=ApprovalRequest)
async def get_approval(project_id: str, request_id: str, session: ProjectSession = Depends(get_session)):
    """
    Get one request in any status, so resolved decisions stay auditable.
    """
    return await session.pipeline.get_request(request_id)


@router.post("/projects/{project_id}/approvals/{request_id}/approve", response_model=ApprovalDecisionResponse)
async def approve_request(
    project_id: str,
    request_id: str,
    session: ProjectSession = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    """
    Execute a pending change and mark it approved.
    """
    node_id = await session.pipeline.approve_request(request_id, actor)
    return ApprovalDecisionResponse(request_id=request_id, status=ApprovalStatus.APPROVED, node_id=node_id)


@router.post("/projects/{project_id}/approvals/{request_id}/reject", response_model=ApprovalDecisionResponse)
async def reject_request(
    project_id: str,
    request_id: str,
    session: ProjectSession = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    """
    Turn down a pending change. The tree is left as it is.
    """
    await session.pipeline.reject_request(request_id, actor)
    return ApprovalDecisionResponse(request_id=request_id, status=ApprovalStatus.REJECTED)
