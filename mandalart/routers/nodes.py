from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from mandalart.schemas.api_schemas import (
    FirstEmptySlotResponse,
    FocusUpdate,
    GridResponse,
    ProgressResponse,
    TaskCountResponse,
)
from mandalart.dependencies import get_session
from mandalart.application.project_session import ProjectSession
from mandalart.domain.entities import Node, NodeStatus
from mandalart.domain.errors import NotFoundError

router = APIRouter()


def _require_node(session: ProjectSession, node_id: str) -> Node:
    node = session.repository.get(node_id)
    if node is None:
        raise NotFoundError(f"Node not found: {node_id}")
    return node


@router.get("/projects/{project_id}/grid", response_model=GridResponse)
async def get_grid(
    project_id: str,
    focus_id: Optional[str] = Query(None, description="Node to center on; defaults to the current focus"),
    session: ProjectSession = Depends(get_session),
):
    """
    Get the 3x3 grid around a node. Free slots come back as EMPTY placeholders.
    """
    focus = focus_id if focus_id is not None else session.repository.focus_id
    return GridResponse(focus_id=focus, cells=session.projector.project(focus))


@router.put("/projects/{project_id}/focus", response_model=GridResponse)
async def set_focus(
    project_id: str,
    body: FocusUpdate,
    session: ProjectSession = Depends(get_session),
):
    """
    Zoom into a node and return its grid.
    """
    session.repository.set_focus(body.node_id)
    return GridResponse(focus_id=body.node_id, cells=session.projector.project(body.node_id))


@router.get("/projects/{project_id}/nodes/{node_id}", response_model=Node)
async def get_node(project_id: str, node_id: str, session: ProjectSession = Depends(get_session)):
    """
    Get a single node.
    """
    return _require_node(session, node_id)


@router.get("/projects/{project_id}/nodes/{node_id}/children", response_model=List[Node])
async def get_children(project_id: str, node_id: str, session: ProjectSession = Depends(get_session)):
    """
    List the direct children of a node ordered by slot.
    """
    _require_node(session, node_id)
    return session.repository.children_of(node_id)


@router.get("/projects/{project_id}/nodes/{node_id}/breadcrumb", response_model=List[Node])
async def get_breadcrumb(project_id: str, node_id: str, session: ProjectSession = Depends(get_session)):
    """
    Path from the root down to a node.
    """
    _require_node(session, node_id)
    return session.repository.breadcrumb_path(node_id)


@router.get("/projects/{project_id}/nodes/{node_id}/first-empty-slot", response_model=FirstEmptySlotResponse)
async def get_first_empty_slot(project_id: str, node_id: str, session: ProjectSession = Depends(get_session)):
    """
    Lowest free slot under a node, so clients can place a new child.
    """
    _require_node(session, node_id)
    return FirstEmptySlotResponse(parent_id=node_id, slot_index=session.repository.first_empty_slot(node_id))


@router.post("/projects/{project_id}/nodes/{node_id}/increment", response_model=TaskCountResponse)
async def increment_task_count(project_id: str, node_id: str, session: ProjectSession = Depends(get_session)):
    """
    Count one more repetition of a recurring task.
    """
    progress = await session.mutator.increment_task_count(node_id)
    return TaskCountResponse(node_id=node_id, progress=progress)


@router.get("/projects/{project_id}/tasks", response_model=List[Node])
async def get_tasks(
    project_id: str,
    status: Optional[NodeStatus] = Query(None, description="Only tasks in this status"),
    session: ProjectSession = Depends(get_session),
):
    """
    TASK nodes of the project, optionally narrowed to one status.
    """
    return session.repository.all_tasks(status)


@router.get("/projects/{project_id}/progress", response_model=ProgressResponse)
async def get_progress(project_id: str, session: ProjectSession = Depends(get_session)):
    """
    Overall project progress as a flat average of every node.
    """
    return ProgressResponse(
        project_id=project_id,
        overall_progress=session.repository.overall_progress(project_id),
        node_count=len(session.repository),
        task_count=len(session.repository.all_tasks()),
    )
