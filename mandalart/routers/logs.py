from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from mandalart.dependencies import get_session
from mandalart.application.project_session import ProjectSession
from mandalart.domain.entities import LogAction, LogEntry

router = APIRouter()


@router.get("/projects/{project_id}/logs", response_model=List[LogEntry])
async def get_logs(
    project_id: str,
    action: Optional[LogAction] = Query(None, description="Only entries of this action"),
    session: ProjectSession = Depends(get_session),
):
    """
    Audit trail of the project, newest first.
    """
    logs = session.audit.logs
    if action is not None:
        logs = [entry for entry in logs if entry.action == action]
    return logs
