from __future__ import annotations

from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header

from mandalart.config import settings
from mandalart.application.project_session import ProjectSession, WorkspaceRegistry
from mandalart.domain.entities import Actor
from mandalart.storage import InMemoryProjectStore, ProjectStore


@lru_cache
def get_project_store() -> ProjectStore:
    if settings.STORAGE_TYPE != "memory":
        raise ValueError(f"Unsupported STORAGE_TYPE: {settings.STORAGE_TYPE}")
    return InMemoryProjectStore()


@lru_cache
def get_workspace_registry() -> WorkspaceRegistry:
    return WorkspaceRegistry(get_project_store(), max_sessions=settings.MAX_OPEN_PROJECTS)


def get_session(
    project_id: str,
    registry: WorkspaceRegistry = Depends(get_workspace_registry),
) -> ProjectSession:
    return registry.get(project_id)


def get_actor(
    x_user_id: str = Header(..., description="ID of the acting user"),
    x_user_name: Optional[str] = Header(None, description="Display name of the acting user"),
) -> Actor:
    return Actor(user_id=x_user_id, user_name=x_user_name or settings.DEFAULT_USER_NAME)
