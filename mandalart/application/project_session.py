"""Subscription wiring between the project store and the core components."""
from __future__ import annotations

import logging
from collections import OrderedDict
from typing import List, Optional

from mandalart.application.approval_pipeline import ApprovalPipeline
from mandalart.application.audit_trail import AuditTrail
from mandalart.application.change_service import ChangeService
from mandalart.application.grid_projector import GridProjector
from mandalart.application.node_repository import NodeRepository
from mandalart.application.tree_mutator import TreeMutator
from mandalart.domain.errors import ValidationError
from mandalart.storage.interface import ProjectStore, Unsubscribe

logger = logging.getLogger(__name__)


class ProjectSession:
    """
    One active project: its repository, projector, mutator, audit trail and
    approval pipeline, kept current by the store's three feeds.

    Opening another project cancels the previous feeds and starts from empty
    state; nothing carries over between projects.
    """

    def __init__(self, store: ProjectStore) -> None:
        self._store = store
        self._unsubscribers: List[Unsubscribe] = []
        self.project_id: Optional[str] = None
        self.repository = NodeRepository()
        self.projector = GridProjector(self.repository)
        self.mutator: Optional[TreeMutator] = None
        self.audit: Optional[AuditTrail] = None
        self.pipeline: Optional[ApprovalPipeline] = None
        self.changes: Optional[ChangeService] = None

    @property
    def is_open(self) -> bool:
        return self.project_id is not None

    def open(self, project_id: str) -> None:
        if not project_id:
            raise ValidationError("Project ID is required")
        self.close()

        self.project_id = project_id
        self.mutator = TreeMutator(project_id, self.repository, self._store)
        self.audit = AuditTrail(project_id, self._store)
        self.pipeline = ApprovalPipeline(project_id, self._store, self.mutator, self.audit)
        self.changes = ChangeService(self.repository, self.mutator, self.pipeline, self.audit)

        self._unsubscribers = [
            self._store.subscribe_nodes(project_id, self.repository.replace_all),
            self._store.subscribe_logs(project_id, self.audit.replace_all),
            self._store.subscribe_requests(project_id, self.pipeline.replace_pending),
        ]
        logger.info(f"Opened project {project_id} with {len(self.repository)} node(s)")

    def close(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        self.repository.clear()
        if self.audit is not None:
            self.audit.clear()
        if self.pipeline is not None:
            self.pipeline.clear()
        if self.project_id is not None:
            logger.info(f"Closed project {self.project_id}")
        self.project_id = None
        self.mutator = None
        self.audit = None
        self.pipeline = None
        self.changes = None


class WorkspaceRegistry:
    """
    Keeps open sessions for the HTTP layer, one per project.

    At most max_sessions projects stay subscribed; opening one more closes the
    least recently used session. Its state is rebuilt from the store when the
    project is requested again.
    """

    def __init__(self, store: ProjectStore, max_sessions: int = 32) -> None:
        if max_sessions < 1:
            raise ValidationError("max_sessions must be at least 1")
        self._store = store
        self._max_sessions = max_sessions
        self._sessions: OrderedDict[str, ProjectSession] = OrderedDict()

    def get(self, project_id: str) -> ProjectSession:
        session = self._sessions.get(project_id)
        if session is not None:
            self._sessions.move_to_end(project_id)
            return session

        session = ProjectSession(self._store)
        session.open(project_id)
        self._sessions[project_id] = session
        while len(self._sessions) > self._max_sessions:
            evicted_id, evicted = self._sessions.popitem(last=False)
            evicted.close()
            logger.info(f"Evicted idle project session {evicted_id}")
        return session

    def __len__(self) -> int:
        return len(self._sessions)

    def close_all(self) -> None:
        for session in self._sessions.values():
            session.close()
        self._sessions = OrderedDict()
